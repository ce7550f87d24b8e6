"""Tests for the Query builder."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from polysearch.core.index import Index
from polysearch.core.pagination import use_page
from polysearch.core.query import Query
from polysearch.models.page import Page

# ── Fixtures ──────────────────────────────────────────────────────────────────


@pytest.fixture
def mock_adapter() -> MagicMock:
    adapter = MagicMock()
    adapter.new_query.return_value = {"clauses": []}
    adapter.add_condition_to_query.side_effect = lambda query, condition: {
        "clauses": [*query["clauses"], condition.value]
    }
    adapter.run_query.return_value = [{"id": "1", "_score": 1.0, "name": "Red Shoes", "price": 20}]
    adapter.run_count.return_value = 7
    adapter.delete.return_value = True
    return adapter


@pytest.fixture
def index(mock_adapter: MagicMock) -> Index:
    return Index("products", "opensearch", mock_adapter)


# ── Building ─────────────────────────────────────────────────────────────────


class TestQueryBuilding:
    def test_conditions_fold_into_native_query(self, index: Index, mock_adapter: MagicMock) -> None:
        q = index.query().where("brand", "acme").search("name", "shoes", fuzzy=True)
        assert q.query == {"clauses": ["acme", "shoes"]}
        where, search = (c.args[1] for c in mock_adapter.add_condition_to_query.call_args_list)
        assert where.filter is True and where.required is True
        assert search.required is True and search.similarity == 0.5

    def test_search_options(self, index: Index, mock_adapter: MagicMock) -> None:
        index.query().search("name", "blue", required=False, prohibited=True, phrase=True)
        condition = mock_adapter.add_condition_to_query.call_args.args[1]
        assert condition.prohibited is True
        assert condition.phrase is True

    def test_where_location(self, index: Index, mock_adapter: MagicMock) -> None:
        index.query().where_location(40.0, -75.0)
        condition = mock_adapter.add_condition_to_query.call_args.args[1]
        assert condition.is_geo is True
        assert condition.distance == 10000

    @pytest.mark.parametrize(
        ("columns", "expected"),
        [((), None), (("name",), ["name"]), ((["name", "price"],), ["name", "price"]), (("name", "price"), ["name", "price"])],
    )
    def test_select(self, index: Index, columns: tuple, expected: list | None) -> None:
        assert index.query().select(*columns).columns == expected

    def test_builder_returns_self(self, index: Index) -> None:
        q = index.query()
        assert q.where("a", 1) is q
        assert q.select("a") is q
        assert q.limit(5) is q
        assert q.add_callback(lambda nq: None) is q


# ── Execution ────────────────────────────────────────────────────────────────


class TestQueryExecution:
    def test_get_projects_columns(self, index: Index, mock_adapter: MagicMock) -> None:
        records = index.query().select("name").get()
        assert records == [{"name": "Red Shoes"}]
        assert mock_adapter.run_query.call_args.kwargs["columns"] == ["name"]

    def test_limit_offset_forwarded(self, index: Index, mock_adapter: MagicMock) -> None:
        index.query().limit(10, 20).get()
        kwargs = mock_adapter.run_query.call_args.kwargs
        assert kwargs["limit"] == 10
        assert kwargs["offset"] == 20

    def test_zero_limit_forwarded(self, index: Index, mock_adapter: MagicMock) -> None:
        index.query().limit(0).get()
        kwargs = mock_adapter.run_query.call_args.kwargs
        assert kwargs["limit"] == 0
        assert kwargs["offset"] == 0

    def test_no_limit(self, index: Index, mock_adapter: MagicMock) -> None:
        index.query().get()
        kwargs = mock_adapter.run_query.call_args.kwargs
        assert kwargs["limit"] is None
        assert kwargs["offset"] is None

    def test_get_reexecutes(self, index: Index, mock_adapter: MagicMock) -> None:
        q = index.query()
        q.get()
        q.get()
        assert mock_adapter.run_query.call_count == 2

    def test_count(self, index: Index, mock_adapter: MagicMock) -> None:
        assert index.query().count() == 7

    def test_delete_removes_every_match(self, index: Index, mock_adapter: MagicMock) -> None:
        mock_adapter.run_query.side_effect = [[{"id": "1"}, {"id": "2"}], [{"id": "2"}]]
        mock_adapter.delete.side_effect = [True, False, False]
        assert index.query().select("name").delete() == 1
        assert [c.args[0] for c in mock_adapter.delete.call_args_list] == ["1", "2", "2"]
        assert mock_adapter.run_query.call_args.kwargs["columns"] is None

    def test_delete_continues_past_result_window(self, index: Index, mock_adapter: MagicMock) -> None:
        mock_adapter.run_query.side_effect = [[{"id": "1"}, {"id": "2"}], [{"id": "3"}], []]
        assert index.query().delete() == 3
        assert mock_adapter.run_query.call_count == 3

    def test_delete_with_limit_runs_once(self, index: Index, mock_adapter: MagicMock) -> None:
        mock_adapter.run_query.return_value = [{"id": "1"}, {"id": "2"}]
        assert index.query().limit(2).delete() == 2
        assert mock_adapter.run_query.call_count == 1


# ── Callbacks ────────────────────────────────────────────────────────────────


class TestQueryCallbacks:
    def test_callbacks_run_once(self, index: Index) -> None:
        calls: list[dict] = []
        q = index.query().add_callback(lambda nq: calls.append(nq))
        q.get()
        q.count()
        q.get()
        assert len(calls) == 1

    def test_truthy_return_replaces_query(self, index: Index, mock_adapter: MagicMock) -> None:
        index.query().add_callback(lambda nq: {"replaced": True}).get()
        assert mock_adapter.run_query.call_args.args[0] == {"replaced": True}

    def test_falsy_return_keeps_query(self, index: Index, mock_adapter: MagicMock) -> None:
        index.query().where("a", "b").add_callback(lambda nq: None).get()
        assert mock_adapter.run_query.call_args.args[0] == {"clauses": ["b"]}

    def test_driver_filter(self, index: Index) -> None:
        calls: list[str] = []
        q = index.query()
        q.add_callback(lambda nq: calls.append("other"), driver="algolia")
        q.add_callback(lambda nq: calls.append("list"), driver=["whoosh", "opensearch"])
        q.add_callback(lambda nq: calls.append("match"), driver="opensearch")
        q.get()
        assert calls == ["list", "match"]

    def test_callbacks_run_in_order(self, index: Index, mock_adapter: MagicMock) -> None:
        q = index.query()
        q.add_callback(lambda nq: {**nq, "step": 1})
        q.add_callback(lambda nq: {**nq, "step": nq["step"] + 1})
        q.count()
        assert mock_adapter.run_count.call_args.args[0]["step"] == 2


# ── Pagination ───────────────────────────────────────────────────────────────


class TestQueryPaginate:
    def test_explicit_page(self, index: Index, mock_adapter: MagicMock) -> None:
        page = index.query().paginate(per_page=5, page=3)
        assert isinstance(page, Page)
        assert page.total == 7
        assert page.current_page == 3
        kwargs = mock_adapter.run_query.call_args.kwargs
        assert kwargs["limit"] == 5
        assert kwargs["offset"] == 10

    def test_page_from_context(self, index: Index, mock_adapter: MagicMock) -> None:
        with use_page(2):
            page = index.query().paginate()
        assert page.current_page == 2
        assert page.per_page == 15
        assert mock_adapter.run_query.call_args.kwargs["offset"] == 15

    def test_invalid_page_clamped(self, index: Index) -> None:
        assert index.query().paginate(page=0).current_page == 1


# ── Scenarios (whoosh) ───────────────────────────────────────────────────────


class TestProductsScenario:
    def test_loose_search(self, red_shoes: Index) -> None:
        [record] = red_shoes.search("name", "shoes", phrase=False).get()
        assert record["id"] == "1"
        assert record["price"] == 20

    def test_fuzzy_search(self, red_shoes: Index) -> None:
        [record] = red_shoes.search("name", "shoe", fuzzy=0.5).get()
        assert record["id"] == "1"

    def test_and_of_required_clauses(self, red_shoes: Index) -> None:
        assert red_shoes.search("name", "shoes").where("name", "blue").get() == []

    def test_select_projection(self, red_shoes: Index) -> None:
        assert red_shoes.search("name", "shoes").select(["name"]).get() == [{"name": "Red Shoes"}]

    def test_round_trip_parameters(self, products: Index) -> None:
        params = {"price": 20.5, "tags": ["a", "b"], "meta": {"nested": True}, "label": "ünï"}
        products.insert("sku-1", {"name": "Thing", "qty": 3}, params)
        [record] = products.where("id", "sku-1").get()
        assert {k: record[k] for k in params} == params

    def test_replace_on_insert(self, products: Index) -> None:
        products.insert(1, {"name": "Red Shoes"}, {"price": 20})
        products.insert(1, {"name": "Green Boots"}, {"size": 9})
        [record] = products.where("id", 1).get()
        assert record["name"] == "Green Boots"
        assert record["size"] == 9
        assert "price" not in record
        assert products.query().count() == 1

    def test_delete_semantics(self, red_shoes: Index) -> None:
        assert red_shoes.delete(99) is False
        assert red_shoes.query().count() == 1
        assert red_shoes.delete(1) is True
        assert red_shoes.where("id", 1).get() == []

    def test_count_vs_get(self, products: Index) -> None:
        for i in range(5):
            products.insert(i, {"name": f"Shoe model{i}"})
        assert products.search("name", "shoe").count() == len(products.search("name", "shoe").get()) == 5
        q = products.search("name", "shoe").limit(2, 1)
        assert len(q.get()) <= 2
        assert q.count() == 5

    def test_geo_scenario(self, products: Index) -> None:
        products.insert(1, {"name": "No Location"})
        assert products.where_location(40.0, -75.0, 5000).get() == []
        products.insert(2, {"name": "Nearby", "_geoloc": {"lat": 40.02, "lng": -75.01}})
        assert [r["id"] for r in products.where_location(40.0, -75.0, 5000).get()] == ["2"]

    def test_fractional_radius(self, products: Index) -> None:
        products.insert(2, {"name": "Nearby", "_geoloc": {"lat": 40.01, "lng": -75.0}})
        assert [r["id"] for r in products.where_location(40.0, -75.0, 1500.5).get()] == ["2"]

    def test_zero_limit_returns_nothing(self, red_shoes: Index) -> None:
        q = red_shoes.query().limit(0)
        assert q.get() == []
        assert q.count() == 1

    def test_delete_by_query(self, products: Index) -> None:
        products.insert(1, {"name": "Red Shoes"})
        products.insert(2, {"name": "Blue Shoes"})
        products.insert(3, {"name": "Red Hat"})
        assert products.search("name", "shoes").delete() == 2
        assert [r["id"] for r in products.query().get()] == ["3"]

    def test_delete_by_query_empties_large_match(self, products: Index) -> None:
        for i in range(30):
            products.insert(i, {"name": f"Shoe model{i}"})
        assert products.search("name", "shoe").delete() == 30
        assert products.query().count() == 0


def test_repr(index: Index) -> None:
    assert repr(Query(index)) == "Query(index='products', driver='opensearch')"
