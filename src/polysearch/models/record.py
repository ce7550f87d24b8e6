"""Record helpers: the normalized result row shared by every adapter.

A record is a plain ``dict`` with a reserved ``id`` key, an optional
reserved ``_score`` key, the indexed fields as returned by the engine and
every stored parameter merged in.
"""

from __future__ import annotations

import base64
import json
from collections.abc import Iterable, Mapping
from typing import Any

Record = dict[str, Any]

SCORE_KEY = "_score"
PARAMETERS_KEY = "_parameters"
GEOLOC_KEY = "_geoloc"


def encode_parameters(parameters: Mapping[str, Any] | None) -> str:
    """Encode stored parameters as an opaque ``base64(json)`` blob."""
    payload = json.dumps(dict(parameters or {}), separators=(",", ":"), ensure_ascii=False)
    return base64.b64encode(payload.encode("utf-8")).decode("ascii")


def decode_parameters(blob: str | bytes | None) -> dict[str, Any]:
    """Decode a blob produced by :func:`encode_parameters`.

    Missing or empty blobs decode to an empty dict.
    """
    if not blob:
        return {}
    decoded = json.loads(base64.b64decode(blob).decode("utf-8"))
    return decoded if isinstance(decoded, dict) else {}


def make_record(doc_id: Any, score: float | None, fields: Mapping[str, Any], blob: str | bytes | None) -> Record:
    """Assemble a record from an engine hit.

    Stored parameters override indexed fields of the same name.
    """
    record: Record = {"id": doc_id}
    if score is not None:
        record[SCORE_KEY] = score
    for name, value in fields.items():
        if name in ("id", PARAMETERS_KEY):
            continue
        record[name] = value
    record.update(decode_parameters(blob))
    return record


def project(records: Iterable[Record], columns: list[str] | None) -> list[Record]:
    """Keep only ``columns`` in every record; ``None`` or ``'*'`` keeps all."""
    if not columns or "*" in columns:
        return list(records)
    return [{name: record[name] for name in columns if name in record} for record in records]
