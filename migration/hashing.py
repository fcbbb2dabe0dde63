"""
Content addressing: deterministic digests for records and payloads.

Digests are SHA-256 over canonical JSON (sorted keys, compact separators),
so two records with the same fields hash equally regardless of the order
the source wrote them in.
"""

import hashlib
import json
from typing import Any, Mapping, Optional, Union

from pydantic import BaseModel

# Length of the digest slice used in fallback row keys
FALLBACK_KEY_LENGTH = 16


def canonical_json(value: Any) -> str:
    """Serialize ``value`` the same way every time"""
    if isinstance(value, BaseModel):
        value = value.model_dump(mode="json", by_alias=True)
    return json.dumps(value, sort_keys=True, separators=(",", ":"), ensure_ascii=False, default=str)


def digest(value: Any) -> str:
    return hashlib.sha256(canonical_json(value).encode("utf-8")).hexdigest()


def record_hash(record: Union[BaseModel, Mapping[str, Any]]) -> str:
    """SHA-256 hex digest of a record's fields"""
    return digest(record)


def row_key(prefix: str, record: BaseModel, natural_key: Optional[str] = None) -> str:
    """
    Stable ledger key for a record.

    The record's own identifier wins; records without one get
    ``<prefix>-<first 16 hex chars of record_hash>``.
    """
    if natural_key is None and hasattr(record, "natural_key"):
        natural_key = record.natural_key()
    if natural_key:
        return natural_key
    return f"{prefix}-{record_hash(record)[:FALLBACK_KEY_LENGTH]}"


def payload_checksum(payload: BaseModel) -> str:
    """Checksum identifying a whole normalized payload (batch idempotency key)"""
    return digest(payload)
