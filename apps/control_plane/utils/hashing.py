"""Stable content hash for config payloads."""

import hashlib
import json
from typing import Any


def canonical_json(payload: Any) -> str:
    """Serialize with sorted keys and no whitespace. Same document always yields same text.

    NaN and Infinity raise ValueError: they are not JSON and would not survive a JSONB column.
    """
    return json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False, allow_nan=False)


def payload_hash(payload: Any) -> str:
    """sha256 hex of canonical_json(payload). Key order does not change the hash."""
    return hashlib.sha256(canonical_json(payload).encode("utf-8")).hexdigest()
