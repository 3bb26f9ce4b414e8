"""
design_snapshot.py

Identity and snapshot helpers: unique id generation, mutation-safe copies of
entity subgraphs and canonical serialization used for structural equality.
"""

import json
import uuid
import logging
from copy import deepcopy
from datetime import datetime, timezone
from typing import Any

logger = logging.getLogger(__name__)


def generate_id() -> str:
    """Return a new globally unique identifier string."""
    return str(uuid.uuid4())


def timestamp_now() -> str:
    """Return the current UTC time as an ISO 8601 string."""
    return datetime.now(timezone.utc).isoformat()


def deep_copy(obj: Any) -> Any:
    """Return a deep, mutation-safe copy of an entity, a list of entities or plain data."""
    return deepcopy(obj)


def _to_plain(obj: Any) -> Any:
    # Entities expose to_dict(); containers are walked recursively.
    if hasattr(obj, "to_dict"):
        return obj.to_dict()
    if isinstance(obj, dict):
        return {str(k): _to_plain(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [_to_plain(v) for v in obj]
    return obj


def canonical_json(obj: Any) -> str:
    """
    Serializes entities or plain data into a canonical JSON string.
    Keys are sorted and separators compact, so two structurally equal
    snapshots always produce byte-identical text.
    """
    return json.dumps(_to_plain(obj), sort_keys=True, separators=(",", ":"))


def load_snapshot(snapshot: str) -> Any:
    """Parses a snapshot produced by canonical_json back into plain data."""
    return json.loads(snapshot)


def snapshots_equal(a: Any, b: Any) -> bool:
    """True when both values have the same canonical serialization."""
    return canonical_json(a) == canonical_json(b)
