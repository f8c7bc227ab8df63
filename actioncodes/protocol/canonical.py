"""
Canonical Serialization.

Builds the exact bytes that wallets, authenticators and issuers sign. Every
signed structure has a fixed field order, is serialized as compact JSON and
nested objects are key-sorted so that the same logical content always yields
the same bytes.
"""

import json
from typing import Any, Mapping, Optional

# Field orderings per signed structure type
FIELD_ORDER = {
    # Action code signing message
    "code": ["code", "pubkey", "timestamp", "chain", "metadata"],
    # Wallet -> authenticator delegation certificate
    "delegation": ["v", "t", "id", "delegator", "delegate", "chain", "issuedAt", "expiresAt"],
    # Wallet -> issuer delegation
    "issuer": [
        "v", "t", "id", "delegator", "issuer", "intentClass", "scope", "issuedAt", "expiresAt"
    ],
}


class CanonicalSerializationError(Exception):
    """Raised when canonical serialization fails."""

    pass


def _order_dict(data: Mapping[str, Any], field_order: list[str]) -> dict:
    """Reorder dict keys according to field order.

    Args:
        data: Dictionary to reorder.
        field_order: List of field names in desired order.

    Returns:
        Ordered dictionary with fields in specified order.
        Extra fields (not in field_order) are appended at the end in sorted order.
    """
    result = {}

    for field in field_order:
        if field in data:
            result[field] = data[field]

    for field in sorted(data):
        if field not in result:
            result[field] = data[field]

    return result


def _sort_nested(value: Any) -> Any:
    """Recursively sort mapping keys; sequences keep their order.

    Raises:
        CanonicalSerializationError: If a mapping has a non-string key.
    """
    if isinstance(value, Mapping):
        for k in value:
            if not isinstance(k, str):
                raise CanonicalSerializationError(f"Non-string key {k!r} in signed data")
        return {k: _sort_nested(value[k]) for k in sorted(value)}
    if isinstance(value, (list, tuple)):
        return [_sort_nested(v) for v in value]
    if isinstance(value, (set, frozenset)):
        return sorted(_sort_nested(v) for v in value)
    return value


def canonical_serialize(kind: str, data: Mapping[str, Any]) -> bytes:
    """Serialize a structure in canonical field order.

    Args:
        kind: Structure type, a key of FIELD_ORDER.
        data: Field values. None values are omitted.

    Returns:
        Canonical JSON bytes (no whitespace, ordered fields).

    Raises:
        CanonicalSerializationError: If kind unknown or serialization fails.
    """
    if kind not in FIELD_ORDER:
        raise CanonicalSerializationError(f"Unknown structure type: {kind}")

    try:
        present = {k: _sort_nested(v) for k, v in data.items() if v is not None}
        ordered = _order_dict(present, FIELD_ORDER[kind])
        return json.dumps(
            ordered, separators=(",", ":"), ensure_ascii=False, allow_nan=False
        ).encode("utf-8")
    except (TypeError, ValueError) as e:
        raise CanonicalSerializationError(f"JSON serialization failed: {e}") from e


def code_message(
    code: str,
    pubkey: str,
    timestamp: int,
    chain: str,
    metadata: Optional[Mapping[str, Any]] = None,
) -> bytes:
    """Build the message an action code signature covers.

    Raises:
        CanonicalSerializationError: If a field is missing or has the wrong type.
    """
    for name, value in (("code", code), ("pubkey", pubkey), ("chain", chain)):
        if not isinstance(value, str) or not value:
            raise CanonicalSerializationError(f"Field '{name}' must be a non-empty string")
    # bool is an int subclass and must not pass as a timestamp
    if not isinstance(timestamp, int) or isinstance(timestamp, bool):
        raise CanonicalSerializationError("Field 'timestamp' must be an integer")
    if metadata is not None and not isinstance(metadata, Mapping):
        raise CanonicalSerializationError("Field 'metadata' must be an object")

    return canonical_serialize("code", {
        "code": code,
        "pubkey": pubkey,
        "timestamp": timestamp,
        "chain": chain,
        "metadata": dict(metadata) if metadata else None,
    })


def get_field_order(kind: str) -> list[str] | None:
    """Get the field order for a given structure type.

    Args:
        kind: The structure type (e.g., 'code', 'delegation', 'issuer').

    Returns:
        List of field names in canonical order, or None if unknown type.
    """
    return FIELD_ORDER.get(kind)
