"""Parse public key and signature encodings to raw Ed25519 bytes.

Keys are accepted in two textual forms:
- Bare base64url of the 32-byte key (43 chars, padding optional)
- KERI-style prefixed form: derivation code + base64url key (44 chars),
  where the code is B (non-transferable) or D (transferable)
"""

import base64
import binascii
from dataclasses import dataclass


# KERI derivation codes for single-sig Ed25519 keys
ED25519_CODES = frozenset({"B", "D"})

ED25519_KEY_BYTES = 32
ED25519_SIG_BYTES = 64


class KeyParseError(ValueError):
    """Key or signature text could not be decoded."""
    pass


@dataclass(frozen=True)
class VerificationKey:
    """Decoded verification key.

    Attributes:
        raw: 32-byte Ed25519 public key
        text: Original key string (for logging)
        code: KERI derivation code, or None for bare keys
    """
    raw: bytes
    text: str
    code: str | None = None


def _b64url_decode(value: str) -> bytes:
    # Add padding (base64url may omit trailing =)
    padded = value + "=" * (-len(value) % 4)
    try:
        return base64.urlsafe_b64decode(padded.encode("ascii"))
    except (binascii.Error, UnicodeEncodeError, ValueError) as e:
        raise KeyParseError(f"Invalid base64url: {e}")


def b64url_encode(raw: bytes) -> str:
    """Unpadded base64url, the encoding used for keys and signatures."""
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def parse_verkey(pubkey: str) -> VerificationKey:
    """Parse a public key string to an Ed25519 verification key.

    Args:
        pubkey: Bare base64url key or KERI-prefixed key.

    Returns:
        VerificationKey with the 32 raw key bytes.

    Raises:
        KeyParseError: If the format is invalid or the key is not 32 bytes.
    """
    if not pubkey or len(pubkey) < 2:
        raise KeyParseError(f"Invalid key format: too short (len={len(pubkey) if pubkey else 0})")

    code = None
    key_b64 = pubkey.rstrip("=")
    if len(key_b64) == 44 and key_b64[0] in ED25519_CODES:
        code = key_b64[0]
        key_b64 = key_b64[1:]

    raw = _b64url_decode(key_b64)
    if len(raw) != ED25519_KEY_BYTES:
        raise KeyParseError(
            f"Invalid key length: {len(raw)} bytes, expected {ED25519_KEY_BYTES} for Ed25519"
        )

    return VerificationKey(raw=raw, text=pubkey, code=code)


def parse_signature(signature: str) -> bytes:
    """Decode a base64url Ed25519 signature.

    Raises:
        KeyParseError: If not valid base64url or not 64 bytes.
    """
    if not signature:
        raise KeyParseError("Signature is empty")
    raw = _b64url_decode(signature.rstrip("="))
    if len(raw) != ED25519_SIG_BYTES:
        raise KeyParseError(
            f"Invalid signature length: {len(raw)} bytes, expected {ED25519_SIG_BYTES}"
        )
    return raw
