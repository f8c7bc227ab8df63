"""Signature verification capability.

The lifecycle core only consumes a SignatureVerifier; hosts can supply their
own (HSM, chain-specific curves, remote service). Ed25519Verifier is the
default implementation for base64url-encoded Ed25519 keys and signatures.

Note: pysodium is imported lazily inside functions to:
1. Avoid import errors when libsodium is not available at module load time
2. Enable testing of code paths that don't require signature verification
"""

import logging
from typing import Protocol, runtime_checkable

from .exceptions import SignatureInvalidError
from .key_parser import KeyParseError, parse_signature, parse_verkey

log = logging.getLogger(__name__)


@runtime_checkable
class SignatureVerifier(Protocol):
    """Verifies a signature over a message for a public key.

    Implementations return False for any invalid input. They may suspend
    (remote or hardware-backed verification).
    """

    async def verify(self, pubkey: str, message: bytes, signature: str) -> bool:
        ...


class Ed25519Verifier:
    """Ed25519 verification via libsodium."""

    async def verify(self, pubkey: str, message: bytes, signature: str) -> bool:
        try:
            verkey = parse_verkey(pubkey)
            sig = parse_signature(signature)
        except KeyParseError as e:
            log.debug(f"Ed25519 input rejected for key {pubkey[:16]}...: {e}")
            return False

        import pysodium
        try:
            # pysodium.crypto_sign_verify_detached raises ValueError if invalid
            pysodium.crypto_sign_verify_detached(sig, message, verkey.raw)
        except ValueError:
            return False
        return True


async def verify_signature(
    verifier: SignatureVerifier,
    pubkey: str,
    message: bytes,
    signature: str,
    subject: str = "action code",
) -> None:
    """Verify a signature, raising on failure.

    Args:
        verifier: Injected verification capability.
        pubkey: Key expected to have produced the signature.
        message: Canonical bytes the signature covers.
        signature: Encoded signature.
        subject: What was signed, for the error message.

    Raises:
        SignatureInvalidError: Signature missing or cryptographically invalid.
    """
    if not signature:
        raise SignatureInvalidError(f"{subject} signature is missing")

    if not await verifier.verify(pubkey, message, signature):
        raise SignatureInvalidError(
            f"{subject} signature verification failed for key {pubkey[:16]}..."
        )
