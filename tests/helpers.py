"""Shared test helpers: Ed25519 keys, signed codes and certificates, fakes."""

import dataclasses
from dataclasses import dataclass
from typing import List, Optional, Set, Tuple

import pysodium

from actioncodes.protocol.certificates import DelegationCertificate, IssuerDelegation, IssuerScope
from actioncodes.protocol.key_parser import b64url_encode
from actioncodes.protocol.models import ActionCode, ActionCodeMetadata


# =============================================================================
# Keys
# =============================================================================


@dataclass(frozen=True)
class Keypair:
    """Ed25519 keypair with the pubkey in bare base64url form."""
    verkey: bytes
    sigkey: bytes

    @property
    def pubkey(self) -> str:
        return b64url_encode(self.verkey)

    @property
    def keri_aid(self) -> str:
        return "D" + b64url_encode(self.verkey)

    def sign(self, message: bytes) -> str:
        return b64url_encode(pysodium.crypto_sign_detached(message, self.sigkey))


def generate_keypair() -> Keypair:
    """Generate an Ed25519 keypair for testing."""
    seed = pysodium.randombytes(pysodium.crypto_sign_SEEDBYTES)
    verkey, sigkey = pysodium.crypto_sign_seed_keypair(seed)
    return Keypair(verkey=verkey, sigkey=sigkey)


# =============================================================================
# Action codes
# =============================================================================


def make_action_code(
    signer: Optional[Keypair],
    pubkey: Optional[str] = None,
    code: str = "AB12CD34",
    timestamp: int = 1000,
    chain: str = "solana",
    metadata: Optional[ActionCodeMetadata] = None,
) -> ActionCode:
    """Create a pending code, signed by signer over its canonical message.

    Args:
        signer: Key that signs the code; None leaves it unsigned.
        pubkey: Code owner; defaults to the signer's pubkey.
    """
    owner = pubkey or signer.pubkey
    unsigned = ActionCode(
        code=code,
        pubkey=owner,
        timestamp=timestamp,
        signature="",
        chain=chain,
        metadata=metadata,
    )
    if signer is None:
        return unsigned
    return dataclasses.replace(unsigned, signature=signer.sign(unsigned.signing_message()))


# =============================================================================
# Certificates
# =============================================================================


def make_delegation(
    wallet: Keypair,
    delegate: Keypair,
    cert_id: str = "cert-0001",
    issued_at: int = 0,
    expires_at: int = 3_600_000,
    chain: Optional[str] = None,
    signed_by: Optional[Keypair] = None,
) -> DelegationCertificate:
    """Create a delegation certificate signed by the wallet (or signed_by)."""
    cert = DelegationCertificate(
        id=cert_id,
        delegator=wallet.pubkey,
        delegate=delegate.pubkey,
        issued_at=issued_at,
        expires_at=expires_at,
        chain=chain,
    )
    signer = signed_by or wallet
    return dataclasses.replace(cert, signature=signer.sign(cert.signing_message()))


def make_issuer_delegation(
    wallet: Keypair,
    issuer: Keypair,
    scope: Optional[IssuerScope] = None,
    delegation_id: str = "issuer-0001",
    intent_class: str = "payment",
    issued_at: int = 0,
    expires_at: int = 3_600_000,
) -> IssuerDelegation:
    """Create an issuer delegation signed by the wallet."""
    delegation = IssuerDelegation(
        id=delegation_id,
        delegator=wallet.pubkey,
        issuer=issuer.pubkey,
        intent_class=intent_class,
        issued_at=issued_at,
        expires_at=expires_at,
        scope=scope or IssuerScope(),
    )
    return dataclasses.replace(delegation, signature=wallet.sign(delegation.signing_message()))


# =============================================================================
# Fakes
# =============================================================================


class FixedClock:
    """Clock returning a settable time in ms."""

    def __init__(self, now: int):
        self.now = now

    def __call__(self) -> int:
        return self.now


class RecordingVerifier:
    """Verifier returning a fixed answer and recording calls."""

    def __init__(self, result: bool = True):
        self.result = result
        self.calls: List[Tuple[str, bytes, str]] = []

    async def verify(self, pubkey: str, message: bytes, signature: str) -> bool:
        self.calls.append((pubkey, message, signature))
        return self.result


class StaticRevocationChecker:
    """Revocation checker backed by a set of revoked ids."""

    def __init__(self, revoked: Optional[Set[str]] = None, error: Optional[Exception] = None):
        self.revoked = revoked or set()
        self.error = error
        self.checked: List[str] = []

    async def is_revoked(self, certificate_id: str) -> bool:
        self.checked.append(certificate_id)
        if self.error is not None:
            raise self.error
        return certificate_id in self.revoked
