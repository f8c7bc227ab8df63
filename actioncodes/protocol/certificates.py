"""Delegation certificates and issuer delegations.

Both are wallet-signed statements naming a second key allowed to sign action
codes for the wallet. check_certificate implements the first verification
stage shared by the delegated and issuer strategies: delegator binding,
wallet signature, validity window and revocation.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Mapping, Optional, Protocol, Union, runtime_checkable

from pydantic import ValidationError

from actioncodes.core.config import MAX_CERTIFICATE_TTL_MS, PROTOCOL_VERSION
from .api_models import DelegationCertificateModel, IssuerDelegationModel
from .canonical import CanonicalSerializationError, canonical_serialize
from .exceptions import CertificateExpiredError, CertificateInvalidError
from .models import ActionCode, freeze, thaw
from .signature import SignatureVerifier

log = logging.getLogger(__name__)


@runtime_checkable
class RevocationChecker(Protocol):
    """Host-supplied revocation lookup.

    Returns True when the certificate id has been revoked. Raises when the
    status cannot be determined.
    """

    async def is_revoked(self, certificate_id: str) -> bool:
        ...


@dataclass(frozen=True)
class DelegationCertificate:
    """Wallet-signed authorization for an authenticator key (delegated mode).

    Attributes:
        id: Revocation-checkable identifier.
        delegator: Wallet public key that signed the certificate.
        delegate: Authenticator public key allowed to sign codes.
        issued_at: Start of validity (ms).
        expires_at: End of validity (ms).
        signature: Delegator signature over signing_message().
        chain: Optional chain the delegation is restricted to.
        version: Protocol version of the certificate format.
    """
    id: str
    delegator: str
    delegate: str
    issued_at: int
    expires_at: int
    signature: str = ""
    chain: Optional[str] = None
    version: str = PROTOCOL_VERSION

    kind = "delegation"

    @property
    def signer(self) -> str:
        return self.delegate

    def signing_message(self) -> bytes:
        return canonical_serialize(self.kind, {
            "v": self.version,
            "t": self.kind,
            "id": self.id,
            "delegator": self.delegator,
            "delegate": self.delegate,
            "chain": self.chain,
            "issuedAt": self.issued_at,
            "expiresAt": self.expires_at,
        })

    @classmethod
    def from_dict(cls, data: Union[Mapping[str, Any], str]) -> "DelegationCertificate":
        """Parse a wire dict (or JSON string).

        Raises:
            CertificateInvalidError: On schema violations.
        """
        model = _validate(DelegationCertificateModel, data)
        return cls(
            id=model.id,
            delegator=model.delegator,
            delegate=model.delegate,
            issued_at=model.issued_at,
            expires_at=model.expires_at,
            signature=model.signature,
            chain=model.chain,
            version=model.version,
        )


@dataclass(frozen=True)
class IssuerScope:
    """Constraints on codes an issuer may sign.

    Attributes:
        chains: Chains the issuer may sign for; None means any.
        allowed_params: Metadata param names the issuer may use; None means any.
        fixed_params: Param values that must appear exactly as given. Frozen
            on construction and left out of the hash.
    """
    chains: Optional[FrozenSet[str]] = None
    allowed_params: Optional[FrozenSet[str]] = None
    fixed_params: Mapping[str, Any] = field(default_factory=dict, hash=False)

    def __post_init__(self):
        object.__setattr__(self, "fixed_params", freeze(self.fixed_params))

    def as_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {}
        if self.chains is not None:
            result["chains"] = sorted(self.chains)
        if self.allowed_params is not None:
            result["allowedParams"] = sorted(self.allowed_params)
        if self.fixed_params:
            result["fixedParams"] = thaw(self.fixed_params)
        return result


@dataclass(frozen=True)
class IssuerDelegation:
    """Wallet-signed authorization for an issuer key (issuer mode).

    Attributes:
        id: Revocation-checkable identifier.
        delegator: Wallet public key that signed the delegation.
        issuer: Issuer public key allowed to sign codes.
        intent_class: Label for the class of intents covered. Opaque here.
        issued_at: Start of validity (ms).
        expires_at: End of validity (ms).
        scope: Constraints checked against each code.
        signature: Delegator signature over signing_message().
        version: Protocol version of the delegation format.
    """
    id: str
    delegator: str
    issuer: str
    intent_class: str
    issued_at: int
    expires_at: int
    scope: IssuerScope = field(default_factory=IssuerScope)
    signature: str = ""
    version: str = PROTOCOL_VERSION

    kind = "issuer"

    @property
    def signer(self) -> str:
        return self.issuer

    def signing_message(self) -> bytes:
        return canonical_serialize(self.kind, {
            "v": self.version,
            "t": self.kind,
            "id": self.id,
            "delegator": self.delegator,
            "issuer": self.issuer,
            "intentClass": self.intent_class,
            "scope": self.scope.as_dict(),
            "issuedAt": self.issued_at,
            "expiresAt": self.expires_at,
        })

    @classmethod
    def from_dict(cls, data: Union[Mapping[str, Any], str]) -> "IssuerDelegation":
        """Parse a wire dict (or JSON string).

        Raises:
            CertificateInvalidError: On schema violations.
        """
        model = _validate(IssuerDelegationModel, data)
        scope = IssuerScope(
            chains=frozenset(model.scope.chains) if model.scope.chains is not None else None,
            allowed_params=(
                frozenset(model.scope.allowed_params)
                if model.scope.allowed_params is not None else None
            ),
            fixed_params=dict(model.scope.fixed_params),
        )
        return cls(
            id=model.id,
            delegator=model.delegator,
            issuer=model.issuer,
            intent_class=model.intent_class,
            issued_at=model.issued_at,
            expires_at=model.expires_at,
            scope=scope,
            signature=model.signature,
            version=model.version,
        )


Certificate = Union[DelegationCertificate, IssuerDelegation]


def _validate(model_cls, data):
    try:
        if isinstance(data, str):
            return model_cls.model_validate_json(data)
        return model_cls.model_validate(dict(data))
    except ValidationError as e:
        raise CertificateInvalidError(f"Malformed {model_cls.__name__}: {e}")


async def check_certificate(
    certificate: Certificate,
    action_code: ActionCode,
    now: int,
    verifier: SignatureVerifier,
    revocation_checker: Optional[RevocationChecker] = None,
) -> None:
    """Verify a certificate before any code signature is checked.

    Order:
    1. Delegator must be the code's pubkey
    2. Delegator signature over the canonical certificate
    3. Validity window sanity (ordered, not longer than MAX_CERTIFICATE_TTL_MS)
    4. Not yet valid / expired at now
    5. Code generated inside the validity window
    6. Chain restriction (delegation certificates)
    7. Revocation

    Args:
        certificate: DelegationCertificate or IssuerDelegation.
        action_code: Code being authenticated.
        now: Clock reading for this call (ms).
        verifier: Signature capability.
        revocation_checker: Optional revocation lookup.

    Raises:
        CertificateInvalidError: Binding, signature, window, chain or revocation failure.
        CertificateExpiredError: Certificate expired, or code generated outside its window.
    """
    label = f"{certificate.kind} {certificate.id[:16]}"

    if certificate.delegator != action_code.pubkey:
        raise CertificateInvalidError(
            f"{label} delegator does not match code pubkey {action_code.pubkey[:16]}..."
        )
    if not certificate.signer:
        raise CertificateInvalidError(f"{label} names no signer key")

    try:
        message = certificate.signing_message()
    except CanonicalSerializationError as e:
        raise CertificateInvalidError(f"{label} cannot be serialized: {e}")

    if not certificate.signature:
        raise CertificateInvalidError(f"{label} is unsigned")
    if not await verifier.verify(certificate.delegator, message, certificate.signature):
        raise CertificateInvalidError(f"{label} wallet signature verification failed")

    if certificate.expires_at <= certificate.issued_at:
        raise CertificateInvalidError(f"{label} expires before it is issued")
    if certificate.expires_at - certificate.issued_at > MAX_CERTIFICATE_TTL_MS:
        raise CertificateInvalidError(
            f"{label} validity window exceeds {MAX_CERTIFICATE_TTL_MS}ms"
        )

    if certificate.issued_at > now:
        raise CertificateInvalidError(f"{label} not valid until {certificate.issued_at}")
    if now > certificate.expires_at:
        raise CertificateExpiredError(f"{label} expired at {certificate.expires_at}")

    if not certificate.issued_at <= action_code.timestamp <= certificate.expires_at:
        raise CertificateExpiredError(
            f"{label} was not valid when code {action_code.code} was generated "
            f"(timestamp={action_code.timestamp})"
        )

    chain = getattr(certificate, "chain", None)
    if chain is not None and chain != action_code.chain:
        raise CertificateInvalidError(
            f"{label} is restricted to chain {chain}, code is for {action_code.chain}"
        )

    if revocation_checker is not None:
        try:
            revoked = await revocation_checker.is_revoked(certificate.id)
        except Exception as e:
            log.info(f"revocation lookup failed for {label}...: {e}")
            raise CertificateInvalidError(
                f"{label} revocation status unavailable: {e}", recoverable=True
            )
        if revoked:
            raise CertificateInvalidError(f"{label} has been revoked")
