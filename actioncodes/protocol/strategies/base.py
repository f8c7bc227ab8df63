"""Strategy contract for action code authentication.

Each trust mode is one Strategy:
- Wallet: the code is signed by the wallet itself
- Delegated: signed by an authenticator key named in a delegation certificate
- Issuer: signed by an issuer key named in an issuer delegation, within scope

A strategy returns a ValidatedProof on success and raises an
ActionCodeError subclass on failure.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, FrozenSet, Mapping, Optional, Type

from ..certificates import DelegationCertificate, IssuerDelegation
from ..exceptions import MissingProofError
from ..models import ActionCode
from ..signature import SignatureVerifier


class Mode(str, Enum):
    """Protocol-defined trust modes. Closed per protocol version."""
    WALLET = "wallet"
    DELEGATED = "delegated"
    ISSUER = "issuer"


class ProofType(str, Enum):
    """Auxiliary proofs a strategy may require."""
    DELEGATION_CERTIFICATE = "delegation_certificate"
    ISSUER_DELEGATION = "issuer_delegation"


# Expected Python type for each proof
PROOF_CLASSES: Dict[ProofType, Type] = {
    ProofType.DELEGATION_CERTIFICATE: DelegationCertificate,
    ProofType.ISSUER_DELEGATION: IssuerDelegation,
}


@dataclass(frozen=True)
class StrategyCapabilities:
    """What a strategy needs and supports.

    Attributes:
        mode_id: Mode identifier string.
        required_proofs: Proof types that must be supplied.
        supports_multi_use: Whether codes in this mode may be presented more
            than once. Informational; storage layers enforce it.
    """
    mode_id: str
    required_proofs: FrozenSet[ProofType] = frozenset()
    supports_multi_use: bool = False


@dataclass(frozen=True)
class ValidationContext:
    """Per-call input to Strategy.validate.

    Attributes:
        action_code: Code under validation.
        mode: Selected mode identifier.
        now: Clock reading for this call (ms).
        proofs: Auxiliary proofs keyed by ProofType.
    """
    action_code: ActionCode
    mode: str
    now: int
    proofs: Mapping[ProofType, Any] = field(default_factory=dict)

    def proof(self, proof_type: ProofType) -> Any:
        """Fetch a required proof.

        Raises:
            MissingProofError: If the proof was not supplied.
        """
        value = self.proofs.get(proof_type)
        if value is None:
            raise MissingProofError(f"{self.mode} mode requires {proof_type.value}")
        return value


@dataclass(frozen=True)
class ValidatedProof:
    """Successful authentication.

    Attributes:
        mode: Mode that authenticated the code.
        signer: Key that produced the code signature.
        delegator: Wallet on whose authority the signer acted.
        certificate_id: Delegation or issuer delegation id, if any.
        intent_class: Issuer intent class, if any.
    """
    mode: str
    signer: str
    delegator: str
    certificate_id: Optional[str] = None
    intent_class: Optional[str] = None


def check_capabilities(
    capabilities: StrategyCapabilities,
    proofs: Mapping[ProofType, Any],
) -> None:
    """Check that supplied proofs satisfy the declared capabilities.

    Raises:
        MissingProofError: If a required proof is absent or of the wrong type.
    """
    for proof_type in sorted(capabilities.required_proofs, key=lambda p: p.value):
        value = proofs.get(proof_type)
        if value is None:
            raise MissingProofError(
                f"{capabilities.mode_id} mode requires {proof_type.value}"
            )
        expected = PROOF_CLASSES.get(proof_type)
        if expected is not None and not isinstance(value, expected):
            raise MissingProofError(
                f"{proof_type.value} must be a {expected.__name__}, "
                f"got {type(value).__name__}"
            )


class Strategy(ABC):
    """Authenticates an action code under one trust mode."""

    def __init__(self, verifier: SignatureVerifier):
        self.verifier = verifier

    @property
    @abstractmethod
    def mode_id(self) -> str:
        """Stable mode identifier."""

    @abstractmethod
    def get_capabilities(self) -> StrategyCapabilities:
        """Declared proof requirements."""

    @abstractmethod
    async def validate(self, context: ValidationContext) -> ValidatedProof:
        """Authenticate the code in context.

        Raises:
            ActionCodeError: Typed failure; nothing is retried.
        """

    def __repr__(self) -> str:
        return f"{type(self).__name__}(mode_id={self.mode_id!r})"
