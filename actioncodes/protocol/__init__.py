"""Action code authentication and lifecycle.

Strategies (wallet, delegated, issuer) authenticate a code; the lifecycle
state machine governs pending -> resolved -> finalized, with expiry derived
from the clock and error as the failure sink.
"""

from .api_models import (
    ActionCodeModel,
    ActionCodeStatus,
    ErrorCode,
    ErrorDetail,
    ResolutionResponse,
)
from .exceptions import (
    ActionCodeError,
    ActionCodeInvalidError,
    CertificateExpiredError,
    CertificateInvalidError,
    CodeExpiredError,
    DuplicateModeError,
    InvalidTransitionError,
    MessageMismatchError,
    MissingProofError,
    ScopeViolationError,
    SignatureInvalidError,
    UnknownModeError,
)
from .models import (
    ActionCode,
    ActionCodeMetadata,
    ActionCodeTransaction,
    code_hash,
    generate_code,
    system_clock,
)
from .certificates import (
    DelegationCertificate,
    IssuerDelegation,
    IssuerScope,
    RevocationChecker,
    check_certificate,
)
from .signature import Ed25519Verifier, SignatureVerifier
from .strategies import (
    DelegatedStrategy,
    IssuerStrategy,
    Mode,
    ProofType,
    Strategy,
    StrategyCapabilities,
    ValidatedProof,
    ValidationContext,
    WalletStrategy,
)
from .registry import StrategyRegistry, default_registry
from .lifecycle import (
    EventType,
    LifecycleEvent,
    SignatureConfirmation,
    effective_status,
    transition,
)
from .engine import ResolutionEngine, ResolutionResult, to_error_detail

__all__ = [
    # Models
    "ActionCode",
    "ActionCodeMetadata",
    "ActionCodeTransaction",
    "ActionCodeModel",
    "ActionCodeStatus",
    "code_hash",
    "generate_code",
    "system_clock",
    # Errors
    "ErrorCode",
    "ErrorDetail",
    "ActionCodeError",
    "ActionCodeInvalidError",
    "CertificateExpiredError",
    "CertificateInvalidError",
    "CodeExpiredError",
    "DuplicateModeError",
    "InvalidTransitionError",
    "MessageMismatchError",
    "MissingProofError",
    "ScopeViolationError",
    "SignatureInvalidError",
    "UnknownModeError",
    # Certificates
    "DelegationCertificate",
    "IssuerDelegation",
    "IssuerScope",
    "RevocationChecker",
    "check_certificate",
    # Verification
    "SignatureVerifier",
    "Ed25519Verifier",
    # Strategies
    "Mode",
    "ProofType",
    "Strategy",
    "StrategyCapabilities",
    "ValidatedProof",
    "ValidationContext",
    "WalletStrategy",
    "DelegatedStrategy",
    "IssuerStrategy",
    "StrategyRegistry",
    "default_registry",
    # Lifecycle
    "EventType",
    "LifecycleEvent",
    "SignatureConfirmation",
    "effective_status",
    "transition",
    # Engine
    "ResolutionEngine",
    "ResolutionResult",
    "ResolutionResponse",
    "to_error_detail",
]
