"""
Action Codes wire models.

Field names and optionality of these models are the wire contract for any
persistence or transport layer built on this package.
"""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# Action Code Status
# =============================================================================

class ActionCodeStatus(str, Enum):
    """Lifecycle status of an action code."""
    PENDING = "pending"        # Generated, awaiting resolution
    RESOLVED = "resolved"      # Transaction attached
    FINALIZED = "finalized"    # Transaction signature confirmed
    EXPIRED = "expired"        # Derived from the clock, never stored by us
    ERROR = "error"            # Resolution failed

    @property
    def is_terminal(self) -> bool:
        return self in (ActionCodeStatus.FINALIZED, ActionCodeStatus.EXPIRED, ActionCodeStatus.ERROR)


# =============================================================================
# Action Code Wire Shape
# =============================================================================

class TransactionModel(BaseModel):
    """Attached transaction payload."""
    model_config = ConfigDict(populate_by_name=True)

    transaction: str
    tx_signature: Optional[str] = Field(default=None, alias="txSignature")
    tx_type: Optional[str] = Field(default=None, alias="txType")


class MetadataModel(BaseModel):
    """Application metadata. Carried as-is."""
    description: Optional[str] = None
    params: Optional[Dict[str, Any]] = None


class ActionCodeModel(BaseModel):
    """Serialized action code.

    Order and names: code, pubkey, timestamp, signature, chain,
    transaction?, metadata?, expiresAt, status.
    """
    model_config = ConfigDict(populate_by_name=True)

    code: str
    pubkey: str
    timestamp: int
    signature: str
    chain: str
    transaction: Optional[TransactionModel] = None
    metadata: Optional[MetadataModel] = None
    expires_at: int = Field(alias="expiresAt")
    status: ActionCodeStatus = ActionCodeStatus.PENDING


# =============================================================================
# Error Models
# =============================================================================

class ErrorDetail(BaseModel):
    """Structured error surfaced to callers."""
    code: str
    message: str
    recoverable: bool


class ErrorCode:
    """Error code registry"""
    # Registry layer
    UNKNOWN_MODE = "UNKNOWN_MODE"
    DUPLICATE_MODE = "DUPLICATE_MODE"
    MISSING_PROOF = "MISSING_PROOF"

    # Certificate layer
    CERTIFICATE_EXPIRED = "CERTIFICATE_EXPIRED"
    CERTIFICATE_INVALID = "CERTIFICATE_INVALID"

    # Crypto layer
    SIGNATURE_INVALID = "SIGNATURE_INVALID"
    MESSAGE_MISMATCH = "MESSAGE_MISMATCH"

    # Lifecycle layer
    CODE_EXPIRED = "CODE_EXPIRED"
    INVALID_TRANSITION = "INVALID_TRANSITION"

    # Issuer layer
    SCOPE_VIOLATION = "SCOPE_VIOLATION"

    # Record layer
    ACTION_CODE_INVALID = "ACTION_CODE_INVALID"

    # Engine layer
    INTERNAL_ERROR = "INTERNAL_ERROR"


# Recoverability mapping. Nothing is retried internally; this only tells the
# caller whether retrying the same request could succeed.
ERROR_RECOVERABILITY: Dict[str, bool] = {
    ErrorCode.UNKNOWN_MODE: False,
    ErrorCode.DUPLICATE_MODE: False,
    ErrorCode.MISSING_PROOF: False,
    ErrorCode.CERTIFICATE_EXPIRED: False,
    ErrorCode.CERTIFICATE_INVALID: False,
    ErrorCode.SIGNATURE_INVALID: False,
    ErrorCode.MESSAGE_MISMATCH: False,
    ErrorCode.CODE_EXPIRED: False,
    ErrorCode.INVALID_TRANSITION: False,
    ErrorCode.SCOPE_VIOLATION: False,
    ErrorCode.ACTION_CODE_INVALID: False,
    ErrorCode.INTERNAL_ERROR: True,          # Recoverable
}

# Failures that may indicate an attack and are surfaced distinctly
SECURITY_ERROR_CODES: frozenset[str] = frozenset({
    ErrorCode.SIGNATURE_INVALID,
    ErrorCode.CERTIFICATE_INVALID,
})

# Expected, frequent outcomes that are not anomalies
ROUTINE_ERROR_CODES: frozenset[str] = frozenset({
    ErrorCode.CODE_EXPIRED,
    ErrorCode.INVALID_TRANSITION,
})


# =============================================================================
# Resolution Response
# =============================================================================

class ResolutionResponse(BaseModel):
    """Outcome of a resolution call in wire form."""
    model_config = ConfigDict(populate_by_name=True)

    action_code: ActionCodeModel = Field(alias="actionCode")
    status: ActionCodeStatus
    mode: Optional[str] = None
    signer: Optional[str] = None
    errors: Optional[List[ErrorDetail]] = None


# =============================================================================
# Certificate Wire Shapes
# =============================================================================

class DelegationCertificateModel(BaseModel):
    """Wallet-signed authorization of an authenticator key."""
    model_config = ConfigDict(populate_by_name=True)

    version: str = Field(default="1", alias="v")
    id: str
    delegator: str
    delegate: str
    chain: Optional[str] = None
    issued_at: int = Field(alias="issuedAt")
    expires_at: int = Field(alias="expiresAt")
    signature: str = ""


class IssuerScopeModel(BaseModel):
    """Constraints an issuer delegation places on codes."""
    model_config = ConfigDict(populate_by_name=True)

    chains: Optional[List[str]] = None
    allowed_params: Optional[List[str]] = Field(default=None, alias="allowedParams")
    fixed_params: Dict[str, Any] = Field(default_factory=dict, alias="fixedParams")


class IssuerDelegationModel(BaseModel):
    """Wallet-signed authorization of an issuer key for a class of intents."""
    model_config = ConfigDict(populate_by_name=True)

    version: str = Field(default="1", alias="v")
    id: str
    delegator: str
    issuer: str
    intent_class: str = Field(alias="intentClass")
    scope: IssuerScopeModel = Field(default_factory=IssuerScopeModel)
    issued_at: int = Field(alias="issuedAt")
    expires_at: int = Field(alias="expiresAt")
    signature: str = ""
