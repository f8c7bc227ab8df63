"""Action code exceptions mapped to error codes.

Cryptographic failures (SignatureInvalidError, CertificateInvalidError) may
indicate an attack. Expiry and invalid transitions are routine outcomes.
"""

from typing import Optional

from .api_models import ErrorCode


class ActionCodeError(Exception):
    """Base exception for action code operations.

    Carries an error code that maps to ErrorCode constants.
    """

    def __init__(self, code: str, message: str, recoverable: Optional[bool] = None):
        self.code = code
        self.message = message
        self.recoverable = recoverable
        super().__init__(message)


class UnknownModeError(ActionCodeError):
    """No strategy is registered for the requested mode."""

    def __init__(self, mode: str):
        self.mode = mode
        super().__init__(ErrorCode.UNKNOWN_MODE, f"Unknown mode: {mode!r}")


class DuplicateModeError(ActionCodeError):
    """A strategy is already registered for the mode."""

    def __init__(self, mode: str):
        self.mode = mode
        super().__init__(ErrorCode.DUPLICATE_MODE, f"Mode already registered: {mode!r}")


class MissingProofError(ActionCodeError):
    """Request lacks an auxiliary proof the strategy requires."""

    def __init__(self, message: str = "Required proof missing"):
        super().__init__(ErrorCode.MISSING_PROOF, message)


class CertificateExpiredError(ActionCodeError):
    """Delegation certificate or issuer delegation is outside its validity window."""

    def __init__(self, message: str = "Certificate expired"):
        super().__init__(ErrorCode.CERTIFICATE_EXPIRED, message)


class CertificateInvalidError(ActionCodeError):
    """Certificate is malformed, wrongly signed, mismatched or revoked.

    Revocation lookup failures use recoverable=True since the certificate
    itself may be fine.
    """

    def __init__(self, message: str = "Certificate invalid", recoverable: Optional[bool] = None):
        super().__init__(ErrorCode.CERTIFICATE_INVALID, message, recoverable)


class SignatureInvalidError(ActionCodeError):
    """Signature is missing or cryptographically invalid."""

    def __init__(self, message: str = "Signature verification failed"):
        super().__init__(ErrorCode.SIGNATURE_INVALID, message)


class MessageMismatchError(ActionCodeError):
    """Canonical message cannot be rebuilt from the supplied fields."""

    def __init__(self, message: str = "Canonical message could not be reconstructed"):
        super().__init__(ErrorCode.MESSAGE_MISMATCH, message)


class CodeExpiredError(ActionCodeError):
    """Action code is past expiresAt. Refuses every transition."""

    def __init__(self, message: str = "Action code expired"):
        super().__init__(ErrorCode.CODE_EXPIRED, message)


class InvalidTransitionError(ActionCodeError):
    """Requested event is not allowed from the current status."""

    def __init__(self, message: str = "Invalid transition"):
        super().__init__(ErrorCode.INVALID_TRANSITION, message)


class ScopeViolationError(ActionCodeError):
    """Action code falls outside the issuer's delegated scope."""

    def __init__(self, message: str = "Issuer scope violated"):
        super().__init__(ErrorCode.SCOPE_VIOLATION, message)


class ActionCodeInvalidError(ActionCodeError):
    """Action code record is malformed or breaks a record invariant."""

    def __init__(self, message: str = "Action code invalid"):
        super().__init__(ErrorCode.ACTION_CODE_INVALID, message)
