"""Action code resolution.

ResolutionEngine.resolve is the single entry point:

1. Read the clock once; a code past expiresAt short-circuits with CODE_EXPIRED
2. Look up the strategy for the mode (UNKNOWN_MODE)
3. Check the supplied proofs against the strategy capabilities (MISSING_PROOF)
4. Authenticate the code with the strategy
5. Apply the requested lifecycle event; authentication failures apply
   validation-failure instead, moving the code to error with the cause attached
6. Return a ResolutionResult holding the new value; the input is never mutated

No I/O happens here beyond the injected verifier and revocation checker.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping, Optional, Union

from .api_models import (
    ERROR_RECOVERABILITY,
    ROUTINE_ERROR_CODES,
    SECURITY_ERROR_CODES,
    ActionCodeStatus,
    ErrorCode,
    ErrorDetail,
    ResolutionResponse,
)
from .exceptions import ActionCodeError, CodeExpiredError
from .lifecycle import LifecycleEvent, effective_status, transition
from .models import ActionCode, Clock, system_clock
from .registry import StrategyRegistry
from .strategies import ProofType, Strategy, ValidatedProof, ValidationContext, check_capabilities

log = logging.getLogger(__name__)


# =============================================================================
# Error Conversion
# =============================================================================


def to_error_detail(exc: Exception) -> ErrorDetail:
    """Convert domain exception to ErrorDetail.

    Extracts error code and message from exception attributes, and looks up
    recoverability from ERROR_RECOVERABILITY unless the exception overrides it.
    """
    code = getattr(exc, "code", ErrorCode.INTERNAL_ERROR)
    message = getattr(exc, "message", str(exc))
    recoverable = getattr(exc, "recoverable", None)
    if recoverable is None:
        recoverable = ERROR_RECOVERABILITY.get(code, True)
    return ErrorDetail(code=code, message=message, recoverable=recoverable)


# =============================================================================
# Result
# =============================================================================


@dataclass(frozen=True)
class ResolutionResult:
    """Outcome of a resolve call.

    Attributes:
        action_code: Updated record (or the input when nothing changed).
        previous: The record as passed in.
        status: Effective status of action_code at the call's clock reading.
        mode: Requested mode id.
        proof: Authentication result, when the strategy succeeded.
        error: Failure cause, when the call failed.
        exception: Original exception behind error.
    """
    action_code: ActionCode
    previous: ActionCode
    status: ActionCodeStatus
    mode: str
    proof: Optional[ValidatedProof] = None
    error: Optional[ErrorDetail] = None
    exception: Optional[ActionCodeError] = field(default=None, repr=False, compare=False)

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def changed(self) -> bool:
        return self.action_code != self.previous

    def unwrap(self) -> ActionCode:
        """Return the updated code or raise the failure."""
        if self.exception is not None:
            raise self.exception
        if self.error is not None:
            raise ActionCodeError(self.error.code, self.error.message, self.error.recoverable)
        return self.action_code

    def to_response(self) -> ResolutionResponse:
        """Wire form, carrying the effective status in the code record."""
        return ResolutionResponse(
            action_code=self.action_code.to_model(status=self.status),
            status=self.status,
            mode=self.mode,
            signer=self.proof.signer if self.proof else None,
            errors=[self.error] if self.error else None,
        )


# =============================================================================
# Engine
# =============================================================================


def _mode_id(mode: Union[str, Enum]) -> str:
    return mode.value if isinstance(mode, Enum) else mode


def _normalize_proofs(proofs: Optional[Mapping[Any, Any]]) -> dict:
    """Key proofs by ProofType; unknown keys are dropped."""
    normalized = {}
    for key, value in (proofs or {}).items():
        try:
            proof_type = ProofType(_mode_id(key))
        except ValueError:
            log.debug(f"ignoring unknown proof type {key!r}")
            continue
        normalized[proof_type] = value
    return normalized


def _log_failure(exc: ActionCodeError, action_code: ActionCode, mode: str) -> None:
    extra = {"action_code": action_code.code, "mode": mode, "error_code": exc.code}
    msg = f"resolve {action_code.code} ({mode}) failed: {exc.code}: {exc.message}"
    if exc.code in ROUTINE_ERROR_CODES:
        log.debug(msg, extra=extra)
    elif exc.code in SECURITY_ERROR_CODES:
        log.warning(msg, extra=extra)
    else:
        log.info(msg, extra=extra)


class ResolutionEngine:
    """Authenticates action codes and applies lifecycle events.

    Stateless across calls apart from the read-mostly registry, so one engine
    can serve any number of concurrent resolutions.
    """

    def __init__(self, registry: StrategyRegistry, clock: Optional[Clock] = None):
        """Initialize engine.

        Args:
            registry: Strategies available to resolve().
            clock: Returns now in ms (defaults to the system clock).
        """
        self.registry = registry
        self.clock = clock or system_clock

    def register_strategy(self, mode_id: str, strategy: Strategy) -> None:
        """Add a strategy to the engine's registry.

        Raises:
            DuplicateModeError: If mode_id is already registered.
        """
        self.registry.register(mode_id, strategy)

    def effective_status(self, action_code: ActionCode) -> ActionCodeStatus:
        return effective_status(action_code, self.clock())

    async def resolve(
        self,
        action_code: ActionCode,
        mode: Union[str, Enum],
        proofs: Optional[Mapping[Any, Any]] = None,
        event: Optional[LifecycleEvent] = None,
    ) -> ResolutionResult:
        """Authenticate an action code and apply a lifecycle event.

        Args:
            action_code: Current record. Not modified.
            mode: Mode id ("wallet", "delegated", "issuer" or a registered one).
            proofs: Auxiliary proofs keyed by ProofType (or its string value).
            event: Requested event. None authenticates without a transition.

        Returns:
            ResolutionResult. Failures are reported in result.error, never raised.
        """
        now = self.clock()
        mode_id = _mode_id(mode)

        # Step 1: expiry first, whatever the event
        if action_code.is_expired(now):
            return self._fail(
                action_code, mode_id, now,
                CodeExpiredError(
                    f"Action code {action_code.code} expired at "
                    f"{action_code.expires_at} (now={now})"
                ),
                mark_error=False,
            )

        # Steps 2-4: strategy lookup, capability check, authentication
        try:
            strategy = self.registry.resolve(mode_id)
            normalized = _normalize_proofs(proofs)
            check_capabilities(strategy.get_capabilities(), normalized)
            context = ValidationContext(
                action_code=action_code,
                mode=mode_id,
                now=now,
                proofs=normalized,
            )
            proof = await strategy.validate(context)
        except ActionCodeError as e:
            return self._fail(action_code, mode_id, now, e)
        except Exception as e:
            log.exception(f"strategy {mode_id!r} raised unexpectedly for {action_code.code}")
            internal = ActionCodeError(ErrorCode.INTERNAL_ERROR, f"Internal error: {e}")
            return self._fail(action_code, mode_id, now, internal)

        # Step 5: requested transition
        updated = action_code
        if event is not None:
            try:
                updated = transition(action_code, event, now)
            except ActionCodeError as e:
                return self._fail(action_code, mode_id, now, e, mark_error=False, proof=proof)

        if updated is not action_code:
            log.info(
                f"{action_code.code}: {action_code.status.value} -> {updated.status.value} "
                f"({mode_id}, signer {proof.signer[:16]}...)",
                extra={"action_code": action_code.code, "mode": mode_id},
            )

        return ResolutionResult(
            action_code=updated,
            previous=action_code,
            status=effective_status(updated, now),
            mode=mode_id,
            proof=proof,
        )

    def _fail(
        self,
        action_code: ActionCode,
        mode_id: str,
        now: int,
        exc: ActionCodeError,
        mark_error: bool = True,
        proof: Optional[ValidatedProof] = None,
    ) -> ResolutionResult:
        """Build a failed result, moving non-terminal codes to error when mark_error."""
        _log_failure(exc, action_code, mode_id)

        updated = action_code
        if mark_error and not effective_status(action_code, now).is_terminal:
            updated = transition(action_code, LifecycleEvent.failure(exc.message), now)

        return ResolutionResult(
            action_code=updated,
            previous=action_code,
            status=effective_status(updated, now),
            mode=mode_id,
            proof=proof,
            error=to_error_detail(exc),
            exception=exc,
        )
