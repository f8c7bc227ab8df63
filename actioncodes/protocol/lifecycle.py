"""Action code lifecycle state machine.

States: pending (initial), resolved, finalized, expired, error.

    pending  --attach-transaction-->  resolved
    pending  --validation-failure-->  error
    resolved --confirm-signature--->  finalized
    resolved --validation-failure-->  error

Expiry is never stored. effective_status() derives it from the clock, and
transition() checks it before anything else: a code past expiresAt refuses
every event with CodeExpiredError, finalized codes included (they still read
as finalized). Functions here are pure; they return new ActionCode values.
"""

import dataclasses
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Tuple

from .api_models import ActionCodeStatus
from .exceptions import CodeExpiredError, InvalidTransitionError
from .models import ActionCode, ActionCodeTransaction


class EventType(str, Enum):
    """Lifecycle events."""
    ATTACH_TRANSACTION = "attach-transaction"
    CONFIRM_SIGNATURE = "confirm-signature"
    VALIDATION_FAILURE = "validation-failure"
    TIME_CHECK = "time-check"


@dataclass(frozen=True)
class SignatureConfirmation:
    """Caller-supplied evidence that a transaction signature landed.

    Attributes:
        tx_signature: Transaction signature being confirmed.
        confirmed: Whether the caller observed confirmation.
    """
    tx_signature: str
    confirmed: bool = True


@dataclass(frozen=True)
class LifecycleEvent:
    """A requested transition and its payload."""
    type: EventType
    transaction: Optional[ActionCodeTransaction] = None
    confirmation: Optional[SignatureConfirmation] = None
    reason: Optional[str] = None

    @classmethod
    def attach(cls, transaction: ActionCodeTransaction) -> "LifecycleEvent":
        return cls(EventType.ATTACH_TRANSACTION, transaction=transaction)

    @classmethod
    def confirm(cls, tx_signature: str, confirmed: bool = True) -> "LifecycleEvent":
        return cls(
            EventType.CONFIRM_SIGNATURE,
            confirmation=SignatureConfirmation(tx_signature, confirmed),
        )

    @classmethod
    def failure(cls, reason: Optional[str] = None) -> "LifecycleEvent":
        return cls(EventType.VALIDATION_FAILURE, reason=reason)

    @classmethod
    def time_check(cls) -> "LifecycleEvent":
        return cls(EventType.TIME_CHECK)


# Legal transitions (from, event) -> to; anything else is invalid.
# time-check is a read and never appears here.
TRANSITIONS: Dict[Tuple[ActionCodeStatus, EventType], ActionCodeStatus] = {
    (ActionCodeStatus.PENDING, EventType.ATTACH_TRANSACTION): ActionCodeStatus.RESOLVED,
    (ActionCodeStatus.PENDING, EventType.VALIDATION_FAILURE): ActionCodeStatus.ERROR,
    (ActionCodeStatus.RESOLVED, EventType.CONFIRM_SIGNATURE): ActionCodeStatus.FINALIZED,
    (ActionCodeStatus.RESOLVED, EventType.VALIDATION_FAILURE): ActionCodeStatus.ERROR,
}


def effective_status(action_code: ActionCode, now: int) -> ActionCodeStatus:
    """Recorded status reconciled against the clock.

    Past expiresAt every code reads as expired except finalized ones. Inside
    the window a stored expired is not authoritative and reads as pending,
    the only status that carries no transaction.
    """
    if action_code.status == ActionCodeStatus.FINALIZED:
        return ActionCodeStatus.FINALIZED
    if action_code.is_expired(now):
        return ActionCodeStatus.EXPIRED
    if action_code.status == ActionCodeStatus.EXPIRED:
        return ActionCodeStatus.PENDING
    return action_code.status


def can_transition(action_code: ActionCode, event_type: EventType, now: int) -> bool:
    """Whether the status graph allows event_type right now (guards not evaluated)."""
    if action_code.is_expired(now):
        return False
    return (effective_status(action_code, now), event_type) in TRANSITIONS


def transition(action_code: ActionCode, event: LifecycleEvent, now: int) -> ActionCode:
    """Apply an event.

    Args:
        action_code: Current record; not modified.
        event: Requested event.
        now: Clock reading (ms).

    Returns:
        New ActionCode, or the same value for a time-check or an idempotent
        re-attach of the identical transaction.

    Raises:
        CodeExpiredError: Code is past expiresAt, whatever the event.
        InvalidTransitionError: Event not allowed from the current status, or
            its guard fails.
    """
    if action_code.is_expired(now):
        raise CodeExpiredError(
            f"Action code {action_code.code} expired at {action_code.expires_at} (now={now})"
        )

    if event.type == EventType.TIME_CHECK:
        return action_code

    status = effective_status(action_code, now)

    # Re-attaching the same payload to a resolved code is a no-op
    if (
        event.type == EventType.ATTACH_TRANSACTION
        and status == ActionCodeStatus.RESOLVED
        and event.transaction is not None
        and event.transaction == action_code.transaction
    ):
        return action_code

    target = TRANSITIONS.get((status, event.type))
    if target is None:
        raise InvalidTransitionError(
            f"Cannot apply {event.type.value} to {action_code.code} in status {status.value}"
        )

    if event.type == EventType.ATTACH_TRANSACTION:
        if event.transaction is None or not event.transaction.transaction:
            raise InvalidTransitionError("attach-transaction requires a transaction")
        return dataclasses.replace(action_code, status=target, transaction=event.transaction)

    if event.type == EventType.CONFIRM_SIGNATURE:
        return dataclasses.replace(
            action_code,
            status=target,
            transaction=_confirmed_transaction(action_code, event.confirmation),
        )

    # validation-failure: keep whatever transaction was attached
    return dataclasses.replace(action_code, status=target)


def _confirmed_transaction(
    action_code: ActionCode,
    confirmation: Optional[SignatureConfirmation],
) -> ActionCodeTransaction:
    """Check confirmation evidence and return the transaction with its signature."""
    current = action_code.transaction
    if current is None:
        raise InvalidTransitionError(f"{action_code.code} has no transaction to confirm")
    if confirmation is None:
        raise InvalidTransitionError("confirm-signature requires confirmation evidence")
    if not confirmation.confirmed:
        raise InvalidTransitionError(
            f"transaction signature for {action_code.code} not confirmed"
        )

    tx_signature = current.tx_signature or confirmation.tx_signature
    if not tx_signature:
        raise InvalidTransitionError("confirm-signature requires a transaction signature")
    if confirmation.tx_signature and confirmation.tx_signature != tx_signature:
        raise InvalidTransitionError(
            "confirmation evidence does not match the attached transaction signature"
        )

    return dataclasses.replace(current, tx_signature=tx_signature)
