"""Action code models.

An ActionCode is immutable: lifecycle transitions produce new values with
dataclasses.replace so callers can diff the old and new record.
"""

import hashlib
import hmac
import time
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Callable, Dict, Mapping, Optional, Union

from pydantic import ValidationError

from actioncodes.core.config import CODE_ALPHABET, CODE_LENGTH, CODE_TTL_MS, SUPPORTED_CHAINS
from .api_models import ActionCodeModel, ActionCodeStatus, MetadataModel, TransactionModel
from .canonical import CanonicalSerializationError, code_message
from .exceptions import ActionCodeInvalidError, MessageMismatchError

# Returns the current time in milliseconds since epoch
Clock = Callable[[], int]


def system_clock() -> int:
    """Wall clock in protocol time units (ms since epoch)."""
    return int(time.time() * 1000)


def generate_code(pubkey: str, timestamp: int, secret: Optional[bytes] = None) -> str:
    """Derive a deterministic 8-character code for a pubkey and timestamp.

    SHA-256 over "{pubkey}:{timestamp}", or HMAC-SHA256 keyed with secret
    when one is given so codes cannot be precomputed by third parties. The
    digest is read as a big integer and expanded into CODE_ALPHABET.

    Args:
        pubkey: End-user identity.
        timestamp: Generation time in ms.
        secret: Optional relayer secret.

    Returns:
        Code string of CODE_LENGTH characters.
    """
    data = f"{pubkey}:{timestamp}".encode("utf-8")
    if secret:
        digest = hmac.new(secret, data, hashlib.sha256).digest()
    else:
        digest = hashlib.sha256(data).digest()

    n = int.from_bytes(digest, "big")
    base = len(CODE_ALPHABET)
    chars = []
    for _ in range(CODE_LENGTH):
        n, idx = divmod(n, base)
        chars.append(CODE_ALPHABET[idx])
    return "".join(chars)


def code_hash(code: str) -> str:
    """SHA-256 hex digest of a code, for storage lookups without the raw code."""
    return hashlib.sha256(code.encode("utf-8")).hexdigest()


def freeze(value: Any) -> Any:
    """Deep read-only copy: mappings become MappingProxyType, lists tuples, sets frozensets."""
    if isinstance(value, Mapping):
        return MappingProxyType({k: freeze(v) for k, v in value.items()})
    if isinstance(value, (list, tuple)):
        return tuple(freeze(v) for v in value)
    if isinstance(value, (set, frozenset)):
        return frozenset(value)
    return value


def thaw(value: Any) -> Any:
    """Plain dict/list copy of a frozen value, for serialization."""
    if isinstance(value, Mapping):
        return {k: thaw(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [thaw(v) for v in value]
    if isinstance(value, (set, frozenset)):
        return set(value)
    return value


@dataclass(frozen=True)
class ActionCodeTransaction:
    """Transaction attached when a code is resolved.

    Attributes:
        transaction: Serialized transaction, opaque here.
        tx_signature: Signature of the transaction once signed.
        tx_type: Free-form type tag.
    """
    transaction: str
    tx_signature: Optional[str] = None
    tx_type: Optional[str] = None


@dataclass(frozen=True)
class ActionCodeMetadata:
    """Application metadata. Never interpreted by the lifecycle.

    params is deep-copied read-only on construction, so records built from
    one another never share mutable state. It is left out of the hash.
    """
    description: Optional[str] = None
    params: Optional[Mapping[str, Any]] = field(default=None, hash=False)

    def __post_init__(self):
        if self.params is not None:
            object.__setattr__(self, "params", freeze(self.params))

    def as_dict(self) -> Dict[str, Any]:
        """Non-empty fields as a plain dict."""
        result: Dict[str, Any] = {}
        if self.description is not None:
            result["description"] = self.description
        if self.params is not None:
            result["params"] = thaw(self.params)
        return result


# Statuses that may carry a transaction
_TRANSACTION_STATUSES = frozenset({
    ActionCodeStatus.RESOLVED,
    ActionCodeStatus.FINALIZED,
    ActionCodeStatus.ERROR,
})


@dataclass(frozen=True)
class ActionCode:
    """A resolved or resolving action code.

    Attributes:
        code: 8-character token from CODE_ALPHABET.
        pubkey: Identity of the end user the code was generated for.
        timestamp: Generation time (ms since epoch).
        signature: Authenticating signature; shape depends on mode.
        chain: Network identifier from SUPPORTED_CHAINS.
        transaction: Attached transaction, absent until resolved.
        metadata: Optional application metadata.
        status: Recorded status. Reconcile it with lifecycle.effective_status
            before trusting it.
        expires_at: Always timestamp + CODE_TTL_MS; not settable.
    """
    code: str
    pubkey: str
    timestamp: int
    signature: str
    chain: str
    transaction: Optional[ActionCodeTransaction] = None
    metadata: Optional[ActionCodeMetadata] = None
    status: ActionCodeStatus = ActionCodeStatus.PENDING
    expires_at: int = field(init=False)

    def __post_init__(self):
        if not isinstance(self.code, str) or len(self.code) != CODE_LENGTH:
            raise ActionCodeInvalidError(f"code must be {CODE_LENGTH} characters")
        if any(c not in CODE_ALPHABET for c in self.code):
            raise ActionCodeInvalidError(f"code {self.code!r} contains invalid characters")
        if not isinstance(self.pubkey, str) or not self.pubkey:
            raise ActionCodeInvalidError("pubkey must be a non-empty string")
        if not isinstance(self.timestamp, int) or isinstance(self.timestamp, bool) or self.timestamp < 0:
            raise ActionCodeInvalidError("timestamp must be a non-negative integer (ms)")
        if self.chain not in SUPPORTED_CHAINS:
            raise ActionCodeInvalidError(f"Unsupported chain: {self.chain!r}")
        if not isinstance(self.signature, str):
            raise ActionCodeInvalidError("signature must be a string")

        try:
            status = ActionCodeStatus(self.status)
        except ValueError:
            raise ActionCodeInvalidError(f"Unknown status: {self.status!r}")
        object.__setattr__(self, "status", status)

        if self.transaction is not None and status not in _TRANSACTION_STATUSES:
            raise ActionCodeInvalidError(
                f"transaction may not be attached while status is {status.value}"
            )
        if status != ActionCodeStatus.PENDING and not self.signature:
            raise ActionCodeInvalidError(f"signature required for status {status.value}")

        object.__setattr__(self, "expires_at", self.timestamp + CODE_TTL_MS)

    @classmethod
    def create(
        cls,
        pubkey: str,
        chain: str,
        signature: str = "",
        timestamp: Optional[int] = None,
        metadata: Optional[ActionCodeMetadata] = None,
        code: Optional[str] = None,
        clock: Optional[Clock] = None,
        secret: Optional[bytes] = None,
    ) -> "ActionCode":
        """Build a fresh pending code.

        The timestamp defaults to the clock reading and the code to
        generate_code(pubkey, timestamp, secret).
        """
        if timestamp is None:
            timestamp = (clock or system_clock)()
        if code is None:
            code = generate_code(pubkey, timestamp, secret)
        return cls(
            code=code,
            pubkey=pubkey,
            timestamp=timestamp,
            signature=signature,
            chain=chain,
            metadata=metadata,
        )

    @property
    def code_hash(self) -> str:
        return code_hash(self.code)

    def is_expired(self, now: int) -> bool:
        """True once now is strictly past expires_at."""
        return now > self.expires_at

    def remaining_ms(self, now: int) -> int:
        return max(0, self.expires_at - now)

    def signing_message(self) -> bytes:
        """Canonical bytes covered by the code signature.

        Raises:
            MessageMismatchError: If the message cannot be rebuilt.
        """
        metadata = self.metadata.as_dict() if self.metadata else None
        try:
            return code_message(self.code, self.pubkey, self.timestamp, self.chain, metadata)
        except CanonicalSerializationError as e:
            raise MessageMismatchError(f"Cannot build signing message for {self.code}: {e}")

    # -------------------------------------------------------------------------
    # Wire conversion
    # -------------------------------------------------------------------------

    def to_model(self, status: Optional[ActionCodeStatus] = None) -> ActionCodeModel:
        """Convert to the wire model, optionally overriding the status."""
        transaction = None
        if self.transaction is not None:
            transaction = TransactionModel(
                transaction=self.transaction.transaction,
                tx_signature=self.transaction.tx_signature,
                tx_type=self.transaction.tx_type,
            )
        metadata = None
        if self.metadata is not None:
            metadata = MetadataModel(
                description=self.metadata.description,
                params=thaw(self.metadata.params) if self.metadata.params is not None else None,
            )
        return ActionCodeModel(
            code=self.code,
            pubkey=self.pubkey,
            timestamp=self.timestamp,
            signature=self.signature,
            chain=self.chain,
            transaction=transaction,
            metadata=metadata,
            expires_at=self.expires_at,
            status=status or self.status,
        )

    def to_dict(self, status: Optional[ActionCodeStatus] = None) -> Dict[str, Any]:
        """Wire dict with camelCase names; absent optionals are omitted."""
        return self.to_model(status).model_dump(by_alias=True, exclude_none=True, mode="json")

    @classmethod
    def from_model(cls, model: ActionCodeModel) -> "ActionCode":
        """Build from the wire model.

        Raises:
            ActionCodeInvalidError: If expiresAt disagrees with timestamp or an
                invariant is violated.
        """
        expected = model.timestamp + CODE_TTL_MS
        if model.expires_at != expected:
            raise ActionCodeInvalidError(
                f"expiresAt must equal timestamp + {CODE_TTL_MS}: "
                f"got {model.expires_at}, expected {expected}"
            )

        transaction = None
        if model.transaction is not None:
            transaction = ActionCodeTransaction(
                transaction=model.transaction.transaction,
                tx_signature=model.transaction.tx_signature,
                tx_type=model.transaction.tx_type,
            )
        metadata = None
        if model.metadata is not None:
            metadata = ActionCodeMetadata(
                description=model.metadata.description,
                params=model.metadata.params,
            )
        return cls(
            code=model.code,
            pubkey=model.pubkey,
            timestamp=model.timestamp,
            signature=model.signature,
            chain=model.chain,
            transaction=transaction,
            metadata=metadata,
            status=model.status,
        )

    @classmethod
    def from_dict(cls, data: Union[Mapping[str, Any], str]) -> "ActionCode":
        """Parse a wire dict (or JSON string).

        Raises:
            ActionCodeInvalidError: On schema or invariant violations.
        """
        try:
            if isinstance(data, str):
                model = ActionCodeModel.model_validate_json(data)
            else:
                model = ActionCodeModel.model_validate(dict(data))
        except ValidationError as e:
            raise ActionCodeInvalidError(f"Malformed action code: {e.error_count()} error(s): {e}")
        return cls.from_model(model)
