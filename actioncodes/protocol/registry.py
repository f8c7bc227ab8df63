"""Strategy registry.

Maps mode identifiers to Strategy instances. The table is read on every
resolution and written rarely (normally once at startup), so writes are
copy-on-write: a writer builds a new immutable mapping under a lock and
swaps the reference. Readers never lock and always see a complete table.
"""

import logging
import threading
from types import MappingProxyType
from typing import Mapping, Optional, Tuple

from .certificates import RevocationChecker
from .exceptions import DuplicateModeError, UnknownModeError
from .signature import Ed25519Verifier, SignatureVerifier
from .strategies import DelegatedStrategy, IssuerStrategy, Strategy, WalletStrategy

log = logging.getLogger(__name__)


class StrategyRegistry:
    """Read-mostly table of strategies keyed by mode id."""

    def __init__(self, strategies: Optional[Mapping[str, Strategy]] = None):
        """Initialize registry.

        Args:
            strategies: Optional initial table.
        """
        self._strategies: Mapping[str, Strategy] = MappingProxyType(dict(strategies or {}))
        # Serializes writers only
        self._write_lock = threading.Lock()

    def register(self, mode_id: str, strategy: Strategy) -> None:
        """Add a strategy.

        Raises:
            DuplicateModeError: If mode_id is already registered.
        """
        with self._write_lock:
            current = self._strategies
            if mode_id in current:
                raise DuplicateModeError(mode_id)
            updated = dict(current)
            updated[mode_id] = strategy
            self._strategies = MappingProxyType(updated)
        log.info(f"registered strategy {strategy!r} for mode {mode_id!r}")

    def resolve(self, mode_id: str) -> Strategy:
        """Look up the strategy for a mode.

        Raises:
            UnknownModeError: If no strategy is registered.
        """
        strategy = self._strategies.get(mode_id)
        if strategy is None:
            raise UnknownModeError(mode_id)
        return strategy

    def modes(self) -> Tuple[str, ...]:
        return tuple(self._strategies)

    def __contains__(self, mode_id: object) -> bool:
        return mode_id in self._strategies

    def __len__(self) -> int:
        return len(self._strategies)


def default_registry(
    verifier: Optional[SignatureVerifier] = None,
    revocation_checker: Optional[RevocationChecker] = None,
) -> StrategyRegistry:
    """Registry holding the wallet, delegated and issuer strategies.

    Args:
        verifier: Signature capability (defaults to Ed25519Verifier).
        revocation_checker: Optional certificate revocation lookup.
    """
    verifier = verifier or Ed25519Verifier()
    registry = StrategyRegistry()
    for strategy in (
        WalletStrategy(verifier),
        DelegatedStrategy(verifier, revocation_checker),
        IssuerStrategy(verifier, revocation_checker),
    ):
        registry.register(strategy.mode_id, strategy)
    return registry
