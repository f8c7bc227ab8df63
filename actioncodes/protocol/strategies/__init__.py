"""Trust-mode strategies for action code authentication."""

from .base import (
    Mode,
    ProofType,
    PROOF_CLASSES,
    Strategy,
    StrategyCapabilities,
    ValidatedProof,
    ValidationContext,
    check_capabilities,
)
from .wallet import WalletStrategy
from .delegated import DelegatedStrategy
from .issuer import IssuerStrategy, check_scope

__all__ = [
    "Mode",
    "ProofType",
    "PROOF_CLASSES",
    "Strategy",
    "StrategyCapabilities",
    "ValidatedProof",
    "ValidationContext",
    "check_capabilities",
    "WalletStrategy",
    "DelegatedStrategy",
    "IssuerStrategy",
    "check_scope",
]
