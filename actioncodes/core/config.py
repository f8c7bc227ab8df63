"""
Action Codes configuration constants.

Constants are organized into:
- NORMATIVE: Fixed by the protocol, cannot be changed without a version bump
- CONFIGURABLE: Protocol defaults that a deployment may override
- OPERATIONAL: Deployment-specific settings (env vars)
"""

import os
import string

# =============================================================================
# NORMATIVE CONSTANTS (fixed by protocol version)
# =============================================================================

# Protocol version carried by certificates and wire records
PROTOCOL_VERSION: str = "1"

# Length of the human-presentable code
CODE_LENGTH: int = 8

# Characters a code may contain
CODE_ALPHABET: str = string.ascii_uppercase + string.digits

# Lifetime of a code: expiresAt == timestamp + CODE_TTL_MS
# Changing this value changes the protocol
CODE_TTL_MS: int = 120_000


# =============================================================================
# CONFIGURABLE DEFAULTS (may be overridden per deployment)
# =============================================================================

def _parse_supported_chains() -> frozenset[str]:
    """Parse comma-separated chain identifiers from environment.

    The set is closed per deployment: codes for any other chain are rejected
    when they are created or loaded.

    Environment variable format:
        ACTIONCODES_SUPPORTED_CHAINS=solana,ethereum

    Returns:
        frozenset of lowercase chain identifiers.
    """
    env_value = os.getenv("ACTIONCODES_SUPPORTED_CHAINS", "")
    if env_value:
        return frozenset(c.strip().lower() for c in env_value.split(",") if c.strip())
    return frozenset({"solana", "ethereum", "bitcoin", "sui"})


SUPPORTED_CHAINS: frozenset[str] = _parse_supported_chains()

# Longest validity window accepted for delegation certificates and issuer
# delegations. Longer windows are rejected as CERTIFICATE_INVALID.
# Default: 30 days
MAX_CERTIFICATE_TTL_MS: int = int(
    os.getenv("ACTIONCODES_MAX_CERTIFICATE_TTL_MS", str(30 * 24 * 60 * 60 * 1000))
)


# =============================================================================
# OPERATIONAL SETTINGS (deployment-specific, via environment variables)
# =============================================================================

# Root log level (DEBUG, INFO, WARNING, ...)
LOG_LEVEL: str = os.getenv("ACTIONCODES_LOG_LEVEL", "INFO").upper()

# Optional debug log file; unset means console only
LOG_FILE: str = os.getenv("ACTIONCODES_LOG_FILE", "")
