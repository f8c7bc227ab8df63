"""Root conftest for all tests - provides shared fixtures."""

import pytest

from actioncodes.protocol.registry import default_registry
from actioncodes.protocol.signature import Ed25519Verifier

from tests.helpers import FixedClock, generate_keypair


@pytest.fixture
def wallet():
    """End-user wallet keypair."""
    return generate_keypair()


@pytest.fixture
def authenticator():
    """Delegated authenticator keypair."""
    return generate_keypair()


@pytest.fixture
def issuer_key():
    """Issuer keypair."""
    return generate_keypair()


@pytest.fixture
def verifier():
    return Ed25519Verifier()


@pytest.fixture
def clock():
    """Clock inside the default code window (timestamp=1000)."""
    return FixedClock(60_000)


@pytest.fixture
def registry(verifier):
    return default_registry(verifier)
