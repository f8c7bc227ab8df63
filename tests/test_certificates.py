"""Tests for delegation certificates, issuer delegations and check_certificate."""

import dataclasses

import pytest

from actioncodes.protocol.api_models import ErrorCode
from actioncodes.protocol.certificates import (
    DelegationCertificate,
    IssuerDelegation,
    IssuerScope,
    RevocationChecker,
    check_certificate,
)
from actioncodes.protocol.exceptions import CertificateExpiredError, CertificateInvalidError
from actioncodes.core.config import MAX_CERTIFICATE_TTL_MS

from tests.helpers import (
    StaticRevocationChecker,
    make_action_code,
    make_delegation,
    make_issuer_delegation,
)

NOW = 60_000


# =============================================================================
# Signing messages and parsing
# =============================================================================


class TestDelegationCertificate:
    """Canonical form and wire parsing."""

    def test_signing_message_excludes_signature(self, wallet, authenticator):
        cert = make_delegation(wallet, authenticator)
        unsigned = dataclasses.replace(cert, signature="")
        assert cert.signing_message() == unsigned.signing_message()

    def test_signing_message_shape(self):
        cert = DelegationCertificate(
            id="c1", delegator="W", delegate="A", issued_at=1, expires_at=2,
        )
        assert cert.signing_message() == (
            b'{"v":"1","t":"delegation","id":"c1","delegator":"W","delegate":"A",'
            b'"issuedAt":1,"expiresAt":2}'
        )

    def test_from_dict(self):
        cert = DelegationCertificate.from_dict({
            "id": "c1",
            "delegator": "W",
            "delegate": "A",
            "chain": "solana",
            "issuedAt": 1,
            "expiresAt": 2,
            "signature": "sig",
        })
        assert cert == DelegationCertificate(
            id="c1", delegator="W", delegate="A", issued_at=1, expires_at=2,
            signature="sig", chain="solana",
        )

    def test_from_dict_malformed(self):
        with pytest.raises(CertificateInvalidError, match="Malformed"):
            DelegationCertificate.from_dict({"id": "c1"})


class TestIssuerDelegation:
    """Issuer delegation parsing and scope serialization."""

    def test_from_json(self):
        delegation = IssuerDelegation.from_dict(
            '{"id":"i1","delegator":"W","issuer":"I","intentClass":"payment",'
            '"scope":{"chains":["solana"],"allowedParams":["amount"],"fixedParams":{"token":"USDC"}},'
            '"issuedAt":1,"expiresAt":2}'
        )
        assert delegation.scope == IssuerScope(
            chains=frozenset({"solana"}),
            allowed_params=frozenset({"amount"}),
            fixed_params={"token": "USDC"},
        )
        assert delegation.signer == "I"

    def test_scope_covered_by_signature(self, wallet, issuer_key):
        delegation = make_issuer_delegation(wallet, issuer_key, IssuerScope(chains=frozenset({"solana"})))
        widened = dataclasses.replace(delegation, scope=IssuerScope())
        assert widened.signing_message() != delegation.signing_message()

    def test_fixed_params_read_only(self):
        fixed = {"token": "USDC"}
        scope = IssuerScope(fixed_params=fixed)
        fixed["token"] = "other"
        assert scope.fixed_params["token"] == "USDC"
        with pytest.raises(TypeError):
            scope.fixed_params["token"] = "other"
        assert hash(scope) == hash(IssuerScope(fixed_params={"token": "USDC"}))
        assert scope.as_dict()["fixedParams"] == {"token": "USDC"}


# =============================================================================
# check_certificate
# =============================================================================


class TestCheckCertificate:
    """Stage-one checks shared by delegated and issuer modes."""

    @pytest.mark.asyncio
    async def test_valid(self, wallet, authenticator, verifier):
        code = make_action_code(authenticator, pubkey=wallet.pubkey)
        await check_certificate(make_delegation(wallet, authenticator), code, NOW, verifier)

    @pytest.mark.asyncio
    async def test_delegator_mismatch(self, wallet, authenticator, verifier):
        code = make_action_code(authenticator, pubkey=authenticator.pubkey)
        with pytest.raises(CertificateInvalidError, match="delegator does not match"):
            await check_certificate(make_delegation(wallet, authenticator), code, NOW, verifier)

    @pytest.mark.asyncio
    async def test_signed_by_wrong_key(self, wallet, authenticator, verifier):
        code = make_action_code(authenticator, pubkey=wallet.pubkey)
        cert = make_delegation(wallet, authenticator, signed_by=authenticator)
        with pytest.raises(CertificateInvalidError, match="wallet signature"):
            await check_certificate(cert, code, NOW, verifier)

    @pytest.mark.asyncio
    async def test_unsigned(self, wallet, authenticator, verifier):
        code = make_action_code(authenticator, pubkey=wallet.pubkey)
        cert = dataclasses.replace(make_delegation(wallet, authenticator), signature="")
        with pytest.raises(CertificateInvalidError, match="unsigned"):
            await check_certificate(cert, code, NOW, verifier)

    @pytest.mark.asyncio
    async def test_tampered_delegate(self, wallet, authenticator, issuer_key, verifier):
        code = make_action_code(issuer_key, pubkey=wallet.pubkey)
        cert = dataclasses.replace(make_delegation(wallet, authenticator), delegate=issuer_key.pubkey)
        with pytest.raises(CertificateInvalidError):
            await check_certificate(cert, code, NOW, verifier)

    @pytest.mark.asyncio
    async def test_expired(self, wallet, authenticator, verifier):
        code = make_action_code(authenticator, pubkey=wallet.pubkey)
        cert = make_delegation(wallet, authenticator, expires_at=50_000)
        with pytest.raises(CertificateExpiredError):
            await check_certificate(cert, code, NOW, verifier)

    @pytest.mark.asyncio
    async def test_not_yet_valid(self, wallet, authenticator, verifier):
        code = make_action_code(authenticator, pubkey=wallet.pubkey, timestamp=70_000)
        cert = make_delegation(wallet, authenticator, issued_at=65_000)
        with pytest.raises(CertificateInvalidError, match="not valid until"):
            await check_certificate(cert, code, NOW, verifier)

    @pytest.mark.asyncio
    async def test_code_generated_before_certificate(self, wallet, authenticator, verifier):
        code = make_action_code(authenticator, pubkey=wallet.pubkey, timestamp=1000)
        cert = make_delegation(wallet, authenticator, issued_at=2000)
        with pytest.raises(CertificateExpiredError, match="was not valid when code"):
            await check_certificate(cert, code, NOW, verifier)

    @pytest.mark.asyncio
    async def test_inverted_window(self, wallet, authenticator, verifier):
        code = make_action_code(authenticator, pubkey=wallet.pubkey)
        cert = make_delegation(wallet, authenticator, issued_at=100, expires_at=100)
        with pytest.raises(CertificateInvalidError, match="expires before"):
            await check_certificate(cert, code, NOW, verifier)

    @pytest.mark.asyncio
    async def test_window_too_long(self, wallet, authenticator, verifier):
        code = make_action_code(authenticator, pubkey=wallet.pubkey)
        cert = make_delegation(wallet, authenticator, expires_at=MAX_CERTIFICATE_TTL_MS + 1)
        with pytest.raises(CertificateInvalidError, match="validity window exceeds"):
            await check_certificate(cert, code, NOW, verifier)

    @pytest.mark.asyncio
    async def test_chain_restriction(self, wallet, authenticator, verifier):
        code = make_action_code(authenticator, pubkey=wallet.pubkey, chain="ethereum")
        cert = make_delegation(wallet, authenticator, chain="solana")
        with pytest.raises(CertificateInvalidError, match="restricted to chain"):
            await check_certificate(cert, code, NOW, verifier)

    @pytest.mark.asyncio
    async def test_revoked(self, wallet, authenticator, verifier):
        code = make_action_code(authenticator, pubkey=wallet.pubkey)
        cert = make_delegation(wallet, authenticator, cert_id="revoked-1")
        checker = StaticRevocationChecker({"revoked-1"})
        assert isinstance(checker, RevocationChecker)
        with pytest.raises(CertificateInvalidError, match="revoked") as exc_info:
            await check_certificate(cert, code, NOW, verifier, checker)
        assert exc_info.value.recoverable is None
        assert checker.checked == ["revoked-1"]

    @pytest.mark.asyncio
    async def test_revocation_lookup_failure_is_recoverable(self, wallet, authenticator, verifier):
        code = make_action_code(authenticator, pubkey=wallet.pubkey)
        checker = StaticRevocationChecker(error=ConnectionError("registry down"))
        with pytest.raises(CertificateInvalidError) as exc_info:
            await check_certificate(make_delegation(wallet, authenticator), code, NOW, verifier, checker)
        assert exc_info.value.code == ErrorCode.CERTIFICATE_INVALID
        assert exc_info.value.recoverable is True

    @pytest.mark.asyncio
    async def test_revocation_not_checked_for_bad_signature(self, wallet, authenticator, verifier):
        code = make_action_code(authenticator, pubkey=wallet.pubkey)
        cert = make_delegation(wallet, authenticator, signed_by=authenticator)
        checker = StaticRevocationChecker()
        with pytest.raises(CertificateInvalidError):
            await check_certificate(cert, code, NOW, verifier, checker)
        assert checker.checked == []
