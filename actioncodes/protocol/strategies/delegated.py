"""Delegated mode: an authenticator key signs codes on the wallet's behalf.

Verification is two-stage:
1. The delegation certificate is checked (wallet signature, validity window,
   chain restriction, revocation)
2. The code signature is checked against the certificate's delegate key over
   the same canonical message wallet mode uses

Certificate failures are raised before the code signature is looked at.
"""

import logging
from typing import Optional

from ..certificates import DelegationCertificate, RevocationChecker, check_certificate
from ..signature import SignatureVerifier, verify_signature
from .base import (
    Mode,
    ProofType,
    Strategy,
    StrategyCapabilities,
    ValidatedProof,
    ValidationContext,
)

log = logging.getLogger(__name__)


class DelegatedStrategy(Strategy):
    """Verifies codes signed by a delegated authenticator key."""

    def __init__(
        self,
        verifier: SignatureVerifier,
        revocation_checker: Optional[RevocationChecker] = None,
    ):
        super().__init__(verifier)
        self.revocation_checker = revocation_checker

    @property
    def mode_id(self) -> str:
        return Mode.DELEGATED.value

    def get_capabilities(self) -> StrategyCapabilities:
        return StrategyCapabilities(
            mode_id=self.mode_id,
            required_proofs=frozenset({ProofType.DELEGATION_CERTIFICATE}),
        )

    async def validate(self, context: ValidationContext) -> ValidatedProof:
        action_code = context.action_code
        certificate: DelegationCertificate = context.proof(ProofType.DELEGATION_CERTIFICATE)

        # Stage 1: certificate
        await check_certificate(
            certificate,
            action_code,
            context.now,
            self.verifier,
            self.revocation_checker,
        )
        log.debug(
            f"delegation {certificate.id[:16]} valid: "
            f"{certificate.delegator[:16]}... -> {certificate.delegate[:16]}..."
        )

        # Stage 2: code signature under the delegate key
        await verify_signature(
            self.verifier,
            certificate.delegate,
            action_code.signing_message(),
            action_code.signature,
            subject=f"action code {action_code.code}",
        )

        return ValidatedProof(
            mode=self.mode_id,
            signer=certificate.delegate,
            delegator=certificate.delegator,
            certificate_id=certificate.id,
        )
