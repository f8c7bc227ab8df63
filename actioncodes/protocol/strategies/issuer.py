"""Issuer mode: an issuer key signs codes for a class of intents.

Same two stages as delegated mode, against an IssuerDelegation, followed by
the issuer scope check: the code's chain and metadata params must fall inside
what the wallet delegated.
"""

import logging
from typing import Any, Mapping, Optional

from ..certificates import IssuerDelegation, IssuerScope, RevocationChecker, check_certificate
from ..exceptions import ScopeViolationError
from ..models import ActionCode
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

# Sentinel for params missing from the code's metadata
_MISSING = object()


def check_scope(scope: IssuerScope, action_code: ActionCode) -> None:
    """Check a code against an issuer scope.

    Args:
        scope: Constraints from the issuer delegation.
        action_code: Code being authenticated.

    Raises:
        ScopeViolationError: Chain not allowed, a param outside allowed_params,
            or a fixed param missing or different.
    """
    if scope.chains is not None and action_code.chain not in scope.chains:
        raise ScopeViolationError(
            f"chain {action_code.chain} outside issuer scope {sorted(scope.chains)}"
        )

    params: Mapping[str, Any] = {}
    if action_code.metadata is not None and action_code.metadata.params:
        params = action_code.metadata.params

    if scope.allowed_params is not None:
        extra = sorted(set(params) - scope.allowed_params)
        if extra:
            raise ScopeViolationError(f"params {extra} outside issuer scope")

    for name, required in scope.fixed_params.items():
        actual = params.get(name, _MISSING)
        if actual is _MISSING:
            raise ScopeViolationError(f"param {name!r} required by issuer scope is missing")
        if actual != required:
            raise ScopeViolationError(
                f"param {name!r}={actual!r} does not match issuer scope value {required!r}"
            )


class IssuerStrategy(Strategy):
    """Verifies codes signed by a scoped issuer key."""

    def __init__(
        self,
        verifier: SignatureVerifier,
        revocation_checker: Optional[RevocationChecker] = None,
    ):
        super().__init__(verifier)
        self.revocation_checker = revocation_checker

    @property
    def mode_id(self) -> str:
        return Mode.ISSUER.value

    def get_capabilities(self) -> StrategyCapabilities:
        return StrategyCapabilities(
            mode_id=self.mode_id,
            required_proofs=frozenset({ProofType.ISSUER_DELEGATION}),
            supports_multi_use=True,
        )

    async def validate(self, context: ValidationContext) -> ValidatedProof:
        action_code = context.action_code
        delegation: IssuerDelegation = context.proof(ProofType.ISSUER_DELEGATION)

        await check_certificate(
            delegation,
            action_code,
            context.now,
            self.verifier,
            self.revocation_checker,
        )

        await verify_signature(
            self.verifier,
            delegation.issuer,
            action_code.signing_message(),
            action_code.signature,
            subject=f"action code {action_code.code}",
        )

        check_scope(delegation.scope, action_code)

        log.debug(
            f"issuer {delegation.issuer[:16]}... accepted {action_code.code} "
            f"for intent class {delegation.intent_class}"
        )
        return ValidatedProof(
            mode=self.mode_id,
            signer=delegation.issuer,
            delegator=delegation.delegator,
            certificate_id=delegation.id,
            intent_class=delegation.intent_class,
        )
