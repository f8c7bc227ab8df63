"""Wallet mode: the end user's wallet signs the code directly."""

import logging

from ..signature import verify_signature
from .base import Mode, Strategy, StrategyCapabilities, ValidatedProof, ValidationContext

log = logging.getLogger(__name__)


class WalletStrategy(Strategy):
    """Verifies the code signature against the code's own pubkey."""

    @property
    def mode_id(self) -> str:
        return Mode.WALLET.value

    def get_capabilities(self) -> StrategyCapabilities:
        return StrategyCapabilities(mode_id=self.mode_id)

    async def validate(self, context: ValidationContext) -> ValidatedProof:
        action_code = context.action_code
        message = action_code.signing_message()

        await verify_signature(
            self.verifier,
            action_code.pubkey,
            message,
            action_code.signature,
            subject=f"action code {action_code.code}",
        )

        log.debug(f"wallet signature valid for {action_code.code} ({action_code.pubkey[:16]}...)")
        return ValidatedProof(
            mode=self.mode_id,
            signer=action_code.pubkey,
            delegator=action_code.pubkey,
        )
