"""Mint action: create the mint, distribute the supply, revoke the authority."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

from solders.pubkey import Pubkey

from ..errors import StepError
from ..orchestrator.models import ExecutionContext, ExecutionPlan, PlanStep, StepResult
from ..orchestrator.planner import build_single_mint_plan, compute_plan
from ..orchestrator.prerequisites import (
    PrerequisiteCheck,
    credentials_present,
    network_healthy,
    sol_balance_at_least,
)
from .base import DeploymentAction, StepOutcome, parse_address, shared_mint

logger = logging.getLogger(__name__)


class MintAction(DeploymentAction):
    """
    Mint and distribute the token supply.

    Without ``amount`` every allocation of the config becomes one
    independent mint step (continue-on-error). With ``amount`` a single
    mint of that many units goes to the mint authority and the allocation
    table is ignored; that path never revokes the mint authority.
    """

    name = "mint"
    title = "Token Mint"
    optional_credentials = ("freeze_authority",)

    def __init__(
        self,
        config,
        amount: Optional[int] = None,
        revoke: Optional[bool] = None,
        mint_address: Optional[str] = None,
    ) -> None:
        super().__init__(config, mint_address=mint_address)
        self.amount = amount
        self.revoke = config.token.revoke_mint_authority if revoke is None else revoke

    @property
    def required_credentials(self) -> Tuple[str, ...]:
        names = ["mint_authority"]
        if self.amount is None:
            # recipients given by credential name rather than by address
            for allocation in self.config.allocations:
                recipient = allocation.recipient
                if parse_address(recipient) is None and recipient not in names:
                    names.append(recipient)
        return tuple(names)

    def build_plan(self) -> ExecutionPlan:
        if self.amount is not None:
            return build_single_mint_plan(self.config, self.amount)
        return compute_plan(self.config)

    def prerequisites(self) -> List[PrerequisiteCheck]:
        steps = len(self.build_plan().steps)
        # one account creation plus one mint per step, mint creation and revoke
        required = self.config.fees.transaction_fee * (2 * steps + 2)
        return [
            credentials_present(self.required_credentials),
            network_healthy(),
            sol_balance_at_least("mint_authority", required),
        ]

    def prepare(self, context: ExecutionContext) -> None:
        existing = context.shared.get("mint_address")
        if existing:
            if context.connection.get_account_info(existing) is None:
                raise StepError(
                    f"Configured mint {existing} not found on {self.config.network.name}"
                )
            logger.info("♻️ Using existing mint: %s", existing)
            context.shared["mint_created"] = False
            return

        authority = context.credentials["mint_authority"]
        freeze = context.credentials.get("freeze_authority")
        if freeze is None:
            logger.warning("⚠️ No freeze-authority keypair; the mint gets no freeze authority")

        logger.info("🪙 Creating token mint...")
        mint = context.clients.token.create_mint(
            payer=authority,
            mint_authority=authority.pubkey(),
            freeze_authority=freeze.pubkey() if freeze else None,
            decimals=self.config.token.decimals,
        )
        context.shared["mint_address"] = str(mint)
        context.shared["mint_created"] = True
        logger.info("✅ Token mint created successfully!")
        logger.info("   Mint Address: %s", mint)
        logger.info("   Decimals: %s", self.config.token.decimals)
        logger.info("   Mint Authority: %s", authority.pubkey())
        if freeze:
            logger.info("   Freeze Authority: %s", freeze.pubkey())

    def _resolve_recipient(self, target: str, context: ExecutionContext) -> Pubkey:
        if target in context.credentials:
            return context.credentials[target].pubkey()
        address = parse_address(target)
        if address is None:
            raise StepError(f"Unknown recipient '{target}'", step_name=target)
        return address

    def run_step(self, step: PlanStep, context: ExecutionContext) -> StepOutcome:
        authority = context.credentials["mint_authority"]
        mint = shared_mint(context)
        owner = self._resolve_recipient(step.target, context)

        token_account = context.clients.token.get_or_create_associated_account(
            payer=authority, mint=mint, owner=owner
        )
        signature = context.clients.token.mint_to(
            payer=authority,
            mint=mint,
            destination=token_account,
            authority=authority,
            amount=step.amount,
        )
        return StepOutcome(
            signature=signature,
            details={"recipient": str(owner), "token_account": str(token_account)},
        )

    def finalize(self, context: ExecutionContext, results: Sequence[StepResult]) -> None:
        if self.amount is not None:
            logger.info("ℹ️ Single mint: mint authority kept")
            return
        if not self.revoke:
            logger.info("ℹ️ Mint authority kept (revocation disabled)")
            return
        failed = [result for result in results if not result.success]
        if failed:
            logger.warning(
                "⚠️ Mint authority kept because %d distribution(s) failed", len(failed)
            )
            return

        logger.info("🔒 Revoking mint authority...")
        authority = context.credentials["mint_authority"]
        signature = context.clients.token.set_authority(
            payer=authority,
            mint=shared_mint(context),
            current_authority=authority,
            authority_type="mint",
            new_authority=None,
        )
        context.shared["mint_authority_revoked"] = True
        context.shared["revoke_signature"] = signature
        logger.info("✅ Mint authority revoked")
        logger.debug("   Transaction: %s", signature)

    def record_details(self, context: ExecutionContext) -> Dict[str, Any]:
        details = super().record_details(context)
        freeze = context.credentials.get("freeze_authority")
        details.update(
            {
                "token_name": self.config.token.name,
                "token_symbol": self.config.token.symbol,
                "decimals": self.config.token.decimals,
                "mint_created": context.shared.get("mint_created", False),
                "mint_authority": str(context.credentials["mint_authority"].pubkey())
                if "mint_authority" in context.credentials
                else None,
                "freeze_authority": str(freeze.pubkey()) if freeze else None,
                "mint_authority_revoked": context.shared.get("mint_authority_revoked", False),
                "revoke_signature": context.shared.get("revoke_signature"),
            }
        )
        return details
