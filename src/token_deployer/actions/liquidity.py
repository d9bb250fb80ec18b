"""Liquidity action: create pool -> add liquidity -> lock liquidity."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from solders.pubkey import Pubkey

from ..errors import StepError
from ..orchestrator.models import ExecutionContext, ExecutionPlan, PlanStep, StepKind
from ..orchestrator.planner import build_pool_plan
from ..orchestrator.prerequisites import (
    PrerequisiteCheck,
    credentials_present,
    mint_exists,
    network_healthy,
    sol_balance_at_least,
    token_balance_at_least,
)
from .base import DeploymentAction, StepOutcome, shared_mint

logger = logging.getLogger(__name__)


class LiquidityAction(DeploymentAction):
    """Each step depends on the previous one, so the plan stops on the first error."""

    name = "liquidity"
    title = "Liquidity Pool Creation"
    required_credentials = ("main", "liquidity_authority")

    def __init__(
        self,
        config,
        sol_amount: Optional[int] = None,
        mint_address: Optional[str] = None,
    ) -> None:
        super().__init__(config, mint_address=mint_address)
        self.sol_amount = sol_amount

    def build_plan(self) -> ExecutionPlan:
        return build_pool_plan(self.config, self.sol_amount)

    def prerequisites(self) -> List[PrerequisiteCheck]:
        plan = self.build_plan()
        sol = plan.steps[0].params["sol_amount"]
        return [
            credentials_present(self.required_credentials),
            network_healthy(),
            mint_exists(),
            sol_balance_at_least("main", sol + 10 * self.config.fees.transaction_fee),
            token_balance_at_least("main", self.config.liquidity.token_amount),
        ]

    def _pool(self, context: ExecutionContext) -> Pubkey:
        address = context.shared.get("pool_address")
        if not address:
            raise StepError("No pool has been created in this run")
        return Pubkey.from_string(address)

    def run_step(self, step: PlanStep, context: ExecutionContext) -> StepOutcome:
        pools = context.clients.pool
        params = step.params

        if step.kind is StepKind.CREATE_POOL:
            created = pools.create_pool(
                owner=context.credentials["main"],
                mint=shared_mint(context),
                sol_amount=params["sol_amount"],
                token_amount=params["token_amount"],
                fee_rate=params["fee_rate"],
            )
            context.shared["pool_address"] = str(created.pool_address)
            logger.info("   Pool Address: %s", created.pool_address)
            return StepOutcome(created.signature, {"pool_address": str(created.pool_address)})

        if step.kind is StepKind.ADD_LIQUIDITY:
            signature = pools.add_liquidity(
                owner=context.credentials["main"],
                pool=self._pool(context),
                sol_amount=params["sol_amount"],
                token_amount=params["token_amount"],
                slippage=params["slippage"],
            )
            return StepOutcome(signature, {"pool_address": context.shared["pool_address"]})

        if step.kind is StepKind.LOCK_LIQUIDITY:
            lock = pools.lock_liquidity(
                authority=context.credentials["liquidity_authority"],
                pool=self._pool(context),
                lock_period=params["lock_period"],
            )
            context.shared["lock_end_time"] = lock.lock_end_time
            logger.info(
                "   Locked until: %s", datetime.fromtimestamp(lock.lock_end_time).isoformat()
            )
            return StepOutcome(lock.signature, {"lock_end_time": lock.lock_end_time})

        raise StepError(f"Unsupported step kind for liquidity: {step.kind.value}", step.name)

    def record_details(self, context: ExecutionContext) -> Dict[str, Any]:
        details = super().record_details(context)
        liquidity = self.config.liquidity
        details.update(
            {
                "pool_address": context.shared.get("pool_address"),
                "sol_amount": self.sol_amount if self.sol_amount is not None else liquidity.sol_amount,
                "token_amount": liquidity.token_amount,
                "fee_rate": liquidity.fee_rate,
                "lock_period": liquidity.lock_period,
                "lock_end_time": context.shared.get("lock_end_time"),
                "pool_client": liquidity.pool_client,
            }
        )
        return details
