"""Revoke action: give up the mint authority of an existing mint."""

from __future__ import annotations

import logging
from typing import List

from ..orchestrator.models import ExecutionContext, ExecutionPlan, PlanStep
from ..orchestrator.planner import build_revoke_plan
from ..orchestrator.prerequisites import (
    PrerequisiteCheck,
    credentials_present,
    mint_exists,
    network_healthy,
)
from .base import DeploymentAction, StepOutcome, shared_mint

logger = logging.getLogger(__name__)


class RevokeAction(DeploymentAction):
    name = "revoke"
    title = "Mint Authority Revocation"
    required_credentials = ("mint_authority",)

    def build_plan(self) -> ExecutionPlan:
        return build_revoke_plan(self.config, self.mint_address)

    def prerequisites(self) -> List[PrerequisiteCheck]:
        return [
            credentials_present(self.required_credentials),
            network_healthy(),
            mint_exists(),
        ]

    def run_step(self, step: PlanStep, context: ExecutionContext) -> StepOutcome:
        authority = context.credentials["mint_authority"]
        signature = context.clients.token.set_authority(
            payer=authority,
            mint=shared_mint(context),
            current_authority=authority,
            authority_type=step.params["authority_type"],
            new_authority=None,
        )
        logger.info("🔒 Mint authority revoked; supply is now fixed")
        return StepOutcome(signature, {"authority_type": step.params["authority_type"]})
