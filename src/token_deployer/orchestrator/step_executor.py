"""Step executor: runs one plan step and turns its outcome into data."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from .models import ExecutionContext, PlanStep, StepResult

if TYPE_CHECKING:
    from ..actions.base import DeploymentAction

logger = logging.getLogger(__name__)


class StepExecutor:
    """
    Executes a single step through the action's handler.

    Any exception raised by the handler (RPC failure, rejected transaction,
    bad recipient) is caught here and recorded in the returned StepResult;
    nothing propagates past this boundary. Whether the run continues is the
    orchestrator's decision.
    """

    def execute(
        self,
        step: PlanStep,
        action: "DeploymentAction",
        context: ExecutionContext,
    ) -> StepResult:
        logger.info("📦 %s...", step.name)
        if step.amount:
            logger.info("   Amount: %s units", step.amount)
        logger.info("   Target: %s", step.target)

        try:
            outcome = action.run_step(step, context)
        except Exception as exc:
            message = str(exc) or exc.__class__.__name__
            logger.error("❌ Failed to %s: %s", step.name.lower(), message)
            logger.debug("Full error details", exc_info=True)
            return StepResult.failed(step, message)

        logger.info("✅ %s completed", step.name)
        logger.debug("   Transaction: %s", outcome.signature)
        return StepResult.succeeded(step, outcome.signature, outcome.details)
