"""Deployment orchestrator: Coordinates the execution of deployment plans."""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Tuple

from ..errors import PersistenceError, StepError
from .cancellation import CancellationToken
from .models import (
    DeploymentRecord,
    ExecutionContext,
    ExecutionPlan,
    FailurePolicy,
    RunOutcome,
    RunStatus,
    StepKind,
    StepResult,
)
from .planner import render_plan
from .prerequisites import check_prerequisites
from .records import persist_record
from .step_executor import StepExecutor

if TYPE_CHECKING:
    from ..actions.base import DeploymentAction

logger = logging.getLogger(__name__)


class DeploymentOrchestrator:
    """
    Drives one action through
    prerequisites -> prepare -> steps -> finalize -> record.

    Steps run strictly in plan order, one at a time. Between steps the
    orchestrator waits ``step_delay`` seconds on the cancellation token, so
    a cancel request stops the run before the next step starts.
    """

    def __init__(
        self,
        deployments_dir: Path,
        step_delay: float = 1.0,
        cancel_token: Optional[CancellationToken] = None,
        step_executor: Optional[StepExecutor] = None,
    ) -> None:
        self.deployments_dir = Path(deployments_dir)
        self.step_delay = step_delay
        self.cancel_token = cancel_token or CancellationToken()
        self.step_executor = step_executor or StepExecutor()

    def simulate(self, action: "DeploymentAction") -> RunOutcome:
        """Dry run: compute and render the plan, nothing else."""
        plan = action.build_plan()
        logger.info("🔍 DRY RUN MODE - no transactions will be sent")
        return RunOutcome(plan=plan, plan_text=render_plan(plan), dry_run=True)

    def run(self, action: "DeploymentAction", context: ExecutionContext) -> RunOutcome:
        plan = action.build_plan()
        context.shared.update(action.initial_shared())

        logger.info("")
        logger.info("=" * 60)
        logger.info("🚀 %s on %s", action.title, plan.network)
        logger.info("=" * 60)
        logger.info("Total Steps: %d (%s)", len(plan.steps), plan.failure_policy.value)
        for step in plan.steps:
            logger.info("  %d. %s", step.index, step.name)
        logger.info("")

        check_prerequisites(action.prerequisites(), context)
        started_at = datetime.now()

        try:
            action.prepare(context)
        except Exception as exc:
            logger.error("❌ %s preparation failed: %s", action.title, exc)
            details = action.record_details(context)
            details["error"] = str(exc)
            record = self._build_record(
                action, plan, context, [], RunStatus.FAILED, started_at, details
            )
            self._persist(record)
            raise StepError(f"{action.title} failed: {exc}", step_name="prepare") from exc

        results, status = self._execute_steps(plan, action, context)

        finalize_error: Optional[str] = None
        if status in (RunStatus.SUCCESS, RunStatus.PARTIAL):
            try:
                action.finalize(context, results)
            except Exception as exc:
                finalize_error = str(exc) or exc.__class__.__name__
                logger.error("❌ %s finalization failed: %s", action.title, finalize_error)

        details = action.record_details(context)
        if finalize_error:
            details["finalize_error"] = finalize_error
        record = self._build_record(action, plan, context, results, status, started_at, details)
        record_path = self._persist(record)

        exit_code = 0
        if status in (RunStatus.FAILED, RunStatus.CANCELLED) or finalize_error:
            exit_code = 1

        self._log_summary(action, record, exit_code)
        return RunOutcome(
            plan=plan,
            record=record,
            record_path=record_path,
            exit_code=exit_code,
        )

    def _execute_steps(
        self,
        plan: ExecutionPlan,
        action: "DeploymentAction",
        context: ExecutionContext,
    ) -> Tuple[List[StepResult], RunStatus]:
        results: List[StepResult] = []
        for position, step in enumerate(plan.steps):
            if position and self.step_delay > 0:
                # rate limiting between submissions
                if self.cancel_token.wait(self.step_delay):
                    logger.warning("⏹️ Cancelled before %s", step.name)
                    return results, RunStatus.CANCELLED
            elif self.cancel_token.cancelled:
                logger.warning("⏹️ Cancelled before %s", step.name)
                return results, RunStatus.CANCELLED

            logger.info("📍 Step %d/%d", step.index, len(plan.steps))
            result = self.step_executor.execute(step, action, context)
            results.append(result)

            if not result.success and plan.failure_policy is FailurePolicy.STOP_ON_FIRST_ERROR:
                remaining = [s.name for s in plan.steps[position + 1:]]
                if remaining:
                    logger.error("   Not attempting: %s", ", ".join(remaining))
                return results, RunStatus.FAILED

        if any(not result.success for result in results):
            return results, RunStatus.PARTIAL
        return results, RunStatus.SUCCESS

    def _build_record(
        self,
        action: "DeploymentAction",
        plan: ExecutionPlan,
        context: ExecutionContext,
        results: List[StepResult],
        status: RunStatus,
        started_at: datetime,
        details: Dict[str, Any],
    ) -> DeploymentRecord:
        finished_at = datetime.now()
        attempted = {result.step_index for result in results}
        minted = sum(
            result.amount
            for result in results
            if result.success and result.kind is StepKind.MINT_TO
        )
        summary: Dict[str, Any] = {
            "planned_steps": len(plan.steps),
            "executed_steps": len(results),
            "successful_steps": sum(1 for result in results if result.success),
            "failed_steps": sum(1 for result in results if not result.success),
            "not_attempted": [s.name for s in plan.steps if s.index not in attempted],
            "failure_policy": plan.failure_policy.value,
            "duration_seconds": (finished_at - started_at).total_seconds(),
        }
        if plan.distribution or minted:
            summary["total_supply"] = plan.total_supply
            summary["planned_amount"] = plan.total_amount
            summary["minted_amount"] = minted
            summary["unallocated"] = plan.unallocated
        return DeploymentRecord(
            action=plan.action,
            network=plan.network,
            status=status,
            started_at=started_at.isoformat(),
            finished_at=finished_at.isoformat(),
            steps=tuple(results),
            summary=summary,
            details=details,
        )

    def _persist(self, record: DeploymentRecord) -> Optional[Path]:
        try:
            return persist_record(record, self.deployments_dir)
        except PersistenceError as exc:
            # on-chain effects already happened; nothing to roll back
            logger.error("❌ %s", exc)
            return None

    def _log_summary(self, action: "DeploymentAction", record: DeploymentRecord, exit_code: int) -> None:
        summary = record.summary
        logger.info("")
        logger.info("=" * 60)
        if exit_code == 0 and record.status is RunStatus.SUCCESS:
            logger.info("🎉 %s completed successfully!", action.title)
        elif record.status is RunStatus.PARTIAL:
            logger.warning(
                "⚠️ %s completed with %d failed step(s)", action.title, summary["failed_steps"]
            )
        else:
            logger.error("❌ %s finished with status %s", action.title, record.status.value)
        logger.info(
            "Steps: %d/%d succeeded", summary["successful_steps"], summary["planned_steps"]
        )
        logger.info("=" * 60)
