"""Deployment orchestration: plans, step execution, records."""

from .cancellation import CancellationToken
from .models import (
    CheckResult,
    DeploymentRecord,
    ExecutionContext,
    ExecutionPlan,
    FailurePolicy,
    PlanStep,
    PrerequisiteReport,
    RunOutcome,
    RunStatus,
    StepKind,
    StepResult,
)
from .orchestrator import DeploymentOrchestrator
from .planner import (
    allocation_amount,
    build_metadata_plan,
    build_pool_plan,
    build_revoke_plan,
    build_single_mint_plan,
    compute_plan,
    render_plan,
)
from .prerequisites import PrerequisiteCheck, check_prerequisites
from .records import persist_record
from .step_executor import StepExecutor

__all__ = [
    "CancellationToken",
    "CheckResult",
    "DeploymentOrchestrator",
    "DeploymentRecord",
    "ExecutionContext",
    "ExecutionPlan",
    "FailurePolicy",
    "PlanStep",
    "PrerequisiteCheck",
    "PrerequisiteReport",
    "RunOutcome",
    "RunStatus",
    "StepExecutor",
    "StepKind",
    "StepResult",
    "allocation_amount",
    "build_metadata_plan",
    "build_pool_plan",
    "build_revoke_plan",
    "build_single_mint_plan",
    "check_prerequisites",
    "compute_plan",
    "persist_record",
    "render_plan",
]
