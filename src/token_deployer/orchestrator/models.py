"""Data models for the orchestrator module."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, List, Mapping, Optional, Tuple

if TYPE_CHECKING:
    from solders.keypair import Keypair

    from ..chain import ChainClients, RpcConnection
    from ..config import DeploymentConfig


class StepKind(Enum):
    MINT_TO = "mint_to"
    CREATE_METADATA = "create_metadata"
    CREATE_POOL = "create_pool"
    ADD_LIQUIDITY = "add_liquidity"
    LOCK_LIQUIDITY = "lock_liquidity"
    REVOKE_AUTHORITY = "revoke_authority"


class FailurePolicy(Enum):
    """What the outer loop does after a step fails."""

    CONTINUE_ON_ERROR = "continue-on-error"      # independent steps (distribution)
    STOP_ON_FIRST_ERROR = "stop-on-first-error"  # each step depends on the previous


class RunStatus(Enum):
    SUCCESS = "success"
    PARTIAL = "partial"        # continue-on-error run with failed steps
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class PlanStep:
    """One external action of a plan."""

    index: int
    name: str
    kind: StepKind
    amount: int
    target: str
    share: Decimal = Decimal(0)      # fraction of total supply
    purpose: str = ""
    params: Mapping[str, Any] = field(default_factory=dict)

    @property
    def percentage(self) -> float:
        return float(self.share * 100)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "index": self.index,
            "name": self.name,
            "kind": self.kind.value,
            "amount": self.amount,
            "target": self.target,
            "share": str(self.share),
            "purpose": self.purpose,
            "params": dict(self.params),
        }


@dataclass(frozen=True)
class ExecutionPlan:
    action: str
    network: str
    steps: Tuple[PlanStep, ...]
    total_supply: int
    failure_policy: FailurePolicy
    distribution: bool = False   # proportional split of total_supply

    @property
    def total_amount(self) -> int:
        return sum(step.amount for step in self.steps if step.kind is StepKind.MINT_TO)

    @property
    def unallocated(self) -> int:
        """Units of total_supply no step mints (distribution plans only)."""
        if not self.distribution:
            return 0
        return self.total_supply - self.total_amount

    def to_dict(self) -> Dict[str, Any]:
        return {
            "action": self.action,
            "network": self.network,
            "total_supply": self.total_supply,
            "failure_policy": self.failure_policy.value,
            "distribution": self.distribution,
            "total_amount": self.total_amount,
            "unallocated": self.unallocated,
            "steps": [step.to_dict() for step in self.steps],
        }


@dataclass(frozen=True)
class StepResult:
    """Outcome of executing one plan step. Never mutated after creation."""

    step_index: int
    step_name: str
    kind: StepKind
    amount: int
    target: str
    success: bool
    signature: Optional[str] = None
    error: Optional[str] = None
    details: Mapping[str, Any] = field(default_factory=dict)
    timestamp: str = field(default_factory=lambda: datetime.now().isoformat())

    @classmethod
    def succeeded(
        cls, step: PlanStep, signature: str, details: Optional[Dict[str, Any]] = None
    ) -> "StepResult":
        return cls(
            step_index=step.index,
            step_name=step.name,
            kind=step.kind,
            amount=step.amount,
            target=step.target,
            success=True,
            signature=signature,
            details=dict(details or {}),
        )

    @classmethod
    def failed(cls, step: PlanStep, error: str) -> "StepResult":
        return cls(
            step_index=step.index,
            step_name=step.name,
            kind=step.kind,
            amount=step.amount,
            target=step.target,
            success=False,
            error=error,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "index": self.step_index,
            "name": self.step_name,
            "kind": self.kind.value,
            "amount": self.amount,
            "target": self.target,
            "success": self.success,
            "signature": self.signature,
            "error": self.error,
            "details": dict(self.details),
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class DeploymentRecord:
    """Audit artifact for one run; written once."""

    action: str
    network: str
    status: RunStatus
    started_at: str
    finished_at: str
    steps: Tuple[StepResult, ...]
    summary: Mapping[str, Any] = field(default_factory=dict)
    details: Mapping[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "action": self.action,
            "network": self.network,
            "status": self.status.value,
            "started_at": self.started_at,
            "finished_at": self.finished_at,
            "summary": dict(self.summary),
            "details": dict(self.details),
            "steps": [result.to_dict() for result in self.steps],
        }


@dataclass
class CheckResult:
    name: str
    detail: str = ""


@dataclass
class PrerequisiteReport:
    checks: List[CheckResult] = field(default_factory=list)

    @property
    def passed(self) -> List[str]:
        return [check.name for check in self.checks]


@dataclass
class ExecutionContext:
    """Everything a step handler may touch during a run."""

    config: "DeploymentConfig"
    connection: "RpcConnection"
    credentials: Dict[str, "Keypair"]
    clients: "ChainClients"
    # values produced by earlier phases (mint address, pool address, ...)
    shared: Dict[str, Any] = field(default_factory=dict)


@dataclass
class RunOutcome:
    plan: ExecutionPlan
    plan_text: str = ""
    record: Optional[DeploymentRecord] = None
    record_path: Optional[Path] = None
    exit_code: int = 0
    dry_run: bool = False

    @property
    def failed_steps(self) -> List[StepResult]:
        if not self.record:
            return []
        return [result for result in self.record.steps if not result.success]
