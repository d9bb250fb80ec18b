"""Base class shared by every deployment action."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Sequence, Tuple

from solders.pubkey import Pubkey

from ..errors import StepError

if TYPE_CHECKING:
    from ..config import DeploymentConfig
    from ..orchestrator.models import ExecutionContext, ExecutionPlan, PlanStep, StepResult
    from ..orchestrator.prerequisites import PrerequisiteCheck


@dataclass
class StepOutcome:
    """What a step handler hands back to the executor on success."""

    signature: str
    details: Dict[str, Any] = field(default_factory=dict)


class DeploymentAction(ABC):
    """
    One named deployment action (mint, metadata, liquidity, revoke).

    The orchestrator drives every action through the same phases:
    ``prerequisites`` -> ``prepare`` -> ``run_step`` per plan step ->
    ``finalize``. Subclasses only describe what each phase does.
    """

    name: str = ""
    title: str = ""
    required_credentials: Tuple[str, ...] = ()
    optional_credentials: Tuple[str, ...] = ()

    def __init__(self, config: "DeploymentConfig", mint_address: Optional[str] = None) -> None:
        self.config = config
        self.mint_address = mint_address or config.network.mint_address

    @property
    def credential_names(self) -> Tuple[str, ...]:
        """Every keypair name the action may read, required or optional."""
        return tuple(self.required_credentials) + tuple(self.optional_credentials)

    def initial_shared(self) -> Dict[str, Any]:
        return {"mint_address": self.mint_address} if self.mint_address else {}

    @abstractmethod
    def build_plan(self) -> "ExecutionPlan":
        """Compute the plan. Must not touch the network or the filesystem."""

    @abstractmethod
    def prerequisites(self) -> List["PrerequisiteCheck"]:
        """Ordered checks; the first one to fail aborts the run."""

    def prepare(self, context: "ExecutionContext") -> None:
        """Work needed before the first step (e.g. creating the mint)."""

    @abstractmethod
    def run_step(self, step: "PlanStep", context: "ExecutionContext") -> StepOutcome:
        """Execute one plan step; raise on failure."""

    def finalize(self, context: "ExecutionContext", results: Sequence["StepResult"]) -> None:
        """Work after the last step (e.g. revoking the mint authority)."""

    def record_details(self, context: "ExecutionContext") -> Dict[str, Any]:
        return {"mint_address": context.shared.get("mint_address")}


def shared_mint(context: "ExecutionContext") -> Pubkey:
    address = context.shared.get("mint_address")
    if not address:
        raise StepError("No mint address available for this run")
    return Pubkey.from_string(address)


def parse_address(value: str) -> Optional[Pubkey]:
    """Return ``value`` as a public key, or None if it is not base58 address text."""
    try:
        return Pubkey.from_string(value)
    except ValueError:
        return None
