"""Plan computation and dry-run rendering.

Every function here is a pure function of its arguments: no network
access, no file access. The same configuration always yields the same plan.
"""

from __future__ import annotations

from decimal import ROUND_FLOOR, Decimal
from typing import TYPE_CHECKING, List, Optional

from ..errors import ConfigError
from .models import ExecutionPlan, FailurePolicy, PlanStep, StepKind

if TYPE_CHECKING:
    from ..config import DeploymentConfig, TokenMetadata

LAMPORTS_PER_SOL = 1_000_000_000
UNSET_MINT = "<mint not configured>"


def allocation_amount(total_supply: int, fraction: Decimal) -> int:
    """floor(total_supply * fraction), in exact decimal arithmetic."""
    product = Decimal(total_supply) * fraction
    return int(product.to_integral_value(rounding=ROUND_FLOOR))


def _share(amount: int, total_supply: int) -> Decimal:
    if total_supply <= 0:
        return Decimal(0)
    return Decimal(amount) / Decimal(total_supply)


def compute_plan(config: "DeploymentConfig") -> ExecutionPlan:
    """Distribution plan: one mint step per allocation, in configured order.

    Each bucket is floored independently, so up to ``len(allocations) - 1``
    units of a fully allocated supply stay unminted; ``plan.unallocated``
    reports the exact remainder.
    """
    total_supply = config.token.total_supply
    steps = tuple(
        PlanStep(
            index=index,
            name=allocation.name,
            kind=StepKind.MINT_TO,
            amount=allocation_amount(total_supply, allocation.fraction),
            target=allocation.recipient,
            share=allocation.fraction,
            purpose=allocation.purpose,
        )
        for index, allocation in enumerate(config.allocations, 1)
    )
    return ExecutionPlan(
        action="mint",
        network=config.network.name,
        steps=steps,
        total_supply=total_supply,
        failure_policy=FailurePolicy.CONTINUE_ON_ERROR,
        distribution=True,
    )


def build_single_mint_plan(config: "DeploymentConfig", amount: int) -> ExecutionPlan:
    """The ``--amount`` path: one mint of ``amount`` units, no allocation table."""
    if amount <= 0:
        raise ConfigError(f"Mint amount must be positive, got {amount}")
    total_supply = config.token.total_supply
    step = PlanStep(
        index=1,
        name="Direct mint",
        kind=StepKind.MINT_TO,
        amount=amount,
        target="mint_authority",
        share=_share(amount, total_supply),
        purpose="Mint a fixed amount to the mint authority",
    )
    return ExecutionPlan(
        action="mint",
        network=config.network.name,
        steps=(step,),
        total_supply=total_supply,
        failure_policy=FailurePolicy.STOP_ON_FIRST_ERROR,
    )


def build_metadata_plan(
    config: "DeploymentConfig",
    metadata: "TokenMetadata",
    mint_address: Optional[str] = None,
) -> ExecutionPlan:
    step = PlanStep(
        index=1,
        name="Create metadata account",
        kind=StepKind.CREATE_METADATA,
        amount=0,
        target=mint_address or config.network.mint_address or UNSET_MINT,
        purpose=f"Publish {metadata.name} ({metadata.symbol}) metadata",
        params={
            "name": metadata.name,
            "symbol": metadata.symbol,
            "uri": metadata.uri,
            "collection": metadata.collection_name,
            "program": config.network.program("token_metadata"),
        },
    )
    return ExecutionPlan(
        action="metadata",
        network=config.network.name,
        steps=(step,),
        total_supply=config.token.total_supply,
        failure_policy=FailurePolicy.STOP_ON_FIRST_ERROR,
    )


def build_pool_plan(config: "DeploymentConfig", sol_amount: Optional[int] = None) -> ExecutionPlan:
    """create pool -> add liquidity -> lock liquidity; each needs the previous."""
    liquidity = config.liquidity
    sol = sol_amount if sol_amount is not None else liquidity.sol_amount
    if sol <= 0:
        raise ConfigError("Liquidity SOL amount must be positive")
    tokens = liquidity.token_amount
    share = _share(tokens, config.token.total_supply)
    program = config.network.program("amm")
    steps = (
        PlanStep(
            index=1,
            name="Create pool",
            kind=StepKind.CREATE_POOL,
            amount=tokens,
            target=program,
            share=share,
            purpose=f"{config.token.symbol or 'TOKEN'}/SOL pool",
            params={"sol_amount": sol, "token_amount": tokens, "fee_rate": liquidity.fee_rate},
        ),
        PlanStep(
            index=2,
            name="Add initial liquidity",
            kind=StepKind.ADD_LIQUIDITY,
            amount=tokens,
            target="pool",
            share=share,
            purpose="Seed the pool",
            params={"sol_amount": sol, "token_amount": tokens, "slippage": liquidity.slippage},
        ),
        PlanStep(
            index=3,
            name="Lock liquidity",
            kind=StepKind.LOCK_LIQUIDITY,
            amount=0,
            target="pool",
            purpose="Lock LP position",
            params={"lock_period": liquidity.lock_period},
        ),
    )
    return ExecutionPlan(
        action="liquidity",
        network=config.network.name,
        steps=steps,
        total_supply=config.token.total_supply,
        failure_policy=FailurePolicy.STOP_ON_FIRST_ERROR,
    )


def build_revoke_plan(config: "DeploymentConfig", mint_address: Optional[str] = None) -> ExecutionPlan:
    step = PlanStep(
        index=1,
        name="Revoke mint authority",
        kind=StepKind.REVOKE_AUTHORITY,
        amount=0,
        target=mint_address or config.network.mint_address or UNSET_MINT,
        purpose="Make the supply fixed",
        params={"authority_type": "mint"},
    )
    return ExecutionPlan(
        action="revoke",
        network=config.network.name,
        steps=(step,),
        total_supply=config.token.total_supply,
        failure_policy=FailurePolicy.STOP_ON_FIRST_ERROR,
    )


def _format_param(key: str, value) -> str:
    if key == "sol_amount":
        return f"{value} lamports ({value / LAMPORTS_PER_SOL:g} SOL)"
    if key == "lock_period":
        return f"{value} seconds ({value / 86400:g} days)"
    if key in ("fee_rate", "slippage"):
        return f"{value * 100:g}%"
    return str(value)


def render_plan(plan: ExecutionPlan) -> str:
    """Human-readable plan for ``--dry-run``."""
    lines: List[str] = [
        f"📋 {plan.action.capitalize()} plan ({plan.network})",
        f"   Total Supply: {plan.total_supply}",
        f"   Failure policy: {plan.failure_policy.value}",
        "",
        "   Steps:",
    ]
    for step in plan.steps:
        lines.append(f"   {step.index}. {step.name}")
        lines.append(f"      Amount: {step.amount} units")
        lines.append(f"      Target: {step.target}")
        lines.append(f"      Percentage: {step.percentage:.1f}%")
        if step.purpose:
            lines.append(f"      Purpose: {step.purpose}")
        for key, value in step.params.items():
            if value is None:
                continue
            label = key.replace("_", " ").capitalize()
            lines.append(f"      {label}: {_format_param(key, value)}")
        lines.append("")
    if plan.distribution:
        lines.append(f"   Planned total: {plan.total_amount} units")
        lines.append(f"   Unallocated: {plan.unallocated} units")
    return "\n".join(lines).rstrip() + "\n"
