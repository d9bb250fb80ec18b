"""Prerequisite checks run before any step executes.

Each action declares an ordered list of checks. ``check_prerequisites``
runs them in that order and stops at the first failure; nothing is
executed unless every check passes.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Iterable, List, Sequence

from solders.pubkey import Pubkey
from spl.token.instructions import get_associated_token_address

from ..chain.rpc import RpcError
from ..errors import PrerequisiteError
from ..wallet import require_credentials
from .models import CheckResult, ExecutionContext, PrerequisiteReport

logger = logging.getLogger(__name__)

LAMPORTS_PER_SOL = 1_000_000_000


@dataclass
class PrerequisiteCheck:
    name: str
    run: Callable[[ExecutionContext], str]


def credentials_present(names: Sequence[str]) -> PrerequisiteCheck:
    def run(ctx: ExecutionContext) -> str:
        require_credentials(ctx.credentials, names)
        return ", ".join(f"{name}={ctx.credentials[name].pubkey()}" for name in names)

    return PrerequisiteCheck("credentials", run)


def network_healthy() -> PrerequisiteCheck:
    def run(ctx: ExecutionContext) -> str:
        try:
            health = ctx.connection.check_health()
        except RpcError as exc:
            raise PrerequisiteError(
                "network", f"Network health check failed for {ctx.config.network.name}: {exc}"
            ) from exc
        return f"solana-core {health['version']}, slot {health['slot']}"

    return PrerequisiteCheck("network", run)


def _mint_address(ctx: ExecutionContext) -> str:
    address = ctx.shared.get("mint_address")
    if not address:
        raise PrerequisiteError(
            "mint",
            f"No mint address for network '{ctx.config.network.name}'. "
            "Run the mint action first or pass --mint",
        )
    return address


def mint_exists() -> PrerequisiteCheck:
    def run(ctx: ExecutionContext) -> str:
        address = _mint_address(ctx)
        try:
            info = ctx.connection.get_account_info(address)
        except RpcError as exc:
            raise PrerequisiteError("mint", f"Failed to look up mint {address}: {exc}") from exc
        if info is None:
            raise PrerequisiteError("mint", f"Mint {address} not found on {ctx.config.network.name}")
        return address

    return PrerequisiteCheck("mint", run)


def sol_balance_at_least(owner: str, required: int) -> PrerequisiteCheck:
    def run(ctx: ExecutionContext) -> str:
        pubkey = ctx.credentials[owner].pubkey()
        try:
            balance = ctx.connection.get_balance(pubkey)
        except RpcError as exc:
            raise PrerequisiteError("sol_balance", f"Failed to check SOL balance: {exc}") from exc
        if balance < required:
            raise PrerequisiteError(
                "sol_balance",
                f"Insufficient SOL balance for {owner} ({pubkey})",
                current=f"{balance} lamports",
                required=f"{required} lamports",
            )
        return f"{balance} lamports ({balance / LAMPORTS_PER_SOL:g} SOL)"

    return PrerequisiteCheck("sol_balance", run)


def token_balance_at_least(owner: str, required: int) -> PrerequisiteCheck:
    def run(ctx: ExecutionContext) -> str:
        mint = Pubkey.from_string(_mint_address(ctx))
        account = get_associated_token_address(ctx.credentials[owner].pubkey(), mint)
        try:
            balance = ctx.connection.get_token_account_balance(account)
        except RpcError as exc:
            raise PrerequisiteError(
                "token_balance", f"Failed to check token balance of {account}: {exc}"
            ) from exc
        if balance < required:
            raise PrerequisiteError(
                "token_balance",
                f"Insufficient token balance in {account}",
                current=balance,
                required=required,
            )
        return f"{balance} units"

    return PrerequisiteCheck("token_balance", run)


def check_prerequisites(
    checks: Iterable[PrerequisiteCheck], context: ExecutionContext
) -> PrerequisiteReport:
    """Run ``checks`` in order; the first failure raises and ends the run."""
    logger.info("🔍 Checking prerequisites...")
    results: List[CheckResult] = []
    for check in checks:
        detail = check.run(context)
        logger.info("   ✅ %s", check.name)
        if detail:
            logger.debug("      %s", detail)
        results.append(CheckResult(name=check.name, detail=detail))
    logger.info("✅ All prerequisites met")
    return PrerequisiteReport(checks=results)
