"""Command-line interface for token-deployer."""

from __future__ import annotations

import argparse
import logging
import signal
import sys
from typing import Any, Dict, List, Optional

from rich.console import Console
from rich.table import Table

from .actions import DeploymentAction, create_action
from .config import DeploymentConfig, load_config
from .errors import DeployerError
from .orchestrator import CancellationToken, RunOutcome
from .paths import DEFAULT_CONFIG_PATH
from .utils.logging import configure_logging
from .workflow import DeploymentWorkflow

logger = logging.getLogger(__name__)


def _positive_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected an integer, got {value!r}") from None
    if number <= 0:
        raise argparse.ArgumentTypeError(f"expected a positive integer, got {number}")
    return number


def _add_common_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--network",
        default="devnet",
        help="Network key in the deployment config (default: devnet)",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show the plan without sending any transaction",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable debug logging",
    )


def _add_mint_option(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--mint",
        dest="mint_address",
        default=None,
        metavar="ADDRESS",
        help="Existing mint address (default: network.<name>.mint_address)",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="token-deployer",
        description="Deploy an SPL token on Solana: mint, metadata, liquidity.",
    )
    parser.add_argument(
        "--config",
        type=str,
        default=str(DEFAULT_CONFIG_PATH),
        help=f"Path to the deployment config (default: {DEFAULT_CONFIG_PATH})",
    )
    parser.add_argument(
        "--keypair-dir",
        type=str,
        default=None,
        help="Directory holding keypair files (default: keypairs/)",
    )
    parser.add_argument(
        "--deployments-dir",
        type=str,
        default=None,
        help="Directory for deployment records (default: deployments/)",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    mint_parser = subparsers.add_parser(
        "mint", help="Create the mint and distribute the total supply"
    )
    _add_common_options(mint_parser)
    mint_parser.add_argument(
        "--amount",
        type=_positive_int,
        default=None,
        help="Mint this many units to the mint authority instead of the allocation plan",
    )
    mint_parser.add_argument(
        "--no-revoke",
        action="store_true",
        help="Keep the mint authority after distribution",
    )

    metadata_parser = subparsers.add_parser(
        "metadata", help="Create the on-chain metadata account"
    )
    _add_common_options(metadata_parser)
    _add_mint_option(metadata_parser)

    liquidity_parser = subparsers.add_parser(
        "liquidity", help="Create, seed and lock the initial liquidity pool"
    )
    _add_common_options(liquidity_parser)
    _add_mint_option(liquidity_parser)
    liquidity_parser.add_argument(
        "--sol-amount",
        type=_positive_int,
        default=None,
        help="SOL to seed the pool with, in lamports (overrides liquidity.sol_amount)",
    )

    revoke_parser = subparsers.add_parser(
        "revoke", help="Revoke the mint authority of an existing mint"
    )
    _add_common_options(revoke_parser)
    _add_mint_option(revoke_parser)

    all_parser = subparsers.add_parser(
        "deploy-all", help="Run mint, metadata, liquidity and revoke in order"
    )
    _add_common_options(all_parser)
    all_parser.add_argument(
        "--sol-amount",
        type=_positive_int,
        default=None,
        help="SOL to seed the pool with, in lamports",
    )

    return parser


def _load(args: argparse.Namespace) -> DeploymentConfig:
    config = load_config(args.config, network=args.network)
    if args.keypair_dir:
        config.execution.keypair_dir = args.keypair_dir
    if args.deployments_dir:
        config.execution.deployments_dir = args.deployments_dir
    return config


def _action_options(args: argparse.Namespace) -> Dict[str, Any]:
    if args.command == "mint":
        return {"amount": args.amount, "revoke": False if args.no_revoke else None}
    options: Dict[str, Any] = {"mint_address": args.mint_address}
    if args.command == "liquidity":
        options["sol_amount"] = args.sol_amount
    return options


def _build_action(args: argparse.Namespace, config: DeploymentConfig) -> DeploymentAction:
    return create_action(args.command, config, **_action_options(args))


def print_outcome(outcome: RunOutcome, console: Optional[Console] = None) -> None:
    console = console or Console()
    if outcome.dry_run:
        console.print(outcome.plan_text, markup=False, highlight=False)
        return
    if outcome.record is None:
        return

    record = outcome.record
    table = Table(title=f"{record.action} on {record.network}: {record.status.value}")
    table.add_column("#", justify="right")
    table.add_column("Step")
    table.add_column("Amount", justify="right")
    table.add_column("Result")
    table.add_column("Signature / Error", overflow="fold")
    for result in record.steps:
        table.add_row(
            str(result.step_index),
            result.step_name,
            str(result.amount) if result.amount else "",
            "✅" if result.success else "❌",
            result.signature or result.error or "",
        )
    for name in record.summary.get("not_attempted", []):
        table.add_row("", name, "", "⏭️", "not attempted")
    console.print(table)
    if outcome.record_path:
        console.print(f"📄 Record: {outcome.record_path}", highlight=False)


def dispatch_command(
    args: argparse.Namespace, cancel_token: Optional[CancellationToken] = None
) -> int:
    config = _load(args)
    workflow = DeploymentWorkflow(config, cancel_token=cancel_token)

    # outcomes are printed as each action finishes
    if args.command == "deploy-all":
        outcomes: List[RunOutcome] = workflow.run_all(
            dry_run=args.dry_run, sol_amount=args.sol_amount, on_outcome=print_outcome
        )
    else:
        outcome = workflow.run(_build_action(args, config), dry_run=args.dry_run)
        print_outcome(outcome)
        outcomes = [outcome]

    exit_code = max(outcome.exit_code for outcome in outcomes)
    if workflow.cancel_token.cancelled:
        exit_code = 1
    return exit_code


def run_cli(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.verbose)

    cancel_token = CancellationToken()

    def _cancel(signum, frame):
        logger.warning("⏹️ Interrupt received; stopping after the current step")
        cancel_token.cancel()

    previous = signal.signal(signal.SIGINT, _cancel)
    try:
        return dispatch_command(args, cancel_token=cancel_token)
    except DeployerError as exc:
        print(f"❌ {exc}", file=sys.stderr)
        return 1
    except Exception as exc:
        logger.exception("Unexpected failure")
        print(f"❌ {exc}", file=sys.stderr)
        return 1
    finally:
        signal.signal(signal.SIGINT, previous)
