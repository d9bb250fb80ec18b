"""High-level workflow: wire config, credentials and chain clients to an action."""

from __future__ import annotations

from pathlib import Path
from typing import Callable, List, Optional

from .actions import DeploymentAction, LiquidityAction, MetadataAction, MintAction, RevokeAction
from .chain import ChainClients, RpcConnection, create_chain_clients
from .config import DeploymentConfig
from .orchestrator import CancellationToken, DeploymentOrchestrator, ExecutionContext, RunOutcome, RunStatus
from .utils.logging import get_logger
from .wallet import load_credentials

logger = get_logger(__name__)

ConnectionFactory = Callable[[DeploymentConfig], RpcConnection]
ClientsFactory = Callable[[DeploymentConfig, RpcConnection], ChainClients]
OutcomeCallback = Callable[[RunOutcome], None]


def connect(config: DeploymentConfig) -> RpcConnection:
    execution = config.execution
    return RpcConnection(
        url=config.network.url,
        commitment=config.network.commitment,
        timeout=execution.request_timeout,
        max_retries=execution.max_retries,
        rate_limit_backoff=execution.rate_limit_backoff,
    )


class DeploymentWorkflow:
    """
    Runs deployment actions for one loaded configuration.

    The connection and chain clients are created lazily, on the first real
    run, and shared by every action of the workflow. A dry run never creates
    them.
    """

    def __init__(
        self,
        config: DeploymentConfig,
        cancel_token: Optional[CancellationToken] = None,
        connection_factory: Optional[ConnectionFactory] = None,
        clients_factory: Optional[ClientsFactory] = None,
    ) -> None:
        self.config = config
        self.cancel_token = cancel_token or CancellationToken()
        self.connection_factory = connection_factory or connect
        self.clients_factory = clients_factory or create_chain_clients
        self._connection: Optional[RpcConnection] = None
        self._clients: Optional[ChainClients] = None

    @property
    def keypair_dir(self) -> Path:
        return Path(self.config.execution.keypair_dir)

    @property
    def deployments_dir(self) -> Path:
        return Path(self.config.execution.deployments_dir)

    def _orchestrator(self) -> DeploymentOrchestrator:
        return DeploymentOrchestrator(
            deployments_dir=self.deployments_dir,
            step_delay=self.config.execution.step_delay,
            cancel_token=self.cancel_token,
        )

    def build_context(self, action: DeploymentAction) -> ExecutionContext:
        logger.debug("🔑 Loading keypairs from %s", self.keypair_dir)
        credentials = load_credentials(self.keypair_dir, action.credential_names)
        if self._connection is None:
            logger.info("🔗 Connecting to %s (%s)", self.config.network.name, self.config.network.url)
            self._connection = self.connection_factory(self.config)
            self._clients = self.clients_factory(self.config, self._connection)
        return ExecutionContext(
            config=self.config,
            connection=self._connection,
            credentials=credentials,
            clients=self._clients,
        )

    def run(self, action: DeploymentAction, dry_run: bool = False) -> RunOutcome:
        orchestrator = self._orchestrator()
        if dry_run:
            return orchestrator.simulate(action)
        return orchestrator.run(action, self.build_context(action))

    def run_all(
        self,
        dry_run: bool = False,
        sol_amount: Optional[int] = None,
        on_outcome: Optional[OutcomeCallback] = None,
    ) -> List[RunOutcome]:
        """mint (authority kept) -> metadata -> liquidity -> revoke.

        The mint address produced by the first action is handed to the
        following ones. The sequence stops after the first action whose exit
        code is non-zero; exceptions from an action propagate unchanged, after
        ``on_outcome`` has seen every outcome completed before them.

        Revoke only runs when ``token.revoke_mint_authority`` is set and every
        mint step succeeded.
        """
        outcomes: List[RunOutcome] = []

        def finished(outcome: RunOutcome) -> RunOutcome:
            outcomes.append(outcome)
            if on_outcome is not None:
                on_outcome(outcome)
            return outcome

        mint_address = self.config.network.mint_address
        mint_outcome = finished(
            self.run(MintAction(self.config, revoke=False, mint_address=mint_address), dry_run=dry_run)
        )
        if mint_outcome.exit_code:
            return outcomes
        if mint_outcome.record is not None:
            mint_address = mint_outcome.record.details.get("mint_address") or mint_address

        followers = [
            lambda: MetadataAction(self.config, mint_address=mint_address),
            lambda: LiquidityAction(self.config, sol_amount=sol_amount, mint_address=mint_address),
        ]
        if self._revoke_allowed(mint_outcome):
            followers.append(lambda: RevokeAction(self.config, mint_address=mint_address))

        for build in followers:
            if self.cancel_token.cancelled:
                logger.warning("⏹️ Deployment cancelled; remaining actions skipped")
                break
            outcome = finished(self.run(build(), dry_run=dry_run))
            if outcome.exit_code:
                break
        return outcomes

    def _revoke_allowed(self, mint_outcome: RunOutcome) -> bool:
        if not self.config.token.revoke_mint_authority:
            logger.info("🔓 Mint authority kept: token.revoke_mint_authority is false")
            return False
        record = mint_outcome.record
        if record is not None and record.status is not RunStatus.SUCCESS:
            logger.warning(
                "⚠️ Mint authority kept: mint finished with status '%s'", record.status.value
            )
            return False
        return True
