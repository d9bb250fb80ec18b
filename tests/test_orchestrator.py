import json
import tempfile
import unittest
from pathlib import Path

from fakes import FakeConnection, FakePoolClient, make_clients, make_config
from solders.keypair import Keypair

from token_deployer.actions import LiquidityAction, MintAction, RevokeAction
from token_deployer.errors import CredentialError, PrerequisiteError, StepError
from token_deployer.orchestrator import (
    CancellationToken,
    DeploymentOrchestrator,
    ExecutionContext,
    RunStatus,
    StepExecutor,
)

MINT = "So11111111111111111111111111111111111111112"


def _context(config, connection, credentials=None, **token_options) -> ExecutionContext:
    if credentials is None:
        credentials = {name: Keypair() for name in ("mint_authority", "main", "liquidity_authority")}
    return ExecutionContext(
        config=config,
        connection=connection,
        credentials=credentials,
        clients=make_clients(connection, **token_options),
    )


class OrchestratorTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.deployments = Path(self._tmp.name) / "deployments"
        self.config = make_config()
        self.connection = FakeConnection()

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def orchestrator(self, **kwargs) -> DeploymentOrchestrator:
        return DeploymentOrchestrator(self.deployments, step_delay=0, **kwargs)

    def saved_records(self):
        return sorted(self.deployments.glob("*.json"))


class DistributionTests(OrchestratorTestCase):
    def test_full_distribution_revokes_authority(self) -> None:
        context = _context(self.config, self.connection)
        outcome = self.orchestrator().run(MintAction(self.config), context)

        self.assertEqual(outcome.exit_code, 0)
        self.assertEqual(outcome.record.status, RunStatus.SUCCESS)
        self.assertEqual(len(outcome.record.steps), 5)
        token = context.clients.token
        self.assertEqual(token.minted, [40000000, 30000000, 15000000, 10000000, 5000000])
        self.assertEqual(token.calls[-1], ("set_authority", "mint", None))
        self.assertTrue(outcome.record.details["mint_authority_revoked"])
        self.assertEqual(outcome.record.summary["minted_amount"], 100000000)
        self.assertEqual(outcome.record_path, self.saved_records()[0])

    def test_third_step_failure_continues(self) -> None:
        context = _context(self.config, self.connection, fail_on_mint={3})
        outcome = self.orchestrator().run(MintAction(self.config), context)

        steps = outcome.record.steps
        self.assertEqual(len(steps), 5)
        self.assertEqual([bool(step.error) for step in steps], [False, False, True, False, False])
        self.assertEqual(outcome.exit_code, 0)
        self.assertEqual(outcome.record.status, RunStatus.PARTIAL)
        self.assertEqual(len(outcome.failed_steps), 1)
        # authority kept so the failed bucket can still be minted
        kinds = [call[0] for call in context.clients.token.calls]
        self.assertNotIn("set_authority", kinds)

        saved = json.loads(self.saved_records()[0].read_text())
        self.assertEqual(len(saved["steps"]), 5)
        self.assertEqual(saved["status"], "partial")
        self.assertEqual(saved["summary"]["failed_steps"], 1)

    def test_single_amount_mints_once_without_revoke(self) -> None:
        context = _context(self.config, self.connection)
        outcome = self.orchestrator().run(MintAction(self.config, amount=500), context)

        self.assertEqual(len(outcome.record.steps), 1)
        self.assertEqual(outcome.record.steps[0].amount, 500)
        self.assertEqual(context.clients.token.minted, [500])
        kinds = [call[0] for call in context.clients.token.calls]
        self.assertNotIn("set_authority", kinds)
        self.assertEqual(outcome.exit_code, 0)

    def test_single_amount_failure_exits_non_zero(self) -> None:
        context = _context(self.config, self.connection, fail_on_mint={1})
        outcome = self.orchestrator().run(MintAction(self.config, amount=500), context)

        self.assertEqual(outcome.exit_code, 1)
        self.assertEqual(outcome.record.status, RunStatus.FAILED)

    def test_existing_mint_is_reused(self) -> None:
        self.connection.accounts.add(MINT)
        context = _context(self.config, self.connection)
        outcome = self.orchestrator().run(MintAction(self.config, mint_address=MINT, revoke=False), context)

        kinds = [call[0] for call in context.clients.token.calls]
        self.assertNotIn("create_mint", kinds)
        self.assertEqual(outcome.record.details["mint_address"], MINT)
        self.assertFalse(outcome.record.details["mint_created"])

    def test_prepare_failure_is_recorded_and_raised(self) -> None:
        context = _context(self.config, self.connection, fail_create=True)
        with self.assertRaises(StepError):
            self.orchestrator().run(MintAction(self.config), context)

        saved = json.loads(self.saved_records()[0].read_text())
        self.assertEqual(saved["status"], "failed")
        self.assertEqual(saved["steps"], [])
        self.assertIn("insufficient funds", saved["details"]["error"])

    def test_finalize_failure_sets_exit_code(self) -> None:
        context = _context(self.config, self.connection, fail_revoke=True)
        outcome = self.orchestrator().run(MintAction(self.config), context)

        self.assertEqual(outcome.exit_code, 1)
        self.assertIn("owner does not match", outcome.record.details["finalize_error"])


class PoolTests(OrchestratorTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.connection.accounts.add(MINT)

    def test_add_liquidity_failure_stops_before_lock(self) -> None:
        context = _context(self.config, self.connection)
        context.clients.pool = FakePoolClient(fail_on={"add_liquidity"})
        outcome = self.orchestrator().run(LiquidityAction(self.config, mint_address=MINT), context)

        self.assertEqual(context.clients.pool.calls, ["create_pool", "add_liquidity"])
        self.assertNotEqual(outcome.exit_code, 0)
        self.assertEqual(outcome.record.status, RunStatus.FAILED)
        self.assertEqual(outcome.record.summary["not_attempted"], ["Lock liquidity"])

    def test_pool_pipeline_success(self) -> None:
        context = _context(self.config, self.connection)
        outcome = self.orchestrator().run(LiquidityAction(self.config, mint_address=MINT), context)

        self.assertEqual(outcome.exit_code, 0)
        self.assertEqual(
            context.clients.pool.calls, ["create_pool", "add_liquidity", "lock_liquidity"]
        )
        self.assertIsNotNone(outcome.record.details["pool_address"])

    def test_insufficient_token_balance_fails_prerequisite(self) -> None:
        self.connection.token_balance = 10
        context = _context(self.config, self.connection)
        with self.assertRaises(PrerequisiteError) as ctx:
            self.orchestrator().run(LiquidityAction(self.config, mint_address=MINT), context)
        self.assertEqual(ctx.exception.check, "token_balance")
        self.assertEqual(ctx.exception.required, 40000000)
        self.assertEqual(context.clients.pool.calls, [])


class PrerequisiteTests(OrchestratorTestCase):
    def test_missing_credential_aborts_before_any_step(self) -> None:
        context = _context(self.config, self.connection, credentials={})
        with self.assertRaises(CredentialError) as ctx:
            self.orchestrator().run(MintAction(self.config), context)
        self.assertIn("mint_authority", ctx.exception.names)
        self.assertEqual(context.clients.token.calls, [])
        self.assertEqual(self.saved_records(), [])

    def test_unhealthy_network(self) -> None:
        self.connection.healthy = False
        context = _context(self.config, self.connection)
        with self.assertRaises(PrerequisiteError) as ctx:
            self.orchestrator().run(MintAction(self.config), context)
        self.assertEqual(ctx.exception.check, "network")

    def test_insufficient_sol_reports_current_and_required(self) -> None:
        self.connection.balance = 1000
        context = _context(self.config, self.connection)
        with self.assertRaises(PrerequisiteError) as ctx:
            self.orchestrator().run(MintAction(self.config), context)
        # 5000 lamports x (2 x 5 steps + 2)
        self.assertEqual(ctx.exception.required, "60000 lamports")
        self.assertIn("available: 1000 lamports", str(ctx.exception))

    def test_revoke_without_mint_address(self) -> None:
        context = _context(self.config, self.connection)
        with self.assertRaises(PrerequisiteError) as ctx:
            self.orchestrator().run(RevokeAction(self.config), context)
        self.assertIn("--mint", str(ctx.exception))


class CancellingExecutor(StepExecutor):
    def __init__(self, token: CancellationToken, after: int) -> None:
        self.token = token
        self.after = after
        self.executed = 0

    def execute(self, step, action, context):
        result = super().execute(step, action, context)
        self.executed += 1
        if self.executed == self.after:
            self.token.cancel()
        return result


class CancellationTests(OrchestratorTestCase):
    def test_cancel_between_steps(self) -> None:
        token = CancellationToken()
        executor = CancellingExecutor(token, after=2)
        context = _context(self.config, self.connection)
        outcome = self.orchestrator(cancel_token=token, step_executor=executor).run(
            MintAction(self.config), context
        )

        self.assertEqual(len(outcome.record.steps), 2)
        self.assertEqual(outcome.record.status, RunStatus.CANCELLED)
        self.assertEqual(outcome.exit_code, 1)
        self.assertEqual(
            outcome.record.summary["not_attempted"], ["Team", "Marketing", "Reserve"]
        )

    def test_delay_wait_observes_cancel(self) -> None:
        token = CancellationToken()
        token.cancel()
        self.assertTrue(token.wait(5))
        self.assertTrue(token.cancelled)


class PersistenceFailureTests(OrchestratorTestCase):
    def test_record_write_failure_keeps_exit_code(self) -> None:
        self.deployments.parent.mkdir(parents=True, exist_ok=True)
        self.deployments.write_text("occupied")
        context = _context(self.config, self.connection)
        outcome = self.orchestrator().run(MintAction(self.config, amount=500), context)

        self.assertIsNone(outcome.record_path)
        self.assertEqual(outcome.exit_code, 0)
        self.assertEqual(len(outcome.record.steps), 1)


class DryRunTests(OrchestratorTestCase):
    def test_simulate_touches_nothing(self) -> None:
        outcome = self.orchestrator().simulate(MintAction(self.config))

        self.assertTrue(outcome.dry_run)
        self.assertIsNone(outcome.record)
        self.assertIn("Liquidity Pool", outcome.plan_text)
        self.assertFalse(self.deployments.exists())
        self.assertEqual(self.connection.calls, [])


if __name__ == "__main__":
    unittest.main()
