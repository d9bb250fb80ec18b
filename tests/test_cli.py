import json

import pytest
from fakes import FakeConnection, make_clients, write_keypair

from token_deployer.actions import LiquidityAction, MintAction
from token_deployer.cli import _build_action, _load, build_parser, run_cli

MINT = "So11111111111111111111111111111111111111112"


@pytest.fixture
def config_file(tmp_path):
    metadata = tmp_path / "token-metadata.json"
    metadata.write_text(json.dumps({
        "name": "GlowMin",
        "symbol": "GLOW",
        "social": {"website": "https://glowmin.example"},
    }))
    path = tmp_path / "deployment-config.json"
    path.write_text(json.dumps({
        "network": {"devnet": {"url": "http://fake-devnet.invalid"}},
        "token": {
            "name": "GlowMin",
            "symbol": "GLOW",
            "total_supply": 100000000,
            "metadata_path": str(metadata),
        },
        "liquidity": {"sol_amount": 1000000000, "token_amount": 40000000},
        "execution": {"step_delay": 0},
    }))
    return path


class TestParser:
    def test_help_exits_zero(self, capsys):
        with pytest.raises(SystemExit) as excinfo:
            run_cli(["--help"])
        assert excinfo.value.code == 0
        assert "deploy-all" in capsys.readouterr().out

    def test_mint_options(self):
        args = build_parser().parse_args(["mint", "--amount", "500", "--no-revoke", "--dry-run"])
        assert args.amount == 500
        assert args.no_revoke
        assert args.dry_run
        assert args.network == "devnet"

    def test_amount_must_be_positive(self):
        with pytest.raises(SystemExit) as excinfo:
            build_parser().parse_args(["mint", "--amount", "0"])
        assert excinfo.value.code == 2


class TestRunCli:
    def test_mint_dry_run(self, config_file, tmp_path, capsys):
        deployments = tmp_path / "deployments"
        code = run_cli([
            "--config", str(config_file),
            "--deployments-dir", str(deployments),
            "mint", "--dry-run",
        ])

        out = capsys.readouterr().out
        assert code == 0
        assert "Liquidity Pool" in out
        assert "40000000" in out
        assert not deployments.exists()

    def test_amount_dry_run(self, config_file, capsys):
        code = run_cli(["--config", str(config_file), "mint", "--amount", "500", "--dry-run"])

        out = capsys.readouterr().out
        assert code == 0
        assert "Amount: 500 units" in out
        assert "Community" not in out

    def test_deploy_all_dry_run(self, config_file, capsys):
        code = run_cli(["--config", str(config_file), "deploy-all", "--dry-run"])

        out = capsys.readouterr().out
        assert code == 0
        assert "Metadata plan" in out
        assert "Liquidity plan" in out
        assert "Revoke plan" in out

    def test_missing_config_exits_one(self, tmp_path, capsys):
        code = run_cli(["--config", str(tmp_path / "missing.json"), "mint", "--dry-run"])

        assert code == 1
        assert capsys.readouterr().err.startswith("❌")

    def test_unknown_network_exits_one(self, config_file, capsys):
        code = run_cli(["--config", str(config_file), "revoke", "--network", "mainnet-beta"])

        assert code == 1
        assert "mainnet-beta" in capsys.readouterr().err

    def test_missing_keypairs_exit_one(self, config_file, tmp_path, capsys):
        code = run_cli([
            "--config", str(config_file),
            "--keypair-dir", str(tmp_path / "no-keys"),
            "--deployments-dir", str(tmp_path / "deployments"),
            "revoke", "--mint", "So11111111111111111111111111111111111111112",
        ])

        assert code == 1
        assert "mint_authority" in capsys.readouterr().err


class TestBuildAction:
    def test_mint_options_reach_action(self, config_file):
        args = build_parser().parse_args(["--config", str(config_file), "mint", "--amount", "500", "--no-revoke"])

        action = _build_action(args, _load(args))

        assert isinstance(action, MintAction)
        assert action.amount == 500
        assert action.revoke is False

    def test_liquidity_options_reach_action(self, config_file):
        args = build_parser().parse_args([
            "--config", str(config_file),
            "liquidity", "--sol-amount", "5", "--mint", MINT,
        ])

        action = _build_action(args, _load(args))

        assert isinstance(action, LiquidityAction)
        assert action.sol_amount == 5
        assert action.mint_address == MINT


class TestDeployAllReporting:
    def test_finished_action_printed_before_later_failure(self, config_file, tmp_path, monkeypatch, capsys):
        connection = FakeConnection()
        clients = make_clients(connection)
        monkeypatch.setattr("token_deployer.workflow.connect", lambda config: connection)
        monkeypatch.setattr("token_deployer.workflow.create_chain_clients", lambda config, conn: clients)
        write_keypair(tmp_path / "keys", "mint_authority")

        code = run_cli([
            "--config", str(config_file),
            "--keypair-dir", str(tmp_path / "keys"),
            "--deployments-dir", str(tmp_path / "deployments"),
            "deploy-all",
        ])

        captured = capsys.readouterr()
        assert code == 1
        assert "mint on devnet: success" in captured.out
        assert "metadata_authority" in captured.err
