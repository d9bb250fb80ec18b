import json
import os
import tempfile
import unittest
from decimal import Decimal
from pathlib import Path

from token_deployer.config import (
    DeploymentConfig,
    TOKEN_METADATA_PROGRAM_ID,
    load_config,
    load_token_metadata,
)
from token_deployer.errors import ConfigError

BASE_CONFIG = {
    "network": {
        "devnet": {"url": "https://api.devnet.solana.com"},
        "mainnet-beta": "https://api.mainnet-beta.solana.com",
    },
    "token": {"name": "GlowMin", "symbol": "GLOW", "decimals": 6, "total_supply": 1000},
}


class ConfigTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.tmp = Path(self._tmp.name)

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def _write(self, payload) -> str:
        path = self.tmp / "deployment-config.json"
        path.write_text(json.dumps(payload) if not isinstance(payload, str) else payload)
        return str(path)

    def test_loads_selected_network(self) -> None:
        config = load_config(self._write(BASE_CONFIG), network="mainnet-beta")
        self.assertEqual(config.network.name, "mainnet-beta")
        self.assertEqual(config.network.url, "https://api.mainnet-beta.solana.com")
        self.assertEqual(config.network.program("token_metadata"), TOKEN_METADATA_PROGRAM_ID)
        self.assertEqual(config.token.decimals, 6)
        self.assertEqual(set(config.networks), {"devnet", "mainnet-beta"})

    def test_missing_allocations_use_default_table(self) -> None:
        config = load_config(self._write(BASE_CONFIG))
        names = [allocation.name for allocation in config.allocations]
        self.assertEqual(names, ["Liquidity Pool", "Community", "Team", "Marketing", "Reserve"])
        self.assertEqual(sum(a.fraction for a in config.allocations), Decimal("1.00"))

    def test_missing_file_raises_config_error(self) -> None:
        with self.assertRaises(ConfigError) as ctx:
            load_config(str(self.tmp / "missing.json"))
        self.assertIn("not found", str(ctx.exception))

    def test_unparsable_file_raises_config_error(self) -> None:
        with self.assertRaises(ConfigError):
            load_config(self._write("{not json"))

    def test_unknown_network_raises_config_error(self) -> None:
        with self.assertRaises(ConfigError) as ctx:
            load_config(self._write(BASE_CONFIG), network="localnet")
        self.assertIn("localnet", str(ctx.exception))

    def test_missing_token_section_raises(self) -> None:
        payload = {"network": BASE_CONFIG["network"]}
        with self.assertRaises(ConfigError):
            load_config(self._write(payload))

    def test_allocations_over_one_rejected(self) -> None:
        payload = dict(BASE_CONFIG, allocations=[
            {"name": "A", "fraction": 0.6},
            {"name": "B", "fraction": 0.5},
        ])
        with self.assertRaises(ConfigError) as ctx:
            load_config(self._write(payload))
        self.assertIn("exceeds 1.0", str(ctx.exception))

    def test_negative_fraction_rejected(self) -> None:
        payload = dict(BASE_CONFIG, allocations=[{"name": "A", "fraction": -0.1}])
        with self.assertRaises(ConfigError):
            load_config(self._write(payload))

    def test_non_finite_fraction_rejected(self) -> None:
        for fraction in ("NaN", "Infinity", "abc"):
            payload = dict(BASE_CONFIG, allocations=[{"name": "A", "fraction": fraction}])
            with self.assertRaises(ConfigError):
                load_config(self._write(payload))

    def test_bad_numeric_value_rejected(self) -> None:
        payload = dict(BASE_CONFIG, fees={"transaction_fee": "lots"})
        with self.assertRaises(ConfigError) as ctx:
            load_config(self._write(payload))
        self.assertIn("fees.transaction_fee", str(ctx.exception))

    def test_comment_keys_are_ignored(self) -> None:
        payload = dict(BASE_CONFIG, execution={"_note": "seconds", "step_delay": 2})
        config = load_config(self._write(payload))
        self.assertEqual(config.execution.step_delay, 2.0)

    def test_env_overrides(self) -> None:
        keys = ("TOKEN_DEPLOYER_RPC_URL", "TOKEN_DEPLOYER_MINT_ADDRESS", "TOKEN_DEPLOYER_KEYPAIR_DIR")
        originals = {key: os.environ.get(key) for key in keys}
        os.environ["TOKEN_DEPLOYER_RPC_URL"] = "http://localhost:8899"
        os.environ["TOKEN_DEPLOYER_MINT_ADDRESS"] = "So11111111111111111111111111111111111111112"
        os.environ["TOKEN_DEPLOYER_KEYPAIR_DIR"] = "/secure/keys"
        try:
            config = load_config(self._write(BASE_CONFIG))
            self.assertEqual(config.network.url, "http://localhost:8899")
            self.assertEqual(config.network.mint_address, "So11111111111111111111111111111111111111112")
            self.assertEqual(config.execution.keypair_dir, "/secure/keys")
        finally:
            for key, value in originals.items():
                if value is None:
                    os.environ.pop(key, None)
                else:
                    os.environ[key] = value

    def test_from_dict_accepts_url_strings(self) -> None:
        config = DeploymentConfig.from_dict(BASE_CONFIG, "mainnet-beta")
        self.assertEqual(config.network.commitment, "confirmed")
        self.assertIsNone(config.network.mint_address)


class TokenMetadataTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.path = Path(self._tmp.name) / "token-metadata.json"

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def test_uri_derived_from_website(self) -> None:
        self.path.write_text(json.dumps({
            "name": "GlowMin",
            "symbol": "GLOW",
            "social": {"website": "https://glowmin.example/"},
            "collection": {"name": "GlowMin Collection"},
        }))
        metadata = load_token_metadata(str(self.path))
        self.assertEqual(metadata.uri, "https://glowmin.example/metadata/token-metadata.json")
        self.assertEqual(metadata.collection_name, "GlowMin Collection")
        self.assertIsNone(metadata.collection)

    def test_explicit_uri_and_creators(self) -> None:
        self.path.write_text(json.dumps({
            "name": "GlowMin",
            "symbol": "GLOW",
            "uri": "https://arweave.net/abc",
            "properties": {"creators": [
                {"address": "11111111111111111111111111111111", "share": 100, "verified": False}
            ]},
        }))
        metadata = load_token_metadata(str(self.path))
        self.assertEqual(metadata.uri, "https://arweave.net/abc")
        self.assertEqual(metadata.creators[0].share, 100)

    def test_missing_uri_and_website_rejected(self) -> None:
        self.path.write_text(json.dumps({"name": "GlowMin", "symbol": "GLOW"}))
        with self.assertRaises(ConfigError):
            load_token_metadata(str(self.path))

    def _write_metadata(self, **fields) -> str:
        payload = {"name": "GlowMin", "symbol": "GLOW", "uri": "https://arweave.net/abc"}
        payload.update(fields)
        self.path.write_text(json.dumps(payload))
        return str(self.path)

    def test_bad_seller_fee_rejected(self) -> None:
        with self.assertRaises(ConfigError) as ctx:
            load_token_metadata(self._write_metadata(seller_fee_basis_points="five"))
        self.assertIn("seller_fee_basis_points", str(ctx.exception))

    def test_collection_must_be_object(self) -> None:
        with self.assertRaises(ConfigError):
            load_token_metadata(self._write_metadata(collection="GlowMin Collection"))

    def test_properties_must_be_object(self) -> None:
        with self.assertRaises(ConfigError):
            load_token_metadata(self._write_metadata(properties=["creators"]))


if __name__ == "__main__":
    unittest.main()
