"""Configuration loading utilities for token-deployer."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field, fields
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from dotenv import load_dotenv

from .errors import ConfigError
from .paths import DEFAULT_METADATA_PATH, DEPLOYMENTS_DIR, KEYPAIR_DIR

# Load .env file if it exists
load_dotenv()

logger = logging.getLogger(__name__)

TOKEN_METADATA_PROGRAM_ID = "metaqbxxUerdq28cj1RbAWkYQm3ybzjb6a8bt518x1s"
RAYDIUM_AMM_PROGRAM_ID = "675kPX9MHTjS2zt1qfr1NYHuzeLXfQM9H24wFSUt1Mp8"

DEFAULT_PROGRAMS = {
    "token_metadata": TOKEN_METADATA_PROGRAM_ID,
    "amm": RAYDIUM_AMM_PROGRAM_ID,
}

# Fixed distribution order: liquidity, community, team, marketing, reserve.
DEFAULT_ALLOCATIONS: List[Dict[str, Any]] = [
    {
        "name": "Liquidity Pool",
        "fraction": "0.40",
        "recipient": "mint_authority",
        "purpose": "Initial liquidity provision",
    },
    {
        "name": "Community",
        "fraction": "0.30",
        "recipient": "mint_authority",
        "purpose": "Community rewards and airdrops",
    },
    {
        "name": "Team",
        "fraction": "0.15",
        "recipient": "mint_authority",
        "purpose": "Team allocation with vesting",
    },
    {
        "name": "Marketing",
        "fraction": "0.10",
        "recipient": "mint_authority",
        "purpose": "Marketing campaigns and partnerships",
    },
    {
        "name": "Reserve",
        "fraction": "0.05",
        "recipient": "mint_authority",
        "purpose": "Future development and emergency fund",
    },
]


@dataclass(frozen=True)
class Allocation:
    """One named slice of the total supply."""

    name: str
    fraction: Decimal
    recipient: str = "mint_authority"  # credential name or base58 address
    purpose: str = ""


@dataclass
class NetworkConfig:
    """One entry of the ``network`` mapping."""

    name: str
    url: str
    commitment: str = "confirmed"
    mint_address: Optional[str] = None
    programs: Dict[str, str] = field(default_factory=lambda: dict(DEFAULT_PROGRAMS))

    def program(self, key: str) -> str:
        return self.programs.get(key) or DEFAULT_PROGRAMS[key]


@dataclass
class TokenConfig:
    name: str = ""
    symbol: str = ""
    decimals: int = 9
    total_supply: int = 0                 # in smallest units
    metadata_path: str = str(DEFAULT_METADATA_PATH)
    revoke_mint_authority: bool = True


@dataclass
class FeeConfig:
    transaction_fee: int = 5000           # lamports per signature


@dataclass
class LiquidityConfig:
    sol_amount: int = 0                   # lamports
    token_amount: int = 0                 # smallest token units
    fee_rate: float = 0.0025
    slippage: float = 0.005
    lock_period: int = 0                  # seconds
    pool_client: str = "simulated"


@dataclass
class ExecutionConfig:
    step_delay: float = 1.0               # seconds between steps (RPC rate limits)
    request_timeout: float = 30.0
    max_retries: int = 3
    rate_limit_backoff: float = 5.0
    keypair_dir: str = str(KEYPAIR_DIR)
    deployments_dir: str = str(DEPLOYMENTS_DIR)


@dataclass
class DeploymentConfig:
    """Settings for one run against one network. Treat as read-only."""

    network: NetworkConfig
    networks: Dict[str, NetworkConfig]
    token: TokenConfig = field(default_factory=TokenConfig)
    allocations: Tuple[Allocation, ...] = ()
    fees: FeeConfig = field(default_factory=FeeConfig)
    liquidity: LiquidityConfig = field(default_factory=LiquidityConfig)
    execution: ExecutionConfig = field(default_factory=ExecutionConfig)
    config_path: Optional[str] = None

    @classmethod
    def from_dict(cls, payload: Dict[str, Any], network: str) -> "DeploymentConfig":
        if not isinstance(payload, dict):
            raise ConfigError("Configuration root must be a JSON object")

        networks_payload = payload.get("network")
        if not isinstance(networks_payload, dict) or not networks_payload:
            raise ConfigError("Configuration has no 'network' mapping")
        networks = {
            name: _build_network(name, entry) for name, entry in networks_payload.items()
        }
        if network not in networks:
            raise ConfigError(
                f"Network '{network}' not found in configuration "
                f"(available: {', '.join(sorted(networks))})"
            )

        if not isinstance(payload.get("token"), dict):
            raise ConfigError("Configuration has no 'token' section")
        token = _build_section(TokenConfig, payload["token"], "token")
        if token.total_supply < 0:
            raise ConfigError("token.total_supply must not be negative")

        allocations_payload = payload.get("allocations")
        if allocations_payload is None:
            allocations_payload = DEFAULT_ALLOCATIONS

        return cls(
            network=networks[network],
            networks=networks,
            token=token,
            allocations=_build_allocations(allocations_payload),
            fees=_build_section(FeeConfig, payload.get("fees"), "fees"),
            liquidity=_build_section(LiquidityConfig, payload.get("liquidity"), "liquidity"),
            execution=_build_section(ExecutionConfig, payload.get("execution"), "execution"),
        )


def _build_section(section_cls, payload: Optional[Dict[str, Any]], label: str):
    payload = payload or {}
    if not isinstance(payload, dict):
        raise ConfigError(f"'{label}' must be a JSON object")
    # Fields starting with "_" are comments
    known = {f.name: f for f in fields(section_cls)}
    values: Dict[str, Any] = {}
    for key, value in payload.items():
        if key.startswith("_"):
            continue
        if key not in known:
            logger.debug("Ignoring unknown key %s.%s", label, key)
            continue
        default = getattr(section_cls(), key)
        try:
            if isinstance(default, bool):
                if not isinstance(value, bool):
                    raise ValueError(f"expected true/false, got {value!r}")
            elif isinstance(default, int):
                value = int(value)
            elif isinstance(default, float):
                value = float(value)
            elif isinstance(default, str):
                value = str(value)
        except (TypeError, ValueError) as exc:
            raise ConfigError(f"Invalid value for {label}.{key}: {exc}") from exc
        values[key] = value
    return section_cls(**values)


def _build_network(name: str, entry: Any) -> NetworkConfig:
    if isinstance(entry, str):
        entry = {"url": entry}
    if not isinstance(entry, dict) or not entry.get("url"):
        raise ConfigError(f"Network '{name}' must define a 'url'")
    programs = dict(DEFAULT_PROGRAMS)
    programs.update(entry.get("programs") or {})
    return NetworkConfig(
        name=name,
        url=str(entry["url"]),
        commitment=str(entry.get("commitment", "confirmed")),
        mint_address=entry.get("mint_address") or None,
        programs=programs,
    )


def _build_allocations(payload: Any) -> Tuple[Allocation, ...]:
    if not isinstance(payload, list):
        raise ConfigError("'allocations' must be a list")
    allocations = []
    total = Decimal(0)
    for index, entry in enumerate(payload, 1):
        if not isinstance(entry, dict) or "name" not in entry or "fraction" not in entry:
            raise ConfigError(f"Allocation #{index} needs 'name' and 'fraction'")
        try:
            # str() first so 0.15 stays 0.15 instead of its binary expansion
            fraction = Decimal(str(entry["fraction"]))
        except ArithmeticError as exc:
            raise ConfigError(f"Allocation '{entry['name']}' has invalid fraction") from exc
        if not fraction.is_finite():
            raise ConfigError(f"Allocation '{entry['name']}' has invalid fraction {fraction}")
        if not Decimal(0) <= fraction <= Decimal(1):
            raise ConfigError(
                f"Allocation '{entry['name']}' fraction {fraction} is outside [0, 1]"
            )
        total += fraction
        allocations.append(
            Allocation(
                name=str(entry["name"]),
                fraction=fraction,
                recipient=str(entry.get("recipient") or "mint_authority"),
                purpose=str(entry.get("purpose", "")),
            )
        )
    if total > Decimal(1):
        raise ConfigError(f"Allocation fractions sum to {total}, which exceeds 1.0")
    return tuple(allocations)


def load_config(path: Optional[str], network: str = "devnet") -> DeploymentConfig:
    """Load the deployment configuration at ``path`` for ``network``.

    Environment variables (higher priority than the config file):
    - TOKEN_DEPLOYER_RPC_URL: endpoint for the selected network
    - TOKEN_DEPLOYER_MINT_ADDRESS: existing mint on the selected network
    - TOKEN_DEPLOYER_KEYPAIR_DIR: directory holding keypair files
    - TOKEN_DEPLOYER_DEPLOYMENTS_DIR: directory for deployment records
    """
    from .paths import DEFAULT_CONFIG_PATH

    candidate = Path(path) if path else DEFAULT_CONFIG_PATH
    if not candidate.is_file():
        raise ConfigError(f"Configuration file not found: {candidate}")

    try:
        with candidate.open("r", encoding="utf-8") as handle:
            data = json.load(handle)
    except (OSError, json.JSONDecodeError) as exc:
        raise ConfigError(f"Failed to parse configuration {candidate}: {exc}") from exc

    config = DeploymentConfig.from_dict(data, network)
    config.config_path = str(candidate)

    env_url = os.getenv("TOKEN_DEPLOYER_RPC_URL")
    if env_url:
        config.network.url = env_url

    env_mint = os.getenv("TOKEN_DEPLOYER_MINT_ADDRESS")
    if env_mint:
        config.network.mint_address = env_mint

    env_keypair_dir = os.getenv("TOKEN_DEPLOYER_KEYPAIR_DIR")
    if env_keypair_dir:
        config.execution.keypair_dir = env_keypair_dir

    env_deployments_dir = os.getenv("TOKEN_DEPLOYER_DEPLOYMENTS_DIR")
    if env_deployments_dir:
        config.execution.deployments_dir = env_deployments_dir

    logger.debug("✅ Configuration loaded from %s", candidate)
    logger.debug("   Network: %s (%s)", config.network.name, config.network.url)
    logger.debug("   Token: %s (%s)", config.token.name, config.token.symbol)
    logger.debug("   Decimals: %s", config.token.decimals)
    logger.debug("   Total Supply: %s", config.token.total_supply)
    return config


@dataclass
class Creator:
    address: str
    verified: bool = False
    share: int = 0


@dataclass
class TokenMetadata:
    """Off-chain metadata that the on-chain metadata account points to."""

    name: str
    symbol: str
    uri: str
    description: str = ""
    seller_fee_basis_points: int = 0
    creators: List[Creator] = field(default_factory=list)
    collection: Optional[str] = None
    collection_name: Optional[str] = None
    is_mutable: bool = True


def load_token_metadata(path: str) -> TokenMetadata:
    """Load ``token-metadata.json``.

    The URI is taken from ``uri`` when present, otherwise derived from
    ``social.website`` as ``<website>/metadata/token-metadata.json``.
    """
    candidate = Path(path)
    if not candidate.is_file():
        raise ConfigError(f"Token metadata file not found: {candidate}")
    try:
        data = json.loads(candidate.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise ConfigError(f"Failed to parse token metadata {candidate}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Token metadata {candidate} must be a JSON object")

    missing = [key for key in ("name", "symbol") if not data.get(key)]
    if missing:
        raise ConfigError(f"Token metadata is missing: {', '.join(missing)}")

    uri = data.get("uri")
    if not uri:
        social = data.get("social") or {}
        website = social.get("website") if isinstance(social, dict) else None
        if not website:
            raise ConfigError("Token metadata needs 'uri' or 'social.website'")
        uri = website.rstrip("/") + "/metadata/token-metadata.json"

    try:
        creators = [
            Creator(
                address=str(entry["address"]),
                verified=bool(entry.get("verified", False)),
                share=int(entry.get("share", 0)),
            )
            for entry in (data.get("properties") or {}).get("creators") or []
        ]
    except (AttributeError, KeyError, TypeError, ValueError) as exc:
        raise ConfigError(f"Token metadata has an invalid creator entry: {exc}") from exc
    collection = data.get("collection") or {}
    if not isinstance(collection, dict):
        raise ConfigError("Token metadata 'collection' must be a JSON object")
    try:
        seller_fee_basis_points = int(data.get("seller_fee_basis_points", 0))
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Token metadata has an invalid seller_fee_basis_points: {exc}") from exc

    metadata = TokenMetadata(
        name=str(data["name"]),
        symbol=str(data["symbol"]),
        uri=str(uri),
        description=str(data.get("description", "")),
        seller_fee_basis_points=seller_fee_basis_points,
        creators=creators,
        collection=collection.get("key") or None,
        collection_name=collection.get("name") or None,
        is_mutable=bool(data.get("is_mutable", True)),
    )
    logger.debug("✅ Metadata loaded: %s (%s)", metadata.name, metadata.symbol)
    return metadata
