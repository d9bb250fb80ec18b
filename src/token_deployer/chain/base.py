"""Capability interfaces for the on-chain programs, and their factory."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

from solders.keypair import Keypair
from solders.pubkey import Pubkey

from ..errors import ConfigError

if TYPE_CHECKING:
    from ..config import DeploymentConfig, TokenMetadata
    from .rpc import RpcConnection


class TokenProgramClient(ABC):
    """Token-program operations used by the mint and revoke actions."""

    @abstractmethod
    def create_mint(
        self,
        payer: Keypair,
        mint_authority: Pubkey,
        freeze_authority: Optional[Pubkey],
        decimals: int,
    ) -> Pubkey:
        """Create a new mint and return its address."""

    @abstractmethod
    def get_or_create_associated_account(
        self, payer: Keypair, mint: Pubkey, owner: Pubkey
    ) -> Pubkey:
        """Return the owner's associated token account, creating it if needed."""

    @abstractmethod
    def mint_to(
        self,
        payer: Keypair,
        mint: Pubkey,
        destination: Pubkey,
        authority: Keypair,
        amount: int,
    ) -> str:
        """Mint ``amount`` units into ``destination``; returns the signature."""

    @abstractmethod
    def set_authority(
        self,
        payer: Keypair,
        mint: Pubkey,
        current_authority: Keypair,
        authority_type: str,
        new_authority: Optional[Pubkey] = None,
    ) -> str:
        """Change (or with ``new_authority=None`` revoke) a mint authority."""


class MetadataProgramClient(ABC):
    @abstractmethod
    def create_metadata_account_v3(
        self,
        payer: Keypair,
        mint: Pubkey,
        mint_authority: Keypair,
        update_authority: Keypair,
        metadata: "TokenMetadata",
    ) -> "MetadataAccountResult":
        """Create the metadata account for ``mint``."""


@dataclass
class MetadataAccountResult:
    metadata_account: Pubkey
    signature: str


@dataclass
class PoolCreated:
    pool_address: Pubkey
    signature: str


@dataclass
class LiquidityLock:
    signature: str
    lock_end_time: int


class LiquidityPoolClient(ABC):
    """Pool-create / add-liquidity / lock operations of an AMM."""

    @abstractmethod
    def create_pool(
        self, owner: Keypair, mint: Pubkey, sol_amount: int, token_amount: int, fee_rate: float
    ) -> PoolCreated:
        ...

    @abstractmethod
    def add_liquidity(
        self, owner: Keypair, pool: Pubkey, sol_amount: int, token_amount: int, slippage: float
    ) -> str:
        ...

    @abstractmethod
    def lock_liquidity(self, authority: Keypair, pool: Pubkey, lock_period: int) -> LiquidityLock:
        ...


@dataclass
class ChainClients:
    token: TokenProgramClient
    metadata: MetadataProgramClient
    pool: LiquidityPoolClient


def create_chain_clients(config: "DeploymentConfig", connection: "RpcConnection") -> ChainClients:
    """Build the program clients for the selected network.

    Raises:
        ConfigError: If ``liquidity.pool_client`` names an unsupported client
    """
    from .metadata import MetaplexMetadataClient
    from .spl_token import SplTokenClient

    token = SplTokenClient(connection)
    metadata = MetaplexMetadataClient(
        connection,
        program_id=Pubkey.from_string(config.network.program("token_metadata")),
    )

    pool_client = config.liquidity.pool_client.lower()
    if pool_client == "simulated":
        from .pool import SimulatedPoolClient
        pool = SimulatedPoolClient(program_id=Pubkey.from_string(config.network.program("amm")))
    else:
        raise ConfigError(
            f"Unsupported pool client: {pool_client}. Supported pool clients: simulated"
        )
    return ChainClients(token=token, metadata=metadata, pool=pool)
