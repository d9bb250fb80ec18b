"""Chain adapters: JSON-RPC connection and program clients."""

from .base import (
    ChainClients,
    LiquidityLock,
    LiquidityPoolClient,
    MetadataAccountResult,
    MetadataProgramClient,
    PoolCreated,
    TokenProgramClient,
    create_chain_clients,
)
from .rpc import RpcConnection, RpcError

__all__ = [
    "ChainClients",
    "LiquidityLock",
    "LiquidityPoolClient",
    "MetadataAccountResult",
    "MetadataProgramClient",
    "PoolCreated",
    "TokenProgramClient",
    "create_chain_clients",
    "RpcConnection",
    "RpcError",
]
