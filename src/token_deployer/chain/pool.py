"""Stand-in AMM client.

Derives the pool address the way an AMM program would (a PDA over the pair
and the owner) and returns locally generated receipts. Nothing is submitted
to the cluster; a real AMM integration plugs in behind LiquidityPoolClient.
"""

from __future__ import annotations

import hashlib
import logging
import time

from solders.keypair import Keypair
from solders.pubkey import Pubkey

from .base import LiquidityLock, LiquidityPoolClient, PoolCreated

logger = logging.getLogger(__name__)


class SimulatedPoolClient(LiquidityPoolClient):
    def __init__(self, program_id: Pubkey) -> None:
        self.program_id = program_id

    def _receipt(self, *parts: object) -> str:
        token = "-".join(str(part) for part in parts) + f"-{time.time_ns()}"
        return "simulated-" + hashlib.sha256(token.encode("utf-8")).hexdigest()[:32]

    def create_pool(
        self, owner: Keypair, mint: Pubkey, sol_amount: int, token_amount: int, fee_rate: float
    ) -> PoolCreated:
        pool_address, _bump = Pubkey.find_program_address(
            [b"amm_pool", bytes(mint), bytes(owner.pubkey())], self.program_id
        )
        logger.info("   Pool type: %s/SOL, fee rate %.2f%%", mint, fee_rate * 100)
        return PoolCreated(
            pool_address=pool_address,
            signature=self._receipt("create", pool_address, sol_amount, token_amount),
        )

    def add_liquidity(
        self, owner: Keypair, pool: Pubkey, sol_amount: int, token_amount: int, slippage: float
    ) -> str:
        logger.info("   Slippage tolerance: %.2f%%", slippage * 100)
        return self._receipt("add", pool, sol_amount, token_amount)

    def lock_liquidity(self, authority: Keypair, pool: Pubkey, lock_period: int) -> LiquidityLock:
        lock_end_time = int(time.time()) + lock_period
        return LiquidityLock(
            signature=self._receipt("lock", pool, lock_end_time),
            lock_end_time=lock_end_time,
        )
