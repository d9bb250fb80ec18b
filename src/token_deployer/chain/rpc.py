"""Solana RPC connection built on solana-py's ``Client``."""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, Dict, List, Optional, Tuple

from solana.exceptions import SolanaRpcException
from solana.rpc.api import Client
from solana.rpc.commitment import Commitment
from solana.rpc.core import RPCException, TransactionExpiredBlockheightExceededError, UnconfirmedTxError
from solana.rpc.types import TxOpts
from solders.hash import Hash
from solders.pubkey import Pubkey
from solders.signature import Signature
from solders.transaction import VersionedTransaction

logger = logging.getLogger(__name__)


class RpcError(RuntimeError):
    """Raised when the endpoint is unreachable or returns an RPC error."""

    def __init__(self, message: str, code: Optional[int] = None) -> None:
        self.code = code
        super().__init__(message if code is None else f"{message} (code {code})")


def _pubkey(address: Any) -> Pubkey:
    if isinstance(address, Pubkey):
        return address
    try:
        return Pubkey.from_string(str(address))
    except ValueError as exc:
        raise RpcError(f"Invalid address: {address}") from exc


def _http_status(exc: BaseException) -> Optional[int]:
    """HTTP status of the transport error behind ``exc``, if there is one."""
    cause = exc.__cause__
    while cause is not None:
        status = getattr(getattr(cause, "response", None), "status_code", None)
        if status is not None:
            return int(status)
        cause = cause.__cause__
    return None


def _rpc_message(exc: RPCException) -> str:
    error = exc.args[0] if exc.args else exc
    return str(getattr(error, "message", error))


class RpcConnection:
    """One cluster endpoint, wrapping :class:`solana.rpc.api.Client`.

    The client carries ``timeout`` on every request. HTTP 429 responses are
    retried with a linear backoff up to ``max_retries`` attempts; every other
    failure is raised as :class:`RpcError`.
    """

    def __init__(
        self,
        url: str,
        commitment: str = "confirmed",
        timeout: float = 30.0,
        max_retries: int = 3,
        rate_limit_backoff: float = 5.0,
        client: Optional[Client] = None,
    ) -> None:
        self.url = url
        self.commitment = Commitment(commitment)
        self.timeout = timeout
        self.max_retries = max(1, max_retries)
        self.rate_limit_backoff = rate_limit_backoff
        self.client = client or Client(url, commitment=self.commitment, timeout=timeout)

    def _request(self, method: str, call: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        for attempt in range(self.max_retries):
            try:
                return call(*args, **kwargs)
            except RPCException as exc:
                raise RpcError(f"{method} failed: {_rpc_message(exc)}") from exc
            except SolanaRpcException as exc:
                status = _http_status(exc)
                if status != 429:
                    raise RpcError(f"{method} request to {self.url} failed: {exc}", code=status) from exc
            wait_time = self.rate_limit_backoff * (attempt + 1)
            logger.warning("Rate limited on %s. Waiting %.1fs before retry...", method, wait_time)
            time.sleep(wait_time)

        raise RpcError(f"{method} rate limited after {self.max_retries} attempts", code=429)

    # --- read-only queries -------------------------------------------------

    def get_version(self) -> str:
        return self._request("getVersion", self.client.get_version).value.solana_core

    def get_slot(self) -> int:
        return self._request("getSlot", self.client.get_slot, self.commitment).value

    def get_balance(self, address: Any) -> int:
        """Lamport balance of ``address``."""
        return self._request("getBalance", self.client.get_balance, _pubkey(address), self.commitment).value

    def get_token_account_balance(self, address: Any) -> int:
        """Raw (smallest-unit) balance of a token account."""
        response = self._request(
            "getTokenAccountBalance",
            self.client.get_token_account_balance,
            _pubkey(address),
            self.commitment,
        )
        return int(response.value.amount)

    def get_account_info(self, address: Any) -> Optional[Any]:
        """The account at ``address``, or None when it does not exist."""
        response = self._request(
            "getAccountInfo", self.client.get_account_info, _pubkey(address), self.commitment
        )
        return response.value

    def get_latest_blockhash(self) -> Tuple[Hash, int]:
        """Latest blockhash and the last block height it stays valid for."""
        value = self._request("getLatestBlockhash", self.client.get_latest_blockhash, self.commitment).value
        return value.blockhash, value.last_valid_block_height

    def get_minimum_balance_for_rent_exemption(self, size: int) -> int:
        return self._request(
            "getMinimumBalanceForRentExemption",
            self.client.get_minimum_balance_for_rent_exemption,
            size,
            self.commitment,
        ).value

    def get_signature_statuses(self, signatures: List[str]) -> List[Optional[Any]]:
        parsed = [Signature.from_string(signature) for signature in signatures]
        return self._request("getSignatureStatuses", self.client.get_signature_statuses, parsed).value

    # --- submission --------------------------------------------------------

    def send_transaction(self, transaction: VersionedTransaction) -> str:
        opts = TxOpts(skip_confirmation=True, preflight_commitment=self.commitment)
        response = self._request("sendTransaction", self.client.send_transaction, transaction, opts=opts)
        return str(response.value)

    def confirm_transaction(self, signature: str, last_valid_block_height: int) -> None:
        """Block until ``signature`` reaches the connection's commitment, or raise.

        Raises:
            RpcError: The transaction failed on chain or its blockhash expired
        """
        try:
            response = self._request(
                "confirmTransaction",
                self.client.confirm_transaction,
                Signature.from_string(signature),
                self.commitment,
                last_valid_block_height=last_valid_block_height,
            )
        except (UnconfirmedTxError, TransactionExpiredBlockheightExceededError) as exc:
            raise RpcError(f"Transaction {signature} was not confirmed: {exc}") from exc
        status = response.value[0]
        if status is not None and status.err is not None:
            raise RpcError(f"Transaction {signature} failed: {status.err}")

    def check_health(self) -> Dict[str, Any]:
        return {"version": self.get_version(), "slot": self.get_slot()}
