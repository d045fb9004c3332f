"""
JSON-RPC chain reader.

Responsibilities:
- Issue eth_blockNumber / eth_getBlockByNumber / eth_getTransactionByHash /
  eth_getTransactionReceipt against a single configured endpoint.
- Classify failures: network errors, timeouts, HTTP 429 and 5xx become
  TransientFetchError (retried with exponential backoff); anything malformed
  becomes ProtocolError (never retried).
- Normalize results into chain_reader.models dataclasses.
"""

from __future__ import annotations

import itertools
import threading
import time
from typing import Any, Callable, Protocol

import httpx

from donation_monitor.chain_reader.models import Block, ChainTransaction, Receipt, hex_to_int
from donation_monitor.config.env import mask_rpc_url
from donation_monitor.core.exceptions import (
    BlockNotFoundError,
    ProtocolError,
    TransactionNotFoundError,
    TransientFetchError,
)
from donation_monitor.monitor_logging import get_logger

logger = get_logger(__name__)

DEFAULT_REQUEST_TIMEOUT_SEC = 15.0
DEFAULT_MAX_RETRIES = 2
DEFAULT_MIN_RETRY_DELAY_SEC = 0.5
DEFAULT_MAX_RETRY_DELAY_SEC = 8.0


class ChainReader(Protocol):
    """Read-only view of the chain used by the ingestion orchestrator."""

    def current_height(self) -> int: ...

    def get_block_with_transactions(self, height: int) -> Block: ...

    def get_transaction(self, tx_hash: str) -> ChainTransaction: ...

    def get_receipt(self, tx_hash: str) -> Receipt: ...


class JsonRpcChainReader:
    """
    Synchronous JSON-RPC client for an EVM node.

    Thread-safe: httpx.Client may be shared across the fetch worker threads,
    and request ids come from a locked counter.
    """

    def __init__(
        self,
        rpc_url: str,
        *,
        request_timeout_sec: float = DEFAULT_REQUEST_TIMEOUT_SEC,
        max_retries: int = DEFAULT_MAX_RETRIES,
        min_retry_delay_sec: float = DEFAULT_MIN_RETRY_DELAY_SEC,
        max_retry_delay_sec: float = DEFAULT_MAX_RETRY_DELAY_SEC,
        client: httpx.Client | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """
        Args:
            rpc_url: JSON-RPC HTTP endpoint (e.g. https://sepolia.base.org).
            request_timeout_sec: httpx timeout applied to every request.
            max_retries: Extra attempts after a TransientFetchError (0 = no retry).
            min_retry_delay_sec: Initial backoff delay.
            max_retry_delay_sec: Cap for backoff delay.
            client: Optional pre-built httpx.Client (tests pass one with MockTransport).
            sleep: Sleep function used between retries.
        """
        if not rpc_url.strip():
            raise ValueError("rpc_url must be non-empty")
        if max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        self._rpc_url = rpc_url.strip()
        self._max_retries = max_retries
        self._min_retry_delay = min_retry_delay_sec
        self._max_retry_delay = max_retry_delay_sec
        self._sleep = sleep
        self._owns_client = client is None
        self._client = client or httpx.Client(timeout=httpx.Timeout(request_timeout_sec))
        self._ids = itertools.count(1)
        self._id_lock = threading.Lock()

    @property
    def rpc_url(self) -> str:
        return self._rpc_url

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> "JsonRpcChainReader":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def _next_id(self) -> int:
        with self._id_lock:
            return next(self._ids)

    def current_height(self) -> int:
        return hex_to_int(self._call("eth_blockNumber", []), "blockNumber")

    def get_block_with_transactions(self, height: int) -> Block:
        if height < 0:
            raise ValueError("height must be >= 0")
        result = self._call("eth_getBlockByNumber", [hex(height), True])
        if result is None:
            raise BlockNotFoundError(height)
        return Block.from_rpc(result)

    def get_transaction(self, tx_hash: str) -> ChainTransaction:
        result = self._call("eth_getTransactionByHash", [tx_hash])
        if result is None:
            raise TransactionNotFoundError(tx_hash)
        return ChainTransaction.from_rpc(result)

    def get_receipt(self, tx_hash: str) -> Receipt:
        result = self._call("eth_getTransactionReceipt", [tx_hash])
        if result is None:
            raise TransactionNotFoundError(tx_hash)
        return Receipt.from_rpc(result)

    def _call(self, method: str, params: list[Any]) -> Any:
        """Perform one JSON-RPC call, retrying transient failures with backoff."""
        delay = self._min_retry_delay
        attempts = self._max_retries + 1
        for attempt in range(attempts):
            try:
                return self._call_once(method, params)
            except TransientFetchError as e:
                if attempt + 1 >= attempts:
                    logger.warning(
                        "rpc_give_up",
                        method=method,
                        attempts=attempts,
                        error=str(e),
                    )
                    raise
                logger.info(
                    "rpc_retry",
                    method=method,
                    attempt=attempt + 1,
                    max_retries=self._max_retries,
                    delay_sec=delay,
                    error=str(e),
                )
                self._sleep(delay)
                delay = min(delay * 2, self._max_retry_delay)
        raise AssertionError("unreachable")

    def _call_once(self, method: str, params: list[Any]) -> Any:
        body = {
            "jsonrpc": "2.0",
            "id": self._next_id(),
            "method": method,
            "params": params,
        }
        try:
            resp = self._client.post(self._rpc_url, json=body)
        except httpx.TimeoutException as e:
            raise TransientFetchError(f"{method} timed out: {e}") from e
        except httpx.TransportError as e:
            raise TransientFetchError(f"{method} transport error: {e}") from e
        except httpx.HTTPError as e:
            # Undecodable body (e.g. bad Content-Encoding)
            raise ProtocolError(f"{method} invalid response: {e}") from e

        if resp.status_code == 429 or resp.status_code >= 500:
            raise TransientFetchError(f"{method} HTTP {resp.status_code}")
        if resp.status_code >= 400:
            raise ProtocolError(f"{method} HTTP {resp.status_code}")
        try:
            data = resp.json()
        except ValueError as e:
            raise ProtocolError(f"{method} returned non-JSON body") from e
        if not isinstance(data, dict):
            raise ProtocolError(f"{method} returned {type(data).__name__}, expected object")
        if "error" in data and data["error"] is not None:
            err = data["error"]
            message = err.get("message", err) if isinstance(err, dict) else err
            code = err.get("code") if isinstance(err, dict) else None
            raise ProtocolError(f"RPC error in {method}: {message} (code={code})")
        if "result" not in data:
            raise ProtocolError(f"{method} response has no result")
        return data["result"]

    def __repr__(self) -> str:
        return f"JsonRpcChainReader(rpc_url={mask_rpc_url(self._rpc_url)!r})"
