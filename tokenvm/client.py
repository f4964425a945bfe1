"""Client for the token JSON-RPC service."""

from __future__ import annotations

import base64
import itertools
import json
import logging
import time
import urllib.error
import urllib.request
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

from .errors import AssetNotFoundError, RPCError, TxNotFoundError
from .ids import encode_id
from .server import DEFAULT_NAMESPACE, JSONRPC_ENDPOINT

logger = logging.getLogger(__name__)

Transport = Callable[[str, dict], Any]


@dataclass(frozen=True)
class TxStatus:
    found: bool
    success: bool
    timestamp: int


@dataclass(frozen=True)
class AssetStatus:
    exists: bool
    metadata: bytes
    supply: int
    owner: str
    warp: bool


def http_transport(url: str, payload: dict, timeout: float = 30.0) -> Any:
    """POST a JSON-RPC payload over HTTP and return the decoded response."""
    request = urllib.request.Request(
        url,
        data=json.dumps(payload).encode("utf-8"),
        headers={"Content-Type": "application/json"},
        method="POST",
    )
    try:
        with urllib.request.urlopen(request, timeout=timeout) as response:
            body = response.read()
    except urllib.error.HTTPError as exc:
        body = exc.read()
        if not body:
            raise RPCError(f"request failed with status {exc.code}") from None
    except urllib.error.URLError as exc:
        raise RPCError(f"request failed: {exc.reason}") from None
    try:
        return json.loads(body)
    except ValueError:
        raise RPCError("invalid response body") from None


class JSONRPCClient:
    """Queries a node's token endpoint."""

    def __init__(
        self,
        uri: str,
        chain_id: bytes,
        *,
        namespace: str = DEFAULT_NAMESPACE,
        transport: Transport | None = None,
        poll_interval: float = 0.5,
        timeout: float | None = None,
    ) -> None:
        self.url = uri.removesuffix("/") + JSONRPC_ENDPOINT
        self.chain_id = bytes(chain_id)
        self._namespace = namespace
        self._transport = transport or http_transport
        self._poll_interval = poll_interval
        self._timeout = timeout
        self._ids = itertools.count(1)
        self._genesis: Any = None

    def _request(self, method: str, params: dict[str, Any] | None) -> dict[str, Any]:
        payload = {
            "jsonrpc": "2.0",
            "method": f"{self._namespace}.{method}",
            "params": params,
            "id": next(self._ids),
        }
        response = self._transport(self.url, payload)
        if not isinstance(response, Mapping):
            raise RPCError("invalid response")
        error = response.get("error")
        if error:
            if isinstance(error, Mapping):
                raise RPCError(str(error.get("message", "")), error.get("code"))
            raise RPCError(str(error))
        result = response.get("result")
        return result if isinstance(result, Mapping) else {}

    def genesis(self) -> Any:
        if self._genesis is None:
            self._genesis = self._request("genesis", None).get("genesis")
        return self._genesis

    def tx(self, tx_id: bytes) -> TxStatus:
        try:
            reply = self._request("tx", {"txId": encode_id(tx_id)})
        except RPCError as exc:
            # The error crosses the wire as text, so it is matched by message.
            if TxNotFoundError.default_message in str(exc):
                return TxStatus(False, False, -1)
            raise
        return TxStatus(True, bool(reply.get("success")), int(reply.get("timestamp", 0)))

    def asset(self, asset: bytes) -> AssetStatus:
        try:
            reply = self._request("asset", {"asset": encode_id(asset)})
        except RPCError as exc:
            if AssetNotFoundError.default_message in str(exc):
                return AssetStatus(False, b"", 0, "", False)
            raise
        metadata = reply.get("metadata")
        return AssetStatus(
            True,
            base64.b64decode(metadata) if metadata else b"",
            int(reply.get("supply", 0)),
            str(reply.get("owner", "")),
            bool(reply.get("warp")),
        )

    def balance(self, address: str, asset: bytes) -> int:
        reply = self._request("balance", {"address": address, "asset": encode_id(asset)})
        return int(reply.get("amount", 0))

    def orders(self, pair: str) -> list[Any]:
        return list(self._request("orders", {"pair": pair}).get("orders") or [])

    def loan(self, asset: bytes, destination: bytes) -> int:
        reply = self._request(
            "loan", {"asset": encode_id(asset), "destination": encode_id(destination)}
        )
        return int(reply.get("amount", 0))

    def _wait(self, check: Callable[[], bool]) -> None:
        deadline = None if self._timeout is None else time.monotonic() + self._timeout
        while True:
            if check():
                return
            if deadline is not None and time.monotonic() >= deadline:
                raise TimeoutError("wait timed out")
            time.sleep(self._poll_interval)

    def wait_for_balance(self, address: str, asset: bytes, minimum: int) -> None:
        """Block until the balance of ``address`` reaches ``minimum``."""

        def check() -> bool:
            reached = self.balance(address, asset) >= minimum
            if not reached:
                logger.info("waiting for %d balance: %s", minimum, address)
            return reached

        self._wait(check)

    def wait_for_transaction(self, tx_id: bytes) -> bool:
        """Block until the transaction is known and return whether it succeeded."""
        outcome: list[TxStatus] = []

        def check() -> bool:
            status = self.tx(tx_id)
            outcome[:] = [status]
            return status.found

        self._wait(check)
        return outcome[0].success