"""JSON-RPC service that answers queries about token chain state."""

from __future__ import annotations

import base64
import dataclasses
from collections.abc import Callable, Mapping
from typing import Any, Protocol

from .addresses import address as format_address
from .addresses import parse_address
from .errors import AssetNotFoundError, RPCError, TokenVMError, TxNotFoundError
from .ids import EMPTY_ID, ID_LEN, decode_id, encode_id
from .storage import AssetInfo, TransactionRecord

JSONRPC_ENDPOINT = "/tokenapi"
ORDERS_TO_SEND = 128
DEFAULT_NAMESPACE = "tokenvm"

INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
SERVER_ERROR = -32000


class Controller(Protocol):
    """What the RPC service needs from the running chain."""

    def genesis(self) -> Any: ...

    def get_transaction(self, tx_id: bytes) -> TransactionRecord | None: ...

    def get_asset_from_state(self, asset: bytes) -> AssetInfo | None: ...

    def get_balance_from_state(self, public_key: bytes, asset: bytes) -> int: ...

    def orders(self, pair: str, limit: int) -> list[Any]: ...

    def get_loan_from_state(self, asset: bytes, destination: bytes) -> int: ...


def _jsonable(value: Any) -> Any:
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        value = dataclasses.asdict(value)
    if isinstance(value, Mapping):
        return {str(k): _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    if isinstance(value, (bytes, bytearray)):
        if len(value) == ID_LEN:
            return encode_id(bytes(value))
        return base64.b64encode(bytes(value)).decode("ascii")
    return value


def _param_id(params: Mapping[str, Any], key: str) -> bytes:
    value = params.get(key)
    if value is None:
        return EMPTY_ID
    if not isinstance(value, str):
        raise RPCError(f"{key} must be a string", INVALID_PARAMS)
    try:
        return decode_id(value)
    except ValueError as exc:
        raise RPCError(f"invalid {key}: {exc}", INVALID_PARAMS) from None


def _param_str(params: Mapping[str, Any], key: str) -> str:
    value = params.get(key, "")
    if value is None:
        return ""
    if not isinstance(value, str):
        raise RPCError(f"{key} must be a string", INVALID_PARAMS)
    return value


class JSONRPCServer:
    """Token query methods, callable directly or through JSON-RPC requests."""

    def __init__(self, controller: Controller, hrp: str, namespace: str = DEFAULT_NAMESPACE) -> None:
        self._controller = controller
        self._hrp = hrp
        self._namespace = namespace
        self._methods: dict[str, Callable[[Mapping[str, Any]], dict[str, Any]]] = {
            "genesis": lambda p: self.genesis(),
            "tx": lambda p: self.tx(_param_id(p, "txId")),
            "asset": lambda p: self.asset(_param_id(p, "asset")),
            "balance": lambda p: self.balance(_param_str(p, "address"), _param_id(p, "asset")),
            "orders": lambda p: self.orders(_param_str(p, "pair")),
            "loan": lambda p: self.loan(_param_id(p, "asset"), _param_id(p, "destination")),
        }

    def genesis(self) -> dict[str, Any]:
        return {"genesis": _jsonable(self._controller.genesis())}

    def tx(self, tx_id: bytes) -> dict[str, Any]:
        record = self._controller.get_transaction(tx_id)
        if record is None:
            raise TxNotFoundError()
        return {"timestamp": record.timestamp, "success": record.success, "units": record.units}

    def asset(self, asset: bytes) -> dict[str, Any]:
        info = self._controller.get_asset_from_state(asset)
        if info is None:
            raise AssetNotFoundError()
        return {
            "metadata": base64.b64encode(info.metadata).decode("ascii"),
            "supply": info.supply,
            "owner": format_address(info.owner, self._hrp),
            "warp": info.warp,
        }

    def balance(self, address: str, asset: bytes) -> dict[str, Any]:
        public_key = parse_address(address, self._hrp)
        return {"amount": self._controller.get_balance_from_state(public_key, asset)}

    def orders(self, pair: str) -> dict[str, Any]:
        found = self._controller.orders(pair, ORDERS_TO_SEND)
        return {"orders": [_jsonable(order) for order in found]}

    def loan(self, asset: bytes, destination: bytes) -> dict[str, Any]:
        return {"amount": self._controller.get_loan_from_state(asset, destination)}

    def handle(self, request: Any) -> dict[str, Any]:
        """Answer one decoded JSON-RPC 2.0 request with a response object."""
        request_id = request.get("id") if isinstance(request, Mapping) else None
        try:
            result = self._dispatch(request)
        except RPCError as exc:
            return self._error(request_id, exc.code or SERVER_ERROR, str(exc))
        except (TokenVMError, ValueError) as exc:
            return self._error(request_id, SERVER_ERROR, str(exc))
        return {"jsonrpc": "2.0", "result": result, "id": request_id}

    def _dispatch(self, request: Any) -> dict[str, Any]:
        if not isinstance(request, Mapping) or not isinstance(request.get("method"), str):
            raise RPCError("invalid request", INVALID_REQUEST)
        name: str = request["method"]
        prefix = self._namespace + "."
        handler = self._methods.get(name[len(prefix):]) if name.startswith(prefix) else None
        if handler is None:
            raise RPCError(f"method {name!r} not found", METHOD_NOT_FOUND)
        params = request.get("params")
        if params is None:
            params = {}
        if isinstance(params, list) and len(params) == 1 and isinstance(params[0], Mapping):
            params = params[0]
        if not isinstance(params, Mapping):
            raise RPCError("params must be an object", INVALID_PARAMS)
        return handler(params)

    @staticmethod
    def _error(request_id: Any, code: int, message: str) -> dict[str, Any]:
        return {"jsonrpc": "2.0", "error": {"code": code, "message": message}, "id": request_id}