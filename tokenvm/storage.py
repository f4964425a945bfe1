"""Key layout and value encoding of the token chain state."""

from __future__ import annotations

import struct
from collections.abc import Callable, Iterator, Sequence
from dataclasses import dataclass

from .addresses import address
from .errors import InvalidBalanceError, NotFoundError
from .ids import ID_LEN, encode_id

PUBLIC_KEY_LEN = 32
MAX_UINT64 = (1 << 64) - 1

TX_PREFIX = 0x0

BALANCE_PREFIX = 0x0
ASSET_PREFIX = 0x1
ORDER_PREFIX = 0x2
LOAN_PREFIX = 0x3
HEIGHT_PREFIX = 0x4
INCOMING_WARP_PREFIX = 0x5
OUTGOING_WARP_PREFIX = 0x6

_FAILURE = 0x0
_SUCCESS = 0x1

ReadState = Callable[[Sequence[bytes]], Sequence["bytes | None"]]


class MemoryDatabase:
    """A simple in-memory key/value store."""

    def __init__(self) -> None:
        self._data: dict[bytes, bytes] = {}

    def get_value(self, key: bytes) -> bytes:
        try:
            return self._data[bytes(key)]
        except KeyError:
            raise NotFoundError() from None

    def insert(self, key: bytes, value: bytes) -> None:
        self._data[bytes(key)] = bytes(value)

    def remove(self, key: bytes) -> None:
        self._data.pop(bytes(key), None)

    def read_state(self, keys: Sequence[bytes]) -> list[bytes | None]:
        """Return the value of each key, or None where it is missing."""
        return [self._data.get(bytes(k)) for k in keys]

    def __contains__(self, key: object) -> bool:
        return key in self._data

    def __len__(self) -> int:
        return len(self._data)

    def __iter__(self) -> Iterator[bytes]:
        return iter(self._data)


@dataclass(frozen=True)
class TransactionRecord:
    timestamp: int
    success: bool
    units: int


@dataclass(frozen=True)
class AssetInfo:
    metadata: bytes
    supply: int
    owner: bytes
    warp: bool


@dataclass(frozen=True)
class OrderInfo:
    in_asset: bytes
    in_tick: int
    out_asset: bytes
    out_tick: int
    remaining: int
    owner: bytes


def _fixed(value: bytes, length: int, what: str) -> bytes:
    value = bytes(value)
    if len(value) != length:
        raise ValueError(f"{what} must be {length} bytes, got {len(value)}")
    return value


def _id(value: bytes) -> bytes:
    return _fixed(value, ID_LEN, "id")


def _pk(value: bytes) -> bytes:
    return _fixed(value, PUBLIC_KEY_LEN, "public key")


def _u64(value: int) -> int:
    if not 0 <= value <= MAX_UINT64:
        raise ValueError(f"{value} does not fit in an unsigned 64-bit integer")
    return value


def _get(db: MemoryDatabase, key: bytes) -> bytes | None:
    try:
        return db.get_value(key)
    except NotFoundError:
        return None


def _read_one(read_state: ReadState, key: bytes) -> bytes | None:
    return read_state([key])[0]


def _describe(public_key: bytes, hrp: str | None) -> str:
    return address(public_key, hrp) if hrp else public_key.hex()


# transactions


def prefix_tx_key(tx_id: bytes) -> bytes:
    return bytes([TX_PREFIX]) + _id(tx_id)


def store_transaction(db, tx_id: bytes, timestamp: int, success: bool, units: int) -> None:
    value = struct.pack(">qBQ", timestamp, _SUCCESS if success else _FAILURE, _u64(units))
    db.insert(prefix_tx_key(tx_id), value)


def get_transaction(db, tx_id: bytes) -> TransactionRecord | None:
    """Return the stored transaction, or None when it is unknown."""
    value = _get(db, prefix_tx_key(tx_id))
    if value is None:
        return None
    timestamp, flag, units = struct.unpack_from(">qBQ", value)
    return TransactionRecord(timestamp, flag != _FAILURE, units)


# balances


def prefix_balance_key(public_key: bytes, asset: bytes) -> bytes:
    return bytes([BALANCE_PREFIX]) + _pk(public_key) + _id(asset)


def _decode_u64(value: bytes | None) -> int:
    return 0 if value is None else struct.unpack_from(">Q", value)[0]


def get_balance(db, public_key: bytes, asset: bytes) -> int:
    """Return the balance; a missing record means zero."""
    return _decode_u64(_get(db, prefix_balance_key(public_key, asset)))


def get_balance_from_state(read_state: ReadState, public_key: bytes, asset: bytes) -> int:
    return _decode_u64(_read_one(read_state, prefix_balance_key(public_key, asset)))


def set_balance(db, public_key: bytes, asset: bytes, balance: int) -> None:
    db.insert(prefix_balance_key(public_key, asset), struct.pack(">Q", _u64(balance)))


def delete_balance(db, public_key: bytes, asset: bytes) -> None:
    db.remove(prefix_balance_key(public_key, asset))


def add_balance(db, public_key: bytes, asset: bytes, amount: int, hrp: str | None = None) -> None:
    key = prefix_balance_key(public_key, asset)
    balance = _decode_u64(_get(db, key))
    new_balance = balance + amount
    if new_balance > MAX_UINT64:
        raise InvalidBalanceError(
            f"invalid balance: could not add balance (asset={encode_id(asset)}, "
            f"bal={balance}, addr={_describe(public_key, hrp)}, amount={amount})"
        )
    db.insert(key, struct.pack(">Q", new_balance))


def sub_balance(db, public_key: bytes, asset: bytes, amount: int, hrp: str | None = None) -> None:
    key = prefix_balance_key(public_key, asset)
    balance = _decode_u64(_get(db, key))
    if amount > balance:
        raise InvalidBalanceError(
            f"invalid balance: could not subtract balance (asset={encode_id(asset)}, "
            f"bal={balance}, addr={_describe(public_key, hrp)}, amount={amount})"
        )
    new_balance = balance - amount
    if new_balance == 0:
        # An empty balance is removed rather than stored as zero.
        db.remove(key)
    else:
        db.insert(key, struct.pack(">Q", new_balance))


# assets


def prefix_asset_key(asset: bytes) -> bytes:
    return bytes([ASSET_PREFIX]) + _id(asset)


def _decode_asset(value: bytes | None) -> AssetInfo | None:
    if value is None:
        return None
    (length,) = struct.unpack_from(">H", value)
    offset = 2 + length
    metadata = value[2:offset]
    (supply,) = struct.unpack_from(">Q", value, offset)
    offset += 8
    owner = value[offset : offset + PUBLIC_KEY_LEN]
    warp = value[offset + PUBLIC_KEY_LEN] == 0x1
    return AssetInfo(bytes(metadata), supply, bytes(owner), warp)


def get_asset_from_state(read_state: ReadState, asset: bytes) -> AssetInfo | None:
    return _decode_asset(_read_one(read_state, prefix_asset_key(asset)))


def get_asset(db, asset: bytes) -> AssetInfo | None:
    """Return the asset, or None when it does not exist."""
    return _decode_asset(_get(db, prefix_asset_key(asset)))


def set_asset(db, asset: bytes, metadata: bytes, supply: int, owner: bytes, warp: bool) -> None:
    metadata = bytes(metadata)
    if len(metadata) > 0xFFFF:
        raise ValueError("metadata is too long")
    value = (
        struct.pack(">H", len(metadata))
        + metadata
        + struct.pack(">Q", _u64(supply))
        + _pk(owner)
        + bytes([0x1 if warp else 0x0])
    )
    db.insert(prefix_asset_key(asset), value)


def delete_asset(db, asset: bytes) -> None:
    db.remove(prefix_asset_key(asset))


# orders


def prefix_order_key(tx_id: bytes) -> bytes:
    return bytes([ORDER_PREFIX]) + _id(tx_id)


def set_order(
    db,
    tx_id: bytes,
    in_asset: bytes,
    in_tick: int,
    out_asset: bytes,
    out_tick: int,
    supply: int,
    owner: bytes,
) -> None:
    value = (
        _id(in_asset)
        + struct.pack(">Q", _u64(in_tick))
        + _id(out_asset)
        + struct.pack(">QQ", _u64(out_tick), _u64(supply))
        + _pk(owner)
    )
    db.insert(prefix_order_key(tx_id), value)


def get_order(db, order: bytes) -> OrderInfo | None:
    """Return the order, or None when it does not exist."""
    value = _get(db, prefix_order_key(order))
    if value is None:
        return None
    in_asset = value[:ID_LEN]
    (in_tick,) = struct.unpack_from(">Q", value, ID_LEN)
    out_start = ID_LEN + 8
    out_asset = value[out_start : out_start + ID_LEN]
    out_tick, remaining = struct.unpack_from(">QQ", value, out_start + ID_LEN)
    owner_start = 2 * ID_LEN + 24
    owner = value[owner_start : owner_start + PUBLIC_KEY_LEN]
    return OrderInfo(bytes(in_asset), in_tick, bytes(out_asset), out_tick, remaining, bytes(owner))


def delete_order(db, order: bytes) -> None:
    db.remove(prefix_order_key(order))


# loans


def prefix_loan_key(asset: bytes, destination: bytes) -> bytes:
    return bytes([LOAN_PREFIX]) + _id(asset) + _id(destination)


def get_loan_from_state(read_state: ReadState, asset: bytes, destination: bytes) -> int:
    return _decode_u64(_read_one(read_state, prefix_loan_key(asset, destination)))


def get_loan(db, asset: bytes, destination: bytes) -> int:
    return _decode_u64(_get(db, prefix_loan_key(asset, destination)))


def set_loan(db, asset: bytes, destination: bytes, amount: int) -> None:
    db.insert(prefix_loan_key(asset, destination), struct.pack(">Q", _u64(amount)))


def add_loan(db, asset: bytes, destination: bytes, amount: int) -> None:
    loan = get_loan(db, asset, destination)
    new_loan = loan + amount
    if new_loan > MAX_UINT64:
        raise InvalidBalanceError(
            f"invalid balance: could not add loan (asset={encode_id(asset)}, "
            f"destination={encode_id(destination)}, amount={amount})"
        )
    set_loan(db, asset, destination, new_loan)


def sub_loan(db, asset: bytes, destination: bytes, amount: int) -> None:
    loan = get_loan(db, asset, destination)
    if amount > loan:
        raise InvalidBalanceError(
            f"invalid balance: could not subtract loan (asset={encode_id(asset)}, "
            f"destination={encode_id(destination)}, amount={amount})"
        )
    new_loan = loan - amount
    if new_loan == 0:
        db.remove(prefix_loan_key(asset, destination))
    else:
        set_loan(db, asset, destination, new_loan)


# chain bookkeeping


def height_key() -> bytes:
    return bytes([HEIGHT_PREFIX])


def incoming_warp_key_prefix(source_chain_id: bytes, msg_id: bytes) -> bytes:
    return bytes([INCOMING_WARP_PREFIX]) + _id(source_chain_id) + _id(msg_id)


def outgoing_warp_key_prefix(tx_id: bytes) -> bytes:
    return bytes([OUTGOING_WARP_PREFIX]) + _id(tx_id)