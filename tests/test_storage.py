import pytest

from tokenvm.errors import InvalidBalanceError, NotFoundError
from tokenvm.ids import encode_id
from tokenvm import storage
from tokenvm.storage import (
    MAX_UINT64,
    AssetInfo,
    MemoryDatabase,
    OrderInfo,
    TransactionRecord,
)

TX = bytes([7]) * 32
ASSET = bytes([1]) * 32
OTHER_ASSET = bytes([2]) * 32
DEST = bytes([3]) * 32
PK = bytes([9]) * 32


@pytest.fixture
def db():
    return MemoryDatabase()


def test_memory_database_missing_raises(db):
    with pytest.raises(NotFoundError):
        db.get_value(b"missing")
    assert db.read_state([b"missing"]) == [None]


def test_key_prefixes():
    assert storage.prefix_tx_key(TX) == b"\x00" + TX
    assert storage.prefix_asset_key(ASSET) == b"\x01" + ASSET
    assert storage.prefix_order_key(TX) == b"\x02" + TX
    assert storage.prefix_loan_key(ASSET, DEST) == b"\x03" + ASSET + DEST
    assert storage.prefix_balance_key(PK, ASSET) == b"\x00" + PK + ASSET
    assert storage.height_key() == b"\x04"
    assert storage.incoming_warp_key_prefix(ASSET, DEST) == b"\x05" + ASSET + DEST
    assert storage.outgoing_warp_key_prefix(TX) == b"\x06" + TX


def test_bad_id_length_rejected():
    with pytest.raises(ValueError):
        storage.prefix_tx_key(b"short")


def test_transaction_round_trip(db):
    assert storage.get_transaction(db, TX) is None
    storage.store_transaction(db, TX, -5, True, 472)
    assert storage.get_transaction(db, TX) == TransactionRecord(-5, True, 472)
    storage.store_transaction(db, TX, 100, False, 0)
    assert storage.get_transaction(db, TX) == TransactionRecord(100, False, 0)


def test_transaction_wire_layout(db):
    storage.store_transaction(db, TX, 1, True, 2)
    raw = db.get_value(storage.prefix_tx_key(TX))
    assert raw == (1).to_bytes(8, "big") + b"\x01" + (2).to_bytes(8, "big")


def test_balance_missing_is_zero(db):
    assert storage.get_balance(db, PK, ASSET) == 0
    assert storage.get_balance_from_state(db.read_state, PK, ASSET) == 0


def test_balance_set_get_delete(db):
    storage.set_balance(db, PK, ASSET, 5000)
    assert storage.get_balance(db, PK, ASSET) == 5000
    assert storage.get_balance_from_state(db.read_state, PK, ASSET) == 5000
    assert storage.get_balance(db, PK, OTHER_ASSET) == 0
    storage.delete_balance(db, PK, ASSET)
    assert storage.get_balance(db, PK, ASSET) == 0


def test_add_and_sub_balance(db):
    storage.add_balance(db, PK, ASSET, 100)
    storage.add_balance(db, PK, ASSET, 50)
    assert storage.get_balance(db, PK, ASSET) == 150
    storage.sub_balance(db, PK, ASSET, 30)
    assert storage.get_balance(db, PK, ASSET) == 120


def test_sub_balance_to_zero_removes_record(db):
    storage.set_balance(db, PK, ASSET, 10)
    storage.sub_balance(db, PK, ASSET, 10)
    assert storage.prefix_balance_key(PK, ASSET) not in db


def test_add_balance_overflow(db):
    storage.set_balance(db, PK, ASSET, MAX_UINT64)
    with pytest.raises(InvalidBalanceError) as info:
        storage.add_balance(db, PK, ASSET, 1, "token")
    assert "could not add balance" in str(info.value)
    assert encode_id(ASSET) in str(info.value)
    assert storage.get_balance(db, PK, ASSET) == MAX_UINT64


def test_sub_balance_underflow(db):
    storage.set_balance(db, PK, ASSET, 4)
    with pytest.raises(InvalidBalanceError) as info:
        storage.sub_balance(db, PK, ASSET, 5)
    assert str(info.value).startswith("invalid balance")
    assert storage.get_balance(db, PK, ASSET) == 4


def test_asset_round_trip(db):
    assert storage.get_asset(db, ASSET) is None
    storage.set_asset(db, ASSET, b"blah", 2900, PK, True)
    expected = AssetInfo(b"blah", 2900, PK, True)
    assert storage.get_asset(db, ASSET) == expected
    assert storage.get_asset_from_state(db.read_state, ASSET) == expected


def test_asset_wire_layout(db):
    meta = b"1"
    storage.set_asset(db, ASSET, meta, 15, PK, False)
    raw = db.get_value(storage.prefix_asset_key(ASSET))
    assert raw[:2] == len(meta).to_bytes(2, "big")
    assert raw[2 : 2 + len(meta)] == meta
    assert raw[-1:] == b"\x00"
    assert raw[-1 - len(PK) : -1] == PK


def test_asset_empty_metadata_and_delete(db):
    storage.set_asset(db, ASSET, b"", 0, PK, False)
    info = storage.get_asset(db, ASSET)
    assert info.metadata == b""
    assert info.warp is False
    storage.delete_asset(db, ASSET)
    assert storage.get_asset_from_state(db.read_state, ASSET) is None


def test_order_round_trip(db):
    assert storage.get_order(db, TX) is None
    storage.set_order(db, TX, ASSET, 4, OTHER_ASSET, 1, 5, PK)
    assert storage.get_order(db, TX) == OrderInfo(ASSET, 4, OTHER_ASSET, 1, 5, PK)
    storage.delete_order(db, TX)
    assert storage.get_order(db, TX) is None


def test_loans(db):
    assert storage.get_loan(db, ASSET, DEST) == 0
    storage.add_loan(db, ASSET, DEST, 100)
    storage.add_loan(db, ASSET, DEST, 10)
    assert storage.get_loan(db, ASSET, DEST) == 110
    assert storage.get_loan_from_state(db.read_state, ASSET, DEST) == 110
    storage.sub_loan(db, ASSET, DEST, 110)
    assert storage.prefix_loan_key(ASSET, DEST) not in db


def test_loan_errors(db):
    with pytest.raises(InvalidBalanceError, match="could not subtract loan"):
        storage.sub_loan(db, ASSET, DEST, 1)
    storage.set_loan(db, ASSET, DEST, MAX_UINT64)
    with pytest.raises(InvalidBalanceError, match="could not add loan"):
        storage.add_loan(db, ASSET, DEST, 1)


def test_set_balance_rejects_negative(db):
    with pytest.raises(ValueError):
        storage.set_balance(db, PK, ASSET, -1)