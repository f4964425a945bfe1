# tokenvm

State storage and a JSON-RPC query layer for a token ledger. The ledger
keeps per-account balances of any number of assets, asset records
(metadata, supply, owner, and whether the asset arrived over a cross-chain
transfer), open exchange orders, outstanding cross-chain loans and
transaction results.

The package has no third-party dependencies.

## Installation

```
pip install .
```

To run the test suite:

```
pip install .[test]
pytest
```

## Storage

`tokenvm.storage` lays every record out under a one-byte prefix followed by
fixed-width 32-byte identifiers and public keys, with big-endian integers
in the values:

| prefix | key                    | value                                                 |
|--------|------------------------|-------------------------------------------------------|
| `0x0`  | owner, asset           | balance (uint64)                                      |
| `0x1`  | asset                  | metadata length (uint16), metadata, supply, owner, warp flag |
| `0x2`  | order transaction id   | in asset, in tick, out asset, out tick, remaining, owner |
| `0x3`  | asset, destination     | loan amount (uint64)                                  |

Key builders are also provided for the height key (`height_key`, prefix
`0x4`), incoming cross-chain messages (`incoming_warp_key_prefix`, `0x5`)
and outgoing cross-chain messages (`outgoing_warp_key_prefix`, `0x6`); the
module does not define values for them.

Transaction results use their own `0x0` prefix (`prefix_tx_key`,
`store_transaction`, `get_transaction`) and are meant for a store kept
apart from the balances. `get_transaction` returns a `TransactionRecord`
(timestamp, success, units) or `None`.

`MemoryDatabase` is a dictionary-backed store with `get_value` (raising
`NotFoundError` for a missing key), `insert`, `remove` and `read_state`,
which is enough to drive every function in the module:

```python
from tokenvm.storage import (
    MemoryDatabase,
    add_balance,
    get_balance,
    sub_balance,
    set_asset,
    get_asset,
)

db = MemoryDatabase()
owner = bytes(32)
asset = bytes(range(32))

add_balance(db, owner, asset, 100, "token")
sub_balance(db, owner, asset, 40, "token")
print(get_balance(db, owner, asset))  # 60

set_asset(db, asset, b"GOLD", 60, owner, False)
print(get_asset(db, asset))  # AssetInfo(metadata=b'GOLD', supply=60, ...)
```

A missing balance or loan reads as zero; `get_asset` and `get_order`
return `None` (or an `AssetInfo` / `OrderInfo`). Subtracting a balance or a
loan down to zero deletes the record rather than storing a zero. Adding
past the unsigned 64-bit limit, or subtracting more than is held, raises
`InvalidBalanceError` and leaves the store unchanged. The optional `hrp`
argument of `add_balance` and `sub_balance` only controls how the account
is shown in that error's message.

Functions ending in `_from_state` (`get_balance_from_state`,
`get_asset_from_state`, `get_loan_from_state`) take a batch reader such as
`MemoryDatabase.read_state` instead of a database, for serving queries.

## Addresses and identifiers

`tokenvm.addresses.address(public_key, hrp)` renders a 32-byte public key
as a bech32 address with the given prefix, and `parse_address(text, hrp)`
turns it back into the key, raising `AddressError` on malformed input or a
different prefix.

`tokenvm.ids.encode_id` and `decode_id` convert 32-byte identifiers to and
from checksummed base58 text; `decode_id` raises `ValueError` on a bad
character, checksum or length. `tokenvm.ids.VERSION` is the package
version as a `SemanticVersion`, printed as `v0.0.1`.

## JSON-RPC

`tokenvm.server.JSONRPCServer(controller, hrp)` answers `genesis`, `tx`,
`asset`, `balance`, `orders` and `loan` queries against any object that
satisfies the `Controller` protocol. The methods can be called directly,
or `handle` takes a decoded JSON-RPC 2.0 request (method names such as
`tokenvm.balance`, parameters as an object) and returns the response
object. A missing transaction or asset is reported as a `tx not found` or
`asset not found` error. Up to 128 orders are requested from the
controller per pair.

`tokenvm.client.JSONRPCClient(uri, chain_id)` is the matching client; it
posts to `uri` followed by `/tokenapi`. By default it sends requests with
`http_transport` (plain `urllib`); any callable taking the URL and the
payload can be passed as `transport`. `genesis` is fetched once and cached.
`tx` returns a `TxStatus` and `asset` an `AssetStatus`, each reporting
whether the record was found instead of raising when it is missing; other
failures raise `RPCError`. `wait_for_balance` and `wait_for_transaction`
poll every `poll_interval` seconds until a balance reaches a minimum or a
transaction is known, raising `TimeoutError` once `timeout` seconds (if
set) have passed.

## Errors

All errors derive from `TokenVMError`: `NotFoundError` with its subclasses
`TxNotFoundError` and `AssetNotFoundError`, `InvalidBalanceError`,
`AddressError`, and `RPCError` (carrying the remote error `code`) for
failed remote calls.

## What this package does not do

- It does not run a chain: there is no block building, consensus,
  transaction signing, action execution or genesis definition. The RPC
  service reads whatever the supplied `Controller` reports.
- `JSONRPCServer` does not listen on a network socket; pass decoded
  requests to `handle` from an HTTP server of your choice.
- `MemoryDatabase` keeps everything in memory; nothing is written to disk.