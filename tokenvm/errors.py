"""Exception hierarchy shared by the storage layer and the RPC endpoints."""

from __future__ import annotations


class TokenVMError(Exception):
    """Base class for every error raised by this package."""

    default_message = "tokenvm error"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message if message is not None else self.default_message)

    @property
    def message(self) -> str:
        return str(self)


class NotFoundError(TokenVMError, LookupError):
    """A requested key or record does not exist."""

    default_message = "not found"


class TxNotFoundError(NotFoundError):
    """The transaction is not known to the node."""

    default_message = "tx not found"


class AssetNotFoundError(NotFoundError):
    """The asset is not known to the node."""

    default_message = "asset not found"


class InvalidBalanceError(TokenVMError, ValueError):
    """A balance or loan update would overflow or underflow."""

    default_message = "invalid balance"


class AddressError(TokenVMError, ValueError):
    """An address string could not be parsed."""

    default_message = "invalid address"


class RPCError(TokenVMError):
    """A remote procedure call failed."""

    default_message = "rpc error"

    def __init__(self, message: str | None = None, code: int | None = None) -> None:
        super().__init__(message)
        self.code = code