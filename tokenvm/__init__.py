"""Token ledger state storage, addresses and identifiers, with a JSON-RPC query service and client."""

__version__ = "0.0.1"

__all__ = ["addresses", "client", "errors", "ids", "server", "storage"]