"""Transport-level errors raised by the chain and relay clients."""

from typing import Any


class RelayError(Exception):
    """Relay request failed at the transport or JSON-RPC level."""

    def __init__(self, message: str, payload: Any = None):
        super().__init__(message)
        self.payload = payload


class SolanaRpcError(Exception):
    """Error talking to the Solana RPC node."""
    pass
