"""
Solana JSON-RPC Provider.

Reads chain state needed by the bundle pipeline: reference block markers,
per-transaction simulation and signature statuses.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

import httpx

from ..config import Settings
from ..core.execution.simulation import SimulationResult
from .base import ChainRpcProvider
from .errors import SolanaRpcError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SolanaRpcConfig:
    """Configuration for Solana RPC connection."""
    rpc_url: str = "https://api.mainnet-beta.solana.com"
    commitment: str = "confirmed"
    max_retries: int = 3
    retry_delay_s: float = 0.5

    @classmethod
    def from_settings(cls, settings: Settings) -> "SolanaRpcConfig":
        return cls(rpc_url=settings.solana_rpc_url)


class SolanaRpcClient(ChainRpcProvider):
    """
    Chain RPC client.

    Usage:
        async with httpx.AsyncClient(timeout=30) as client:
            rpc = SolanaRpcClient(client, SolanaRpcConfig.from_settings(settings))
            blockhash = await rpc.get_latest_blockhash()
            result = await rpc.simulate_transaction(signed_tx_base64)
    """

    name = "solana_rpc"
    timeout_s = 30

    def __init__(self, client: httpx.AsyncClient, config: Optional[SolanaRpcConfig] = None):
        self._client = client
        self._config = config or SolanaRpcConfig()

    async def ready(self) -> bool:
        return bool(self._config.rpc_url)

    async def health_check(self) -> Dict[str, Any]:
        if not await self.ready():
            return {"status": "unavailable", "reason": "RPC URL not configured"}

        try:
            result = await self._rpc_call("getHealth", [])
            return {"status": "healthy" if result == "ok" else "degraded", "result": result}
        except SolanaRpcError as exc:
            return {"status": "error", "reason": str(exc)}

    async def _rpc_call(self, method: str, params: List[Any]) -> Any:
        """Make an RPC call, retrying transport failures. Returns the ``result`` member."""
        payload = {
            "jsonrpc": "2.0",
            "id": 1,
            "method": method,
            "params": params,
        }

        for attempt in range(self._config.max_retries):
            try:
                response = await self._client.post(
                    self._config.rpc_url,
                    json=payload,
                    headers={"Content-Type": "application/json"},
                )
                response.raise_for_status()
                data = response.json()

                if "error" in data:
                    error = data["error"]
                    error_msg = error.get("message", str(error)) if isinstance(error, dict) else str(error)
                    raise SolanaRpcError(f"RPC error: {error_msg}")

                return data.get("result")

            except httpx.HTTPStatusError as e:
                if attempt == self._config.max_retries - 1:
                    raise SolanaRpcError(f"HTTP error: {e.response.status_code}") from e
            except (httpx.HTTPError, ValueError) as e:
                if attempt == self._config.max_retries - 1:
                    raise SolanaRpcError(str(e) or type(e).__name__) from e

            logger.debug("%s attempt %d failed, retrying", method, attempt + 1)
            await asyncio.sleep(self._config.retry_delay_s * (attempt + 1))

        raise SolanaRpcError("Max retries exceeded")

    async def get_latest_blockhash(self) -> str:
        """Latest blockhash (base58), used as the bundle's reference block marker."""
        result = await self._rpc_call(
            "getLatestBlockhash",
            [{"commitment": self._config.commitment}],
        )
        blockhash = ((result or {}).get("value") or {}).get("blockhash")
        if not blockhash:
            raise SolanaRpcError("No blockhash returned from getLatestBlockhash")
        return blockhash

    async def simulate_transaction(self, transaction: str) -> SimulationResult:
        """
        Dry-run a transaction against current state.

        The reference block marker is replaced with the latest one and signatures
        are not verified, so a partially signed or slightly old transaction still
        simulates.

        Args:
            transaction: Base64 encoded transaction
        """
        options = {
            "encoding": "base64",
            "commitment": self._config.commitment,
            "replaceRecentBlockhash": True,
            "sigVerify": False,
        }

        result = await self._rpc_call("simulateTransaction", [transaction, options])

        value = (result or {}).get("value") or {}
        return SimulationResult(
            error=value.get("err"),
            logs=list(value.get("logs") or []),
            units_consumed=value.get("unitsConsumed"),
        )

    async def get_signature_statuses(self, signatures: Sequence[str]) -> List[Optional[Dict[str, Any]]]:
        """
        Status of each signature, in order; None for signatures the node has not seen.
        """
        result = await self._rpc_call(
            "getSignatureStatuses",
            [list(signatures), {"searchTransactionHistory": True}],
        )
        value = (result or {}).get("value") or []
        statuses: List[Optional[Dict[str, Any]]] = list(value)
        statuses.extend([None] * (len(signatures) - len(statuses)))
        return statuses


__all__ = [
    "SolanaRpcError",
    "SolanaRpcConfig",
    "SolanaRpcClient",
]
