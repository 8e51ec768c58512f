"""
Jito Block Engine Relay Provider.

Submits bundles of up to five base64 transactions and reads back their
inclusion status. Relay responses are returned as-is; interpreting the
status row is the job of ``core.execution.relay_status``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

import httpx

from ..config import Settings
from ..core.errors import BundleSizeExceeded, SubmissionRejected
from ..core.execution.models import MAX_BUNDLE_TRANSACTIONS
from .base import BundleRelayProvider
from .errors import RelayError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class JitoConfig:
    block_engine_url: str = "https://mainnet.block-engine.jito.wtf"
    auth_token: str = ""

    @classmethod
    def from_settings(cls, settings: Settings) -> "JitoConfig":
        return cls(
            block_engine_url=settings.jito_block_engine_url.rstrip("/"),
            auth_token=settings.jito_auth_token,
        )


class JitoRelayClient(BundleRelayProvider):
    """
    Inclusion relay client.

    Usage:
        async with httpx.AsyncClient(timeout=30) as client:
            relay = JitoRelayClient(client, JitoConfig.from_settings(settings))
            bundle_id = await relay.send_bundle(signed_payloads)
            status = await relay.get_bundle_statuses(bundle_id)
    """

    name = "jito"
    timeout_s = 30

    def __init__(self, client: httpx.AsyncClient, config: Optional[JitoConfig] = None):
        self._client = client
        self._config = config or JitoConfig()

    @property
    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self._config.auth_token:
            headers["x-jito-auth"] = self._config.auth_token
        return headers

    async def ready(self) -> bool:
        return bool(self._config.block_engine_url)

    async def health_check(self) -> Dict[str, Any]:
        if not await self.ready():
            return {"status": "unavailable", "reason": "Relay URL not configured"}
        return {
            "status": "configured",
            "blockEngineUrl": self._config.block_engine_url,
            "authenticated": bool(self._config.auth_token),
        }

    async def send_bundle(self, transactions: Sequence[str]) -> str:
        """
        Submit signed transactions as one atomic bundle.

        Args:
            transactions: Base64 encoded signed transactions, in execution order

        Returns:
            Opaque bundle id. Acceptance does not mean inclusion.

        Raises:
            BundleSizeExceeded: more than five transactions
            SubmissionRejected: the relay refused the bundle or could not be reached
        """
        if len(transactions) > MAX_BUNDLE_TRANSACTIONS:
            raise BundleSizeExceeded(len(transactions), MAX_BUNDLE_TRANSACTIONS)

        try:
            result = await self._rpc_call(
                "/api/v1/bundles",
                "sendBundle",
                [list(transactions), {"encoding": "base64"}],
            )
        except RelayError as e:
            raise SubmissionRejected(str(e), raw_error=e.payload) from e

        if not isinstance(result, str) or not result:
            raise SubmissionRejected("Relay returned no bundle id", raw_error=result)

        logger.info("Bundle accepted by relay: %s (%d transactions)", result, len(transactions))
        return result

    async def get_bundle_statuses(self, bundle_id: str) -> Optional[Dict[str, Any]]:
        """
        Fetch the raw status result for one bundle.

        Returns the JSON-RPC ``result`` object (``{"context": ..., "value": [...]}``)
        or None when the relay returned nothing.

        Raises:
            RelayError: transport failure or JSON-RPC error. Callers polling for
                status treat this as "try again", not as a bundle outcome.
        """
        result = await self._rpc_call("/api/v1/getBundleStatuses", "getBundleStatuses", [[bundle_id]])
        return result if isinstance(result, dict) else None

    async def _rpc_call(self, path: str, method: str, params: List[Any]) -> Any:
        payload = {"jsonrpc": "2.0", "id": 1, "method": method, "params": params}

        try:
            response = await self._client.post(
                f"{self._config.block_engine_url}{path}",
                json=payload,
                headers=self._headers,
            )
            data = response.json() if response.content else {}
        except (httpx.HTTPError, ValueError) as e:
            raise RelayError(f"{method} request failed: {e}") from e

        if isinstance(data, dict) and data.get("error") is not None:
            error = data["error"]
            message = error.get("message", str(error)) if isinstance(error, dict) else str(error)
            raise RelayError(f"{method} rejected: {message}", payload=error)

        if response.is_error:
            raise RelayError(
                f"{method} failed: HTTP {response.status_code}",
                payload=data or response.text,
            )

        return data.get("result") if isinstance(data, dict) else None


__all__ = [
    "RelayError",
    "JitoConfig",
    "JitoRelayClient",
]
