from typing import Any, Dict

import httpx
from fastapi import APIRouter

from ..config import settings
from ..providers.jito import JitoConfig, JitoRelayClient
from ..providers.jupiter import JupiterConfig, JupiterQuoteProvider
from ..providers.solana_rpc import SolanaRpcClient, SolanaRpcConfig

router = APIRouter()


@router.get("/healthz")
async def health_check() -> Dict[str, Any]:
    """Health check endpoint that reports provider readiness"""

    async with httpx.AsyncClient(timeout=settings.request_timeout_seconds) as client:
        providers = [
            JitoRelayClient(client, JitoConfig.from_settings(settings)),
            JupiterQuoteProvider(client, JupiterConfig.from_settings(settings)),
            SolanaRpcClient(client, SolanaRpcConfig.from_settings(settings)),
        ]

        provider_status = {}
        for provider in providers:
            provider_status[provider.name] = await provider.health_check()

    ready = sum(
        1 for status in provider_status.values()
        if status["status"] in ("healthy", "configured")
    )

    return {
        "status": "healthy" if ready == len(provider_status) else "degraded",
        "providers": provider_status,
        "ready_providers": ready,
        "total_providers": len(provider_status),
    }
