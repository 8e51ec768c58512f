"""
Jupiter Conversion Provider for Solana.

Resolves priced conversion routes between two assets and turns a route into
an unsigned swap transaction. Quotes are short-lived: a quote older than
QUOTE_TTL_SECONDS is refused when building the transaction.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import httpx

from ..config import Settings
from ..core.errors import QuoteUnavailable
from .base import QuoteProvider

logger = logging.getLogger(__name__)

QUOTE_TTL_SECONDS = 30

# Well-known token mints
NATIVE_SOL_MINT = "So11111111111111111111111111111111111111112"
USDC_MINT = "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"
USDT_MINT = "Es9vMFrzaCERmJfrF4H2FYD4KCoNkY11McCe8BenwNYB"

KNOWN_MINTS: Dict[str, str] = {
    "SOL": NATIVE_SOL_MINT,
    "WSOL": NATIVE_SOL_MINT,
    "USDC": USDC_MINT,
    "USDT": USDT_MINT,
    "BONK": "DezXAZ8z7PnrnRJjz3wXBoRgixCa6xjnB7YaB1pPB263",
    "WIF": "EKpQGSJtjMFqKZ9KQanSqYXRcF8fBopzLHYxdM65zcjm",
    "JUP": "JUPyiwrYJFskUPiHa7hkeR8VUtAeFoSYbKedZNsDvCN",
    "RAY": "4k3Dyjzvzp8eMZWUXbBCjEvwSkkk59S5iCNLY3QrkX6R",
}


def resolve_asset_mint(symbol_or_address: str) -> str:
    """
    Map a known symbol to its canonical mint. Anything else passes through
    unchanged so arbitrary mint addresses work without a table update.
    """
    candidate = symbol_or_address.strip()
    return KNOWN_MINTS.get(candidate.upper(), candidate)


@dataclass(frozen=True)
class RouteStep:
    """A single hop of a conversion route."""
    amm_key: str
    label: str
    input_mint: str
    output_mint: str
    in_amount: int
    out_amount: int
    fee_amount: int
    fee_mint: str
    percent: int  # Percentage of input going through this hop

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "RouteStep":
        info = data.get("swapInfo") or {}
        return cls(
            amm_key=info.get("ammKey", ""),
            label=info.get("label", ""),
            input_mint=info.get("inputMint", ""),
            output_mint=info.get("outputMint", ""),
            in_amount=int(info.get("inAmount", 0)),
            out_amount=int(info.get("outAmount", 0)),
            fee_amount=int(info.get("feeAmount", 0)),
            fee_mint=info.get("feeMint", ""),
            percent=int(data.get("percent", 100)),
        )


@dataclass(frozen=True)
class ConversionQuote:
    """A priced conversion route. Immutable; re-fetch once stale."""
    input_asset: str
    output_asset: str
    input_amount: int                       # Base units
    output_amount: int                      # Base units
    price_impact: float                     # Percent, as reported by the aggregator
    route_steps: List[RouteStep] = field(default_factory=list)
    slippage_bps: int = 50
    min_output_amount: int = 0              # Output after slippage
    raw: Dict[str, Any] = field(default_factory=dict, compare=False, repr=False)
    fetched_at: float = field(default_factory=time.time, compare=False)

    def is_stale(self, now: Optional[float] = None, ttl_seconds: float = QUOTE_TTL_SECONDS) -> bool:
        return ((now if now is not None else time.time()) - self.fetched_at) >= ttl_seconds

    @property
    def route_labels(self) -> List[str]:
        return [step.label for step in self.route_steps]


@dataclass(frozen=True)
class JupiterConfig:
    base_url: str = "https://quote-api.jup.ag/v6"
    api_key: str = ""
    slippage_bps: int = 50

    @classmethod
    def from_settings(cls, settings: Settings) -> "JupiterConfig":
        return cls(
            base_url=settings.jupiter_base_url.rstrip("/"),
            api_key=settings.jupiter_api_key,
            slippage_bps=settings.default_slippage_bps,
        )


class JupiterQuoteProvider(QuoteProvider):
    """
    Quote resolver backed by the Jupiter aggregator.

    The HTTP client is passed in by the caller, so one client can be shared by
    a call chain and swapped for a mock transport in tests.

    Usage:
        async with httpx.AsyncClient(timeout=30) as client:
            provider = JupiterQuoteProvider(client, JupiterConfig())
            quote = await provider.get_quote("SOL", "USDC", 1_000_000_000)
            tx = await provider.build_conversion_transaction(quote, wallet)
    """

    name = "jupiter"
    timeout_s = 30

    def __init__(self, client: httpx.AsyncClient, config: Optional[JupiterConfig] = None):
        self._client = client
        self._config = config or JupiterConfig()

    @property
    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self._config.api_key:
            headers["x-api-key"] = self._config.api_key
        return headers

    async def ready(self) -> bool:
        """Jupiter requires no authentication."""
        return bool(self._config.base_url)

    async def health_check(self) -> Dict[str, Any]:
        if not await self.ready():
            return {"status": "unavailable", "reason": "Aggregator URL not configured"}
        return {"status": "configured", "baseUrl": self._config.base_url}

    def resolve_asset_mint(self, symbol_or_address: str) -> str:
        return resolve_asset_mint(symbol_or_address)

    async def get_quote(
        self,
        input_asset: str,
        output_asset: str,
        amount: int,
        slippage_bps: Optional[int] = None,
    ) -> ConversionQuote:
        """
        Get a conversion quote.

        Args:
            input_asset: Symbol or mint to convert from
            output_asset: Symbol or mint to convert to
            amount: Input amount in base units
            slippage_bps: Slippage tolerance (defaults to config)

        Raises:
            QuoteUnavailable: no viable route, or the aggregator could not be reached.
                Not retried here; the caller decides.
        """
        input_mint = resolve_asset_mint(input_asset)
        output_mint = resolve_asset_mint(output_asset)
        slippage = self._config.slippage_bps if slippage_bps is None else slippage_bps

        if amount <= 0:
            raise QuoteUnavailable(
                f"Cannot quote a non-positive amount ({amount})",
                details={"inputMint": input_mint, "outputMint": output_mint, "amount": amount},
            )

        params = {
            "inputMint": input_mint,
            "outputMint": output_mint,
            "amount": str(amount),
            "slippageBps": slippage,
        }

        try:
            response = await self._client.get(
                f"{self._config.base_url}/quote",
                params=params,
                headers=self._headers,
            )
            data = response.json() if response.content else {}
        except (httpx.HTTPError, ValueError) as e:
            raise QuoteUnavailable(
                f"Aggregator request failed: {e}",
                details={"inputMint": input_mint, "outputMint": output_mint},
            ) from e

        if response.is_error or not isinstance(data, dict) or "error" in data:
            error = data.get("error") if isinstance(data, dict) else None
            raise QuoteUnavailable(
                f"No route from {input_mint} to {output_mint}: {error or response.text}",
                details={
                    "inputMint": input_mint,
                    "outputMint": output_mint,
                    "status": response.status_code,
                    "error": error if error is not None else response.text,
                },
            )

        route_plan = [RouteStep.from_api(step) for step in data.get("routePlan") or []]
        out_amount = int(data.get("outAmount", 0))
        if not route_plan or out_amount <= 0:
            raise QuoteUnavailable(
                f"No route from {input_mint} to {output_mint}",
                details={"inputMint": input_mint, "outputMint": output_mint, "response": data},
            )

        quote = ConversionQuote(
            input_asset=data.get("inputMint", input_mint),
            output_asset=data.get("outputMint", output_mint),
            input_amount=int(data.get("inAmount", amount)),
            output_amount=out_amount,
            price_impact=float(data.get("priceImpactPct", 0) or 0),
            route_steps=route_plan,
            slippage_bps=slippage,
            min_output_amount=int(data.get("otherAmountThreshold", out_amount)),
            raw=data,
        )

        logger.info(
            "Quoted %s %s -> %s %s via %s (impact %.4f%%)",
            quote.input_amount,
            input_mint,
            quote.output_amount,
            output_mint,
            " > ".join(quote.route_labels) or "direct",
            quote.price_impact,
        )
        return quote

    async def build_conversion_transaction(
        self,
        quote: ConversionQuote,
        caller_address: str,
        now: Optional[float] = None,
    ) -> str:
        """
        Build an unsigned conversion transaction from a quote.

        Returns:
            Base64 encoded unsigned transaction

        Raises:
            QuoteUnavailable: the quote is stale or the aggregator refused to build it
        """
        if quote.is_stale(now):
            raise QuoteUnavailable(
                "Quote has expired, fetch a new one",
                details={"inputMint": quote.input_asset, "outputMint": quote.output_asset},
            )

        payload = {
            "quoteResponse": quote.raw,
            "userPublicKey": caller_address,
            "wrapAndUnwrapSol": True,
            "dynamicComputeUnitLimit": True,
            "prioritizationFeeLamports": "auto",
        }

        try:
            response = await self._client.post(
                f"{self._config.base_url}/swap",
                json=payload,
                headers=self._headers,
            )
            data = response.json() if response.content else {}
        except (httpx.HTTPError, ValueError) as e:
            raise QuoteUnavailable(f"Aggregator swap request failed: {e}") from e

        if response.is_error or not isinstance(data, dict) or "error" in data or not data.get("swapTransaction"):
            error = data.get("error") if isinstance(data, dict) else None
            raise QuoteUnavailable(
                f"Aggregator could not build conversion: {error or response.text}",
                details={"status": response.status_code, "error": error if error is not None else response.text},
            )

        return data["swapTransaction"]


__all__ = [
    "QUOTE_TTL_SECONDS",
    "NATIVE_SOL_MINT",
    "USDC_MINT",
    "USDT_MINT",
    "KNOWN_MINTS",
    "resolve_asset_mint",
    "RouteStep",
    "ConversionQuote",
    "JupiterConfig",
    "JupiterQuoteProvider",
]
