from pathlib import Path
from typing import Any

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


BASE_DIR = Path(__file__).resolve().parents[1]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=BASE_DIR / ".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    def model_post_init(self, __context: Any) -> None:
        """Normalise values that are compared case-sensitively downstream."""

        super().model_post_init(__context)

        if self.default_tip_speed:
            object.__setattr__(self, "default_tip_speed", self.default_tip_speed.strip())

    # Server Settings
    host: str = Field(default="127.0.0.1", description="Server host")
    port: int = Field(default=8000, description="Server port")
    log_level: str = Field(default="INFO", description="Logging level")

    # Chain RPC
    solana_rpc_url: str = Field(
        default="https://api.mainnet-beta.solana.com",
        description="Solana JSON-RPC endpoint used for simulation and blockhash lookups",
    )
    request_timeout_seconds: float = Field(default=30.0, gt=0, description="HTTP request timeout")

    # Inclusion relay (Jito block engine)
    jito_block_engine_url: str = Field(
        default="https://mainnet.block-engine.jito.wtf",
        description="Base URL of the bundle relay",
    )
    jito_auth_token: str = Field(
        default="",
        description="Optional relay auth token sent as x-jito-auth",
        validation_alias=AliasChoices("jito_auth_token", "jito_uuid", "JITO_API_KEY"),
    )

    # Conversion aggregator (Jupiter)
    jupiter_base_url: str = Field(
        default="https://quote-api.jup.ag/v6",
        description="Base URL of the quote/swap aggregator",
    )
    jupiter_api_key: str = Field(default="", description="Optional aggregator API key")
    default_slippage_bps: int = Field(
        default=50,
        ge=0,
        le=10_000,
        description="Slippage tolerance for conversion quotes (50 = 0.5%)",
    )

    # Protocol fee
    fee_bps: int = Field(default=100, ge=0, le=10_000, description="Protocol fee in basis points")
    min_fee_absolute: int = Field(
        default=10_000,
        ge=0,
        description="Minimum fee in base units, applied when the bps fee is smaller",
    )
    treasury_address: str = Field(
        default="BNQnCszvPwYfjBMUmFgmCooMSRrdkC7LncMQBExDakLp",
        description="Recipient of protocol fees",
    )
    exempt_threshold_usd: float = Field(
        default=1.0,
        ge=0,
        description="Deposits worth less than this (USD) pay no protocol fee",
    )

    # Bundle coordination
    bundle_poll_interval_seconds: float = Field(
        default=1.0,
        gt=0,
        description="Interval between relay status polls",
    )
    bundle_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="How long to poll a submitted bundle before reporting it as timed out",
    )
    default_tip_speed: str = Field(
        default="fast",
        description="Tip tier used when the caller does not choose one (low, medium, fast, extraFast)",
    )
    simulate_before_submit: bool = Field(
        default=True,
        description="Dry-run every transaction before submitting the bundle",
    )
    reconcile_timed_out_bundles: bool = Field(
        default=False,
        description="Check chain state for the bundle's transactions after a relay timeout",
    )


# Global settings instance
settings = Settings()
