from lpkit.config import Settings
from lpkit.core.execution import CoordinatorConfig
from lpkit.core.fees import FeeConfig


def test_relay_auth_token_alias(monkeypatch):
    """Relay auth token should load from the legacy JITO_UUID variable."""

    monkeypatch.delenv("JITO_AUTH_TOKEN", raising=False)
    monkeypatch.delenv("JITO_API_KEY", raising=False)
    monkeypatch.setenv("JITO_UUID", "uuid-from-legacy")

    settings = Settings()

    assert settings.jito_auth_token == "uuid-from-legacy"


def test_relay_auth_token_direct_env(monkeypatch):
    """The primary variable wins over the legacy alias."""

    monkeypatch.setenv("JITO_AUTH_TOKEN", "primary-token")
    monkeypatch.setenv("JITO_UUID", "uuid-from-legacy")

    settings = Settings()

    assert settings.jito_auth_token == "primary-token"


def test_defaults_match_documented_schedule(monkeypatch):
    for name in ("FEE_BPS", "MIN_FEE_ABSOLUTE", "BUNDLE_TIMEOUT_SECONDS", "BUNDLE_POLL_INTERVAL_SECONDS"):
        monkeypatch.delenv(name, raising=False)

    settings = Settings()

    assert settings.fee_bps == 100
    assert settings.min_fee_absolute == 10_000
    assert settings.bundle_timeout_seconds == 30.0
    assert settings.bundle_poll_interval_seconds == 1.0
    assert settings.simulate_before_submit is True
    assert settings.reconcile_timed_out_bundles is False


def test_tip_speed_is_stripped(monkeypatch):
    monkeypatch.setenv("DEFAULT_TIP_SPEED", "  extraFast ")

    settings = Settings()

    assert settings.default_tip_speed == "extraFast"


def test_component_configs_follow_settings(monkeypatch):
    monkeypatch.setenv("FEE_BPS", "250")
    monkeypatch.setenv("BUNDLE_TIMEOUT_SECONDS", "12.5")
    monkeypatch.setenv("SIMULATE_BEFORE_SUBMIT", "false")

    settings = Settings()
    fee_config = FeeConfig.from_settings(settings)
    coordinator_config = CoordinatorConfig.from_settings(settings)

    assert fee_config.fee_bps == 250
    assert coordinator_config.timeout_seconds == 12.5
    assert coordinator_config.simulate_before_submit is False
