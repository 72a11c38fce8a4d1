"""
Unified configuration state for market-radar.

A single validated ``ConfigState`` combines hard-coded defaults, YAML files from
a config directory and environment variable overrides.
"""

import logging
import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

logger = logging.getLogger(__name__)


# =============================================================================
# PYDANTIC MODELS - Type-Safe Configuration
# =============================================================================


class ExchangeConfig(BaseModel):
    """Spot exchange endpoints and universe filters."""

    model_config = ConfigDict(extra="allow")

    name: str = Field(default="binance")
    api_base_url: str = Field(default="https://api.binance.com")
    ws_base_url: str = Field(default="wss://stream.binance.com:9443/ws")
    quote_asset: str = Field(default="USDT")
    reference_symbol: str = Field(default="BTCUSDT")
    blacklisted_assets: list[str] = Field(
        default_factory=lambda: ["USDC", "BUSD", "TUSD", "PAX", "USDS", "DAI", "UST"]
    )

    @field_validator("quote_asset", "reference_symbol")
    @classmethod
    def upper_case(cls, v: str) -> str:
        return v.upper()

    @field_validator("blacklisted_assets")
    @classmethod
    def upper_case_assets(cls, v: list[str]) -> list[str]:
        return [asset.upper() for asset in v]


class HttpConfig(BaseModel):
    """HTTP session settings."""

    model_config = ConfigDict(extra="allow")

    timeout: float = Field(default=10.0, gt=0)
    connect_timeout: float = Field(default=5.0, gt=0)


class RetrySettings(BaseModel):
    """Bounded exponential backoff for REST calls."""

    model_config = ConfigDict(extra="allow")

    max_attempts: int = Field(default=3, ge=1, le=20)
    base_delay: float = Field(default=1.0, ge=0)
    max_delay: float = Field(default=60.0, ge=0)


class ThrottleSettings(BaseModel):
    """Request ceiling per rolling window."""

    model_config = ConfigDict(extra="allow")

    requests_per_window: int = Field(default=1200, ge=1)
    window_seconds: float = Field(default=60.0, gt=0)


class StreamSettings(BaseModel):
    """Websocket feed and tick batching."""

    model_config = ConfigDict(extra="allow")

    flush_window: float = Field(default=0.1, gt=0)
    max_reconnect_attempts: int = Field(default=5, ge=0)
    reconnect_delay: float = Field(default=2.0, ge=0)
    reconnect_backoff: float = Field(default=1.5, ge=1.0)
    heartbeat_timeout: float = Field(default=30.0, gt=0)
    batch_queue_size: int = Field(default=100, ge=1)


class AnalyticsSettings(BaseModel):
    """Constants of the derivation functions."""

    model_config = ConfigDict(extra="allow")

    liquidity_floor: float = Field(default=10_000.0, gt=0)
    liquidity_ceiling: float = Field(default=100_000_000.0, gt=0)
    rsi_period: int = Field(default=14, ge=1)
    candle_limit: int = Field(default=100, ge=10, le=1000)

    @model_validator(mode="after")
    def check_liquidity_band(self):
        if self.liquidity_ceiling <= self.liquidity_floor:
            raise ValueError("liquidity_ceiling must be greater than liquidity_floor")
        return self


class MarketCapSettings(BaseModel):
    """CoinGecko market cap lookups used for gem ranking."""

    model_config = ConfigDict(extra="allow")

    enabled: bool = Field(default=True)
    base_url: str = Field(default="https://api.coingecko.com/api/v3")
    vs_currency: str = Field(default="usd")
    per_page: int = Field(default=250, ge=1, le=250)


class LoggingConfig(BaseModel):
    """Logging configuration."""

    model_config = ConfigDict(extra="allow")

    level: str = Field(default="INFO")
    json_logs: bool = Field(default=True)


class ConfigState(BaseModel):
    """
    Root configuration state - single source of truth for all settings.
    """

    model_config = ConfigDict(extra="allow")

    exchange: ExchangeConfig = Field(default_factory=ExchangeConfig)
    http: HttpConfig = Field(default_factory=HttpConfig)
    retry: RetrySettings = Field(default_factory=RetrySettings)
    throttle: ThrottleSettings = Field(default_factory=ThrottleSettings)
    stream: StreamSettings = Field(default_factory=StreamSettings)
    analytics: AnalyticsSettings = Field(default_factory=AnalyticsSettings)
    market_cap: MarketCapSettings = Field(default_factory=MarketCapSettings)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    env: str = Field(default="dev")
    config_dir: str = Field(default="./config")


# =============================================================================
# CONFIG LOADER
# =============================================================================


class ConfigLoader:
    """
    Load and validate configuration.

    Merges, in order:
      1. Defaults declared on the pydantic models
      2. ``market.yaml`` from config_dir
      3. ``env/<env>.yaml`` from config_dir
      4. Environment variable overrides
    """

    # env var -> (section, key, caster)
    ENV_OVERRIDES: dict[str, tuple[str, str, Any]] = {
        "BINANCE_API_URL": ("exchange", "api_base_url", str),
        "BINANCE_WS_URL": ("exchange", "ws_base_url", str),
        "QUOTE_ASSET": ("exchange", "quote_asset", str),
        "API_RATE_LIMIT": ("throttle", "requests_per_window", int),
        "ERROR_RETRY_ATTEMPTS": ("retry", "max_attempts", int),
        "ERROR_RETRY_DELAY": ("retry", "base_delay", float),
        "WS_MAX_RECONNECT_ATTEMPTS": ("stream", "max_reconnect_attempts", int),
        "WS_RECONNECT_DELAY": ("stream", "reconnect_delay", float),
        "COINGECKO_API_URL": ("market_cap", "base_url", str),
        "LOG_LEVEL": ("logging", "level", str),
    }

    def __init__(self, config_dir: str = "./config"):
        self.config_dir = Path(config_dir)
        self._yaml_cache: dict[Path, Any] = {}
        self.env = os.getenv("MARKET_RADAR_ENV", "dev")

    def _load_yaml(self, path: Path) -> dict[str, Any]:
        """Load YAML file with caching; a missing file yields ``{}``."""
        if path in self._yaml_cache:
            return self._yaml_cache[path]

        if not path.exists():
            logger.debug(f"Config file not found (using defaults): {path}")
            return {}

        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError(f"Config file {path} must contain a mapping")
        self._yaml_cache[path] = data
        logger.debug(f"Loaded config: {path}")
        return data

    def _apply_env_overrides(self, config: dict[str, Any]) -> dict[str, Any]:
        """Apply environment variable overrides to config."""
        for var, (section, key, cast) in self.ENV_OVERRIDES.items():
            raw = os.getenv(var)
            if raw is None or raw == "":
                continue
            try:
                config.setdefault(section, {})[key] = cast(raw)
            except ValueError:
                logger.warning(f"Ignoring invalid value for {var}: {raw!r}")

        if blacklist := os.getenv("BLACKLISTED_ASSETS"):
            config.setdefault("exchange", {})["blacklisted_assets"] = [
                asset.strip() for asset in blacklist.split(",") if asset.strip()
            ]
        return config

    def _merge_dicts(self, base: dict, override: dict) -> dict:
        """Deep merge override into base dict."""
        result = base.copy()
        for key, value in override.items():
            if (
                key in result
                and isinstance(result[key], dict)
                and isinstance(value, dict)
            ):
                result[key] = self._merge_dicts(result[key], value)
            else:
                result[key] = value
        return result

    def load(self) -> ConfigState:
        """
        Load complete configuration state.

        Raises:
            pydantic.ValidationError: If the merged configuration is invalid
        """
        logger.info(f"Loading configuration from {self.config_dir} (env: {self.env})")

        config: dict[str, Any] = {}
        config = self._merge_dicts(config, self._load_yaml(self.config_dir / "market.yaml"))
        config = self._merge_dicts(
            config, self._load_yaml(self.config_dir / "env" / f"{self.env}.yaml")
        )
        config = self._apply_env_overrides(config)

        state = ConfigState(env=self.env, config_dir=str(self.config_dir), **config)
        logger.info(
            f"Configuration loaded: exchange={state.exchange.name}, "
            f"quote={state.exchange.quote_asset}, "
            f"rate_limit={state.throttle.requests_per_window}/"
            f"{state.throttle.window_seconds:g}s"
        )
        return state


def get_config(config_dir: str | None = None) -> ConfigState:
    """
    Load the configuration state.

    Args:
        config_dir: Override config directory. Defaults to
            ``$MARKET_RADAR_CONFIG_DIR`` or ``./config``
    """
    if config_dir is None:
        config_dir = os.getenv("MARKET_RADAR_CONFIG_DIR", "./config")
        if not Path(config_dir).exists():
            logger.warning(f"Config directory not found at {config_dir}, using defaults")

    return ConfigLoader(config_dir=config_dir).load()


__all__ = [
    "AnalyticsSettings",
    "ConfigLoader",
    "ConfigState",
    "ExchangeConfig",
    "HttpConfig",
    "LoggingConfig",
    "MarketCapSettings",
    "RetrySettings",
    "StreamSettings",
    "ThrottleSettings",
    "get_config",
]
