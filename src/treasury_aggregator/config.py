"""Settings models built from the provider catalogue and environment."""

import os
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field

from treasury_aggregator.data.loader import load_catalogue


class ProviderConfig(BaseModel):
    """
    Upstream REST provider.

    Attributes
    ----------
    base_url : str
        Root URL without trailing slash
    timeout : float
        Default request timeout in seconds

    """

    base_url: str
    timeout: float = 10.0


class RpcConfig(BaseModel):
    """JSON-RPC endpoint rotation and batching settings."""

    endpoints: list[str] = Field(default_factory=list)
    max_attempts: int = 3
    rotation_delay: float = 0.15
    call_timeout: float = 6.0
    batch_timeout: float = 10.0
    pools_per_batch: int = 5


class RetrySchedule(BaseModel):
    """
    Retry schedule for a rate-limited endpoint.

    Attributes
    ----------
    delays : list[float]
        Sleep before each attempt; the length is the attempt count
    attempt_timeout : float
        Timeout of a single attempt in seconds
    budget : float
        Wall-clock budget shared by all attempts

    """

    delays: list[float] = Field(default_factory=lambda: [0.0])
    attempt_timeout: float = 10.0
    budget: float = 25.0


class RateLimitConfig(BaseModel):
    """Token bucket parameters for one upstream lane."""

    rate: float
    burst: float = 1.0


class PlatformConfig(BaseModel):
    """Execution limits imposed by the hosting platform."""

    execution_ceiling: float = 26.0
    safety_margin: float = 1.0

    @property
    def usable_budget(self) -> float:
        return self.execution_ceiling - self.safety_margin


class FallbackPool(BaseModel):
    name: str
    apr: float
    tvl: float


class MerklConfig(BaseModel):
    search: str = "9mm"
    app_url: str = ""
    chain_name: str = "Base"
    fallback_pools: list[FallbackPool] = Field(default_factory=list)


class KVConfig(BaseModel):
    """
    Key-value REST store used for save-game storage.

    Attributes
    ----------
    url : str | None
        REST API root, from ``KV_REST_API_URL``
    token : str | None
        Bearer token, from ``KV_REST_API_TOKEN``
    key_prefix : str
        Prefix prepended to every device key

    """

    url: str | None = None
    token: str | None = None
    key_prefix: str = "cv:save:"
    timeout: float = 10.0


class Settings(BaseModel):
    """Complete application settings."""

    providers: dict[str, ProviderConfig] = Field(default_factory=dict)
    rpc: RpcConfig = Field(default_factory=RpcConfig)
    retries: dict[str, RetrySchedule] = Field(default_factory=dict)
    rate_limits: dict[str, RateLimitConfig] = Field(default_factory=dict)
    platform: PlatformConfig = Field(default_factory=PlatformConfig)
    default_prices: dict[str, float] = Field(default_factory=dict)
    market_asset_ids: list[str] = Field(default_factory=list)
    merkl: MerklConfig = Field(default_factory=MerklConfig)
    kv: KVConfig = Field(default_factory=KVConfig)
    log_level: str = "INFO"

    def provider(self, name: str) -> ProviderConfig:
        """
        Get a provider by name.

        Raises
        ------
        KeyError
            If the provider is not in the catalogue

        """
        try:
            return self.providers[name]
        except KeyError:
            msg = f"Unknown provider '{name}'"
            raise KeyError(msg) from None

    def retry(self, name: str) -> RetrySchedule:
        return self.retries.get(name, RetrySchedule())


def _apply_env(raw: dict[str, Any]) -> dict[str, Any]:
    """Overlay environment variables onto the raw catalogue."""
    kv = dict(raw.get("kv", {}))
    if os.environ.get("KV_REST_API_URL"):
        kv["url"] = os.environ["KV_REST_API_URL"]
    if os.environ.get("KV_REST_API_TOKEN"):
        kv["token"] = os.environ["KV_REST_API_TOKEN"]
    raw["kv"] = kv

    rpcs = os.environ.get("TREASURY_BASE_RPCS")
    if rpcs:
        rpc = dict(raw.get("rpc", {}))
        rpc["endpoints"] = [url.strip() for url in rpcs.split(",") if url.strip()]
        raw["rpc"] = rpc

    if os.environ.get("TREASURY_LOG_LEVEL"):
        raw["log_level"] = os.environ["TREASURY_LOG_LEVEL"]
    return raw


def load_settings(path: str | Path | None = None) -> Settings:
    """
    Load settings from the provider catalogue plus environment overrides.

    Parameters
    ----------
    path : str | Path | None
        Catalogue file. Uses the bundled catalogue if None.

    Returns
    -------
    Settings
        Validated settings

    """
    raw = _apply_env(dict(load_catalogue(path)))
    return Settings.model_validate(raw)
