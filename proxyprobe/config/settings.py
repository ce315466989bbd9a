"""Pydantic Settings for proxyprobe.

All environment variables use the PROXYPROBE_ prefix.
Example: PROXYPROBE_WINDOW_SIZE=10, PROXYPROBE_TIMEOUT_SECONDS=5
"""

from __future__ import annotations

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings


class ProbeSettings(BaseSettings):
    """Runtime configuration validated from environment variables."""

    # Logging
    log_level: str = "INFO"
    log_format: Literal["json", "text"] = "json"

    # Validator input / output
    input_path: str = "outputs/configs.txt"
    output_path: str = "outputs/good.txt"

    # Batch orchestration
    max_candidates: int = Field(default=100, ge=1)  # Most recent N lines only
    window_size: int = Field(default=20, ge=1, le=1000)
    window_pause_seconds: float = Field(default=0.5, ge=0)

    # Per-stage network timeout
    timeout_seconds: float = Field(default=3.0, gt=0)

    # Retry bounds, cipher allow-list, private ranges
    policy_path: str = "config/probe_policy.yaml"

    # Subscription collector
    subscription_url: str = "https://namira-web.vercel.app/api/subscription"
    subscription_timeout_seconds: float = Field(default=15.0, gt=0)
    subscription_max_retries: int = Field(default=3, ge=1)
    cache_path: str = "cache/cache.json"
    cache_ttl_seconds: int = Field(default=600, ge=0)  # 10 minutes
    export_dir: str = "outputs"
    country_filter: list[str] = ["🇩🇪", "DE", "Germany"]

    model_config = {"env_prefix": "PROXYPROBE_"}
