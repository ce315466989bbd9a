"""Configuration module: settings and probe policy."""

from proxyprobe.config.probe_policy import (
    DEFAULT_PRIVATE_NETWORKS,
    DEFAULT_SHADOWSOCKS_CIPHERS,
    ProbePolicy,
    RetrySection,
    StageRetry,
    load_probe_policy,
)
from proxyprobe.config.settings import ProbeSettings

__all__ = [
    "DEFAULT_PRIVATE_NETWORKS",
    "DEFAULT_SHADOWSOCKS_CIPHERS",
    "ProbePolicy",
    "ProbeSettings",
    "RetrySection",
    "StageRetry",
    "load_probe_policy",
]
