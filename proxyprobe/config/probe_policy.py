"""Probe policy models and YAML loader.

Provides typed Pydantic models for the validation policy (retry bounds per
stage, Shadowsocks cipher allow-list, private networks, UUID strictness,
deduplication) and a loader that parses the YAML config into those models.
"""

from __future__ import annotations

import ipaddress
import logging
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger(__name__)

DEFAULT_SHADOWSOCKS_CIPHERS: tuple[str, ...] = (
    "aes-128-gcm",
    "aes-256-gcm",
    "chacha20-poly1305",
    "aes-128-ctr",
    "aes-192-ctr",
    "aes-256-ctr",
)

DEFAULT_PRIVATE_NETWORKS: tuple[str, ...] = (
    "10.0.0.0/8",
    "172.16.0.0/12",
    "192.168.0.0/16",
)


class StageRetry(BaseModel):
    """Attempt bound and fixed inter-attempt delay for one probe stage."""

    max_attempts: int = Field(default=3, ge=1)
    delay_seconds: float = Field(default=1.0, ge=0)


class RetrySection(BaseModel):
    """Retry settings for every probe stage."""

    dns: StageRetry = StageRetry()
    tcp: StageRetry = StageRetry()
    tls: StageRetry = StageRetry()
    # WebSocket failures are terminal, a second attempt never runs
    websocket: StageRetry = StageRetry(max_attempts=1, delay_seconds=0.0)


class ProbePolicy(BaseModel):
    """Validation policy shared by the parser, the probers and the collector."""

    retry: RetrySection = RetrySection()
    shadowsocks_ciphers: list[str] = Field(
        default_factory=lambda: list(DEFAULT_SHADOWSOCKS_CIPHERS), min_length=1
    )
    private_networks: list[str] = Field(
        default_factory=lambda: list(DEFAULT_PRIVATE_NETWORKS)
    )
    strict_uuid: bool = True
    dedupe: bool = True

    @field_validator("shadowsocks_ciphers")
    @classmethod
    def _lowercase_ciphers(cls, value: list[str]) -> list[str]:
        return [cipher.strip().lower() for cipher in value if cipher.strip()]

    @field_validator("private_networks")
    @classmethod
    def _check_networks(cls, value: list[str]) -> list[str]:
        for network in value:
            ipaddress.ip_network(network)  # raises ValueError on bad CIDR
        return value

    def networks(self) -> list[ipaddress.IPv4Network | ipaddress.IPv6Network]:
        """Return the private networks as ``ipaddress`` objects."""
        return [ipaddress.ip_network(network) for network in self.private_networks]


_DEFAULT_POLICY = ProbePolicy()


def load_probe_policy(yaml_path: str) -> ProbePolicy:
    """Parse a probe policy YAML file into a typed ProbePolicy.

    Args:
        yaml_path: Path to the YAML configuration file.

    Returns:
        The parsed policy. If the file is not found or is not valid YAML,
        returns the built-in default policy. Top-level sections that fail
        validation are skipped and keep their defaults.
    """
    path = Path(yaml_path)

    if not path.exists():
        logger.warning("Probe policy file not found at %s, using built-in defaults", yaml_path)
        return _DEFAULT_POLICY

    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        logger.error("Failed to parse probe policy YAML at %s: %s", yaml_path, exc)
        return _DEFAULT_POLICY

    if raw is None:
        return _DEFAULT_POLICY

    if not isinstance(raw, dict):
        logger.warning("Probe policy YAML at %s is not a mapping, using built-in defaults", yaml_path)
        return _DEFAULT_POLICY

    accepted: dict = {}
    for section, config in raw.items():
        if section not in ProbePolicy.model_fields:
            logger.warning("Unknown probe policy section '%s', ignoring", section)
            continue
        try:
            ProbePolicy.model_validate({section: config})
        except Exception as exc:
            logger.error("Invalid probe policy section '%s': %s, skipping", section, exc)
            continue
        accepted[section] = config

    return ProbePolicy.model_validate(accepted)
