"""Shared test fixtures for the proxyprobe test suite."""

from __future__ import annotations

import logging
import os

import pytest

from proxyprobe.config.probe_policy import ProbePolicy
from proxyprobe.config.settings import ProbeSettings
from tests.helpers import SleepRecorder


# ---------------------------------------------------------------------------
# Isolate tests from the caller's environment
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def _clear_proxyprobe_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Drop PROXYPROBE_* variables so ProbeSettings sees only test values."""
    for key in list(os.environ):
        if key.startswith("PROXYPROBE_"):
            monkeypatch.delenv(key, raising=False)


# ---------------------------------------------------------------------------
# Settings / policy fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def settings(tmp_path) -> ProbeSettings:
    """Test settings with every path under a temporary directory."""
    return ProbeSettings(
        input_path=str(tmp_path / "outputs" / "configs.txt"),
        output_path=str(tmp_path / "outputs" / "good.txt"),
        policy_path=str(tmp_path / "probe_policy.yaml"),
        cache_path=str(tmp_path / "cache" / "cache.json"),
        export_dir=str(tmp_path / "outputs"),
        subscription_url="https://sub.example.com/api/subscription",
        window_pause_seconds=0,
        timeout_seconds=0.5,
    )


@pytest.fixture
def policy() -> ProbePolicy:
    return ProbePolicy()


@pytest.fixture
def sleep_recorder() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture(autouse=True)
def _restore_root_logger():
    """configure_logging() replaces root handlers; put pytest's back afterwards."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
