"""Resilience components for the probe stages."""

from proxyprobe.resilience.retry import RetryPolicy

__all__ = ["RetryPolicy"]
