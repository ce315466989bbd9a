"""Probe chain execution and batch orchestration."""

from proxyprobe.services.batch import (
    BatchRunner,
    read_candidate_file,
    select_candidates,
    windows,
    write_passing_file,
)
from proxyprobe.services.validator import EndpointValidator

__all__ = [
    "BatchRunner",
    "EndpointValidator",
    "read_candidate_file",
    "select_candidates",
    "windows",
    "write_passing_file",
]
