"""Command-line entry point.

    proxyprobe collect              fetch the subscription and export candidates
    proxyprobe validate [--input]   probe candidates and write the passing ones
    proxyprobe run                  collect, then validate
"""

from __future__ import annotations

import argparse
import asyncio
import logging
from pathlib import Path

from proxyprobe.config.probe_policy import ProbePolicy, load_probe_policy
from proxyprobe.config.settings import ProbeSettings
from proxyprobe.errors import ProxyProbeError
from proxyprobe.integration.export import collect
from proxyprobe.logging_config import configure_logging
from proxyprobe.parsers import build_registry, options_from_policy
from proxyprobe.probes.dns import DnsResolver
from proxyprobe.probes.tcp import TcpProber
from proxyprobe.probes.tls import TlsProber
from proxyprobe.probes.websocket import WebSocketProber
from proxyprobe.resilience.retry import RetryPolicy
from proxyprobe.services.batch import BatchRunner, Checker, read_candidate_file, write_passing_file
from proxyprobe.services.validator import EndpointValidator

logger = logging.getLogger(__name__)


def build_validator(settings: ProbeSettings, policy: ProbePolicy) -> EndpointValidator:
    """Wire the parser registry and the four probers from configuration."""
    timeout = settings.timeout_seconds
    return EndpointValidator(
        registry=build_registry(options_from_policy(policy)),
        dns=DnsResolver(RetryPolicy.from_stage(policy.retry.dns), timeout, networks=policy.networks()),
        tcp=TcpProber(RetryPolicy.from_stage(policy.retry.tcp), timeout),
        tls=TlsProber(RetryPolicy.from_stage(policy.retry.tls), timeout),
        websocket=WebSocketProber(
            RetryPolicy.from_stage(policy.retry.websocket),
            timeout,
            max_workers=settings.window_size,
        ),
    )


def build_runner(
    settings: ProbeSettings,
    policy: ProbePolicy,
    validator: Checker | None = None,
) -> BatchRunner:
    return BatchRunner(
        validator or build_validator(settings, policy),
        max_candidates=settings.max_candidates,
        window_size=settings.window_size,
        window_pause_seconds=settings.window_pause_seconds,
    )


async def validate(settings: ProbeSettings, policy: ProbePolicy, input_path: str, output_path: str) -> list[str]:
    """Probe the candidates in *input_path* and write the passing lines.

    Raises
    ------
    InputUnavailableError
        If *input_path* cannot be read. Nothing is written in that case.
    """
    lines = read_candidate_file(input_path)
    validator = build_validator(settings, policy)
    try:
        passing = await build_runner(settings, policy, validator).run(lines)
    finally:
        validator.close()
    write_passing_file(output_path, passing)
    logger.info("Saved %d working configs to %s", len(passing), output_path)
    return passing


async def cmd_collect(args: argparse.Namespace, settings: ProbeSettings, policy: ProbePolicy) -> None:
    await collect(settings, policy)


async def cmd_validate(args: argparse.Namespace, settings: ProbeSettings, policy: ProbePolicy) -> None:
    await validate(
        settings,
        policy,
        args.input or settings.input_path,
        args.output or settings.output_path,
    )


async def cmd_run(args: argparse.Namespace, settings: ProbeSettings, policy: ProbePolicy) -> None:
    exported: Path = await collect(settings, policy)
    await validate(settings, policy, str(exported), settings.output_path)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="proxyprobe", description="Proxy share-link collector and validator")
    parser.add_argument("--log-level", default=None, help="override PROXYPROBE_LOG_LEVEL")
    sub = parser.add_subparsers(dest="command", required=True)

    co = sub.add_parser("collect", help="fetch the subscription and export candidates")
    co.set_defaults(func=cmd_collect)

    va = sub.add_parser("validate", help="probe candidates and keep the working ones")
    va.add_argument("--input", default=None, help="candidate file (one share link per line)")
    va.add_argument("--output", default=None, help="file receiving the passing lines")
    va.set_defaults(func=cmd_validate)

    ru = sub.add_parser("run", help="collect, then validate the exported candidates")
    ru.set_defaults(func=cmd_run)

    return parser


def cli(argv: list[str] | None = None) -> int:
    """Parse arguments, run the command and return the process exit code."""
    args = build_parser().parse_args(argv)
    settings = ProbeSettings()
    configure_logging(args.log_level or settings.log_level, settings.log_format)
    policy = load_probe_policy(settings.policy_path)

    try:
        asyncio.run(args.func(args, settings, policy))
    except ProxyProbeError as exc:
        logger.error("%s", exc.message, extra={"error_reason": exc.message})
        return exc.exit_code
    return 0


if __name__ == "__main__":
    raise SystemExit(cli())
