"""Unit tests for the command-line entry point."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest

from proxyprobe.config.probe_policy import ProbePolicy
from proxyprobe.config.settings import ProbeSettings
from proxyprobe.errors import SubscriptionFetchError
from proxyprobe.main import build_parser, build_runner, build_validator, cli
from proxyprobe.models.outcome import CandidateReport, ProbeOutcome
from proxyprobe.services.validator import EndpointValidator


class PassGood:
    def __init__(self) -> None:
        self.closed = False

    def close(self) -> None:
        self.closed = True

    async def check(self, line: str) -> CandidateReport:
        outcome = ProbeOutcome.PASS if "good" in line else ProbeOutcome.DNS_FAILURE
        return CandidateReport(raw=line, outcome=outcome)


@pytest.fixture
def cli_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    monkeypatch.setenv("PROXYPROBE_POLICY_PATH", str(tmp_path / "missing-policy.yaml"))
    monkeypatch.setenv("PROXYPROBE_LOG_FORMAT", "text")
    monkeypatch.setenv("PROXYPROBE_WINDOW_PAUSE_SECONDS", "0")
    monkeypatch.setenv("PROXYPROBE_OUTPUT_PATH", str(tmp_path / "good.txt"))
    return tmp_path


class TestParser:
    def test_command_is_required(self) -> None:
        with pytest.raises(SystemExit):
            build_parser().parse_args([])

    def test_validate_overrides(self) -> None:
        args = build_parser().parse_args(["--log-level", "DEBUG", "validate", "--input", "in.txt", "--output", "out.txt"])

        assert args.command == "validate"
        assert args.log_level == "DEBUG"
        assert args.input == "in.txt"
        assert args.output == "out.txt"


class TestBuilders:
    def test_build_validator(self, settings: ProbeSettings, policy: ProbePolicy) -> None:
        assert isinstance(build_validator(settings, policy), EndpointValidator)

    def test_websocket_pool_matches_window(self, settings: ProbeSettings, policy: ProbePolicy) -> None:
        validator = build_validator(settings, policy)
        try:
            pool = validator._websocket._executor  # type: ignore[attr-defined]
            assert pool._max_workers == settings.window_size  # type: ignore[attr-defined]
        finally:
            validator.close()

    def test_build_runner_uses_settings(self, settings: ProbeSettings, policy: ProbePolicy) -> None:
        runner = build_runner(settings, policy)

        assert runner._window_size == settings.window_size  # type: ignore[attr-defined]
        assert runner._max_candidates == settings.max_candidates  # type: ignore[attr-defined]


class TestCli:
    def test_validate_writes_passing_lines(self, cli_env: Path) -> None:
        source = cli_env / "configs.txt"
        source.write_text("good-1\nbad-1\n\ngood-2", encoding="utf-8")

        checker = PassGood()
        with patch("proxyprobe.main.build_validator", return_value=checker):
            code = cli(["validate", "--input", str(source)])

        assert code == 0
        assert checker.closed
        assert (cli_env / "good.txt").read_text(encoding="utf-8") == "good-1\ngood-2"

    def test_validate_output_override(self, cli_env: Path) -> None:
        source = cli_env / "configs.txt"
        source.write_text("good-1", encoding="utf-8")
        target = cli_env / "elsewhere" / "out.txt"

        with patch("proxyprobe.main.build_validator", return_value=PassGood()):
            code = cli(["validate", "--input", str(source), "--output", str(target)])

        assert code == 0
        assert target.read_text(encoding="utf-8") == "good-1"

    def test_missing_input_exits_with_code_2(self, cli_env: Path) -> None:
        code = cli(["validate", "--input", str(cli_env / "nope.txt")])

        assert code == 2
        assert not (cli_env / "good.txt").exists()

    def test_collect_failure_exits_with_code_3(self, cli_env: Path) -> None:
        with patch("proxyprobe.main.collect", new_callable=AsyncMock, side_effect=SubscriptionFetchError()):
            code = cli(["collect"])

        assert code == 3

    def test_run_validates_exported_file(self, cli_env: Path) -> None:
        exported = cli_env / "configs.txt"
        exported.write_text("bad-1\ngood-1", encoding="utf-8")

        with patch("proxyprobe.main.collect", new_callable=AsyncMock, return_value=exported) as mock_collect, \
                patch("proxyprobe.main.build_validator", return_value=PassGood()):
            code = cli(["run"])

        assert code == 0
        mock_collect.assert_awaited_once()
        assert (cli_env / "good.txt").read_text(encoding="utf-8") == "good-1"
