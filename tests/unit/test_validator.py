"""Unit tests for the per-candidate probe chain."""

from __future__ import annotations

import ssl
import time
from typing import Any

import pytest
import websocket

from proxyprobe.models.outcome import ProbeOutcome
from proxyprobe.parsers import build_registry
from proxyprobe.probes.dns import DnsResolver
from proxyprobe.probes.tcp import TcpProber
from proxyprobe.probes.tls import CERT_UNAVAILABLE, TlsProber
from proxyprobe.probes.websocket import WebSocketProber
from proxyprobe.resilience.retry import RetryPolicy
from proxyprobe.services.batch import BatchRunner
from proxyprobe.services.validator import EndpointValidator
from tests.helpers import VALID_UUID, FakeWriter, SleepRecorder, b64, vmess_link

PUBLIC_IP = "93.184.216.34"


class FakeNetwork:
    """Scriptable DNS / TCP / TLS / WebSocket behaviour for one test."""

    def __init__(
        self,
        *,
        ip: str = PUBLIC_IP,
        tcp_error: BaseException | None = None,
        tls_error: BaseException | None = None,
        ws_error: BaseException | None = None,
        ws_delay: float = 0.0,
    ) -> None:
        self.ip = ip
        self.tcp_error = tcp_error
        self.tls_error = tls_error
        self.ws_error = ws_error
        self.ws_delay = ws_delay
        self.lookups: list[str] = []
        self.connects: list[tuple[str, int]] = []
        self.writers: list[FakeWriter] = []
        self.ws_calls: list[str] = []

    async def lookup(self, host: str) -> str:
        self.lookups.append(host)
        return self.ip

    async def open_connection(self, host: str, port: int):
        self.connects.append((host, port))
        if self.tcp_error is not None:
            raise self.tcp_error
        writer = FakeWriter(tls_error=self.tls_error)
        self.writers.append(writer)
        return object(), writer

    def create_connection(self, url: str, **kwargs: Any):
        self.ws_calls.append(url)
        if self.ws_delay:
            time.sleep(self.ws_delay)
        if self.ws_error is not None:
            raise self.ws_error

        class _Socket:
            def close(self) -> None:
                pass

        return _Socket()


def _validator(network: FakeNetwork, *, ws_workers: int = 20, ws_timeout: float = 1.0) -> EndpointValidator:
    sleep = SleepRecorder()
    retry = RetryPolicy(max_attempts=3, delay_seconds=1.0)
    return EndpointValidator(
        registry=build_registry(),
        dns=DnsResolver(retry, 1.0, lookup=network.lookup, sleep=sleep),
        tcp=TcpProber(retry, 1.0, open_connection=network.open_connection, sleep=sleep),
        tls=TlsProber(retry, 1.0, sleep=sleep),
        websocket=WebSocketProber(
            RetryPolicy(max_attempts=1),
            ws_timeout,
            create_connection=network.create_connection,
            max_workers=ws_workers,
        ),
    )


class TestEndpointValidator:
    @pytest.mark.asyncio
    async def test_plain_endpoint_passes_without_tls(self) -> None:
        network = FakeNetwork()
        line = "ss://" + b64("aes-256-gcm:secret@ss.example.com:8388") + "#DE"

        report = await _validator(network).check(line)

        assert report.passed
        assert report.raw == line
        assert report.ip == PUBLIC_IP
        assert report.cert_expiry is None
        assert network.connects == [(PUBLIC_IP, 8388)]
        assert network.writers[0].start_tls_calls == []
        # The probe connection is always released
        assert network.writers[0].closed

    @pytest.mark.asyncio
    async def test_tls_endpoint_passes_with_expiry(self) -> None:
        network = FakeNetwork()

        report = await _validator(network).check("trojan://secret@tr.example.com:443?sni=sni.example.com")

        assert report.passed
        assert report.cert_expiry == CERT_UNAVAILABLE
        assert network.writers[0].start_tls_calls[0]["server_hostname"] == "sni.example.com"

    @pytest.mark.asyncio
    async def test_parse_failure_never_touches_network(self) -> None:
        network = FakeNetwork()

        report = await _validator(network).check(vmess_link(id="not-a-uuid"))

        assert report.outcome is ProbeOutcome.PARSE_FAILURE
        assert network.lookups == []
        assert network.connects == []

    @pytest.mark.asyncio
    async def test_private_address_stops_chain(self) -> None:
        network = FakeNetwork(ip="192.168.1.5")

        report = await _validator(network).check(f"vless://{VALID_UUID}@lan.example.com:443")

        assert report.outcome is ProbeOutcome.PRIVATE_ADDRESS
        assert len(network.lookups) == 1
        assert network.connects == []

    @pytest.mark.asyncio
    async def test_refused_connection_is_retried(self) -> None:
        network = FakeNetwork(tcp_error=ConnectionRefusedError(111, "Connection refused"))

        report = await _validator(network).check(f"vless://{VALID_UUID}@h.example.com:443")

        assert report.outcome is ProbeOutcome.TCP_REFUSED
        assert len(network.connects) == 3

    @pytest.mark.asyncio
    async def test_websocket_accepts_but_tls_fails(self) -> None:
        network = FakeNetwork(tls_error=ssl.SSLError(1, "handshake failure"))
        line = (
            f"vless://{VALID_UUID}@edge.example.com:443"
            "?type=ws&security=tls&path=%2Fws&host=example.com#DE"
        )

        report = await _validator(network).check(line)

        assert report.outcome is ProbeOutcome.TLS_FAILURE
        assert network.ws_calls == ["wss://edge.example.com:443/ws"]
        # One connection from the TCP stage plus two TLS reconnects
        assert len(network.connects) == 3
        assert all(writer.closed for writer in network.writers)

    @pytest.mark.asyncio
    async def test_websocket_failure_skips_tcp(self) -> None:
        network = FakeNetwork(ws_error=websocket.WebSocketException("Handshake status 404"))

        report = await _validator(network).check(f"vless://{VALID_UUID}@h.example.com:80?type=ws")

        assert report.outcome is ProbeOutcome.WEBSOCKET_FAILURE
        assert network.connects == []

    @pytest.mark.asyncio
    async def test_unexpected_error_maps_to_stage_failure(self) -> None:
        network = FakeNetwork()

        async def exploding_open(host: str, port: int):
            raise RuntimeError("boom")

        validator = _validator(network)
        validator._tcp._open_connection = exploding_open  # type: ignore[attr-defined]

        report = await validator.check(f"vless://{VALID_UUID}@h.example.com:443")

        assert report.outcome is ProbeOutcome.TCP_REFUSED
        assert "boom" in report.detail


class TestEndToEnd:
    @pytest.mark.asyncio
    async def test_only_valid_shadowsocks_line_survives(self) -> None:
        network = FakeNetwork()
        ss_line = "ss://" + b64("aes-256-gcm:s3cret@ss.example.com:8388") + "#DE"
        lines = [
            ss_line,
            vmess_link(id="definitely-not-a-uuid"),
            "trojan://@tr.example.com:443#DE",
        ]
        runner = BatchRunner(_validator(network), window_pause_seconds=0)

        passing = await runner.run(lines)

        assert passing == [ss_line]
        # Neither rejected line reached DNS
        assert network.lookups == ["ss.example.com"]

    @pytest.mark.asyncio
    async def test_full_window_of_slow_upgrades_all_pass(self) -> None:
        window = 20
        network = FakeNetwork(ws_delay=0.3)
        validator = _validator(network, ws_workers=window, ws_timeout=1.0)
        lines = [
            f"vless://{VALID_UUID}@h{i}.example.com:443?type=ws&security=tls&path=%2Fws#DE"
            for i in range(window)
        ]
        runner = BatchRunner(validator, window_size=window, window_pause_seconds=0)

        try:
            reports = await runner.run_reports(lines)
        finally:
            validator.close()

        assert [report.outcome for report in reports] == [ProbeOutcome.PASS] * window
        assert len(network.ws_calls) == window
