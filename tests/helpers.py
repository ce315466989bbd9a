"""Builders, network fakes and hypothesis strategies shared across tests."""

from __future__ import annotations

import base64
import json
from typing import Any

from hypothesis import strategies as st

from proxyprobe.config.probe_policy import DEFAULT_SHADOWSOCKS_CIPHERS
from proxyprobe.models.endpoint import Endpoint, Protocol, TlsMode, Transport, UuidCredential
from proxyprobe.probes.tcp import Connection

VALID_UUID = "b831381d-6324-4d53-ad4f-8cda48b30811"


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------

def b64(text: str) -> str:
    return base64.b64encode(text.encode("utf-8")).decode("ascii")


def vmess_link(**overrides: Any) -> str:
    config = {
        "v": "2",
        "ps": "DE-vmess",
        "add": "vm.example.com",
        "port": "443",
        "id": VALID_UUID,
        "net": "tcp",
        "tls": "",
    }
    config.update(overrides)
    return "vmess://" + b64(json.dumps(config))


def make_endpoint(**overrides: Any) -> Endpoint:
    fields: dict[str, Any] = {
        "protocol": Protocol.VLESS,
        "credential": UuidCredential(uuid=VALID_UUID),
        "host": "edge.example.com",
        "port": 443,
        "raw": f"vless://{VALID_UUID}@edge.example.com:443#DE",
        "transport": Transport.TCP,
        "tls_mode": TlsMode.NONE,
        "tag": "DE",
    }
    fields.update(overrides)
    return Endpoint(**fields)


# ---------------------------------------------------------------------------
# Network fakes
# ---------------------------------------------------------------------------

class FakeWriter:
    """Stands in for ``asyncio.StreamWriter`` in TCP/TLS tests."""

    def __init__(self, tls_error: BaseException | None = None, ssl_object: Any = None) -> None:
        self.tls_error = tls_error
        self.ssl_object = ssl_object
        self.start_tls_calls: list[dict[str, Any]] = []
        self.closed = False

    async def start_tls(self, context: Any, *, server_hostname: str | None = None, **_: Any) -> None:
        self.start_tls_calls.append({"context": context, "server_hostname": server_hostname})
        if self.tls_error is not None:
            raise self.tls_error

    def get_extra_info(self, name: str, default: Any = None) -> Any:
        if name == "ssl_object":
            return self.ssl_object
        return default

    def close(self) -> None:
        self.closed = True

    async def wait_closed(self) -> None:
        return None


def fake_connection(**kwargs: Any) -> Connection:
    return Connection(reader=object(), writer=FakeWriter(**kwargs))  # type: ignore[arg-type]


class SleepRecorder:
    """Async replacement for ``asyncio.sleep`` that records requested delays."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


# ---------------------------------------------------------------------------
# Hypothesis strategies
# ---------------------------------------------------------------------------

uuids = st.uuids().map(str)
valid_ports = st.integers(min_value=1, max_value=65535)
hostnames = st.from_regex(r"[a-z][a-z0-9]{0,10}\.(com|net|org|io)", fullmatch=True)
ciphers = st.sampled_from(DEFAULT_SHADOWSOCKS_CIPHERS)
passwords = st.text(
    alphabet=st.characters(min_codepoint=33, max_codepoint=126, blacklist_characters="@:#%?/"),
    min_size=1,
    max_size=20,
)
