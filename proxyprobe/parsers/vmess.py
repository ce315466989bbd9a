"""VMess (``vmess://``) share-link parser.

The body is a base64-encoded JSON object in the v2rayN layout::

    {"v": "2", "ps": "tag", "add": "host", "port": "443", "id": "<uuid>",
     "net": "ws", "host": "cdn.example.com", "path": "/ws", "tls": "tls"}

``id``, ``add`` and ``port`` are required; the rest is optional.
"""

from __future__ import annotations

import json

from proxyprobe.errors import ParseError
from proxyprobe.models.endpoint import Endpoint, Protocol, TlsMode, Transport, UuidCredential
from proxyprobe.parsers.base import BaseParser, ParseOptions, decode_base64, parse_port, validate_uuid

_TLS_MODES = {
    "tls": TlsMode.TLS,
    "reality": TlsMode.TLS,
    "xtls": TlsMode.XTLS,
}


def _optional_str(config: dict, key: str) -> str:
    value = config.get(key)
    if value is None:
        return ""
    if not isinstance(value, (str, int, float)) or isinstance(value, bool):
        raise ParseError(f"field '{key}' has unexpected type")
    return str(value).strip()


class VmessParser(BaseParser):
    scheme = "vmess"
    protocol = Protocol.VMESS

    def parse_body(self, body: str, raw: str, options: ParseOptions) -> Endpoint:
        # Some exporters append a tag after the payload
        payload = body.split("#", 1)[0]
        try:
            config = json.loads(decode_base64(payload))
        except json.JSONDecodeError as exc:
            raise ParseError(f"invalid VMess JSON: {exc.msg}") from None
        if not isinstance(config, dict):
            raise ParseError("VMess payload is not a JSON object")

        for key in ("id", "add", "port"):
            if key not in config:
                raise ParseError(f"missing field '{key}'")

        uuid = validate_uuid(config["id"], strict=options.strict_uuid)
        host = _optional_str(config, "add").strip("[]")
        if not host:
            raise ParseError("missing host")
        port = parse_port(config["port"])

        transport = Transport.WEBSOCKET if _optional_str(config, "net").lower() == "ws" else Transport.TCP
        tls_mode = _TLS_MODES.get(_optional_str(config, "tls").lower(), TlsMode.NONE)

        return Endpoint(
            protocol=self.protocol,
            credential=UuidCredential(uuid=uuid),
            host=host,
            port=port,
            raw=raw,
            transport=transport,
            tls_mode=tls_mode,
            host_header=_optional_str(config, "host") or None,
            path=_optional_str(config, "path") or "/",
            tag=_optional_str(config, "ps"),
        )
