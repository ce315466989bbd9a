"""Shadowsocks (``ss://``) share-link parser.

Two encodings are in circulation:

- legacy: ``ss://BASE64(method:password@host:port)#tag``
- SIP002: ``ss://BASE64(method:password)@host:port[/][?plugin=...]#tag``

The method must be on the cipher allow-list and the password non-empty.
"""

from __future__ import annotations

from urllib.parse import unquote

from proxyprobe.errors import ParseError
from proxyprobe.models.endpoint import Endpoint, Protocol, ShadowsocksCredential
from proxyprobe.parsers.base import (
    BaseParser,
    ParseOptions,
    decode_base64,
    split_fragment,
    split_host_port,
)


class ShadowsocksParser(BaseParser):
    scheme = "ss"
    protocol = Protocol.SHADOWSOCKS

    def parse_body(self, body: str, raw: str, options: ParseOptions) -> Endpoint:
        body, tag = split_fragment(body)

        if "@" in body:
            userinfo_part, _, authority = body.rpartition("@")
            authority = authority.split("?", 1)[0].rstrip("/")
            userinfo = self._decode_userinfo(userinfo_part)
        else:
            decoded = decode_base64(body)
            userinfo, sep, authority = decoded.rpartition("@")
            if not sep:
                raise ParseError("missing '@' between credentials and server")

        method, sep, password = userinfo.partition(":")
        if not sep:
            raise ParseError("missing ':' between method and password")
        method = method.strip().lower()
        if method not in options.shadowsocks_ciphers:
            raise ParseError(f"invalid Shadowsocks method: {method or '<empty>'}")
        if not password:
            raise ParseError("empty password")

        host, port = split_host_port(authority)
        return Endpoint(
            protocol=self.protocol,
            credential=ShadowsocksCredential(method=method, password=password),
            host=host,
            port=port,
            raw=raw,
            tag=tag,
        )

    @staticmethod
    def _decode_userinfo(text: str) -> str:
        """SIP002 user-info is base64, except for AEAD-2022 style plain ``method:password``."""
        plain = unquote(text)
        if ":" in plain:
            return plain
        return decode_base64(text)
