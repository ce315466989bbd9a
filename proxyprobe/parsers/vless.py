"""VLESS and Trojan share-link parsers.

Both use the plain-text layout ``credential@host:port[/]?query#tag``:

- VLESS: the credential is a UUID; ``host`` in the query overrides the
  Host header / SNI.
- Trojan: the credential is a percent-encoded, non-empty password; ``sni``
  overrides the server name. Trojan is TLS unless ``security=none``.

``security`` of ``tls``, ``reality`` or ``xtls`` secures the transport and
``type=ws`` selects WebSocket.
"""

from __future__ import annotations

from abc import abstractmethod
from urllib.parse import unquote

from proxyprobe.errors import ParseError
from proxyprobe.models.endpoint import (
    Credential,
    Endpoint,
    PasswordCredential,
    Protocol,
    TlsMode,
    Transport,
    UuidCredential,
)
from proxyprobe.parsers.base import (
    BaseParser,
    ParseOptions,
    parse_query,
    split_fragment,
    split_host_port,
    validate_uuid,
)

_SECURED = {
    "tls": TlsMode.TLS,
    "reality": TlsMode.TLS,
    "xtls": TlsMode.XTLS,
}


class _UserInfoParser(BaseParser):
    """Shared layout handling for the ``credential@host:port?query#tag`` schemes."""

    host_override_param: str
    default_tls_mode: TlsMode = TlsMode.NONE

    def parse_body(self, body: str, raw: str, options: ParseOptions) -> Endpoint:
        body, tag = split_fragment(body.strip())
        authority, _, query_string = body.partition("?")
        credential_part, sep, host_port = authority.rpartition("@")
        if not sep:
            raise ParseError("missing '@' between credential and server")

        credential = self.parse_credential(credential_part, options)
        host, port = split_host_port(host_port.split("/", 1)[0])
        query = parse_query(query_string)

        security = query.get("security", "").lower()
        if security in _SECURED:
            tls_mode = _SECURED[security]
        elif security == "none":
            tls_mode = TlsMode.NONE
        else:
            tls_mode = self.default_tls_mode

        transport = Transport.WEBSOCKET if query.get("type", "").lower() == "ws" else Transport.TCP

        return Endpoint(
            protocol=self.protocol,
            credential=credential,
            host=host,
            port=port,
            raw=raw,
            transport=transport,
            tls_mode=tls_mode,
            host_header=query.get(self.host_override_param) or None,
            path=query.get("path") or "/",
            tag=tag,
        )

    @abstractmethod
    def parse_credential(self, text: str, options: ParseOptions) -> Credential:
        """Validate the userinfo part and return the protocol credential."""


class VlessParser(_UserInfoParser):
    scheme = "vless"
    protocol = Protocol.VLESS
    host_override_param = "host"

    def parse_credential(self, text: str, options: ParseOptions) -> Credential:
        return UuidCredential(uuid=validate_uuid(text, strict=options.strict_uuid))


class TrojanParser(_UserInfoParser):
    scheme = "trojan"
    protocol = Protocol.TROJAN
    host_override_param = "sni"
    default_tls_mode = TlsMode.TLS

    def parse_credential(self, text: str, options: ParseOptions) -> Credential:
        password = unquote(text)
        if not password:
            raise ParseError("empty password")
        return PasswordCredential(password=password)
