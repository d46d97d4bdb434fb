"""DNS-over-TLS resolvers and the well-known providers that offer them."""

from __future__ import annotations

import socket
import ssl
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .defaults import DIALER_TIMEOUT

if TYPE_CHECKING:
    from .builder import Builder
    from .client import Client

# Keep-alive period, in seconds, for connections to the DNS server.
_KEEP_ALIVE_PERIOD = 180


def _split_address(address: str) -> tuple[str, int]:
    host, sep, port = address.rpartition(":")
    if not sep or not host or not port.isdigit():
        raise ValueError(f"invalid DNS server address {address!r}")
    if host.startswith("[") and host.endswith("]"):
        host = host[1:-1]
    return host, int(port)


def _enable_keep_alive(sock: socket.socket) -> None:
    sock.setsockopt(socket.SOL_SOCKET, socket.SO_KEEPALIVE, 1)
    for option in ("TCP_KEEPIDLE", "TCP_KEEPALIVE", "TCP_KEEPINTVL"):
        value = getattr(socket, option, None)
        if value is not None:
            try:
                sock.setsockopt(socket.IPPROTO_TCP, value, _KEEP_ALIVE_PERIOD)
            except OSError:
                pass


@dataclass
class TLSResolver:
    """Opens TLS connections to a DNS server, trying its addresses in order."""

    server_name: str
    addresses: tuple[str, ...]
    _context: ssl.SSLContext = field(
        default_factory=ssl.create_default_context, init=False, repr=False, compare=False
    )
    _session: ssl.SSLSession | None = field(default=None, init=False, repr=False, compare=False)

    def connect(self, timeout: float = DIALER_TIMEOUT) -> ssl.SSLSocket:
        """Connect to the first reachable address and return a TLS socket.

        The error of the last address tried is raised when none can be reached.
        """
        if not self.addresses:
            raise ValueError("no DNS server addresses configured")

        targets = [_split_address(address) for address in self.addresses]
        last_error: OSError | None = None
        sock: socket.socket | None = None
        for target in targets:
            try:
                sock = socket.create_connection(target, timeout=timeout)
            except OSError as exc:
                last_error = exc
                continue
            break
        if sock is None:
            assert last_error is not None
            raise last_error

        try:
            _enable_keep_alive(sock)
            tls = self._context.wrap_socket(
                sock, server_hostname=self.server_name, session=self._session
            )
        except BaseException:
            sock.close()
            raise
        self._session = tls.session
        return tls


class DNSOverTLS:
    """Chooses a DNS-over-TLS provider for a client being built."""

    def __init__(self, builder: Builder) -> None:
        self.builder = builder

    def adguard(self) -> Builder:
        """Use AdGuard DNS."""
        return self.add_provider("dns.adguard-dns.com", "94.140.14.14:853", "94.140.15.15:853")

    def google(self) -> Builder:
        """Use Google Public DNS."""
        return self.add_provider("dns.google", "8.8.8.8:853", "8.8.4.4:853")

    def cloudflare(self) -> Builder:
        """Use Cloudflare DNS."""
        return self.add_provider("1dot1dot1dot1.cloudflare-dns.com", "1.1.1.1:853", "1.0.0.1:853")

    def quad9(self) -> Builder:
        """Use Quad9 DNS."""
        return self.add_provider("dns.quad9.net", "9.9.9.9:853", "149.112.112.112:853")

    def switch(self) -> Builder:
        """Use SWITCH DNS."""
        return self.add_provider("dns.switch.ch", "130.59.31.248:853", "130.59.31.251:853")

    def cira_shield(self) -> Builder:
        """Use CIRA Canadian Shield DNS."""
        return self.add_provider(
            "private.canadianshield.cira.ca", "149.112.121.10:853", "149.112.122.10:853"
        )

    def ali(self) -> Builder:
        """Use AliDNS."""
        return self.add_provider("dns.alidns.com", "223.5.5.5:853", "223.6.6.6:853")

    def quad101(self) -> Builder:
        """Use Quad101 DNS."""
        return self.add_provider("101.101.101.101", "101.101.101.101:853", "101.102.103.104:853")

    def sb(self) -> Builder:
        """Use Secure DNS (dot.sb)."""
        return self.add_provider("dot.sb", "185.222.222.222:853", "45.11.45.11:853")

    def forge(self) -> Builder:
        """Use DNS Forge."""
        return self.add_provider("dnsforge.de", "176.9.93.198:853", "176.9.1.117:853")

    def libre_dns(self) -> Builder:
        """Use LibreDNS."""
        return self.add_provider("dot.libredns.gr", "116.202.176.26:853")

    def add_provider(self, server_name: str, *args: str) -> Builder:
        """Use a custom provider, given its TLS server name and addresses."""
        resolver = TLSResolver(str(server_name), tuple(str(address) for address in args))

        def apply(client: Client) -> None:
            client.dialer.resolver = resolver

        return self.builder._add_client_middleware(apply, 0)