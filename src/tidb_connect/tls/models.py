"""TLS trust profile models.

A ``TrustProfile`` is the named bundle of TLS settings a descriptor refers
to with ``tls=<name>``: a pinned minimum protocol version, an optional peer
name used for certificate verification, and an optional CA bundle (system
roots when absent).

Usage:
    from tidb_connect.tls.models import TrustProfile

    profile = TrustProfile(server_name="gateway01.us-west-2.prod.aws.tidbcloud.com")
    ctx = profile.ssl_context()
"""

import socket
import ssl
from dataclasses import dataclass
from typing import Any

# The one profile name descriptors may reference; not configurable
TLS_PROFILE_NAME = "tidb"

PROFILE_REFERENCE = f"tls={TLS_PROFILE_NAME}"

MIN_TLS_VERSION = ssl.TLSVersion.TLSv1_2


def references_profile(descriptor_text: str) -> bool:
    """Whether the descriptor text asks for the ``tidb`` trust profile."""
    return PROFILE_REFERENCE in descriptor_text


class PeerNameSSLContext(ssl.SSLContext):
    """``SSLContext`` that verifies certificates against a fixed peer name.

    Drivers pass the dialed host as ``server_hostname``; when ``peer_name``
    is set it replaces that value, both for blocking sockets
    (``wrap_socket``) and for asyncio transports (``wrap_bio``).
    """

    peer_name: str | None = None

    def wrap_socket(self, sock: socket.socket, *args: Any, **kwargs: Any) -> ssl.SSLSocket:
        """Wrap a blocking socket, verifying against ``peer_name`` when set."""
        if self.peer_name:
            kwargs["server_hostname"] = self.peer_name
        return super().wrap_socket(sock, *args, **kwargs)

    def wrap_bio(
        self,
        incoming: ssl.MemoryBIO,
        outgoing: ssl.MemoryBIO,
        *args: Any,
        **kwargs: Any,
    ) -> ssl.SSLObject:
        """Wrap memory BIOs for asyncio transports, verifying against ``peer_name``."""
        if self.peer_name:
            kwargs["server_hostname"] = self.peer_name
        return super().wrap_bio(incoming, outgoing, *args, **kwargs)


@dataclass(frozen=True)
class TrustProfile:
    """Immutable TLS settings registered under a profile name."""

    min_version: ssl.TLSVersion = MIN_TLS_VERSION
    server_name: str | None = None
    ca_pem: str | None = None  # None means system default roots
    ca_path: str | None = None

    @property
    def uses_system_roots(self) -> bool:
        return self.ca_pem is None

    def ssl_context(self) -> PeerNameSSLContext:
        """Build a verifying client context from this profile.

        Raises:
            ssl.SSLError: If ``ca_pem`` cannot be parsed.
        """
        ctx = PeerNameSSLContext(ssl.PROTOCOL_TLS_CLIENT)
        ctx.minimum_version = self.min_version
        if self.ca_pem is None:
            ctx.load_default_certs(ssl.Purpose.SERVER_AUTH)
        else:
            ctx.load_verify_locations(cadata=self.ca_pem)
        ctx.peer_name = self.server_name
        return ctx

    def describe(self) -> str:
        """One-line summary for logs and CLI output."""
        roots = f"CA file {self.ca_path}" if self.ca_path else "system roots"
        if self.ca_pem is not None and not self.ca_path:
            roots = "custom CA bundle"
        peer = self.server_name or "<dialed address>"
        return f"min={self.min_version.name}, peer={peer}, roots={roots}"
