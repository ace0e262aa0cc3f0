"""TLS trust bootstrapping.

Builds the ``tidb`` trust profile from raw configuration and registers it
before the connection descriptor is parsed. A descriptor that carries
``tls=tidb`` cannot be parsed until the profile exists, so this step must
run between assembling and normalizing the descriptor.

TLS is required when either:

- ``TIDB_TLS`` is exactly ``"true"``, or
- the assembled descriptor itself asks for ``tls=tidb`` (override path).

Usage:
    from tidb_connect.tls.builder import TrustBuilder, tls_required

    if tls_required(raw, assembled):
        handle = TrustBuilder(raw).build(assembled, registry)
"""

import logging
import re
import ssl
from pathlib import Path

from tidb_connect.config.models import RawConfig
from tidb_connect.dsn.models import AssembledDescriptor
from tidb_connect.errors import TLSBootstrapError
from tidb_connect.tls.models import (
    MIN_TLS_VERSION,
    TLS_PROFILE_NAME,
    TrustProfile,
    references_profile,
)
from tidb_connect.tls.registry import TrustHandle, TrustProfileRegistry

logger = logging.getLogger(__name__)

_PEM_BLOCK = re.compile(
    rb"-----BEGIN CERTIFICATE-----[A-Za-z0-9+/=\s]*?-----END CERTIFICATE-----"
)


def tls_required(raw: RawConfig, assembled: AssembledDescriptor) -> bool:
    """Whether the trust profile must be registered before normalization."""
    return raw.tls_enabled or references_profile(assembled.text)


def extract_peer_name(descriptor_text: str) -> str | None:
    """Extract the host from the first ``tcp(host:port)`` address.

    Returns:
        Host without port (IPv6 brackets removed), or None when the text has
        no complete ``tcp(...)`` segment.

    Examples:
        >>> extract_peer_name("u:p@tcp(db.example.com:4000)/test")
        'db.example.com'
        >>> extract_peer_name("u:p@tcp([::1]:4000)/test")
        '::1'
        >>> extract_peer_name("u:p@unix(/tmp/mysql.sock)/test") is None
        True
    """
    start = descriptor_text.find("tcp(")
    if start == -1:
        return None
    start += len("tcp(")
    end = descriptor_text.find(")", start)
    if end == -1:
        return None

    addr = descriptor_text[start:end]
    if addr.startswith("["):
        host = addr[1:addr.find("]")] if "]" in addr else ""
    else:
        host = addr.split(":", 1)[0]
    return host or None


def load_ca_bundle(ca_path: str) -> str:
    """Read and validate a PEM certificate bundle.

    Only the ``CERTIFICATE`` blocks are kept; text around them (a BOM,
    comment lines, ``Bag Attributes`` headers) is ignored.

    Returns:
        The certificate blocks joined into one PEM string.

    Raises:
        TLSBootstrapError: If the file cannot be read, contains no PEM
            certificates, or fails to parse.
    """
    try:
        data = Path(ca_path).read_bytes()
    except OSError as e:
        raise TLSBootstrapError(f"Failed to read CA file {ca_path}: {e}") from e

    blocks = _PEM_BLOCK.findall(data)
    if not blocks:
        raise TLSBootstrapError(f"Failed to append CA cert from {ca_path}: no certificates found")
    pem = "\n".join(block.decode("ascii") for block in blocks) + "\n"

    probe = ssl.SSLContext(ssl.PROTOCOL_TLS_CLIENT)
    try:
        probe.load_verify_locations(cadata=pem)
    except (ssl.SSLError, ValueError) as e:
        raise TLSBootstrapError(f"Failed to append CA cert from {ca_path}: {e}") from e

    return pem


class TrustBuilder:
    """Builds and registers the ``tidb`` trust profile.

    Args:
        raw: Resolved configuration (server name and CA path overrides).
        name: Profile name to register under.
    """

    def __init__(self, raw: RawConfig, name: str = TLS_PROFILE_NAME) -> None:
        self._raw = raw
        self._name = name

    def resolve_server_name(self, assembled: AssembledDescriptor) -> str | None:
        """Explicit override first, then the host of the assembled descriptor."""
        if self._raw.tls_server_name:
            return self._raw.tls_server_name

        server_name = extract_peer_name(assembled.text)
        if server_name is None:
            logger.warning(
                "Could not infer TLS server name from descriptor; "
                "certificates will be verified against the dialed address"
            )
        return server_name

    def build_profile(self, assembled: AssembledDescriptor) -> TrustProfile:
        ca_pem = None
        if self._raw.tls_ca_path:
            ca_pem = load_ca_bundle(self._raw.tls_ca_path)

        return TrustProfile(
            min_version=MIN_TLS_VERSION,
            server_name=self.resolve_server_name(assembled),
            ca_pem=ca_pem,
            ca_path=self._raw.tls_ca_path,
        )

    def build(
        self,
        assembled: AssembledDescriptor,
        registry: TrustProfileRegistry,
    ) -> TrustHandle:
        """Build the profile and register it.

        Returns:
            Handle required by ``normalize_descriptor()`` for descriptors
            that reference the profile.

        Raises:
            TLSBootstrapError: CA unreadable or unparseable, or the registry
                rejected the profile.
        """
        profile = self.build_profile(assembled)
        handle = registry.register(self._name, profile)
        logger.info("TLS profile %r ready (%s)", handle.name, profile.describe())
        return handle
