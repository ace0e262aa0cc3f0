"""TLS trust profiles: models, registry, and the bootstrap builder.

Usage:
    from tidb_connect.tls import TrustBuilder, TrustProfileRegistry, tls_required
"""

from tidb_connect.tls.builder import (
    TrustBuilder,
    extract_peer_name,
    load_ca_bundle,
    tls_required,
)
from tidb_connect.tls.models import (
    MIN_TLS_VERSION,
    PROFILE_REFERENCE,
    TLS_PROFILE_NAME,
    PeerNameSSLContext,
    TrustProfile,
    references_profile,
)
from tidb_connect.tls.registry import TrustHandle, TrustProfileRegistry

__all__ = [
    "TLS_PROFILE_NAME",
    "PROFILE_REFERENCE",
    "MIN_TLS_VERSION",
    "PeerNameSSLContext",
    "TrustProfile",
    "TrustHandle",
    "TrustProfileRegistry",
    "TrustBuilder",
    "tls_required",
    "references_profile",
    "extract_peer_name",
    "load_ca_bundle",
]
