"""Registry of named TLS trust profiles.

The registry is an explicit object passed down through startup rather than
module-level state. A ``TrustHandle`` can only be obtained from
``TrustProfileRegistry.register()``, so holding one proves the profile was
registered before any descriptor referencing it is parsed.

Usage:
    from tidb_connect.tls.registry import TrustProfileRegistry
    from tidb_connect.tls.models import TLS_PROFILE_NAME, TrustProfile

    registry = TrustProfileRegistry()
    handle = registry.register(TLS_PROFILE_NAME, TrustProfile())
    assert TLS_PROFILE_NAME in registry
"""

import logging
from dataclasses import dataclass

from tidb_connect.errors import TLSBootstrapError
from tidb_connect.tls.models import TrustProfile

logger = logging.getLogger(__name__)

# Values the tls parameter already gives meaning to
RESERVED_NAMES = frozenset({"true", "false", "skip-verify", "preferred"})


@dataclass(frozen=True)
class TrustHandle:
    """Proof that ``profile`` is registered under ``name``."""

    name: str
    profile: TrustProfile


class TrustProfileRegistry:
    """Name -> ``TrustProfile`` mapping with init-once entries."""

    def __init__(self) -> None:
        self._profiles: dict[str, TrustProfile] = {}

    def register(self, name: str, profile: TrustProfile) -> TrustHandle:
        """Register ``profile`` under ``name``.

        Registering an equal profile again returns a handle to the existing
        entry. A different profile under a used name is rejected.

        Raises:
            TLSBootstrapError: If the name is empty, reserved, or already
                holds a different profile.
        """
        if not name or name.lower() in RESERVED_NAMES:
            raise TLSBootstrapError(f"TLS profile name '{name}' is reserved")

        existing = self._profiles.get(name)
        if existing is not None:
            if existing != profile:
                raise TLSBootstrapError(
                    f"TLS profile '{name}' is already registered with different settings"
                )
            logger.debug("TLS profile %r already registered", name)
            return TrustHandle(name=name, profile=existing)

        self._profiles[name] = profile
        logger.debug("Registered TLS profile %r (%s)", name, profile.describe())
        return TrustHandle(name=name, profile=profile)

    def get(self, name: str) -> TrustProfile | None:
        return self._profiles.get(name)

    def names(self) -> list[str]:
        return sorted(self._profiles)

    def __contains__(self, name: object) -> bool:
        return name in self._profiles

    def __len__(self) -> int:
        return len(self._profiles)
