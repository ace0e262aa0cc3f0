"""Descriptor assembly and normalization.

Two stages bracket TLS bootstrapping:

1. ``assemble_descriptor()`` turns raw configuration into first-pass text:
   the override verbatim, or a descriptor composed from the individual
   fields with the fixed parameter set.
2. ``normalize_descriptor()`` parses that text, forces ``parseTime=true``
   and (when a trust handle is given) ``tls=<profile>``, and re-serializes
   it canonically.

A descriptor that references the ``tidb`` profile can only be normalized
with the ``TrustHandle`` returned by registering that profile.

Usage:
    from tidb_connect.dsn.builder import assemble_descriptor, normalize_descriptor

    assembled = assemble_descriptor(raw)
    handle = TrustBuilder(raw).build(assembled, registry) if tls_required(raw, assembled) else None
    normalized = normalize_descriptor(assembled, registry, trust=handle)
"""

import logging

from tidb_connect.config.models import RawConfig
from tidb_connect.dsn.models import AssembledDescriptor, NormalizedDescriptor
from tidb_connect.dsn.parser import format_dsn, mask_password, parse_dsn
from tidb_connect.errors import TLSBootstrapError
from tidb_connect.tls.models import TLS_PROFILE_NAME, references_profile
from tidb_connect.tls.registry import TrustHandle, TrustProfileRegistry

logger = logging.getLogger(__name__)

# Fixed parameters of a composed descriptor, in composition order
BASE_PARAMS: tuple[tuple[str, str], ...] = (
    ("charset", "utf8mb4"),
    ("parseTime", "True"),
    ("loc", "Local"),
)


def assemble_descriptor(raw: RawConfig) -> AssembledDescriptor:
    """Build first-pass descriptor text from raw configuration.

    No validation happens here; malformed fields surface as parse errors
    during normalization.

    Examples:
        >>> assemble_descriptor(RawConfig()).text
        'root:@tcp(127.0.0.1:4000)/test?charset=utf8mb4&parseTime=True&loc=Local'
    """
    if raw.has_override:
        logger.debug("Using override descriptor: %s", mask_password(raw.dsn))
        return AssembledDescriptor(text=raw.dsn, from_override=True)

    params = list(BASE_PARAMS)
    if raw.tls_enabled:
        params.append(("tls", TLS_PROFILE_NAME))
    query = "&".join(f"{key}={value}" for key, value in params)

    text = f"{raw.user}:{raw.password}@tcp({raw.host}:{raw.port})/{raw.name}?{query}"
    return AssembledDescriptor(text=text)


def normalize_descriptor(
    assembled: AssembledDescriptor,
    registry: TrustProfileRegistry,
    trust: TrustHandle | None = None,
) -> NormalizedDescriptor:
    """Parse, enforce required parameters, and re-serialize.

    Args:
        assembled: Output of ``assemble_descriptor()``.
        registry: Registry the trust handle was obtained from.
        trust: Handle for the registered profile. Required when the
            assembled text references the ``tidb`` profile; when given, the
            normalized ``tls`` parameter is forced to its name.

    Returns:
        NormalizedDescriptor with ``parseTime=true``.

    Raises:
        TLSBootstrapError: The text references the profile but no handle
            was given, or the handle is not registered in ``registry``.
        ConfigParseError: The text is not a valid descriptor.
    """
    if trust is None and references_profile(assembled.text):
        raise TLSBootstrapError(
            f"Descriptor references TLS profile '{TLS_PROFILE_NAME}' "
            "but it was not registered before normalization"
        )
    if trust is not None and registry.get(trust.name) != trust.profile:
        raise TLSBootstrapError(f"TLS profile '{trust.name}' is not registered in this registry")

    cfg = parse_dsn(assembled.text, registry)

    if cfg.params.get("parseTime") == "false":
        logger.warning("Overriding parseTime=false; datetime columns require parseTime=true")
    cfg.params["parseTime"] = "true"

    if trust is not None:
        current = cfg.params.get("tls")
        if current is not None and current != trust.name:
            logger.warning("Overriding tls=%s with registered profile %r", current, trust.name)
        cfg.params["tls"] = trust.name

    text = format_dsn(cfg)
    logger.debug("Normalized descriptor: %s", mask_password(text))
    return NormalizedDescriptor(
        text=text,
        config=cfg,
        tls_profile=trust.name if trust is not None else None,
    )
