"""Tests for descriptor assembly and normalization (dsn/builder.py)."""

from urllib.parse import parse_qsl

import pytest

from tidb_connect.config.models import RawConfig
from tidb_connect.dsn.builder import assemble_descriptor, normalize_descriptor
from tidb_connect.dsn.models import AssembledDescriptor
from tidb_connect.errors import ConfigParseError, TLSBootstrapError
from tidb_connect.tls.models import TLS_PROFILE_NAME, TrustProfile
from tidb_connect.tls.registry import TrustProfileRegistry


def _param_names(text: str) -> list[str]:
    return [key for key, _ in parse_qsl(text.split("?", 1)[1])]


class TestAssemble:
    """Composition from individual fields vs. override text."""

    def test_defaults(self) -> None:
        assembled = assemble_descriptor(RawConfig())
        assert assembled.text == (
            "root:@tcp(127.0.0.1:4000)/test?charset=utf8mb4&parseTime=True&loc=Local"
        )
        assert assembled.from_override is False

    @pytest.mark.parametrize("tls_enabled", [False, True])
    def test_fixed_parameter_set(self, tls_enabled: bool) -> None:
        raw = RawConfig(user="app", password="pw", host="db.example.com", tls_enabled=tls_enabled)
        names = _param_names(assemble_descriptor(raw).text)

        expected = ["charset", "parseTime", "loc"] + (["tls"] if tls_enabled else [])
        assert names == expected

    def test_tls_parameter_uses_profile_name(self) -> None:
        assembled = assemble_descriptor(RawConfig(tls_enabled=True))
        assert assembled.text.endswith(f"&tls={TLS_PROFILE_NAME}")

    def test_override_used_verbatim(self) -> None:
        override = "x:y@tcp(other:1)/db?foo=bar"
        raw = RawConfig(dsn=override, user="ignored", tls_enabled=True)
        assembled = assemble_descriptor(raw)

        assert assembled.text == override
        assert assembled.from_override is True

    def test_fields_not_validated(self) -> None:
        assembled = assemble_descriptor(RawConfig(host="bad)host", port="notaport"))
        assert "tcp(bad)host:notaport)" in assembled.text


class TestNormalize:
    """Parse, enforce required parameters, re-serialize."""

    def test_end_to_end_defaults(self, registry: TrustProfileRegistry) -> None:
        normalized = normalize_descriptor(assemble_descriptor(RawConfig()), registry)

        assert normalized.text == (
            "root:@tcp(127.0.0.1:4000)/test?charset=utf8mb4&loc=Local&parseTime=true"
        )
        assert normalized.tls_profile is None

    def test_parse_time_added_when_absent(self, registry: TrustProfileRegistry) -> None:
        normalized = normalize_descriptor(AssembledDescriptor(text="u:p@tcp(h:1)/db"), registry)
        assert normalized.config.params == {"parseTime": "true"}
        assert normalized.text == "u:p@tcp(h:1)/db?parseTime=true"

    @pytest.mark.parametrize("value", ["false", "0", "False", "true", "1"])
    def test_parse_time_always_true(self, registry: TrustProfileRegistry, value: str) -> None:
        assembled = AssembledDescriptor(text=f"u:p@tcp(h:1)/db?parseTime={value}")
        normalized = normalize_descriptor(assembled, registry)

        assert normalized.config.parse_time is True
        assert "parseTime=true" in normalized.text

    def test_idempotent(self, registry: TrustProfileRegistry) -> None:
        first = normalize_descriptor(
            AssembledDescriptor(text="u:p@tcp(h)/db?loc=UTC&charset=utf8mb4&x=a%2Fb"), registry
        )
        second = normalize_descriptor(AssembledDescriptor(text=first.text), registry)
        assert second.text == first.text

    def test_idempotent_with_tls(self, registry: TrustProfileRegistry) -> None:
        handle = registry.register(TLS_PROFILE_NAME, TrustProfile(server_name="h"))
        first = normalize_descriptor(
            assemble_descriptor(RawConfig(host="h", tls_enabled=True)), registry, trust=handle
        )
        second = normalize_descriptor(AssembledDescriptor(text=first.text), registry, trust=handle)
        assert second.text == first.text

    def test_tls_forced_to_profile(self, registry: TrustProfileRegistry) -> None:
        handle = registry.register(TLS_PROFILE_NAME, TrustProfile())
        assembled = AssembledDescriptor(text="u:p@tcp(h:1)/db?tls=skip-verify", from_override=True)
        normalized = normalize_descriptor(assembled, registry, trust=handle)

        assert normalized.config.tls == TLS_PROFILE_NAME
        assert normalized.tls_profile == TLS_PROFILE_NAME
        assert normalized.text.endswith("&tls=tidb")

    def test_reference_without_handle_rejected(self, registry: TrustProfileRegistry) -> None:
        registry.register(TLS_PROFILE_NAME, TrustProfile())
        assembled = AssembledDescriptor(text="u:p@tcp(h:1)/db?tls=tidb")

        with pytest.raises(TLSBootstrapError, match="not registered before normalization"):
            normalize_descriptor(assembled, registry)

    def test_handle_from_other_registry_rejected(self, registry: TrustProfileRegistry) -> None:
        handle = TrustProfileRegistry().register(TLS_PROFILE_NAME, TrustProfile())
        assembled = AssembledDescriptor(text="u:p@tcp(h:1)/db?tls=tidb")

        with pytest.raises(TLSBootstrapError, match="not registered in this registry"):
            normalize_descriptor(assembled, registry, trust=handle)

    def test_invalid_descriptor(self, registry: TrustProfileRegistry) -> None:
        with pytest.raises(ConfigParseError):
            normalize_descriptor(AssembledDescriptor(text="garbage"), registry)

    def test_masked(self, registry: TrustProfileRegistry) -> None:
        raw = RawConfig(password="s3cret")
        normalized = normalize_descriptor(assemble_descriptor(raw), registry)

        assert "s3cret" in normalized.text
        assert "s3cret" not in normalized.masked()
        assert normalized.masked().startswith("root:****@tcp(")
