"""Tests for TLS trust profiles, the registry, and the bootstrap builder."""

import socket
import ssl
from pathlib import Path

import pytest

from tidb_connect.config.models import RawConfig
from tidb_connect.dsn.builder import assemble_descriptor
from tidb_connect.dsn.models import AssembledDescriptor
from tidb_connect.errors import TLSBootstrapError
from tidb_connect.tls.builder import TrustBuilder, extract_peer_name, load_ca_bundle, tls_required
from tidb_connect.tls.models import (
    MIN_TLS_VERSION,
    TLS_PROFILE_NAME,
    PeerNameSSLContext,
    TrustProfile,
    references_profile,
)
from tidb_connect.tls.registry import TrustHandle, TrustProfileRegistry


# ============================================================================
# Models
# ============================================================================


class TestTrustProfile:
    def test_defaults(self) -> None:
        profile = TrustProfile()
        assert profile.min_version == ssl.TLSVersion.TLSv1_2
        assert profile.server_name is None
        assert profile.uses_system_roots is True

    def test_ssl_context_pins_minimum_version(self) -> None:
        ctx = TrustProfile(server_name="db.example.com").ssl_context()

        assert isinstance(ctx, PeerNameSSLContext)
        assert ctx.minimum_version == ssl.TLSVersion.TLSv1_2
        assert ctx.verify_mode == ssl.CERT_REQUIRED
        assert ctx.check_hostname is True
        assert ctx.peer_name == "db.example.com"

    def test_ssl_context_with_custom_ca(self, ca_path: Path) -> None:
        profile = TrustProfile(ca_pem=ca_path.read_text(), ca_path=str(ca_path))
        ctx = profile.ssl_context()

        assert profile.uses_system_roots is False
        assert ctx.cert_store_stats()["x509_ca"] == 1

    def test_describe(self, ca_path: Path) -> None:
        assert TrustProfile().describe() == "min=TLSv1_2, peer=<dialed address>, roots=system roots"
        profile = TrustProfile(server_name="h", ca_pem="x", ca_path=str(ca_path))
        assert f"CA file {ca_path}" in profile.describe()

    def test_references_profile(self) -> None:
        assert references_profile("u:p@tcp(h:1)/db?tls=tidb") is True
        assert references_profile("u:p@tcp(h:1)/db?tls=true") is False


class TestPeerNameSSLContext:
    """The peer name replaces the dialed host for verification."""

    def test_wrap_bio_uses_peer_name(self) -> None:
        ctx = TrustProfile(server_name="gw.example.com").ssl_context()
        sslobj = ctx.wrap_bio(ssl.MemoryBIO(), ssl.MemoryBIO(), server_hostname="10.0.0.5")
        assert sslobj.server_hostname == "gw.example.com"

    def test_wrap_socket_uses_peer_name(self) -> None:
        ctx = TrustProfile(server_name="gw.example.com").ssl_context()
        with socket.socket() as sock:
            wrapped = ctx.wrap_socket(sock, server_hostname="10.0.0.5")
            try:
                assert wrapped.server_hostname == "gw.example.com"
            finally:
                wrapped.close()

    def test_overrides_are_annotated(self) -> None:
        for method in (PeerNameSSLContext.wrap_socket, PeerNameSSLContext.wrap_bio):
            assert method.__doc__
            assert "return" in method.__annotations__

    def test_wrap_bio_keeps_dialed_host_without_peer_name(self) -> None:
        ctx = TrustProfile().ssl_context()
        sslobj = ctx.wrap_bio(ssl.MemoryBIO(), ssl.MemoryBIO(), server_hostname="db.example.com")
        assert sslobj.server_hostname == "db.example.com"


# ============================================================================
# Registry
# ============================================================================


class TestRegistry:
    def test_register_returns_handle(self, registry: TrustProfileRegistry) -> None:
        profile = TrustProfile(server_name="h")
        handle = registry.register(TLS_PROFILE_NAME, profile)

        assert handle == TrustHandle(name=TLS_PROFILE_NAME, profile=profile)
        assert TLS_PROFILE_NAME in registry
        assert registry.get(TLS_PROFILE_NAME) is profile
        assert registry.names() == [TLS_PROFILE_NAME]
        assert len(registry) == 1

    def test_equal_profile_registers_once(self, registry: TrustProfileRegistry) -> None:
        first = registry.register(TLS_PROFILE_NAME, TrustProfile(server_name="h"))
        second = registry.register(TLS_PROFILE_NAME, TrustProfile(server_name="h"))

        assert first == second
        assert len(registry) == 1

    def test_conflicting_profile_rejected(self, registry: TrustProfileRegistry) -> None:
        registry.register(TLS_PROFILE_NAME, TrustProfile(server_name="a"))
        with pytest.raises(TLSBootstrapError, match="already registered"):
            registry.register(TLS_PROFILE_NAME, TrustProfile(server_name="b"))
        assert registry.get(TLS_PROFILE_NAME).server_name == "a"

    @pytest.mark.parametrize("name", ["true", "false", "skip-verify", "Preferred", ""])
    def test_reserved_names_rejected(self, registry: TrustProfileRegistry, name: str) -> None:
        with pytest.raises(TLSBootstrapError, match="reserved"):
            registry.register(name, TrustProfile())

    def test_get_missing(self, registry: TrustProfileRegistry) -> None:
        assert registry.get("nope") is None
        assert "nope" not in registry


# ============================================================================
# Builder
# ============================================================================


class TestTLSRequired:
    def test_flag(self) -> None:
        raw = RawConfig(tls_enabled=True)
        assert tls_required(raw, assemble_descriptor(raw)) is True

    def test_override_reference(self) -> None:
        raw = RawConfig(dsn="u:p@tcp(h:1)/db?tls=tidb")
        assert tls_required(raw, assemble_descriptor(raw)) is True

    def test_neither(self) -> None:
        raw = RawConfig(dsn="u:p@tcp(h:1)/db?tls=skip-verify")
        assert tls_required(raw, assemble_descriptor(raw)) is False
        assert tls_required(RawConfig(), assemble_descriptor(RawConfig())) is False


class TestExtractPeerName:
    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ("root:@tcp(db.example.com:4000)/test", "db.example.com"),
            ("root:@tcp(db.example.com)/test", "db.example.com"),
            ("root:@tcp([2001:db8::1]:4000)/test", "2001:db8::1"),
            ("root:@unix(/tmp/mysql.sock)/test", None),
            ("root:@tcp(db.example.com:4000/test", None),
            ("root:@tcp()/test", None),
        ],
    )
    def test_extract(self, text: str, expected: str | None) -> None:
        assert extract_peer_name(text) == expected


class TestLoadCABundle:
    def test_valid(self, ca_path: Path) -> None:
        pem = load_ca_bundle(str(ca_path))
        assert pem.startswith("-----BEGIN CERTIFICATE-----")

    def test_bom_and_utf8_comment_ignored(self, ca_path: Path, tmp_path: Path) -> None:
        path = tmp_path / "bundle.pem"
        path.write_bytes(
            b"\xef\xbb\xbf"
            + "# Issuer: CN=Főtanúsítvány\n".encode("utf-8")
            + ca_path.read_bytes()
        )

        pem = load_ca_bundle(str(path))

        assert pem.startswith("-----BEGIN CERTIFICATE-----")
        assert pem == load_ca_bundle(str(ca_path))

    def test_bag_attributes_ignored(self, ca_path: Path, tmp_path: Path) -> None:
        path = tmp_path / "exported.pem"
        path.write_bytes(
            b"Bag Attributes\n"
            b"    friendlyName: tidb-connect test CA\n"
            b"subject=CN = tidb-connect test CA\n"
            + ca_path.read_bytes()
        )

        ctx = TrustProfile(ca_pem=load_ca_bundle(str(path))).ssl_context()
        assert ctx.cert_store_stats()["x509_ca"] == 1

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(TLSBootstrapError, match="Failed to read CA file"):
            load_ca_bundle(str(tmp_path / "missing.pem"))

    def test_no_certificates(self, tmp_path: Path) -> None:
        path = tmp_path / "empty.pem"
        path.write_text("")
        with pytest.raises(TLSBootstrapError, match="no certificates found"):
            load_ca_bundle(str(path))

    def test_corrupt_certificate(self, bad_pem_path: Path) -> None:
        with pytest.raises(TLSBootstrapError, match="Failed to append CA cert"):
            load_ca_bundle(str(bad_pem_path))

    def test_binary_file(self, tmp_path: Path) -> None:
        path = tmp_path / "ca.der"
        path.write_bytes(b"\x30\x82\xff\xfe")
        with pytest.raises(TLSBootstrapError, match="no certificates found"):
            load_ca_bundle(str(path))


class TestTrustBuilder:
    def test_infers_peer_name_from_host(self, registry: TrustProfileRegistry) -> None:
        raw = RawConfig(host="db.example.com", port="4000", tls_enabled=True)
        handle = TrustBuilder(raw).build(assemble_descriptor(raw), registry)

        assert handle.name == TLS_PROFILE_NAME
        assert handle.profile.server_name == "db.example.com"
        assert handle.profile.min_version == MIN_TLS_VERSION
        assert handle.profile.uses_system_roots is True
        assert registry.get(TLS_PROFILE_NAME) is handle.profile

    def test_explicit_server_name_wins(self, registry: TrustProfileRegistry) -> None:
        raw = RawConfig(host="10.0.0.5", tls_enabled=True, tls_server_name="gw.example.com")
        handle = TrustBuilder(raw).build(assemble_descriptor(raw), registry)
        assert handle.profile.server_name == "gw.example.com"

    def test_peer_name_from_override(self, registry: TrustProfileRegistry) -> None:
        raw = RawConfig(dsn="u:p@tcp(gateway01.example.com:4000)/db?tls=tidb")
        handle = TrustBuilder(raw).build(assemble_descriptor(raw), registry)
        assert handle.profile.server_name == "gateway01.example.com"

    def test_peer_name_unset_when_extraction_fails(
        self, registry: TrustProfileRegistry, caplog: pytest.LogCaptureFixture
    ) -> None:
        raw = RawConfig(dsn="u:p@unix(/tmp/mysql.sock)/db?tls=tidb")
        with caplog.at_level("WARNING"):
            handle = TrustBuilder(raw).build(assemble_descriptor(raw), registry)

        assert handle.profile.server_name is None
        assert "Could not infer TLS server name" in caplog.text

    def test_custom_ca(self, registry: TrustProfileRegistry, ca_path: Path) -> None:
        raw = RawConfig(tls_enabled=True, tls_ca_path=str(ca_path))
        handle = TrustBuilder(raw).build(assemble_descriptor(raw), registry)

        assert handle.profile.ca_pem == load_ca_bundle(str(ca_path))
        assert handle.profile.ca_path == str(ca_path)

    def test_bad_ca_registers_nothing(self, registry: TrustProfileRegistry, tmp_path: Path) -> None:
        raw = RawConfig(tls_enabled=True, tls_ca_path=str(tmp_path / "missing.pem"))
        with pytest.raises(TLSBootstrapError):
            TrustBuilder(raw).build(assemble_descriptor(raw), registry)
        assert len(registry) == 0

    def test_custom_name(self, registry: TrustProfileRegistry) -> None:
        raw = RawConfig(tls_enabled=True)
        handle = TrustBuilder(raw, name="replica").build(
            AssembledDescriptor(text="u:p@tcp(h:1)/db"), registry
        )
        assert handle.name == "replica"
        assert "replica" in registry
