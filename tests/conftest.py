"""Shared fixtures for tidb-connect tests."""

from pathlib import Path

import pytest

from tidb_connect.tls.registry import TrustProfileRegistry

FIXTURES_DIR = Path(__file__).resolve().parent / "fixtures"


@pytest.fixture
def registry() -> TrustProfileRegistry:
    """Fresh, empty TLS profile registry."""
    return TrustProfileRegistry()


@pytest.fixture
def ca_path() -> Path:
    """Path to a valid self-signed CA certificate in PEM form."""
    return FIXTURES_DIR / "test_ca.pem"


@pytest.fixture
def bad_pem_path(tmp_path: Path) -> Path:
    """PEM-looking file whose certificate body is not valid."""
    path = tmp_path / "bad.pem"
    path.write_text(
        "-----BEGIN CERTIFICATE-----\n"
        "bm90IGEgY2VydGlmaWNhdGU=\n"
        "-----END CERTIFICATE-----\n"
    )
    return path
