"""Environment-driven loading of ``RawConfig``."""

import os
from collections.abc import Mapping

from tidb_connect.config.models import RawConfig

# Field name -> environment variable (before prefixing)
ENV_VARS: dict[str, str] = {
    "user": "DB_USER",
    "password": "DB_PASS",
    "host": "DB_HOST",
    "port": "DB_PORT",
    "name": "DB_NAME",
    "dsn": "DB_DSN",
    "tls_enabled": "TIDB_TLS",
    "tls_server_name": "TIDB_TLS_SERVERNAME",
    "tls_ca_path": "TIDB_TLS_CA",
}


def load_raw_config(
    env_prefix: str = "",
    environ: Mapping[str, str] | None = None,
) -> RawConfig:
    """Read connection settings from the environment.

    Empty values count as absent: ``user``, ``host``, ``port`` and ``name``
    fall back to their defaults and the optional fields stay ``None``.
    ``password`` is taken as-is. TLS is enabled only by the exact string
    ``"true"``.

    Args:
        env_prefix: Prefix prepended to every variable name
            (e.g. ``"APP_"`` reads ``APP_DB_USER``).
        environ: Mapping to read from (default: ``os.environ``).

    Returns:
        RawConfig with defaults applied.
    """
    if environ is None:
        environ = os.environ

    def read(field: str) -> str:
        return environ.get(f"{env_prefix}{ENV_VARS[field]}", "")

    values: dict[str, object] = {
        "password": read("password"),
        "tls_enabled": read("tls_enabled") == "true",
    }
    for field in ("user", "host", "port", "name", "dsn", "tls_server_name", "tls_ca_path"):
        value = read(field)
        if value:
            values[field] = value

    return RawConfig(**values)
