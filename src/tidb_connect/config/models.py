"""Pydantic models for raw connection configuration."""

from pydantic import BaseModel, ConfigDict


class RawConfig(BaseModel):
    """Connection settings as read from the environment.

    Sourced once per process and immutable afterwards. Defaults are applied
    by ``load_raw_config()``; the model itself only holds the values.
    """

    model_config = ConfigDict(frozen=True)

    user: str = "root"
    password: str = ""
    host: str = "127.0.0.1"
    port: str = "4000"
    name: str = "test"
    dsn: str | None = None  # Full override; short-circuits the fields above
    tls_enabled: bool = False
    tls_server_name: str | None = None
    tls_ca_path: str | None = None

    @property
    def has_override(self) -> bool:
        """True when a non-empty override descriptor was provided."""
        return bool(self.dsn)
