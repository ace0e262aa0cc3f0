"""Models for connection descriptors at each stage of resolution.

- ``AssembledDescriptor``: first-pass text, possibly missing required
  parameters (override text is kept verbatim).
- ``DSNConfig``: structured fields parsed from a descriptor.
- ``NormalizedDescriptor``: canonical text plus the fields it was
  serialized from.
"""

from pydantic import BaseModel, ConfigDict, Field


class AssembledDescriptor(BaseModel):
    """Descriptor text before parsing."""

    model_config = ConfigDict(frozen=True)

    text: str
    from_override: bool = False


class DSNConfig(BaseModel):
    """Structured form of ``user:password@net(addr)/dbname?params``.

    ``params`` holds every query parameter (``charset``, ``parseTime``,
    ``loc``, ``tls`` and anything else) as unescaped strings.
    """

    user: str = ""
    password: str = ""
    net: str = "tcp"
    addr: str = ""
    db_name: str = ""
    params: dict[str, str] = Field(default_factory=dict)

    @property
    def host(self) -> str:
        """Host portion of a tcp address (brackets stripped for IPv6)."""
        if self.net != "tcp":
            return ""
        if self.addr.startswith("["):
            return self.addr[1:self.addr.find("]")]
        return self.addr.rsplit(":", 1)[0]

    @property
    def port(self) -> int | None:
        """Port of a tcp address, if present."""
        if self.net != "tcp":
            return None
        host_part, sep, port = self.addr.rpartition(":")
        if not sep or host_part.endswith("[") or not port.isdigit():
            return None
        return int(port)

    @property
    def tls(self) -> str | None:
        return self.params.get("tls")

    @property
    def parse_time(self) -> bool:
        return self.params.get("parseTime") == "true"


class NormalizedDescriptor(BaseModel):
    """Canonical descriptor: ``parseTime=true`` always present."""

    model_config = ConfigDict(frozen=True)

    text: str
    config: DSNConfig
    tls_profile: str | None = None  # Registered profile the text references

    def masked(self) -> str:
        """Descriptor text with the password replaced, for display."""
        from tidb_connect.dsn.parser import mask_password

        return mask_password(self.text)
