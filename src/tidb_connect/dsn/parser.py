"""Parsing and canonical formatting of MySQL-protocol connection descriptors.

Grammar::

    [user[:password]@][net[(addr)]]/dbname[?param1=value1&...&paramN=valueN]

- The last ``/`` separates the database name.
- The last ``@`` before it separates credentials; the first ``:`` inside
  the credentials separates the password.
- ``net`` is ``tcp`` or ``unix``; an address must close with ``)``.
- Parameter values are URL-unescaped on parse and escaped on format.

Formatting sorts parameters by name and canonicalizes boolean values, so
``format_dsn(parse_dsn(format_dsn(cfg)))`` is byte-identical to
``format_dsn(cfg)``.

Usage:
    from tidb_connect.dsn.parser import format_dsn, parse_dsn

    cfg = parse_dsn("root:@tcp(127.0.0.1:4000)/test?parseTime=True", registry)
    format_dsn(cfg)
    # 'root:@tcp(127.0.0.1:4000)/test?parseTime=true'
"""

import logging
import re
from urllib.parse import quote_plus, unquote_plus
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from tidb_connect.dsn.models import DSNConfig
from tidb_connect.errors import ConfigParseError
from tidb_connect.tls.registry import TrustProfileRegistry

logger = logging.getLogger(__name__)

KNOWN_NETS = ("tcp", "unix")
DEFAULT_PORT = "3306"
DEFAULT_TCP_ADDR = f"127.0.0.1:{DEFAULT_PORT}"
DEFAULT_UNIX_ADDR = "/tmp/mysql.sock"

BOOL_PARAMS = frozenset({
    "allowAllFiles",
    "allowCleartextPasswords",
    "allowNativePasswords",
    "allowOldPasswords",
    "checkConnLiveness",
    "clientFoundRows",
    "columnsWithAlias",
    "interpolateParams",
    "multiStatements",
    "parseTime",
    "rejectReadOnly",
})
DURATION_PARAMS = frozenset({"timeout", "readTimeout", "writeTimeout"})
TLS_MODES = frozenset({"skip-verify", "preferred"})

_TRUE_VALUES = frozenset({"1", "true", "TRUE", "True"})
_FALSE_VALUES = frozenset({"0", "false", "FALSE", "False"})

_BAD_ESCAPE = re.compile(r"%(?![0-9A-Fa-f]{2})")
_DURATION = re.compile(r"^(0|(\d+(\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h))+$")


def read_bool(value: str) -> bool | None:
    """Parse a DSN boolean; None when the value is not a boolean."""
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    return None


def _unescape(key: str, value: str) -> str:
    if _BAD_ESCAPE.search(value):
        raise ConfigParseError(f"invalid DSN: invalid escape in value of parameter '{key}'")
    return unquote_plus(value)


def _validate_param(key: str, value: str, registry: TrustProfileRegistry) -> str:
    """Validate one recognized parameter and return its canonical value."""
    if key in BOOL_PARAMS:
        flag = read_bool(value)
        if flag is None:
            raise ConfigParseError(f"invalid bool value for '{key}': {value}")
        return "true" if flag else "false"

    if key == "tls":
        flag = read_bool(value)
        if flag is not None:
            return "true" if flag else "false"
        if value.lower() in TLS_MODES:
            return value.lower()
        if value in registry:
            return value
        raise ConfigParseError(
            f"invalid value / unknown config name: {value} "
            "(TLS profiles must be registered before the descriptor is parsed)"
        )

    if key == "loc":
        if value not in ("Local", "UTC", ""):
            try:
                ZoneInfo(value)
            except (ZoneInfoNotFoundError, ValueError) as e:
                raise ConfigParseError(f"invalid value for 'loc': {value}") from e
        return value

    if key in DURATION_PARAMS:
        if not _DURATION.match(value):
            raise ConfigParseError(f"invalid duration for '{key}': {value}")
        return value

    return value


def _parse_params(query: str, registry: TrustProfileRegistry) -> dict[str, str]:
    params: dict[str, str] = {}
    for part in query.split("&"):
        if not part:
            continue
        key, sep, value = part.partition("=")
        if not sep:
            logger.warning("Ignoring DSN parameter without a value: %r", key)
            continue
        params[key] = _validate_param(key, _unescape(key, value), registry)
    return params


def _ensure_port(addr: str) -> str:
    """Append the default port to a tcp address that has none."""
    if addr.startswith("["):
        return addr if "]:" in addr else f"{addr}:{DEFAULT_PORT}"
    colons = addr.count(":")
    if colons == 1:
        return addr
    if colons > 1:
        # Bare IPv6 literal
        return f"[{addr}]:{DEFAULT_PORT}"
    return f"{addr}:{DEFAULT_PORT}"


def parse_dsn(text: str, registry: TrustProfileRegistry) -> DSNConfig:
    """Parse a descriptor into structured fields.

    Args:
        text: Descriptor text.
        registry: Registered TLS profiles; a ``tls=<name>`` parameter must
            name one of them.

    Returns:
        DSNConfig with net and address defaults applied.

    Raises:
        ConfigParseError: On any syntax error, unknown network, invalid
            parameter value, or reference to an unregistered TLS profile.
    """
    slash = text.rfind("/")
    if slash == -1:
        if text:
            raise ConfigParseError("invalid DSN: missing the slash separating the database name")
        return DSNConfig(net="tcp", addr=DEFAULT_TCP_ADDR)

    user = password = ""
    prefix = text[:slash]
    at = prefix.rfind("@")
    if at != -1:
        user, _, password = prefix[:at].partition(":")
    location = prefix[at + 1:]

    net, addr = location, ""
    paren = location.find("(")
    if paren != -1:
        if not location.endswith(")"):
            if ")" in location[paren + 1:]:
                raise ConfigParseError("invalid DSN: did you forget to escape a param value?")
            raise ConfigParseError(
                "invalid DSN: network address not terminated (missing closing brace)"
            )
        net, addr = location[:paren], location[paren + 1:-1]

    db_name, _, query = text[slash + 1:].partition("?")
    params = _parse_params(query, registry) if query else {}

    net = net or "tcp"
    if net not in KNOWN_NETS:
        raise ConfigParseError(f"invalid DSN: unknown network protocol '{net}'")
    if net == "tcp":
        addr = _ensure_port(addr) if addr else DEFAULT_TCP_ADDR
    elif not addr:
        addr = DEFAULT_UNIX_ADDR

    return DSNConfig(
        user=user,
        password=password,
        net=net,
        addr=addr,
        db_name=db_name,
        params=params,
    )


def format_dsn(cfg: DSNConfig) -> str:
    """Serialize structured fields into canonical descriptor text.

    Parameters are written in sorted order with values URL-escaped, so the
    output is stable for equal fields.
    """
    parts: list[str] = []
    if cfg.user or cfg.password:
        parts.append(f"{cfg.user}:{cfg.password}@")
    parts.append(cfg.net)
    if cfg.addr:
        parts.append(f"({cfg.addr})")
    parts.append(f"/{cfg.db_name}")

    if cfg.params:
        query = "&".join(
            f"{key}={quote_plus(cfg.params[key], safe='')}" for key in sorted(cfg.params)
        )
        parts.append(f"?{query}")

    return "".join(parts)


def mask_password(text: str, mask: str = "****") -> str:
    """Replace the password in descriptor text, for logs and display.

    Works on unparsed text so it is safe to call on descriptors that failed
    to parse.

    Examples:
        >>> mask_password("root:s3cret@tcp(127.0.0.1:4000)/test")
        'root:****@tcp(127.0.0.1:4000)/test'
        >>> mask_password("root:@tcp(127.0.0.1:4000)/test")
        'root:@tcp(127.0.0.1:4000)/test'
    """
    slash = text.rfind("/")
    at = text.rfind("@", 0, slash if slash != -1 else len(text))
    if at == -1:
        return text
    colon = text.find(":", 0, at)
    if colon == -1 or colon + 1 == at:
        return text
    return f"{text[:colon + 1]}{mask}{text[at:]}"
