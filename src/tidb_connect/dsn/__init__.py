"""Connection descriptors: assembly, parsing, normalization.

Usage:
    from tidb_connect.dsn import assemble_descriptor, normalize_descriptor
    from tidb_connect.dsn import parse_dsn, format_dsn
"""

from tidb_connect.dsn.builder import BASE_PARAMS, assemble_descriptor, normalize_descriptor
from tidb_connect.dsn.models import AssembledDescriptor, DSNConfig, NormalizedDescriptor
from tidb_connect.dsn.parser import format_dsn, mask_password, parse_dsn

__all__ = [
    "AssembledDescriptor",
    "DSNConfig",
    "NormalizedDescriptor",
    "assemble_descriptor",
    "normalize_descriptor",
    "parse_dsn",
    "format_dsn",
    "mask_password",
    "BASE_PARAMS",
]
