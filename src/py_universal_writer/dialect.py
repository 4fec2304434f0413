# Copyright (c) 2025 CoReason, Inc
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/py_universal_writer

"""
Per-backend capability records.

A ``Dialect`` is resolved once per connection and passed explicitly to every
statement builder, the batcher and the coercion layer.
"""

import re
from dataclasses import dataclass, replace
from typing import Dict, Optional, Tuple, Union

from loguru import logger

from .errors import UnsupportedAdapter

Version = Tuple[int, ...]

_VERSION_PATTERN = re.compile(r"(\d+)\.(\d+)(?:\.(\d+))?")


@dataclass(frozen=True)
class Dialect:
    """
    Immutable SQL syntax and limits descriptor for one backend.
    """

    name: str
    family: str
    placeholder_style: str = "qmark"
    quote_char: str = '"'
    supports_native_upsert: bool = False
    upsert_style: Optional[str] = None
    min_upsert_version: Optional[Version] = None
    supports_returning: bool = False
    max_params: int = 999
    max_statement_bytes: int = 1_000_000
    supports_keyed_writes: bool = True
    truncate_supported: bool = False
    row_values: Optional[str] = None
    update_strategy: str = "per_row"
    supports_boolean: bool = False
    timestamp_style: str = "naive"
    server_version: Optional[Version] = None

    def quote_identifier(self, name: str) -> str:
        """
        Quote a single identifier, doubling any embedded quote character.
        """
        escaped = name.replace(self.quote_char, self.quote_char * 2)
        return f"{self.quote_char}{escaped}{self.quote_char}"

    def placeholder(self, position: int) -> str:
        """
        Return the bind placeholder for the 1-based parameter ``position``.
        """
        if self.placeholder_style == "numbered":
            return f"${position}"
        return "?"

    @property
    def supports_upsert(self) -> bool:
        if not self.supports_native_upsert:
            return False
        if self.server_version is None or self.min_upsert_version is None:
            return True
        return self.server_version >= self.min_upsert_version


POSTGRES = Dialect(
    name="postgres",
    family="postgres",
    placeholder_style="numbered",
    supports_native_upsert=True,
    upsert_style="on_conflict",
    min_upsert_version=(9, 5),
    supports_returning=True,
    max_params=65535,
    max_statement_bytes=1_073_741_823,
    truncate_supported=True,
    row_values="list",
    update_strategy="case",
    supports_boolean=True,
    timestamp_style="aware",
)

REDSHIFT = replace(
    POSTGRES,
    name="redshift",
    max_params=32767,
    max_statement_bytes=16_777_216,
)

MYSQL = Dialect(
    name="mysql",
    family="mysql",
    quote_char="`",
    supports_native_upsert=True,
    upsert_style="on_duplicate_key",
    min_upsert_version=(5, 5),
    max_params=65535,
    max_statement_bytes=4_194_304,
    truncate_supported=True,
    row_values="list",
    update_strategy="case",
)

SQLITE = Dialect(
    name="sqlite",
    family="sqlite",
    supports_native_upsert=True,
    upsert_style="on_conflict",
    min_upsert_version=(3, 24),
    row_values="values",
    update_strategy="case",
    timestamp_style="text",
)

# Insert and select only; GenericConnection enables update and delete with
# its "portable_writes" setting.
GENERIC = Dialect(name="generic", family="generic", supports_keyed_writes=False)

DIALECT_MAPPING: Dict[str, Dialect] = {
    "postgres": POSTGRES,
    "postgresql": POSTGRES,
    "redshift": REDSHIFT,
    "mysql": MYSQL,
    "mariadb": MYSQL,
    "sqlite": SQLITE,
    "generic": GENERIC,
}

# SQLITE_MAX_VARIABLE_NUMBER was raised from 999 in 3.32.0
_SQLITE_WIDE_PARAMS_VERSION = (3, 32)
_SQLITE_WIDE_MAX_PARAMS = 32766


def parse_version(version: Union[str, Version, None]) -> Optional[Version]:
    """
    Parse a server version into a tuple of ints.

    Accepts tuples as-is and any string containing a dotted version number,
    such as ``"PostgreSQL 15.2 on x86_64"`` or ``"8.0.33-log"``.
    """
    if version is None:
        return None
    if isinstance(version, tuple):
        return version
    match = _VERSION_PATTERN.search(str(version))
    if not match:
        return None
    return tuple(int(part) for part in match.groups() if part is not None)


def resolve(adapter_name: str, version: Union[str, Version, None] = None) -> Dialect:
    """
    Resolve the dialect for an adapter name.

    Args:
        adapter_name: The backend name, e.g. 'postgres', 'mysql' or 'sqlite'.
        version: Optional server version used for version-gated features.

    Returns:
        The matching Dialect, carrying the parsed server version.

    Raises:
        UnsupportedAdapter: If the adapter name is not known.
    """
    dialect = DIALECT_MAPPING.get(str(adapter_name).lower())
    if dialect is None:
        raise UnsupportedAdapter(f"Unsupported database type: {adapter_name}")

    server_version = parse_version(version)
    if server_version is None:
        return dialect

    dialect = replace(dialect, server_version=server_version)
    if dialect.family == "sqlite" and server_version >= _SQLITE_WIDE_PARAMS_VERSION:
        dialect = replace(dialect, max_params=_SQLITE_WIDE_MAX_PARAMS)

    logger.debug(
        f"Resolved dialect '{dialect.name}' for version "
        f"{'.'.join(str(part) for part in server_version)}"
    )
    return dialect
