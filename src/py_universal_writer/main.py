# Copyright (c) 2025 CoReason, Inc
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/py_universal_writer

from typing import Any, Dict, Type

from loguru import logger

from .base import BaseConnection
from .config import WriterConfig
from .errors import UnsupportedAdapter
from .generic_connection import GenericConnection
from .mysql_connection import MySQLConnection
from .postgres_connection import PostgresConnection
from .redshift_connection import RedshiftConnection
from .sqlite_connection import SQLiteConnection
from .writer import BulkWriter

# Mapping of db_type to connection class
CONNECTION_MAPPING: Dict[str, Type[BaseConnection]] = {
    "sqlite": SQLiteConnection,
    "mysql": MySQLConnection,
    "mariadb": MySQLConnection,
    "postgres": PostgresConnection,
    "postgresql": PostgresConnection,
    "redshift": RedshiftConnection,
    "generic": GenericConnection,
}


def get_connection(config: Dict[str, Any]) -> BaseConnection:
    """
    Factory function to get the correct database-specific connection object.

    Args:
        config: A dictionary containing the configuration for the connection.
                Must include a 'db_type' key.

    Returns:
        An instance of a BaseConnection subclass (not yet connected).

    Raises:
        ValueError: If the 'db_type' key is missing.
        UnsupportedAdapter: If the 'db_type' is not supported.
    """
    db_type = config.get("db_type")
    logger.info(f"Attempting to get connection for db_type: {db_type}")

    if db_type is None:
        raise ValueError("Configuration dictionary must contain a 'db_type' key.")

    connection_class = CONNECTION_MAPPING.get(db_type)

    if connection_class:
        return connection_class(config)

    raise UnsupportedAdapter(f"Unsupported database type: {db_type}")


def connect(config: Dict[str, Any]) -> BulkWriter:
    """
    Open a connection for ``config`` and return a BulkWriter bound to it.

    Engine settings (verbose, comment, logger, storage_tz) are read from the
    same dictionary.
    """
    writer_config = WriterConfig.from_dict(config)
    connection = get_connection(config)
    connection.connect()
    return BulkWriter(connection, writer_config)
