# Copyright (c) 2025 CoReason, Inc
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/py_universal_writer

import sqlite3
from typing import Any, Dict, Optional, Sequence

import pandas as pd
from loguru import logger

from .base import BaseConnection, frame_from_cursor
from .errors import ConstraintViolation, DriverError

# Raised as OperationalError when an upsert targets columns without a
# unique index.
_MISSING_CONFLICT_TARGET = "does not match any PRIMARY KEY or UNIQUE constraint"


def _translate_error(e: sqlite3.Error) -> DriverError:
    if isinstance(e, sqlite3.IntegrityError) or _MISSING_CONFLICT_TARGET in str(e):
        return ConstraintViolation(str(e), orig=e)
    return DriverError(str(e), orig=e)


class SQLiteConnection(BaseConnection):
    """
    Connection for SQLite databases.

    The connection runs in autocommit mode; transactions are opened with an
    explicit BEGIN. Timestamp columns are returned as text.
    """

    adapter_kind = "sqlite"

    def __init__(self, config: Dict[str, Any]):
        super().__init__(config)

    def connect(self):
        """
        Establish and open the database connection.
        """
        db_path = self.config.get("db_path", ":memory:")
        logger.info(f"Connecting to SQLite database at: {db_path}")
        self.connection = sqlite3.connect(db_path, isolation_level=None)

    def close(self):
        """
        Terminate the database connection.
        """
        if self.connection:
            logger.info("Closing SQLite connection.")
            self.connection.close()
            self.connection = None

    def server_version(self) -> Optional[str]:
        return sqlite3.sqlite_version

    def execute(self, sql: str, params: Sequence[Any] = ()) -> int:
        connection = self._require_connection()
        try:
            cursor = connection.execute(sql, tuple(params))
        except sqlite3.Error as e:
            raise _translate_error(e) from e
        return max(cursor.rowcount, 0)

    def query(self, sql: str, params: Sequence[Any] = ()) -> pd.DataFrame:
        connection = self._require_connection()
        try:
            cursor = connection.execute(sql, tuple(params))
            return frame_from_cursor(cursor)
        except sqlite3.Error as e:
            raise _translate_error(e) from e

    def begin(self):
        self._require_connection().execute("BEGIN")

    def commit(self):
        self._require_connection().execute("COMMIT")

    def rollback(self):
        self._require_connection().execute("ROLLBACK")

    @property
    def in_transaction(self) -> bool:
        return self._require_connection().in_transaction
