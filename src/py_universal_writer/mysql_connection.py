# Copyright (c) 2025 CoReason, Inc
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/py_universal_writer

from typing import Any, Dict, Optional, Sequence

import mysql.connector
import pandas as pd
from loguru import logger

from .base import BaseConnection, frame_from_cursor
from .errors import ConstraintViolation, DriverError


def _translate_error(e: mysql.connector.Error) -> DriverError:
    if isinstance(e, mysql.connector.IntegrityError):
        return ConstraintViolation(str(e), orig=e)
    return DriverError(str(e), orig=e)


class MySQLConnection(BaseConnection):
    """
    Connection for MySQL/MariaDB databases.

    Statements run on prepared cursors, which accept ``?`` placeholders.
    The session is in autocommit mode outside explicit transactions.
    """

    adapter_kind = "mysql"

    def __init__(self, config: Dict[str, Any]):
        super().__init__(config)

    def connect(self):
        """
        Establish and open the database connection.
        """
        conn_info = {
            "user": self.config.get("user"),
            "password": self.config.get("password"),
            "host": self.config.get("host"),
            "database": self.config.get("database"),
            "port": self.config.get("port", 3306),
            "autocommit": True,
        }
        logger.info(
            f"Connecting to MySQL database at: {conn_info['host']}:{conn_info['port']}"
        )
        self.connection = mysql.connector.connect(**conn_info)

    def close(self):
        """
        Terminate the database connection.
        """
        if self.connection:
            logger.info("Closing MySQL connection.")
            self.connection.close()
            self.connection = None

    def server_version(self) -> Optional[str]:
        return self._require_connection().get_server_info()

    def execute(self, sql: str, params: Sequence[Any] = ()) -> int:
        connection = self._require_connection()
        try:
            with connection.cursor(prepared=True) as cursor:
                cursor.execute(sql, tuple(params))
                return max(cursor.rowcount, 0)
        except mysql.connector.Error as e:
            raise _translate_error(e) from e

    def query(self, sql: str, params: Sequence[Any] = ()) -> pd.DataFrame:
        connection = self._require_connection()
        try:
            with connection.cursor(prepared=True) as cursor:
                cursor.execute(sql, tuple(params))
                return frame_from_cursor(cursor)
        except mysql.connector.Error as e:
            raise _translate_error(e) from e

    def begin(self):
        self._require_connection().start_transaction()

    def commit(self):
        self._require_connection().commit()

    def rollback(self):
        self._require_connection().rollback()

    @property
    def in_transaction(self) -> bool:
        return bool(self._require_connection().in_transaction)
