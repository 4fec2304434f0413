# Copyright (c) 2025 CoReason, Inc
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/py_universal_writer

import re
from typing import Any, Dict, Optional, Sequence, Tuple

import pandas as pd
import psycopg2
import psycopg2.extensions
from loguru import logger

from .base import BaseConnection, frame_from_cursor
from .errors import ConstraintViolation, DriverError

# 42P10: no unique or exclusion constraint matching the ON CONFLICT target
_INVALID_CONFLICT_TARGET = "42P10"

_PLACEHOLDER_OR_COMMENT = re.compile(r"/\*.*?\*/|\$(\d+)", re.DOTALL)

_IN_TRANSACTION_STATUSES = (
    psycopg2.extensions.TRANSACTION_STATUS_INTRANS,
    psycopg2.extensions.TRANSACTION_STATUS_INERROR,
)


def to_pyformat(
    sql: str, params: Sequence[Any]
) -> Tuple[str, Optional[Tuple[Any, ...]]]:
    """
    Rewrite ``$n`` placeholders into psycopg2's ``%s`` style.

    Literal ``%`` signs are doubled and parameters are reordered to follow
    the placeholders. Comments are left untouched. Without parameters the
    SQL is returned unchanged, since psycopg2 then skips ``%`` processing.
    """
    if not params:
        return sql, None

    order = []

    def substitute(match):
        if match.group(1) is None:
            return match.group(0)
        order.append(int(match.group(1)) - 1)
        return "%s"

    converted = _PLACEHOLDER_OR_COMMENT.sub(substitute, sql.replace("%", "%%"))
    return converted, tuple(params[i] for i in order)


def _translate_error(e: psycopg2.Error) -> DriverError:
    if isinstance(e, psycopg2.IntegrityError) or e.pgcode == _INVALID_CONFLICT_TARGET:
        return ConstraintViolation(str(e), orig=e)
    return DriverError(str(e), orig=e)


class PostgresConnection(BaseConnection):
    """
    Connection for PostgreSQL databases.

    The session runs in autocommit mode; transactions are opened with an
    explicit BEGIN so that independent statements commit on their own.
    """

    adapter_kind = "postgres"
    default_port = 5432

    def __init__(self, config: Dict[str, Any]):
        super().__init__(config)

    def _connect_kwargs(self) -> Dict[str, Any]:
        return {
            "dbname": self.config.get("db", self.config.get("dbname")),
            "user": self.config.get("user"),
            "password": self.config.get("password"),
            "host": self.config.get("host"),
            "port": self.config.get("port", self.default_port),
        }

    def connect(self):
        """
        Establish and open the database connection.
        """
        conn_info = self._connect_kwargs()
        logger.info(
            f"Connecting to {self.adapter_kind} database at: "
            f"{conn_info['host']}:{conn_info['port']}"
        )
        self.connection = psycopg2.connect(**conn_info)
        self.connection.autocommit = True

    def close(self):
        """
        Terminate the database connection.
        """
        if self.connection:
            logger.info(f"Closing {self.adapter_kind} connection.")
            self.connection.close()
            self.connection = None

    def server_version(self) -> Optional[str]:
        number = self._require_connection().server_version
        major = number // 10000
        # Before 10 the version number was major.minor.patch as XXYYZZ.
        minor = number % 10000 if major >= 10 else (number // 100) % 100
        return f"{major}.{minor}"

    def execute(self, sql: str, params: Sequence[Any] = ()) -> int:
        connection = self._require_connection()
        converted, args = to_pyformat(sql, params)
        try:
            with connection.cursor() as cursor:
                cursor.execute(converted, args)
                return max(cursor.rowcount, 0)
        except psycopg2.Error as e:
            raise _translate_error(e) from e

    def query(self, sql: str, params: Sequence[Any] = ()) -> pd.DataFrame:
        connection = self._require_connection()
        converted, args = to_pyformat(sql, params)
        try:
            with connection.cursor() as cursor:
                cursor.execute(converted, args)
                return frame_from_cursor(cursor)
        except psycopg2.Error as e:
            raise _translate_error(e) from e

    def _control(self, command: str):
        try:
            with self._require_connection().cursor() as cursor:
                cursor.execute(command)
        except psycopg2.Error as e:
            raise _translate_error(e) from e

    def begin(self):
        self._control("BEGIN")

    def commit(self):
        self._control("COMMIT")

    def rollback(self):
        self._control("ROLLBACK")

    @property
    def in_transaction(self) -> bool:
        # Server-side state, so transactions opened on the raw handle count too.
        status = self._require_connection().info.transaction_status
        return status in _IN_TRANSACTION_STATUSES
