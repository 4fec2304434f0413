# Copyright (c) 2025 CoReason, Inc
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/py_universal_writer

from dataclasses import replace
from typing import Any, Dict, Optional, Sequence

import pandas as pd
from loguru import logger

from .base import BaseConnection, frame_from_cursor
from .dialect import Dialect
from .errors import ConstraintViolation, DriverError


class GenericConnection(BaseConnection):
    """
    Connection wrapping any DB-API 2.0 connection that accepts ``?``
    placeholders.

    Config keys:
        connection: An already open DB-API connection (not closed here).
        connect: Alternatively, a zero-argument callable returning one.
        server_version: Optional version string reported for the backend.
        portable_writes: Enable update and delete, rendered as one UPDATE per
            row and OR-of-AND key predicates. Off by default, leaving insert
            and select.
    """

    adapter_kind = "generic"

    def __init__(self, config: Dict[str, Any]):
        super().__init__(config)
        self._owns_connection = False
        self._in_transaction = False

    def connect(self):
        """
        Adopt the supplied connection, or open one with the supplied factory.
        """
        if self.config.get("connection") is not None:
            logger.info("Using caller-supplied DB-API connection.")
            self.connection = self.config["connection"]
            self._owns_connection = False
        elif callable(self.config.get("connect")):
            logger.info("Opening DB-API connection from factory.")
            self.connection = self.config["connect"]()
            self._owns_connection = True
        else:
            raise ValueError(
                "Generic connections need a 'connection' or a callable 'connect' in the config."
            )
        self._in_transaction = False

    def close(self):
        """
        Release the connection, closing it only when it was opened here.
        """
        if self.connection:
            if self._owns_connection:
                logger.info("Closing DB-API connection.")
                self.connection.close()
            self.connection = None
            self._in_transaction = False

    def server_version(self) -> Optional[str]:
        return self.config.get("server_version")

    @property
    def dialect(self) -> Dialect:
        if self._dialect is None:
            dialect = super().dialect
            if self.config.get("portable_writes"):
                self._dialect = replace(dialect, supports_keyed_writes=True)
        return self._dialect

    def _translate_error(self, e: Exception) -> DriverError:
        integrity_error = getattr(self.connection, "IntegrityError", None)
        if integrity_error is not None and isinstance(e, integrity_error):
            return ConstraintViolation(str(e), orig=e)
        return DriverError(str(e), orig=e)

    def _run(self, sql: str, params: Sequence[Any], fetch: bool):
        connection = self._require_connection()
        error_class = getattr(connection, "Error", Exception)
        cursor = connection.cursor()
        try:
            cursor.execute(sql, tuple(params))
            result = frame_from_cursor(cursor) if fetch else max(cursor.rowcount, 0)
        except error_class as e:
            raise self._translate_error(e) from e
        finally:
            cursor.close()
        if not self._in_transaction:
            connection.commit()
        return result

    def execute(self, sql: str, params: Sequence[Any] = ()) -> int:
        return self._run(sql, params, fetch=False)

    def query(self, sql: str, params: Sequence[Any] = ()) -> pd.DataFrame:
        return self._run(sql, params, fetch=True)

    def begin(self):
        # DB-API connections open a transaction implicitly on the next statement.
        self._require_connection()
        self._in_transaction = True

    def commit(self):
        try:
            self._require_connection().commit()
        finally:
            self._in_transaction = False

    def rollback(self):
        try:
            self._require_connection().rollback()
        finally:
            self._in_transaction = False

    @property
    def in_transaction(self) -> bool:
        self._require_connection()
        return self._in_transaction
