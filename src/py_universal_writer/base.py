# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/py_universal_writer

from abc import ABC, abstractmethod
import pandas as pd


from typing import Any, Dict, Optional, Sequence

from .dialect import Dialect, resolve


class BaseConnection(ABC):
    """
    Abstract base class for all database connections.
    """

    adapter_kind: str = "generic"

    def __init__(self, config: Dict[str, Any]):
        self.config = config
        self.connection = None
        self._dialect: Optional[Dialect] = None

    @abstractmethod
    def connect(self):
        """
        Establish and open the database connection.
        """
        raise NotImplementedError

    @abstractmethod
    def close(self):
        """
        Terminate the database connection.
        """
        raise NotImplementedError

    @abstractmethod
    def server_version(self) -> Optional[str]:
        """
        Return the server version string, or None when unknown.
        """
        raise NotImplementedError

    @abstractmethod
    def execute(self, sql: str, params: Sequence[Any] = ()) -> int:
        """
        Run a statement and return the number of affected rows.
        """
        raise NotImplementedError

    @abstractmethod
    def query(self, sql: str, params: Sequence[Any] = ()) -> pd.DataFrame:
        """
        Run a statement and return its result rows.
        """
        raise NotImplementedError

    @abstractmethod
    def begin(self):
        raise NotImplementedError

    @abstractmethod
    def commit(self):
        raise NotImplementedError

    @abstractmethod
    def rollback(self):
        raise NotImplementedError

    @property
    @abstractmethod
    def in_transaction(self) -> bool:
        raise NotImplementedError

    @property
    def dialect(self) -> Dialect:
        """
        The dialect of this connection, resolved once and cached.
        """
        if self._dialect is None:
            self._dialect = resolve(self.adapter_kind, self.server_version())
        return self._dialect

    def _require_connection(self):
        if not self.connection:
            raise ConnectionError("Database connection is not established.")
        return self.connection


def frame_from_cursor(cursor) -> pd.DataFrame:
    """
    Build a DataFrame from a DB-API cursor that has just run a statement.
    """
    if cursor.description is None:
        return pd.DataFrame()
    columns = [d[0] for d in cursor.description]
    return pd.DataFrame.from_records(cursor.fetchall(), columns=columns)
