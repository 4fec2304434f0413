# Copyright (c) 2025 CoReason, Inc
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/py_universal_writer

from typing import Any, List, Optional, Sequence, Tuple, Union

import pandas as pd
from loguru import logger

from .base import BaseConnection
from .batcher import split
from .coercion import coerce_batch
from .config import WriterConfig
from .dialect import Dialect
from .orchestrator import ExecutionResult, run
from .records import RecordBatch, Records, table_ref, to_record_batch
from .statements import (
    build_delete,
    build_delete_all,
    build_insert,
    build_select,
    build_update,
    build_upsert,
    check_where_cols,
    ensure_keyed_writes_supported,
    ensure_upsert_supported,
    quote_table,
    update_params_per_row,
    validate_identifier,
)

Returning = Union[bool, Sequence[str]]


class BulkWriter:
    """
    Dialect-aware bulk insert, update, upsert and delete on one connection.

    All validation (identifiers, column sets, upsert capability and value
    coercion) happens before the first statement is sent. Update, upsert and
    delete run all of their chunks in one transaction by default; insert
    chunks commit independently unless ``transaction=True`` or the caller
    already has a transaction open.
    """

    def __init__(self, connection: BaseConnection, config: Optional[WriterConfig] = None):
        self.connection = connection
        self.config = config or WriterConfig()

    @property
    def dialect(self) -> Dialect:
        return self.connection.dialect

    def close(self):
        self.connection.close()

    def _prepare(self, table: str, records: Records) -> Tuple[RecordBatch, RecordBatch]:
        """
        Validate and coerce ``records``; returns the raw and coerced batches.
        """
        quote_table(self.dialect, table)
        batch = to_record_batch(records)
        for column in batch.columns:
            validate_identifier(column)
        coerced = coerce_batch(batch, self.dialect, self.config.storage_tz)
        ref = table_ref(table, batch)
        logger.info(f"Prepared {len(batch)} row(s) for table {table} ({ref.describe()})")
        return batch, coerced

    @staticmethod
    def _where_cols(where_cols: Union[str, Sequence[str]]) -> List[str]:
        if isinstance(where_cols, str):
            where_cols = [where_cols]
        return [validate_identifier(c) for c in where_cols]

    @staticmethod
    def _returning_cols(returning: Returning) -> Optional[List[str]]:
        if returning is True:
            return ["*"]
        if not returning:
            return None
        return [validate_identifier(c) for c in returning]

    def _echo(self, batch: RecordBatch, returning: List[str]) -> pd.DataFrame:
        """
        Stand in for RETURNING by echoing the input rows.
        """
        logger.warning(
            f"{self.dialect.name} does not support RETURNING; echoing the input rows."
        )
        if returning == ["*"]:
            return batch.to_frame()
        available = [c for c in returning if c in batch.columns]
        missing = [c for c in returning if c not in batch.columns]
        if missing:
            logger.warning(f"Columns {missing} are not in the input and cannot be returned.")
        return batch.select(available).to_frame()

    def _finish(
        self, result: ExecutionResult, batch: RecordBatch, returning: Optional[List[str]]
    ) -> ExecutionResult:
        if returning and not self.dialect.supports_returning:
            result.rows = self._echo(batch, returning)
        return result

    def insert(
        self,
        table: str,
        records: Records,
        batch_size: Optional[int] = None,
        returning: Returning = False,
        transaction: bool = False,
    ) -> ExecutionResult:
        """
        Insert ``records`` with one multi-row INSERT per chunk.

        Args:
            table: Target table, optionally ``schema.table``.
            records: A DataFrame or a sequence of mappings.
            batch_size: Optional cap on rows per statement.
            returning: True for all columns, or a list of columns to return.
            transaction: Run all chunks in one transaction.

        Returns:
            An ExecutionResult; ``rows`` holds the returned (or echoed) rows
            when ``returning`` is requested.
        """
        dialect = self.dialect
        returning_cols = self._returning_cols(returning)
        batch, coerced = self._prepare(table, records)
        fetch = bool(returning_cols) and dialect.supports_returning

        if not batch.rows:
            logger.info("No records to insert. Skipping.")
            return self._finish(ExecutionResult("insert"), batch, returning_cols)

        statements = (
            build_insert(dialect, table, coerced.columns, chunk.rows, returning_cols)
            for chunk in split(coerced.rows, dialect, len(coerced.columns), batch_size)
        )
        result = run(
            "insert", statements, self.connection, self.config, atomic=transaction, fetch=fetch
        )
        return self._finish(result, batch, returning_cols)

    def update(
        self,
        table: str,
        records: Records,
        where_cols: Union[str, Sequence[str]],
        batch_size: Optional[int] = None,
        transaction: bool = True,
    ) -> ExecutionResult:
        """
        Update existing rows matched on ``where_cols`` with the other columns.

        Raises:
            OperationUnsupported: If the dialect only supports insert and select.
        """
        dialect = self.dialect
        ensure_keyed_writes_supported(dialect, "update")
        where_cols = self._where_cols(where_cols)
        batch, coerced = self._prepare(table, records)

        if not batch.rows:
            logger.info("No records to update. Skipping.")
            return ExecutionResult("update")
        check_where_cols(coerced.columns, where_cols)

        params_per_row = update_params_per_row(
            dialect, len(coerced.columns), len(where_cols)
        )
        chunks = split(
            coerced.rows, dialect, len(coerced.columns), batch_size, params_per_row
        )
        statements = (
            statement
            for chunk in chunks
            for statement in build_update(
                dialect, table, coerced.columns, chunk.rows, where_cols
            )
        )
        return run("update", statements, self.connection, self.config, atomic=transaction)

    def upsert(
        self,
        table: str,
        records: Records,
        where_cols: Union[str, Sequence[str]],
        batch_size: Optional[int] = None,
        returning: Returning = False,
        skip_existing: bool = False,
        transaction: bool = True,
    ) -> ExecutionResult:
        """
        Insert ``records``, updating rows that conflict on ``where_cols``.

        ``where_cols`` must carry a unique constraint in the database; when it
        does not, the backend's error is raised as ConstraintViolation. With
        ``skip_existing`` conflicting rows are left as they are.

        Raises:
            UpsertUnsupported: Before anything runs, if the backend lacks upsert.
        """
        dialect = self.dialect
        ensure_upsert_supported(dialect)
        where_cols = self._where_cols(where_cols)
        returning_cols = self._returning_cols(returning)
        batch, coerced = self._prepare(table, records)
        fetch = bool(returning_cols) and dialect.supports_returning

        if not batch.rows:
            logger.info("No records to upsert. Skipping.")
            return self._finish(ExecutionResult("upsert"), batch, returning_cols)
        check_where_cols(coerced.columns, where_cols)

        statements = (
            build_upsert(
                dialect,
                table,
                coerced.columns,
                chunk.rows,
                where_cols,
                skip_existing=skip_existing,
                returning=returning_cols,
            )
            for chunk in split(coerced.rows, dialect, len(coerced.columns), batch_size)
        )
        result = run(
            "upsert", statements, self.connection, self.config, atomic=transaction, fetch=fetch
        )
        return self._finish(result, batch, returning_cols)

    def delete(
        self,
        table: str,
        where: Optional[Records] = None,
        batch_size: Optional[int] = None,
        transaction: bool = True,
    ) -> ExecutionResult:
        """
        Delete the rows matching ``where`` on all of its columns.

        Without ``where`` every row is removed, with TRUNCATE where the
        backend supports it. An empty ``where`` deletes nothing.
        """
        dialect = self.dialect
        ensure_keyed_writes_supported(dialect, "delete")
        if where is None:
            statement = build_delete_all(dialect, table)
            return run("delete", [statement], self.connection, self.config, atomic=transaction)

        batch, coerced = self._prepare(table, where)
        if not batch.rows:
            logger.info("No records to delete. Skipping.")
            return ExecutionResult("delete")

        statements = (
            build_delete(dialect, table, coerced.columns, chunk.rows)
            for chunk in split(coerced.rows, dialect, len(coerced.columns), batch_size)
        )
        return run("delete", statements, self.connection, self.config, atomic=transaction)

    def select(self, sql: str, params: Optional[Sequence[Any]] = None) -> pd.DataFrame:
        """
        Run a query as-is and return its rows.

        Placeholders in ``sql`` must use the connection dialect's style.
        SQLite returns timestamp columns as text.
        """
        statement = build_select(sql, params)
        result = run(
            "select", [statement], self.connection, self.config, atomic=False, fetch=True
        )
        return result.rows
