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
Pure SQL statement builders.

Every builder takes the active ``Dialect`` and returns ``Statement`` objects
holding the SQL text and the ordered parameters to bind. Values are always
bound, never interpolated; only validated identifiers appear in the SQL.
"""

import re
from dataclasses import dataclass, replace
from typing import Any, Callable, List, Optional, Sequence, Tuple, Union

from .dialect import Dialect
from .errors import (
    InvalidIdentifier,
    OperationUnsupported,
    SchemaMismatch,
    UpsertUnsupported,
)

Row = Tuple[Any, ...]
Comment = Union[None, str, Callable[[], str]]

_IDENTIFIER_PATTERN = re.compile(r"[^\W\d]\w*")


@dataclass(frozen=True)
class Statement:
    """
    A rendered SQL statement and its positional parameters.
    """

    sql: str
    params: Tuple[Any, ...] = ()
    row_count: int = 0


class _Binder:
    """
    Collects parameters and hands out the matching placeholders in order.
    """

    def __init__(self, dialect: Dialect):
        self.dialect = dialect
        self.params: List[Any] = []

    def bind(self, value: Any) -> str:
        self.params.append(value)
        return self.dialect.placeholder(len(self.params))

    def bind_row(self, values: Sequence[Any]) -> str:
        return "(" + ", ".join(self.bind(v) for v in values) + ")"


def validate_identifier(name: Any) -> str:
    """
    Check that ``name`` is a plain identifier (letters, digits, underscores).

    Raises:
        InvalidIdentifier: If the name could carry anything but an identifier.
    """
    if not isinstance(name, str) or not _IDENTIFIER_PATTERN.fullmatch(name):
        raise InvalidIdentifier(f"Invalid identifier: {name!r}")
    return name


def quote_column(dialect: Dialect, column: str) -> str:
    return dialect.quote_identifier(validate_identifier(column))


def quote_table(dialect: Dialect, table: str) -> str:
    """
    Quote a table name, optionally schema-qualified as ``schema.table``.
    """
    if not isinstance(table, str):
        raise InvalidIdentifier(f"Invalid identifier: {table!r}")
    return ".".join(quote_column(dialect, part) for part in table.split("."))


def _check_columns(columns: Sequence[str], rows: Sequence[Row]) -> None:
    if not columns:
        raise SchemaMismatch("Cannot build a statement for records without columns.")
    if not rows:
        raise ValueError("Cannot build a statement for an empty set of rows.")
    width = len(columns)
    for position, row in enumerate(rows):
        if len(row) != width:
            raise SchemaMismatch(
                f"Row {position} has {len(row)} values, expected {width} "
                f"for columns {list(columns)}"
            )


def check_where_cols(columns: Sequence[str], where_cols: Sequence[str]) -> None:
    if not where_cols:
        raise SchemaMismatch("At least one where column is required.")
    missing = [c for c in where_cols if c not in columns]
    if missing:
        raise SchemaMismatch(f"Where columns not present in records: {missing}")


def _returning_clause(dialect: Dialect, returning: Optional[Sequence[str]]) -> str:
    if not returning or not dialect.supports_returning:
        return ""
    if list(returning) == ["*"]:
        return " RETURNING *"
    return " RETURNING " + ", ".join(quote_column(dialect, c) for c in returning)


def _key_predicate(
    dialect: Dialect, binder: _Binder, where_cols: Sequence[str], keys: Row
) -> str:
    return " AND ".join(
        f"{quote_column(dialect, c)} = {binder.bind(v)}" for c, v in zip(where_cols, keys)
    )


def _keys_in(
    dialect: Dialect, binder: _Binder, where_cols: Sequence[str], key_rows: Sequence[Row]
) -> str:
    """
    Render a predicate matching any of ``key_rows`` on ``where_cols``.
    """
    if len(where_cols) == 1:
        column = quote_column(dialect, where_cols[0])
        values = ", ".join(binder.bind(keys[0]) for keys in key_rows)
        return f"{column} IN ({values})"

    if dialect.row_values is None:
        return " OR ".join(
            f"({_key_predicate(dialect, binder, where_cols, keys)})" for keys in key_rows
        )

    columns = ", ".join(quote_column(dialect, c) for c in where_cols)
    tuples = ", ".join(binder.bind_row(keys) for keys in key_rows)
    if dialect.row_values == "values":
        return f"({columns}) IN (VALUES {tuples})"
    return f"({columns}) IN ({tuples})"


def build_select(sql: str, params: Optional[Sequence[Any]] = None) -> Statement:
    return Statement(sql, tuple(params or ()))


def build_insert(
    dialect: Dialect,
    table: str,
    columns: Sequence[str],
    rows: Sequence[Row],
    returning: Optional[Sequence[str]] = None,
) -> Statement:
    """
    Build one multi-row INSERT with the VALUES list in input order.

    Raises:
        SchemaMismatch: If a row's width differs from ``columns``.
        InvalidIdentifier: If the table or a column name is unsafe.
    """
    target = quote_table(dialect, table)
    quoted = ", ".join(quote_column(dialect, c) for c in columns)
    _check_columns(columns, rows)

    binder = _Binder(dialect)
    values = ", ".join(binder.bind_row(row) for row in rows)
    sql = (
        f"INSERT INTO {target} ({quoted}) VALUES {values}"
        f"{_returning_clause(dialect, returning)}"
    )
    return Statement(sql, tuple(binder.params), len(rows))


def build_update(
    dialect: Dialect,
    table: str,
    columns: Sequence[str],
    rows: Sequence[Row],
    where_cols: Sequence[str],
) -> List[Statement]:
    """
    Build the UPDATE statements for ``rows`` keyed on ``where_cols``.

    With the "case" strategy all rows become one statement whose SET list
    picks each row's value with ``CASE WHEN <key> THEN ... ELSE <column> END``;
    every row of a batch shares one column signature, so one statement
    covers the chunk.
    With the "per_row" strategy each row gets its own statement.
    Returns an empty list when there is nothing but key columns to set.
    """
    target = quote_table(dialect, table)
    _check_columns(columns, rows)
    check_where_cols(columns, where_cols)

    key_indexes = [list(columns).index(c) for c in where_cols]
    set_columns = [(i, c) for i, c in enumerate(columns) if c not in where_cols]
    if not set_columns:
        return []

    def keys_of(row: Row) -> Row:
        return tuple(row[i] for i in key_indexes)

    if dialect.update_strategy == "case":
        binder = _Binder(dialect)
        assignments = []
        for index, column in set_columns:
            quoted = quote_column(dialect, column)
            whens = " ".join(
                f"WHEN {_key_predicate(dialect, binder, where_cols, keys_of(row))} "
                f"THEN {binder.bind(row[index])}"
                for row in rows
            )
            # ELSE keeps the CASE typed as the column when every THEN is NULL
            # or an untyped literal.
            assignments.append(f"{quoted} = CASE {whens} ELSE {quoted} END")
        where = _keys_in(dialect, binder, where_cols, [keys_of(row) for row in rows])
        sql = f"UPDATE {target} SET {', '.join(assignments)} WHERE {where}"
        return [Statement(sql, tuple(binder.params), len(rows))]

    statements = []
    for row in rows:
        binder = _Binder(dialect)
        assignments = ", ".join(
            f"{quote_column(dialect, column)} = {binder.bind(row[index])}"
            for index, column in set_columns
        )
        where = _key_predicate(dialect, binder, where_cols, keys_of(row))
        sql = f"UPDATE {target} SET {assignments} WHERE {where}"
        statements.append(Statement(sql, tuple(binder.params), 1))
    return statements


def update_params_per_row(dialect: Dialect, column_count: int, key_count: int) -> int:
    """
    Number of parameters one row contributes to an UPDATE statement.
    """
    set_count = column_count - key_count
    if dialect.update_strategy == "case":
        return set_count * (key_count + 1) + key_count
    return column_count


def ensure_keyed_writes_supported(dialect: Dialect, operation: str) -> None:
    if not dialect.supports_keyed_writes:
        raise OperationUnsupported(
            f"{operation.capitalize()} is not supported by the {dialect.name} dialect"
        )


def ensure_upsert_supported(dialect: Dialect) -> None:
    if not dialect.supports_upsert:
        version = dialect.server_version
        detail = f" {'.'.join(str(p) for p in version)}" if version else ""
        raise UpsertUnsupported(f"Upsert is not supported by {dialect.name}{detail}")


def build_upsert(
    dialect: Dialect,
    table: str,
    columns: Sequence[str],
    rows: Sequence[Row],
    where_cols: Sequence[str],
    skip_existing: bool = False,
    returning: Optional[Sequence[str]] = None,
) -> Statement:
    """
    Build one atomic multi-row insert-or-update keyed on ``where_cols``.

    Non-key columns are set from the incoming row. With ``skip_existing``
    (or when every column is a key) existing rows are left untouched.

    Raises:
        UpsertUnsupported: If the dialect or server version lacks native upsert.
    """
    ensure_upsert_supported(dialect)
    insert = build_insert(dialect, table, columns, rows)
    check_where_cols(columns, where_cols)
    update_columns = [quote_column(dialect, c) for c in columns if c not in where_cols]
    keys = [quote_column(dialect, c) for c in where_cols]

    if dialect.upsert_style == "on_duplicate_key":
        if skip_existing or not update_columns:
            clause = f" ON DUPLICATE KEY UPDATE {keys[0]} = {keys[0]}"
        else:
            assignments = ", ".join(f"{c} = VALUES({c})" for c in update_columns)
            clause = f" ON DUPLICATE KEY UPDATE {assignments}"
    else:
        target = ", ".join(keys)
        if skip_existing or not update_columns:
            clause = f" ON CONFLICT ({target}) DO NOTHING"
        else:
            assignments = ", ".join(f"{c} = EXCLUDED.{c}" for c in update_columns)
            clause = f" ON CONFLICT ({target}) DO UPDATE SET {assignments}"

    sql = f"{insert.sql}{clause}{_returning_clause(dialect, returning)}"
    return replace(insert, sql=sql)


def build_delete(
    dialect: Dialect, table: str, where_cols: Sequence[str], rows: Sequence[Row]
) -> Statement:
    """
    Build a DELETE matching any of ``rows`` on ``where_cols``.
    """
    target = quote_table(dialect, table)
    _check_columns(where_cols, rows)
    binder = _Binder(dialect)
    sql = f"DELETE FROM {target} WHERE {_keys_in(dialect, binder, where_cols, rows)}"
    return Statement(sql, tuple(binder.params), len(rows))


def build_delete_all(dialect: Dialect, table: str) -> Statement:
    target = quote_table(dialect, table)
    if dialect.truncate_supported:
        return Statement(f"TRUNCATE TABLE {target}")
    return Statement(f"DELETE FROM {target}")


def with_comment(statement: Statement, comment: Comment) -> Statement:
    """
    Append ``/*comment*/`` to the statement; parameters are left unchanged.

    ``comment`` may be a string or a callable invoked once per statement.
    """
    text = comment() if callable(comment) else comment
    if not text:
        return statement
    text = str(text).replace("*/", "* /")
    return replace(statement, sql=f"{statement.sql} /*{text}*/")
