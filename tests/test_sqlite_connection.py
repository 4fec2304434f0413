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

import pandas as pd
import pytest

from py_universal_writer.errors import (
    ConstraintViolation,
    InvalidIdentifier,
    SchemaMismatch,
)
from py_universal_writer.main import connect, get_connection
from py_universal_writer.sqlite_connection import SQLiteConnection


@pytest.fixture
def sqlite_config():
    """
    Fixture for a sample SQLite config (in-memory).
    """
    return {"db_type": "sqlite", "db_path": ":memory:"}


@pytest.fixture
def statements_log():
    """
    Fixture collecting every statement sent to the database.
    """
    return []


@pytest.fixture
def writer(sqlite_config, statements_log):
    """
    Fixture for a writer on a database holding a 'forecasts' table.
    """
    writer = connect({**sqlite_config, "logger": statements_log.append})
    writer.connection.execute(
        "CREATE TABLE forecasts ("
        "id INTEGER PRIMARY KEY, temperature INTEGER CHECK (temperature < 100))"
    )
    yield writer
    writer.close()


def read_forecasts(writer):
    return writer.select("SELECT id, temperature FROM forecasts ORDER BY id")


def forecasts(ids, temperatures):
    return pd.DataFrame({"id": ids, "temperature": temperatures})


def test_get_connection_sqlite(sqlite_config):
    """
    Test that get_connection returns a SQLiteConnection for db_type 'sqlite'.
    """
    connection = get_connection(sqlite_config)
    assert isinstance(connection, SQLiteConnection)


def test_sqlite_connection_connect_and_close(sqlite_config):
    """
    Test that connect opens a connection and close terminates it.
    """
    connection = SQLiteConnection(sqlite_config)
    connection.connect()
    raw = connection.connection
    assert isinstance(raw, sqlite3.Connection)
    assert connection.dialect.name == "sqlite"
    connection.close()
    assert connection.connection is None
    with pytest.raises(
        sqlite3.ProgrammingError, match="Cannot operate on a closed database."
    ):
        raw.execute("SELECT 1")


def test_sqlite_connection_not_established(sqlite_config):
    """
    Test that statements fail if connect has not been called.
    """
    connection = SQLiteConnection(sqlite_config)
    with pytest.raises(
        ConnectionError, match="Database connection is not established."
    ):
        connection.execute("SELECT 1")


def test_insert_then_select(writer):
    """
    Test that inserted rows are read back unchanged.
    """
    df = forecasts([1, 2, 3], [10, 20, 30])
    result = writer.insert("forecasts", df)

    assert result.row_count == 3
    pd.testing.assert_frame_equal(read_forecasts(writer), df)


def test_insert_batch_sizes(writer, statements_log):
    """
    Test one statement per row with batch_size=1 and one overall otherwise.
    """
    result = writer.insert("forecasts", forecasts([1, 2, 3], [10, 20, 30]), batch_size=1)
    assert result.statement_count == 3
    assert [s.count("(?, ?)") for s in statements_log] == [1, 1, 1]

    statements_log.clear()
    result = writer.insert("forecasts", forecasts([4, 5, 6], [40, 50, 60]))
    assert result.statement_count == 1
    assert statements_log == [
        'INSERT INTO "forecasts" ("id", "temperature") VALUES (?, ?), (?, ?), (?, ?)'
    ]
    assert read_forecasts(writer)["id"].tolist() == [1, 2, 3, 4, 5, 6]


def test_insert_returning_echoes_input(writer):
    """
    Test that SQLite echoes the input rows when rows are requested back.
    """
    df = forecasts([1, 2], [10, 20])
    result = writer.insert("forecasts", df, returning=True)
    pd.testing.assert_frame_equal(result.rows, df)

    result = writer.insert("forecasts", forecasts([3], [30]), returning=["id"])
    assert result.rows["id"].tolist() == [3]


def test_insert_empty_records(writer, statements_log):
    """
    Test that empty records send nothing.
    """
    result = writer.insert("forecasts", forecasts([], []))
    assert result.row_count == 0
    assert statements_log == []


def test_upsert_updates_and_inserts(writer):
    """
    Test that upsert updates existing keys and inserts new ones.
    """
    writer.insert("forecasts", forecasts([2], [99]))
    writer.upsert("forecasts", forecasts([2, 3], [20, 25]), where_cols=["id"])
    pd.testing.assert_frame_equal(read_forecasts(writer), forecasts([2, 3], [20, 25]))


def test_upsert_is_idempotent(writer):
    """
    Test that applying the same upsert twice equals applying it once.
    """
    batch = forecasts([1, 2, 3], [10, 20, 30])
    writer.upsert("forecasts", batch, "id")
    once = read_forecasts(writer)
    writer.upsert("forecasts", batch, "id")
    pd.testing.assert_frame_equal(read_forecasts(writer), once)


def test_upsert_skip_existing(writer):
    """
    Test that skip_existing keeps existing rows unchanged.
    """
    writer.insert("forecasts", forecasts([2], [99]))
    writer.upsert("forecasts", forecasts([2, 3], [20, 25]), "id", skip_existing=True)
    pd.testing.assert_frame_equal(read_forecasts(writer), forecasts([2, 3], [99, 25]))


def test_upsert_without_unique_index(writer):
    """
    Test that an upsert keyed on non-unique columns fails.
    """
    writer.connection.execute("CREATE TABLE readings (station TEXT, temperature INTEGER)")
    with pytest.raises(ConstraintViolation):
        writer.upsert(
            "readings", [{"station": "a", "temperature": 1}], where_cols=["station"]
        )


def test_update(writer, statements_log):
    """
    Test that update changes only the matching rows.
    """
    writer.insert("forecasts", forecasts([1, 2, 3], [10, 20, 30]))
    statements_log.clear()

    result = writer.update("forecasts", forecasts([1, 3], [11, 33]), where_cols=["id"])

    assert result.row_count == 2
    assert result.statement_count == 1
    assert statements_log[0].startswith('UPDATE "forecasts" SET "temperature" = CASE')
    pd.testing.assert_frame_equal(read_forecasts(writer), forecasts([1, 2, 3], [11, 20, 33]))


def test_update_rolls_back_all_chunks(writer):
    """
    Test that a failing chunk rolls back the chunks already applied.
    """
    writer.insert("forecasts", forecasts([1, 2], [10, 20]))

    with pytest.raises(ConstraintViolation):
        writer.update("forecasts", forecasts([1, 2], [50, 500]), "id", batch_size=1)

    pd.testing.assert_frame_equal(read_forecasts(writer), forecasts([1, 2], [10, 20]))
    assert not writer.connection.in_transaction


def test_insert_chunks_commit_independently(writer):
    """
    Test that insert chunks committed before a failure are kept.
    """
    with pytest.raises(ConstraintViolation):
        writer.insert("forecasts", forecasts([10, 11], [1, 500]), batch_size=1)
    assert read_forecasts(writer)["id"].tolist() == [10]


def test_insert_in_one_transaction(writer):
    """
    Test that transaction=True makes a chunked insert all-or-nothing.
    """
    with pytest.raises(ConstraintViolation):
        writer.insert(
            "forecasts", forecasts([10, 11], [1, 500]), batch_size=1, transaction=True
        )
    assert read_forecasts(writer).empty


def test_caller_transaction(writer):
    """
    Test that operations join a transaction opened by the caller.
    """
    writer.connection.begin()
    writer.insert("forecasts", forecasts([1], [10]))
    writer.update("forecasts", forecasts([1], [11]), "id")
    assert writer.connection.in_transaction
    writer.connection.rollback()
    assert read_forecasts(writer).empty


def test_failure_rolls_back_caller_transaction(writer):
    """
    Test that a failing update inside a caller's transaction rolls back the
    chunks it already applied.
    """
    writer.insert("forecasts", forecasts([1, 2], [10, 20]))
    writer.connection.begin()

    with pytest.raises(ConstraintViolation):
        writer.update("forecasts", forecasts([1, 2], [50, 500]), "id", batch_size=1)

    assert not writer.connection.in_transaction
    pd.testing.assert_frame_equal(read_forecasts(writer), forecasts([1, 2], [10, 20]))


def test_delete_matching_rows(writer):
    """
    Test that delete removes exactly the matching rows.
    """
    writer.insert("forecasts", forecasts([1, 2, 3], [10, 20, 30]))
    result = writer.delete("forecasts", pd.DataFrame({"id": [2, 4]}))
    assert result.row_count == 1
    assert read_forecasts(writer)["id"].tolist() == [1, 3]


def test_delete_composite_key(writer):
    """
    Test a delete keyed on two columns.
    """
    writer.insert("forecasts", forecasts([1, 2, 3], [10, 20, 30]))
    writer.delete("forecasts", [{"id": 1, "temperature": 10}, {"id": 2, "temperature": 99}])
    assert read_forecasts(writer)["id"].tolist() == [2, 3]


def test_delete_all(writer, statements_log):
    """
    Test that delete without a predicate removes every row.
    """
    writer.insert("forecasts", forecasts([1, 2], [10, 20]))
    statements_log.clear()
    writer.delete("forecasts")
    assert statements_log == ['DELETE FROM "forecasts"']
    assert read_forecasts(writer).empty


def test_delete_empty_where_deletes_nothing(writer):
    """
    Test that an empty where batch is not a delete-all.
    """
    writer.insert("forecasts", forecasts([1], [10]))
    writer.delete("forecasts", [])
    assert len(read_forecasts(writer)) == 1


def test_validation_happens_before_any_statement(writer, statements_log):
    """
    Test that invalid identifiers and mismatched rows send nothing.
    """
    with pytest.raises(InvalidIdentifier):
        writer.insert("forecasts", [{"robert); DROP TABLE users;--": 1}])
    with pytest.raises(InvalidIdentifier):
        writer.insert("forecasts; DROP TABLE forecasts", forecasts([1], [1]))
    with pytest.raises(SchemaMismatch):
        writer.insert("forecasts", [{"id": 1, "temperature": 1}, {"id": 2}])
    with pytest.raises(SchemaMismatch):
        writer.update("forecasts", forecasts([1], [1]), where_cols=["station"])
    assert statements_log == []


def test_value_types_round_trip():
    """
    Test timestamps, booleans, binary and JSON values on SQLite.
    """
    writer = connect({"db_type": "sqlite", "db_path": ":memory:"})
    writer.connection.execute(
        "CREATE TABLE events (id INTEGER, at TIMESTAMP, ok BOOLEAN, payload BLOB, meta TEXT)"
    )
    writer.insert(
        "events",
        pd.DataFrame(
            {
                "id": [1],
                "at": [pd.Timestamp("2025-01-01 12:00:00", tz="UTC")],
                "ok": [True],
                "payload": [b"\x00\x01"],
                "meta": [{"source": "sensor"}],
            }
        ),
    )

    row = writer.select("SELECT at, ok, payload, meta FROM events").iloc[0]
    assert row["at"] == "2025-01-01 12:00:00.000000"
    assert row["ok"] == 1
    assert row["payload"] == b"\x00\x01"
    assert row["meta"] == '{"source": "sensor"}'
    writer.close()


def test_select_with_params_and_comment(statements_log):
    """
    Test a parameterised passthrough select with a statement comment.
    """
    writer = connect(
        {"db_type": "sqlite", "comment": "report", "logger": statements_log.append}
    )
    result = writer.select("SELECT ? AS value", [5])
    assert result["value"].tolist() == [5]
    assert statements_log == ["SELECT ? AS value /*report*/"]
    writer.close()
