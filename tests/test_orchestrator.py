# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/py_universal_writer

from unittest.mock import MagicMock

import pandas as pd
import pytest

from py_universal_writer.config import WriterConfig
from py_universal_writer.errors import DriverError
from py_universal_writer.orchestrator import run
from py_universal_writer.statements import Statement


@pytest.fixture
def connection():
    """
    Fixture for a mock connection outside any transaction.
    """
    mock_connection = MagicMock()
    mock_connection.in_transaction = False
    mock_connection.execute.return_value = 2
    return mock_connection


@pytest.fixture
def statements():
    """
    Fixture for three statements.
    """
    return [Statement(f"UPDATE t SET v = {i}", (i,), 1) for i in range(3)]


def test_atomic_run_commits(connection, statements):
    """
    Test that an atomic run opens, uses and commits one transaction.
    """
    result = run("update", iter(statements), connection)

    assert result.row_count == 6
    assert result.statement_count == 3
    connection.begin.assert_called_once()
    connection.commit.assert_called_once()
    connection.rollback.assert_not_called()
    assert [c.args for c in connection.execute.call_args_list] == [
        (s.sql, s.params) for s in statements
    ]


def test_atomic_run_rolls_back_and_stops(connection, statements):
    """
    Test that a failure rolls back, skips remaining statements and re-raises.
    """
    error = DriverError("boom")
    connection.execute.side_effect = [1, error, 1]

    with pytest.raises(DriverError) as excinfo:
        run("update", iter(statements), connection)

    assert excinfo.value is error
    assert connection.execute.call_count == 2
    connection.rollback.assert_called_once()
    connection.commit.assert_not_called()


def test_ambient_transaction_is_rolled_back(connection, statements):
    """
    Test that a failure inside a caller's transaction rolls it back, without
    opening or committing a transaction here.
    """
    connection.in_transaction = True
    connection.execute.side_effect = [1, DriverError("boom"), 1]

    with pytest.raises(DriverError):
        run("delete", statements, connection)

    connection.begin.assert_not_called()
    connection.commit.assert_not_called()
    connection.rollback.assert_called_once()


def test_ambient_transaction_is_kept_on_success(connection, statements):
    """
    Test that a caller's transaction is neither committed nor rolled back on
    success.
    """
    connection.in_transaction = True

    run("update", statements, connection)

    connection.begin.assert_not_called()
    connection.commit.assert_not_called()
    connection.rollback.assert_not_called()


def test_failed_rollback_keeps_original_error(connection, statements):
    """
    Test that an error raised by rollback does not replace the statement error.
    """
    error = DriverError("original")
    connection.execute.side_effect = [1, error, 1]
    connection.rollback.side_effect = RuntimeError("rollback failed")

    with pytest.raises(DriverError) as excinfo:
        run("update", iter(statements), connection)

    assert excinfo.value is error
    connection.rollback.assert_called_once()
    connection.commit.assert_not_called()


def test_non_atomic_failure_is_not_rolled_back(connection, statements):
    """
    Test that independent insert chunks are never rolled back.
    """
    connection.execute.side_effect = [1, DriverError("boom"), 1]

    with pytest.raises(DriverError):
        run("insert", statements, connection, atomic=False)

    connection.rollback.assert_not_called()


def test_non_atomic_run_has_no_transaction(connection, statements):
    """
    Test that non-atomic runs leave each statement to autocommit.
    """
    result = run("insert", statements, connection, atomic=False)

    assert result.row_count == 6
    connection.begin.assert_not_called()
    connection.commit.assert_not_called()


def test_fetch_concatenates_rows_in_order(connection, statements):
    """
    Test that returned rows are concatenated in statement order.
    """
    connection.query.side_effect = [
        pd.DataFrame({"id": [1, 2]}),
        pd.DataFrame({"id": [3]}),
        pd.DataFrame({"id": [4, 5]}),
    ]

    result = run("insert", statements, connection, atomic=False, fetch=True)

    assert result.rows["id"].tolist() == [1, 2, 3, 4, 5]
    assert result.row_count == 5
    connection.execute.assert_not_called()


def test_comment_and_logger(connection, statements):
    """
    Test that each statement is commented and passed to the logger once.
    """
    logged = []
    config = WriterConfig(comment="job", logger=logged.append, verbose=True)

    run("update", statements, connection, config)

    assert logged == [f"{s.sql} /*job*/" for s in statements]
    assert connection.execute.call_args_list[0].args == (
        "UPDATE t SET v = 0 /*job*/",
        (0,),
    )
