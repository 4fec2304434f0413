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
Sequential execution of generated statements on one connection.

Atomic operations run every statement of one call inside a single
transaction: the caller's, when one is already open, or one opened and
committed here. A failure rolls back the active transaction, whoever opened
it, and re-raises the original error. Non-atomic inserts run in the
connection's autocommit mode, so statements that already ran stay committed
after a later failure.
"""

from dataclasses import dataclass
from typing import Iterable, List, Optional

import pandas as pd
from loguru import logger

from .base import BaseConnection
from .coercion import restore_frame
from .config import WriterConfig
from .statements import Statement, with_comment


@dataclass
class ExecutionResult:
    """
    Aggregated outcome of one logical operation.
    """

    operation: str
    row_count: int = 0
    rows: Optional[pd.DataFrame] = None
    statement_count: int = 0


def _log_statement(statement: Statement, config: WriterConfig) -> None:
    if config.verbose:
        logger.info(statement.sql)
    else:
        logger.debug(statement.sql)
    if config.logger is not None:
        config.logger(statement.sql)


def _rollback(connection: BaseConnection, operation: str) -> None:
    """
    Roll back the active transaction without masking the error that caused it.
    """
    try:
        connection.rollback()
    except Exception:
        logger.exception(f"Rollback after failed {operation} also failed.")


def run(
    operation: str,
    statements: Iterable[Statement],
    connection: BaseConnection,
    config: Optional[WriterConfig] = None,
    atomic: bool = True,
    fetch: bool = False,
) -> ExecutionResult:
    """
    Execute ``statements`` in order and aggregate their results.

    Args:
        operation: Name of the logical operation, used for logging.
        statements: Statements to run, consumed lazily and exactly once.
        connection: An open connection.
        config: Engine settings (comment and statement logging).
        atomic: Run all statements inside one transaction.
        fetch: Collect the rows each statement returns.

    Returns:
        The summed row count and, with ``fetch``, the concatenated rows.
    """
    config = config or WriterConfig()
    result = ExecutionResult(operation)
    frames: List[pd.DataFrame] = []

    opened = atomic and not connection.in_transaction
    if opened:
        connection.begin()

    try:
        for statement in statements:
            statement = with_comment(statement, config.comment)
            _log_statement(statement, config)
            if fetch:
                frame = connection.query(statement.sql, statement.params)
                frames.append(frame)
                result.row_count += len(frame)
            else:
                result.row_count += connection.execute(statement.sql, statement.params)
            result.statement_count += 1
    except Exception as e:
        if atomic:
            logger.error(
                f"Failed to {operation} after {result.statement_count} statement(s), "
                f"rolling back: {e}"
            )
            _rollback(connection, operation)
        else:
            logger.error(
                f"Failed to {operation} after {result.statement_count} statement(s): {e}"
            )
        raise

    if opened:
        connection.commit()

    if fetch:
        if frames:
            result.rows = restore_frame(pd.concat(frames, ignore_index=True))
        else:
            result.rows = pd.DataFrame()

    logger.info(
        f"Completed {operation}: {result.statement_count} statement(s), "
        f"{result.row_count} row(s)."
    )
    return result
