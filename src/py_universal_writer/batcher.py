# Copyright (c) 2025 CoReason, Inc
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/py_universal_writer

from dataclasses import dataclass
from typing import Any, Iterator, List, Optional, Sequence, Tuple

from loguru import logger

from .dialect import Dialect

Row = Tuple[Any, ...]

# Allowance for the SQL text around the bound values.
STATEMENT_OVERHEAD_BYTES = 1024
PARAM_OVERHEAD_BYTES = 64


@dataclass(frozen=True)
class Chunk:
    """
    A contiguous slice of a record batch, starting at ``offset``.
    """

    offset: int
    rows: List[Row]

    def __len__(self) -> int:
        return len(self.rows)


def estimate_value_bytes(value: Any) -> int:
    if value is None:
        return 4
    if isinstance(value, (bytes, bytearray, memoryview)):
        return len(value)
    return len(str(value).encode("utf-8"))


def estimate_row_bytes(row: Row, params_per_row: int) -> int:
    """
    Estimate the bytes one row adds to a statement: its values plus the SQL
    text around each of its parameters.
    """
    return sum(estimate_value_bytes(v) for v in row) + params_per_row * PARAM_OVERHEAD_BYTES


def rows_per_chunk(
    dialect: Dialect, params_per_row: int, batch_size: Optional[int] = None
) -> int:
    """
    Largest number of rows allowed in one chunk by ``batch_size`` and the
    dialect's bound-parameter limit.
    """
    if batch_size is not None and batch_size < 1:
        raise ValueError(f"batch_size must be at least 1, got {batch_size}")

    limit = dialect.max_params // max(params_per_row, 1)
    if limit < 1:
        logger.warning(
            f"A single row binds {params_per_row} parameters, more than the "
            f"{dialect.max_params} allowed by {dialect.name}; sending one row per statement."
        )
        limit = 1
    if batch_size is not None:
        limit = min(limit, batch_size)
    return limit


def split(
    rows: Sequence[Row],
    dialect: Dialect,
    column_count: int,
    batch_size: Optional[int] = None,
    params_per_row: Optional[int] = None,
) -> Iterator[Chunk]:
    """
    Lazily split ``rows`` into chunks that respect the dialect's limits.

    Chunks are contiguous, keep input order, never split a row and always
    hold at least one row. Identical input and settings always give
    identical chunk boundaries.

    Args:
        rows: The row tuples to split.
        dialect: The active dialect.
        column_count: Number of values in each row.
        batch_size: Optional cap on rows per chunk.
        params_per_row: Parameters one row binds, when not ``column_count``.
    """
    if params_per_row is None:
        params_per_row = column_count
    max_rows = rows_per_chunk(dialect, params_per_row, batch_size)
    byte_limit = dialect.max_statement_bytes - STATEMENT_OVERHEAD_BYTES

    current: List[Row] = []
    current_bytes = 0
    offset = 0
    for row in rows:
        row_bytes = estimate_row_bytes(row, params_per_row)
        if current and (
            len(current) >= max_rows or current_bytes + row_bytes > byte_limit
        ):
            yield Chunk(offset, current)
            offset += len(current)
            current = []
            current_bytes = 0
        current.append(row)
        current_bytes += row_bytes

    if current:
        yield Chunk(offset, current)
