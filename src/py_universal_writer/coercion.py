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
Value normalisation between pandas/Python values and driver parameters.

Writes: timestamps are normalised to UTC (or ``storage_tz``), booleans are
native or 0/1, binary is passed as ``bytes`` and structured values are
serialised to JSON text. Reads: binary cells are returned as ``bytes``.
SQLite returns timestamp columns as text and no typecast is attempted.
"""

import datetime
import json
import uuid
from decimal import Decimal
from typing import Any, Optional

import numpy as np
import pandas as pd

from .dialect import Dialect
from .errors import TypeCoercionError
from .records import RecordBatch

SQLITE_TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S.%f"

_NEVER_MISSING = (str, bytes, bytearray, memoryview, dict, list, tuple, set)


def is_missing(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, _NEVER_MISSING):
        return False
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def _coerce_timestamp(
    column: str, value: Any, dialect: Dialect, storage_tz: Optional[str]
) -> Any:
    try:
        ts = pd.Timestamp(value)
    except (TypeError, ValueError) as e:
        raise TypeCoercionError(column, value, str(e)) from e

    # Naive timestamps are taken to be UTC.
    if ts.tzinfo is None:
        ts = ts.tz_localize("UTC")
    ts = ts.tz_convert(storage_tz or "UTC")

    if dialect.timestamp_style == "aware":
        return ts.to_pydatetime()
    if dialect.timestamp_style == "text":
        return ts.strftime(SQLITE_TIMESTAMP_FORMAT)
    return ts.tz_localize(None).to_pydatetime()


def coerce_value(
    column: str, value: Any, dialect: Dialect, storage_tz: Optional[str] = None
) -> Any:
    """
    Convert one value into the representation the dialect's driver expects.

    Raises:
        TypeCoercionError: If the value cannot be represented.
    """
    if is_missing(value):
        return None

    if isinstance(value, (bool, np.bool_)):
        return bool(value) if dialect.supports_boolean else int(value)

    if isinstance(value, (int, np.integer)):
        return int(value)

    if isinstance(value, (float, np.floating)):
        return float(value)

    if isinstance(value, Decimal):
        return str(value) if dialect.family == "sqlite" else value

    if isinstance(value, str):
        return value

    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value)

    if isinstance(value, (datetime.datetime, np.datetime64)):
        return _coerce_timestamp(column, value, dialect, storage_tz)

    if isinstance(value, datetime.date):
        return value.isoformat() if dialect.family == "sqlite" else value

    if isinstance(value, datetime.time):
        return value.isoformat() if dialect.family in ("sqlite", "generic") else value

    if isinstance(value, uuid.UUID):
        return str(value)

    if isinstance(value, (dict, list)):
        try:
            return json.dumps(value)
        except (TypeError, ValueError) as e:
            raise TypeCoercionError(column, value, str(e)) from e

    raise TypeCoercionError(column, value, f"unsupported type {type(value).__name__}")


def coerce_batch(
    batch: RecordBatch, dialect: Dialect, storage_tz: Optional[str] = None
) -> RecordBatch:
    """
    Return a copy of ``batch`` with every value coerced for ``dialect``.
    """
    rows = [
        tuple(
            coerce_value(column, value, dialect, storage_tz)
            for column, value in zip(batch.columns, row)
        )
        for row in batch.rows
    ]
    return RecordBatch(list(batch.columns), rows)


def _restore_value(value: Any) -> Any:
    if isinstance(value, (memoryview, bytearray)):
        return bytes(value)
    return value


def restore_frame(frame: pd.DataFrame) -> pd.DataFrame:
    """
    Normalise a driver result frame: binary cells become ``bytes``.
    """
    restored = frame.copy()
    for position in range(restored.shape[1]):
        series = restored.iloc[:, position]
        if series.dtype == object:
            restored.iloc[:, position] = series.map(_restore_value)
    return restored
