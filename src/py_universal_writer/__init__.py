# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/py_universal_writer

"""
A dialect-aware bulk write engine for pandas DataFrames. It generates and executes minimal-round-trip SQL for insert, update, upsert and delete across PostgreSQL, Redshift, MySQL, SQLite and generic DB-API connections, batching large record sets to respect each backend's limits.
"""

__version__ = "0.1.0"
__author__ = "Gowtham A Rao"
__email__ = "gowtham.rao@coreason.ai"

from .config import WriterConfig
from .dialect import Dialect, resolve
from .errors import (
    ConstraintViolation,
    DriverError,
    InvalidIdentifier,
    OperationUnsupported,
    SchemaMismatch,
    TypeCoercionError,
    UnsupportedAdapter,
    UpsertUnsupported,
    WriterError,
)
from .main import connect, get_connection
from .orchestrator import ExecutionResult
from .writer import BulkWriter

__all__ = [
    "BulkWriter",
    "ConstraintViolation",
    "Dialect",
    "DriverError",
    "ExecutionResult",
    "InvalidIdentifier",
    "OperationUnsupported",
    "SchemaMismatch",
    "TypeCoercionError",
    "UnsupportedAdapter",
    "UpsertUnsupported",
    "WriterConfig",
    "WriterError",
    "connect",
    "get_connection",
    "resolve",
]
