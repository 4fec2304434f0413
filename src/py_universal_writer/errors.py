# Copyright (c) 2025 CoReason, Inc
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/py_universal_writer

from typing import Any, Optional


class WriterError(Exception):
    """
    Base class for all errors raised by the bulk writer.
    """


class UnsupportedAdapter(WriterError, ValueError):
    """
    Raised when a database type or adapter name has no known dialect.
    """


class OperationUnsupported(WriterError):
    """
    Raised when the dialect does not support a write operation.
    """


class UpsertUnsupported(OperationUnsupported):
    """
    Raised when the dialect (or its server version) has no native upsert.
    """


class SchemaMismatch(WriterError, ValueError):
    """
    Raised when rows of one batch do not share the same column set.
    """


class InvalidIdentifier(WriterError, ValueError):
    """
    Raised when a table or column name fails the safe-identifier policy.
    """


class TypeCoercionError(WriterError, TypeError):
    """
    Raised when a value cannot be represented for the target backend.
    """

    def __init__(self, column: str, value: Any, reason: Optional[str] = None):
        self.column = column
        self.value = value
        message = f"Cannot coerce value {value!r} in column '{column}'"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class DriverError(WriterError):
    """
    An error raised by the underlying database driver.

    The driver exception is kept as ``orig`` and chained as ``__cause__``.
    """

    def __init__(self, message: str, orig: Optional[BaseException] = None):
        super().__init__(message)
        self.orig = orig


class ConstraintViolation(DriverError):
    """
    A driver error caused by a violated or missing constraint.
    """
