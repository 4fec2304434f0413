# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/py_universal_writer

import pytest

from py_universal_writer import BulkWriter, UnsupportedAdapter, WriterConfig
from py_universal_writer.main import connect, get_connection
from py_universal_writer.sqlite_connection import SQLiteConnection


def test_get_connection_unsupported_db_type():
    """
    Test that get_connection raises a ValueError for an unsupported db_type.
    """
    with pytest.raises(ValueError, match="Unsupported database type: unsupported_db"):
        get_connection({"db_type": "unsupported_db"})


def test_get_connection_unsupported_db_type_is_unsupported_adapter():
    """
    Test that the unsupported db_type error is an UnsupportedAdapter.
    """
    with pytest.raises(UnsupportedAdapter):
        get_connection({"db_type": "oracle"})


def test_get_connection_no_db_type():
    """
    Test that get_connection raises a ValueError if 'db_type' is not in the config.
    """
    with pytest.raises(
        ValueError, match="Configuration dictionary must contain a 'db_type' key."
    ):
        get_connection({})


def test_connect_returns_writer():
    """
    Test that connect opens the connection and returns a BulkWriter.
    """
    writer = connect({"db_type": "sqlite", "db_path": ":memory:", "verbose": True})
    assert isinstance(writer, BulkWriter)
    assert isinstance(writer.connection, SQLiteConnection)
    assert writer.dialect.name == "sqlite"
    assert writer.config.verbose is True
    writer.close()
    assert writer.connection.connection is None


def test_writer_config_rejects_unknown_time_zone():
    """
    Test that an unknown storage_tz is rejected up front.
    """
    with pytest.raises(ValueError, match="Unknown storage_tz"):
        WriterConfig(storage_tz="Mars/Olympus_Mons")


def test_writer_config_from_dict():
    """
    Test that the engine settings are read from the connection config.
    """
    config = WriterConfig.from_dict(
        {"db_type": "sqlite", "comment": "job", "storage_tz": "UTC"}
    )
    assert config.comment == "job"
    assert config.storage_tz == "UTC"
    assert config.verbose is False
    assert config.logger is None
