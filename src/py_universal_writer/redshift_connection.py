# Copyright (c) 2025 CoReason, Inc
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/py_universal_writer

from typing import Any, Dict

from .postgres_connection import PostgresConnection


class RedshiftConnection(PostgresConnection):
    """
    Connection for Amazon Redshift over the PostgreSQL wire protocol.

    Redshift reports itself as PostgreSQL 8.0, so version-gated features
    such as native upsert are refused for it.
    """

    adapter_kind = "redshift"
    default_port = 5439

    def _connect_kwargs(self) -> Dict[str, Any]:
        conn_info = super()._connect_kwargs()
        conn_info["dbname"] = self.config.get("dbname", self.config.get("db"))
        return conn_info
