# Copyright (c) 2025 CoReason, Inc
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/py_universal_writer

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Sequence, Tuple, Union

import pandas as pd

from .errors import SchemaMismatch

Records = Union[pd.DataFrame, Sequence[Mapping[str, Any]]]

_KIND_MAPPING: Dict[str, str] = {
    "string": "text",
    "integer": "integer",
    "floating": "real",
    "mixed-integer-float": "real",
    "decimal": "real",
    "boolean": "boolean",
    "datetime64": "timestamp",
    "datetime": "timestamp",
    "date": "date",
    "bytes": "binary",
    "empty": "null",
}


@dataclass
class RecordBatch:
    """
    An ordered set of rows sharing one ordered column list.
    """

    columns: List[str]
    rows: List[Tuple[Any, ...]] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.rows)

    def select(self, columns: Sequence[str]) -> "RecordBatch":
        """
        Return a batch holding only ``columns``, in the given order.
        """
        missing = [c for c in columns if c not in self.columns]
        if missing:
            raise SchemaMismatch(f"Columns not present in records: {missing}")
        indexes = [self.columns.index(c) for c in columns]
        rows = [tuple(row[i] for i in indexes) for row in self.rows]
        return RecordBatch(list(columns), rows)

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame.from_records(self.rows, columns=self.columns)


@dataclass(frozen=True)
class TableRef:
    """
    A table name plus the batch's ordered columns and their inferred kinds.
    """

    name: str
    columns: Tuple[str, ...]
    kinds: Dict[str, str]

    def describe(self) -> str:
        return ", ".join(f"{c}:{self.kinds.get(c, 'mixed')}" for c in self.columns)


def to_record_batch(records: Records) -> RecordBatch:
    """
    Normalise a DataFrame or a sequence of mappings into a RecordBatch.

    Raises:
        SchemaMismatch: If columns are duplicated or rows disagree on columns.
    """
    if isinstance(records, pd.DataFrame):
        columns = [str(c) for c in records.columns]
        if len(set(columns)) != len(columns):
            raise SchemaMismatch(f"Duplicate column names in records: {columns}")
        rows = list(records.itertuples(index=False, name=None))
        return RecordBatch(columns, rows)

    if isinstance(records, (Mapping, str, bytes)) or not isinstance(records, Sequence):
        raise TypeError(
            "records must be a pandas DataFrame or a sequence of mappings, "
            f"got {type(records).__name__}"
        )

    if not records:
        return RecordBatch([], [])

    columns = [str(c) for c in records[0].keys()]
    expected = set(columns)
    rows = []
    for position, record in enumerate(records):
        if set(record.keys()) != expected:
            raise SchemaMismatch(
                f"Row {position} has columns {sorted(record.keys())}, "
                f"expected {sorted(expected)}"
            )
        rows.append(tuple(record[c] for c in columns))
    return RecordBatch(columns, rows)


def infer_kind(values: Sequence[Any]) -> str:
    """
    Infer the value kind of one column.
    """
    present = [v for v in values if v is not None]
    if present and all(isinstance(v, (dict, list)) for v in present):
        return "json"
    inferred = pd.api.types.infer_dtype(list(values), skipna=True)
    return _KIND_MAPPING.get(inferred, "mixed")


def table_ref(table: str, batch: RecordBatch) -> TableRef:
    kinds = {
        column: infer_kind([row[i] for row in batch.rows])
        for i, column in enumerate(batch.columns)
    }
    return TableRef(table, tuple(batch.columns), kinds)
