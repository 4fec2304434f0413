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
from typing import Any, Callable, Dict, Optional, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


@dataclass(frozen=True)
class WriterConfig:
    """
    Engine settings threaded explicitly through every operation.

    Attributes:
        verbose: Log every statement at INFO instead of DEBUG.
        comment: A string, or a callable invoked per statement, appended to
            each generated statement as ``/*comment*/``.
        logger: Optional callable receiving each statement's SQL.
        storage_tz: IANA time zone timestamps are written in (default UTC).
    """

    verbose: bool = False
    comment: Union[None, str, Callable[[], str]] = None
    logger: Optional[Callable[[str], None]] = None
    storage_tz: Optional[str] = None

    def __post_init__(self):
        if self.storage_tz is not None:
            try:
                ZoneInfo(self.storage_tz)
            except (ZoneInfoNotFoundError, ValueError) as e:
                raise ValueError(f"Unknown storage_tz: {self.storage_tz}") from e
        if self.logger is not None and not callable(self.logger):
            raise ValueError("logger must be callable.")

    @classmethod
    def from_dict(cls, config: Dict[str, Any]) -> "WriterConfig":
        """
        Build the engine settings from a connection configuration dictionary.
        """
        return cls(
            verbose=bool(config.get("verbose", False)),
            comment=config.get("comment"),
            logger=config.get("logger"),
            storage_tz=config.get("storage_tz"),
        )
