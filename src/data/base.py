# src/data/base.py
"""
Base record type for the trading domain objects.

These are plain in-memory records. The store only ever sees them through the
stored procedure arguments built in src/services, never through an ORM.
"""

from dataclasses import dataclass, fields
from typing import Any


@dataclass
class Record:
    """
    Base class for all domain records.

    Fields declared with ``metadata={"log": False}`` (such as the shared pool
    handle on Session) are left out of ``to_dict``.
    """

    def to_dict(self) -> dict[str, Any]:
        """Convert the record to a dictionary for structured log entries."""
        result: dict[str, Any] = {}
        for f in fields(self):
            if not f.metadata.get("log", True):
                continue
            value = getattr(self, f.name)
            result[f.name] = value.to_dict() if isinstance(value, Record) else value
        return result
