"""Wire format of the realtime push channel."""
from __future__ import annotations

from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel


class ChangeKind(str, Enum):
    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


class ChangeEvent(BaseModel):
    """A row-level change notification for one table."""

    type: Literal["change"] = "change"
    table: str
    kind: ChangeKind
    row: dict[str, Any]


__all__ = ["ChangeKind", "ChangeEvent"]
