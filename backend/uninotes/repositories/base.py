"""
Structured operation results. Repositories report "not found" (and similar expected
outcomes) as a failed OperationResult; the caller decides whether to surface it.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Any

from uninotes.errors import MalformedStoredData


class ErrorKind(str, Enum):
    NOT_FOUND = "not_found"
    PROTECTED = "protected"  # target may not be changed (e.g. super admin demote)


@dataclass(frozen=True)
class OperationResult:
    success: bool
    message: str
    error: ErrorKind | None = None
    data: Any = None

    def __bool__(self) -> bool:
        return self.success

    @classmethod
    def ok(cls, message: str, data: Any = None) -> "OperationResult":
        return cls(success=True, message=message, data=data)

    @classmethod
    def not_found(cls, message: str) -> "OperationResult":
        return cls(success=False, message=message, error=ErrorKind.NOT_FOUND)

    @classmethod
    def protected(cls, message: str) -> "OperationResult":
        return cls(success=False, message=message, error=ErrorKind.PROTECTED)


def expect_list(key: str, value: Any) -> list[dict]:
    """Absent -> []; anything but a JSON array of objects is malformed."""
    if value is None:
        return []
    if not isinstance(value, list):
        raise MalformedStoredData(key, f"expected a list, got {type(value).__name__}")
    for i, item in enumerate(value):
        if not isinstance(item, dict):
            raise MalformedStoredData(key, f"entry {i} is a {type(item).__name__}, expected an object")
    return list(value)


def expect_dict(key: str, value: Any) -> dict:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise MalformedStoredData(key, f"expected an object, got {type(value).__name__}")
    return dict(value)
