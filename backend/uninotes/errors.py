"""
Error taxonomy. Storage problems are exceptions; repository "not found" is a
structured OperationResult (see uninotes.repositories.base), not an exception.
"""


class StorageError(Exception):
    """Base for failures of the key-value store."""


class MalformedStoredData(StorageError):
    """A stored document is not valid JSON (or not the expected shape)."""

    def __init__(self, key: str, reason: str):
        self.key = key
        self.reason = reason
        super().__init__(f"Stored value for {key!r} is malformed: {reason}")


class StorageQuotaExceeded(StorageError):
    def __init__(self, key: str, size: int, quota: int):
        self.key = key
        self.size = size
        self.quota = quota
        super().__init__(f"Value for {key!r} is {size} bytes; quota is {quota} bytes")


class StaleWriteError(StorageError):
    """Compare-and-set failed: the key changed since it was read."""

    def __init__(self, key: str, expected: int | None, actual: int | None):
        self.key = key
        self.expected = expected
        self.actual = actual
        super().__init__(f"Stale write on {key!r}: expected revision {expected}, found {actual}")


class ValidationFailed(ValueError):
    """User input rejected at the form boundary. message is shown to the user."""

    def __init__(self, message: str, field: str | None = None):
        self.message = message
        self.field = field
        super().__init__(message)
