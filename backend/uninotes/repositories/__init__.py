"""
Repositories over the key-value store.
"""
from uninotes.repositories.admin_log import AdminActionLog
from uninotes.repositories.base import ErrorKind, OperationResult
from uninotes.repositories.notes import CleanupReport, NotesRepository
from uninotes.repositories.users import AdminIdentity, UserRepository

__all__ = [
    "AdminActionLog",
    "AdminIdentity",
    "CleanupReport",
    "ErrorKind",
    "NotesRepository",
    "OperationResult",
    "UserRepository",
]
