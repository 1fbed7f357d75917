"""
Admin action log: append-only list of {adminEmail, actionType, targetId, timestamp}.
No rotation; a write over the storage quota raises StorageQuotaExceeded.
"""
import logging
from datetime import datetime
from typing import Callable

from uninotes.repositories.base import expect_list
from uninotes.schemas.admin import AdminLogEntry
from uninotes.storage import keys
from uninotes.storage.kv_store import KeyValueStore
from uninotes.timeutil import iso_timestamp, utc_now

logger = logging.getLogger(__name__)


class AdminActionLog:
    def __init__(
        self,
        store: KeyValueStore,
        key: str = keys.ADMIN_LOGS,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.store = store
        self.key = key
        self.clock = clock

    def append(self, entry: AdminLogEntry | dict) -> dict:
        record = entry.to_record() if isinstance(entry, AdminLogEntry) else dict(entry)

        def _push(current):
            entries = expect_list(self.key, current)
            entries.append(record)
            return entries, None

        self.store.transact(self.key, _push)
        logger.info(
            "Admin action %s on %s by %s",
            record.get("actionType"), record.get("targetId"), record.get("adminEmail"),
        )
        return record

    def record(self, admin_email: str, action_type: str, target_id: str) -> dict:
        entry = AdminLogEntry(
            admin_email=admin_email,
            action_type=action_type,
            target_id=target_id,
            timestamp=iso_timestamp(self.clock()),
        )
        return self.append(entry)

    def list_entries(self) -> list[dict]:
        return expect_list(self.key, self.store.get(self.key))

    def recent(self, n: int = 5) -> list[dict]:
        """Last n entries, newest first."""
        if n <= 0:
            return []
        return list(reversed(self.list_entries()[-n:]))
