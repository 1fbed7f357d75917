"""
Key-value store adapter: get/set/remove JSON documents by string key.

Each key carries a revision. Writes may pass expected_revision for compare-and-set;
transact() wraps read-modify-write in a tenacity retry on StaleWriteError so two
writers racing on the same key re-apply their change instead of clobbering each other.
"""
import json
import logging
from dataclasses import dataclass
from typing import Any, Callable

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from uninotes.errors import MalformedStoredData, StaleWriteError, StorageQuotaExceeded
from uninotes.models.kv_entry import KVEntry

logger = logging.getLogger(__name__)


class _AnyRevision:
    def __repr__(self) -> str:
        return "ANY_REVISION"


# expected_revision=ANY_REVISION: blind write. None: key must be absent.
ANY_REVISION: Any = _AnyRevision()
# Returned by a transact() callback to skip the write
SKIP_WRITE: Any = object()


@dataclass
class StoredValue:
    value: Any
    revision: int | None  # None when the key is absent

    @property
    def exists(self) -> bool:
        return self.revision is not None


def dumps(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False, separators=(",", ":"))


def loads(key: str, raw: str) -> Any:
    try:
        return json.loads(raw)
    except (json.JSONDecodeError, TypeError) as e:
        raise MalformedStoredData(key, str(e)) from e


class KeyValueStore:
    def __init__(
        self,
        session_factory: sessionmaker,
        quota_bytes: int | None = None,
        retry_attempts: int = 3,
    ):
        self._session_factory = session_factory
        self.quota_bytes = quota_bytes
        self.retry_attempts = max(1, retry_attempts)

    def _session(self) -> Session:
        return self._session_factory()

    def get_raw(self, key: str) -> str | None:
        with self._session() as db:
            row = db.get(KVEntry, key)
            return row.value if row is not None else None

    def read(self, key: str, default: Any = None) -> StoredValue:
        """Return parsed value and revision; default (revision None) when the key is absent."""
        with self._session() as db:
            row = db.get(KVEntry, key)
            if row is None:
                return StoredValue(value=default, revision=None)
            return StoredValue(value=loads(key, row.value), revision=row.revision)

    def get(self, key: str, default: Any = None) -> Any:
        return self.read(key, default).value

    def has(self, key: str) -> bool:
        with self._session() as db:
            return db.get(KVEntry, key) is not None

    def set(self, key: str, value: Any, expected_revision: Any = ANY_REVISION) -> int:
        """Serialize and store value; return the new revision. Raises StaleWriteError on CAS mismatch."""
        raw = dumps(value)
        size = len(raw.encode("utf-8"))
        if self.quota_bytes is not None and size > self.quota_bytes:
            logger.warning("Quota exceeded for key=%s size=%s quota=%s", key, size, self.quota_bytes)
            raise StorageQuotaExceeded(key, size, self.quota_bytes)
        with self._session() as db:
            if expected_revision is ANY_REVISION:
                row = db.get(KVEntry, key)
                if row is None:
                    row = KVEntry(key=key, value=raw, revision=1)
                    db.add(row)
                else:
                    row.value = raw
                    row.revision = row.revision + 1
                db.commit()
                return row.revision
            if expected_revision is None:
                db.add(KVEntry(key=key, value=raw, revision=1))
                try:
                    db.commit()
                except IntegrityError:
                    db.rollback()
                    current = db.get(KVEntry, key)
                    raise StaleWriteError(key, None, current.revision if current else None)
                return 1
            res = db.execute(
                update(KVEntry)
                .where(KVEntry.key == key, KVEntry.revision == expected_revision)
                .values(value=raw, revision=expected_revision + 1)
            )
            if res.rowcount == 0:
                db.rollback()
                current = db.get(KVEntry, key)
                raise StaleWriteError(key, expected_revision, current.revision if current else None)
            db.commit()
            return expected_revision + 1

    def remove(self, key: str) -> bool:
        """Delete key; return True if it existed."""
        with self._session() as db:
            res = db.execute(delete(KVEntry).where(KVEntry.key == key))
            db.commit()
            return res.rowcount > 0

    def keys(self, prefix: str = "") -> list[str]:
        with self._session() as db:
            stmt = select(KVEntry.key).order_by(KVEntry.key)
            if prefix:
                stmt = stmt.where(KVEntry.key.startswith(prefix))
            return list(db.scalars(stmt))

    def transact(self, key: str, fn: Callable[[Any], tuple[Any, Any]], default: Any = None) -> Any:
        """
        Read key, call fn(current_value) -> (new_value, result), write new_value under the
        revision that was read. Retries the whole cycle on StaleWriteError. Returns result.
        fn must not mutate state outside the value it returns; it may run more than once.
        """

        @retry(
            retry=retry_if_exception_type(StaleWriteError),
            stop=stop_after_attempt(self.retry_attempts),
            wait=wait_exponential(multiplier=0.01, max=0.2),
            reraise=True,
        )
        def _do():
            current = self.read(key, default)
            new_value, result = fn(current.value)
            if new_value is not SKIP_WRITE:
                try:
                    self.set(key, new_value, expected_revision=current.revision)
                except StaleWriteError:
                    logger.info("Stale write on %s (revision %s); re-reading", key, current.revision)
                    raise
            return result

        return _do()
