"""
Versioned schema migrations for the key-value documents.

The applied version lives under keys.SCHEMA_VERSION (absent = 0). migrate() runs every
step above it in order and records the new version after each step, so an interrupted
run resumes where it stopped. Each step is idempotent on its own.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable

from uninotes.storage import keys
from uninotes.storage.kv_store import SKIP_WRITE, KeyValueStore
from uninotes.timeutil import iso_timestamp, utc_now

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Migration:
    version: int
    name: str
    apply: Callable[[KeyValueStore, datetime], None]


def _as_list(value) -> list:
    return list(value) if isinstance(value, list) else []


def merge_legacy_post_keys(store: KeyValueStore, now: datetime) -> None:
    """Fold the two pre-v1 note lists into POSTS (skipping ids already there), then drop them."""
    legacy_keys = (keys.LEGACY_UPLOADED_NOTES, keys.LEGACY_USER_UPLOADS)
    legacy: list[dict] = []
    for k in legacy_keys:
        if store.has(k):
            legacy.extend(n for n in _as_list(store.get(k)) if isinstance(n, dict))
    if not legacy:
        for k in legacy_keys:
            store.remove(k)
        return

    def _merge(current):
        notes = _as_list(current)
        seen = {n.get("id") for n in notes if isinstance(n, dict)}
        added = 0
        for n in legacy:
            nid = n.get("id")
            if nid is not None and nid in seen:
                continue
            notes.append(n)
            seen.add(nid)
            added += 1
        return notes, added

    added = store.transact(keys.POSTS, _merge)
    for k in legacy_keys:
        store.remove(k)
    logger.info("Migrated %s legacy note(s) into %s", added, keys.POSTS)


def _normalize_note(note: dict, now_iso: str) -> dict:
    out = dict(note)
    created = out.get("createdAt") or out.get("uploadDate") or now_iso
    out["createdAt"] = created
    out["uploadDate"] = out.get("uploadDate") or created
    kind = out.get("fileType") or out.get("type") or "PDF"
    out["fileType"] = kind
    out["type"] = out.get("type") or kind
    out["fileData"] = out.get("fileData") or None
    out["fileName"] = out.get("fileName") or "unknown"
    out["fileSize"] = out.get("fileSize") or "N/A"
    for field in ("author", "uploadedBy", "faculty", "prodi"):
        out[field] = out.get(field) or "Unknown"
    for field in ("title", "description", "courseCode", "courseTitle", "semester"):
        if out.get(field) is None:
            out[field] = ""
    if out.get("uploadStatus") not in ("complete", "pending"):
        # Records from before upload tracking had no pending state
        out["uploadStatus"] = "complete"
    return out


def normalize_note_records(store: KeyValueStore, now: datetime) -> None:
    """Fill missing note fields with the fallbacks the admin view has always applied."""
    now_iso = iso_timestamp(now)

    def _normalize(current):
        if current is None:
            return SKIP_WRITE, 0
        notes = [_normalize_note(n, now_iso) for n in _as_list(current) if isinstance(n, dict)]
        return notes, len(notes)

    count = store.transact(keys.POSTS, _normalize)
    logger.info("Normalized %s note record(s)", count)


def normalize_user_records(store: KeyValueStore, now: datetime) -> None:
    """Every user gets a role (default user) and a boolean isSuperAdmin."""

    def _normalize(current):
        if not isinstance(current, dict):
            return SKIP_WRITE, 0
        users = {}
        for email, rec in current.items():
            if not isinstance(rec, dict):
                continue
            rec = dict(rec)
            rec.setdefault("email", email)
            if rec.get("role") not in ("user", "admin"):
                rec["role"] = "user"
            rec["isSuperAdmin"] = bool(rec.get("isSuperAdmin", False))
            users[email] = rec
        return users, len(users)

    count = store.transact(keys.USERS, _normalize)
    logger.info("Normalized %s user record(s)", count)


MIGRATIONS: tuple[Migration, ...] = (
    Migration(1, "merge_legacy_post_keys", merge_legacy_post_keys),
    Migration(2, "normalize_note_records", normalize_note_records),
    Migration(3, "normalize_user_records", normalize_user_records),
)
CURRENT_VERSION = MIGRATIONS[-1].version


def get_schema_version(store: KeyValueStore) -> int:
    v = store.get(keys.SCHEMA_VERSION, 0)
    return v if isinstance(v, int) else 0


def migrate(store: KeyValueStore, now: datetime | None = None) -> list[int]:
    """Apply pending migrations in order; return the versions applied (empty when up to date)."""
    now = now or utc_now()
    current = get_schema_version(store)
    applied: list[int] = []
    for m in MIGRATIONS:
        if m.version <= current:
            continue
        logger.info("Applying migration %s (%s)", m.version, m.name)
        m.apply(store, now)
        store.set(keys.SCHEMA_VERSION, m.version)
        applied.append(m.version)
    if applied:
        logger.info("Schema at version %s", CURRENT_VERSION)
    return applied
