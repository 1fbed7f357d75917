"""
Notes repository: CRUD + filter over the note list stored under one key.

Every mutation is a whole-list read-modify-write through KeyValueStore.transact, so a
concurrent writer forces a re-read instead of silently losing an update.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Iterable

from pydantic import BaseModel

from uninotes.repositories.base import OperationResult, expect_list
from uninotes.schemas.note import NoteFilters
from uninotes.storage import keys
from uninotes.storage.kv_store import SKIP_WRITE, KeyValueStore, dumps
from uninotes.timeutil import iso_timestamp, millis_id, parse_timestamp, utc_now

logger = logging.getLogger(__name__)

# Fields matched (case-insensitive substring, any of) by searchQuery
SEARCH_FIELDS = ("title", "description", "courseTitle", "courseCode")
# Fields an edit may never change
IMMUTABLE_FIELDS = ("id",)

REASON_MISSING_FILE = "missing_file_data"
REASON_ABANDONED = "abandoned_upload"
# Sort key for notes with no readable timestamp: oldest possible
_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


@dataclass
class CleanupReport:
    removed_ids: list[str] = field(default_factory=list)
    pending_ids: list[str] = field(default_factory=list)

    @property
    def removed_count(self) -> int:
        return len(self.removed_ids)


def _text(note: dict, name: str) -> str:
    v = note.get(name)
    return v if isinstance(v, str) else ("" if v is None else str(v))


def matches_filters(note: dict, filters: NoteFilters) -> bool:
    if filters.faculty and note.get("faculty") != filters.faculty:
        return False
    if filters.prodi and note.get("prodi") != filters.prodi:
        return False
    if filters.semester and str(note.get("semester", "")) != filters.semester:
        return False
    if filters.type and filters.type != "ALL" and note.get("type") != filters.type:
        return False
    if filters.search_query:
        q = filters.search_query.lower()
        if not any(q in _text(note, f).lower() for f in SEARCH_FIELDS):
            return False
    return True


def filter_notes(notes: Iterable[dict], filters: NoteFilters | None) -> list[dict]:
    if filters is None:
        return list(notes)
    return [n for n in notes if matches_filters(n, filters)]


def corruption_reason(note: dict, now: datetime, pending_ttl: timedelta) -> str | None:
    """Why cleanup should remove this record, or None to keep it."""
    if note.get("fileData"):
        return None
    if note.get("uploadStatus") == "pending":
        started = parse_timestamp(note.get("createdAt") or note.get("uploadDate"))
        if started is not None and now - started <= pending_ttl:
            return None
        return REASON_ABANDONED
    return REASON_MISSING_FILE


def _without_quarantine_fields(record: dict) -> dict:
    return {k: v for k, v in record.items() if k not in ("quarantinedAt", "quarantineReason")}


def _posted_at(note: dict) -> datetime:
    return parse_timestamp(note.get("createdAt") or note.get("uploadDate")) or _EPOCH


class NotesRepository:
    def __init__(self, store: KeyValueStore, key: str = keys.POSTS):
        self.store = store
        self.key = key

    def get_all(self) -> list[dict]:
        """All notes in storage order; [] when the key is absent."""
        return expect_list(self.key, self.store.get(self.key))

    def get_by_id(self, note_id: str) -> dict | None:
        for n in self.get_all():
            if n.get("id") == note_id:
                return n
        return None

    def get_by_user(self, email: str) -> list[dict]:
        return [n for n in self.get_all() if n.get("uploadedBy") == email]

    def get_filtered(self, filters: NoteFilters | dict | None = None) -> list[dict]:
        if isinstance(filters, dict):
            filters = NoteFilters.model_validate(filters)
        return filter_notes(self.get_all(), filters)

    def get_timeline(self) -> list[dict]:
        """Feed: notes that have a file, newest first by createdAt (uploadDate fallback)."""
        posted = [n for n in self.get_all() if n.get("fileData")]
        return sorted(posted, key=_posted_at, reverse=True)

    def projected_size(self, record: dict | BaseModel, note_id: str | None = None) -> int:
        """
        Serialized size in bytes of the note list after appending record, or after
        merging it into note_id when given. Lets callers check the storage quota
        before a write instead of failing in the store.
        """
        data = record.model_dump(by_alias=True) if isinstance(record, BaseModel) else dict(record)
        notes = self.get_all()
        if note_id is None:
            notes.append(data)
        else:
            changes = {k: v for k, v in data.items() if k not in IMMUTABLE_FIELDS}
            for i, n in enumerate(notes):
                if n.get("id") == note_id:
                    notes[i] = {**n, **changes}
                    break
        return len(dumps(notes).encode("utf-8"))

    def new_id(self, now: datetime | None = None) -> str:
        """Timestamp id; suffixed when two notes are created in the same millisecond."""
        base = millis_id(now or utc_now())
        taken = {n.get("id") for n in self.get_all()}
        if base not in taken:
            return base
        i = 1
        while f"{base}-{i}" in taken:
            i += 1
        return f"{base}-{i}"

    def create(self, note: dict | BaseModel) -> OperationResult:
        """Append; no id uniqueness check and no validation (callers validate first)."""
        record = note.model_dump(by_alias=True) if isinstance(note, BaseModel) else dict(note)

        def _append(current):
            notes = expect_list(self.key, current)
            notes.append(record)
            return notes, None

        self.store.transact(self.key, _append)
        logger.info("Note created id=%s by=%s", record.get("id"), record.get("uploadedBy"))
        return OperationResult.ok("Note uploaded", data=record)

    def update(self, note_id: str, fields: dict) -> OperationResult:
        """Shallow-merge fields over the first note with this id. id itself is never changed."""
        changes = {k: v for k, v in fields.items() if k not in IMMUTABLE_FIELDS}

        def _merge(current):
            notes = expect_list(self.key, current)
            for i, n in enumerate(notes):
                if n.get("id") == note_id:
                    notes[i] = {**n, **changes}
                    return notes, notes[i]
            return SKIP_WRITE, None

        updated = self.store.transact(self.key, _merge)
        if updated is None:
            return OperationResult.not_found("Note not found")
        return OperationResult.ok("Note updated", data=updated)

    def delete(self, note_id: str) -> OperationResult:
        def _remove(current):
            notes = expect_list(self.key, current)
            for i, n in enumerate(notes):
                if n.get("id") == note_id:
                    removed = notes.pop(i)
                    return notes, removed
            return SKIP_WRITE, None

        removed = self.store.transact(self.key, _remove)
        if removed is None:
            return OperationResult.not_found("Note not found")
        logger.info("Note deleted id=%s", note_id)
        return OperationResult.ok("Note deleted", data=removed)

    def clear(self) -> int:
        """Remove every note; return how many there were."""

        def _clear(current):
            return [], len(expect_list(self.key, current))

        return self.store.transact(self.key, _clear)

    def quarantined(self) -> list[dict]:
        return expect_list(keys.QUARANTINED_POSTS, self.store.get(keys.QUARANTINED_POSTS))

    def cleanup_corrupted(
        self,
        now: datetime | None = None,
        pending_ttl: timedelta = timedelta(hours=24),
    ) -> CleanupReport:
        """
        Move notes without fileData to the quarantine key. Pending uploads younger than
        pending_ttl are kept; older ones count as abandoned. Quarantine is written before
        the notes are removed so a failed write never loses a record.

        Records are matched by content, not id: ids are not unique, and a valid note
        sharing an id with a corrupt one must stay where it is.
        """
        now = now or utc_now()
        report = CleanupReport()
        corrupt: list[dict] = []
        reasons: list[str] = []
        for n in self.get_all():
            reason = corruption_reason(n, now, pending_ttl)
            if reason:
                corrupt.append(n)
                reasons.append(reason)
            elif n.get("uploadStatus") == "pending" and not n.get("fileData"):
                report.pending_ids.append(str(n.get("id")))
        if not corrupt:
            return report

        stamp = iso_timestamp(now)

        def _quarantine(current):
            held = expect_list(keys.QUARANTINED_POSTS, current)
            already = [_without_quarantine_fields(h) for h in held]
            for n, reason in zip(corrupt, reasons):
                if n not in already:
                    held.append({**n, "quarantinedAt": stamp, "quarantineReason": reason})
            return held, None

        def _split(current):
            # only records quarantined above may leave the list
            todo = list(corrupt)
            kept, removed = [], []
            for n in expect_list(self.key, current):
                if n in todo:
                    todo.remove(n)
                    removed.append(n)
                else:
                    kept.append(n)
            return (kept if removed else SKIP_WRITE), removed

        self.store.transact(keys.QUARANTINED_POSTS, _quarantine)
        removed = self.store.transact(self.key, _split)
        for n in removed:
            logger.warning("Cleanup removed note id=%s title=%r", n.get("id"), n.get("title"))
            report.removed_ids.append(str(n.get("id")))
        if removed:
            logger.info("Cleanup: removed %s note(s), %s remain", len(removed), len(self.get_all()))
        return report
