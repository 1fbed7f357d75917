"""Versioned migrations: legacy key merge, record normalization, idempotence."""
from conftest import FIXED_NOW, make_note

from uninotes.storage import keys
from uninotes.storage.migrations import CURRENT_VERSION, get_schema_version, migrate


def test_fresh_store_migrates_to_current_version(store):
    assert migrate(store, now=FIXED_NOW) == [1, 2, 3]
    assert get_schema_version(store) == CURRENT_VERSION
    assert store.get(keys.POSTS) is None


def test_migrate_twice_is_noop(store):
    store.set(keys.LEGACY_USER_UPLOADS, [make_note("1")])
    migrate(store, now=FIXED_NOW)
    snapshot = store.get(keys.POSTS)
    assert migrate(store, now=FIXED_NOW) == []
    assert store.get(keys.POSTS) == snapshot


def test_legacy_keys_merged_in_order_and_removed(store):
    store.set(keys.LEGACY_UPLOADED_NOTES, [make_note("1"), make_note("2")])
    store.set(keys.LEGACY_USER_UPLOADS, [make_note("3")])
    migrate(store, now=FIXED_NOW)
    assert [n["id"] for n in store.get(keys.POSTS)] == ["1", "2", "3"]
    assert not store.has(keys.LEGACY_UPLOADED_NOTES)
    assert not store.has(keys.LEGACY_USER_UPLOADS)


def test_legacy_merge_skips_ids_already_present(store):
    store.set(keys.POSTS, [make_note("1", title="current")])
    store.set(keys.LEGACY_USER_UPLOADS, [make_note("1", title="old"), make_note("2")])
    migrate(store, now=FIXED_NOW)
    posts = store.get(keys.POSTS)
    assert [n["id"] for n in posts] == ["1", "2"]
    assert posts[0]["title"] == "current"


def test_note_normalization_fills_fallbacks(store):
    store.set(keys.POSTS, [{"id": "9", "title": "bare", "uploadDate": "2024-01-02T00:00:00.000Z", "type": "IMG"}])
    migrate(store, now=FIXED_NOW)
    note = store.get(keys.POSTS)[0]
    assert note["createdAt"] == "2024-01-02T00:00:00.000Z"
    assert note["fileType"] == "IMG"
    assert note["fileName"] == "unknown"
    assert note["fileSize"] == "N/A"
    assert note["author"] == "Unknown"
    assert note["uploadedBy"] == "Unknown"
    assert note["fileData"] is None
    assert note["uploadStatus"] == "complete"


def test_user_normalization_adds_role_and_flag(store):
    store.set(keys.USERS, {"bob@x.com": {"fullName": "Bob", "email": "bob@x.com"}})
    migrate(store, now=FIXED_NOW)
    bob = store.get(keys.USERS)["bob@x.com"]
    assert bob["role"] == "user"
    assert bob["isSuperAdmin"] is False


def test_resumes_from_recorded_version(store):
    store.set(keys.SCHEMA_VERSION, 2)
    store.set(keys.LEGACY_USER_UPLOADS, [make_note("1")])
    assert migrate(store, now=FIXED_NOW) == [3]
    # v1 already recorded as applied, so the legacy key is left alone
    assert store.has(keys.LEGACY_USER_UPLOADS)
