"""Admin moderation: cleanup scenario, logging of each action, dashboard numbers."""
from datetime import timedelta

import pytest
from conftest import make_note

from uninotes.repositories import ErrorKind


@pytest.fixture
def admin(state):
    state.bootstrap()
    return state.admin


def test_cleanup_keeps_only_posts_with_file_data(admin, state):
    state.notes.create(make_note("1", "a@x.com"))
    state.notes.create(make_note("2", "b@x.com", fileData=None))

    report = admin.cleanup_corrupted_posts("admin@uninotes.com")

    assert report.removed_count == 1
    assert [n["id"] for n in state.notes.get_all()] == ["1"]
    assert [q["id"] for q in state.notes.quarantined()] == ["2"]
    last = state.admin_log.list_entries()[-1]
    assert last["actionType"] == "cleanup_corrupted_posts"
    assert last["targetId"] == "removed_1"


def test_manual_cleanup_logged_even_when_nothing_removed(admin, state):
    state.notes.create(make_note("1"))
    assert admin.cleanup_corrupted_posts("admin@uninotes.com").removed_count == 0
    assert state.admin_log.list_entries()[-1]["targetId"] == "removed_0"


def test_pending_upload_survives_until_ttl(admin, state, clock):
    state.notes.create(make_note("p", fileData=None, uploadStatus="pending"))
    assert [n["id"] for n in admin.load_posts()] == ["p"]

    clock.now = clock.now + timedelta(hours=25)
    assert admin.load_posts() == []
    assert state.notes.quarantined()[0]["quarantineReason"] == "abandoned_upload"


def test_load_posts_auto_cleanup_is_not_logged(admin, state):
    state.notes.create(make_note("2", fileData=None))
    admin.load_posts()
    assert state.admin_log.list_entries() == []


def test_delete_post_logs_only_on_success(admin, state):
    state.notes.create(make_note("1"))
    assert admin.delete_post("1", "admin@uninotes.com").success
    assert admin.delete_post("1", "admin@uninotes.com").error == ErrorKind.NOT_FOUND
    entries = state.admin_log.list_entries()
    assert [(e["actionType"], e["targetId"]) for e in entries] == [("delete_post", "1")]


def test_clear_all_posts(admin, state):
    state.notes.create(make_note("1"))
    state.notes.create(make_note("2"))
    assert admin.clear_all_posts("admin@uninotes.com") == 2
    assert state.notes.get_all() == []
    assert state.admin_log.list_entries()[-1]["targetId"] == "all"


def test_search_posts_matches_title_course_code_author(admin, state):
    state.notes.create(make_note("1", title="Kalkulus", author="Alice"))
    state.notes.create(make_note("2", courseCode="EK201", author="Budi", faculty="Economics"))
    assert [p["id"] for p in admin.search_posts("kalk")] == ["1"]
    assert [p["id"] for p in admin.search_posts("ek2")] == ["2"]
    assert [p["id"] for p in admin.search_posts("budi")] == ["2"]
    assert [p["id"] for p in admin.search_posts("", faculty="Engineering")] == ["1"]


def test_dashboard_stats(admin, state):
    state.users.upsert("alice@x.com", {"fullName": "Alice", "email": "alice@x.com", "faculty": "Engineering", "prodi": "CS", "role": "user"})
    state.notes.create(make_note("1", createdAt="2025-03-10T08:00:00.000Z"))
    state.notes.create(make_note("2", createdAt="2025-03-09T08:00:00.000Z", type="IMG", fileType="IMG"))
    state.notes.create(make_note("3", createdAt="2025-02-01T08:00:00.000Z", faculty="Economics"))
    admin.delete_post("3", "admin@uninotes.com")

    stats = admin.dashboard_stats()

    assert stats.total_posts == 2
    assert stats.total_users == 2
    assert stats.total_admins == 1
    assert stats.total_regular_users == 1
    assert {c.name: c.count for c in stats.posts_by_file_type} == {"PDF": 1, "IMG": 1}
    assert {c.name: c.count for c in stats.posts_by_faculty} == {"Engineering": 2}
    assert len(stats.weekly_trend) == 7
    assert stats.weekly_trend[-1].name == "2025-03-10"
    assert [c.count for c in stats.weekly_trend[-2:]] == [1, 1]
    assert [e["targetId"] for e in stats.recent_logs] == ["3"]
