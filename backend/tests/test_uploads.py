"""Upload form checks and note construction."""
import pytest
from conftest import FIXED_NOW

from uninotes.errors import ValidationFailed
from uninotes.schemas.note import NoteForm
from uninotes.services.uploads import (
    UploadedFile,
    build_edit_fields,
    build_note,
    build_pending_note,
    ensure_within_quota,
    format_file_size,
    validate_note_form,
)

MAX = 10 * 1024 * 1024
OWNER = {"fullName": "Alice", "email": "alice@x.com", "faculty": "Engineering", "prodi": "CS", "role": "user"}


def _form(**overrides):
    data = dict(
        semester="1", course_code="IF101", course_title="Algoritma", type="PDF",
        title="Week 1", description="Intro",
    )
    data.update(overrides)
    return NoteForm(**data)


def _pdf(size=10):
    return UploadedFile(filename="w1.pdf", content_type="application/pdf", content=b"%" * size)


@pytest.mark.parametrize(
    "num_bytes,expected",
    [(0, "0 B"), (1023, "1023 B"), (1024, "1.00 KB"), (1536, "1.50 KB"), (1024 * 1024, "1.00 MB"), (MAX, "10.00 MB")],
)
def test_format_file_size(num_bytes, expected):
    assert format_file_size(num_bytes) == expected


def test_valid_pdf_passes():
    validate_note_form(_form(), _pdf(), editing=False, max_bytes=MAX)


def test_file_exactly_at_limit_is_accepted():
    validate_note_form(_form(), _pdf(MAX), editing=False, max_bytes=MAX)


def test_file_over_limit_rejected():
    with pytest.raises(ValidationFailed) as exc:
        validate_note_form(_form(), _pdf(MAX + 1), editing=False, max_bytes=MAX)
    assert exc.value.field == "file"
    assert "10.00 MB" in exc.value.message


@pytest.mark.parametrize(
    "note_type,content_type,ok",
    [
        ("PDF", "application/pdf", True),
        ("PDF", "image/png", False),
        ("IMG", "image/jpeg", True),
        ("IMG", "image/jpg", True),
        ("IMG", "image/gif", True),
        ("IMG", "image/webp", False),
        ("IMG", "application/pdf", False),
    ],
)
def test_mime_type_must_match_note_type(note_type, content_type, ok):
    upload = UploadedFile(filename="f", content_type=content_type, content=b"x")
    if ok:
        validate_note_form(_form(type=note_type), upload, editing=False, max_bytes=MAX)
    else:
        with pytest.raises(ValidationFailed, match=f"Only {note_type} files"):
            validate_note_form(_form(type=note_type), upload, editing=False, max_bytes=MAX)


@pytest.mark.parametrize(
    "overrides,field",
    [
        ({"semester": ""}, "semester"),
        ({"course_code": "  "}, "courseCode"),
        ({"course_title": ""}, "courseTitle"),
        ({"title": ""}, "title"),
        ({"description": None}, "description"),
    ],
)
def test_required_fields(overrides, field):
    with pytest.raises(ValidationFailed) as exc:
        validate_note_form(_form(**overrides), _pdf(), editing=False, max_bytes=MAX)
    assert exc.value.field == field


def test_file_required_on_create_but_not_on_edit():
    with pytest.raises(ValidationFailed) as exc:
        validate_note_form(_form(), None, editing=False, max_bytes=MAX)
    assert exc.value.field == "file"
    validate_note_form(_form(), None, editing=True, max_bytes=MAX)


def test_empty_file_rejected():
    with pytest.raises(ValidationFailed, match="empty"):
        validate_note_form(_form(), _pdf(0), editing=False, max_bytes=MAX)


def test_build_note_copies_owner_profile():
    note = build_note(_form(title="  Week 1 "), _pdf(2048), OWNER, "1741608000000", FIXED_NOW).to_record()
    assert note["id"] == "1741608000000"
    assert note["title"] == "Week 1"
    assert note["faculty"] == "Engineering"
    assert note["prodi"] == "CS"
    assert note["author"] == "Alice"
    assert note["uploadedBy"] == "alice@x.com"
    assert note["fileType"] == note["type"] == "PDF"
    assert note["fileSize"] == "2.00 KB"
    assert note["fileData"].startswith("data:application/pdf;base64,")
    assert note["createdAt"] == note["uploadDate"] == "2025-03-10T12:00:00.000Z"
    assert note["uploadStatus"] == "complete"


def test_build_pending_note_has_no_file():
    note = build_pending_note(_form(), OWNER, "7", FIXED_NOW).to_record()
    assert note["fileData"] is None
    assert note["uploadStatus"] == "pending"


def test_edit_fields_without_new_file_keep_file_fields_out():
    fields = build_edit_fields(_form(title="New"), None)
    assert fields["title"] == "New"
    assert "fileData" not in fields
    assert "id" not in fields
    assert "createdAt" not in fields


def test_edit_fields_with_new_file():
    fields = build_edit_fields(_form(type="IMG"), UploadedFile("p.png", "image/png", b"\x89PNG"))
    assert fields["fileType"] == "IMG"
    assert fields["fileName"] == "p.png"
    assert fields["fileData"].startswith("data:image/png;base64,")


def test_within_quota_passes():
    ensure_within_quota(100, 100)
    ensure_within_quota(10**9, None)


def test_over_quota_is_a_validation_error():
    with pytest.raises(ValidationFailed) as exc:
        ensure_within_quota(5 * 1024 * 1024 + 2048, 5 * 1024 * 1024)
    assert exc.value.field == "file"
    assert "2.00 KB over the limit" in exc.value.message
