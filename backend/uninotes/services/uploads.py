"""
Upload form handling: file type/size checks, required fields, data URI encoding and
construction of new note records / edit field sets. Raises ValidationFailed with a
user-facing message; nothing here touches storage.
"""
import base64
from dataclasses import dataclass
from datetime import datetime

from uninotes.errors import ValidationFailed
from uninotes.schemas.note import NoteForm, NoteRecord
from uninotes.timeutil import iso_timestamp

ALLOWED_MIME_TYPES: dict[str, tuple[str, ...]] = {
    "PDF": ("application/pdf",),
    "IMG": ("image/jpeg", "image/jpg", "image/png", "image/gif"),
}


@dataclass
class UploadedFile:
    filename: str
    content_type: str
    content: bytes

    @property
    def size(self) -> int:
        return len(self.content)


def format_file_size(num_bytes: int) -> str:
    if num_bytes < 1024:
        return f"{num_bytes} B"
    if num_bytes < 1024 * 1024:
        return f"{num_bytes / 1024:.2f} KB"
    return f"{num_bytes / (1024 * 1024):.2f} MB"


def to_data_uri(content: bytes, content_type: str) -> str:
    return f"data:{content_type};base64,{base64.b64encode(content).decode('ascii')}"


def validate_file(note_type: str, upload: UploadedFile, max_bytes: int) -> None:
    allowed = ALLOWED_MIME_TYPES.get(note_type, ())
    if (upload.content_type or "").lower() not in allowed:
        raise ValidationFailed(f"Only {note_type} files are allowed", field="file")
    if upload.size > max_bytes:
        raise ValidationFailed(f"Maximum file size is {format_file_size(max_bytes)}", field="file")
    if upload.size == 0:
        raise ValidationFailed("Uploaded file is empty", field="file")


def ensure_within_quota(projected_bytes: int, quota_bytes: int | None) -> None:
    """
    The file is stored base64-encoded inside the notes document, so a file under the
    upload limit can still overflow the per-key quota. Reject it here as bad input.
    """
    if quota_bytes is None or projected_bytes <= quota_bytes:
        return
    over = format_file_size(projected_bytes - quota_bytes)
    raise ValidationFailed(
        f"Not enough storage space for this file ({over} over the limit). "
        "Upload a smaller file or ask an admin to remove old notes.",
        field="file",
    )


def validate_note_form(form: NoteForm, upload: UploadedFile | None, editing: bool, max_bytes: int) -> None:
    """Same order of checks as the upload form: semester, course, title, description, file."""
    if not form.semester.strip():
        raise ValidationFailed("Choose a semester first", field="semester")
    if not form.course_code.strip():
        raise ValidationFailed("Choose a course first", field="courseCode")
    if not form.course_title.strip():
        raise ValidationFailed("Course title is required", field="courseTitle")
    if not form.title.strip():
        raise ValidationFailed("Note title is required", field="title")
    if not form.description.strip():
        raise ValidationFailed("Note description is required", field="description")
    if upload is None:
        if not editing:
            raise ValidationFailed("Upload a file first", field="file")
        return
    validate_file(form.type, upload, max_bytes)


def build_note(
    form: NoteForm,
    upload: UploadedFile,
    owner: dict,
    note_id: str,
    now: datetime,
) -> NoteRecord:
    """New note: course/form fields plus faculty/prodi/author copied from the owner's profile."""
    stamp = iso_timestamp(now)
    return NoteRecord(
        id=note_id,
        course_code=form.course_code.strip(),
        course_title=form.course_title.strip(),
        faculty=owner.get("faculty") or "",
        prodi=owner.get("prodi") or "",
        semester=form.semester.strip(),
        type=form.type,
        file_type=form.type,
        title=form.title.strip(),
        description=form.description.strip(),
        file_name=upload.filename,
        file_size=format_file_size(upload.size),
        file_data=to_data_uri(upload.content, upload.content_type),
        author=owner.get("fullName") or "",
        uploaded_by=owner.get("email") or "",
        created_at=stamp,
        upload_date=stamp,
        upload_status="complete",
    )


def build_pending_note(form: NoteForm, owner: dict, note_id: str, now: datetime) -> NoteRecord:
    """Draft for a two-step upload: metadata now, file later via file_fields()."""
    stamp = iso_timestamp(now)
    return NoteRecord(
        id=note_id,
        course_code=form.course_code.strip(),
        course_title=form.course_title.strip(),
        faculty=owner.get("faculty") or "",
        prodi=owner.get("prodi") or "",
        semester=form.semester.strip(),
        type=form.type,
        file_type=form.type,
        title=form.title.strip(),
        description=form.description.strip(),
        file_name="",
        file_size="",
        file_data=None,
        author=owner.get("fullName") or "",
        uploaded_by=owner.get("email") or "",
        created_at=stamp,
        upload_date=stamp,
        upload_status="pending",
    )


def file_fields(upload: UploadedFile) -> dict:
    return {
        "fileName": upload.filename,
        "fileSize": format_file_size(upload.size),
        "fileData": to_data_uri(upload.content, upload.content_type),
        "uploadStatus": "complete",
    }


def build_edit_fields(form: NoteForm, upload: UploadedFile | None) -> dict:
    """Fields replaced on edit; file fields only when a new file was sent."""
    fields = {
        "courseCode": form.course_code.strip(),
        "courseTitle": form.course_title.strip(),
        "semester": form.semester.strip(),
        "type": form.type,
        "fileType": form.type,
        "title": form.title.strip(),
        "description": form.description.strip(),
    }
    if upload is not None:
        fields.update(file_fields(upload))
    return fields
