"""
Notes API: browse/filter, timeline feed, own notes, multipart upload (file embedded as data URI),
two-step draft upload, edit, delete. Only the owner or an admin may change a note.
"""
import logging
from typing import Literal

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile, status

from uninotes.api.deps import can_modify_note, get_current_user, get_state, raise_for_result
from uninotes.errors import ValidationFailed
from uninotes.schemas.note import NoteFilters, NoteForm, NoteListResponse
from uninotes.services.uploads import (
    UploadedFile,
    build_edit_fields,
    build_note,
    build_pending_note,
    ensure_within_quota,
    file_fields,
    validate_file,
    validate_note_form,
)
from uninotes.state import AppState

router = APIRouter(prefix="/notes", tags=["notes"])
logger = logging.getLogger(__name__)


def _read_upload(file: UploadFile | None) -> UploadedFile | None:
    if file is None or not (file.filename or "").strip():
        return None
    return UploadedFile(
        filename=file.filename,
        content_type=(file.content_type or "").lower(),
        content=file.file.read(),
    )


def _form(semester: str, course_code: str, course_title: str, note_type: str, title: str, description: str) -> NoteForm:
    if note_type not in ("PDF", "IMG"):
        raise ValidationFailed("Type must be PDF or IMG", field="type")
    return NoteForm(
        semester=semester,
        course_code=course_code,
        course_title=course_title,
        type=note_type,
        title=title,
        description=description,
    )


def _check_quota(state: AppState, record, note_id: str | None = None) -> None:
    ensure_within_quota(state.notes.projected_size(record, note_id), state.store.quota_bytes)


def _owned_note(state: AppState, note_id: str, user: dict) -> dict:
    note = state.notes.get_by_id(note_id)
    if note is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Note not found")
    if not can_modify_note(user, note):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Only the uploader or an admin can change this note")
    return note


@router.get("", response_model=NoteListResponse)
def list_notes(
    faculty: str | None = None,
    prodi: str | None = None,
    semester: str | None = None,
    type: Literal["PDF", "IMG", "ALL"] | None = None,
    q: str | None = Query(None, description="Search title, description, course title or course code"),
    state: AppState = Depends(get_state),
):
    """All notes matching every supplied filter, in storage order."""
    filters = NoteFilters(faculty=faculty, prodi=prodi, semester=semester, type=type, search_query=q)
    items = state.notes.get_filtered(filters)
    return NoteListResponse(items=items, total=len(items))


@router.get("/timeline", response_model=NoteListResponse)
def timeline(state: AppState = Depends(get_state)):
    """Feed of notes with a file attached, newest first. Drafts and broken records are left out."""
    items = state.notes.get_timeline()
    return NoteListResponse(items=items, total=len(items))


@router.get("/mine", response_model=NoteListResponse)
def my_notes(current_user: dict = Depends(get_current_user), state: AppState = Depends(get_state)):
    items = state.notes.get_by_user(current_user["email"])
    return NoteListResponse(items=items, total=len(items))


@router.get("/{note_id}")
def get_note(note_id: str, state: AppState = Depends(get_state)):
    note = state.notes.get_by_id(note_id)
    if note is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Note not found")
    return note


@router.post("", status_code=status.HTTP_201_CREATED)
def upload_note(
    semester: str = Form(""),
    course_code: str = Form("", alias="courseCode"),
    course_title: str = Form("", alias="courseTitle"),
    note_type: str = Form("PDF", alias="type"),
    title: str = Form(""),
    description: str = Form(""),
    file: UploadFile | None = File(None),
    current_user: dict = Depends(get_current_user),
    state: AppState = Depends(get_state),
):
    """Upload a PDF (application/pdf) or image (jpeg/png/gif), max 10 MB."""
    form = _form(semester, course_code, course_title, note_type, title, description)
    upload = _read_upload(file)
    validate_note_form(form, upload, editing=False, max_bytes=state.settings.max_upload_bytes)
    now = state.clock()
    note = build_note(form, upload, current_user, state.notes.new_id(now), now)
    _check_quota(state, note)
    result = state.notes.create(note)
    return result.data


@router.post("/drafts", status_code=status.HTTP_201_CREATED)
def create_draft(
    form: NoteForm,
    current_user: dict = Depends(get_current_user),
    state: AppState = Depends(get_state),
):
    """Step one of a two-step upload: store metadata as a pending note. Send the file with PUT /notes/{id}/file."""
    validate_note_form(form, None, editing=True, max_bytes=state.settings.max_upload_bytes)
    now = state.clock()
    note = build_pending_note(form, current_user, state.notes.new_id(now), now)
    _check_quota(state, note)
    return state.notes.create(note).data


@router.put("/{note_id}/file")
def attach_file(
    note_id: str,
    file: UploadFile = File(...),
    current_user: dict = Depends(get_current_user),
    state: AppState = Depends(get_state),
):
    """Step two: attach the file to a pending (or existing) note."""
    note = _owned_note(state, note_id, current_user)
    upload = _read_upload(file)
    if upload is None:
        raise ValidationFailed("Upload a file first", field="file")
    validate_file(note.get("type") or "PDF", upload, state.settings.max_upload_bytes)
    fields = file_fields(upload)
    _check_quota(state, fields, note_id)
    result = raise_for_result(state.notes.update(note_id, fields))
    return result.data


@router.patch("/{note_id}")
def edit_note(
    note_id: str,
    semester: str = Form(""),
    course_code: str = Form("", alias="courseCode"),
    course_title: str = Form("", alias="courseTitle"),
    note_type: str = Form("PDF", alias="type"),
    title: str = Form(""),
    description: str = Form(""),
    file: UploadFile | None = File(None),
    current_user: dict = Depends(get_current_user),
    state: AppState = Depends(get_state),
):
    """Replace course/type/title/description and optionally the file. id and createdAt are kept."""
    _owned_note(state, note_id, current_user)
    form = _form(semester, course_code, course_title, note_type, title, description)
    upload = _read_upload(file)
    validate_note_form(form, upload, editing=True, max_bytes=state.settings.max_upload_bytes)
    fields = build_edit_fields(form, upload)
    _check_quota(state, fields, note_id)
    result = raise_for_result(state.notes.update(note_id, fields))
    return result.data


@router.delete("/{note_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_note(
    note_id: str,
    current_user: dict = Depends(get_current_user),
    state: AppState = Depends(get_state),
):
    _owned_note(state, note_id, current_user)
    raise_for_result(state.notes.delete(note_id))
