"""
Note schemas. Stored records use camelCase keys; Python code uses snake_case fields
with camelCase aliases (populate_by_name so either spelling is accepted).
"""
from typing import Literal

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel

NoteType = Literal["PDF", "IMG"]
UploadStatus = Literal["complete", "pending"]


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class NoteRecord(_CamelModel):
    """One study-material post as stored under the posts key."""

    id: str
    course_code: str
    course_title: str
    faculty: str
    prodi: str
    semester: str
    type: NoteType
    file_type: NoteType
    title: str
    description: str
    file_name: str
    file_size: str  # human-formatted, e.g. "1.50 MB"
    file_data: str | None = None  # data URI; absent means incomplete or corrupt
    author: str
    uploaded_by: str  # owner email
    created_at: str
    upload_date: str
    upload_status: UploadStatus = "complete"

    def to_record(self) -> dict:
        return self.model_dump(by_alias=True)


class NoteFilters(_CamelModel):
    """Conjunctive filters; None/empty imposes no constraint. type ALL is the same as no type."""

    faculty: str | None = None
    prodi: str | None = None
    semester: str | None = None
    type: Literal["PDF", "IMG", "ALL"] | None = None
    search_query: str | None = None


class NoteForm(_CamelModel):
    """Upload/edit form fields. Checked by services.uploads.validate_note_form."""

    semester: str = ""
    course_code: str = ""
    course_title: str = ""
    type: NoteType = "PDF"
    title: str = ""
    description: str = ""

    @field_validator("semester", "course_code", "course_title", "title", "description", mode="before")
    @classmethod
    def _none_to_empty(cls, v):
        return "" if v is None else v


class NoteListResponse(BaseModel):
    items: list[dict]
    total: int


class CleanupResponse(BaseModel):
    removed_ids: list[str]
    pending_ids: list[str]
    removed_count: int
