"""
Admin log and dashboard schemas.
"""
from typing import Literal

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

ActionType = Literal[
    "promote_user",
    "demote_admin",
    "delete_post",
    "clear_all_posts",
    "cleanup_corrupted_posts",
]


class AdminLogEntry(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    admin_email: str
    action_type: ActionType
    target_id: str
    timestamp: str

    def to_record(self) -> dict:
        return self.model_dump(by_alias=True)


class CountItem(BaseModel):
    name: str
    count: int


class DashboardStats(BaseModel):
    total_posts: int
    total_users: int
    total_admins: int
    total_regular_users: int
    posts_by_faculty: list[CountItem]
    posts_by_file_type: list[CountItem]
    weekly_trend: list[CountItem]  # name = YYYY-MM-DD, oldest first
    recent_logs: list[dict]


class AdminLogListResponse(BaseModel):
    items: list[dict]
    total: int
