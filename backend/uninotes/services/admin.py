"""
Admin moderation: post deletion, clear-all, corrupted-post cleanup and role changes,
each recorded in the admin action log; plus the numbers behind the dashboard.
"""
import logging
from collections import Counter
from datetime import datetime, timedelta
from typing import Callable

from uninotes.repositories import (
    AdminActionLog,
    CleanupReport,
    NotesRepository,
    OperationResult,
    UserRepository,
)
from uninotes.schemas.admin import CountItem, DashboardStats
from uninotes.timeutil import parse_timestamp, utc_now

logger = logging.getLogger(__name__)

RECENT_LOG_COUNT = 5
TREND_DAYS = 7


class AdminService:
    def __init__(
        self,
        notes: NotesRepository,
        users: UserRepository,
        log: AdminActionLog,
        clock: Callable[[], datetime] = utc_now,
        pending_ttl: timedelta = timedelta(hours=24),
    ):
        self.notes = notes
        self.users = users
        self.log = log
        self.clock = clock
        self.pending_ttl = pending_ttl

    def load_posts(self) -> list[dict]:
        """Posts for the moderation view. Runs the (unlogged) automatic cleanup first."""
        report = self.notes.cleanup_corrupted(now=self.clock(), pending_ttl=self.pending_ttl)
        if report.removed_count:
            logger.info("Auto-cleanup removed %s post(s) without file data", report.removed_count)
        return self.notes.get_all()

    def search_posts(self, query: str = "", faculty: str = "") -> list[dict]:
        """Moderation search: title, course code or author substring; exact faculty."""
        q = (query or "").strip().lower()
        out = []
        for p in self.notes.get_all():
            if faculty and p.get("faculty") != faculty:
                continue
            if q and not any(q in (p.get(f) or "").lower() for f in ("title", "courseCode", "author")):
                continue
            out.append(p)
        return out

    def delete_post(self, post_id: str, admin_email: str) -> OperationResult:
        result = self.notes.delete(post_id)
        if result.success:
            self.log.record(admin_email, "delete_post", post_id)
        return result

    def clear_all_posts(self, admin_email: str) -> int:
        removed = self.notes.clear()
        self.log.record(admin_email, "clear_all_posts", "all")
        logger.warning("All posts cleared by %s (%s removed)", admin_email, removed)
        return removed

    def cleanup_corrupted_posts(self, admin_email: str) -> CleanupReport:
        report = self.notes.cleanup_corrupted(now=self.clock(), pending_ttl=self.pending_ttl)
        self.log.record(admin_email, "cleanup_corrupted_posts", f"removed_{report.removed_count}")
        return report

    def promote(self, email: str, admin_email: str) -> OperationResult:
        return self.users.promote(email, actor=admin_email)

    def demote(self, email: str, admin_email: str) -> OperationResult:
        return self.users.demote(email, actor=admin_email)

    def dashboard_stats(self) -> DashboardStats:
        posts = self.notes.get_all()
        users = self.users.list_users()
        now = self.clock()

        by_faculty = Counter(p.get("faculty") or "Unknown" for p in posts)
        by_type = Counter(p.get("fileType") or p.get("type") or "Unknown" for p in posts)

        per_day = Counter()
        for p in posts:
            created = parse_timestamp(p.get("createdAt") or p.get("uploadDate"))
            if created is not None:
                per_day[created.date()] += 1
        today = now.date()
        trend = []
        for i in range(TREND_DAYS - 1, -1, -1):
            day = today - timedelta(days=i)
            trend.append(CountItem(name=day.isoformat(), count=per_day.get(day, 0)))

        return DashboardStats(
            total_posts=len(posts),
            total_users=len(users),
            total_admins=sum(1 for u in users if u.get("role") == "admin"),
            total_regular_users=sum(1 for u in users if u.get("role") == "user"),
            posts_by_faculty=[CountItem(name=k, count=v) for k, v in by_faculty.items()],
            posts_by_file_type=[CountItem(name=k, count=v) for k, v in by_type.items()],
            weekly_trend=trend,
            recent_logs=self.log.recent(RECENT_LOG_COUNT),
        )
