"""
User repository: mapping email -> user record under one key, plus the super admin
bootstrap. promote/demote write to the admin action log on success.
"""
import logging
from dataclasses import dataclass

from pydantic import BaseModel

from uninotes.repositories.admin_log import AdminActionLog
from uninotes.repositories.base import OperationResult, expect_dict
from uninotes.storage import keys
from uninotes.storage.kv_store import SKIP_WRITE, KeyValueStore

logger = logging.getLogger(__name__)

# Faculty value written by early builds for the admin account; bootstrap replaces it
STALE_ADMIN_FACULTY = "Fakultas Teknik"


@dataclass(frozen=True)
class AdminIdentity:
    email: str
    full_name: str
    faculty: str
    prodi: str

    @classmethod
    def from_settings(cls, settings) -> "AdminIdentity":
        return cls(
            email=settings.admin_email,
            full_name=settings.admin_full_name,
            faculty=settings.admin_faculty,
            prodi=settings.admin_prodi,
        )

    def record(self, base: dict | None = None) -> dict:
        return {
            **(base or {}),
            "fullName": self.full_name,
            "email": self.email,
            "faculty": self.faculty,
            "prodi": self.prodi,
            "role": "admin",
            "isSuperAdmin": True,
        }


class UserRepository:
    def __init__(self, store: KeyValueStore, admin_log: AdminActionLog, admin: AdminIdentity, key: str = keys.USERS):
        self.store = store
        self.admin_log = admin_log
        self.admin = admin
        self.key = key

    def _all(self) -> dict:
        return expect_dict(self.key, self.store.get(self.key))

    def list_users(self) -> list[dict]:
        return list(self._all().values())

    def find_by_email(self, email: str) -> dict | None:
        return self._all().get(email)

    def search(self, query: str) -> list[dict]:
        """Users whose full name or email contains query (case-insensitive)."""
        users = self.list_users()
        q = (query or "").strip().lower()
        if not q:
            return users
        return [
            u for u in users
            if q in (u.get("fullName") or "").lower() or q in (u.get("email") or "").lower()
        ]

    def upsert(self, email: str, record: dict | BaseModel) -> dict:
        data = record.model_dump(by_alias=True, exclude_none=True) if isinstance(record, BaseModel) else dict(record)

        def _put(current):
            users = expect_dict(self.key, current)
            users[email] = data
            return users, data

        return self.store.transact(self.key, _put)

    def ensure_admin_bootstrap(self) -> str:
        """
        Make sure the super admin exists. Returns "created", "upgraded" or "unchanged".
        Idempotent: a second call is always "unchanged".
        """
        admin = self.admin

        def _ensure(current):
            users = expect_dict(self.key, current)
            existing = users.get(admin.email)
            if not isinstance(existing, dict):
                users[admin.email] = admin.record()
                return users, "created"
            if (
                not existing.get("isSuperAdmin")
                or existing.get("faculty") == STALE_ADMIN_FACULTY
                or existing.get("role") != "admin"
            ):
                users[admin.email] = admin.record(existing)
                return users, "upgraded"
            return SKIP_WRITE, "unchanged"

        outcome = self.store.transact(self.key, _ensure)
        if outcome == "created":
            logger.info("Super admin account created: %s", admin.email)
        elif outcome == "upgraded":
            logger.info("Super admin account upgraded: %s", admin.email)
        return outcome

    def _set_role(self, email: str, role: str) -> OperationResult:
        def _flip(current):
            users = expect_dict(self.key, current)
            rec = users.get(email)
            if not isinstance(rec, dict):
                return SKIP_WRITE, OperationResult.not_found("User not found")
            if role == "user" and rec.get("isSuperAdmin"):
                return SKIP_WRITE, OperationResult.protected("Super admin cannot be demoted")
            users[email] = {**rec, "role": role}
            return users, OperationResult.ok(f"Role set to {role}", data=users[email])

        return self.store.transact(self.key, _flip)

    def promote(self, email: str, actor: str | None = None) -> OperationResult:
        result = self._set_role(email, "admin")
        if result.success:
            self.admin_log.record(actor or self.admin.email, "promote_user", email)
        return result

    def demote(self, email: str, actor: str | None = None) -> OperationResult:
        """No-op (PROTECTED result, nothing logged) when the target is the super admin."""
        result = self._set_role(email, "user")
        if result.success:
            self.admin_log.record(actor or self.admin.email, "demote_admin", email)
        return result
