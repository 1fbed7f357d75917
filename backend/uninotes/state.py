"""
Application state: built once at startup, owns the store, the repositories and the
session user. bootstrap() must run before anything reads data: migrations, then the
super admin, then session restore.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable

from sqlalchemy.engine import Engine

from uninotes.config import Settings
from uninotes.database import init_db, make_engine, make_session_factory
from uninotes.errors import ValidationFailed
from uninotes.repositories import AdminActionLog, AdminIdentity, NotesRepository, UserRepository
from uninotes.schemas.user import ProfileUpdate, RegisterRequest, UserRecord
from uninotes.services.admin import AdminService
from uninotes.storage import keys
from uninotes.storage.kv_store import KeyValueStore
from uninotes.storage.migrations import migrate
from uninotes.timeutil import utc_now

logger = logging.getLogger(__name__)


@dataclass
class BootstrapReport:
    migrations_applied: list[int] = field(default_factory=list)
    admin_status: str = "unchanged"
    session_restored: bool = False


class AppState:
    def __init__(self, store: KeyValueStore, settings: Settings, clock: Callable[[], datetime] = utc_now):
        self.store = store
        self.settings = settings
        self.clock = clock
        self.admin_identity = AdminIdentity.from_settings(settings)
        self.notes = NotesRepository(store)
        self.admin_log = AdminActionLog(store, clock=clock)
        self.users = UserRepository(store, self.admin_log, self.admin_identity)
        self.admin = AdminService(
            self.notes,
            self.users,
            self.admin_log,
            clock=clock,
            pending_ttl=timedelta(hours=settings.pending_upload_ttl_hours),
        )
        self.current_user: dict | None = None
        self.bootstrapped = False

    @classmethod
    def from_settings(cls, settings: Settings, engine: Engine | None = None, clock: Callable[[], datetime] = utc_now) -> "AppState":
        engine = engine if engine is not None else make_engine(settings.database_url)
        init_db(engine)
        store = KeyValueStore(
            make_session_factory(engine),
            quota_bytes=settings.storage_quota_bytes,
            retry_attempts=settings.write_retry_attempts,
        )
        return cls(store, settings, clock=clock)

    def bootstrap(self) -> BootstrapReport:
        report = BootstrapReport()
        report.migrations_applied = migrate(self.store, now=self.clock())
        report.admin_status = self.users.ensure_admin_bootstrap()
        report.session_restored = self.restore_session()
        self.bootstrapped = True
        logger.info(
            "Bootstrap done: migrations=%s admin=%s session_restored=%s",
            report.migrations_applied, report.admin_status, report.session_restored,
        )
        return report

    def restore_session(self) -> bool:
        """Reload the session user from the users mapping so role changes since last run apply."""
        saved = self.store.get(keys.SESSION_USER)
        if not isinstance(saved, dict) or not saved.get("email"):
            self.current_user = None
            return False
        fresh = self.users.find_by_email(saved["email"])
        if fresh is None:
            logger.info("Saved session for %s has no user record; clearing", saved.get("email"))
            self.store.remove(keys.SESSION_USER)
            self.current_user = None
            return False
        self._set_session(fresh)
        return True

    def _set_session(self, user: dict) -> None:
        self.current_user = user
        self.store.set(keys.SESSION_USER, user)

    def register(self, data: RegisterRequest) -> dict:
        email = str(data.email)
        if self.users.find_by_email(email) is not None:
            raise ValidationFailed("Email already registered", field="email")
        record = UserRecord(
            full_name=data.full_name,
            email=email,
            faculty=data.faculty,
            prodi=data.prodi,
            role="user",
        )
        user = self.users.upsert(email, record)
        self._set_session(user)
        logger.info("Registered %s (%s / %s)", email, data.faculty, data.prodi)
        return user

    def login(self, email: str) -> dict:
        user = self.users.find_by_email(email)
        if user is None:
            raise ValidationFailed("No account registered for this email", field="email")
        if not user.get("role"):
            user = self.users.upsert(email, {**user, "role": "user"})
        self._set_session(user)
        return user

    def logout(self) -> None:
        self.store.remove(keys.SESSION_USER)
        self.current_user = None

    def update_profile(self, changes: ProfileUpdate) -> dict:
        """Apply profile edits to the session user and the users mapping. Existing notes keep their copied values."""
        if self.current_user is None:
            raise ValidationFailed("Not signed in")
        patch = changes.model_dump(by_alias=True, exclude_none=True)
        if "fullName" in patch and len(patch["fullName"].strip()) < 3:
            raise ValidationFailed("Full name must be at least 3 characters", field="fullName")
        email = self.current_user["email"]
        base = self.users.find_by_email(email) or self.current_user
        # role and super admin flag are not profile fields
        updated = {**base, **patch, "email": email, "role": base.get("role", "user")}
        updated = self.users.upsert(email, updated)
        self._set_session(updated)
        return updated
