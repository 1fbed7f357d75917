"""
FastAPI application entrypoint.
Run with: uvicorn uninotes.main:app --reload --port 8000

Routes are mounted at root:
  - Session: POST /session, GET /session, DELETE /session
  - Users:   POST /users, PATCH /users/me
  - Notes:   GET /notes, GET /notes/timeline, GET /notes/mine, GET /notes/{id}, POST /notes, POST /notes/drafts,
             PUT /notes/{id}/file, PATCH /notes/{id}, DELETE /notes/{id}
  - Admin:   GET /admin/stats, GET /admin/posts, DELETE /admin/posts[/{id}], POST /admin/posts/cleanup,
             GET /admin/users, POST /admin/users/{email}/promote|demote, GET /admin/logs

Startup builds one AppState (store + repositories + session) and bootstraps it
before the first request: migrations, super admin, session restore.

There is a single session per process (the stored current-user key), not one per
client: POST /session switches the signed-in user for every caller of this server.
This serves one browser/user at a time and is not a multi-user auth layer.
"""
import logging

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from uninotes import __version__
from uninotes.api.admin import router as admin_router
from uninotes.api.notes import router as notes_router
from uninotes.api.session import router as session_router
from uninotes.api.users import router as users_router
from uninotes.config import settings
from uninotes.errors import MalformedStoredData, StaleWriteError, StorageQuotaExceeded, ValidationFailed
from uninotes.state import AppState

logger = logging.getLogger(__name__)

app = FastAPI(
    title="UniNotes API",
    description="Course notes sharing: upload, browse and moderate study notes.",
    version=__version__,
)

_origins = [o.strip() for o in settings.cors_origins.split(",") if o.strip()]
app.add_middleware(
    CORSMiddleware,
    allow_origins=_origins if _origins else ["http://localhost:5173"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(session_router)
app.include_router(users_router)
app.include_router(notes_router)
app.include_router(admin_router)


@app.exception_handler(ValidationFailed)
def _validation_failed(request: Request, exc: ValidationFailed):
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"detail": exc.message, "field": exc.field})


@app.exception_handler(MalformedStoredData)
def _malformed(request: Request, exc: MalformedStoredData):
    logger.error("Malformed stored data under %s: %s", exc.key, exc.reason)
    detail = "Stored data is corrupted. Check server logs for details."
    if settings.debug:
        detail = str(exc)
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content={"detail": detail})


@app.exception_handler(StorageQuotaExceeded)
def _quota(request: Request, exc: StorageQuotaExceeded):
    logger.warning("Storage quota exceeded: %s", exc)
    return JSONResponse(
        status_code=status.HTTP_507_INSUFFICIENT_STORAGE,
        content={"detail": "Storage is full. Delete some notes and try again."},
    )


@app.exception_handler(StaleWriteError)
def _stale(request: Request, exc: StaleWriteError):
    logger.warning("Gave up after repeated concurrent writes: %s", exc)
    return JSONResponse(status_code=status.HTTP_409_CONFLICT, content={"detail": "Data changed concurrently; retry."})


@app.on_event("startup")
def startup():
    """Build and bootstrap AppState unless one was installed already (tests do this)."""
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    _log = logging.getLogger("uninotes.main")
    if settings.is_production and settings.admin_email == "admin@uninotes.com":
        _log.warning("Production run with the default super admin email. Set ADMIN_EMAIL in env or .env.")
    state = getattr(app.state, "uninotes", None)
    if state is None:
        state = AppState.from_settings(settings)
        app.state.uninotes = state
    if not state.bootstrapped:
        state.bootstrap()


@app.get("/health")
def health():
    """Health check (JSON)."""
    return {"status": "ok", "message": "UniNotes API"}
