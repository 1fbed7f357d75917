"""
Admin API: dashboard stats, post moderation, user role management, action log.
Every route requires an admin session; every mutation is written to the admin log.
"""
from fastapi import APIRouter, Depends, status

from uninotes.api.deps import get_state, raise_for_result, require_admin
from uninotes.schemas.admin import AdminLogListResponse, DashboardStats
from uninotes.schemas.note import CleanupResponse, NoteListResponse
from uninotes.schemas.user import UserListResponse
from uninotes.state import AppState

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/stats", response_model=DashboardStats)
def stats(admin: dict = Depends(require_admin), state: AppState = Depends(get_state)):
    return state.admin.dashboard_stats()


@router.get("/posts", response_model=NoteListResponse)
def list_posts(
    q: str = "",
    faculty: str = "",
    admin: dict = Depends(require_admin),
    state: AppState = Depends(get_state),
):
    """Moderation list. Posts without file data are cleaned up before listing."""
    state.admin.load_posts()
    items = state.admin.search_posts(q, faculty)
    return NoteListResponse(items=items, total=len(items))


@router.delete("/posts/{post_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_post(post_id: str, admin: dict = Depends(require_admin), state: AppState = Depends(get_state)):
    raise_for_result(state.admin.delete_post(post_id, admin["email"]))


@router.delete("/posts")
def clear_posts(admin: dict = Depends(require_admin), state: AppState = Depends(get_state)):
    removed = state.admin.clear_all_posts(admin["email"])
    return {"removed": removed}


@router.post("/posts/cleanup", response_model=CleanupResponse)
def cleanup_posts(admin: dict = Depends(require_admin), state: AppState = Depends(get_state)):
    report = state.admin.cleanup_corrupted_posts(admin["email"])
    return CleanupResponse(
        removed_ids=report.removed_ids,
        pending_ids=report.pending_ids,
        removed_count=report.removed_count,
    )


@router.get("/users", response_model=UserListResponse)
def list_users(q: str = "", admin: dict = Depends(require_admin), state: AppState = Depends(get_state)):
    items = state.users.search(q)
    return UserListResponse(items=items, total=len(items))


@router.post("/users/{email}/promote")
def promote(email: str, admin: dict = Depends(require_admin), state: AppState = Depends(get_state)):
    return raise_for_result(state.admin.promote(email, admin["email"])).data


@router.post("/users/{email}/demote")
def demote(email: str, admin: dict = Depends(require_admin), state: AppState = Depends(get_state)):
    """409 when the target is the super admin."""
    return raise_for_result(state.admin.demote(email, admin["email"])).data


@router.get("/logs", response_model=AdminLogListResponse)
def logs(admin: dict = Depends(require_admin), state: AppState = Depends(get_state)):
    items = state.admin_log.list_entries()
    return AdminLogListResponse(items=items, total=len(items))
