"""
User routes: register (role user, starts a session) and profile edit.
"""
from fastapi import APIRouter, Depends, status

from uninotes.api.deps import get_current_user, get_state
from uninotes.schemas.user import ProfileUpdate, RegisterRequest
from uninotes.state import AppState

router = APIRouter(prefix="/users", tags=["users"])


@router.post("", status_code=status.HTTP_201_CREATED)
def register(data: RegisterRequest, state: AppState = Depends(get_state)):
    return state.register(data)


@router.patch("/me")
def update_me(
    data: ProfileUpdate,
    current_user: dict = Depends(get_current_user),
    state: AppState = Depends(get_state),
):
    """Edit own profile. Notes already uploaded keep the faculty/prodi they were created with."""
    return state.update_profile(data)
