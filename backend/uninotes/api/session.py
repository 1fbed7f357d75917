"""
Session routes: sign in by registered email, read current session, sign out.
"""
from fastapi import APIRouter, Depends, status

from uninotes.api.deps import get_current_user, get_state
from uninotes.schemas.user import LoginRequest
from uninotes.state import AppState

router = APIRouter(prefix="/session", tags=["session"])


@router.post("")
def login(data: LoginRequest, state: AppState = Depends(get_state)):
    """Start a session for an existing account."""
    return state.login(str(data.email))


@router.get("")
def current_session(current_user: dict = Depends(get_current_user)):
    return current_user


@router.delete("", status_code=status.HTTP_204_NO_CONTENT)
def logout(state: AppState = Depends(get_state)):
    state.logout()
