"""
Shared dependencies: the AppState built at startup, the session user, admin guard,
and mapping of repository results to HTTP errors.
"""
import logging

from fastapi import Depends, HTTPException, Request, status

from uninotes.repositories import ErrorKind, OperationResult
from uninotes.state import AppState

logger = logging.getLogger(__name__)


def get_state(request: Request) -> AppState:
    state = getattr(request.app.state, "uninotes", None)
    if state is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Application not initialized")
    return state


def get_current_user(state: AppState = Depends(get_state)) -> dict:
    """Require a signed-in session; return the user record or 401."""
    if state.current_user is None:
        logger.debug("No session user")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not signed in. POST /session first.")
    return state.current_user


def require_admin(current_user: dict = Depends(get_current_user)) -> dict:
    if current_user.get("role") != "admin":
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin role required")
    return current_user


def can_modify_note(user: dict, note: dict) -> bool:
    return user.get("role") == "admin" or note.get("uploadedBy") == user.get("email")


def raise_for_result(result: OperationResult) -> OperationResult:
    if result.success:
        return result
    if result.error == ErrorKind.NOT_FOUND:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=result.message)
    if result.error == ErrorKind.PROTECTED:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=result.message)
    raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=result.message)
