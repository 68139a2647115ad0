from __future__ import annotations

from typing import Optional

from fastapi import Depends, Request

from .errors import UnauthenticatedError
from .repositories import Repository, get_repository
from .settings import get_settings


# PUBLIC_INTERFACE
def get_session_dependency():
    """
    Return a FastAPI dependency callable that resolves the session cookie to a user id.

    Behavior:
    - Reads the cookie named by SESSION_COOKIE_NAME (default: session_id).
    - Looks the session up through the repository's AuthRepository side.
    - Raises UnauthenticatedError (401) if the cookie is missing or unknown.

    Usage:
        from .auth import get_session_dependency
        current_user = get_session_dependency()
        @router.get("/todo-list/search")
        def search(user_id: str = Depends(current_user)) ...
    """
    cookie_name = get_settings().session_cookie_name

    def _resolve(request: Request, repo: Repository = Depends(get_repository)) -> str:
        """
        Resolve the caller's user id.

        Raises:
            UnauthenticatedError if there is no session or it is not known.
        """
        session_id: Optional[str] = request.cookies.get(cookie_name)
        if not session_id:
            raise UnauthenticatedError()

        user_id = repo.get_user_id(session_id)
        if user_id is None:
            raise UnauthenticatedError()
        return user_id

    return _resolve


current_user_id = get_session_dependency()
