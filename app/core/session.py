"""
Session helpers and FastAPI dependencies for cookie-based authentication.

The session (Starlette SessionMiddleware) only ever holds the user id.
"""

from typing import Optional

from fastapi import HTTPException, Request, status

SESSION_USER_KEY = "user_id"


def start_session(request: Request, user_id: str) -> None:
    request.session.clear()
    request.session[SESSION_USER_KEY] = user_id


def end_session(request: Request) -> None:
    request.session.clear()


def get_optional_user_id(request: Request) -> Optional[str]:
    """Return the logged-in user id, or None for anonymous callers."""
    return request.session.get(SESSION_USER_KEY)


def require_user_id(request: Request) -> str:
    """
    Dependency for endpoints that need a logged-in user.

    Raises:
        HTTPException 401 if the request carries no session.
    """
    user_id = get_optional_user_id(request)
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated"
        )
    return user_id
