"""
Authentication endpoints - username/password with a session cookie.
"""

from fastapi import APIRouter, Depends, HTTPException, Request, status
from app.core.errors import ServiceError
from app.core.session import start_session, end_session, require_user_id
from app.models.base import MessageResponse
from app.models.user import RegisterRequest, LoginRequest, AuthResponse, UserResponse
from app.services.user_service import get_user_service
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Authentication"])


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def register(body: RegisterRequest, request: Request):
    """
    Register a new user and log them in.

    All field validation failures are reported in one message.
    """
    try:
        user_service = get_user_service()
        user = user_service.register(body.username, body.email, body.password)
        start_session(request, user["id"])

        return AuthResponse(
            message="User registered successfully",
            user=UserResponse(**user_service.public_view(user))
        )

    except ServiceError as e:
        raise e.to_http_exception()
    except Exception as e:
        logger.error(f"Registration error: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error registering user. Please try again."
        )


@router.post("/login", response_model=MessageResponse)
async def login(body: LoginRequest, request: Request):
    try:
        user = get_user_service().authenticate(body.username, body.password)
        start_session(request, user["id"])
        logger.info(f"User logged in: {user['id']}")
        return MessageResponse(message="Logged in successfully")

    except ServiceError as e:
        raise e.to_http_exception()
    except Exception as e:
        logger.error(f"Login error: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error logging in"
        )


@router.post("/logout", response_model=MessageResponse)
async def logout(request: Request):
    end_session(request)
    return MessageResponse(message="Logged out successfully")


@router.get("/user", response_model=UserResponse)
async def get_current_user(user_id: str = Depends(require_user_id)):
    """Current session's user, without the password hash."""
    try:
        user_service = get_user_service()
        user = user_service.get_user(user_id)
        if not user:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="User not found"
            )
        return UserResponse(**user_service.public_view(user))

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Failed to get current user: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error fetching user"
        )
