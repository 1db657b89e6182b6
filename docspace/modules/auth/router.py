"""
Authentication router: register, login, logout and the current user.
"""
from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from docspace.core.config import get_settings
from docspace.core.database import get_db_session
from docspace.core.responses import ApiResponse, ok
from docspace.modules.auth import schemas
from docspace.modules.auth.dependencies import get_current_user
from docspace.modules.auth.models import User
from docspace.modules.auth.service import AuthService

router = APIRouter()
settings = get_settings()


def set_auth_cookie(response: Response, token: str) -> None:
    """Attach the session cookie."""
    response.set_cookie(
        key=settings.auth_cookie_name,
        value=token,
        max_age=settings.access_token_expire_minutes * 60,
        path="/",
        httponly=True,
        secure=settings.auth_cookie_secure,
        samesite="lax",
    )


@router.post(
    "/register",
    response_model=ApiResponse[schemas.UserResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Register a new account",
)
async def register(
    user_data: schemas.UserCreate,
    response: Response,
    db: AsyncSession = Depends(get_db_session),
):
    auth_service = AuthService(db)
    user = await auth_service.create_user(user_data)
    set_auth_cookie(response, auth_service.issue_token(user))
    return ok(schemas.UserResponse.model_validate(user), message="Registration successful")


@router.post(
    "/login",
    response_model=ApiResponse[schemas.UserResponse],
    summary="Log in and receive the session cookie",
)
async def login(
    credentials: schemas.UserLogin,
    response: Response,
    db: AsyncSession = Depends(get_db_session),
):
    auth_service = AuthService(db)
    user = await auth_service.authenticate_user(credentials.email, credentials.password)
    set_auth_cookie(response, auth_service.issue_token(user))
    return ok(schemas.UserResponse.model_validate(user), message="Login successful")


@router.post("/logout", response_model=ApiResponse[None], summary="Clear the session cookie")
async def logout(response: Response):
    response.delete_cookie(key=settings.auth_cookie_name, path="/")
    return ok(message="Logged out")


@router.get("/me", response_model=ApiResponse[schemas.UserResponse], summary="Current user")
async def me(current_user: User = Depends(get_current_user)):
    return ok(schemas.UserResponse.model_validate(current_user))
