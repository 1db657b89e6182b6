"""
Authentication dependencies.

The session token is decoded once per request into an immutable
``RequestContext`` that handlers receive explicitly.
"""
from dataclasses import dataclass
from typing import Optional
from uuid import UUID

from fastapi import Depends, Request
from fastapi.security import APIKeyCookie, HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession
from structlog import get_logger

from docspace.core.config import settings
from docspace.core.database import get_db_session
from docspace.core.exceptions import AuthenticationException
from docspace.core.security import TokenError, decode_token
from docspace.modules.auth.models import User
from docspace.modules.auth.service import AuthService

logger = get_logger(__name__)

cookie_scheme = APIKeyCookie(name=settings.auth_cookie_name, auto_error=False)
bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class RequestContext:
    """Identity of the caller for the lifetime of one request."""

    user_id: UUID
    request_id: Optional[str] = None


async def get_request_context(
    request: Request,
    cookie_token: Optional[str] = Depends(cookie_scheme),
    bearer: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> RequestContext:
    """
    Resolve the caller from the ``auth_token`` cookie.

    ``Authorization: Bearer`` is accepted when no cookie is present.

    Raises:
        AuthenticationException: If no token is sent or it does not verify
    """
    token = cookie_token or (bearer.credentials if bearer else None)
    if not token:
        raise AuthenticationException("Authentication required")

    try:
        payload = decode_token(token)
        user_id = UUID(payload["sub"])
    except (TokenError, ValueError, KeyError):
        raise AuthenticationException("Invalid or expired session")

    return RequestContext(user_id=user_id, request_id=getattr(request.state, "request_id", None))


async def get_current_user(
    context: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db_session),
) -> User:
    """
    Load the active user behind the request context.

    Raises:
        AuthenticationException: If the account no longer exists or is disabled
    """
    user = await AuthService(db).get_user_by_id(context.user_id)
    if user is None or not user.is_active:
        logger.info("Session for unknown or inactive user", user_id=str(context.user_id))
        raise AuthenticationException("Invalid or expired session")
    return user
