"""
Security utilities for authentication and signing.

This module provides JWT token handling, password hashing, random token
generation and HMAC signatures for outbound webhooks.
"""
import hashlib
import hmac
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import bcrypt
import jwt
from structlog import get_logger

from docspace.core.config import get_settings

logger = get_logger(__name__)
settings = get_settings()

BCRYPT_MAX_BYTES = 72


class SecurityError(Exception):
    """Base exception for security-related errors."""
    pass


class TokenError(SecurityError):
    """Exception raised for token-related errors."""
    pass


class PasswordError(SecurityError):
    """Exception raised for password-related errors."""
    pass


def _password_bytes(password: str) -> bytes:
    # bcrypt only looks at the first 72 bytes
    return password.encode("utf-8")[:BCRYPT_MAX_BYTES]


def generate_password_hash(password: str) -> str:
    """
    Generate a secure hash for the given password.

    Args:
        password: The plain text password to hash

    Returns:
        The bcrypt hash as text

    Raises:
        PasswordError: If password hashing fails
    """
    try:
        salt = bcrypt.gensalt(rounds=settings.bcrypt_rounds)
        return bcrypt.hashpw(_password_bytes(password), salt).decode("utf-8")
    except (ValueError, TypeError) as e:
        logger.error("Password hashing failed", error=str(e))
        raise PasswordError("Failed to hash password") from e


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Verify a plain password against its hash.

    Returns:
        True if password matches, False otherwise
    """
    try:
        return bcrypt.checkpw(_password_bytes(plain_password), hashed_password.encode("utf-8"))
    except (ValueError, TypeError) as e:
        logger.warning("Password verification failed", error=str(e))
        return False


def generate_secure_token(length: int = 32) -> str:
    """
    Generate a cryptographically secure random token.

    Args:
        length: Length of the token in bytes

    Returns:
        A secure random token as hex string
    """
    return secrets.token_hex(length)


def generate_url_token(length: int = 32) -> str:
    """Random URL-safe token carrying ``length`` bytes of entropy."""
    return secrets.token_urlsafe(length)


def sign_payload(secret: str, body: bytes) -> str:
    """
    HMAC-SHA256 signature of ``body`` keyed by ``secret``, hex encoded.
    """
    return hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()


def verify_signature(secret: str, body: bytes, signature: str) -> bool:
    """Constant-time check of a ``sha256=<hex>`` or bare hex signature."""
    expected = sign_payload(secret, body)
    if signature.startswith("sha256="):
        signature = signature[len("sha256="):]
    return hmac.compare_digest(expected, signature)


def create_access_token(
    subject: str,
    expires_delta: Optional[timedelta] = None,
    extra_claims: Optional[Dict[str, Any]] = None,
) -> str:
    """
    Create a JWT access token.

    Args:
        subject: The user id stored in the ``sub`` claim
        expires_delta: Token lifetime, defaults to the configured session length
        extra_claims: Additional claims to embed

    Returns:
        The encoded JWT token
    """
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=settings.access_token_expire_minutes))

    to_encode: Dict[str, Any] = dict(extra_claims or {})
    to_encode.update({"sub": str(subject), "type": "access", "iat": now, "exp": expire})

    encoded_jwt = jwt.encode(to_encode, settings.secret_key, algorithm=settings.algorithm)
    logger.debug("Access token created", expires_at=expire.isoformat())
    return encoded_jwt


def decode_token(token: str) -> Dict[str, Any]:
    """
    Decode and validate a JWT access token.

    Args:
        token: The JWT token to decode

    Returns:
        The decoded token payload

    Raises:
        TokenError: If token is invalid, expired or not an access token
    """
    try:
        payload = jwt.decode(
            token,
            settings.secret_key,
            algorithms=[settings.algorithm],
            options={"require": ["exp", "sub"]},
        )
    except jwt.ExpiredSignatureError:
        logger.info("Token has expired")
        raise TokenError("Token has expired")
    except jwt.InvalidTokenError as e:
        logger.info("Invalid token", error=str(e))
        raise TokenError("Invalid token")

    if payload.get("type", "access") != "access":
        raise TokenError("Invalid token type")
    return payload
