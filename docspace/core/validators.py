"""
Reusable validators for Pydantic schemas.

Validators raise ``ValueError`` so Pydantic reports them as field errors,
which the API renders as 400 responses.
"""

import re
from typing import Dict, Iterable, List, Optional
from urllib.parse import urlparse

from docspace.core.config import settings


class ValidationPatterns:
    """Common regex patterns for validation."""

    # Hex color code
    HEX_COLOR = re.compile(r'^#([A-Fa-f0-9]{6}|[A-Fa-f0-9]{3})$')

    # HTTP header field name (RFC 7230 token)
    HEADER_NAME = re.compile(r"^[!#$%&'*+\-.^_`|~0-9A-Za-z]+$")


class ValidationMessages:
    """Error messages shared by the validators."""

    NAME_EMPTY = "Name cannot be empty or only whitespace"
    NAME_TOO_LONG = "Name cannot exceed {max_length} characters"

    URL_INVALID_FORMAT = "Invalid URL format"
    URL_MISSING_PROTOCOL = "URL must include protocol (http:// or https://)"
    URL_INVALID_PROTOCOL = "URL must use HTTP or HTTPS protocol"
    URL_MISSING_DOMAIN = "URL must include domain"
    URL_LOCALHOST_NOT_ALLOWED = "Localhost URLs are not allowed"

    HEX_COLOR_INVALID = "Invalid hex color format. Use #RRGGBB or #RGB"

    HEADER_NAME_INVALID = "Invalid header name: {name}"
    HEADER_VALUE_INVALID = "Header values cannot contain line breaks: {name}"
    HEADER_VALUE_NOT_ASCII = "Header values must be ASCII: {name}"


LOCAL_HOSTS = {"localhost", "127.0.0.1", "0.0.0.0", "::1", "[::1]"}


class CommonValidators:
    """Collection of reusable validators."""

    @staticmethod
    def validate_name(v: str, max_length: int = 255) -> str:
        """
        Validate a display name (workspace, webhook).

        Rules:
        - Surrounding whitespace is trimmed
        - Not empty after trimming
        - At most ``max_length`` characters
        """
        v = (v or "").strip()
        if not v:
            raise ValueError(ValidationMessages.NAME_EMPTY)
        if len(v) > max_length:
            raise ValueError(ValidationMessages.NAME_TOO_LONG.format(max_length=max_length))
        return v

    @staticmethod
    def validate_url(v: str, block_localhost: Optional[bool] = None) -> str:
        """
        Validate an absolute http(s) URL.

        Rules:
        - Scheme is http or https
        - Has a host
        - No localhost in production unless ``block_localhost`` says otherwise
        """
        v = (v or "").strip()
        if not v:
            raise ValueError(ValidationMessages.URL_INVALID_FORMAT)

        try:
            parsed = urlparse(v)
        except ValueError:
            raise ValueError(ValidationMessages.URL_INVALID_FORMAT)

        if not parsed.scheme:
            raise ValueError(ValidationMessages.URL_MISSING_PROTOCOL)
        if parsed.scheme not in ("http", "https"):
            raise ValueError(ValidationMessages.URL_INVALID_PROTOCOL)
        if not parsed.netloc or not parsed.hostname:
            raise ValueError(ValidationMessages.URL_MISSING_DOMAIN)

        if block_localhost is None:
            block_localhost = settings.is_production
        if block_localhost and parsed.hostname.lower() in LOCAL_HOSTS:
            raise ValueError(ValidationMessages.URL_LOCALHOST_NOT_ALLOWED)

        return v

    @staticmethod
    def validate_hex_color(v: Optional[str]) -> Optional[str]:
        """Validate a ``#RRGGBB`` or ``#RGB`` color, returned upper-cased."""
        if not v:
            return None
        v = v.strip().upper()
        if not ValidationPatterns.HEX_COLOR.match(v):
            raise ValueError(ValidationMessages.HEX_COLOR_INVALID)
        return v

    @staticmethod
    def validate_header_map(v: Optional[Dict[str, str]]) -> Dict[str, str]:
        """Validate user supplied HTTP headers."""
        if not v:
            return {}
        for name, value in v.items():
            if not ValidationPatterns.HEADER_NAME.match(name):
                raise ValueError(ValidationMessages.HEADER_NAME_INVALID.format(name=name))
            if "\r" in value or "\n" in value:
                raise ValueError(ValidationMessages.HEADER_VALUE_INVALID.format(name=name))
            if not value.isascii():
                raise ValueError(ValidationMessages.HEADER_VALUE_NOT_ASCII.format(name=name))
        return dict(v)

    @staticmethod
    def dedupe(values: Iterable) -> List:
        """Drop repeated values, keeping first-seen order."""
        return list(dict.fromkeys(values))
