"""Authentication of inbound HTTP/SSE clients by API key or JWT."""

from jose import JWTError, jwt
from typing import Dict, Optional
from .config import settings
import logging

logger = logging.getLogger(__name__)


def verify_api_key(x_api_key: Optional[str]) -> bool:
    """True if the X-API-Key value is one of the configured keys."""
    if x_api_key and x_api_key in settings.api_keys_list:
        logger.debug("Valid API key authenticated")
        return True
    return False


def verify_jwt(token: str) -> Optional[dict]:
    """
    Verify a bearer JWT signed with the configured secret.

    Returns:
        The token payload, or None if the token is invalid
    """
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
        )
        logger.debug("Valid JWT authenticated")
        return payload
    except JWTError as e:
        logger.warning(f"Invalid JWT: {e}")
        return None


def headers_authenticated(headers: Dict[str, str]) -> bool:
    """Authenticate using raw lowercase headers (for ASGI endpoints)."""
    if verify_api_key(headers.get("x-api-key")):
        return True

    auth_header = headers.get("authorization")
    if auth_header and auth_header.lower().startswith("bearer "):
        token = auth_header.split(" ", 1)[1]
        return verify_jwt(token) is not None

    return False
