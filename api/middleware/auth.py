"""
Authentication for the Jirung admin routes.

A single shared admin key, accepted as an X-API-Key header, an api_key
query parameter or a bearer token.
"""

import hmac
import logging
from typing import Optional

from fastapi import HTTPException, Security, status
from fastapi.security import APIKeyHeader, APIKeyQuery, HTTPBearer, HTTPAuthorizationCredentials

from config.settings import get_settings

logger = logging.getLogger(__name__)

# ── Security schemes ───────────────────────────────────────────────
API_KEY_HEADER = "X-API-Key"
API_KEY_QUERY = "api_key"

api_key_header = APIKeyHeader(name=API_KEY_HEADER, auto_error=False)
api_key_query = APIKeyQuery(name=API_KEY_QUERY, auto_error=False)
bearer_scheme = HTTPBearer(auto_error=False)


def get_admin_key() -> str:
    """Get the admin key from settings."""
    return get_settings().admin_api_key or ""


async def require_admin(
    header_key: Optional[str] = Security(api_key_header),
    query_key: Optional[str] = Security(api_key_query),
    credentials: Optional[HTTPAuthorizationCredentials] = Security(bearer_scheme),
) -> str:
    """Validate the admin key from header, query parameter or bearer token."""
    expected_key = get_admin_key()

    # Skip auth if no key configured (development mode)
    if not expected_key:
        logger.warning("Admin authentication disabled - no key configured")
        return ""

    api_key = header_key or query_key or (credentials.credentials if credentials else None)
    if not api_key:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Admin key required",
            headers={"WWW-Authenticate": "ApiKey"},
        )

    if not hmac.compare_digest(api_key, expected_key):
        logger.warning("Invalid admin key attempt")
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid admin key")

    return api_key
