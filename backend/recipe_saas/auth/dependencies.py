from fastapi import Depends, Header
from typing import Optional
import logging

from recipe_saas.auth.schemas import User
from recipe_saas.auth.service import TokenError, decode_token
from recipe_saas.config import Settings
from recipe_saas.dependencies import get_app_settings, get_store
from recipe_saas.errors import AuthenticationInvalid, AuthenticationMissing, InternalFailure
from recipe_saas.storage.base import Store

logger = logging.getLogger(__name__)


def extract_bearer_token(authorization: Optional[str]) -> Optional[str]:
    """Return the token from `Bearer <token>`, or None if there isn't one."""
    if not authorization:
        return None
    scheme, _, token = authorization.strip().partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


async def get_current_user(
    authorization: Optional[str] = Header(None),
    settings: Settings = Depends(get_app_settings),
    store: Store = Depends(get_store),
) -> Optional[User]:
    """Verify the bearer token and load its user.
    Returns None for anonymous requests, raises 403 for a bad token."""
    token = extract_bearer_token(authorization)
    if token is None:
        return None

    try:
        user_id = decode_token(token, settings)
    except TokenError as e:
        logger.warning(f"Rejected token: {e}")
        raise AuthenticationInvalid()

    try:
        user = await store.get_user(user_id)
    except Exception:
        logger.exception("User lookup failed during authentication")
        raise InternalFailure()

    if user is None:
        logger.warning(f"Token references missing user {user_id}")
        raise AuthenticationInvalid()
    return user


async def require_auth(
    user: Optional[User] = Depends(get_current_user),
) -> User:
    """Require an authenticated user. Raises 401 if no token was sent."""
    if user is None:
        raise AuthenticationMissing()
    return user
