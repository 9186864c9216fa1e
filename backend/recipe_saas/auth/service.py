import asyncio
import logging
from datetime import datetime, timedelta, timezone
from functools import lru_cache

import bcrypt
import jwt

from recipe_saas.auth.schemas import User
from recipe_saas.config import Settings
from recipe_saas.errors import InvalidCredentials, ValidationConflict
from recipe_saas.storage.base import DuplicateEmailError, Store

logger = logging.getLogger(__name__)


@lru_cache
def _dummy_hash(rounds: int) -> str:
    """Hash compared against when the email is unknown, at the same cost as real hashes."""
    return bcrypt.hashpw(b"not-a-real-password", bcrypt.gensalt(rounds=rounds)).decode()


class TokenError(Exception):
    """Token failed signature, expiry or claim validation."""


async def hash_password(password: str, rounds: int = 10) -> str:
    hashed = await asyncio.to_thread(bcrypt.hashpw, password.encode(), bcrypt.gensalt(rounds=rounds))
    return hashed.decode()


async def verify_password(password: str, password_hash: str) -> bool:
    try:
        return await asyncio.to_thread(bcrypt.checkpw, password.encode(), password_hash.encode())
    except ValueError:
        # Malformed stored hash
        logger.warning("Stored password hash could not be parsed")
        return False


def issue_token(user_id: str, settings: Settings) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "sub": user_id,
        "iat": now,
        "exp": now + timedelta(minutes=settings.jwt_expire_minutes),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_token(token: str, settings: Settings) -> str:
    """Verify a token and return the user id it was issued for.

    Raises:
        TokenError: bad signature, expired, or missing claims
    """
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            options={"require": ["sub", "exp"]},
        )
    except jwt.ExpiredSignatureError as e:
        raise TokenError("Token expired") from e
    except jwt.InvalidTokenError as e:
        raise TokenError(str(e)) from e

    user_id = payload.get("sub")
    if not isinstance(user_id, str) or not user_id:
        raise TokenError("Invalid token: missing user ID")
    return user_id


async def register_user(email: str, password: str, store: Store, settings: Settings) -> User:
    password_hash = await hash_password(password, settings.bcrypt_rounds)
    try:
        user = await store.create_user(email, password_hash)
    except DuplicateEmailError:
        logger.info("Registration rejected: email already registered")
        raise ValidationConflict("User already exists")
    logger.info(f"Registered user {user.id}")
    return user


async def authenticate_user(email: str, password: str, store: Store, settings: Settings) -> User:
    user = await store.get_user_by_email(email)
    if user is None:
        dummy = await asyncio.to_thread(_dummy_hash, settings.bcrypt_rounds)
        await verify_password(password, dummy)
        raise InvalidCredentials()
    if not await verify_password(password, user.password_hash):
        raise InvalidCredentials()
    return user
