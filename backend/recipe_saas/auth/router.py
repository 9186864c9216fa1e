from fastapi import APIRouter, Depends, Request
from typing import Optional
import logging

from recipe_saas.auth.dependencies import get_current_user
from recipe_saas.auth.schemas import Credentials, User
from recipe_saas.auth.service import authenticate_user, issue_token, register_user
from recipe_saas.config import Settings
from recipe_saas.dependencies import get_app_settings, get_store
from recipe_saas.errors import AppError, InternalFailure
from recipe_saas.middleware import limiter
from recipe_saas.storage.base import Store

logger = logging.getLogger(__name__)
router = APIRouter()


def _session_response(user: User, settings: Settings) -> dict:
    return {
        "success": True,
        "token": issue_token(user.id, settings),
        "user": user.public(),
    }


@router.post("/register")
@limiter.limit("10/minute")
async def register(
    request: Request,
    body: Credentials,
    settings: Settings = Depends(get_app_settings),
    store: Store = Depends(get_store),
):
    try:
        user = await register_user(body.email, body.password, store, settings)
        return _session_response(user, settings)
    except AppError:
        raise
    except Exception:
        logger.exception("Registration failed")
        raise InternalFailure("Registration failed")


@router.post("/login")
@limiter.limit("10/minute")
async def login(
    request: Request,
    body: Credentials,
    settings: Settings = Depends(get_app_settings),
    store: Store = Depends(get_store),
):
    try:
        user = await authenticate_user(body.email, body.password, store, settings)
        return _session_response(user, settings)
    except AppError:
        raise
    except Exception:
        logger.exception("Login failed")
        raise InternalFailure("Login failed")


@router.get("/me")
async def get_me(user: Optional[User] = Depends(get_current_user)):
    """Get current user profile. Returns null user if not authenticated."""
    if user is None:
        return {"user": None}
    return {"user": user.public()}
