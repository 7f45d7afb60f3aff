"""
FastAPI dependencies for the authenticated user.
"""
from typing import Annotated
from datetime import datetime, timezone
from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database.engine import get_db
from app.core.exceptions import ForbiddenError
from app.features.users.models import User
from app.features.users.auth import read_token_subject, fetch_appwrite_account
from app.utils import get_logger


log = get_logger(__name__)
security = HTTPBearer()


async def _provision_user(db: AsyncSession, appwrite_id: str) -> User:
    """First sighting of an account: no organization, no profile until an admin assigns them."""
    account = await fetch_appwrite_account(appwrite_id)
    user = User(
        appwrite_id=appwrite_id,
        email=account.get("email", ""),
        name=account.get("name", "Unknown"),
    )
    db.add(user)
    log.info(f"Provisioned user for Appwrite account {appwrite_id}")
    return user


async def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(security)],
    db: Annotated[AsyncSession, Depends(get_db)]
) -> User:
    """
    The user behind the bearer token.

    Usage:
        @router.get("/me")
        async def get_me(user: User = Depends(get_current_user)):
            return user
    """
    appwrite_id = read_token_subject(credentials.credentials)

    user = await db.scalar(select(User).where(User.appwrite_id == appwrite_id))
    if user is None:
        user = await _provision_user(db, appwrite_id)
    user.last_login_at = datetime.now(timezone.utc)
    await db.commit()

    if not user.is_active:
        log.warning(f"Deactivated user {user.id} rejected")
        raise ForbiddenError("User account is deactivated")
    return user


def get_authorization_header(request: Request) -> str:
    """slowapi key function: the raw Authorization header, or "anonymous"."""
    return request.headers.get("Authorization") or "anonymous"
