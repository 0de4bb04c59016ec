"""Authentication dependencies for FastAPI endpoints."""

import hmac
from datetime import timedelta

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from forum_api.auth.keys import hash_api_key, is_well_formed
from forum_api.database import as_utc, get_db, utcnow
from forum_api.errors import permission_denied
from forum_api.models.user import APIKey, User

# Minimum interval between last_used_at updates to reduce write amplification
LAST_USED_UPDATE_INTERVAL = timedelta(minutes=5)

# Scope names
SCOPE_SETTINGS_MANAGE = "settings:manage"
SCOPE_DISCUSSIONS_ADD = "discussions:add"
SCOPE_DISCUSSIONS_EDIT = "discussions:edit"


def _unauthorized(message: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail={
            "error": {
                "code": "UNAUTHORIZED",
                "message": message,
            }
        },
    )


async def get_current_user(
    x_api_key: str | None = Header(default=None, alias="X-API-Key"),
    db: AsyncSession = Depends(get_db),
) -> tuple[User, APIKey]:
    """
    Validate API key and return the authenticated user and API key.

    Returns a tuple of (User, APIKey) so endpoints can access both
    the user's roles and the specific API key's scopes.

    Raises:
        HTTPException: 401 if API key is missing, invalid, expired or revoked
    """
    if not x_api_key:
        raise _unauthorized("API key required")

    if not is_well_formed(x_api_key):
        raise _unauthorized("Invalid API key format")

    key_hash = hash_api_key(x_api_key)

    result = await db.execute(
        select(APIKey)
        .options(selectinload(APIKey.user).selectinload(User.roles))
        .where(APIKey.key_hash == key_hash)
        .where(APIKey.revoked_at.is_(None))
    )
    api_key = result.scalar_one_or_none()

    if not api_key:
        # Keep the failure path as slow as the success path.
        hmac.compare_digest(key_hash, "0" * 64)
        raise _unauthorized("Invalid or revoked API key")

    now = utcnow()
    expires_at = as_utc(api_key.expires_at)
    if expires_at is not None and expires_at < now:
        raise _unauthorized("API key has expired")

    last_used_at = as_utc(api_key.last_used_at)
    if last_used_at is None or now - last_used_at > LAST_USED_UPDATE_INTERVAL:
        await db.execute(
            update(APIKey)
            .where(APIKey.api_key_id == api_key.api_key_id)
            .values(last_used_at=now)
            .execution_options(synchronize_session=False)
        )

    return api_key.user, api_key


def require_scope(required_scope: str):
    """Dependency factory to require a specific API key scope."""

    async def check_scope(
        auth: tuple[User, APIKey] = Depends(get_current_user),
    ) -> tuple[User, APIKey]:
        _, api_key = auth
        if required_scope not in set(api_key.scopes or []):
            raise permission_denied(required_scope)
        return auth

    return check_scope
