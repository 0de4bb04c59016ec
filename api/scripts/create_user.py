"""Create a forum user with roles and print a new API key.

Usage:
    python scripts/create_user.py admin --role admin --scope settings:manage
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from datetime import timedelta

from sqlalchemy import select

from forum_api.auth.keys import issue_api_key
from forum_api.auth.dependencies import (
    SCOPE_DISCUSSIONS_ADD,
    SCOPE_DISCUSSIONS_EDIT,
    SCOPE_SETTINGS_MANAGE,
)
from forum_api.database import AsyncSessionLocal, init_db, utcnow
from forum_api.models.user import APIKey, User, UserRole

KNOWN_SCOPES = (SCOPE_SETTINGS_MANAGE, SCOPE_DISCUSSIONS_ADD, SCOPE_DISCUSSIONS_EDIT)


async def create_user(
    username: str,
    display_name: str | None,
    roles: list[str],
    scopes: list[str],
    expires_days: int | None,
) -> str:
    async with AsyncSessionLocal() as session:
        existing = await session.execute(select(User).where(User.username == username))
        if existing.scalar_one_or_none() is not None:
            raise ValueError(f"User '{username}' already exists")

        user = User(username=username, display_name=display_name or username.title())
        session.add(user)
        await session.flush()

        for role in roles:
            session.add(UserRole(user_id=user.user_id, role=role))

        issued = issue_api_key()
        session.add(
            APIKey(
                user_id=user.user_id,
                key_hash=issued.key_hash,
                key_prefix=issued.display_prefix,
                name="Created by create_user.py",
                scopes=scopes,
                expires_at=utcnow() + timedelta(days=expires_days) if expires_days else None,
            )
        )
        await session.commit()
        return issued.plaintext


def main() -> int:
    parser = argparse.ArgumentParser(description="Create a forum user and API key")
    parser.add_argument("username")
    parser.add_argument("--display-name", default=None)
    parser.add_argument("--role", action="append", default=[], help="Role to grant (repeatable)")
    parser.add_argument(
        "--scope",
        action="append",
        default=[],
        help=f"API key scope (repeatable); known scopes: {', '.join(KNOWN_SCOPES)}",
    )
    parser.add_argument("--expires-days", type=int, default=None)
    parser.add_argument(
        "--skip-migrations",
        action="store_true",
        help="Do not upgrade the database before creating the user",
    )
    args = parser.parse_args()

    async def run() -> str:
        if not args.skip_migrations:
            await init_db()
        return await create_user(
            args.username, args.display_name, args.role, args.scope, args.expires_days
        )

    try:
        api_key = asyncio.run(run())
    except ValueError as exc:
        print(str(exc), file=sys.stderr)
        return 1

    print(f"Created user {args.username}")
    print(f"API key (shown once): {api_key}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
