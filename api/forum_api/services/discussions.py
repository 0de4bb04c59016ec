"""Discussion reads and writes."""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from forum_api.config import settings
from forum_api.database import as_utc, utcnow
from forum_api.errors import not_found, permission_denied
from forum_api.models.discussion import Discussion
from forum_api.models.tag import Tag
from forum_api.models.user import APIKey, User
from forum_api.schemas.discussions import (
    CreateDiscussionRequest,
    DiscussionResponse,
    TagFragment,
    UpdateDiscussionRequest,
)
from forum_api.services.categories import CategoryService, can_view_category
from forum_api.services.tags import TagService

logger = logging.getLogger(__name__)

VIEW_PERMISSION = "discussions:view"
EDIT_SCOPE = "discussions:edit"


def discussion_url(discussion_id: int) -> str:
    return f"{settings.site_url.rstrip('/')}/discussion/{discussion_id}"


def to_response(discussion: Discussion) -> DiscussionResponse:
    author = discussion.author
    return DiscussionResponse(
        discussion_id=discussion.discussion_id,
        category_id=discussion.category_id,
        name=discussion.name,
        body=discussion.body,
        format=discussion.format,
        type=discussion.type,
        score=discussion.score,
        url=discussion_url(discussion.discussion_id),
        insert_user_id=discussion.insert_user_id,
        author=author.display_name or author.username if author else None,
        date_inserted=as_utc(discussion.date_inserted).isoformat(),
        date_updated=as_utc(discussion.date_updated).isoformat() if discussion.date_updated else None,
        tags=[TagFragment(tag_id=tag.tag_id, name=tag.full_name) for tag in discussion.tags],
    )


class DiscussionService:
    """Service for discussion CRUD with category visibility."""

    def __init__(self, db: AsyncSession, categories: CategoryService | None = None):
        self.db = db
        self.categories = categories or CategoryService(db)
        self.tags = TagService(db)

    def _select(self):
        return select(Discussion).options(
            selectinload(Discussion.author),
            selectinload(Discussion.tags),
        )

    async def index(
        self,
        user: User,
        discussion_ids: list[int] | None = None,
        category_id: int | None = None,
        limit: int = 30,
    ) -> list[Discussion]:
        """
        List discussions the user can see, newest first.

        Raises:
            HTTPException: 403 if ``category_id`` is given and not viewable
        """
        query = self._select()
        if discussion_ids is not None:
            query = query.where(Discussion.discussion_id.in_(discussion_ids))
        if category_id is not None:
            if not await self.categories.check_permission(category_id, user):
                raise permission_denied(VIEW_PERMISSION)
            query = query.where(Discussion.category_id == category_id)
        else:
            visible = await self.categories.visible_ids(user)
            query = query.where(
                Discussion.category_id.in_(visible) | Discussion.category_id.is_(None)
            )

        query = query.order_by(Discussion.date_inserted.desc(), Discussion.discussion_id.desc())
        result = await self.db.execute(query.limit(limit))
        return list(result.scalars().all())

    async def get(self, discussion_id: int, user: User) -> Discussion:
        result = await self.db.execute(self._select().where(Discussion.discussion_id == discussion_id))
        discussion = result.scalar_one_or_none()
        if discussion is None:
            raise not_found("Discussion", f"Discussion '{discussion_id}' not found")
        if discussion.category_id is not None and not await self.categories.check_permission(
            discussion.category_id, user
        ):
            raise permission_denied(VIEW_PERMISSION)
        return discussion

    async def create(self, data: CreateDiscussionRequest, user: User) -> Discussion:
        category = await self.categories.get(data.category_id)
        if not can_view_category(category, user):
            raise permission_denied(VIEW_PERMISSION)

        discussion = Discussion(
            category_id=data.category_id,
            name=data.name,
            body=data.body,
            format=data.format,
            insert_user_id=user.user_id,
        )
        discussion.tags = await self.tags.ensure_tags(data.tags)
        self.db.add(discussion)
        await self.db.commit()
        logger.info("Discussion %s created by user %s", discussion.discussion_id, user.user_id)
        return await self.get(discussion.discussion_id, user)

    async def update(
        self,
        discussion_id: int,
        data: UpdateDiscussionRequest,
        user: User,
        api_key: APIKey,
    ) -> Discussion:
        discussion = await self.get(discussion_id, user)
        self._check_can_edit(discussion, user, api_key)

        if data.category_id is not None:
            category = await self.categories.get(data.category_id)
            if not can_view_category(category, user):
                raise permission_denied(VIEW_PERMISSION)
            discussion.category_id = data.category_id
        if data.name is not None:
            discussion.name = data.name
        if data.body is not None:
            discussion.body = data.body
        if data.tags is not None:
            tags: list[Tag] = await self.tags.ensure_tags(data.tags)
            discussion.tags = tags
        discussion.date_updated = utcnow()

        await self.db.commit()
        return await self.get(discussion.discussion_id, user)

    async def delete(self, discussion_id: int, user: User, api_key: APIKey) -> None:
        discussion = await self.get(discussion_id, user)
        self._check_can_edit(discussion, user, api_key)
        await self.db.delete(discussion)
        await self.db.commit()

    @staticmethod
    def _check_can_edit(discussion: Discussion, user: User, api_key: APIKey) -> None:
        """Authors may edit their own discussions; others need the edit scope."""
        if discussion.insert_user_id == user.user_id or user.is_admin:
            return
        if EDIT_SCOPE not in set(api_key.scopes or []):
            raise permission_denied(EDIT_SCOPE)
