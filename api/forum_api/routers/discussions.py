"""Discussions router for discussion CRUD."""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from forum_api.auth.dependencies import SCOPE_DISCUSSIONS_ADD, get_current_user, require_scope
from forum_api.database import get_db
from forum_api.errors import client_error
from forum_api.models.user import APIKey, User
from forum_api.schemas.discussions import (
    CreateDiscussionRequest,
    DiscussionResponse,
    UpdateDiscussionRequest,
)
from forum_api.services.discussions import DiscussionService, to_response

router = APIRouter(prefix="/api/v2/discussions", tags=["Discussions"])


def get_discussion_service(db: AsyncSession = Depends(get_db)) -> DiscussionService:
    return DiscussionService(db)


def parse_id_list(raw: str | None) -> list[int] | None:
    """Parse ``1,2,3`` into IDs."""
    if raw is None:
        return None
    try:
        return [int(part) for part in raw.split(",") if part.strip()]
    except ValueError:
        raise client_error("discussionID must be a comma-separated list of integers.") from None


# --- List Discussions ---


@router.get(
    "",
    response_model=list[DiscussionResponse],
    status_code=status.HTTP_200_OK,
)
async def list_discussions(
    service: DiscussionService = Depends(get_discussion_service),
    auth: tuple[User, APIKey] = Depends(get_current_user),
    discussion_ids: str | None = Query(default=None, alias="discussionID"),
    category_id: int | None = Query(default=None, alias="categoryID"),
    limit: int = Query(default=30, ge=1, le=100),
) -> list[DiscussionResponse]:
    """
    List discussions visible to the caller, newest first.

    Filter by a comma-separated ``discussionID`` list or a ``categoryID``.
    """
    user, _ = auth
    discussions = await service.index(
        user,
        discussion_ids=parse_id_list(discussion_ids),
        category_id=category_id,
        limit=limit,
    )
    return [to_response(discussion) for discussion in discussions]


# --- Get Discussion ---


@router.get(
    "/{discussion_id}",
    response_model=DiscussionResponse,
    status_code=status.HTTP_200_OK,
)
async def get_discussion(
    discussion_id: int,
    service: DiscussionService = Depends(get_discussion_service),
    auth: tuple[User, APIKey] = Depends(get_current_user),
) -> DiscussionResponse:
    """Get a single discussion."""
    user, _ = auth
    return to_response(await service.get(discussion_id, user))


# --- Create Discussion ---


@router.post(
    "",
    response_model=DiscussionResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_discussion(
    data: CreateDiscussionRequest,
    service: DiscussionService = Depends(get_discussion_service),
    auth: tuple[User, APIKey] = Depends(require_scope(SCOPE_DISCUSSIONS_ADD)),
) -> DiscussionResponse:
    """Start a discussion in a category."""
    user, _ = auth
    return to_response(await service.create(data, user))


# --- Update Discussion ---


@router.patch(
    "/{discussion_id}",
    response_model=DiscussionResponse,
    status_code=status.HTTP_200_OK,
)
async def update_discussion(
    discussion_id: int,
    data: UpdateDiscussionRequest,
    service: DiscussionService = Depends(get_discussion_service),
    auth: tuple[User, APIKey] = Depends(get_current_user),
) -> DiscussionResponse:
    """
    Update a discussion.

    Authors and admins may edit; anyone else needs the ``discussions:edit`` scope.
    """
    user, api_key = auth
    return to_response(await service.update(discussion_id, data, user, api_key))


# --- Delete Discussion ---


@router.delete(
    "/{discussion_id}",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def delete_discussion(
    discussion_id: int,
    service: DiscussionService = Depends(get_discussion_service),
    auth: tuple[User, APIKey] = Depends(get_current_user),
) -> None:
    """Delete a discussion."""
    user, api_key = auth
    await service.delete(discussion_id, user, api_key)
