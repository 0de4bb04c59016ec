"""Categories router for listing, creating and following categories."""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from forum_api.auth.dependencies import SCOPE_SETTINGS_MANAGE, get_current_user, require_scope
from forum_api.database import get_db
from forum_api.models.category import Category
from forum_api.models.user import APIKey, User
from forum_api.schemas.categories import CategoryResponse, CreateCategoryRequest
from forum_api.services.categories import CategoryService, can_view_category, category_url

router = APIRouter(prefix="/api/v2/categories", tags=["Categories"])


def get_category_service(db: AsyncSession = Depends(get_db)) -> CategoryService:
    return CategoryService(db)


def _category_response(category: Category, followed: set[int]) -> CategoryResponse:
    return CategoryResponse(
        category_id=category.category_id,
        parent_category_id=category.parent_category_id,
        name=category.name,
        url_code=category.url_code,
        url=category_url(category),
        archived=category.archived,
        followed=category.category_id in followed,
    )


@router.get(
    "",
    response_model=list[CategoryResponse],
    status_code=status.HTTP_200_OK,
)
async def list_categories(
    service: CategoryService = Depends(get_category_service),
    auth: tuple[User, APIKey] = Depends(get_current_user),
) -> list[CategoryResponse]:
    """List the categories visible to the caller."""
    user, _ = auth
    followed = set(await service.followed_ids(user))
    return [
        _category_response(category, followed)
        for category in (await service.all_categories()).values()
        if can_view_category(category, user)
    ]


@router.post(
    "",
    response_model=CategoryResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_category(
    data: CreateCategoryRequest,
    service: CategoryService = Depends(get_category_service),
    auth: tuple[User, APIKey] = Depends(require_scope(SCOPE_SETTINGS_MANAGE)),
) -> CategoryResponse:
    """Create a category."""
    return _category_response(await service.create(data), set())


@router.put(
    "/{category_id}/follow",
    response_model=CategoryResponse,
    status_code=status.HTTP_200_OK,
)
async def follow_category(
    category_id: int,
    service: CategoryService = Depends(get_category_service),
    auth: tuple[User, APIKey] = Depends(get_current_user),
) -> CategoryResponse:
    """Follow a category. Following twice is a no-op."""
    user, _ = auth
    await service.follow(category_id, user)
    return _category_response(await service.get(category_id), {category_id})


@router.delete(
    "/{category_id}/follow",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def unfollow_category(
    category_id: int,
    service: CategoryService = Depends(get_category_service),
    auth: tuple[User, APIKey] = Depends(get_current_user),
) -> None:
    """Stop following a category."""
    user, _ = auth
    await service.unfollow(category_id, user)
