"""Search router."""

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from forum_api.auth.dependencies import get_current_user
from forum_api.config import settings
from forum_api.database import get_db
from forum_api.middleware.rate_limit import SEARCH_RATE_LIMIT, limiter
from forum_api.models.user import APIKey, User
from forum_api.schemas.search import SearchResponse
from forum_api.search.discussions import DiscussionSearchType
from forum_api.search.service import SearchService
from forum_api.services.breadcrumbs import BreadcrumbService
from forum_api.services.categories import CategoryService
from forum_api.services.discussions import DiscussionService
from forum_api.services.tags import TagService

router = APIRouter(prefix="/api/v2/search", tags=["Search"])


def get_search_service(db: AsyncSession = Depends(get_db)) -> SearchService:
    categories = CategoryService(db)
    discussion_type = DiscussionSearchType(
        discussions=DiscussionService(db, categories),
        categories=categories,
        tags=TagService(db),
        breadcrumbs=BreadcrumbService(categories),
    )
    return SearchService(db, [discussion_type], driver=settings.search_driver)


@router.get(
    "",
    response_model=SearchResponse,
    status_code=status.HTTP_200_OK,
)
@limiter.limit(SEARCH_RATE_LIMIT)
async def search(
    request: Request,
    service: SearchService = Depends(get_search_service),
    auth: tuple[User, APIKey] = Depends(get_current_user),
) -> SearchResponse:
    """
    Search across record types.

    Common parameters are ``query``, ``title``, ``users``, ``types``,
    ``limit`` and ``offset``. Discussions also accept ``discussionID``,
    ``categoryID``, ``followedCategories``, ``includeChildCategories``,
    ``includeArchivedCategories``, ``tags`` and ``tagOperator``. List
    parameters take comma-separated or repeated values.
    """
    user, _ = auth
    params = service.parse_params(request.query_params)
    items = await service.search(params, user)
    return SearchResponse(items=items, total_count=len(items))
