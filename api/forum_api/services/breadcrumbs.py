"""Breadcrumbs for records that live in categories."""

from forum_api.config import settings
from forum_api.services.categories import CategoryService, category_url


class BreadcrumbService:
    """Builds Home -> ancestor -> category trails."""

    def __init__(self, categories: CategoryService):
        self.categories = categories

    async def get_for_category(self, category_id: int | None) -> list[dict[str, str]]:
        crumbs = [{"name": "Home", "url": settings.site_url}]
        if category_id is None:
            return crumbs
        for category in await self.categories.ancestors(category_id):
            crumbs.append({"name": category.name, "url": category_url(category)})
        return crumbs
