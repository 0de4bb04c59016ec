"""Services for the forum API."""

from forum_api.services.breadcrumbs import BreadcrumbService
from forum_api.services.categories import CategoryService
from forum_api.services.discussions import DiscussionService
from forum_api.services.tags import TagService

__all__ = ["BreadcrumbService", "CategoryService", "DiscussionService", "TagService"]
