"""Database models for the forum API."""

from forum_api.models.category import Category, CategoryFollow
from forum_api.models.config import SiteConfig
from forum_api.models.discussion import Discussion
from forum_api.models.tag import DiscussionTag, Tag
from forum_api.models.theme import Theme, ThemeAsset, ThemePreview, ThemeRevision
from forum_api.models.user import APIKey, User, UserRole

__all__ = [
    "User",
    "UserRole",
    "APIKey",
    "SiteConfig",
    "Theme",
    "ThemeRevision",
    "ThemeAsset",
    "ThemePreview",
    "Category",
    "CategoryFollow",
    "Tag",
    "DiscussionTag",
    "Discussion",
]
