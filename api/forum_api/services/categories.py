"""Category lookups, visibility and follows."""

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from forum_api.config import settings
from forum_api.errors import client_error, conflict, not_found
from forum_api.models.category import Category, CategoryFollow
from forum_api.models.user import User
from forum_api.schemas.categories import CreateCategoryRequest


def category_url(category: Category) -> str:
    return f"{settings.site_url.rstrip('/')}/categories/{category.url_code}"


def can_view_category(category: Category, user: User) -> bool:
    """Categories without a view role are open to every signed-in user."""
    if category.view_role is None or user.is_admin:
        return True
    return category.view_role in user.role_names


class CategoryService:
    """Service for category trees and per-user category visibility."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self._categories: dict[int, Category] | None = None

    async def all_categories(self) -> dict[int, Category]:
        """All categories by ID, loaded once per service instance."""
        if self._categories is None:
            result = await self.db.execute(select(Category).order_by(Category.category_id))
            self._categories = {c.category_id: c for c in result.scalars().all()}
        return self._categories

    async def get(self, category_id: int) -> Category:
        category = (await self.all_categories()).get(category_id)
        if category is None:
            raise not_found("Category", f"Category '{category_id}' not found")
        return category

    async def check_permission(self, category_id: int, user: User) -> bool:
        """Whether the user may view discussions in a category."""
        category = (await self.all_categories()).get(category_id)
        return category is not None and can_view_category(category, user)

    async def visible_ids(self, user: User) -> set[int]:
        return {
            category_id
            for category_id, category in (await self.all_categories()).items()
            if can_view_category(category, user)
        }

    async def ancestors(self, category_id: int) -> list[Category]:
        """The chain from the root category down to ``category_id`` inclusive."""
        categories = await self.all_categories()
        chain: list[Category] = []
        seen: set[int] = set()
        current = categories.get(category_id)
        while current is not None and current.category_id not in seen:
            seen.add(current.category_id)
            chain.append(current)
            current = categories.get(current.parent_category_id)
        return list(reversed(chain))

    async def descendant_ids(self, category_id: int) -> list[int]:
        """IDs of every category nested below ``category_id``."""
        categories = await self.all_categories()
        children: dict[int, list[int]] = {}
        for category in categories.values():
            if category.parent_category_id is not None:
                children.setdefault(category.parent_category_id, []).append(category.category_id)

        found: list[int] = []
        stack = list(children.get(category_id, []))
        while stack:
            child_id = stack.pop(0)
            if child_id in found or child_id == category_id:
                continue
            found.append(child_id)
            stack.extend(children.get(child_id, []))
        return found

    async def followed_ids(self, user: User) -> list[int]:
        result = await self.db.execute(
            select(CategoryFollow.category_id)
            .where(CategoryFollow.user_id == user.user_id)
            .order_by(CategoryFollow.category_id)
        )
        return list(result.scalars().all())

    async def search_category_ids(
        self,
        user: User,
        category_id: int | None = None,
        followed_categories: bool | None = False,
        include_child_categories: bool | None = False,
        include_archived_categories: bool | None = False,
    ) -> list[int]:
        """
        Category IDs a search should be restricted to.

        An explicit category wins over followed categories, which win over
        every category. Children are added on request; archived and
        unviewable categories are removed.
        """
        categories = await self.all_categories()

        if category_id is not None:
            category_ids = [category_id]
        elif followed_categories:
            category_ids = await self.followed_ids(user)
        else:
            category_ids = list(categories)

        if include_child_categories and (category_id is not None or followed_categories):
            for parent_id in list(category_ids):
                for child_id in await self.descendant_ids(parent_id):
                    if child_id not in category_ids:
                        category_ids.append(child_id)

        visible = await self.visible_ids(user)
        return [
            cid
            for cid in category_ids
            if cid in visible and (include_archived_categories or not categories[cid].archived)
        ]

    async def create(self, data: CreateCategoryRequest) -> Category:
        if data.parent_category_id is not None:
            await self.get(data.parent_category_id)

        category = Category(
            name=data.name,
            url_code=data.url_code,
            parent_category_id=data.parent_category_id,
            archived=data.archived,
            view_role=data.view_role,
        )
        self.db.add(category)
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise conflict(f"Category with url code '{data.url_code}' already exists")
        self._categories = None
        return category

    async def follow(self, category_id: int, user: User) -> None:
        category = await self.get(category_id)
        if not can_view_category(category, user):
            raise client_error("You cannot follow a category you cannot view.")
        existing = await self.db.get(CategoryFollow, (user.user_id, category_id))
        if existing is None:
            self.db.add(CategoryFollow(user_id=user.user_id, category_id=category_id))
            await self.db.commit()

    async def unfollow(self, category_id: int, user: User) -> None:
        await self.get(category_id)
        existing = await self.db.get(CategoryFollow, (user.user_id, category_id))
        if existing is not None:
            await self.db.delete(existing)
            await self.db.commit()
