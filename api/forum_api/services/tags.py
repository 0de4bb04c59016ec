"""Tag lookups."""

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from forum_api.models.tag import Tag


class TagService:
    """Service for resolving tag names."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_tag_ids_by_name(self, names: list[str]) -> list[int]:
        """IDs of the tags matching ``names`` case-insensitively. Unknown names are dropped."""
        lowered = {name.strip().lower() for name in names if name and name.strip()}
        if not lowered:
            return []
        result = await self.db.execute(
            select(Tag.tag_id).where(func.lower(Tag.name).in_(lowered)).order_by(Tag.tag_id)
        )
        return list(result.scalars().all())

    async def ensure_tags(self, names: list[str]) -> list[Tag]:
        """Fetch the named tags, creating any that do not exist yet."""
        wanted: dict[str, str] = {}
        for name in names:
            wanted.setdefault(name.strip().lower(), name.strip())
        if not wanted:
            return []

        result = await self.db.execute(select(Tag).where(Tag.name.in_(wanted)))
        tags = {tag.name: tag for tag in result.scalars().all()}
        for name, full_name in wanted.items():
            if name not in tags:
                tag = Tag(name=name, full_name=full_name)
                self.db.add(tag)
                tags[name] = tag
        await self.db.flush()
        return [tags[name] for name in wanted]
