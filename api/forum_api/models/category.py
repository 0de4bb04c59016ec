"""Category and CategoryFollow models."""

from sqlalchemy import (
    TIMESTAMP,
    Boolean,
    Column,
    ForeignKey,
    Index,
    Integer,
    String,
    false,
    func,
)
from forum_api.database import Base, utcnow


class Category(Base):
    """Discussion category. Categories nest through parent_category_id."""

    __tablename__ = "categories"

    category_id = Column(Integer, primary_key=True, autoincrement=True)
    parent_category_id = Column(
        Integer,
        ForeignKey("categories.category_id", ondelete="CASCADE"),
    )
    name = Column(String(255), nullable=False)
    url_code = Column(String(255), unique=True, nullable=False)
    archived = Column(Boolean, nullable=False, default=False, server_default=false())
    # Role required to view the category; NULL means anyone signed in.
    view_role = Column(String(64))
    date_inserted = Column(TIMESTAMP(timezone=True), default=utcnow, server_default=func.now())

    __table_args__ = (Index("idx_categories_parent", parent_category_id),)


class CategoryFollow(Base):
    """A user following a category."""

    __tablename__ = "category_follows"

    user_id = Column(
        Integer,
        ForeignKey("users.user_id", ondelete="CASCADE"),
        primary_key=True,
    )
    category_id = Column(
        Integer,
        ForeignKey("categories.category_id", ondelete="CASCADE"),
        primary_key=True,
    )
    date_inserted = Column(TIMESTAMP(timezone=True), default=utcnow, server_default=func.now())
