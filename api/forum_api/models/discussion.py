"""Discussion model."""

from sqlalchemy import (
    TIMESTAMP,
    Column,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    func,
)
from sqlalchemy.orm import relationship

from forum_api.database import Base, utcnow


class Discussion(Base):
    """A discussion thread."""

    __tablename__ = "discussions"

    discussion_id = Column(Integer, primary_key=True, autoincrement=True)
    category_id = Column(Integer, ForeignKey("categories.category_id", ondelete="SET NULL"))
    name = Column(String(255), nullable=False)
    body = Column(Text, nullable=False)
    format = Column(String(20), nullable=False, default="markdown")
    type = Column(String(20), nullable=False, default="discussion")
    score = Column(Float)
    insert_user_id = Column(Integer, ForeignKey("users.user_id", ondelete="SET NULL"))
    date_inserted = Column(TIMESTAMP(timezone=True), default=utcnow, server_default=func.now())
    date_updated = Column(TIMESTAMP(timezone=True))

    __table_args__ = (
        Index("idx_discussions_category", category_id),
        Index("idx_discussions_inserted", date_inserted.desc()),
        Index("idx_discussions_user", insert_user_id),
    )

    author = relationship("User", foreign_keys=[insert_user_id])
    tags = relationship("Tag", secondary="discussion_tags", order_by="Tag.name")
