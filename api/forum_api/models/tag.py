"""Tag and DiscussionTag models."""

from sqlalchemy import TIMESTAMP, Column, ForeignKey, Index, Integer, String, func

from forum_api.database import Base, utcnow


class Tag(Base):
    """A tag. Names are stored lower-cased; full_name keeps the display form."""

    __tablename__ = "tags"

    tag_id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), unique=True, nullable=False)
    full_name = Column(String(100), nullable=False)
    date_inserted = Column(TIMESTAMP(timezone=True), default=utcnow, server_default=func.now())


class DiscussionTag(Base):
    """Association between a discussion and a tag."""

    __tablename__ = "discussion_tags"

    discussion_id = Column(
        Integer,
        ForeignKey("discussions.discussion_id", ondelete="CASCADE"),
        primary_key=True,
    )
    tag_id = Column(
        Integer,
        ForeignKey("tags.tag_id", ondelete="CASCADE"),
        primary_key=True,
    )

    __table_args__ = (Index("idx_discussion_tags_tag", tag_id),)
