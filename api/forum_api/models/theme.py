"""Theme, ThemeRevision, ThemeAsset, and ThemePreview models."""

from sqlalchemy import (
    TIMESTAMP,
    Column,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import relationship

from forum_api.database import Base, utcnow


class Theme(Base):
    """Database-backed theme. Its assets live on the active revision."""

    __tablename__ = "themes"

    theme_id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    parent_theme = Column(String(100))
    parent_version = Column(String(50))
    revision_id = Column(Integer)
    insert_user_id = Column(Integer, ForeignKey("users.user_id", ondelete="SET NULL"))
    date_inserted = Column(TIMESTAMP(timezone=True), default=utcnow, server_default=func.now())
    update_user_id = Column(Integer, ForeignKey("users.user_id", ondelete="SET NULL"))
    date_updated = Column(TIMESTAMP(timezone=True))

    revisions = relationship(
        "ThemeRevision",
        back_populates="theme",
        cascade="all, delete-orphan",
        order_by="ThemeRevision.revision_id.desc()",
    )


class ThemeRevision(Base):
    """A snapshot of a theme's asset set."""

    __tablename__ = "theme_revisions"

    revision_id = Column(Integer, primary_key=True, autoincrement=True)
    theme_id = Column(
        Integer,
        ForeignKey("themes.theme_id", ondelete="CASCADE"),
        nullable=False,
    )
    name = Column(String(255))
    insert_user_id = Column(Integer, ForeignKey("users.user_id", ondelete="SET NULL"))
    date_inserted = Column(TIMESTAMP(timezone=True), default=utcnow, server_default=func.now())

    __table_args__ = (Index("idx_theme_revisions_theme", theme_id),)

    theme = relationship("Theme", back_populates="revisions")
    assets = relationship(
        "ThemeAsset",
        back_populates="revision",
        cascade="all, delete-orphan",
    )


class ThemeAsset(Base):
    """One asset body stored against a theme revision."""

    __tablename__ = "theme_assets"

    theme_asset_id = Column(Integer, primary_key=True, autoincrement=True)
    theme_id = Column(
        Integer,
        ForeignKey("themes.theme_id", ondelete="CASCADE"),
        nullable=False,
    )
    revision_id = Column(
        Integer,
        ForeignKey("theme_revisions.revision_id", ondelete="CASCADE"),
        nullable=False,
    )
    asset_key = Column(String(50), nullable=False)
    asset_type = Column(String(20), nullable=False)
    data = Column(Text, nullable=False)
    date_inserted = Column(TIMESTAMP(timezone=True), default=utcnow, server_default=func.now())

    __table_args__ = (
        UniqueConstraint("revision_id", "asset_key", name="uq_theme_asset_revision_key"),
    )

    revision = relationship("ThemeRevision", back_populates="assets")


class ThemePreview(Base):
    """Per-user preview theme, shown in place of the current theme."""

    __tablename__ = "theme_previews"

    user_id = Column(
        Integer,
        ForeignKey("users.user_id", ondelete="CASCADE"),
        primary_key=True,
    )
    theme_key = Column(String(100), nullable=False)
    revision_id = Column(Integer)
    date_inserted = Column(TIMESTAMP(timezone=True), default=utcnow, server_default=func.now())
