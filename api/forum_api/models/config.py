"""Site configuration stored in the database."""

from sqlalchemy import JSON, TIMESTAMP, Column, String, func

from forum_api.database import Base, utcnow


class SiteConfig(Base):
    """Key/value site setting that can be changed at runtime."""

    __tablename__ = "site_config"

    name = Column(String(100), primary_key=True)
    value = Column(JSON)
    date_updated = Column(TIMESTAMP(timezone=True), default=utcnow, onupdate=utcnow, server_default=func.now())
