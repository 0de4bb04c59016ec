"""User, UserRole, and APIKey models."""

from sqlalchemy import (
    JSON,
    TIMESTAMP,
    CheckConstraint,
    Column,
    ForeignKey,
    Integer,
    String,
    Text,
    func,
)
from sqlalchemy.orm import relationship

from forum_api.database import Base, utcnow


class User(Base):
    """User account model."""

    __tablename__ = "users"

    user_id = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(String(32), unique=True, nullable=False)
    display_name = Column(Text)
    date_inserted = Column(TIMESTAMP(timezone=True), default=utcnow, server_default=func.now())
    last_seen_at = Column(TIMESTAMP(timezone=True))

    __table_args__ = (
        CheckConstraint("length(username) >= 3", name="ck_username_length"),
    )

    roles = relationship(
        "UserRole",
        back_populates="user",
        cascade="all, delete-orphan",
    )
    api_keys = relationship("APIKey", back_populates="user", cascade="all, delete-orphan")

    @property
    def role_names(self) -> set[str]:
        return {role.role for role in self.roles}

    @property
    def is_admin(self) -> bool:
        return "admin" in self.role_names


class UserRole(Base):
    """User role assignment model."""

    __tablename__ = "user_roles"

    user_id = Column(
        Integer,
        ForeignKey("users.user_id", ondelete="CASCADE"),
        primary_key=True,
    )
    role = Column(String(64), primary_key=True)
    granted_at = Column(TIMESTAMP(timezone=True), default=utcnow, server_default=func.now())

    user = relationship("User", back_populates="roles")


class APIKey(Base):
    """API key model for client authentication."""

    __tablename__ = "api_keys"

    api_key_id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False)
    key_hash = Column(String(64), nullable=False, unique=True)
    key_prefix = Column(String(12), nullable=False)
    name = Column(Text)
    scopes = Column(JSON, nullable=False, default=list)
    created_at = Column(TIMESTAMP(timezone=True), default=utcnow, server_default=func.now())
    last_used_at = Column(TIMESTAMP(timezone=True))
    expires_at = Column(TIMESTAMP(timezone=True))
    revoked_at = Column(TIMESTAMP(timezone=True))

    user = relationship("User", back_populates="api_keys")
