"""Initial schema."""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa

revision = "20261018_01_initial"
down_revision = None
branch_labels = None
depends_on = None


def _timestamp(name: str, **kwargs) -> sa.Column:
    return sa.Column(name, sa.TIMESTAMP(timezone=True), **kwargs)


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("user_id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("username", sa.String(32), nullable=False),
        sa.Column("display_name", sa.Text(), nullable=True),
        _timestamp("date_inserted", server_default=sa.func.now()),
        _timestamp("last_seen_at", nullable=True),
        sa.CheckConstraint("length(username) >= 3", name="ck_username_length"),
        sa.UniqueConstraint("username", name="uq_users_username"),
    )

    op.create_table(
        "user_roles",
        sa.Column(
            "user_id",
            sa.Integer(),
            sa.ForeignKey("users.user_id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column("role", sa.String(64), primary_key=True),
        _timestamp("granted_at", server_default=sa.func.now()),
    )

    op.create_table(
        "api_keys",
        sa.Column("api_key_id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "user_id",
            sa.Integer(),
            sa.ForeignKey("users.user_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("key_hash", sa.String(64), nullable=False),
        sa.Column("key_prefix", sa.String(12), nullable=False),
        sa.Column("name", sa.Text(), nullable=True),
        sa.Column("scopes", sa.JSON(), nullable=False),
        _timestamp("created_at", server_default=sa.func.now()),
        _timestamp("last_used_at", nullable=True),
        _timestamp("expires_at", nullable=True),
        _timestamp("revoked_at", nullable=True),
        sa.UniqueConstraint("key_hash", name="uq_api_keys_key_hash"),
    )

    op.create_table(
        "site_config",
        sa.Column("name", sa.String(100), primary_key=True),
        sa.Column("value", sa.JSON(), nullable=True),
        _timestamp("date_updated", server_default=sa.func.now()),
    )

    op.create_table(
        "themes",
        sa.Column("theme_id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("parent_theme", sa.String(100), nullable=True),
        sa.Column("parent_version", sa.String(50), nullable=True),
        sa.Column("revision_id", sa.Integer(), nullable=True),
        sa.Column(
            "insert_user_id",
            sa.Integer(),
            sa.ForeignKey("users.user_id", ondelete="SET NULL"),
            nullable=True,
        ),
        _timestamp("date_inserted", server_default=sa.func.now()),
        sa.Column(
            "update_user_id",
            sa.Integer(),
            sa.ForeignKey("users.user_id", ondelete="SET NULL"),
            nullable=True,
        ),
        _timestamp("date_updated", nullable=True),
    )

    op.create_table(
        "theme_revisions",
        sa.Column("revision_id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "theme_id",
            sa.Integer(),
            sa.ForeignKey("themes.theme_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("name", sa.String(255), nullable=True),
        sa.Column(
            "insert_user_id",
            sa.Integer(),
            sa.ForeignKey("users.user_id", ondelete="SET NULL"),
            nullable=True,
        ),
        _timestamp("date_inserted", server_default=sa.func.now()),
    )
    op.create_index("idx_theme_revisions_theme", "theme_revisions", ["theme_id"])

    op.create_table(
        "theme_assets",
        sa.Column("theme_asset_id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "theme_id",
            sa.Integer(),
            sa.ForeignKey("themes.theme_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "revision_id",
            sa.Integer(),
            sa.ForeignKey("theme_revisions.revision_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("asset_key", sa.String(50), nullable=False),
        sa.Column("asset_type", sa.String(20), nullable=False),
        sa.Column("data", sa.Text(), nullable=False),
        _timestamp("date_inserted", server_default=sa.func.now()),
        sa.UniqueConstraint("revision_id", "asset_key", name="uq_theme_asset_revision_key"),
    )

    op.create_table(
        "theme_previews",
        sa.Column(
            "user_id",
            sa.Integer(),
            sa.ForeignKey("users.user_id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column("theme_key", sa.String(100), nullable=False),
        sa.Column("revision_id", sa.Integer(), nullable=True),
        _timestamp("date_inserted", server_default=sa.func.now()),
    )

    op.create_table(
        "categories",
        sa.Column("category_id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "parent_category_id",
            sa.Integer(),
            sa.ForeignKey("categories.category_id", ondelete="CASCADE"),
            nullable=True,
        ),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("url_code", sa.String(255), nullable=False),
        sa.Column("archived", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("view_role", sa.String(64), nullable=True),
        _timestamp("date_inserted", server_default=sa.func.now()),
        sa.UniqueConstraint("url_code", name="uq_categories_url_code"),
    )
    op.create_index("idx_categories_parent", "categories", ["parent_category_id"])

    op.create_table(
        "category_follows",
        sa.Column(
            "user_id",
            sa.Integer(),
            sa.ForeignKey("users.user_id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column(
            "category_id",
            sa.Integer(),
            sa.ForeignKey("categories.category_id", ondelete="CASCADE"),
            primary_key=True,
        ),
        _timestamp("date_inserted", server_default=sa.func.now()),
    )

    op.create_table(
        "tags",
        sa.Column("tag_id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("full_name", sa.String(100), nullable=False),
        _timestamp("date_inserted", server_default=sa.func.now()),
        sa.UniqueConstraint("name", name="uq_tags_name"),
    )

    op.create_table(
        "discussions",
        sa.Column("discussion_id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "category_id",
            sa.Integer(),
            sa.ForeignKey("categories.category_id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("body", sa.Text(), nullable=False),
        sa.Column("format", sa.String(20), nullable=False),
        sa.Column("type", sa.String(20), nullable=False),
        sa.Column("score", sa.Float(), nullable=True),
        sa.Column(
            "insert_user_id",
            sa.Integer(),
            sa.ForeignKey("users.user_id", ondelete="SET NULL"),
            nullable=True,
        ),
        _timestamp("date_inserted", server_default=sa.func.now()),
        _timestamp("date_updated", nullable=True),
    )
    op.create_index("idx_discussions_category", "discussions", ["category_id"])
    op.create_index("idx_discussions_inserted", "discussions", [sa.text("date_inserted DESC")])
    op.create_index("idx_discussions_user", "discussions", ["insert_user_id"])

    op.create_table(
        "discussion_tags",
        sa.Column(
            "discussion_id",
            sa.Integer(),
            sa.ForeignKey("discussions.discussion_id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column(
            "tag_id",
            sa.Integer(),
            sa.ForeignKey("tags.tag_id", ondelete="CASCADE"),
            primary_key=True,
        ),
    )
    op.create_index("idx_discussion_tags_tag", "discussion_tags", ["tag_id"])


def downgrade() -> None:
    op.drop_index("idx_discussion_tags_tag", table_name="discussion_tags")
    op.drop_table("discussion_tags")
    op.drop_index("idx_discussions_user", table_name="discussions")
    op.drop_index("idx_discussions_inserted", table_name="discussions")
    op.drop_index("idx_discussions_category", table_name="discussions")
    op.drop_table("discussions")
    op.drop_table("tags")
    op.drop_table("category_follows")
    op.drop_index("idx_categories_parent", table_name="categories")
    op.drop_table("categories")
    op.drop_table("theme_previews")
    op.drop_table("theme_assets")
    op.drop_index("idx_theme_revisions_theme", table_name="theme_revisions")
    op.drop_table("theme_revisions")
    op.drop_table("themes")
    op.drop_table("site_config")
    op.drop_table("api_keys")
    op.drop_table("user_roles")
    op.drop_table("users")
