"""Theme service: bundled and database themes, revisions and assets."""

import json
import logging
import re
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any

from fastapi import HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from forum_api.config import settings
from forum_api.database import utcnow
from forum_api.errors import client_error, not_found
from forum_api.models.config import SiteConfig
from forum_api.models.theme import Theme, ThemePreview, ThemeRevision
from forum_api.models.theme import ThemeAsset as ThemeAssetRow
from forum_api.models.user import User
from forum_api.schemas.themes import AssetInput, CreateThemeRequest, UpdateThemeRequest
from forum_api.theming.assets import EXTENSION_TYPES, JsonAsset, ThemeAsset, ThemeAssetFactory
from forum_api.theming.variables import ConfigVariableProvider, VariableProvider, merge_variables

logger = logging.getLogger(__name__)

CURRENT_THEME_CONFIG = "theme.current"

THEME_TYPE_DB = "themeDB"
THEME_TYPE_FILE = "themeFile"

_THEME_KEY_PATTERN = re.compile(r"^[A-Za-z0-9_-]+$")

# Variables surfaced on theme preview cards
PREVIEW_VARIABLES = (
    "global.mainColors.primary",
    "global.mainColors.bg",
    "global.mainColors.fg",
    "titleBar.colors.bg",
)

# Registered for every ThemeService; see register_variable_provider().
_variable_providers: list[VariableProvider] = [ConfigVariableProvider(settings)]


def register_variable_provider(provider: VariableProvider) -> None:
    """Register an addon variable provider for all theme lookups."""
    _variable_providers.append(provider)


def registered_variable_providers() -> list[VariableProvider]:
    return list(_variable_providers)


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def _lookup(variables: dict[str, Any], dotted: str) -> Any:
    value: Any = variables
    for part in dotted.split("."):
        if not isinstance(value, dict) or part not in value:
            return None
        value = value[part]
    return value


@dataclass
class ThemeBundle:
    """A theme and its loaded assets."""

    theme_id: int | str
    type: str
    name: str
    assets: dict[str, ThemeAsset] = field(default_factory=dict)
    version: str | None = None
    current: bool = False
    active: bool | None = None
    parent_theme: str | None = None
    parent_version: str | None = None
    revision_id: int | None = None
    revision_name: str | None = None
    insert_user_id: int | None = None
    date_inserted: datetime | None = None
    date_updated: datetime | None = None
    preview_info: dict[str, Any] = field(default_factory=dict)
    preview_image_url: str | None = None

    @property
    def variables(self) -> dict[str, Any]:
        asset = self.assets.get("variables")
        if asset is None or not isinstance(asset.value, dict):
            return {}
        return asset.value

    def expand_assets(self, expand: bool | list[str]) -> None:
        """Include asset values in JSON for every ``<name>.data`` field expanded."""
        for name, asset in self.assets.items():
            asset.include_value_in_json = is_expand_field(f"{name}.data", expand)

    def to_dict(self) -> dict[str, Any]:
        info = dict(self.preview_info)
        for dotted in PREVIEW_VARIABLES:
            value = _lookup(self.variables, dotted)
            if value is not None:
                info.setdefault(dotted, value)
        return {
            "theme_id": self.theme_id,
            "type": self.type,
            "name": self.name,
            "version": self.version,
            "current": self.current,
            "active": self.active,
            "parent_theme": self.parent_theme,
            "parent_version": self.parent_version,
            "revision_id": self.revision_id,
            "revision_name": self.revision_name,
            "insert_user_id": self.insert_user_id,
            "date_inserted": _iso(self.date_inserted),
            "date_updated": _iso(self.date_updated),
            "assets": {name: asset.to_json() for name, asset in self.assets.items()},
            "preview": {"info": info, "image_url": self.preview_image_url},
        }


def parse_expand(raw: str | None) -> bool | list[str]:
    """Parse an ``expand`` query value: a comma list, ``all``/``true`` or ``false``."""
    if raw is None:
        return False
    value = raw.strip()
    if value.lower() in {"", "false", "0"}:
        return False
    if value.lower() in {"true", "1"}:
        return True
    return [part.strip() for part in value.split(",") if part.strip()]


def is_expand_field(field_name: str, expand: bool | list[str]) -> bool:
    """Whether a field is expanded by a parsed ``expand`` value."""
    if isinstance(expand, bool):
        return expand
    return "all" in expand or field_name in expand


def normalize_theme_key(key: int | str) -> int | str:
    """Numeric keys address database themes; anything else a bundled theme."""
    if isinstance(key, int):
        return key
    key = key.strip()
    return int(key) if key.isdigit() else key


def asset_input_body(asset_input: AssetInput) -> str:
    """Serialize the ``data`` of a JSON asset input to the stored string form."""
    if isinstance(asset_input.data, str):
        return asset_input.data
    return json.dumps(asset_input.data, ensure_ascii=False)


class FileThemeProvider:
    """Read-only themes bundled as directories on disk.

    Layout::

        <themes_path>/<key>/theme.json
        <themes_path>/<key>/assets/<asset>.<ext>
    """

    def __init__(self, themes_path: str | Path, factory: ThemeAssetFactory):
        self.themes_path = Path(themes_path)
        self.factory = factory

    def keys(self) -> list[str]:
        if not self.themes_path.is_dir():
            return []
        return sorted(
            child.name
            for child in self.themes_path.iterdir()
            if (child / "theme.json").is_file()
        )

    def load(self, key: str) -> ThemeBundle | None:
        if not _THEME_KEY_PATTERN.match(key):
            return None
        theme_dir = self.themes_path / key
        manifest_path = theme_dir / "theme.json"
        if not manifest_path.is_file():
            return None

        manifest = json.loads(manifest_path.read_text(encoding="utf-8"))
        assets: dict[str, ThemeAsset] = {}
        assets_dir = theme_dir / "assets"
        if assets_dir.is_dir():
            for path in sorted(assets_dir.iterdir()):
                name, ext = path.stem, path.suffix.lstrip(".")
                asset_type = self.factory.definitions.get(name)
                if asset_type is None or EXTENSION_TYPES.get(ext) != asset_type:
                    logger.warning("Skipping unrecognized asset file %s in theme %s", path.name, key)
                    continue
                assets[name] = self.factory.load_asset(
                    key, name, asset_type, path.read_text(encoding="utf-8")
                )
        for name, url in (manifest.get("images") or {}).items():
            if self.factory.definitions.get(name) == "image":
                assets[name] = self.factory.load_asset(key, name, "image", url)

        preview = manifest.get("preview") or {}
        return ThemeBundle(
            theme_id=key,
            type=THEME_TYPE_FILE,
            name=manifest.get("name", key),
            version=manifest.get("version"),
            assets=assets,
            preview_info=dict(preview.get("info") or {}),
            preview_image_url=preview.get("imageUrl"),
        )


class ThemeService:
    """Service for reading and editing themes."""

    def __init__(
        self,
        db: AsyncSession,
        factory: ThemeAssetFactory | None = None,
        file_provider: FileThemeProvider | None = None,
        variable_providers: list[VariableProvider] | None = None,
    ):
        self.db = db
        self.factory = factory or ThemeAssetFactory()
        self.file_provider = file_provider or FileThemeProvider(settings.themes_path, self.factory)
        self.variable_providers = (
            registered_variable_providers() if variable_providers is None else list(variable_providers)
        )

    # --- Variable providers ---

    def add_variable_provider(self, provider: VariableProvider) -> None:
        self.variable_providers.append(provider)

    def clear_variable_providers(self) -> None:
        self.variable_providers = []

    def _apply_addon_variables(self, theme: ThemeBundle) -> None:
        addon_variables: dict[str, Any] = {}
        for provider in self.variable_providers:
            addon_variables = merge_variables(addon_variables, provider.get_variables())
        if not addon_variables:
            return

        existing = theme.assets.get("variables")
        if existing is not None and not isinstance(existing.value, dict):
            logger.warning("Theme %s has non-object variables; addon variables skipped", theme.theme_id)
            return
        merged = merge_variables(addon_variables, existing.value if existing else {})
        theme.assets["variables"] = self.factory.load_asset(
            theme.theme_id, "variables", "json", json.dumps(merged, ensure_ascii=False)
        )

    # --- Reads ---

    async def get_themes(self) -> list[ThemeBundle]:
        """All bundled themes, then all database themes."""
        current_key = await self._configured_current_key()
        themes = [theme for key in self.file_provider.keys() if (theme := self.file_provider.load(key))]

        result = await self.db.execute(select(Theme).order_by(Theme.theme_id))
        for row in result.scalars().all():
            themes.append(await self._load_db_theme(row))

        for theme in themes:
            theme.current = str(theme.theme_id) == str(current_key)
        return themes

    async def get_theme(
        self,
        key: int | str,
        revision_id: int | None = None,
        allow_addon_variables: bool = True,
    ) -> ThemeBundle:
        """
        Load a theme by ID or bundled key.

        Raises:
            HTTPException: 404 if the theme or the requested revision does not exist
        """
        key = normalize_theme_key(key)
        if isinstance(key, int):
            row = await self.db.get(Theme, key)
            if row is None:
                raise not_found("Theme", f"Theme '{key}' not found")
            theme = await self._load_db_theme(row, revision_id)
        else:
            theme = self.file_provider.load(key)
            if theme is None:
                raise not_found("Theme", f"Theme '{key}' not found")

        if allow_addon_variables:
            self._apply_addon_variables(theme)
        theme.current = str(theme.theme_id) == str(await self._configured_current_key())
        return theme

    async def get_theme_revisions(self, theme_id: int) -> list[ThemeBundle]:
        """Every revision of a database theme, newest first."""
        row = await self.db.get(Theme, theme_id)
        if row is None:
            raise not_found("Theme", f"Theme '{theme_id}' not found")

        result = await self.db.execute(
            select(ThemeRevision)
            .options(selectinload(ThemeRevision.assets))
            .where(ThemeRevision.theme_id == theme_id)
            .order_by(ThemeRevision.revision_id.desc())
        )
        themes = []
        for revision in result.scalars().all():
            theme = self._bundle_from_rows(row, revision)
            theme.active = revision.revision_id == row.revision_id
            themes.append(theme)
        return themes

    async def get_current_theme(self, user: User | None = None) -> ThemeBundle:
        """The user's preview theme, else the site's current theme, else the default."""
        if user is not None:
            preview = await self.db.get(ThemePreview, user.user_id)
            if preview is not None:
                try:
                    return await self.get_theme(preview.theme_key, preview.revision_id)
                except HTTPException as exc:
                    if exc.status_code != status.HTTP_404_NOT_FOUND:
                        raise
                    logger.warning("Preview theme %s no longer exists", preview.theme_key)

        current_key = await self._configured_current_key()
        try:
            return await self.get_theme(current_key)
        except HTTPException as exc:
            if exc.status_code != status.HTTP_404_NOT_FOUND or current_key == settings.default_theme:
                raise
            logger.warning("Current theme %s is missing; using %s", current_key, settings.default_theme)
        return await self.get_theme(settings.default_theme)

    # --- Theme writes ---

    async def post_theme(self, data: CreateThemeRequest, user: User) -> ThemeBundle:
        """Create a database theme, optionally seeded from a bundled parent theme."""
        assets: dict[str, ThemeAsset] = {}
        parent_version = data.parent_version
        if data.parent_theme:
            parent = self.file_provider.load(data.parent_theme)
            if parent is None:
                raise client_error(f"Parent theme '{data.parent_theme}' does not exist.")
            assets.update(parent.assets)
            parent_version = parent_version or parent.version

        assets.update(self._validate_asset_inputs(data.assets))

        theme = Theme(
            name=data.name,
            parent_theme=data.parent_theme,
            parent_version=parent_version,
            insert_user_id=user.user_id,
        )
        self.db.add(theme)
        await self.db.flush()

        await self._write_revision(theme, assets, user)
        await self.db.commit()
        logger.info("Theme %s created by user %s", theme.theme_id, user.user_id)
        return await self.get_theme(theme.theme_id)

    async def patch_theme(self, theme_id: int, data: UpdateThemeRequest, user: User) -> ThemeBundle:
        """Rename a theme and/or replace some of its assets."""
        theme = await self._editable_theme(theme_id)

        if data.name is not None:
            theme.name = data.name
            theme.update_user_id = user.user_id
            theme.date_updated = utcnow()

        if data.assets:
            assets = await self._current_assets(theme)
            assets.update(self._validate_asset_inputs(data.assets))
            await self._write_revision(theme, assets, user)

        await self.db.commit()
        return await self.get_theme(theme.theme_id)

    async def delete_theme(self, theme_id: int) -> None:
        """Delete a theme with its revisions and assets."""
        theme = await self._editable_theme(theme_id)

        config = await self.db.get(SiteConfig, CURRENT_THEME_CONFIG)
        if config is not None and str(config.value) == str(theme.theme_id):
            await self.db.delete(config)

        previews = await self.db.execute(
            select(ThemePreview).where(ThemePreview.theme_key == str(theme.theme_id))
        )
        for preview in previews.scalars().all():
            await self.db.delete(preview)

        # Revisions and their assets go with the theme through relationship cascades.
        await self.db.delete(theme)
        await self.db.commit()
        logger.info("Theme %s deleted", theme_id)

    async def set_current_theme(self, key: int | str) -> ThemeBundle:
        """Make a theme the site's current theme."""
        theme = await self.get_theme(key)

        config = await self.db.get(SiteConfig, CURRENT_THEME_CONFIG)
        if config is None:
            self.db.add(SiteConfig(name=CURRENT_THEME_CONFIG, value=theme.theme_id))
        else:
            config.value = theme.theme_id
        await self.db.commit()

        theme.current = True
        return theme

    async def set_preview_theme(
        self,
        key: int | str | None,
        revision_id: int | None,
        user: User,
    ) -> ThemeBundle:
        """Preview a theme for one user. An empty key clears the preview."""
        preview = await self.db.get(ThemePreview, user.user_id)

        if key is None or str(key).strip() == "":
            if preview is not None:
                await self.db.delete(preview)
                await self.db.commit()
            return await self.get_current_theme(user)

        theme = await self.get_theme(key, revision_id)
        if revision_id is not None and theme.type == THEME_TYPE_FILE:
            raise client_error("Bundled themes have no revisions to preview.")
        if preview is None:
            self.db.add(
                ThemePreview(user_id=user.user_id, theme_key=str(theme.theme_id), revision_id=revision_id)
            )
        else:
            preview.theme_key = str(theme.theme_id)
            preview.revision_id = revision_id
        await self.db.commit()
        return theme

    # --- Asset writes ---

    async def set_asset(self, theme_id: int, name: str, asset: ThemeAsset, user: User) -> None:
        """Create or replace one asset in a new revision."""
        theme = await self._editable_theme(theme_id)
        assets = await self._current_assets(theme)
        assets[name] = asset
        await self._write_revision(theme, assets, user)
        await self.db.commit()

    async def sparse_update_asset(self, theme_id: int, name: str, asset: ThemeAsset, user: User) -> None:
        """Merge a JSON asset into the stored one; other asset types are replaced."""
        theme = await self._editable_theme(theme_id)
        assets = await self._current_assets(theme)
        existing = assets.get(name)

        if (
            isinstance(asset, JsonAsset)
            and isinstance(existing, JsonAsset)
            and isinstance(asset.value, dict)
            and isinstance(existing.value, dict)
        ):
            merged = merge_variables(existing.value, asset.value)
            asset = self.factory.load_asset(theme_id, name, "json", json.dumps(merged, ensure_ascii=False))

        assets[name] = asset
        await self._write_revision(theme, assets, user)
        await self.db.commit()

    async def delete_asset(self, theme_id: int, name: str, user: User) -> None:
        """Remove one asset in a new revision."""
        theme = await self._editable_theme(theme_id)
        assets = await self._current_assets(theme)
        if name not in assets:
            raise not_found("Asset", f"Asset '{name}' not found")
        del assets[name]
        await self._write_revision(theme, assets, user)
        await self.db.commit()

    # --- Helpers ---

    async def _configured_current_key(self) -> int | str:
        config = await self.db.get(SiteConfig, CURRENT_THEME_CONFIG)
        if config is None or config.value in (None, ""):
            return settings.default_theme
        return normalize_theme_key(config.value)

    async def _editable_theme(self, theme_id: int | str) -> Theme:
        key = normalize_theme_key(theme_id)
        if not isinstance(key, int):
            if self.file_provider.load(key) is None:
                raise not_found("Theme", f"Theme '{key}' not found")
            raise client_error(f"Theme '{key}' is bundled with the application and cannot be modified.")
        theme = await self.db.get(Theme, key)
        if theme is None:
            raise not_found("Theme", f"Theme '{key}' not found")
        return theme

    async def _load_db_theme(self, row: Theme, revision_id: int | None = None) -> ThemeBundle:
        revision_id = revision_id or row.revision_id
        result = await self.db.execute(
            select(ThemeRevision)
            .options(selectinload(ThemeRevision.assets))
            .where(ThemeRevision.revision_id == revision_id)
        )
        revision = result.scalar_one_or_none()
        if revision is None or revision.theme_id != row.theme_id:
            raise not_found("Revision", f"Revision '{revision_id}' not found for theme '{row.theme_id}'")
        return self._bundle_from_rows(row, revision)

    def _bundle_from_rows(self, row: Theme, revision: ThemeRevision) -> ThemeBundle:
        assets = {
            asset.asset_key: self.factory.load_asset(row.theme_id, asset.asset_key, asset.asset_type, asset.data)
            for asset in sorted(revision.assets, key=lambda a: a.asset_key)
        }
        return ThemeBundle(
            theme_id=row.theme_id,
            type=THEME_TYPE_DB,
            name=row.name,
            version=row.parent_version,
            parent_theme=row.parent_theme,
            parent_version=row.parent_version,
            revision_id=revision.revision_id,
            revision_name=revision.name,
            insert_user_id=row.insert_user_id,
            date_inserted=row.date_inserted,
            date_updated=row.date_updated,
            assets=assets,
        )

    async def _current_assets(self, theme: Theme) -> dict[str, ThemeAsset]:
        result = await self.db.execute(
            select(ThemeAssetRow)
            .where(ThemeAssetRow.revision_id == theme.revision_id)
            .order_by(ThemeAssetRow.asset_key)
        )
        return {
            row.asset_key: self.factory.load_asset(theme.theme_id, row.asset_key, row.asset_type, row.data)
            for row in result.scalars().all()
        }

    def _validate_asset_inputs(self, inputs: dict[str, AssetInput]) -> dict[str, ThemeAsset]:
        return {
            name: self.factory.create_asset("new", asset_input.type, name, asset_input_body(asset_input))
            for name, asset_input in inputs.items()
        }

    async def _write_revision(self, theme: Theme, assets: dict[str, ThemeAsset], user: User) -> ThemeRevision:
        revision = ThemeRevision(theme_id=theme.theme_id, insert_user_id=user.user_id)
        self.db.add(revision)
        await self.db.flush()

        for name, asset in assets.items():
            self.db.add(
                ThemeAssetRow(
                    theme_id=theme.theme_id,
                    revision_id=revision.revision_id,
                    asset_key=name,
                    asset_type=asset.type,
                    data=str(asset),
                )
            )

        if theme.revision_id is not None:
            theme.update_user_id = user.user_id
            theme.date_updated = utcnow()
        theme.revision_id = revision.revision_id
        await self.db.flush()
        return revision
