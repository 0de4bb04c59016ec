"""Themes router for theme CRUD, revisions, and assets."""

import json
from pathlib import PurePosixPath
from typing import Literal

from fastapi import APIRouter, Depends, Query, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import HTMLResponse
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from forum_api.auth.dependencies import SCOPE_SETTINGS_MANAGE, get_current_user, require_scope
from forum_api.config import settings
from forum_api.database import get_db
from forum_api.errors import client_error, not_found
from forum_api.models.user import APIKey, User
from forum_api.schemas.themes import (
    AssetInput,
    CreateThemeRequest,
    SetCurrentThemeRequest,
    SetPreviewThemeRequest,
    ThemeResponse,
    UpdateThemeRequest,
)
from forum_api.theming.assets import ThemeAsset
from forum_api.theming.header_logo import render_header_logo
from forum_api.theming.service import (
    ThemeBundle,
    ThemeService,
    asset_input_body,
    parse_expand,
)

router = APIRouter(prefix="/api/v2/themes", tags=["Themes"])


def get_theme_service(db: AsyncSession = Depends(get_db)) -> ThemeService:
    return ThemeService(db)


def _theme_response(theme: ThemeBundle) -> ThemeResponse:
    return ThemeResponse(**theme.to_dict())


def split_asset_path(asset_path: str) -> tuple[str, str]:
    """Split ``styles.css`` into ``("styles", "css")``; the extension may be empty."""
    path = PurePosixPath(asset_path)
    return path.stem, path.suffix.lstrip(".")


async def _extract_input_asset(
    service: ThemeService,
    theme: ThemeBundle,
    asset_path: str,
    request: Request,
) -> tuple[ThemeAsset, str]:
    """Build and validate the asset sent with a PUT or PATCH.

    With an extension in the path the raw body is the asset; without one the
    body is a JSON ``{"type", "data"}`` document.
    """
    name, ext = split_asset_path(asset_path)
    if ext:
        asset_type = service.factory.type_for_extension(ext)
        try:
            body = (await request.body()).decode("utf-8")
        except UnicodeDecodeError:
            raise client_error("Asset body must be UTF-8 text.") from None
    else:
        try:
            payload = await request.json()
        except (json.JSONDecodeError, UnicodeDecodeError):
            raise client_error("Request body must be a JSON object with 'type' and 'data'.") from None
        try:
            asset_input = AssetInput.model_validate(payload)
        except ValidationError as exc:
            errors = [{**error, "loc": ("body", *error["loc"])} for error in exc.errors()]
            raise RequestValidationError(errors) from exc
        asset_type = asset_input.type
        body = asset_input_body(asset_input)

    asset = service.factory.create_asset(theme.theme_id, asset_type, name, body)
    return asset, name


def _asset_response(theme: ThemeBundle, asset_path: str) -> Response:
    name, ext = split_asset_path(asset_path)
    asset = theme.assets.get(name)
    if asset is None:
        raise not_found("Asset", f"Asset '{name}' not found")

    if ext:
        body, media_type = asset.render(ext)
        return Response(content=body, media_type=media_type)

    asset.include_value_in_json = True
    return Response(content=json.dumps(asset.to_json(), ensure_ascii=False), media_type="application/json")


# --- List Themes ---


@router.get(
    "",
    response_model=list[ThemeResponse],
    status_code=status.HTTP_200_OK,
)
async def list_themes(
    service: ThemeService = Depends(get_theme_service),
    auth: tuple[User, APIKey] = Depends(get_current_user),
) -> list[ThemeResponse]:
    """List bundled themes followed by database themes."""
    return [_theme_response(theme) for theme in await service.get_themes()]


# --- Current & Preview ---


@router.get(
    "/current",
    response_model=ThemeResponse,
    status_code=status.HTTP_200_OK,
)
async def get_current_theme(
    service: ThemeService = Depends(get_theme_service),
    auth: tuple[User, APIKey] = Depends(get_current_user),
) -> ThemeResponse:
    """
    Get the current theme.

    A preview theme set by the caller takes precedence over the site's theme.
    """
    user, _ = auth
    return _theme_response(await service.get_current_theme(user))


@router.put(
    "/current",
    response_model=ThemeResponse,
    status_code=status.HTTP_200_OK,
)
async def set_current_theme(
    data: SetCurrentThemeRequest,
    service: ThemeService = Depends(get_theme_service),
    auth: tuple[User, APIKey] = Depends(require_scope(SCOPE_SETTINGS_MANAGE)),
) -> ThemeResponse:
    """Set the site's current theme."""
    return _theme_response(await service.set_current_theme(data.theme_id))


@router.put(
    "/preview",
    response_model=ThemeResponse,
    status_code=status.HTTP_200_OK,
)
async def set_preview_theme(
    data: SetPreviewThemeRequest,
    service: ThemeService = Depends(get_theme_service),
    auth: tuple[User, APIKey] = Depends(require_scope(SCOPE_SETTINGS_MANAGE)),
) -> ThemeResponse:
    """
    Preview a theme for the calling user only.

    Omit ``themeID`` to stop previewing.
    """
    user, _ = auth
    return _theme_response(await service.set_preview_theme(data.theme_id, data.revision_id, user))


# --- Create Theme ---


@router.post(
    "",
    response_model=ThemeResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_theme(
    data: CreateThemeRequest,
    service: ThemeService = Depends(get_theme_service),
    auth: tuple[User, APIKey] = Depends(require_scope(SCOPE_SETTINGS_MANAGE)),
) -> ThemeResponse:
    """
    Create a database theme.

    Assets of ``parentTheme`` are copied in first; assets in the body override them.
    """
    user, _ = auth
    return _theme_response(await service.post_theme(data, user))


# --- Get Theme ---


@router.get(
    "/{theme_key}",
    response_model=ThemeResponse,
    status_code=status.HTTP_200_OK,
)
async def get_theme(
    theme_key: str,
    service: ThemeService = Depends(get_theme_service),
    auth: tuple[User, APIKey] = Depends(get_current_user),
    allow_addon_variables: bool = Query(default=True, alias="allowAddonVariables"),
    revision_id: int | None = Query(default=None, alias="revisionID"),
    expand: str | None = Query(
        default=None,
        description="Comma-separated '<asset>.data' fields, or 'all'",
    ),
) -> ThemeResponse:
    """Get a theme by ID or bundled theme key."""
    theme = await service.get_theme(theme_key, revision_id, allow_addon_variables)
    theme.expand_assets(parse_expand(expand))
    return _theme_response(theme)


@router.get(
    "/{theme_id}/revisions",
    response_model=list[ThemeResponse],
    status_code=status.HTTP_200_OK,
)
async def list_theme_revisions(
    theme_id: int,
    service: ThemeService = Depends(get_theme_service),
    auth: tuple[User, APIKey] = Depends(get_current_user),
) -> list[ThemeResponse]:
    """List revisions of a database theme, newest first."""
    return [_theme_response(theme) for theme in await service.get_theme_revisions(theme_id)]


# --- Update Theme ---


@router.patch(
    "/{theme_id}",
    response_model=ThemeResponse,
    status_code=status.HTTP_200_OK,
)
async def update_theme(
    theme_id: str,
    data: UpdateThemeRequest,
    service: ThemeService = Depends(get_theme_service),
    auth: tuple[User, APIKey] = Depends(require_scope(SCOPE_SETTINGS_MANAGE)),
) -> ThemeResponse:
    """Rename a theme and/or replace some of its assets."""
    user, _ = auth
    return _theme_response(await service.patch_theme(theme_id, data, user))


# --- Delete Theme ---


@router.delete(
    "/{theme_id}",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def delete_theme(
    theme_id: str,
    service: ThemeService = Depends(get_theme_service),
    auth: tuple[User, APIKey] = Depends(require_scope(SCOPE_SETTINGS_MANAGE)),
) -> None:
    """Delete a database theme with all of its revisions."""
    await service.delete_theme(theme_id)


# --- Header Logo ---


@router.get(
    "/{theme_key}/header-logo",
    response_class=HTMLResponse,
    status_code=status.HTTP_200_OK,
)
async def get_header_logo(
    theme_key: str,
    service: ThemeService = Depends(get_theme_service),
    auth: tuple[User, APIKey] = Depends(get_current_user),
    logo_type: Literal["desktop", "mobile"] = Query(default="desktop", alias="logoType"),
) -> Response:
    """
    Render the title bar logo of a theme.

    Use ``current`` as the key for the caller's current theme. Returns 204
    when the theme hides its logo.
    """
    user, _ = auth
    if theme_key == "current":
        theme = await service.get_current_theme(user)
    else:
        theme = await service.get_theme(theme_key)

    html = render_header_logo(theme, logo_type, site_title=settings.site_title)
    if html is None:
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    return HTMLResponse(html)


# --- Assets ---


@router.get(
    "/{theme_key}/assets/{asset_path}",
    status_code=status.HTTP_200_OK,
)
async def get_theme_asset(
    theme_key: str,
    asset_path: str,
    service: ThemeService = Depends(get_theme_service),
    auth: tuple[User, APIKey] = Depends(get_current_user),
) -> Response:
    """
    Get one asset of a theme.

    ``header`` returns the asset's JSON description; ``header.html`` returns
    the raw asset rendered for that extension.
    """
    theme = await service.get_theme(theme_key)
    return _asset_response(theme, asset_path)


@router.put(
    "/{theme_id}/assets/{asset_path}",
    status_code=status.HTTP_200_OK,
)
async def put_theme_asset(
    theme_id: str,
    asset_path: str,
    request: Request,
    service: ThemeService = Depends(get_theme_service),
    auth: tuple[User, APIKey] = Depends(require_scope(SCOPE_SETTINGS_MANAGE)),
) -> Response:
    """Create or replace an asset."""
    user, _ = auth
    theme = await service.get_theme(theme_id, allow_addon_variables=False)
    asset, name = await _extract_input_asset(service, theme, asset_path, request)
    await service.set_asset(theme_id, name, asset, user)
    return _asset_response(await service.get_theme(theme_id), asset_path)


@router.patch(
    "/{theme_id}/assets/{asset_path}",
    status_code=status.HTTP_200_OK,
)
async def patch_theme_asset(
    theme_id: str,
    asset_path: str,
    request: Request,
    service: ThemeService = Depends(get_theme_service),
    auth: tuple[User, APIKey] = Depends(require_scope(SCOPE_SETTINGS_MANAGE)),
) -> Response:
    """Merge into a JSON asset; other asset types are replaced."""
    user, _ = auth
    theme = await service.get_theme(theme_id, allow_addon_variables=False)
    asset, name = await _extract_input_asset(service, theme, asset_path, request)
    await service.sparse_update_asset(theme_id, name, asset, user)
    return _asset_response(await service.get_theme(theme_id), asset_path)


@router.delete(
    "/{theme_id}/assets/{asset_path}",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def delete_theme_asset(
    theme_id: str,
    asset_path: str,
    service: ThemeService = Depends(get_theme_service),
    auth: tuple[User, APIKey] = Depends(require_scope(SCOPE_SETTINGS_MANAGE)),
) -> None:
    """Delete an asset."""
    user, _ = auth
    name, _ = split_asset_path(asset_path)
    await service.delete_asset(theme_id, name, user)
