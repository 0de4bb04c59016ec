"""Theme assets and the factory that validates them.

An asset is one themeable resource of a theme: an HTML fragment, a
stylesheet, a script, a JSON document (variables, fonts, scripts) or an
image reference. Assets are stored as strings and parsed on load.
"""

import json
from typing import Any

from forum_api.config import settings
from forum_api.errors import client_error

# Asset name -> asset type
ASSET_DEFINITIONS: dict[str, str] = {
    "header": "html",
    "footer": "html",
    "styles": "css",
    "javascript": "js",
    "variables": "json",
    "fonts": "json",
    "scripts": "json",
    "logo": "image",
    "mobileLogo": "image",
}

# JSON assets that hold a list rather than an object
JSON_LIST_ASSETS = {"fonts", "scripts"}

# File extension -> asset type
EXTENSION_TYPES: dict[str, str] = {
    "html": "html",
    "css": "css",
    "js": "js",
    "json": "json",
}

CONTENT_TYPES: dict[str, str] = {
    "html": "text/html",
    "css": "text/css",
    "js": "application/javascript",
    "json": "application/json",
}


class ThemeAsset:
    """Base class for a single theme asset."""

    type = ""
    allowed_types: tuple[str, ...] = ()

    def __init__(self, name: str, data: str, url: str | None = None):
        self.name = name
        self.url = url
        self.include_value_in_json = False
        self._data = data

    @property
    def value(self) -> Any:
        """The asset's value as exposed in expanded JSON."""
        return self._data

    def __str__(self) -> str:
        return self._data

    def to_json(self) -> dict[str, Any]:
        out: dict[str, Any] = {"type": self.type, "url": self.url}
        if self.include_value_in_json:
            out["data"] = self.value
        return out

    def render(self, ext: str) -> tuple[str, str]:
        """Render the raw asset body for a file extension.

        Returns:
            Tuple of (body, media_type).
        """
        if ext not in self.allowed_types:
            raise client_error(f"Invalid extension '.{ext}' for asset '{self.name}'.")
        return str(self), CONTENT_TYPES[ext]


class HtmlAsset(ThemeAsset):
    type = "html"
    allowed_types = ("html",)


class CssAsset(ThemeAsset):
    type = "css"
    allowed_types = ("css",)


class JavascriptAsset(ThemeAsset):
    type = "js"
    allowed_types = ("js",)


class JsonAsset(ThemeAsset):
    """JSON document asset. Invalid JSON is rejected at construction."""

    type = "json"
    allowed_types = ("json",)

    def __init__(self, name: str, data: str, url: str | None = None):
        super().__init__(name, data, url)
        try:
            self._value = json.loads(data) if data.strip() else {}
        except json.JSONDecodeError as exc:
            raise client_error(f"Asset '{name}' is not valid JSON: {exc.msg}.") from exc

    @property
    def value(self) -> Any:
        return self._value

    def __str__(self) -> str:
        return json.dumps(self._value, ensure_ascii=False)


class ImageAsset(ThemeAsset):
    """Reference to an image. The stored data is the image URL."""

    type = "image"

    def __init__(self, name: str, data: str, url: str | None = None):
        super().__init__(name, data.strip(), url)
        self.url = self._data


ASSET_CLASSES: dict[str, type[ThemeAsset]] = {
    "html": HtmlAsset,
    "css": CssAsset,
    "js": JavascriptAsset,
    "json": JsonAsset,
    "image": ImageAsset,
}


def asset_url(theme_key: int | str, name: str, asset_type: str) -> str | None:
    """Public URL of an asset's raw form, or None for types without one."""
    asset_class = ASSET_CLASSES.get(asset_type, ThemeAsset)
    if not asset_class.allowed_types:
        return None
    base = settings.site_url.rstrip("/")
    return f"{base}/api/v2/themes/{theme_key}/assets/{name}.{asset_class.allowed_types[0]}"


class ThemeAssetFactory:
    """Create assets, validating names, types and bodies."""

    def __init__(self, definitions: dict[str, str] | None = None):
        self.definitions = dict(definitions or ASSET_DEFINITIONS)

    def type_for_extension(self, ext: str) -> str:
        try:
            return EXTENSION_TYPES[ext]
        except KeyError:
            raise client_error(f"Unsupported asset extension '.{ext}'.") from None

    def create_asset(
        self,
        theme_key: int | str,
        asset_type: str,
        name: str,
        body: str,
    ) -> ThemeAsset:
        """Build an asset from client input.

        Raises:
            HTTPException: 400 if the name is unknown, the type does not match
                the asset's definition, or the body is invalid for the type.
        """
        expected_type = self.definitions.get(name)
        if expected_type is None:
            raise client_error(f"Invalid asset name '{name}'.")
        if asset_type != expected_type:
            raise client_error(
                f"Asset '{name}' must be of type '{expected_type}', got '{asset_type}'."
            )

        asset = self.load_asset(theme_key, name, asset_type, body)

        if isinstance(asset, JsonAsset):
            expected = list if name in JSON_LIST_ASSETS else dict
            if not isinstance(asset.value, expected):
                kind = "an array" if expected is list else "an object"
                raise client_error(f"Asset '{name}' must be {kind}.")
        elif isinstance(asset, ImageAsset) and not asset.url:
            raise client_error(f"Asset '{name}' requires an image URL.")

        return asset

    def load_asset(self, theme_key: int | str, name: str, asset_type: str, body: str) -> ThemeAsset:
        """Build an asset from trusted storage without validating its definition."""
        asset_class = ASSET_CLASSES.get(asset_type, ThemeAsset)
        return asset_class(name, body, asset_url(theme_key, name, asset_type))
