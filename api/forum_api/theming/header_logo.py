"""Server-side rendering of the title bar logo."""

from html import escape
from typing import Literal
from urllib.parse import urlsplit

from forum_api.theming.service import ThemeBundle

LogoType = Literal["desktop", "mobile"]

LOGO_ASSETS: dict[str, str] = {
    "desktop": "logo",
    "mobile": "mobileLogo",
}


def _variable(variables: dict, *path: str, default: str) -> str:
    value = variables
    for part in path:
        if not isinstance(value, dict):
            return default
        value = value.get(part)
    return value if isinstance(value, str) and value else default


def _safe_link(url: str) -> str:
    """Site-relative or http(s) URLs only; anything else links home."""
    if url.startswith("/") and not url.startswith(("//", "/\\")):
        return url
    if urlsplit(url.strip()).scheme.lower() in ("http", "https"):
        return url
    return "/"


def render_theme_logo(theme: ThemeBundle, logo_type: LogoType, alt: str, class_name: str) -> str:
    """The logo image, or the alt text when the theme has no logo for this type."""
    asset = theme.assets.get(LOGO_ASSETS[logo_type])
    if logo_type == "mobile" and asset is None:
        asset = theme.assets.get(LOGO_ASSETS["desktop"])
    if asset is None or not asset.url:
        return f'<span class="{escape(class_name)}">{escape(alt)}</span>'
    return f'<img src="{escape(asset.url)}" alt="{escape(alt)}" class="{escape(class_name)}">'


def render_header_logo(
    theme: ThemeBundle,
    logo_type: LogoType = "desktop",
    site_title: str = "Vanilla",
    class_name: str | None = None,
    logo_class_name: str | None = None,
) -> str | None:
    """
    Render the header logo link for a theme.

    Returns None when the theme hides the logo
    (``titleBar.logo.doubleLogoStrategy`` is ``hidden``).
    """
    variables = theme.variables
    strategy = _variable(variables, "titleBar", "logo", "doubleLogoStrategy", default="visible")
    if strategy == "hidden":
        return None

    url = _safe_link(_variable(variables, "navigation", "logo", "url", default="/"))
    link_class = " ".join(filter(None, ["headerLogo", class_name]))
    logo_class = " ".join(filter(None, ["headerLogo-logo", logo_class_name]))
    logo = render_theme_logo(theme, logo_type, site_title, logo_class)
    return (
        f'<a href="{escape(url)}" class="{escape(link_class)}">'
        f'<span class="headerLogo-logoFrame">{logo}</span>'
        "</a>"
    )
