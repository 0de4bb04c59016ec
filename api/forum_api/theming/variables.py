"""Theme variable providers.

Providers contribute variables that sit underneath a theme's own
``variables`` asset: the theme's values win, nested objects merge, and
anything else (including lists) is replaced.
"""

import copy
from typing import Any

from forum_api.config import Settings


def merge_variables(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge ``override`` onto ``base`` without mutating either."""
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = merge_variables(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


class VariableProvider:
    """Source of addon-level theme variables."""

    def get_variables(self) -> dict[str, Any]:
        raise NotImplementedError


class ConfigVariableProvider(VariableProvider):
    """Site-wide defaults from configuration."""

    def __init__(self, settings: Settings):
        self.settings = settings

    def get_variables(self) -> dict[str, Any]:
        variables = {"navigation": {"logo": {"url": self.settings.site_url}}}
        return merge_variables(variables, self.settings.theme_variables_dict)
