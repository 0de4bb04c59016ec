"""Shared schema configuration.

Fields are declared in snake_case and exchanged in the forum's camelCase
wire format, where identifier suffixes are spelled ``ID``
(``theme_id`` <-> ``themeID``).
"""

import re

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

_ID_SUFFIX = re.compile(r"Id(?=$|[A-Z])")


def to_wire_name(name: str) -> str:
    """Convert a snake_case field name to its wire name."""
    return _ID_SUFFIX.sub("ID", to_camel(name))


class ApiModel(BaseModel):
    """Base model for request and response bodies."""

    model_config = ConfigDict(
        alias_generator=to_wire_name,
        populate_by_name=True,
    )
