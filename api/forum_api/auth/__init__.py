"""API key authentication for the forum API."""

from forum_api.auth.keys import IssuedKey, hash_api_key, is_well_formed, issue_api_key

__all__ = [
    "IssuedKey",
    "hash_api_key",
    "is_well_formed",
    "issue_api_key",
]
