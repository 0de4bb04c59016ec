"""Forum API keys.

A key is ``fk_live_`` followed by 64 hex characters. Only a keyed
HMAC-SHA256 digest of it is stored.
"""

import hashlib
import hmac
import re
import secrets
from typing import NamedTuple

from forum_api.config import settings

API_KEY_PREFIX = "fk_live_"
DISPLAY_PREFIX_LENGTH = 12

_KEY_PATTERN = re.compile(rf"^{API_KEY_PREFIX}[0-9a-f]{{64}}$")


class IssuedKey(NamedTuple):
    plaintext: str
    key_hash: str
    display_prefix: str


def issue_api_key() -> IssuedKey:
    """Mint a new key. The plaintext is returned once and never stored."""
    plaintext = API_KEY_PREFIX + secrets.token_hex(32)
    return IssuedKey(plaintext, hash_api_key(plaintext), plaintext[:DISPLAY_PREFIX_LENGTH])


def hash_api_key(key: str) -> str:
    return hmac.new(
        settings.api_key_secret.encode(),
        key.encode(),
        hashlib.sha256,
    ).hexdigest()


def is_well_formed(key: str) -> bool:
    """Cheap shape check done before any database lookup."""
    return bool(_KEY_PATTERN.match(key))
