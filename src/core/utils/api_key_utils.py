"""API key generation, fingerprinting and masking.

Format: ``sbx_`` followed by 48 characters from [0-9A-Za-z], 52 characters in total.
Every generated key has the same length, which is what lets the masked form keep
the original length without revealing anything beyond the display prefix.
"""

import hashlib
import re
import secrets
import string

API_KEY_SCHEME = "sbx_"
API_KEY_BODY_LENGTH = 48
API_KEY_LENGTH = len(API_KEY_SCHEME) + API_KEY_BODY_LENGTH
API_KEY_PREFIX_LENGTH = 15
MASK_CHAR = "*"

_ALPHABET = string.digits + string.ascii_uppercase + string.ascii_lowercase
API_KEY_PATTERN = re.compile(rf"^{API_KEY_SCHEME}[0-9A-Za-z]{{{API_KEY_BODY_LENGTH}}}$")


def generate_api_key() -> str:
    """Generate a new API key from a CSPRNG."""
    body = "".join(secrets.choice(_ALPHABET) for _ in range(API_KEY_BODY_LENGTH))
    return f"{API_KEY_SCHEME}{body}"


def hash_api_key(api_key: str) -> str:
    """SHA-256 hex digest used for storage and lookup.

    No salt: keys carry 48 uniformly random characters, so a precomputed table
    is not a practical attack.
    """
    return hashlib.sha256(api_key.encode("utf-8")).hexdigest()


def extract_api_key_prefix(api_key: str) -> str:
    """Return the non-secret display prefix (first 15 characters)."""
    return api_key[:API_KEY_PREFIX_LENGTH]


def mask_api_key(api_key: str) -> str:
    """Mask everything after the display prefix, preserving length."""
    prefix = extract_api_key_prefix(api_key)
    return prefix + MASK_CHAR * (len(api_key) - len(prefix))


def mask_key_prefix(key_prefix: str) -> str:
    """Build the masked display form from a stored prefix.

    Equivalent to ``mask_api_key`` on the original key, since all keys share API_KEY_LENGTH.
    """
    return key_prefix + MASK_CHAR * (API_KEY_LENGTH - len(key_prefix))


def is_api_key_format(value: str | None) -> bool:
    """Check that a presented value looks like one of our keys."""
    return bool(value) and API_KEY_PATTERN.match(value) is not None
