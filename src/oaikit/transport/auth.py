"""
API key resolution utilities.

Resolves API keys from multiple sources:
1. Explicit value
2. Environment variables
3. System keyring (optional)
"""

from __future__ import annotations

import os

from oaikit._features import HAS_KEYRING

DEFAULT_API_KEY_ENV = "OPENAI_API_KEY"
KEYRING_SERVICE = "oaikit"


def resolve_api_key(
    explicit_key: str | None = None,
    *,
    env_var: str = DEFAULT_API_KEY_ENV,
    keyring_user: str = "openai",
) -> str | None:
    """Resolve the API key.

    Resolution order:
    1. Explicit key if provided
    2. Environment variable (``OPENAI_API_KEY`` by default)
    3. System keyring, service ``oaikit`` (if keyring is installed)

    Args:
        explicit_key: Explicitly provided API key
        env_var: Environment variable to read
        keyring_user: Keyring user name under the ``oaikit`` service

    Returns:
        Resolved API key or None if not found
    """
    if explicit_key:
        return explicit_key

    key = os.getenv(env_var)
    if key:
        return key

    return keyring_api_key(keyring_user)


def keyring_api_key(user: str = "openai") -> str | None:
    """Try to get the API key from the system keyring."""
    if not HAS_KEYRING:
        return None

    import keyring
    from keyring.errors import KeyringError

    try:
        return keyring.get_password(KEYRING_SERVICE, user)
    except KeyringError:
        # No usable backend (common in containers and CI)
        return None


def bearer_header(api_key: str | None) -> dict[str, str]:
    """Authorization header for a key, empty when there is no key."""
    if not api_key:
        return {}
    return {"Authorization": f"Bearer {api_key}"}
