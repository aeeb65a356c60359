"""HTTP session construction for Livy gateways.

This module centralizes creation of the requests Session used by the
transport and page fetcher, and applies small normalization rules to the
configured URL.
"""

from __future__ import annotations

import requests

from livyops.core.config import LivyConfig


class AuthError(RuntimeError):
    """Raised when the connection settings are unusable."""


def sanitize_url(url: str | None) -> str | None:
    """
    Normalize a Livy URL.

    - Removes query strings (e.g. '?session=1')
    - Removes trailing slashes
    """
    if not url:
        return url
    url = url.split("?", 1)[0]
    return url.rstrip("/")


def check_config(config: LivyConfig) -> LivyConfig:
    """Return the config with a sanitized URL, or raise AuthError."""
    url = sanitize_url(config.url)
    if not url:
        raise AuthError("No Livy URL configured. Set LIVYOPS_URL or pass --url.")
    if not url.startswith(("http://", "https://")):
        raise AuthError(f"Livy URL must start with http:// or https://, got {url!r}")
    if config.username and config.password is None:
        raise AuthError(f"No password configured for user {config.username!r}. Set LIVYOPS_PASSWORD.")
    return config.with_overrides(url=url)


def build_http_session(config: LivyConfig) -> requests.Session:
    """
    Create a requests Session carrying credentials and identity headers.

    Every request sends the product identity (``User-Agent``) and the
    anti-forgery header (``X-Requested-By``) taken from the config.
    """
    session = requests.Session()
    session.headers.update(
        {
            "Content-Type": "application/json",
            "User-Agent": config.user_agent,
            "X-Requested-By": config.requested_by,
        }
    )
    if config.username:
        session.auth = (config.username, config.password or "")
    session.verify = config.verify_tls
    return session
