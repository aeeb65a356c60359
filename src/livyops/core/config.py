"""Runtime configuration.

A single LivyConfig is built at startup (from the environment, optionally
overridden by CLI options) and handed to everything that needs it.

```
LIVYOPS_URL=http://livy.example.com:8998
LIVYOPS_USERNAME=admin
LIVYOPS_PASSWORD=secret
LIVYOPS_YARN_UI_PREFIX=/yarnui
LIVYOPS_RETRIES_MAX=3
LIVYOPS_DELAY_SECONDS=10
```
"""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from importlib.metadata import PackageNotFoundError, version

_ENV_PREFIX = "LIVYOPS_"


def _product_version() -> str:
    try:
        return version("livy-ops")
    except PackageNotFoundError:
        return "0.0.0"


def _env(name: str) -> str | None:
    raw = os.getenv(_ENV_PREFIX + name)
    if raw is None or not raw.strip():
        return None
    return raw.strip()


def _env_int(name: str, default: int) -> int:
    raw = _env(name)
    if raw is None:
        return default
    try:
        return max(int(raw), 0)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = _env(name)
    if raw is None:
        return default
    try:
        return max(float(raw), 0.0)
    except ValueError:
        return default


def _env_bool(name: str, default: bool) -> bool:
    raw = _env(name)
    if raw is None:
        return default
    return raw.lower() not in {"0", "false", "no", "off"}


@dataclass(frozen=True)
class LivyConfig:
    """
    Connection and polling settings.

    Attributes:
        url: Livy root URL (batches live under ``/batches``, sessions
            under ``/sessions``).
        username: Basic-auth user, if the gateway requires one.
        password: Basic-auth password.
        yarn_ui_prefix: Path of the YARN UI on the same gateway.
        requested_by: Value of the ``X-Requested-By`` header.
        user_agent: Product identity sent as ``User-Agent``.
        retries_max: Attempts per polling operation.
        delay_seconds: Pause between polling attempts.
        timeout: Per-request timeout in seconds.
        page_cache_ttl: Lifetime of cached YARN UI pages in seconds.
        verify_tls: Verify server certificates.
    """

    url: str = ""
    username: str | None = None
    password: str | None = None
    yarn_ui_prefix: str = "/yarnui"
    requested_by: str = "ambari"
    user_agent: str = f"livy-ops/{_product_version()}"
    retries_max: int = 3
    delay_seconds: float = 10
    timeout: float = 30
    page_cache_ttl: float = 300
    verify_tls: bool = True

    @classmethod
    def from_env(cls) -> "LivyConfig":
        """Create a config from ``LIVYOPS_*`` environment variables."""
        defaults = cls()
        return cls(
            url=_env("URL") or "",
            username=_env("USERNAME"),
            password=_env("PASSWORD"),
            yarn_ui_prefix=_env("YARN_UI_PREFIX") or defaults.yarn_ui_prefix,
            requested_by=_env("REQUESTED_BY") or defaults.requested_by,
            user_agent=_env("USER_AGENT") or defaults.user_agent,
            retries_max=max(_env_int("RETRIES_MAX", defaults.retries_max), 1),
            delay_seconds=_env_float("DELAY_SECONDS", defaults.delay_seconds),
            timeout=_env_float("TIMEOUT", defaults.timeout),
            page_cache_ttl=_env_float("PAGE_CACHE_TTL", defaults.page_cache_ttl),
            verify_tls=_env_bool("VERIFY_TLS", defaults.verify_tls),
        )

    def with_overrides(self, **overrides) -> "LivyConfig":
        """Return a copy with every non-None override applied."""
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})

    @property
    def batches_url(self) -> str:
        return f"{self.url.rstrip('/')}/batches"

    @property
    def sessions_base_url(self) -> str:
        return self.url.rstrip("/")
