import pytest

from livyops.core.auth import AuthError, build_http_session, check_config, sanitize_url
from livyops.core.config import LivyConfig


def test_from_env(monkeypatch):
    monkeypatch.setenv("LIVYOPS_URL", "https://gw.example.com/livy")
    monkeypatch.setenv("LIVYOPS_USERNAME", "admin")
    monkeypatch.setenv("LIVYOPS_PASSWORD", "secret")
    monkeypatch.setenv("LIVYOPS_RETRIES_MAX", "0")
    monkeypatch.setenv("LIVYOPS_DELAY_SECONDS", "2.5")
    monkeypatch.setenv("LIVYOPS_VERIFY_TLS", "false")
    monkeypatch.setenv("LIVYOPS_TIMEOUT", "not-a-number")

    config = LivyConfig.from_env()

    assert config.url == "https://gw.example.com/livy"
    assert (config.username, config.password) == ("admin", "secret")
    assert config.retries_max == 1
    assert config.delay_seconds == 2.5
    assert config.verify_tls is False
    assert config.timeout == 30
    assert config.batches_url == "https://gw.example.com/livy/batches"


def test_overrides_ignore_none():
    config = LivyConfig(url="http://a:8998", retries_max=3).with_overrides(url=None, retries_max=5)

    assert config.url == "http://a:8998"
    assert config.retries_max == 5


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("http://livy:8998/", "http://livy:8998"),
        ("http://livy:8998/ui?session=1", "http://livy:8998/ui"),
        ("", ""),
    ],
)
def test_sanitize_url(raw, expected):
    assert sanitize_url(raw) == expected


def test_check_config_requires_http_url():
    with pytest.raises(AuthError, match="No Livy URL"):
        check_config(LivyConfig())
    with pytest.raises(AuthError, match="http"):
        check_config(LivyConfig(url="livy:8998"))


def test_check_config_requires_password_for_user():
    with pytest.raises(AuthError, match="admin"):
        check_config(LivyConfig(url="http://livy:8998", username="admin"))


def test_build_http_session_headers():
    config = check_config(LivyConfig(url="http://livy:8998/", username="admin", password="pw"))
    session = build_http_session(config)

    assert config.url == "http://livy:8998"
    assert session.auth == ("admin", "pw")
    assert session.headers["X-Requested-By"] == "ambari"
    assert session.headers["User-Agent"].startswith("livy-ops/")
