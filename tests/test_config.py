import pytest
from pydantic import ValidationError

from atomicdocs.config import AtomicDocsSettings, get_settings


@pytest.fixture
def reset_settings():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


def test_defaults_match_docs_service_contract():
    s = AtomicDocsSettings()
    assert s.service_url == "http://localhost:6174"
    assert s.docs_path == "/docs"
    assert s.docs_json_path == "/docs/json"
    assert s.docs_prefix == "/docs"
    assert s.register_path == "/api/register"
    assert s.app_port_header == "X-App-Port"
    assert s.spawn is True
    assert s.retry_max_attempts is None


def test_env_overrides(monkeypatch, reset_settings):
    monkeypatch.setenv("ATOMICDOCS_SERVICE_PORT", "7000")
    monkeypatch.setenv("ATOMICDOCS_SPAWN", "false")
    monkeypatch.setenv("ATOMICDOCS_RETRY_MAX_ATTEMPTS", "5")

    s = get_settings()

    assert s.service_port == 7000
    assert s.spawn is False
    assert s.retry_max_attempts == 5
    assert s.url_for("/api/register") == "http://localhost:7000/api/register"


def test_get_settings_is_cached(reset_settings):
    assert get_settings() is get_settings()


def test_paths_must_be_absolute():
    with pytest.raises(ValidationError):
        AtomicDocsSettings(docs_path="docs")


def test_port_range_is_checked():
    with pytest.raises(ValidationError):
        AtomicDocsSettings(service_port=70000)


def test_timeouts_must_be_positive():
    with pytest.raises(ValidationError):
        AtomicDocsSettings(connect_timeout=0)
