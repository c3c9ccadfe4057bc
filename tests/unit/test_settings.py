import pytest

from gateway.config.settings import Settings, clear_settings_cache, get_settings


@pytest.fixture(autouse=True)
def _fresh_settings_cache():
    clear_settings_cache()
    yield
    clear_settings_cache()


def test_defaults_match_gateway_contract() -> None:
    settings = Settings(_env_file=None)

    assert settings.rate_limit_window_ms == 60_000
    assert settings.rate_limit_max_requests == 100
    assert settings.chat_history_limit == 10
    assert settings.chat_match_threshold == 0.7
    assert settings.chat_match_count == 5
    assert settings.search_default_threshold == 0.5
    assert settings.search_default_limit == 10
    assert settings.message_max_length == 1000
    assert settings.allowed_origin_list == ["http://localhost:3000"]
    assert settings.protected_path_set == {"/chat"}


def test_env_overrides_with_prefix(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("EDGE_ALLOWED_ORIGINS", "https://app.example.com, https://admin.example.com")
    monkeypatch.setenv("EDGE_PROTECTED_PATHS", "/chat,/search")
    monkeypatch.setenv("EDGE_RATE_LIMIT_MAX_REQUESTS", "5")
    monkeypatch.setenv("EDGE_BACKEND", " Supabase ")

    settings = get_settings()

    assert settings.allowed_origin_list == ["https://app.example.com", "https://admin.example.com"]
    assert settings.protected_path_set == {"/chat", "/search"}
    assert settings.rate_limit_max_requests == 5
    assert settings.backend_normalized == "supabase"


def test_get_settings_is_cached(monkeypatch: pytest.MonkeyPatch) -> None:
    first = get_settings()
    monkeypatch.setenv("EDGE_CHAT_MODEL", "gpt-4o-mini")
    assert get_settings() is first

    clear_settings_cache()
    assert get_settings().chat_model == "gpt-4o-mini"


def test_memory_auth_token_map_skips_malformed_entries(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("EDGE_MEMORY_AUTH_TOKENS", "tok-a:user-a, broken, :user-x, tok-b:user-b")

    assert Settings().memory_auth_token_map == {"tok-a": "user-a", "tok-b": "user-b"}
