from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="EDGE_", case_sensitive=False)

    env: str = "dev"
    app_version: str = "1.0.0"
    log_level: str = "INFO"
    allowed_origins: str = Field(
        default="http://localhost:3000", description="Comma separated CORS origins"
    )
    protected_paths: str = Field(
        default="/chat", description="Comma separated paths that require a bearer token"
    )

    # Admission control
    rate_limit_enabled: bool = True
    rate_limit_window_ms: int = 60_000
    rate_limit_max_requests: int = 100
    rate_limit_backend: str = "memory"
    rate_limit_redis_url: str | None = None
    rate_limit_redis_prefix: str = "edge:ratelimit"

    # Identity / storage backend
    backend: str = "memory"
    supabase_url: str | None = None
    supabase_service_role_key: str | None = None
    supabase_timeout_s: float = 30.0
    memory_auth_tokens: str = ""
    memory_documents_path: Path | None = None

    # Language-model provider
    provider: str = "stub"
    openai_base_url: str = "https://api.openai.com"
    openai_api_key: str | None = None
    provider_timeout_s: float = 30.0
    embedding_model: str = "text-embedding-ada-002"
    embedding_dim: int = 1536
    chat_model: str = "gpt-3.5-turbo"
    chat_max_tokens: int = 1000
    chat_temperature: float = 0.7

    # Retrieval
    chat_history_limit: int = 10
    chat_match_threshold: float = 0.7
    chat_match_count: int = 5
    search_default_threshold: float = 0.5
    search_default_limit: int = 10
    search_rpc_name: str = "search_documents"

    message_max_length: int = 1000

    @property
    def allowed_origin_list(self) -> list[str]:
        return [item.strip() for item in self.allowed_origins.split(",") if item.strip()]

    @property
    def protected_path_set(self) -> set[str]:
        return {item.strip() for item in self.protected_paths.split(",") if item.strip()}

    @property
    def backend_normalized(self) -> str:
        return self.backend.strip().lower()

    @property
    def provider_normalized(self) -> str:
        return self.provider.strip().lower()

    @property
    def rate_limit_backend_normalized(self) -> str:
        return self.rate_limit_backend.strip().lower()

    @property
    def memory_auth_token_map(self) -> dict[str, str]:
        """Parse ``token:user_id,token:user_id`` into a dict."""
        result: dict[str, str] = {}
        for item in self.memory_auth_tokens.split(","):
            item = item.strip()
            if ":" not in item:
                continue
            token, user_id = item.split(":", 1)
            token = token.strip()
            user_id = user_id.strip()
            if not token or not user_id:
                continue
            result[token] = user_id
        return result


@lru_cache
def get_settings() -> Settings:
    return Settings()


def clear_settings_cache() -> None:
    get_settings.cache_clear()
