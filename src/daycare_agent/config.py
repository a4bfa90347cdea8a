from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration for the daycare agent service."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore", populate_by_name=True
    )

    google_api_key: str | None = Field(default=None, alias="GOOGLE_API_KEY")
    gemini_model: str = Field(default="gemini-2.5-flash", alias="GEMINI_MODEL")
    # Comma-separated list of models tried in order when the primary model fails
    gemini_fallback_models: str = Field(default="", alias="GEMINI_FALLBACK_MODELS")
    gemini_title_model: str | None = Field(default=None, alias="GEMINI_TITLE_MODEL")
    model_timeout_seconds: float = Field(default=25.0, alias="MODEL_TIMEOUT_SECONDS")

    store_backend: Literal["firestore", "memory"] = Field(default="firestore", alias="STORE_BACKEND")
    checkpointer_backend: Literal["firestore", "memory"] = Field(
        default="firestore", alias="CHECKPOINTER_BACKEND"
    )
    firebase_service_account_key: str | None = Field(
        default=None, alias="FIREBASE_SERVICE_ACCOUNT_KEY"
    )
    checkpoint_collection: str = Field(default="langgraphCheckpoints", alias="CHECKPOINT_COLLECTION")
    session_collection: str = Field(default="chatSessions", alias="SESSION_COLLECTION")

    # Agent loop guards
    recursion_limit: int = Field(default=15, alias="RECURSION_LIMIT")
    turn_timeout_seconds: float = Field(default=30.0, alias="TURN_TIMEOUT_SECONDS")
    chatbot_roles: str = Field(default="Parent,Admin", alias="CHATBOT_ROLES")

    timezone: str = Field(default="Asia/Jakarta", alias="TIMEZONE")

    # Optional override for the role-specific system prompts
    system_prompt: str | None = Field(default=None, alias="SYSTEM_PROMPT")

    # FastAPI configuration
    app_host: str = Field(default="0.0.0.0", alias="APP_HOST")
    app_port: int = Field(default=8080, alias="APP_PORT")
    debug: bool = Field(default=False, alias="DEBUG")

    @field_validator("recursion_limit")
    @classmethod
    def _positive_limit(cls, value: int) -> int:
        if value < 1:
            raise ValueError("RECURSION_LIMIT must be at least 1")
        return value

    @property
    def chat_model_ids(self) -> list[str]:
        """Primary model followed by configured fallbacks, without duplicates."""
        ids = [self.gemini_model]
        for model_id in self.gemini_fallback_models.split(","):
            model_id = model_id.strip()
            if model_id and model_id not in ids:
                ids.append(model_id)
        return ids

    @property
    def allowed_chatbot_roles(self) -> frozenset[str]:
        return frozenset(role.strip() for role in self.chatbot_roles.split(",") if role.strip())


@lru_cache
def get_settings() -> Settings:
    """Return memoized settings so multiple imports share a single instance."""

    return Settings()  # type: ignore[call-arg]
