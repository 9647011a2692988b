from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

TRUTHY_VALUES = {"1", "true", "on", "yes"}
DEFAULT_VOCABULARY_FILE = str(Path(__file__).resolve().parents[1] / "data" / "alternative_conceptions.json")


class Settings(BaseSettings):
    app_env: str = "dev"
    app_host: str = "0.0.0.0"
    app_port: int = 8000
    log_level: str = "INFO"

    progress_store_backend: str = "file"
    runtime_data_dir: str = "data/system"
    mongodb_url: str = "mongodb://localhost:27017"
    mongodb_db_name: str = "tutor_progress"

    classifier_base_url: str = Field(
        default="http://localhost:11434",
        validation_alias=AliasChoices(
            "OLLAMA_API_URL_UPV",
            "OLLAMA_UPV_URL",
            "OLLAMA_API_URL",
            "CLASSIFIER_BASE_URL",
        ),
    )
    classifier_model: str = Field(
        default="qwen2.5:3b",
        validation_alias=AliasChoices("OLLAMA_CLASSIFIER_MODEL", "OLLAMA_MODEL", "CLASSIFIER_MODEL"),
    )
    classifier_timeout_ms: int = Field(
        default=240000,
        gt=0,
        validation_alias=AliasChoices("OLLAMA_CLASSIFIER_TIMEOUT_MS", "CLASSIFIER_TIMEOUT_MS"),
    )
    classifier_insecure_tls: bool = Field(
        default=False,
        validation_alias=AliasChoices("OLLAMA_INSECURE_TLS", "CLASSIFIER_INSECURE_TLS"),
    )

    progress_timezone: str = "Europe/Madrid"
    ac_vocabulary_file: str = DEFAULT_VOCABULARY_FILE

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    @field_validator("classifier_base_url")
    @classmethod
    def _strip_trailing_slashes(cls, value: str) -> str:
        return str(value).strip().rstrip("/")

    @field_validator("classifier_insecure_tls", mode="before")
    @classmethod
    def _parse_insecure_flag(cls, value) -> bool:
        if isinstance(value, bool):
            return value
        return str(value or "").strip().lower() in TRUTHY_VALUES

    @field_validator("progress_store_backend")
    @classmethod
    def _normalize_backend(cls, value: str) -> str:
        backend = str(value).strip().lower()
        if backend not in {"file", "mongo"}:
            raise ValueError(f"Unsupported progress_store_backend: {value}")
        return backend

    @field_validator("progress_timezone")
    @classmethod
    def _check_timezone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"Unknown timezone: {value}") from exc
        return value

    @property
    def classifier_timeout_seconds(self) -> float:
        return self.classifier_timeout_ms / 1000.0

    @property
    def timezone(self) -> ZoneInfo:
        return ZoneInfo(self.progress_timezone)


settings = Settings()
