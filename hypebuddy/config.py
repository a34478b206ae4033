from __future__ import annotations

import functools
from typing import Literal

from pydantic import BaseModel
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseModel):
    dsn: str
    max_pool_size: int = 10


class LLMSettings(BaseModel):
    gemini_api_key: str | None = None
    model: str = "gemini-2.5-flash-lite"
    temperature: float = 0.9
    top_p: float = 0.95
    top_k: int = 40
    max_output_tokens: int = 200
    timeout_seconds: float = 30.0


class EdgeTTSSettings(BaseModel):
    base_url: str
    api_key: str | None = None
    model: str = "tts-1"
    response_format: str = "mp3"
    timeout_seconds: float = 15.0


class QuotaSettings(BaseModel):
    free_hypes_per_period: int = 5
    free_history_limit: int = 10
    memory_wins_limit: int = 5


class VoiceSettings(BaseModel):
    locale: str = "en-US"
    default_locale: str = "en"
    base_rate_wpm: int = 175


class NotificationSettings(BaseModel):
    win_log_delay_seconds: float = 2 * 60 * 60


class TelemetrySettings(BaseModel):
    service_name: str = "hypebuddy"
    environment: str = "local"
    log_level: str = "INFO"
    json_logs: bool = True
    otlp_endpoint: str | None = None


class AppSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=(".env", ".env.local"), env_file_encoding="utf-8", extra="ignore")

    DATABASE_URL: str = "sqlite+aiosqlite:///hypebuddy.db"
    DATABASE_POOL_SIZE: int = 10
    GEMINI_API_KEY: str | None = None
    GEMINI_MODEL: str = "gemini-2.5-flash-lite"
    GEMINI_TEMPERATURE: float = 0.9
    GEMINI_TOP_P: float = 0.95
    GEMINI_TOP_K: int = 40
    GEMINI_MAX_OUTPUT_TOKENS: int = 200  # short enough to speak in ~30s
    GEMINI_TIMEOUT_SECONDS: float = 30.0
    EDGE_TTS_URL: str | None = None
    EDGE_TTS_API_KEY: str | None = None
    EDGE_TTS_MODEL: str = "tts-1"
    EDGE_TTS_FORMAT: str = "mp3"
    EDGE_TTS_TIMEOUT_SECONDS: float = 15.0
    FREE_HYPES_PER_WEEK: int = 5
    FREE_HISTORY_LIMIT: int = 10
    MEMORY_WINS_LIMIT: int = 5
    VOICE_LOCALE: str = "en-US"
    VOICE_DEFAULT_LOCALE: str = "en"
    VOICE_BASE_RATE_WPM: int = 175
    WIN_LOG_REMINDER_DELAY_SECONDS: float = 2 * 60 * 60
    PREMIUM_OVERRIDE: bool = False
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = True
    OTEL_EXPORTER_OTLP_ENDPOINT: str | None = None
    ENVIRONMENT: Literal["local", "staging", "production"] = "local"
    HOST: str = "127.0.0.1"
    PORT: int = 8000

    @property
    def database(self) -> DatabaseSettings:
        return DatabaseSettings(dsn=self.DATABASE_URL, max_pool_size=self.DATABASE_POOL_SIZE)

    @property
    def llm(self) -> LLMSettings:
        return LLMSettings(
            gemini_api_key=self._blank_to_none(self.GEMINI_API_KEY),
            model=self.GEMINI_MODEL,
            temperature=self.GEMINI_TEMPERATURE,
            top_p=self.GEMINI_TOP_P,
            top_k=self.GEMINI_TOP_K,
            max_output_tokens=self.GEMINI_MAX_OUTPUT_TOKENS,
            timeout_seconds=self.GEMINI_TIMEOUT_SECONDS,
        )

    @property
    def edge_tts(self) -> EdgeTTSSettings | None:
        base_url = self._blank_to_none(self.EDGE_TTS_URL)
        if base_url is None:
            return None
        return EdgeTTSSettings(
            base_url=base_url,
            api_key=self._blank_to_none(self.EDGE_TTS_API_KEY),
            model=self.EDGE_TTS_MODEL,
            response_format=self.EDGE_TTS_FORMAT,
            timeout_seconds=self.EDGE_TTS_TIMEOUT_SECONDS,
        )

    @property
    def quota(self) -> QuotaSettings:
        return QuotaSettings(
            free_hypes_per_period=self.FREE_HYPES_PER_WEEK,
            free_history_limit=self.FREE_HISTORY_LIMIT,
            memory_wins_limit=self.MEMORY_WINS_LIMIT,
        )

    @property
    def voice(self) -> VoiceSettings:
        return VoiceSettings(
            locale=self.VOICE_LOCALE,
            default_locale=self.VOICE_DEFAULT_LOCALE,
            base_rate_wpm=self.VOICE_BASE_RATE_WPM,
        )

    @property
    def notifications(self) -> NotificationSettings:
        return NotificationSettings(win_log_delay_seconds=self.WIN_LOG_REMINDER_DELAY_SECONDS)

    @property
    def telemetry(self) -> TelemetrySettings:
        return TelemetrySettings(
            environment=self.ENVIRONMENT,
            log_level=self.LOG_LEVEL,
            json_logs=self.LOG_JSON,
            otlp_endpoint=self._blank_to_none(self.OTEL_EXPORTER_OTLP_ENDPOINT),
        )

    @staticmethod
    def _blank_to_none(value: str | None) -> str | None:
        if value is None:
            return None
        trimmed = value.strip()
        return trimmed or None


@functools.lru_cache(maxsize=1)
def load_settings() -> AppSettings:
    return AppSettings()


__all__ = ["AppSettings", "load_settings"]
