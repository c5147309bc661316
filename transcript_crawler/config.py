# transcript_crawler/config.py
"""
Runtime configuration for the transcript pipeline.

Values come from the environment (or a local .env file). Which audio resolver
and which speech engine are active is decided here, by the credentials that are
present, never by the pipeline itself.
"""

from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


MAX_AUDIO_BYTES = 25 * 1024 * 1024


class Settings(BaseSettings):
    # Speech recognition
    openai_api_key: Optional[str] = None
    speech_engine: Literal["auto", "openai", "local"] = "auto"
    transcription_model: str = "whisper-1"
    transcription_language: str = "ko"
    local_whisper_model: Optional[str] = None

    # Captions
    caption_languages: List[str] = Field(default_factory=lambda: ["ko", "en"])

    # Audio resolution
    audio_resolver: Literal["auto", "youtube-mp36", "ytstream", "yt-dlp"] = "auto"
    rapidapi_key: Optional[str] = None
    mp36_host: str = "youtube-mp36.p.rapidapi.com"
    ytstream_host: str = "ytstream-download-youtube-videos.p.rapidapi.com"
    yt_dlp_enabled: bool = False
    resolver_max_attempts: int = Field(default=5, ge=1, le=10)
    resolver_poll_delay_seconds: float = Field(default=3.0, ge=0)

    # Limits
    max_audio_bytes: int = Field(default=MAX_AUDIO_BYTES, gt=0)
    http_timeout_seconds: float = Field(default=15.0, gt=0)

    # History sink
    history_database_url: Optional[str] = None
    history_limit: int = Field(default=20, ge=1, le=200)

    # System
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )
