# transcript_crawler/transcription/resolvers.py
"""
Audio resolvers: turn a video ID into a short-lived, downloadable audio URL.

Several third-party services can do this and none is reliable on its own, so
they share one contract (resolve(video_id) -> url) and exactly one is wired in
per deployment by build_resolver(). Resolved URLs expire quickly and are never
cached.
"""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Tuple

import requests
import yt_dlp

from transcript_crawler.config import Settings
from transcript_crawler.logging_core.logger import log_event
from transcript_crawler.pipeline.errors import (
    AudioResolutionFailed,
    AudioResolutionTimeout,
    PipelineCancelled,
    ResolverNotConfigured,
)
from transcript_crawler.transcription.schema import RESOLVER_OK, RESOLVER_PROCESSING, ResolverResponse


WATCH_URL = "https://www.youtube.com/watch?v={video_id}"


class AudioResolver(ABC):
    """Contract shared by every resolver implementation."""

    name: str = "resolver"

    @abstractmethod
    def resolve(
        self,
        video_id: str,
        *,
        logger: Optional[logging.LoggerAdapter] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> str:
        """Return an HTTP(S) URL serving the audio track, or raise."""


class PollingResolver(AudioResolver):
    """
    Base for services that may answer "processing" before the audio is ready.

    The poll is a plain counted loop: at most max_attempts queries with a fixed
    delay between them, so the worst-case wait is (max_attempts - 1) * delay.
    """

    def __init__(self, max_attempts: int = 5, delay_seconds: float = 3.0) -> None:
        self.max_attempts = max_attempts
        self.delay_seconds = delay_seconds

    @abstractmethod
    def query(self, video_id: str) -> ResolverResponse:
        """Ask the service once."""

    def resolve(
        self,
        video_id: str,
        *,
        logger: Optional[logging.LoggerAdapter] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> str:
        attempt = 0
        while attempt < self.max_attempts:
            attempt += 1
            response = self.query(video_id)

            if response.status == RESOLVER_OK:
                if not response.audio_url:
                    raise AudioResolutionFailed(f"{self.name} reported success without an audio URL")
                return response.audio_url

            if response.status != RESOLVER_PROCESSING:
                raise AudioResolutionFailed(response.message or f"{self.name} returned status {response.status!r}")

            if logger is not None:
                log_event(
                    logger,
                    logging.INFO,
                    "Audio still processing",
                    stage_name="resolve_audio",
                    event_type="progress",
                    metadata={"resolver": self.name, "attempt": attempt, "max_attempts": self.max_attempts},
                )

            if attempt < self.max_attempts:
                self._wait(cancel_event)

        raise AudioResolutionTimeout(f"{self.name} still processing after {self.max_attempts} attempts")

    def _wait(self, cancel_event: Optional[threading.Event]) -> None:
        if cancel_event is None:
            cancel_event = threading.Event()
        if cancel_event.wait(self.delay_seconds):
            raise PipelineCancelled("cancelled while waiting for audio resolution")


class RapidApiResolver(PollingResolver):
    """Common plumbing for RapidAPI-hosted services."""

    def __init__(
        self,
        api_key: str,
        host: str,
        session: Optional[requests.Session] = None,
        timeout: float = 15.0,
        max_attempts: int = 5,
        delay_seconds: float = 3.0,
    ) -> None:
        super().__init__(max_attempts=max_attempts, delay_seconds=delay_seconds)
        self.api_key = api_key
        self.host = host
        self.session = session or requests.Session()
        self.timeout = timeout

    def _get_json(self, video_id: str) -> Dict[str, Any]:
        try:
            response = self.session.get(
                f"https://{self.host}/dl",
                params={"id": video_id},
                headers={"X-RapidAPI-Key": self.api_key, "X-RapidAPI-Host": self.host},
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise AudioResolutionFailed(f"{self.name} request failed: {exc}") from exc

        if not response.ok:
            raise AudioResolutionFailed(f"{self.name} answered HTTP {response.status_code}")

        try:
            data = response.json()
        except ValueError as exc:
            raise AudioResolutionFailed(f"{self.name} returned a malformed body") from exc

        if not isinstance(data, dict):
            raise AudioResolutionFailed(f"{self.name} returned a malformed body")
        return data


class Mp36Resolver(RapidApiResolver):
    """Audio-focused download service: {"status": "ok"|"processing"|"fail", "link", "msg"}."""

    name = "youtube-mp36"

    def query(self, video_id: str) -> ResolverResponse:
        data = self._get_json(video_id)
        return ResolverResponse(
            status=str(data.get("status", "")).lower(),
            audio_url=data.get("link"),
            message=data.get("msg"),
        )


class StreamFormatResolver(RapidApiResolver):
    """Format-probing service returning stream lists; picks the smallest audio-only one."""

    name = "ytstream"

    def query(self, video_id: str) -> ResolverResponse:
        data = self._get_json(video_id)
        status = str(data.get("status", "")).lower()
        if status != RESOLVER_OK:
            return ResolverResponse(status=status, message=data.get("msg") or data.get("message"))

        url = select_audio_format(data.get("adaptiveFormats") or [], data.get("formats") or [])
        if url is None:
            return ResolverResponse(status="fail", message="no playable audio format listed")
        return ResolverResponse(status=RESOLVER_OK, audio_url=url)


def select_audio_format(adaptive: List[Dict[str, Any]], muxed: List[Dict[str, Any]]) -> Optional[str]:
    """
    Smallest audio-only stream wins; muxed audio+video only when there is no audio-only stream.
    """
    audio_only = [f for f in adaptive if str(f.get("mimeType", "")).startswith("audio/") and f.get("url")]
    candidates = audio_only or [f for f in muxed if f.get("url")]
    if not candidates:
        return None
    return min(candidates, key=_format_size)["url"]


def _format_size(fmt: Dict[str, Any]) -> Tuple[int, float]:
    """
    Sort key: formats with a known byte size rank first, then bitrate-only ones.

    Bytes and bitrates are never compared with each other.
    """
    for key in ("contentLength", "filesize", "filesize_approx"):
        value = _number(fmt.get(key))
        if value is not None:
            return (0, value)
    for key in ("bitrate", "abr", "tbr"):
        value = _number(fmt.get(key))
        if value is not None:
            return (1, value)
    return (2, float("inf"))


def _number(value: Any) -> Optional[float]:
    if not value:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


class YtDlpResolver(AudioResolver):
    """Direct stream-format negotiation through yt-dlp. No media is downloaded."""

    name = "yt-dlp"

    YDL_PARAMS = {
        "quiet": True,
        "no_warnings": True,
        "skip_download": True,
        "noplaylist": True,
    }

    def __init__(self, ydl_params: Optional[Dict[str, Any]] = None) -> None:
        self.ydl_params = {**self.YDL_PARAMS, **(ydl_params or {})}

    def resolve(
        self,
        video_id: str,
        *,
        logger: Optional[logging.LoggerAdapter] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> str:
        try:
            with yt_dlp.YoutubeDL(self.ydl_params) as ydl:
                info = ydl.extract_info(WATCH_URL.format(video_id=video_id), download=False)
        except yt_dlp.DownloadError as exc:
            raise AudioResolutionFailed(f"yt-dlp could not read formats: {exc}") from exc

        formats = (info or {}).get("formats") or []
        audio_only = [
            f for f in formats
            if f.get("url") and f.get("vcodec") == "none" and f.get("acodec") not in (None, "none")
        ]
        with_audio = [f for f in formats if f.get("url") and f.get("acodec") not in (None, "none")]
        candidates = audio_only or with_audio
        if not candidates:
            raise AudioResolutionFailed("yt-dlp found no format carrying audio")
        return min(candidates, key=_format_size)["url"]


def build_resolver(settings: Settings, session: Optional[requests.Session] = None) -> AudioResolver:
    """
    Select the deployment's resolver from configuration.

    Raises ResolverNotConfigured when nothing usable is configured.
    """
    choice = settings.audio_resolver
    if choice == "auto":
        if settings.rapidapi_key:
            choice = "youtube-mp36"
        elif settings.yt_dlp_enabled:
            choice = "yt-dlp"
        else:
            raise ResolverNotConfigured("no audio resolver credentials configured")

    if choice == "yt-dlp":
        return YtDlpResolver()

    if not settings.rapidapi_key:
        raise ResolverNotConfigured(f"{choice} selected but RAPIDAPI_KEY is not set")

    resolver_cls = Mp36Resolver if choice == "youtube-mp36" else StreamFormatResolver
    host = settings.mp36_host if choice == "youtube-mp36" else settings.ytstream_host
    return resolver_cls(
        api_key=settings.rapidapi_key,
        host=host,
        session=session,
        timeout=settings.http_timeout_seconds,
        max_attempts=settings.resolver_max_attempts,
        delay_seconds=settings.resolver_poll_delay_seconds,
    )
