from __future__ import annotations

from types import SimpleNamespace
from typing import Any, Dict, List, Optional

import pytest
import requests

from transcript_crawler.config import Settings
from transcript_crawler.pipeline.services import PipelineServices
from transcript_crawler.transcription.captions import CaptionRetriever
from transcript_crawler.transcription.schema import SpeechTranscript
from transcript_crawler.transcription.whisper import SpeechEngine


VIDEO_ID = "dQw4w9WgXcQ"


def make_settings(**overrides: Any) -> Settings:
    values: Dict[str, Any] = {
        "_env_file": None,
        "openai_api_key": None,
        "rapidapi_key": None,
        "local_whisper_model": None,
        "yt_dlp_enabled": False,
        "history_database_url": None,
        "resolver_poll_delay_seconds": 0.0,
    }
    values.update(overrides)
    return Settings(**values)


class FakeResponse:
    def __init__(
        self,
        status_code: int = 200,
        json_data: Any = None,
        content: bytes = b"",
        headers: Optional[Dict[str, str]] = None,
    ) -> None:
        self.status_code = status_code
        self._json = json_data
        self.content = content
        self.headers = headers or {}

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 400

    def json(self) -> Any:
        if self._json is None:
            raise ValueError("no JSON body")
        return self._json

    def iter_content(self, chunk_size: int = 1024):
        for start in range(0, len(self.content), chunk_size):
            yield self.content[start:start + chunk_size]

    def __enter__(self) -> "FakeResponse":
        return self

    def __exit__(self, *exc: Any) -> None:
        return None


class FakeSession:
    """Routes GETs by URL prefix; records every call."""

    def __init__(self, routes: Optional[Dict[str, Any]] = None) -> None:
        self.routes = routes or {}
        self.calls: List[SimpleNamespace] = []

    def get(self, url: str, **kwargs: Any) -> FakeResponse:
        self.calls.append(SimpleNamespace(url=url, **kwargs))
        for prefix, answer in self.routes.items():
            if url.startswith(prefix):
                if isinstance(answer, Exception):
                    raise answer
                if isinstance(answer, list):
                    return answer.pop(0)
                return answer
        raise requests.ConnectionError(f"no route for {url}")


def snippet(text: str, start: float, duration: float) -> SimpleNamespace:
    return SimpleNamespace(text=text, start=start, duration=duration)


class FakeTranscript:
    def __init__(self, language_code: str, snippets: List[SimpleNamespace]) -> None:
        self.language_code = language_code
        self._snippets = snippets

    def fetch(self) -> List[SimpleNamespace]:
        return list(self._snippets)


class FakeTranscriptApi:
    """Mimics YouTubeTranscriptApi.fetch / .list."""

    def __init__(self, tracks: Optional[Dict[str, List[SimpleNamespace]]] = None) -> None:
        self.tracks = tracks or {}
        self.fetch_calls: List[List[str]] = []
        self.list_calls = 0

    def fetch(self, video_id: str, languages=("en",)) -> List[SimpleNamespace]:
        from youtube_transcript_api._errors import NoTranscriptFound

        self.fetch_calls.append(list(languages))
        for language in languages:
            if language in self.tracks:
                return list(self.tracks[language])
        raise NoTranscriptFound(video_id, list(languages), None)

    def list(self, video_id: str) -> List[FakeTranscript]:
        from youtube_transcript_api._errors import TranscriptsDisabled

        self.list_calls += 1
        if not self.tracks:
            raise TranscriptsDisabled(video_id)
        return [FakeTranscript(code, snippets) for code, snippets in self.tracks.items()]


class FakeEngine(SpeechEngine):
    name = "fake"

    def __init__(self, transcript: Optional[SpeechTranscript] = None, error: Optional[Exception] = None) -> None:
        self.transcript = transcript or SpeechTranscript(text="")
        self.error = error
        self.calls: List[Dict[str, Any]] = []

    def transcribe(self, payload: bytes, filename: str, language: str) -> SpeechTranscript:
        self.calls.append({"bytes": len(payload), "filename": filename, "language": language})
        if self.error is not None:
            raise self.error
        return self.transcript


class FakeResolver:
    name = "fake-resolver"

    def __init__(self, url: str = "https://cdn.example/audio.mp3", error: Optional[Exception] = None) -> None:
        self.url = url
        self.error = error
        self.calls: List[str] = []

    def resolve(self, video_id: str, *, logger=None, cancel_event=None) -> str:
        self.calls.append(video_id)
        if self.error is not None:
            raise self.error
        return self.url


def oembed_ok(title: str = "Never Gonna Give You Up", author: str = "Rick Astley") -> FakeResponse:
    return FakeResponse(200, {"title": title, "author_name": author})


def make_services(
    *,
    session: Optional[FakeSession] = None,
    tracks: Optional[Dict[str, List[SimpleNamespace]]] = None,
    resolver: Any = None,
    engine: Optional[SpeechEngine] = None,
    history: Any = None,
    **settings_overrides: Any,
) -> PipelineServices:
    settings = make_settings(**settings_overrides)
    return PipelineServices(
        settings=settings,
        session=session if session is not None else FakeSession(),
        captions=CaptionRetriever(settings.caption_languages, api=FakeTranscriptApi(tracks)),
        resolver=resolver,
        engine=engine,
        history=history,
    )


@pytest.fixture
def settings() -> Settings:
    return make_settings()
