# transcript_crawler/transcription/whisper.py
"""
Whisper speech-recognition engines.

Two interchangeable engines satisfy one contract
(transcribe(payload, filename, language) -> SpeechTranscript):
- OpenAIWhisperEngine: hosted whisper-1 through the openai SDK
- LocalWhisperEngine: openai-whisper model on this machine (optional "local" extra)

Local model cached module-level; GPU detection.
"""

from __future__ import annotations

import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import PurePath
from typing import Any, Iterable, List, Optional

import openai
from openai import OpenAI

from transcript_crawler.config import Settings
from transcript_crawler.pipeline.errors import TranscriptionFailed, TranscriptionNotConfigured
from transcript_crawler.transcription.schema import SpeechSegment, SpeechTranscript


class SpeechEngine(ABC):
    name: str = "engine"

    @abstractmethod
    def transcribe(self, payload: bytes, filename: str, language: str) -> SpeechTranscript:
        """Return whole text plus segment-level timestamps."""


class OpenAIWhisperEngine(SpeechEngine):
    name = "openai-whisper"

    def __init__(self, api_key: str, model: str = "whisper-1", client: Any = None, timeout: float = 55.0) -> None:
        self.model = model
        self.client = client if client is not None else OpenAI(api_key=api_key, timeout=timeout, max_retries=0)

    def transcribe(self, payload: bytes, filename: str, language: str) -> SpeechTranscript:
        try:
            response = self.client.audio.transcriptions.create(
                file=(filename, payload),
                model=self.model,
                language=language,
                response_format="verbose_json",
                timestamp_granularities=["segment"],
            )
        except openai.OpenAIError as exc:
            raise TranscriptionFailed(f"whisper API error: {exc}") from exc

        return SpeechTranscript(
            text=_field(response, "text") or "",
            segments=_segments(_field(response, "segments") or []),
            language=_field(response, "language"),
        )


# Module-level cache
_MODEL: Any = None
_MODEL_NAME: Optional[str] = None


def _load_model(model_name: str) -> Any:
    global _MODEL, _MODEL_NAME  # pylint: disable=global-statement
    if _MODEL is None or _MODEL_NAME != model_name:
        import torch
        import whisper

        device = "cuda" if torch.cuda.is_available() else "cpu"
        _MODEL = whisper.load_model(model_name, device=device)
        _MODEL_NAME = model_name
    return _MODEL


class LocalWhisperEngine(SpeechEngine):
    name = "local-whisper"

    def __init__(self, model_name: str = "base") -> None:
        self.model_name = model_name

    def transcribe(self, payload: bytes, filename: str, language: str) -> SpeechTranscript:
        suffix = PurePath(filename).suffix or ".mp3"
        fd, audio_path = tempfile.mkstemp(suffix=suffix)
        try:
            with os.fdopen(fd, "wb") as handle:
                handle.write(payload)
            result = _load_model(self.model_name).transcribe(audio_path, language=language)
        except ImportError as exc:
            raise TranscriptionNotConfigured(f'local whisper unavailable, install the "local" extra: {exc}') from exc
        except (RuntimeError, OSError) as exc:
            raise TranscriptionFailed(f"local whisper failed: {exc}") from exc
        finally:
            os.unlink(audio_path)  # Delete temp audio

        return SpeechTranscript(
            text=(result.get("text") or "").strip(),
            segments=_segments(result.get("segments") or []),
            language=result.get("language"),
        )


def build_engine(settings: Settings) -> Optional[SpeechEngine]:
    """Pick the configured engine; None when speech recognition is unavailable."""
    choice = settings.speech_engine
    if choice == "auto":
        if settings.openai_api_key:
            choice = "openai"
        elif settings.local_whisper_model:
            choice = "local"
        else:
            return None

    if choice == "openai":
        if not settings.openai_api_key:
            return None
        return OpenAIWhisperEngine(api_key=settings.openai_api_key, model=settings.transcription_model)

    return LocalWhisperEngine(model_name=settings.local_whisper_model or "base")


def _field(obj: Any, name: str) -> Any:
    if isinstance(obj, dict):
        return obj.get(name)
    return getattr(obj, name, None)


def _segments(raw: Iterable[Any]) -> List[SpeechSegment]:
    return [
        SpeechSegment(
            text=_field(seg, "text") or "",
            start=float(_field(seg, "start") or 0.0),
            end=float(_field(seg, "end") or 0.0),
        )
        for seg in raw
    ]
