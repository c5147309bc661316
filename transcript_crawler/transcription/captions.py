# transcript_crawler/transcription/captions.py
"""
Caption strategy using youtube_transcript_api.
Single responsibility: find an existing caption track, in language-preference order.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, List, Optional, Sequence

import requests
from youtube_transcript_api import YouTubeTranscriptApi
from youtube_transcript_api._errors import CouldNotRetrieveTranscript

from transcript_crawler.logging_core.logger import log_event
from transcript_crawler.pipeline.schema import TranscriptSegment
from transcript_crawler.transcription.schema import CaptionOutcome


DEFAULT_TRACK = "default"


class CaptionRetriever:
    """
    Tries each preferred language, then the video's default track.

    Attempts run one after another and stop at the first track with cues.
    A missing track is an outcome, not an error.
    """

    def __init__(self, languages: Sequence[str], api: Any = None) -> None:
        self.languages = list(languages)
        self.api = api if api is not None else YouTubeTranscriptApi()

    def retrieve(self, video_id: str, logger: Optional[logging.LoggerAdapter] = None) -> CaptionOutcome:
        attempts: List[str] = []

        for language in [*self.languages, DEFAULT_TRACK]:
            attempts.append(language)
            try:
                if language == DEFAULT_TRACK:
                    segments, found_language = self._fetch_default(video_id)
                else:
                    segments = _to_segments(self.api.fetch(video_id, languages=[language]))
                    found_language = language
            except (CouldNotRetrieveTranscript, requests.RequestException) as exc:
                if logger is not None:
                    log_event(
                        logger,
                        logging.DEBUG,
                        "Caption attempt failed",
                        stage_name="fetch_captions",
                        event_type="progress",
                        metadata={"language": language, "reason": type(exc).__name__},
                    )
                continue
            except Exception as exc:  # pylint: disable=broad-except
                if logger is not None:
                    log_event(
                        logger,
                        logging.WARNING,
                        "Caption attempt raised",
                        stage_name="fetch_captions",
                        event_type="progress",
                        metadata={"language": language, "exception": repr(exc)},
                    )
                continue

            if segments:
                return CaptionOutcome(found=True, language=found_language, segments=segments, attempts=attempts)

        return CaptionOutcome(found=False, attempts=attempts)

    def _fetch_default(self, video_id: str) -> tuple[List[TranscriptSegment], Optional[str]]:
        transcript = next(iter(self.api.list(video_id)), None)
        if transcript is None:
            return [], None
        return _to_segments(transcript.fetch()), transcript.language_code


def _to_segments(snippets: Iterable[Any]) -> List[TranscriptSegment]:
    """Cues in source order and timing; blank or mistimed cues are dropped, never rewritten."""
    segments = []
    for snippet in snippets:
        text = (snippet.text or "").strip()
        try:
            start, duration = float(snippet.start), float(snippet.duration)
        except (TypeError, ValueError):
            continue
        if not text or start < 0 or duration < 0:
            continue
        segments.append(TranscriptSegment(text=text, offset=start, duration=duration))
    return segments
