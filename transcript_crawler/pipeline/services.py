# transcript_crawler/pipeline/services.py
"""
Collaborators injected into every stage.

Built once per process from Settings; a run only reads from it. Tests build
their own instance with fakes.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional

import requests
from sqlalchemy.exc import SQLAlchemyError

from transcript_crawler.config import Settings
from transcript_crawler.pipeline.errors import ResolverNotConfigured
from transcript_crawler.pipeline.history import HistoryRecorder, HistoryStore
from transcript_crawler.transcription.captions import CaptionRetriever
from transcript_crawler.transcription.resolvers import AudioResolver, build_resolver
from transcript_crawler.transcription.whisper import SpeechEngine, build_engine

logger = logging.getLogger(__name__)


@dataclass
class PipelineServices:
    settings: Settings
    session: requests.Session
    captions: CaptionRetriever
    resolver: Optional[AudioResolver] = None
    engine: Optional[SpeechEngine] = None
    history: Optional[HistoryRecorder] = None
    resolver_error: Optional[str] = field(default=None, repr=False)

    @classmethod
    def from_settings(cls, settings: Settings) -> "PipelineServices":
        session = requests.Session()

        resolver: Optional[AudioResolver] = None
        resolver_error: Optional[str] = None
        try:
            resolver = build_resolver(settings, session=session)
        except ResolverNotConfigured as exc:
            resolver_error = str(exc)

        history = None
        if settings.history_database_url:
            try:
                history = HistoryRecorder(HistoryStore.from_url(settings.history_database_url))
            except (SQLAlchemyError, ImportError) as exc:
                logger.warning("History disabled, database unavailable: %s", exc)

        return cls(
            settings=settings,
            session=session,
            captions=CaptionRetriever(settings.caption_languages),
            resolver=resolver,
            engine=build_engine(settings),
            history=history,
            resolver_error=resolver_error,
        )

    def close(self) -> None:
        """Release the HTTP pool; pending history writes still complete."""
        self.session.close()
        if self.history is not None:
            self.history.close(wait=False)
