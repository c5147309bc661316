# transcript_crawler/transcription/__init__.py
"""Caption retrieval, audio resolution and speech recognition."""

from transcript_crawler.transcription.captions import CaptionRetriever
from transcript_crawler.transcription.core import transcribe_payload
from transcript_crawler.transcription.resolvers import AudioResolver, build_resolver
from transcript_crawler.transcription.whisper import SpeechEngine, build_engine

__all__ = [
    "AudioResolver",
    "CaptionRetriever",
    "SpeechEngine",
    "build_engine",
    "build_resolver",
    "transcribe_payload",
]
