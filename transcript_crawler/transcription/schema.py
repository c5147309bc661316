# transcript_crawler/transcription/schema.py
"""
Shared contracts for the transcription subsystem.
Single responsibility: define the outcome dataclasses exchanged with the pipeline.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

from transcript_crawler.pipeline.schema import TranscriptSegment


@dataclass
class CaptionOutcome:
    """Result of the caption retriever. found=False means "try the fallback"."""
    found: bool
    language: Optional[str] = None
    segments: List[TranscriptSegment] = field(default_factory=list)
    attempts: List[str] = field(default_factory=list)


@dataclass
class SpeechSegment:
    """Raw engine segment, times in seconds."""
    text: str
    start: float
    end: float


@dataclass
class SpeechTranscript:
    """Standardized output of any speech-recognition engine."""
    text: str = ""
    segments: List[SpeechSegment] = field(default_factory=list)
    language: Optional[str] = None


RESOLVER_OK = "ok"
RESOLVER_PROCESSING = "processing"


@dataclass
class ResolverResponse:
    """One answer from an audio resolver service."""
    status: str
    audio_url: Optional[str] = None
    message: Optional[str] = None
