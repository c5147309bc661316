# transcript_crawler/transcription/core.py
"""
Speech-recognition path of the pipeline.
Single responsibility: enforce the size ceiling, call the engine, map to canonical segments.
"""

from __future__ import annotations

from typing import List, Optional

from transcript_crawler.pipeline.errors import (
    AudioTooLarge,
    TranscriptionFailed,
    TranscriptionNotConfigured,
    TranscriptPipelineError,
)
from transcript_crawler.pipeline.schema import TranscriptSegment
from transcript_crawler.transcription.schema import SpeechTranscript
from transcript_crawler.transcription.whisper import SpeechEngine


def transcribe_payload(
    payload: bytes,
    engine: Optional[SpeechEngine],
    *,
    language: str,
    max_bytes: int,
    filename: str = "audio.mp3",
) -> List[TranscriptSegment]:
    """
    Transcribe raw audio bytes into canonical segments.

    The size check runs before the engine is touched.
    """
    if len(payload) > max_bytes:
        raise AudioTooLarge(f"payload of {len(payload)} bytes exceeds {max_bytes}")

    if engine is None:
        raise TranscriptionNotConfigured("no speech-recognition engine configured")

    try:
        transcript = engine.transcribe(payload, filename, language)
    except TranscriptPipelineError:
        raise
    except Exception as exc:  # pylint: disable=broad-except
        raise TranscriptionFailed(f"{engine.name} raised {exc!r}") from exc

    segments = to_segments(transcript)
    if not segments:
        raise TranscriptionFailed("engine returned neither segments nor text")
    return segments


def to_segments(transcript: SpeechTranscript) -> List[TranscriptSegment]:
    """
    offset = start, duration = end - start, text trimmed.

    No segments but whole text → a single segment spanning nothing.
    """
    segments = [
        TranscriptSegment(
            text=seg.text.strip(),
            offset=max(0.0, seg.start),
            duration=max(0.0, seg.end - seg.start),
        )
        for seg in transcript.segments
        if seg.text.strip()
    ]

    if not segments and transcript.text and transcript.text.strip():
        segments = [TranscriptSegment(text=transcript.text, offset=0, duration=0)]

    return sorted(segments, key=lambda segment: segment.offset)
