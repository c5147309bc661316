# transcript_crawler/pipeline/schema.py
"""
Authoritative schema definitions for the transcript pipeline.

This module defines:
- The canonical transcript data model (metadata, segments, result)
- The StageResult contract returned by every pipeline stage
- The pipeline state machine states
- The public response envelope

All other modules MUST conform to these contracts.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field


VIDEO_ID_PATTERN = r"^[A-Za-z0-9_-]{11}$"


class PipelineState(str, Enum):
    """States of one pipeline run. The last six are terminal."""
    VALIDATING = "validating"
    FETCHING_METADATA = "fetching_metadata"
    RETRIEVING_CAPTIONS = "retrieving_captions"
    RESOLVING_AUDIO = "resolving_audio"
    TRANSCRIBING = "transcribing"
    DONE = "done"
    REJECTED = "rejected"
    NOT_FOUND = "not_found"
    UNSUPPORTED = "unsupported"
    TRANSCRIPTION_FAILED = "transcription_failed"
    FAILED = "failed"


class TranscriptionMethod(str, Enum):
    NATIVE_CAPTIONS = "native_captions"
    SPEECH_RECOGNITION = "speech_recognition"


class StageStatus(str, Enum):
    """Explicit stage outcome: keep going, skip to the next strategy, or stop."""
    SUCCESS = "success"
    NOT_FOUND = "not_found"
    FAILED = "failed"


class StageFailure(BaseModel):
    """Structured representation of the failure that terminated a run."""
    stage: str
    error_code: str
    message: str
    status_code: int
    terminal_state: PipelineState
    detail: Optional[str] = None
    suggested_fixes: List[str] = Field(default_factory=list)


class StageResult(BaseModel):
    """
    Standardized result returned by every pipeline stage.

    NOT_FOUND is not a failure: it tells the runner to try the next strategy.
    """
    stage_name: str
    status: StageStatus
    warnings: List[str] = Field(default_factory=list)
    errors: List[str] = Field(default_factory=list)
    failure: Optional[StageFailure] = None
    execution_time_ms: Optional[float] = None

    model_config = ConfigDict(frozen=True)

    @property
    def success(self) -> bool:
        return self.status is StageStatus.SUCCESS


class VideoMetadata(BaseModel):
    """Public facts about a video, derived once per request."""
    video_id: str = Field(alias="videoId", pattern=VIDEO_ID_PATTERN)
    title: str
    channel_name: str = Field(alias="channelName")
    thumbnail_url: str = Field(alias="thumbnail")

    model_config = ConfigDict(frozen=True, populate_by_name=True)


class TranscriptSegment(BaseModel):
    """One timed unit of transcript text. Times are in seconds."""
    text: str = Field(min_length=1)
    offset: float = Field(ge=0)
    duration: float = Field(ge=0)

    model_config = ConfigDict(frozen=True)


class TranscriptResult(BaseModel):
    """Canonical outcome of a successful run, whatever the source."""
    metadata: Optional[VideoMetadata] = None
    segments: List[TranscriptSegment]
    method: TranscriptionMethod

    @computed_field  # type: ignore[prop-decorator]
    @property
    def full_text(self) -> str:
        return " ".join(segment.text for segment in self.segments)

    @property
    def used_speech_recognition(self) -> bool:
        return self.method is TranscriptionMethod.SPEECH_RECOGNITION

    def to_body(self) -> Dict[str, Any]:
        """Render the public success body."""
        body: Dict[str, Any] = {}
        if self.metadata is not None:
            body["videoInfo"] = self.metadata.model_dump(by_alias=True)
        body["transcript"] = [segment.model_dump() for segment in self.segments]
        body["fullText"] = self.full_text
        body["usedSpeechRecognition"] = self.used_speech_recognition
        return body


class PipelineResponse(BaseModel):
    """HTTP-style response envelope: success body or {"error": message}."""
    status_code: int
    body: Dict[str, Any]

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    @classmethod
    def error(cls, message: str, status_code: int) -> "PipelineResponse":
        return cls(status_code=status_code, body={"error": message})


class HistoryRecord(BaseModel):
    """Row written to the optional history sink."""
    video_id: str
    title: str
    thumbnail: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class UploadedAudio(BaseModel):
    """Raw audio supplied directly by the user (upload mode)."""
    filename: str
    content_type: str = ""
    data: bytes = Field(repr=False)

    @property
    def size(self) -> int:
        return len(self.data)


class Diagnostics(BaseModel):
    """Explainability and audit trail for one run."""
    final_state: Optional[PipelineState] = None
    stage_status: Dict[str, StageResult] = Field(default_factory=dict)
    warnings: List[str] = Field(default_factory=list)
    errors: List[str] = Field(default_factory=list)
    suggested_fixes: List[str] = Field(default_factory=list)


@dataclass
class PipelineJob:
    """
    Mutable working object handed from stage to stage within one run.

    Owned by exactly one run; never shared.
    """
    mode: Literal["video", "upload"]
    raw_input: Optional[str] = None
    video_id: Optional[str] = None
    upload: Optional[UploadedAudio] = None
    metadata: Optional[VideoMetadata] = None
    caption_language: Optional[str] = None
    audio_url: Optional[str] = None
    segments: List[TranscriptSegment] = field(default_factory=list)
    method: Optional[TranscriptionMethod] = None
    cancel_event: Optional[threading.Event] = None

    @property
    def completed(self) -> bool:
        return bool(self.segments) and self.method is not None


# High-Level Intent
# schema.py is the contract for the whole pipeline:
# canonical transcript models, the StageResult outcome type, the state machine
# states and the response envelope. Only pydantic and stdlib.

# Data Flow
# runner creates PipelineJob → stages fill metadata / segments → runner builds
# TranscriptResult → to_body() → PipelineResponse.

# Edge Cases
# Upload mode → metadata is None → "videoInfo" omitted from the body.
# Blank segment text is rejected by TranscriptSegment; producers drop such cues first.
