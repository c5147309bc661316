# transcript_crawler/pipeline/errors.py
"""
Failure taxonomy for the transcript pipeline.

Each error class knows how it terminates a run: the terminal state, the
HTTP-style status code and the message shown to the user. Components raise
these; stages turn them into StageResult failures; the runner turns those into
responses. "No captions" is not an error and has no class here.
"""

from __future__ import annotations

from typing import List, Optional

from transcript_crawler.pipeline.schema import PipelineState


class TranscriptPipelineError(Exception):
    """Base class for every expected pipeline failure."""

    error_code: str = "pipeline_error"
    status_code: int = 500
    terminal_state: PipelineState = PipelineState.FAILED
    user_message: str = "An unexpected server error occurred."
    suggested_fixes: List[str] = []

    def __init__(
        self,
        detail: Optional[str] = None,
        *,
        user_message: Optional[str] = None,
        status_code: Optional[int] = None,
    ) -> None:
        self.detail = detail
        if user_message is not None:
            self.user_message = user_message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(detail or self.user_message)


class InvalidIdentifier(TranscriptPipelineError):
    error_code = "invalid_identifier"
    status_code = 400
    terminal_state = PipelineState.REJECTED
    user_message = "That is not a valid YouTube video ID."
    suggested_fixes = ["Use the 11-character ID from a youtube.com/watch?v= or youtu.be link"]


class MetadataUnavailable(TranscriptPipelineError):
    error_code = "metadata_unavailable"
    status_code = 404
    terminal_state = PipelineState.NOT_FOUND
    user_message = "Video not found. Please check the URL."
    suggested_fixes = ["Check that the video is public and not deleted"]


class ResolverNotConfigured(TranscriptPipelineError):
    error_code = "resolver_not_configured"
    status_code = 404
    terminal_state = PipelineState.UNSUPPORTED
    user_message = (
        "This video has no captions and automatic transcription is not available. "
        "Please use the file upload to transcribe an MP3 file instead."
    )
    suggested_fixes = ["Upload the audio file manually", "Configure RAPIDAPI_KEY or enable yt-dlp"]


class TranscriptionNotConfigured(TranscriptPipelineError):
    error_code = "transcription_not_configured"
    status_code = 404
    terminal_state = PipelineState.UNSUPPORTED
    user_message = (
        "This video has no captions and speech recognition is not configured. "
        "Please use the file upload instead."
    )
    suggested_fixes = ["Configure OPENAI_API_KEY or LOCAL_WHISPER_MODEL"]


class AudioResolutionFailed(TranscriptPipelineError):
    error_code = "audio_resolution_failed"
    status_code = 500
    terminal_state = PipelineState.TRANSCRIPTION_FAILED
    user_message = "Could not extract the audio track of this video."
    suggested_fixes = ["Try again later", "Upload the audio file manually"]


class AudioResolutionTimeout(AudioResolutionFailed):
    error_code = "audio_resolution_timeout"
    user_message = "The audio track was still being prepared. Please try again in a moment."


class AudioTooLarge(TranscriptPipelineError):
    error_code = "audio_too_large"
    status_code = 400
    terminal_state = PipelineState.REJECTED
    user_message = "The audio is larger than 25MB. Please try a shorter video or a smaller file."
    suggested_fixes = ["Use a shorter video", "Compress the audio before uploading"]


class UnsupportedAudioFormat(TranscriptPipelineError):
    error_code = "unsupported_audio_format"
    status_code = 400
    terminal_state = PipelineState.REJECTED
    user_message = "Unsupported file type. Please upload an MP3, M4A or WAV file."


class EmptyUpload(TranscriptPipelineError):
    error_code = "empty_upload"
    status_code = 400
    terminal_state = PipelineState.REJECTED
    user_message = "No file was provided."


class TranscriptionFailed(TranscriptPipelineError):
    error_code = "transcription_failed"
    status_code = 500
    terminal_state = PipelineState.TRANSCRIPTION_FAILED
    user_message = "Speech recognition failed."
    suggested_fixes = ["Retry later", "Check audio quality"]


class PipelineCancelled(TranscriptPipelineError):
    error_code = "cancelled"
    status_code = 499
    terminal_state = PipelineState.FAILED
    user_message = "The request was cancelled."
