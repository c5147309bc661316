# transcript_crawler/pipeline/stages/transcribe_audio.py
"""
Stage 5: Speech recognition.

Video mode downloads the resolved audio (size-bounded); upload mode uses the
uploaded bytes. Both go through transcribe_payload().
"""

from __future__ import annotations

import uuid
from typing import Tuple

from transcript_crawler.pipeline.errors import TranscriptionNotConfigured, TranscriptPipelineError
from transcript_crawler.pipeline.schema import PipelineJob, StageResult, TranscriptionMethod
from transcript_crawler.pipeline.services import PipelineServices
from transcript_crawler.pipeline.stages.base import failed, succeeded, timer
from transcript_crawler.transcription.audio import download_audio
from transcript_crawler.transcription.core import transcribe_payload
from transcript_crawler.logging_core.logger import get_logger, log_event
import logging


def process(job: PipelineJob, run_id: uuid.UUID, services: PipelineServices) -> Tuple[PipelineJob, StageResult]:
    stage_name = "transcribe_audio"
    logger = get_logger(run_id)
    settings = services.settings

    log_event(
        logger,
        logging.INFO,
        "Starting transcription",
        stage_name=stage_name,
        event_type="start",
        metadata={"mode": job.mode, "engine": getattr(services.engine, "name", None)},
    )

    with timer() as end:
        try:
            if job.mode == "upload":
                payload, filename = job.upload.data, job.upload.filename
            else:
                payload = download_audio(
                    job.audio_url,
                    settings.max_audio_bytes,
                    session=services.session,
                    timeout=settings.http_timeout_seconds,
                )
                filename = f"{job.video_id}.mp3"

            job.segments = transcribe_payload(
                payload,
                services.engine,
                language=settings.transcription_language,
                max_bytes=settings.max_audio_bytes,
                filename=filename,
            )
            job.method = TranscriptionMethod.SPEECH_RECOGNITION

        except TranscriptionNotConfigured as exc:
            if job.mode == "upload":
                exc = TranscriptionNotConfigured(
                    exc.detail,
                    user_message="Speech recognition is not configured on this server.",
                    status_code=500,
                )
            log_event(logger, logging.WARNING, "Speech recognition unavailable", stage_name=stage_name, event_type="failure")
            return job, failed(stage_name, exc, end())

        except TranscriptPipelineError as exc:
            log_event(
                logger,
                logging.WARNING,
                "Transcription failed",
                stage_name=stage_name,
                event_type="failure",
                metadata={"error_code": exc.error_code, "detail": exc.detail},
            )
            return job, failed(stage_name, exc, end())

        log_event(
            logger,
            logging.INFO,
            "Transcription completed",
            stage_name=stage_name,
            event_type="success",
            metadata={"segments": len(job.segments), "bytes": len(payload)},
        )
        return job, succeeded(stage_name, end(), warnings=["Used speech-recognition fallback (slower)"] if job.mode == "video" else None)
