# transcript_crawler/pipeline/stages/resolve_audio.py
"""
Stage 4: Locate a downloadable audio URL through the configured resolver.

Missing resolver or engine → UNSUPPORTED (user is sent to the upload path).
Resolver failure or poll timeout → TRANSCRIPTION_FAILED.
"""

from __future__ import annotations

import uuid
from typing import Tuple

from transcript_crawler.pipeline.errors import (
    ResolverNotConfigured,
    TranscriptionNotConfigured,
    TranscriptPipelineError,
)
from transcript_crawler.pipeline.schema import PipelineJob, StageResult
from transcript_crawler.pipeline.services import PipelineServices
from transcript_crawler.pipeline.stages.base import failed, succeeded, timer
from transcript_crawler.logging_core.logger import get_logger, log_event
import logging


def process(job: PipelineJob, run_id: uuid.UUID, services: PipelineServices) -> Tuple[PipelineJob, StageResult]:
    stage_name = "resolve_audio"
    logger = get_logger(run_id)

    with timer() as end:
        try:
            if services.resolver is None:
                raise ResolverNotConfigured(services.resolver_error or "no audio resolver configured")
            if services.engine is None:
                raise TranscriptionNotConfigured("no speech-recognition engine configured")

            log_event(
                logger,
                logging.INFO,
                "Resolving audio URL",
                stage_name=stage_name,
                event_type="start",
                metadata={"resolver": services.resolver.name},
            )
            job.audio_url = services.resolver.resolve(job.video_id, logger=logger, cancel_event=job.cancel_event)

        except TranscriptPipelineError as exc:
            log_event(
                logger,
                logging.WARNING,
                "Audio resolution failed",
                stage_name=stage_name,
                event_type="failure",
                metadata={"error_code": exc.error_code, "detail": exc.detail},
            )
            return job, failed(stage_name, exc, end())

        # The URL is short-lived and may carry tokens: never logged, never cached.
        log_event(
            logger,
            logging.INFO,
            "Audio URL resolved",
            stage_name=stage_name,
            event_type="success",
            metadata={"resolver": services.resolver.name},
        )
        return job, succeeded(stage_name, end())
