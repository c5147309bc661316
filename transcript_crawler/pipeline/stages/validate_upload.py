# transcript_crawler/pipeline/stages/validate_upload.py
"""
Stage 1 (upload mode): check the uploaded audio before any engine work.
"""

from __future__ import annotations

import uuid
from typing import Tuple

from transcript_crawler.pipeline.errors import TranscriptPipelineError
from transcript_crawler.pipeline.schema import PipelineJob, StageResult
from transcript_crawler.pipeline.services import PipelineServices
from transcript_crawler.pipeline.stages.base import failed, succeeded, timer
from transcript_crawler.transcription.audio import validate_upload
from transcript_crawler.logging_core.logger import get_logger, log_event
import logging


def process(job: PipelineJob, run_id: uuid.UUID, services: PipelineServices) -> Tuple[PipelineJob, StageResult]:
    stage_name = "validate_upload"
    logger = get_logger(run_id)

    with timer() as end:
        try:
            upload = validate_upload(job.upload, services.settings.max_audio_bytes)
        except TranscriptPipelineError as exc:
            log_event(
                logger,
                logging.WARNING,
                "Upload rejected",
                stage_name=stage_name,
                event_type="failure",
                metadata={"error_code": exc.error_code, "detail": exc.detail},
            )
            return job, failed(stage_name, exc, end())

        log_event(
            logger,
            logging.INFO,
            "Upload accepted",
            stage_name=stage_name,
            event_type="success",
            metadata={"filename": upload.filename, "bytes": upload.size},
        )
        return job, succeeded(stage_name, end())
