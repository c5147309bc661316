# transcript_crawler/pipeline/stages/fetch_captions.py
"""
Stage 3: Native captions (cheapest strategy).

SUCCESS ends the acquisition chain; NOT_FOUND hands over to the audio fallback.
"""

from __future__ import annotations

import uuid
from typing import Tuple

from transcript_crawler.pipeline.schema import PipelineJob, StageResult, TranscriptionMethod
from transcript_crawler.pipeline.services import PipelineServices
from transcript_crawler.pipeline.stages.base import not_found, succeeded, timer
from transcript_crawler.logging_core.logger import get_logger, log_event
import logging


def process(job: PipelineJob, run_id: uuid.UUID, services: PipelineServices) -> Tuple[PipelineJob, StageResult]:
    stage_name = "fetch_captions"
    logger = get_logger(run_id)

    log_event(
        logger,
        logging.INFO,
        "Looking for captions",
        stage_name=stage_name,
        event_type="start",
        metadata={"languages": services.captions.languages},
    )

    with timer() as end:
        outcome = services.captions.retrieve(job.video_id, logger=logger)

        if not outcome.found:
            log_event(
                logger,
                logging.INFO,
                "No captions available",
                stage_name=stage_name,
                event_type="not_found",
                metadata={"attempts": outcome.attempts},
            )
            return job, not_found(stage_name, end(), "No captions available; falling back to speech recognition")

        job.segments = outcome.segments
        job.caption_language = outcome.language
        job.method = TranscriptionMethod.NATIVE_CAPTIONS

        log_event(
            logger,
            logging.INFO,
            "Captions retrieved",
            stage_name=stage_name,
            event_type="success",
            metadata={"language": outcome.language, "segments": len(outcome.segments), "attempts": outcome.attempts},
        )
        return job, succeeded(stage_name, end())
