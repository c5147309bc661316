# transcript_crawler/pipeline/stages/validate_input.py
"""
Stage 1: Identifier validation.

Responsibility:
- Confirm the raw input is an 11-character video ID ([A-Za-z0-9_-])
- Populate job.video_id

Fails with InvalidIdentifier otherwise.
No external network calls; pure deterministic validation, always first.
"""

from __future__ import annotations

import re
import uuid
from typing import Any, Optional, Tuple

from transcript_crawler.pipeline.errors import InvalidIdentifier
from transcript_crawler.pipeline.schema import VIDEO_ID_PATTERN, PipelineJob, StageResult
from transcript_crawler.pipeline.stages.base import failed, succeeded, timer
from transcript_crawler.logging_core.logger import get_logger, log_event
import logging


VIDEO_ID_REGEX = re.compile(VIDEO_ID_PATTERN)

# watch?v=, youtu.be/, embed/ and shorts/ links
YOUTUBE_URL_PATTERNS = (
    re.compile(r"(?:youtube\.com/watch\?(?:.*&)?v=|youtu\.be/|youtube\.com/embed/)([A-Za-z0-9_-]{11})"),
    re.compile(r"youtube\.com/shorts/([A-Za-z0-9_-]{11})"),
)


def validate_video_id(raw: Any) -> str:
    if not isinstance(raw, str) or not VIDEO_ID_REGEX.fullmatch(raw):
        raise InvalidIdentifier(f"not a video id: {raw!r}")
    return raw


def extract_video_id(text: str) -> Optional[str]:
    """Accept a bare ID or a YouTube link; None when nothing usable is found."""
    text = (text or "").strip()
    if VIDEO_ID_REGEX.fullmatch(text):
        return text
    for pattern in YOUTUBE_URL_PATTERNS:
        match = pattern.search(text)
        if match:
            return match.group(1)
    return None


def process(job: PipelineJob, run_id: uuid.UUID, services: Any) -> Tuple[PipelineJob, StageResult]:
    """
    Validate job.raw_input and set job.video_id.
    """
    stage_name = "validate_input"
    logger = get_logger(run_id)

    with timer() as end:
        try:
            job.video_id = validate_video_id(job.raw_input)
        except InvalidIdentifier as exc:
            log_event(
                logger,
                logging.WARNING,
                "Validation failed: invalid video ID",
                stage_name=stage_name,
                event_type="failure",
                metadata={"raw_input": str(job.raw_input)[:64]},
            )
            return job, failed(stage_name, exc, end())

        log_event(
            logger,
            logging.INFO,
            "Video ID validated",
            stage_name=stage_name,
            event_type="success",
            metadata={"video_id": job.video_id},
        )
        return job, succeeded(stage_name, end())


# High-Level Intent
# The gatekeeper. Nothing touches the network before this stage succeeds.
# URL parsing (extract_video_id) belongs to the caller; the stage itself only
# accepts the bare identifier, so every non-matching string is rejected.

# Edge Cases
# None / non-string input → InvalidIdentifier
# 10 or 12 characters, "=" or "." in the ID → InvalidIdentifier
# Trailing whitespace is NOT stripped here → InvalidIdentifier
