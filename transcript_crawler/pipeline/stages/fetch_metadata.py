# transcript_crawler/pipeline/stages/fetch_metadata.py
"""
Stage 2: Fetch public video metadata from the oEmbed endpoint.

Responsibility:
- One unauthenticated GET keyed by the canonical watch URL
- Extract title and channel name
- Build the thumbnail URL from the ID (no extra request)

Failure is terminal for the run (NOT_FOUND).
"""

from __future__ import annotations

import uuid
from typing import Optional, Tuple

import requests

from transcript_crawler.pipeline.errors import MetadataUnavailable
from transcript_crawler.pipeline.schema import PipelineJob, StageResult, VideoMetadata
from transcript_crawler.pipeline.services import PipelineServices
from transcript_crawler.pipeline.stages.base import failed, succeeded, timer
from transcript_crawler.logging_core.logger import get_logger, log_event
import logging


OEMBED_URL = "https://www.youtube.com/oembed"
WATCH_URL = "https://www.youtube.com/watch?v={video_id}"
THUMBNAIL_URL = "https://img.youtube.com/vi/{video_id}/maxresdefault.jpg"


def fetch_metadata(video_id: str, session: requests.Session, timeout: float = 15.0) -> VideoMetadata:
    try:
        response = session.get(
            OEMBED_URL,
            params={"url": WATCH_URL.format(video_id=video_id), "format": "json"},
            timeout=timeout,
        )
    except requests.RequestException as exc:
        raise MetadataUnavailable(f"oEmbed request failed: {exc}") from exc

    if not response.ok:
        raise MetadataUnavailable(f"oEmbed answered HTTP {response.status_code}")

    try:
        data = response.json()
    except ValueError as exc:
        raise MetadataUnavailable("oEmbed returned a malformed body") from exc

    title: Optional[str] = data.get("title") if isinstance(data, dict) else None
    if not isinstance(title, str) or not title:
        raise MetadataUnavailable("oEmbed body has no title")

    channel_name = data.get("author_name") or ""
    if not isinstance(channel_name, str):
        raise MetadataUnavailable("oEmbed author_name is not a string")

    return VideoMetadata(
        video_id=video_id,
        title=title,
        channel_name=channel_name,
        thumbnail_url=THUMBNAIL_URL.format(video_id=video_id),
    )


def process(job: PipelineJob, run_id: uuid.UUID, services: PipelineServices) -> Tuple[PipelineJob, StageResult]:
    """
    Fetch metadata for the validated video_id.
    """
    stage_name = "fetch_metadata"
    logger = get_logger(run_id)

    log_event(
        logger,
        logging.INFO,
        "Fetching video metadata",
        stage_name=stage_name,
        event_type="start",
        metadata={"video_id": job.video_id},
    )

    with timer() as end:
        try:
            job.metadata = fetch_metadata(job.video_id, services.session, services.settings.http_timeout_seconds)
        except MetadataUnavailable as exc:
            log_event(
                logger,
                logging.WARNING,
                "Metadata fetch failed",
                stage_name=stage_name,
                event_type="failure",
                metadata={"error": exc.detail},
            )
            return job, failed(stage_name, exc, end())

        log_event(
            logger,
            logging.INFO,
            "Metadata fetched successfully",
            stage_name=stage_name,
            event_type="success",
            metadata={"title": job.metadata.title, "channel": job.metadata.channel_name},
        )
        return job, succeeded(stage_name, end())


# High-Level Intent
# First stage with external I/O. Private, deleted or mistyped IDs surface here
# as a non-2xx oEmbed answer, which ends the run with 404 before any caption or
# audio work is attempted.

# Edge Cases
# 401/404 from oEmbed → MetadataUnavailable
# Timeout / DNS failure → MetadataUnavailable
# Body without "title" or not JSON → MetadataUnavailable
# Missing author_name → empty channel name, still success
