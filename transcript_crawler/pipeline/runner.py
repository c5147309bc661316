# transcript_crawler/pipeline/runner.py
"""
Orchestration runner for the transcript pipeline.

Responsibilities:
- Initialize traceability (run_id, logger, diagnostics)
- Execute stages in fixed order, tracking the state machine
- Stop at the first stage that produces a transcript or fails
- Convert every outcome into a PipelineResponse
- Hand finished runs to the history sink (fire-and-forget)

No business logic lives here; only orchestration.
"""

from __future__ import annotations

import threading
import uuid
from dataclasses import dataclass
from typing import Dict, List, Optional

from transcript_crawler.config import Settings
from transcript_crawler.pipeline.diagnostics.collector import DiagnosticsCollector
from transcript_crawler.pipeline.errors import PipelineCancelled
from transcript_crawler.pipeline.schema import (
    Diagnostics,
    HistoryRecord,
    PipelineJob,
    PipelineResponse,
    PipelineState,
    StageStatus,
    TranscriptResult,
    UploadedAudio,
)
from transcript_crawler.pipeline.services import PipelineServices
from transcript_crawler.pipeline.stages import (
    fetch_captions,
    fetch_metadata,
    resolve_audio,
    transcribe_audio,
    validate_input,
    validate_upload,
)
from transcript_crawler.pipeline.stages.base import Stage
from transcript_crawler.logging_core.logger import get_logger, log_event
import logging


VIDEO_STAGES: List[Stage] = [
    validate_input.process,
    fetch_metadata.process,
    fetch_captions.process,
    resolve_audio.process,
    transcribe_audio.process,
]

UPLOAD_STAGES: List[Stage] = [
    validate_upload.process,
    transcribe_audio.process,
]

STAGE_STATES: Dict[str, PipelineState] = {
    "validate_input": PipelineState.VALIDATING,
    "validate_upload": PipelineState.VALIDATING,
    "fetch_metadata": PipelineState.FETCHING_METADATA,
    "fetch_captions": PipelineState.RETRIEVING_CAPTIONS,
    "resolve_audio": PipelineState.RESOLVING_AUDIO,
    "transcribe_audio": PipelineState.TRANSCRIBING,
}

UNEXPECTED_ERROR_MESSAGE = "An unexpected server error occurred."


@dataclass
class PipelineRun:
    """Everything a caller may want to know about one finished run."""
    run_id: uuid.UUID
    state: PipelineState
    response: PipelineResponse
    diagnostics: Diagnostics
    result: Optional[TranscriptResult] = None


def run_transcript(
    video_id: str,
    settings: Optional[Settings] = None,
    services: Optional[PipelineServices] = None,
    cancel_event: Optional[threading.Event] = None,
) -> PipelineRun:
    """
    Acquire a transcript for a video ID: captions first, speech recognition second.

    Never raises; every failure is reported through the returned response.
    Services built here are closed when the run ends.
    """
    job = PipelineJob(mode="video", raw_input=video_id, cancel_event=cancel_event)
    return _run(job, VIDEO_STAGES, settings, services)


def run_upload(
    upload: Optional[UploadedAudio],
    settings: Optional[Settings] = None,
    services: Optional[PipelineServices] = None,
    cancel_event: Optional[threading.Event] = None,
) -> PipelineRun:
    """Transcribe user-supplied audio. No metadata, no captions, no resolver."""
    job = PipelineJob(mode="upload", upload=upload, cancel_event=cancel_event)
    return _run(job, UPLOAD_STAGES, settings, services)


def _run(
    job: PipelineJob,
    stages: List[Stage],
    settings: Optional[Settings],
    services: Optional[PipelineServices],
) -> PipelineRun:
    if services is not None:
        return _execute(job, stages, services)

    owned = PipelineServices.from_settings(settings or Settings())
    try:
        return _execute(job, stages, owned)
    finally:
        owned.close()


def _execute(job: PipelineJob, stages: List[Stage], services: PipelineServices) -> PipelineRun:
    run_id = uuid.uuid4()
    logger = get_logger(run_id)
    collector = DiagnosticsCollector(run_id)

    log_event(
        logger,
        logging.INFO,
        "Starting transcript pipeline",
        event_type="pipeline_start",
        metadata={"mode": job.mode, "input": job.raw_input if job.mode == "video" else getattr(job.upload, "filename", None)},
    )

    for stage_func in stages:
        stage_name = stage_func.__module__.split(".")[-1]
        if _cancelled(job):
            return _cancel(run_id, logger, collector, stage_name)

        log_event(
            logger,
            logging.DEBUG,
            "Entering state",
            stage_name=stage_name,
            event_type="state",
            metadata={"state": STAGE_STATES[stage_name].value},
        )

        try:
            job, stage_result = stage_func(job, run_id, services)
        except Exception as exc:  # pylint: disable=broad-except
            collector.add_error(f"Unhandled exception in {stage_name}: {exc}")
            log_event(
                logger,
                logging.ERROR,
                "Unhandled exception in stage",
                stage_name=stage_name,
                event_type="failure",
                metadata={"exception": repr(exc)},
            )
            return _finish(run_id, PipelineState.FAILED, PipelineResponse.error(UNEXPECTED_ERROR_MESSAGE, 500), collector)

        collector.add_stage_result(stage_result)

        if stage_result.status is StageStatus.FAILED:
            failure = stage_result.failure
            log_event(
                logger,
                logging.WARNING,
                "Pipeline stopped",
                stage_name=stage_name,
                event_type="pipeline_failure",
                metadata={"state": failure.terminal_state.value, "error_code": failure.error_code},
            )
            return _finish(
                run_id,
                failure.terminal_state,
                PipelineResponse.error(failure.message, failure.status_code),
                collector,
            )

        if job.completed:
            break

    if _cancelled(job):
        return _cancel(run_id, logger, collector, "completion")

    if not job.completed:
        # Every stage ran without producing segments: a stage broke its contract.
        collector.add_error("Pipeline finished without a transcript")
        return _finish(run_id, PipelineState.FAILED, PipelineResponse.error(UNEXPECTED_ERROR_MESSAGE, 500), collector)

    result = TranscriptResult(metadata=job.metadata, segments=job.segments, method=job.method)
    response = PipelineResponse(status_code=200, body=result.to_body())

    log_event(
        logger,
        logging.INFO,
        "Pipeline completed successfully",
        event_type="pipeline_success",
        metadata={"method": result.method.value, "segments": len(result.segments)},
    )

    if services.history is not None and job.metadata is not None:
        services.history.record(
            HistoryRecord(
                video_id=job.metadata.video_id,
                title=job.metadata.title,
                thumbnail=job.metadata.thumbnail_url,
            )
        )

    return _finish(run_id, PipelineState.DONE, response, collector, result)


def _cancelled(job: PipelineJob) -> bool:
    return job.cancel_event is not None and job.cancel_event.is_set()


def _cancel(
    run_id: uuid.UUID,
    logger: logging.LoggerAdapter,
    collector: DiagnosticsCollector,
    stage_name: str,
) -> PipelineRun:
    exc = PipelineCancelled(f"cancelled before {stage_name}")
    collector.add_error(exc.detail)
    log_event(logger, logging.WARNING, "Pipeline cancelled", stage_name=stage_name, event_type="cancelled")
    return _finish(run_id, exc.terminal_state, PipelineResponse.error(exc.user_message, exc.status_code), collector)


def _finish(
    run_id: uuid.UUID,
    state: PipelineState,
    response: PipelineResponse,
    collector: DiagnosticsCollector,
    result: Optional[TranscriptResult] = None,
) -> PipelineRun:
    return PipelineRun(
        run_id=run_id,
        state=state,
        response=response,
        diagnostics=collector.build_diagnostics(state),
        result=result,
    )


# High-Level Intent
# runner.py is the state machine of the pipeline:
# VALIDATING → FETCHING_METADATA → RETRIEVING_CAPTIONS → RESOLVING_AUDIO → TRANSCRIBING → DONE
# with terminal REJECTED / NOT_FOUND / UNSUPPORTED / TRANSCRIPTION_FAILED / FAILED.
# Captions and speech recognition are two strategies in one ordered list:
# NOT_FOUND moves on, SUCCESS with segments stops, FAILED ends the run.
# No retries here; the only repeated call is the resolver's bounded poll.

# Data Flow
# caller → run_transcript(video_id) / run_upload(upload)
# → PipelineJob → stages in order → TranscriptResult → PipelineResponse
# → history.record() in the background (URL mode only)

# Edge Cases & Failure Scenarios
# Invalid ID → REJECTED (400), no network call made.
# Stage raises something outside the taxonomy → FAILED (500), traceback kept out of the response.
# History write fails → logged by the recorder, response unaffected.
# cancel_event set → checked before every stage and before the result is built;
# FAILED (499), nothing written to history.
