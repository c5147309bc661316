# transcript_crawler/pipeline/stages/base.py
"""
Shared base definitions and utilities for all pipeline stages.

This module defines:
- The Stage function contract
- A lightweight timer for consistent execution_time_ms measurement
- Helpers that build StageResult objects from outcomes and errors

No business logic belongs here.
"""

from __future__ import annotations

import time
import uuid
from contextlib import contextmanager
from typing import TYPE_CHECKING, Callable, Iterator, List, Optional, Tuple, TypeAlias

from transcript_crawler.pipeline.errors import TranscriptPipelineError
from transcript_crawler.pipeline.schema import PipelineJob, StageFailure, StageResult, StageStatus

if TYPE_CHECKING:
    from transcript_crawler.pipeline.services import PipelineServices


Stage: TypeAlias = Callable[[PipelineJob, uuid.UUID, "PipelineServices"], Tuple[PipelineJob, StageResult]]
"""
Type alias for stage functions.

Signature:
    stage(job: PipelineJob, run_id: uuid.UUID, services: PipelineServices) -> (job, StageResult)
"""


@contextmanager
def timer() -> Iterator[Callable[[], float]]:
    """
    Context manager that provides an end() function returning elapsed milliseconds.

    Usage:
        with timer() as end:
            ...
        execution_time_ms = end()
    """
    start = time.perf_counter()

    def end() -> float:
        return (time.perf_counter() - start) * 1000

    yield end


def succeeded(stage_name: str, elapsed_ms: float, warnings: Optional[List[str]] = None) -> StageResult:
    return StageResult(
        stage_name=stage_name,
        status=StageStatus.SUCCESS,
        warnings=warnings or [],
        execution_time_ms=elapsed_ms,
    )


def not_found(stage_name: str, elapsed_ms: float, warning: str) -> StageResult:
    return StageResult(
        stage_name=stage_name,
        status=StageStatus.NOT_FOUND,
        warnings=[warning],
        execution_time_ms=elapsed_ms,
    )


def failed(stage_name: str, exc: TranscriptPipelineError, elapsed_ms: Optional[float] = None) -> StageResult:
    """Convert a taxonomy error into a terminal StageResult."""
    failure = StageFailure(
        stage=stage_name,
        error_code=exc.error_code,
        message=exc.user_message,
        status_code=exc.status_code,
        terminal_state=exc.terminal_state,
        detail=exc.detail,
        suggested_fixes=list(exc.suggested_fixes),
    )
    return StageResult(
        stage_name=stage_name,
        status=StageStatus.FAILED,
        errors=[exc.detail or exc.user_message],
        failure=failure,
        execution_time_ms=elapsed_ms,
    )


# High-Level Intent
# Every stage receives the run's PipelineJob, the run_id and the injected
# services, and returns (job, StageResult).
# Stages catch the taxonomy errors raised by the subsystems and convert them
# with failed(); they never let those escape.
