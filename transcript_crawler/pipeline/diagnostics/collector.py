# transcript_crawler/pipeline/diagnostics/collector.py
"""
Diagnostics aggregation for the transcript pipeline.

Collects the StageResult of every stage that ran and synthesizes the
diagnostics attached to a PipelineRun.
"""

from __future__ import annotations

from typing import Dict, List, Optional
from uuid import UUID

from transcript_crawler.pipeline.schema import Diagnostics, PipelineState, StageResult


class DiagnosticsCollector:
    """
    Accumulates StageResult objects for one run.

    One collector per run; never shared.
    """

    def __init__(self, run_id: UUID) -> None:
        self.run_id = run_id
        self._stage_status: Dict[str, StageResult] = {}
        self._warnings: List[str] = []
        self._errors: List[str] = []
        self._suggested_fixes: List[str] = []

    def add_stage_result(self, result: StageResult) -> None:
        """Add a stage result and merge its messages."""
        if result.stage_name in self._stage_status:
            raise ValueError(f"Duplicate stage result for {result.stage_name}")

        self._stage_status[result.stage_name] = result
        self._warnings.extend(result.warnings)
        self._errors.extend(result.errors)
        if result.failure is not None:
            self._suggested_fixes.extend(result.failure.suggested_fixes)

    def add_error(self, message: str) -> None:
        self._errors.append(message)

    def has_fatal_failure(self) -> bool:
        return any(result.failure is not None for result in self._stage_status.values())

    def build_diagnostics(self, final_state: Optional[PipelineState] = None) -> Diagnostics:
        return Diagnostics(
            final_state=final_state,
            stage_status=self._stage_status.copy(),
            warnings=self._warnings.copy(),
            errors=self._errors.copy(),
            suggested_fixes=list(dict.fromkeys(self._suggested_fixes)),  # dedupe, keep order
        )
