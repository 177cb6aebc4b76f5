#!/usr/bin/env python3
"""
Top-regression summaries for differential reports.

Non-matching results are ranked ERROR before MISMATCH, then by entry count
(descending), then by scenario id so the ordering is stable between runs.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from ..core.errors import ConfigurationError
from ..core.results import DiffStatus, DifferentialReport
from ..core.values import to_json_safe

STATUS_PRIORITY = {DiffStatus.ERROR: 2, DiffStatus.MISMATCH: 1, DiffStatus.MATCH: 0}


@dataclass(frozen=True)
class RegressionSample:
    scenario_id: str
    status: DiffStatus
    error_message: Optional[str] = None
    entry_count: int = 0
    entry_path: Optional[str] = None
    entry_note: Optional[str] = None
    left_value: Any = None
    right_value: Any = None

    def to_dict(self) -> Dict[str, Any]:
        if self.status is DiffStatus.ERROR:
            return {
                "scenarioId": self.scenario_id,
                "status": self.status.value,
                "errorMessage": self.error_message,
            }
        return {
            "scenarioId": self.scenario_id,
            "status": self.status.value,
            "entryCount": self.entry_count,
            "entryPath": self.entry_path,
            "entryNote": self.entry_note,
            "leftValue": to_json_safe(self.left_value),
            "rightValue": to_json_safe(self.right_value),
        }

    def describe(self) -> str:
        if self.status is DiffStatus.ERROR:
            return f"{self.scenario_id} ({self.status.value}): {self.error_message}"
        return f"{self.scenario_id} ({self.status.value}): {self.entry_path} ({self.entry_note})"


def top_regressions(report: DifferentialReport, limit: int = 10) -> List[RegressionSample]:
    if limit <= 0:
        raise ConfigurationError(f"limit must be > 0: {limit}")

    regressions = [result for result in report.results if result.status is not DiffStatus.MATCH]
    regressions.sort(key=lambda r: (-STATUS_PRIORITY[r.status], -len(r.entries), r.scenario_id))

    samples = []
    for result in regressions[:limit]:
        if result.status is DiffStatus.ERROR:
            samples.append(RegressionSample(
                result.scenario_id, result.status,
                error_message=result.error_message or "unknown error"))
            continue
        first = result.entries[0] if result.entries else None
        samples.append(RegressionSample(
            result.scenario_id,
            result.status,
            entry_count=len(result.entries),
            entry_path=first.path if first else None,
            entry_note=first.note if first else None,
            left_value=first.left_value if first else None,
            right_value=first.right_value if first else None,
        ))
    return samples
