#!/usr/bin/env python3
"""
Differential result schemas

DiffEntry, DiffResult and DifferentialReport describe what the diff engine
found for one scenario and for a whole run. Derived counts on the report
are computed from its results and never stored.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .errors import ScenarioValidationError
from .values import freeze_value, to_json_safe


REPORT_SCHEMA_VERSION = "1.0.0"


class DiffStatus(Enum):
    """Per-scenario comparison outcome."""
    MATCH = "MATCH"
    MISMATCH = "MISMATCH"
    ERROR = "ERROR"


def _require_text(value: Optional[str], field_name: str) -> str:
    normalized = value.strip() if isinstance(value, str) else None
    if not normalized:
        raise ScenarioValidationError(f"{field_name} must not be blank", {"field": field_name})
    return normalized


@dataclass(frozen=True)
class DiffEntry:
    """One material difference between two backend outcomes."""
    path: str
    left_value: Any
    right_value: Any
    note: str = ""

    def __post_init__(self):
        object.__setattr__(self, "path", _require_text(self.path, "path"))
        object.__setattr__(self, "note", self.note.strip() if isinstance(self.note, str) else "")
        object.__setattr__(self, "left_value", freeze_value(self.left_value, self.path))
        object.__setattr__(self, "right_value", freeze_value(self.right_value, self.path))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "path": self.path,
            "leftValue": to_json_safe(self.left_value),
            "rightValue": to_json_safe(self.right_value),
            "note": self.note,
        }


@dataclass(frozen=True)
class DiffResult:
    """Comparison result for one scenario.

    Use the match(), mismatch() and error() constructors; they enforce that a
    MISMATCH carries entries and an ERROR carries a message.
    """
    scenario_id: str
    left_backend: str
    right_backend: str
    status: DiffStatus
    entries: Tuple[DiffEntry, ...] = ()
    error_message: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, "scenario_id", _require_text(self.scenario_id, "scenario_id"))
        object.__setattr__(self, "left_backend", _require_text(self.left_backend, "left_backend"))
        object.__setattr__(self, "right_backend", _require_text(self.right_backend, "right_backend"))
        object.__setattr__(self, "entries", tuple(self.entries or ()))
        message = self.error_message.strip() if isinstance(self.error_message, str) else None
        object.__setattr__(self, "error_message", message or None)

    @classmethod
    def match(cls, scenario_id: str, left_backend: str, right_backend: str) -> "DiffResult":
        return cls(scenario_id, left_backend, right_backend, DiffStatus.MATCH)

    @classmethod
    def mismatch(cls, scenario_id: str, left_backend: str, right_backend: str,
                 entries: Sequence[DiffEntry]) -> "DiffResult":
        entries = tuple(entries or ())
        if not entries:
            raise ScenarioValidationError("entries must not be empty for mismatches",
                                          {"scenario": scenario_id})
        return cls(scenario_id, left_backend, right_backend, DiffStatus.MISMATCH, entries)

    @classmethod
    def error(cls, scenario_id: str, left_backend: str, right_backend: str,
              error_message: str) -> "DiffResult":
        return cls(scenario_id, left_backend, right_backend, DiffStatus.ERROR, (),
                   _require_text(error_message, "error_message"))

    def to_dict(self) -> Dict[str, Any]:
        result = {
            "scenarioId": self.scenario_id,
            "leftBackend": self.left_backend,
            "rightBackend": self.right_backend,
            "status": self.status.value,
            "entries": [entry.to_dict() for entry in self.entries],
        }
        if self.error_message:
            result["errorMessage"] = self.error_message
        return result


@dataclass(frozen=True)
class DifferentialReport:
    """Aggregated results of one differential run, in scenario order."""
    left_backend: str
    right_backend: str
    results: Tuple[DiffResult, ...] = ()
    generated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __post_init__(self):
        object.__setattr__(self, "left_backend", _require_text(self.left_backend, "left_backend"))
        object.__setattr__(self, "right_backend", _require_text(self.right_backend, "right_backend"))
        object.__setattr__(self, "results", tuple(self.results or ()))

    @property
    def total_scenarios(self) -> int:
        return len(self.results)

    @property
    def match_count(self) -> int:
        return self._count(DiffStatus.MATCH)

    @property
    def mismatch_count(self) -> int:
        return self._count(DiffStatus.MISMATCH)

    @property
    def error_count(self) -> int:
        return self._count(DiffStatus.ERROR)

    def _count(self, status: DiffStatus) -> int:
        return sum(1 for result in self.results if result.status is status)

    def results_by_id(self) -> Dict[str, DiffResult]:
        return {result.scenario_id: result for result in self.results}

    def summary(self) -> Dict[str, int]:
        return {
            "total": self.total_scenarios,
            "match": self.match_count,
            "mismatch": self.mismatch_count,
            "error": self.error_count,
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "schemaVersion": REPORT_SCHEMA_VERSION,
            "generatedAt": self.generated_at.isoformat(),
            "leftBackend": self.left_backend,
            "rightBackend": self.right_backend,
            "summary": self.summary(),
            "results": [result.to_dict() for result in self.results],
        }
