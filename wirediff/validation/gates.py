#!/usr/bin/env python3
"""
Quality gates

Turns measured metrics into PASS / FAIL verdicts.

- evaluate_gate(): one metric against one threshold
- evaluate_baseline_gate(): mismatch / error / pass-rate limits for a
  differential report, collecting every failure reason before deciding
- QualityGateEvaluator: compatibility pass rate, flake rate, p95 latency
  and repro-time p50 against QualityGateThresholds
"""

import math
import operator as _operator
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from ..core.errors import ConfigurationError
from ..core.results import DifferentialReport


class GateOperator(Enum):
    GREATER_OR_EQUAL = ">="
    LESS_OR_EQUAL = "<="

    @property
    def symbol(self) -> str:
        return self.value

    def test(self, measured: float, threshold: float) -> bool:
        compare: Callable[[float, float], bool] = (
            _operator.ge if self is GateOperator.GREATER_OR_EQUAL else _operator.le
        )
        return compare(measured, threshold)


class GateStatus(Enum):
    PASS = "PASS"
    FAIL = "FAIL"
    MISSING = "MISSING"


def _require_finite(value: float, field_name: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
        raise ConfigurationError(f"{field_name} must be finite: {value!r}")
    return float(value)


def _require_ratio(value: float, field_name: str) -> float:
    value = _require_finite(value, field_name)
    if value < 0.0 or value > 1.0:
        raise ConfigurationError(f"{field_name} must be in range [0.0, 1.0]: {value}")
    return value


def _require_non_negative(value: float, field_name: str) -> float:
    value = _require_finite(value, field_name)
    if value < 0.0:
        raise ConfigurationError(f"{field_name} must be >= 0.0: {value}")
    return value


@dataclass(frozen=True)
class GateCheck:
    """One metric compared against one threshold."""
    gate_id: str
    metric_key: str
    operator: GateOperator
    measured_value: float
    threshold_value: float
    status: GateStatus

    def __post_init__(self):
        if not self.gate_id or not self.gate_id.strip():
            raise ConfigurationError("gate_id must not be blank")
        if not self.metric_key or not self.metric_key.strip():
            raise ConfigurationError("metric_key must not be blank")
        object.__setattr__(self, "measured_value", _require_finite(self.measured_value, "measured_value"))
        object.__setattr__(self, "threshold_value", _require_finite(self.threshold_value, "threshold_value"))

    @property
    def passed(self) -> bool:
        return self.status is GateStatus.PASS

    def to_dict(self) -> Dict[str, Any]:
        return {
            "gateId": self.gate_id,
            "metricKey": self.metric_key,
            "measuredValue": self.measured_value,
            "operator": self.operator.symbol,
            "thresholdValue": self.threshold_value,
            "status": self.status.value,
        }


def evaluate_gate(gate_id: str, metric_key: str, operator: GateOperator,
                  measured: float, threshold: float) -> GateCheck:
    measured = _require_finite(measured, "measured_value")
    threshold = _require_finite(threshold, "threshold_value")
    status = GateStatus.PASS if operator.test(measured, threshold) else GateStatus.FAIL
    return GateCheck(gate_id, metric_key, operator, measured, threshold, status)


@dataclass(frozen=True)
class PassRate:
    """match / total, 0.0 for an empty run"""
    match_count: int
    total_count: int

    def __post_init__(self):
        if self.match_count < 0:
            raise ConfigurationError("match_count must be >= 0")
        if self.total_count < 0:
            raise ConfigurationError("total_count must be >= 0")
        if self.match_count > self.total_count:
            raise ConfigurationError("match_count must be <= total_count")

    @classmethod
    def from_report(cls, report: DifferentialReport) -> "PassRate":
        return cls(report.match_count, report.total_scenarios)

    @property
    def ratio(self) -> float:
        return self.match_count / self.total_count if self.total_count else 0.0

    @property
    def percentage(self) -> float:
        return self.ratio * 100.0

    def formatted(self) -> str:
        return f"{self.percentage:.2f}% ({self.match_count}/{self.total_count})"


@dataclass(frozen=True)
class GateThresholds:
    """Baseline gate limits. min_pass_rate None means no pass-rate check."""
    max_mismatch: int = 0
    max_error: int = 0
    min_pass_rate: Optional[float] = None

    def __post_init__(self):
        if self.max_mismatch < 0:
            raise ConfigurationError(f"max_mismatch must be >= 0: {self.max_mismatch}")
        if self.max_error < 0:
            raise ConfigurationError(f"max_error must be >= 0: {self.max_error}")
        if self.min_pass_rate is not None:
            object.__setattr__(self, "min_pass_rate", _require_ratio(self.min_pass_rate, "min_pass_rate"))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "maxMismatch": self.max_mismatch,
            "maxError": self.max_error,
            "minPassRate": self.min_pass_rate,
        }


@dataclass(frozen=True)
class GateResult:
    """Baseline gate verdict with every reason it failed"""
    status: GateStatus
    mismatch_count: int
    error_count: int
    pass_rate: float
    thresholds: GateThresholds
    failure_reasons: List[str] = field(default_factory=list)

    @property
    def passed(self) -> bool:
        return self.status is GateStatus.PASS

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "mismatchCount": self.mismatch_count,
            "errorCount": self.error_count,
            "passRate": self.pass_rate,
            "thresholds": self.thresholds.to_dict(),
            "failureReasons": list(self.failure_reasons),
        }


def evaluate_baseline_gate(report: DifferentialReport,
                           thresholds: Optional[GateThresholds] = None) -> GateResult:
    thresholds = thresholds or GateThresholds()
    mismatch = report.mismatch_count
    errors = report.error_count
    pass_rate = PassRate.from_report(report).ratio

    reasons = []
    if mismatch > thresholds.max_mismatch:
        reasons.append(f"mismatch threshold exceeded: {mismatch} > {thresholds.max_mismatch}")
    if errors > thresholds.max_error:
        reasons.append(f"error threshold exceeded: {errors} > {thresholds.max_error}")
    if thresholds.min_pass_rate is not None and pass_rate < thresholds.min_pass_rate:
        reasons.append(f"passRate threshold not met: {pass_rate:.4f} < {thresholds.min_pass_rate:.4f}")

    status = GateStatus.FAIL if reasons else GateStatus.PASS
    return GateResult(status, mismatch, errors, pass_rate, thresholds, reasons)


class QualityGateMetric(Enum):
    COMPATIBILITY_PASS_RATE = "compatibilityPassRate"
    FLAKE_RATE = "flakeRate"
    P95_LATENCY_MILLIS = "p95LatencyMillis"
    REPRO_TIME_P50_MINUTES = "reproTimeP50Minutes"


@dataclass(frozen=True)
class QualityGateMetrics:
    compatibility_pass_rate: float
    flake_rate: float
    p95_latency_millis: float
    repro_time_p50_minutes: float

    def __post_init__(self):
        object.__setattr__(self, "compatibility_pass_rate",
                           _require_ratio(self.compatibility_pass_rate, "compatibility_pass_rate"))
        object.__setattr__(self, "flake_rate", _require_ratio(self.flake_rate, "flake_rate"))
        object.__setattr__(self, "p95_latency_millis",
                           _require_non_negative(self.p95_latency_millis, "p95_latency_millis"))
        object.__setattr__(self, "repro_time_p50_minutes",
                           _require_non_negative(self.repro_time_p50_minutes, "repro_time_p50_minutes"))

    def value_for(self, metric: QualityGateMetric) -> float:
        return {
            QualityGateMetric.COMPATIBILITY_PASS_RATE: self.compatibility_pass_rate,
            QualityGateMetric.FLAKE_RATE: self.flake_rate,
            QualityGateMetric.P95_LATENCY_MILLIS: self.p95_latency_millis,
            QualityGateMetric.REPRO_TIME_P50_MINUTES: self.repro_time_p50_minutes,
        }[metric]

    def to_dict(self) -> Dict[str, Any]:
        return {metric.value: self.value_for(metric) for metric in QualityGateMetric}


@dataclass(frozen=True)
class QualityGateThresholds:
    min_compatibility_pass_rate: float
    max_flake_rate: float
    max_p95_latency_millis: float
    max_repro_time_p50_minutes: float

    def __post_init__(self):
        object.__setattr__(self, "min_compatibility_pass_rate",
                           _require_ratio(self.min_compatibility_pass_rate, "min_compatibility_pass_rate"))
        object.__setattr__(self, "max_flake_rate", _require_ratio(self.max_flake_rate, "max_flake_rate"))
        object.__setattr__(self, "max_p95_latency_millis",
                           _require_non_negative(self.max_p95_latency_millis, "max_p95_latency_millis"))
        object.__setattr__(self, "max_repro_time_p50_minutes",
                           _require_non_negative(self.max_repro_time_p50_minutes, "max_repro_time_p50_minutes"))

    @classmethod
    def recommended(cls) -> "QualityGateThresholds":
        return cls(0.95, 0.005, 5.0, 5.0)

    def threshold_for(self, metric: QualityGateMetric) -> float:
        return {
            QualityGateMetric.COMPATIBILITY_PASS_RATE: self.min_compatibility_pass_rate,
            QualityGateMetric.FLAKE_RATE: self.max_flake_rate,
            QualityGateMetric.P95_LATENCY_MILLIS: self.max_p95_latency_millis,
            QualityGateMetric.REPRO_TIME_P50_MINUTES: self.max_repro_time_p50_minutes,
        }[metric]

    def to_dict(self) -> Dict[str, Any]:
        return {metric.value: self.threshold_for(metric) for metric in QualityGateMetric}


QUALITY_GATES = (
    ("compatibility-pass-rate", QualityGateMetric.COMPATIBILITY_PASS_RATE, GateOperator.GREATER_OR_EQUAL),
    ("flake-rate", QualityGateMetric.FLAKE_RATE, GateOperator.LESS_OR_EQUAL),
    ("p95-latency", QualityGateMetric.P95_LATENCY_MILLIS, GateOperator.LESS_OR_EQUAL),
    ("repro-time-p50", QualityGateMetric.REPRO_TIME_P50_MINUTES, GateOperator.LESS_OR_EQUAL),
)


@dataclass(frozen=True)
class QualityGateReport:
    generated_at: datetime
    metrics: QualityGateMetrics
    checks: List[GateCheck]

    @property
    def pass_count(self) -> int:
        return sum(1 for check in self.checks if check.status is GateStatus.PASS)

    @property
    def fail_count(self) -> int:
        return sum(1 for check in self.checks if check.status is GateStatus.FAIL)

    @property
    def overall_passed(self) -> bool:
        return all(check.passed for check in self.checks)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "generatedAt": self.generated_at.isoformat(),
            "overallStatus": "PASS" if self.overall_passed else "FAIL",
            "summary": {"pass": self.pass_count, "fail": self.fail_count},
            "metrics": self.metrics.to_dict(),
            "gates": [check.to_dict() for check in self.checks],
        }


class QualityGateEvaluator:
    """Evaluates KPI measurements against threshold configuration."""

    def __init__(self, clock: Optional[Callable[[], datetime]] = None):
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    def evaluate(self, metrics: QualityGateMetrics,
                 thresholds: Optional[QualityGateThresholds] = None) -> QualityGateReport:
        thresholds = thresholds or QualityGateThresholds.recommended()
        checks = [
            evaluate_gate(gate_id, metric.value, op, metrics.value_for(metric), thresholds.threshold_for(metric))
            for gate_id, metric, op in QUALITY_GATES
        ]
        return QualityGateReport(self.clock(), metrics, checks)
