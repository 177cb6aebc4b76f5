#!/usr/bin/env python3
"""
Release-readiness aggregation

Collects the JSON evidence artifacts produced by the other tools and folds
them into a single PASS / FAIL verdict. Each evidence gate names an artifact
path and an evaluator for its contents:

- artifact missing          -> MISSING ("missing artifact: <path>")
- artifact not valid JSON   -> FAIL ("invalid JSON artifact: ...")
- evaluator raised          -> FAIL ("evaluator failed: ...")
- otherwise                 -> whatever the evaluator decides

Gates may carry a generator that produces their artifact on demand. With
generate_missing enabled, generators run for missing artifacts first; their
success or failure is recorded as a diagnostic and never raised.
"""

import json
import logging
import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple

from ..core.errors import EvidenceError
from .gates import GateStatus

logger = logging.getLogger(__name__)

DEFAULT_MIN_PASS_RATE = 0.98

Evaluation = Tuple[GateStatus, Dict[str, Any], List[str]]
Evaluator = Callable[[Mapping[str, Any]], Evaluation]


@dataclass
class EvidenceGate:
    """One artifact and the rule that judges it"""
    gate_id: str
    artifact_path: Path
    evaluator: Evaluator
    generator: Optional[Callable[[], Any]] = None
    skip_reason: Optional[str] = None

    def __post_init__(self):
        self.artifact_path = Path(self.artifact_path)


@dataclass
class EvidenceGateResult:
    gate_id: str
    status: GateStatus
    artifact_path: Path
    artifact_generated_at: Optional[str] = None
    evidence_generated: bool = False
    metrics: Dict[str, Any] = field(default_factory=dict)
    diagnostics: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "gateId": self.gate_id,
            "status": self.status.value,
            "artifactPath": str(self.artifact_path),
            "artifactGeneratedAt": self.artifact_generated_at,
            "evidenceGenerated": self.evidence_generated,
            "metrics": dict(self.metrics),
            "diagnostics": list(self.diagnostics),
        }


@dataclass
class ReadinessResult:
    generated_at: datetime
    gate_results: List[EvidenceGateResult]

    def _count(self, status: GateStatus) -> int:
        return sum(1 for result in self.gate_results if result.status is status)

    @property
    def pass_count(self) -> int:
        return self._count(GateStatus.PASS)

    @property
    def fail_count(self) -> int:
        return self._count(GateStatus.FAIL)

    @property
    def missing_count(self) -> int:
        return self._count(GateStatus.MISSING)

    @property
    def overall_passed(self) -> bool:
        return all(result.status is GateStatus.PASS for result in self.gate_results)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "generatedAt": self.generated_at.isoformat(),
            "overallStatus": "PASS" if self.overall_passed else "FAIL",
            "summary": {
                "pass": self.pass_count,
                "fail": self.fail_count,
                "missing": self.missing_count,
            },
            "gates": [result.to_dict() for result in self.gate_results],
            "missingEvidence": [
                {
                    "gateId": result.gate_id,
                    "artifactPath": str(result.artifact_path),
                    "diagnostics": list(result.diagnostics),
                }
                for result in self.gate_results
                if result.status is GateStatus.MISSING
            ],
        }


def _read_number(document: Mapping[str, Any], key: str) -> Optional[float]:
    value = document.get(key)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if isinstance(value, float) and not math.isfinite(value):
        return None
    return value


def _read_int(document: Mapping[str, Any], key: str) -> Optional[int]:
    value = _read_number(document, key)
    return int(value) if value is not None else None


def _read_mapping(document: Mapping[str, Any], key: str) -> Optional[Mapping[str, Any]]:
    value = document.get(key)
    return value if isinstance(value, Mapping) else None


def _extract_metrics(root: Mapping[str, Any], keys: Iterable[str]) -> Dict[str, Any]:
    metrics = _read_mapping(root, "metrics")
    if metrics is None:
        return {}
    keys = list(keys)
    if not keys:
        return dict(metrics)
    return {key: metrics[key] for key in keys if key in metrics}


def overall_status_evaluator(*metric_keys: str) -> Evaluator:
    """PASS only when the artifact reports overallStatus == "PASS"."""

    def evaluate(root: Mapping[str, Any]) -> Evaluation:
        metrics = _extract_metrics(root, metric_keys)
        status = root.get("overallStatus")
        if status == "PASS":
            return GateStatus.PASS, metrics, []
        if status == "FAIL":
            return GateStatus.FAIL, metrics, ["artifact overallStatus=FAIL"]
        return GateStatus.FAIL, metrics, [f"artifact overallStatus missing or invalid: {status}"]

    return evaluate


def baseline_summary_evaluator() -> Evaluator:
    """Differential baseline: summary.total > 0 with no mismatches and no errors."""

    def evaluate(root: Mapping[str, Any]) -> Evaluation:
        summary = _read_mapping(root, "summary")
        if summary is None:
            return GateStatus.FAIL, {}, ["missing summary object"]

        total = _read_int(summary, "total")
        mismatch = _read_int(summary, "mismatch")
        error = _read_int(summary, "error")
        pass_rate = _read_number(summary, "passRate")

        metrics = {}
        for key, value in (("total", total), ("mismatch", mismatch), ("error", error), ("passRate", pass_rate)):
            if value is not None:
                metrics[key] = value

        diagnostics = []
        if total is None or total <= 0:
            diagnostics.append("expected summary.total > 0")
        if mismatch is None:
            diagnostics.append("missing summary.mismatch")
        if error is None:
            diagnostics.append("missing summary.error")
        if diagnostics:
            return GateStatus.FAIL, metrics, diagnostics

        if mismatch != 0:
            diagnostics.append(f"expected mismatch=0 but was {mismatch}")
        if error != 0:
            diagnostics.append(f"expected error=0 but was {error}")
        return (GateStatus.FAIL if diagnostics else GateStatus.PASS), metrics, diagnostics

    return evaluate


def _resolve_pass_rate(summary: Optional[Mapping[str, Any]]) -> Optional[float]:
    if summary is None:
        return None
    pass_rate = _read_number(summary, "passRate")
    if pass_rate is not None:
        return float(pass_rate)
    passed = _read_int(summary, "pass")
    failed = _read_int(summary, "fail")
    if passed is None or failed is None or passed + failed <= 0:
        return None
    return passed / (passed + failed)


def pass_rate_evaluator(min_pass_rate: float = DEFAULT_MIN_PASS_RATE, label: str = "passRate") -> Evaluator:
    """overallStatus when present, else summary pass rate against a minimum."""

    def evaluate(root: Mapping[str, Any]) -> Evaluation:
        summary = _read_mapping(root, "summary")
        pass_rate = _resolve_pass_rate(summary)
        metrics = {}
        if pass_rate is not None:
            metrics["passRate"] = pass_rate
        if summary is not None:
            for key in ("pass", "fail"):
                value = _read_int(summary, key)
                if value is not None:
                    metrics[key] = value

        status = root.get("overallStatus")
        if status == "PASS":
            return GateStatus.PASS, metrics, []
        if status == "FAIL":
            return GateStatus.FAIL, metrics, ["artifact overallStatus=FAIL"]
        if pass_rate is None:
            return GateStatus.FAIL, metrics, ["artifact missing overallStatus and summary.passRate"]
        if pass_rate < min_pass_rate:
            return GateStatus.FAIL, metrics, [f"{label} {pass_rate:.4f} < {min_pass_rate:.2f}"]
        return GateStatus.PASS, metrics, []

    return evaluate


def _describe(error: BaseException) -> str:
    message = str(error).strip()
    return message or type(error).__name__


def _reject_constant(name: str):
    raise ValueError(f"non-finite number {name} is not valid JSON")


def load_artifact(path: Path) -> Dict[str, Any]:
    try:
        with open(path, "r", encoding="utf-8") as f:
            root = json.load(f, parse_constant=_reject_constant)
    except ValueError as e:
        raise EvidenceError(_describe(e), {"path": str(path)}) from e
    if not isinstance(root, dict):
        raise EvidenceError("top-level JSON value must be an object", {"path": str(path)})
    return root


class ReleaseReadinessAggregator:
    """Aggregates evidence artifacts into a single readiness verdict."""

    def __init__(self, gates: Iterable[EvidenceGate],
                 clock: Optional[Callable[[], datetime]] = None):
        self.gates = list(gates)
        ids = [gate.gate_id for gate in self.gates]
        if len(ids) != len(set(ids)):
            raise EvidenceError(f"duplicate evidence gate ids: {ids}")
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    def run(self, generate_missing: bool = False) -> ReadinessResult:
        results = [self._evaluate(gate, generate_missing) for gate in self.gates]
        result = ReadinessResult(self.clock(), results)
        logger.info(f"Readiness: pass={result.pass_count} fail={result.fail_count} "
                    f"missing={result.missing_count}")
        return result

    def _generate(self, gate: EvidenceGate, diagnostics: List[str]) -> bool:
        if gate.generator is None:
            if gate.skip_reason:
                diagnostics.append(f"generation skipped: {gate.skip_reason}")
            return False
        try:
            gate.generator()
        except Exception as e:
            logger.error(f"Evidence generation for {gate.gate_id} failed: {e}")
            diagnostics.append(f"failed to generate evidence: {_describe(e)}")
            return False
        diagnostics.append("evidence generated during this aggregation run")
        return True

    def _evaluate(self, gate: EvidenceGate, generate_missing: bool) -> EvidenceGateResult:
        diagnostics: List[str] = []
        generated = False
        if generate_missing and not gate.artifact_path.exists():
            generated = self._generate(gate, diagnostics)

        if not gate.artifact_path.exists():
            diagnostics.append(f"missing artifact: {gate.artifact_path}")
            return EvidenceGateResult(gate.gate_id, GateStatus.MISSING, gate.artifact_path,
                                      evidence_generated=generated, diagnostics=diagnostics)

        try:
            root = load_artifact(gate.artifact_path)
        except (EvidenceError, OSError) as e:
            diagnostics.append(f"invalid JSON artifact: {_describe(e)}")
            return EvidenceGateResult(gate.gate_id, GateStatus.FAIL, gate.artifact_path,
                                      evidence_generated=generated, diagnostics=diagnostics)

        generated_at = root.get("generatedAt") if isinstance(root.get("generatedAt"), str) else None
        try:
            status, metrics, gate_diagnostics = gate.evaluator(root)
        except Exception as e:
            logger.error(f"Evaluator for {gate.gate_id} failed: {e}")
            diagnostics.append(f"evaluator failed: {_describe(e)}")
            return EvidenceGateResult(gate.gate_id, GateStatus.FAIL, gate.artifact_path, generated_at,
                                      generated, {}, diagnostics)
        diagnostics.extend(gate_diagnostics)
        return EvidenceGateResult(gate.gate_id, status, gate.artifact_path, generated_at,
                                  generated, metrics, diagnostics)
