#!/usr/bin/env python3
"""
Release-gate evidence

Runs the compatibility corpus, reruns it for flake estimation, replays a
known failure for reproduction time, and evaluates the KPI gates over the
measurements. The result serializes to the release-readiness artifact that
the readiness aggregator later consumes.
"""

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Sequence

from ..core.catalog import REPRO_EXPECTED_CODE, REPRO_EXPECTED_CODE_NAME, base_templates, default_repro_trace
from ..core.diff_engine import DiffEngine, FailureSignature
from ..core.harness import DifferentialHarness
from ..core.monitor import LatencyRecorder, TimedBackend
from ..core.results import DifferentialReport
from ..core.scenario import DifferentialBackend, Scenario
from .flake import DEFAULT_FLAKE_RUNS, DEFAULT_REPRO_SAMPLES, FlakeRateEstimator, FlakeSummary, \
    ReproSummary, ReproTimeEstimator
from .gates import GateCheck, PassRate, QualityGateEvaluator, QualityGateMetrics, QualityGateThresholds
from .regressions import top_regressions

logger = logging.getLogger(__name__)

EVIDENCE_SEED = "crud+transaction-catalog-v1"
DIFF_SAMPLE_LIMIT = 3
DIFF_SAMPLE_ENTRY_LIMIT = 3


@dataclass
class EvidenceResult:
    generated_at: datetime
    duration_millis: int
    compatibility_report: DifferentialReport
    compatibility_pass_rate: float
    flake_summary: FlakeSummary
    repro_summary: ReproSummary
    p95_latency_millis: float
    gate_checks: List[GateCheck]
    seed: str = EVIDENCE_SEED
    build_info: Dict[str, Any] = field(default_factory=dict)

    @property
    def pass_count(self) -> int:
        return sum(1 for check in self.gate_checks if check.passed)

    @property
    def fail_count(self) -> int:
        return len(self.gate_checks) - self.pass_count

    @property
    def overall_passed(self) -> bool:
        return all(check.passed for check in self.gate_checks)

    def diff_samples(self, limit: int = DIFF_SAMPLE_LIMIT) -> List[Dict[str, Any]]:
        by_id = self.compatibility_report.results_by_id()
        samples = []
        for regression in top_regressions(self.compatibility_report, limit):
            result = by_id[regression.scenario_id]
            samples.append({
                "scenarioId": result.scenario_id,
                "status": result.status.value,
                "errorMessage": result.error_message,
                "entries": [entry.to_dict() for entry in result.entries[:DIFF_SAMPLE_ENTRY_LIMIT]],
            })
        return samples

    def to_dict(self) -> Dict[str, Any]:
        report = self.compatibility_report
        build_info = {"durationMillis": self.duration_millis, "seed": self.seed}
        build_info.update(self.build_info)
        return {
            "generatedAt": self.generated_at.isoformat(),
            "overallStatus": "PASS" if self.overall_passed else "FAIL",
            "summary": {"pass": self.pass_count, "fail": self.fail_count},
            "buildInfo": build_info,
            "metrics": {check.metric_key: check.measured_value for check in self.gate_checks},
            "compatibility": {
                "total": report.total_scenarios,
                "match": report.match_count,
                "mismatch": report.mismatch_count,
                "error": report.error_count,
            },
            "flake": self.flake_summary.to_dict(),
            "repro": self.repro_summary.to_dict(),
            "gates": [check.to_dict() for check in self.gate_checks],
            "diffSamples": self.diff_samples(),
        }


class EvidenceRunner:
    """Produces compatibility, flake, latency and repro-time evidence.

    left and right are the backends under comparison. repro_backend_factory
    must build a fresh backend per call so every repro sample starts clean.
    """

    def __init__(self, left: DifferentialBackend, right: DifferentialBackend,
                 repro_backend_factory: Callable[[], DifferentialBackend],
                 scenarios: Optional[Sequence[Scenario]] = None,
                 repro_trace: Optional[Scenario] = None,
                 expected_failure: Optional[FailureSignature] = None,
                 thresholds: Optional[QualityGateThresholds] = None,
                 engine: Optional[DiffEngine] = None,
                 clock: Optional[Callable[[], datetime]] = None,
                 seed: str = EVIDENCE_SEED):
        self.recorder = LatencyRecorder()
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        self.harness = DifferentialHarness(
            TimedBackend(left, self.recorder),
            TimedBackend(right, self.recorder),
            clock=self.clock,
            engine=engine,
        )
        self.scenarios = list(scenarios) if scenarios is not None else list(base_templates())
        if repro_trace is None:
            repro_trace = default_repro_trace()
            if expected_failure is None:
                expected_failure = FailureSignature(REPRO_EXPECTED_CODE, REPRO_EXPECTED_CODE_NAME)
        self.repro_trace = repro_trace
        self.repro_estimator = ReproTimeEstimator(
            repro_backend_factory, expected=expected_failure, parser=self.harness.engine.signature_parser)
        self.thresholds = thresholds or QualityGateThresholds.recommended()
        self.seed = seed

    def run(self, flake_runs: int = DEFAULT_FLAKE_RUNS,
            repro_samples: int = DEFAULT_REPRO_SAMPLES) -> EvidenceResult:
        started = time.perf_counter()

        flake_run = FlakeRateEstimator().run(self.harness, self.scenarios, flake_runs)
        report = flake_run.baseline
        pass_rate = PassRate.from_report(report).ratio
        repro = self.repro_estimator.measure(self.repro_trace, repro_samples)
        p95 = self.recorder.p95()

        metrics = QualityGateMetrics(pass_rate, flake_run.summary.rate, p95, repro.p50_minutes)
        gate_report = QualityGateEvaluator(self.clock).evaluate(metrics, self.thresholds)

        duration_millis = max(0, int((time.perf_counter() - started) * 1000))
        result = EvidenceResult(
            generated_at=gate_report.generated_at,
            duration_millis=duration_millis,
            compatibility_report=report,
            compatibility_pass_rate=pass_rate,
            flake_summary=flake_run.summary,
            repro_summary=repro,
            p95_latency_millis=p95,
            gate_checks=list(gate_report.checks),
            seed=self.seed,
        )
        logger.info(f"Evidence complete: {'PASS' if result.overall_passed else 'FAIL'} "
                    f"({result.pass_count} pass, {result.fail_count} fail) in {duration_millis} ms")
        return result
