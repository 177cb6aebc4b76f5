#!/usr/bin/env python3
"""
Flake-rate and reproduction-time estimation

FlakeRateEstimator reruns a corpus several times and counts how often a
scenario's result fingerprint differs from the baseline run.

ReproTimeEstimator replays a known-failing trace on fresh backends and
records how long it takes to see the failure again.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence

from ..core.diff_engine import FailureSignature, FailureSignatureParser
from ..core.errors import ConfigurationError, ReproductionError
from ..core.harness import DifferentialHarness
from ..core.results import DifferentialReport
from ..core.scenario import DifferentialBackend, Scenario
from ..core.stats import percentile
from .fingerprint import FingerprintCalculator

logger = logging.getLogger(__name__)

DEFAULT_FLAKE_RUNS = 30
DEFAULT_REPRO_SAMPLES = 21


@dataclass(frozen=True)
class FlakeSummary:
    runs: int
    observations: int
    flaky_observations: int
    rate: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "runs": self.runs,
            "observations": self.observations,
            "flakyObservations": self.flaky_observations,
            "rate": self.rate,
        }


@dataclass(frozen=True)
class FlakeRun:
    """Baseline report, rerun reports and their flake summary"""
    baseline: DifferentialReport
    reruns: List[DifferentialReport]
    summary: FlakeSummary


class FlakeRateEstimator:
    """Estimates the share of scenario observations that change across reruns."""

    def __init__(self, calculator: Optional[FingerprintCalculator] = None):
        self.calculator = calculator or FingerprintCalculator()

    def evaluate(self, baseline: DifferentialReport,
                 reruns: Iterable[DifferentialReport]) -> FlakeSummary:
        """Compare every rerun result against the baseline fingerprint.

        A rerun result whose scenario id is absent from the baseline counts as
        flaky. The rate is 0.0 when there are no observations.
        """
        if baseline is None:
            raise ValueError("baseline report is required")
        reruns = list(reruns)
        baseline_prints = self.calculator.fingerprint_results(baseline.results)

        observations = 0
        flaky = 0
        for report in reruns:
            for result in report.results:
                observations += 1
                expected = baseline_prints.get(result.scenario_id)
                if expected is None or expected != self.calculator.fingerprint(result):
                    flaky += 1
                    logger.debug(f"Flaky observation for {result.scenario_id}")

        rate = flaky / observations if observations else 0.0
        return FlakeSummary(len(reruns), observations, flaky, rate)

    def run(self, harness: DifferentialHarness, scenarios: Sequence[Scenario],
            rerun_count: int = DEFAULT_FLAKE_RUNS) -> FlakeRun:
        if rerun_count < 0:
            raise ConfigurationError(f"rerun_count must be >= 0: {rerun_count}")
        scenarios = list(scenarios)
        baseline = harness.run(scenarios)
        reruns = []
        for index in range(rerun_count):
            logger.debug(f"Flake rerun {index + 1}/{rerun_count}")
            reruns.append(harness.run(scenarios))
        summary = self.evaluate(baseline, reruns)
        logger.info(f"Flake estimate: {summary.flaky_observations}/{summary.observations} "
                    f"observations changed over {summary.runs} reruns (rate={summary.rate:.4f})")
        return FlakeRun(baseline, reruns, summary)


@dataclass(frozen=True)
class ReproSummary:
    sample_count: int
    sample_minutes: List[float] = field(default_factory=list)
    p50_minutes: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sampleCount": self.sample_count,
            "p50Minutes": self.p50_minutes,
            "samplesMinutes": list(self.sample_minutes),
        }


class ReproTimeEstimator:
    """Measures how long a known failure takes to reproduce on a clean backend.

    backend_factory must return a new backend with empty state on every call.
    When an expected signature is given, the replayed failure must carry the
    same error class; failures without any signature suffix are accepted.
    """

    def __init__(self, backend_factory: Callable[[], DifferentialBackend],
                 expected: Optional[FailureSignature] = None,
                 parser: Optional[FailureSignatureParser] = None,
                 timer: Callable[[], float] = time.perf_counter):
        if backend_factory is None:
            raise ConfigurationError("backend_factory is required")
        self.backend_factory = backend_factory
        self.expected = expected
        self.parser = parser or FailureSignatureParser()
        self.timer = timer

    def measure_once(self, trace: Scenario) -> float:
        backend = self.backend_factory()
        started = self.timer()
        outcome = backend.execute(trace)
        elapsed_minutes = (self.timer() - started) / 60.0

        if outcome.success:
            raise ReproductionError(
                f"replay of {trace.id} did not reproduce a failing command",
                {"scenario": trace.id, "backend": backend.name})
        self._check_signature(trace, outcome.error_message)
        return max(0.0, elapsed_minutes)

    def _check_signature(self, trace: Scenario, message: str):
        if self.expected is None or self.expected.is_empty:
            return
        actual = self.parser.parse(message)
        if actual.is_empty:
            return
        if self.expected.code is not None and actual.code is not None:
            matches = self.expected.code == actual.code
        elif self.expected.code_name is not None and actual.code_name is not None:
            matches = self.expected.code_name == actual.code_name
        else:
            matches = True
        if not matches:
            raise ReproductionError(
                f"replay of {trace.id} failed with a different error class: {message}",
                {"scenario": trace.id, "expected_code": self.expected.code,
                 "expected_code_name": self.expected.code_name})

    def measure(self, trace: Scenario, samples: int = DEFAULT_REPRO_SAMPLES) -> ReproSummary:
        if samples <= 0:
            raise ConfigurationError(f"samples must be > 0: {samples}")
        minutes = [self.measure_once(trace) for _ in range(samples)]
        summary = ReproSummary(samples, minutes, percentile(minutes, 0.50))
        logger.info(f"Repro estimate for {trace.id}: p50={summary.p50_minutes:.6f} min over {samples} samples")
        return summary
