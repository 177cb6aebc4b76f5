#!/usr/bin/env python3
"""
Differential baseline runner

Builds the deterministic corpus, runs it against two backends and writes
differential-baseline.json with the summary, baseline gate verdict, top
regressions and full per-scenario results.

Example:
    wirediff-corpus --left-backend mypkg.backends:wire --right-backend mypkg.backends:mongod \
        --seed wire-vs-real-mongod-baseline-v1 --scenario-count 2000
"""

import argparse
import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..config.settings import CorpusRunConfig, get_settings, load_thresholds
from ..core.corpus import DEFAULT_SCENARIO_COUNT, CorpusBuilder, deterministic_seed
from ..core.errors import ConfigurationError, ScenarioValidationError
from ..core.harness import DifferentialHarness
from ..core.results import DifferentialReport
from ..core.scenario import DifferentialBackend
from ..validation.gates import GateResult, GateThresholds, PassRate, evaluate_baseline_gate
from ..validation.regressions import RegressionSample, top_regressions
from .common import (EXIT_GATE_FAILED, EXIT_INVALID, EXIT_OK, EXIT_UNEXPECTED, add_common_arguments,
                     configure_logging, load_backend, write_json)

logger = logging.getLogger(__name__)

BASELINE_JSON = "differential-baseline.json"


@dataclass
class BaselineRunResult:
    seed: str
    numeric_seed: int
    report: DifferentialReport
    top_regressions: List[RegressionSample]
    gate: GateResult

    def to_dict(self) -> Dict[str, Any]:
        summary = self.report.summary()
        summary["passRate"] = PassRate.from_report(self.report).ratio
        report = self.report.to_dict()
        return {
            "generatedAt": report["generatedAt"],
            "seed": self.seed,
            "numericSeed": self.numeric_seed,
            "leftBackend": self.report.left_backend,
            "rightBackend": self.report.right_backend,
            "summary": summary,
            "gate": self.gate.to_dict(),
            "topRegressions": [sample.to_dict() for sample in self.top_regressions],
            "report": report,
        }


def run_baseline(config: CorpusRunConfig, left: DifferentialBackend,
                 right: DifferentialBackend) -> BaselineRunResult:
    scenarios = CorpusBuilder().build(config.seed, config.scenario_count)
    harness = DifferentialHarness(left, right, max_workers=config.max_workers)
    report = harness.run(scenarios)
    return BaselineRunResult(
        seed=config.seed,
        numeric_seed=deterministic_seed(config.seed),
        report=report,
        top_regressions=top_regressions(report, config.top_regression_limit),
        gate=evaluate_baseline_gate(report, config.thresholds),
    )


def run_and_write(config: CorpusRunConfig, left: DifferentialBackend,
                  right: DifferentialBackend) -> BaselineRunResult:
    result = run_baseline(config, left, right)
    write_json(config.output_dir / BASELINE_JSON, result.to_dict())
    return result


def build_parser() -> argparse.ArgumentParser:
    settings = get_settings()
    parser = argparse.ArgumentParser(description="wirediff differential baseline runner")
    parser.add_argument("--left-backend", required=True, help="Candidate backend factory (module:callable)")
    parser.add_argument("--right-backend", required=True, help="Reference backend factory (module:callable)")
    parser.add_argument("--output-dir", default=str(settings.output_dir("differential-baseline")),
                        help="Directory for the JSON artifact")
    parser.add_argument("--seed", default=settings.baseline_seed, help="Corpus seed text")
    parser.add_argument("--scenario-count", type=int, default=DEFAULT_SCENARIO_COUNT)
    parser.add_argument("--top-regressions", type=int, default=10)
    parser.add_argument("--max-mismatch", type=int, default=None)
    parser.add_argument("--max-error", type=int, default=None)
    parser.add_argument("--min-pass-rate", type=float, default=None)
    parser.add_argument("--thresholds", help="YAML file with a 'baseline' thresholds section")
    parser.add_argument("--workers", type=int, default=1, help="Scenarios executed concurrently")
    add_common_arguments(parser, settings.log_level)
    return parser


def resolve_thresholds(args) -> GateThresholds:
    base = GateThresholds()
    if args.thresholds:
        loaded, _ = load_thresholds(args.thresholds)
        base = loaded or base
    return GateThresholds(
        max_mismatch=base.max_mismatch if args.max_mismatch is None else args.max_mismatch,
        max_error=base.max_error if args.max_error is None else args.max_error,
        min_pass_rate=base.min_pass_rate if args.min_pass_rate is None else args.min_pass_rate,
    )


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.log_level)

    try:
        config = CorpusRunConfig(
            output_dir=Path(args.output_dir),
            seed=args.seed,
            scenario_count=args.scenario_count,
            top_regression_limit=args.top_regressions,
            thresholds=resolve_thresholds(args),
            fail_on_gate=args.fail_on_gate,
            max_workers=args.workers,
        )
        left = load_backend(args.left_backend)
        right = load_backend(args.right_backend)
    except ConfigurationError as e:
        print(f"Invalid argument: {e}", file=sys.stderr)
        return EXIT_INVALID

    try:
        result = run_and_write(config, left, right)
    except (ConfigurationError, ScenarioValidationError) as e:
        logger.error(f"Baseline run failed: {e}")
        return EXIT_INVALID
    except Exception as e:
        logger.exception(f"Unexpected failure: {e}")
        return EXIT_UNEXPECTED

    report = result.report
    print("Differential baseline generated.")
    print(f"- seed: {result.seed} ({result.numeric_seed})")
    print(f"- backends: {report.left_backend} vs {report.right_backend}")
    print(f"- total: {report.total_scenarios}, match: {report.match_count}, "
          f"mismatch: {report.mismatch_count}, error: {report.error_count}")
    print(f"- passRate: {PassRate.from_report(report).formatted()}")
    print(f"- gate: {result.gate.status.value}")
    for reason in result.gate.failure_reasons:
        print(f"  - {reason}")
    for sample in result.top_regressions:
        print(f"- regression: {sample.describe()}")
    print(f"- jsonArtifact: {config.output_dir / BASELINE_JSON}")

    if config.fail_on_gate and not result.gate.passed:
        print("Differential baseline gate failed.", file=sys.stderr)
        return EXIT_GATE_FAILED
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
