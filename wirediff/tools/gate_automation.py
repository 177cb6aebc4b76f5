#!/usr/bin/env python3
"""
Release-gate evidence automation

Measures compatibility pass rate, flake rate, p95 backend latency and
repro-time p50, evaluates the KPI gates and writes:
- release-readiness.json     gate verdicts and the measurements behind them
- compatibility-report.json  the full differential report of the baseline run
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from ..config.settings import DEFAULT_EVIDENCE_SEED, EvidenceConfig, get_settings, load_thresholds
from ..core.catalog import base_templates
from ..core.corpus import CorpusBuilder
from ..core.errors import ConfigurationError, ScenarioValidationError
from ..core.monitor import RunMonitor
from ..core.scenario import DifferentialBackend
from ..validation.evidence import EvidenceResult, EvidenceRunner
from ..validation.flake import DEFAULT_FLAKE_RUNS, DEFAULT_REPRO_SAMPLES
from ..validation.gates import QualityGateThresholds
from .common import (EXIT_GATE_FAILED, EXIT_INVALID, EXIT_OK, EXIT_UNEXPECTED, add_common_arguments,
                     configure_logging, format_percent, load_backend, load_backend_factory, write_json)

logger = logging.getLogger(__name__)

RELEASE_READINESS_JSON = "release-readiness.json"
COMPATIBILITY_JSON = "compatibility-report.json"


def run_and_write(config: EvidenceConfig, runner: EvidenceRunner) -> EvidenceResult:
    monitor = RunMonitor()
    result = runner.run(config.flake_runs, config.repro_samples)
    result.build_info.update(monitor.build_info())
    write_json(config.output_dir / RELEASE_READINESS_JSON, result.to_dict())
    write_json(config.output_dir / COMPATIBILITY_JSON, result.compatibility_report.to_dict())
    return result


def build_runner(left: DifferentialBackend, right: DifferentialBackend, repro_factory,
                 thresholds: QualityGateThresholds, seed: str = DEFAULT_EVIDENCE_SEED,
                 scenario_count: Optional[int] = None) -> EvidenceRunner:
    if scenario_count:
        scenarios = CorpusBuilder().build(seed, scenario_count)
    else:
        scenarios = list(base_templates())
    return EvidenceRunner(left, right, repro_factory, scenarios=scenarios, thresholds=thresholds, seed=seed)


def build_parser() -> argparse.ArgumentParser:
    settings = get_settings()
    parser = argparse.ArgumentParser(description="wirediff release-gate evidence automation")
    parser.add_argument("--left-backend", required=True, help="Candidate backend factory (module:callable)")
    parser.add_argument("--right-backend", required=True, help="Reference backend factory (module:callable)")
    parser.add_argument("--repro-backend",
                        help="Factory for clean repro backends (defaults to --left-backend)")
    parser.add_argument("--output-dir", default=str(settings.output_dir("release-gate")))
    parser.add_argument("--seed", default=DEFAULT_EVIDENCE_SEED, help="Corpus seed text")
    parser.add_argument("--scenario-count", type=int, default=None,
                        help="Expand the catalogue to this many scenarios (default: catalogue only)")
    parser.add_argument("--flake-runs", type=int, default=DEFAULT_FLAKE_RUNS)
    parser.add_argument("--repro-samples", type=int, default=DEFAULT_REPRO_SAMPLES)
    parser.add_argument("--thresholds", help="YAML file with a 'quality' thresholds section")
    add_common_arguments(parser, settings.log_level)
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.log_level)

    try:
        thresholds = QualityGateThresholds.recommended()
        if args.thresholds:
            _, loaded = load_thresholds(args.thresholds)
            thresholds = loaded or thresholds
        config = EvidenceConfig(Path(args.output_dir), args.flake_runs, args.repro_samples,
                                thresholds, args.fail_on_gate)
        if args.scenario_count is not None and args.scenario_count <= 0:
            raise ConfigurationError(f"scenario_count must be > 0: {args.scenario_count}")
        left = load_backend(args.left_backend)
        right = load_backend(args.right_backend)
        repro_factory = load_backend_factory(args.repro_backend or args.left_backend)
        runner = build_runner(left, right, repro_factory, thresholds, args.seed, args.scenario_count)
    except ConfigurationError as e:
        print(f"Invalid argument: {e}", file=sys.stderr)
        return EXIT_INVALID

    try:
        result = run_and_write(config, runner)
    except (ConfigurationError, ScenarioValidationError) as e:
        logger.error(f"Evidence run failed: {e}")
        return EXIT_INVALID
    except Exception as e:
        logger.exception(f"Unexpected failure: {e}")
        return EXIT_UNEXPECTED

    print("Release readiness evidence generated.")
    print(f"- overall: {'PASS' if result.overall_passed else 'FAIL'}")
    print(f"- compatibilityPassRate: {format_percent(result.compatibility_pass_rate)}")
    print(f"- flakeRate: {format_percent(result.flake_summary.rate)}")
    print(f"- p95LatencyMillis: {result.p95_latency_millis:.3f}")
    print(f"- reproTimeP50Minutes: {result.repro_summary.p50_minutes:.4f}min")
    print(f"- releaseReadinessJson: {config.output_dir / RELEASE_READINESS_JSON}")
    print(f"- compatibilityJson: {config.output_dir / COMPATIBILITY_JSON}")

    if config.fail_on_gate and not result.overall_passed:
        print("Release readiness gate failed.", file=sys.stderr)
        return EXIT_GATE_FAILED
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
