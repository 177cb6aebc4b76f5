#!/usr/bin/env python3
"""
Final release-readiness report

Aggregates the evidence artifacts of the other tools into
final-readiness-report.json:
- release-gate             <evidence-dir>/release-readiness.json
- differential-baseline    <baseline-dir>/differential-baseline.json
- one pass-rate gate per --extra-artifact

With --generate-missing and backend specs, missing release-gate and baseline
artifacts are produced on the spot before evaluation.
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from ..config.settings import CorpusRunConfig, EvidenceConfig, ReadinessConfig, get_settings
from ..core.errors import ConfigurationError, EvidenceError
from ..validation.gates import QualityGateThresholds
from ..validation.readiness import (EvidenceGate, ReadinessResult, ReleaseReadinessAggregator,
                                    baseline_summary_evaluator, overall_status_evaluator,
                                    pass_rate_evaluator)
from . import corpus_runner, gate_automation
from .common import (EXIT_GATE_FAILED, EXIT_INVALID, EXIT_OK, EXIT_UNEXPECTED, add_common_arguments,
                     configure_logging, load_backend, load_backend_factory, write_json)

logger = logging.getLogger(__name__)

FINAL_JSON = "final-readiness-report.json"
RELEASE_GATE_ID = "release-gate"
BASELINE_GATE_ID = "differential-baseline"


def build_gates(config: ReadinessConfig, left_spec: Optional[str] = None,
                right_spec: Optional[str] = None, repro_spec: Optional[str] = None) -> List[EvidenceGate]:
    evidence_generator = None
    baseline_generator = None
    skip_reason = None

    if left_spec and right_spec:
        def evidence_generator():
            runner = gate_automation.build_runner(
                load_backend(left_spec), load_backend(right_spec),
                load_backend_factory(repro_spec or left_spec), QualityGateThresholds.recommended())
            gate_automation.run_and_write(EvidenceConfig(config.evidence_dir), runner)

        def baseline_generator():
            corpus_runner.run_and_write(CorpusRunConfig(config.baseline_dir),
                                        load_backend(left_spec), load_backend(right_spec))
    else:
        skip_reason = "missing --left-backend/--right-backend"

    gates = [
        EvidenceGate(
            RELEASE_GATE_ID,
            config.evidence_dir / gate_automation.RELEASE_READINESS_JSON,
            overall_status_evaluator("compatibilityPassRate", "flakeRate",
                                     "p95LatencyMillis", "reproTimeP50Minutes"),
            evidence_generator,
            skip_reason,
        ),
        EvidenceGate(
            BASELINE_GATE_ID,
            config.baseline_dir / corpus_runner.BASELINE_JSON,
            baseline_summary_evaluator(),
            baseline_generator,
            skip_reason,
        ),
    ]
    for path in config.extra_artifacts:
        gates.append(EvidenceGate(
            path.stem,
            path,
            pass_rate_evaluator(config.min_pass_rate, label=f"{path.stem} passRate"),
            skip_reason="no generator for external artifacts",
        ))
    return gates


def build_parser() -> argparse.ArgumentParser:
    settings = get_settings()
    parser = argparse.ArgumentParser(description="wirediff final release-readiness report")
    parser.add_argument("--output-dir", default=str(settings.output_dir("release-readiness")))
    parser.add_argument("--evidence-dir", default=str(settings.output_dir("release-gate")),
                        help="Directory holding release-readiness.json")
    parser.add_argument("--baseline-dir", default=str(settings.output_dir("differential-baseline")),
                        help="Directory holding differential-baseline.json")
    parser.add_argument("--extra-artifact", action="append", default=[],
                        help="Additional pass-rate artifact (repeatable)")
    parser.add_argument("--min-pass-rate", type=float, default=0.98,
                        help="Minimum pass rate for extra artifacts without overallStatus")
    parser.add_argument("--generate-missing", action=argparse.BooleanOptionalAction, default=False,
                        help="Generate missing evidence when backends are configured")
    parser.add_argument("--left-backend", help="Candidate backend factory, used for generation")
    parser.add_argument("--right-backend", help="Reference backend factory, used for generation")
    parser.add_argument("--repro-backend", help="Repro backend factory, used for generation")
    add_common_arguments(parser, settings.log_level)
    return parser


def print_summary(result: ReadinessResult, json_path: Path):
    print("Final release readiness report generated.")
    print(f"- overall: {'PASS' if result.overall_passed else 'FAIL'}")
    print(f"- pass: {result.pass_count}")
    print(f"- fail: {result.fail_count}")
    print(f"- missing: {result.missing_count}")
    for gate in result.gate_results:
        print(f"- {gate.gate_id}: {gate.status.value}")
        for diagnostic in gate.diagnostics:
            print(f"  - {diagnostic}")
    print(f"- jsonArtifact: {json_path}")


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.log_level)

    try:
        config = ReadinessConfig(
            output_dir=Path(args.output_dir),
            evidence_dir=Path(args.evidence_dir),
            baseline_dir=Path(args.baseline_dir),
            extra_artifacts=[Path(p) for p in args.extra_artifact],
            min_pass_rate=args.min_pass_rate,
            generate_missing=args.generate_missing,
            fail_on_gate=args.fail_on_gate,
        )
        gates = build_gates(config, args.left_backend, args.right_backend, args.repro_backend)
        aggregator = ReleaseReadinessAggregator(gates)
    except (ConfigurationError, EvidenceError) as e:
        print(f"Invalid argument: {e}", file=sys.stderr)
        return EXIT_INVALID

    try:
        result = aggregator.run(generate_missing=config.generate_missing)
        json_path = write_json(config.output_dir / FINAL_JSON, result.to_dict())
    except Exception as e:
        logger.exception(f"Unexpected failure: {e}")
        return EXIT_UNEXPECTED

    print_summary(result, json_path)
    if config.fail_on_gate and not result.overall_passed:
        print("Final release readiness gate failed.", file=sys.stderr)
        return EXIT_GATE_FAILED
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
