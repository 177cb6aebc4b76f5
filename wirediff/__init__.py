#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
wirediff - differential compatibility testing for MongoDB-wire servers
Exports the main components for clean imports
"""

__version__ = "0.1.0"

from .core.errors import (
    ErrorCode, WireDiffError, ScenarioValidationError, ConfigurationError,
    ReproductionError, EvidenceError,
)
from .core.scenario import Scenario, ScenarioCommand, ScenarioOutcome, DifferentialBackend, load_scenarios
from .core.results import DiffStatus, DiffEntry, DiffResult, DifferentialReport
from .core.diff_engine import DiffEngine, FailureSignature, FailureSignatureParser, format_failure
from .core.harness import DifferentialHarness
from .core.corpus import CorpusBuilder, build_corpus, deterministic_seed
from .core.stats import percentile
from .validation.fingerprint import fingerprint, fingerprint_text
from .validation.flake import FlakeRateEstimator, FlakeSummary, ReproTimeEstimator, ReproSummary
from .validation.gates import (
    GateOperator, GateStatus, GateCheck, evaluate_gate, GateThresholds, GateResult,
    evaluate_baseline_gate, PassRate, QualityGateEvaluator, QualityGateMetrics, QualityGateThresholds,
)
from .validation.evidence import EvidenceResult, EvidenceRunner
from .validation.readiness import EvidenceGate, ReleaseReadinessAggregator, ReadinessResult
from .validation.regressions import RegressionSample, top_regressions
from .validation.drift import FixtureDriftAnalyzer, DriftReport, DriftStatus

__all__ = [
    'ErrorCode', 'WireDiffError', 'ScenarioValidationError', 'ConfigurationError',
    'ReproductionError', 'EvidenceError',
    'Scenario', 'ScenarioCommand', 'ScenarioOutcome', 'DifferentialBackend', 'load_scenarios',
    'DiffStatus', 'DiffEntry', 'DiffResult', 'DifferentialReport',
    'DiffEngine', 'FailureSignature', 'FailureSignatureParser', 'format_failure',
    'DifferentialHarness',
    'CorpusBuilder', 'build_corpus', 'deterministic_seed',
    'percentile',
    'fingerprint', 'fingerprint_text',
    'FlakeRateEstimator', 'FlakeSummary', 'ReproTimeEstimator', 'ReproSummary',
    'GateOperator', 'GateStatus', 'GateCheck', 'evaluate_gate', 'GateThresholds', 'GateResult',
    'evaluate_baseline_gate', 'PassRate', 'QualityGateEvaluator', 'QualityGateMetrics',
    'QualityGateThresholds',
    'EvidenceResult', 'EvidenceRunner',
    'EvidenceGate', 'ReleaseReadinessAggregator', 'ReadinessResult',
    'RegressionSample', 'top_regressions',
    'FixtureDriftAnalyzer', 'DriftReport', 'DriftStatus',
]
