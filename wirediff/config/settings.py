#!/usr/bin/env python3
"""
wirediff configuration

Central settings for the command-line tools. Values resolve in this order
(highest first):
1. Explicit command-line arguments
2. Environment variables (WIREDIFF_*)
3. .env file in the working directory (never overrides exported variables)
4. Dataclass defaults

Gate thresholds can additionally be loaded from a YAML file with optional
"baseline" and "quality" sections.
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

import yaml

from ..core.corpus import DEFAULT_SCENARIO_COUNT
from ..core.errors import ConfigurationError
from ..validation.flake import DEFAULT_FLAKE_RUNS, DEFAULT_REPRO_SAMPLES
from ..validation.gates import GateThresholds, QualityGateThresholds

logger = logging.getLogger(__name__)

DEFAULT_OUTPUT_ROOT = Path("build/reports")
DEFAULT_BASELINE_SEED = "wire-vs-real-mongod-baseline-v1"
DEFAULT_EVIDENCE_SEED = "crud+transaction-catalog-v1"
DEFAULT_TOP_REGRESSIONS = 10
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class WireDiffSettings:
    """Environment-level settings shared by all tools"""
    output_root: Path = None
    baseline_seed: str = DEFAULT_BASELINE_SEED
    log_level: str = "INFO"
    reference_uri: Optional[str] = None

    def __post_init__(self):
        self.output_root = Path(os.environ.get("WIREDIFF_OUTPUT_DIR", self.output_root or DEFAULT_OUTPUT_ROOT))
        self.baseline_seed = os.environ.get("WIREDIFF_SEED", self.baseline_seed)
        self.log_level = os.environ.get("WIREDIFF_LOG_LEVEL", self.log_level).upper()
        self.reference_uri = os.environ.get("WIREDIFF_REFERENCE_URI", self.reference_uri)

        if self.log_level not in LOG_LEVELS:
            raise ConfigurationError(f"unknown log level: {self.log_level}")
        if not self.baseline_seed or not self.baseline_seed.strip():
            raise ConfigurationError("WIREDIFF_SEED must not be blank")

    def output_dir(self, name: str) -> Path:
        return self.output_root / name

    def get_safe_dict(self) -> Dict[str, Any]:
        """Settings as a dict; the reference URI is reduced to a flag."""
        return {
            "output_root": str(self.output_root),
            "baseline_seed": self.baseline_seed,
            "log_level": self.log_level,
            "reference_uri_configured": bool(self.reference_uri),
        }


def load_env_file(env_file: Union[str, Path] = ".env") -> int:
    """Load KEY=VALUE lines into os.environ without overriding existing keys.

    Returns the number of keys that were set.
    """
    env_file = Path(env_file)
    if not env_file.exists():
        return 0
    loaded = 0
    with open(env_file, "r", encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if not line or line.startswith("#") or "=" not in line:
                continue
            key, value = line.split("=", 1)
            key = key.strip()
            if key and key not in os.environ:
                os.environ[key] = value.strip()
                loaded += 1
    logger.debug(f"Loaded {loaded} variables from {env_file}")
    return loaded


def get_settings(env_file: Optional[Union[str, Path]] = ".env") -> WireDiffSettings:
    if env_file is not None:
        load_env_file(env_file)
    return WireDiffSettings()


def _require_positive(value: int, field_name: str):
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ConfigurationError(f"{field_name} must be > 0: {value}")


def _require_non_negative(value: int, field_name: str):
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ConfigurationError(f"{field_name} must be >= 0: {value}")


@dataclass
class CorpusRunConfig:
    """Differential baseline run"""
    output_dir: Path
    seed: str = DEFAULT_BASELINE_SEED
    scenario_count: int = DEFAULT_SCENARIO_COUNT
    top_regression_limit: int = DEFAULT_TOP_REGRESSIONS
    thresholds: GateThresholds = field(default_factory=GateThresholds)
    fail_on_gate: bool = True
    max_workers: int = 1

    def __post_init__(self):
        self.output_dir = Path(self.output_dir)
        if not isinstance(self.seed, str) or not self.seed.strip():
            raise ConfigurationError("seed must not be blank")
        self.seed = self.seed.strip()
        _require_positive(self.scenario_count, "scenario_count")
        _require_positive(self.top_regression_limit, "top_regression_limit")
        _require_positive(self.max_workers, "max_workers")


@dataclass
class EvidenceConfig:
    """Release-gate evidence run"""
    output_dir: Path
    flake_runs: int = DEFAULT_FLAKE_RUNS
    repro_samples: int = DEFAULT_REPRO_SAMPLES
    thresholds: QualityGateThresholds = field(default_factory=QualityGateThresholds.recommended)
    fail_on_gate: bool = True

    def __post_init__(self):
        self.output_dir = Path(self.output_dir)
        _require_non_negative(self.flake_runs, "flake_runs")
        _require_positive(self.repro_samples, "repro_samples")


@dataclass
class ReadinessConfig:
    """Final readiness aggregation"""
    output_dir: Path
    evidence_dir: Path
    baseline_dir: Path
    extra_artifacts: List[Path] = field(default_factory=list)
    min_pass_rate: float = 0.98
    generate_missing: bool = False
    fail_on_gate: bool = True

    def __post_init__(self):
        self.output_dir = Path(self.output_dir)
        self.evidence_dir = Path(self.evidence_dir)
        self.baseline_dir = Path(self.baseline_dir)
        self.extra_artifacts = [Path(p) for p in self.extra_artifacts]
        if not 0.0 <= self.min_pass_rate <= 1.0:
            raise ConfigurationError(f"min_pass_rate must be in range [0.0, 1.0]: {self.min_pass_rate}")


def _section(data: Dict[str, Any], name: str, path: Path) -> Dict[str, Any]:
    section = data.get(name) or {}
    if not isinstance(section, dict):
        raise ConfigurationError(f"'{name}' section in {path} must be a mapping")
    return section


def load_thresholds(path: Union[str, Path]) -> Tuple[Optional[GateThresholds], Optional[QualityGateThresholds]]:
    """Read baseline and quality thresholds from a YAML file.

    Example:
        baseline:
          max_mismatch: 0
          max_error: 0
          min_pass_rate: 0.99
        quality:
          min_compatibility_pass_rate: 0.95
          max_flake_rate: 0.005

    Missing sections yield None; missing quality keys fall back to the
    recommended values.
    """
    path = Path(path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except OSError as e:
        raise ConfigurationError(f"cannot read thresholds file {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigurationError(f"invalid YAML in thresholds file {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigurationError(f"thresholds file {path} must contain a mapping")

    baseline = None
    if "baseline" in data:
        try:
            baseline = GateThresholds(**_section(data, "baseline", path))
        except TypeError as e:
            raise ConfigurationError(f"invalid baseline thresholds in {path}: {e}") from e

    quality = None
    if "quality" in data:
        values = QualityGateThresholds.recommended().__dict__.copy()
        values.update(_section(data, "quality", path))
        try:
            quality = QualityGateThresholds(**values)
        except TypeError as e:
            raise ConfigurationError(f"invalid quality thresholds in {path}: {e}") from e

    logger.info(f"Loaded thresholds from {path}")
    return baseline, quality
