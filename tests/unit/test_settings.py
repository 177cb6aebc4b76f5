"""
Tests for configuration loading: environment settings, .env files and
YAML threshold files.
"""

import os

import pytest

from wirediff.config.settings import (CorpusRunConfig, EvidenceConfig, ReadinessConfig, WireDiffSettings,
                                      get_settings, load_env_file, load_thresholds)
from wirediff.core.errors import ConfigurationError
from wirediff.validation.gates import QualityGateThresholds

ENV_KEYS = ("WIREDIFF_OUTPUT_DIR", "WIREDIFF_SEED", "WIREDIFF_LOG_LEVEL", "WIREDIFF_REFERENCE_URI")


@pytest.fixture
def clean_env(monkeypatch):
    # setenv first so teardown also removes anything load_env_file adds
    for key in ENV_KEYS:
        monkeypatch.setenv(key, "unset")
        monkeypatch.delenv(key)
    return monkeypatch


@pytest.mark.unit
class TestSettings:

    def test_defaults(self, clean_env):
        settings = WireDiffSettings()

        assert str(settings.output_root) == os.path.join("build", "reports")
        assert settings.baseline_seed == "wire-vs-real-mongod-baseline-v1"
        assert settings.log_level == "INFO"

    def test_environment_overrides(self, clean_env, tmp_path):
        clean_env.setenv("WIREDIFF_OUTPUT_DIR", str(tmp_path))
        clean_env.setenv("WIREDIFF_LOG_LEVEL", "debug")
        clean_env.setenv("WIREDIFF_REFERENCE_URI", "mongodb://secret@localhost")
        settings = WireDiffSettings()

        assert settings.output_dir("release-gate") == tmp_path / "release-gate"
        assert settings.log_level == "DEBUG"
        assert settings.get_safe_dict()["reference_uri_configured"] is True
        assert "secret" not in str(settings.get_safe_dict())

    def test_invalid_log_level(self, clean_env):
        clean_env.setenv("WIREDIFF_LOG_LEVEL", "LOUD")
        with pytest.raises(ConfigurationError):
            WireDiffSettings()

    def test_blank_seed(self, clean_env):
        clean_env.setenv("WIREDIFF_SEED", "  ")
        with pytest.raises(ConfigurationError):
            WireDiffSettings()

    def test_env_file_does_not_override(self, clean_env, tmp_path):
        clean_env.setenv("WIREDIFF_SEED", "from-env")
        env_file = tmp_path / ".env"
        env_file.write_text("# comment\nWIREDIFF_SEED=from-file\nWIREDIFF_LOG_LEVEL=WARNING\n", encoding="utf-8")

        assert load_env_file(env_file) == 1
        settings = get_settings(env_file)
        assert settings.baseline_seed == "from-env"
        assert settings.log_level == "WARNING"

    def test_missing_env_file(self, tmp_path):
        assert load_env_file(tmp_path / "absent.env") == 0


@pytest.mark.unit
class TestRunConfigs:

    def test_corpus_config_validation(self, tmp_path):
        assert CorpusRunConfig(tmp_path, seed=" s ").seed == "s"
        with pytest.raises(ConfigurationError):
            CorpusRunConfig(tmp_path, scenario_count=0)
        with pytest.raises(ConfigurationError):
            CorpusRunConfig(tmp_path, seed="")
        with pytest.raises(ConfigurationError):
            CorpusRunConfig(tmp_path, max_workers=0)

    def test_evidence_config_validation(self, tmp_path):
        assert EvidenceConfig(tmp_path, flake_runs=0).flake_runs == 0
        with pytest.raises(ConfigurationError):
            EvidenceConfig(tmp_path, repro_samples=0)

    def test_readiness_config_validation(self, tmp_path):
        with pytest.raises(ConfigurationError):
            ReadinessConfig(tmp_path, tmp_path, tmp_path, min_pass_rate=1.2)


@pytest.mark.unit
class TestLoadThresholds:

    def test_both_sections(self, tmp_path):
        path = tmp_path / "thresholds.yaml"
        path.write_text(
            "baseline:\n"
            "  max_mismatch: 2\n"
            "  min_pass_rate: 0.99\n"
            "quality:\n"
            "  max_p95_latency_millis: 25.0\n",
            encoding="utf-8")
        baseline, quality = load_thresholds(path)

        assert baseline.max_mismatch == 2
        assert baseline.max_error == 0
        assert baseline.min_pass_rate == 0.99
        assert quality.max_p95_latency_millis == 25.0
        assert quality.max_flake_rate == QualityGateThresholds.recommended().max_flake_rate

    def test_missing_sections(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("", encoding="utf-8")
        assert load_thresholds(path) == (None, None)

    def test_unknown_key(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("baseline:\n  max_mismatches: 1\n", encoding="utf-8")
        with pytest.raises(ConfigurationError, match="invalid baseline thresholds"):
            load_thresholds(path)

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "broken.yaml"
        path.write_text("baseline: [unclosed\n", encoding="utf-8")
        with pytest.raises(ConfigurationError, match="invalid YAML"):
            load_thresholds(path)

    def test_out_of_range_value(self, tmp_path):
        path = tmp_path / "range.yaml"
        path.write_text("quality:\n  max_flake_rate: 2.0\n", encoding="utf-8")
        with pytest.raises(ConfigurationError):
            load_thresholds(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError, match="cannot read"):
            load_thresholds(tmp_path / "absent.yaml")
