"""
Tests for flake-rate and reproduction-time estimation.
"""

import pytest

from wirediff.core.catalog import default_repro_trace
from wirediff.core.diff_engine import FailureSignature
from wirediff.core.errors import ConfigurationError, ReproductionError
from wirediff.core.harness import DifferentialHarness
from wirediff.core.results import DiffEntry, DiffResult, DifferentialReport
from wirediff.validation.flake import FlakeRateEstimator, ReproTimeEstimator

from fake_backends import EchoBackend


def report(*results):
    return DifferentialReport("l", "r", results)


def fake_timer(*readings):
    return iter(readings).__next__


@pytest.mark.unit
class TestFlakeRateEstimator:

    def test_stable_reruns(self):
        baseline = report(DiffResult.match("a", "l", "r"), DiffResult.error("b", "l", "r", "boom"))
        summary = FlakeRateEstimator().evaluate(baseline, [baseline, baseline])

        assert summary.runs == 2
        assert summary.observations == 4
        assert summary.flaky_observations == 0
        assert summary.rate == 0.0

    def test_changed_result_counts_as_flaky(self):
        baseline = report(DiffResult.match("a", "l", "r"), DiffResult.match("b", "l", "r"))
        rerun = report(DiffResult.match("a", "l", "r"),
                       DiffResult.mismatch("b", "l", "r", [DiffEntry("$.x", 1, 2)]))
        summary = FlakeRateEstimator().evaluate(baseline, [rerun])

        assert summary.flaky_observations == 1
        assert summary.rate == 0.5

    def test_unknown_scenario_counts_as_flaky(self):
        baseline = report(DiffResult.match("a", "l", "r"))
        summary = FlakeRateEstimator().evaluate(baseline, [report(DiffResult.match("z", "l", "r"))])
        assert summary.flaky_observations == 1

    def test_no_reruns(self):
        summary = FlakeRateEstimator().evaluate(report(DiffResult.match("a", "l", "r")), [])

        assert summary.to_dict() == {"runs": 0, "observations": 0, "flakyObservations": 0, "rate": 0.0}

    def test_run_detects_toggling_backend(self, echo_backend, toggle_backend, make_scenario):
        harness = DifferentialHarness(echo_backend, toggle_backend)
        flake_run = FlakeRateEstimator().run(harness, [make_scenario("a")], rerun_count=2)

        # calls: baseline=1 (match), rerun 1=2 (drift), rerun 2=3 (match)
        assert flake_run.baseline.match_count == 1
        assert len(flake_run.reruns) == 2
        assert flake_run.summary.flaky_observations == 1
        assert flake_run.summary.rate == 0.5

    def test_negative_rerun_count(self, echo_backend, reference_backend, make_scenario):
        harness = DifferentialHarness(echo_backend, reference_backend)
        with pytest.raises(ConfigurationError):
            FlakeRateEstimator().run(harness, [make_scenario("a")], rerun_count=-1)


@pytest.mark.unit
class TestReproTimeEstimator:

    def test_p50_in_minutes(self):
        estimator = ReproTimeEstimator(EchoBackend, timer=fake_timer(0, 60, 0, 120, 0, 30))
        summary = estimator.measure(default_repro_trace(), samples=3)

        assert summary.sample_count == 3
        assert summary.sample_minutes == [1.0, 2.0, 0.5]
        assert summary.p50_minutes == 1.0

    def test_fresh_backend_per_sample(self):
        built = []

        def factory():
            backend = EchoBackend("fresh")
            built.append(backend)
            return backend

        ReproTimeEstimator(factory).measure(default_repro_trace(), samples=4)
        assert len(built) == 4
        assert all(backend.calls == 1 for backend in built)

    def test_expected_signature_matches(self):
        estimator = ReproTimeEstimator(EchoBackend, expected=FailureSignature(59, "CommandNotFound"))
        assert estimator.measure_once(default_repro_trace()) >= 0.0

    def test_wrong_signature_rejected(self):
        estimator = ReproTimeEstimator(EchoBackend, expected=FailureSignature(11000, "DuplicateKey"))
        with pytest.raises(ReproductionError, match="different error class"):
            estimator.measure_once(default_repro_trace())

    def test_success_is_not_a_reproduction(self, make_scenario):
        with pytest.raises(ReproductionError, match="did not reproduce"):
            ReproTimeEstimator(EchoBackend).measure_once(make_scenario("ok-trace"))

    def test_sample_count_validated(self):
        with pytest.raises(ConfigurationError):
            ReproTimeEstimator(EchoBackend).measure(default_repro_trace(), samples=0)
