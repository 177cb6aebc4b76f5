#!/usr/bin/env python3
"""
Differential harness

Runs each scenario against a left and a right backend and hands both
outcomes to the diff engine. Backend exceptions never escape: they are
recorded as ERROR results so one broken scenario cannot abort a run.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from typing import Callable, Iterable, List, Optional

from .diff_engine import DiffEngine
from .errors import ConfigurationError
from .results import DiffResult, DifferentialReport
from .scenario import DifferentialBackend, Scenario

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class DifferentialHarness:
    """Runs scenarios against two backends and computes structural diffs.

    Scenarios run sequentially unless max_workers > 1, in which case they
    are fanned out over a thread pool. Results always come back in input
    order. Both backends must tolerate concurrent execute() calls before
    max_workers is raised.
    """

    def __init__(self, left: DifferentialBackend, right: DifferentialBackend,
                 clock: Optional[Callable[[], datetime]] = None,
                 engine: Optional[DiffEngine] = None,
                 max_workers: int = 1):
        if left is None or right is None:
            raise ConfigurationError("both backends are required")
        if max_workers < 1:
            raise ConfigurationError(f"max_workers must be >= 1: {max_workers}")
        self.left = left
        self.right = right
        self.clock = clock or utc_now
        self.engine = engine or DiffEngine()
        self.max_workers = max_workers

    def run(self, scenarios: Iterable[Scenario]) -> DifferentialReport:
        scenarios = list(scenarios)
        logger.info(f"Running {len(scenarios)} scenarios: {self.left.name} vs {self.right.name}")

        if self.max_workers > 1 and len(scenarios) > 1:
            with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                results: List[DiffResult] = list(executor.map(self.run_scenario, scenarios))
        else:
            results = [self.run_scenario(scenario) for scenario in scenarios]

        report = DifferentialReport(self.left.name, self.right.name, tuple(results), self.clock())
        logger.info(
            f"Differential run complete: total={report.total_scenarios} match={report.match_count} "
            f"mismatch={report.mismatch_count} error={report.error_count}"
        )
        return report

    def run_scenario(self, scenario: Scenario) -> DiffResult:
        if scenario is None:
            raise ValueError("scenario is required")

        left_name = self.left.name
        right_name = self.right.name
        try:
            left_outcome = self.left.execute(scenario)
            right_outcome = self.right.execute(scenario)
        except Exception as e:
            message = f"{type(e).__name__}: {e}"
            logger.warning(f"Scenario {scenario.id} raised during execution: {message}")
            return DiffResult.error(scenario.id, left_name, right_name, message)

        entries = self.engine.compare(left_outcome, right_outcome)
        if not entries:
            logger.debug(f"Scenario {scenario.id}: MATCH")
            return DiffResult.match(scenario.id, left_name, right_name)

        logger.debug(f"Scenario {scenario.id}: MISMATCH ({len(entries)} entries)")
        return DiffResult.mismatch(scenario.id, left_name, right_name, entries)
