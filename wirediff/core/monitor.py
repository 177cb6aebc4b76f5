#!/usr/bin/env python3
"""
Run monitoring

Captures per-call backend latency for the p95 latency gate and process-level
resource usage for the build info block of evidence artifacts.
"""

import logging
import os
import platform
import threading
import time
from datetime import datetime, timezone
from typing import Any, Dict, List

import psutil

from .scenario import DifferentialBackend, Scenario, ScenarioOutcome
from .stats import mean, percentile

logger = logging.getLogger(__name__)


class LatencyRecorder:
    """Thread-safe collection of latency samples in milliseconds."""

    def __init__(self):
        self._samples: List[float] = []
        self._lock = threading.Lock()

    def record(self, millis: float):
        with self._lock:
            self._samples.append(float(millis))

    @property
    def samples(self) -> List[float]:
        with self._lock:
            return list(self._samples)

    def p50(self) -> float:
        return percentile(self.samples, 0.50)

    def p95(self) -> float:
        return percentile(self.samples, 0.95)

    def to_dict(self) -> Dict[str, Any]:
        samples = self.samples
        return {
            "count": len(samples),
            "meanMillis": mean(samples),
            "p50Millis": percentile(samples, 0.50),
            "p95Millis": percentile(samples, 0.95),
        }


class TimedBackend:
    """Backend wrapper that records how long each execute() call takes.

    Calls that raise are timed as well; the exception is re-raised unchanged.
    """

    def __init__(self, backend: DifferentialBackend, recorder: LatencyRecorder):
        self.backend = backend
        self.recorder = recorder

    @property
    def name(self) -> str:
        return self.backend.name

    def execute(self, scenario: Scenario) -> ScenarioOutcome:
        started = time.perf_counter()
        try:
            return self.backend.execute(scenario)
        finally:
            self.recorder.record((time.perf_counter() - started) * 1000.0)


class RunMonitor:
    """Wall-clock duration and process memory for one tool invocation"""

    def __init__(self):
        self.started_at = datetime.now(timezone.utc)
        self._started = time.perf_counter()
        self.process = psutil.Process(os.getpid())
        self.baseline_rss = self.process.memory_info().rss

    def elapsed_seconds(self) -> float:
        return time.perf_counter() - self._started

    def build_info(self) -> Dict[str, Any]:
        memory_info = self.process.memory_info()
        return {
            "python": platform.python_version(),
            "platform": platform.platform(),
            "pid": self.process.pid,
            "cpuCount": psutil.cpu_count(),
            "startedAt": self.started_at.isoformat(),
            "elapsedSeconds": round(self.elapsed_seconds(), 3),
            "rssBytes": memory_info.rss,
            "rssGrowthBytes": memory_info.rss - self.baseline_rss,
        }
