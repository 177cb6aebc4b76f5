#!/usr/bin/env python3
"""
wirediff Test Configuration - PyTest Configuration and Fixtures

Shared fixtures for the unit and integration suites: in-memory backends,
a fixed clock and small scenario/outcome builders.
"""

import os
import sys
from datetime import datetime, timezone

import pytest

# Add project root and this directory (for fake_backends) to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from wirediff.core.scenario import Scenario, ScenarioCommand, ScenarioOutcome
from fake_backends import DriftingBackend, EchoBackend, RaisingBackend, ToggleBackend

FIXED_TIME = datetime(2026, 1, 2, 3, 4, 5, tzinfo=timezone.utc)


@pytest.fixture
def fixed_clock():
    """Clock that always returns FIXED_TIME"""
    return lambda: FIXED_TIME


@pytest.fixture
def echo_backend():
    return EchoBackend("candidate")


@pytest.fixture
def reference_backend():
    return EchoBackend("reference")


@pytest.fixture
def drifting_backend():
    return DriftingBackend("drifting")


@pytest.fixture
def raising_backend():
    return RaisingBackend("broken")


@pytest.fixture
def toggle_backend():
    return ToggleBackend("toggle")


@pytest.fixture
def make_scenario():
    """Build a scenario from (command_name, payload) pairs"""
    def _make(scenario_id, *commands, description=""):
        if not commands:
            commands = (("ping", {"$db": "admin"}),)
        return Scenario(scenario_id, description,
                        tuple(ScenarioCommand(name, payload) for name, payload in commands))
    return _make


@pytest.fixture
def ok():
    """Shortcut for ScenarioOutcome.succeeded(list_of_results)"""
    return lambda *results: ScenarioOutcome.succeeded(results)


@pytest.fixture
def failed():
    return ScenarioOutcome.failed


# Custom markers for test organization
def pytest_configure(config):
    """Configure custom pytest markers"""
    config.addinivalue_line(
        "markers", "unit: Unit tests that test individual components"
    )
    config.addinivalue_line(
        "markers", "integration: Integration tests that run tools end to end"
    )
    config.addinivalue_line(
        "markers", "slow: Tests that take longer than usual"
    )
