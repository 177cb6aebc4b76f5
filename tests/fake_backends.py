"""
In-memory backends for tests and for CLI backend specs such as
"fake_backends:echo_backend".
"""

import itertools
import threading

from wirediff.core.diff_engine import format_failure
from wirediff.core.scenario import ScenarioOutcome

KNOWN_COMMANDS = frozenset({
    "ping", "insert", "find", "update", "delete", "createIndexes",
    "commitTransaction", "abortTransaction",
})


class EchoBackend:
    """Acknowledges every known command; unknown commands fail with code 59."""

    def __init__(self, name="echo"):
        self._name = name
        self._clock = itertools.count(1)
        self._lock = threading.Lock()
        self.calls = 0

    @property
    def name(self):
        return self._name

    def execute(self, scenario):
        with self._lock:
            self.calls += 1
            call = self.calls
        results = []
        for index, command in enumerate(scenario.commands):
            if command.command_name not in KNOWN_COMMANDS:
                return ScenarioOutcome.failed(format_failure(
                    command.command_name, index, f"no such command: '{command.command_name}'",
                    59, "CommandNotFound"))
            results.append(self.result_for(command, call))
        return ScenarioOutcome.succeeded(results)

    def result_for(self, command, call):
        return {
            "ok": 1,
            "command": command.command_name,
            "collection": command.payload.get("collection"),
            "operationTime": next(self._clock),
        }


class DriftingBackend(EchoBackend):
    """Adds a field to every find result."""

    def result_for(self, command, call):
        result = super().result_for(command, call)
        if command.command_name == "find":
            result["extra"] = True
        return result


class ToggleBackend(EchoBackend):
    """Matches an EchoBackend on odd calls and drifts on even calls."""

    def result_for(self, command, call):
        result = super().result_for(command, call)
        if call % 2 == 0:
            result["ok"] = 0
        return result


class RaisingBackend(EchoBackend):

    def execute(self, scenario):
        raise RuntimeError("connection reset")


def echo_backend():
    return EchoBackend("candidate")


def reference_backend():
    return EchoBackend("reference")


def drifting_backend():
    return DriftingBackend("drifting")


def not_a_backend():
    return object()
