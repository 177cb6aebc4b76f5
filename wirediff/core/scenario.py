#!/usr/bin/env python3
"""
Scenario model

A Scenario is an ordered list of commands executed against a backend as one
unit. Backends report a ScenarioOutcome: either the per-command result
documents or a single failure message. Every instance is immutable once
built, so one scenario can be handed to several backends safely.
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Protocol, Tuple, Union, runtime_checkable

from .errors import ScenarioValidationError
from .values import freeze_value, is_mapping, to_json_safe, to_plain

logger = logging.getLogger(__name__)


def _require_text(value: Optional[str], field_name: str) -> str:
    normalized = value.strip() if isinstance(value, str) else None
    if not normalized:
        raise ScenarioValidationError(f"{field_name} must not be blank", {"field": field_name})
    return normalized


@dataclass(frozen=True)
class ScenarioCommand:
    """One logical command invocation within a scenario."""
    command_name: str
    payload: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "command_name", _require_text(self.command_name, "command_name"))
        if not is_mapping(self.payload):
            raise ScenarioValidationError("payload must be a mapping", {"command": self.command_name})
        object.__setattr__(self, "payload", freeze_value(self.payload, f"$.{self.command_name}"))

    def to_dict(self) -> Dict[str, Any]:
        return {"commandName": self.command_name, "payload": to_json_safe(self.payload)}


@dataclass(frozen=True)
class Scenario:
    """Differential test scenario with a deterministic command sequence."""
    id: str
    description: str = ""
    commands: Tuple[ScenarioCommand, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "id", _require_text(self.id, "id"))
        description = self.description.strip() if isinstance(self.description, str) else ""
        object.__setattr__(self, "description", description)
        commands = tuple(self.commands or ())
        if not commands:
            raise ScenarioValidationError("commands must not be empty", {"scenario": self.id})
        for command in commands:
            if not isinstance(command, ScenarioCommand):
                raise ScenarioValidationError(
                    f"commands must be ScenarioCommand instances, got {type(command).__name__}",
                    {"scenario": self.id})
        object.__setattr__(self, "commands", commands)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "description": self.description,
            "commands": [command.to_dict() for command in self.commands],
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Scenario":
        if not is_mapping(data):
            raise ScenarioValidationError("scenario entry must be an object")
        raw_commands = data.get("commands")
        if not isinstance(raw_commands, list):
            raise ScenarioValidationError("commands must be a list", {"scenario": data.get("id")})
        commands = []
        for raw in raw_commands:
            if not is_mapping(raw):
                raise ScenarioValidationError("command entry must be an object", {"scenario": data.get("id")})
            name = raw.get("commandName", raw.get("name"))
            commands.append(ScenarioCommand(name, raw.get("payload", {})))
        return cls(data.get("id"), data.get("description", ""), tuple(commands))


@dataclass(frozen=True)
class ScenarioOutcome:
    """Backend execution result for one scenario.

    Build instances with ScenarioOutcome.succeeded() or ScenarioOutcome.failed().
    A successful outcome never carries an error message and a failed one
    always does.
    """
    success: bool
    command_results: Tuple[Mapping[str, Any], ...] = ()
    error_message: Optional[str] = None

    def __post_init__(self):
        results = []
        for index, result in enumerate(self.command_results or ()):
            if not is_mapping(result):
                raise ScenarioValidationError(f"command result {index} must be a mapping")
            results.append(freeze_value(result, f"$.commandResults[{index}]"))
        object.__setattr__(self, "command_results", tuple(results))

        message = self.error_message.strip() if isinstance(self.error_message, str) else None
        object.__setattr__(self, "error_message", message or None)
        if self.success and self.error_message is not None:
            raise ScenarioValidationError("error_message must be empty for success outcomes")
        if not self.success and self.error_message is None:
            raise ScenarioValidationError("error_message is required for failed outcomes")

    @classmethod
    def succeeded(cls, command_results: Iterable[Mapping[str, Any]]) -> "ScenarioOutcome":
        return cls(True, tuple(command_results), None)

    @classmethod
    def failed(cls, error_message: str) -> "ScenarioOutcome":
        return cls(False, (), error_message)

    def plain_results(self) -> List[Dict[str, Any]]:
        return to_plain(self.command_results)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "commandResults": to_json_safe(self.command_results),
            "errorMessage": self.error_message,
        }


@runtime_checkable
class DifferentialBackend(Protocol):
    """Anything that can execute a scenario and report its outcome.

    Implementations own their connections and state. A backend that cannot
    run a scenario may raise; the harness turns that into an ERROR result.
    """

    @property
    def name(self) -> str:
        ...

    def execute(self, scenario: Scenario) -> ScenarioOutcome:
        ...


def load_scenarios(path: Union[str, Path]) -> List[Scenario]:
    """Load scenarios from a JSON file.

    Accepts either a top-level list or an object with a "scenarios" list.
    Duplicate ids are rejected since ids are the join key between runs.
    """
    path = Path(path)
    with open(path, "r", encoding="utf-8") as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as e:
            raise ScenarioValidationError(f"invalid scenario file {path}: {e}") from e

    if is_mapping(data):
        data = data.get("scenarios")
    if not isinstance(data, list):
        raise ScenarioValidationError(f"scenario file {path} must contain a list of scenarios")

    scenarios = [Scenario.from_dict(entry) for entry in data]
    seen = set()
    for scenario in scenarios:
        if scenario.id in seen:
            raise ScenarioValidationError(f"duplicate scenario id: {scenario.id}", {"path": str(path)})
        seen.add(scenario.id)

    logger.info(f"Loaded {len(scenarios)} scenarios from {path}")
    return scenarios
