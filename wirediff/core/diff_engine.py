#!/usr/bin/env python3
"""
Structural diff engine

Compares two ScenarioOutcomes and produces the list of DiffEntry records
where they diverge. An empty list means the outcomes are equivalent.

Comparison rules:
- success flags first, at $.success
- both succeeded: command results at $.commandResults, after ephemeral
  server metadata has been stripped from both sides
- both failed: failure-signature equivalence on the error messages, then
  literal comparison at $.errorMessage
- numbers compare by value (2 == 2.0 == Decimal("2.00")); booleans are
  never numbers
- mappings compare over the sorted union of keys; a key on one side only
  is reported as "missing key", even when the present value is None
- sequences report a length mismatch at <path>.length and continue
  element-wise up to the shorter length
"""

import logging
import re
from dataclasses import dataclass
from typing import Any, FrozenSet, Iterable, List, Optional, Pattern, Union

from .results import DiffEntry
from .scenario import ScenarioOutcome
from .values import is_mapping, is_number, is_sequence, numeric_equals

logger = logging.getLogger(__name__)

# Server-assigned metadata that changes on every run
DEFAULT_EPHEMERAL_KEYS = frozenset({"$clusterTime", "operationTime", "electionId", "opTime"})

# Trailing "(code=11000, codeName=DuplicateKey)", "(code=11000)" or
# "(codeName=DuplicateKey)"
DEFAULT_SIGNATURE_PATTERN = (
    r"\((?:code=(?P<code>-?\d+)(?:,\s*codeName=(?P<code_name>[^\s,)]+))?"
    r"|codeName=(?P<code_name_only>[^\s,)]+))\)\s*$"
)

NOTE_VALUE_MISMATCH = "value mismatch"
NOTE_MISSING_KEY = "missing key"
NOTE_LIST_SIZE_MISMATCH = "list size mismatch"


@dataclass(frozen=True)
class FailureSignature:
    """Error class extracted from a failure message suffix."""
    code: Optional[int] = None
    code_name: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return self.code is None and self.code_name is None


class FailureSignatureParser:
    """Parses the trailing error-class suffix of a failure message.

    The pattern must expose a "code" group and a "code_name" group; an
    optional "code_name_only" group covers suffixes without a numeric code.
    """

    def __init__(self, pattern: Union[str, Pattern, None] = None):
        if pattern is None:
            pattern = DEFAULT_SIGNATURE_PATTERN
        self.pattern = re.compile(pattern) if isinstance(pattern, str) else pattern

    def parse(self, message: Optional[str]) -> FailureSignature:
        if not message:
            return FailureSignature()
        match = self.pattern.search(message)
        if match is None:
            return FailureSignature()
        groups = match.groupdict()
        code = groups.get("code")
        code_name = groups.get("code_name") or groups.get("code_name_only")
        return FailureSignature(int(code) if code is not None else None, code_name or None)

    def equivalent(self, left: Optional[str], right: Optional[str]) -> bool:
        """True when two failure messages describe the same error class.

        Numeric codes decide when both sides carry one, then code names,
        then the literal message text.
        """
        left_sig = self.parse(left)
        right_sig = self.parse(right)
        if left_sig.code is not None and right_sig.code is not None:
            return left_sig.code == right_sig.code
        if left_sig.code_name is not None and right_sig.code_name is not None:
            return left_sig.code_name == right_sig.code_name
        return left == right


def format_failure(command_name: str, command_index: int, message: str,
                   code: Optional[int] = None, code_name: Optional[str] = None) -> str:
    """Build a failure message in the form the default parser understands."""
    text = f"command '{command_name}' failed at index {command_index}: {message}"
    suffix = []
    if code is not None:
        suffix.append(f"code={code}")
    if code_name:
        suffix.append(f"codeName={code_name}")
    if suffix:
        text += f" ({', '.join(suffix)})"
    return text


class DiffEngine:
    """Recursive structural comparison of backend outcomes."""

    def __init__(self, ephemeral_keys: Optional[Iterable[str]] = None,
                 signature_parser: Optional[FailureSignatureParser] = None):
        self.ephemeral_keys: FrozenSet[str] = (
            frozenset(ephemeral_keys) if ephemeral_keys is not None else DEFAULT_EPHEMERAL_KEYS
        )
        self.signature_parser = signature_parser or FailureSignatureParser()

    def compare(self, left: ScenarioOutcome, right: ScenarioOutcome) -> List[DiffEntry]:
        if left is None or right is None:
            raise ValueError("both outcomes are required")

        entries: List[DiffEntry] = []
        self.compare_value("$.success", left.success, right.success, entries)

        if left.success and right.success:
            self.compare_value(
                "$.commandResults",
                self.strip_ephemeral(left.command_results),
                self.strip_ephemeral(right.command_results),
                entries,
            )
            return entries

        if not left.success and not right.success:
            if self.signature_parser.equivalent(left.error_message, right.error_message):
                return entries
            entries.append(DiffEntry("$.errorMessage", left.error_message,
                                     right.error_message, NOTE_VALUE_MISMATCH))
            return entries

        self.compare_value("$.errorMessage", left.error_message, right.error_message, entries)
        return entries

    def strip_ephemeral(self, value: Any) -> Any:
        """Drop ephemeral metadata keys at every depth."""
        if is_mapping(value):
            return {
                key: self.strip_ephemeral(child)
                for key, child in value.items()
                if key not in self.ephemeral_keys
            }
        if is_sequence(value):
            return [self.strip_ephemeral(child) for child in value]
        return value

    def compare_value(self, path: str, left: Any, right: Any,
                      entries: Optional[List[DiffEntry]] = None) -> List[DiffEntry]:
        if entries is None:
            entries = []

        if is_mapping(left) and is_mapping(right):
            self._compare_mapping(path, left, right, entries)
        elif is_sequence(left) and is_sequence(right):
            self._compare_sequence(path, left, right, entries)
        elif not self._leaves_equal(left, right):
            entries.append(DiffEntry(path, left, right, NOTE_VALUE_MISMATCH))
        return entries

    def _compare_mapping(self, path, left, right, entries):
        for key in sorted(set(left) | set(right)):
            child_path = f"{path}.{key}"
            if key not in left or key not in right:
                entries.append(DiffEntry(child_path, left.get(key), right.get(key), NOTE_MISSING_KEY))
                continue
            self.compare_value(child_path, left[key], right[key], entries)

    def _compare_sequence(self, path, left, right, entries):
        if len(left) != len(right):
            entries.append(DiffEntry(f"{path}.length", len(left), len(right), NOTE_LIST_SIZE_MISMATCH))
        for index in range(min(len(left), len(right))):
            self.compare_value(f"{path}[{index}]", left[index], right[index], entries)

    @staticmethod
    def _leaves_equal(left: Any, right: Any) -> bool:
        if left is right:
            return True
        if left is None or right is None:
            return False
        if is_number(left) and is_number(right):
            return numeric_equals(left, right)
        # bool vs int would otherwise compare equal (True == 1)
        if isinstance(left, bool) or isinstance(right, bool):
            return isinstance(left, bool) and isinstance(right, bool) and left == right
        if type(left) is not type(right) and not (isinstance(left, str) and isinstance(right, str)):
            return False
        return left == right
