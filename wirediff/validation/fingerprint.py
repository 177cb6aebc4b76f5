#!/usr/bin/env python3
"""
DiffResult fingerprints

A fingerprint identifies what a scenario's comparison looked like, not when
it ran. Two runs of the same scenario whose fingerprints differ are flaky.

Fingerprint text layout:
    STATUS[|error=<message>]{|path=<p>|left=<json>|right=<json>|note=<n>}

Values are serialized as canonical JSON (sorted keys, compact separators)
and the text is hashed with SHA256 for compact storage. Leaves with no native
JSON form keep their type name, so Decimal("2") is {"$Decimal":"2"}
and never collides with the string "2".
"""

import hashlib
import json
import logging
import math
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Optional

from ..core.results import DiffResult
from ..core.values import is_mapping, is_sequence, to_json_safe

logger = logging.getLogger(__name__)

_JSON_NATIVE = (type(None), bool, int, str)


def _tag_leaves(value: Any) -> Any:
    if is_mapping(value):
        return {key: _tag_leaves(child) for key, child in value.items()}
    if is_sequence(value):
        return [_tag_leaves(child) for child in value]
    if type(value) in _JSON_NATIVE:
        return value
    if type(value) is float and math.isfinite(value):
        return value
    return {f"${type(value).__name__}": to_json_safe(value)}


@dataclass
class FingerprintConfig:
    """Configuration for fingerprint computation."""
    algorithm: str = "sha256"
    # Use the raw text instead of its digest; handy when debugging flakes
    keep_text: bool = False


class FingerprintCalculator:
    """Computes deterministic fingerprints for DiffResults."""

    def __init__(self, config: Optional[FingerprintConfig] = None):
        self.config = config or FingerprintConfig()

    def _get_hasher(self):
        if self.config.algorithm == "md5":
            return hashlib.md5
        return hashlib.sha256

    @staticmethod
    def _serialize_value(value: Any) -> str:
        return json.dumps(_tag_leaves(value), sort_keys=True, separators=(",", ":"), default=str)

    def fingerprint_text(self, result: DiffResult) -> str:
        parts = [result.status.value]
        if result.error_message is not None:
            parts.append(f"|error={result.error_message}")
        for entry in result.entries:
            parts.append(f"|path={entry.path}")
            parts.append(f"|left={self._serialize_value(entry.left_value)}")
            parts.append(f"|right={self._serialize_value(entry.right_value)}")
            parts.append(f"|note={entry.note}")
        return "".join(parts)

    def fingerprint(self, result: DiffResult) -> str:
        text = self.fingerprint_text(result)
        if self.config.keep_text:
            return text
        return self._get_hasher()(text.encode("utf-8")).hexdigest()

    def fingerprint_results(self, results: Iterable[DiffResult]) -> Dict[str, str]:
        """Fingerprints keyed by scenario id. Later duplicates win."""
        return {result.scenario_id: self.fingerprint(result) for result in results}


_default_calculator = FingerprintCalculator()


def fingerprint_text(result: DiffResult) -> str:
    return _default_calculator.fingerprint_text(result)


def fingerprint(result: DiffResult) -> str:
    return _default_calculator.fingerprint(result)
