#!/usr/bin/env python3
"""
Deterministic corpus builder

Expands a small set of template scenarios into a corpus of arbitrary size.
The same seed text and scenario count always produce the same scenarios in
the same order, across processes and machines.

Expansion:
1. Templates are sorted by id and kept as-is at the front of the corpus.
2. Variants v0001, v0002, ... of every template are appended until the
   requested count is reached. Variant rewriting keeps variants isolated
   from each other on a shared backend (collection names, session ids,
   emails, transaction numbers and numeric _id values are made unique).
3. The whole list is shuffled with a PRNG seeded from the seed text and
   truncated to the requested count.
"""

import logging
import random
from typing import Any, Iterable, List, Optional, Sequence

from .catalog import base_templates
from .errors import ScenarioValidationError
from .scenario import Scenario, ScenarioCommand
from .values import is_mapping, is_sequence

logger = logging.getLogger(__name__)

FNV_OFFSET_BASIS = 0xcbf29ce484222325
FNV_PRIME = 0x100000001b3
UINT64_MASK = 0xFFFFFFFFFFFFFFFF

DEFAULT_SCENARIO_COUNT = 2000
ID_VARIANT_STRIDE = 100000
ID_SEED_MODULUS = 10000


def deterministic_seed(seed_text: str) -> int:
    """FNV-1a 64-bit hash of the trimmed seed text.

    Hashes UTF-16 code units so that the value matches the seeds recorded in
    existing evidence artifacts. Returned as an unsigned 64-bit integer.
    """
    normalized = seed_text.strip() if isinstance(seed_text, str) else ""
    if not normalized:
        raise ScenarioValidationError("seed must not be blank")

    encoded = normalized.encode("utf-16-le")
    value = FNV_OFFSET_BASIS
    for i in range(0, len(encoded), 2):
        value ^= encoded[i] | (encoded[i + 1] << 8)
        value = (value * FNV_PRIME) & UINT64_MASK
    return value


def variant_tag(variant_index: int) -> str:
    return f"v{variant_index:04d}"


class CorpusBuilder:
    """Builds seeded scenario corpora from a template list."""

    def __init__(self, templates: Optional[Iterable[Scenario]] = None):
        templates = list(base_templates() if templates is None else templates)
        if not templates:
            raise ScenarioValidationError("templates must not be empty")
        seen = set()
        for template in templates:
            if template.id in seen:
                raise ScenarioValidationError(f"duplicate template id: {template.id}")
            seen.add(template.id)
        self.templates = tuple(sorted(templates, key=lambda s: s.id))

    def build(self, seed_text: str, scenario_count: int = DEFAULT_SCENARIO_COUNT) -> List[Scenario]:
        if isinstance(scenario_count, bool) or not isinstance(scenario_count, int) or scenario_count <= 0:
            raise ScenarioValidationError(f"scenario_count must be > 0: {scenario_count}")
        seed = deterministic_seed(seed_text)

        scenarios = self.expand(seed, scenario_count)
        rng = random.Random(seed)
        for i in range(len(scenarios) - 1, 0, -1):
            j = rng.randint(0, i)
            scenarios[i], scenarios[j] = scenarios[j], scenarios[i]

        logger.info(f"Built corpus of {scenario_count} scenarios from {len(self.templates)} templates "
                    f"(seed={seed_text.strip()!r}, numeric={seed})")
        return scenarios[:scenario_count]

    def expand(self, seed: int, target_count: int) -> List[Scenario]:
        expanded = list(self.templates)
        variant_index = 1
        while len(expanded) < target_count:
            for template in self.templates:
                if len(expanded) >= target_count:
                    break
                expanded.append(self.variant(template, variant_index, seed))
            variant_index += 1
        return expanded

    def variant(self, template: Scenario, variant_index: int, seed: int) -> Scenario:
        tag = variant_tag(variant_index)
        commands = tuple(
            ScenarioCommand(
                command.command_name,
                _rewrite_mapping(command.payload, None, variant_index, tag, seed),
            )
            for command in template.commands
        )
        return Scenario(f"{tag}.{template.id}", f"{template.description} [variant {tag}]", commands)


def _rewrite_mapping(source, parent_key, variant_index, tag, seed):
    return {
        key: _rewrite_value(key, parent_key, value, variant_index, tag, seed)
        for key, value in source.items()
    }


def _rewrite_value(key: Optional[str], parent_key: Optional[str], value: Any,
                   variant_index: int, tag: str, seed: int) -> Any:
    if is_mapping(value):
        return _rewrite_mapping(value, key, variant_index, tag, seed)
    if is_sequence(value):
        return [_rewrite_value(None, key, item, variant_index, tag, seed) for item in value]
    if isinstance(value, str):
        return _rewrite_string(key, parent_key, value, tag)
    # bool is an int subclass but never a number here
    if isinstance(value, int) and not isinstance(value, bool):
        return _rewrite_integer(key, value, variant_index, seed)
    return value


def _rewrite_string(key, parent_key, value, tag):
    if key == "collection":
        return f"{value}_{tag}"
    if key == "id" and parent_key == "lsid":
        return f"{value}-{tag}"
    if key == "email":
        at = value.find("@")
        if 0 < at < len(value) - 1:
            return f"{value[:at]}+{tag}{value[at:]}"
    return value


def _rewrite_integer(key, value, variant_index, seed):
    if key == "txnNumber":
        return value + variant_index
    if key == "_id":
        return value + variant_index * ID_VARIANT_STRIDE + seed % ID_SEED_MODULUS
    return value


def build_corpus(seed_text: str, scenario_count: int = DEFAULT_SCENARIO_COUNT,
                 templates: Optional[Sequence[Scenario]] = None) -> List[Scenario]:
    """Convenience wrapper around CorpusBuilder(templates).build()."""
    return CorpusBuilder(templates).build(seed_text, scenario_count)
