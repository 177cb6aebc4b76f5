#!/usr/bin/env python3
"""
Fixture drift analysis

Compares a baseline fixture snapshot against a refreshed candidate,
namespace by namespace, and scores how far the data has moved.

Per namespace:
- rowCountDelta: |candidate - baseline| / max(1, baseline)
- per top-level field: null-ratio delta, cardinality delta and the total
  variation distance between the two value histograms
- score = 0.4 * rowCountDelta + 0.2 * avg null delta
          + 0.2 * avg cardinality delta + 0.2 * max distribution delta

All ratios are rounded to four decimals, half up.
"""

import json
import logging
from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum
from typing import Any, Dict, List, Mapping, Sequence

from ..core.errors import ConfigurationError
from ..core.values import is_mapping, is_number, is_sequence, to_json_safe

logger = logging.getLogger(__name__)

ROW_WEIGHT = 0.40
NULL_WEIGHT = 0.20
CARDINALITY_WEIGHT = 0.20
DISTRIBUTION_WEIGHT = 0.20
TOP_FIELD_LIMIT = 3


class DriftStatus(Enum):
    OK = "ok"
    WARN = "warn"
    FAIL = "fail"


def round4(value: float) -> float:
    return float(Decimal(repr(float(value))).quantize(Decimal("0.0001"), rounding=ROUND_HALF_UP))


def ratio_delta(current: int, baseline: int) -> float:
    return round4(abs(current - baseline) / max(1, baseline))


def canonical_scalar(value: Any) -> str:
    if isinstance(value, str):
        return f"str:{value}"
    if isinstance(value, bool):
        return f"bool:{'true' if value else 'false'}"
    if is_number(value):
        return f"num:{value}"
    if is_mapping(value):
        return "doc:" + json.dumps(to_json_safe(value), sort_keys=True, separators=(",", ":"))
    if is_sequence(value):
        return "arr:" + json.dumps(to_json_safe(value), sort_keys=True, separators=(",", ":"))
    return f"obj:{value}"


@dataclass(frozen=True)
class FieldDrift:
    field: str
    baseline_null_ratio: float
    candidate_null_ratio: float
    null_ratio_delta: float
    baseline_cardinality: int
    candidate_cardinality: int
    cardinality_delta: float
    distribution_delta: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "field": self.field,
            "baselineNullRatio": self.baseline_null_ratio,
            "candidateNullRatio": self.candidate_null_ratio,
            "nullRatioDelta": self.null_ratio_delta,
            "baselineCardinality": self.baseline_cardinality,
            "candidateCardinality": self.candidate_cardinality,
            "cardinalityDelta": self.cardinality_delta,
            "distributionDelta": self.distribution_delta,
        }


@dataclass(frozen=True)
class CollectionDrift:
    namespace: str
    baseline_count: int
    candidate_count: int
    row_count_delta: float
    avg_null_ratio_delta: float
    avg_cardinality_delta: float
    max_distribution_delta: float
    score: float
    status: DriftStatus
    top_fields: List[FieldDrift] = field(default_factory=list)
    fields: List[FieldDrift] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "namespace": self.namespace,
            "baselineCount": self.baseline_count,
            "candidateCount": self.candidate_count,
            "rowCountDelta": self.row_count_delta,
            "avgNullRatioDelta": self.avg_null_ratio_delta,
            "avgCardinalityDelta": self.avg_cardinality_delta,
            "maxDistributionDelta": self.max_distribution_delta,
            "score": self.score,
            "status": self.status.value,
            "topFields": [f.to_dict() for f in self.top_fields],
            "fields": [f.to_dict() for f in self.fields],
        }


@dataclass(frozen=True)
class DriftReport:
    warn_threshold: float
    fail_threshold: float
    collections: List[CollectionDrift]

    @property
    def warning_collections(self) -> int:
        return sum(1 for c in self.collections if c.status is DriftStatus.WARN)

    @property
    def failing_collections(self) -> int:
        return sum(1 for c in self.collections if c.status is DriftStatus.FAIL)

    @property
    def has_failures(self) -> bool:
        return self.failing_collections > 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "warnThreshold": self.warn_threshold,
            "failThreshold": self.fail_threshold,
            "warningCollections": self.warning_collections,
            "failingCollections": self.failing_collections,
            "hasFailures": self.has_failures,
            "collections": [c.to_dict() for c in self.collections],
        }


class FixtureDriftAnalyzer:
    """Scores data drift between two fixture snapshots."""

    def __init__(self, warn_threshold: float = 0.10, fail_threshold: float = 0.25):
        if warn_threshold < 0 or fail_threshold < 0:
            raise ConfigurationError("drift thresholds must be >= 0")
        if warn_threshold > fail_threshold:
            raise ConfigurationError(
                f"warn_threshold must not exceed fail_threshold: {warn_threshold} > {fail_threshold}")
        self.warn_threshold = warn_threshold
        self.fail_threshold = fail_threshold

    def analyze(self, baseline: Mapping[str, Sequence[Mapping[str, Any]]],
                candidate: Mapping[str, Sequence[Mapping[str, Any]]]) -> DriftReport:
        drifts = [
            self._collection_drift(ns, list(baseline.get(ns, ())), list(candidate.get(ns, ())))
            for ns in sorted(set(baseline) | set(candidate))
        ]
        ranked = sorted(drifts, key=lambda d: d.score, reverse=True)
        report = DriftReport(self.warn_threshold, self.fail_threshold, ranked)
        logger.info(f"Drift analysis: {len(ranked)} namespaces, "
                    f"{report.warning_collections} warn, {report.failing_collections} fail")
        return report

    def status_for(self, score: float) -> DriftStatus:
        if score >= self.fail_threshold:
            return DriftStatus.FAIL
        if score >= self.warn_threshold:
            return DriftStatus.WARN
        return DriftStatus.OK

    def _collection_drift(self, namespace, baseline_docs, candidate_docs) -> CollectionDrift:
        row_delta = ratio_delta(len(candidate_docs), len(baseline_docs))
        field_names = set()
        for doc in baseline_docs + candidate_docs:
            field_names.update(doc.keys())

        fields = []
        for name in sorted(field_names):
            before_null, before_hist = _field_stats(baseline_docs, name)
            after_null, after_hist = _field_stats(candidate_docs, name)
            fields.append(FieldDrift(
                name,
                before_null,
                after_null,
                round4(abs(after_null - before_null)),
                len(before_hist),
                len(after_hist),
                round4(ratio_delta(len(after_hist), len(before_hist))),
                round4(_total_variation(before_hist, after_hist)),
            ))

        avg_null = round4(_average([f.null_ratio_delta for f in fields]))
        avg_card = round4(_average([f.cardinality_delta for f in fields]))
        max_dist = round4(max([f.distribution_delta for f in fields], default=0.0))
        score = round4(row_delta * ROW_WEIGHT + avg_null * NULL_WEIGHT
                       + avg_card * CARDINALITY_WEIGHT + max_dist * DISTRIBUTION_WEIGHT)

        top = sorted(fields, key=lambda f: (f.distribution_delta, f.null_ratio_delta, f.cardinality_delta),
                     reverse=True)[:TOP_FIELD_LIMIT]
        return CollectionDrift(namespace, len(baseline_docs), len(candidate_docs), row_delta,
                               avg_null, avg_card, max_dist, score, self.status_for(score), top, fields)


def _field_stats(docs, name):
    histogram: Dict[str, int] = {}
    nulls = 0
    for doc in docs:
        value = doc.get(name)
        if value is None:
            nulls += 1
            continue
        key = canonical_scalar(value)
        histogram[key] = histogram.get(key, 0) + 1
    null_ratio = round4(nulls / len(docs)) if docs else 0.0
    return null_ratio, histogram


def _total_variation(before: Dict[str, int], after: Dict[str, int]) -> float:
    before_total = sum(before.values())
    after_total = sum(after.values())
    if before_total == 0 and after_total == 0:
        return 0.0
    distance = 0.0
    for key in sorted(set(before) | set(after)):
        p = before.get(key, 0) / before_total if before_total else 0.0
        q = after.get(key, 0) / after_total if after_total else 0.0
        distance += abs(p - q)
    return distance * 0.5


def _average(values: List[float]) -> float:
    return sum(values) / len(values) if values else 0.0
