"""
Tests for DiffResult fingerprints.
"""

from datetime import datetime, timezone
from decimal import Decimal

import pytest
from bson import Int64, ObjectId

from wirediff.core.results import DiffEntry, DiffResult
from wirediff.validation.fingerprint import FingerprintCalculator, FingerprintConfig, fingerprint, \
    fingerprint_text


@pytest.mark.unit
class TestFingerprint:

    def test_match_text(self):
        assert fingerprint_text(DiffResult.match("a", "l", "r")) == "MATCH"

    def test_error_text(self):
        result = DiffResult.error("a", "l", "r", "RuntimeError: boom")
        assert fingerprint_text(result) == "ERROR|error=RuntimeError: boom"

    def test_mismatch_text_uses_canonical_json(self):
        entry = DiffEntry("$.x", {"b": 1, "a": "s"}, None, "value mismatch")
        result = DiffResult.mismatch("a", "l", "r", [entry])

        assert fingerprint_text(result) == (
            'MISMATCH|path=$.x|left={"a":"s","b":1}|right=null|note=value mismatch')

    def test_digest_is_sha256_hex(self):
        digest = fingerprint(DiffResult.match("a", "l", "r"))

        assert len(digest) == 64
        assert all(c in "0123456789abcdef" for c in digest)

    def test_backend_names_not_part_of_fingerprint(self):
        assert fingerprint(DiffResult.match("a", "l", "r")) == fingerprint(DiffResult.match("a", "x", "y"))

    @pytest.mark.parametrize("changed", [
        DiffEntry("$.y", 1, 2, "value mismatch"),
        DiffEntry("$.x", 0, 2, "value mismatch"),
        DiffEntry("$.x", 1, 3, "value mismatch"),
        DiffEntry("$.x", 1, 2, "missing key"),
    ], ids=["path", "left", "right", "note"])
    def test_every_entry_field_changes_fingerprint(self, changed):
        base = DiffResult.mismatch("a", "l", "r", [DiffEntry("$.x", 1, 2, "value mismatch")])
        other = DiffResult.mismatch("a", "l", "r", [changed])
        assert fingerprint(base) != fingerprint(other)

    @pytest.mark.parametrize("typed, text", [
        (Decimal("2"), "2"),
        (ObjectId("65a1b2c3d4e5f60718293a4b"), "65a1b2c3d4e5f60718293a4b"),
        (datetime(2026, 1, 2, tzinfo=timezone.utc), "2026-01-02T00:00:00+00:00"),
        (float("nan"), "nan"),
        (Int64(2), 2),
    ], ids=["decimal", "objectid", "datetime", "nan", "int64"])
    def test_typed_leaf_differs_from_plain_value(self, typed, text):
        first = DiffResult.mismatch("a", "l", "r", [DiffEntry("$.x", typed, 1)])
        second = DiffResult.mismatch("a", "l", "r", [DiffEntry("$.x", text, 1)])
        assert fingerprint(first) != fingerprint(second)

    def test_typed_leaf_text(self):
        result = DiffResult.mismatch("a", "l", "r", [DiffEntry("$.x", {"v": Decimal("2.5")}, None, "value mismatch")])
        assert fingerprint_text(result) == (
            'MISMATCH|path=$.x|left={"v":{"$Decimal":"2.5"}}|right=null|note=value mismatch')

    def test_keep_text_config(self):
        calculator = FingerprintCalculator(FingerprintConfig(keep_text=True))
        prints = calculator.fingerprint_results([DiffResult.match("a", "l", "r"),
                                                 DiffResult.error("b", "l", "r", "boom")])

        assert prints == {"a": "MATCH", "b": "ERROR|error=boom"}
