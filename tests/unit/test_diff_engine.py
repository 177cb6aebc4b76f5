"""
Tests for the structural diff engine.

Test coverage:
- Numeric, boolean and type-sensitive leaf comparison
- Missing keys and list size mismatches
- Ephemeral metadata stripping
- Failure signature parsing and equivalence
- Insert count divergence run through the harness
"""

import re
from decimal import Decimal

import pytest
from bson import Decimal128

from wirediff.core.diff_engine import (DiffEngine, FailureSignature, FailureSignatureParser,
                                       NOTE_LIST_SIZE_MISMATCH, NOTE_MISSING_KEY, NOTE_VALUE_MISMATCH,
                                       format_failure)
from wirediff.core.harness import DifferentialHarness
from wirediff.core.results import DiffStatus


def paths(entries):
    return [entry.path for entry in entries]


@pytest.mark.unit
class TestSuccessfulOutcomes:

    def setup_method(self):
        self.engine = DiffEngine()

    def test_identical_outcomes_match(self, ok):
        assert self.engine.compare(ok({"ok": 1, "n": 2}), ok({"ok": 1, "n": 2})) == []

    def test_numbers_compare_by_value(self, ok):
        left = ok({"a": 2, "b": Decimal("2.50"), "c": 1})
        right = ok({"a": 2.0, "b": Decimal128("2.5"), "c": 1.0})
        assert self.engine.compare(left, right) == []

    def test_bool_never_equals_number(self, ok):
        entries = self.engine.compare(ok({"ok": True}), ok({"ok": 1}))

        assert paths(entries) == ["$.commandResults[0].ok"]
        assert entries[0].note == NOTE_VALUE_MISMATCH

    def test_string_never_equals_number(self, ok):
        assert paths(self.engine.compare(ok({"v": "1"}), ok({"v": 1}))) == ["$.commandResults[0].v"]

    def test_nan_matches_nan(self, ok):
        assert self.engine.compare(ok({"v": float("nan")}), ok({"v": float("nan")})) == []

    def test_missing_key_reported_even_for_null(self, ok):
        entries = self.engine.compare(ok({"a": 1}), ok({"a": 1, "b": None}))

        assert len(entries) == 1
        assert entries[0].path == "$.commandResults[0].b"
        assert entries[0].note == NOTE_MISSING_KEY
        assert entries[0].left_value is None
        assert entries[0].right_value is None

    def test_keys_visited_in_sorted_order(self, ok):
        entries = self.engine.compare(ok({"b": 1, "a": 1}), ok({"b": 2, "a": 2}))
        assert paths(entries) == ["$.commandResults[0].a", "$.commandResults[0].b"]

    def test_list_size_mismatch_then_elementwise(self, ok):
        entries = self.engine.compare(ok({"xs": [1, 2, 9]}), ok({"xs": [1, 3]}))

        assert paths(entries) == ["$.commandResults[0].xs.length", "$.commandResults[0].xs[1]"]
        assert entries[0].note == NOTE_LIST_SIZE_MISMATCH
        assert (entries[0].left_value, entries[0].right_value) == (3, 2)

    def test_result_count_mismatch(self, ok):
        entries = self.engine.compare(ok({"ok": 1}, {"ok": 1}), ok({"ok": 1}))
        assert paths(entries) == ["$.commandResults.length"]

    def test_nested_paths(self, ok):
        left = ok({"cursor": {"firstBatch": [{"name": "alpha"}]}})
        right = ok({"cursor": {"firstBatch": [{"name": "beta"}]}})

        assert paths(self.engine.compare(left, right)) == ["$.commandResults[0].cursor.firstBatch[0].name"]

    def test_ephemeral_keys_stripped_at_any_depth(self, ok):
        left = ok({"ok": 1, "operationTime": 1, "inner": {"$clusterTime": {"t": 1}}})
        right = ok({"ok": 1, "operationTime": 2, "inner": {"$clusterTime": {"t": 2}}})
        assert self.engine.compare(left, right) == []

    def test_custom_ephemeral_keys(self, ok):
        engine = DiffEngine(ephemeral_keys={"ts"})
        assert engine.compare(ok({"ts": 1}), ok({"ts": 2})) == []
        assert paths(engine.compare(ok({"operationTime": 1}), ok({"operationTime": 2}))) == [
            "$.commandResults[0].operationTime"]


@pytest.mark.unit
class TestFailedOutcomes:

    def setup_method(self):
        self.engine = DiffEngine()

    def test_success_flag_checked_first(self, ok, failed):
        entries = self.engine.compare(ok({"ok": 1}), failed("boom (code=1)"))
        assert paths(entries) == ["$.success", "$.errorMessage"]

    def test_same_code_different_text_matches(self, failed):
        left = failed("command 'insert' failed at index 2: E11000 dup key (code=11000, codeName=DuplicateKey)")
        right = failed("write error (code=11000, codeName=DuplicateKey)")
        assert self.engine.compare(left, right) == []

    def test_different_codes_mismatch(self, failed):
        left = failed("x (code=11000, codeName=DuplicateKey)")
        right = failed("x (code=251, codeName=NoSuchTransaction)")
        entries = self.engine.compare(left, right)

        assert paths(entries) == ["$.errorMessage"]
        assert entries[0].note == NOTE_VALUE_MISMATCH

    def test_code_names_decide_without_codes(self, failed):
        assert self.engine.compare(failed("a (codeName=Foo)"), failed("b (codeName=Foo)")) == []
        assert self.engine.compare(failed("a (codeName=Foo)"), failed("a (codeName=Bar)")) != []

    def test_literal_comparison_without_signatures(self, failed):
        assert self.engine.compare(failed("boom"), failed("boom")) == []
        assert paths(self.engine.compare(failed("boom"), failed("bang"))) == ["$.errorMessage"]


@pytest.mark.unit
class TestFailureSignatureParser:

    def test_code_and_name(self):
        parser = FailureSignatureParser()
        assert parser.parse("dup (code=11000, codeName=DuplicateKey)") == FailureSignature(11000, "DuplicateKey")

    def test_name_only(self):
        assert FailureSignatureParser().parse("x (codeName=Foo)") == FailureSignature(None, "Foo")

    def test_no_suffix(self):
        signature = FailureSignatureParser().parse("plain failure")
        assert signature.is_empty

    def test_suffix_must_be_trailing(self):
        assert FailureSignatureParser().parse("(code=1) then more text").is_empty

    def test_custom_pattern(self):
        parser = FailureSignatureParser(re.compile(r"\[E(?P<code>\d+)\]"))
        assert parser.parse("boom [E42]") == FailureSignature(42, None)
        assert parser.equivalent("a [E42]", "b [E42]")

    def test_format_failure_round_trip(self):
        message = format_failure("insert", 2, "dup key", 11000, "DuplicateKey")

        assert message == "command 'insert' failed at index 2: dup key (code=11000, codeName=DuplicateKey)"
        assert FailureSignatureParser().parse(message) == FailureSignature(11000, "DuplicateKey")

    def test_format_failure_without_signature(self):
        assert format_failure("ping", 0, "boom") == "command 'ping' failed at index 0: boom"


@pytest.mark.unit
class TestCompareValue:

    def test_standalone_comparison(self):
        entries = DiffEngine().compare_value("$", {"a": [1]}, {"a": [2]})
        assert paths(entries) == ["$.a[0]"]

    def test_none_outcome_rejected(self, ok):
        with pytest.raises(ValueError):
            DiffEngine().compare(ok({"ok": 1}), None)


class FixedBackend:
    """Answers every scenario with the same outcome"""

    def __init__(self, name, outcome):
        self.name = name
        self.outcome = outcome

    def execute(self, scenario):
        return self.outcome


@pytest.mark.unit
class TestInsertCountDivergence:

    def test_insert_count_mismatch(self, ok, make_scenario):
        scenario = make_scenario("insert-three", ("insert", {
            "insert": "users",
            "documents": [{"_id": 1}, {"_id": 2}, {"_id": 3}],
        }))
        harness = DifferentialHarness(FixedBackend("reference", ok({"ok": 1, "n": 3})),
                                      FixedBackend("candidate", ok({"ok": 1, "n": 2})))

        result = harness.run_scenario(scenario)

        assert result.status is DiffStatus.MISMATCH
        assert len(result.entries) == 1
        entry = result.entries[0]
        assert entry.path == "$.commandResults[0].n"
        assert entry.note == "value mismatch"
        assert (entry.left_value, entry.right_value) == (3, 2)
