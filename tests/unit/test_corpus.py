"""
Tests for the deterministic corpus builder.

Test coverage:
- Seed hashing
- Determinism and count handling
- Variant rewriting of collections, sessions, emails and ids
"""

import pytest

from wirediff.core.catalog import base_templates
from wirediff.core.corpus import CorpusBuilder, build_corpus, deterministic_seed
from wirediff.core.errors import ScenarioValidationError
from wirediff.core.scenario import Scenario, ScenarioCommand


def template(template_id):
    return next(t for t in base_templates() if t.id == template_id)


@pytest.mark.unit
class TestDeterministicSeed:

    def test_known_vector(self):
        # FNV-1a 64 of a single code unit below 0x100 matches the byte-wise vector
        assert deterministic_seed("a") == 0xaf63dc4c8601ec8c

    def test_trimmed(self):
        assert deterministic_seed("  seed-v1 ") == deterministic_seed("seed-v1")

    def test_unsigned(self):
        for text in ("a", "wire-vs-real-mongod-baseline-v1", "crud+transaction-catalog-v1"):
            assert 0 <= deterministic_seed(text) < 2 ** 64

    def test_blank_rejected(self):
        with pytest.raises(ScenarioValidationError):
            deterministic_seed("   ")


@pytest.mark.unit
class TestCorpusBuilder:

    def test_same_seed_same_corpus(self):
        first = build_corpus("seed-v1", 50)
        second = build_corpus("seed-v1", 50)
        assert first == second

    def test_different_seed_different_order(self):
        first = [s.id for s in build_corpus("seed-v1", 50)]
        second = [s.id for s in build_corpus("seed-v2", 50)]

        assert first != second
        assert sorted(first) == sorted(second)

    def test_requested_count(self):
        assert len(build_corpus("seed-v1", 5)) == 5
        assert len(build_corpus("seed-v1", 37)) == 37

    def test_all_templates_kept_when_count_allows(self):
        corpus = build_corpus("seed-v1", 25)
        ids = {s.id for s in corpus}

        assert len(ids) == 25
        assert {t.id for t in base_templates()} <= ids

    def test_invalid_count(self):
        for count in (0, -1, True):
            with pytest.raises(ScenarioValidationError):
                build_corpus("seed-v1", count)

    def test_duplicate_templates_rejected(self):
        scenario = Scenario("a", "", (ScenarioCommand("ping", {}),))
        with pytest.raises(ScenarioValidationError, match="duplicate template id"):
            CorpusBuilder([scenario, scenario])

    def test_empty_templates_rejected(self):
        with pytest.raises(ScenarioValidationError):
            CorpusBuilder([])

    def test_catalogue_ids(self):
        ids = [t.id for t in base_templates()]

        assert ids == sorted(ids)
        assert len(ids) == 10
        assert "crud.create-indexes-duplicate-key" in ids
        assert "txn.lifecycle-transition-path" in ids


@pytest.mark.unit
class TestVariants:

    def setup_method(self):
        self.builder = CorpusBuilder()
        self.seed = deterministic_seed("seed-v1")

    def test_variant_id_and_description(self):
        variant = self.builder.variant(template("crud.insert-find"), 3, self.seed)

        assert variant.id == "v0003.crud.insert-find"
        assert variant.description.endswith("[variant v0003]")

    def test_collection_and_id_rewrite(self):
        variant = self.builder.variant(template("crud.insert-find"), 3, self.seed)
        insert = variant.commands[0].payload

        assert insert["collection"] == "users_insert_find_v0003"
        assert insert["documents"][0]["_id"] == 1 + 3 * 100000 + self.seed % 10000
        assert variant.commands[1].payload["collection"] == "users_insert_find_v0003"

    def test_session_rewrite(self):
        variant = self.builder.variant(template("txn.start-commit-path"), 2, self.seed)
        payload = variant.commands[0].payload

        assert payload["lsid"]["id"] == "session-start-commit-v0002"
        assert payload["txnNumber"] == 3
        assert payload["autocommit"] is False
        assert payload["startTransaction"] is True

    def test_email_rewrite(self):
        variant = self.builder.variant(template("crud.create-indexes-duplicate-key"), 1, self.seed)
        emails = [doc["email"] for doc in variant.commands[0].payload["documents"]]

        assert emails == ["alpha+v0001@example.com", "beta+v0001@example.com"]

    def test_unrelated_values_untouched(self):
        variant = self.builder.variant(template("crud.update-inc"), 1, self.seed)
        update = variant.commands[1].payload["updates"][0]

        assert update["u"]["$inc"]["score"] == 2
        assert update["multi"] is True

    def test_variants_are_isolated(self):
        corpus = build_corpus("seed-v1", 40)
        collections = {}
        for scenario in corpus:
            names = {c.payload.get("collection") for c in scenario.commands} - {None}
            for name in names:
                collections.setdefault(name, set()).add(scenario.id)

        assert all(len(owners) == 1 for owners in collections.values())
