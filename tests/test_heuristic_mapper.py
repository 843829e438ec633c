"""Unit tests for name-similarity auto-mapping"""

import itertools

import pytest

from jsonmap.introspection.field_extractor import FieldDescriptor
from jsonmap.mapper.heuristic import HeuristicMapper, best_match, propose_mappings
from jsonmap.mapper.mapping import FieldMapping
from jsonmap.mapper.similarity import levenshtein, similarity
from jsonmap.schema.models import OutputField


@pytest.fixture
def id_factory():
    """Deterministic mapping ids"""
    counter = itertools.count(1)
    return lambda: f"auto_{next(counter)}"


# ============================================================================
# TEST: Similarity
# ============================================================================


class TestSimilarity:
    """Tests for edit distance and similarity"""

    def test_levenshtein(self):
        assert levenshtein("kitten", "sitting") == 3
        assert levenshtein("", "abc") == 3
        assert levenshtein("same", "same") == 0

    def test_similarity_bounds(self):
        assert similarity("Name", "name") == 1.0
        assert similarity("", "") == 1.0
        assert similarity("abc", "xyz") == 0.0
        assert similarity("user_name", "username") == pytest.approx(1 - 1 / 9)


# ============================================================================
# TEST: Proposals
# ============================================================================


class TestProposeMappings:
    """Tests for mapping proposals"""

    def test_proposes_similar_fields(self, id_factory):
        mappings = propose_mappings(["user_name", "email"], ["username", "mail"], 0.7, id_factory)

        assert [(m.source_path, m.target_path) for m in mappings] == [
            ("user_name", "username"),
            ("email", "mail"),
        ]
        assert [m.id for m in mappings] == ["auto_1", "auto_2"]

    def test_every_proposal_exceeds_threshold(self):
        sources = ["first_name", "lastname", "zip", "city_name", "phone"]
        targets = ["firstName", "last_name", "zipcode", "city", "telephone"]

        for threshold in (0.3, 0.5, 0.7, 0.9):
            for m in propose_mappings(sources, targets, threshold):
                assert similarity(m.source_path, m.target_path) > threshold

    def test_threshold_one_keeps_exact_matches_only(self):
        mappings = propose_mappings(["name", "title"], ["name", "titles"], 1.0)

        assert [(m.source_path, m.target_path) for m in mappings] == [("name", "name")]

    def test_first_of_equal_scores_wins(self):
        assert best_match("abcx", ["abcd", "abce"], 0.5) == ("abcd", 0.75)

    def test_no_match(self):
        assert best_match("price", ["zzz"], 0.7) is None

    def test_uses_descriptors_and_output_fields(self, id_factory):
        source = FieldDescriptor(path="items[*].name", name="name", type="string", source_id="api", source_name="API")
        target = OutputField(path="items[*].name", default_value="unnamed")

        [m] = propose_mappings([source], [target], id_factory=id_factory)

        assert m.source_id == "api"
        assert m.source_name == "API"
        assert m.fallback_value == "unnamed"
        assert m.array_config is not None
        assert m.array_config.mapping_mode == "array"


# ============================================================================
# TEST: HeuristicMapper
# ============================================================================


class TestHeuristicMapper:
    """Tests for suggestions against existing mappings"""

    def test_skips_mapped_targets(self, id_factory):
        mapper = HeuristicMapper(0.7, id_factory)
        existing = [FieldMapping(id="manual", source_path="x", target_path="email")]

        suggestions = mapper.suggest(["email", "name"], ["email", "name"], existing)

        assert [s.mapping.target_path for s in suggestions] == ["name"]
        assert suggestions[0].confidence == 1.0

    def test_suggestion_to_dict(self, id_factory):
        [suggestion] = HeuristicMapper(0.7, id_factory).suggest(["email"], ["e_mail"])

        data = suggestion.to_dict()
        assert data["sourcePath"] == "email"
        assert data["targetPath"] == "e_mail"
        assert data["confidence"] == round(1 - 1 / 6, 4)
