"""
Tests for fuzzy participant-name matching.

These tests verify that:
- Exact matches win with a score of zero
- Names further than the threshold are rejected
- Equal best scores are reported as ambiguous instead of guessed
- The importer's own characters win ties against public ones
"""

from unittest.mock import patch

from sqlalchemy.exc import OperationalError

from enclave.importers.matching import (
    Candidate,
    build_candidates,
    find_character_match,
    match_threshold,
    pick_best_match,
)
from enclave.models.enums import CandidateSource


def public(id, name):
    return Candidate(id=id, name=name, source=CandidateSource.PUBLIC)


def own(id, name):
    return Candidate(id=id, name=name, source=CandidateSource.OWN)


class TestPickBestMatch:

    def test_exact_match_scores_zero(self):
        result = pick_best_match("Jon", [public(1, "Jon"), public(2, "John"), public(3, "Zorblax")])
        assert result.match.name == "Jon"
        assert result.score == 0

    def test_distance_beyond_threshold_rejected(self):
        # "abcd" has threshold max(2, ceil(1.4)) = 2
        result = pick_best_match("abcd", [public(1, "axyz")])
        assert result.match is None
        assert result.score == 3

    def test_distance_at_threshold_accepted(self):
        result = pick_best_match("abcd", [public(1, "abxy")])
        assert result.match.id == 1
        assert result.score == 2

    def test_tie_is_ambiguous(self):
        result = pick_best_match("Jon", [public(1, "Jan"), public(2, "Jen")])
        assert result.match is None
        assert result.is_ambiguous
        assert {c.id for c in result.ambiguous} == {1, 2}

    def test_own_character_breaks_tie(self):
        result = pick_best_match("Jon", [public(1, "Jan"), own(2, "Jen")])
        assert result.match.id == 2
        assert result.score == 0.75

    def test_two_own_candidates_still_tie(self):
        result = pick_best_match("Jon", [own(1, "Jan"), own(2, "Jen")])
        assert result.match is None
        assert result.is_ambiguous

    def test_accents_and_punctuation_ignored(self):
        result = pick_best_match("Zoë O'Brien", [public(1, "zoe o brien"), public(2, "Someone Else")])
        assert result.match.id == 1
        assert result.score == 0

    def test_empty_target_never_matches(self):
        assert pick_best_match("  !! ", [public(1, "Jon")]).match is None

    def test_no_candidates(self):
        result = pick_best_match("Jon", [])
        assert result.match is None
        assert result.score is None


class TestThreshold:

    def test_short_names_floor_at_two(self):
        assert match_threshold("") == 2
        assert match_threshold("jo") == 2
        assert match_threshold("abcd") == 2

    def test_rounds_up(self):
        assert match_threshold("abcdefg") == 3  # ceil(2.45)
        assert match_threshold("a" * 20) == 7


class TestCandidates:

    def test_public_duplicates_of_own_removed(self):
        class Char:
            def __init__(self, id, name):
                self.id, self.name = id, name

        candidates = build_candidates(
            [Char(1, "Jon")],
            [{"id": 1, "name": "Jon"}, {"id": 2, "name": "Jan"}, {"id": 2, "name": "Jan"}],
        )
        assert [(c.id, c.source) for c in candidates] == [
            (1, CandidateSource.OWN),
            (2, CandidateSource.PUBLIC),
        ]

    def test_find_character_match_uses_public_search(self, test_session, user_account, other_profile, make_character):
        stranger = make_character(other_profile, "Rena", is_public=True)
        make_character(other_profile, "Ren", is_public=False)
        result = find_character_match(test_session, "Ren", [])
        assert result.match is not None
        assert result.match.id == stranger.id
        assert result.match.source == CandidateSource.PUBLIC

    def test_failed_public_search_falls_back_to_own(self, test_session, user_account, make_character):
        mine = make_character(user_account["profile"], "Vex")
        with patch(
            "enclave.importers.matching.search_public_characters",
            side_effect=OperationalError("select", {}, Exception("db down")),
        ):
            result = find_character_match(test_session, "Vex", [mine])
        assert result.match.id == mine.id
