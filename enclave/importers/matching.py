"""Fuzzy matching of participant names to character records."""

import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from rapidfuzz.distance import Levenshtein
from sqlalchemy.exc import SQLAlchemyError

from enclave.models.enums import CandidateSource
from enclave.resources.characters import search_public_characters

from .normalize import normalize_name

logger = logging.getLogger(__name__)

OWN_BONUS = 0.25
PUBLIC_SEARCH_LIMIT = 5


@dataclass
class Candidate:
    id: int
    name: str
    source: CandidateSource = CandidateSource.PUBLIC


@dataclass
class MatchResult:
    """Outcome of matching one name.

    ``match`` is set only for a unique best candidate within the threshold.
    ``ambiguous`` lists the tied candidates when the best score is shared.
    """

    match: Optional[Candidate] = None
    score: Optional[float] = None
    ambiguous: List[Candidate] = field(default_factory=list)

    @property
    def is_ambiguous(self) -> bool:
        return len(self.ambiguous) > 1


def match_threshold(normalized_target: str) -> int:
    """Largest accepted score: max(2, ceil(0.35 * length))."""
    return max(2, -(-len(normalized_target) * 35 // 100))


def score(target: str, candidate: Candidate) -> float:
    """Edit distance between normalized names, less the own-roster bonus."""
    value = float(Levenshtein.distance(target, normalize_name(candidate.name)))
    if candidate.source == CandidateSource.OWN:
        value -= OWN_BONUS
    return value


def pick_best_match(target_name: str, candidates: Iterable[Candidate]) -> MatchResult:
    """Choose the closest candidate, refusing to guess between equal scores."""
    target = normalize_name(target_name)
    if not target:
        return MatchResult()

    best: Optional[Candidate] = None
    best_score = None
    ties: List[Candidate] = []
    for candidate in candidates:
        if not normalize_name(candidate.name):
            continue
        value = score(target, candidate)
        if best_score is None or value < best_score:
            best, best_score, ties = candidate, value, [candidate]
        elif value == best_score:
            ties.append(candidate)

    if best is None or best_score > match_threshold(target):
        return MatchResult(score=best_score)
    if len(ties) > 1:
        return MatchResult(score=best_score, ambiguous=ties)
    return MatchResult(match=best, score=best_score)


def build_candidates(own: Iterable, public: Iterable[dict]) -> List[Candidate]:
    """Own characters first, then public hits whose id is not already present."""
    candidates = [Candidate(id=c.id, name=c.name, source=CandidateSource.OWN) for c in own]
    seen = {c.id for c in candidates}
    for hit in public:
        if hit["id"] in seen:
            continue
        seen.add(hit["id"])
        candidates.append(Candidate(id=hit["id"], name=hit["name"], source=CandidateSource.PUBLIC))
    return candidates


def find_character_match(session, name: str, own: Iterable) -> MatchResult:
    """Match a name against the importer's characters plus a public search.

    A failed public search only narrows the candidate set.
    """
    try:
        public = search_public_characters(session, name, PUBLIC_SEARCH_LIMIT)
    except SQLAlchemyError as e:
        session.rollback()
        logger.warning("Public character search for %r failed: %s", name, e)
        public = []
    return pick_best_match(name, build_candidates(own, public))
