"""Import a mission log from free text."""

import logging
from dataclasses import dataclass, field
from typing import List

from sqlalchemy.exc import SQLAlchemyError

from enclave.database import MissionRecord
from enclave.errors import EnclaveError, ImportValidationError
from enclave.llm.client import Extractor
from enclave.models.context import RequestContext
from enclave.resources import characters as character_store
from enclave.resources import missions as mission_store

from .matching import find_character_match
from .normalize import coerce_date, coerce_outcome, dedupe_names, to_text, to_url_or_none
from .schemas import MissionFields, schema_for, validate_fields

logger = logging.getLogger(__name__)


@dataclass
class MissionImportResult:
    mission: MissionRecord
    matched_character_ids: List[int] = field(default_factory=list)
    unresolved_names: List[str] = field(default_factory=list)
    ambiguous_names: List[str] = field(default_factory=list)


def mission_fields(validated: MissionFields, input_text: str) -> dict:
    """Normalize validated extractor output into mission columns."""
    name = to_text(validated.name)
    if not name:
        raise ImportValidationError("Invalid mission data: Mission name is required")
    return {
        "name": name,
        "date": coerce_date(validated.date),
        "outcome": coerce_outcome(validated.outcome),
        "focus_words": to_text(validated.focus_words),
        "statement": to_text(validated.statement),
        "summary": to_text(validated.summary) or input_text,
        "media_url": to_url_or_none(validated.media_url),
        "unregistered_names_json": "[]",
    }


def _own_characters(session, ctx: RequestContext):
    try:
        return character_store.get_own_characters(session, ctx)
    except SQLAlchemyError as e:
        session.rollback()
        logger.warning("Could not load own characters for profile %s: %s", ctx.profile_id, e)
        return []


def import_mission(session, ctx: RequestContext, input_text: str, extractor: Extractor) -> MissionImportResult:
    """Extract, validate and store a mission, then link its participants.

    Nothing is written until the extracted fields validate. The mission is
    committed before any participant is linked; each link commits on its
    own, so a failed link leaves the mission and earlier links in place and
    sends that name to the unresolved list.
    """
    if not (input_text or "").strip():
        raise ImportValidationError("Input text is required")

    raw = extractor.extract(input_text, schema_for(MissionFields))
    validated = validate_fields(MissionFields, raw, "mission")
    mission = mission_store.create_mission(session, ctx, mission_fields(validated, input_text))
    result = MissionImportResult(mission=mission)

    own = _own_characters(session, ctx)
    unresolved = []
    for name in dedupe_names(validated.characters):
        match = find_character_match(session, name, own)
        if match.match is None:
            unresolved.append(name)
            if match.is_ambiguous:
                result.ambiguous_names.append(name)
                logger.info("Participant %r is ambiguous between %s", name,
                            [c.id for c in match.ambiguous])
            continue
        if match.match.id in result.matched_character_ids:
            continue
        try:
            mission_store.add_character_to_mission(session, mission.id, match.match.id)
        except EnclaveError as e:
            logger.warning("Could not link character %s to mission %s: %s",
                           match.match.id, mission.id, e.message)
            unresolved.append(name)
            continue
        result.matched_character_ids.append(match.match.id)

    result.unresolved_names = unresolved
    if unresolved:
        try:
            mission_store.set_unregistered_names(session, mission, dedupe_names(unresolved))
        except EnclaveError as e:
            logger.error("Could not record unregistered names on mission %s: %s", mission.id, e.message)

    logger.info(
        "Imported mission %s: %d linked, %d unresolved",
        mission.id, len(result.matched_character_ids), len(unresolved),
    )
    return result
