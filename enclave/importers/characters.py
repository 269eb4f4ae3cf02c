"""Import a character sheet from free text."""

import json
import logging

from enclave.consts import PERSONALITY_TRAITS, STAT_LIST
from enclave.database import CharacterRecord, ClassRecord
from enclave.errors import ImportValidationError
from enclave.llm.client import Extractor
from enclave.models.context import RequestContext
from enclave.resources.base import commit

from .normalize import to_text, to_url_or_none
from .schemas import CharacterFields, schema_for, validate_fields

logger = logging.getLogger(__name__)

TEXT_FIELDS = ["appearance", "additional_gear", "flavor", "ideas", "background", "perks"]


def _traits(validated: CharacterFields) -> list:
    """Known personality traits in the order given, without repeats."""
    traits = []
    for raw in (validated.trait0, validated.trait1, validated.trait2):
        trait = to_text(raw).lower()
        if trait in PERSONALITY_TRAITS and trait not in traits:
            traits.append(trait)
    return traits


def _class_abilities(session, class_name: str) -> tuple:
    cls = session.query(ClassRecord).filter_by(name=class_name).order_by(
        ClassRecord.is_public.desc(), ClassRecord.id
    ).first()
    if cls is None:
        return None, []
    return cls.id, [a.get("name") for a in cls.abilities if a.get("name")]


def import_character(session, ctx: RequestContext, input_text: str, extractor: Extractor) -> CharacterRecord:
    """Extract and store a private character for the importing profile."""
    if not (input_text or "").strip():
        raise ImportValidationError("Input text is required")

    raw = extractor.extract(input_text, schema_for(CharacterFields))
    validated = validate_fields(CharacterFields, raw, "character")
    name = to_text(validated.name)
    if not name:
        raise ImportValidationError("Invalid character data: Character name is required")

    class_name = to_text(validated.class_name) or None
    class_id, abilities = _class_abilities(session, class_name) if class_name else (None, [])

    record = CharacterRecord(
        creator_id=ctx.profile_id,
        name=name,
        class_name=class_name,
        class_id=class_id,
        is_public=False,
        image_url=to_url_or_none(validated.image_url),
        level=validated.level,
        completed_missions=validated.completed_missions,
        commissary_reward=validated.commissary_reward,
        traits_json=json.dumps(_traits(validated)),
        gear_json=json.dumps([g.strip() for g in validated.gear or [] if g and g.strip()]),
        abilities_json=json.dumps(abilities),
    )
    for stat in STAT_LIST:
        setattr(record, stat, getattr(validated, stat))
    for text_field in TEXT_FIELDS:
        setattr(record, text_field, to_text(getattr(validated, text_field)))

    session.add(record)
    commit(session, "character")
    logger.info("Imported character %s for profile %s", record.id, ctx.profile_id)
    return record
