"""Character records: CRUD, search and mission history."""

import json
import logging
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError

from enclave.consts import STAT_LIST
from enclave.database import CharacterRecord, ClassRecord, MissionRecord, MissionCharacterRecord
from enclave.errors import Forbidden, ValidationFailed
from enclave.importers.normalize import to_url_or_none
from enclave.models.context import RequestContext

from .base import commit, get_or_404, checkbox, int_or_none

logger = logging.getLogger(__name__)

TEXT_FIELDS = ["appearance", "additional_gear", "flavor", "ideas", "background", "perks"]
COUNTER_DEFAULTS = {"level": 1, "completed_missions": 0, "commissary_reward": 0}


def _getlist(form, key) -> List[str]:
    if hasattr(form, "getlist"):
        values = form.getlist(key)
    else:
        values = form.get(key) or []
        if isinstance(values, str):
            values = [values]
    return [v.strip() for v in values if v and v.strip()]


def _int_field(form, key, default=0) -> int:
    value = int_or_none(form.get(key))
    return default if value is None else value


def _resolve_class(session, class_name: Optional[str], class_id: Optional[int]):
    """Fill whichever of class name / class id is missing from the other."""
    if class_id is None and class_name:
        try:
            cls = session.query(ClassRecord).filter_by(name=class_name).order_by(
                ClassRecord.is_public.desc(), ClassRecord.id
            ).first()
        except SQLAlchemyError as e:
            logger.warning("Class lookup for %r failed: %s", class_name, e)
            cls = None
        if cls is not None:
            class_id = cls.id
    if class_id is not None and not class_name:
        cls = session.get(ClassRecord, class_id)
        if cls is not None:
            class_name = cls.name
    return class_name, class_id


def apply_character_form(session, record: CharacterRecord, form) -> CharacterRecord:
    """Copy character sheet fields from a form mapping onto a record."""
    name = (form.get("name") or "").strip()
    if not name:
        raise ValidationFailed("Character name is required")
    record.name = name

    class_name = (form.get("class_name") or form.get("class") or "").strip() or None
    record.class_name, record.class_id = _resolve_class(
        session, class_name, int_or_none(form.get("class_id"))
    )
    record.is_public = checkbox(form.get("is_public"))
    record.image_url = to_url_or_none(form.get("image_url"))

    for stat in STAT_LIST:
        setattr(record, stat, _int_field(form, stat))
    for field, default in COUNTER_DEFAULTS.items():
        setattr(record, field, _int_field(form, field, default))

    traits = _getlist(form, "traits") or [
        t for t in (form.get(f"trait{i}") for i in range(3)) if t
    ]
    record.traits_json = json.dumps(traits)
    record.gear_json = json.dumps(_getlist(form, "gear"))
    record.abilities_json = json.dumps(_getlist(form, "abilities"))

    for field in TEXT_FIELDS:
        setattr(record, field, form.get(field) or "")
    return record


def get_own_characters(session, ctx: RequestContext) -> List[CharacterRecord]:
    return session.query(CharacterRecord).filter_by(
        creator_id=ctx.profile_id
    ).order_by(CharacterRecord.name).all()


def get_public_characters_by_creator(session, creator_id: int) -> List[CharacterRecord]:
    return session.query(CharacterRecord).filter_by(
        creator_id=creator_id, is_public=True
    ).order_by(CharacterRecord.name).all()


def get_character(session, character_id: int) -> CharacterRecord:
    return get_or_404(session, CharacterRecord, character_id, "Character")


def can_view_character(ctx: RequestContext, character: CharacterRecord) -> bool:
    return bool(character.is_public) or ctx.is_admin or character.creator_id == ctx.profile_id


def create_character(session, ctx: RequestContext, form) -> CharacterRecord:
    record = CharacterRecord(creator_id=ctx.profile_id)
    apply_character_form(session, record, form)
    session.add(record)
    commit(session, "character")
    logger.info("Profile %s created character %s", ctx.profile_id, record.id)
    return record


def _owned(session, ctx: RequestContext, character_id: int) -> CharacterRecord:
    record = get_character(session, character_id)
    if record.creator_id != ctx.profile_id:
        raise Forbidden("You can only change your own characters")
    return record


def update_character(session, ctx: RequestContext, character_id: int, form) -> CharacterRecord:
    record = _owned(session, ctx, character_id)
    apply_character_form(session, record, form)
    commit(session, "character")
    return record


def delete_character(session, ctx: RequestContext, character_id: int) -> None:
    record = _owned(session, ctx, character_id)
    session.query(MissionCharacterRecord).filter_by(character_id=record.id).delete()
    session.delete(record)
    commit(session, "character")


def search_public_characters(session, name: str, limit: int = 5) -> List[dict]:
    """Case-insensitive substring search over public characters."""
    name = (name or "").strip()
    if not name:
        return []
    rows = session.query(CharacterRecord.id, CharacterRecord.name).filter(
        CharacterRecord.is_public.is_(True),
        CharacterRecord.name.ilike(f"%{name}%"),
    ).order_by(CharacterRecord.name).limit(limit).all()
    return [{"id": row.id, "name": row.name} for row in rows]


def get_character_missions(session, character_id: int, limit: Optional[int] = None) -> List[MissionRecord]:
    """Missions a character took part in, most recent first."""
    query = session.query(MissionRecord).join(
        MissionCharacterRecord, MissionCharacterRecord.mission_id == MissionRecord.id
    ).filter(
        MissionCharacterRecord.character_id == character_id
    ).order_by(MissionRecord.date.desc())
    if limit is not None:
        query = query.limit(limit)
    return query.all()
