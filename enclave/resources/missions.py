"""Missions and their participant links."""

import json
import logging
from dataclasses import dataclass, field
from datetime import timedelta
from typing import List, Optional

from rapidfuzz import fuzz
from sqlalchemy import or_
from sqlalchemy.orm import selectinload

from enclave.database import (
    CharacterRecord,
    MissionRecord,
    MissionCharacterRecord,
    MissionEditorRecord,
    ProfileRecord,
)
from enclave.errors import Forbidden, NotFound, ValidationFailed
from enclave.importers.normalize import (
    coerce_date,
    coerce_optional_date,
    coerce_outcome,
    dedupe_names,
    normalize_name,
    to_text,
    to_url_or_none,
)
from enclave.models.context import RequestContext
from enclave.models.enums import Outcome

from .base import commit, get_or_404, checkbox, int_or_none
from .profiles import get_profile_by_name

logger = logging.getLogger(__name__)

SIMILAR_WINDOW_DAYS = 1
MERGE_TEXT_FIELDS = ["focus_words", "statement", "summary", "media_url"]


def _with_characters(query):
    return query.options(
        selectinload(MissionRecord.links).selectinload(MissionCharacterRecord.character)
    )


def get_own_missions(session, ctx: RequestContext) -> List[MissionRecord]:
    return _with_characters(session.query(MissionRecord)).filter_by(
        creator_id=ctx.profile_id
    ).order_by(MissionRecord.date.desc(), MissionRecord.id.desc()).all()


def get_mission(session, mission_id: int) -> MissionRecord:
    mission = _with_characters(session.query(MissionRecord)).filter_by(id=mission_id).first()
    if mission is None:
        get_or_404(session, MissionRecord, None, "Mission")
    return mission


def mission_characters(mission: MissionRecord) -> List[CharacterRecord]:
    return [link.character for link in mission.links if link.character is not None]


def can_view_mission(ctx: RequestContext, mission: MissionRecord) -> bool:
    return bool(mission.is_public) or ctx.is_admin or mission.creator_id == ctx.profile_id


def apply_mission_form(mission: MissionRecord, form) -> MissionRecord:
    name = to_text(form.get("name"))
    if not name:
        raise ValidationFailed("Mission name is required")
    mission.name = name
    mission.date = coerce_date(form.get("date"))
    mission.outcome = coerce_outcome(form.get("outcome"))
    mission.focus_words = to_text(form.get("focus_words"))
    mission.statement = to_text(form.get("statement"))
    mission.summary = to_text(form.get("summary"))
    mission.media_url = to_url_or_none(form.get("media_url"))
    mission.is_public = checkbox(form.get("is_public"))
    return mission


def create_mission(session, ctx: RequestContext, fields: dict) -> MissionRecord:
    """Insert a mission from already-normalized fields."""
    mission = MissionRecord(creator_id=ctx.profile_id, **fields)
    session.add(mission)
    commit(session, "mission")
    logger.info("Profile %s created mission %s", ctx.profile_id, mission.id)
    return mission


def create_mission_from_form(session, ctx: RequestContext, form) -> MissionRecord:
    mission = MissionRecord(creator_id=ctx.profile_id)
    apply_mission_form(mission, form)
    session.add(mission)
    commit(session, "mission")
    return mission


def _owned(session, ctx: RequestContext, mission_id: int) -> MissionRecord:
    mission = get_or_404(session, MissionRecord, mission_id, "Mission")
    if mission.creator_id != ctx.profile_id:
        raise Forbidden("You can only change your own missions")
    return mission


def is_mission_creator(ctx: RequestContext, mission: MissionRecord) -> bool:
    return ctx.is_admin or (ctx.profile_id is not None and mission.creator_id == ctx.profile_id)


def can_edit_mission(session, ctx: RequestContext, mission: MissionRecord) -> bool:
    """Creators, admins and profiles the mission was shared with may edit it."""
    if is_mission_creator(ctx, mission):
        return True
    if ctx.profile_id is None:
        return False
    return session.query(MissionEditorRecord).filter_by(
        mission_id=mission.id, profile_id=ctx.profile_id
    ).first() is not None


def _editable(session, ctx: RequestContext, mission_id: int) -> MissionRecord:
    mission = get_or_404(session, MissionRecord, mission_id, "Mission")
    if not can_edit_mission(session, ctx, mission):
        raise Forbidden("You do not have permission to edit this mission")
    return mission


def update_mission(session, ctx: RequestContext, mission_id: int, form) -> MissionRecord:
    mission = _editable(session, ctx, mission_id)
    apply_mission_form(mission, form)
    commit(session, "mission")
    return mission


def delete_mission(session, ctx: RequestContext, mission_id: int) -> None:
    mission = _owned(session, ctx, mission_id)
    session.delete(mission)
    commit(session, "mission")


def add_character_to_mission(session, mission_id: int, character_id: int) -> MissionCharacterRecord:
    """Link a character to a mission; an existing link is returned as is."""
    link = session.query(MissionCharacterRecord).filter_by(
        mission_id=mission_id, character_id=character_id
    ).first()
    if link is not None:
        return link
    get_or_404(session, CharacterRecord, character_id, "Character")
    link = MissionCharacterRecord(mission_id=mission_id, character_id=character_id)
    session.add(link)
    commit(session, "mission link")
    return link


def remove_character_from_mission(session, mission_id: int, character_id: int) -> None:
    session.query(MissionCharacterRecord).filter_by(
        mission_id=mission_id, character_id=character_id
    ).delete()
    commit(session, "mission link")


def link_own_character(session, ctx: RequestContext, mission_id: int, character_id: int):
    """Link from the mission page. The character must be yours or public."""
    _editable(session, ctx, mission_id)
    character = get_or_404(session, CharacterRecord, character_id, "Character")
    if character.creator_id != ctx.profile_id and not character.is_public:
        raise Forbidden("That character is private")
    return add_character_to_mission(session, mission_id, character.id)


def unlink_own_character(session, ctx: RequestContext, mission_id: int, character_id: int) -> None:
    _editable(session, ctx, mission_id)
    remove_character_from_mission(session, mission_id, character_id)


def set_unregistered_names(session, mission: MissionRecord, names: List[str]) -> MissionRecord:
    mission.unregistered_names_json = json.dumps(list(names))
    commit(session, "mission")
    return mission


def search_public_missions(session, query: Optional[str] = None, count: int = 20,
                           has_video: bool = False) -> List[MissionRecord]:
    """Public missions, newest first, optionally matching text or having media."""
    q = _with_characters(session.query(MissionRecord)).filter(MissionRecord.is_public.is_(True))
    text = (query or "").strip()
    if text:
        pattern = f"%{text}%"
        q = q.filter(or_(
            MissionRecord.name.ilike(pattern),
            MissionRecord.summary.ilike(pattern),
            MissionRecord.focus_words.ilike(pattern),
        ))
    if has_video:
        q = q.filter(MissionRecord.media_url.isnot(None), MissionRecord.media_url != "")
    return q.order_by(MissionRecord.date.desc(), MissionRecord.id.desc()).limit(count).all()


def get_editable_missions(session, ctx: RequestContext) -> List[MissionRecord]:
    """Missions other profiles have shared with this one for editing."""
    if ctx.profile_id is None:
        return []
    return _with_characters(session.query(MissionRecord)).join(
        MissionEditorRecord, MissionEditorRecord.mission_id == MissionRecord.id
    ).filter(
        MissionEditorRecord.profile_id == ctx.profile_id,
        MissionRecord.creator_id != ctx.profile_id,
    ).order_by(MissionRecord.date.desc(), MissionRecord.id.desc()).all()


def get_mission_editors(session, mission_id: int) -> List[MissionEditorRecord]:
    return session.query(MissionEditorRecord).options(
        selectinload(MissionEditorRecord.profile)
    ).filter_by(mission_id=mission_id).order_by(MissionEditorRecord.id).all()


def add_mission_editor(session, ctx: RequestContext, mission_id: int, profile_id=None,
                       profile_name: Optional[str] = None) -> MissionEditorRecord:
    """Share a mission with another profile, given by id or exact name.

    Any current editor may add more.
    """
    mission = _editable(session, ctx, mission_id)
    profile_id = int_or_none(profile_id)
    if profile_id is None and profile_name and profile_name.strip():
        profile = get_profile_by_name(session, profile_name.strip())
        if profile is None:
            raise NotFound("Profile not found")
        profile_id = profile.id
    if profile_id is None:
        raise ValidationFailed("Profile ID is required")
    get_or_404(session, ProfileRecord, profile_id, "Profile")
    if profile_id == mission.creator_id:
        raise ValidationFailed("The creator can already edit this mission")

    editor = session.query(MissionEditorRecord).filter_by(
        mission_id=mission_id, profile_id=profile_id
    ).first()
    if editor is not None:
        return editor
    editor = MissionEditorRecord(mission_id=mission_id, profile_id=profile_id, added_by=ctx.profile_id)
    session.add(editor)
    commit(session, "mission editor")
    logger.info("Profile %s added editor %s to mission %s", ctx.profile_id, profile_id, mission_id)
    return editor


def remove_mission_editor(session, ctx: RequestContext, mission_id: int, profile_id: int) -> None:
    """Only the creator (or an admin) can take editing rights away."""
    mission = get_or_404(session, MissionRecord, mission_id, "Mission")
    if not is_mission_creator(ctx, mission):
        raise Forbidden("Only the mission creator can remove editors")
    session.query(MissionEditorRecord).filter_by(
        mission_id=mission_id, profile_id=profile_id
    ).delete()
    commit(session, "mission editor")


def search_similar_missions(session, ctx: RequestContext, date, name: Optional[str] = None,
                            exclude_id=None, window_days: int = SIMILAR_WINDOW_DAYS,
                            limit: int = 10) -> List[MissionRecord]:
    """Missions the viewer can see that were logged around the same date.

    Results are ordered by how closely their name matches ``name``, so a
    duplicate of the mission being written shows up first.
    """
    when = coerce_optional_date(date)
    if when is None:
        raise ValidationFailed("Date is required")
    start = when - timedelta(days=window_days)
    end = when + timedelta(days=window_days)

    q = _with_characters(session.query(MissionRecord)).filter(
        MissionRecord.date >= start, MissionRecord.date <= end
    )
    exclude_id = int_or_none(exclude_id)
    if exclude_id is not None:
        q = q.filter(MissionRecord.id != exclude_id)
    if not ctx.is_admin:
        shared = session.query(MissionEditorRecord.mission_id).filter(
            MissionEditorRecord.profile_id == ctx.profile_id
        )
        q = q.filter(or_(
            MissionRecord.is_public.is_(True),
            MissionRecord.creator_id == ctx.profile_id,
            MissionRecord.id.in_(shared),
        ))
    missions = q.all()

    target = normalize_name(name)
    if target:
        missions.sort(key=lambda m: (-fuzz.token_set_ratio(target, normalize_name(m.name)), m.id))
    else:
        missions.sort(key=lambda m: (m.date, m.id))
    return missions[:limit]


@dataclass
class MergePreview:
    """What merging ``secondary`` into ``primary`` would produce."""

    primary: MissionRecord
    secondary: MissionRecord
    fields: dict = field(default_factory=dict)
    characters: List[CharacterRecord] = field(default_factory=list)
    unregistered_names: List[str] = field(default_factory=list)
    editor_ids: List[int] = field(default_factory=list)

    @property
    def filled_fields(self) -> List[str]:
        """Fields the primary mission takes from the secondary one."""
        return [name for name, value in self.fields.items() if getattr(self.primary, name) != value]


def _merge_plan(primary: MissionRecord, secondary: MissionRecord) -> MergePreview:
    fields = {}
    for name in MERGE_TEXT_FIELDS:
        fields[name] = getattr(primary, name) or getattr(secondary, name)
    if primary.outcome == Outcome.PENDING.value:
        fields["outcome"] = secondary.outcome
    else:
        fields["outcome"] = primary.outcome
    fields["is_public"] = bool(primary.is_public or secondary.is_public)

    characters = mission_characters(primary)
    seen = {c.id for c in characters}
    for character in mission_characters(secondary):
        if character.id not in seen:
            seen.add(character.id)
            characters.append(character)

    linked_names = {normalize_name(c.name) for c in characters}
    unregistered = [
        n for n in dedupe_names(primary.unregistered_character_names + secondary.unregistered_character_names)
        if normalize_name(n) not in linked_names
    ]

    editor_ids = []
    for profile_id in [e.profile_id for e in primary.editors] + [secondary.creator_id] + [
        e.profile_id for e in secondary.editors
    ]:
        if profile_id != primary.creator_id and profile_id not in editor_ids:
            editor_ids.append(profile_id)

    return MergePreview(primary, secondary, fields, characters, unregistered, editor_ids)


def _merge_pair(session, ctx: RequestContext, primary_id: int, secondary_id: int):
    if primary_id == secondary_id:
        raise ValidationFailed("A mission cannot be merged with itself")
    primary = get_mission(session, primary_id)
    secondary = get_mission(session, secondary_id)
    if not (can_edit_mission(session, ctx, primary) and can_edit_mission(session, ctx, secondary)):
        raise Forbidden("You must be able to edit both missions to merge them")
    return primary, secondary


def preview_merge_missions(session, ctx: RequestContext, primary_id: int, secondary_id: int) -> MergePreview:
    primary, secondary = _merge_pair(session, ctx, primary_id, secondary_id)
    return _merge_plan(primary, secondary)


def merge_missions(session, ctx: RequestContext, primary_id: int, secondary_id: int) -> MissionRecord:
    """Fold ``secondary`` into ``primary`` and delete it.

    The primary mission keeps its own values and only takes the secondary's
    where it has none. Participants, unregistered names and editors are
    combined, and the secondary's creator becomes an editor.
    """
    primary, secondary = _merge_pair(session, ctx, primary_id, secondary_id)
    plan = _merge_plan(primary, secondary)

    for name, value in plan.fields.items():
        setattr(primary, name, value)
    primary.unregistered_names_json = json.dumps(plan.unregistered_names)

    linked = {link.character_id for link in primary.links}
    for character in plan.characters:
        if character.id not in linked:
            primary.links.append(MissionCharacterRecord(character_id=character.id))

    current_editors = {e.profile_id for e in primary.editors}
    for profile_id in plan.editor_ids:
        if profile_id not in current_editors:
            primary.editors.append(MissionEditorRecord(profile_id=profile_id, added_by=ctx.profile_id))

    session.delete(secondary)
    commit(session, "mission merge")
    logger.info("Profile %s merged mission %s into %s", ctx.profile_id, secondary_id, primary_id)
    return primary
