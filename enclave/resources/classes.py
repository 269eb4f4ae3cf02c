"""Character classes: CRUD, versioning, unlocks and unlock codes."""

import json
import logging
import re
import secrets
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from sqlalchemy import or_

from enclave.clock import utcnow
from enclave.consts import ADVENT_CLASSES, ASPIRANT_PREVIEW_CLASSES, PLAYER_CREATED_CLASSES
from enclave.database import ClassRecord, ClassUnlockRecord, ClassUnlockCodeRecord
from enclave.errors import Forbidden, ValidationFailed
from enclave.importers.normalize import to_url_or_none
from enclave.models.access import can_manage_class, can_self_unlock, unlock_is_live
from enclave.models.context import RequestContext
from enclave.models.enums import ClassStatus, RulesEdition, RulesVersion

from .base import commit, get_or_404, checkbox, int_or_none

logger = logging.getLogger(__name__)

FILTER_FIELDS = ["is_public", "created_by", "rules_edition", "rules_version", "status", "is_player_created"]
PLAYER_STATUSES = (ClassStatus.ALPHA.value, ClassStatus.BETA.value)
MAX_CODES_PER_REQUEST = 100


def get_classes(session, filters: Optional[dict] = None) -> List[ClassRecord]:
    """List classes ordered by name, filtered by equality on known fields."""
    query = session.query(ClassRecord)
    for key, value in (filters or {}).items():
        if key in FILTER_FIELDS and value is not None and value != "":
            query = query.filter(getattr(ClassRecord, key) == value)
    return query.order_by(ClassRecord.name).all()


def get_class(session, class_id: int) -> ClassRecord:
    return get_or_404(session, ClassRecord, class_id, "Class")


def _pairs(form, name_key: str, description_key: str) -> List[dict]:
    """Zip parallel name/description form lists, dropping blank names."""
    if hasattr(form, "getlist"):
        names = form.getlist(name_key) or form.getlist(f"{name_key}[]")
        descriptions = form.getlist(description_key) or form.getlist(f"{description_key}[]")
    else:
        names = form.get(name_key) or []
        descriptions = form.get(description_key) or []
    pairs = []
    for index, name in enumerate(names):
        name = (name or "").strip()
        if not name:
            continue
        description = descriptions[index] if index < len(descriptions) else ""
        pairs.append({"name": name, "description": (description or "").strip()})
    return pairs


def apply_class_form(record: ClassRecord, form, ctx: RequestContext, creating: bool) -> ClassRecord:
    """Copy class form fields onto a record, enforcing who may set what.

    Non-admins always create player-created classes, may not toggle
    ``is_player_created`` and may only pick alpha or beta status.
    """
    name = (form.get("name") or "").strip()
    if not name:
        raise ValidationFailed("Class name is required")
    record.name = name
    record.teaser = form.get("teaser") or ""
    record.description = form.get("description") or ""
    record.image_url = to_url_or_none(form.get("image_url"))
    record.abilities_json = json.dumps(_pairs(form, "ability_name", "ability_description"))
    record.gear_json = json.dumps(_pairs(form, "gear_name", "gear_description"))
    record.is_public = checkbox(form.get("is_public"))

    edition = form.get("rules_edition")
    if edition:
        if edition not in [e.value for e in RulesEdition]:
            raise ValidationFailed(f"Unknown rules edition: {edition}")
        record.rules_edition = edition
    version = form.get("rules_version")
    if version:
        if version not in [v.value for v in RulesVersion]:
            raise ValidationFailed(f"Unknown rules version: {version}")
        record.rules_version = version

    status = form.get("status")
    if ctx.is_admin:
        if form.get("is_player_created") is not None:
            record.is_player_created = form.get("is_player_created") in ("true", "on", True)
        if status:
            if status not in [s.value for s in ClassStatus]:
                raise ValidationFailed(f"Unknown status: {status}")
            record.status = status
    else:
        if creating:
            record.is_player_created = True
            record.status = status if status in PLAYER_STATUSES else ClassStatus.ALPHA.value
        elif status in PLAYER_STATUSES:
            record.status = status
    if creating and not record.status:
        record.status = ClassStatus.ALPHA.value
    return record


def create_class(session, ctx: RequestContext, form) -> ClassRecord:
    record = ClassRecord(created_by=ctx.profile_id)
    apply_class_form(record, form, ctx, creating=True)
    session.add(record)
    commit(session, "class")
    logger.info("Profile %s created class %s", ctx.profile_id, record.id)
    return record


def _managed(session, ctx: RequestContext, class_id: int) -> ClassRecord:
    record = get_class(session, class_id)
    if not can_manage_class(ctx, record):
        raise Forbidden("You can only change your own classes")
    return record


def update_class(session, ctx: RequestContext, class_id: int, form) -> ClassRecord:
    record = _managed(session, ctx, class_id)
    apply_class_form(record, form, ctx, creating=False)
    commit(session, "class")
    return record


def delete_class(session, ctx: RequestContext, class_id: int) -> ClassRecord:
    record = _managed(session, ctx, class_id)
    session.query(ClassUnlockRecord).filter_by(class_id=record.id).delete()
    session.query(ClassUnlockCodeRecord).filter_by(class_id=record.id).delete()
    session.delete(record)
    commit(session, "class")
    return record


def duplicate_class(session, ctx: RequestContext, base_id: int, new_version: str) -> ClassRecord:
    """Copy a class as a new version derived from it."""
    new_version = (new_version or "").strip()
    if not new_version:
        raise ValidationFailed("new_version is required")
    base = _managed(session, ctx, base_id)
    copy = ClassRecord(
        name=base.name,
        teaser=base.teaser,
        description=base.description,
        image_url=base.image_url,
        abilities_json=base.abilities_json,
        gear_json=base.gear_json,
        status=base.status,
        is_public=False,
        is_player_created=base.is_player_created,
        rules_edition=base.rules_edition,
        rules_version=base.rules_version,
        base_class_id=base.base_class_id or base.id,
        version=new_version,
        created_by=ctx.profile_id,
    )
    session.add(copy)
    commit(session, "class")
    return copy


def get_version_history(session, class_id: int) -> List[ClassRecord]:
    """The class and every class derived from it, newest first."""
    return session.query(ClassRecord).filter(
        or_(ClassRecord.id == class_id, ClassRecord.base_class_id == class_id)
    ).order_by(ClassRecord.created_at.desc(), ClassRecord.id.desc()).all()


def get_unlock(session, user_id: Optional[int], class_id: int) -> Optional[ClassUnlockRecord]:
    if user_id is None:
        return None
    return session.query(ClassUnlockRecord).filter_by(user_id=user_id, class_id=class_id).first()


def is_class_unlocked(session, user_id: Optional[int], class_id: int, now: Optional[datetime] = None) -> bool:
    """True when the user holds an unlock for the class that has not expired."""
    unlock = get_unlock(session, user_id, class_id)
    return unlock is not None and unlock_is_live(unlock.expires_at, now)


def unlock_class(session, user_id: int, class_id: int, expires_at: Optional[datetime] = None) -> ClassUnlockRecord:
    """Grant (or refresh) a user's unlock for a class."""
    unlock = get_unlock(session, user_id, class_id)
    if unlock is None:
        unlock = ClassUnlockRecord(user_id=user_id, class_id=class_id, expires_at=expires_at)
        session.add(unlock)
    elif not unlock_is_live(unlock.expires_at) or expires_at is None:
        unlock.expires_at = expires_at
    commit(session, "class unlock")
    return unlock


def self_unlock(session, ctx: RequestContext, class_id: int) -> ClassUnlockRecord:
    cls = get_class(session, class_id)
    if not can_self_unlock(cls):
        raise Forbidden("Not eligible for self-unlock")
    return unlock_class(session, ctx.user_id, cls.id)


def get_unlocked_classes(session, user_id: int) -> List[ClassRecord]:
    now = utcnow()
    rows = session.query(ClassRecord, ClassUnlockRecord.expires_at).join(
        ClassUnlockRecord, ClassUnlockRecord.class_id == ClassRecord.id
    ).filter(ClassUnlockRecord.user_id == user_id).order_by(ClassRecord.name).all()
    return [cls for cls, expires_at in rows if unlock_is_live(expires_at, now)]


def create_unlock_codes(
    session,
    class_id: int,
    created_by: Optional[int],
    expires_at: Optional[datetime] = None,
    max_uses=1,
    amount=1,
) -> List[ClassUnlockCodeRecord]:
    """Generate ``amount`` redeemable codes for a class."""
    get_class(session, class_id)
    amount = int_or_none(amount)
    max_uses = int_or_none(max_uses)
    amount = 1 if amount is None else amount
    max_uses = 1 if max_uses is None else max_uses
    if amount < 1 or amount > MAX_CODES_PER_REQUEST:
        raise ValidationFailed(f"Amount must be between 1 and {MAX_CODES_PER_REQUEST}")
    if max_uses < 1:
        raise ValidationFailed("Max uses must be at least 1")

    codes = []
    for _ in range(amount):
        record = ClassUnlockCodeRecord(
            code=secrets.token_urlsafe(12),
            class_id=class_id,
            created_by=created_by,
            expires_at=expires_at,
            max_uses=max_uses,
        )
        session.add(record)
        codes.append(record)
    commit(session, "unlock codes")
    logger.info("Created %d unlock codes for class %s", amount, class_id)
    return codes


def list_unlock_codes(session, class_id: int) -> List[ClassUnlockCodeRecord]:
    return session.query(ClassUnlockCodeRecord).filter_by(class_id=class_id).order_by(
        ClassUnlockCodeRecord.created_at.desc(), ClassUnlockCodeRecord.id.desc()
    ).all()


def redeem_unlock_code(session, code: str, user_id: int, now: Optional[datetime] = None) -> int:
    """Spend one use of a code and unlock its class.

    Redeeming a class the user already holds does not consume a use.

    Returns:
        The unlocked class id

    Raises:
        ValidationFailed: Unknown, expired or exhausted code
    """
    code = (code or "").strip()
    if not code:
        raise ValidationFailed("Code is required")
    record = session.query(ClassUnlockCodeRecord).filter_by(code=code).first()
    if record is None:
        raise ValidationFailed("Invalid code")
    if not unlock_is_live(record.expires_at, now):
        raise ValidationFailed("Code has expired")

    if is_class_unlocked(session, user_id, record.class_id, now):
        return record.class_id
    if record.uses >= record.max_uses:
        raise ValidationFailed("Code has already been used")

    record.uses += 1
    unlock_class(session, user_id, record.class_id)
    return record.class_id


@dataclass
class RedeemResult:
    code: str
    success: bool
    class_id: Optional[int] = None
    class_name: Optional[str] = None
    error: Optional[str] = None


def split_codes(raw: str) -> List[str]:
    """Split pasted codes on newlines or commas, keeping first occurrences."""
    seen = []
    for part in re.split(r"\r?\n|,", raw or ""):
        part = part.strip()
        if part and part not in seen:
            seen.append(part)
    return seen


def redeem_many(session, raw: str, user_id: int) -> List[RedeemResult]:
    """Redeem each pasted code independently."""
    results = []
    for code in split_codes(raw):
        try:
            class_id = redeem_unlock_code(session, code, user_id)
        except ValidationFailed as e:
            results.append(RedeemResult(code=code, success=False, error=e.message))
            continue
        cls = session.get(ClassRecord, class_id)
        results.append(RedeemResult(
            code=code, success=True, class_id=class_id,
            class_name=cls.name if cls else None,
        ))
    return results


def builtin_class_records(created_by: Optional[int]) -> List[ClassRecord]:
    """Released, public records for every class in the built-in lists."""
    records = []
    for names, player_created in (
        (ADVENT_CLASSES, False),
        (ASPIRANT_PREVIEW_CLASSES, False),
        (PLAYER_CREATED_CLASSES, True),
    ):
        for name in names:
            records.append(ClassRecord(
                name=name,
                description="",
                is_public=True,
                status=ClassStatus.RELEASE.value,
                is_player_created=player_created,
                rules_edition=RulesEdition.ADVENT.value,
                rules_version=RulesVersion.V1.value,
                created_by=created_by,
            ))
    return records


def seed_builtin_classes(session, created_by: Optional[int]) -> List[ClassRecord]:
    """Insert the built-in classes that are not in the catalogue yet."""
    existing = {name for (name,) in session.query(ClassRecord.name).all()}
    added = []
    for record in builtin_class_records(created_by):
        if record.name in existing:
            continue
        existing.add(record.name)
        session.add(record)
        added.append(record)
        logger.info("Seeding class %s", record.name)
    commit(session, "class")
    return added
