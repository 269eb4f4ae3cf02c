"""Rules PDFs and per-user unlocks."""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from sqlalchemy import or_

from enclave.clock import utcnow
from enclave.database import ProfileRecord, RulesPdfRecord, RulesPdfUnlockRecord
from enclave.errors import ValidationFailed
from enclave.models.access import unlock_is_live

from .base import commit, get_or_404, checkbox, int_or_none
from .profiles import get_profile_by_name, profile_names

logger = logging.getLogger(__name__)


def get_rules_pdfs(session, include_inactive: bool = False) -> List[RulesPdfRecord]:
    query = session.query(RulesPdfRecord)
    if not include_inactive:
        query = query.filter(RulesPdfRecord.is_active.is_(True))
    return query.order_by(
        RulesPdfRecord.edition.desc(), RulesPdfRecord.created_at.desc(), RulesPdfRecord.id.desc()
    ).all()


def get_rules_pdf(session, pdf_id: int) -> RulesPdfRecord:
    return get_or_404(session, RulesPdfRecord, pdf_id, "Rules PDF")


def _apply(pdf: RulesPdfRecord, form) -> RulesPdfRecord:
    title = (form.get("title") or "").strip()
    edition = (form.get("edition") or "").strip()
    if not title or not edition:
        raise ValidationFailed("Title and edition are required")
    pdf.title = title
    pdf.edition = edition
    pdf.is_active = checkbox(form.get("is_active", "on" if pdf.is_active is None else pdf.is_active))
    return pdf


def create_rules_pdf(session, form, created_by: Optional[int] = None) -> RulesPdfRecord:
    pdf = RulesPdfRecord(created_by=created_by, is_active=True)
    _apply(pdf, form)
    session.add(pdf)
    commit(session, "rules PDF")
    return pdf


def update_rules_pdf(session, pdf_id: int, form) -> RulesPdfRecord:
    pdf = get_rules_pdf(session, pdf_id)
    _apply(pdf, form)
    commit(session, "rules PDF")
    return pdf


def set_storage_path(session, pdf: RulesPdfRecord, path: Optional[str]) -> RulesPdfRecord:
    pdf.storage_path = path
    commit(session, "rules PDF")
    return pdf


def get_unlock(session, user_id: Optional[int], pdf_id: int) -> Optional[RulesPdfUnlockRecord]:
    if user_id is None:
        return None
    return session.query(RulesPdfUnlockRecord).filter_by(
        user_id=user_id, rules_pdf_id=pdf_id
    ).first()


@dataclass
class UnlockListing:
    user_id: int
    profile_id: Optional[int]
    profile_name: Optional[str]
    granted_by_name: Optional[str]
    unlocked_at: datetime
    expires_at: Optional[datetime]

    @property
    def is_expired(self) -> bool:
        return not unlock_is_live(self.expires_at)


def list_unlocks(session, pdf_id: int) -> List[UnlockListing]:
    """Unlocks for one PDF with profile and granter names, newest first."""
    rows = session.query(RulesPdfUnlockRecord).filter_by(rules_pdf_id=pdf_id).order_by(
        RulesPdfUnlockRecord.unlocked_at.desc(), RulesPdfUnlockRecord.id.desc()
    ).all()
    names = profile_names(session, [r.profile_id for r in rows] + [r.granted_by for r in rows])
    return [
        UnlockListing(
            user_id=r.user_id,
            profile_id=r.profile_id,
            profile_name=names.get(r.profile_id),
            granted_by_name=names.get(r.granted_by),
            unlocked_at=r.unlocked_at,
            expires_at=r.expires_at,
        )
        for r in rows
    ]


def list_active_unlocks_for_user(session, user_id: int, now: Optional[datetime] = None) -> List[RulesPdfUnlockRecord]:
    now = now or utcnow()
    return session.query(RulesPdfUnlockRecord).filter(
        RulesPdfUnlockRecord.user_id == user_id,
        or_(RulesPdfUnlockRecord.expires_at.is_(None), RulesPdfUnlockRecord.expires_at > now),
    ).all()


def upsert_unlock(
    session,
    user_id: int,
    profile_id: Optional[int],
    pdf_id: int,
    expires_at: Optional[datetime] = None,
    granted_by: Optional[int] = None,
) -> RulesPdfUnlockRecord:
    """Create or overwrite the single unlock row for (user, PDF)."""
    unlock = get_unlock(session, user_id, pdf_id)
    if unlock is None:
        unlock = RulesPdfUnlockRecord(user_id=user_id, rules_pdf_id=pdf_id)
        session.add(unlock)
    unlock.profile_id = profile_id
    unlock.expires_at = expires_at
    unlock.granted_by = granted_by
    unlock.unlocked_at = utcnow()
    commit(session, "rules unlock")
    return unlock


def find_grantee(session, profile_id=None, profile_name: Optional[str] = None) -> ProfileRecord:
    """Look up the profile an admin is granting access to, by id or name."""
    profile = None
    pid = int_or_none(str(profile_id).strip()) if profile_id else None
    if pid is not None:
        profile = session.get(ProfileRecord, pid)
    elif profile_name and profile_name.strip():
        profile = get_profile_by_name(session, profile_name.strip())
    if profile is None:
        raise ValidationFailed("Profile not found")
    if not profile.user_id:
        raise ValidationFailed("Profile is missing a linked user")
    return profile


def delete_unlock(session, user_id: int, pdf_id: int) -> None:
    session.query(RulesPdfUnlockRecord).filter_by(user_id=user_id, rules_pdf_id=pdf_id).delete()
    commit(session, "rules unlock")
