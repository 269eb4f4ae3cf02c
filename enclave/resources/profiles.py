"""Profile lookup, creation and starter content grants."""

import logging
from datetime import timedelta
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError

from enclave.clock import utcnow
from enclave.config import StarterConfig
from enclave.database import (
    ProfileRecord, UserRecord, ClassRecord, ClassUnlockRecord,
    RulesPdfRecord, RulesPdfUnlockRecord,
)
from enclave.errors import ValidationFailed
from enclave.importers.normalize import to_url_or_none

from .base import commit, blank_to_none, checkbox

logger = logging.getLogger(__name__)


def default_profile_name(user_id: int) -> str:
    return f"Agent #{user_id}"


def get_or_create_profile(session, user: UserRecord, starter: StarterConfig) -> Optional[ProfileRecord]:
    """Load the profile for a user, creating it on first sight.

    Unconfirmed users without a profile get None. Confirmed users that hold
    no class unlocks yet receive the starter unlocks.
    """
    profile = session.query(ProfileRecord).filter_by(user_id=user.id).first()
    if profile is None:
        if not user.confirmed_at:
            return None
        profile = ProfileRecord(
            user_id=user.id,
            name=default_profile_name(user.id),
            role="user",
        )
        session.add(profile)
        commit(session, "profile")
        logger.info("Created profile %s for user %s", profile.id, user.id)

    if user.confirmed_at:
        has_unlock = session.query(ClassUnlockRecord.id).filter_by(user_id=user.id).first()
        if not has_unlock:
            grant_starter_unlocks(session, user.id, profile.id, starter)
    return profile


def grant_starter_unlocks(session, user_id: int, profile_id: int, starter: StarterConfig) -> None:
    """Grant the configured rules PDF and classes for a limited time.

    Failures are logged and never raised; a missing grant only means the
    player sees teasers until an admin unlocks the content.
    """
    expires_at = utcnow() + timedelta(days=starter.unlock_days)

    try:
        if starter.rules_pdf_id is not None and session.get(RulesPdfRecord, starter.rules_pdf_id):
            unlock = session.query(RulesPdfUnlockRecord).filter_by(
                user_id=user_id, rules_pdf_id=starter.rules_pdf_id
            ).first()
            if unlock is None:
                session.add(RulesPdfUnlockRecord(
                    user_id=user_id,
                    profile_id=profile_id,
                    rules_pdf_id=starter.rules_pdf_id,
                    expires_at=expires_at,
                ))
        for class_id in starter.class_ids:
            if session.get(ClassRecord, class_id) is None:
                logger.warning("Starter class %s does not exist", class_id)
                continue
            exists = session.query(ClassUnlockRecord).filter_by(
                user_id=user_id, class_id=class_id
            ).first()
            if exists is None:
                session.add(ClassUnlockRecord(
                    user_id=user_id, class_id=class_id, expires_at=expires_at
                ))
        session.commit()
    except SQLAlchemyError as e:
        session.rollback()
        logger.error("Failed to grant starter unlocks to user %s: %s", user_id, e)


def get_profile_by_id(session, profile_id: int) -> Optional[ProfileRecord]:
    return session.get(ProfileRecord, profile_id)


def get_profile_by_name(session, name: str) -> Optional[ProfileRecord]:
    return session.query(ProfileRecord).filter_by(name=name).first()


def profile_names(session, profile_ids) -> dict:
    """Map profile ids to display names; lookup failures yield an empty map."""
    ids = {pid for pid in profile_ids if pid is not None}
    if not ids:
        return {}
    try:
        rows = session.query(ProfileRecord.id, ProfileRecord.name).filter(
            ProfileRecord.id.in_(ids)
        ).all()
    except SQLAlchemyError as e:
        logger.warning("Could not load profile names: %s", e)
        return {}
    return {row.id: row.name for row in rows}


def update_profile(session, profile: ProfileRecord, form) -> ProfileRecord:
    """Apply profile form fields (name, bio, image URL, visibility)."""
    name = (form.get("name") or "").strip()
    if not name:
        raise ValidationFailed("Name is required")
    if name != profile.name:
        taken = session.query(ProfileRecord).filter(
            ProfileRecord.name == name, ProfileRecord.id != profile.id
        ).first()
        if taken:
            raise ValidationFailed("That name is already taken")
    profile.name = name
    profile.bio = blank_to_none(form.get("bio"))
    profile.image_url = to_url_or_none(form.get("image_url"))
    if "is_public" in form or form.get("is_public_present"):
        profile.is_public = checkbox(form.get("is_public"))
    commit(session, "profile")
    return profile
