"""Visibility rules for pages, rules PDFs and classes.

These take already-loaded records so they can be checked without a store.
"""

from datetime import datetime
from typing import Optional

from enclave.clock import utcnow

from .context import RequestContext
from .enums import AccessLevel, ClassStatus


def can_view_page(ctx: RequestContext, page) -> bool:
    """Check whether a viewer may read a static page."""
    if page is None:
        return False
    # Admins can always view pages (including unpublished)
    if ctx.is_admin:
        return True
    if not page.is_published:
        return False
    if page.access_level == AccessLevel.PUBLIC.value:
        return True
    if page.access_level == AccessLevel.AUTHENTICATED.value:
        return ctx.is_authenticated
    if page.access_level == AccessLevel.ADMIN.value:
        return False
    return False


def unlock_is_live(expires_at: Optional[datetime], now: Optional[datetime] = None) -> bool:
    """An unlock with no expiry never lapses; otherwise it must be in the future."""
    if expires_at is None:
        return True
    now = now or utcnow()
    return expires_at > now


def can_view_rules_pdf(ctx: RequestContext, rules_pdf, unlock, now: Optional[datetime] = None) -> bool:
    """Check whether a viewer may open a rules PDF.

    Args:
        ctx: Requesting viewer
        rules_pdf: The rules PDF record
        unlock: The viewer's unlock row for that PDF, or None
        now: Reference time (defaults to the current UTC time)
    """
    if rules_pdf is None or not rules_pdf.storage_path:
        return False
    if ctx.is_admin:
        return True
    if not ctx.is_authenticated:
        return False
    if unlock is None:
        return False
    return unlock_is_live(unlock.expires_at, now)


def is_class_owner(ctx: RequestContext, cls) -> bool:
    return ctx.profile_id is not None and ctx.profile_id == cls.created_by


def shows_class_teaser(ctx: RequestContext, cls, unlocked: bool) -> bool:
    """Released classes show only a teaser unless the viewer has access."""
    if cls.status != ClassStatus.RELEASE.value:
        return False
    if ctx.is_admin or is_class_owner(ctx, cls):
        return False
    return not unlocked


def can_view_class_pdf(ctx: RequestContext, cls, unlocked: bool) -> bool:
    if not cls.pdf_storage_path:
        return False
    if ctx.is_admin or is_class_owner(ctx, cls):
        return True
    return ctx.is_authenticated and unlocked


def can_self_unlock(cls) -> bool:
    """Public player-created classes still in alpha or beta are free to unlock."""
    return (
        bool(cls.is_public)
        and bool(cls.is_player_created)
        and cls.status in (ClassStatus.ALPHA.value, ClassStatus.BETA.value)
    )


def can_manage_class(ctx: RequestContext, cls) -> bool:
    return ctx.is_admin or is_class_owner(ctx, cls)
