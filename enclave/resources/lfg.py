"""Looking-for-group posts and join requests."""

import logging
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import selectinload

from enclave.consts import STAT_LIST
from enclave.database import CharacterRecord, LfgPostRecord, LfgJoinRequestRecord
from enclave.errors import Forbidden, ValidationFailed
from enclave.importers.normalize import coerce_optional_date
from enclave.models.context import RequestContext
from enclave.models.enums import JoinStatus, LfgStatus

from .base import commit, get_or_404, checkbox, int_or_none
from .profiles import profile_names

logger = logging.getLogger(__name__)


def _enrich(session, posts: List[LfgPostRecord]) -> List[LfgPostRecord]:
    """Attach creator_name / host_name; missing names are left as None."""
    names = profile_names(session, [p.creator_id for p in posts] + [p.host_id for p in posts])
    for post in posts:
        post.creator_name = names.get(post.creator_id)
        post.host_name = names.get(post.host_id)
    return posts


def get_open_posts(session) -> List[LfgPostRecord]:
    posts = session.query(LfgPostRecord).filter_by(
        is_public=True, status=LfgStatus.OPEN.value
    ).order_by(LfgPostRecord.created_at.desc(), LfgPostRecord.id.desc()).all()
    return _enrich(session, posts)


def get_posts_by_creator(session, creator_id: int) -> List[LfgPostRecord]:
    posts = session.query(LfgPostRecord).filter_by(creator_id=creator_id).order_by(
        LfgPostRecord.created_at.desc(), LfgPostRecord.id.desc()
    ).all()
    return _enrich(session, posts)


def get_joined_posts(session, profile_id: int) -> List[LfgPostRecord]:
    posts = session.query(LfgPostRecord).join(
        LfgJoinRequestRecord, LfgJoinRequestRecord.post_id == LfgPostRecord.id
    ).filter(LfgJoinRequestRecord.profile_id == profile_id).order_by(
        LfgPostRecord.date.desc()
    ).all()
    return _enrich(session, posts)


def get_post(session, post_id: int) -> LfgPostRecord:
    post = session.query(LfgPostRecord).options(
        selectinload(LfgPostRecord.join_requests).selectinload(LfgJoinRequestRecord.character)
    ).filter_by(id=post_id).first()
    if post is None:
        get_or_404(session, LfgPostRecord, None, "Post")
    _enrich(session, [post])
    return post


def apply_post_form(post: LfgPostRecord, form, ctx: RequestContext) -> LfgPostRecord:
    title = (form.get("title") or "").strip()
    if not title:
        raise ValidationFailed("Title is required")
    post.title = title
    post.description = form.get("description") or ""
    post.date = coerce_optional_date(form.get("date"))
    post.is_public = checkbox(form.get("is_public"))
    post.host_id = ctx.profile_id if checkbox(form.get("host_id")) else None
    status = form.get("status")
    if status:
        if status not in [s.value for s in LfgStatus]:
            raise ValidationFailed(f"Unknown status: {status}")
        post.status = status
    return post


def create_post(session, ctx: RequestContext, form) -> LfgPostRecord:
    post = LfgPostRecord(creator_id=ctx.profile_id)
    apply_post_form(post, form, ctx)
    session.add(post)
    commit(session, "post")
    return post


def _owned(session, ctx: RequestContext, post_id: int) -> LfgPostRecord:
    post = get_or_404(session, LfgPostRecord, post_id, "Post")
    if post.creator_id != ctx.profile_id:
        raise Forbidden("Only the post's creator can do that")
    return post


def update_post(session, ctx: RequestContext, post_id: int, form) -> LfgPostRecord:
    post = _owned(session, ctx, post_id)
    apply_post_form(post, form, ctx)
    commit(session, "post")
    return post


def delete_post(session, ctx: RequestContext, post_id: int) -> None:
    post = _owned(session, ctx, post_id)
    session.delete(post)
    commit(session, "post")


def join_post(session, ctx: RequestContext, post_id: int, character_id=None) -> LfgJoinRequestRecord:
    """Request to join a post, optionally bringing one of your characters."""
    post = get_or_404(session, LfgPostRecord, post_id, "Post")
    if post.status != LfgStatus.OPEN.value:
        raise ValidationFailed("This post is closed")
    existing = session.query(LfgJoinRequestRecord).filter_by(
        post_id=post.id, profile_id=ctx.profile_id
    ).first()
    if existing is not None:
        raise ValidationFailed("You already asked to join this post")

    character_id = int_or_none(character_id)
    if character_id is not None:
        character = session.get(CharacterRecord, character_id)
        if character is None or character.creator_id != ctx.profile_id:
            raise Forbidden("You can only join with your own characters")

    join = LfgJoinRequestRecord(
        post_id=post.id, profile_id=ctx.profile_id, character_id=character_id
    )
    session.add(join)
    commit(session, "join request")
    return join


def leave_post(session, ctx: RequestContext, post_id: int) -> None:
    deleted = session.query(LfgJoinRequestRecord).filter_by(
        post_id=post_id, profile_id=ctx.profile_id
    ).delete()
    if not deleted:
        raise ValidationFailed("You have not joined this post")
    commit(session, "join request")


def set_join_request_status(session, ctx: RequestContext, post_id: int, request_id: int,
                            status: str) -> LfgJoinRequestRecord:
    post = _owned(session, ctx, post_id)
    if status not in [s.value for s in JoinStatus]:
        raise ValidationFailed(f"Unknown status: {status}")
    join = session.get(LfgJoinRequestRecord, request_id)
    if join is None or join.post_id != post.id:
        get_or_404(session, LfgJoinRequestRecord, None, "Join request")
    join.status = status
    commit(session, "join request")
    return join


def get_party(post: LfgPostRecord) -> List[CharacterRecord]:
    """Characters attached to approved join requests."""
    return [
        r.character for r in post.join_requests
        if r.status == JoinStatus.APPROVED.value and r.character is not None
    ]


def party_stat_totals(characters) -> dict:
    """Sum each stat over a party; missing stats count as zero."""
    totals = {stat: 0 for stat in STAT_LIST}
    for character in characters:
        for stat in STAT_LIST:
            totals[stat] += getattr(character, stat, 0) or 0
    return totals


def get_events(session, profile_id: Optional[int] = None) -> List[dict]:
    """Dated posts as calendar events: open public posts plus the viewer's own."""
    try:
        query = session.query(LfgPostRecord).filter(LfgPostRecord.date.isnot(None))
        posts = [
            p for p in query.all()
            if (p.is_public and p.status == LfgStatus.OPEN.value) or p.creator_id == profile_id
        ]
    except SQLAlchemyError as e:
        logger.error("Could not load LFG events: %s", e)
        return []
    return [
        {"id": p.id, "title": p.title, "start": p.date.isoformat(), "url": f"/lfg/{p.id}"}
        for p in posts
    ]
