"""Static content pages."""

import logging
import re
from typing import List, Optional

from enclave.database import PageRecord
from enclave.errors import NotFound, ValidationFailed
from enclave.models.context import RequestContext
from enclave.models.enums import AccessLevel

from .base import commit, get_or_404, checkbox

logger = logging.getLogger(__name__)


def generate_slug(title: Optional[str]) -> str:
    """Turn a title into a URL-friendly slug."""
    if not title:
        return ""
    slug = title.lower().strip()
    slug = re.sub(r"[^\w\s-]", "", slug)
    slug = re.sub(r"\s+", "-", slug)
    slug = re.sub(r"-+", "-", slug)
    return slug.strip("-")


def is_slug_unique(session, slug: str, exclude_id: Optional[int] = None) -> bool:
    query = session.query(PageRecord.id).filter(PageRecord.slug == slug)
    if exclude_id is not None:
        query = query.filter(PageRecord.id != exclude_id)
    return query.first() is None


def get_pages(session, filters: Optional[dict] = None) -> List[PageRecord]:
    filters = filters or {}
    query = session.query(PageRecord)
    if filters.get("is_published") is not None:
        query = query.filter(PageRecord.is_published == filters["is_published"])
    if filters.get("access_level"):
        query = query.filter(PageRecord.access_level == filters["access_level"])
    return query.order_by(PageRecord.created_at.desc(), PageRecord.id.desc()).all()


def get_page(session, page_id: int) -> PageRecord:
    return get_or_404(session, PageRecord, page_id, "Page")


def get_page_by_slug(session, slug: str) -> PageRecord:
    page = session.query(PageRecord).filter_by(slug=slug).first()
    if page is None:
        raise NotFound("Page not found")
    return page


def _apply(session, page: PageRecord, form) -> PageRecord:
    title = (form.get("title") or "").strip()
    if not title:
        raise ValidationFailed("Title is required")
    slug = generate_slug(form.get("slug")) or generate_slug(title)
    if not slug:
        raise ValidationFailed("Could not derive a slug from the title")
    if not is_slug_unique(session, slug, page.id):
        raise ValidationFailed("A page with this slug already exists")

    access_level = form.get("access_level") or AccessLevel.PUBLIC.value
    if access_level not in [a.value for a in AccessLevel]:
        raise ValidationFailed(f"Unknown access level: {access_level}")

    page.title = title
    page.slug = slug
    page.content = form.get("content") or ""
    page.access_level = access_level
    page.is_published = checkbox(form.get("is_published"))
    return page


def create_page(session, ctx: RequestContext, form) -> PageRecord:
    page = PageRecord(created_by=ctx.profile_id)
    _apply(session, page, form)
    session.add(page)
    commit(session, "page")
    logger.info("Created page %r", page.slug)
    return page


def update_page(session, page_id: int, form) -> PageRecord:
    page = get_page(session, page_id)
    _apply(session, page, form)
    commit(session, "page")
    return page


def delete_page(session, page_id: int) -> None:
    page = get_page(session, page_id)
    session.delete(page)
    commit(session, "page")
