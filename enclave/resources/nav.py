"""Navigation menu rows: loading the viewer's tree and admin management."""

import logging
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import selectinload

from enclave.database import NavItemRecord, PageRecord
from enclave.errors import ValidationFailed
from enclave.models.context import RequestContext
from enclave.models.enums import NavType
from enclave.models.nav import NavTree, assemble_tree, build_nav_tree

from .base import commit, get_or_404, checkbox, int_or_none, blank_to_none

logger = logging.getLogger(__name__)


def _ordered(query):
    """Store order: root rows first, then by parent and position."""
    return query.options(selectinload(NavItemRecord.page)).order_by(
        NavItemRecord.parent_id.is_(None).desc(),
        NavItemRecord.parent_id,
        NavItemRecord.position,
        NavItemRecord.id,
    )


def get_nav_tree(session, ctx: RequestContext) -> NavTree:
    """Build the menu for one viewer.

    A store failure degrades to an empty menu rather than failing the page.
    """
    try:
        records = _ordered(session.query(NavItemRecord).filter(
            NavItemRecord.is_active.is_(True)
        )).all()
        items = [r.to_model() for r in records]
    except SQLAlchemyError as e:
        logger.error("Error fetching nav items: %s", e)
        return NavTree()

    tree = build_nav_tree(items, ctx)
    for dropped in tree.dropped:
        logger.debug("Nav item %s (%s) dropped: %s", dropped.id, dropped.label, dropped.reason.value)
    return tree


def get_all_nav_items(session) -> NavTree:
    """Every row, active or not, assembled without viewer filtering."""
    records = _ordered(session.query(NavItemRecord)).all()
    return assemble_tree([r.to_model() for r in records])


def get_nav_item(session, item_id: int) -> NavItemRecord:
    return get_or_404(session, NavItemRecord, item_id, "Nav item")


def next_position(session, parent_id: Optional[int]) -> int:
    """One past the highest position among the given parent's children."""
    query = session.query(NavItemRecord.position)
    if parent_id is None:
        query = query.filter(NavItemRecord.parent_id.is_(None))
    else:
        query = query.filter(NavItemRecord.parent_id == parent_id)
    top = query.order_by(NavItemRecord.position.desc()).first()
    return top.position + 1 if top is not None else 0


def _validate(label: Optional[str], type_: Optional[str], url: Optional[str], page_id: Optional[int]):
    if not label or not type_:
        raise ValidationFailed("Label and type are required")
    if type_ not in [t.value for t in NavType]:
        raise ValidationFailed(f"Unknown nav item type: {type_}")
    if type_ == NavType.LINK.value and not url:
        raise ValidationFailed("URL is required for link type")
    if type_ == NavType.PAGE.value and page_id is None:
        raise ValidationFailed("Page ID is required for page type")


def _check_page(session, page_id: Optional[int]):
    if page_id is not None and session.get(PageRecord, page_id) is None:
        raise ValidationFailed("Linked page does not exist")


def create_nav_item(session, data) -> NavItemRecord:
    """Create a nav row from a form or JSON mapping.

    Without an explicit position the row goes after its last sibling.
    """
    label = blank_to_none(data.get("label"))
    type_ = blank_to_none(data.get("type"))
    url = blank_to_none(data.get("url"))
    page_id = int_or_none(data.get("page_id"))
    _validate(label, type_, url, page_id)
    url = url if type_ == NavType.LINK.value else None
    page_id = page_id if type_ == NavType.PAGE.value else None
    _check_page(session, page_id)

    parent_id = int_or_none(data.get("parent_id"))
    position = int_or_none(data.get("position"))
    if position is None:
        position = next_position(session, parent_id)

    record = NavItemRecord(
        label=label,
        type=type_,
        url=url,
        page_id=page_id,
        icon=blank_to_none(data.get("icon")),
        parent_id=parent_id,
        position=position,
        requires_auth=checkbox(data.get("requires_auth")),
        requires_admin=checkbox(data.get("requires_admin")),
        is_active=checkbox(data.get("is_active", True)),
    )
    session.add(record)
    commit(session, "nav item")
    return record


def update_nav_item(session, item_id: int, data) -> NavItemRecord:
    record = get_nav_item(session, item_id)
    label = blank_to_none(data.get("label", record.label))
    type_ = blank_to_none(data.get("type", record.type))
    url = blank_to_none(data.get("url", record.url))
    page_id = int_or_none(data.get("page_id", record.page_id))
    _validate(label, type_, url, page_id)
    url = url if type_ == NavType.LINK.value else None
    page_id = page_id if type_ == NavType.PAGE.value else None
    _check_page(session, page_id)

    parent_id = int_or_none(data.get("parent_id", record.parent_id))
    if parent_id == record.id:
        raise ValidationFailed("A nav item cannot be its own parent")

    record.label = label
    record.type = type_
    record.url = url
    record.page_id = page_id
    record.icon = blank_to_none(data.get("icon", record.icon))
    record.parent_id = parent_id
    position = int_or_none(data.get("position"))
    if position is not None:
        record.position = position
    for flag in ("requires_auth", "requires_admin", "is_active"):
        if flag in data:
            setattr(record, flag, checkbox(data.get(flag)))
    commit(session, "nav item")
    return record


def delete_nav_item(session, item_id: int) -> List[int]:
    """Delete a row and all of its descendants; returns the deleted ids."""
    record = get_nav_item(session, item_id)
    doomed = [record.id]
    frontier = [record.id]
    while frontier:
        children = [
            row.id for row in session.query(NavItemRecord.id).filter(
                NavItemRecord.parent_id.in_(frontier)
            ).all()
            if row.id not in doomed
        ]
        doomed.extend(children)
        frontier = children
    session.query(NavItemRecord).filter(NavItemRecord.id.in_(doomed)).delete(synchronize_session=False)
    commit(session, "nav item")
    return doomed


def reorder_nav_items(session, items: List[dict]) -> None:
    """Apply a batch of ``{id, position, parent_id}`` moves in one commit."""
    for entry in items:
        item_id = int_or_none(entry.get("id"))
        position = int_or_none(entry.get("position"))
        if item_id is None or position is None:
            raise ValidationFailed("Each item needs an id and a position")
        record = get_nav_item(session, item_id)
        parent_id = int_or_none(entry.get("parent_id"))
        if parent_id == record.id:
            raise ValidationFailed("A nav item cannot be its own parent")
        record.position = position
        record.parent_id = parent_id
    commit(session, "nav order")


def get_dropdown_parents(session) -> List[NavItemRecord]:
    """Active dropdown rows that can hold children, by label."""
    return session.query(NavItemRecord).filter(
        NavItemRecord.type == NavType.DROPDOWN.value,
        NavItemRecord.is_active.is_(True),
    ).order_by(NavItemRecord.label).all()
