"""Seed the default navigation menu."""

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from enclave.database import NavItemRecord, init_db, session_scope


# (label, type, url, icon, requires_auth, requires_admin, children)
DEFAULT_MENU = [
    ("Missions", "link", "/missions/search", "fa-scroll", False, False, []),
    ("Classes", "link", "/classes/", "fa-shield", False, False, []),
    ("Looking for group", "link", "/lfg/", "fa-users", False, False, []),
    ("Rules", "link", "/rules/", "fa-book", False, False, []),
    ("My stuff", "dropdown", None, "fa-user", True, False, [
        ("Characters", "link", "/characters/", None, True, False, []),
        ("Missions", "link", "/missions/", None, True, False, []),
        ("Classes", "link", "/classes/my", None, True, False, []),
    ]),
    ("Admin", "dropdown", None, "fa-gear", False, True, [
        ("Menu", "link", "/nav/manage", None, False, True, []),
        ("Pages", "link", "/pages/manage", None, False, True, []),
        ("Rules PDFs", "link", "/rules/manage", None, False, True, []),
    ]),
]


def _add(session, entries, parent_id=None):
    added = 0
    for position, (label, type_, url, icon, requires_auth, requires_admin, children) in enumerate(entries):
        record = NavItemRecord(
            label=label,
            type=type_,
            url=url,
            icon=icon,
            parent_id=parent_id,
            position=position,
            requires_auth=requires_auth,
            requires_admin=requires_admin,
            is_active=True,
        )
        session.add(record)
        session.flush()
        added += 1 + _add(session, children, record.id)
    return added


def seed_nav():
    """Create the default menu when the nav table is empty."""
    init_db()
    with session_scope() as session:
        if session.query(NavItemRecord).count():
            return 0
        return _add(session, DEFAULT_MENU)


if __name__ == "__main__":
    added = seed_nav()
    if added:
        print(f"Added {added} nav items.")
    else:
        print("Nav menu already has items, nothing added.")
