"""
Tests for navigation tree assembly.

These tests verify that:
- Admin-only and signed-in-only rows are hidden from viewers who lack access
- Children of hidden or missing parents are dropped, never promoted to the root
- Siblings are ordered by position with ties kept in input order
- Parent cycles do not hang the builder and are reported as unreachable
"""

from enclave.models.context import ANONYMOUS, RequestContext
from enclave.models.nav import DropReason, NavItem, build_nav_tree, resolve_href


ADMIN = RequestContext(user_id=1, profile_id=1, role="admin")
USER = RequestContext(user_id=2, profile_id=2, role="user")


def item(id, label=None, **fields):
    fields.setdefault("type", "link")
    fields.setdefault("url", f"/item-{id}")
    return NavItem(id=id, label=label or f"Item {id}", **fields)


def labels(nodes):
    return [node.label for node in nodes]


class TestVisibility:
    """Filtering rows for a viewer."""

    def test_admin_item_hidden_from_non_admin(self):
        items = [item(1, "Home"), item(2, "Admin", requires_admin=True)]
        tree = build_nav_tree(items, USER)
        assert labels(tree.items) == ["Home"]
        assert tree.dropped_ids(DropReason.REQUIRES_ADMIN) == {2}

    def test_admin_sees_admin_item(self):
        items = [item(1, "Home"), item(2, "Admin", requires_admin=True)]
        tree = build_nav_tree(items, ADMIN)
        assert labels(tree.items) == ["Home", "Admin"]
        assert tree.dropped == []

    def test_auth_item_hidden_from_anonymous(self):
        items = [item(1, "Home"), item(2, "Mine", requires_auth=True)]
        tree = build_nav_tree(items, ANONYMOUS)
        assert labels(tree.items) == ["Home"]
        assert tree.dropped_ids(DropReason.REQUIRES_AUTH) == {2}

    def test_both_flags_checked_independently(self):
        """An admin-only row stays hidden from a signed-in non-admin even with auth satisfied."""
        items = [item(1, requires_auth=True, requires_admin=True)]
        assert build_nav_tree(items, USER).items == []
        assert build_nav_tree(items, ANONYMOUS).items == []
        assert labels(build_nav_tree(items, ADMIN).items) == ["Item 1"]

    def test_descendants_of_admin_dropdown_not_promoted(self):
        items = [
            item(1, "Admin", type="dropdown", url=None, requires_admin=True),
            item(2, "Pages", parent_id=1),
            item(3, "Deep", parent_id=2),
        ]
        tree = build_nav_tree(items, USER)
        assert tree.items == []
        assert tree.visible_ids() == set()
        assert tree.dropped_ids(DropReason.PARENT_HIDDEN) == {2}
        assert tree.dropped_ids(DropReason.UNREACHABLE) == {3}


class TestStructure:
    """Parent linking and ordering."""

    def test_children_nested_under_parent(self):
        items = [
            item(1, "Menu", type="dropdown", url=None),
            item(2, "A", parent_id=1),
            item(3, "B", parent_id=1),
        ]
        tree = build_nav_tree(items, ANONYMOUS)
        assert labels(tree.items) == ["Menu"]
        assert labels(tree.items[0].children) == ["A", "B"]

    def test_missing_parent_dropped_not_promoted(self):
        items = [item(1, "Home"), item(2, "Orphan", parent_id=99)]
        tree = build_nav_tree(items, ANONYMOUS)
        assert labels(tree.items) == ["Home"]
        assert 2 not in tree.visible_ids()
        assert tree.dropped_ids(DropReason.MISSING_PARENT) == {2}

    def test_siblings_sorted_by_position(self):
        items = [
            item(1, "C", position=3),
            item(2, "A", position=1),
            item(3, "B", position=2),
        ]
        tree = build_nav_tree(items, ANONYMOUS)
        assert labels(tree.items) == ["A", "B", "C"]

    def test_position_ties_keep_input_order(self):
        items = [
            item(5, "First", position=1),
            item(2, "Second", position=1),
            item(9, "Zero", position=0),
            item(1, "Third", position=1),
        ]
        tree = build_nav_tree(items, ANONYMOUS)
        assert labels(tree.items) == ["Zero", "First", "Second", "Third"]

    def test_children_sorted_recursively(self):
        items = [
            item(1, "Menu", type="dropdown", url=None),
            item(2, "Late", parent_id=1, position=5),
            item(3, "Early", parent_id=1, position=-1),
        ]
        tree = build_nav_tree(items, ANONYMOUS)
        assert labels(tree.items[0].children) == ["Early", "Late"]

    def test_parent_cycle_is_unreachable(self):
        items = [item(1, "Home"), item(2, "A", parent_id=3), item(3, "B", parent_id=2)]
        tree = build_nav_tree(items, ANONYMOUS)
        assert labels(tree.items) == ["Home"]
        assert tree.dropped_ids(DropReason.UNREACHABLE) == {2, 3}

    def test_to_dict_includes_href_and_children(self):
        items = [item(1, "Menu", type="dropdown", url=None), item(2, "A", parent_id=1, url="/a")]
        data = build_nav_tree(items, ANONYMOUS).items[0].to_dict()
        assert data["href"] == "#"
        assert data["children"][0]["href"] == "/a"
        assert data["children"][0]["children"] == []


class TestResolveHref:

    def test_page_links_to_slug(self):
        assert resolve_href(item(1, type="page", url=None, page_id=4, page_slug="about")) == "/pages/about"

    def test_link_uses_url(self):
        assert resolve_href(item(1, url="https://example.com/x")) == "https://example.com/x"

    def test_dropdown_and_unknown_get_placeholder(self):
        assert resolve_href(item(1, type="dropdown", url=None)) == "#"
        assert resolve_href(item(1, type="mystery", url="/ignored")) == "#"

    def test_page_without_slug_gets_placeholder(self):
        assert resolve_href(item(1, type="page", url=None, page_id=4)) == "#"
