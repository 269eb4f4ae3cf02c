"""Navigation menu model and tree assembly.

Nav rows are stored flat, each optionally pointing at a parent row. The
builder filters the rows for one viewer and assembles the visible forest.
Rows that cannot be placed are never promoted to the root level; they are
reported in ``NavTree.dropped`` instead.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Set

from .context import RequestContext
from .enums import NavType

PLACEHOLDER_HREF = "#"


class DropReason(Enum):
    """Why a row is missing from the assembled tree."""
    REQUIRES_ADMIN = "requires_admin"
    REQUIRES_AUTH = "requires_auth"
    PARENT_HIDDEN = "parent_hidden"      # Parent was filtered for this viewer
    MISSING_PARENT = "missing_parent"    # Parent is inactive or does not exist
    UNREACHABLE = "unreachable"          # Ancestor dropped, or parent cycle


@dataclass
class NavItem:
    """One stored navigation row."""

    id: int
    label: str
    type: str
    position: int = 0
    url: Optional[str] = None
    page_id: Optional[int] = None
    page_slug: Optional[str] = None
    parent_id: Optional[int] = None
    icon: Optional[str] = None
    requires_auth: bool = False
    requires_admin: bool = False
    is_active: bool = True


@dataclass
class NavNode:
    """A visible item with its resolved link and ordered children."""

    item: NavItem
    href: str
    children: List["NavNode"] = field(default_factory=list)

    @property
    def id(self) -> int:
        return self.item.id

    @property
    def label(self) -> str:
        return self.item.label

    @property
    def type(self) -> str:
        return self.item.type

    @property
    def icon(self) -> Optional[str]:
        return self.item.icon

    @property
    def position(self) -> int:
        return self.item.position

    def to_dict(self) -> dict:
        """Flatten to the row fields plus href and nested children."""
        return {
            "id": self.item.id,
            "label": self.item.label,
            "type": self.item.type,
            "url": self.item.url,
            "page_id": self.item.page_id,
            "parent_id": self.item.parent_id,
            "icon": self.item.icon,
            "position": self.item.position,
            "requires_auth": self.item.requires_auth,
            "requires_admin": self.item.requires_admin,
            "is_active": self.item.is_active,
            "href": self.href,
            "children": [child.to_dict() for child in self.children],
        }


@dataclass
class DroppedNavItem:
    id: int
    label: str
    reason: DropReason


@dataclass
class NavTree:
    """Result of tree assembly: the visible forest plus what was left out."""

    items: List[NavNode] = field(default_factory=list)
    dropped: List[DroppedNavItem] = field(default_factory=list)

    def dropped_ids(self, reason: Optional[DropReason] = None) -> Set[int]:
        return {d.id for d in self.dropped if reason is None or d.reason == reason}

    def visible_ids(self) -> Set[int]:
        ids = set()
        stack = list(self.items)
        while stack:
            node = stack.pop()
            ids.add(node.id)
            stack.extend(node.children)
        return ids


def resolve_href(item: NavItem) -> str:
    """Link target for a row; dropdowns and unknown types get a placeholder."""
    if item.type == NavType.PAGE.value and item.page_slug:
        return f"/pages/{item.page_slug}"
    if item.type == NavType.LINK.value and item.url:
        return item.url
    return PLACEHOLDER_HREF


def is_visible_to(item: NavItem, viewer: RequestContext) -> Optional[DropReason]:
    """Return the reason the viewer may not see this row, or None."""
    if item.requires_admin and not viewer.is_admin:
        return DropReason.REQUIRES_ADMIN
    if item.requires_auth and not viewer.is_authenticated:
        return DropReason.REQUIRES_AUTH
    return None


def sort_by_position(nodes: List[NavNode]) -> None:
    """Sort siblings in place, recursively. Ties keep their input order."""
    nodes.sort(key=lambda node: node.position)
    for node in nodes:
        if node.children:
            sort_by_position(node.children)


def assemble_tree(items: List[NavItem]) -> NavTree:
    """Link rows to their parents and sort every sibling group.

    Rows whose parent is not among ``items`` are dropped. Rows that end up
    attached below a dropped row, or inside a parent cycle, are unreachable
    from any root and reported as such.
    """
    tree = NavTree()
    nodes: Dict[int, NavNode] = {}
    for item in items:
        nodes[item.id] = NavNode(item=item, href=resolve_href(item))

    for item in items:
        node = nodes[item.id]
        if item.parent_id is None:
            tree.items.append(node)
        elif item.parent_id in nodes:
            nodes[item.parent_id].children.append(node)
        else:
            tree.dropped.append(
                DroppedNavItem(item.id, item.label, DropReason.MISSING_PARENT)
            )

    sort_by_position(tree.items)

    reachable = tree.visible_ids()
    already_dropped = tree.dropped_ids()
    for item in items:
        if item.id not in reachable and item.id not in already_dropped:
            tree.dropped.append(
                DroppedNavItem(item.id, item.label, DropReason.UNREACHABLE)
            )
    return tree


def build_nav_tree(items: List[NavItem], viewer: RequestContext) -> NavTree:
    """Filter rows for a viewer and assemble the ordered forest.

    Args:
        items: Active nav rows, in store order
        viewer: The requesting user's context

    Returns:
        NavTree whose ``items`` are the visible roots
    """
    visible = []
    hidden: List[DroppedNavItem] = []
    for item in items:
        reason = is_visible_to(item, viewer)
        if reason is None:
            visible.append(item)
        else:
            hidden.append(DroppedNavItem(item.id, item.label, reason))

    tree = assemble_tree(visible)

    hidden_ids = {d.id for d in hidden}
    for dropped in tree.dropped:
        if dropped.reason != DropReason.MISSING_PARENT:
            continue
        parent_id = next(i.parent_id for i in visible if i.id == dropped.id)
        if parent_id in hidden_ids:
            dropped.reason = DropReason.PARENT_HIDDEN

    tree.dropped = hidden + tree.dropped
    return tree
