"""Data models for the Enclave campaign manager."""

from .enums import (
    Role,
    NavType,
    AccessLevel,
    Outcome,
    ClassStatus,
    RulesEdition,
    RulesVersion,
    LfgStatus,
    JoinStatus,
    CandidateSource,
)
from .context import RequestContext, ANONYMOUS
from .nav import NavItem, NavNode, NavTree, DropReason, DroppedNavItem, build_nav_tree

__all__ = [
    "Role",
    "NavType",
    "AccessLevel",
    "Outcome",
    "ClassStatus",
    "RulesEdition",
    "RulesVersion",
    "LfgStatus",
    "JoinStatus",
    "CandidateSource",
    "RequestContext",
    "ANONYMOUS",
    "NavItem",
    "NavNode",
    "NavTree",
    "DropReason",
    "DroppedNavItem",
    "build_nav_tree",
]
