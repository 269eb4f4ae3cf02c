"""Enumerations for Enclave concepts."""

from enum import Enum


class Role(Enum):
    """Profile roles."""
    USER = "user"
    ADMIN = "admin"


class NavType(Enum):
    """Kinds of navigation entries."""
    LINK = "link"          # Stored URL
    PAGE = "page"          # Links to /pages/<slug>
    DROPDOWN = "dropdown"  # Container only, not navigable


class AccessLevel(Enum):
    """Who may view a static page."""
    PUBLIC = "public"
    AUTHENTICATED = "authenticated"
    ADMIN = "admin"


class Outcome(Enum):
    """Mission outcomes, in keyword-matching order."""
    SUCCESS = "success"
    FAILURE = "failure"
    PENDING = "pending"


class ClassStatus(Enum):
    """Class release stage."""
    ALPHA = "alpha"
    BETA = "beta"
    RELEASE = "release"


class RulesEdition(Enum):
    ADVENT = "advent"
    ASPIRANT = "aspirant"


class RulesVersion(Enum):
    V1 = "v1"
    V2 = "v2"


class LfgStatus(Enum):
    """Looking-for-group post status."""
    OPEN = "open"
    CLOSED = "closed"


class JoinStatus(Enum):
    """Status of a request to join an LFG post."""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class CandidateSource(Enum):
    """Where a fuzzy-match candidate character came from."""
    OWN = "own"
    PUBLIC = "public"
