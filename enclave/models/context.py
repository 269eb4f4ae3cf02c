"""Per-request identity carried through every call."""

from dataclasses import dataclass
from typing import Optional

from .enums import Role


@dataclass(frozen=True)
class RequestContext:
    """Who is making the current request.

    Built once per request by the auth middleware and passed explicitly to
    anything that needs to know the viewer.
    """

    user_id: Optional[int] = None
    profile_id: Optional[int] = None
    role: Optional[str] = None
    profile_name: Optional[str] = None

    @property
    def is_authenticated(self) -> bool:
        return self.user_id is not None

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN.value


ANONYMOUS = RequestContext()
