"""Database layer for the Enclave campaign manager."""

from .db import init_db, get_session, session_scope, engine
from .schema import (
    Base,
    UserRecord,
    AuthSessionRecord,
    ProfileRecord,
    CharacterRecord,
    ClassRecord,
    ClassUnlockRecord,
    ClassUnlockCodeRecord,
    MissionRecord,
    MissionCharacterRecord,
    MissionEditorRecord,
    LfgPostRecord,
    LfgJoinRequestRecord,
    PageRecord,
    RulesPdfRecord,
    RulesPdfUnlockRecord,
    NavItemRecord,
)

__all__ = [
    "init_db",
    "get_session",
    "session_scope",
    "engine",
    "Base",
    "UserRecord",
    "AuthSessionRecord",
    "ProfileRecord",
    "CharacterRecord",
    "ClassRecord",
    "ClassUnlockRecord",
    "ClassUnlockCodeRecord",
    "MissionRecord",
    "MissionCharacterRecord",
    "MissionEditorRecord",
    "LfgPostRecord",
    "LfgJoinRequestRecord",
    "PageRecord",
    "RulesPdfRecord",
    "RulesPdfUnlockRecord",
    "NavItemRecord",
]
