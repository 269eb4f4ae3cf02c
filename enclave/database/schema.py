"""SQLAlchemy table definitions for the Enclave campaign manager."""

import json
from datetime import datetime
from typing import List, Optional

from sqlalchemy import String, Integer, Text, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from enclave.clock import utcnow
from enclave.consts import STAT_LIST
from enclave.models.nav import NavItem


class Base(DeclarativeBase):
    pass


def _load_list(raw: Optional[str]) -> list:
    if not raw:
        return []
    try:
        value = json.loads(raw)
    except json.JSONDecodeError:
        return []
    return value if isinstance(value, list) else []


class UserRecord(Base):
    """Account credentials for the auth service."""
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True)
    email: Mapped[str] = mapped_column(String(255), unique=True)
    password_hash: Mapped[str] = mapped_column(String(255))
    confirmed_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)


class AuthSessionRecord(Base):
    """An issued access/refresh token pair."""
    __tablename__ = "auth_sessions"

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"))
    access_token: Mapped[str] = mapped_column(String(64), unique=True)
    refresh_token: Mapped[str] = mapped_column(String(64), unique=True)
    access_expires_at: Mapped[datetime] = mapped_column(DateTime)
    refresh_expires_at: Mapped[datetime] = mapped_column(DateTime)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)


class ProfileRecord(Base):
    """Public-facing profile for a user."""
    __tablename__ = "profiles"

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), unique=True)
    name: Mapped[str] = mapped_column(String(100))
    bio: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    image_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    role: Mapped[str] = mapped_column(String(20), default="user")  # "user" or "admin"
    is_public: Mapped[bool] = mapped_column(default=True)
    discord_id: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)


class CharacterRecord(Base):
    """Database record for a player character."""
    __tablename__ = "characters"

    id: Mapped[int] = mapped_column(primary_key=True)
    creator_id: Mapped[int] = mapped_column(ForeignKey("profiles.id"))
    name: Mapped[str] = mapped_column(String(100))
    class_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    class_id: Mapped[Optional[int]] = mapped_column(ForeignKey("classes.id"), nullable=True)
    is_public: Mapped[bool] = mapped_column(default=False)
    image_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    # Stats
    vitality: Mapped[int] = mapped_column(Integer, default=0)
    might: Mapped[int] = mapped_column(Integer, default=0)
    resilience: Mapped[int] = mapped_column(Integer, default=0)
    spirit: Mapped[int] = mapped_column(Integer, default=0)
    arcane: Mapped[int] = mapped_column(Integer, default=0)
    will: Mapped[int] = mapped_column(Integer, default=0)
    sensory: Mapped[int] = mapped_column(Integer, default=0)
    reflex: Mapped[int] = mapped_column(Integer, default=0)
    vigor: Mapped[int] = mapped_column(Integer, default=0)
    skill: Mapped[int] = mapped_column(Integer, default=0)
    intelligence: Mapped[int] = mapped_column(Integer, default=0)
    luck: Mapped[int] = mapped_column(Integer, default=0)

    level: Mapped[int] = mapped_column(Integer, default=1)
    completed_missions: Mapped[int] = mapped_column(Integer, default=0)
    commissary_reward: Mapped[int] = mapped_column(Integer, default=0)

    # Personality traits, class gear and class abilities stored as JSON
    traits_json: Mapped[str] = mapped_column(Text, default="[]")
    gear_json: Mapped[str] = mapped_column(Text, default="[]")
    abilities_json: Mapped[str] = mapped_column(Text, default="[]")

    appearance: Mapped[str] = mapped_column(Text, default="")
    additional_gear: Mapped[str] = mapped_column(Text, default="")
    flavor: Mapped[str] = mapped_column(Text, default="")
    ideas: Mapped[str] = mapped_column(Text, default="")
    background: Mapped[str] = mapped_column(Text, default="")
    perks: Mapped[str] = mapped_column(Text, default="")

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)

    @property
    def traits(self) -> List[str]:
        return _load_list(self.traits_json)

    @property
    def gear(self) -> List[str]:
        return _load_list(self.gear_json)

    @property
    def abilities(self) -> List[str]:
        return _load_list(self.abilities_json)

    def stats(self) -> dict:
        """Stat name to value, in canonical order."""
        return {stat: getattr(self, stat) or 0 for stat in STAT_LIST}


class ClassRecord(Base):
    """A character class (archetype) with versioned abilities and gear."""
    __tablename__ = "classes"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(100))
    teaser: Mapped[str] = mapped_column(Text, default="")
    description: Mapped[str] = mapped_column(Text, default="")
    image_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    # Lists of {"name", "description"} stored as JSON
    abilities_json: Mapped[str] = mapped_column(Text, default="[]")
    gear_json: Mapped[str] = mapped_column(Text, default="[]")

    status: Mapped[str] = mapped_column(String(20), default="alpha")  # alpha, beta, release
    is_public: Mapped[bool] = mapped_column(default=False)
    is_player_created: Mapped[bool] = mapped_column(default=True)
    rules_edition: Mapped[str] = mapped_column(String(20), default="advent")
    rules_version: Mapped[str] = mapped_column(String(10), default="v1")

    # Versioning: derived classes point at the class they were copied from
    base_class_id: Mapped[Optional[int]] = mapped_column(ForeignKey("classes.id"), nullable=True)
    version: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)

    created_by: Mapped[Optional[int]] = mapped_column(ForeignKey("profiles.id"), nullable=True)
    pdf_storage_path: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)

    @property
    def abilities(self) -> List[dict]:
        return _load_list(self.abilities_json)

    @property
    def gear(self) -> List[dict]:
        return _load_list(self.gear_json)


class ClassUnlockRecord(Base):
    """Grants a user full access to a released class."""
    __tablename__ = "class_unlocks"
    __table_args__ = (UniqueConstraint("user_id", "class_id"),)

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"))
    class_id: Mapped[int] = mapped_column(ForeignKey("classes.id"))
    expires_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    unlocked_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)


class ClassUnlockCodeRecord(Base):
    """A redeemable code that unlocks one class."""
    __tablename__ = "class_unlock_codes"

    id: Mapped[int] = mapped_column(primary_key=True)
    code: Mapped[str] = mapped_column(String(32), unique=True)
    class_id: Mapped[int] = mapped_column(ForeignKey("classes.id"))
    created_by: Mapped[Optional[int]] = mapped_column(ForeignKey("profiles.id"), nullable=True)
    expires_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    max_uses: Mapped[int] = mapped_column(Integer, default=1)
    uses: Mapped[int] = mapped_column(Integer, default=0)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)


class MissionRecord(Base):
    """A logged play session."""
    __tablename__ = "missions"

    id: Mapped[int] = mapped_column(primary_key=True)
    creator_id: Mapped[int] = mapped_column(ForeignKey("profiles.id"))
    name: Mapped[str] = mapped_column(String(200))
    date: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    outcome: Mapped[str] = mapped_column(String(20), default="pending")  # success, failure, pending
    focus_words: Mapped[str] = mapped_column(Text, default="")
    statement: Mapped[str] = mapped_column(Text, default="")
    summary: Mapped[str] = mapped_column(Text, default="")
    media_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    is_public: Mapped[bool] = mapped_column(default=False)

    # Participants that could not be linked to a character record
    unregistered_names_json: Mapped[str] = mapped_column(Text, default="[]")

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)

    links: Mapped[List["MissionCharacterRecord"]] = relationship(
        back_populates="mission", cascade="all, delete-orphan"
    )
    editors: Mapped[List["MissionEditorRecord"]] = relationship(
        back_populates="mission", cascade="all, delete-orphan"
    )

    @property
    def unregistered_character_names(self) -> List[str]:
        return _load_list(self.unregistered_names_json)


class MissionCharacterRecord(Base):
    """Join row linking a character to a mission."""
    __tablename__ = "mission_characters"
    __table_args__ = (UniqueConstraint("mission_id", "character_id"),)

    id: Mapped[int] = mapped_column(primary_key=True)
    mission_id: Mapped[int] = mapped_column(ForeignKey("missions.id"))
    character_id: Mapped[int] = mapped_column(ForeignKey("characters.id"))

    mission: Mapped[MissionRecord] = relationship(back_populates="links")
    character: Mapped[CharacterRecord] = relationship()


class MissionEditorRecord(Base):
    """A profile the creator has allowed to edit a mission."""
    __tablename__ = "mission_editors"
    __table_args__ = (UniqueConstraint("mission_id", "profile_id"),)

    id: Mapped[int] = mapped_column(primary_key=True)
    mission_id: Mapped[int] = mapped_column(ForeignKey("missions.id"))
    profile_id: Mapped[int] = mapped_column(ForeignKey("profiles.id"))
    added_by: Mapped[Optional[int]] = mapped_column(ForeignKey("profiles.id"), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)

    mission: Mapped[MissionRecord] = relationship(back_populates="editors")
    profile: Mapped["ProfileRecord"] = relationship(foreign_keys=[profile_id])


class LfgPostRecord(Base):
    """A "looking for group" post."""
    __tablename__ = "lfg_posts"

    id: Mapped[int] = mapped_column(primary_key=True)
    creator_id: Mapped[int] = mapped_column(ForeignKey("profiles.id"))
    host_id: Mapped[Optional[int]] = mapped_column(ForeignKey("profiles.id"), nullable=True)
    title: Mapped[str] = mapped_column(String(200))
    description: Mapped[str] = mapped_column(Text, default="")
    date: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    status: Mapped[str] = mapped_column(String(20), default="open")  # open, closed
    is_public: Mapped[bool] = mapped_column(default=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)

    join_requests: Mapped[List["LfgJoinRequestRecord"]] = relationship(
        back_populates="post", cascade="all, delete-orphan"
    )


class LfgJoinRequestRecord(Base):
    """A player's request to join an LFG post with one of their characters."""
    __tablename__ = "lfg_join_requests"
    __table_args__ = (UniqueConstraint("post_id", "profile_id"),)

    id: Mapped[int] = mapped_column(primary_key=True)
    post_id: Mapped[int] = mapped_column(ForeignKey("lfg_posts.id"))
    profile_id: Mapped[int] = mapped_column(ForeignKey("profiles.id"))
    character_id: Mapped[Optional[int]] = mapped_column(ForeignKey("characters.id"), nullable=True)
    status: Mapped[str] = mapped_column(String(20), default="pending")  # pending, approved, rejected

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)

    post: Mapped[LfgPostRecord] = relationship(back_populates="join_requests")
    character: Mapped[Optional[CharacterRecord]] = relationship()


class PageRecord(Base):
    """A static content page."""
    __tablename__ = "pages"

    id: Mapped[int] = mapped_column(primary_key=True)
    title: Mapped[str] = mapped_column(String(200))
    slug: Mapped[str] = mapped_column(String(200), unique=True)
    content: Mapped[str] = mapped_column(Text, default="")
    access_level: Mapped[str] = mapped_column(String(20), default="public")  # public, authenticated, admin
    is_published: Mapped[bool] = mapped_column(default=False)
    created_by: Mapped[Optional[int]] = mapped_column(ForeignKey("profiles.id"), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)


class RulesPdfRecord(Base):
    """A rulebook PDF in object storage."""
    __tablename__ = "rules_pdfs"

    id: Mapped[int] = mapped_column(primary_key=True)
    title: Mapped[str] = mapped_column(String(200))
    edition: Mapped[str] = mapped_column(String(50))
    storage_path: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    is_active: Mapped[bool] = mapped_column(default=True)
    created_by: Mapped[Optional[int]] = mapped_column(ForeignKey("profiles.id"), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)


class RulesPdfUnlockRecord(Base):
    """A (possibly expiring) grant of one rules PDF to one user."""
    __tablename__ = "rules_pdf_unlocks"
    __table_args__ = (UniqueConstraint("user_id", "rules_pdf_id"),)

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"))
    profile_id: Mapped[Optional[int]] = mapped_column(ForeignKey("profiles.id"), nullable=True)
    rules_pdf_id: Mapped[int] = mapped_column(ForeignKey("rules_pdfs.id"))
    granted_by: Mapped[Optional[int]] = mapped_column(ForeignKey("profiles.id"), nullable=True)
    expires_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    unlocked_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)


class NavItemRecord(Base):
    """Database record for a navigation menu entry."""
    __tablename__ = "nav_items"

    id: Mapped[int] = mapped_column(primary_key=True)
    label: Mapped[str] = mapped_column(String(100))
    type: Mapped[str] = mapped_column(String(20))  # link, page, dropdown
    url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    page_id: Mapped[Optional[int]] = mapped_column(ForeignKey("pages.id"), nullable=True)
    icon: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    # Not a foreign key: dangling parents are tolerated and dropped at render time
    parent_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    position: Mapped[int] = mapped_column(Integer, default=0)
    requires_auth: Mapped[bool] = mapped_column(default=False)
    requires_admin: Mapped[bool] = mapped_column(default=False)
    is_active: Mapped[bool] = mapped_column(default=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)

    page: Mapped[Optional[PageRecord]] = relationship()

    def to_model(self) -> NavItem:
        """Convert database record to NavItem model."""
        return NavItem(
            id=self.id,
            label=self.label,
            type=self.type,
            position=self.position or 0,
            url=self.url,
            page_id=self.page_id,
            page_slug=self.page.slug if self.page else None,
            parent_id=self.parent_id,
            icon=self.icon,
            requires_auth=bool(self.requires_auth),
            requires_admin=bool(self.requires_admin),
            is_active=bool(self.is_active),
        )
