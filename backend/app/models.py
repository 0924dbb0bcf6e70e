"""SQLAlchemy ORM models for worlds, nodes, characters, items and dialogue logs."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


def _uuid() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    metadata = MetaData(naming_convention=convention)


class User(Base):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    username: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    password_hash: Mapped[str] = mapped_column(String(128), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)

    admin_links: Mapped[list[WorldAdmin]] = relationship(
        back_populates="user", cascade="all, delete-orphan"
    )

    def __str__(self) -> str:
        return f"{self.username} ({self.id[:8]})"


class World(Base):
    """An isolated universe; owns its nodes, characters and logs."""

    __tablename__ = "worlds"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    last_played_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    admins: Mapped[list[WorldAdmin]] = relationship(
        back_populates="world", cascade="all, delete-orphan"
    )
    nodes: Mapped[list[Node]] = relationship(
        back_populates="world", cascade="all, delete-orphan"
    )
    connections: Mapped[list[NodeConnection]] = relationship(
        back_populates="world", cascade="all, delete-orphan"
    )
    characters: Mapped[list[Character]] = relationship(
        back_populates="world", cascade="all, delete-orphan"
    )
    dialogue: Mapped[list[SystemDialogueLog]] = relationship(
        back_populates="world", cascade="all, delete-orphan"
    )
    conversations: Mapped[list[CharacterConversationLog]] = relationship(
        back_populates="world", cascade="all, delete-orphan"
    )

    def __str__(self) -> str:
        return f"{self.name} ({self.id[:8]})"


class WorldAdmin(Base):
    """Grants a user edit/ownership rights over a world."""

    __tablename__ = "world_admins"

    world_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("worlds.id", ondelete="CASCADE"), primary_key=True
    )
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )

    world: Mapped[World] = relationship(back_populates="admins")
    user: Mapped[User] = relationship(back_populates="admin_links")


class Node(Base):
    """A room or area with its own 2D grid. Terrain stays JSON because its shape varies."""

    __tablename__ = "nodes"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    world_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("worlds.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    width: Mapped[int] = mapped_column(Integer, nullable=False)
    height: Mapped[int] = mapped_column(Integer, nullable=False)
    terrain: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)

    world: Mapped[World] = relationship(back_populates="nodes")
    characters: Mapped[list[Character]] = relationship(
        back_populates="node", cascade="all, delete-orphan"
    )
    connections_from: Mapped[list[NodeConnection]] = relationship(
        back_populates="from_node",
        foreign_keys="NodeConnection.node_a",
        cascade="all, delete-orphan",
    )
    connections_to: Mapped[list[NodeConnection]] = relationship(
        back_populates="to_node",
        foreign_keys="NodeConnection.node_b",
        cascade="all, delete-orphan",
    )

    def __str__(self) -> str:
        return f"{self.name} {self.width}x{self.height}"


class NodeConnection(Base):
    """Directed edge node_a -> node_b. (dx, dy, dz): +x east, +y north, +z up."""

    __tablename__ = "node_connections"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    world_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("worlds.id", ondelete="CASCADE"), nullable=False, index=True
    )
    node_a: Mapped[str] = mapped_column(
        String(36), ForeignKey("nodes.id", ondelete="CASCADE"), nullable=False
    )
    node_b: Mapped[str] = mapped_column(
        String(36), ForeignKey("nodes.id", ondelete="CASCADE"), nullable=False
    )
    dx: Mapped[int] = mapped_column(Integer, nullable=False)
    dy: Mapped[int] = mapped_column(Integer, nullable=False)
    dz: Mapped[int] = mapped_column(Integer, nullable=False)

    world: Mapped[World] = relationship(back_populates="connections")
    from_node: Mapped[Node] = relationship(back_populates="connections_from", foreign_keys=[node_a])
    to_node: Mapped[Node] = relationship(back_populates="connections_to", foreign_keys=[node_b])

    @property
    def vector(self) -> tuple[int, int, int]:
        return (self.dx, self.dy, self.dz)


class Character(Base):
    """Player character when user_id is set, NPC when it is NULL."""

    __tablename__ = "characters"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    world_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("worlds.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[str | None] = mapped_column(String(36), ForeignKey("users.id"), nullable=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    node_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("nodes.id", ondelete="CASCADE"), nullable=False
    )
    x: Mapped[int] = mapped_column(Integer, nullable=False)
    y: Mapped[int] = mapped_column(Integer, nullable=False)
    z: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    attributes: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)

    world: Mapped[World] = relationship(back_populates="characters")
    node: Mapped[Node] = relationship(back_populates="characters")
    inventory: Mapped[list[CharacterInventory]] = relationship(
        back_populates="character", cascade="all, delete-orphan"
    )
    dialogue: Mapped[list[SystemDialogueLog]] = relationship(
        back_populates="player_character", cascade="all, delete-orphan"
    )
    said: Mapped[list[CharacterConversationLog]] = relationship(
        back_populates="speaker",
        foreign_keys="CharacterConversationLog.speaking_character_id",
        cascade="all, delete-orphan",
    )
    heard: Mapped[list[CharacterConversationLog]] = relationship(
        back_populates="target",
        foreign_keys="CharacterConversationLog.target_character_id",
        cascade="all, delete-orphan",
    )

    # NULLs never collide, so NPCs are unaffected.
    __table_args__ = (UniqueConstraint("world_id", "user_id", name="uq_characters_world_user"),)

    @property
    def is_player(self) -> bool:
        return self.user_id is not None

    def __str__(self) -> str:
        return f"{self.name} @ ({self.x}, {self.y}, {self.z})"


class Item(Base):
    """Blueprint for what an item is. Not owned by anyone."""

    __tablename__ = "items"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    type: Mapped[str] = mapped_column(String(32), nullable=False)  # weapon, armor, consumable, misc
    attributes: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)


class CharacterInventory(Base):
    __tablename__ = "character_inventory"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    character_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("characters.id", ondelete="CASCADE"), nullable=False, index=True
    )
    item_id: Mapped[str] = mapped_column(String(36), ForeignKey("items.id"), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    is_equipped: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    character: Mapped[Character] = relationship(back_populates="inventory")
    item: Mapped[Item] = relationship()


class SystemDialogueLog(Base):
    """One player input or system response. Integer ids keep insertion order stable."""

    __tablename__ = "system_dialogue_log"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    world_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("worlds.id", ondelete="CASCADE"), nullable=False
    )
    player_character_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("characters.id", ondelete="CASCADE"), nullable=False
    )
    is_input: Mapped[bool] = mapped_column(Boolean, nullable=False)
    text: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)

    world: Mapped[World] = relationship(back_populates="dialogue")
    player_character: Mapped[Character] = relationship(back_populates="dialogue")

    __table_args__ = (
        Index("ix_system_dialogue_player_time", "player_character_id", "created_at"),
    )


class CharacterConversationLog(Base):
    """Character-to-character utterance (player-NPC or NPC-NPC)."""

    __tablename__ = "character_conversation_log"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    world_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("worlds.id", ondelete="CASCADE"), nullable=False
    )
    speaking_character_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("characters.id", ondelete="CASCADE"), nullable=False
    )
    target_character_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("characters.id", ondelete="CASCADE"), nullable=False
    )
    text: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)

    world: Mapped[World] = relationship(back_populates="conversations")
    speaker: Mapped[Character] = relationship(
        back_populates="said", foreign_keys=[speaking_character_id]
    )
    target: Mapped[Character] = relationship(
        back_populates="heard", foreign_keys=[target_character_id]
    )

    __table_args__ = (
        Index(
            "ix_character_convo_pair_time",
            "speaking_character_id",
            "target_character_id",
            "created_at",
        ),
    )
