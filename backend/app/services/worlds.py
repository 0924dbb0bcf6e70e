from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.orm import Session

from backend.app.models import World, WorldAdmin


class WorldAccessDenied(Exception):
    pass


class WorldNotFound(LookupError):
    pass


def require_world(session: Session, world_id: str) -> World:
    world = session.get(World, world_id)
    if world is None:
        raise WorldNotFound(world_id)
    return world


def is_world_admin(session: Session, world_id: str, user_id: str) -> bool:
    return session.get(WorldAdmin, (world_id, user_id)) is not None


def list_worlds(session: Session, user_id: str) -> list[World]:
    stmt = (
        select(World)
        .join(WorldAdmin, WorldAdmin.world_id == World.id)
        .where(WorldAdmin.user_id == user_id)
        .order_by(World.last_played_at.desc().nulls_last(), World.created_at.desc())
    )
    return list(session.scalars(stmt))


def create_world(session: Session, user_id: str, name: str) -> World:
    name = (name or "").strip()
    if not name:
        raise ValueError("World name is required")

    world = World(name=name, last_played_at=datetime.now(timezone.utc))
    world.admins.append(WorldAdmin(user_id=user_id))
    session.add(world)
    session.commit()
    return world


def _require_admin(session: Session, world_id: str, user_id: str) -> World:
    world = require_world(session, world_id)
    if not is_world_admin(session, world_id, user_id):
        raise WorldAccessDenied(world_id)
    return world


def touch_last_played(session: Session, world_id: str, user_id: str) -> World:
    world = _require_admin(session, world_id, user_id)
    world.last_played_at = datetime.now(timezone.utc)
    session.commit()
    return world


def delete_world(session: Session, world_id: str, user_id: str) -> None:
    world = _require_admin(session, world_id, user_id)
    session.delete(world)
    session.commit()
