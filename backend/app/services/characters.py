from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from backend.app.models import Character
from backend.app.payloads import CharacterAttributes
from backend.app.services.nodes import create_starting_node, first_node


logger = logging.getLogger(__name__)

DEFAULT_NAME = "Player"
SPAWN_POSITION = (5, 5, 0)


def find_player_character(session: Session, world_id: str, user_id: str) -> Character | None:
    stmt = select(Character).where(Character.world_id == world_id, Character.user_id == user_id)
    return session.scalar(stmt)


def get_or_create_player_character(session: Session, world_id: str, user_id: str) -> tuple[Character, bool]:
    """Return the user's character in a world, creating it (and a starting node) on first contact.

    A concurrent creator loses on the (world, user) unique constraint and re-reads the winner's row.
    """
    character = find_player_character(session, world_id, user_id)
    if character is not None:
        return character, False

    node = first_node(session, world_id) or create_starting_node(session, world_id)
    x, y, z = SPAWN_POSITION
    character = Character(
        world_id=world_id,
        user_id=user_id,
        name=DEFAULT_NAME,
        node=node,
        x=x,
        y=y,
        z=z,
        attributes=CharacterAttributes().to_payload(),
    )
    session.add(character)
    try:
        session.commit()
    except IntegrityError:
        session.rollback()
        existing = find_player_character(session, world_id, user_id)
        if existing is None:
            raise
        logger.info("Player character for world %s was created concurrently; reusing %s", world_id, existing.id)
        return existing, False

    logger.info("Created player character %s in world %s", character.id, world_id)
    return character, True
