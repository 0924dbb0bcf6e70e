from __future__ import annotations

import logging
from typing import Iterable

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backend.app.models import Character, SystemDialogueLog


logger = logging.getLogger(__name__)


def append_entry(session: Session, character: Character, *, is_input: bool, text: str) -> SystemDialogueLog:
    entry = SystemDialogueLog(
        world_id=character.world_id,
        player_character_id=character.id,
        is_input=is_input,
        text=text,
    )
    session.add(entry)
    session.commit()
    return entry


def append_entries(
    session: Session, character: Character, entries: Iterable[tuple[bool, str]]
) -> list[SystemDialogueLog]:
    rows = [
        SystemDialogueLog(
            world_id=character.world_id,
            player_character_id=character.id,
            is_input=is_input,
            text=text,
        )
        for is_input, text in entries
    ]
    session.add_all(rows)
    session.commit()
    return rows


def append_entry_safely(session: Session, character: Character, *, is_input: bool, text: str) -> SystemDialogueLog | None:
    """Append without ever failing the caller; the game response matters more than the log."""
    try:
        return append_entry(session, character, is_input=is_input, text=text)
    except SQLAlchemyError:
        session.rollback()
        logger.exception(
            "Failed to log %s for character %s", "player input" if is_input else "system response", character.id
        )
        return None


def history(session: Session, character: Character, limit: int = 100) -> list[SystemDialogueLog]:
    stmt = (
        select(SystemDialogueLog)
        .where(
            SystemDialogueLog.world_id == character.world_id,
            SystemDialogueLog.player_character_id == character.id,
        )
        .order_by(SystemDialogueLog.created_at, SystemDialogueLog.id)
        .limit(limit)
    )
    return list(session.scalars(stmt))


def clear(session: Session, character: Character) -> int:
    stmt = delete(SystemDialogueLog).where(
        SystemDialogueLog.world_id == character.world_id,
        SystemDialogueLog.player_character_id == character.id,
    )
    result = session.execute(stmt)
    session.commit()
    return result.rowcount or 0
