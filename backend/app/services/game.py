"""Command dispatch: special commands resolve locally, everything else is narrated by the LLM."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, AsyncIterator, Awaitable, Callable

from sqlalchemy.orm import Session

from backend.app.models import Character
from backend.app.services.characters import get_or_create_player_character
from backend.app.services.commands import CommandResult, is_special_command, run_special_command
from backend.app.services.dialogue import append_entry_safely
from backend.app.services.llm import GenerationError, LLMClient
from backend.app.services.worlds import require_world


logger = logging.getLogger(__name__)

AI_UNAVAILABLE = "Error: AI system is not available. Please check that OPENAI_API_KEY is set in your .env file."
GENERATION_FAILED = "Failed to generate response. Please try again."


class AIUnavailable(Exception):
    pass


@dataclass
class Turn:
    """One player command on its way through the pipeline."""

    command: str
    character: Character | None = None
    special: CommandResult | None = None

    @property
    def is_special(self) -> bool:
        return self.special is not None


def sse(event: dict[str, Any]) -> str:
    return f"data: {json.dumps(event)}\n\n"


def begin_turn(
    session: Session,
    *,
    command: str,
    user_id: str,
    world_id: str | None = None,
    ai_enabled: bool = True,
) -> Turn:
    """Classify the command, resolve the player character and log the input.

    Special commands are answered here. Narrative commands are left for the LLM.
    """
    special = is_special_command(command)
    if not special and not ai_enabled:
        raise AIUnavailable()
    if world_id is None:
        if special:
            raise ValueError("worldId is required for special commands")
        return Turn(command=command)

    require_world(session, world_id)
    character, _ = get_or_create_player_character(session, world_id, user_id)
    turn = Turn(command=command, character=character)
    if special:
        turn.special = run_special_command(session, character, command)
    append_entry_safely(session, character, is_input=True, text=command)
    return turn


def finish_turn(session: Session, turn: Turn, response: str) -> None:
    if turn.character is not None and response:
        append_entry_safely(session, turn.character, is_input=False, text=response)


async def narrate(llm: LLMClient, turn: Turn) -> str:
    if turn.special is not None:
        return turn.special.response
    return await llm.generate_text(turn.command)


async def stream_turn(
    llm: LLMClient | None,
    turn: Turn,
    *,
    persist: Callable[[str], Awaitable[None]],
) -> AsyncIterator[dict[str, Any]]:
    """Yield ``{chunk}`` events then ``{done: True}``, or ``{error}`` to end early.

    The full response is persisted before ``done`` so a client that reloads
    history right after the stream sees it.
    """
    if turn.special is not None:
        yield {"chunk": turn.special.response}
        await persist(turn.special.response)
        yield {"done": True}
        return

    if llm is None:
        yield {"error": AI_UNAVAILABLE}
        return

    parts: list[str] = []
    try:
        async for chunk in llm.generate_text_stream(turn.command):
            parts.append(chunk)
            yield {"chunk": chunk}
    except GenerationError:
        logger.exception("Narrative stream failed for command %r", turn.command)
        yield {"error": GENERATION_FAILED}
        return

    text = "".join(parts)
    if not text:
        logger.error("Narrative stream for command %r produced no text", turn.command)
        yield {"error": GENERATION_FAILED}
        return

    await persist(text)
    yield {"done": True}
