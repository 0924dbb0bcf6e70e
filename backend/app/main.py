from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import datetime
import logging
from pathlib import Path
import time
from typing import Any

from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import FileResponse, JSONResponse, StreamingResponse
from fastapi.staticfiles import StaticFiles
from pydantic import BaseModel, ConfigDict, Field, StrictBool, field_validator
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool
from starlette.exceptions import HTTPException as StarletteHTTPException

from backend.app.config import settings
from backend.app.db import SessionLocal, ensure_default_user, get_session, init_db
from backend.app.models import Character, SystemDialogueLog, World
from backend.app.services.characters import find_player_character, get_or_create_player_character
from backend.app.services.commands import UnknownCommandError, is_special_command
from backend.app.services.dialogue import append_entries, append_entry, clear, history
from backend.app.services.game import (
    AI_UNAVAILABLE,
    GENERATION_FAILED,
    AIUnavailable,
    Turn,
    begin_turn,
    finish_turn,
    narrate,
    sse,
    stream_turn,
)
from backend.app.services.llm import GenerationError, LLMClient, create_llm_client
from backend.app.services.worlds import (
    WorldAccessDenied,
    WorldNotFound,
    create_world,
    delete_world,
    list_worlds,
    require_world,
    touch_last_played,
)


logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

APP_DIR = Path(__file__).resolve().parent
STATIC_DIR = APP_DIR / "static"
STARTED_AT = time.monotonic()


def _build_llm_client() -> LLMClient | None:
    try:
        client = create_llm_client(
            settings.llm_provider,
            api_key=settings.openai_api_key,
            model=settings.openai_model,
            temperature=settings.openai_temperature,
            max_tokens=settings.openai_max_tokens,
        )
    except GenerationError as e:
        logger.warning("Could not initialize LLM client: %s. Game will run without AI responses.", e)
        return None
    logger.info("LLM client initialized (%s, %s)", settings.llm_provider, settings.openai_model)
    return client


llm_client = _build_llm_client()


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    with SessionLocal() as session:
        ensure_default_user(session, user_id=settings.default_user_id, username=settings.default_username)
    yield


app = FastAPI(title="LLM MUD", version="0.1.0", lifespan=lifespan)
app.mount("/static", StaticFiles(directory=str(STATIC_DIR)), name="static")


def get_llm() -> LLMClient | None:
    return llm_client


def get_current_user_id() -> str:
    # Single stand-in principal until sessions/tokens exist.
    return settings.default_user_id


# ---------------------------------------------------------------------------
# Error handling


@app.exception_handler(StarletteHTTPException)
async def _http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})


@app.exception_handler(RequestValidationError)
async def _validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    if not errors:
        return JSONResponse(status_code=400, content={"error": "Invalid request"})
    first = errors[0]
    loc = ".".join(str(part) for part in first.get("loc", ()) if part not in ("body", "query", "path"))
    message = first.get("msg", "Invalid value")
    return JSONResponse(status_code=400, content={"error": f"{loc}: {message}" if loc else message})


@app.exception_handler(WorldNotFound)
async def _world_not_found(request: Request, exc: WorldNotFound) -> JSONResponse:
    return JSONResponse(status_code=404, content={"error": "World not found"})


@app.exception_handler(WorldAccessDenied)
async def _access_denied(request: Request, exc: WorldAccessDenied) -> JSONResponse:
    return JSONResponse(status_code=403, content={"error": "Access denied"})


@app.exception_handler(UnknownCommandError)
async def _unknown_command(request: Request, exc: UnknownCommandError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"error": str(exc)})


@app.exception_handler(AIUnavailable)
async def _ai_unavailable(request: Request, exc: AIUnavailable) -> JSONResponse:
    return JSONResponse(status_code=503, content={"response": AI_UNAVAILABLE})


@app.exception_handler(SQLAlchemyError)
async def _database_error(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.error("Database error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(status_code=500, content={"error": "Database error"})


# ---------------------------------------------------------------------------
# Request models


def _require_text(value: str, message: str) -> str:
    if not value.strip():
        raise ValueError(message)
    return value


class CreateWorldRequest(BaseModel):
    name: str | None = None


class CommandRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    command: str
    world_id: str | None = Field(None, alias="worldId")

    @field_validator("command")
    @classmethod
    def _command_not_blank(cls, v: str) -> str:
        return _require_text(v, "Command is required")


class SpecialCommandRequest(BaseModel):
    command: str

    @field_validator("command")
    @classmethod
    def _command_not_blank(cls, v: str) -> str:
        return _require_text(v, "Command is required")


class DialogueEntryRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    is_input: StrictBool = Field(..., alias="isInput")
    text: str

    @field_validator("text")
    @classmethod
    def _text_not_blank(cls, v: str) -> str:
        return _require_text(v, "text is required")


class DialogueBatchRequest(BaseModel):
    entries: list[DialogueEntryRequest] = Field(..., min_length=1)


# ---------------------------------------------------------------------------
# Serialization


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _world_to_public_dict(world: World) -> dict[str, Any]:
    return {
        "id": world.id,
        "name": world.name,
        "createdAt": _iso(world.created_at),
        "lastPlayedAt": _iso(world.last_played_at),
    }


def _character_to_public_dict(character: Character) -> dict[str, Any]:
    return {
        "id": character.id,
        "worldId": character.world_id,
        "userId": character.user_id,
        "name": character.name,
        "nodeId": character.node_id,
        "x": character.x,
        "y": character.y,
        "z": character.z,
        "attributes": character.attributes,
    }


def _entry_to_public_dict(entry: SystemDialogueLog, *, full: bool = False) -> dict[str, Any]:
    out: dict[str, Any] = {
        "id": entry.id,
        "isInput": entry.is_input,
        "text": entry.text,
        "createdAt": _iso(entry.created_at),
    }
    if full:
        out["worldId"] = entry.world_id
        out["playerCharacterId"] = entry.player_character_id
    return out


# ---------------------------------------------------------------------------
# Health and status


@app.get("/")
def index() -> FileResponse:
    return FileResponse(str(STATIC_DIR / "index.html"))


@app.get("/api/hello")
def hello() -> dict[str, str]:
    return {"message": "Hello from the MUD game server!"}


@app.get("/api/game/status")
def game_status(
    session: Session = Depends(get_session),
    llm: LLMClient | None = Depends(get_llm),
) -> dict[str, Any]:
    players = session.scalar(
        select(func.count()).select_from(Character).where(Character.user_id.is_not(None))
    )
    return {
        "status": "online",
        "players": players or 0,
        "uptime": round(time.monotonic() - STARTED_AT, 3),
        "aiEnabled": llm is not None,
    }


# ---------------------------------------------------------------------------
# Commands


async def _begin_turn(session: Session, req: CommandRequest, user_id: str, llm: LLMClient | None) -> Turn:
    try:
        return await run_in_threadpool(
            begin_turn,
            session,
            command=req.command,
            user_id=user_id,
            world_id=req.world_id,
            ai_enabled=llm is not None,
        )
    except UnknownCommandError:
        raise
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@app.post("/api/game/command")
async def game_command(
    req: CommandRequest,
    session: Session = Depends(get_session),
    llm: LLMClient | None = Depends(get_llm),
    user_id: str = Depends(get_current_user_id),
) -> dict[str, Any]:
    turn = await _begin_turn(session, req, user_id, llm)
    try:
        text = await narrate(llm, turn)
    except GenerationError:
        logger.exception("Error generating LLM response")
        return JSONResponse(status_code=500, content={"response": f"Error: {GENERATION_FAILED}"})

    await run_in_threadpool(finish_turn, session, turn, text)
    if turn.special is not None:
        return turn.special.to_dict()
    return {"response": text}


@app.post("/api/game/command-stream")
async def game_command_stream(
    req: CommandRequest,
    session: Session = Depends(get_session),
    llm: LLMClient | None = Depends(get_llm),
    user_id: str = Depends(get_current_user_id),
) -> StreamingResponse:
    turn = await _begin_turn(session, req, user_id, llm)

    async def persist(text: str) -> None:
        await run_in_threadpool(finish_turn, session, turn, text)

    async def event_gen():
        async for event in stream_turn(llm, turn, persist=persist):
            yield sse(event)

    return StreamingResponse(
        event_gen(),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )


@app.post("/api/commands/{world_id}/special")
def special_command(
    world_id: str,
    req: SpecialCommandRequest,
    session: Session = Depends(get_session),
    user_id: str = Depends(get_current_user_id),
) -> dict[str, Any]:
    require_world(session, world_id)
    if not is_special_command(req.command):
        raise UnknownCommandError(req.command)

    turn = begin_turn(session, command=req.command, user_id=user_id, world_id=world_id)
    finish_turn(session, turn, turn.special.response)
    return turn.special.to_dict()


# ---------------------------------------------------------------------------
# Worlds


@app.get("/api/worlds")
def get_worlds(
    session: Session = Depends(get_session),
    user_id: str = Depends(get_current_user_id),
) -> dict[str, Any]:
    return {"worlds": [_world_to_public_dict(w) for w in list_worlds(session, user_id)]}


@app.post("/api/worlds")
def post_world(
    req: CreateWorldRequest,
    session: Session = Depends(get_session),
    user_id: str = Depends(get_current_user_id),
) -> dict[str, Any]:
    try:
        world = create_world(session, user_id, req.name or "")
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    logger.info("Created world %s (%s)", world.name, world.id)
    return {"world": _world_to_public_dict(world)}


@app.put("/api/worlds/{world_id}/last-played")
def put_last_played(
    world_id: str,
    session: Session = Depends(get_session),
    user_id: str = Depends(get_current_user_id),
) -> dict[str, Any]:
    world = touch_last_played(session, world_id, user_id)
    return {"world": _world_to_public_dict(world)}


@app.delete("/api/worlds/{world_id}")
def remove_world(
    world_id: str,
    session: Session = Depends(get_session),
    user_id: str = Depends(get_current_user_id),
) -> dict[str, Any]:
    delete_world(session, world_id, user_id)
    logger.info("Deleted world %s", world_id)
    return {"deleted": True}


# ---------------------------------------------------------------------------
# Characters


@app.get("/api/characters/{world_id}/player")
def get_player_character(
    world_id: str,
    session: Session = Depends(get_session),
    user_id: str = Depends(get_current_user_id),
) -> dict[str, Any]:
    require_world(session, world_id)
    character, created = get_or_create_player_character(session, world_id, user_id)
    out: dict[str, Any] = {"character": _character_to_public_dict(character)}
    if created:
        out["created"] = True
    return out


# ---------------------------------------------------------------------------
# Dialogue log


@app.get("/api/dialogue/{world_id}/history")
def get_dialogue_history(
    world_id: str,
    limit: int = Query(settings.history_limit, ge=1, le=1000),
    session: Session = Depends(get_session),
    user_id: str = Depends(get_current_user_id),
) -> dict[str, Any]:
    require_world(session, world_id)
    character, _ = get_or_create_player_character(session, world_id, user_id)
    return {"history": [_entry_to_public_dict(e) for e in history(session, character, limit)]}


@app.post("/api/dialogue/{world_id}/log")
def post_dialogue_entry(
    world_id: str,
    req: DialogueEntryRequest,
    session: Session = Depends(get_session),
    user_id: str = Depends(get_current_user_id),
) -> dict[str, Any]:
    require_world(session, world_id)
    character, _ = get_or_create_player_character(session, world_id, user_id)
    entry = append_entry(session, character, is_input=req.is_input, text=req.text)
    return {"entry": _entry_to_public_dict(entry, full=True)}


@app.post("/api/dialogue/{world_id}/log-batch")
def post_dialogue_batch(
    world_id: str,
    req: DialogueBatchRequest,
    session: Session = Depends(get_session),
    user_id: str = Depends(get_current_user_id),
) -> dict[str, Any]:
    require_world(session, world_id)
    character, _ = get_or_create_player_character(session, world_id, user_id)
    entries = append_entries(session, character, [(e.is_input, e.text) for e in req.entries])
    return {"entries": [_entry_to_public_dict(e, full=True) for e in entries]}


@app.delete("/api/dialogue/{world_id}/clear")
def clear_dialogue(
    world_id: str,
    session: Session = Depends(get_session),
    user_id: str = Depends(get_current_user_id),
) -> dict[str, Any]:
    require_world(session, world_id)
    character = find_player_character(session, world_id, user_id)
    if character is None:
        return {"deleted": 0}
    return {"deleted": clear(session, character)}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("backend.app.main:app", host=settings.host, port=settings.port)
