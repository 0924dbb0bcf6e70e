"""Shared fixtures for the MUD server test suite.

Every test gets a fresh in-memory SQLite database with the default user
seeded, a scripted fake LLM, and a FastAPI TestClient wired to both.
"""

import os
import sys

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Add project root to path so `import backend.app` works.
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from backend.app import main
from backend.app.config import settings
from backend.app.db import ensure_default_user, init_db, make_engine
from backend.app.models import Node, World, WorldAdmin
from backend.app.services.llm import GenerationError


USER_ID = settings.default_user_id


class FakeLLM:
    """Scripted stand-in for the OpenAI adapter.

    ``fail_after`` makes one-shot calls fail, and streams fail after that many chunks.
    """

    def __init__(self, text="The fog parts.\nlocation: Shadow Forest", chunks=None, fail_after=None):
        self.text = text
        self.chunks = chunks if chunks is not None else ["The fog ", "parts.\n", "location: Shadow Forest"]
        self.fail_after = fail_after
        self.prompts = []

    async def generate_text(self, prompt):
        self.prompts.append(prompt)
        if self.fail_after is not None:
            raise GenerationError("OpenAI API error: boom")
        return self.text

    async def generate_text_stream(self, prompt):
        self.prompts.append(prompt)
        for i, chunk in enumerate(self.chunks):
            if self.fail_after is not None and i >= self.fail_after:
                raise GenerationError("OpenAI API error: boom")
            yield chunk


# ============================================================
# DATABASE FIXTURES
# ============================================================

@pytest.fixture
def engine():
    eng = make_engine("sqlite://", poolclass=StaticPool)
    init_db(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session(engine):
    factory = sessionmaker(bind=engine, expire_on_commit=False)
    with factory() as s:
        ensure_default_user(s, user_id=USER_ID, username=settings.default_username)
        yield s


@pytest.fixture
def world(session):
    """A world administered by the default user, with no nodes yet."""
    w = World(name="Test World")
    w.admins.append(WorldAdmin(user_id=USER_ID))
    session.add(w)
    session.commit()
    return w


@pytest.fixture
def make_node(session):
    def _factory(world, name="Room", width=10, height=10):
        node = Node(world_id=world.id, name=name, width=width, height=height, terrain={"tiles": []})
        session.add(node)
        session.commit()
        return node
    return _factory


# ============================================================
# API FIXTURES
# ============================================================

@pytest.fixture
def make_llm():
    return FakeLLM


@pytest.fixture
def fake_llm():
    return FakeLLM()


@pytest.fixture
def api_client(session, fake_llm):
    def _session_override():
        yield session

    main.app.dependency_overrides[main.get_session] = _session_override
    main.app.dependency_overrides[main.get_llm] = lambda: fake_llm
    client = TestClient(main.app)
    yield client
    main.app.dependency_overrides.clear()


@pytest.fixture
def offline_client(api_client):
    """API client with AI disabled (no provider credential)."""
    main.app.dependency_overrides[main.get_llm] = lambda: None
    return api_client
