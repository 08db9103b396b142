"""
Pytest configuration and in-process fakes for the planner tests.
"""

import asyncio
import json
import os
from typing import Any, Dict, List, Optional

import pytest

# Keep tests away from a developer's real key and database
os.environ.pop("OPENAI_API_KEY", None)
os.environ.setdefault("DEFAULT_USER_ID", "local")

from models.session_models import WorkMode
from services.workflow.controller import WorkflowController


def run(coro):
    """Run a coroutine to completion (no async pytest plugin is used)."""
    return asyncio.run(coro)


def fenced(payload: Dict[str, Any], tag: str = "json") -> str:
    """Wrap a payload the way the model is asked to emit actions."""
    return f"```{tag}\n{json.dumps(payload, ensure_ascii=False)}\n```"


class FakeRepository:
    """Dict-backed session repository; set `fail_upserts` to simulate a broken DB."""

    def __init__(self):
        self.sessions = {}
        self.fail_upserts = False
        self.upserts = 0

    async def list(self, user_id, mode=None):
        found = [
            s for s in self.sessions.values()
            if s.user_id == user_id and (mode is None or s.mode is WorkMode(mode))
        ]
        return sorted(found, key=lambda s: s.updated_at, reverse=True)

    async def get(self, session_id):
        return self.sessions.get(session_id)

    async def upsert(self, session):
        if self.fail_upserts:
            raise RuntimeError("disk I/O error")
        self.upserts += 1
        self.sessions[session.id] = session

    async def delete(self, session_id):
        return self.sessions.pop(session_id, None) is not None


class FakeChat:
    """Scripted chat backend; exceptions in the scripts are raised instead of returned."""

    def __init__(self, replies: Optional[List[Any]] = None, images: Optional[List[Any]] = None):
        self.replies = list(replies or [])
        self.images = list(images or [])
        self.turns = []
        self.prompts = []

    async def complete(self, turns, mode=WorkMode.OHISAMA):
        if not turns:
            raise ValueError("At least one message is required.")
        self.turns.append((list(turns), mode))
        reply = self.replies.pop(0) if self.replies else "OK"
        if isinstance(reply, BaseException):
            raise reply
        return reply

    async def generate_image(self, prompt):
        self.prompts.append(prompt)
        result = self.images.pop(0) if self.images else "aW1hZ2U="
        if isinstance(result, BaseException):
            raise result
        return result


class FakeImages:
    """Image sink that hands out sequential `/images/{n}` URLs."""

    def __init__(self):
        self.saved = []
        self.discarded = []

    async def save(self, image_bytes, *, kind, session_id=None, mime_type=None, prompt=None):
        self.saved.append({"kind": kind, "session_id": session_id, "mime_type": mime_type, "prompt": prompt})
        return f"/images/{len(self.saved)}"

    async def save_generated(self, session_id, image_base64, prompt):
        return await self.save(image_base64.encode(), kind="generated", session_id=session_id, prompt=prompt)

    async def discard_session(self, session_id):
        self.discarded.append(session_id)
        return 0


@pytest.fixture
def repo():
    return FakeRepository()


@pytest.fixture
def chat():
    return FakeChat()


@pytest.fixture
def images():
    return FakeImages()


@pytest.fixture
def workflow(repo, chat, images):
    return WorkflowController(repo, chat, images)
