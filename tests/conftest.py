"""
Shared pytest fixtures for the Chroniques de Valthera test suite.

unittest-based tests keep their own inline mocks; pytest-style tests
should use these fixtures.
"""

from datetime import datetime, timezone

import pytest
from unittest.mock import AsyncMock, MagicMock

from models.campaign import Campaign, Chapter
from models.session import PlannedSession, SessionPlayer, SessionStatus


# ---------------------------------------------------------------------------
# Gemini Mock Helpers (reusable classes)
# ---------------------------------------------------------------------------

class MockGeminiResponse:
    """Simulates a Gemini response with .text property."""

    def __init__(self, text):
        self.text = text


class MockGeminiClient:
    """Mock Gemini client that returns canned text responses.

    Usage:
        client = MockGeminiClient(["response1", "response2"])
        resp = await client.aio.models.generate_content(model=..., contents=...)
        assert resp.text == "response1"
    """

    def __init__(self, responses=None):
        self._responses = responses or []
        self._call_count = 0
        self.calls = []

    @property
    def aio(self):
        return self

    @property
    def models(self):
        return self

    async def generate_content(self, **kwargs):
        self.calls.append(kwargs)
        if self._call_count < len(self._responses):
            resp = self._responses[self._call_count]
        else:
            resp = '{"error": "no more canned responses"}'
        self._call_count += 1
        if isinstance(resp, Exception):
            raise resp
        if resp is None or isinstance(resp, str):
            return MockGeminiResponse(resp)
        # Allow passing pre-built response objects
        return resp


# ---------------------------------------------------------------------------
# Async cursor helper for motor collection mocks
# ---------------------------------------------------------------------------

class MockCursor:
    """Async-iterable stand-in for a motor cursor; sort() is chainable."""

    def __init__(self, docs):
        self._docs = [dict(d) for d in docs]

    def sort(self, *args, **kwargs):
        return self

    def __aiter__(self):
        self._iter = iter(self._docs)
        return self

    async def __anext__(self):
        try:
            return next(self._iter)
        except StopIteration:
            raise StopAsyncIteration


def mock_collection(docs=None):
    coll = MagicMock()
    coll.find = MagicMock(side_effect=lambda *a, **kw: MockCursor(docs or []))
    coll.find_one = AsyncMock(return_value=None)
    coll.update_one = AsyncMock()
    coll.insert_many = AsyncMock()
    coll.bulk_write = AsyncMock()
    coll.delete_many = AsyncMock()
    coll.delete_one = AsyncMock(return_value=MagicMock(deleted_count=1))
    return coll


# ---------------------------------------------------------------------------
# Pytest fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def now():
    return datetime(2026, 3, 14, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def sample_campaign():
    return Campaign(
        id="camp-1",
        title="La Couronne Brisée",
        pitch="Un royaume sans roi.",
        chapters=[
            Chapter(id="ch-2", title="Le Col Gelé", order=2, session_date="2026-02-20"),
            Chapter(id="ch-1", title="Le Départ", order=1, session_date="2026-02-06"),
        ],
    )


@pytest.fixture
def sample_session(now):
    return PlannedSession(
        id="sess-1",
        campaign_id="camp-1",
        title="Session 3",
        scheduled_date=now.replace(day=21),
        players=[SessionPlayer(id="p1", name="Alice")],
        max_players=2,
    )


@pytest.fixture
def mock_state(sample_campaign, sample_session):
    """MagicMock StateManager with async method stubs."""
    state = MagicMock()
    state.get_campaign = AsyncMock(return_value=sample_campaign)
    state.get_session = AsyncMock(return_value=sample_session)
    state.create_session = AsyncMock(side_effect=lambda data: PlannedSession.model_validate(data))
    state.save_session = AsyncMock(side_effect=lambda data: PlannedSession.model_validate(data))
    state.start_session = AsyncMock(return_value=sample_session)
    state.end_session = AsyncMock(return_value=sample_session)
    state.update_session_status = AsyncMock(return_value=sample_session)
    state.add_player_to_session = AsyncMock(return_value=sample_session)
    state.remove_player_from_session = AsyncMock(return_value=sample_session)
    state.update_player_confirmation = AsyncMock(return_value=sample_session)
    state.link_session_to_chapter = AsyncMock(return_value=sample_session)
    state.mark_notification_sent = AsyncMock(return_value=sample_session)
    state.mark_reminder_sent = AsyncMock(return_value=sample_session)
    state.save_campaign = AsyncMock(return_value=sample_campaign)
    state.save_lore_article = AsyncMock(return_value=None)
    state.save_world_event = AsyncMock(return_value=None)
    for name in ("delete_session", "delete_campaign", "delete_chapter",
                 "delete_lore_article", "delete_world_event"):
        setattr(state, name, AsyncMock(return_value=True))
    return state


@pytest.fixture
def gemini_client():
    """Factory: gemini_client([...canned responses]) -> MockGeminiClient."""
    return MockGeminiClient


@pytest.fixture
def make_collection():
    """Factory for motor collection mocks preloaded with documents."""
    return mock_collection


@pytest.fixture
def mock_gemini_limiter():
    """AsyncMock for the rate limiter; patches acquire() as a no-op."""
    limiter = MagicMock()
    limiter.acquire = AsyncMock()
    return limiter
