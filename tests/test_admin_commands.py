"""
Tests for tools/admin_commands.py — Permission checks, request validation,
status transitions and dispatch to the StateManager.

The StateManager is the MagicMock from conftest; no database involved.
"""

import asyncio
from datetime import datetime
from unittest.mock import AsyncMock, MagicMock
from zoneinfo import ZoneInfo

import pytest
from pymongo.errors import PyMongoError

from models.chapter_draft import ChapterDraft
from models.session import SessionStatus
from tools.admin_commands import (
    FORBIDDEN,
    INVALID,
    INVALID_TRANSITION,
    NOT_FOUND,
    STORE_ERROR,
    AdminCommands,
    ChangeStatusRequest,
    CreateSessionRequest,
    DeleteRequest,
    EnhanceSummaryRequest,
    IdeasRequest,
    LinkChapterRequest,
    NotificationRequest,
    PlayerRequest,
    UpdateSessionRequest,
    build_request,
    parse_admin_ids,
    parse_channel_id,
)

ADMIN = 42
STRANGER = 7
PARIS = ZoneInfo("Europe/Paris")


@pytest.fixture
def admin(mock_state):
    return AdminCommands(mock_state, [ADMIN], tz=PARIS)


class TestParsing:

    def test_parse_admin_ids(self):
        assert parse_admin_ids("123, 456,abc,,") == {123, 456}
        assert parse_admin_ids(None) == set()

    def test_parse_channel_id(self):
        assert parse_channel_id(" 1234 ") == 1234
        assert parse_channel_id("general") is None
        assert parse_channel_id(None) is None

    def test_build_request_valid(self):
        req = build_request(CreateSessionRequest, campaign_id="c", title="  Session 4 ",
                            scheduled_date=datetime(2026, 3, 21, 20, 0))
        assert req.title == "Session 4"

    def test_build_request_invalid(self):
        assert build_request(CreateSessionRequest, campaign_id="c", title="",
                             scheduled_date=datetime(2026, 3, 21)) is None
        assert build_request(PlayerRequest, session_id="s", action="kick", player_id="p") is None


class TestPermissions:

    def test_non_admin_is_refused_everywhere(self, admin, mock_state):
        async def run():
            results = [
                await admin.create_session(STRANGER, CreateSessionRequest(
                    campaign_id="camp-1", title="S", scheduled_date=datetime(2026, 3, 21))),
                await admin.change_status(STRANGER, ChangeStatusRequest(
                    session_id="sess-1", status=SessionStatus.LIVE)),
                await admin.delete(STRANGER, DeleteRequest(kind="campaign", target_id="camp-1")),
                await admin.save_campaign(STRANGER, {"title": "X"}),
                await admin.generate_ideas(STRANGER, IdeasRequest(pitch="p")),
            ]
            return results

        results = asyncio.run(run())
        assert all(r.error == FORBIDDEN and not r.ok for r in results)
        mock_state.delete_campaign.assert_not_called()
        mock_state.save_campaign.assert_not_called()


class TestSessions:

    def test_create_localises_naive_date(self, admin, mock_state):
        req = CreateSessionRequest(campaign_id="camp-1", title="Session 4",
                                   scheduled_date=datetime(2026, 3, 21, 20, 0))
        result = asyncio.run(admin.create_session(ADMIN, req))
        assert result.ok
        sent = mock_state.create_session.call_args.args[0]
        assert sent["scheduled_date"].tzinfo is PARIS
        assert result.data.title == "Session 4"

    def test_create_unknown_campaign(self, admin, mock_state):
        mock_state.get_campaign = AsyncMock(return_value=None)
        req = CreateSessionRequest(campaign_id="nope", title="S", scheduled_date=datetime(2026, 3, 21))
        result = asyncio.run(admin.create_session(ADMIN, req))
        assert result.error == NOT_FOUND
        mock_state.create_session.assert_not_called()

    def test_update_merges_fields(self, admin, mock_state):
        req = UpdateSessionRequest(session_id="sess-1", title="Nouveau titre", duration=240)
        result = asyncio.run(admin.update_session(ADMIN, req))
        assert result.ok
        assert result.data.title == "Nouveau titre"
        assert result.data.duration == 240
        assert result.data.players[0].name == "Alice"

    def test_start_goes_through_start_session(self, admin, mock_state):
        req = ChangeStatusRequest(session_id="sess-1", status=SessionStatus.LIVE)
        assert asyncio.run(admin.change_status(ADMIN, req)).ok
        mock_state.start_session.assert_awaited_once_with("sess-1")

    def test_invalid_transition(self, admin, mock_state):
        req = ChangeStatusRequest(session_id="sess-1", status=SessionStatus.COMPLETED)
        result = asyncio.run(admin.change_status(ADMIN, req))
        assert result.error == INVALID_TRANSITION
        mock_state.end_session.assert_not_called()

    def test_end_live_session_with_replay(self, admin, mock_state, sample_session):
        sample_session.status = SessionStatus.LIVE
        req = ChangeStatusRequest(session_id="sess-1", status=SessionStatus.COMPLETED,
                                  youtube_link="https://youtu.be/dQw4w9WgXcQ")
        assert asyncio.run(admin.change_status(ADMIN, req)).ok
        mock_state.end_session.assert_awaited_once_with("sess-1", "https://youtu.be/dQw4w9WgXcQ")

    def test_cancel(self, admin, mock_state):
        req = ChangeStatusRequest(session_id="sess-1", status=SessionStatus.CANCELLED)
        assert asyncio.run(admin.change_status(ADMIN, req)).ok
        mock_state.update_session_status.assert_awaited_once_with("sess-1", SessionStatus.CANCELLED)

    def test_store_failure(self, admin, mock_state):
        mock_state.start_session = AsyncMock(return_value=None)
        req = ChangeStatusRequest(session_id="sess-1", status=SessionStatus.LIVE)
        assert asyncio.run(admin.change_status(ADMIN, req)).error == STORE_ERROR

    def test_store_exception_becomes_result(self, admin, mock_state):
        mock_state.create_session = AsyncMock(side_effect=PyMongoError("write failed"))
        req = CreateSessionRequest(campaign_id="camp-1", title="S", scheduled_date=datetime(2026, 3, 21))
        result = asyncio.run(admin.create_session(ADMIN, req))
        assert not result.ok
        assert result.error == STORE_ERROR

    def test_store_exception_on_status_change(self, admin, mock_state):
        mock_state.update_session_status = AsyncMock(side_effect=PyMongoError("down"))
        req = ChangeStatusRequest(session_id="sess-1", status=SessionStatus.CANCELLED)
        assert asyncio.run(admin.change_status(ADMIN, req)).error == STORE_ERROR


class TestPlayers:

    def test_add(self, admin, mock_state):
        req = PlayerRequest(session_id="sess-1", action="add", player_id="p2", player_name="Bob")
        assert asyncio.run(admin.manage_player(ADMIN, req)).ok
        mock_state.add_player_to_session.assert_awaited_once_with("sess-1", {"id": "p2", "name": "Bob"})

    def test_add_duplicate(self, admin, mock_state):
        req = PlayerRequest(session_id="sess-1", action="add", player_id="p1")
        assert asyncio.run(admin.manage_player(ADMIN, req)).error == INVALID
        mock_state.add_player_to_session.assert_not_called()

    def test_add_to_full_session(self, admin, mock_state, sample_session):
        sample_session.max_players = 1
        req = PlayerRequest(session_id="sess-1", action="add", player_id="p2")
        assert asyncio.run(admin.manage_player(ADMIN, req)).error == INVALID

    def test_confirm_unknown_player(self, admin):
        req = PlayerRequest(session_id="sess-1", action="confirm", player_id="ghost")
        assert asyncio.run(admin.manage_player(ADMIN, req)).error == NOT_FOUND

    def test_confirm_and_remove(self, admin, mock_state):
        asyncio.run(admin.manage_player(ADMIN, PlayerRequest(session_id="sess-1", action="unconfirm", player_id="p1")))
        mock_state.update_player_confirmation.assert_awaited_once_with("sess-1", "p1", False)
        asyncio.run(admin.manage_player(ADMIN, PlayerRequest(session_id="sess-1", action="remove", player_id="p1")))
        mock_state.remove_player_from_session.assert_awaited_once_with("sess-1", "p1")


class TestLinksAndDeletes:

    def test_link_known_chapter(self, admin, mock_state):
        result = asyncio.run(admin.link_chapter(ADMIN, LinkChapterRequest(session_id="sess-1", chapter_id="ch-1")))
        assert result.ok
        mock_state.link_session_to_chapter.assert_awaited_once_with("sess-1", "ch-1")

    def test_link_unknown_chapter(self, admin, mock_state):
        result = asyncio.run(admin.link_chapter(ADMIN, LinkChapterRequest(session_id="sess-1", chapter_id="x")))
        assert result.error == NOT_FOUND
        mock_state.link_session_to_chapter.assert_not_called()

    def test_mark_reminder(self, admin, mock_state):
        asyncio.run(admin.mark_sent(ADMIN, NotificationRequest(session_id="sess-1", kind="reminder")))
        mock_state.mark_reminder_sent.assert_awaited_once_with("sess-1")
        mock_state.mark_notification_sent.assert_not_called()

    def test_delete_dispatch(self, admin, mock_state):
        result = asyncio.run(admin.delete(ADMIN, DeleteRequest(kind="lore_article", target_id="a1")))
        assert result.ok
        mock_state.delete_lore_article.assert_awaited_once_with("a1")

    def test_delete_missing(self, admin, mock_state):
        mock_state.delete_session = AsyncMock(return_value=False)
        result = asyncio.run(admin.delete(ADMIN, DeleteRequest(kind="session", target_id="nope")))
        assert result.error == NOT_FOUND

    def test_delete_store_error(self, admin, mock_state):
        mock_state.delete_campaign = AsyncMock(return_value=None)
        result = asyncio.run(admin.delete(ADMIN, DeleteRequest(kind="campaign", target_id="camp-1")))
        assert result.error == STORE_ERROR


class TestContent:

    def test_invalid_lore(self, admin):
        result = asyncio.run(admin.save_lore(ADMIN, "article", {"title": "Sans slug"}))
        assert result.error == INVALID

    def test_save_campaign(self, admin, sample_campaign):
        result = asyncio.run(admin.save_campaign(ADMIN, sample_campaign.model_dump()))
        assert result.ok
        assert result.data is sample_campaign

    def test_invalid_campaign_not_sent_to_store(self, admin, mock_state):
        result = asyncio.run(admin.save_campaign(ADMIN, {"universe": "valthera"}))
        assert result.error == INVALID
        mock_state.save_campaign.assert_not_called()

    def test_campaign_store_failure(self, admin, mock_state, sample_campaign):
        mock_state.save_campaign = AsyncMock(return_value=None)
        result = asyncio.run(admin.save_campaign(ADMIN, sample_campaign.model_dump()))
        assert result.error == STORE_ERROR

    def test_lore_store_exception(self, admin, mock_state):
        mock_state.save_world_event = AsyncMock(side_effect=PyMongoError("down"))
        result = asyncio.run(admin.save_lore(ADMIN, "event", {"title": "Chute", "year": 3000}))
        assert result.error == STORE_ERROR


class TestAiHelpers:

    def test_ideas_without_muse(self, admin):
        assert asyncio.run(admin.generate_ideas(ADMIN, IdeasRequest(pitch="p"))).error == INVALID

    def test_ideas(self, mock_state):
        muse = MagicMock()
        muse.generate_campaign_ideas = AsyncMock(return_value="- Une trahison")
        admin = AdminCommands(mock_state, [ADMIN], muse=muse)
        result = asyncio.run(admin.generate_ideas(ADMIN, IdeasRequest(pitch="Un royaume", genre="Valthera")))
        assert result.message == "- Une trahison"
        muse.generate_campaign_ideas.assert_awaited_once_with("Un royaume", "Valthera")

    def test_enhance_summary(self, mock_state):
        chronicler = MagicMock()
        chronicler.enhance_session_summary = AsyncMock(return_value=ChapterDraft(summary="Récit"))
        admin = AdminCommands(mock_state, [ADMIN], chronicler=chronicler)
        result = asyncio.run(admin.enhance_summary(ADMIN, EnhanceSummaryRequest(raw_notes="notes")))
        assert result.ok
        assert result.data.summary == "Récit"

    def test_enhance_summary_missing_key(self, mock_state):
        chronicler = MagicMock()
        chronicler.enhance_session_summary = AsyncMock(side_effect=RuntimeError("Gemini API key missing"))
        admin = AdminCommands(mock_state, [ADMIN], chronicler=chronicler)
        result = asyncio.run(admin.enhance_summary(ADMIN, EnhanceSummaryRequest(raw_notes="notes")))
        assert result.error == INVALID
        assert result.message == "Gemini API key missing"

    def test_enhance_summary_failure(self, mock_state):
        chronicler = MagicMock()
        chronicler.enhance_session_summary = AsyncMock(side_effect=ConnectionError("boom"))
        admin = AdminCommands(mock_state, [ADMIN], chronicler=chronicler)
        result = asyncio.run(admin.enhance_summary(ADMIN, EnhanceSummaryRequest(raw_notes="notes")))
        assert result.error == STORE_ERROR
