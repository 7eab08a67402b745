"""
Tests for tools/state_manager.py — validation gate, id handling and queries.

Collections are MagicMocks with async methods and async-iterable cursors
(see make_collection in conftest); motor is never contacted.
"""

import asyncio
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock
from zoneinfo import ZoneInfo

import pytest
from pymongo.errors import PyMongoError

from models.campaign import Campaign, Universe
from models.lore import LoreCategory
from models.session import SessionStatus
from tools.state_manager import StateManager, is_valid_uuid, to_document

VALID_UUID = "0b6f6f8e-4a8e-4b38-9a51-3c2a9f3e8b10"


def _session_doc(**overrides):
    doc = {
        "_id": "mongo-id",
        "id": VALID_UUID,
        "campaign_id": "camp-1",
        "title": "Session 3",
        "scheduled_date": datetime(2026, 3, 21, 19, 0, tzinfo=timezone.utc),
        "status": "scheduled",
        "players": [{"id": "p1", "name": "Alice", "confirmed": False}],
    }
    doc.update(overrides)
    return doc


@pytest.fixture
def manager(make_collection):
    sm = StateManager(uri="mongodb://test", db_name="test")
    db = MagicMock()
    for name in ("campaigns", "characters", "chapters", "sessions", "lore_articles", "world_events"):
        setattr(db, name, make_collection())
    sm._db = db
    return sm


class TestHelpers:

    def test_is_valid_uuid(self):
        assert is_valid_uuid(VALID_UUID)
        assert not is_valid_uuid("draft-1")
        assert not is_valid_uuid(None)

    def test_to_document_flattens_enums(self):
        doc = to_document(Campaign(title="X", universe="valthera"))
        assert doc["universe"] == "valthera"
        assert type(doc["universe"]) is str
        assert doc["status"] == "active"

    def test_defaults_from_env(self, monkeypatch):
        monkeypatch.setenv("MONGODB_DB", "autre")
        assert StateManager().db_name == "autre"


class TestConnection:

    def test_requires_connection(self):
        sm = StateManager()
        assert not sm.is_connected
        with pytest.raises(RuntimeError, match="not connected"):
            asyncio.run(sm.get_all_sessions())
        with pytest.raises(RuntimeError):
            sm.database


class TestCampaigns:

    def test_save_replaces_draft_ids(self, manager):
        data = {
            "id": "draft-1",
            "title": "La Couronne Brisée",
            "universe": "valthera",
            "characters": [{"id": "c-draft", "name": "Kael", "class": "Rôdeur"}],
            "chapters": [{"id": "ch-draft", "title": "Le Départ", "order": 1}],
        }
        saved = asyncio.run(manager.save_campaign(data))

        assert is_valid_uuid(saved.id)
        assert is_valid_uuid(saved.characters[0].id)
        assert saved.chapters[0].campaign_id == saved.id

        filter_doc, update = manager._db.campaigns.update_one.call_args.args
        assert filter_doc == {"id": saved.id}
        assert update["$set"]["universe"] == "valthera"
        assert "characters" not in update["$set"]

        replacements = manager._db.characters.bulk_write.call_args.args[0]
        assert replacements[0]._doc["class"] == "Rôdeur"
        assert replacements[0]._doc["campaign_id"] == saved.id
        manager._db.chapters.delete_many.assert_awaited_once_with({
            "campaign_id": saved.id,
            "id": {"$nin": [saved.chapters[0].id]},
        })

    def test_children_written_before_stale_ones_removed(self, manager):
        order = []
        manager._db.characters.bulk_write = AsyncMock(side_effect=lambda *a, **kw: order.append("write"))
        manager._db.characters.delete_many = AsyncMock(side_effect=lambda *a, **kw: order.append("prune"))
        asyncio.run(manager.save_campaign({
            "title": "X", "characters": [{"name": "Kael", "class": "Rôdeur"}],
        }))
        assert order == ["write", "prune"]

    def test_failed_child_write_keeps_existing_cast(self, manager):
        manager._db.characters.bulk_write = AsyncMock(side_effect=PyMongoError("write failed"))
        saved = asyncio.run(manager.save_campaign({
            "title": "X", "characters": [{"name": "Kael", "class": "Rôdeur"}],
        }))
        assert saved is None
        manager._db.characters.delete_many.assert_not_called()
        manager._db.chapters.delete_many.assert_not_called()

    def test_invalid_campaign_writes_nothing(self, manager):
        assert asyncio.run(manager.save_campaign({"universe": "valthera"})) is None
        manager._db.campaigns.update_one.assert_not_called()

    def test_get_campaign_assembles_children(self, manager, make_collection):
        manager._db.campaigns.find_one.return_value = {"_id": "x", "id": "camp-1", "title": "X"}
        manager._db.chapters = make_collection([
            {"_id": "y", "id": "ch-1", "campaign_id": "camp-1", "title": "Départ", "order": 1},
        ])
        manager._db.characters = make_collection([
            {"_id": "z", "id": "k", "campaign_id": "camp-1", "name": "Kael", "class": "Rôdeur"},
        ])
        campaign = asyncio.run(manager.get_campaign("camp-1"))
        assert campaign.universe == Universe.VALTHERA
        assert campaign.chapters[0].title == "Départ"
        assert campaign.characters[0].char_class == "Rôdeur"

    def test_delete_campaign_cascades(self, manager):
        assert asyncio.run(manager.delete_campaign("camp-1")) is True
        for name in ("characters", "chapters", "sessions"):
            getattr(manager._db, name).delete_many.assert_awaited_once_with({"campaign_id": "camp-1"})


    def test_delete_campaign_store_error(self, manager):
        manager._db.chapters.delete_many = AsyncMock(side_effect=PyMongoError("down"))
        assert asyncio.run(manager.delete_campaign("camp-1")) is None
        manager._db.campaigns.delete_one.assert_not_called()


class TestSessions:

    def test_sessions_are_enriched(self, manager, make_collection):
        manager._db.sessions = make_collection([_session_doc()])
        manager._db.campaigns = make_collection([
            {"id": "camp-1", "title": "La Couronne Brisée", "universe": "valthera", "image_url": "img.png"},
        ])
        sessions = asyncio.run(manager.get_all_sessions())
        assert sessions[0].campaign_title == "La Couronne Brisée"
        assert sessions[0].campaign_image == "img.png"

    def test_invalid_stored_session_skipped(self, manager, make_collection):
        manager._db.sessions = make_collection([_session_doc(), {"id": "broken"}])
        assert len(asyncio.run(manager.get_all_sessions())) == 1

    def test_store_error_returns_empty(self, manager):
        manager._db.sessions.find = MagicMock(side_effect=PyMongoError("down"))
        assert asyncio.run(manager.get_all_sessions()) == []

    def test_upcoming_query(self, manager):
        now = datetime(2026, 3, 14, tzinfo=timezone.utc)
        asyncio.run(manager.get_upcoming_sessions(now))
        query = manager._db.sessions.find.call_args.args[0]
        assert query == {
            "scheduled_date": {"$gte": now},
            "status": {"$in": ["scheduled", "live"]},
        }

    def test_past_query_is_date_or_final_status(self, manager):
        now = datetime(2026, 3, 14, tzinfo=timezone.utc)
        asyncio.run(manager.get_past_sessions(now))
        query = manager._db.sessions.find.call_args.args[0]
        assert query == {"$or": [
            {"scheduled_date": {"$lt": now}},
            {"status": {"$in": ["completed", "cancelled"]}},
        ]}

    def test_next_session_is_first_upcoming(self, manager, make_collection):
        later = _session_doc(id="later", scheduled_date=datetime(2026, 4, 4, 19, 0, tzinfo=timezone.utc))
        manager._db.sessions = make_collection([_session_doc(), later])
        found = asyncio.run(manager.get_next_session(datetime(2026, 3, 14, tzinfo=timezone.utc)))
        assert found.id == VALID_UUID

    def test_next_session_none(self, manager):
        assert asyncio.run(manager.get_next_session()) is None

    def test_session_write_failure_returns_none(self, manager):
        manager._db.sessions.update_one = AsyncMock(side_effect=PyMongoError("write failed"))
        assert asyncio.run(manager.create_session({"campaign_id": "camp-1", "title": "S"})) is None

    def test_patch_write_failure_returns_none(self, manager):
        manager._db.sessions.find_one.return_value = _session_doc()
        manager._db.sessions.update_one = AsyncMock(side_effect=PyMongoError("write failed"))
        assert asyncio.run(manager.mark_reminder_sent(VALID_UUID)) is None

    def test_delete_session(self, manager):
        assert asyncio.run(manager.delete_session(VALID_UUID)) is True
        manager._db.sessions.delete_one = AsyncMock(return_value=MagicMock(deleted_count=0))
        assert asyncio.run(manager.delete_session("nope")) is False
        manager._db.sessions.delete_one = AsyncMock(side_effect=PyMongoError("down"))
        assert asyncio.run(manager.delete_session(VALID_UUID)) is None

    def test_month_query_uses_local_bounds(self, manager):
        paris = ZoneInfo("Europe/Paris")
        asyncio.run(manager.get_sessions_for_month(2026, 2, paris))
        bounds = manager._db.sessions.find.call_args.args[0]["scheduled_date"]
        assert bounds["$gte"] == datetime(2026, 2, 1, tzinfo=paris)
        assert bounds["$lt"] == datetime(2026, 3, 1, tzinfo=paris)

    def test_status_update_sets_live_flag(self, manager):
        manager._db.sessions.find_one.return_value = _session_doc()
        saved = asyncio.run(manager.update_session_status(VALID_UUID, SessionStatus.LIVE))
        assert saved.is_live
        written = manager._db.sessions.update_one.call_args.args[1]["$set"]
        assert written["status"] == "live"
        assert written["is_live"] is True

    def test_end_session_keeps_replay(self, manager):
        manager._db.sessions.find_one.return_value = _session_doc(status="live", is_live=True)
        saved = asyncio.run(manager.end_session(VALID_UUID, "https://youtu.be/dQw4w9WgXcQ"))
        assert saved.status == SessionStatus.COMPLETED
        assert not saved.is_live
        assert saved.youtube_link == "https://youtu.be/dQw4w9WgXcQ"

    def test_patch_missing_session(self, manager):
        assert asyncio.run(manager.mark_reminder_sent("nope")) is None
        manager._db.sessions.update_one.assert_not_called()

    def test_add_player(self, manager, make_collection):
        manager._db.sessions = make_collection([_session_doc()])
        manager._db.sessions.find_one.return_value = _session_doc()
        saved = asyncio.run(manager.add_player_to_session(VALID_UUID, {"id": "p2", "name": "Bob"}))
        assert [p.id for p in saved.players] == ["p1", "p2"]

    def test_add_duplicate_player_refused(self, manager, make_collection):
        manager._db.sessions = make_collection([_session_doc()])
        assert asyncio.run(manager.add_player_to_session(VALID_UUID, {"id": "p1", "name": "Alice"})) is None
        manager._db.sessions.update_one.assert_not_called()

    def test_add_player_to_full_session_refused(self, manager, make_collection):
        manager._db.sessions = make_collection([_session_doc(max_players=1)])
        assert asyncio.run(manager.add_player_to_session(VALID_UUID, {"id": "p2", "name": "Bob"})) is None

    def test_create_session_ignores_client_ids(self, manager):
        session = asyncio.run(manager.create_session({
            "id": "client-side", "campaign_id": "camp-1", "title": "S",
        }))
        assert session.id != "client-side"
        assert is_valid_uuid(session.id)


class TestLore:

    def test_slug_lookup_is_normalised(self, manager):
        asyncio.run(manager.get_lore_article_by_slug("  Le-Fleuve "))
        assert manager._db.lore_articles.find.call_args.args[0] == {"slug": "le-fleuve"}

    def test_invalid_article(self, manager):
        assert asyncio.run(manager.save_lore_article({"title": "Sans slug"})) is None

    def test_world_event_saved_with_plain_enums(self, manager):
        event = asyncio.run(manager.save_world_event({"title": "Chute", "year": 3000, "era": "age-of-shadows"}))
        written = manager._db.world_events.update_one.call_args.args[1]["$set"]
        assert written["era"] == "age-of-shadows"
        assert written["id"] == event.id

    def test_articles_by_category(self, manager, make_collection):
        manager._db.lore_articles = make_collection([
            {"_id": "x", "id": "a1", "title": "Le Fleuve", "slug": "le-fleuve", "category": "geography"},
        ])
        articles = asyncio.run(manager.get_lore_articles_by_category(LoreCategory.GEOGRAPHY))
        assert [a.slug for a in articles] == ["le-fleuve"]
        assert manager._db.lore_articles.find.call_args.args[0] == {"category": "geography"}

    def test_unknown_category_refused(self, manager):
        with pytest.raises(ValueError):
            asyncio.run(manager.get_lore_articles_by_category("cuisine"))

    def test_article_write_failure(self, manager):
        manager._db.lore_articles.update_one = AsyncMock(side_effect=PyMongoError("write failed"))
        assert asyncio.run(manager.save_lore_article({"title": "Le Fleuve", "slug": "le-fleuve"})) is None
