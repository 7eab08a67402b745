"""
Tests for the plumbing around the bot — rate limiter, image naming, form
parsing, the monospace calendar grid and the session embeds.
"""

import asyncio
from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo
from unittest.mock import AsyncMock, MagicMock, patch

import discord
import pytest
from pymongo.errors import PyMongoError

from bot.cogs.admin_cog import parse_form_date
from bot.cogs.calendar_cog import post_reminders
from bot.embeds import TITLE_LIMIT, calendar_embed, render_month_grid, session_embed, session_list_embed, truncate
from models.session import PlannedSession, SessionPlayer
from tools.calendar_engine import build_month_view
from tools.image_store import FOLDERS, ImageStore, build_filename
from tools.rate_limiter import RateLimiter

BASE = "https://chroniques-valthera.fr"
PARIS = ZoneInfo("Europe/Paris")


class TestRateLimiter:

    def test_rejects_bad_config(self):
        with pytest.raises(ValueError):
            RateLimiter(max_tokens=0)
        with pytest.raises(ValueError):
            RateLimiter(refill_rate=0)

    def test_per_minute(self):
        limiter = RateLimiter.per_minute(30, name="test")
        assert limiter.max_tokens == 30
        assert limiter.refill_rate == 0.5

    def test_try_acquire_drains_bucket(self):
        limiter = RateLimiter(max_tokens=2, refill_rate=0.001, name="test")
        assert limiter.try_acquire()
        assert limiter.try_acquire()
        assert not limiter.try_acquire()

    def test_acquire_consumes_a_token(self):
        limiter = RateLimiter(max_tokens=3, refill_rate=0.001, name="test")
        asyncio.run(limiter.acquire())
        assert limiter.available < 3


class TestImageStore:

    @pytest.fixture
    def store(self):
        with patch("tools.image_store.AsyncIOMotorGridFSBucket"):
            yield ImageStore(MagicMock(), BASE + "/")

    def test_build_filename(self):
        name = build_filename("Portrait.JPG", "characters")
        folder, rest = name.split("/")
        assert folder == "characters"
        assert rest.endswith(".jpg")
        assert build_filename("sans_extension", "campaigns").endswith(".png")

    def test_url_round_trip(self, store):
        url = store.public_url("campaigns/1700000000000-ab12cd34.png")
        assert url == f"{BASE}/images/campaigns/1700000000000-ab12cd34.png"
        assert store.is_hosted_image(url)
        assert store.filename_from_url(url) == "campaigns/1700000000000-ab12cd34.png"

    def test_foreign_urls(self, store):
        assert not store.is_hosted_image("https://example.org/a.png")
        assert not store.is_hosted_image(None)
        assert store.filename_from_url("https://example.org/a.png") is None

    def test_unknown_folder_refused(self, store):
        assert asyncio.run(store.upload_image(b"...", "a.png", folder="maps")) is None
        assert "maps" not in FOLDERS

    def test_delete_store_error(self, store):
        store._bucket.find = MagicMock(side_effect=PyMongoError("down"))
        assert asyncio.run(store.delete_image(f"{BASE}/images/campaigns/a.png")) is False


class TestFormDates:

    def test_supported_formats(self):
        assert parse_form_date("2026-03-14 20:30") == datetime(2026, 3, 14, 20, 30)
        assert parse_form_date("14/03/2026 20:30") == datetime(2026, 3, 14, 20, 30)
        assert parse_form_date(" 2026-03-14T20:30 ") == datetime(2026, 3, 14, 20, 30)

    def test_iso_with_offset(self):
        assert parse_form_date("2026-03-14T20:30:00+01:00").utcoffset().total_seconds() == 3600

    def test_unreadable(self):
        assert parse_form_date("samedi soir") is None


class TestMonthGrid:

    def test_grid_shape_and_today_marker(self):
        view = build_month_view(date(2026, 3, 1), [])
        grid = render_month_grid(view, today=date(2026, 3, 14))
        lines = grid.strip("`\n").split("\n")
        assert len(lines) == 7
        assert lines[0].split() == ["Lun", "Mar", "Mer", "Jeu", "Ven", "Sam", "Dim"]
        assert ">14" in grid
        assert "*" not in grid

    def test_truncate(self):
        assert truncate("abc", 10) == "abc"
        assert truncate("abcdefghij", 5) == "abcd…"


class TestSessionEmbeds:

    def _session(self, **extra):
        fields = dict(
            campaign_id="camp-1", title="Session 4", campaign_title="La Couronne Brisée",
            scheduled_date=datetime(2026, 3, 21, 20, 0, tzinfo=PARIS), gm_notes="Le traître est Oren",
            players=[SessionPlayer(name="Alice", confirmed=True), SessionPlayer(name="Bob")],
            max_players=4,
        )
        fields.update(extra)
        return PlannedSession(**fields)

    def test_gm_notes_only_for_admins(self):
        public = session_embed(self._session(), PARIS)
        private = session_embed(self._session(), PARIS, show_gm_notes=True)
        assert "Notes du MJ" not in [f.name for f in public.fields]
        assert "Notes du MJ" in [f.name for f in private.fields]

    def test_roster_and_date(self):
        embed = session_embed(self._session(), PARIS)
        fields = {f.name: f.value for f in embed.fields}
        assert fields["Date"] == "samedi 21 mars 2026"
        assert fields["Heure"] == "20:00"
        assert fields["Joueurs (1/2 confirmés · 2/4 places)"] == "✅ Alice\n⏳ Bob"
        assert embed.author.name == "La Couronne Brisée"

    def test_calendar_lists_month_sessions(self):
        view = build_month_view(date(2026, 3, 1), [self._session()], PARIS)
        embed = calendar_embed(view, PARIS)
        assert embed.title.endswith("Mars 2026")
        assert embed.fields[0].name == "Sessions du mois (1)"
        assert "21*" in embed.description

    def test_empty_list(self):
        assert session_list_embed("À venir", [], empty="Rien.").description == "Rien."

    def test_long_titles_fit_discord_limits(self):
        long = self._session(title="x" * 400, campaign_title="y" * 400)
        embed = session_embed(long, PARIS)
        assert len(embed.title) == TITLE_LIMIT
        assert len(embed.author.name) == TITLE_LIMIT
        listed = session_list_embed("À venir", [long], PARIS)
        assert len(listed.fields[0].name) == TITLE_LIMIT


class TestReminderPosting:

    def _due(self, mock_state):
        session = PlannedSession(
            id="sess-9", campaign_id="camp-1", title="Session 9",
            scheduled_date=datetime.now(timezone.utc) + timedelta(hours=2),
        )
        mock_state.get_upcoming_sessions = AsyncMock(return_value=[session])
        return session

    def test_posts_and_flags(self, mock_state):
        self._due(mock_state)
        channel = MagicMock()
        channel.send = AsyncMock()
        assert asyncio.run(post_reminders(mock_state, channel, PARIS)) == 1
        mock_state.mark_reminder_sent.assert_awaited_once_with("sess-9")
        channel.send.assert_awaited_once()

    def test_unflagged_session_is_not_posted(self, mock_state):
        self._due(mock_state)
        mock_state.mark_reminder_sent = AsyncMock(return_value=None)
        channel = MagicMock()
        channel.send = AsyncMock()
        assert asyncio.run(post_reminders(mock_state, channel, PARIS)) == 0
        channel.send.assert_not_called()

    def test_discord_error_does_not_escape(self, mock_state):
        self._due(mock_state)
        channel = MagicMock()
        channel.send = AsyncMock(side_effect=discord.HTTPException(MagicMock(status=500, reason="boom"), "boom"))
        assert asyncio.run(post_reminders(mock_state, channel, PARIS)) == 0
