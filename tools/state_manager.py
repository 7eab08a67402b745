"""
StateManager — Async MongoDB service for campaigns, planned sessions and lore.

Every write passes through Pydantic validation. Raw dicts are never written
directly. This is the single source of truth for everything the bot shows:
campaigns (with their chapters and characters), the session calendar, the
lore wiki and the world timeline.

Reads log store errors and return empty results. Writes refuse invalid
data and report it, like a failed write, with a None return; deletes
return False when nothing matched and None when the store failed.

Requires:
  - MONGODB_URI in .env (default: mongodb://localhost:27017)
  - Database name: valthera (configurable via MONGODB_DB)
"""

import os
import logging
from enum import Enum
from typing import List, Optional, Dict, Any
from uuid import UUID, uuid4
from datetime import datetime, timedelta, timezone, tzinfo

from pydantic import BaseModel, ValidationError
from pymongo import ASCENDING, DESCENDING, ReplaceOne
from pymongo.errors import PyMongoError

logger = logging.getLogger("StateManager")

# ---------------------------------------------------------------------------
# Lazy motor import — allows the rest of the codebase to load even if
# the async driver is not installed. StateManager methods will raise
# clear errors if called without a connection.
# ---------------------------------------------------------------------------
try:
    from motor.motor_asyncio import AsyncIOMotorClient
    HAS_MOTOR = True
except ImportError:
    HAS_MOTOR = False
    AsyncIOMotorClient = None  # type: ignore[assignment,misc]

from models.campaign import Campaign
from models.lore import LoreArticle, LoreCategory, WorldEvent
from models.session import PlannedSession, SessionPlayer, SessionStatus
from tools.calendar_engine import days_in_month


def is_valid_uuid(value: Any) -> bool:
    if not isinstance(value, str):
        return False
    try:
        UUID(value)
        return True
    except ValueError:
        return False


def _plain(value: Any) -> Any:
    """Enum members become their values, recursively; BSON only knows plain types."""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {k: _plain(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_plain(v) for v in value]
    return value


def to_document(model: BaseModel, **dump_kwargs) -> Dict[str, Any]:
    return _plain(model.model_dump(**dump_kwargs))


class StateManager:
    """Async MongoDB-backed state manager with Pydantic validation on every write.

    Collections:
        campaigns      — Campaign documents (map markers and bestiary embedded)
        characters     — Characters, keyed by campaign_id
        chapters       — Chapters, keyed by campaign_id
        sessions       — Planned play sessions
        lore_articles  — Wiki articles
        world_events   — Timeline entries
    """

    def __init__(
        self,
        uri: Optional[str] = None,
        db_name: Optional[str] = None,
    ):
        self.uri = uri or os.getenv("MONGODB_URI", "mongodb://localhost:27017")
        self.db_name = db_name or os.getenv("MONGODB_DB", "valthera")
        self._client: Any = None
        self._db: Any = None

    # ------------------------------------------------------------------
    # Connection
    # ------------------------------------------------------------------

    async def connect(self) -> bool:
        """Connect to MongoDB. Returns True on success."""
        if not HAS_MOTOR:
            logger.error(
                "motor is not installed. Run: pip install motor"
            )
            return False
        try:
            # tz_aware so scheduled dates come back as absolute instants
            self._client = AsyncIOMotorClient(self.uri, tz_aware=True)
            await self._client.admin.command("ping")
            self._db = self._client[self.db_name]
            logger.info(f"StateManager connected to MongoDB: {self.db_name}")
            return True
        except Exception as e:
            logger.error(f"MongoDB connection failed: {e}")
            self._client = None
            self._db = None
            return False

    async def close(self):
        """Close the MongoDB connection."""
        if self._client:
            self._client.close()
            self._client = None
            self._db = None

    @property
    def is_connected(self) -> bool:
        return self._db is not None

    @property
    def database(self) -> Any:
        self._require_connection()
        return self._db

    def _require_connection(self):
        if not self.is_connected:
            raise RuntimeError("StateManager is not connected to MongoDB.")

    @staticmethod
    async def _collect(cursor) -> List[Dict[str, Any]]:
        results = []
        async for doc in cursor:
            doc.pop("_id", None)
            results.append(doc)
        return results

    # ------------------------------------------------------------------
    # Campaigns
    # ------------------------------------------------------------------

    async def _assemble_campaign(self, doc: Dict[str, Any]) -> Optional[Campaign]:
        characters = await self._collect(self._db.characters.find({"campaign_id": doc["id"]}))
        chapters = await self._collect(
            self._db.chapters.find({"campaign_id": doc["id"]}).sort("order", ASCENDING)
        )
        try:
            return Campaign.model_validate({**doc, "characters": characters, "chapters": chapters})
        except ValidationError as e:
            logger.error(f"Stored campaign {doc.get('id')} is invalid: {e}")
            return None

    async def get_campaigns(self) -> List[Campaign]:
        """All campaigns, newest first, chapters sorted by order."""
        self._require_connection()
        try:
            docs = await self._collect(self._db.campaigns.find().sort("created_at", DESCENDING))
            campaigns = []
            for doc in docs:
                campaign = await self._assemble_campaign(doc)
                if campaign:
                    campaigns.append(campaign)
            return campaigns
        except PyMongoError as e:
            logger.error(f"Error fetching campaigns: {e}")
            return []

    async def get_campaign(self, campaign_id: str) -> Optional[Campaign]:
        self._require_connection()
        try:
            doc = await self._db.campaigns.find_one({"id": campaign_id})
            if not doc:
                return None
            doc.pop("_id", None)
            return await self._assemble_campaign(doc)
        except PyMongoError as e:
            logger.error(f"Error fetching campaign {campaign_id}: {e}")
            return None

    async def save_campaign(self, data: Dict[str, Any]) -> Optional[Campaign]:
        """Validate and upsert a campaign with its cast and chapters.

        Ids that are not UUIDs (drafts created client-side) are replaced.
        The new cast and chapters are upserted first; only then are the
        ones missing from the new lists removed, so a failed write never
        leaves the campaign without them.
        """
        self._require_connection()
        try:
            model = Campaign.model_validate(data)
        except ValidationError as e:
            logger.error(f"Campaign validation failed: {e}")
            return None

        if not is_valid_uuid(model.id):
            model.id = str(uuid4())
        for character in model.characters:
            if not is_valid_uuid(character.id):
                character.id = str(uuid4())
        for chapter in model.chapters:
            if not is_valid_uuid(chapter.id):
                chapter.id = str(uuid4())
            chapter.campaign_id = model.id

        doc = to_document(model, exclude={"characters", "chapters"})
        characters = [
            {**to_document(c, by_alias=True), "campaign_id": model.id} for c in model.characters
        ]
        chapters = [to_document(c) for c in model.chapters]
        try:
            await self._db.campaigns.update_one({"id": model.id}, {"$set": doc}, upsert=True)
            await self._replace_children(self._db.characters, model.id, characters)
            await self._replace_children(self._db.chapters, model.id, chapters)
        except PyMongoError as e:
            logger.error(f"Error saving campaign {model.id}: {e}")
            return None

        logger.info(
            f"Campaign saved: {model.title} "
            f"({len(model.characters)} characters, {len(model.chapters)} chapters)"
        )
        return model

    @staticmethod
    async def _replace_children(collection, campaign_id: str, docs: List[Dict[str, Any]]):
        """Upsert `docs` by id, then drop the campaign's documents not among them."""
        if docs:
            await collection.bulk_write(
                [ReplaceOne({"id": d["id"]}, d, upsert=True) for d in docs],
                ordered=True,
            )
        await collection.delete_many({
            "campaign_id": campaign_id,
            "id": {"$nin": [d["id"] for d in docs]},
        })

    async def delete_campaign(self, campaign_id: str) -> Optional[bool]:
        """Delete a campaign and everything that hangs off it."""
        self._require_connection()
        try:
            await self._db.characters.delete_many({"campaign_id": campaign_id})
            await self._db.chapters.delete_many({"campaign_id": campaign_id})
            await self._db.sessions.delete_many({"campaign_id": campaign_id})
            result = await self._db.campaigns.delete_one({"id": campaign_id})
        except PyMongoError as e:
            logger.error(f"Error deleting campaign {campaign_id}: {e}")
            return None
        return result.deleted_count > 0

    @staticmethod
    async def _upsert(collection, model: BaseModel) -> bool:
        try:
            await collection.update_one({"id": model.id}, {"$set": to_document(model)}, upsert=True)
        except PyMongoError as e:
            logger.error(f"Error saving {type(model).__name__} {model.id}: {e}")
            return False
        return True

    @staticmethod
    async def _delete_one(collection, item_id: str) -> Optional[bool]:
        try:
            result = await collection.delete_one({"id": item_id})
        except PyMongoError as e:
            logger.error(f"Error deleting {item_id}: {e}")
            return None
        return result.deleted_count > 0

    async def delete_chapter(self, chapter_id: str) -> Optional[bool]:
        self._require_connection()
        return await self._delete_one(self._db.chapters, chapter_id)

    # ------------------------------------------------------------------
    # Planned sessions
    # ------------------------------------------------------------------

    async def _campaign_index(self) -> Dict[str, Dict[str, Any]]:
        docs = await self._collect(
            self._db.campaigns.find({}, {"id": 1, "title": 1, "universe": 1, "image_url": 1})
        )
        return {d["id"]: d for d in docs if "id" in d}

    async def _load_sessions(self, query: Dict[str, Any], order: int = ASCENDING) -> List[PlannedSession]:
        try:
            docs = await self._collect(self._db.sessions.find(query).sort("scheduled_date", order))
            campaigns = await self._campaign_index()
        except PyMongoError as e:
            logger.error(f"Error fetching sessions: {e}")
            return []

        sessions = []
        for doc in docs:
            campaign = campaigns.get(doc.get("campaign_id"), {})
            doc["campaign_title"] = campaign.get("title")
            doc["universe"] = campaign.get("universe")
            doc["campaign_image"] = campaign.get("image_url")
            try:
                sessions.append(PlannedSession.model_validate(doc))
            except ValidationError as e:
                logger.warning(f"Skipping invalid stored session {doc.get('id')}: {e}")
        return sessions

    async def get_all_sessions(self) -> List[PlannedSession]:
        """All sessions, ascending by date, with campaign title/universe/image."""
        self._require_connection()
        return await self._load_sessions({})

    async def get_upcoming_sessions(self, now: Optional[datetime] = None) -> List[PlannedSession]:
        self._require_connection()
        now = now or datetime.now(timezone.utc)
        return await self._load_sessions({
            "scheduled_date": {"$gte": now},
            "status": {"$in": [SessionStatus.SCHEDULED.value, SessionStatus.LIVE.value]},
        })

    async def get_past_sessions(self, now: Optional[datetime] = None) -> List[PlannedSession]:
        self._require_connection()
        now = now or datetime.now(timezone.utc)
        return await self._load_sessions(
            {"$or": [
                {"scheduled_date": {"$lt": now}},
                {"status": {"$in": [SessionStatus.COMPLETED.value, SessionStatus.CANCELLED.value]}},
            ]},
            order=DESCENDING,
        )

    async def get_sessions_by_campaign(self, campaign_id: str) -> List[PlannedSession]:
        self._require_connection()
        return await self._load_sessions({"campaign_id": campaign_id})

    async def get_session(self, session_id: str) -> Optional[PlannedSession]:
        self._require_connection()
        sessions = await self._load_sessions({"id": session_id})
        return sessions[0] if sessions else None

    async def get_next_session(self, now: Optional[datetime] = None) -> Optional[PlannedSession]:
        upcoming = await self.get_upcoming_sessions(now)
        return upcoming[0] if upcoming else None

    async def get_sessions_for_month(self, year: int, month: int,
                                     tz: Optional[tzinfo] = None) -> List[PlannedSession]:
        """Sessions from the 1st at 00:00 to the last day at 23:59:59, local time."""
        self._require_connection()
        tz = tz or timezone.utc
        start = datetime(year, month, 1, tzinfo=tz)
        end = datetime(year, month, days_in_month(year, month), tzinfo=tz) + timedelta(days=1)
        return await self._load_sessions({"scheduled_date": {"$gte": start, "$lt": end}})

    async def save_session(self, data: Dict[str, Any]) -> Optional[PlannedSession]:
        """Validate and upsert a session. Returns the stored model, or None."""
        self._require_connection()
        try:
            model = PlannedSession.model_validate(data)
        except ValidationError as e:
            logger.error(f"Session validation failed: {e}")
            return None
        if not is_valid_uuid(model.id):
            model.id = str(uuid4())
        model.updated_at = datetime.now(timezone.utc)
        if not await self._upsert(self._db.sessions, model):
            return None
        return model

    async def create_session(self, data: Dict[str, Any]) -> Optional[PlannedSession]:
        data = {k: v for k, v in data.items() if k not in ("id", "created_at", "updated_at")}
        session = await self.save_session(data)
        if session:
            logger.info(f"Session created: {session.title} ({session.id})")
        return session

    async def delete_session(self, session_id: str) -> Optional[bool]:
        self._require_connection()
        return await self._delete_one(self._db.sessions, session_id)

    async def _patch_session(self, session_id: str, updates: Dict[str, Any]) -> Optional[PlannedSession]:
        """Apply a partial update to a session (merge + validate)."""
        self._require_connection()
        try:
            doc = await self._db.sessions.find_one({"id": session_id})
        except PyMongoError as e:
            logger.error(f"Error fetching session {session_id}: {e}")
            return None
        if not doc:
            logger.warning(f"Session not found for patch: {session_id}")
            return None
        doc.pop("_id", None)
        return await self.save_session({**doc, **updates})

    async def update_session_status(self, session_id: str, status: SessionStatus) -> Optional[PlannedSession]:
        status = SessionStatus(status)
        return await self._patch_session(session_id, {
            "status": status,
            "is_live": status == SessionStatus.LIVE,
        })

    async def start_session(self, session_id: str) -> Optional[PlannedSession]:
        return await self.update_session_status(session_id, SessionStatus.LIVE)

    async def end_session(self, session_id: str, youtube_link: Optional[str] = None) -> Optional[PlannedSession]:
        updates: Dict[str, Any] = {"status": SessionStatus.COMPLETED, "is_live": False}
        if youtube_link:
            updates["youtube_link"] = youtube_link
        return await self._patch_session(session_id, updates)

    async def update_player_confirmation(self, session_id: str, player_id: str,
                                         confirmed: bool) -> Optional[PlannedSession]:
        session = await self.get_session(session_id)
        if not session:
            return None
        players = [
            p.model_copy(update={"confirmed": confirmed}) if p.id == player_id else p
            for p in session.players
        ]
        return await self._patch_session(session_id, {"players": [p.model_dump() for p in players]})

    async def add_player_to_session(self, session_id: str, player: Dict[str, Any]) -> Optional[PlannedSession]:
        """Refuses duplicate player ids and full sessions (returns None)."""
        session = await self.get_session(session_id)
        if not session:
            return None
        try:
            new_player = SessionPlayer.model_validate(player)
        except ValidationError as e:
            logger.error(f"Player validation failed: {e}")
            return None
        if any(p.id == new_player.id for p in session.players):
            logger.warning(f"Player {new_player.id} already in session {session_id}")
            return None
        if session.is_full:
            logger.warning(f"Session {session_id} is full ({session.max_players} players)")
            return None
        players = [p.model_dump() for p in session.players] + [new_player.model_dump()]
        return await self._patch_session(session_id, {"players": players})

    async def remove_player_from_session(self, session_id: str, player_id: str) -> Optional[PlannedSession]:
        session = await self.get_session(session_id)
        if not session:
            return None
        players = [p.model_dump() for p in session.players if p.id != player_id]
        return await self._patch_session(session_id, {"players": players})

    async def mark_notification_sent(self, session_id: str) -> Optional[PlannedSession]:
        return await self._patch_session(session_id, {
            "notification_sent": True,
            "notification_sent_at": datetime.now(timezone.utc),
        })

    async def mark_reminder_sent(self, session_id: str) -> Optional[PlannedSession]:
        return await self._patch_session(session_id, {"reminder_sent": True})

    async def link_session_to_chapter(self, session_id: str, chapter_id: str) -> Optional[PlannedSession]:
        return await self._patch_session(session_id, {"linked_chapter_id": chapter_id})

    # ------------------------------------------------------------------
    # Lore wiki
    # ------------------------------------------------------------------

    async def _load_articles(self, query: Dict[str, Any]) -> List[LoreArticle]:
        try:
            docs = await self._collect(self._db.lore_articles.find(query).sort("title", ASCENDING))
        except PyMongoError as e:
            logger.error(f"Error fetching lore articles: {e}")
            return []
        articles = []
        for doc in docs:
            try:
                articles.append(LoreArticle.model_validate(doc))
            except ValidationError as e:
                logger.warning(f"Skipping invalid lore article {doc.get('id')}: {e}")
        return articles

    async def get_lore_articles(self) -> List[LoreArticle]:
        self._require_connection()
        return await self._load_articles({})

    async def get_lore_articles_by_category(self, category: LoreCategory) -> List[LoreArticle]:
        self._require_connection()
        return await self._load_articles({"category": LoreCategory(category).value})

    async def get_lore_article_by_slug(self, slug: str) -> Optional[LoreArticle]:
        self._require_connection()
        articles = await self._load_articles({"slug": slug.strip().lower()})
        return articles[0] if articles else None

    async def save_lore_article(self, data: Dict[str, Any]) -> Optional[LoreArticle]:
        self._require_connection()
        try:
            model = LoreArticle.model_validate(data)
        except ValidationError as e:
            logger.error(f"Lore article validation failed: {e}")
            return None
        if not is_valid_uuid(model.id):
            model.id = str(uuid4())
        model.updated_at = datetime.now(timezone.utc)
        if not await self._upsert(self._db.lore_articles, model):
            return None
        return model

    async def delete_lore_article(self, article_id: str) -> Optional[bool]:
        self._require_connection()
        return await self._delete_one(self._db.lore_articles, article_id)

    # ------------------------------------------------------------------
    # World timeline
    # ------------------------------------------------------------------

    async def get_world_events(self) -> List[WorldEvent]:
        """Timeline entries by ascending year."""
        self._require_connection()
        try:
            docs = await self._collect(self._db.world_events.find().sort("year", ASCENDING))
        except PyMongoError as e:
            logger.error(f"Error fetching world events: {e}")
            return []
        events = []
        for doc in docs:
            try:
                events.append(WorldEvent.model_validate(doc))
            except ValidationError as e:
                logger.warning(f"Skipping invalid world event {doc.get('id')}: {e}")
        return events

    async def save_world_event(self, data: Dict[str, Any]) -> Optional[WorldEvent]:
        self._require_connection()
        try:
            model = WorldEvent.model_validate(data)
        except ValidationError as e:
            logger.error(f"World event validation failed: {e}")
            return None
        if not is_valid_uuid(model.id):
            model.id = str(uuid4())
        if not await self._upsert(self._db.world_events, model):
            return None
        return model

    async def delete_world_event(self, event_id: str) -> Optional[bool]:
        self._require_connection()
        return await self._delete_one(self._db.world_events, event_id)
