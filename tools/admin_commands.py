"""
Admin Commands — Typed mutation requests for the GM.

Every change made from Discord goes through here: the cog builds a request
model from the interaction, AdminCommands checks the caller against the
admin allow-list, validates the request (status transitions included) and
returns a CommandResult. Nothing in this module raises into the UI layer.
"""

import functools
import logging
from datetime import datetime, tzinfo
from typing import Any, Iterable, Literal, Optional, Set

from pydantic import BaseModel, Field, ValidationError, field_validator
from pymongo.errors import PyMongoError

from models.campaign import Campaign
from models.chapter_draft import ChapterDraft
from models.lore import LoreArticle, WorldEvent
from models.session import SessionStatus

logger = logging.getLogger("AdminCommands")

FORBIDDEN = "forbidden"
NOT_FOUND = "not_found"
INVALID = "invalid"
INVALID_TRANSITION = "invalid_transition"
STORE_ERROR = "store_error"


class CommandResult(BaseModel):
    ok: bool
    message: str = ""
    data: Any = None
    error: Optional[str] = None

    @classmethod
    def success(cls, message: str, data: Any = None) -> "CommandResult":
        return cls(ok=True, message=message, data=data)

    @classmethod
    def failure(cls, error: str, message: str) -> "CommandResult":
        return cls(ok=False, error=error, message=message)


def store_guarded(method):
    """A store failure inside a command becomes a store_error result."""
    @functools.wraps(method)
    async def wrapper(self, *args, **kwargs):
        try:
            return await method(self, *args, **kwargs)
        except PyMongoError as e:
            logger.error(f"{method.__name__} failed: {e}", exc_info=True)
            return CommandResult.failure(STORE_ERROR, "Erreur de la base de données, rien n'a été modifié.")
    return wrapper


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------

class CreateSessionRequest(BaseModel):
    campaign_id: str
    title: str = Field(min_length=1)
    scheduled_date: datetime
    duration: int = Field(default=180, ge=1)
    description: str = ""
    max_players: Optional[int] = Field(default=None, ge=1)
    twitch_link: Optional[str] = None
    public_notes: Optional[str] = None
    gm_notes: Optional[str] = None

    @field_validator("title")
    @classmethod
    def strip_title(cls, v):
        return v.strip()


class UpdateSessionRequest(BaseModel):
    session_id: str
    title: Optional[str] = None
    scheduled_date: Optional[datetime] = None
    duration: Optional[int] = Field(default=None, ge=1)
    description: Optional[str] = None
    max_players: Optional[int] = Field(default=None, ge=1)
    twitch_link: Optional[str] = None
    youtube_link: Optional[str] = None
    public_notes: Optional[str] = None
    gm_notes: Optional[str] = None


class ChangeStatusRequest(BaseModel):
    session_id: str
    status: SessionStatus
    youtube_link: Optional[str] = None


class PlayerRequest(BaseModel):
    session_id: str
    action: Literal["add", "remove", "confirm", "unconfirm"]
    player_id: str
    player_name: Optional[str] = None


class LinkChapterRequest(BaseModel):
    session_id: str
    chapter_id: str


class NotificationRequest(BaseModel):
    session_id: str
    kind: Literal["notification", "reminder"] = "notification"


class DeleteRequest(BaseModel):
    kind: Literal["session", "campaign", "chapter", "lore_article", "world_event"]
    target_id: str


class IdeasRequest(BaseModel):
    pitch: str = Field(min_length=1)
    genre: str = "Valthera"


class EnhanceSummaryRequest(BaseModel):
    raw_notes: str = Field(min_length=1)


def parse_admin_ids(raw: Optional[str]) -> Set[int]:
    """'123, 456' → {123, 456}; junk entries are ignored."""
    ids = set()
    for part in (raw or "").split(","):
        part = part.strip()
        if part.isdigit():
            ids.add(int(part))
        elif part:
            logger.warning(f"Ignoring invalid admin user id: {part!r}")
    return ids


def parse_channel_id(raw: Optional[str]) -> Optional[int]:
    """Announce channel id from the environment, None when unset or not a number."""
    raw = (raw or "").strip()
    if not raw:
        return None
    if not raw.isdigit():
        logger.error(f"Invalid channel id {raw!r}, announcements go to the invoking channel")
        return None
    return int(raw)


class AdminCommands:
    """Executes admin requests against the StateManager and the AI helpers."""

    def __init__(self, state_manager, admin_ids: Iterable[int], muse=None, chronicler=None,
                 tz: Optional[tzinfo] = None):
        self.state = state_manager
        self.admin_ids = set(admin_ids)
        self.muse = muse
        self.chronicler = chronicler
        self.tz = tz

    def is_admin(self, user_id: int) -> bool:
        return user_id in self.admin_ids

    def deny(self, user_id: int, action: str) -> CommandResult:
        logger.warning(f"User {user_id} is not allowed to {action}")
        return CommandResult.failure(FORBIDDEN, "Réservé au maître du jeu.")

    def _localise(self, value: datetime) -> datetime:
        """Form dates are typed in the group's zone."""
        if value.tzinfo is None and self.tz is not None:
            return value.replace(tzinfo=self.tz)
        return value

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    @store_guarded
    async def create_session(self, user_id: int, request: CreateSessionRequest) -> CommandResult:
        if not self.is_admin(user_id):
            return self.deny(user_id, "create a session")
        campaign = await self.state.get_campaign(request.campaign_id)
        if campaign is None:
            return CommandResult.failure(NOT_FOUND, "Campagne introuvable.")

        data = request.model_dump()
        data["scheduled_date"] = self._localise(request.scheduled_date)
        session = await self.state.create_session(data)
        if session is None:
            return CommandResult.failure(STORE_ERROR, "La session n'a pas pu être enregistrée.")
        return CommandResult.success(f"Session « {session.title} » planifiée.", session)

    @store_guarded
    async def update_session(self, user_id: int, request: UpdateSessionRequest) -> CommandResult:
        if not self.is_admin(user_id):
            return self.deny(user_id, "edit a session")
        session = await self.state.get_session(request.session_id)
        if session is None:
            return CommandResult.failure(NOT_FOUND, "Session introuvable.")

        updates = request.model_dump(exclude={"session_id"}, exclude_none=True)
        if "scheduled_date" in updates:
            updates["scheduled_date"] = self._localise(updates["scheduled_date"])
        saved = await self.state.save_session({**session.model_dump(), **updates})
        if saved is None:
            return CommandResult.failure(STORE_ERROR, "La session n'a pas pu être enregistrée.")
        return CommandResult.success("Session mise à jour.", saved)

    @store_guarded
    async def change_status(self, user_id: int, request: ChangeStatusRequest) -> CommandResult:
        if not self.is_admin(user_id):
            return self.deny(user_id, "change a session status")
        session = await self.state.get_session(request.session_id)
        if session is None:
            return CommandResult.failure(NOT_FOUND, "Session introuvable.")
        if not session.status.can_transition_to(request.status):
            return CommandResult.failure(
                INVALID_TRANSITION,
                f"Impossible de passer de « {session.status.value} » à « {request.status.value} ».",
            )

        if request.status == SessionStatus.LIVE:
            saved = await self.state.start_session(session.id)
        elif request.status == SessionStatus.COMPLETED:
            saved = await self.state.end_session(session.id, request.youtube_link)
        else:
            saved = await self.state.update_session_status(session.id, request.status)

        if saved is None:
            return CommandResult.failure(STORE_ERROR, "Le statut n'a pas pu être enregistré.")
        logger.info(f"Session {session.id}: {session.status.value} -> {request.status.value}")
        return CommandResult.success("Statut mis à jour.", saved)

    @store_guarded
    async def manage_player(self, user_id: int, request: PlayerRequest) -> CommandResult:
        if not self.is_admin(user_id):
            return self.deny(user_id, "manage players")
        session = await self.state.get_session(request.session_id)
        if session is None:
            return CommandResult.failure(NOT_FOUND, "Session introuvable.")

        known = any(p.id == request.player_id for p in session.players)
        if request.action == "add":
            if known:
                return CommandResult.failure(INVALID, "Ce joueur est déjà inscrit.")
            if session.is_full:
                return CommandResult.failure(INVALID, "La session est complète.")
            saved = await self.state.add_player_to_session(session.id, {
                "id": request.player_id,
                "name": request.player_name or request.player_id,
            })
        elif not known:
            return CommandResult.failure(NOT_FOUND, "Joueur introuvable dans cette session.")
        elif request.action == "remove":
            saved = await self.state.remove_player_from_session(session.id, request.player_id)
        else:
            saved = await self.state.update_player_confirmation(
                session.id, request.player_id, request.action == "confirm"
            )

        if saved is None:
            return CommandResult.failure(STORE_ERROR, "La liste des joueurs n'a pas pu être enregistrée.")
        return CommandResult.success("Joueurs mis à jour.", saved)

    @store_guarded
    async def link_chapter(self, user_id: int, request: LinkChapterRequest) -> CommandResult:
        if not self.is_admin(user_id):
            return self.deny(user_id, "link a chapter")
        session = await self.state.get_session(request.session_id)
        if session is None:
            return CommandResult.failure(NOT_FOUND, "Session introuvable.")
        campaign = await self.state.get_campaign(session.campaign_id)
        if campaign is None or campaign.get_chapter(request.chapter_id) is None:
            return CommandResult.failure(NOT_FOUND, "Chapitre introuvable dans cette campagne.")
        saved = await self.state.link_session_to_chapter(session.id, request.chapter_id)
        if saved is None:
            return CommandResult.failure(STORE_ERROR, "Le lien n'a pas pu être enregistré.")
        return CommandResult.success("Chapitre lié à la session.", saved)

    @store_guarded
    async def mark_sent(self, user_id: int, request: NotificationRequest) -> CommandResult:
        if not self.is_admin(user_id):
            return self.deny(user_id, "send announcements")
        if request.kind == "reminder":
            saved = await self.state.mark_reminder_sent(request.session_id)
        else:
            saved = await self.state.mark_notification_sent(request.session_id)
        if saved is None:
            return CommandResult.failure(NOT_FOUND, "Session introuvable.")
        return CommandResult.success("Annonce enregistrée.", saved)

    @store_guarded
    async def delete(self, user_id: int, request: DeleteRequest) -> CommandResult:
        if not self.is_admin(user_id):
            return self.deny(user_id, f"delete a {request.kind}")
        handlers = {
            "session": self.state.delete_session,
            "campaign": self.state.delete_campaign,
            "chapter": self.state.delete_chapter,
            "lore_article": self.state.delete_lore_article,
            "world_event": self.state.delete_world_event,
        }
        deleted = await handlers[request.kind](request.target_id)
        if deleted is None:
            return CommandResult.failure(STORE_ERROR, "La suppression a échoué.")
        if not deleted:
            return CommandResult.failure(NOT_FOUND, "Élément introuvable.")
        logger.info(f"Admin {user_id} deleted {request.kind} {request.target_id}")
        return CommandResult.success("Supprimé.")

    # ------------------------------------------------------------------
    # Content
    # ------------------------------------------------------------------

    @store_guarded
    async def save_campaign(self, user_id: int, data: dict) -> CommandResult:
        if not self.is_admin(user_id):
            return self.deny(user_id, "save a campaign")
        if not _is_valid(Campaign, data):
            return CommandResult.failure(INVALID, "Campagne invalide, rien n'a été enregistré.")
        campaign = await self.state.save_campaign(data)
        if campaign is None:
            return CommandResult.failure(STORE_ERROR, "La campagne n'a pas pu être enregistrée.")
        return CommandResult.success(f"Campagne « {campaign.title} » enregistrée.", campaign)

    @store_guarded
    async def save_lore(self, user_id: int, kind: Literal["article", "event"], data: dict) -> CommandResult:
        if not self.is_admin(user_id):
            return self.deny(user_id, "edit the lore")
        if not _is_valid(LoreArticle if kind == "article" else WorldEvent, data):
            return CommandResult.failure(INVALID, "Entrée invalide, rien n'a été enregistré.")
        if kind == "article":
            saved = await self.state.save_lore_article(data)
        else:
            saved = await self.state.save_world_event(data)
        if saved is None:
            return CommandResult.failure(STORE_ERROR, "L'entrée n'a pas pu être enregistrée.")
        return CommandResult.success(f"« {saved.title} » enregistré.", saved)

    # ------------------------------------------------------------------
    # AI helpers
    # ------------------------------------------------------------------

    async def generate_ideas(self, user_id: int, request: IdeasRequest) -> CommandResult:
        if not self.is_admin(user_id):
            return self.deny(user_id, "generate ideas")
        if self.muse is None:
            return CommandResult.failure(INVALID, "Générateur d'idées indisponible.")
        text = await self.muse.generate_campaign_ideas(request.pitch, request.genre)
        return CommandResult.success(text, text)

    async def enhance_summary(self, user_id: int, request: EnhanceSummaryRequest) -> CommandResult:
        if not self.is_admin(user_id):
            return self.deny(user_id, "enhance a summary")
        if self.chronicler is None:
            return CommandResult.failure(INVALID, "Chroniqueur indisponible.")
        try:
            draft: ChapterDraft = await self.chronicler.enhance_session_summary(request.raw_notes)
        except RuntimeError as e:
            return CommandResult.failure(INVALID, str(e))
        except Exception as e:
            logger.error(f"Summary enhancement failed: {e}", exc_info=True)
            return CommandResult.failure(STORE_ERROR, "La génération a échoué.")
        return CommandResult.success("Résumé généré.", draft)


def _is_valid(model_cls, data: dict) -> bool:
    try:
        model_cls.model_validate(data)
    except ValidationError as e:
        logger.info(f"Rejected {model_cls.__name__}: {e.error_count()} error(s)")
        return False
    return True


def build_request(model_cls, **fields) -> Optional[BaseModel]:
    """Validate form input into a request model, None (logged) when invalid."""
    try:
        return model_cls.model_validate(fields)
    except ValidationError as e:
        logger.info(f"Rejected {model_cls.__name__}: {e.error_count()} error(s)")
        return None
