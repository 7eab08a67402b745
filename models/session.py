"""
Planned session schema — real-world play dates shown on the calendar.

A planned session is the scheduling concept (when the table meets), distinct
from a Chapter (what happened in the fiction). Status is authoritative: the
calendar never derives it from the clock.
"""

import logging
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional
from uuid import uuid4

from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger("SessionModel")


class SessionStatus(str, Enum):
    SCHEDULED = "scheduled"
    LIVE = "live"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    def can_transition_to(self, target: "SessionStatus") -> bool:
        """scheduled → live → completed, cancelled from scheduled or live."""
        return target in _TRANSITIONS[self]

    @property
    def is_terminal(self) -> bool:
        return not _TRANSITIONS[self]


_TRANSITIONS = {
    SessionStatus.SCHEDULED: {SessionStatus.LIVE, SessionStatus.CANCELLED},
    SessionStatus.LIVE: {SessionStatus.COMPLETED, SessionStatus.CANCELLED},
    SessionStatus.COMPLETED: set(),
    SessionStatus.CANCELLED: set(),
}


class SessionPlayer(BaseModel):
    """A player invited to a session."""

    id: str = Field(default_factory=lambda: f"player_{uuid4().hex[:12]}")
    name: str
    confirmed: bool = False

    model_config = {"extra": "allow"}


class PlannedSession(BaseModel):
    """Schema for a planned play session."""

    id: str = Field(default_factory=lambda: str(uuid4()))
    campaign_id: str
    title: str
    description: str = ""
    scheduled_date: Optional[datetime] = None
    duration: int = Field(default=180, ge=1)
    status: SessionStatus = SessionStatus.SCHEDULED
    twitch_link: Optional[str] = None
    youtube_link: Optional[str] = None
    is_live: bool = False
    players: List[SessionPlayer] = []
    max_players: Optional[int] = Field(default=None, ge=1)

    notification_sent: bool = False
    notification_sent_at: Optional[datetime] = None
    reminder_sent: bool = False
    gm_notes: Optional[str] = None
    public_notes: Optional[str] = None
    linked_chapter_id: Optional[str] = None

    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    # Enrichment from the owning campaign, never stored
    campaign_title: Optional[str] = Field(default=None, exclude=True)
    universe: Optional[str] = Field(default=None, exclude=True)
    campaign_image: Optional[str] = Field(default=None, exclude=True)

    model_config = {"extra": "ignore"}

    @field_validator("scheduled_date", mode="before")
    @classmethod
    def lenient_date(cls, v):
        """Unparsable dates become None so the calendar can skip them."""
        if v is None or isinstance(v, datetime):
            return v
        if isinstance(v, str):
            try:
                return datetime.fromisoformat(v.strip().replace("Z", "+00:00"))
            except ValueError:
                logger.warning(f"Ignoring malformed scheduled_date: {v!r}")
                return None
        logger.warning(f"Ignoring scheduled_date of type {type(v).__name__}")
        return None

    @field_validator("status", mode="before")
    @classmethod
    def validate_status(cls, v):
        if isinstance(v, SessionStatus):
            return v
        try:
            return SessionStatus(str(v).lower())
        except ValueError:
            return SessionStatus.SCHEDULED

    @property
    def confirmed_count(self) -> int:
        return sum(1 for p in self.players if p.confirmed)

    @property
    def is_full(self) -> bool:
        return self.max_players is not None and len(self.players) >= self.max_players
