"""
Pydantic v2 data models — the contract for all stored content.

Every write to MongoDB passes through these models first.
If validation fails, nothing is written.
"""

from models.campaign import (
    BestiaryCreature,
    Campaign,
    CampaignStatus,
    Chapter,
    Character,
    CharacterRelation,
    CreatureType,
    DangerLevel,
    MapMarker,
    MarkerType,
    RelationType,
    Universe,
)
from models.chapter_draft import ChapterDraft
from models.lore import EventType, Importance, LoreArticle, LoreCategory, WorldEra, WorldEvent
from models.session import PlannedSession, SessionPlayer, SessionStatus

__all__ = [
    "BestiaryCreature",
    "Campaign",
    "CampaignStatus",
    "Chapter",
    "ChapterDraft",
    "Character",
    "CharacterRelation",
    "CreatureType",
    "DangerLevel",
    "EventType",
    "Importance",
    "LoreArticle",
    "LoreCategory",
    "MapMarker",
    "MarkerType",
    "PlannedSession",
    "RelationType",
    "SessionPlayer",
    "SessionStatus",
    "Universe",
    "WorldEra",
    "WorldEvent",
]
