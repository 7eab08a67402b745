"""
Lore schemas — wiki articles and the world timeline.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional, Tuple
from uuid import uuid4

from pydantic import BaseModel, Field, field_validator


class LoreCategory(str, Enum):
    GEOGRAPHY = "geography"
    HISTORY = "history"
    FACTIONS = "factions"
    CHARACTERS = "characters"
    MAGIC = "magic"
    RELIGION = "religion"
    CREATURES = "creatures"
    CULTURE = "culture"
    MISC = "misc"


class WorldEra(str, Enum):
    AGE_OF_DAWN = "age-of-dawn"
    AGE_OF_EMPIRES = "age-of-empires"
    AGE_OF_SHADOWS = "age-of-shadows"
    AGE_OF_REBIRTH = "age-of-rebirth"
    CURRENT_AGE = "current-age"


class EventType(str, Enum):
    WAR = "war"
    DISCOVERY = "discovery"
    FOUNDING = "founding"
    CATASTROPHE = "catastrophe"
    POLITICAL = "political"
    MAGICAL = "magical"
    DIVINE = "divine"


class Importance(str, Enum):
    MINOR = "minor"
    MAJOR = "major"
    LEGENDARY = "legendary"


LORE_CATEGORY_LABELS: Dict[LoreCategory, str] = {
    LoreCategory.GEOGRAPHY: "Géographie",
    LoreCategory.HISTORY: "Histoire",
    LoreCategory.FACTIONS: "Factions",
    LoreCategory.CHARACTERS: "Personnages",
    LoreCategory.MAGIC: "Magie",
    LoreCategory.RELIGION: "Religion",
    LoreCategory.CREATURES: "Créatures",
    LoreCategory.CULTURE: "Culture",
    LoreCategory.MISC: "Divers",
}

LORE_CATEGORY_ICONS: Dict[LoreCategory, str] = {
    LoreCategory.GEOGRAPHY: "\U0001f5fa️",
    LoreCategory.HISTORY: "\U0001f4dc",
    LoreCategory.FACTIONS: "⚔️",
    LoreCategory.CHARACTERS: "\U0001f464",
    LoreCategory.MAGIC: "✨",
    LoreCategory.RELIGION: "\U0001f64f",
    LoreCategory.CREATURES: "\U0001f409",
    LoreCategory.CULTURE: "\U0001f3ad",
    LoreCategory.MISC: "\U0001f4da",
}

WORLD_ERA_LABELS: Dict[WorldEra, str] = {
    WorldEra.AGE_OF_DAWN: "L'Âge de l'Aube",
    WorldEra.AGE_OF_EMPIRES: "L'Âge des Empires",
    WorldEra.AGE_OF_SHADOWS: "L'Âge des Ombres",
    WorldEra.AGE_OF_REBIRTH: "L'Âge du Renouveau",
    WorldEra.CURRENT_AGE: "L'Âge Actuel",
}

# (start, end) in Valthera years; the current age is open-ended
WORLD_ERA_YEARS: Dict[WorldEra, Tuple[int, Optional[int]]] = {
    WorldEra.AGE_OF_DAWN: (0, 1000),
    WorldEra.AGE_OF_EMPIRES: (1001, 2500),
    WorldEra.AGE_OF_SHADOWS: (2501, 3200),
    WorldEra.AGE_OF_REBIRTH: (3201, 3800),
    WorldEra.CURRENT_AGE: (3801, None),
}

EVENT_TYPE_LABELS: Dict[EventType, str] = {
    EventType.WAR: "Guerre",
    EventType.DISCOVERY: "Découverte",
    EventType.FOUNDING: "Fondation",
    EventType.CATASTROPHE: "Catastrophe",
    EventType.POLITICAL: "Politique",
    EventType.MAGICAL: "Magie",
    EventType.DIVINE: "Divin",
}

EVENT_TYPE_ICONS: Dict[EventType, str] = {
    EventType.WAR: "⚔️",
    EventType.DISCOVERY: "\U0001f50d",
    EventType.FOUNDING: "\U0001f3f0",
    EventType.CATASTROPHE: "\U0001f4a5",
    EventType.POLITICAL: "\U0001f451",
    EventType.MAGICAL: "✨",
    EventType.DIVINE: "✝️",
}


def era_for_year(year: int) -> WorldEra:
    """Find the era a Valthera year belongs to (years before 0 fall in the first age)."""
    for era, (start, end) in WORLD_ERA_YEARS.items():
        if year >= start and (end is None or year <= end):
            return era
    return WorldEra.AGE_OF_DAWN


class LoreArticle(BaseModel):
    """A wiki article about the world."""

    id: str = Field(default_factory=lambda: str(uuid4()))
    title: str
    slug: str
    category: LoreCategory = LoreCategory.MISC
    content: str = ""
    excerpt: Optional[str] = None
    image_url: Optional[str] = None
    tags: List[str] = []
    related_articles: List[str] = []
    linked_campaigns: List[str] = []
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @field_validator("category", mode="before")
    @classmethod
    def validate_category(cls, v):
        if isinstance(v, LoreCategory):
            return v
        try:
            return LoreCategory(str(v).lower())
        except ValueError:
            return LoreCategory.MISC

    @field_validator("slug")
    @classmethod
    def validate_slug(cls, v):
        return v.strip().lower()


class WorldEvent(BaseModel):
    """An entry on the world timeline."""

    id: str = Field(default_factory=lambda: str(uuid4()))
    title: str
    description: str = ""
    year: int
    era: WorldEra = WorldEra.CURRENT_AGE
    type: EventType = EventType.POLITICAL
    importance: Importance = Importance.MINOR
    image_url: Optional[str] = None
    related_article_id: Optional[str] = None
    linked_campaign_id: Optional[str] = None

    @field_validator("era", mode="before")
    @classmethod
    def validate_era(cls, v):
        if isinstance(v, WorldEra):
            return v
        try:
            return WorldEra(str(v).lower())
        except ValueError:
            return WorldEra.CURRENT_AGE

    @field_validator("type", mode="before")
    @classmethod
    def validate_type(cls, v):
        if isinstance(v, EventType):
            return v
        try:
            return EventType(str(v).lower())
        except ValueError:
            return EventType.POLITICAL

    @field_validator("importance", mode="before")
    @classmethod
    def validate_importance(cls, v):
        if isinstance(v, Importance):
            return v
        try:
            return Importance(str(v).lower())
        except ValueError:
            return Importance.MINOR
