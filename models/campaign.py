"""
Campaign schemas — campaigns, chapters, characters, map markers, bestiary.

These models gate ALL writes to the campaigns, chapters and characters
collections. Enumerations are closed: unknown strings coming back from the
store are normalised to a safe member instead of leaking through.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional
from uuid import uuid4

from pydantic import BaseModel, Field, field_validator


def _new_id() -> str:
    return str(uuid4())


def _coerce(enum_cls, value, default):
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value).lower())
    except ValueError:
        return default


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------

class Universe(str, Enum):
    VALTHERA = "valthera"
    HORS_SERIE = "hors-serie"


class CampaignStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    HIATUS = "hiatus"


class RelationType(str, Enum):
    ALLY = "ally"
    ENEMY = "enemy"
    FAMILY = "family"
    ROMANTIC = "romantic"
    RIVAL = "rival"
    MENTOR = "mentor"
    NEUTRAL = "neutral"


class MarkerType(str, Enum):
    CITY = "city"
    DUNGEON = "dungeon"
    LANDMARK = "landmark"
    CAMP = "camp"
    BATTLE = "battle"
    QUEST = "quest"
    TREASURE = "treasure"
    DANGER = "danger"


class CreatureType(str, Enum):
    BEAST = "beast"
    HUMANOID = "humanoid"
    UNDEAD = "undead"
    DRAGON = "dragon"
    DEMON = "demon"
    ELEMENTAL = "elemental"
    CONSTRUCT = "construct"
    ABERRATION = "aberration"
    CELESTIAL = "celestial"
    FEY = "fey"
    GIANT = "giant"
    OOZE = "ooze"
    PLANT = "plant"
    MONSTROSITY = "monstrosity"


class DangerLevel(str, Enum):
    TRIVIAL = "trivial"
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"
    DEADLY = "deadly"
    LEGENDARY = "legendary"


# ---------------------------------------------------------------------------
# Display tables (keyed by enum member, completeness checked in tests)
# ---------------------------------------------------------------------------

UNIVERSE_LABELS: Dict[Universe, str] = {
    Universe.VALTHERA: "Valthera",
    Universe.HORS_SERIE: "Hors-Série",
}

CAMPAIGN_STATUS_LABELS: Dict[CampaignStatus, str] = {
    CampaignStatus.ACTIVE: "En cours",
    CampaignStatus.COMPLETED: "Terminée",
    CampaignStatus.HIATUS: "En pause",
}

RELATION_LABELS: Dict[RelationType, str] = {
    RelationType.ALLY: "Allié",
    RelationType.ENEMY: "Ennemi",
    RelationType.FAMILY: "Famille",
    RelationType.ROMANTIC: "Romance",
    RelationType.RIVAL: "Rival",
    RelationType.MENTOR: "Mentor",
    RelationType.NEUTRAL: "Neutre",
}

# Seen from the target's side of the relation
INVERSE_RELATION_LABELS: Dict[RelationType, str] = {
    RelationType.ALLY: "Allié de",
    RelationType.ENEMY: "Ennemi de",
    RelationType.FAMILY: "Famille de",
    RelationType.ROMANTIC: "Romance avec",
    RelationType.RIVAL: "Rival de",
    RelationType.MENTOR: "Élève de",
    RelationType.NEUTRAL: "Neutre avec",
}

MARKER_ICONS: Dict[MarkerType, str] = {
    MarkerType.CITY: "\U0001f3f0",
    MarkerType.DUNGEON: "\U0001f480",
    MarkerType.LANDMARK: "\U0001f5ff",
    MarkerType.CAMP: "⛺",
    MarkerType.BATTLE: "⚔️",
    MarkerType.QUEST: "❗",
    MarkerType.TREASURE: "\U0001f48e",
    MarkerType.DANGER: "⚠️",
}

MARKER_LABELS: Dict[MarkerType, str] = {
    MarkerType.CITY: "Ville/Cité",
    MarkerType.DUNGEON: "Donjon",
    MarkerType.LANDMARK: "Point de repère",
    MarkerType.CAMP: "Campement",
    MarkerType.BATTLE: "Bataille",
    MarkerType.QUEST: "Quête",
    MarkerType.TREASURE: "Trésor",
    MarkerType.DANGER: "Danger",
}

DANGER_LABELS: Dict[DangerLevel, str] = {
    DangerLevel.TRIVIAL: "Trivial",
    DangerLevel.EASY: "Facile",
    DangerLevel.MEDIUM: "Moyen",
    DangerLevel.HARD: "Difficile",
    DangerLevel.DEADLY: "Mortel",
    DangerLevel.LEGENDARY: "Légendaire",
}


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------

class MapMarker(BaseModel):
    """A pin on the campaign map. Coordinates are percentages of the image."""

    id: str = Field(default_factory=_new_id)
    x: float = Field(ge=0, le=100)
    y: float = Field(ge=0, le=100)
    label: str
    type: MarkerType = MarkerType.LANDMARK
    description: Optional[str] = None
    linked_chapter_id: Optional[str] = None
    icon: Optional[str] = None

    @field_validator("type", mode="before")
    @classmethod
    def validate_type(cls, v):
        return _coerce(MarkerType, v, MarkerType.LANDMARK)

    @property
    def display_icon(self) -> str:
        return self.icon or MARKER_ICONS[self.type]


class BestiaryCreature(BaseModel):
    """A creature the party has met."""

    id: str = Field(default_factory=_new_id)
    name: str
    type: CreatureType = CreatureType.MONSTROSITY
    danger_level: DangerLevel = DangerLevel.MEDIUM
    image_url: Optional[str] = None
    description: str = ""
    habitat: Optional[str] = None
    abilities: List[str] = []
    loot: List[str] = []
    encountered_in_chapter: Optional[str] = None
    is_defeated: bool = False
    notes: Optional[str] = None

    @field_validator("type", mode="before")
    @classmethod
    def validate_type(cls, v):
        return _coerce(CreatureType, v, CreatureType.MONSTROSITY)

    @field_validator("danger_level", mode="before")
    @classmethod
    def validate_danger(cls, v):
        return _coerce(DangerLevel, v, DangerLevel.MEDIUM)


class CharacterRelation(BaseModel):
    target_id: str
    type: RelationType = RelationType.NEUTRAL
    description: Optional[str] = None

    @field_validator("type", mode="before")
    @classmethod
    def validate_type(cls, v):
        return _coerce(RelationType, v, RelationType.NEUTRAL)


class Character(BaseModel):
    """A player character or NPC attached to a campaign."""

    id: str = Field(default_factory=_new_id)
    name: str
    species: str = ""
    char_class: str = Field(alias="class", default="")
    description: str = ""
    player: str = ""
    image_url: str = ""
    image_position: Optional[str] = None
    is_npc: bool = False
    relations: List[CharacterRelation] = []

    model_config = {"extra": "allow", "populate_by_name": True}


class Chapter(BaseModel):
    """Write-up of one played session's in-fiction events."""

    id: str = Field(default_factory=_new_id)
    campaign_id: str = ""
    title: str
    summary: str = ""
    highlights: List[str] = []
    loot: List[str] = []
    youtube_link: Optional[str] = None
    session_date: str = ""
    order: int = Field(default=1, ge=0)


class Campaign(BaseModel):
    """A single RPG storyline with its chapters, cast, map and bestiary."""

    id: str = Field(default_factory=_new_id)
    title: str
    universe: Universe = Universe.VALTHERA
    pitch: str = ""
    status: CampaignStatus = CampaignStatus.ACTIVE
    image_url: str = ""
    map_image_url: Optional[str] = None
    map_markers: List[MapMarker] = []
    bestiary: List[BestiaryCreature] = []
    characters: List[Character] = []
    chapters: List[Chapter] = []
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @field_validator("universe", mode="before")
    @classmethod
    def validate_universe(cls, v):
        return _coerce(Universe, v, Universe.HORS_SERIE)

    @field_validator("status", mode="before")
    @classmethod
    def validate_status(cls, v):
        # The store historically used "paused" for hiatus
        if isinstance(v, str) and v.lower() == "paused":
            return CampaignStatus.HIATUS
        return _coerce(CampaignStatus, v, CampaignStatus.ACTIVE)

    def get_chapter(self, chapter_id: str) -> Optional[Chapter]:
        return next((c for c in self.chapters if c.id == chapter_id), None)

    def get_character(self, character_id: str) -> Optional[Character]:
        return next((c for c in self.characters if c.id == character_id), None)
