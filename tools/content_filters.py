"""
Content Filters — Search and grouping for the bestiary, the lore wiki and timelines.

Filter selections are small state objects handed in by the caller (one per
view), never module globals. All functions return new lists; inputs are not
mutated.
"""

import re
from dataclasses import dataclass
from typing import Dict, List, Optional

from models.campaign import BestiaryCreature, Chapter, CreatureType, DangerLevel
from models.lore import LoreArticle, LoreCategory, WorldEra, WorldEvent

_YOUTUBE_ID = re.compile(
    r"(?:youtube\.com/watch\?v=|youtu\.be/|youtube\.com/embed/)([a-zA-Z0-9_-]{11})"
)
_BARE_ID = re.compile(r"^[a-zA-Z0-9_-]{11}$")


# ----------------------------------------------------------------------
# Bestiary
# ----------------------------------------------------------------------

@dataclass
class BestiaryFilter:
    creature_type: Optional[CreatureType] = None
    danger: Optional[DangerLevel] = None
    defeated_only: bool = False
    query: str = ""

    @property
    def is_active(self) -> bool:
        return bool(self.creature_type or self.danger or self.defeated_only or self.query)

    def matches(self, creature: BestiaryCreature) -> bool:
        if self.creature_type and creature.type != self.creature_type:
            return False
        if self.danger and creature.danger_level != self.danger:
            return False
        if self.defeated_only and not creature.is_defeated:
            return False
        if self.query:
            q = self.query.lower()
            return (
                q in creature.name.lower()
                or q in creature.description.lower()
                or q in (creature.habitat or "").lower()
            )
        return True

    def apply(self, creatures: List[BestiaryCreature]) -> List[BestiaryCreature]:
        return [c for c in creatures if self.matches(c)]


def bestiary_stats(creatures: List[BestiaryCreature]) -> Dict[str, int]:
    return {
        "total": len(creatures),
        "defeated": sum(1 for c in creatures if c.is_defeated),
        "legendary": sum(1 for c in creatures if c.danger_level == DangerLevel.LEGENDARY),
    }


# ----------------------------------------------------------------------
# Lore wiki
# ----------------------------------------------------------------------

@dataclass
class LoreFilter:
    category: Optional[LoreCategory] = None
    query: str = ""

    def matches(self, article: LoreArticle) -> bool:
        if self.category and article.category != self.category:
            return False
        q = self.query.strip().lower()
        if q:
            return (
                q in article.title.lower()
                or q in article.content.lower()
                or any(q in tag.lower() for tag in article.tags)
            )
        return True

    def apply(self, articles: List[LoreArticle]) -> List[LoreArticle]:
        return sorted((a for a in articles if self.matches(a)), key=lambda a: a.title.lower())


def category_counts(articles: List[LoreArticle]) -> Dict[LoreCategory, int]:
    counts: Dict[LoreCategory, int] = {}
    for article in articles:
        counts[article.category] = counts.get(article.category, 0) + 1
    return counts


def related_articles(article: LoreArticle, articles: List[LoreArticle]) -> List[LoreArticle]:
    if not article.related_articles:
        return []
    wanted = set(article.related_articles)
    return [a for a in articles if a.id in wanted]


# ----------------------------------------------------------------------
# Timelines
# ----------------------------------------------------------------------

def filter_events(events: List[WorldEvent], era: Optional[WorldEra] = None) -> List[WorldEvent]:
    """Events by ascending year, optionally restricted to one era."""
    ordered = sorted(events, key=lambda e: e.year)
    if era is None:
        return ordered
    return [e for e in ordered if e.era == era]


def events_by_era(events: List[WorldEvent]) -> Dict[WorldEra, List[WorldEvent]]:
    """Every era is present (possibly empty), each sorted by year."""
    grouped: Dict[WorldEra, List[WorldEvent]] = {era: [] for era in WorldEra}
    for event in events:
        grouped[event.era].append(event)
    for era in grouped:
        grouped[era].sort(key=lambda e: e.year)
    return grouped


def sort_chapters(chapters: List[Chapter]) -> List[Chapter]:
    return sorted(chapters, key=lambda c: c.order)


# ----------------------------------------------------------------------
# Video links
# ----------------------------------------------------------------------

def extract_youtube_id(url: Optional[str]) -> Optional[str]:
    """Video id from a watch/short/embed link, or a bare 11-char id."""
    if not url:
        return None
    match = _YOUTUBE_ID.search(url)
    if match:
        return match.group(1)
    if _BARE_ID.match(url.strip()):
        return url.strip()
    return None
