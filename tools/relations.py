"""
Character relations — derive both sides of every relationship.

Relations are stored one-way on the character who declares them. The
gallery shows each character's own relations plus the ones other
characters declare towards them, relabelled from the target's side
("Mentor" becomes "Élève de").
"""

import logging
from dataclasses import dataclass
from typing import List, Optional

from models.campaign import (
    INVERSE_RELATION_LABELS,
    RELATION_LABELS,
    Character,
    CharacterRelation,
    RelationType,
)

logger = logging.getLogger("Relations")


@dataclass(frozen=True)
class RelationEntry:
    """A relation as seen from one character."""

    target_id: str
    type: RelationType
    description: Optional[str]
    is_direct: bool
    label: str


@dataclass(frozen=True)
class RelationPair:
    source: Character
    target: Character
    relation: CharacterRelation


def relations_for(character: Character, characters: List[Character]) -> List[RelationEntry]:
    """Direct relations first, then the inverse ones declared by others."""
    entries = [
        RelationEntry(
            target_id=rel.target_id,
            type=rel.type,
            description=rel.description,
            is_direct=True,
            label=RELATION_LABELS[rel.type],
        )
        for rel in character.relations
    ]

    for other in characters:
        if other.id == character.id:
            continue
        for rel in other.relations:
            if rel.target_id == character.id:
                entries.append(RelationEntry(
                    target_id=other.id,
                    type=rel.type,
                    description=rel.description,
                    is_direct=False,
                    label=INVERSE_RELATION_LABELS[rel.type],
                ))
    return entries


def unique_relation_pairs(characters: List[Character]) -> List[RelationPair]:
    """One entry per unordered pair of characters; the first declaration wins.

    Relations pointing at ids that are not in `characters` are dropped.
    """
    by_id = {c.id: c for c in characters}
    seen = set()
    pairs: List[RelationPair] = []
    for character in characters:
        for rel in character.relations:
            target = by_id.get(rel.target_id)
            if target is None:
                logger.debug(f"{character.name}: relation to unknown id {rel.target_id}")
                continue
            key = frozenset((character.id, target.id))
            if key in seen:
                continue
            seen.add(key)
            pairs.append(RelationPair(source=character, target=target, relation=rel))
    return pairs
