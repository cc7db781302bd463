"""Lexical entity, relationship and timeline extraction.

Extraction is heuristic and pattern based.

Entities
  names      \\b([A-Z][a-z]+(?:\\s+[A-Z][a-z]+)?)\\b  one or two capitalized words,
             counted into EntitySet.candidates
  locations  "in/at/to/from [the] X" before . , ; or where/which/that
             "called/named [the] X" before . , ;
             X must be 3–49 characters after stripping. Keyed by lowercased
             name, exact match only; repeats bump `mentions`.

Relationships (character description only)
  "A is/are [the] R of B"   → (A, R, B)
  "A's R"                    → (A, R, "unknown")
  Keyed "a_b" lowercased; first match for a key wins.
"""

from __future__ import annotations

import logging
import re

from .models import Entity, EntitySet, RelationshipSet, Relationship, Snapshot, TimelineEvent

logger = logging.getLogger(__name__)

NAME_PATTERN = re.compile(r"\b([A-Z][a-z]+(?:\s+[A-Z][a-z]+)?)\b")

LOCATION_PATTERNS = [
    re.compile(r"(?:in|at|to|from)\s+(?:the\s+)?([A-Z][a-zA-Z\s]+?)(?:\.|,|;|\s+(?:where|which|that))"),
    re.compile(r"(?:called|named)\s+(?:the\s+)?([A-Z][a-zA-Z\s]+?)(?:\.|,|;)"),
]

RELATIONSHIP_PATTERNS = [
    re.compile(r"(\w+)\s+(?:is|are)\s+(?:the\s+)?(\w+)\s+of\s+(\w+)", re.IGNORECASE),
    re.compile(r"(\w+)'s\s+(\w+)", re.IGNORECASE),
]

UNRESOLVED_NAME = "Unknown"


# ── Entities ─────────────────────────────────────────────


def extract_entities_from_text(text: str, source: str, entities: EntitySet) -> EntitySet:
    """Scan one text block and record name candidates and locations into entities."""
    if not text:
        return entities

    for match in NAME_PATTERN.finditer(text):
        name = match.group(1)
        entities.candidates[name] = entities.candidates.get(name, 0) + 1

    for pattern in LOCATION_PATTERNS:
        for match in pattern.finditer(text):
            location = match.group(1).strip()
            if not 2 < len(location) < 50:
                continue
            key = location.lower()
            existing = entities.locations.get(key)
            if existing is None:
                entities.locations[key] = Entity(
                    name=location, type="location", source=source, mentions=1,
                )
            else:
                existing.mentions += 1

    return entities


def extract_entities(snapshot: Snapshot, *, chat_window: int = 20) -> EntitySet:
    """Surface characters, locations and name candidates from the snapshot.

    Sources, in order: lore entry content, the character card (description
    and scenario), the last chat_window messages.
    """
    entities = EntitySet()

    for entry in snapshot.lore_entries:
        extract_entities_from_text(entry.content, entry.comment or "world_info", entities)

    card = snapshot.character
    if card.name and card.name != UNRESOLVED_NAME:
        entities.characters[card.name.lower()] = Entity(
            name=card.name,
            type="main",
            description=card.description,
            source="character_card",
        )
    extract_entities_from_text(card.description, "character_card", entities)
    extract_entities_from_text(card.scenario, "scenario", entities)

    recent = snapshot.messages[-chat_window:] if chat_window > 0 else []
    for msg in recent:
        extract_entities_from_text(msg.text, "chat", entities)

    logger.debug(
        "extracted characters=%d locations=%d candidates=%d",
        len(entities.characters), len(entities.locations), len(entities.candidates),
    )
    return entities


# ── Relationships ────────────────────────────────────────


def extract_relationships(snapshot: Snapshot) -> RelationshipSet:
    """Pull subject/predicate/object triples out of the character description."""
    relationships: RelationshipSet = {}
    text = snapshot.character.description
    if not text:
        return relationships

    for pattern in RELATIONSHIP_PATTERNS:
        for match in pattern.finditer(text):
            groups = match.groups()
            subject, predicate = groups[0], groups[1]
            obj = groups[2] if len(groups) > 2 and groups[2] else "unknown"
            key = f"{subject.lower()}_{obj.lower()}"
            if key in relationships:
                continue
            relationships[key] = Relationship(
                subject=subject, predicate=predicate, object=obj, source="character_card",
            )
    return relationships


# ── Timeline ─────────────────────────────────────────────


def build_timeline(snapshot: Snapshot, *, summary_chars: int = 100) -> list[TimelineEvent]:
    """One event per message, in message order."""
    timeline: list[TimelineEvent] = []
    for i, msg in enumerate(snapshot.messages):
        summary = msg.text[:summary_chars] + ("..." if len(msg.text) > summary_chars else "")
        timeline.append(TimelineEvent(
            index=i,
            type="user_message" if msg.is_user else "character_message",
            speaker=msg.speaker,
            summary=summary,
            timestamp=msg.timestamp,
            full_text=msg.text,
        ))
    return timeline
