"""Deterministic lexical relevance scoring and ranked retrieval.

score(text, query):
  1. case-fold both sides (str.casefold)
  2. + exact      if the whole query is a substring of the text
  3. + keyword    for every query word (len > 2) found as a substring
  4. + proximity  once, if at least two words were found and the mean gap
                  between their sorted first-occurrence offsets is < 50

The `partial` weight is accepted for configuration compatibility but not
applied anywhere.
"""

from __future__ import annotations

import logging
from collections.abc import Collection, Iterator

from pydantic import BaseModel

from .formatting import lore_header
from .models import RelevanceHit, Snapshot, StoreSnapshot

logger = logging.getLogger(__name__)

LORE_ENTRIES = "lore_entries"
CHAT_MESSAGES = "chat_messages"
CHARACTER_SECTIONS = "character_sections"
STORES = "stores"

ALL_SOURCES = frozenset({LORE_ENTRIES, CHAT_MESSAGES, CHARACTER_SECTIONS, STORES})


class RelevanceWeights(BaseModel):
    exact: int = 10
    partial: int = 5  # reserved, unused
    keyword: int = 3
    proximity: int = 2
    max_gap: int = 50


DEFAULT_WEIGHTS = RelevanceWeights()


def query_words(query: str) -> list[str]:
    return [w for w in query.casefold().split() if len(w) > 2]


def score(text: str, query: str, weights: RelevanceWeights = DEFAULT_WEIGHTS) -> int:
    """Score text against a query. Never negative, no upper bound."""
    if not text or not query.strip():
        return 0

    text_lower = text.casefold()
    query_lower = query.casefold()
    total = 0

    if query_lower in text_lower:
        total += weights.exact

    words = query_words(query)
    positions: list[int] = []
    for word in words:
        pos = text_lower.find(word)
        if pos >= 0:
            total += weights.keyword
            positions.append(pos)

    if len(positions) > 1:
        positions.sort()
        gaps = [b - a for a, b in zip(positions, positions[1:])]
        if sum(gaps) / len(gaps) < weights.max_gap:
            total += weights.proximity

    return total


# ---------------------------------------------------------------------------
# Candidate units per source
# ---------------------------------------------------------------------------

# (source, scored text, returned content, label)
_Unit = tuple[str, str, str, str]


def _lore_units(snapshot: Snapshot) -> Iterator[_Unit]:
    for entry in snapshot.lore_entries:
        if not entry.content or entry.disabled:
            continue
        header = lore_header(entry)
        # Header participates in scoring so a comment/key match counts.
        yield LORE_ENTRIES, f"{header}\n{entry.content}", entry.content, header


def _chat_units(snapshot: Snapshot, window: int) -> Iterator[_Unit]:
    recent = snapshot.messages[-window:] if window > 0 else []
    for msg in recent:
        yield CHAT_MESSAGES, msg.text, msg.text, msg.speaker


def _character_units(snapshot: Snapshot) -> Iterator[_Unit]:
    for field, value in snapshot.character.model_dump().items():
        if isinstance(value, str) and value:
            yield CHARACTER_SECTIONS, value, value, field


def _store_units(store_data: StoreSnapshot | None) -> Iterator[_Unit]:
    if store_data is None:
        return
    for field, value in store_data.model_dump().items():
        if isinstance(value, dict):
            value = value.get("summary") or value.get("formatted")
        if isinstance(value, str) and value:
            yield STORES, value, value, field


def query(
    snapshot: Snapshot,
    query_text: str,
    *,
    store_data: StoreSnapshot | None = None,
    max_results: int = 10,
    min_score: int = 1,
    sources: Collection[str] = ALL_SOURCES,
    weights: RelevanceWeights = DEFAULT_WEIGHTS,
    chat_window: int = 30,
) -> list[RelevanceHit]:
    """Rank excerpts from the enabled sources against query_text.

    Results are sorted by score descending; ties keep encounter order
    (lore, chat, character, stores). Every hit scores >= min_score.
    """
    unknown = set(sources) - ALL_SOURCES
    if unknown:
        logger.debug("Ignoring unknown relevance sources %s", sorted(unknown))

    units: list[_Unit] = []
    if LORE_ENTRIES in sources:
        units.extend(_lore_units(snapshot))
    if CHAT_MESSAGES in sources:
        units.extend(_chat_units(snapshot, chat_window))
    if CHARACTER_SECTIONS in sources:
        units.extend(_character_units(snapshot))
    if STORES in sources:
        units.extend(_store_units(store_data))

    hits: list[RelevanceHit] = []
    for source, text, content, label in units:
        value = score(text, query_text, weights)
        if value >= min_score:
            hits.append(RelevanceHit(source=source, content=content, label=label, score=value))

    # sorted() is stable, also with reverse=True
    hits = sorted(hits, key=lambda h: h.score, reverse=True)
    return hits[:max(max_results, 0)]
