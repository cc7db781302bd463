"""Lookup structures over a processed snapshot.

The index is rebuilt from scratch on every pass; there is no incremental
update path. Keyword buckets hold lore entries in insertion order, so an
entry with N keys appears once in each of its N buckets.
"""

from __future__ import annotations

from .models import Index, LoreEntry, ProcessedContext, Snapshot


def build_index(processed: ProcessedContext, snapshot: Snapshot) -> Index:
    index = Index(
        characters=dict(processed.entities.characters),
        locations=dict(processed.entities.locations),
        factions=dict(processed.entities.factions),
        items=dict(processed.entities.items),
    )

    for entry in snapshot.lore_entries:
        for key in entry.keys:
            index.keywords.setdefault(key.lower(), []).append(entry)

    # Shared reference, not a copy
    index.timeline = processed.timeline
    return index


def lookup_keywords(index: Index, text: str) -> list[LoreEntry]:
    """Return lore entries whose key occurs in text (case-insensitive substring).

    Each entry appears once, ordered by the first of its keys that matched,
    in keyword-index order.
    """
    text_lower = text.lower()
    matched: list[LoreEntry] = []
    seen: set[int] = set()
    for key, entries in index.keywords.items():
        if not key or key not in text_lower:
            continue
        for entry in entries:
            if id(entry) not in seen:
                seen.add(id(entry))
                matched.append(entry)
    return matched
