"""ContextEngine: the per-session context object.

Lifecycle:

    engine = ContextEngine(source)      empty; nothing acquired yet
    engine.acquire()                    pull a fresh Snapshot from the host
    engine.process(stores)              Formatter -> Extractor -> Index -> Tokens
    engine.query(...) / engine.route_for_consumer(...)
    engine.clear()                      drop snapshot, processed context, index, cache

Each process() call rebuilds everything from the current snapshot. A
failed acquisition leaves the last good snapshot, processed context and
index untouched. One engine serves one processing pass at a time; callers
must not run process() concurrently on the same instance.
"""

from __future__ import annotations

import logging
from collections.abc import Collection
from typing import Any

from .acquire import SessionSource, acquire
from .config import default_config
from .extraction import build_timeline, extract_entities, extract_relationships
from .formatting import format_character, format_chat, format_lore
from .indexing import build_index
from .models import (
    AgentContextBundle,
    ConsumerProfile,
    Index,
    ProcessedContext,
    RelevanceHit,
    Snapshot,
)
from .relevance import ALL_SOURCES, RelevanceWeights
from .relevance import query as relevance_query
from .routing import route_for_consumer
from .stores import integrate_stores
from .tokens import estimate_tokens

logger = logging.getLogger(__name__)


class ContextEngine:
    """Holds the snapshot, processed context and index for one session."""

    def __init__(self, source: SessionSource, config: dict[str, Any] | None = None) -> None:
        self._source = source
        self._config = config if config is not None else default_config()
        self._weights = RelevanceWeights(
            **self._config["relevance_weights"],
            max_gap=self._config["proximity_max_gap"],
        )
        self._snapshot: Snapshot | None = None
        self._processed: ProcessedContext | None = None
        self._index = Index()
        self._relevance_cache: dict[tuple, list[RelevanceHit]] = {}

    @property
    def config(self) -> dict[str, Any]:
        return self._config

    # ------------------------------------------------------------------
    # Pass
    # ------------------------------------------------------------------

    def acquire(self) -> Snapshot:
        """Replace the current snapshot with a fresh one from the host.

        Raises AcquisitionError; the previous state is kept in that case.
        """
        snapshot = acquire(self._source)
        self._snapshot = snapshot
        self._relevance_cache.clear()
        return snapshot

    def process(self, stores: Any = None) -> ProcessedContext:
        """Build the processed context and index from the current snapshot.

        Acquires a snapshot first if none is held yet.
        """
        if self._snapshot is None:
            self.acquire()
        snapshot = self._snapshot
        assert snapshot is not None
        cfg = self._config

        processed = ProcessedContext(
            chat=format_chat(
                snapshot.messages,
                max_messages=cfg["chat_max_messages"],
                compact_max_chars=cfg["compact_max_chars"],
            ),
            lore=format_lore(snapshot.lore_entries),
            character=format_character(snapshot.character),
            entities=extract_entities(snapshot, chat_window=cfg["entity_chat_window"]),
            timeline=build_timeline(snapshot, summary_chars=cfg["timeline_summary_chars"]),
            relationships=extract_relationships(snapshot),
            store_data=integrate_stores(
                stores,
                recent_scenes=cfg["store_recent_scenes"],
                recent_dialogue=cfg["store_recent_dialogue"],
            ) if stores is not None else None,
        )
        index = build_index(processed, snapshot)
        processed.tokens = estimate_tokens(processed)

        self._processed = processed
        self._index = index
        self._relevance_cache.clear()
        logger.info(
            "processed context messages=%d lore=%d tokens=%d",
            len(snapshot.messages), processed.lore.included_count, processed.tokens.total,
        )
        return processed

    # ------------------------------------------------------------------
    # Retrieval
    # ------------------------------------------------------------------

    def query(
        self,
        text: str,
        *,
        max_results: int | None = None,
        min_score: int | None = None,
        sources: Collection[str] = ALL_SOURCES,
    ) -> list[RelevanceHit]:
        """Rank excerpts of the current snapshot against text.

        Returns [] before any snapshot has been acquired.
        """
        if self._snapshot is None:
            return []
        max_results = self._config["query_max_results"] if max_results is None else max_results
        min_score = self._config["query_min_score"] if min_score is None else min_score

        key = (text, max_results, min_score, frozenset(sources))
        cached = self._relevance_cache.get(key)
        if cached is not None:
            return list(cached)

        hits = relevance_query(
            self._snapshot,
            text,
            store_data=self._processed.store_data if self._processed else None,
            max_results=max_results,
            min_score=min_score,
            sources=sources,
            weights=self._weights,
            chat_window=self._config["query_chat_window"],
        )
        self._relevance_cache[key] = hits
        return list(hits)

    def route_for_consumer(
        self,
        consumer_id: str,
        profile: ConsumerProfile,
        phase: str | None = None,
        stores: Any = None,
    ) -> AgentContextBundle:
        return route_for_consumer(
            consumer_id,
            profile,
            phase,
            self._processed,
            stores,
            max_length=self._config["prompt_max_length"],
            recent_scenes=self._config["store_recent_scenes"],
            recent_dialogue=self._config["route_recent_dialogue"],
        )

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def get_raw(self) -> Snapshot | None:
        return self._snapshot

    def get_processed(self) -> ProcessedContext | None:
        return self._processed

    def get_index(self) -> Index:
        return self._index

    def clear(self) -> None:
        self._snapshot = None
        self._processed = None
        self._index = Index()
        self._relevance_cache.clear()

    def summary(self) -> dict[str, Any]:
        """Debug overview of what the engine currently holds."""
        snapshot = self._snapshot
        return {
            "has_snapshot": snapshot is not None,
            "has_processed": self._processed is not None,
            "chat_messages": len(snapshot.messages) if snapshot else 0,
            "lore_entries": len(snapshot.lore_entries) if snapshot else 0,
            "has_character": bool(snapshot and snapshot.character.name != "Unknown"),
            "entities": {
                "characters": len(self._index.characters),
                "locations": len(self._index.locations),
            },
            "keywords": len(self._index.keywords),
            "cached_queries": len(self._relevance_cache),
            "tokens": self._processed.tokens.model_dump() if self._processed else {},
        }
