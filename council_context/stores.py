"""External persistent-store adapter.

The story store is owned by another collaborator; this core only reads it.
A store must provide get(key); every named accessor is optional:

    current_situation()      current_scene()        active_plot_lines()
    recent_scenes(n)         present_characters()   recent_dialogue(n)
    all_factions()           all_locations()        summary()

A missing accessor is treated as returning nothing (None).

InMemoryStore is a dict-backed store with the same key layout as the
host's story store (storySynopsis, plotLines, scenes, characterSheets, ...).
"""

from __future__ import annotations

import logging
from typing import Any, Protocol

from .models import StoreSnapshot

logger = logging.getLogger(__name__)


class ExternalStore(Protocol):
    def get(self, key: str) -> Any: ...


def call_accessor(store: Any, name: str, *args: Any) -> Any:
    """Call an optional store accessor, returning None if the store lacks it."""
    if store is None:
        return None
    accessor = getattr(store, name, None)
    if not callable(accessor):
        logger.debug("Store has no accessor %s()", name)
        return None
    return accessor(*args)


def store_get(store: Any, key: str) -> Any:
    return call_accessor(store, "get", key)


def integrate_stores(
    store: Any,
    *,
    recent_scenes: int = 5,
    recent_dialogue: int = 20,
) -> StoreSnapshot:
    """Read everything the router may need from the store in one go."""
    return StoreSnapshot(
        current_situation=store_get(store, "currentSituation"),
        story_synopsis=store_get(store, "storySynopsis"),
        story_outline=store_get(store, "storyOutline"),
        story_draft=store_get(store, "storyDraft"),
        plot_lines=store_get(store, "plotLines"),
        active_plots=call_accessor(store, "active_plot_lines") or [],
        scenes=store_get(store, "scenes"),
        current_scene=call_accessor(store, "current_scene"),
        recent_scenes=call_accessor(store, "recent_scenes", recent_scenes) or [],
        characters=store_get(store, "characterSheets"),
        present_characters=call_accessor(store, "present_characters") or [],
        character_development=store_get(store, "characterDevelopment"),
        character_positions=store_get(store, "characterPositions"),
        character_inventory=store_get(store, "characterInventory"),
        locations=store_get(store, "locationSheets"),
        factions=store_get(store, "factionSheets"),
        recent_dialogue=call_accessor(store, "recent_dialogue", recent_dialogue) or [],
        summary=call_accessor(store, "summary") or {},
    )


# ---------------------------------------------------------------------------
# InMemoryStore
# ---------------------------------------------------------------------------

def _empty_synopsis() -> dict[str, str]:
    return {"who": "", "what": "", "when": "", "where": "", "why": "", "how": "", "summary": ""}


def empty_stores() -> dict[str, Any]:
    return {
        "storyDraft": "",
        "storyOutline": "",
        "storySynopsis": _empty_synopsis(),
        "plotLines": [],
        "scenes": [],
        "dialogueHistory": [],
        "characterSheets": {},
        "characterDevelopment": {},
        "characterInventory": {},
        "characterPositions": {},
        "factionSheets": {},
        "locationSheets": {},
        "currentSituation": _empty_synopsis(),
    }


def _records(value: Any) -> list[dict]:
    """Dict records from an id-keyed dict or a list; anything else is dropped."""
    if isinstance(value, dict):
        value = list(value.values())
    if not isinstance(value, (list, tuple)):
        return []
    return [v for v in value if isinstance(v, dict)]


class InMemoryStore:
    """Dict-backed story store.

    Stored values merge over empty defaults: dict-valued stores merge
    key-by-key, everything else is replaced. Accessors read only dict
    records; sheets may be stored id-keyed or as a list.
    """

    def __init__(self, data: dict[str, Any] | None = None) -> None:
        self._stores = empty_stores()
        for key, value in (data or {}).items():
            self.set(key, value)

    def get(self, key: str) -> Any:
        return self._stores.get(key)

    def set(self, key: str, value: Any) -> None:
        current = self._stores.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            self._stores[key] = {**current, **value}
        else:
            self._stores[key] = value

    def current_situation(self) -> Any:
        return self._stores["currentSituation"]

    def current_scene(self) -> dict | None:
        scenes = _records(self._stores["scenes"])
        return scenes[-1] if scenes else None

    def recent_scenes(self, count: int = 5) -> list[dict]:
        return _records(self._stores["scenes"])[-count:] if count > 0 else []

    def active_plot_lines(self) -> list[dict]:
        return [p for p in _records(self._stores["plotLines"]) if p.get("status") == "active"]

    def recent_dialogue(self, count: int = 20) -> list[dict]:
        return _records(self._stores["dialogueHistory"])[-count:] if count > 0 else []

    def all_characters(self) -> list[dict]:
        return _records(self._stores["characterSheets"])

    def present_characters(self) -> list[dict]:
        return [c for c in self.all_characters() if c.get("isPresent")]

    def all_locations(self) -> list[dict]:
        return _records(self._stores["locationSheets"])

    def all_factions(self) -> list[dict]:
        return _records(self._stores["factionSheets"])

    def summary(self) -> dict[str, Any]:
        characters = self.all_characters()
        current = self.current_scene()
        situation = self._stores["currentSituation"]
        if isinstance(situation, dict):
            situation = situation.get("summary")
        return {
            "plotLines": {
                "total": len(_records(self._stores["plotLines"])),
                "active": len(self.active_plot_lines()),
            },
            "scenes": {
                "total": len(_records(self._stores["scenes"])),
                "current": (current or {}).get("title", "None"),
            },
            "characters": {
                "total": len(characters),
                "present": len(self.present_characters()),
            },
            "locations": {"total": len(self.all_locations())},
            "factions": {"total": len(self.all_factions())},
            "dialogueEntries": len(_records(self._stores["dialogueHistory"])),
            "currentSituation": situation or "Not set",
        }
