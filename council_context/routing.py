"""Need-driven context routing for pipeline-stage consumers.

Every consumer declares a list of context needs. route_for_consumer() turns
them into labeled sections, then format_for_prompt() serialises the
sections into a prompt string under a character budget.

Each need reads the processed snapshot first and falls back to a live call
on the external store. Need identifiers outside ContextNeed are skipped.

Section keys are camelCase; their headers come from format_section_name():
"currentSituation" -> "Current Situation".
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any

from pydantic import BaseModel

from .models import AgentContextBundle, ConsumerProfile, ProcessedContext, StoreSnapshot
from .stores import call_accessor, store_get

logger = logging.getLogger(__name__)

NOT_ESTABLISHED = "Not established"


class ContextNeed(str, Enum):
    USER_INPUT = "user_input"  # supplied by the pipeline itself
    CURRENT_SITUATION = "current_situation"  # always included
    STORY_SYNOPSIS = "story_synopsis"
    STORY_OUTLINE = "story_outline"
    STORY_DRAFT = "story_draft"
    PLOT_LINES = "plot_lines"
    SCENES = "scenes"
    DIALOGUE_HISTORY = "dialogue_history"
    CHARACTER_SHEETS = "character_sheets"
    CHARACTER_DEVELOPMENT = "character_development"
    CHARACTER_POSITIONS = "character_positions"
    CHARACTER_INVENTORY = "character_inventory"
    CHARACTER_RELATIONSHIPS = "character_relationships"
    FACTION_SHEETS = "faction_sheets"
    LOCATION_SHEETS = "location_sheets"
    WORLD_INFO = "world_info"
    ENVIRONMENT_DETAILS = "environment_details"
    ALL_STORES = "all_stores"


def parse_need(raw: str) -> ContextNeed | None:
    try:
        return ContextNeed(raw)
    except ValueError:
        logger.debug("Unknown context need %r, skipped", raw)
        return None


# ---------------------------------------------------------------------------
# Need handlers
# ---------------------------------------------------------------------------

def _present(value: Any) -> bool:
    """False for empty values and for dicts whose fields are all empty."""
    if not value:
        return False
    if isinstance(value, dict):
        return any(value.values())
    return True


def _first_present(*values: Any) -> Any:
    for value in values:
        if _present(value):
            return value
    return None


def _as_list(value: Any) -> Any:
    # Sheet stores are keyed by id; consumers want the records.
    if isinstance(value, dict):
        return list(value.values())
    return value


@dataclass
class _RouteInputs:
    processed: ProcessedContext | None
    store: Any
    recent_scenes: int
    recent_dialogue: int

    @property
    def stored(self) -> StoreSnapshot:
        if self.processed is not None and self.processed.store_data is not None:
            return self.processed.store_data
        return StoreSnapshot()


_Handler = Callable[[_RouteInputs], dict[str, Any]]


def _from_key(section: str, field: str, store_key: str) -> _Handler:
    def handler(inputs: _RouteInputs) -> dict[str, Any]:
        return {section: _first_present(
            getattr(inputs.stored, field), store_get(inputs.store, store_key),
        )}
    return handler


def _nothing(inputs: _RouteInputs) -> dict[str, Any]:
    return {}


def _plot_lines(inputs: _RouteInputs) -> dict[str, Any]:
    return {"plotLines": _first_present(
        inputs.stored.active_plots, call_accessor(inputs.store, "active_plot_lines"),
    )}


def _scenes(inputs: _RouteInputs) -> dict[str, Any]:
    return {"recentScenes": _first_present(
        inputs.stored.recent_scenes,
        call_accessor(inputs.store, "recent_scenes", inputs.recent_scenes),
    )}


def _dialogue(inputs: _RouteInputs) -> dict[str, Any]:
    return {"dialogueHistory": _first_present(
        inputs.stored.recent_dialogue,
        call_accessor(inputs.store, "recent_dialogue", inputs.recent_dialogue),
    )}


def _characters(inputs: _RouteInputs) -> dict[str, Any]:
    return {"characters": _first_present(
        inputs.stored.present_characters, call_accessor(inputs.store, "present_characters"),
    )}


def _relationships(inputs: _RouteInputs) -> dict[str, Any]:
    if inputs.processed is None:
        return {"relationships": None}
    return {"relationships": [
        r.model_dump() for r in inputs.processed.relationships.values()
    ]}


def _factions(inputs: _RouteInputs) -> dict[str, Any]:
    return {"factions": _first_present(
        _as_list(inputs.stored.factions), call_accessor(inputs.store, "all_factions"),
    )}


def _locations(inputs: _RouteInputs) -> dict[str, Any]:
    return {"locations": _first_present(
        _as_list(inputs.stored.locations), call_accessor(inputs.store, "all_locations"),
    )}


def _world_info(inputs: _RouteInputs) -> dict[str, Any]:
    if inputs.processed is None:
        return {"worldInfo": None}
    return {"worldInfo": inputs.processed.lore.text}


def _environment(inputs: _RouteInputs) -> dict[str, Any]:
    sections = {"currentScene": _first_present(
        inputs.stored.current_scene, call_accessor(inputs.store, "current_scene"),
    )}
    sections.update(_locations(inputs))
    return sections


def _all_stores(inputs: _RouteInputs) -> dict[str, Any]:
    return {"storeSummary": _first_present(
        inputs.stored.summary, call_accessor(inputs.store, "summary"),
    )}


_NEED_HANDLERS: dict[ContextNeed, _Handler] = {
    ContextNeed.USER_INPUT: _nothing,
    ContextNeed.CURRENT_SITUATION: _nothing,
    ContextNeed.STORY_SYNOPSIS: _from_key("storySynopsis", "story_synopsis", "storySynopsis"),
    ContextNeed.STORY_OUTLINE: _from_key("storyOutline", "story_outline", "storyOutline"),
    ContextNeed.STORY_DRAFT: _from_key("storyDraft", "story_draft", "storyDraft"),
    ContextNeed.PLOT_LINES: _plot_lines,
    ContextNeed.SCENES: _scenes,
    ContextNeed.DIALOGUE_HISTORY: _dialogue,
    ContextNeed.CHARACTER_SHEETS: _characters,
    ContextNeed.CHARACTER_DEVELOPMENT: _from_key(
        "characterDevelopment", "character_development", "characterDevelopment",
    ),
    ContextNeed.CHARACTER_POSITIONS: _from_key(
        "characterPositions", "character_positions", "characterPositions",
    ),
    ContextNeed.CHARACTER_INVENTORY: _from_key(
        "characterInventory", "character_inventory", "characterInventory",
    ),
    ContextNeed.CHARACTER_RELATIONSHIPS: _relationships,
    ContextNeed.FACTION_SHEETS: _factions,
    ContextNeed.LOCATION_SHEETS: _locations,
    ContextNeed.WORLD_INFO: _world_info,
    ContextNeed.ENVIRONMENT_DETAILS: _environment,
    ContextNeed.ALL_STORES: _all_stores,
}

_unhandled = set(ContextNeed) - set(_NEED_HANDLERS)
if _unhandled:
    raise RuntimeError(f"Context needs without a handler: {sorted(n.value for n in _unhandled)}")


def _current_situation(inputs: _RouteInputs) -> Any:
    return _first_present(
        inputs.stored.current_situation,
        call_accessor(inputs.store, "current_situation"),
        store_get(inputs.store, "currentSituation"),
    ) or NOT_ESTABLISHED


# ---------------------------------------------------------------------------
# Routing
# ---------------------------------------------------------------------------

def route_for_consumer(
    consumer_id: str,
    profile: ConsumerProfile,
    phase: str | None,
    processed: ProcessedContext | None,
    stores: Any = None,
    *,
    max_length: int = 4000,
    recent_scenes: int = 5,
    recent_dialogue: int = 15,
) -> AgentContextBundle:
    """Assemble the context bundle one consumer asked for."""
    inputs = _RouteInputs(
        processed=processed,
        store=stores,
        recent_scenes=recent_scenes,
        recent_dialogue=recent_dialogue,
    )
    sections: dict[str, Any] = {"currentSituation": _current_situation(inputs)}

    for raw in profile.context_needs:
        need = parse_need(raw)
        if need is None:
            continue
        sections.update(_NEED_HANDLERS[need](inputs))

    formatted = format_for_prompt(sections, max_length=max_length)
    logger.debug(
        "routed consumer=%s phase=%s sections=%d formatted_len=%d",
        consumer_id, phase, len(sections), len(formatted),
    )
    return AgentContextBundle(
        consumer_id=consumer_id,
        consumer_name=profile.name,
        phase=phase,
        sections=sections,
        formatted=formatted,
    )


# ---------------------------------------------------------------------------
# Prompt serialisation
# ---------------------------------------------------------------------------

SECTION_JOINER = "\n\n"


def format_section_name(key: str) -> str:
    """'currentSituation' -> 'Current Situation'."""
    spaced = re.sub(r"([A-Z])", r" \1", key).strip()
    return spaced[:1].upper() + spaced[1:]


def format_object(obj: Mapping[str, Any]) -> str:
    """Use an embedded summary/formatted field, else bullet the scalar fields."""
    if obj.get("summary"):
        return str(obj["summary"])
    if obj.get("formatted"):
        return str(obj["formatted"])

    lines = []
    for key, value in obj.items():
        if value and not isinstance(value, (dict, list, tuple, set)):
            lines.append(f"- {format_section_name(key)}: {value}")
    return "\n".join(lines)


def format_section(key: str, value: Any) -> str:
    """Render one section as a "### Header" line followed by its body."""
    if isinstance(value, BaseModel):
        value = value.model_dump()
    if isinstance(value, str):
        body = value
    elif isinstance(value, (list, tuple)):
        body = json.dumps(value, indent=2, default=str)
    elif isinstance(value, Mapping):
        body = format_object(value)
    else:
        body = str(value)
    return f"### {format_section_name(key)}\n{body}"


def format_for_prompt(sections: Mapping[str, Any], max_length: int = 4000) -> str:
    """Serialise sections in order, skipping empty ones.

    A section is kept only if the running length (joiners included) stays
    under max_length; a section that does not fit is dropped whole and later,
    smaller sections may still be added.
    """
    parts: list[str] = []
    total = 0
    for key, value in sections.items():
        if not value:
            continue
        formatted = format_section(key, value)
        cost = len(formatted) + (len(SECTION_JOINER) if parts else 0)
        if total + cost < max_length:
            parts.append(formatted)
            total += cost
    return SECTION_JOINER.join(parts)


# ---------------------------------------------------------------------------
# Expert detection
# ---------------------------------------------------------------------------

def detect_needed_experts(text: str, pool: Mapping[str, ConsumerProfile]) -> list[dict[str, str]]:
    """Return the consumers whose keywords occur in text.

    One record per consumer, for the first keyword that matched.
    """
    text_lower = text.lower()
    needed: list[dict[str, str]] = []
    for consumer_id, profile in pool.items():
        for keyword in profile.keywords:
            if keyword and keyword.lower() in text_lower:
                needed.append({
                    "id": consumer_id,
                    "name": profile.name,
                    "domain": profile.domain,
                    "matched_keyword": keyword,
                })
                break
    return needed
