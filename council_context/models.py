"""Core domain models.

Snapshot-side records are frozen: a Snapshot is acquired once per processing
pass and never mutated afterwards. Everything derived from it
(ProcessedContext, Index) is rebuilt wholesale on every pass.
Pydantic is used for validation and serialisation at every data boundary.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

ChatMode = Literal["standard", "compact", "detailed"]

LoreCategory = Literal["character", "location", "faction", "lore", "general"]

TimelineEventType = Literal["user_message", "character_message"]


def _now() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Snapshot (immutable per pass)
# ---------------------------------------------------------------------------

class Message(BaseModel):
    """A single chat message as seen at acquisition time."""

    model_config = ConfigDict(frozen=True)

    speaker: str = ""
    text: str = ""
    is_user: bool = False
    is_system: bool = False
    timestamp: str = ""
    variant_id: int | None = None  # swipe index on the host side


class LoreEntry(BaseModel):
    """A keyed block of world text, injected by keyword trigger on the host."""

    model_config = ConfigDict(frozen=True)

    keys: list[str] = Field(default_factory=list)
    content: str = ""
    comment: str = ""
    disabled: bool = False


class CharacterProfile(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str = "Unknown"
    description: str = ""
    personality: str = ""
    scenario: str = ""
    first_message: str = ""
    message_examples: str = ""
    system_prompt: str = ""
    post_history_instructions: str = ""
    creator_notes: str = ""
    tags: list[str] = Field(default_factory=list)


class CharacterSummary(BaseModel):
    """Lightweight per-participant record for group chats."""

    model_config = ConfigDict(frozen=True)

    name: str = "Unknown"
    description: str = ""
    personality: str = ""


class Snapshot(BaseModel):
    """Point-in-time capture of the host session for one processing pass."""

    model_config = ConfigDict(frozen=True)

    messages: list[Message] = Field(default_factory=list)
    lore_entries: list[LoreEntry] = Field(default_factory=list)
    character: CharacterProfile = Field(default_factory=CharacterProfile)
    participants: dict[str, CharacterSummary] = Field(default_factory=dict)
    user_name: str = "User"
    character_name: str = "Unknown"
    chat_id: str = ""
    group_id: str = ""
    acquired_at: datetime = Field(default_factory=_now)


# ---------------------------------------------------------------------------
# Formatter output
# ---------------------------------------------------------------------------

class ChatBlock(BaseModel):
    text: str = ""
    messages: list[Message] = Field(default_factory=list)
    entries: list[dict[str, Any]] = Field(default_factory=list)  # detailed mode only
    speakers: set[str] = Field(default_factory=set)
    included_count: int = 0
    total_count: int = 0


class LoreBlock(BaseModel):
    text: str = ""
    entries: list[LoreEntry] = Field(default_factory=list)
    by_category: dict[str, list[LoreEntry]] = Field(default_factory=dict)
    included_count: int = 0
    total_count: int = 0


class CharacterBlock(BaseModel):
    text: str = ""
    sections: dict[str, str] = Field(default_factory=dict)
    has_content: bool = False


# ---------------------------------------------------------------------------
# Extraction output
# ---------------------------------------------------------------------------

class Entity(BaseModel):
    name: str
    type: str = ""
    description: str = ""
    source: str = ""
    mentions: int = 1


class EntitySet(BaseModel):
    """Extracted entities, each sub-index keyed by lowercased name."""

    characters: dict[str, Entity] = Field(default_factory=dict)
    locations: dict[str, Entity] = Field(default_factory=dict)
    factions: dict[str, Entity] = Field(default_factory=dict)
    items: dict[str, Entity] = Field(default_factory=dict)
    candidates: dict[str, int] = Field(default_factory=dict)  # name -> occurrences


class TimelineEvent(BaseModel):
    index: int
    type: TimelineEventType
    speaker: str
    summary: str
    timestamp: str = ""
    full_text: str = ""


class Relationship(BaseModel):
    subject: str
    predicate: str
    object: str = "unknown"
    source: str = "character_card"


RelationshipSet = dict[str, Relationship]


# ---------------------------------------------------------------------------
# Processed context + index
# ---------------------------------------------------------------------------

class StoreSnapshot(BaseModel):
    """Values read from the external persistent store at process() time."""

    current_situation: Any = None
    story_synopsis: Any = None
    story_outline: Any = None
    story_draft: Any = None
    plot_lines: Any = None
    active_plots: list[Any] = Field(default_factory=list)
    scenes: Any = None
    current_scene: Any = None
    recent_scenes: list[Any] = Field(default_factory=list)
    characters: Any = None
    present_characters: list[Any] = Field(default_factory=list)
    character_development: Any = None
    character_positions: Any = None
    character_inventory: Any = None
    locations: Any = None
    factions: Any = None
    recent_dialogue: list[Any] = Field(default_factory=list)
    summary: dict[str, Any] = Field(default_factory=dict)


class TokenEstimate(BaseModel):
    per_section: dict[str, int] = Field(default_factory=dict)
    total: int = 0


class ProcessedContext(BaseModel):
    chat: ChatBlock
    lore: LoreBlock
    character: CharacterBlock
    entities: EntitySet
    timeline: list[TimelineEvent] = Field(default_factory=list)
    relationships: RelationshipSet = Field(default_factory=dict)
    store_data: StoreSnapshot | None = None
    tokens: TokenEstimate = Field(default_factory=TokenEstimate)
    processed_at: datetime = Field(default_factory=_now)


class Index(BaseModel):
    characters: dict[str, Entity] = Field(default_factory=dict)
    locations: dict[str, Entity] = Field(default_factory=dict)
    factions: dict[str, Entity] = Field(default_factory=dict)
    items: dict[str, Entity] = Field(default_factory=dict)
    keywords: dict[str, list[LoreEntry]] = Field(default_factory=dict)
    timeline: list[TimelineEvent] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Retrieval + routing
# ---------------------------------------------------------------------------

class RelevanceHit(BaseModel):
    source: str  # "lore_entries" | "chat_messages" | "character_sections" | "stores"
    content: str
    label: str = ""  # lore header, speaker, or section name
    score: int


class ConsumerProfile(BaseModel):
    """A pipeline-stage consumer and the context it declares it needs."""

    name: str
    context_needs: list[str] = Field(default_factory=list)
    prompt: str = ""  # optional Handlebars template
    keywords: list[str] = Field(default_factory=list)
    domain: str = ""


class AgentContextBundle(BaseModel):
    consumer_id: str
    consumer_name: str
    phase: str | None = None
    sections: dict[str, Any] = Field(default_factory=dict)
    formatted: str = ""
