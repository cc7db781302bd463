"""Render snapshot fragments (chat, lore, character card) into text blocks.

All three formatters are total: any input within the Snapshot model yields
a block, possibly with placeholder text, and none of them raise.

Chat line format (standard):   Speaker: text      (lines joined by a blank line)
Lore entry format:             [header]:\\ncontent (entries joined by ---)
Character format:              # Name / ## Section\\nbody
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from typing import Any

from .models import (
    CharacterBlock,
    CharacterProfile,
    ChatBlock,
    ChatMode,
    LoreBlock,
    LoreCategory,
    LoreEntry,
    Message,
)

NO_CHAT_TEXT = "No chat history."
NO_LORE_TEXT = "No world info available."
LORE_SEPARATOR = "\n\n---\n\n"


# ── Chat ─────────────────────────────────────────────────


def _compact(text: str, limit: int) -> str:
    return text[:limit] + ("..." if len(text) > limit else "")


def format_chat(
    messages: Sequence[Message],
    *,
    max_messages: int = 50,
    include_system: bool = False,
    mode: ChatMode = "standard",
    compact_max_chars: int = 200,
) -> ChatBlock:
    """Format the most recent chat messages.

    System messages are filtered out first (unless include_system), then the
    last max_messages of what remains are kept, so the result is always a
    suffix of the filtered history in chronological order.
    """
    if not messages:
        return ChatBlock(text=NO_CHAT_TEXT, total_count=0)

    eligible = [m for m in messages if include_system or not m.is_system]
    selected = eligible[-max_messages:] if max_messages > 0 else []

    speakers: set[str] = set()
    lines: list[str] = []
    entries: list[dict[str, Any]] = []
    for msg in selected:
        speakers.add(msg.speaker)
        if mode == "detailed":
            entries.append({
                "speaker": msg.speaker,
                "content": msg.text,
                "is_user": msg.is_user,
                "timestamp": msg.timestamp,
                "variant_id": msg.variant_id,
            })
        elif mode == "compact":
            lines.append(f"{msg.speaker}: {_compact(msg.text, compact_max_chars)}")
        else:
            lines.append(f"{msg.speaker}: {msg.text}")

    return ChatBlock(
        text="\n\n".join(lines),
        messages=list(selected),
        entries=entries,
        speakers=speakers,
        included_count=len(selected),
        total_count=len(messages),
    )


# ── Lore ─────────────────────────────────────────────────


def _comment_contains(word: str) -> Callable[[str], bool]:
    return lambda comment: word in comment


# Evaluated top to bottom against the lowercased comment; first match wins.
CATEGORY_RULES: list[tuple[Callable[[str], bool], LoreCategory]] = [
    (_comment_contains("character"), "character"),
    (_comment_contains("location"), "location"),
    (_comment_contains("faction"), "faction"),
    (_comment_contains("lore"), "lore"),
]


def categorize_entry(entry: LoreEntry) -> LoreCategory:
    """Return the category of a lore entry from its comment."""
    comment = entry.comment.lower()
    for predicate, category in CATEGORY_RULES:
        if predicate(comment):
            return category
    return "general"


def lore_header(entry: LoreEntry) -> str:
    return entry.comment or ", ".join(entry.keys) or "Entry"


def render_lore_entry(entry: LoreEntry) -> str:
    return f"[{lore_header(entry)}]:\n{entry.content}"


def format_lore(entries: Sequence[LoreEntry], *, include_disabled: bool = False) -> LoreBlock:
    """Format lore entries, dropping empty and (by default) disabled ones."""
    if not entries:
        return LoreBlock(text=NO_LORE_TEXT, total_count=0)

    kept = [
        e for e in entries
        if e.content and (include_disabled or not e.disabled)
    ]

    by_category: dict[str, list[LoreEntry]] = {}
    for entry in kept:
        by_category.setdefault(categorize_entry(entry), []).append(entry)

    return LoreBlock(
        text=LORE_SEPARATOR.join(render_lore_entry(e) for e in kept),
        entries=kept,
        by_category=by_category,
        included_count=len(kept),
        total_count=len(entries),
    )


# ── Character ────────────────────────────────────────────

# (section key, profile field, heading)
_CHARACTER_SECTIONS = [
    ("description", "description", "Description"),
    ("personality", "personality", "Personality"),
    ("scenario", "scenario", "Scenario"),
    ("system_prompt", "system_prompt", "System Instructions"),
]


def format_character(profile: CharacterProfile | None) -> CharacterBlock:
    """Render the non-empty sections of a character card in fixed order.

    has_content is True only when something beyond the name rendered.
    """
    if profile is None:
        return CharacterBlock(text="No character data.")

    sections: dict[str, str] = {}
    parts: list[str] = []
    if profile.name:
        sections["name"] = profile.name
        parts.append(f"# {profile.name}")

    for key, field, heading in _CHARACTER_SECTIONS:
        value = getattr(profile, field)
        if value:
            sections[key] = value
            parts.append(f"## {heading}\n{value}")

    return CharacterBlock(
        text="\n\n".join(parts),
        sections=sections,
        has_content=any(key != "name" for key in sections),
    )
