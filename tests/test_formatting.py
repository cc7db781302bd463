"""Tests for chat, lore and character formatting."""

import itertools

import pytest

from council_context.formatting import (
    CATEGORY_RULES,
    NO_CHAT_TEXT,
    NO_LORE_TEXT,
    categorize_entry,
    format_character,
    format_chat,
    format_lore,
)
from council_context.models import CharacterProfile, LoreEntry, Message


def _msg(speaker: str, text: str, **kw) -> Message:
    return Message(speaker=speaker, text=text, **kw)


# ── format_chat ──────────────────────────────────────────────


def test_chat_empty_history():
    block = format_chat([])
    assert block.text == NO_CHAT_TEXT
    assert block.included_count == 0
    assert block.total_count == 0


def test_chat_standard_excludes_system(snapshot):
    block = format_chat(snapshot.messages)
    assert block.included_count == 3
    assert block.total_count == 4
    assert "Chat was branched." not in block.text
    assert block.text.startswith("Elena: We rest at the Old Mill")
    assert "\n\nAria: I want to go to the Blackwood Forest." in block.text
    assert block.speakers == {"Elena", "Aria"}


def test_chat_include_system(snapshot):
    block = format_chat(snapshot.messages, include_system=True)
    assert block.included_count == 4
    assert "System: Chat was branched." in block.text


def test_chat_max_messages_keeps_later_message():
    msgs = [
        _msg("Elena", "First.", timestamp="2024-01-01 10:00"),
        _msg("Elena", "Ten minutes later.", timestamp="2024-01-01 10:10"),
    ]
    block = format_chat(msgs, max_messages=1)
    assert block.included_count == 1
    assert block.messages[0].text == "Ten minutes later."
    assert block.text == "Elena: Ten minutes later."


def test_chat_window_counts_after_system_filter():
    msgs = [
        _msg("A", "one"),
        _msg("B", "two"),
        _msg("Sys", "note", is_system=True),
    ]
    block = format_chat(msgs, max_messages=2)
    assert [m.text for m in block.messages] == ["one", "two"]


@pytest.mark.parametrize("n", [0, 1, 2, 3, 5, 50])
def test_chat_returns_suffix_of_filtered_history(n):
    msgs = [
        _msg("A", f"m{i}", is_system=(i % 3 == 0))
        for i in range(10)
    ]
    eligible = [m for m in msgs if not m.is_system]
    block = format_chat(msgs, max_messages=n)
    assert block.included_count == min(n, len(eligible))
    expected = eligible[len(eligible) - block.included_count:]
    assert block.messages == expected


def test_chat_compact_truncates():
    long_text = "x" * 250
    block = format_chat([_msg("A", long_text), _msg("B", "short")], mode="compact")
    lines = block.text.split("\n\n")
    assert lines[0] == "A: " + "x" * 200 + "..."
    assert lines[1] == "B: short"


def test_chat_compact_exact_limit_has_no_ellipsis():
    block = format_chat([_msg("A", "y" * 200)], mode="compact")
    assert block.text == "A: " + "y" * 200


def test_chat_detailed_keeps_structure(snapshot):
    block = format_chat(snapshot.messages, mode="detailed")
    assert block.text == ""
    assert len(block.entries) == 3
    last = block.entries[-1]
    assert last == {
        "speaker": "Elena",
        "content": "The forest is dark, but I know a path.",
        "is_user": False,
        "timestamp": "2024-01-01 10:10",
        "variant_id": 1,
    }


# ── format_lore ──────────────────────────────────────────────


def test_lore_empty():
    block = format_lore([])
    assert block.text == NO_LORE_TEXT
    assert block.included_count == 0


def test_lore_drops_empty_and_disabled(snapshot):
    block = format_lore(snapshot.lore_entries)
    assert block.included_count == 2
    assert block.total_count == 4
    assert "A secret society." not in block.text


def test_lore_include_disabled(snapshot):
    block = format_lore(snapshot.lore_entries, include_disabled=True)
    assert block.included_count == 3
    assert "[Old Order faction]:\nA secret society." in block.text


def test_lore_rendering(snapshot):
    block = format_lore(snapshot.lore_entries)
    assert block.text == (
        "[Blackwood Forest location]:\nA dark forest."
        "\n\n---\n\n"
        "[Marcus character]:\nMarcus is a retired captain."
    )


def test_lore_header_falls_back_to_keys_then_entry():
    entries = [
        LoreEntry(keys=["dragon", "fire"], content="Hot."),
        LoreEntry(content="Nameless."),
    ]
    block = format_lore(entries)
    assert "[dragon, fire]:\nHot." in block.text
    assert "[Entry]:\nNameless." in block.text


def test_lore_by_category(snapshot):
    block = format_lore(snapshot.lore_entries)
    assert [e.content for e in block.by_category["location"]] == ["A dark forest."]
    assert [e.content for e in block.by_category["character"]] == ["Marcus is a retired captain."]


@pytest.mark.parametrize("comment,category", [
    ("Main Character", "character"),
    ("Character location", "character"),  # first rule wins
    ("Location of the faction", "location"),
    ("FACTION", "faction"),
    ("world lore", "lore"),
    ("misc", "general"),
    ("", "general"),
])
def test_categorize_entry(comment, category):
    assert categorize_entry(LoreEntry(comment=comment, content="x")) == category


def test_category_rules_order():
    assert [category for _, category in CATEGORY_RULES] == [
        "character", "location", "faction", "lore",
    ]


def test_lore_included_count_property():
    variants = itertools.product(["", "text"], [False, True])
    entries = [LoreEntry(content=c, disabled=d) for c, d in variants] * 2
    for include_disabled in (False, True):
        block = format_lore(entries, include_disabled=include_disabled)
        expected = sum(
            1 for e in entries if e.content and (include_disabled or not e.disabled)
        )
        assert block.included_count == expected


# ── format_character ─────────────────────────────────────────


def test_character_name_only_has_no_content():
    block = format_character(CharacterProfile(name="Elena"))
    assert block.has_content is False
    assert block.text == "# Elena"
    assert block.sections == {"name": "Elena"}


def test_character_full_card(snapshot):
    block = format_character(snapshot.character)
    assert block.has_content is True
    assert list(block.sections) == ["name", "description", "personality", "scenario"]
    assert block.text.startswith("# Elena\n\n## Description\nElena is the daughter")
    assert "## Personality\nCurious and stubborn." in block.text


def test_character_system_prompt_section():
    block = format_character(CharacterProfile(name="Gareth", system_prompt="Stay in character."))
    assert block.text == "# Gareth\n\n## System Instructions\nStay in character."
    assert block.has_content is True


def test_character_excludes_unlisted_fields():
    block = format_character(CharacterProfile(name="Gareth", first_message="Hi."))
    assert "Hi." not in block.text
    assert block.has_content is False


def test_character_none():
    block = format_character(None)
    assert block.has_content is False
