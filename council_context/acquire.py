"""Snapshot acquisition from the host application.

The host hands over a SillyTavern-shaped context dict:

    {
      "chat": [{"name", "mes", "is_user", "is_system", "send_date", "swipe_id"}, ...],
      "characters": [...] | {id: {...}},   character cards
      "characterId": <index/id of the active card>,
      "name1": "<user name>", "name2": "<character name>",
      "worldInfo": [{"key": [...], "content", "comment", "disable"}, ...],
      "chatId": ..., "groupId": ...
    }

Every field is optional. Missing or wrong-shaped values fall back to their
defaults (empty list, empty string, "Unknown" for an unresolved character
name) and never fail the pass. Only an unreachable host raises
AcquisitionError.
"""

from __future__ import annotations

import logging
from typing import Any, Protocol

import httpx

from .errors import AcquisitionError
from .models import CharacterProfile, CharacterSummary, LoreEntry, Message, Snapshot

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Protocol: every host adapter must match this signature
# ---------------------------------------------------------------------------

class SessionSource(Protocol):
    def get_context(self) -> dict[str, Any]: ...


class StaticSessionSource:
    """Serves a fixed raw context dict. Used by the CLI, the API and tests."""

    def __init__(self, raw: dict[str, Any]) -> None:
        self._raw = raw

    def get_context(self) -> dict[str, Any]:
        return self._raw


class HttpSessionSource:
    """Fetches the raw context dict from the host over HTTP.

    Args:
        url:     Endpoint returning the context as a JSON object.
        api_key: Bearer token, or empty string if not required.
        timeout: HTTP timeout in seconds.
    """

    def __init__(self, url: str, api_key: str = "", timeout: float = 30.0) -> None:
        self._url = url
        self._api_key = api_key
        self._timeout = timeout

    def _headers(self) -> dict[str, str]:
        headers: dict[str, str] = {"Accept": "application/json"}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"
        return headers

    def get_context(self) -> dict[str, Any]:
        logger.debug("fetching host context url=%s", self._url)
        try:
            with httpx.Client(timeout=self._timeout) as client:
                resp = client.get(self._url, headers=self._headers())
                resp.raise_for_status()
        except httpx.ConnectError as e:
            raise AcquisitionError(f"Cannot connect to host at {self._url}") from e
        except httpx.HTTPStatusError as e:
            raise AcquisitionError(f"Host returned HTTP {e.response.status_code}") from e
        except httpx.TimeoutException as e:
            raise AcquisitionError(f"Host timed out after {self._timeout}s") from e

        try:
            data = resp.json()
        except ValueError as e:
            raise AcquisitionError("Host returned a non-JSON body") from e
        return data


# ---------------------------------------------------------------------------
# Field coercion
# ---------------------------------------------------------------------------

def _text(value: Any, field: str, default: str = "") -> str:
    if value is None:
        return default
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    logger.debug("Malformed field %s=%r, using default", field, value)
    return default


def _flag(value: Any) -> bool:
    return value is True or value == 1


def _list(value: Any, field: str) -> list:
    if value is None:
        return []
    if isinstance(value, list):
        return value
    logger.debug("Malformed field %s (expected list), using []", field)
    return []


def _message(raw: Any, user_name: str) -> Message | None:
    if not isinstance(raw, dict):
        logger.debug("Skipping malformed chat message %r", raw)
        return None
    is_user = _flag(raw.get("is_user"))
    swipe = raw.get("swipe_id")
    return Message(
        speaker=user_name if is_user else _text(raw.get("name"), "name", "Unknown"),
        text=_text(raw.get("mes"), "mes"),
        is_user=is_user,
        is_system=_flag(raw.get("is_system")),
        timestamp=_text(raw.get("send_date"), "send_date"),
        variant_id=swipe if isinstance(swipe, int) and not isinstance(swipe, bool) else None,
    )


def _lore_entry(raw: Any) -> LoreEntry | None:
    if not isinstance(raw, dict):
        logger.debug("Skipping malformed lore entry %r", raw)
        return None
    keys = raw.get("key", raw.get("keys"))
    if isinstance(keys, str):
        keys = [k.strip() for k in keys.split(",") if k.strip()]
    return LoreEntry(
        keys=[k for k in _list(keys, "key") if isinstance(k, str)],
        content=_text(raw.get("content"), "content"),
        comment=_text(raw.get("comment"), "comment"),
        disabled=_flag(raw.get("disable", raw.get("disabled"))),
    )


def _world_info(raw: Any) -> list[Any]:
    # SillyTavern stores world books as {"entries": {uid: entry}} on disk
    if isinstance(raw, dict):
        entries = raw.get("entries", {})
        if isinstance(entries, dict):
            return list(entries.values())
        return _list(entries, "worldInfo.entries")
    return _list(raw, "worldInfo")


def _character_cards(raw: Any) -> dict[str, dict]:
    if isinstance(raw, list):
        return {str(i): c for i, c in enumerate(raw) if isinstance(c, dict)}
    if isinstance(raw, dict):
        return {str(k): c for k, c in raw.items() if isinstance(c, dict)}
    if raw is not None:
        logger.debug("Malformed field characters, using {}")
    return {}


def _character_profile(context: dict[str, Any], cards: dict[str, dict]) -> CharacterProfile:
    char_id = context.get("characterId")
    card = cards.get(str(char_id), {}) if char_id is not None else {}
    name = _text(context.get("name2"), "name2") or _text(card.get("name"), "name") or "Unknown"
    tags = [t for t in _list(card.get("tags"), "tags") if isinstance(t, str)]
    return CharacterProfile(
        name=name,
        description=_text(card.get("description"), "description"),
        personality=_text(card.get("personality"), "personality"),
        scenario=_text(card.get("scenario"), "scenario"),
        first_message=_text(card.get("first_mes"), "first_mes"),
        message_examples=_text(card.get("mes_example"), "mes_example"),
        system_prompt=_text(card.get("system_prompt"), "system_prompt"),
        post_history_instructions=_text(
            card.get("post_history_instructions"), "post_history_instructions"
        ),
        creator_notes=_text(card.get("creator_notes"), "creator_notes"),
        tags=tags,
    )


def snapshot_from_raw(context: dict[str, Any]) -> Snapshot:
    """Build a Snapshot from a raw host context dict. Never raises."""
    user_name = _text(context.get("name1"), "name1") or "User"
    cards = _character_cards(context.get("characters"))
    character = _character_profile(context, cards)

    messages = [
        m for m in (_message(raw, user_name) for raw in _list(context.get("chat"), "chat"))
        if m is not None
    ]
    lore_entries = [
        e for e in (_lore_entry(raw) for raw in _world_info(context.get("worldInfo")))
        if e is not None
    ]
    participants = {
        char_id: CharacterSummary(
            name=_text(card.get("name"), "name") or "Unknown",
            description=_text(card.get("description"), "description"),
            personality=_text(card.get("personality"), "personality"),
        )
        for char_id, card in cards.items()
    }

    return Snapshot(
        messages=messages,
        lore_entries=lore_entries,
        character=character,
        participants=participants,
        user_name=user_name,
        character_name=character.name,
        chat_id=_text(context.get("chatId"), "chatId"),
        group_id=_text(context.get("groupId"), "groupId"),
    )


def acquire(source: SessionSource) -> Snapshot:
    """Pull a point-in-time snapshot from the host.

    Raises AcquisitionError if the host call fails or does not return a dict.
    """
    try:
        context = source.get_context()
    except AcquisitionError:
        raise
    except Exception as e:
        raise AcquisitionError(f"Host session unavailable: {e}") from e
    if not isinstance(context, dict):
        raise AcquisitionError(
            f"Host context must be an object, got {type(context).__name__}"
        )
    snapshot = snapshot_from_raw(context)
    logger.debug(
        "acquired snapshot messages=%d lore=%d character=%s",
        len(snapshot.messages), len(snapshot.lore_entries), snapshot.character_name,
    )
    return snapshot
