import copy

import pytest

from council_context import InMemoryStore, snapshot_from_raw

HOST_CONTEXT = {
    "name1": "Aria",
    "name2": "Elena",
    "characterId": 0,
    "chatId": "chat-1",
    "characters": [
        {
            "name": "Elena",
            "description": (
                "Elena is the daughter of Marcus. She grew up in the Silver Harbor, "
                "where ships come and go. Elena's sword hangs at her side."
            ),
            "personality": "Curious and stubborn.",
            "scenario": "Elena travels to the Blackwood Forest.",
            "first_mes": "Hello, traveler.",
            "tags": ["fantasy"],
        },
    ],
    "chat": [
        {"name": "Elena", "mes": "We rest at the Old Mill, then move on.",
         "is_user": False, "send_date": "2024-01-01 10:00"},
        {"name": "Aria", "mes": "I want to go to the Blackwood Forest.",
         "is_user": True, "send_date": "2024-01-01 10:05"},
        {"name": "System", "mes": "Chat was branched.",
         "is_system": True, "send_date": "2024-01-01 10:06"},
        {"name": "Elena", "mes": "The forest is dark, but I know a path.",
         "is_user": False, "send_date": "2024-01-01 10:10", "swipe_id": 1},
    ],
    "worldInfo": [
        {"key": ["Blackwood", "forest"], "comment": "Blackwood Forest location",
         "content": "A dark forest.", "disable": False},
        {"key": ["Marcus"], "comment": "Marcus character",
         "content": "Marcus is a retired captain.", "disable": False},
        {"key": ["Guild"], "comment": "", "content": "", "disable": False},
        {"key": ["Old Order"], "comment": "Old Order faction",
         "content": "A secret society.", "disable": True},
    ],
}

STORE_DATA = {
    "storySynopsis": {"summary": "A quest for the lost crown."},
    "currentSituation": {"summary": "The party camps at the forest edge."},
    "plotLines": [
        {"id": "p1", "title": "Lost crown", "status": "active"},
        {"id": "p2", "title": "Old feud", "status": "resolved"},
    ],
    "scenes": [{"title": "Arrival"}, {"title": "Camp"}],
    "characterSheets": {
        "elena": {"name": "Elena", "isPresent": True},
        "marcus": {"name": "Marcus", "isPresent": False},
    },
    "locationSheets": {"mill": {"name": "Old Mill"}},
    "factionSheets": {"order": {"name": "Old Order"}},
}


@pytest.fixture
def host_context() -> dict:
    """A fresh deep copy of the sample host context for each test."""
    return copy.deepcopy(HOST_CONTEXT)


@pytest.fixture
def snapshot(host_context):
    return snapshot_from_raw(host_context)


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore(copy.deepcopy(STORE_DATA))


@pytest.fixture
def store_data() -> dict:
    return copy.deepcopy(STORE_DATA)
