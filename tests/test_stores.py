"""Tests for the external-store adapter and the dict-backed InMemoryStore."""

from council_context import InMemoryStore, integrate_stores
from council_context.stores import call_accessor, empty_stores, store_get


class GetOnlyStore:
    """A store exposing nothing but get()."""

    def __init__(self, data: dict) -> None:
        self.data = data

    def get(self, key: str):
        return self.data.get(key)


# ── InMemoryStore ────────────────────────────────────────────


def test_empty_store_defaults():
    store = InMemoryStore()
    assert store.get("plotLines") == []
    assert store.get("storySynopsis")["summary"] == ""
    assert store.current_scene() is None
    assert store.recent_scenes() == []


def test_dict_values_merge_over_defaults(store):
    synopsis = store.get("storySynopsis")
    assert synopsis["summary"] == "A quest for the lost crown."
    assert synopsis["who"] == ""


def test_set_replaces_non_dict_values():
    store = InMemoryStore({"storyDraft": "Once upon a time."})
    store.set("storyDraft", "Rewritten.")
    assert store.get("storyDraft") == "Rewritten."


def test_current_scene_is_last(store):
    assert store.current_scene() == {"title": "Camp"}
    assert store.recent_scenes(1) == [{"title": "Camp"}]
    assert store.recent_scenes(0) == []


def test_active_plot_lines(store):
    assert [p["id"] for p in store.active_plot_lines()] == ["p1"]


def test_present_characters(store):
    assert [c["name"] for c in store.present_characters()] == ["Elena"]
    assert len(store.all_characters()) == 2


def test_recent_dialogue_window():
    store = InMemoryStore({"dialogueHistory": [{"line": i} for i in range(30)]})
    assert [d["line"] for d in store.recent_dialogue(3)] == [27, 28, 29]


def test_summary(store):
    summary = store.summary()
    assert summary["plotLines"] == {"total": 2, "active": 1}
    assert summary["scenes"] == {"total": 2, "current": "Camp"}
    assert summary["characters"] == {"total": 2, "present": 1}
    assert summary["currentSituation"] == "The party camps at the forest edge."


def test_summary_empty_store():
    summary = InMemoryStore().summary()
    assert summary["scenes"]["current"] == "None"
    assert summary["currentSituation"] == "Not set"


def test_summary_with_string_situation():
    store = InMemoryStore({"currentSituation": "Raining."})
    assert store.summary()["currentSituation"] == "Raining."


def test_list_shaped_sheets():
    store = InMemoryStore({
        "characterSheets": [{"name": "Elena", "isPresent": True}, {"name": "Marcus"}],
        "locationSheets": [{"name": "Old Mill"}],
        "factionSheets": [{"name": "Old Order"}, "stray"],
    })
    assert [c["name"] for c in store.present_characters()] == ["Elena"]
    assert store.all_locations() == [{"name": "Old Mill"}]
    assert store.all_factions() == [{"name": "Old Order"}]
    assert store.summary()["characters"] == {"total": 2, "present": 1}


def test_non_dict_records_ignored():
    store = InMemoryStore({
        "plotLines": ["Lost crown", {"id": "p1", "status": "active"}],
        "scenes": "Arrival",
        "dialogueHistory": None,
        "characterSheets": "Elena",
    })
    assert store.active_plot_lines() == [{"id": "p1", "status": "active"}]
    assert store.current_scene() is None
    assert store.recent_scenes() == []
    assert store.recent_dialogue() == []
    assert store.all_characters() == []
    summary = store.summary()
    assert summary["plotLines"] == {"total": 1, "active": 1}
    assert summary["dialogueEntries"] == 0


def test_integrate_wrongly_shaped_store():
    store = InMemoryStore({"characterSheets": [{"name": "Elena"}], "plotLines": ["Lost crown"]})
    data = integrate_stores(store)
    assert data.active_plots == []
    assert data.characters == [{"name": "Elena"}]
    assert data.summary["characters"]["total"] == 1


def test_empty_stores_is_fresh():
    first = empty_stores()
    first["plotLines"].append({"id": "x"})
    assert empty_stores()["plotLines"] == []


# ── Adapter ──────────────────────────────────────────────────


def test_call_accessor_missing_returns_none():
    store = GetOnlyStore({})
    assert call_accessor(store, "current_scene") is None
    assert call_accessor(None, "get", "scenes") is None


def test_store_get():
    assert store_get(GetOnlyStore({"scenes": [1]}), "scenes") == [1]
    assert store_get(None, "scenes") is None


def test_integrate_stores(store):
    data = integrate_stores(store, recent_scenes=1)
    assert data.story_synopsis["summary"] == "A quest for the lost crown."
    assert [p["id"] for p in data.active_plots] == ["p1"]
    assert data.recent_scenes == [{"title": "Camp"}]
    assert data.current_scene == {"title": "Camp"}
    assert [c["name"] for c in data.present_characters] == ["Elena"]
    assert data.summary["plotLines"]["active"] == 1


def test_integrate_get_only_store():
    data = integrate_stores(GetOnlyStore({"storyDraft": "Draft."}))
    assert data.story_draft == "Draft."
    assert data.active_plots == []
    assert data.current_scene is None
    assert data.summary == {}
