"""Tests for Handlebars prompt rendering: template compilation, consumer
prompt context, custom helpers (recent, section), and error handling."""

import pytest

from council_context.models import AgentContextBundle, ConsumerProfile
from council_context.prompts import (
    PromptError,
    build_prompt_context,
    render_consumer_prompt,
    render_prompt,
)


@pytest.fixture
def bundle() -> AgentContextBundle:
    return AgentContextBundle(
        consumer_id="architect",
        consumer_name="Plot Architect",
        phase="planning",
        sections={"currentSituation": "Not established", "plotLines": [{"title": "Lost crown"}]},
        formatted="### Current Situation\nNot established",
    )


# ── render_prompt ────────────────────────────────────────────


def test_render_simple_variable():
    assert render_prompt("Hello {{name}}!", {"name": "World"}) == "Hello World!"


def test_render_each_loop():
    tpl = "{{#each items}}{{this}} {{/each}}"
    assert render_prompt(tpl, {"items": ["a", "b", "c"]}) == "a b c "


def test_render_missing_variable():
    assert render_prompt("Hello {{name}}!", {}) == "Hello !"


def test_render_invalid_template():
    with pytest.raises(PromptError):
        render_prompt("{{> missing_partial}}", {})


# ── Custom helpers ───────────────────────────────────────────


def test_recent_helper():
    tpl = "{{#recent items 2}}{{this}},{{/recent}}"
    assert render_prompt(tpl, {"items": ["a", "b", "c"]}) == "b,c,"


def test_recent_helper_missing_list():
    assert render_prompt("{{#recent items 2}}{{this}}{{/recent}}", {}) == ""


def test_recent_helper_zero_count():
    assert render_prompt("{{#recent items 0}}{{this}}{{/recent}}", {"items": ["a"]}) == ""


def test_section_helper():
    sections = {"currentSituation": "Not established", "storyOutline": None}
    tpl = "{{section \"currentSituation\"}}|{{section \"storyOutline\"}}|"
    assert render_prompt(tpl, {}, sections) == "### Current Situation\nNot established||"


# ── Consumer prompts ─────────────────────────────────────────


def test_build_prompt_context(bundle):
    ctx = build_prompt_context(bundle, "Go north")
    assert ctx["consumer"] == {"id": "architect", "name": "Plot Architect"}
    assert ctx["phase"] == "planning"
    assert ctx["context"] == bundle.formatted
    assert ctx["sections"]["currentSituation"] == "Not established"
    assert ctx["input"] == "Go north"


def test_build_prompt_context_no_phase(bundle):
    ctx = build_prompt_context(bundle.model_copy(update={"phase": None}))
    assert ctx["phase"] == ""
    assert ctx["input"] == ""


def test_render_consumer_template(bundle):
    profile = ConsumerProfile(
        name="Plot Architect",
        prompt=(
            "You are {{consumer.name}} ({{phase}}).\n"
            "{{sections.currentSituation}}\n"
            "{{#each sections.plotLines}}- {{title}}\n{{/each}}"
            "Player: {{input}}"
        ),
    )
    result = render_consumer_prompt(profile, bundle, "Go north")
    assert result == (
        "You are Plot Architect (planning).\n"
        "Not established\n"
        "- Lost crown\n"
        "Player: Go north"
    )


def test_render_consumer_without_template(bundle):
    profile = ConsumerProfile(name="Plot Architect")
    assert render_consumer_prompt(profile, bundle, "Go north") == (
        "### Current Situation\nNot established\n\nGo north"
    )
    assert render_consumer_prompt(profile, bundle) == bundle.formatted


def test_render_consumer_template_with_helpers(bundle):
    profile = ConsumerProfile(
        name="Plot Architect",
        prompt='{{section "currentSituation"}}\n{{#recent sections.plotLines 1}}* {{title}}{{/recent}}',
    )
    assert render_consumer_prompt(profile, bundle) == (
        "### Current Situation\nNot established\n* Lost crown"
    )
