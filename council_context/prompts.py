"""Handlebars prompt rendering for pipeline-stage consumers.

A consumer profile may carry a Handlebars template. It is rendered with the
consumer's context bundle:

    {{consumer.name}} {{consumer.id}} {{phase}}
    {{context}}                  the budgeted prompt string (format_for_prompt)
    {{sections.<key>}}           raw section values, e.g. {{sections.currentSituation}}
    {{section "<key>"}}          one section rendered with its "### Header"
    {{#recent sections.<key> N}}...{{/recent}}
                                 iterate over the last N items of a list section
    {{input}}                    the user input for this turn

Consumers without a template get the formatted context followed by the
input.
"""

from collections.abc import Callable, Mapping
from functools import lru_cache
from typing import Any

import pybars

from .models import AgentContextBundle, ConsumerProfile
from .routing import format_section

_compiler = pybars.Compiler()


class PromptError(Exception):
    """Raised when a Handlebars template fails to compile or render."""


@lru_cache(maxsize=128)
def _compile(template_str: str) -> Callable:
    return _compiler.compile(template_str)


# ── Helpers ──────────────────────────────────────────────


def _helper_recent(this, options, items, count=5):
    """Block helper over the newest `count` items, oldest first."""
    records = list(items or [])
    result = []
    for item in records[-int(count):] if int(count) > 0 else []:
        result.extend(options["fn"](item))
    return result


def _section_helper(sections: Mapping[str, Any]) -> Callable:
    def helper(this, key):
        value = sections.get(key)
        return format_section(key, value) if value else ""
    return helper


def render_prompt(
    template_str: str,
    context: dict[str, Any],
    sections: Mapping[str, Any] | None = None,
) -> str:
    """Render a Handlebars template. `sections` backs the {{section}} helper."""
    helpers = {
        "recent": _helper_recent,
        "section": _section_helper(sections or {}),
    }
    try:
        return str(_compile(template_str)(context, helpers=helpers))
    except Exception as e:
        raise PromptError(f"Template error: {e}") from e


def build_prompt_context(bundle: AgentContextBundle, user_input: str = "") -> dict[str, Any]:
    """Template variables for one consumer bundle."""
    return {
        "consumer": {"id": bundle.consumer_id, "name": bundle.consumer_name},
        "phase": bundle.phase or "",
        "context": bundle.formatted,
        "sections": bundle.sections,
        "input": user_input,
    }


def render_consumer_prompt(
    profile: ConsumerProfile, bundle: AgentContextBundle, user_input: str = ""
) -> str:
    if not profile.prompt:
        return "\n\n".join(p for p in (bundle.formatted, user_input) if p)
    return render_prompt(
        profile.prompt, build_prompt_context(bundle, user_input), bundle.sections,
    )
