"""Engine configuration (window sizes, relevance weights, prompt budget, host).

get_config() returns defaults merged with an optional JSON file and a few
COUNCIL_* environment variables. Nested dicts (relevance_weights) merge
key-by-key; scalars are overwritten. Unknown keys in the file are ignored.
"""

import json
import logging
import os
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

_CONFIG_DEFAULTS: dict[str, Any] = {
    "chat_max_messages": 50,
    "compact_max_chars": 200,
    "entity_chat_window": 20,
    "query_chat_window": 30,
    "timeline_summary_chars": 100,
    "prompt_max_length": 4000,
    "query_max_results": 10,
    "query_min_score": 1,
    "relevance_weights": {
        "exact": 10,
        "partial": 5,
        "keyword": 3,
        "proximity": 2,
    },
    "proximity_max_gap": 50,
    "store_recent_scenes": 5,
    "store_recent_dialogue": 20,
    "route_recent_dialogue": 15,
    "host_url": "",
    "host_timeout": 30.0,
}

# env var -> (config key, type)
_ENV_OVERRIDES: dict[str, tuple[str, type]] = {
    "COUNCIL_HOST_URL": ("host_url", str),
    "COUNCIL_HOST_TIMEOUT": ("host_timeout", float),
    "COUNCIL_PROMPT_MAX_LENGTH": ("prompt_max_length", int),
    "COUNCIL_CHAT_MAX_MESSAGES": ("chat_max_messages", int),
}


def default_config() -> dict[str, Any]:
    """Fresh deep copy of the defaults."""
    return json.loads(json.dumps(_CONFIG_DEFAULTS))


def merge_config(config: dict[str, Any], fields: dict[str, Any]) -> dict[str, Any]:
    """Merge fields into config in place. Returns config."""
    for key, value in fields.items():
        if key not in config:
            logger.debug("Ignoring unknown config key %r", key)
            continue
        if isinstance(config[key], dict):
            if isinstance(value, dict):
                config[key].update(value)
            continue
        config[key] = value
    return config


def get_config(path: Path | None = None) -> dict[str, Any]:
    """Read config, returning defaults merged with stored values.

    The file defaults to $COUNCIL_CONFIG when set. Env overrides win over
    the file.
    """
    config = default_config()
    if path is None and os.getenv("COUNCIL_CONFIG"):
        path = Path(os.environ["COUNCIL_CONFIG"])
    if path is not None and path.is_file():
        stored = json.loads(path.read_text())
        if isinstance(stored, dict):
            merge_config(config, stored)
        else:
            logger.warning("Config file %s is not a JSON object, ignored", path)

    for env_name, (key, cast) in _ENV_OVERRIDES.items():
        raw = os.getenv(env_name, "")
        if not raw:
            continue
        try:
            config[key] = cast(raw)
        except ValueError:
            logger.warning("Invalid value for %s: %r", env_name, raw)
    return config
