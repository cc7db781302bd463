"""Context retrieval core for a multi-stage roleplay generation pipeline.

One processing pass:
  1. Acquire: pull a Snapshot (chat, lore, character card, participants)
     from the host through a SessionSource.
  2. Format: render chat, lore and character card into text blocks.
  3. Extract: lexical entity, relationship and timeline extraction.
  4. Index: entity sub-indexes, lore keyword buckets, timeline.
  5. Estimate: advisory token counts per block.

Afterwards, on demand:
  query()               deterministic lexical relevance ranking over the snapshot
  route_for_consumer()  need-driven, budgeted context bundle for one pipeline stage

All state lives on a ContextEngine instance; there are no module-level
singletons in the core.
"""

from .acquire import (  # noqa: F401
    HttpSessionSource,
    SessionSource,
    StaticSessionSource,
    acquire,
    snapshot_from_raw,
)
from .engine import ContextEngine  # noqa: F401
from .errors import AcquisitionError  # noqa: F401
from .extraction import (  # noqa: F401
    build_timeline,
    extract_entities,
    extract_relationships,
)
from .formatting import format_character, format_chat, format_lore  # noqa: F401
from .indexing import build_index, lookup_keywords  # noqa: F401
from .relevance import RelevanceWeights, query, score  # noqa: F401
from .routing import (  # noqa: F401
    ContextNeed,
    detect_needed_experts,
    format_for_prompt,
    route_for_consumer,
)
from .stores import InMemoryStore, integrate_stores  # noqa: F401
from .tokens import estimate_tokens  # noqa: F401
