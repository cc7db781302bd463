"""Advisory token estimates (~4 characters per token)."""

import math

from .models import ProcessedContext, TokenEstimate


def estimate_text(text: str) -> int:
    return math.ceil(len(text) / 4)


def estimate_tokens(processed: ProcessedContext) -> TokenEstimate:
    """Estimate tokens for the chat, lore and character blocks.

    Empty blocks are left out of per_section.
    """
    per_section: dict[str, int] = {}
    for section, text in (
        ("chat", processed.chat.text),
        ("lore", processed.lore.text),
        ("character", processed.character.text),
    ):
        if text:
            per_section[section] = estimate_text(text)
    return TokenEstimate(per_section=per_section, total=sum(per_section.values()))
