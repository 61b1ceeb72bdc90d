"""Tiered system-context selection.

Trivial turns (greetings, small talk) get a tiny preamble; document and
system questions get progressively more instructions. Keeps prompt size and
latency proportional to what the turn needs.
"""

from __future__ import annotations

import os
import platform
from datetime import datetime

from retrieval_engine.generation.prompt_templates import (
    PREAMBLE_CAPABILITIES,
    PREAMBLE_DOCUMENT_MODE,
    PREAMBLE_IDENTITY,
    PREAMBLE_SYSTEM,
)
from retrieval_engine.models.domain import ContextQueryIntent, ContextTier
from retrieval_engine.query.lexical import has_any

_GREETINGS = ("hi", "hello", "hey", "thanks", "thank you", "bye", "goodbye")
_SIMPLE_QUESTIONS = (
    "can you", "are you", "do you", "will you", "what is your", "who are you", "how are you",
)
_SYSTEM_PATTERNS = (
    "what am i working on", "what files", "what processes", "my system",
    "my computer", "my ram", "my cpu", "running processes", "active applications",
)
_CODE_PATTERNS = (
    "explain this", "what does this do", "how does", "function", "class",
    "method", "code", "bug", "error", "implement", "refactor",
)
_DOC_PATTERNS = (
    "according to", "in the document", "what does", "tell me about",
    "explain", "summarize", "find",
)

_TIER_BY_INTENT = {
    ContextQueryIntent.GREETING: ContextTier.MINIMAL,
    ContextQueryIntent.SIMPLE_QUESTION: ContextTier.MINIMAL,
    ContextQueryIntent.DOCUMENT_QUERY: ContextTier.RAG,
    ContextQueryIntent.CODE_ANALYSIS: ContextTier.STANDARD,
    ContextQueryIntent.SYSTEM_QUERY: ContextTier.SYSTEM_AWARE,
}


def classify_context_intent(query: str) -> ContextQueryIntent:
    q = query.lower().strip()
    words = len(q.split())

    if words <= 5 and has_any(q, _GREETINGS):
        return ContextQueryIntent.GREETING
    if words <= 10 and has_any(q, _SIMPLE_QUESTIONS):
        return ContextQueryIntent.SIMPLE_QUESTION
    if has_any(q, _SYSTEM_PATTERNS):
        return ContextQueryIntent.SYSTEM_QUERY
    if has_any(q, _CODE_PATTERNS):
        return ContextQueryIntent.CODE_ANALYSIS
    if has_any(q, _DOC_PATTERNS):
        return ContextQueryIntent.DOCUMENT_QUERY
    # Unknown turns in a retrieval system default to document lookup.
    return ContextQueryIntent.DOCUMENT_QUERY


def context_tier(intent: ContextQueryIntent) -> ContextTier:
    return _TIER_BY_INTENT[intent]


def build_tiered_context(tier: ContextTier, now: datetime | None = None) -> str:
    """Render the system preamble for ``tier``."""
    now = now or datetime.now()
    parts = [PREAMBLE_IDENTITY.format(now=now.strftime("%Y-%m-%d %H:%M"))]

    if tier is ContextTier.MINIMAL:
        return "\n".join(parts)

    parts.append(PREAMBLE_CAPABILITIES)
    if tier is ContextTier.RAG:
        parts.append(PREAMBLE_DOCUMENT_MODE)
    elif tier is ContextTier.SYSTEM_AWARE:
        parts.append(
            PREAMBLE_SYSTEM.format(
                os_name=platform.system(),
                os_release=platform.release(),
                architecture=platform.machine(),
                cpu_count=os.cpu_count() or 1,
                python_version=platform.python_version(),
            )
        )
    return "\n".join(parts)


def build_context_for_query(
    query: str, now: datetime | None = None
) -> tuple[str, ContextQueryIntent, ContextTier]:
    intent = classify_context_intent(query)
    tier = context_tier(intent)
    return build_tiered_context(tier, now), intent, tier
