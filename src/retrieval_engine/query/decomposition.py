"""Rule-based decomposition of multi-part queries into independent sub-queries.

Strategies are tried in a fixed order and the first one that produces at
least two usable sub-queries wins:

1. enumerated items ("1. ...", "- ...", "• ...")
2. several questions ("What is X? What is Y?")
3. comparisons ("difference between X and Y")
4. coordinating conjunctions ("what is X and what is Y")

Anything else is returned as a single sub-query. A blank query has nothing
to search for and raises ``ValueError``; callers skip retrieval for it.
"""

from __future__ import annotations

import re

from retrieval_engine.config.constants import MIN_WORDS_TO_DECOMPOSE, NON_SPLITTABLE_PHRASES
from retrieval_engine.models.domain import DecomposedQuery, DecompositionStrategy
from retrieval_engine.observability.logger import get_logger

logger = get_logger("decomposition")

_LINE_ITEM_RE = re.compile(r"^\s*(?:\d+[.)]\s*|[-•]\s+)(.+)$", re.MULTILINE)
# Ordinals written inline on one line: "1. foo 2. bar 3. baz"
_INLINE_ORDINAL_RE = re.compile(r"(?:^|\s)\d+[.)]\s+")
_QUESTION_BOUNDARY_RE = re.compile(r"(?<=\?)\s+(?=[A-Z])")
_COMPARATIVE_RE = re.compile(
    r"\b(?:compare|difference between|versus|vs\.?|differ from)\b", re.IGNORECASE
)
_BETWEEN_ENTITIES_RE = re.compile(
    r"between\s+(.+?)\s+and\s+(.+?)\s*(?:[?.!,;]|$)", re.IGNORECASE
)
_CONJUNCTION_SPLIT_RE = re.compile(
    r"\b(?:and also|and then|and|also|additionally|plus|as well as)\b", re.IGNORECASE
)

_MAX_COMPARATIVE_ENTITY_WORDS = 5


def _word_count(text: str) -> int:
    return len(text.split())


def decompose_query(query: str) -> DecomposedQuery:
    """Split ``query`` into sub-queries that can be searched independently.

    Every returned sub-query is non-empty.
    """
    query = query.strip()
    if not query:
        raise ValueError("Cannot decompose an empty query")

    if _word_count(query) < MIN_WORDS_TO_DECOMPOSE:
        return _single(query)

    enumerated = _extract_enumerated(query)
    if len(enumerated) >= 2:
        return _decomposed(query, enumerated, DecompositionStrategy.ENUMERATED)

    questions = _split_questions(query)
    if len(questions) >= 2:
        return _decomposed(query, questions, DecompositionStrategy.MULTI_QUESTION)

    comparative = _comparative_split(query)
    if comparative is not None:
        return _decomposed(query, comparative, DecompositionStrategy.COMPARATIVE)

    conjunction = _conjunction_split(query)
    if conjunction is not None:
        return _decomposed(query, conjunction, DecompositionStrategy.CONJUNCTION)

    return _single(query)


def _single(query: str) -> DecomposedQuery:
    return DecomposedQuery(
        original=query,
        sub_queries=[query],
        strategy=DecompositionStrategy.SINGLE,
    )


def _decomposed(
    query: str, sub_queries: list[str], strategy: DecompositionStrategy
) -> DecomposedQuery:
    logger.debug(
        "decomposed",
        strategy=strategy.value,
        sub_queries=len(sub_queries),
    )
    return DecomposedQuery(original=query, sub_queries=sub_queries, strategy=strategy)


def _extract_enumerated(query: str) -> list[str]:
    items = [m.group(1).strip() for m in _LINE_ITEM_RE.finditer(query)]
    if len(items) < 2 and _INLINE_ORDINAL_RE.match(query):
        items = [part.strip() for part in _INLINE_ORDINAL_RE.split(query)]
    return [item for item in items if _word_count(item) >= 2]


def _split_questions(query: str) -> list[str]:
    questions = []
    for part in _QUESTION_BOUNDARY_RE.split(query):
        part = part.strip()
        if not part:
            continue
        if not part.endswith("?"):
            part = f"{part}?"
        if _word_count(part) >= 2:
            questions.append(part)
    return questions


def _comparative_split(query: str) -> list[str] | None:
    if not _COMPARATIVE_RE.search(query):
        return None

    match = _BETWEEN_ENTITIES_RE.search(query)
    if match is None:
        return None

    entity_a = match.group(1).strip()
    entity_b = match.group(2).strip()
    if not entity_a or not entity_b:
        return None
    if (
        _word_count(entity_a) > _MAX_COMPARATIVE_ENTITY_WORDS
        or _word_count(entity_b) > _MAX_COMPARATIVE_ENTITY_WORDS
    ):
        return None

    # The original query stays last so direct comparison passages still match.
    return [f"what is {entity_a}", f"what is {entity_b}", query]


def _conjunction_split(query: str) -> list[str] | None:
    lower = query.lower()
    if any(phrase in lower for phrase in NON_SPLITTABLE_PHRASES):
        return None

    parts = _CONJUNCTION_SPLIT_RE.split(query)
    if len(parts) < 2:
        return None

    valid = [p.strip() for p in parts if _word_count(p) >= 3]
    if len(valid) < 2:
        return None
    return valid
