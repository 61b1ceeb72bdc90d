"""Extractive compression of retrieved passages.

Keeps only the sentences most relevant to the query, in their original
order. Lines that carry contact details or other structured facts are
favoured even when they do not overlap the query.
"""

from __future__ import annotations

import re
from collections.abc import Sequence

from retrieval_engine.config.constants import URL_LIKE_MARKERS
from retrieval_engine.models.domain import RankedCandidate
from retrieval_engine.observability.logger import get_logger

logger = get_logger("context_compressor")

_SENTENCE_SPLIT_RE = re.compile(r"(?<=[.!?])\s+(?=[A-Z\d])")

# Sentence score weights
W_TERM_OVERLAP = 0.6
W_DENSITY = 0.15
EDGE_POSITION_BONUS = 0.1
EARLY_POSITION_BONUS = 0.05
KEY_VALUE_BONUS = 0.15
STRUCTURED_DATA_BONUS = 0.35
SHORT_LINE_CHARS = 200

_STRUCTURED_MARKERS = ("@", ".com", ".org", ".net", "http", "phone", "mobile", "tel:")


def split_sentences(text: str) -> list[str]:
    """Split text into sentence units.

    Line-structured text (forms, key/value dumps) is split on newlines.
    Otherwise split after ``.``/``!``/``?`` followed by a capital or digit,
    falling back to plain period splitting for one very long run-on.
    """
    if "\n" in text and len(text.splitlines()) > 3:
        lines = [line.strip() for line in text.splitlines() if line.strip()]
        if len(lines) >= 3:
            return lines

    parts = [p.strip() for p in _SENTENCE_SPLIT_RE.split(text) if p.strip()]

    if len(parts) <= 1 and len(text) > SHORT_LINE_CHARS:
        manual = [
            piece.strip()
            for segment in text.split(". ")
            for piece in segment.split(".\n")
            if piece.strip()
        ]
        if len(manual) > 1:
            return manual

    return parts


def query_terms(query: str) -> set[str]:
    """Lowercased query terms longer than two characters.

    Emails and URLs stay intact; other terms lose surrounding punctuation.
    """
    terms = set()
    for word in query.lower().split():
        if len(word) <= 2:
            continue
        if any(marker in word for marker in URL_LIKE_MARKERS):
            term = word.strip(",\"'()")
        else:
            term = _strip_non_alnum(word)
        if term:
            terms.add(term)
    return terms


def _strip_non_alnum(word: str) -> str:
    start, end = 0, len(word)
    while start < end and not word[start].isalnum():
        start += 1
    while end > start and not word[end - 1].isalnum():
        end -= 1
    return word[start:end]


def score_sentence(sentence: str, terms: set[str], position: int, total: int) -> float:
    lower = sentence.lower()
    words = lower.split()
    if not words:
        return 0.0

    matching = sum(1 for term in terms if term in lower)
    term_score = matching / len(terms) if terms else 0.0
    density = matching / len(words)

    if position == 0 or position == total - 1:
        position_score = EDGE_POSITION_BONUS
    elif position <= 2:
        position_score = EARLY_POSITION_BONUS
    else:
        position_score = 0.0

    short = len(sentence) < SHORT_LINE_CHARS
    kv_boost = KEY_VALUE_BONUS if ":" in sentence and short else 0.0

    structured = any(m in lower for m in _STRUCTURED_MARKERS) or ("email" in lower and short)
    structured_boost = STRUCTURED_DATA_BONUS if structured else 0.0

    return (
        W_TERM_OVERLAP * term_score
        + W_DENSITY * density
        + position_score
        + kv_boost
        + structured_boost
    )


def compress_chunk(text: str, query: str, max_sentences: int = 8) -> str:
    """Return the ``max_sentences`` most query-relevant sentences of ``text``.

    Text that already has ``max_sentences`` or fewer sentences is returned
    verbatim. Selected sentences keep their original relative order.
    """
    sentences = split_sentences(text.strip())
    if len(sentences) <= max_sentences:
        return text

    terms = query_terms(query)
    scores = [score_sentence(s, terms, i, len(sentences)) for i, s in enumerate(sentences)]

    ranked = sorted(range(len(sentences)), key=lambda i: scores[i], reverse=True)
    selected = sorted(ranked[:max_sentences])
    return " ".join(sentences[i] for i in selected)


def compress_context(
    candidates: Sequence[RankedCandidate],
    query: str,
    max_sentences_per_chunk: int = 8,
    max_total_chars: int = 8000,
) -> list[tuple[RankedCandidate, str]]:
    """Compress each passage in rank order until ``max_total_chars`` is reached.

    The passage that crosses the budget is kept; everything after it is
    dropped. Passages that compress to nothing are skipped.
    """
    compressed: list[tuple[RankedCandidate, str]] = []
    total_chars = 0
    original_chars = 0

    for candidate in candidates:
        text = compress_chunk(candidate.text, query, max_sentences_per_chunk).strip()
        if not text:
            continue

        original_chars += len(candidate.text)
        total_chars += len(text)
        compressed.append((candidate, text))
        if total_chars >= max_total_chars:
            break

    logger.debug(
        "context_compressed",
        passages=len(compressed),
        original_chars=original_chars,
        compressed_chars=total_chars,
    )
    return compressed
