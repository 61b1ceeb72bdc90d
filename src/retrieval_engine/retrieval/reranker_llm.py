"""Listwise reranking with a single generation call.

Merged results from several sub-queries carry scores that are not comparable
across searches. One LLM call judging every snippet against the original
question gives a globally consistent order. Any failure (timeout, provider
error, unparseable output) returns the input order unchanged.
"""

from __future__ import annotations

import asyncio
import json
import re
from collections.abc import Callable, Sequence

from retrieval_engine.generation.prompt_templates import LLM_RERANK_PROMPT, format_rerank_snippets
from retrieval_engine.models.domain import RankedCandidate
from retrieval_engine.observability.logger import get_logger
from retrieval_engine.protocols.llm import LLMProvider

logger = get_logger("llm_reranker")

MAX_RERANK_CANDIDATES = 15
RERANK_SNIPPET_CHARS = 300
RERANK_OUTPUT_TOKENS = 256
RERANK_TIMEOUT_S = 20.0

_FENCE_RE = re.compile(r"^```(?:json)?|```$")
_INTEGER_RE = re.compile(r"\d+")


async def llm_rerank(
    llm: LLMProvider,
    query: str,
    candidates: list[RankedCandidate],
    max_candidates: int = MAX_RERANK_CANDIDATES,
    snippet_chars: int = RERANK_SNIPPET_CHARS,
    timeout_s: float = RERANK_TIMEOUT_S,
    output_tokens: int = RERANK_OUTPUT_TOKENS,
) -> list[RankedCandidate]:
    """Reorder ``candidates`` by LLM-judged relevance to ``query``.

    Only the first ``max_candidates`` are shown to the model; the rest keep
    their relative order after the ranked head. Never raises for provider
    or parse failures.
    """
    if len(candidates) <= 1:
        return candidates

    count = min(len(candidates), max_candidates)
    prompt = LLM_RERANK_PROMPT.format(
        query=query,
        snippets=format_rerank_snippets([c.text for c in candidates[:count]], snippet_chars),
        count=count,
    )

    try:
        raw_output = await asyncio.wait_for(
            llm.generate(prompt, max_tokens=output_tokens), timeout=timeout_s
        )
    except asyncio.TimeoutError:
        logger.warning("llm_rerank_timeout", timeout_s=timeout_s)
        return candidates
    except Exception as e:
        logger.warning("llm_rerank_failed", error=str(e))
        return candidates

    order = parse_ranking(raw_output, count)
    if order is None:
        logger.warning("llm_rerank_unparseable", output=raw_output[:200])
        return candidates

    logger.debug("llm_rerank_parsed", order=order)
    return apply_ranking(candidates, order)


def _strip_fences(output: str) -> str:
    return _FENCE_RE.sub("", output.strip()).strip()


def _valid(indices: object, expected_count: int) -> bool:
    """Non-empty list of ints, all within [1, expected_count]."""
    return (
        isinstance(indices, list)
        and bool(indices)
        and all(
            isinstance(i, int) and not isinstance(i, bool) and 1 <= i <= expected_count
            for i in indices
        )
    )


def _parse_json_array(text: str, expected_count: int) -> list[int] | None:
    try:
        indices = json.loads(text)
    except ValueError:
        return None
    return indices if _valid(indices, expected_count) else None


def _parse_direct(text: str, expected_count: int) -> list[int] | None:
    return _parse_json_array(text, expected_count)


def _parse_first_array(text: str, expected_count: int) -> list[int] | None:
    start = text.find("[")
    if start == -1:
        return None
    end = text.find("]", start)
    if end == -1:
        return None
    return _parse_json_array(text[start : end + 1], expected_count)


def _parse_integers(text: str, expected_count: int) -> list[int] | None:
    numbers = [int(n) for n in _INTEGER_RE.findall(text)]
    in_range = [n for n in numbers if 1 <= n <= expected_count]
    # Free text is only trusted when it names at least half the snippets.
    if len(in_range) < (expected_count + 1) // 2:
        return None
    return list(dict.fromkeys(in_range)) or None


_PARSERS: tuple[Callable[[str, int], list[int] | None], ...] = (
    _parse_direct,
    _parse_first_array,
    _parse_integers,
)


def parse_ranking(output: str, expected_count: int) -> list[int] | None:
    """Parse model output into a zero-based ranking, or ``None`` if unusable."""
    text = _strip_fences(output)
    for parser in _PARSERS:
        indices = parser(text, expected_count)
        if indices is not None:
            return [i - 1 for i in indices]
    return None


def apply_ranking(
    candidates: Sequence[RankedCandidate], order: Sequence[int]
) -> list[RankedCandidate]:
    """Move candidates named in ``order`` to the front.

    Out-of-range and repeated indices are ignored; unnamed candidates follow
    in their original relative order, so every input appears exactly once.
    """
    used: set[int] = set()
    reordered: list[RankedCandidate] = []
    for idx in order:
        if 0 <= idx < len(candidates) and idx not in used:
            used.add(idx)
            reordered.append(candidates[idx])
    reordered.extend(c for i, c in enumerate(candidates) if i not in used)
    return reordered
