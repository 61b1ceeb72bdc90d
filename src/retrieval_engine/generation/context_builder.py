"""Assembly of the generation-ready context string and its citation map."""

from __future__ import annotations

from collections.abc import Sequence

from retrieval_engine.compression.history import format_compressed_history
from retrieval_engine.generation.prompt_templates import (
    PASSAGES_HEADER,
    format_passage,
    format_sub_questions,
)
from retrieval_engine.models.domain import Citation, CompressedHistory, RankedCandidate


def build_citations(passages: Sequence[RankedCandidate]) -> list[Citation]:
    """Map 1-based passage markers back to their source candidates."""
    return [
        Citation(
            index=i,
            id=p.candidate.id,
            title=p.candidate.title,
            source=p.candidate.source,
        )
        for i, p in enumerate(passages, 1)
    ]


def assemble_context(
    preamble: str,
    compressed: Sequence[tuple[RankedCandidate, str]],
    history: CompressedHistory | None = None,
    sub_queries: Sequence[str] = (),
) -> tuple[str, list[Citation]]:
    """Join preamble, history, sub-question hints and numbered passages.

    Returns the context text and citations whose ``index`` matches the
    ``[n]`` marker of each passage.
    """
    sections = [preamble.strip()]

    if history is not None:
        rendered = format_compressed_history(history)
        if rendered:
            sections.append(rendered)

    hints = format_sub_questions(list(sub_queries))
    if hints:
        sections.append(hints)

    if compressed:
        passage_lines = [PASSAGES_HEADER]
        for i, (candidate, text) in enumerate(compressed, 1):
            passage_lines.append(
                format_passage(i, text, candidate.candidate.title, candidate.candidate.source)
            )
        sections.append("\n\n".join(passage_lines))

    citations = build_citations([candidate for candidate, _ in compressed])
    return "\n\n".join(s for s in sections if s), citations
