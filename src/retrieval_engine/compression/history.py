"""Rolling summary + recent turns for long conversations."""

from __future__ import annotations

from collections.abc import Sequence

from retrieval_engine.config.constants import (
    MAX_SUMMARY_ENTITIES,
    MAX_SUMMARY_FILES,
    MAX_SUMMARY_TOPICS,
    SUMMARY_FILE_EXTENSIONS,
    SUMMARY_TOPIC_CHARS,
)
from retrieval_engine.generation.prompt_templates import HISTORY_HEADER
from retrieval_engine.models.domain import CompressedHistory

Message = tuple[str, str]  # (role, content)


def _clean_word(word: str) -> str:
    keep = "./\\"
    start, end = 0, len(word)
    while start < end and not (word[start].isalnum() or word[start] in keep):
        start += 1
    while end > start and not (word[end - 1].isalnum() or word[end - 1] in keep):
        end -= 1
    return word[start:end]


def _is_file_reference(token: str) -> bool:
    if len(token) <= 4:
        return False
    if "/" in token or "\\" in token:
        return True
    return "." in token and token.rsplit(".", 1)[1].lower() in SUMMARY_FILE_EXTENSIONS


def _is_entity(token: str) -> bool:
    return len(token) > 2 and token[0].isupper() and not token.isupper()


def compress_history(messages: Sequence[Message], max_recent: int = 5) -> CompressedHistory:
    """Keep the last ``max_recent`` messages and summarize the rest.

    The summary is rule-based: leading text of earlier user questions,
    capitalized names and referenced files.
    """
    if len(messages) <= max_recent:
        return CompressedHistory(summary=None, recent_messages=list(messages))

    split_point = len(messages) - max_recent
    older, recent = messages[:split_point], messages[split_point:]

    topics: list[str] = []
    entities: set[str] = set()
    files: list[str] = []

    for role, content in older:
        if role.lower() == "user":
            topic = content[:SUMMARY_TOPIC_CHARS].strip()
            if topic and topic not in topics:
                topics.append(topic)

        for word in content.split():
            token = _clean_word(word)
            if not token:
                continue
            if _is_file_reference(token):
                if token not in files:
                    files.append(token)
                continue
            if _is_entity(token):
                entities.add(token)

    parts = []
    if topics:
        parts.append("Previous questions: " + "; ".join(topics[:MAX_SUMMARY_TOPICS]))
    if entities:
        parts.append("Key entities: " + ", ".join(sorted(entities)[:MAX_SUMMARY_ENTITIES]))
    if files:
        parts.append("Files discussed: " + ", ".join(files[:MAX_SUMMARY_FILES]))

    summary = ". ".join(parts) + "." if parts else None
    return CompressedHistory(summary=summary, recent_messages=list(recent))


def format_compressed_history(history: CompressedHistory) -> str:
    """Render history for the prompt, framed as non-evidence."""
    if history.summary is None and not history.recent_messages:
        return ""

    lines = [HISTORY_HEADER]
    if history.summary is not None:
        lines.append(f"Summary: {history.summary}")
        lines.append("")
        lines.append("Recent Messages:")
    for role, content in history.recent_messages:
        lines.append(f"{role}: {content}")
    return "\n".join(lines)
