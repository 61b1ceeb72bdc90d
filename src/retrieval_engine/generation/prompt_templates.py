"""All prompt and preamble text handed to the generation stage."""

LLM_RERANK_PROMPT = """You are a search relevance judge. Given a user query and numbered document snippets, rank the snippets by relevance to the query.

Query: "{query}"

Snippets:
{snippets}

Return ONLY a JSON array of snippet numbers ordered from most relevant to least relevant. Include ALL {count} snippet numbers. Example: [3, 1, 5, 2, 4]
Output ONLY the JSON array, nothing else."""

# Tier preamble blocks. Each tier includes the blocks of the tiers below it.
PREAMBLE_IDENTITY = """You are a precise, helpful assistant.
IMPORTANT: Always respond in the SAME language as the user's input.
Current time: {now}
"""

PREAMBLE_CAPABILITIES = """# CAPABILITIES
- Answer questions about code and documents
- Provide clear, concise explanations
- Help with research and analysis
"""

PREAMBLE_DOCUMENT_MODE = """# DOCUMENT SEARCH MODE
When answering from documents:
- ALWAYS cite sources with [1], [2], etc.
- Be precise and factual
- If information isn't in the provided context, say so
"""

PREAMBLE_SYSTEM = """# SYSTEM INFORMATION
OS: {os_name} {os_release}
Architecture: {architecture}
CPU Cores: {cpu_count}
Python: {python_version}
"""

HISTORY_HEADER = "Conversation History (for topic continuity ONLY, NOT a source of facts):"

PASSAGES_HEADER = "Relevant passages:"

SUB_QUESTIONS_HEADER = "The question has these parts:"


def format_rerank_snippets(texts: list[str], max_chars: int = 300) -> str:
    """Number each snippet from 1 and truncate it to ``max_chars`` characters."""
    lines = []
    for i, text in enumerate(texts, 1):
        snippet = " ".join(text[:max_chars].split())
        lines.append(f"[{i}] {snippet}")
    return "\n".join(lines)


def format_passage(index: int, text: str, title: str = "", source: str = "") -> str:
    label = title or source
    header = f"[{index}] {label}".rstrip()
    return f"{header}\n{text}"


def format_sub_questions(sub_queries: list[str]) -> str:
    if len(sub_queries) <= 1:
        return ""
    lines = [SUB_QUESTIONS_HEADER]
    for i, sq in enumerate(sub_queries, 1):
        lines.append(f"  {i}. {sq}")
    return "\n".join(lines)
