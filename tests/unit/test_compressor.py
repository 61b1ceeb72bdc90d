"""Tests for extractive context compression."""

from conftest import make_candidate

from retrieval_engine.compression.context_compressor import (
    compress_chunk,
    compress_context,
    query_terms,
    split_sentences,
)

LEASE_TEXT = (
    "Alpha one. Bravo two. Charlie three. The lease ends in March. "
    "Delta four. Echo five. The lease notice is sixty days. Foxtrot six."
)


def test_short_text_returned_verbatim():
    text = "  The rent is due monthly. Late fees apply.  "
    assert compress_chunk(text, "rent", max_sentences=8) == text


def test_selects_most_relevant_sentences_in_order():
    result = compress_chunk(LEASE_TEXT, "lease notice", max_sentences=2)
    assert result == "The lease ends in March. The lease notice is sixty days."


def test_split_sentences_needs_capital_after_period():
    parts = split_sentences("Version 2.5 is out. it works. Next item follows.")
    assert parts == ["Version 2.5 is out. it works.", "Next item follows."]


def test_split_sentences_line_mode():
    text = "Name: John Doe\nEmail: john@example.com\nPhone: 555 0100\nCity: Pune"
    assert split_sentences(text) == [
        "Name: John Doe",
        "Email: john@example.com",
        "Phone: 555 0100",
        "City: Pune",
    ]


def test_structured_lines_survive_compression():
    text = "\n".join(
        [
            "Quarterly summary",
            "Revenue grew slightly",
            "Costs were flat",
            "Headcount unchanged",
            "Contact: ops@example.com",
            "Outlook is stable",
        ]
    )
    result = compress_chunk(text, "revenue", max_sentences=3)
    assert "Contact: ops@example.com" in result
    assert "Revenue grew slightly" in result


def test_query_terms_keep_emails_intact():
    terms = query_terms("who is jane@example.com, and the CEO?")
    assert "jane@example.com" in terms
    assert "ceo" in terms
    assert "is" not in terms


def test_compress_context_respects_budget():
    candidates = [make_candidate(f"c{i}", text="x" * 100) for i in range(3)]
    compressed = compress_context(candidates, "query", max_total_chars=150)
    assert [c.id for c, _ in compressed] == ["c0", "c1"]


def test_compress_context_skips_empty_passages():
    candidates = [make_candidate("empty", text="   "), make_candidate("full", text="Some text.")]
    compressed = compress_context(candidates, "query")
    assert [(c.id, text) for c, text in compressed] == [("full", "Some text.")]
