"""Immutable lexical tables shared across the engine."""

from __future__ import annotations

MIN_WORDS_TO_DECOMPOSE = 5
MAX_MERGE_ROUNDS = 1000

# Phrases where "and" joins a single concept rather than two questions.
NON_SPLITTABLE_PHRASES = (
    "pros and cons",
    "advantages and disadvantages",
    "strengths and weaknesses",
    "name and address",
    "search and replace",
    "copy and paste",
    "back and forth",
    "trial and error",
)

KEYWORD_STOPWORDS = frozenset(
    {
        "the", "a", "an", "is", "are", "was", "were", "in", "on", "at", "to", "for",
        "of", "and", "or", "but", "with", "from", "by", "as", "how", "what", "where",
        "when", "why", "which", "who", "i", "you", "me", "my", "your",
    }
)

LEGAL_TERMS = (
    "contract", "agreement", "clause", "liability", "indemnity",
    "breach", "party", "provision", "termination",
)
TAX_TERMS = (
    "gst", "tax", "return", "invoice", "itr",
    "section", "assessment", "audit", "compliance",
)
LEGAL_DOC_MARKERS = ("contract", "agreement", "legal")
TAX_DOC_MARKERS = ("gst", "tax", "itr")

DOCUMENT_TYPE_KEYWORDS = (
    ("contract", "contract"),
    ("agreement", "agreement"),
    ("invoice", "invoice"),
    ("gst return", "gst_return"),
    ("itr", "itr"),
    ("receipt", "receipt"),
    ("bill", "bill"),
)

DOCUMENT_SPECIFIC_TERMS = (
    "section", "clause", "provision", "article", "contract", "agreement",
    "document", "file", "paragraph", "page", "schedule", "annexure", "exhibit",
)

SUMMARY_FILE_EXTENSIONS = frozenset({"pdf", "docx", "xlsx", "csv", "txt", "json", "xml"})
MAX_SUMMARY_ENTITIES = 15
MAX_SUMMARY_FILES = 10
MAX_SUMMARY_TOPICS = 5
SUMMARY_TOPIC_CHARS = 80

URL_LIKE_MARKERS = ("@", "://", ".com", ".org", ".net", ".io")
