"""Whole-word phrase matching shared by the rule-based classifiers."""

from __future__ import annotations

import re
from collections.abc import Iterable
from functools import lru_cache


@lru_cache(maxsize=1024)
def _phrase_pattern(phrase: str) -> re.Pattern[str]:
    return re.compile(rf"(?<!\w){re.escape(phrase)}(?!\w)")


def has_phrase(text: str, phrase: str) -> bool:
    """True when ``phrase`` occurs in ``text`` bounded by non-word characters.

    "hi" matches "hi there" and "hi!" but not "this".
    """
    return _phrase_pattern(phrase).search(text) is not None


def has_any(text: str, phrases: Iterable[str]) -> bool:
    return any(has_phrase(text, p) for p in phrases)


def clean_token(token: str) -> str:
    return token.strip(".,;:!?\"'()[]{}")
