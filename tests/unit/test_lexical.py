"""Tests for word-boundary phrase matching."""

from retrieval_engine.query.lexical import clean_token, has_any, has_phrase


def test_phrase_matches_whole_words_only():
    assert has_phrase("hi there", "hi")
    assert not has_phrase("this is it", "hi")
    assert has_phrase("what's the latest news?", "news")


def test_multi_word_phrase():
    assert has_phrase("list the pros and cons", "pros and cons")
    assert not has_phrase("prosaic and constant", "pros and cons")


def test_has_any():
    assert has_any("compare a vs b", ("versus", "vs"))
    assert not has_any("canvas", ("vs", "can"))


def test_clean_token():
    assert clean_token('"invoice?"') == "invoice"
    assert clean_token("(2024),") == "2024"
    assert clean_token("...") == ""
