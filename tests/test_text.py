import pytest

from utils.text import content_hash, count_words, normalize_text


def test_normalize_line_endings_and_spaces():
    assert normalize_text("a\r\nb") == "a\nb"
    assert normalize_text("a  \t  b") == "a b"
    assert normalize_text("a\n\n\n\n\nb") == "a\n\nb"
    assert normalize_text("a\n\nb") == "a\n\nb"
    assert normalize_text("  \t padded \n ") == "padded"


def test_normalize_empty():
    assert normalize_text("") == ""
    assert normalize_text(" \r\n\t ") == ""


@pytest.mark.parametrize("raw", [
    "Plain sentence.",
    "Line one\r\n\r\n\r\n\r\nLine two\t\twith tabs",
    "  leading and trailing  ",
    "a\r\n \r\n \r\nb",
    "\n\n\nx\n\n\n\ny\n\n\n",
    "mixed \t \r\n spacing \r\n\r\n\r\n end",
])
def test_normalize_is_idempotent(raw):
    once = normalize_text(raw)
    assert normalize_text(once) == once


def test_content_hash_matches_32bit_rolling_hash():
    assert content_hash("") == "0"
    assert content_hash("a") == "97"
    assert content_hash("ab") == str(97 * 31 + 98)
    assert content_hash("hello") == "99162322"


def test_content_hash_wraps_to_signed_32bit():
    assert content_hash("polygenelubricants") == "-2147483648"


def test_content_hash_uses_utf16_code_units():
    # U+1F600 is the surrogate pair D83D DE00
    assert content_hash("\U0001F600") == str(0xD83D * 31 + 0xDE00)


def test_content_hash_equal_after_normalization():
    assert content_hash(normalize_text("Cats\r\nhunt")) == content_hash(normalize_text("Cats\nhunt  "))
    assert content_hash("Cats hunt") != content_hash("Cats hunt.")


def test_count_words():
    assert count_words("") == 0
    assert count_words("one") == 1
    assert count_words("one two three") == 3
