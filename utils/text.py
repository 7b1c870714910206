# utils/text.py

"""Text canonicalization and content fingerprinting for ingestion."""
import re
from typing import Iterator

_CRLF = re.compile(r'\r\n')
_INLINE_SPACE = re.compile(r'[ \t]+')
_BLANK_LINES = re.compile(r'\n{3,}')

_UINT32 = 1 << 32
_INT32_MAX = (1 << 31) - 1


def normalize_text(text: str) -> str:
    """
    Canonicalize extracted text before chunking.
    CRLF -> LF, space/tab runs -> single space, 3+ newlines -> exactly 2, trimmed.
    """
    if not text:
        return ""

    text = _CRLF.sub('\n', text)
    text = _INLINE_SPACE.sub(' ', text)
    text = _BLANK_LINES.sub('\n\n', text)
    return text.strip()


def utf16_code_units(text: str) -> Iterator[int]:
    """Yield UTF-16 code units (astral characters become surrogate pairs)."""
    for ch in text:
        code = ord(ch)
        if code > 0xFFFF:
            code -= 0x10000
            yield 0xD800 + (code >> 10)
            yield 0xDC00 + (code & 0x3FF)
        else:
            yield code


def content_hash(text: str) -> str:
    """
    Rolling 31-multiplier fingerprint, wrapped to signed 32-bit.

    Used only for exact-duplicate rejection at ingest; not collision resistant.
    Returns the decimal string form (e.g. "-1534234").
    """
    value = 0
    for unit in utf16_code_units(text):
        value = (value * 31 + unit) % _UINT32

    if value > _INT32_MAX:
        value -= _UINT32
    return str(value)


def count_words(text: str) -> int:
    """Number of space-separated words, as the chunker counts them."""
    return len(text.split(' ')) if text else 0
