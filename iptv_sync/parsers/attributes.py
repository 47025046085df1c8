"""Attribute scanning for `#EXTINF` lines."""
import re
from functools import lru_cache

QUOTES = ('"', "'")


@lru_cache(maxsize=64)
def _attribute_pattern(name):
    return re.compile(rf'{re.escape(name)}\s*=\s*["\']([^"\']*)["\']', re.IGNORECASE)


def extract_attribute(line, name):
    """Returns the quoted value of `name="..."` in `line`, or None."""
    if not line:
        return None
    match = _attribute_pattern(name).search(line)
    return match.group(1) if match else None


def split_top_level(line, sep=','):
    """
    Splits `line` on `sep` characters that are not inside a quoted span.
    Only the quote character that opened a span can close it.
    """
    parts = []
    current = []
    quote_char = None
    for char in line or '':
        if quote_char is None and char in QUOTES:
            quote_char = char
        elif char == quote_char:
            quote_char = None
        elif char == sep and quote_char is None:
            parts.append(''.join(current))
            current = []
            continue
        current.append(char)
    parts.append(''.join(current))
    return parts


def title_after_last_comma(line):
    """
    The free-text title of an `#EXTINF` line: the text after the last comma
    outside quotes, or after the last comma at all when quoting is unbalanced.
    Empty when the line has no comma.
    """
    parts = split_top_level(line)
    if len(parts) > 1:
        title = parts[-1].strip()
        if title:
            return title
    if ',' in (line or ''):
        return line.rsplit(',', 1)[1].strip()
    return ''
