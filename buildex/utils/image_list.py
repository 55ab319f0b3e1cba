"""
Property image list normalization.
Parses a persisted "images" field into an ordered list of image references.
"""

from typing import Any, List, Sequence
import re

# Commas that start a new data URI; commas inside base64 payloads are kept
_DATA_URI_BOUNDARY = re.compile(r",(?=data:)")

_QUOTE = '"'


def _split_brace_literal(content: str) -> List[str]:
    """Split the inside of a {a,"b,c"} literal on unquoted commas."""
    fields: List[str] = []
    current = []
    in_quotes = False

    for char in content:
        if char == _QUOTE:
            in_quotes = not in_quotes
            current.append(char)
        elif char == "," and not in_quotes:
            fields.append("".join(current))
            current = []
        else:
            current.append(char)
    fields.append("".join(current))

    result = []
    for field in fields:
        field = field.strip()
        if len(field) >= 2 and field.startswith(_QUOTE) and field.endswith(_QUOTE):
            field = field[1:-1].replace('""', _QUOTE)
        result.append(field)
    return result


def normalize_images(raw: Any) -> List[str]:
    """
    Normalize a raw images value into an ordered list of strings.

    Accepted shapes, checked in order:
        - list/tuple: returned as a list, unchanged
        - None: empty list
        - "{a,b,"c,d"}": brace literal with optional double-quoted fields
        - "data:...,data:...": comma-joined data URIs
        - "a, b, c": plain comma-separated list
        - "a": single value

    Any other type, and a blank string, yields an empty list. A whitespace-only
    string is treated as blank rather than kept as a single empty entry.

    Args:
        raw: Value read from the store

    Returns:
        List of image references (URLs or data URIs)
    """
    if raw is None:
        return []

    if isinstance(raw, (list, tuple)):
        return list(raw)

    if not isinstance(raw, str) or not raw.strip():
        return []

    if raw.startswith("{") and raw.endswith("}"):
        content = raw[1:-1]
        if not content:
            return []
        return _split_brace_literal(content)

    if "," in raw:
        if raw.strip().startswith("data:"):
            if raw.find("data:", 5) > -1:
                return [segment.strip() for segment in _DATA_URI_BOUNDARY.split(raw)]
            # Single data URI whose payload contains commas
            return [raw]
        return [segment.strip() for segment in raw.split(",")]

    return [raw.strip()]


def _quote_field(value: str) -> str:
    if value == "" or any(char in value for char in ',"{} \t\n'):
        return _QUOTE + value.replace(_QUOTE, '""') + _QUOTE
    return value


def encode_images(images: Sequence[str]) -> str:
    """
    Encode image references as a brace literal for storage.

    The result round-trips through normalize_images.
    """
    return "{" + ",".join(_quote_field(image) for image in images) + "}"
