"""Record serializer producing comma-delimited text lines."""

from typing import Any

from .models import Record

NULL_STRING = "\0"
DELIMITER = ","


def to_text(value: Any) -> str:
    """
    Canonical text form of a field value; ``None`` becomes the null sentinel.

    Numbers use Python's ``str`` form, so floats read ``1e+20``, ``nan`` and ``inf``.
    """
    if value is None:
        return NULL_STRING
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _quote(text: str) -> str:
    if any(ch in text for ch in (DELIMITER, '"', "\n", "\r")):
        return '"' + text.replace('"', '""') + '"'
    return text


class RecordSerializer:
    """
    Serializes a record into a single delimited line.

    Fields are written in record order and joined with a comma. By default
    values are not escaped, so a value containing a comma cannot be told
    apart from two fields when the line is parsed. Set ``quote_fields`` to
    wrap such values in double quotes (RFC 4180 style) instead.
    """

    def __init__(self, quote_fields: bool = False):
        self.quote_fields = quote_fields

    def serialize(self, record: Record) -> str:
        parts = []
        for _, value in record:
            text = to_text(value)
            if self.quote_fields and value is not None:
                text = _quote(text)
            parts.append(text)
        return DELIMITER.join(parts)
