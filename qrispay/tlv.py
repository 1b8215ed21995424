"""Utility helpers to build, parse and rewrite EMV-style TLV payloads.

Two lookup strategies live here. :func:`parse_tlv` walks the payload header by
header and is strict about lengths. :func:`find_field` and :func:`insert_before`
scan for the literal tag text, which is what QRIS issuers rely on when
patching a static merchant payload; a value that happens to contain the tag
text will match first.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Iterator

from .services.errors import err_field_not_found, err_invalid_input, err_malformed_payload

MAX_VALUE_LENGTH = 99


@dataclass(frozen=True)
class TLVItem:
    tag: str
    value: str

    def serialize(self) -> str:
        size = len(self.value.encode("utf-8"))
        if size > MAX_VALUE_LENGTH:
            raise err_invalid_input(f"Tag {self.tag} value is {size} bytes, limit is {MAX_VALUE_LENGTH}")
        return f"{self.tag}{size:02d}{self.value}"


@dataclass(frozen=True)
class FieldSpan:
    """Location of a field inside a payload string."""

    tag: str
    start: int
    value_start: int
    value_end: int

    @property
    def length(self) -> int:
        return self.value_end - self.value_start


def build_tlv(items: Iterable[TLVItem]) -> str:
    """Serialize iterable of TLV items into EMV string."""

    return "".join(item.serialize() for item in items)


def parse_tlv(payload: str) -> Iterator[TLVItem]:
    """Parse TLV payload string into TLV items.

    Lengths are byte counts, so the walk runs over the UTF-8 encoding.
    """

    raw = payload.encode("utf-8")
    idx = 0
    total = len(raw)
    while idx + 4 <= total:
        tag = raw[idx : idx + 2].decode("ascii")
        length_text = raw[idx + 2 : idx + 4]
        if not length_text.isdigit():
            raise ValueError(f"Invalid TLV length {length_text!r} at offset {idx}")
        value_start = idx + 4
        value_end = value_start + int(length_text)
        if value_end > total:
            raise ValueError("Invalid TLV length exceeds payload")
        yield TLVItem(tag=tag, value=raw[value_start:value_end].decode("utf-8"))
        idx = value_end
    if idx != total:
        raise ValueError("Dangling TLV data detected")


def find_field(payload: str, tag: str) -> FieldSpan:
    """Locate the first ``tag`` followed by a two digit length.

    Raises :class:`~qrispay.services.errors.FieldNotFound` when no occurrence
    carries a length that fits inside the payload.
    """

    start = payload.find(tag)
    while start != -1:
        length_text = payload[start + 2 : start + 4]
        if length_text.isdigit():
            value_start = start + 4
            value_end = value_start + int(length_text)
            if value_end <= len(payload):
                return FieldSpan(tag=tag, start=start, value_start=value_start, value_end=value_end)
        start = payload.find(tag, start + 1)
    raise err_field_not_found(tag)


def field_value(payload: str, tag: str) -> str:
    span = find_field(payload, tag)
    return payload[span.value_start : span.value_end]


def insert_before(payload: str, anchor: str, new_field: str) -> str:
    """Insert ``new_field`` in front of the first occurrence of ``anchor``."""

    prefix, sep, suffix = payload.partition(anchor)
    if not sep:
        raise err_malformed_payload(f"Anchor {anchor} not found in payload")
    return f"{prefix}{new_field}{anchor}{suffix}"


def replace_field(payload: str, tag: str, value: str) -> str:
    """Replace the value of the first ``tag`` field, recomputing its length."""

    span = find_field(payload, tag)
    return payload[: span.start] + TLVItem(tag=tag, value=value).serialize() + payload[span.value_end :]
