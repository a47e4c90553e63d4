"""Utility helpers to build and parse EMV-style TLV payloads."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Iterator

from .services.errors import ValidationError

MAX_VALUE_LENGTH = 99


@dataclass(frozen=True)
class TLVItem:
    tag: str
    value: str

    def serialize(self) -> str:
        if len(self.value) > MAX_VALUE_LENGTH:
            raise ValidationError(
                f"Tag {self.tag} value is {len(self.value)} characters, limit is {MAX_VALUE_LENGTH}",
                field=self.tag,
            )
        length = f"{len(self.value):02d}"
        return f"{self.tag}{length}{self.value}"


def build_tlv(items: Iterable[TLVItem]) -> str:
    """Serialize iterable of TLV items into EMV string."""

    return "".join(item.serialize() for item in items)


def parse_tlv(payload: str) -> Iterator[TLVItem]:
    """Parse TLV payload string into TLV items."""

    idx = 0
    total = len(payload)
    while idx + 4 <= total:
        tag = payload[idx : idx + 2]
        length_raw = payload[idx + 2 : idx + 4]
        if not (length_raw.isascii() and length_raw.isdigit()):
            raise ValidationError(f"Non-numeric TLV length {length_raw!r} for tag {tag}", field=tag)
        value_start = idx + 4
        value_end = value_start + int(length_raw)
        if value_end > total:
            raise ValidationError("Invalid TLV length exceeds payload", field=tag)
        yield TLVItem(tag=tag, value=payload[value_start:value_end])
        idx = value_end
    if idx != total:
        raise ValidationError("Dangling TLV data detected")
