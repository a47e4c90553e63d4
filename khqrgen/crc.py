"""CRC16-CCITT implementation."""
from __future__ import annotations

import struct
from typing import Iterator

CRC16_POLY = 0x1021
CRC16_INIT = 0xFFFF
CRC_TAG_HEADER = "6304"


def _code_units(data: str) -> Iterator[int]:
    raw = data.encode("utf-16-be", "surrogatepass")
    yield from struct.unpack(f">{len(raw) // 2}H", raw)


def crc16_ccitt(data: str) -> str:
    """Compute CRC16-CCITT (0x1021, init 0xFFFF) for EMV payload strings.

    Characters are fed by UTF-16 code unit, so ASCII payloads hash exactly
    like their byte encoding.
    """

    checksum = CRC16_INIT
    for unit in _code_units(data):
        checksum ^= (unit << 8) & 0xFFFF
        for _ in range(8):
            if checksum & 0x8000:
                checksum = (checksum << 1) ^ CRC16_POLY
            else:
                checksum <<= 1
            checksum &= 0xFFFF
    return f"{checksum:04X}"


def verify_crc(payload: str) -> bool:
    """Return True when the trailing Tag 63 value matches the payload checksum."""

    if len(payload) < 8 or payload[-8:-4] != CRC_TAG_HEADER:
        return False
    return crc16_ccitt(payload[:-4]) == payload[-4:]
