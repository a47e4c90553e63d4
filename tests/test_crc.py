"""CRC16-CCITT checksum tests."""
import binascii

import pytest

from khqrgen.crc import crc16_ccitt, verify_crc


def _reference(text: str) -> str:
    return f"{binascii.crc_hqx(text.encode('ascii'), 0xFFFF):04X}"


def test_empty_input_is_initial_register():
    assert crc16_ccitt("") == "FFFF"


@pytest.mark.parametrize(
    "text, expected",
    [
        ("123456789", "29B1"),
        ("A", "B915"),
    ],
)
def test_ccitt_false_check_values(text, expected):
    assert crc16_ccitt(text) == expected


@pytest.mark.parametrize(
    "text",
    [
        "6304",
        "000201010212",
        "00020101021229290006bakong0115merchant@bakong520454115303840540510.005802KH6304",
        "The quick brown fox jumps over the lazy dog",
    ],
)
def test_matches_independent_reference(text):
    assert crc16_ccitt(text) == _reference(text)


def test_output_is_four_uppercase_hex_digits():
    for text in ("", "a", "ab", "abc", "0" * 200):
        crc = crc16_ccitt(text)
        assert len(crc) == 4
        assert crc == crc.upper()
        int(crc, 16)


def test_hashes_code_units_not_utf8_bytes():
    # U+00E9 is one code unit, two UTF-8 bytes
    text = "\u00e9"
    single_unit = f"{binascii.crc_hqx(bytes([0xE9]), 0xFFFF):04X}"
    assert crc16_ccitt(text) == single_unit


def test_verify_crc_accepts_sealed_payload():
    body = "0002010102126304"
    assert verify_crc(body + crc16_ccitt(body))


def test_verify_crc_rejects_tampering():
    body = "0002010102126304"
    crc = crc16_ccitt(body)
    wrong = "0" if crc[-1] != "0" else "1"
    assert not verify_crc("0002010102116304" + crc)
    assert not verify_crc(body + crc[:3] + wrong)


def test_verify_crc_requires_tag_63_header():
    assert not verify_crc("000201")
    assert not verify_crc("00020101021212345678")
