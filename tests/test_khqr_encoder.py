"""KHQR encoder and decoder tests."""
import binascii
from dataclasses import replace
from decimal import Decimal

import pytest

from khqrgen.crc import verify_crc
from khqrgen.khqr_encoder import (
    AccountLayout,
    Currency,
    KHQRBuilder,
    decode_khqr,
    encode_khqr,
    format_amount,
)
from khqrgen.services.errors import ValidationError
from khqrgen.tlv import parse_tlv

REFERENCE_BODY = (
    "000201"
    "010212"
    "2929" "0006bakong" "0115merchant@bakong"
    "52045411"
    "5303840"
    "540510.00"
    "5802KH"
    "5908GameHost"
    "6010Phnom Penh"
    "6212" "0108ORDER123"
    "6304"
)


def _fields(payload):
    return {item.tag: item.value for item in parse_tlv(payload)}


def test_reference_order_encodes_exactly(descriptor):
    encoded = encode_khqr(descriptor)
    expected_crc = f"{binascii.crc_hqx(REFERENCE_BODY.encode('ascii'), 0xFFFF):04X}"
    assert encoded.payload == REFERENCE_BODY + expected_crc
    assert encoded.crc == expected_crc


def test_reference_order_scenario(descriptor):
    payload = encode_khqr(descriptor).payload
    assert payload.startswith("000201010212")
    assert "5303840" in payload
    assert "540510.00" in payload
    assert payload[-4:] == payload[-4:].upper()
    int(payload[-4:], 16)


def test_fields_emitted_in_fixed_order(descriptor):
    tags = [item.tag for item in parse_tlv(encode_khqr(descriptor).payload)]
    assert tags == ["00", "01", "29", "52", "53", "54", "58", "59", "60", "62", "63"]


def test_round_trip_recovers_field_values(descriptor):
    decoded = decode_khqr(encode_khqr(descriptor).payload)
    assert decoded.crc_valid
    assert decoded.merchant_account == {"00": "bakong", "01": "merchant@bakong"}
    assert decoded.currency is Currency.USD
    assert decoded.amount == "10.00"
    assert decoded.fields["59"] == "GameHost"
    assert decoded.fields["60"] == "Phnom Penh"
    assert decoded.bill_number == "ORDER123"


def test_deterministic(descriptor):
    assert encode_khqr(descriptor) == encode_khqr(descriptor)


def test_crc_covers_everything_through_6304(descriptor):
    payload = encode_khqr(descriptor).payload
    assert payload[-8:-4] == "6304"
    assert verify_crc(payload)


def test_khr_currency_mapping(descriptor):
    payload = encode_khqr(replace(descriptor, currency="KHR", amount=51250)).payload
    assert "5303116" in payload
    assert _fields(payload)["54"] == "51250"


@pytest.mark.parametrize(
    "amount, currency, expected",
    [
        (12.5, Currency.USD, "12.50"),
        (Decimal("10"), Currency.USD, "10.00"),
        ("0.005", Currency.USD, "0.01"),
        (0, Currency.USD, "0.00"),
        (51250, Currency.KHR, "51250"),
        (Decimal("41000.4"), Currency.KHR, "41000"),
        (1234567, Currency.USD, "1234567.00"),
    ],
)
def test_format_amount(amount, currency, expected):
    assert format_amount(amount, currency) == expected


def test_merchant_name_truncated_to_25(descriptor):
    name = "ABCDEFGHIJKLMNOPQRSTUVWXYZ0123"
    payload = encode_khqr(replace(descriptor, merchant_name=name)).payload
    assert "5925" + name[:25] + "60" in payload
    assert _fields(payload)["59"] == name[:25]


def test_city_and_bill_number_truncated(descriptor):
    payload = encode_khqr(
        replace(descriptor, merchant_city="Siem Reap Province", transaction_id="T" * 40)
    ).payload
    fields = _fields(payload)
    assert fields["60"] == "Siem Reap Provi"
    assert fields["62"] == "0125" + "T" * 25


def test_strict_mode_rejects_oversized_input(descriptor):
    with pytest.raises(ValidationError) as exc_info:
        encode_khqr(replace(descriptor, merchant_city="Siem Reap Province"), strict=True)
    assert exc_info.value.field == "merchant_city"


def test_strict_mode_accepts_fitting_input(descriptor):
    assert encode_khqr(descriptor, strict=True) == encode_khqr(descriptor)


def test_merchant_name_account_layout(descriptor):
    payload = encode_khqr(
        replace(descriptor, merchant_name="Angkor Game Hosting", account_layout=AccountLayout.MERCHANT_NAME)
    ).payload
    decoded = decode_khqr(payload)
    assert decoded.merchant_account == {"00": "bakong", "01": "Angkor Game Hos"}
    assert decoded.fields["59"] == "Angkor Game Hosting"


def test_additional_description_is_not_emitted(descriptor):
    with_description = replace(descriptor, additional_description="Monthly VPS renewal")
    assert encode_khqr(with_description) == encode_khqr(descriptor)
    assert "Monthly" not in encode_khqr(with_description).payload


@pytest.mark.parametrize("field_name", ["merchant_id", "merchant_name", "merchant_city", "transaction_id"])
def test_missing_text_fields_rejected(descriptor, field_name):
    with pytest.raises(ValidationError) as exc_info:
        encode_khqr(replace(descriptor, **{field_name: ""}))
    assert exc_info.value.field == field_name
    assert exc_info.value.code == "ERR_VALIDATION"


@pytest.mark.parametrize("currency", [None, "", "EUR", "usd", 840])
def test_bad_currency_rejected(descriptor, currency):
    with pytest.raises(ValidationError) as exc_info:
        encode_khqr(replace(descriptor, currency=currency))
    assert exc_info.value.field == "currency"


@pytest.mark.parametrize(
    "amount",
    [None, "", -1, Decimal("-0.01"), float("nan"), float("inf"), "ten", True, Decimal("1e40")],
)
def test_bad_amount_rejected(descriptor, amount):
    with pytest.raises(ValidationError) as exc_info:
        encode_khqr(replace(descriptor, amount=amount))
    assert exc_info.value.field == "amount"


def test_overlong_merchant_account_rejected(descriptor):
    with pytest.raises(ValidationError) as exc_info:
        encode_khqr(replace(descriptor, merchant_id="m" * 90))
    assert exc_info.value.field == "29"


def test_builder_computes_lengths():
    encoded = KHQRBuilder().append("00", "01").append("59", "Cafe Amazon").finish()
    assert encoded.payload.startswith("0002015911Cafe Amazon6304")
    assert verify_crc(encoded.payload)


def test_decode_flags_bad_crc(descriptor):
    payload = encode_khqr(descriptor).payload
    tampered = payload.replace("5908GameHost", "5908GameHast")
    decoded = decode_khqr(tampered)
    assert not decoded.crc_valid
    assert decoded.fields["59"] == "GameHast"


def test_decode_rejects_malformed_payload():
    with pytest.raises(ValidationError):
        decode_khqr("000201010212299")


@pytest.mark.parametrize(
    "field_name, value",
    [
        ("merchant_name", "Caf\U0001F600"),
        ("merchant_name", "Café"),
        ("merchant_city", "ភ្នំពេញ"),
        ("transaction_id", "ORDER–123"),
    ],
)
def test_non_ascii_text_rejected(descriptor, field_name, value):
    with pytest.raises(ValidationError) as exc_info:
        encode_khqr(replace(descriptor, **{field_name: value}))
    assert exc_info.value.field == field_name
