# Copyright: (c) 2023, Jordan Borean (@jborean93) <jborean93@gmail.com>
# MIT License (see LICENSE or https://opensource.org/licenses/MIT)

from __future__ import annotations

import enum
import re

import pytest

from ldapwire.asn1 import (
    ASN1Reader,
    ASN1Tag,
    ASN1Writer,
    NotEnoughData,
    TagClass,
    TypeTagNumber,
    pack_asn1,
    pack_asn1_integer_value,
    read_asn1_header,
    unpack_asn1_integer_value,
)


class CustomEnum(enum.IntEnum):
    ZERO = 0
    ONE = 1


@pytest.mark.parametrize(
    "value, expected",
    [
        (0, b"\x00"),
        (127, b"\x7F"),
        (128, b"\x00\x80"),
        (256, b"\x01\x00"),
        (-1, b"\xFF"),
        (-128, b"\x80"),
        (-129, b"\xFF\x7F"),
    ],
)
def test_integer_value(value: int, expected: bytes) -> None:
    assert pack_asn1_integer_value(value) == expected
    assert unpack_asn1_integer_value(expected) == value


def test_fail_unpack_integer_no_data() -> None:
    with pytest.raises(ValueError, match="Received INTEGER with no contents octets"):
        unpack_asn1_integer_value(b"")


class TestHeader:
    def test_short_length(self) -> None:
        header = read_asn1_header(b"\x04\x03abc")
        assert header.tag == ASN1Tag(TagClass.UNIVERSAL, TypeTagNumber.OCTET_STRING, False)
        assert header.tag_length == 2
        assert header.length == 3

    def test_long_length(self) -> None:
        data = pack_asn1(TagClass.UNIVERSAL, False, TypeTagNumber.OCTET_STRING, b"a" * 200)
        assert data[:3] == b"\x04\x81\xC8"

        header = read_asn1_header(data)
        assert header.tag_length == 3
        assert header.length == 200

    def test_high_tag_number(self) -> None:
        data = pack_asn1(TagClass.APPLICATION, True, 1024, b"")
        assert data == b"\x7F\x88\x00\x00"

        header = read_asn1_header(data)
        assert header.tag == ASN1Tag(TagClass.APPLICATION, 1024, True)
        assert header.tag_length == 4
        assert header.length == 0

    def test_unknown_universal_tag(self) -> None:
        header = read_asn1_header(b"\x1F\x30\x00")
        assert header.tag.tag_number == 48
        assert header.tag.tag_number.name == "UNKNOWN 48"

    def test_fail_indefinite_length(self) -> None:
        with pytest.raises(ValueError, match="indefinite length"):
            read_asn1_header(b"\x30\x80\x00\x00")

    @pytest.mark.parametrize("data", [b"", b"\x30", b"\x30\x82\x01", b"\x1F\x88"])
    def test_not_enough_data(self, data: bytes) -> None:
        with pytest.raises(NotEnoughData):
            read_asn1_header(data)


class TestWriter:
    def test_nested_sequence(self) -> None:
        writer = ASN1Writer()
        with writer.push_sequence() as seq:
            seq.write_integer(1)
            with seq.push_set_of(ASN1Tag(TagClass.CONTEXT_SPECIFIC, 0, True)) as inner:
                inner.write_boolean(True)
                inner.write_boolean(False)
            seq.write_null()

        assert writer.get_data() == b"\x30\x0D\x02\x01\x01\xA0\x06\x01\x01\xFF\x01\x01\x00\x05\x00"

    def test_sequence_discarded_on_error(self) -> None:
        writer = ASN1Writer()
        with pytest.raises(ValueError, match="failure"):
            with writer.push_sequence() as seq:
                seq.write_integer(1)
                raise ValueError("failure")

        assert writer.get_data() == b""

    def test_write_tagged_octet_string(self) -> None:
        writer = ASN1Writer()
        writer.write_octet_string(b"cn", tag=ASN1Tag(TagClass.CONTEXT_SPECIFIC, 7, False))
        writer.write_enumerated(CustomEnum.ONE)
        writer.write_raw(b"\x05\x00")

        assert writer.get_data() == b"\x87\x02cn\x0A\x01\x01\x05\x00"


class TestReader:
    def test_read_values(self) -> None:
        data = b"\x30\x10\x02\x01\x05\x04\x03abc\x01\x01\x00\x0A\x01\x01\x05\x00"
        reader = ASN1Reader(data)
        assert reader

        seq = reader.read_sequence()
        assert not reader

        assert seq.read_integer() == 5
        assert seq.read_octet_string() == b"abc"
        assert seq.read_boolean() is False
        assert seq.read_enumerated(CustomEnum) == CustomEnum.ONE
        seq.read_null()
        assert not seq

    def test_peek_does_not_consume(self) -> None:
        reader = ASN1Reader(b"\x04\x01a\x04\x01b")
        header = reader.peek_header()
        assert reader.peek_header() == header

        reader.skip_value(header)
        assert reader.read_octet_string() == b"b"

    def test_read_tagged(self) -> None:
        reader = ASN1Reader(b"\xA3\x03\x04\x01a")
        inner = reader.read_tagged(ASN1Tag(TagClass.CONTEXT_SPECIFIC, 3, True))
        assert inner.read_octet_string() == b"a"

    def test_read_with_peeked_context_header(self) -> None:
        reader = ASN1Reader(b"\x80\x01a\x81\x01\x05\xA2\x03\x04\x01b\x83\x01\xFF")

        header = reader.peek_header()
        assert reader.read_octet_string(header=header) == b"a"

        header = reader.peek_header()
        assert reader.read_integer(header=header) == 5

        header = reader.peek_header()
        assert reader.read_sequence(header=header).read_octet_string() == b"b"

        header = reader.peek_header()
        assert reader.read_boolean(header=header) is True
        assert not reader

    def test_fail_peeked_header_explicit_tag_mismatch(self) -> None:
        reader = ASN1Reader(b"\x80\x01a")
        header = reader.peek_header()

        with pytest.raises(ValueError, match="Expected tag .* for value but got"):
            reader.read_octet_string(
                tag=ASN1Tag(TagClass.CONTEXT_SPECIFIC, 1, False),
                header=header,
                hint="value",
            )

    def test_remaining_data(self) -> None:
        reader = ASN1Reader(b"\x04\x01a\x30")
        reader.read_octet_string()
        assert reader.get_remaining_data().tobytes() == b"\x30"

    def test_fail_tag_mismatch(self) -> None:
        reader = ASN1Reader(b"\x04\x01a")
        expected = "Expected tag ASN1Tag(tag_class=<TagClass.UNIVERSAL: 0>, tag_number=<TypeTagNumber.INTEGER: 2>, is_constructed=False) for value"
        with pytest.raises(ValueError, match=re.escape(expected)):
            reader.read_integer(hint="value")

    def test_fail_truncated_value(self) -> None:
        reader = ASN1Reader(b"\x04\x05abc")
        with pytest.raises(NotEnoughData, match="Not enough data for value: expecting 5 but got 3"):
            reader.read_octet_string(hint="value")

    def test_fail_invalid_boolean(self) -> None:
        reader = ASN1Reader(b"\x01\x02\x00\x00")
        with pytest.raises(ValueError, match="Expecting BOOLEAN to have 1 octet but got 2"):
            reader.read_boolean()

    def test_fail_null_with_contents(self) -> None:
        reader = ASN1Reader(b"\x05\x01\x00")
        with pytest.raises(ValueError, match="Expecting NULL to have no contents but got 1 octets"):
            reader.read_null()
