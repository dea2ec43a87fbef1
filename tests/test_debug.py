# Copyright: (c) 2023, Jordan Borean (@jborean93) <jborean93@gmail.com>
# MIT License (see LICENSE or https://opensource.org/licenses/MIT)

from __future__ import annotations

import logging
import pathlib

import pytest

import ldapwire
from ldapwire.asn1 import NotEnoughData, TagClass, TypeTagNumber, pack_asn1


def test_dump_unbind() -> None:
    actual = ldapwire.dump_asn1(b"\x30\x05\x02\x01\x01\x42\x00")
    assert actual == (
        "Universal SEQUENCE (16) Constructed Len=5\n"
        "  Universal INTEGER (2) Primitive Len=1: 1\n"
        "  Application 2 Primitive Len=0: b''"
    )


def test_dump_universal_values() -> None:
    data = b"\x30\x12\x02\x01\x05\x01\x01\xFF\x05\x00\x0A\x01\x20\x04\x03abc\x84\x00"
    actual = ldapwire.dump_asn1(data)
    assert actual.splitlines() == [
        "Universal SEQUENCE (16) Constructed Len=18",
        "  Universal INTEGER (2) Primitive Len=1: 5",
        "  Universal BOOLEAN (1) Primitive Len=1: True",
        "  Universal NULL (5) Primitive Len=0",
        "  Universal ENUMERATED (10) Primitive Len=1: 32",
        "  Universal OCTET_STRING (4) Primitive Len=3: b'abc'",
        "  Context 4 Primitive Len=0: b''",
    ]


def test_dump_nested() -> None:
    data = b"\x30\x0C\x02\x01\x02\x63\x07\xA0\x05\x87\x03abc"
    actual = ldapwire.dump_asn1(data)
    assert actual.splitlines() == [
        "Universal SEQUENCE (16) Constructed Len=12",
        "  Universal INTEGER (2) Primitive Len=1: 2",
        "  Application 3 Constructed Len=7",
        "    Context 0 Constructed Len=5",
        "      Context 7 Primitive Len=3: b'abc'",
    ]


def test_dump_multiple_values() -> None:
    actual = ldapwire.dump_asn1(b"\x01\x01\x00\xC1\x01\xFF")
    assert actual.splitlines() == [
        "Universal BOOLEAN (1) Primitive Len=1: False",
        "Private 1 Primitive Len=1: b'\\xff'",
    ]


def test_dump_empty() -> None:
    assert ldapwire.dump_asn1(b"") == ""


def test_dump_truncated() -> None:
    with pytest.raises(NotEnoughData):
        ldapwire.dump_asn1(b"\x30\x05\x02")


def test_debug_binary_file(tmp_path: pathlib.Path, caplog: pytest.LogCaptureFixture) -> None:
    packet = tmp_path / "packet.bin"
    packet.write_bytes(b"\x30\x05\x02\x01\x01\x42\x00")

    with caplog.at_level(logging.DEBUG, logger="ldapwire._debug"):
        actual = ldapwire.debug_binary_file(packet)

    assert actual == ldapwire.dump_asn1(b"\x30\x05\x02\x01\x01\x42\x00")
    assert f"Packet from {packet}" in caplog.text
    assert "Universal SEQUENCE (16) Constructed Len=5" in caplog.text


def test_debug_binary_file_str_path(tmp_path: pathlib.Path) -> None:
    packet = tmp_path / "packet.bin"
    packet.write_bytes(b"\x05\x00")

    assert ldapwire.debug_binary_file(str(packet)) == "Universal NULL (5) Primitive Len=0"


def test_debug_binary_file_missing(tmp_path: pathlib.Path) -> None:
    packet = tmp_path / "missing.bin"

    with pytest.raises(ldapwire.LDAPError, match="Failed to debug") as exc:
        ldapwire.debug_binary_file(packet)

    assert exc.value.result_code == ldapwire.LDAPResultCode.ERROR_DEBUGGING
    assert str(exc.value).startswith('LDAP Result Code 203 "Debugging Error": ')
    assert isinstance(exc.value.__cause__, OSError)


def test_debug_binary_file_invalid_data(tmp_path: pathlib.Path) -> None:
    packet = tmp_path / "invalid.bin"
    packet.write_bytes(b"\x30\x80\x00\x00")

    with pytest.raises(ldapwire.LDAPError, match="indefinite length") as exc:
        ldapwire.debug_binary_file(packet)

    assert exc.value.result_code == ldapwire.LDAPResultCode.ERROR_DEBUGGING


def _nested_sequences(depth: int) -> bytes:
    data = b"\x05\x00"
    for _ in range(depth):
        data = pack_asn1(TagClass.UNIVERSAL, True, TypeTagNumber.SEQUENCE, data)

    return data


def test_dump_deeply_nested() -> None:
    actual = ldapwire.dump_asn1(_nested_sequences(3000)).splitlines()

    assert len(actual) == 3001
    assert actual[0].startswith("Universal SEQUENCE (16) Constructed Len=")
    assert actual[2999] == f"{' ' * 5998}Universal SEQUENCE (16) Constructed Len=2"
    assert actual[3000] == f"{' ' * 6000}Universal NULL (5) Primitive Len=0"


def test_dump_deeply_nested_with_siblings() -> None:
    data = pack_asn1(
        TagClass.UNIVERSAL,
        True,
        TypeTagNumber.SEQUENCE,
        _nested_sequences(2) + b"\x02\x01\x07",
    )
    actual = ldapwire.dump_asn1(data)
    assert actual.splitlines() == [
        "Universal SEQUENCE (16) Constructed Len=9",
        "  Universal SEQUENCE (16) Constructed Len=4",
        "    Universal SEQUENCE (16) Constructed Len=2",
        "      Universal NULL (5) Primitive Len=0",
        "  Universal INTEGER (2) Primitive Len=1: 7",
    ]


def test_debug_binary_file_deeply_nested(tmp_path: pathlib.Path) -> None:
    packet = tmp_path / "nested.bin"
    packet.write_bytes(_nested_sequences(3000)[:-1])

    with pytest.raises(ldapwire.LDAPError) as exc:
        ldapwire.debug_binary_file(packet)

    assert exc.value.result_code == ldapwire.LDAPResultCode.ERROR_DEBUGGING
    assert isinstance(exc.value.__cause__, NotEnoughData)
