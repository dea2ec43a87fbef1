# Copyright: (c) 2023, Jordan Borean (@jborean93) <jborean93@gmail.com>
# MIT License (see LICENSE or https://opensource.org/licenses/MIT)

from __future__ import annotations

import pytest

import ldapwire

from .conftest import result_message


@pytest.mark.parametrize(
    "code, expected",
    [
        (ldapwire.LDAPResultCode.SUCCESS, "Success"),
        (ldapwire.LDAPResultCode.NO_SUCH_OBJECT, "No Such Object"),
        (ldapwire.LDAPResultCode.INVALID_CREDENTIALS, "Invalid Credentials"),
        (ldapwire.LDAPResultCode.ERROR_NETWORK, "Network Error"),
        (ldapwire.LDAPResultCode.ERROR_FILTER_COMPILE, "Filter Compile Error"),
        (ldapwire.LDAPResultCode.ERROR_FILTER_DECOMPILE, "Filter Decompile Error"),
        (ldapwire.LDAPResultCode.ERROR_DEBUGGING, "Debugging Error"),
        (49, "Invalid Credentials"),
        (99, "99"),
    ],
)
def test_describe(code: int, expected: str) -> None:
    assert ldapwire.describe(code) == expected


def test_every_code_has_label() -> None:
    for code in ldapwire.LDAPResultCode:
        assert ldapwire.describe(code) != str(int(code))


def test_unknown_result_code() -> None:
    actual = ldapwire.LDAPResultCode(1024)
    assert isinstance(actual, ldapwire.LDAPResultCode)
    assert actual == 1024
    assert actual.name == "UNKNOWN 0x00000400"
    assert ldapwire.LDAPResultCode(1024) is actual


def test_error_str() -> None:
    err = ldapwire.LDAPError("Something failed", result_code=ldapwire.LDAPResultCode.BUSY)
    assert err.result_code == ldapwire.LDAPResultCode.BUSY
    assert err.message == "Something failed"
    assert str(err) == 'LDAP Result Code 51 "Busy": Something failed'


def test_error_default_code() -> None:
    err = ldapwire.LDAPError("failure")
    assert err.result_code == ldapwire.LDAPResultCode.OTHER
    assert str(err) == 'LDAP Result Code 80 "Other": failure'


def test_error_unknown_code() -> None:
    err = ldapwire.LDAPError("failure", result_code=99)
    assert str(err) == 'LDAP Result Code 99 "99": failure'


def test_network_error() -> None:
    err = ldapwire.NetworkError("connection reset")
    assert isinstance(err, ldapwire.LDAPError)
    assert err.result_code == ldapwire.LDAPResultCode.ERROR_NETWORK
    assert str(err) == 'LDAP Result Code 200 "Network Error": connection reset'


def test_protocol_error() -> None:
    err = ldapwire.ProtocolError("bad data", response=b"\x00")
    assert err.result_code == ldapwire.LDAPResultCode.ERROR_NETWORK
    assert err.request is None
    assert err.response == b"\x00"


def test_directory_error_from_result() -> None:
    result = ldapwire.LDAPResult(
        result_code=ldapwire.LDAPResultCode.NO_SUCH_OBJECT,
        matched_dn="DC=domain,DC=test",
        diagnostics_message="entry missing",
    )
    err = ldapwire.DirectoryError.from_result(result)

    assert err.result_code == ldapwire.LDAPResultCode.NO_SUCH_OBJECT
    assert err.matched_dn == "DC=domain,DC=test"
    assert str(err) == 'LDAP Result Code 32 "No Such Object": entry missing'


class TestGetLdapResultCode:
    def test_result(self) -> None:
        data = result_message(
            ldapwire.DelResponse,
            1,
            result_code=ldapwire.LDAPResultCode.NO_SUCH_OBJECT,
            diagnostics_message="missing",
        )
        actual = ldapwire.get_ldap_result_code(data)
        assert actual == (ldapwire.LDAPResultCode.NO_SUCH_OBJECT, "missing")

    def test_success(self) -> None:
        data = result_message(ldapwire.ModifyResponse, 5)
        assert ldapwire.get_ldap_result_code(data) == (ldapwire.LDAPResultCode.SUCCESS, "")

    def test_result_with_controls(self) -> None:
        data = result_message(
            ldapwire.SearchResultDone,
            2,
            controls=[ldapwire.PagedResultControl(size=0, cookie=b"")],
        )
        assert ldapwire.get_ldap_result_code(data) == (ldapwire.LDAPResultCode.SUCCESS, "")

    @pytest.mark.parametrize(
        "data",
        [
            b"",
            b"\x30\x03\x02\x01\x01",
            b"\x30\x05\x02\x01\x01\x42\x00",
            b"\x30\x05\x02\x01\x01\x04\x00",
            b"\x30\x0A\x02\x01\x01\x6B\x05\x0A\x01\x00\x04\x00",
            b"\x30\x0E\x02\x01\x01\x6B\x09\x0A\x01\x00\x04\x00\x04\x00\x05\x00",
            b"\x04\x03abc",
        ],
    )
    def test_invalid_packet(self, data: bytes) -> None:
        actual = ldapwire.get_ldap_result_code(data)
        assert actual == (ldapwire.LDAPResultCode.ERROR_NETWORK, "Invalid packet format")


class TestGetResultError:
    def test_success(self) -> None:
        data = result_message(ldapwire.AddResponse, 1)
        assert ldapwire.get_result_error(data) is None

    def test_accepted_codes(self) -> None:
        data = result_message(
            ldapwire.CompareResponse,
            1,
            result_code=ldapwire.LDAPResultCode.COMPARE_TRUE,
        )
        accepted = [ldapwire.LDAPResultCode.COMPARE_TRUE, ldapwire.LDAPResultCode.COMPARE_FALSE]
        assert ldapwire.get_result_error(data, accepted=accepted) is None

        actual = ldapwire.get_result_error(data)
        assert isinstance(actual, ldapwire.DirectoryError)
        assert actual.result_code == ldapwire.LDAPResultCode.COMPARE_TRUE

    def test_directory_error(self) -> None:
        data = result_message(
            ldapwire.DelResponse,
            1,
            result_code=ldapwire.LDAPResultCode.NO_SUCH_OBJECT,
            diagnostics_message="0000208D: NameErr",
        )
        actual = ldapwire.get_result_error(data)

        assert isinstance(actual, ldapwire.DirectoryError)
        assert actual.result_code == ldapwire.LDAPResultCode.NO_SUCH_OBJECT
        assert str(actual) == 'LDAP Result Code 32 "No Such Object": 0000208D: NameErr'

    def test_malformed(self) -> None:
        actual = ldapwire.get_result_error(b"\x30\x03\x02\x01\x01")

        assert isinstance(actual, ldapwire.ProtocolError)
        assert actual.result_code == ldapwire.LDAPResultCode.ERROR_NETWORK
        assert actual.message == "Invalid packet format"
