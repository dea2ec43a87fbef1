# Copyright: (c) 2023, Jordan Borean (@jborean93) <jborean93@gmail.com>
# MIT License (see LICENSE or https://opensource.org/licenses/MIT)

from __future__ import annotations

import typing as t

import pytest

import ldapwire
from ldapwire.asn1 import ASN1Reader

PACKING_OPTIONS = ldapwire.PackingOptions()


def pack_message(msg: ldapwire.LDAPMessage) -> bytes:
    return msg.pack(PACKING_OPTIONS)


def unpack_message(data: bytes) -> ldapwire.LDAPMessage:
    reader = ASN1Reader(data)
    return ldapwire.unpack_ldap_message(reader, ldapwire.PackingOptions())


def result_message(
    cls: t.Type[ldapwire.LDAPMessage],
    message_id: int,
    result_code: ldapwire.LDAPResultCode = ldapwire.LDAPResultCode.SUCCESS,
    diagnostics_message: str = "",
    controls: t.Optional[t.List[ldapwire.LDAPControl]] = None,
    **kwargs: t.Any,
) -> bytes:
    """Packs a response message that contains an LDAPResult."""
    msg = cls(
        message_id=message_id,
        controls=controls or [],
        result=ldapwire.LDAPResult(
            result_code=result_code,
            diagnostics_message=diagnostics_message,
        ),
        **kwargs,
    )
    return pack_message(msg)


@pytest.fixture
def client() -> ldapwire.LDAPClient:
    return ldapwire.LDAPClient()
