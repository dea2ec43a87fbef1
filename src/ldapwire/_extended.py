# Copyright: (c) 2023, Jordan Borean (@jborean93) <jborean93@gmail.com>
# MIT License (see LICENSE or https://opensource.org/licenses/MIT)

from __future__ import annotations

import dataclasses
import enum
import typing as t

from .asn1 import ASN1Reader, ASN1Tag, ASN1Writer, TagClass


class ExtendedOperations(str, enum.Enum):
    """Known LDAP Extended Operation Names."""

    LDAP_NOTICE_OF_DISCONNECTION = "1.3.6.1.4.1.1466.20036"
    LDAP_START_TLS = "1.3.6.1.4.1.1466.20037"
    LDAP_PASSWORD_MODIFY = "1.3.6.1.4.1.4203.1.11.1"
    LDAP_WHO_AM_I = "1.3.6.1.4.1.4203.1.11.3"


@dataclasses.dataclass(frozen=True)
class PasswordModifyRequestValue:
    """The Password Modify extended request value.

    Used to change the password of a user as defined in
    `RFC 3062 2. Password Modify Extended Operation`_. Each field is optional,
    the server uses the bound identity when user_identity is not set and may
    generate a new password when new_password is not set.

    Args:
        user_identity: The identity of the user whose password is changed.
        old_password: The current password of the user.
        new_password: The new password for the user.

    .. _RFC 3062 2. Password Modify Extended Operation:
        https://www.rfc-editor.org/rfc/rfc3062#section-2
    """

    # PasswdModifyRequestValue ::= SEQUENCE {
    #      userIdentity    [0]  OCTET STRING OPTIONAL
    #      oldPasswd       [1]  OCTET STRING OPTIONAL
    #      newPasswd       [2]  OCTET STRING OPTIONAL }

    user_identity: t.Optional[str] = None
    old_password: t.Optional[str] = None
    new_password: t.Optional[str] = None

    def pack(
        self,
        string_encoding: str = "utf-8",
    ) -> bytes:
        writer = ASN1Writer()
        with writer.push_sequence() as value_writer:
            for idx, value in enumerate([self.user_identity, self.old_password, self.new_password]):
                if value is not None:
                    value_writer.write_octet_string(
                        value.encode(string_encoding),
                        tag=ASN1Tag(TagClass.CONTEXT_SPECIFIC, idx, False),
                    )

        return writer.get_data()

    @classmethod
    def unpack(
        cls,
        data: bytes,
        string_encoding: str = "utf-8",
    ) -> PasswordModifyRequestValue:
        values: t.List[t.Optional[str]] = [None, None, None]

        reader = ASN1Reader(data).read_sequence(hint="PasswdModifyRequestValue")
        while reader:
            next_header = reader.peek_header()
            tag = next_header.tag

            if tag.tag_class == TagClass.CONTEXT_SPECIFIC and tag.tag_number in [0, 1, 2]:
                values[tag.tag_number] = reader.read_octet_string(
                    header=next_header,
                    hint="PasswdModifyRequestValue",
                ).decode(string_encoding)
                continue

            reader.skip_value(next_header)

        return PasswordModifyRequestValue(
            user_identity=values[0],
            old_password=values[1],
            new_password=values[2],
        )


@dataclasses.dataclass(frozen=True)
class PasswordModifyResponseValue:
    """The Password Modify extended response value.

    Args:
        generated_password: The password generated by the server, if any.
    """

    # PasswdModifyResponseValue ::= SEQUENCE {
    #      genPasswd       [0]     OCTET STRING OPTIONAL }

    generated_password: t.Optional[str] = None

    def pack(
        self,
        string_encoding: str = "utf-8",
    ) -> bytes:
        writer = ASN1Writer()
        with writer.push_sequence() as value_writer:
            if self.generated_password is not None:
                value_writer.write_octet_string(
                    self.generated_password.encode(string_encoding),
                    tag=ASN1Tag(TagClass.CONTEXT_SPECIFIC, 0, False),
                )

        return writer.get_data()

    @classmethod
    def unpack(
        cls,
        data: t.Optional[bytes],
        string_encoding: str = "utf-8",
    ) -> PasswordModifyResponseValue:
        # The server omits the value entirely when no password was generated.
        if not data:
            return PasswordModifyResponseValue()

        generated_password: t.Optional[str] = None
        reader = ASN1Reader(data).read_sequence(hint="PasswdModifyResponseValue")
        while reader:
            next_header = reader.peek_header()

            if next_header.tag.tag_class == TagClass.CONTEXT_SPECIFIC and next_header.tag.tag_number == 0:
                generated_password = reader.read_octet_string(
                    header=next_header,
                    hint="PasswdModifyResponseValue.genPasswd",
                ).decode(string_encoding)
                continue

            reader.skip_value(next_header)

        return PasswordModifyResponseValue(generated_password=generated_password)


def unpack_who_am_i_response(
    data: t.Optional[bytes],
    string_encoding: str = "utf-8",
) -> str:
    """Get the authorization identity from a Who Am I response value.

    The value is the authzId as defined in `RFC 4532 2.2. Response`_, an
    anonymous identity is returned as an empty string.

    .. _RFC 4532 2.2. Response:
        https://www.rfc-editor.org/rfc/rfc4532#section-2.2
    """
    return (data or b"").decode(string_encoding)
