# Copyright: (c) 2023, Jordan Borean (@jborean93) <jborean93@gmail.com>
# MIT License (see LICENSE or https://opensource.org/licenses/MIT)

from __future__ import annotations

import dataclasses
import logging
import typing as t

from .asn1 import ASN1Header, ASN1Reader, ASN1Tag, ASN1Writer, TagClass, TypeTagNumber

log = logging.getLogger(__name__)

ControlDecoder = t.Callable[[str, bool, t.Optional[bytes], "ControlOptions"], "LDAPControl"]

BEHERA_PASSWORD_POLICY_ERRORS: t.Dict[int, str] = {
    0: "Password expired",
    1: "Account locked",
    2: "Password must be changed",
    3: "Policy prevents password modification",
    4: "Policy requires old password in order to modify password",
    5: "Password fails quality checks",
    6: "Password is too short for policy",
    7: "Password has been changed too recently",
    8: "New password is in list of old passwords",
}


def unpack_ldap_control(
    reader: ASN1Reader,
    options: ControlOptions,
) -> LDAPControl:
    """Unpack an LDAP control.

    Unpacks the raw ASN.1 value in the reader specified into an LDAP control
    object. The control type is looked up in the registry of the options
    provided, an unknown control type is unpacked as a generic
    :class:`LDAPControl` with the raw value.

    Args:
        reader: The ASN.1 reader to read from.
        options: The options containing the control registry.

    Returns:
        LDAPControl: The unpacked control object.
    """
    control_reader = reader.read_sequence(hint="Control")

    control_type = control_reader.read_octet_string(
        hint="Control.controlType",
    ).decode(options.string_encoding)

    criticality = False

    next_header: t.Optional[ASN1Header] = None
    if control_reader:
        next_header = control_reader.peek_header()

    if (
        next_header
        and next_header.tag.tag_class == TagClass.UNIVERSAL
        and next_header.tag.tag_number == TypeTagNumber.BOOLEAN
    ):
        criticality = control_reader.read_boolean(
            header=next_header,
            hint="Control.criticality",
        )
        next_header = None
        if control_reader:
            next_header = control_reader.peek_header()

    control_value: t.Optional[bytes] = None
    if (
        next_header
        and next_header.tag.tag_class == TagClass.UNIVERSAL
        and next_header.tag.tag_number == TypeTagNumber.OCTET_STRING
    ):
        control_value = control_reader.read_octet_string(
            header=next_header,
            hint="Control.controlValue",
        )

    control = options.registry.decode(control_type, criticality, control_value, options)
    # Ensures unpacking a control always has this value
    object.__setattr__(control, "value", control_value)

    return control


def find_control(
    controls: t.Iterable[LDAPControl],
    control_type: str,
) -> t.Optional[LDAPControl]:
    """Find the first control of the type specified.

    Args:
        controls: The controls to search.
        control_type: The control OID string to find.

    Returns:
        Optional[LDAPControl]: The first control that matches or None if not
        present.
    """
    return next((c for c in controls if c.control_type == control_type), None)


class ControlRegistry:
    """Mapping of control OIDs to their decoders.

    The registry is used when unpacking controls to create the known control
    objects. It should be populated before it is used for unpacking, a decoder
    registered for an OID that already exists replaces the existing one.
    """

    def __init__(self) -> None:
        self._decoders: t.Dict[str, ControlDecoder] = {}

    def __contains__(self, control_type: object) -> bool:
        return control_type in self._decoders

    def register(
        self,
        control_type: str,
        decoder: ControlDecoder,
    ) -> None:
        self._decoders[control_type] = decoder

    def register_control(
        self,
        control: t.Type[LDAPControl],
    ) -> None:
        """Registers a control class by its control_type."""
        self.register(control.control_type, control.unpack)

    def get(
        self,
        control_type: str,
    ) -> t.Optional[ControlDecoder]:
        return self._decoders.get(control_type)

    def decode(
        self,
        control_type: str,
        critical: bool,
        value: t.Optional[bytes],
        options: ControlOptions,
    ) -> LDAPControl:
        decoder = self._decoders.get(control_type)
        if decoder is None:
            if critical:
                log.debug("Received unknown critical control %s", control_type)
            decoder = LDAPControl.unpack

        return decoder(control_type, critical, value, options)

    def copy(self) -> ControlRegistry:
        registry = ControlRegistry()
        registry._decoders.update(self._decoders)
        return registry


def default_control_registry() -> ControlRegistry:
    """Creates a new registry with the built in controls registered."""
    registry = ControlRegistry()
    for control in [
        BeheraPasswordPolicyControl,
        ManageDsaITControl,
        NotificationControl,
        PagedResultControl,
        ShowDeletedControl,
        VChuPasswordMustChangeControl,
        VChuPasswordWarningControl,
    ]:
        registry.register_control(control)

    return registry


@dataclasses.dataclass
class ControlOptions:
    """Options used for Control packing and unpacking.

    Custom options used for packing and unpacking control objects.

    Args:
        string_encoding: The encoding that is used to encode and decode
            strings. Defaults to utf-8.
        registry: The registry of known controls used when unpacking.
    """

    string_encoding: str = "utf-8"
    registry: ControlRegistry = dataclasses.field(default_factory=default_control_registry)


@dataclasses.dataclass(frozen=True)
class LDAPControl:
    """LDAP Control.

    An extended control used in an LDAPMessage. This can be sent by the client,
    known as client controls, or by the server, server controls. Each control
    is identified by an OID string that is meant to be unique and known by both
    the client and server. It can be marked as critical which means the peer
    should fail the operation if it does not know the control type specified.
    The Control structure is defined in `RFC 4511 4.1.11. Controls`_.

    An unpacked control object is guaranteed to have the control_type,
    critical, and value bytes set. Controls registered in the
    :class:`ControlRegistry` will unpack to objects containing the unpacked
    value. For example when unpacking a PagedResultControl control, the
    ``value`` will contain the raw bytes but the ``size`` and ``cookie``
    attributes will also be present.

    A custom implementation must inherit this class and provide a value for
    control_type as well as implement the ``get_value`` and ``unpack``
    methods. It is then registered with :meth:`ControlRegistry.register_control`.

    Example:
        .. code-block:: python

            @dataclasses.dataclass(frozen=True)
            class CustomControl(LDAPControl):
                control_type: str = dataclasses.field(init=False, repr=False, default="1.2.3.4")
                value: t.Optional[bytes] = dataclasses.field(init=False, repr=False, default=None)

                size: int

                def get_value(
                    self,
                    options: ControlOptions,
                ) -> t.Optional[bytes]:
                    return self.size.to_bytes(4, byteorder="little")

                @classmethod
                def unpack(
                    cls,
                    control_type: str,
                    critical: bool,
                    value: t.Optional[bytes],
                    options: ControlOptions,
                ) -> CustomControl:
                    size = struct.unpack("<I", (value or b""))[0]

                    return CustomControl(critical=critical, size=size)

    Args:
        control_type: The control OID string.
        critical: Whether the control is marked as critical or not.
        value: The raw control value, if any.

    .. _RFC 4511 4.1.11. Controls:
        https://www.rfc-editor.org/rfc/rfc4511#section-4.1.11
    """

    # Control ::= SEQUENCE {
    #         controlType             LDAPOID,
    #         criticality             BOOLEAN DEFAULT FALSE,
    #         controlValue            OCTET STRING OPTIONAL
    # }

    control_type: str
    critical: bool
    value: t.Optional[bytes]

    def pack(
        self,
        writer: ASN1Writer,
        options: ControlOptions,
    ) -> None:
        with writer.push_sequence() as control_writer:
            control_writer.write_octet_string(self.control_type.encode(options.string_encoding))

            if self.critical:
                control_writer.write_boolean(self.critical)

            value = self.get_value(options)
            if value is not None:
                control_writer.write_octet_string(value)

    def get_value(
        self,
        options: ControlOptions,
    ) -> t.Optional[bytes]:
        return self.value

    @classmethod
    def unpack(
        cls,
        control_type: str,
        critical: bool,
        value: t.Optional[bytes],
        options: ControlOptions,
    ) -> LDAPControl:
        return LDAPControl(control_type, critical, value)


@dataclasses.dataclass(frozen=True)
class _KnownControl(LDAPControl):
    """Used internally to separate known controls from unknown ones."""

    control_type: str = dataclasses.field(init=False, default="")
    critical: bool = False
    value: t.Optional[bytes] = dataclasses.field(init=False, default=None, repr=False)


@dataclasses.dataclass(frozen=True)
class ShowDeletedControl(_KnownControl):
    """LDAP Show Deleted Control.

    Microsoft specific control that is used search tombstoned or deleted object
    during a search operation. This control has no value set.
    """

    control_type: str = dataclasses.field(init=False, default="1.2.840.113556.1.4.417")

    @classmethod
    def unpack(
        cls,
        control_type: str,
        critical: bool,
        value: t.Optional[bytes],
        options: ControlOptions,
    ) -> ShowDeletedControl:
        return ShowDeletedControl(critical=critical)


@dataclasses.dataclass(frozen=True)
class ManageDsaITControl(_KnownControl):
    """LDAP ManageDsaIT Control.

    Used to signal that the operation is intended to manage objects within the
    DSA, referral objects are treated as normal entries. This control has no
    value set. It is defined in `RFC 3296 3. The ManageDsaIT Control`_.

    .. _RFC 3296 3. The ManageDsaIT Control:
        https://www.rfc-editor.org/rfc/rfc3296#section-3
    """

    control_type: str = dataclasses.field(init=False, default="2.16.840.1.113730.3.4.2")

    @classmethod
    def unpack(
        cls,
        control_type: str,
        critical: bool,
        value: t.Optional[bytes],
        options: ControlOptions,
    ) -> ManageDsaITControl:
        return ManageDsaITControl(critical=critical)


@dataclasses.dataclass(frozen=True)
class NotificationControl(_KnownControl):
    """LDAP Notification Control.

    Microsoft specific control used on a search request to receive change
    notifications for the objects in scope. The search never completes, every
    change results in a new search result entry. This control has no value set.
    """

    control_type: str = dataclasses.field(init=False, default="1.2.840.113556.1.4.528")

    @classmethod
    def unpack(
        cls,
        control_type: str,
        critical: bool,
        value: t.Optional[bytes],
        options: ControlOptions,
    ) -> NotificationControl:
        return NotificationControl(critical=critical)


@dataclasses.dataclass(frozen=True)
class PagedResultControl(_KnownControl):
    """Control for Simple Paged Results.

    An LDAP control used to perform simple paging of search results. It is sent
    by the client to control the rate at which an LDAP server returns the
    results of an LDAP search operation. The server returns the control on the
    SearchResultDone message with the cookie to use for the next page, an empty
    cookie means there are no more results.

    Args:
        critical: Whether the control must be known by the server or not.
        size: The desired page size, this must be less than the size_limit set
            in a :class:`SearchRequest` message.
        cookie: An opaque set of bytes used to identify the search operation as
            denoted by the server response.

    .. _RFC 2696 2. The Control:
        https://www.rfc-editor.org/rfc/rfc2696.html#section-2
    """

    control_type: str = dataclasses.field(init=False, default="1.2.840.113556.1.4.319")

    size: int = 0
    cookie: bytes = b""

    def with_cookie(
        self,
        cookie: bytes,
    ) -> PagedResultControl:
        """Create a copy of this control with the cookie specified."""
        return PagedResultControl(critical=self.critical, size=self.size, cookie=cookie)

    def get_value(
        self,
        options: ControlOptions,
    ) -> t.Optional[bytes]:
        writer = ASN1Writer()
        with writer.push_sequence() as inner_writer:
            inner_writer.write_integer(self.size)
            inner_writer.write_octet_string(self.cookie)

        return writer.get_data()

    @classmethod
    def unpack(
        cls,
        control_type: str,
        critical: bool,
        value: t.Optional[bytes],
        options: ControlOptions,
    ) -> PagedResultControl:
        reader = ASN1Reader(value or b"")
        control_reader = reader.read_sequence(hint="PagedResultControl")

        size = control_reader.read_integer(hint="PagedResultControl.size")
        cookie = control_reader.read_octet_string(hint="PagedResultControl.cookie")

        return PagedResultControl(critical=critical, size=size, cookie=cookie)


@dataclasses.dataclass(frozen=True)
class BeheraPasswordPolicyControl(_KnownControl):
    """Password Policy control.

    The password policy control from draft-behera-ldap-password-policy. A
    client sends it without any value on a bind or modify request to ask the
    server to include the policy state in the response control. Values not
    set by the server are -1.

    Args:
        critical: Whether the control must be known by the server or not.
        expire: The number of seconds before the password expires.
        grace: The number of grace authentications remaining.
        error: The password policy error code.
    """

    control_type: str = dataclasses.field(init=False, default="1.3.6.1.4.1.42.2.27.8.5.1")

    expire: int = -1
    grace: int = -1
    error: int = -1

    # PasswordPolicyResponseValue ::= SEQUENCE {
    #     warning [0] CHOICE {
    #         timeBeforeExpiration [0] INTEGER (0 .. maxInt),
    #         graceAuthNsRemaining [1] INTEGER (0 .. maxInt) } OPTIONAL,
    #     error   [1] ENUMERATED { ... } OPTIONAL }

    @property
    def error_string(self) -> str:
        """The human readable description of the error, empty if not set."""
        return BEHERA_PASSWORD_POLICY_ERRORS.get(self.error, "")

    def get_value(
        self,
        options: ControlOptions,
    ) -> t.Optional[bytes]:
        if self.expire == -1 and self.grace == -1 and self.error == -1:
            return None

        writer = ASN1Writer()
        with writer.push_sequence() as inner_writer:
            if self.expire != -1 or self.grace != -1:
                with inner_writer.push_sequence(ASN1Tag(TagClass.CONTEXT_SPECIFIC, 0, True)) as warning_writer:
                    if self.expire != -1:
                        warning_writer.write_integer(
                            self.expire,
                            tag=ASN1Tag(TagClass.CONTEXT_SPECIFIC, 0, False),
                        )
                    else:
                        warning_writer.write_integer(
                            self.grace,
                            tag=ASN1Tag(TagClass.CONTEXT_SPECIFIC, 1, False),
                        )

            if self.error != -1:
                inner_writer.write_enumerated(
                    self.error,
                    tag=ASN1Tag(TagClass.CONTEXT_SPECIFIC, 1, False),
                )

        return writer.get_data()

    @classmethod
    def unpack(
        cls,
        control_type: str,
        critical: bool,
        value: t.Optional[bytes],
        options: ControlOptions,
    ) -> BeheraPasswordPolicyControl:
        expire = grace = error = -1
        if not value:
            return BeheraPasswordPolicyControl(critical=critical)

        reader = ASN1Reader(value).read_sequence(hint="PasswordPolicyResponseValue")
        while reader:
            next_header = reader.peek_header()
            tag = next_header.tag

            if tag.tag_class == TagClass.CONTEXT_SPECIFIC and tag.tag_number == 0:
                warning_reader = reader.read_tagged(header=next_header, hint="PasswordPolicyResponseValue.warning")
                warning_header = warning_reader.peek_header()
                warning_number = warning_header.tag.tag_number
                if warning_header.tag.tag_class == TagClass.CONTEXT_SPECIFIC and warning_number in [0, 1]:
                    warning_value = warning_reader.read_integer(
                        tag=ASN1Tag(TagClass.CONTEXT_SPECIFIC, warning_number, False),
                        hint="PasswordPolicyResponseValue.warning",
                    )
                    if warning_number == 0:
                        expire = warning_value
                    else:
                        grace = warning_value

            elif tag.tag_class == TagClass.CONTEXT_SPECIFIC and tag.tag_number == 1:
                error = reader.read_integer(
                    tag=ASN1Tag(TagClass.CONTEXT_SPECIFIC, 1, False),
                    hint="PasswordPolicyResponseValue.error",
                )

            else:
                reader.skip_value(next_header)

        return BeheraPasswordPolicyControl(critical=critical, expire=expire, grace=grace, error=error)


@dataclasses.dataclass(frozen=True)
class VChuPasswordMustChangeControl(_KnownControl):
    """Password Must Change control.

    The password expired control from draft-vchu-ldap-pwd-policy. The server
    sends it to indicate the password must be changed, its presence means
    ``must_change`` is True.
    """

    control_type: str = dataclasses.field(init=False, default="2.16.840.1.113730.3.4.4")

    must_change: bool = True

    def get_value(
        self,
        options: ControlOptions,
    ) -> t.Optional[bytes]:
        return b"0"

    @classmethod
    def unpack(
        cls,
        control_type: str,
        critical: bool,
        value: t.Optional[bytes],
        options: ControlOptions,
    ) -> VChuPasswordMustChangeControl:
        return VChuPasswordMustChangeControl(critical=critical, must_change=True)


@dataclasses.dataclass(frozen=True)
class VChuPasswordWarningControl(_KnownControl):
    """Password Expiring control.

    The password expiring control from draft-vchu-ldap-pwd-policy. The value
    is the number of seconds before the password expires encoded as decimal
    text.

    Args:
        critical: Whether the control must be known by the peer or not.
        expire: The seconds before the password expires or -1 if not set.
    """

    control_type: str = dataclasses.field(init=False, default="2.16.840.1.113730.3.4.5")

    expire: int = -1

    def get_value(
        self,
        options: ControlOptions,
    ) -> t.Optional[bytes]:
        if self.expire == -1:
            return None

        return str(self.expire).encode("ascii")

    @classmethod
    def unpack(
        cls,
        control_type: str,
        critical: bool,
        value: t.Optional[bytes],
        options: ControlOptions,
    ) -> VChuPasswordWarningControl:
        expire = -1
        try:
            expire = int((value or b"").decode("ascii"))
        except ValueError:
            log.debug("Failed to parse password warning control value %r", value)

        return VChuPasswordWarningControl(critical=critical, expire=expire)
