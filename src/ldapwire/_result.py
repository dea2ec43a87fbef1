# Copyright: (c) 2023, Jordan Borean (@jborean93) <jborean93@gmail.com>
# MIT License (see LICENSE or https://opensource.org/licenses/MIT)

from __future__ import annotations

import enum
import typing as t

from .asn1 import ASN1Reader, BufferType, NotEnoughData, TagClass

if t.TYPE_CHECKING:
    from ._messages import LDAPMessage, LDAPResult

INVALID_PACKET_FORMAT = "Invalid packet format"


class LDAPResultCode(enum.IntEnum):
    """The known LDAP result codes.

    The values 0 to 80 are defined by `RFC 4511 4.1.9. Result Message`_. The
    200 range is reserved for errors raised locally by this library and is
    never sent by a server.

    .. _RFC 4511 4.1.9. Result Message:
        https://www.rfc-editor.org/rfc/rfc4511#section-4.1.9
    """

    SUCCESS = 0
    OPERATIONS_ERROR = 1
    PROTOCOL_ERROR = 2
    TIME_LIMIT_EXCEEDED = 3
    SIZE_LIMIT_EXCEEDED = 4
    COMPARE_FALSE = 5
    COMPARE_TRUE = 6
    AUTH_METHOD_NOT_SUPPORTED = 7
    STRONG_AUTH_REQUIRED = 8
    REFERRAL = 10
    ADMIN_LIMIT_EXCEEDED = 11
    UNAVAILABLE_CRITICAL_EXTENSION = 12
    CONFIDENTIALITY_REQUIRED = 13
    SASL_BIND_IN_PROGRESS = 14
    NO_SUCH_ATTRIBUTE = 16
    UNDEFINED_ATTRIBUTE_TYPE = 17
    INAPPROPRIATE_MATCHING = 18
    CONSTRAINT_VIOLATION = 19
    ATTRIBUTE_OR_VALUE_EXISTS = 20
    INVALID_ATTRIBUTE_SYNTAX = 21
    NO_SUCH_OBJECT = 32
    ALIAS_PROBLEM = 33
    INVALID_DN_SYNTAX = 34
    ALIAS_DEREFERENCING_PROBLEM = 36
    INAPPROPRIATE_AUTHENTICATION = 48
    INVALID_CREDENTIALS = 49
    INSUFFICIENT_ACCESS_RIGHTS = 50
    BUSY = 51
    UNAVAILABLE = 52
    UNWILLING_TO_PERFORM = 53
    LOOP_DETECT = 54
    NAMING_VIOLATION = 64
    OBJECT_CLASS_VIOLATION = 65
    NOT_ALLOWED_ON_NON_LEAF = 66
    NOT_ALLOWED_ON_RDN = 67
    ENTRY_ALREADY_EXISTS = 68
    OBJECT_CLASS_MODS_PROHIBITED = 69
    AFFECTS_MULTIPLE_DSAS = 71
    OTHER = 80

    ERROR_NETWORK = 200
    ERROR_FILTER_COMPILE = 201
    ERROR_FILTER_DECOMPILE = 202
    ERROR_DEBUGGING = 203

    @classmethod
    def _missing_(cls, value: object) -> t.Any:
        # As the result codes are extensible it is possible to receive a code
        # that the client does not know about, handle that gracefully here.
        if not isinstance(value, int):
            return None

        new_member = int.__new__(cls, value)
        new_member._name_ = "UNKNOWN 0x{0:08X}".format(value)
        new_member._value_ = value

        return cls._value2member_map_.setdefault(value, new_member)


_RESULT_CODE_LABELS: t.Dict[int, str] = {
    LDAPResultCode.SUCCESS: "Success",
    LDAPResultCode.OPERATIONS_ERROR: "Operations Error",
    LDAPResultCode.PROTOCOL_ERROR: "Protocol Error",
    LDAPResultCode.TIME_LIMIT_EXCEEDED: "Time Limit Exceeded",
    LDAPResultCode.SIZE_LIMIT_EXCEEDED: "Size Limit Exceeded",
    LDAPResultCode.COMPARE_FALSE: "Compare False",
    LDAPResultCode.COMPARE_TRUE: "Compare True",
    LDAPResultCode.AUTH_METHOD_NOT_SUPPORTED: "Auth Method Not Supported",
    LDAPResultCode.STRONG_AUTH_REQUIRED: "Strong Auth Required",
    LDAPResultCode.REFERRAL: "Referral",
    LDAPResultCode.ADMIN_LIMIT_EXCEEDED: "Admin Limit Exceeded",
    LDAPResultCode.UNAVAILABLE_CRITICAL_EXTENSION: "Unavailable Critical Extension",
    LDAPResultCode.CONFIDENTIALITY_REQUIRED: "Confidentiality Required",
    LDAPResultCode.SASL_BIND_IN_PROGRESS: "Sasl Bind In Progress",
    LDAPResultCode.NO_SUCH_ATTRIBUTE: "No Such Attribute",
    LDAPResultCode.UNDEFINED_ATTRIBUTE_TYPE: "Undefined Attribute Type",
    LDAPResultCode.INAPPROPRIATE_MATCHING: "Inappropriate Matching",
    LDAPResultCode.CONSTRAINT_VIOLATION: "Constraint Violation",
    LDAPResultCode.ATTRIBUTE_OR_VALUE_EXISTS: "Attribute Or Value Exists",
    LDAPResultCode.INVALID_ATTRIBUTE_SYNTAX: "Invalid Attribute Syntax",
    LDAPResultCode.NO_SUCH_OBJECT: "No Such Object",
    LDAPResultCode.ALIAS_PROBLEM: "Alias Problem",
    LDAPResultCode.INVALID_DN_SYNTAX: "Invalid DN Syntax",
    LDAPResultCode.ALIAS_DEREFERENCING_PROBLEM: "Alias Dereferencing Problem",
    LDAPResultCode.INAPPROPRIATE_AUTHENTICATION: "Inappropriate Authentication",
    LDAPResultCode.INVALID_CREDENTIALS: "Invalid Credentials",
    LDAPResultCode.INSUFFICIENT_ACCESS_RIGHTS: "Insufficient Access Rights",
    LDAPResultCode.BUSY: "Busy",
    LDAPResultCode.UNAVAILABLE: "Unavailable",
    LDAPResultCode.UNWILLING_TO_PERFORM: "Unwilling To Perform",
    LDAPResultCode.LOOP_DETECT: "Loop Detect",
    LDAPResultCode.NAMING_VIOLATION: "Naming Violation",
    LDAPResultCode.OBJECT_CLASS_VIOLATION: "Object Class Violation",
    LDAPResultCode.NOT_ALLOWED_ON_NON_LEAF: "Not Allowed On Non Leaf",
    LDAPResultCode.NOT_ALLOWED_ON_RDN: "Not Allowed On RDN",
    LDAPResultCode.ENTRY_ALREADY_EXISTS: "Entry Already Exists",
    LDAPResultCode.OBJECT_CLASS_MODS_PROHIBITED: "Object Class Mods Prohibited",
    LDAPResultCode.AFFECTS_MULTIPLE_DSAS: "Affects Multiple DSAs",
    LDAPResultCode.OTHER: "Other",
    LDAPResultCode.ERROR_NETWORK: "Network Error",
    LDAPResultCode.ERROR_FILTER_COMPILE: "Filter Compile Error",
    LDAPResultCode.ERROR_FILTER_DECOMPILE: "Filter Decompile Error",
    LDAPResultCode.ERROR_DEBUGGING: "Debugging Error",
}


def describe(
    code: int,
) -> str:
    """Get the human readable label of a result code.

    Args:
        code: The result code to describe.

    Returns:
        str: The label of the code or the code as a decimal string if it is
        not a known result code.
    """
    return _RESULT_CODE_LABELS.get(int(code), str(int(code)))


class LDAPError(Exception):
    """Base LDAP error class.

    Every error carries the result code it represents. The string form
    combines the numeric code, its label and the message.

    Args:
        msg: The error message or server diagnostic message.
        result_code: The result code associated with the error.
    """

    def __init__(
        self,
        msg: str,
        result_code: t.Union[int, LDAPResultCode] = LDAPResultCode.OTHER,
    ) -> None:
        super().__init__(msg)
        self.message = msg
        self.result_code = LDAPResultCode(result_code)

    def __str__(self) -> str:
        return f'LDAP Result Code {int(self.result_code)} "{describe(self.result_code)}": {self.message}'


class NetworkError(LDAPError):
    """Transport failure.

    Not raised by the protocol engine itself, it exists so a transport built
    on top can report failures with the shared result code.
    """

    def __init__(
        self,
        msg: str,
    ) -> None:
        super().__init__(msg, result_code=LDAPResultCode.ERROR_NETWORK)


class ProtocolError(LDAPError):
    """Generic LDAP protocol errors.

    Raised when the peer sent data that does not conform to the LDAP message
    structure. The message that failed is never partially returned. When
    raised by :class:`LDAPClient` the session is closed and the caller should
    send the response data, if present, to the peer and then close the
    underlying connection.

    Args:
        msg: Details of the protocol violation.
        request: The incoming message that caused the protocol error, or None
            if the incoming data could not be unpacked.
        response: Optional message to send to the peer to notify of it being
            disconnected.
    """

    def __init__(
        self,
        msg: str,
        request: t.Optional[LDAPMessage] = None,
        response: t.Optional[bytes] = None,
    ) -> None:
        super().__init__(msg, result_code=LDAPResultCode.ERROR_NETWORK)
        self.request = request
        self.response = response


class DirectoryError(LDAPError):
    """The server returned a non-success result.

    Args:
        msg: The diagnostic message sent by the server.
        result_code: The result code sent by the server.
        matched_dn: The matched DN sent by the server, if any.
    """

    def __init__(
        self,
        msg: str,
        result_code: t.Union[int, LDAPResultCode],
        matched_dn: str = "",
    ) -> None:
        super().__init__(msg, result_code=result_code)
        self.matched_dn = matched_dn

    @classmethod
    def from_result(
        cls,
        result: LDAPResult,
    ) -> DirectoryError:
        return cls(
            result.diagnostics_message,
            result_code=result.result_code,
            matched_dn=result.matched_dn,
        )


def get_ldap_result_code(
    data: BufferType,
    string_encoding: str = "utf-8",
) -> t.Tuple[LDAPResultCode, str]:
    """Get the result code of a response envelope.

    Reads the protocolOp, the second element of the LDAPMessage envelope, and
    returns its result code and diagnostic message. The protocolOp must be an
    APPLICATION constructed value made of exactly the resultCode, matchedDN,
    and diagnosticMessage. This never raises, any other structure returns
    ``ERROR_NETWORK`` with the message ``Invalid packet format``.

    Args:
        data: The raw LDAPMessage bytes.
        string_encoding: The encoding of the diagnostic message.

    Returns:
        Tuple[LDAPResultCode, str]: The result code and diagnostic message.
    """
    try:
        message = ASN1Reader(data).read_sequence(hint="LDAPMessage")
        message.skip_value()

        if message:
            op_header = message.peek_header()
            if op_header.tag.tag_class == TagClass.APPLICATION and op_header.tag.is_constructed:
                op_reader = message.read_tagged(header=op_header, hint="LDAPMessage.protocolOp")
                result_code = op_reader.read_enumerated(LDAPResultCode, hint="LDAPResult.resultCode")
                op_reader.read_octet_string(hint="LDAPResult.matchedDN")
                diagnostics_message = op_reader.read_octet_string(
                    hint="LDAPResult.diagnosticMessage",
                ).decode(string_encoding)

                if not op_reader:
                    return result_code, diagnostics_message

    except (NotEnoughData, ValueError):
        pass

    return LDAPResultCode.ERROR_NETWORK, INVALID_PACKET_FORMAT


def get_result_error(
    data: BufferType,
    accepted: t.Iterable[int] = (LDAPResultCode.SUCCESS,),
    string_encoding: str = "utf-8",
) -> t.Optional[LDAPError]:
    """Get the error represented by a response envelope.

    Args:
        data: The raw LDAPMessage bytes.
        accepted: The result codes that are not treated as an error.
        string_encoding: The encoding of the diagnostic message.

    Returns:
        Optional[LDAPError]: A :class:`ProtocolError` if the envelope is
        malformed, a :class:`DirectoryError` if the result code is not in
        accepted, otherwise None.
    """
    result_code, msg = get_ldap_result_code(data, string_encoding=string_encoding)
    if result_code == LDAPResultCode.ERROR_NETWORK:
        return ProtocolError(msg)

    elif result_code in accepted:
        return None

    else:
        return DirectoryError(msg, result_code=result_code)
