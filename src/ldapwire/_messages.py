# Copyright: (c) 2023, Jordan Borean (@jborean93) <jborean93@gmail.com>
# MIT License (see LICENSE or https://opensource.org/licenses/MIT)

from __future__ import annotations

import dataclasses
import enum
import typing as t

from ._controls import ControlOptions, LDAPControl, unpack_ldap_control
from ._filter import FilterOptions, LDAPFilter, compile_filter
from ._result import INVALID_PACKET_FORMAT, LDAPError, LDAPResultCode, ProtocolError
from .asn1 import (
    ASN1Reader,
    ASN1Tag,
    ASN1Writer,
    NotEnoughData,
    TagClass,
    unpack_asn1_integer_value,
)


@dataclasses.dataclass
class PackingOptions:
    """Packing Options.

    Various options to control the packing and unpacking phase of LDAP messages.

    Args:
        string_encoding: The encoding used for encoding and decoding bytes.
        control: Options used to pack/unpack Control values.
        filter: Options used to pack/unpack LDAP filters.
    """

    string_encoding: str = "utf-8"
    control: ControlOptions = dataclasses.field(default_factory=ControlOptions)
    filter: FilterOptions = dataclasses.field(default_factory=FilterOptions)


def unpack_ldap_message(
    reader: ASN1Reader,
    options: PackingOptions,
) -> LDAPMessage:
    """Unpack an LDAP message.

    Unpacks the raw ASN.1 value in the reader specified into an LDAP message
    object.

    Args:
        reader: The ASN.1 reader to read from.
        options: Custom options to control the unpack methods.

    Returns:
        LDAPMessage: The unpacked message object.

    Raises:
        NotEnoughData: The reader does not contain the full message yet.
        ProtocolError: The message is not a valid LDAPMessage.
        FilterDecompileError: The message contains an invalid filter.
    """
    try:
        message = reader.read_sequence(hint="LDAPMessage")
    except ValueError as e:
        raise ProtocolError(f"{INVALID_PACKET_FORMAT}: {e}") from e

    # The full message has been read, any missing data from here on is a
    # length mismatch inside the message and not something more data fixes.
    try:
        return _unpack_ldap_message(message, options)
    except LDAPError:
        raise
    except (NotEnoughData, NotImplementedError, ValueError) as e:
        raise ProtocolError(f"{INVALID_PACKET_FORMAT}: {e}") from e


def _unpack_ldap_message(
    message: ASN1Reader,
    options: PackingOptions,
) -> LDAPMessage:
    message_id = message.read_integer(hint="LDAPMessage.messageId")

    protocol_op_header = message.peek_header()
    protocol_op_tag = protocol_op_header.tag
    if protocol_op_tag.tag_class != TagClass.APPLICATION:
        raise ValueError(f"Expecting LDAPMessage.protocolOp to be an APPLICATION but got {protocol_op_tag}")

    unpack_func = PROTOCOL_PACKER.get(protocol_op_tag.tag_number, None)
    if not unpack_func:
        raise NotImplementedError(f"Unknown LDAPMessage.protocolOp choice {protocol_op_tag.tag_number}")

    expect_constructed = protocol_op_tag.tag_number not in PRIMITIVE_PROTOCOL_OPS
    if protocol_op_tag.is_constructed != expect_constructed:
        form = "constructed" if expect_constructed else "primitive"
        raise ValueError(f"Expecting LDAPMessage.protocolOp {protocol_op_tag.tag_number} to be {form}")

    protocol_reader = message.read_tagged(
        header=protocol_op_header,
        hint="LDAPMessage.protocolOp",
    )

    controls: t.List[LDAPControl] = []
    response_name: t.Optional[str] = None
    while message:
        next_header = message.peek_header()

        if next_header.tag.tag_class == TagClass.CONTEXT_SPECIFIC:
            if next_header.tag.tag_number == 0:
                control_reader = message.read_sequence(
                    header=next_header,
                    hint="LDAPMessage.controls",
                )
                while control_reader:
                    control = unpack_ldap_control(control_reader, options.control)
                    controls.append(control)

                continue

            elif next_header.tag.tag_number == 10:
                # Defined in MS-ADTS - NoticeOfDisconnectionLDAPMessage.
                # This is an extension of LDAPMessage in the RFC but AD
                # replies with this on critical failures where it has torn
                # down the connection.
                # responseName    [10] LDAPOID
                response_name = message.read_octet_string(
                    header=next_header,
                    hint="LDAPMessage.responseName",
                ).decode(options.string_encoding)
                continue

        message.skip_value(next_header)

    msg = unpack_func(protocol_reader, options, message_id, controls)

    # Need to inject the MS-ADTS extension to this message.
    if isinstance(msg, ExtendedResponse) and response_name and not msg.name:
        object.__setattr__(msg, "name", response_name)

    return msg


class DereferencingPolicy(enum.IntEnum):
    """Control alias dereferencing during a search."""

    NEVER = 0
    """
    Do not reference aliases in search or in locating the base object the search.
    """

    IN_SEARCHING = 1
    """
    While searching subordinates of the base object, dereference any alias
    within the search scope.
    """

    FINDING_BASE_OBJ = 2
    """
    Dereference aliases in locating the base object of the search, but not when
    searching subordinates of the base object.
    """

    ALWAYS = 3
    """
    Dereference aliases both in searching and in locating the base object of the
    search.
    """


class SearchScope(enum.IntEnum):
    """Specifies the scope of the search to perform."""

    BASE = 0
    "The scope is constrained to the entry named by base_object"

    ONE_LEVEL = 1
    "The scope is constrained to the immediate subordinates of base_object."

    SUBTREE = 2
    "The scope is constrained to base_object and all its subordinates."


class ModifyOperation(enum.IntEnum):
    """The type of modification performed on an attribute."""

    ADD = 0
    "Add the values to the attribute, creating the attribute if needed."

    DELETE = 1
    "Delete the values from the attribute, or the whole attribute if no values."

    REPLACE = 2
    "Replace all existing values of the attribute with the new values."


class Request:
    "Identifies LDAP requests"


class Response:
    "Identifies LDAP responses"


@dataclasses.dataclass(frozen=True)
class AuthenticationCredential:
    """Base class for Bind Request Authentication choices.

    By default the :class:`SimpleCredential` and :class:`SaslCredential`
    choices are available. Each implementation must provide a value for
    auth_id as well as implement the ``pack`` and ``unpack`` methods.

    Args:
        auth_id: The ASN.1 choice value for this credential.
    """

    # AuthenticationChoice ::= CHOICE {
    #      simple                  [0] OCTET STRING,
    #                              -- 1 and 2 reserved
    #      sasl                    [3] SaslCredentials,
    #      ...  }

    auth_id: int

    def pack(
        self,
        writer: ASN1Writer,
        options: PackingOptions,
    ) -> None:
        raise NotImplementedError()  # pragma: nocover

    @classmethod
    def unpack(
        cls,
        reader: ASN1Reader,
        options: PackingOptions,
    ) -> AuthenticationCredential:
        next_header = reader.peek_header()
        if next_header.tag.tag_class == TagClass.CONTEXT_SPECIFIC:
            for auth_type in [SimpleCredential, SaslCredential]:
                if auth_type.auth_id == next_header.tag.tag_number:
                    return auth_type.unpack(reader, options)

        raise NotImplementedError(f"Unknown authentication object {next_header.tag}, cannot unpack")


@dataclasses.dataclass(frozen=True)
class SimpleCredential(AuthenticationCredential):
    """The Simple Credential.

    This object is used to encode the simple password for a
    :class:`BindRequest`.

    Args:
        password: The password to authenticate with or an empty string for an
            identity only, or anonymous, bind operation.
    """

    auth_id: int = dataclasses.field(init=False, repr=False, default=0)

    password: str = dataclasses.field(repr=False)

    def pack(
        self,
        writer: ASN1Writer,
        options: PackingOptions,
    ) -> None:
        writer.write_octet_string(
            self.password.encode(options.string_encoding),
            tag=ASN1Tag(TagClass.CONTEXT_SPECIFIC, self.auth_id, False),
        )

    @classmethod
    def unpack(
        cls,
        reader: ASN1Reader,
        options: PackingOptions,
    ) -> SimpleCredential:
        password = reader.read_octet_string(
            tag=ASN1Tag(TagClass.CONTEXT_SPECIFIC, cls.auth_id, False),
            hint="SimpleCredential.password",
        ).decode(options.string_encoding)
        return SimpleCredential(password=password)


@dataclasses.dataclass(frozen=True)
class SaslCredential(AuthenticationCredential):
    """The SASL Credential.

    This object is used to store the SASL credential for a
    :class:`BindRequest`. It contains the SASL mechanism used and the
    credential byte string for that credential. The SaslCredentials structure
    is defined in `RFC 4511 4.2. Bind Operation`_.

    Args:
        mechanism: The SASL mechanism.
        credentials: The SASL credential bytes to exchange, if any.

    .. _RFC 4511 4.2. Bind Operation:
        https://www.rfc-editor.org/rfc/rfc4511#section-4.2
    """

    # SaslCredentials ::= SEQUENCE {
    #      mechanism               LDAPString,
    #      credentials             OCTET STRING OPTIONAL }

    auth_id: int = dataclasses.field(init=False, repr=False, default=3)

    mechanism: str
    credentials: t.Optional[bytes] = None

    def pack(
        self,
        writer: ASN1Writer,
        options: PackingOptions,
    ) -> None:
        with writer.push_sequence(
            tag=ASN1Tag(TagClass.CONTEXT_SPECIFIC, self.auth_id, True),
        ) as sasl_writer:
            sasl_writer.write_octet_string(
                self.mechanism.encode(options.string_encoding),
            )
            if self.credentials is not None:
                sasl_writer.write_octet_string(self.credentials)

    @classmethod
    def unpack(
        cls,
        reader: ASN1Reader,
        options: PackingOptions,
    ) -> SaslCredential:
        sasl_reader = reader.read_sequence(
            hint="SaslCredential",
            tag=ASN1Tag(TagClass.CONTEXT_SPECIFIC, cls.auth_id, True),
        )

        mechanism = sasl_reader.read_octet_string(
            hint="SaslCredential.mechanism",
        ).decode(options.string_encoding)
        credentials: t.Optional[bytes] = None
        if sasl_reader:
            credentials = sasl_reader.read_octet_string(
                hint="SaslCredential.credentials",
            )

        return SaslCredential(mechanism=mechanism, credentials=credentials)


@dataclasses.dataclass(frozen=True)
class LDAPMessage:
    """The base LDAP Message object.

    This is the base object used for all LDAP messages. The base message
    structure is defined in `RFC 4511 4.1.1. Message Envelope`_. The controls
    are encoded as a sibling of the protocolOp inside the envelope.

    Args:
        message_id: The unique identifier for the request.
        controls: A list of controls associated with the message.
        tag_number: The protocolOp choice for this message type. This is
            defined on each LDAPMessage sub class.

    .. _RFC 4511 4.1.1. Message Envelope:
        https://www.rfc-editor.org/rfc/rfc4511#section-4.1.1
    """

    # LDAPMessage ::= SEQUENCE {
    #         messageID       MessageID,
    #         protocolOp      CHOICE {
    #             bindRequest           BindRequest,
    #             bindResponse          BindResponse,
    #             unbindRequest         UnbindRequest,
    #             searchRequest         SearchRequest,
    #             searchResEntry        SearchResultEntry,
    #             searchResDone         SearchResultDone,
    #             searchResRef          SearchResultReference,
    #             modifyRequest         ModifyRequest,
    #             modifyResponse        ModifyResponse,
    #             addRequest            AddRequest,
    #             addResponse           AddResponse,
    #             delRequest            DelRequest,
    #             delResponse           DelResponse,
    #             modDNRequest          ModifyDNRequest,
    #             modDNResponse         ModifyDNResponse,
    #             compareRequest        CompareRequest,
    #             compareResponse       CompareResponse,
    #             abandonRequest        AbandonRequest,
    #             extendedReq           ExtendedRequest,
    #             extendedResp          ExtendedResponse,
    #             ...,
    #             intermediateResponse  IntermediateResponse },
    #         controls       [0] Controls OPTIONAL }

    tag_number: int = dataclasses.field(init=False, default=0)

    message_id: int
    controls: t.List[LDAPControl]

    def pack(
        self,
        options: PackingOptions,
    ) -> bytes:
        """Packs the current message.

        Packs the current message and returns the bytes string that can be
        exchanged with the peer.

        Returns:
            bytes: The ASN.1 BER encoded message.
        """
        writer = ASN1Writer()

        with writer.push_sequence() as seq:
            seq.write_integer(self.message_id)
            self._pack_protocol_op(seq, options)

            if self.controls:
                with seq.push_sequence(
                    ASN1Tag(TagClass.CONTEXT_SPECIFIC, 0, True),
                ) as control_writer:
                    for control in self.controls:
                        control.pack(control_writer, options.control)

        return writer.get_data()

    def _pack_protocol_op(
        self,
        writer: ASN1Writer,
        options: PackingOptions,
    ) -> None:
        with writer.push_sequence(
            ASN1Tag(TagClass.APPLICATION, self.tag_number, True),
        ) as inner:
            self._pack_inner(inner, options)

    def _pack_inner(
        self,
        writer: ASN1Writer,
        options: PackingOptions,
    ) -> None:
        return


@dataclasses.dataclass(frozen=True)
class LDAPResult:
    """The LDAPResult message.

    This is the base object that contains the various response results from a
    server. The LDAPResult structure is defined in
    `RFC 4511 4.1.9. Result Message`_.

    Args:
        result_code: The result status of the operation.
        matched_dn: The subject to the name of the last entry used in finding
            the target of base object. Can be an empty string if not relevant.
        diagnostics_message: A string containing textual diagnostic messages.
            This is not standardized and should not be parsed, used for display
            purposes.
        referrals: Used when the result_code is ``REFERRAL``, contains the
            references to one or more servers/services that may be accessed by
            LDAP.

    .. _RFC 4511 4.1.9. Result Message:
        https://www.rfc-editor.org/rfc/rfc4511#section-4.1.9
    """

    # LDAPResult ::= SEQUENCE {
    #      resultCode         ENUMERATED { ... },
    #      matchedDN          LDAPDN,
    #      diagnosticMessage  LDAPString,
    #      referral           [3] Referral OPTIONAL }
    #
    # Referral ::= SEQUENCE SIZE (1..MAX) OF uri URI

    result_code: LDAPResultCode
    matched_dn: str = ""
    diagnostics_message: str = ""
    referrals: t.Optional[t.List[str]] = None

    def _pack_inner(
        self,
        writer: ASN1Writer,
        options: PackingOptions,
    ) -> None:
        writer.write_enumerated(self.result_code)
        writer.write_octet_string(self.matched_dn.encode(options.string_encoding))
        writer.write_octet_string(self.diagnostics_message.encode(options.string_encoding))

        if self.referrals is not None:
            with writer.push_sequence(ASN1Tag(TagClass.CONTEXT_SPECIFIC, 3, True)) as referrals:
                for r in self.referrals:
                    referrals.write_octet_string(r.encode(options.string_encoding))


def _unpack_ldap_result(
    reader: ASN1Reader,
    options: PackingOptions,
) -> LDAPResult:
    result_code = reader.read_enumerated(
        LDAPResultCode,
        hint="LDAPResult.resultCode",
    )
    matched_dn = reader.read_octet_string(
        hint="LDAPResult.matchedDN",
    ).decode(options.string_encoding)

    diagnostics_message = reader.read_octet_string(
        hint="LDAPResult.diagnosticMessage",
    ).decode(options.string_encoding)

    referrals: t.Optional[t.List[str]] = None
    if reader:
        next_header = reader.peek_header()

        if next_header.tag.tag_class == TagClass.CONTEXT_SPECIFIC and next_header.tag.tag_number == 3:
            referral_reader = reader.read_sequence(
                header=next_header,
                hint="LDAPResult.referral",
            )

            referrals = []
            while referral_reader:
                r = referral_reader.read_octet_string(
                    hint="LDAPResult.referral",
                ).decode(options.string_encoding)
                referrals.append(r)

    return LDAPResult(
        result_code=result_code,
        matched_dn=matched_dn,
        diagnostics_message=diagnostics_message,
        referrals=referrals,
    )


@dataclasses.dataclass(frozen=True)
class PartialAttribute:
    """The PartialAttribute object.

    This is the object that contains the attribute description/name and values.
    The set of attribute values is unordered and implementations MUST NOT rely
    upon the ordering being repeatable. The PartialAttribute structure is
    defined in `RFC 4511 4.1.7. Attribute and PartialAttribute`_.

    Args:
        name: The attribute name.
        values: The attribute values, this list may be empty if no values are
            set.

    .. _RFC 4511 4.1.7. Attribute and PartialAttribute:
        https://www.rfc-editor.org/rfc/rfc4511#section-4.1.7
    """

    # PartialAttribute ::= SEQUENCE {
    #      type       AttributeDescription,
    #      vals       SET OF value AttributeValue }

    name: str
    values: t.List[bytes]

    def _pack_inner(
        self,
        writer: ASN1Writer,
        options: PackingOptions,
    ) -> None:
        with writer.push_sequence() as val:
            val.write_octet_string(self.name.encode(options.string_encoding))

            with val.push_set_of() as values:
                for v in self.values:
                    values.write_octet_string(v)


def _unpack_partial_attribute(
    reader: ASN1Reader,
    options: PackingOptions,
) -> PartialAttribute:
    attr_reader = reader.read_sequence(hint="PartialAttribute")

    name = attr_reader.read_octet_string(
        hint="PartialAttribute.type",
    ).decode(options.string_encoding)

    values: t.List[bytes] = []
    value_reader = attr_reader.read_set(hint="PartialAttribute.vals")
    while value_reader:
        val = value_reader.read_octet_string(hint="PartialAttribute.vals.value")
        values.append(val)

    return PartialAttribute(name=name, values=values)


@dataclasses.dataclass(frozen=True)
class Change:
    """A single change in a :class:`ModifyRequest`.

    Args:
        operation: The type of modification to perform.
        modification: The attribute and values the operation applies to.
    """

    # change SEQUENCE {
    #      operation       ENUMERATED {
    #           add     (0),
    #           delete  (1),
    #           replace (2),
    #           ...  },
    #      modification    PartialAttribute }

    operation: ModifyOperation
    modification: PartialAttribute


def classify_changes(
    changes: t.Iterable[Change],
) -> t.Tuple[t.List[PartialAttribute], t.List[PartialAttribute], t.List[PartialAttribute]]:
    """Splits the changes by their operation.

    Args:
        changes: The changes to classify.

    Returns:
        Tuple[List[PartialAttribute], List[PartialAttribute], List[PartialAttribute]]:
        The attributes that are added, replaced, and deleted respectively in
        the order they appeared.
    """
    add: t.List[PartialAttribute] = []
    replace: t.List[PartialAttribute] = []
    delete: t.List[PartialAttribute] = []
    for change in changes:
        if change.operation == ModifyOperation.ADD:
            add.append(change.modification)

        elif change.operation == ModifyOperation.REPLACE:
            replace.append(change.modification)

        elif change.operation == ModifyOperation.DELETE:
            delete.append(change.modification)

    return add, replace, delete


@dataclasses.dataclass(frozen=True)
class BindRequest(LDAPMessage, Request):
    """The bind request message.

    This object is used to exchange authentication and security-related
    semantics between the client and server. The BindRequest structure is
    defined in `RFC 4511 4.2. Bind Operation`_.

    Args:
        message_id: The unique identifier for the request.
        controls: A list of controls associated with the message.
        version: The version of the LDAP protocol to be used. Currently only
            version 3 is supported.
        name: The name of the directory object that the client wishes to bind
            as. An empty string is used for SASL authentication or with
            anonymous binds.
        authentication: The authentication information, currently either a
            :class:`SimpleCredential` or :class:`SaslCredential` is supported.

    .. _RFC 4511 4.2. Bind Operation:
        https://www.rfc-editor.org/rfc/rfc4511#section-4.2
    """

    # BindRequest ::= [APPLICATION 0] SEQUENCE {
    #      version                 INTEGER (1 ..  127),
    #      name                    LDAPDN,
    #      authentication          AuthenticationChoice }

    tag_number = 0
    "The LDAP message protocol op tag."

    version: int
    name: str
    authentication: AuthenticationCredential

    def _pack_inner(
        self,
        writer: ASN1Writer,
        options: PackingOptions,
    ) -> None:
        writer.write_integer(self.version)
        writer.write_octet_string(self.name.encode(options.string_encoding))
        self.authentication.pack(writer, options)


def _unpack_bind_request(
    reader: ASN1Reader,
    options: PackingOptions,
    message_id: int,
    controls: t.List[LDAPControl],
) -> BindRequest:
    version = reader.read_integer(hint="BindRequest.version")
    name = reader.read_octet_string(hint="BindRequest.name").decode(options.string_encoding)
    authentication = AuthenticationCredential.unpack(reader, options)

    return BindRequest(
        message_id=message_id,
        controls=controls,
        version=version,
        name=name,
        authentication=authentication,
    )


@dataclasses.dataclass(frozen=True)
class BindResponse(LDAPMessage, Response):
    """The bind response message.

    This is the response to a :class:`BindRequest`. It contains the status
    of the client's bind operation and potentially a SASL response token. The
    BindResponse structure is defined in `RFC 4511 4.2.2. Bind Response`_.

    Args:
        message_id: The unique identifier for the request.
        controls: A list of controls associated with the message.
        result: The LDAP response.
        server_sasl_creds: Contains the SASL challenge/response.

    .. _RFC 4511 4.2.2. Bind Response:
        https://www.rfc-editor.org/rfc/rfc4511#section-4.2.2
    """

    # BindResponse ::= [APPLICATION 1] SEQUENCE {
    #      COMPONENTS OF LDAPResult,
    #      serverSaslCreds    [7] OCTET STRING OPTIONAL }

    tag_number = 1
    "The LDAP message protocol op tag."

    result: LDAPResult
    server_sasl_creds: t.Optional[bytes] = None

    def _pack_inner(
        self,
        writer: ASN1Writer,
        options: PackingOptions,
    ) -> None:
        self.result._pack_inner(writer, options)

        if self.server_sasl_creds is not None:
            writer.write_octet_string(
                self.server_sasl_creds,
                ASN1Tag(TagClass.CONTEXT_SPECIFIC, 7, False),
            )


def _unpack_bind_response(
    reader: ASN1Reader,
    options: PackingOptions,
    message_id: int,
    controls: t.List[LDAPControl],
) -> BindResponse:
    result = _unpack_ldap_result(reader, options)

    sasl_creds: t.Optional[bytes] = None
    while reader:
        next_header = reader.peek_header()

        if next_header.tag.tag_class == TagClass.CONTEXT_SPECIFIC and next_header.tag.tag_number == 7:
            sasl_creds = reader.read_octet_string(
                header=next_header,
                hint="BindResponse.serverSaslCreds",
            )
            continue

        reader.skip_value(next_header)

    return BindResponse(
        message_id=message_id,
        controls=controls,
        result=result,
        server_sasl_creds=sasl_creds,
    )


@dataclasses.dataclass(frozen=True)
class UnbindRequest(LDAPMessage, Request):
    """The unbind request message.

    A message used to signal the LDAP session is to be terminated. There is no
    response as the client or server will terminate the connection after
    sending. The UnbindRequest structure is defined in
    `RFC 4511 4.3. Unbind Operation`_.

    Args:
        message_id: The unique identifier for the request.
        controls: A list of controls associated with the message.

    .. _RFC 4511 4.3. Unbind Operation:
        https://www.rfc-editor.org/rfc/rfc4511#section-4.3
    """

    # UnbindRequest ::= [APPLICATION 2] NULL

    tag_number = 2
    "The LDAP message protocol op tag."

    def _pack_protocol_op(
        self,
        writer: ASN1Writer,
        options: PackingOptions,
    ) -> None:
        writer.write_null(tag=ASN1Tag(TagClass.APPLICATION, self.tag_number, False))


def _unpack_unbind_request(
    reader: ASN1Reader,
    options: PackingOptions,
    message_id: int,
    controls: t.List[LDAPControl],
) -> UnbindRequest:
    if reader:
        raise ValueError("Expecting UnbindRequest to have no contents")

    return UnbindRequest(message_id=message_id, controls=controls)


@dataclasses.dataclass(frozen=True)
class SearchRequest(LDAPMessage, Request):
    """The search request message.

    This object is used to start a search operation with the parameters
    requested. The SearchRequest structure is defined in
    `RFC 4511 4.5.1. Search Request`_.

    The filter can either be an LDAP filter string which is compiled when the
    message is packed or a :class:`LDAPFilter` object. An unpacked message
    always contains the :class:`LDAPFilter` object.

    The following are special attributes that can be requested:

        ``*``: Requests all attributes in addition to the explicitly defined
            ones.
        ``1.1``: No attributes are to be returned. Is ignored if there are any
            other attributes specified.

    Args:
        message_id: The unique identifier for the request.
        controls: A list of controls associated with the message.
        base_object: The name of the base object entry (or empty string for
            root) which the search is to be performed.
        scope: The scope of the search. See :class:`SearchScope` for more
            details.
        deref_aliases: Indicates how alias entries are to be dereferenced, see
            :class:`DereferencingPolicy` for more details.
        size_limit: Retricts the maximum number of entries to be returned. A
            value of 0 indicates no client requested size limit is in place.
            The server may also enforce a maximum number of entries to return.
        time_limit: The time limit, in seconds, allowed for a search. A value
            of 0 indicates no client requested time limit is in place. The
            server may enforce its own time limit for a search.
        types_only: Set to True to only return attribute names and no values in
            the search result.
        filter: The LDAP filter to search by, either as a string or
            :class:`LDAPFilter`.
        attributes: A list of attributes to be returned from each entry that
            matches the search filter. An empty list requests the return of all
            user attributes.

    .. _RFC 4511 4.5.1. Search Request:
        https://www.rfc-editor.org/rfc/rfc4511#section-4.5.1
    """

    # SearchRequest ::= [APPLICATION 3] SEQUENCE {
    #      baseObject      LDAPDN,
    #      scope           ENUMERATED {
    #           baseObject              (0),
    #           singleLevel             (1),
    #           wholeSubtree            (2),
    #           ...  },
    #      derefAliases    ENUMERATED {
    #           neverDerefAliases       (0),
    #           derefInSearching        (1),
    #           derefFindingBaseObj     (2),
    #           derefAlways             (3) },
    #      sizeLimit       INTEGER (0 ..  maxInt),
    #      timeLimit       INTEGER (0 ..  maxInt),
    #      typesOnly       BOOLEAN,
    #      filter          Filter,
    #      attributes      AttributeSelection }

    tag_number = 3
    "The LDAP message protocol op tag."

    base_object: str
    scope: SearchScope
    deref_aliases: DereferencingPolicy
    size_limit: int
    time_limit: int
    types_only: bool
    filter: t.Union[str, LDAPFilter]
    attributes: t.List[str]

    def _pack_inner(
        self,
        writer: ASN1Writer,
        options: PackingOptions,
    ) -> None:
        ldap_filter = self.filter
        if isinstance(ldap_filter, str):
            ldap_filter = compile_filter(ldap_filter, options.filter)

        writer.write_octet_string(self.base_object.encode(options.string_encoding))
        writer.write_enumerated(self.scope)
        writer.write_enumerated(self.deref_aliases)
        writer.write_integer(self.size_limit)
        writer.write_integer(self.time_limit)
        writer.write_boolean(self.types_only)
        ldap_filter.pack(writer, options.filter)

        with writer.push_sequence_of() as attr_writer:
            for attr in self.attributes:
                attr_writer.write_octet_string(attr.encode(options.string_encoding))


def _unpack_search_request(
    reader: ASN1Reader,
    options: PackingOptions,
    message_id: int,
    controls: t.List[LDAPControl],
) -> SearchRequest:
    base_object = reader.read_octet_string(hint="SearchRequest.baseObject")
    scope = reader.read_enumerated(SearchScope, hint="SearchRequest.scope")
    deref_aliases = reader.read_enumerated(
        DereferencingPolicy,
        hint="SearchRequest.derefAliases",
    )
    size_limit = reader.read_integer(hint="SearchRequest.sizeLimit")
    time_limit = reader.read_integer(hint="SearchRequest.timeLimit")
    types_only = reader.read_boolean(hint="SearchRequest.typesOnly")
    filter = LDAPFilter.unpack(reader, options.filter)

    attributes: t.List[str] = []
    attributes_reader = reader.read_sequence(hint="SearchRequest.attributes")
    while attributes_reader:
        attr = attributes_reader.read_octet_string(
            hint="SearchRequest.attributes.value",
        )
        attributes.append(attr.decode(options.string_encoding))

    return SearchRequest(
        message_id=message_id,
        controls=controls,
        base_object=base_object.decode(options.string_encoding),
        scope=scope,
        deref_aliases=deref_aliases,
        size_limit=size_limit,
        time_limit=time_limit,
        types_only=types_only,
        filter=filter,
        attributes=attributes,
    )


@dataclasses.dataclass(frozen=True)
class SearchResultEntry(LDAPMessage, Response):
    """The search result entry message.

    This object is used as a response to a search request. The
    SearchResultEntry structure is defined in `RFC 4511 4.5.2. Search Result`_.

    Args:
        message_id: The unique identifier for the request.
        controls: A list of controls associated with the message.
        object_name: The object the result is associated with.
        attributes: A list of attributes and their values.

    .. _RFC 4511 4.5.2. Search Result:
        https://www.rfc-editor.org/rfc/rfc4511#section-4.5.2
    """

    # SearchResultEntry ::= [APPLICATION 4] SEQUENCE {
    #      objectName      LDAPDN,
    #      attributes      PartialAttributeList }

    # PartialAttributeList ::= SEQUENCE OF
    #                      partialAttribute PartialAttribute

    tag_number = 4
    "The LDAP message protocol op tag."

    object_name: str
    attributes: t.List[PartialAttribute]

    def _pack_inner(
        self,
        writer: ASN1Writer,
        options: PackingOptions,
    ) -> None:
        writer.write_octet_string(self.object_name.encode(options.string_encoding))

        with writer.push_sequence_of() as attr_writer:
            for attribute in self.attributes:
                attribute._pack_inner(attr_writer, options)


def _unpack_search_result_entry(
    reader: ASN1Reader,
    options: PackingOptions,
    message_id: int,
    controls: t.List[LDAPControl],
) -> SearchResultEntry:
    object_name = reader.read_octet_string(
        hint="SearchResultEntry.objectName",
    ).decode(options.string_encoding)

    attributes: t.List[PartialAttribute] = []
    attr_reader = reader.read_sequence(hint="SearchResultEntry.attributes")

    while attr_reader:
        attr = _unpack_partial_attribute(attr_reader, options)
        attributes.append(attr)

    return SearchResultEntry(
        message_id=message_id,
        controls=controls,
        object_name=object_name,
        attributes=attributes,
    )


@dataclasses.dataclass(frozen=True)
class SearchResultDone(LDAPMessage, Response):
    """The search result done message.

    This object is used as a response to a search request and marks the end of
    any results for a search operation. The SearchResultDone structure is
    defined in `RFC 4511 4.5.2. Search Result`_.

    Args:
        message_id: The unique identifier for the request.
        controls: A list of controls associated with the message.
        result: The LDAP result of the search operation.

    .. _RFC 4511 4.5.2. Search Result:
        https://www.rfc-editor.org/rfc/rfc4511#section-4.5.2
    """

    # SearchResultDone ::= [APPLICATION 5] LDAPResult

    tag_number = 5
    "The LDAP message protocol op tag."

    result: LDAPResult

    def _pack_inner(
        self,
        writer: ASN1Writer,
        options: PackingOptions,
    ) -> None:
        self.result._pack_inner(writer, options)


@dataclasses.dataclass(frozen=True)
class ModifyRequest(LDAPMessage, Request):
    """The modify request message.

    Requests the server to modify the attributes of an entry. The changes are
    applied in the order they are specified. The ModifyRequest structure is
    defined in `RFC 4511 4.6. Modify Operation`_.

    Args:
        message_id: The unique identifier for the request.
        controls: A list of controls associated with the message.
        object: The DN of the entry to modify.
        changes: The changes to apply to the entry.

    .. _RFC 4511 4.6. Modify Operation:
        https://www.rfc-editor.org/rfc/rfc4511#section-4.6
    """

    # ModifyRequest ::= [APPLICATION 6] SEQUENCE {
    #      object          LDAPDN,
    #      changes         SEQUENCE OF change SEQUENCE {
    #           operation       ENUMERATED { ... },
    #           modification    PartialAttribute } }

    tag_number = 6
    "The LDAP message protocol op tag."

    object: str
    changes: t.List[Change] = dataclasses.field(default_factory=list)

    def add(
        self,
        name: str,
        values: t.List[bytes],
    ) -> ModifyRequest:
        """Returns a copy of the request with an add change appended."""
        return self._with_change(ModifyOperation.ADD, name, values)

    def delete(
        self,
        name: str,
        values: t.Optional[t.List[bytes]] = None,
    ) -> ModifyRequest:
        """Returns a copy of the request with a delete change appended."""
        return self._with_change(ModifyOperation.DELETE, name, values or [])

    def replace(
        self,
        name: str,
        values: t.List[bytes],
    ) -> ModifyRequest:
        """Returns a copy of the request with a replace change appended."""
        return self._with_change(ModifyOperation.REPLACE, name, values)

    def _with_change(
        self,
        operation: ModifyOperation,
        name: str,
        values: t.List[bytes],
    ) -> ModifyRequest:
        change = Change(operation=operation, modification=PartialAttribute(name=name, values=list(values)))
        return dataclasses.replace(self, changes=self.changes + [change])

    def _pack_inner(
        self,
        writer: ASN1Writer,
        options: PackingOptions,
    ) -> None:
        writer.write_octet_string(self.object.encode(options.string_encoding))

        with writer.push_sequence_of() as changes_writer:
            for change in self.changes:
                with changes_writer.push_sequence() as change_writer:
                    change_writer.write_enumerated(change.operation)
                    change.modification._pack_inner(change_writer, options)


def _unpack_modify_request(
    reader: ASN1Reader,
    options: PackingOptions,
    message_id: int,
    controls: t.List[LDAPControl],
) -> ModifyRequest:
    object_name = reader.read_octet_string(hint="ModifyRequest.object").decode(options.string_encoding)

    changes: t.List[Change] = []
    changes_reader = reader.read_sequence_of(hint="ModifyRequest.changes")
    while changes_reader:
        change_reader = changes_reader.read_sequence(hint="ModifyRequest.changes.change")
        operation = change_reader.read_enumerated(ModifyOperation, hint="ModifyRequest.changes.change.operation")
        modification = _unpack_partial_attribute(change_reader, options)
        changes.append(Change(operation=operation, modification=modification))

    return ModifyRequest(
        message_id=message_id,
        controls=controls,
        object=object_name,
        changes=changes,
    )


@dataclasses.dataclass(frozen=True)
class ModifyResponse(LDAPMessage, Response):
    """The response to a :class:`ModifyRequest`.

    Args:
        message_id: The unique identifier for the request.
        controls: A list of controls associated with the message.
        result: The result of the modify operation.
    """

    # ModifyResponse ::= [APPLICATION 7] LDAPResult

    tag_number = 7
    "The LDAP message protocol op tag."

    result: LDAPResult

    def _pack_inner(
        self,
        writer: ASN1Writer,
        options: PackingOptions,
    ) -> None:
        self.result._pack_inner(writer, options)


@dataclasses.dataclass(frozen=True)
class AddRequest(LDAPMessage, Request):
    """The add request message.

    Requests the server to add a new entry. The AddRequest structure is defined
    in `RFC 4511 4.7. Add Operation`_.

    Args:
        message_id: The unique identifier for the request.
        controls: A list of controls associated with the message.
        entry: The DN of the entry to add.
        attributes: The attributes of the new entry, each attribute must
            contain at least 1 value.

    .. _RFC 4511 4.7. Add Operation:
        https://www.rfc-editor.org/rfc/rfc4511#section-4.7
    """

    # AddRequest ::= [APPLICATION 8] SEQUENCE {
    #      entry           LDAPDN,
    #      attributes      AttributeList }
    #
    # AttributeList ::= SEQUENCE OF attribute Attribute

    tag_number = 8
    "The LDAP message protocol op tag."

    entry: str
    attributes: t.List[PartialAttribute]

    def _pack_inner(
        self,
        writer: ASN1Writer,
        options: PackingOptions,
    ) -> None:
        writer.write_octet_string(self.entry.encode(options.string_encoding))

        with writer.push_sequence_of() as attr_writer:
            for attribute in self.attributes:
                attribute._pack_inner(attr_writer, options)


def _unpack_add_request(
    reader: ASN1Reader,
    options: PackingOptions,
    message_id: int,
    controls: t.List[LDAPControl],
) -> AddRequest:
    entry = reader.read_octet_string(hint="AddRequest.entry").decode(options.string_encoding)

    attributes: t.List[PartialAttribute] = []
    attr_reader = reader.read_sequence_of(hint="AddRequest.attributes")
    while attr_reader:
        attributes.append(_unpack_partial_attribute(attr_reader, options))

    return AddRequest(
        message_id=message_id,
        controls=controls,
        entry=entry,
        attributes=attributes,
    )


@dataclasses.dataclass(frozen=True)
class AddResponse(LDAPMessage, Response):
    """The response to an :class:`AddRequest`.

    Args:
        message_id: The unique identifier for the request.
        controls: A list of controls associated with the message.
        result: The result of the add operation.
    """

    # AddResponse ::= [APPLICATION 9] LDAPResult

    tag_number = 9
    "The LDAP message protocol op tag."

    result: LDAPResult

    def _pack_inner(
        self,
        writer: ASN1Writer,
        options: PackingOptions,
    ) -> None:
        self.result._pack_inner(writer, options)


@dataclasses.dataclass(frozen=True)
class DelRequest(LDAPMessage, Request):
    """The delete request message.

    Requests the server to delete an entry. The DelRequest structure is
    defined in `RFC 4511 4.8. Delete Operation`_ and is encoded as a primitive
    value containing the DN.

    Args:
        message_id: The unique identifier for the request.
        controls: A list of controls associated with the message.
        entry: The DN of the entry to delete.

    .. _RFC 4511 4.8. Delete Operation:
        https://www.rfc-editor.org/rfc/rfc4511#section-4.8
    """

    # DelRequest ::= [APPLICATION 10] LDAPDN

    tag_number = 10
    "The LDAP message protocol op tag."

    entry: str

    def _pack_protocol_op(
        self,
        writer: ASN1Writer,
        options: PackingOptions,
    ) -> None:
        writer.write_octet_string(
            self.entry.encode(options.string_encoding),
            tag=ASN1Tag(TagClass.APPLICATION, self.tag_number, False),
        )


def _unpack_del_request(
    reader: ASN1Reader,
    options: PackingOptions,
    message_id: int,
    controls: t.List[LDAPControl],
) -> DelRequest:
    entry = reader.get_remaining_data().tobytes().decode(options.string_encoding)
    return DelRequest(message_id=message_id, controls=controls, entry=entry)


@dataclasses.dataclass(frozen=True)
class DelResponse(LDAPMessage, Response):
    """The response to a :class:`DelRequest`.

    Args:
        message_id: The unique identifier for the request.
        controls: A list of controls associated with the message.
        result: The result of the delete operation.
    """

    # DelResponse ::= [APPLICATION 11] LDAPResult

    tag_number = 11
    "The LDAP message protocol op tag."

    result: LDAPResult

    def _pack_inner(
        self,
        writer: ASN1Writer,
        options: PackingOptions,
    ) -> None:
        self.result._pack_inner(writer, options)


@dataclasses.dataclass(frozen=True)
class ModifyDNRequest(LDAPMessage, Request):
    """The modify DN request message.

    Requests the server to rename an entry or move it to a new parent. The
    ModifyDNRequest structure is defined in
    `RFC 4511 4.9. Modify DN Operation`_.

    Args:
        message_id: The unique identifier for the request.
        controls: A list of controls associated with the message.
        entry: The DN of the entry to rename.
        new_rdn: The new RDN of the entry.
        delete_old_rdn: Whether to remove the old RDN attribute values.
        new_superior: The DN of the new parent entry, if moving the entry.

    .. _RFC 4511 4.9. Modify DN Operation:
        https://www.rfc-editor.org/rfc/rfc4511#section-4.9
    """

    # ModifyDNRequest ::= [APPLICATION 12] SEQUENCE {
    #      entry           LDAPDN,
    #      newrdn          RelativeLDAPDN,
    #      deleteoldrdn    BOOLEAN,
    #      newSuperior     [0] LDAPDN OPTIONAL }

    tag_number = 12
    "The LDAP message protocol op tag."

    entry: str
    new_rdn: str
    delete_old_rdn: bool
    new_superior: t.Optional[str] = None

    def _pack_inner(
        self,
        writer: ASN1Writer,
        options: PackingOptions,
    ) -> None:
        writer.write_octet_string(self.entry.encode(options.string_encoding))
        writer.write_octet_string(self.new_rdn.encode(options.string_encoding))
        writer.write_boolean(self.delete_old_rdn)

        if self.new_superior is not None:
            writer.write_octet_string(
                self.new_superior.encode(options.string_encoding),
                tag=ASN1Tag(TagClass.CONTEXT_SPECIFIC, 0, False),
            )


def _unpack_modify_dn_request(
    reader: ASN1Reader,
    options: PackingOptions,
    message_id: int,
    controls: t.List[LDAPControl],
) -> ModifyDNRequest:
    entry = reader.read_octet_string(hint="ModifyDNRequest.entry").decode(options.string_encoding)
    new_rdn = reader.read_octet_string(hint="ModifyDNRequest.newrdn").decode(options.string_encoding)
    delete_old_rdn = reader.read_boolean(hint="ModifyDNRequest.deleteoldrdn")

    new_superior: t.Optional[str] = None
    while reader:
        next_header = reader.peek_header()

        if next_header.tag.tag_class == TagClass.CONTEXT_SPECIFIC and next_header.tag.tag_number == 0:
            new_superior = reader.read_octet_string(
                header=next_header,
                hint="ModifyDNRequest.newSuperior",
            ).decode(options.string_encoding)
            continue

        reader.skip_value(next_header)

    return ModifyDNRequest(
        message_id=message_id,
        controls=controls,
        entry=entry,
        new_rdn=new_rdn,
        delete_old_rdn=delete_old_rdn,
        new_superior=new_superior,
    )


@dataclasses.dataclass(frozen=True)
class ModifyDNResponse(LDAPMessage, Response):
    """The response to a :class:`ModifyDNRequest`.

    Args:
        message_id: The unique identifier for the request.
        controls: A list of controls associated with the message.
        result: The result of the modify DN operation.
    """

    # ModifyDNResponse ::= [APPLICATION 13] LDAPResult

    tag_number = 13
    "The LDAP message protocol op tag."

    result: LDAPResult

    def _pack_inner(
        self,
        writer: ASN1Writer,
        options: PackingOptions,
    ) -> None:
        self.result._pack_inner(writer, options)


@dataclasses.dataclass(frozen=True)
class CompareRequest(LDAPMessage, Request):
    """The compare request message.

    Requests the server to compare an assertion with the value of an attribute
    on an entry. The server replies with ``COMPARE_TRUE`` or ``COMPARE_FALSE``
    as the result code. The CompareRequest structure is defined in
    `RFC 4511 4.10. Compare Operation`_.

    Args:
        message_id: The unique identifier for the request.
        controls: A list of controls associated with the message.
        entry: The DN of the entry to compare.
        attribute: The attribute to compare.
        value: The value to compare against.

    .. _RFC 4511 4.10. Compare Operation:
        https://www.rfc-editor.org/rfc/rfc4511#section-4.10
    """

    # CompareRequest ::= [APPLICATION 14] SEQUENCE {
    #      entry           LDAPDN,
    #      ava             AttributeValueAssertion }

    tag_number = 14
    "The LDAP message protocol op tag."

    entry: str
    attribute: str
    value: bytes

    def _pack_inner(
        self,
        writer: ASN1Writer,
        options: PackingOptions,
    ) -> None:
        writer.write_octet_string(self.entry.encode(options.string_encoding))

        with writer.push_sequence() as ava_writer:
            ava_writer.write_octet_string(self.attribute.encode(options.string_encoding))
            ava_writer.write_octet_string(self.value)


def _unpack_compare_request(
    reader: ASN1Reader,
    options: PackingOptions,
    message_id: int,
    controls: t.List[LDAPControl],
) -> CompareRequest:
    entry = reader.read_octet_string(hint="CompareRequest.entry").decode(options.string_encoding)

    ava_reader = reader.read_sequence(hint="CompareRequest.ava")
    attribute = ava_reader.read_octet_string(hint="CompareRequest.ava.attributeDesc").decode(options.string_encoding)
    value = ava_reader.read_octet_string(hint="CompareRequest.ava.assertionValue")

    return CompareRequest(
        message_id=message_id,
        controls=controls,
        entry=entry,
        attribute=attribute,
        value=value,
    )


@dataclasses.dataclass(frozen=True)
class CompareResponse(LDAPMessage, Response):
    """The response to a :class:`CompareRequest`.

    Args:
        message_id: The unique identifier for the request.
        controls: A list of controls associated with the message.
        result: The result of the compare operation.
    """

    # CompareResponse ::= [APPLICATION 15] LDAPResult

    tag_number = 15
    "The LDAP message protocol op tag."

    result: LDAPResult

    def _pack_inner(
        self,
        writer: ASN1Writer,
        options: PackingOptions,
    ) -> None:
        self.result._pack_inner(writer, options)


@dataclasses.dataclass(frozen=True)
class AbandonRequest(LDAPMessage, Request):
    """The abandon request message.

    Requests the server to abandon an outstanding operation. There is no
    response to this request. The AbandonRequest structure is defined in
    `RFC 4511 4.11. Abandon Operation`_.

    Args:
        message_id: The unique identifier for the request.
        controls: A list of controls associated with the message.
        abandon_id: The message id of the operation to abandon.

    .. _RFC 4511 4.11. Abandon Operation:
        https://www.rfc-editor.org/rfc/rfc4511#section-4.11
    """

    # AbandonRequest ::= [APPLICATION 16] MessageID

    tag_number = 16
    "The LDAP message protocol op tag."

    abandon_id: int

    def _pack_protocol_op(
        self,
        writer: ASN1Writer,
        options: PackingOptions,
    ) -> None:
        writer.write_integer(
            self.abandon_id,
            tag=ASN1Tag(TagClass.APPLICATION, self.tag_number, False),
        )


def _unpack_abandon_request(
    reader: ASN1Reader,
    options: PackingOptions,
    message_id: int,
    controls: t.List[LDAPControl],
) -> AbandonRequest:
    abandon_id = unpack_asn1_integer_value(reader.get_remaining_data())
    return AbandonRequest(message_id=message_id, controls=controls, abandon_id=abandon_id)


@dataclasses.dataclass(frozen=True)
class SearchResultReference(LDAPMessage, Response):
    """The search result reference message.

    Sent by the server in a search request operation when it is unable, or
    unwilling, to search one or more non-local entries. The result reference
    contains reference(s) to one or more set of server for continuing the
    operation. The SearchResultReference structure is defined in
    `RFC 4511 4.5.2. Search Result`_.

    Args:
        message_id: The unique identifier for the request.
        controls: A list of controls associated with the message.
        uris: The URIs of servers that can be used to continue the search. The
            URI may be an ``ldap://`` URI but the syntax is not part of this
            library to interpret.

    .. _RFC 4511 4.5.2. Search Result:
        https://www.rfc-editor.org/rfc/rfc4511#section-4.5.2
    """

    # SearchResultReference ::= [APPLICATION 19] SEQUENCE
    #                           SIZE (1..MAX) OF uri URI

    tag_number = 19
    "The LDAP message protocol op tag."

    uris: t.List[str]

    def _pack_inner(
        self,
        writer: ASN1Writer,
        options: PackingOptions,
    ) -> None:
        for uri in self.uris:
            writer.write_octet_string(uri.encode(options.string_encoding))


def _unpack_search_result_reference(
    reader: ASN1Reader,
    options: PackingOptions,
    message_id: int,
    controls: t.List[LDAPControl],
) -> SearchResultReference:
    uris: t.List[str] = []
    while reader:
        uri = reader.read_octet_string(
            hint="SearchResultReference.uri",
        ).decode(options.string_encoding)
        uris.append(uri)

    return SearchResultReference(
        message_id=message_id,
        controls=controls,
        uris=uris,
    )


@dataclasses.dataclass(frozen=True)
class ExtendedRequest(LDAPMessage, Request):
    """The extended request message.

    An extended operation is a custom operation not strictly defined in the
    LDAP RFC. It is used to extend the existing set of operations with custom
    ones that could be known to the client and server. For example the StartTLS
    protocol uses an extended operation to start embedding the transport with
    TLS. The ExtendedRequest structure is defined in
    `RFC 4511 4.12. Extended Operation`_.

    Args:
        message_id: The unique identifier for the request.
        controls: A list of controls associated with the message.
        name: The extended operation OID string.
        value: The extended operation value as a byte string. Can be None if
            the operation does not require a value.

    .. _RFC 4511 4.12. Extended Operation:
        https://www.rfc-editor.org/rfc/rfc4511#section-4.12
    """

    # ExtendedRequest ::= [APPLICATION 23] SEQUENCE {
    #      requestName      [0] LDAPOID,
    #      requestValue     [1] OCTET STRING OPTIONAL }

    tag_number = 23
    "The LDAP message protocol op tag."

    name: str
    value: t.Optional[bytes] = None

    def _pack_inner(
        self,
        writer: ASN1Writer,
        options: PackingOptions,
    ) -> None:
        writer.write_octet_string(
            self.name.encode(options.string_encoding),
            tag=ASN1Tag(TagClass.CONTEXT_SPECIFIC, 0, False),
        )

        if self.value is not None:
            writer.write_octet_string(
                self.value,
                tag=ASN1Tag(TagClass.CONTEXT_SPECIFIC, 1, False),
            )


def _unpack_extended_request(
    reader: ASN1Reader,
    options: PackingOptions,
    message_id: int,
    controls: t.List[LDAPControl],
) -> ExtendedRequest:
    name = reader.read_octet_string(
        tag=ASN1Tag(
            tag_class=TagClass.CONTEXT_SPECIFIC,
            tag_number=0,
            is_constructed=False,
        ),
        hint="ExtendedRequest.requestName",
    ).decode(options.string_encoding)

    value: t.Optional[bytes] = None
    while reader:
        next_header = reader.peek_header()

        if next_header.tag.tag_class == TagClass.CONTEXT_SPECIFIC and next_header.tag.tag_number == 1:
            value = reader.read_octet_string(
                header=next_header,
                hint="ExtendedRequest.requestValue",
            )
            continue

        reader.skip_value(next_header)

    return ExtendedRequest(
        message_id=message_id,
        controls=controls,
        name=name,
        value=value,
    )


@dataclasses.dataclass(frozen=True)
class ExtendedResponse(LDAPMessage, Response):
    """The extended response message.

    The response to an extended request and contains the result of the
    operation as well as extra data associated with the operation. The
    ExtendedResponse structure is defined in
    `RFC 4511 4.12. Extended Operation`_.

    Args:
        message_id: The unique identifier for the request.
        controls: A list of controls associated with the message.
        result: The result of the operation.
        name: The operation OID string that was performced. This is optionally
            returned by the server.
        value: The operation data is specific to the operation performed. This
            is optionally returned by the server.

    .. _RFC 4511 4.12. Extended Operation:
        https://www.rfc-editor.org/rfc/rfc4511#section-4.12
    """

    # ExtendedResponse ::= [APPLICATION 24] SEQUENCE {
    #      COMPONENTS OF LDAPResult,
    #      responseName     [10] LDAPOID OPTIONAL,
    #      responseValue    [11] OCTET STRING OPTIONAL }

    tag_number = 24
    "The LDAP message protocol op tag."

    result: LDAPResult
    name: t.Optional[str] = None
    value: t.Optional[bytes] = None

    def _pack_inner(
        self,
        writer: ASN1Writer,
        options: PackingOptions,
    ) -> None:
        self.result._pack_inner(writer, options)

        if self.name is not None:
            writer.write_octet_string(
                self.name.encode(options.string_encoding),
                ASN1Tag(TagClass.CONTEXT_SPECIFIC, 10, False),
            )

        if self.value is not None:
            writer.write_octet_string(
                self.value,
                ASN1Tag(TagClass.CONTEXT_SPECIFIC, 11, False),
            )


def _unpack_extended_response(
    reader: ASN1Reader,
    options: PackingOptions,
    message_id: int,
    controls: t.List[LDAPControl],
) -> ExtendedResponse:
    result = _unpack_ldap_result(reader, options)

    name: t.Optional[str] = None
    value: t.Optional[bytes] = None

    while reader:
        next_header = reader.peek_header()

        if next_header.tag.tag_class == TagClass.CONTEXT_SPECIFIC:
            if next_header.tag.tag_number == 10:
                name = reader.read_octet_string(
                    header=next_header,
                    hint="ExtendedResponse.responseName",
                ).decode(options.string_encoding)
                continue

            elif next_header.tag.tag_number == 11:
                value = reader.read_octet_string(
                    header=next_header,
                    hint="ExtendedResponse.responseValue",
                )
                continue

        reader.skip_value(next_header)

    return ExtendedResponse(
        message_id=message_id,
        controls=controls,
        result=result,
        name=name,
        value=value,
    )


ResultResponseType = t.TypeVar(
    "ResultResponseType",
    SearchResultDone,
    ModifyResponse,
    AddResponse,
    DelResponse,
    ModifyDNResponse,
    CompareResponse,
)


def _unpack_result_response(
    cls: t.Type[ResultResponseType],
) -> t.Callable[[ASN1Reader, PackingOptions, int, t.List[LDAPControl]], ResultResponseType]:
    """Creates the unpack function for responses that are just an LDAPResult."""

    def unpack(
        reader: ASN1Reader,
        options: PackingOptions,
        message_id: int,
        controls: t.List[LDAPControl],
    ) -> ResultResponseType:
        result = _unpack_ldap_result(reader, options)
        return cls(message_id=message_id, controls=controls, result=result)  # type: ignore[call-arg]

    return unpack


PRIMITIVE_PROTOCOL_OPS: t.FrozenSet[int] = frozenset(
    [
        UnbindRequest.tag_number,
        DelRequest.tag_number,
        AbandonRequest.tag_number,
    ]
)

PROTOCOL_PACKER: t.Dict[int, t.Callable[[ASN1Reader, PackingOptions, int, t.List[LDAPControl]], LDAPMessage]] = {
    BindRequest.tag_number: _unpack_bind_request,
    BindResponse.tag_number: _unpack_bind_response,
    UnbindRequest.tag_number: _unpack_unbind_request,
    SearchRequest.tag_number: _unpack_search_request,
    SearchResultEntry.tag_number: _unpack_search_result_entry,
    SearchResultDone.tag_number: _unpack_result_response(SearchResultDone),
    ModifyRequest.tag_number: _unpack_modify_request,
    ModifyResponse.tag_number: _unpack_result_response(ModifyResponse),
    AddRequest.tag_number: _unpack_add_request,
    AddResponse.tag_number: _unpack_result_response(AddResponse),
    DelRequest.tag_number: _unpack_del_request,
    DelResponse.tag_number: _unpack_result_response(DelResponse),
    ModifyDNRequest.tag_number: _unpack_modify_dn_request,
    ModifyDNResponse.tag_number: _unpack_result_response(ModifyDNResponse),
    CompareRequest.tag_number: _unpack_compare_request,
    CompareResponse.tag_number: _unpack_result_response(CompareResponse),
    AbandonRequest.tag_number: _unpack_abandon_request,
    SearchResultReference.tag_number: _unpack_search_result_reference,
    ExtendedRequest.tag_number: _unpack_extended_request,
    ExtendedResponse.tag_number: _unpack_extended_response,
}
