# Copyright: (c) 2023, Jordan Borean (@jborean93) <jborean93@gmail.com>
# MIT License (see LICENSE or https://opensource.org/licenses/MIT)

import enum
import logging
import typing as t

from ._controls import ControlDecoder, ControlOptions, LDAPControl
from ._extended import ExtendedOperations, PasswordModifyRequestValue
from ._filter import FilterOptions, FilterPresent, LDAPFilter
from ._messages import (
    AbandonRequest,
    AddRequest,
    AuthenticationCredential,
    BindRequest,
    BindResponse,
    Change,
    CompareRequest,
    DelRequest,
    DereferencingPolicy,
    ExtendedRequest,
    ExtendedResponse,
    LDAPMessage,
    ModifyDNRequest,
    ModifyRequest,
    PackingOptions,
    PartialAttribute,
    Response,
    SaslCredential,
    SearchRequest,
    SearchResultDone,
    SearchResultEntry,
    SearchResultReference,
    SearchScope,
    SimpleCredential,
    UnbindRequest,
    unpack_ldap_message,
)
from ._result import LDAPError, LDAPResultCode, ProtocolError
from .asn1 import ASN1Reader, NotEnoughData

log = logging.getLogger(__name__)


class SessionState(enum.Enum):
    """Lifecycle of an LDAPClient.

    BEFORE_OPEN is the initial state, any request may be queued from here.
    Queuing a BindRequest moves the client to BINDING where only another
    BindRequest or an UnbindRequest is allowed. The bind finishes when a
    BindResponse arrives with any result other than
    ``SASL_BIND_IN_PROGRESS`` and the client moves to OPENED. Queuing the
    first non-bind request also opens the client.

    CLOSED is terminal. It is reached by sending an UnbindRequest or when
    :func:`LDAPClient.receive` hits a fatal condition like malformed data,
    an unbind from the server or a Notice of Disconnection.
    """

    BEFORE_OPEN = enum.auto()
    "Nothing has been queued or received yet."

    BINDING = enum.auto()
    "A bind operation is in flight."

    OPENED = enum.auto()
    "Requests can be freely queued."

    CLOSED = enum.auto()
    "The client was unbound or hit a protocol error and is unusable."


class LDAPClient:
    """LDAP Client session.

    The sans-I/O LDAP client session. Each request method packs the message
    into the outgoing buffer and returns the message id assigned to it. The
    caller is responsible for sending the data from :func:`data_to_send` to
    the server and passing the data received from the server to
    :func:`receive`.

    Attributes:
        state: The current session state.
        version: The LDAP protocol version, currently this is only set to 3.
    """

    def __init__(
        self,
        string_encoding: str = "utf-8",
    ) -> None:
        self.state = SessionState.BEFORE_OPEN
        self.version = 3

        self._message_counter = 1
        self._outgoing_buffer = bytearray()
        self._incoming_buffer = bytearray()
        self._outstanding_requests: t.Set[int] = set()
        self._search_requests: t.Set[int] = set()
        self._abandoned_requests: t.Set[int] = set()
        self._packing_options = PackingOptions(
            string_encoding=string_encoding,
            control=ControlOptions(string_encoding=string_encoding),
            filter=FilterOptions(string_encoding=string_encoding),
        )

    @property
    def outstanding_requests(self) -> t.FrozenSet[int]:
        """The message ids of the requests still waiting for a response."""
        return frozenset(self._outstanding_requests)

    def data_to_send(
        self,
        amount: t.Optional[int] = None,
    ) -> bytes:
        """Drain queued request bytes.

        Removes and returns bytes from the front of the outgoing queue. The
        queue holds every packed request in the order they were created.

        Args:
            amount: Maximum number of bytes to drain, None drains everything.

        Returns:
            bytes: The bytes to write to the server connection.
        """
        if amount is None:
            amount = len(self._outgoing_buffer)

        data = bytes(self._outgoing_buffer[:amount])
        self._outgoing_buffer = self._outgoing_buffer[amount:]

        return data

    def receive(
        self,
        data: t.Union[bytes, bytearray, memoryview],
    ) -> t.List[LDAPMessage]:
        """Feed bytes read from the server.

        The data is appended to whatever partial message was left over from
        the last call and every complete message is decoded. Bytes that do not
        yet form a whole message stay buffered for the next call. Responses to
        abandoned requests are dropped from the result.

        A failed operation on the server side, a ``noSuchObject`` result for
        example, is returned like any other response. Only a fatal condition
        raises a ProtocolError, after which the client is CLOSED. When the
        error has ``response`` set, those bytes are an UnbindRequest that
        should be written before the connection is closed.

        Args:
            data: The bytes read from the connection.

        Returns:
            t.List[LDAPMessage]: The responses decoded from the data.

        Raises:
            ProtocolError: The server sent something the client cannot
                continue from.
        """
        try:
            return self._receive(data)

        except ProtocolError as e:
            if e.request is None or (
                not isinstance(e.request, UnbindRequest)
                and not (
                    isinstance(e.request, ExtendedResponse)
                    and e.request.name == ExtendedOperations.LDAP_NOTICE_OF_DISCONNECTION.value
                )
            ):
                msg = UnbindRequest(
                    message_id=0,
                    controls=[],
                )
                e.response = msg.pack(self._packing_options)

            raise

    def register_control(
        self,
        control: t.Type[LDAPControl],
        decoder: t.Optional[ControlDecoder] = None,
    ) -> None:
        """Register a custom LDAP control.

        Registers a custom :class:`LDAPControl` class that is used to unpack
        controls in a response. A control registered with the same
        control_type as an existing one replaces it.

        Args:
            control: The custom LDAP control type to register.
            decoder: A custom decoder for the control, defaults to the
                ``unpack`` method of the control.
        """
        self._packing_options.control.registry.register(
            control.control_type,
            decoder or control.unpack,
        )

    def register_filter(
        self,
        filter: t.Type[LDAPFilter],
    ) -> None:
        """Register a custom filter type.

        The filter type is added to the choices tried when decoding a filter.
        Filter objects of any type can be sent without registering them.

        Args:
            filter: The LDAPFilter subclass to register.

        Raises:
            ValueError: Another filter already uses the same filter_id.
        """
        existing = next(
            (f for f in self._packing_options.filter.choices if filter.filter_id == f.filter_id),
            None,
        )
        if existing:
            raise ValueError(
                f"An LDAP filter of the type {filter.filter_id} has already been registered {existing.__name__}"
            )
        self._packing_options.filter.choices.append(filter)

    def bind_simple(
        self,
        dn: t.Optional[str] = None,
        password: t.Optional[str] = None,
        controls: t.Optional[t.List[LDAPControl]] = None,
    ) -> int:
        """Queue a simple bind.

        Leaving both dn and password empty gives an anonymous bind while a dn
        with no password is an unauthenticated bind. What the dn looks like is
        up to the server, Active Directory accepts a UPN or the
        ``DOMAIN\\user`` form while most other servers need a full DN.

        Note:
            A bind requires every other request to be completed first and
            no other request can be queued until the BindResponse arrives.

        Args:
            dn: The identity to bind as.
            password: The password for the identity.
            controls: Optional client controls to send with the request.

        Returns:
            int: The message id associated with the request.
        """
        return self.bind(
            dn or "",
            authentication=SimpleCredential(password=password or ""),
            controls=controls,
        )

    def bind_sasl(
        self,
        mechanism: str,
        dn: t.Optional[str] = None,
        cred: t.Optional[bytes] = None,
        controls: t.Optional[t.List[LDAPControl]] = None,
    ) -> int:
        """Queue a SASL bind.

        Mechanisms like GSS-SPNEGO need several round trips. While the server
        replies with ``SASL_BIND_IN_PROGRESS`` the caller feeds the
        ``server_sasl_creds`` of the BindResponse into its SASL context and
        calls this again with the next token. An empty mechanism aborts a
        SASL exchange that is in progress.

        Args:
            mechanism: The SASL mechanism name.
            dn: Usually left empty as the identity is part of the credential.
            cred: The SASL token for this leg.
            controls: Optional client controls to send with the request.

        Returns:
            int: The message id associated with the request.
        """
        return self.bind(
            dn or "",
            authentication=SaslCredential(
                mechanism=mechanism,
                credentials=cred,
            ),
            controls=controls,
        )

    def bind(
        self,
        dn: str,
        authentication: AuthenticationCredential,
        controls: t.Optional[t.List[LDAPControl]] = None,
    ) -> int:
        """Send a BIND request.

        Creates a bind request with the authentication payload specified. It
        is recommended to use :func:`bind_simple` or :func:`bind_sasl` instead
        of this function.

        Args:
            dn: The name of the Directory object that the client wishes to bind
                as.
            authentication: The authentication object to bind with.
            controls: Optional client controls to send with the request.

        Returns:
            int: The message id associated with the request.
        """
        if self._outstanding_requests:
            raise LDAPError("All outstanding requests must be completed to send a BindRequest")

        msg = BindRequest(
            message_id=0,
            controls=controls or [],
            version=self.version,
            name=dn,
            authentication=authentication,
        )

        msg_id = self._send(msg)
        self.state = SessionState.BINDING
        return msg_id

    def unbind(self) -> None:
        """Queue an UnbindRequest and close the client.

        The server does not reply to an unbind. Once the returned bytes from
        :func:`data_to_send` are written the connection should be closed.
        Outstanding requests are forgotten and the client is CLOSED.
        """
        msg = UnbindRequest(
            message_id=0,
            controls=[],
        )
        self._send(msg)
        self._outstanding_requests = set()
        self._search_requests = set()
        self.state = SessionState.CLOSED

    def search_request(
        self,
        base_object: t.Optional[str] = None,
        scope: t.Union[int, SearchScope] = SearchScope.SUBTREE,
        dereferencing_policy: t.Union[int, DereferencingPolicy] = DereferencingPolicy.NEVER,
        size_limit: int = 0,
        time_limit: int = 0,
        types_only: bool = False,
        filter: t.Optional[t.Union[str, LDAPFilter]] = None,
        attributes: t.Optional[t.List[str]] = None,
        controls: t.Optional[t.List[LDAPControl]] = None,
    ) -> int:
        """Queue a SearchRequest.

        The server answers with any number of :class:`SearchResultEntry` and
        :class:`SearchResultReference` messages followed by a single
        :class:`SearchResultDone`. The message id stays outstanding until the
        done message is received. Size and time limits are upper bounds, a
        server may apply lower limits of its own.

        Args:
            base_object: The DN to search from, empty for the root DSE.
            scope: How deep below base_object to search.
            dereferencing_policy: When alias entries are dereferenced.
            size_limit: Maximum number of entries to return, 0 for no limit.
            time_limit: Maximum number of seconds for the search, 0 for no
                limit.
            types_only: Return attribute names without their values.
            filter: A filter string or LDAPFilter object, defaults to
                ``(objectClass=*)``.
            attributes: Attributes to return for each entry, an empty list
                requests all user attributes.
            controls: Optional client controls to send with the request.

        Returns:
            int: The message id associated with the request.

        Raises:
            FilterCompileError: The filter string is invalid, nothing is
                queued in this case.
        """
        msg = SearchRequest(
            message_id=0,
            controls=controls or [],
            base_object=base_object or "",
            scope=SearchScope(scope),
            deref_aliases=DereferencingPolicy(dereferencing_policy),
            size_limit=size_limit,
            time_limit=time_limit,
            types_only=types_only,
            filter=FilterPresent("objectClass") if filter is None else filter,
            attributes=attributes or [],
        )
        msg_id = self._send(msg)
        self._search_requests.add(msg_id)

        return msg_id

    def add_request(
        self,
        entry: str,
        attributes: t.List[PartialAttribute],
        controls: t.Optional[t.List[LDAPControl]] = None,
    ) -> int:
        """Send an Add Request.

        Args:
            entry: The DN of the entry to add.
            attributes: The attributes of the new entry.
            controls: Optional client controls to send with the request.

        Returns:
            int: The message id associated with the request.
        """
        msg = AddRequest(
            message_id=0,
            controls=controls or [],
            entry=entry,
            attributes=attributes,
        )
        return self._send(msg)

    def delete_request(
        self,
        entry: str,
        controls: t.Optional[t.List[LDAPControl]] = None,
    ) -> int:
        """Send a Delete Request for the entry DN."""
        msg = DelRequest(
            message_id=0,
            controls=controls or [],
            entry=entry,
        )
        return self._send(msg)

    def modify_request(
        self,
        object_name: str,
        changes: t.List[Change],
        controls: t.Optional[t.List[LDAPControl]] = None,
    ) -> int:
        """Send a Modify Request.

        The changes are applied by the server in the order they are
        specified.

        Args:
            object_name: The DN of the entry to modify.
            changes: The changes to apply.
            controls: Optional client controls to send with the request.

        Returns:
            int: The message id associated with the request.
        """
        msg = ModifyRequest(
            message_id=0,
            controls=controls or [],
            object=object_name,
            changes=changes,
        )
        return self._send(msg)

    def modify_dn_request(
        self,
        entry: str,
        new_rdn: str,
        delete_old_rdn: bool = True,
        new_superior: t.Optional[str] = None,
        controls: t.Optional[t.List[LDAPControl]] = None,
    ) -> int:
        """Send a Modify DN Request.

        Args:
            entry: The DN of the entry to rename or move.
            new_rdn: The new RDN of the entry.
            delete_old_rdn: Remove the old RDN attribute values from the
                entry.
            new_superior: The DN of the new parent entry when moving the entry.
            controls: Optional client controls to send with the request.

        Returns:
            int: The message id associated with the request.
        """
        msg = ModifyDNRequest(
            message_id=0,
            controls=controls or [],
            entry=entry,
            new_rdn=new_rdn,
            delete_old_rdn=delete_old_rdn,
            new_superior=new_superior,
        )
        return self._send(msg)

    def compare_request(
        self,
        entry: str,
        attribute: str,
        value: t.Union[str, bytes],
        controls: t.Optional[t.List[LDAPControl]] = None,
    ) -> int:
        """Send a Compare Request.

        The server replies with ``COMPARE_TRUE`` or ``COMPARE_FALSE`` in the
        CompareResponse result code.

        Args:
            entry: The DN of the entry to compare.
            attribute: The attribute to compare.
            value: The value to compare, a string is encoded with the session
                string encoding.
            controls: Optional client controls to send with the request.

        Returns:
            int: The message id associated with the request.
        """
        if isinstance(value, str):
            value = value.encode(self._packing_options.string_encoding)

        msg = CompareRequest(
            message_id=0,
            controls=controls or [],
            entry=entry,
            attribute=attribute,
            value=value,
        )
        return self._send(msg)

    def abandon_request(
        self,
        abandon_id: int,
        controls: t.Optional[t.List[LDAPControl]] = None,
    ) -> int:
        """Send an Abandon Request.

        Requests the server to abandon the operation with the message id
        specified. There is no response to this request and any further
        responses for the abandoned operation are discarded by
        :func:`receive`.

        Args:
            abandon_id: The message id of the request to abandon.
            controls: Optional client controls to send with the request.

        Returns:
            int: The message id associated with the request.
        """
        msg = AbandonRequest(
            message_id=0,
            controls=controls or [],
            abandon_id=abandon_id,
        )
        msg_id = self._send(msg)

        self._outstanding_requests.discard(msg_id)
        self._outstanding_requests.discard(abandon_id)
        self._search_requests.discard(abandon_id)
        self._abandoned_requests.add(abandon_id)

        return msg_id

    def extended_request(
        self,
        name: str,
        value: t.Optional[bytes] = None,
        controls: t.Optional[t.List[LDAPControl]] = None,
    ) -> int:
        """Send an Extended request.

        Creates an extended request to perform custom operations on the server.
        An extended request must be supported by both the client and server.

        Args:
            name: The extended request OID string.
            value: The value for the request, can be None if the request does
                not have a value.
            controls: Optional client controls to send with the request.

        Returns:
            int: The message id associated with the request.
        """
        msg = ExtendedRequest(
            message_id=0,
            controls=controls or [],
            name=name,
            value=value,
        )
        return self._send(msg)

    def password_modify_request(
        self,
        user_identity: t.Optional[str] = None,
        old_password: t.Optional[str] = None,
        new_password: t.Optional[str] = None,
        controls: t.Optional[t.List[LDAPControl]] = None,
    ) -> int:
        """Send a Password Modify extended request.

        The response value can be unpacked with
        :meth:`PasswordModifyResponseValue.unpack` to get the password
        generated by the server when new_password was not set.

        Args:
            user_identity: The user to change the password for, defaults to
                the bound user.
            old_password: The current password of the user.
            new_password: The new password to set.
            controls: Optional client controls to send with the request.

        Returns:
            int: The message id associated with the request.
        """
        value = PasswordModifyRequestValue(
            user_identity=user_identity,
            old_password=old_password,
            new_password=new_password,
        )
        return self.extended_request(
            ExtendedOperations.LDAP_PASSWORD_MODIFY.value,
            value=value.pack(self._packing_options.string_encoding),
            controls=controls,
        )

    def who_am_i_request(
        self,
        controls: t.Optional[t.List[LDAPControl]] = None,
    ) -> int:
        """Send a Who Am I extended request for the bound identity."""
        return self.extended_request(
            ExtendedOperations.LDAP_WHO_AM_I.value,
            controls=controls,
        )

    def _receive(
        self,
        data: t.Union[bytes, bytearray, memoryview],
    ) -> t.List[LDAPMessage]:
        if self.state == SessionState.CLOSED:
            raise ProtocolError("Cannot receive more data on a closed LDAP session")

        incoming_msgs: t.List[LDAPMessage] = []
        try:
            # If there is leftover data in the buffer then use that, otherwise
            # try to unpack directly from the input to avoid copying it if it's
            # not needed.
            if self._incoming_buffer:
                self._incoming_buffer.extend(data)
                reader = ASN1Reader(self._incoming_buffer)
                while reader:
                    try:
                        msg = unpack_ldap_message(reader, self._packing_options)
                    except NotEnoughData:
                        break

                    incoming_msgs.append(msg)

                self._incoming_buffer = bytearray(reader.get_remaining_data())

            else:
                reader = ASN1Reader(data)

                while reader:
                    try:
                        msg = unpack_ldap_message(reader, self._packing_options)
                    except NotEnoughData:
                        self._incoming_buffer = bytearray(reader.get_remaining_data())
                        break

                    incoming_msgs.append(msg)

            processed_msgs: t.List[LDAPMessage] = []
            for msg in incoming_msgs:
                log.debug("Received LDAP message %s with id %d", type(msg).__name__, msg.message_id)

                if (
                    isinstance(msg, ExtendedResponse)
                    and msg.name == ExtendedOperations.LDAP_NOTICE_OF_DISCONNECTION.value
                ):
                    error_msg = f"Peer has sent a NoticeOfDisconnect response {msg.result.result_code.name}"
                    if msg.result.diagnostics_message:
                        error_msg += f": {msg.result.diagnostics_message}"
                    raise ProtocolError(error_msg, request=msg)

                elif isinstance(msg, UnbindRequest):
                    raise ProtocolError("Received unbind request, connection is closed", request=msg)

                if self._process_incoming_message(msg):
                    processed_msgs.append(msg)

        except (ValueError, NotImplementedError) as e:
            self.state = SessionState.CLOSED
            self._outstanding_requests = set()
            raise ProtocolError(f"Received invalid data from the peer, connection closing: {e}") from e

        except ProtocolError:
            self.state = SessionState.CLOSED
            self._outstanding_requests = set()
            raise

        return processed_msgs

    def _process_incoming_message(
        self,
        msg: LDAPMessage,
    ) -> bool:
        if not isinstance(msg, Response):
            raise ProtocolError(
                f"Received an LDAP message that is not a response {type(msg).__name__}, cannot process",
                request=msg,
            )

        elif msg.message_id in self._abandoned_requests:
            log.debug("Discarding response %s for abandoned request %d", type(msg).__name__, msg.message_id)
            # Entries and references precede the final response of a search.
            if not isinstance(msg, (SearchResultEntry, SearchResultReference)):
                self._abandoned_requests.remove(msg.message_id)

            return False

        remove_id = True
        if msg.message_id in self._search_requests:
            if isinstance(msg, SearchResultDone):
                self._search_requests.remove(msg.message_id)

            else:
                remove_id = False

        elif msg.message_id not in self._outstanding_requests:
            raise ProtocolError(
                f"Received unexpected message id response {msg.message_id} from server",
                request=msg,
            )

        if isinstance(msg, BindResponse) and msg.result.result_code != LDAPResultCode.SASL_BIND_IN_PROGRESS:
            self.state = SessionState.OPENED

        if remove_id:
            self._outstanding_requests.remove(msg.message_id)

        return True

    def _send(
        self,
        msg: LDAPMessage,
    ) -> int:
        if self.state == SessionState.CLOSED:
            raise LDAPError("LDAP session is CLOSED, cannot send any new messages.")

        elif self.state == SessionState.BINDING and not isinstance(msg, (UnbindRequest, BindRequest)):
            raise LDAPError(
                f"LDAP session is BINDING, can only send a BindRequest or UnbindRequest not {type(msg).__name__}"
            )

        is_unbind = isinstance(msg, UnbindRequest)
        msg_id = 0 if is_unbind else self._message_counter
        object.__setattr__(msg, "message_id", msg_id)

        # Packing can fail on an invalid filter string, the state, counter,
        # and buffer are only changed once the message has been packed.
        data = msg.pack(self._packing_options)
        log.debug("Sending LDAP message %s with id %d", type(msg).__name__, msg_id)

        self._outgoing_buffer.extend(data)
        if self.state == SessionState.BEFORE_OPEN:
            self.state = SessionState.OPENED

        if not is_unbind:
            self._message_counter += 1
            self._outstanding_requests.add(msg_id)

        return msg_id
