# Copyright: (c) 2023, Jordan Borean (@jborean93) <jborean93@gmail.com>
# MIT License (see LICENSE or https://opensource.org/licenses/MIT)

from . import asn1
from ._controls import (
    BEHERA_PASSWORD_POLICY_ERRORS,
    BeheraPasswordPolicyControl,
    ControlDecoder,
    ControlOptions,
    ControlRegistry,
    LDAPControl,
    ManageDsaITControl,
    NotificationControl,
    PagedResultControl,
    ShowDeletedControl,
    VChuPasswordMustChangeControl,
    VChuPasswordWarningControl,
    default_control_registry,
    find_control,
)
from ._debug import debug_binary_file, dump_asn1
from ._extended import (
    ExtendedOperations,
    PasswordModifyRequestValue,
    PasswordModifyResponseValue,
    unpack_who_am_i_response,
)
from ._filter import (
    FilterAnd,
    FilterApproxMatch,
    FilterCompileError,
    FilterDecompileError,
    FilterEquality,
    FilterExtensibleMatch,
    FilterGreaterOrEqual,
    FilterLessOrEqual,
    FilterNot,
    FilterOptions,
    FilterOr,
    FilterPresent,
    FilterSubstrings,
    LDAPFilter,
    compile_filter,
    decompile_filter,
    escape_filter,
)
from ._messages import (
    AbandonRequest,
    AddRequest,
    AddResponse,
    AuthenticationCredential,
    BindRequest,
    BindResponse,
    Change,
    CompareRequest,
    CompareResponse,
    DelRequest,
    DelResponse,
    DereferencingPolicy,
    ExtendedRequest,
    ExtendedResponse,
    LDAPMessage,
    LDAPResult,
    ModifyDNRequest,
    ModifyDNResponse,
    ModifyOperation,
    ModifyRequest,
    ModifyResponse,
    PackingOptions,
    PartialAttribute,
    Request,
    Response,
    SaslCredential,
    SearchRequest,
    SearchResultDone,
    SearchResultEntry,
    SearchResultReference,
    SearchScope,
    SimpleCredential,
    UnbindRequest,
    classify_changes,
    unpack_ldap_message,
)
from ._result import (
    DirectoryError,
    LDAPError,
    LDAPResultCode,
    NetworkError,
    ProtocolError,
    describe,
    get_ldap_result_code,
    get_result_error,
)
from ._search import (
    Entry,
    EntryAttribute,
    PagingState,
    SearchPager,
    SearchResult,
    collect_search_result,
)
from ._session import LDAPClient, SessionState

__all__ = [
    "AbandonRequest",
    "AddRequest",
    "AddResponse",
    "AuthenticationCredential",
    "BEHERA_PASSWORD_POLICY_ERRORS",
    "BeheraPasswordPolicyControl",
    "BindRequest",
    "BindResponse",
    "Change",
    "CompareRequest",
    "CompareResponse",
    "ControlDecoder",
    "ControlOptions",
    "ControlRegistry",
    "DelRequest",
    "DelResponse",
    "DereferencingPolicy",
    "DirectoryError",
    "Entry",
    "EntryAttribute",
    "ExtendedOperations",
    "ExtendedRequest",
    "ExtendedResponse",
    "FilterAnd",
    "FilterApproxMatch",
    "FilterCompileError",
    "FilterDecompileError",
    "FilterEquality",
    "FilterExtensibleMatch",
    "FilterGreaterOrEqual",
    "FilterLessOrEqual",
    "FilterNot",
    "FilterOptions",
    "FilterOr",
    "FilterPresent",
    "FilterSubstrings",
    "LDAPClient",
    "LDAPControl",
    "LDAPError",
    "LDAPFilter",
    "LDAPMessage",
    "LDAPResult",
    "LDAPResultCode",
    "ManageDsaITControl",
    "ModifyDNRequest",
    "ModifyDNResponse",
    "ModifyOperation",
    "ModifyRequest",
    "ModifyResponse",
    "NetworkError",
    "NotificationControl",
    "PackingOptions",
    "PagedResultControl",
    "PagingState",
    "PartialAttribute",
    "PasswordModifyRequestValue",
    "PasswordModifyResponseValue",
    "ProtocolError",
    "Request",
    "Response",
    "SaslCredential",
    "SearchPager",
    "SearchRequest",
    "SearchResult",
    "SearchResultDone",
    "SearchResultEntry",
    "SearchResultReference",
    "SearchScope",
    "SessionState",
    "ShowDeletedControl",
    "SimpleCredential",
    "UnbindRequest",
    "VChuPasswordMustChangeControl",
    "VChuPasswordWarningControl",
    "asn1",
    "classify_changes",
    "compile_filter",
    "debug_binary_file",
    "decompile_filter",
    "default_control_registry",
    "describe",
    "dump_asn1",
    "escape_filter",
    "find_control",
    "get_ldap_result_code",
    "get_result_error",
    "unpack_ldap_message",
    "unpack_who_am_i_response",
]
