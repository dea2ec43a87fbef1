# Copyright: (c) 2023, Jordan Borean (@jborean93) <jborean93@gmail.com>
# MIT License (see LICENSE or https://opensource.org/licenses/MIT)

from __future__ import annotations

import dataclasses
import re
import typing as t

from ._result import LDAPError, LDAPResultCode
from .asn1 import ASN1Reader, ASN1Tag, ASN1Writer, BufferType, NotEnoughData, TagClass

_ATTRIBUTE_PATTERN = re.compile(
    r"""^
(?:
    (?:
        # Alphanumeric with hyphen (must start with alpha)
        [a-zA-Z][a-zA-Z0-9\-]*
    )
    | # or
    (?:
        # OID string
        (?:
            # Number without leading 0 (except 0 itself)
            (?:[0-9])|(?:[1-9][0-9]*)
        )
        (?:
            # Optionally repeated but with . as separator
            \.(?:(?:[0-9])|(?:[1-9][0-9]*))
        )*
    )
)
(?:
    # Optional attr options start with ; and are alphanumeric with hyphen
    ;[a-zA-Z0-9\-]+
)*
$""",
    re.VERBOSE,
)
_HEX_PATTERN = re.compile("^[a-fA-F0-9]{2}$")
_VALUE_TOKEN_PATTERN = re.compile(r"\\(.{0,2})|(\*)|([^\\*]+)", re.DOTALL)

# (), ), *, \, control chars, any non ASCII chars need to be escaped
_STRING_ESCAPE_PATTERN = re.compile(r"[\x00-\x1F\(\)*\\\x7F-\xFF]".encode("utf-8"))

_WHITESPACE = " \t\r\n"


class FilterCompileError(LDAPError, ValueError):
    """Exception used for LDAP filter syntax errors.

    This exception is raised when the code has failed to parse the LDAP filter
    string provided. It provides the full filter used as well as the offset and
    length of the subset that failed to be parsed.

    Args:
        msg: Details of the syntax error.
        filter: The filter string that failed to compile.
        offset: The offset of the filter provided that failed.
        length: The length after offset that was part of the failure.
    """

    def __init__(
        self,
        msg: str,
        filter: str,
        offset: int,
        length: int,
    ) -> None:
        super().__init__(msg, result_code=LDAPResultCode.ERROR_FILTER_COMPILE)
        self.filter = filter
        self.offset = offset
        self.length = length


class FilterDecompileError(LDAPError, ValueError):
    """Exception used when BER data is not a valid LDAP filter."""

    def __init__(
        self,
        msg: str,
    ) -> None:
        super().__init__(msg, result_code=LDAPResultCode.ERROR_FILTER_DECOMPILE)


class _FilterParser:
    """Recursive descent parser for the RFC 4515 filter string form.

    Args:
        filter: The filter string to parse.
        options: The options used to encode the values and limit nesting.
    """

    def __init__(
        self,
        filter: str,
        options: FilterOptions,
    ) -> None:
        self.filter = filter
        self.options = options
        self.pos = 0

    def parse(self) -> LDAPFilter:
        self._skip_whitespace()
        char = self._peek()

        if char is None:
            raise self._error("No filter found", 0, len(self.filter))

        elif char == ")":
            raise self._error("Unbalanced closing ')' without a starting '('", self.pos, 1)

        elif char == "(":
            parsed_filter = self._parse_filter(0)

        else:
            # An LDAP filter that is not surrounded by () - 'objectClass=*'
            end = len(self.filter.rstrip(_WHITESPACE))
            for idx in range(self.pos, end):
                if self.filter[idx] == ")":
                    raise self._error("Unbalanced closing ')' without a starting '('", idx, 1)

                elif self.filter[idx] == "(":
                    raise self._error("Unescaped '(' found in filter item", idx, 1)

            parsed_filter = self._parse_item(self.pos, end)
            self.pos = end

        self._skip_whitespace()
        if self.pos < len(self.filter):
            raise self._error(
                "Extra data found at filter end",
                self.pos,
                len(self.filter) - self.pos,
            )

        return parsed_filter

    def _parse_filter(
        self,
        depth: int,
    ) -> LDAPFilter:
        start = self.pos
        if depth > self.options.max_depth:
            raise self._error(
                f"Filter nesting exceeds the maximum depth of {self.options.max_depth}",
                start,
                1,
            )

        # Caller has already validated the current char is '('.
        self.pos += 1
        self._skip_whitespace()
        char = self._peek()

        if char in ["&", "|"]:
            operator = char
            self.pos += 1
            filters: t.List[LDAPFilter] = []
            while True:
                self._skip_whitespace()
                char = self._peek()
                if char == "(":
                    filters.append(self._parse_filter(depth + 1))

                elif char == ")":
                    break

                elif char is None:
                    raise self._unbalanced_error(start)

                else:
                    # LDAP filter = '(&(foo=bar)hello=world)'
                    raise self._error(
                        "Expecting '(' to start after qualifier in complex filter expression",
                        self.pos,
                        1,
                    )

            if not filters:
                raise self._error(
                    "No filter value found after conditional",
                    start,
                    self.pos - start + 1,
                )

            self.pos += 1
            return FilterAnd(filters=filters) if operator == "&" else FilterOr(filters=filters)

        elif char == "!":
            self.pos += 1
            self._skip_whitespace()
            char = self._peek()
            if char is None:
                raise self._unbalanced_error(start)

            elif char != "(":
                raise self._error(
                    "Expecting '(' to start after qualifier in complex filter expression",
                    self.pos,
                    1,
                )

            not_filter = self._parse_filter(depth + 1)
            self._skip_whitespace()
            char = self._peek()
            if char == "(":
                raise self._error(
                    "Multiple filters found for not '!' expression",
                    start,
                    self.pos - start + 1,
                )

            elif char is None:
                raise self._unbalanced_error(start)

            elif char != ")":
                raise self._error("Expecting ')' to end complex filter expression", self.pos, 1)

            self.pos += 1
            return FilterNot(filter=not_filter)

        elif char == "(":
            raise self._error("Nested '(' without filter conditional", self.pos, 1)

        elif char == ")":
            raise self._error("No filter found", start, self.pos - start + 1)

        elif char is None:
            raise self._unbalanced_error(start)

        item_start = self.pos
        for idx in range(item_start, len(self.filter)):
            if self.filter[idx] == ")":
                parsed_filter = self._parse_item(item_start, idx)
                self.pos = idx + 1
                return parsed_filter

            elif self.filter[idx] == "(":
                raise self._error("Unescaped '(' found in filter item", idx, 1)

        raise self._unbalanced_error(start)

    def _parse_item(
        self,
        start: int,
        end: int,
    ) -> LDAPFilter:
        item = self.filter[start:end]

        equals_idx = item.find("=")
        if equals_idx == -1:
            raise self._error("Simple filter missing '=' character", start, end - start)

        elif equals_idx == 0:
            raise self._error("Simple filter value must not start with '='", start, 1)

        filter_type = item[equals_idx - 1]
        attribute_end = equals_idx
        if filter_type in [":", ">", "<", "~"]:
            attribute_end -= 1
            if attribute_end == 0 and filter_type != ":":
                raise self._error(
                    "Filter must define an attribute name before the equal symbol",
                    start,
                    end - start,
                )
        else:
            filter_type = "="

        attribute = item[:attribute_end]
        raw_value = item[equals_idx + 1 :]
        value_offset = start + equals_idx + 1

        if filter_type == ":":
            ext_attribute, for_dn, rule = self._parse_extensible_header(attribute, start)
            return FilterExtensibleMatch(
                rule=rule,
                attribute=ext_attribute,
                value=self._decode_value(raw_value, value_offset),
                dn_attributes=for_dn,
            )

        if not _ATTRIBUTE_PATTERN.match(attribute):
            raise self._error("Filter attribute is invalid", start, attribute_end)

        if filter_type == ">":
            return FilterGreaterOrEqual(attribute, self._decode_value(raw_value, value_offset))

        elif filter_type == "<":
            return FilterLessOrEqual(attribute, self._decode_value(raw_value, value_offset))

        elif filter_type == "~":
            return FilterApproxMatch(attribute, self._decode_value(raw_value, value_offset))

        elif raw_value == "*":
            return FilterPresent(attribute)

        elif "*" in raw_value:
            return self._parse_substrings(attribute, raw_value, value_offset)

        else:
            return FilterEquality(attribute, self._decode_value(raw_value, value_offset))

    def _parse_extensible_header(
        self,
        header: str,
        offset: int,
    ) -> t.Tuple[t.Optional[str], bool, t.Optional[str]]:
        attribute: t.Optional[str] = None
        rule: t.Optional[str] = None
        for_dn = False

        header_split = header.split(":")
        if header_split[0]:
            if _ATTRIBUTE_PATTERN.match(header_split[0]):
                attribute = header_split[0]
            else:
                raise self._error("Invalid extensible filter attribute", offset, len(header))

        header_split.pop(0)

        if header_split and header_split[0].lower() == "dn":
            for_dn = True
            header_split.pop(0)

        if header_split:
            if _ATTRIBUTE_PATTERN.match(header_split[0]):
                rule = header_split.pop(0)
            else:
                raise self._error("Invalid extensible filter rule", offset, len(header))

        if header_split:
            raise self._error("Extra data found in extensible filter header", offset, len(header))

        if attribute is None and rule is None:
            raise self._error(
                "Extensible filter must define a matching rule when no attribute is set",
                offset,
                len(header),
            )

        return attribute, for_dn, rule

    def _parse_substrings(
        self,
        attribute: str,
        raw_value: str,
        offset: int,
    ) -> FilterSubstrings:
        parts: t.List[t.Tuple[str, int]] = []
        part_offset = offset
        for part in raw_value.split("*"):
            parts.append((part, part_offset))
            part_offset += len(part) + 1

        initial: t.Optional[bytes] = None
        if parts[0][0]:
            initial = self._decode_value(*parts[0])

        final: t.Optional[bytes] = None
        if parts[-1][0]:
            final = self._decode_value(*parts[-1])

        # Empty segments from consecutive '*' are ignored.
        any_values = [self._decode_value(p, o) for p, o in parts[1:-1] if p]

        if initial is None and final is None and not any_values:
            raise self._error(
                "Substrings filter must contain at least one non-empty value",
                offset,
                len(raw_value),
            )

        return FilterSubstrings(attribute, initial, any_values, final)

    def _decode_value(
        self,
        value: str,
        offset: int,
    ) -> bytes:
        b_value = bytearray()
        for match in _VALUE_TOKEN_PATTERN.finditer(value):
            escaped, star, plain = match.groups()
            if escaped is not None:
                if not _HEX_PATTERN.match(escaped):
                    raise self._error(
                        f"Invalid hex characters following \\ '{escaped}', requires 2 [0-9a-fA-F]",
                        offset + match.start(),
                        len(match.group(0)),
                    )

                b_value.append(int(escaped, 16))

            elif star is not None:
                raise self._error("Unescaped '*' found in filter value", offset + match.start(), 1)

            else:
                b_value += plain.encode(self.options.string_encoding, errors="surrogateescape")

        return bytes(b_value)

    def _peek(self) -> t.Optional[str]:
        return self.filter[self.pos] if self.pos < len(self.filter) else None

    def _skip_whitespace(self) -> None:
        while self.pos < len(self.filter) and self.filter[self.pos] in _WHITESPACE:
            self.pos += 1

    def _unbalanced_error(
        self,
        start: int,
    ) -> FilterCompileError:
        return self._error(
            "Unbalanced starting '(' without a closing ')'",
            start,
            len(self.filter) - start,
        )

    def _error(
        self,
        msg: str,
        offset: int,
        length: int,
    ) -> FilterCompileError:
        return FilterCompileError(msg, filter=self.filter, offset=offset, length=length)


def _serialize_filter_value(
    value: bytes,
) -> str:
    """Serializes a filter value.

    Serializes the raw filter value bytes into a string that can be used inside
    an LDAP filter string. It will escape any control char, (, ), *, \\ as well
    as any non-ASCII chars (outside of \\x7F). While it is possible to embed
    non-ASCII chars inside a filter string it safer and more portable to ensure
    they are in the escaped form to remove any ambiguity.

    Args:
        value: The raw value to serialize.

    Returns:
        str: The serialized filter value.
    """

    def rplcr(matchobj: re.Match) -> bytes:
        return f"\\{ord(matchobj.group(0)):02x}".encode("utf-8")

    return _STRING_ESCAPE_PATTERN.sub(rplcr, value).decode("utf-8")


def compile_filter(
    filter: str,
    options: t.Optional[FilterOptions] = None,
) -> LDAPFilter:
    """Compiles an LDAP filter string.

    Converts the string provided into an LDAPFilter object based on the
    standard LDAP filter string rules in RFC 4515. A single item without the
    surrounding parentheses, ``objectClass=*``, is also accepted.

    Args:
        filter: The LDAP filter string to convert.
        options: Options used to encode the values and limit the nesting depth.

    Returns:
        LDAPFilter: The converted filter.

    Raises:
        FilterCompileError: The filter string is not valid.
    """
    return _FilterParser(filter, options or FilterOptions()).parse()


def decompile_filter(
    data: BufferType,
    options: t.Optional[FilterOptions] = None,
) -> str:
    """Decompiles a BER encoded LDAP filter.

    Args:
        data: The BER encoded Filter value.
        options: Options used to decode the filter.

    Returns:
        str: The LDAP filter string.

    Raises:
        FilterDecompileError: The data is not a valid BER encoded filter.
    """
    reader = ASN1Reader(data)
    try:
        ldap_filter = LDAPFilter.unpack(reader, options or FilterOptions())
    except FilterDecompileError:
        raise
    except (NotEnoughData, ValueError) as e:
        raise FilterDecompileError(f"Failed to unpack filter: {e}") from e

    if reader:
        raise FilterDecompileError("Extra data found after filter")

    return str(ldap_filter)


def escape_filter(
    value: str,
    string_encoding: str = "utf-8",
) -> str:
    """Escapes a value for use inside an LDAP filter string.

    Args:
        value: The raw value to escape.
        string_encoding: The encoding used to encode the value.

    Returns:
        str: The escaped value that can be embedded in a filter string.
    """
    return _serialize_filter_value(value.encode(string_encoding))


@dataclasses.dataclass
class FilterOptions:
    """Options used for Filter packing and unpacking.

    Custom options used for packing and unpacking filter objects.

    Args:
        string_encoding: The encoding that is used to encode and decode
            strings. Defaults to utf-8.
        choices: List of known filter types.
        max_depth: The maximum nesting depth of filters accepted when
            compiling or unpacking a filter.
    """

    string_encoding: str = "utf-8"
    choices: t.List[t.Type[LDAPFilter]] = dataclasses.field(
        default_factory=lambda: [
            FilterAnd,
            FilterApproxMatch,
            FilterEquality,
            FilterExtensibleMatch,
            FilterGreaterOrEqual,
            FilterLessOrEqual,
            FilterNot,
            FilterOr,
            FilterPresent,
            FilterSubstrings,
        ]
    )
    max_depth: int = 100


@dataclasses.dataclass(frozen=True)
class LDAPFilter:
    """Base class for all LDAP filters.

    This is the base class in which all LDAP filters derive and can be used to
    implement custom filters outside of the set provided in the LDAP RFC.
    Currently the following filter types are known and implemented:

        :class:`FilterAnd`
        :class:`FilterOr`
        :class:`FilterNot`
        :class:`FilterEquality`
        :class:`FilterSubstrings`
        :class:`FilterGreaterOrEqual`
        :class:`FilterLessOrEqual`
        :class:`FilterPresent`
        :class:`FilterApproxMatch`
        :class:`FilterExtensibleMatch`

    A custom implementation must inherit this class and provide a value for
    filter_id as well as implement the ``pack`` and ``unpack`` methods. The
    ``unpack`` method receives the current nesting depth which must be passed
    along when unpacking any nested filters.

    Example:
        .. code-block:: python

            @dataclasses.dataclass(frozen=True)
            class CustomFilter(LDAPFilter):
                filter_id: int = dataclasses.field(init=False, repr=False, default=1024)

                value: str

                def pack(
                    self,
                    writer: ldapwire.asn1.ASN1Writer,
                    options: FilterOptions,
                ) -> None:
                    writer.write_octet_string(
                        self.value.encode(options.string_encoding),
                        tag=ldapwire.asn1.ASN1Tag(
                            ldapwire.asn1.TagClass.CONTEXT_SPECIFIC,
                            self.filter_id,
                            False,
                        ),
                    )

                @classmethod
                def unpack(
                    cls,
                    reader: ldapwire.asn1.ASN1Reader,
                    options: FilterOptions,
                    depth: int = 0,
                ) -> CustomFilter:
                    value = reader.read_octet_string(
                        ldapwire.asn1.ASN1Tag(
                            ldapwire.asn1.TagClass.CONTEXT_SPECIFIC,
                            cls.filter_id,
                            False,
                        ),
                    ).decode(options.string_encoding)
                    return CustomFilter(value=value)

    Note:
        A custom filter must be understood by both the client and server.
    """

    # Filter ::= CHOICE {
    #      and             [0] SET SIZE (1..MAX) OF filter Filter,
    #      or              [1] SET SIZE (1..MAX) OF filter Filter,
    #      not             [2] Filter,
    #      equalityMatch   [3] AttributeValueAssertion,
    #      substrings      [4] SubstringFilter,
    #      greaterOrEqual  [5] AttributeValueAssertion,
    #      lessOrEqual     [6] AttributeValueAssertion,
    #      present         [7] AttributeDescription,
    #      approxMatch     [8] AttributeValueAssertion,
    #      extensibleMatch [9] MatchingRuleAssertion,
    #      ...  }

    filter_id: int
    "The ASN.1 choice value for this filter."

    def pack(
        self,
        writer: ASN1Writer,
        options: FilterOptions,
    ) -> None:
        """Pack the filter structure.

        Writes the filter structure into the ASN.1 writer that is then embedded
        in the :class:`SearchRequest` filter value. The tagged choice should
        also be included in the written value.

        Args:
            writer: The writer used to write ASN.1 data
            options: Options that can be used to control how the filter is
                packed.
        """
        raise NotImplementedError()  # pragma: nocover

    @classmethod
    def from_string(
        cls,
        filter: str,
        options: t.Optional[FilterOptions] = None,
    ) -> LDAPFilter:
        """Convert an LDAP filter string to a filter object.

        See :func:`compile_filter` for more details.
        """
        return compile_filter(filter, options=options)

    @classmethod
    def unpack(
        cls,
        reader: ASN1Reader,
        options: FilterOptions,
        depth: int = 0,
    ) -> LDAPFilter:
        """Unpacks the filter bytes.

        Unpacks the raw bytes into the Python object.

        Args:
            reader: The reader used to read the ASN.1 data.
            options: Options that can be used to control how the filter is
                unpacked.
            depth: The nesting depth of the filter being unpacked.

        Returns:
            LDAPFilter: An instance of the object that has been unpacked.
        """
        if depth > options.max_depth:
            raise FilterDecompileError(f"Filter nesting exceeds the maximum depth of {options.max_depth}")

        next_header = reader.peek_header()
        if next_header.tag.tag_class == TagClass.CONTEXT_SPECIFIC:
            for filter_type in options.choices:
                if filter_type.filter_id == next_header.tag.tag_number:
                    return filter_type.unpack(reader, options, depth=depth)

        raise FilterDecompileError(f"Unknown filter object {next_header.tag}, cannot unpack")


@dataclasses.dataclass(frozen=True)
class FilterAnd(LDAPFilter):
    """LDAP Filter And.

    An LDAP filter that is used to combine multiple filters together using the
    AND logic operation. All filters specified must be true for this filter to
    be true in a search operation. An AND LDAP filter string look like
    ``(&(condition=1)(condition=2)...)``

    Args:
        filters: The filters to use in the AND operation, must contain at
            least 1 filter.
    """

    filter_id: int = dataclasses.field(init=False, repr=False, default=0)

    filters: t.List[LDAPFilter]

    def __post_init__(self) -> None:
        if not self.filters:
            raise ValueError("FilterAnd requires at least 1 filter")

    def __str__(self) -> str:
        filter_strings = "".join(str(f) for f in self.filters)
        return f"(&{filter_strings})"

    def pack(
        self,
        writer: ASN1Writer,
        options: FilterOptions,
    ) -> None:
        with writer.push_set_of(
            ASN1Tag(TagClass.CONTEXT_SPECIFIC, self.filter_id, True),
        ) as w:
            for f in self.filters:
                f.pack(w, options)

    @classmethod
    def unpack(
        cls,
        reader: ASN1Reader,
        options: FilterOptions,
        depth: int = 0,
    ) -> FilterAnd:
        and_reader = reader.read_set_of(
            tag=ASN1Tag(TagClass.CONTEXT_SPECIFIC, cls.filter_id, True),
            hint="Filter.and",
        )
        return FilterAnd(filters=_unpack_filter_set(and_reader, options, depth, "and"))


@dataclasses.dataclass(frozen=True)
class FilterOr(LDAPFilter):
    """LDAP Filter Or.

    An LDAP filter that is used to combine multiple filters together using the
    OR logic operation. Only one of the filters specified must be true for this
    filter to be true in a search operation. An OR LDAP filter string looks
    like ``(|(condition=1)(condition=2)...)``

    Args:
        filters: The filters to use in the OR operation, must contain at
            least 1 filter.
    """

    filter_id: int = dataclasses.field(init=False, repr=False, default=1)

    filters: t.List[LDAPFilter]

    def __post_init__(self) -> None:
        if not self.filters:
            raise ValueError("FilterOr requires at least 1 filter")

    def __str__(self) -> str:
        filter_strings = "".join(str(f) for f in self.filters)
        return f"(|{filter_strings})"

    def pack(
        self,
        writer: ASN1Writer,
        options: FilterOptions,
    ) -> None:
        with writer.push_set_of(
            ASN1Tag(TagClass.CONTEXT_SPECIFIC, self.filter_id, True),
        ) as w:
            for f in self.filters:
                f.pack(w, options)

    @classmethod
    def unpack(
        cls,
        reader: ASN1Reader,
        options: FilterOptions,
        depth: int = 0,
    ) -> FilterOr:
        or_reader = reader.read_set_of(
            tag=ASN1Tag(TagClass.CONTEXT_SPECIFIC, cls.filter_id, True),
            hint="Filter.or",
        )
        return FilterOr(filters=_unpack_filter_set(or_reader, options, depth, "or"))


@dataclasses.dataclass(frozen=True)
class FilterNot(LDAPFilter):
    """LDAP Filter Not.

    An LDAP filter that is used to inverse the logic of the filter present. For
    example if the filter condition is false, then the NOT filter will make it
    true and vice versa. A NOT LDAP filter string looks like
    ``(!(attribute=1))``.

    Args:
        filter: The filter to inverse.
    """

    filter_id: int = dataclasses.field(init=False, repr=False, default=2)

    filter: LDAPFilter

    def __str__(self) -> str:
        return f"(!{self.filter!s})"

    def pack(
        self,
        writer: ASN1Writer,
        options: FilterOptions,
    ) -> None:
        with writer.push_sequence(
            ASN1Tag(TagClass.CONTEXT_SPECIFIC, self.filter_id, True),
        ) as w:
            self.filter.pack(w, options)

    @classmethod
    def unpack(
        cls,
        reader: ASN1Reader,
        options: FilterOptions,
        depth: int = 0,
    ) -> FilterNot:
        not_reader = reader.read_sequence(
            tag=ASN1Tag(TagClass.CONTEXT_SPECIFIC, cls.filter_id, True),
            hint="Filter.not",
        )
        if not not_reader:
            raise FilterDecompileError("Received Filter.not without an inner filter")

        not_filter = LDAPFilter.unpack(not_reader, options, depth=depth + 1)
        if not_reader:
            raise FilterDecompileError("Received Filter.not with multiple inner filters")

        return FilterNot(filter=not_filter)


@dataclasses.dataclass(frozen=True)
class FilterEquality(LDAPFilter):
    """LDAP Filter Equality.

    An LDAP filter that is used to check if the attribute specified is set to
    the value specified. An equality LDAP filter string looks like
    ``(attribute=1)``.

    Args:
        attribute: The attribute to match against.
        value: The value of the attribute to check.
    """

    filter_id: int = dataclasses.field(init=False, repr=False, default=3)

    attribute: str
    value: bytes

    def __str__(self) -> str:
        return f"({self.attribute}={_serialize_filter_value(self.value)})"

    def pack(
        self,
        writer: ASN1Writer,
        options: FilterOptions,
    ) -> None:
        _pack_filter_attribute_value_assertion(self, writer, options)

    @classmethod
    def unpack(
        cls,
        reader: ASN1Reader,
        options: FilterOptions,
        depth: int = 0,
    ) -> FilterEquality:
        attribute, value = _unpack_filter_attribute_value_assertion(
            cls,
            reader,
            options,
            "equalityMatch",
        )
        return FilterEquality(attribute=attribute, value=value)


@dataclasses.dataclass(frozen=True)
class FilterSubstrings(LDAPFilter):
    """LDAP Filter Substrings.

    An LDAP filter that is used to check substrings inside an attribute value.
    It can contain an initial and final string that must match the start and
    end of the value respectively. It can also contain any values in the middle
    of the value as denoted by the any argument. A substrings LDAP filter looks
    like ``(attribute=initial*any 1*any 2*final)``. At least one of initial,
    any, or final must be set.

    Args:
        attribute: The attribute to match against.
        initial: The value must start with this value if present.
        any: Values inside the whole value that are checked to be in the value.
        final: The value must end with this value if present.
    """

    filter_id: int = dataclasses.field(init=False, repr=False, default=4)

    attribute: str
    initial: t.Optional[bytes]
    any: t.List[bytes]
    final: t.Optional[bytes]

    def __post_init__(self) -> None:
        if self.initial is None and self.final is None and not self.any:
            raise ValueError("FilterSubstrings requires at least 1 of initial, any, or final")

    def __str__(self) -> str:
        values = [
            _serialize_filter_value(self.initial or b""),
        ]
        for a in self.any:
            values.append(_serialize_filter_value(a))

        values.append(_serialize_filter_value(self.final or b""))

        value_str = "*".join(values)
        return f"({self.attribute}={value_str})"

    def pack(
        self,
        writer: ASN1Writer,
        options: FilterOptions,
    ) -> None:
        with writer.push_sequence(
            ASN1Tag(TagClass.CONTEXT_SPECIFIC, self.filter_id, True),
        ) as w:
            w.write_octet_string(self.attribute.encode(options.string_encoding))

            with w.push_sequence_of() as value_writer:
                if self.initial is not None:
                    value_writer.write_octet_string(
                        self.initial,
                        tag=ASN1Tag(TagClass.CONTEXT_SPECIFIC, 0, False),
                    )

                for value in self.any:
                    value_writer.write_octet_string(
                        value,
                        tag=ASN1Tag(TagClass.CONTEXT_SPECIFIC, 1, False),
                    )

                if self.final is not None:
                    value_writer.write_octet_string(
                        self.final,
                        tag=ASN1Tag(TagClass.CONTEXT_SPECIFIC, 2, False),
                    )

    @classmethod
    def unpack(
        cls,
        reader: ASN1Reader,
        options: FilterOptions,
        depth: int = 0,
    ) -> FilterSubstrings:
        filter_reader = reader.read_sequence(
            tag=ASN1Tag(TagClass.CONTEXT_SPECIFIC, cls.filter_id, True),
            hint="Filter.substrings",
        )

        attribute = filter_reader.read_octet_string(
            hint="Filter.substrings.type",
        ).decode(options.string_encoding)

        substrings_reader = filter_reader.read_sequence_of(
            hint="Filter.substrings.substrings",
        )
        initial: t.Optional[bytes] = None
        any_values: t.List[bytes] = []
        final: t.Optional[bytes] = None
        while substrings_reader:
            next_header = substrings_reader.peek_header()
            tag = next_header.tag

            if tag.tag_class != TagClass.CONTEXT_SPECIFIC or tag.tag_number not in [0, 1, 2]:
                raise FilterDecompileError(f"Unknown Filter.substrings choice {tag}")

            value = substrings_reader.read_octet_string(
                header=next_header,
                hint="Filter.substrings.substrings",
            )
            if tag.tag_number == 0:
                if initial is not None:
                    raise FilterDecompileError("Received multiple initial values when unpacking Filter.substrings")
                initial = value

            elif tag.tag_number == 1:
                any_values.append(value)

            else:
                if final is not None:
                    raise FilterDecompileError("Received multiple final values when unpacking Filter.substrings")
                final = value

        if initial is None and final is None and not any_values:
            raise FilterDecompileError("Received Filter.substrings without any substring values")

        return FilterSubstrings(
            attribute=attribute,
            initial=initial,
            any=any_values,
            final=final,
        )


@dataclasses.dataclass(frozen=True)
class FilterGreaterOrEqual(LDAPFilter):
    """LDAP Filter Greater Than.

    An LDAP filter that is used to check if the value is greater than or equal
    to the value specified. A greater than or equal LDAP filter looks like
    ``(attribute>=1)``.

    Args:
        attribute: The attribute to match against.
        value: The value that must be greater or equal to the actual value.
    """

    filter_id: int = dataclasses.field(init=False, repr=False, default=5)

    attribute: str
    value: bytes

    def __str__(self) -> str:
        return f"({self.attribute}>={_serialize_filter_value(self.value)})"

    def pack(
        self,
        writer: ASN1Writer,
        options: FilterOptions,
    ) -> None:
        _pack_filter_attribute_value_assertion(self, writer, options)

    @classmethod
    def unpack(
        cls,
        reader: ASN1Reader,
        options: FilterOptions,
        depth: int = 0,
    ) -> FilterGreaterOrEqual:
        attribute, value = _unpack_filter_attribute_value_assertion(
            cls,
            reader,
            options,
            "greaterOrEqual",
        )
        return FilterGreaterOrEqual(attribute=attribute, value=value)


@dataclasses.dataclass(frozen=True)
class FilterLessOrEqual(LDAPFilter):
    """LDAP Filter Less Than.

    An LDAP filter that is used to check if the value is less than or equal
    to the value specified. A less than or equal LDAP filter looks like
    ``(attribute<=1)``.

    Args:
        attribute: The attribute to match against.
        value: The value that must be lesser or equal to the actual value.
    """

    filter_id: int = dataclasses.field(init=False, repr=False, default=6)

    attribute: str
    value: bytes

    def __str__(self) -> str:
        return f"({self.attribute}<={_serialize_filter_value(self.value)})"

    def pack(
        self,
        writer: ASN1Writer,
        options: FilterOptions,
    ) -> None:
        _pack_filter_attribute_value_assertion(self, writer, options)

    @classmethod
    def unpack(
        cls,
        reader: ASN1Reader,
        options: FilterOptions,
        depth: int = 0,
    ) -> FilterLessOrEqual:
        attribute, value = _unpack_filter_attribute_value_assertion(
            cls,
            reader,
            options,
            "lessOrEqual",
        )
        return FilterLessOrEqual(attribute=attribute, value=value)


@dataclasses.dataclass(frozen=True)
class FilterPresent(LDAPFilter):
    """LDAP Filter Present.

    An LDAP filter that is used to check if the attribute is present (has a
    value) in the entity being checked. A present LDAP filter looks like
    ``(attribute=*)``.

    Args:
        attribute: The attribute to check if present.
    """

    filter_id: int = dataclasses.field(init=False, repr=False, default=7)

    attribute: str

    def __str__(self) -> str:
        return f"({self.attribute}=*)"

    def pack(
        self,
        writer: ASN1Writer,
        options: FilterOptions,
    ) -> None:
        writer.write_octet_string(
            self.attribute.encode(options.string_encoding),
            tag=ASN1Tag(TagClass.CONTEXT_SPECIFIC, self.filter_id, False),
        )

    @classmethod
    def unpack(
        cls,
        reader: ASN1Reader,
        options: FilterOptions,
        depth: int = 0,
    ) -> FilterPresent:
        value = reader.read_octet_string(
            tag=ASN1Tag(TagClass.CONTEXT_SPECIFIC, cls.filter_id, False),
            hint="Filter.present",
        ).decode(options.string_encoding)

        return FilterPresent(attribute=value)


@dataclasses.dataclass(frozen=True)
class FilterApproxMatch(LDAPFilter):
    """LDAP Filter Approx Match.

    An LDAP filter that is used to check if the value for the attribute
    specified matches a locally-defined approximate matching algorithm. An
    approx match LDAP filter looks like ``(attribute~=condition)``.

    Args:
        attribute: The attribute to match against.
        value: The value to use as the approximate matching comparison.
    """

    filter_id: int = dataclasses.field(init=False, repr=False, default=8)

    attribute: str
    value: bytes

    def __str__(self) -> str:
        return f"({self.attribute}~={_serialize_filter_value(self.value)})"

    def pack(
        self,
        writer: ASN1Writer,
        options: FilterOptions,
    ) -> None:
        _pack_filter_attribute_value_assertion(self, writer, options)

    @classmethod
    def unpack(
        cls,
        reader: ASN1Reader,
        options: FilterOptions,
        depth: int = 0,
    ) -> FilterApproxMatch:
        attribute, value = _unpack_filter_attribute_value_assertion(
            cls,
            reader,
            options,
            "approxMatch",
        )
        return FilterApproxMatch(attribute=attribute, value=value)


@dataclasses.dataclass(frozen=True)
class FilterExtensibleMatch(LDAPFilter):
    """LDAP Filter Extensible Match.

    An LDAP filter that is used to as a more powerful way to check an attribute
    value. It can have custom rules and logic that is known to the server for
    the check. An extensible match LDAP filter looks like
    ``(attribute:=John)``, ``(attribute:dn:=Jordan)``, or
    ``(attribute:1.2.3:=John)``. If no rule is specified then attribute must be
    set.

    Args:
        rule: The rule name or OID string that should be used for the match or
            None if attribute is set to follow the normal rules.
        attribute: The attribute to match against if this should only be
            checked against a single value. Can be None to search all
            attributes if rule is set.
        value: The value to compare.
        dn_attributes: Use the attributes that compose the entries DN in the
            check.
    """

    filter_id: int = dataclasses.field(init=False, repr=False, default=9)

    rule: t.Optional[str]
    attribute: t.Optional[str]
    value: bytes
    dn_attributes: bool = False

    def __post_init__(self) -> None:
        if self.rule is None and self.attribute is None:
            raise ValueError("FilterExtensibleMatch requires a rule when no attribute is set")

    def __str__(self) -> str:
        headers = [self.attribute or ""]

        if self.dn_attributes:
            headers.append("dn")

        if self.rule is not None:
            headers.append(self.rule)

        header_str = ":".join(headers)
        return f"({header_str}:={_serialize_filter_value(self.value)})"

    def pack(
        self,
        writer: ASN1Writer,
        options: FilterOptions,
    ) -> None:
        with writer.push_sequence(
            ASN1Tag(TagClass.CONTEXT_SPECIFIC, self.filter_id, True),
        ) as w:
            if self.rule is not None:
                w.write_octet_string(
                    self.rule.encode(options.string_encoding),
                    tag=ASN1Tag(TagClass.CONTEXT_SPECIFIC, 1, False),
                )

            if self.attribute is not None:
                w.write_octet_string(
                    self.attribute.encode(options.string_encoding),
                    tag=ASN1Tag(TagClass.CONTEXT_SPECIFIC, 2, False),
                )

            w.write_octet_string(
                self.value,
                tag=ASN1Tag(TagClass.CONTEXT_SPECIFIC, 3, False),
            )

            if self.dn_attributes:
                w.write_boolean(
                    self.dn_attributes,
                    tag=ASN1Tag(TagClass.CONTEXT_SPECIFIC, 4, False),
                )

    @classmethod
    def unpack(
        cls,
        reader: ASN1Reader,
        options: FilterOptions,
        depth: int = 0,
    ) -> FilterExtensibleMatch:
        filter_reader = reader.read_sequence(
            tag=ASN1Tag(TagClass.CONTEXT_SPECIFIC, cls.filter_id, True),
            hint="Filter.extensibleMatch",
        )

        rule: t.Optional[str] = None
        attribute: t.Optional[str] = None
        value: t.Optional[bytes] = None
        dn_attributes = False
        while filter_reader:
            next_header = filter_reader.peek_header()

            if next_header.tag.tag_class == TagClass.CONTEXT_SPECIFIC:
                if next_header.tag.tag_number == 1:
                    rule = filter_reader.read_octet_string(
                        header=next_header,
                        hint="Filter.extensibleMatch.matchingRule",
                    ).decode(options.string_encoding)
                    continue

                elif next_header.tag.tag_number == 2:
                    attribute = filter_reader.read_octet_string(
                        header=next_header,
                        hint="Filter.extensibleMatch.type",
                    ).decode(options.string_encoding)
                    continue

                elif next_header.tag.tag_number == 3:
                    value = filter_reader.read_octet_string(
                        header=next_header,
                        hint="Filter.extensibleMatch.matchValue",
                    )
                    continue

                elif next_header.tag.tag_number == 4:
                    dn_attributes = filter_reader.read_boolean(
                        header=next_header,
                        hint="Filter.extensibleMatch.dnAttributes",
                    )
                    continue

            raise FilterDecompileError(f"Unknown Filter.extensibleMatch field {next_header.tag}")

        if value is None:
            raise FilterDecompileError("Received Filter.extensibleMatch without a matchValue")

        if rule is None and attribute is None:
            raise FilterDecompileError("Received Filter.extensibleMatch without a matchingRule or type")

        return FilterExtensibleMatch(
            rule=rule,
            attribute=attribute,
            value=value,
            dn_attributes=dn_attributes,
        )


AttributeValueAssertionFilter = t.Union[
    FilterEquality,
    FilterGreaterOrEqual,
    FilterLessOrEqual,
    FilterApproxMatch,
]


def _pack_filter_attribute_value_assertion(
    filter: AttributeValueAssertionFilter,
    writer: ASN1Writer,
    options: FilterOptions,
) -> None:
    with writer.push_sequence(
        ASN1Tag(TagClass.CONTEXT_SPECIFIC, filter.filter_id, True),
    ) as w:
        w.write_octet_string(filter.attribute.encode(options.string_encoding))
        w.write_octet_string(filter.value)


def _unpack_filter_attribute_value_assertion(
    cls: t.Type[LDAPFilter],
    reader: ASN1Reader,
    options: FilterOptions,
    name: str,
) -> t.Tuple[str, bytes]:
    filter_reader = reader.read_sequence(
        tag=ASN1Tag(TagClass.CONTEXT_SPECIFIC, cls.filter_id, True),
        hint=f"Filter.{name}",
    )

    attribute = filter_reader.read_octet_string(
        hint=f"Filter.{name}.attributeDesc",
    ).decode(options.string_encoding)
    value = filter_reader.read_octet_string(
        hint=f"Filter.{name}.assertionValue",
    )
    if filter_reader:
        raise FilterDecompileError(f"Received extra data in Filter.{name}")

    return attribute, value


def _unpack_filter_set(
    reader: ASN1Reader,
    options: FilterOptions,
    depth: int,
    name: str,
) -> t.List[LDAPFilter]:
    filters = []
    while reader:
        filters.append(LDAPFilter.unpack(reader, options, depth=depth + 1))

    if not filters:
        raise FilterDecompileError(f"Received empty Filter.{name} set")

    return filters
