# Copyright: (c) 2023, Jordan Borean (@jborean93) <jborean93@gmail.com>
# MIT License (see LICENSE or https://opensource.org/licenses/MIT)

"""BER tag-length-value primitive.

A small streaming BER encoder and decoder covering the subset used by LDAP
as restricted by `RFC 4511 5.1. Protocol Encoding`_. Only the definite length
form is produced or accepted.

.. _RFC 4511 5.1. Protocol Encoding:
    https://www.rfc-editor.org/rfc/rfc4511#section-5.1
"""

from __future__ import annotations

import enum
import typing as t

BufferType = t.Union[bytes, bytearray, memoryview]
EnumType = t.TypeVar("EnumType", bound=enum.IntEnum)


class NotEnoughData(Exception):
    """The buffer does not contain the full TLV yet.

    Raised when reading a value whose header, or declared length, extends
    past the end of the available data. A streaming caller should buffer the
    remaining data and retry once more has been received.
    """


class TagClass(enum.IntEnum):
    UNIVERSAL = 0
    APPLICATION = 1
    CONTEXT_SPECIFIC = 2
    PRIVATE = 3


class TypeTagNumber(enum.IntEnum):
    END_OF_CONTENT = 0
    BOOLEAN = 1
    INTEGER = 2
    BIT_STRING = 3
    OCTET_STRING = 4
    NULL = 5
    OBJECT_IDENTIFIER = 6
    OBJECT_DESCRIPTOR = 7
    EXTERNAL = 8
    REAL = 9
    ENUMERATED = 10
    EMBEDDED_PDV = 11
    UTF8_STRING = 12
    RELATIVE_OID = 13
    TIME = 14
    RESERVED = 15
    SEQUENCE = 16
    SEQUENCE_OF = 16
    SET = 17
    SET_OF = 17
    NUMERIC_STRING = 18
    PRINTABLE_STRING = 19
    T61_STRING = 20
    VIDEOTEX_STRING = 21
    IA5_STRING = 22
    UTC_TIME = 23
    GENERALIZED_TIME = 24
    GRAPHIC_STRING = 25
    VISIBLE_STRING = 26
    GENERAL_STRING = 27
    UNIVERSAL_STRING = 28
    CHARACTER_STRING = 29
    BMP_STRING = 30
    DATE = 31
    TIME_OF_DAY = 32
    DATE_TIME = 33
    DURATION = 34
    OID_IRL = 35
    RELATIVE_OID_IRL = 36

    @classmethod
    def _missing_(cls, value: object) -> t.Any:
        if not isinstance(value, int):
            return None

        new_member = int.__new__(cls, value)
        new_member._name_ = f"UNKNOWN {value}"
        new_member._value_ = value

        return cls._value2member_map_.setdefault(value, new_member)


class ASN1Tag(t.NamedTuple):
    tag_class: TagClass
    tag_number: t.Union[int, TypeTagNumber]
    is_constructed: bool

    @classmethod
    def universal_tag(
        cls,
        number: TypeTagNumber,
        is_constructed: bool = False,
    ) -> ASN1Tag:
        return ASN1Tag(
            tag_class=TagClass.UNIVERSAL,
            tag_number=number,
            is_constructed=is_constructed,
        )


class ASN1Header(t.NamedTuple):
    """The identifier and length octets of a TLV.

    Attributes:
        tag: The decoded tag.
        tag_length: The number of octets used by the identifier and length
            octets combined.
        length: The length of the contents octets.
    """

    tag: ASN1Tag
    tag_length: int
    length: int


def read_asn1_header(
    data: BufferType,
) -> ASN1Header:
    """Reads the ASN.1 Tag and Length octets.

    Args:
        data: The raw bytes to read.

    Returns:
        ASN1Header: The tag and length information.

    Raises:
        NotEnoughData: The identifier or length octets are incomplete.
        ValueError: The length uses the indefinite form.
    """
    view = memoryview(data)
    if not view:
        raise NotEnoughData("No data available to read ASN.1 header")

    octet1 = view[0]
    tag_class = TagClass((octet1 & 0b11000000) >> 6)
    constructed = bool(octet1 & 0b00100000)
    tag_number: t.Union[int, TypeTagNumber] = octet1 & 0b00011111

    offset = 1
    if tag_number == 31:
        # High tag number form, base 128 with the MSB set on all but the last
        # octet.
        tag_number = 0
        while True:
            if offset >= len(view):
                raise NotEnoughData("Not enough data to read ASN.1 tag number")

            octet = view[offset]
            offset += 1
            tag_number = (tag_number << 7) | (octet & 0b01111111)
            if not octet & 0b10000000:
                break

    if tag_class == TagClass.UNIVERSAL:
        tag_number = TypeTagNumber(tag_number)

    if offset >= len(view):
        raise NotEnoughData("Not enough data to read ASN.1 length")

    length = view[offset]
    offset += 1

    if length == 0b10000000:
        raise ValueError("Received BER indefinite length encoding which is not allowed by LDAP")

    elif length & 0b10000000:
        # The 7 lower bits contain the number of octets that encode the
        # actual length.
        length_octets = length & 0b01111111
        if offset + length_octets > len(view):
            raise NotEnoughData("Not enough data to read ASN.1 length octets")

        length = int.from_bytes(view[offset : offset + length_octets], byteorder="big")
        offset += length_octets

    return ASN1Header(
        tag=ASN1Tag(
            tag_class=tag_class,
            tag_number=tag_number,
            is_constructed=constructed,
        ),
        tag_length=offset,
        length=length,
    )


def pack_asn1(
    tag_class: TagClass,
    constructed: bool,
    tag_number: t.Union[TypeTagNumber, int],
    data: BufferType,
) -> bytes:
    """Pack the ASN.1 value into the ASN.1 bytes.

    Args:
        tag_class: The tag class of the data.
        constructed: Whether the data is constructed (True), i.e. contains 0,
            1, or more element encodings, or is primitive (False).
        tag_number: The type tag number if tag_class is universal else the
            explicit tag number of the TLV.
        data: The encoded contents to pack into the ASN.1 TLV.

    Returns:
        bytes: The ASN.1 value as raw bytes.
    """
    b_asn1_data = bytearray()

    # ASN.1 Identifier octet is
    #
    # |             Octet 1             |  |              Octet 2              |
    # | 8 | 7 |  6  | 5 | 4 | 3 | 2 | 1 |  |   8   | 7 | 6 | 5 | 4 | 3 | 2 | 1 |
    # | Class | P/C | Tag Number (0-30) |  | More  | Tag number                |
    if tag_class < 0 or tag_class > 3:
        raise ValueError("tag_class must be between 0 and 3")

    identifier_octets = tag_class << 6
    identifier_octets |= (1 if constructed else 0) << 5

    if tag_number < 31:
        b_asn1_data.append(identifier_octets | tag_number)
    else:
        b_asn1_data.append(identifier_octets | 31)

        num_octets = bytearray()
        num = int(tag_number)
        while num:
            octet_value = num & 0b01111111
            if num_octets:
                octet_value |= 0b10000000
            num_octets.append(octet_value)
            num >>= 7

        num_octets.reverse()
        b_asn1_data.extend(num_octets)

    # Short form for lengths < 128, otherwise the first octet has the MSB set
    # and contains the number of big endian octets that follow.
    length = len(data)
    if length < 128:
        b_asn1_data.append(length)
    else:
        length_octets = length.to_bytes((length.bit_length() + 7) // 8, byteorder="big")
        b_asn1_data.append(len(length_octets) | 0b10000000)
        b_asn1_data.extend(length_octets)

    b_asn1_data.extend(data)
    return bytes(b_asn1_data)


def pack_asn1_integer_value(
    value: int,
) -> bytes:
    """Encodes the contents octets of an INTEGER as two's complement."""
    # The +1 on negative numbers makes -128 fit in 1 octet rather than 2.
    length = ((value + (value < 0)).bit_length() // 8) + 1
    return value.to_bytes(length, byteorder="big", signed=True)


def unpack_asn1_integer_value(
    data: BufferType,
) -> int:
    """Decodes the contents octets of an INTEGER."""
    if not len(data):
        raise ValueError("Received INTEGER with no contents octets")

    return int.from_bytes(data, byteorder="big", signed=True)


class ASN1Writer:
    """Writes ASN.1 BER values.

    Values are appended to an internal buffer in the order they are written.
    Constructed values are created through the ``push_*`` methods which return
    a child writer to be used as a context manager. The child contents are
    packed into this writer when the context is exited.

    Example:
        .. code-block:: python

            writer = ASN1Writer()
            with writer.push_sequence() as seq:
                seq.write_integer(1)
                seq.write_octet_string(b"value")

            data = writer.get_data()
    """

    def __init__(self) -> None:
        self._data = bytearray()

    def get_data(self) -> bytes:
        return bytes(self._data)

    def push_sequence(
        self,
        tag: t.Optional[ASN1Tag] = None,
    ) -> ASN1Sequence:
        return ASN1Sequence(self, tag or ASN1Tag.universal_tag(TypeTagNumber.SEQUENCE, True))

    def push_sequence_of(
        self,
        tag: t.Optional[ASN1Tag] = None,
    ) -> ASN1Sequence:
        return ASN1Sequence(self, tag or ASN1Tag.universal_tag(TypeTagNumber.SEQUENCE_OF, True))

    def push_set(
        self,
        tag: t.Optional[ASN1Tag] = None,
    ) -> ASN1Sequence:
        return ASN1Sequence(self, tag or ASN1Tag.universal_tag(TypeTagNumber.SET, True))

    def push_set_of(
        self,
        tag: t.Optional[ASN1Tag] = None,
    ) -> ASN1Sequence:
        return ASN1Sequence(self, tag or ASN1Tag.universal_tag(TypeTagNumber.SET_OF, True))

    def write_boolean(
        self,
        value: bool,
        tag: t.Optional[ASN1Tag] = None,
    ) -> None:
        # RFC 4511 requires TRUE to be encoded as 0xFF.
        self._write(b"\xFF" if value else b"\x00", tag or ASN1Tag.universal_tag(TypeTagNumber.BOOLEAN))

    def write_enumerated(
        self,
        value: int,
        tag: t.Optional[ASN1Tag] = None,
    ) -> None:
        self._write(
            pack_asn1_integer_value(int(value)),
            tag or ASN1Tag.universal_tag(TypeTagNumber.ENUMERATED),
        )

    def write_integer(
        self,
        value: int,
        tag: t.Optional[ASN1Tag] = None,
    ) -> None:
        self._write(
            pack_asn1_integer_value(int(value)),
            tag or ASN1Tag.universal_tag(TypeTagNumber.INTEGER),
        )

    def write_null(
        self,
        tag: t.Optional[ASN1Tag] = None,
    ) -> None:
        self._write(b"", tag or ASN1Tag.universal_tag(TypeTagNumber.NULL))

    def write_octet_string(
        self,
        value: BufferType,
        tag: t.Optional[ASN1Tag] = None,
    ) -> None:
        self._write(value, tag or ASN1Tag.universal_tag(TypeTagNumber.OCTET_STRING))

    def write_raw(
        self,
        data: BufferType,
    ) -> None:
        """Writes an already encoded TLV as is."""
        self._data.extend(data)

    def _write(
        self,
        data: BufferType,
        tag: ASN1Tag,
    ) -> None:
        self._data.extend(pack_asn1(tag.tag_class, tag.is_constructed, tag.tag_number, data))


class ASN1Sequence(ASN1Writer):
    """A child writer for a constructed value."""

    def __init__(
        self,
        parent: ASN1Writer,
        tag: ASN1Tag,
    ) -> None:
        super().__init__()
        self._parent = parent
        self._tag = tag

    def __enter__(self) -> ASN1Sequence:
        return self

    def __exit__(self, exc_type: t.Any, *args: t.Any, **kwargs: t.Any) -> None:
        if exc_type is None:
            self._parent._write(self._data, self._tag)


class ASN1Reader:
    """Reads ASN.1 BER values.

    A reader over a buffer of consecutive TLVs. The reader is truthy while
    there is still data to read. Reading a constructed value returns a new
    reader scoped to the contents of that value.

    Args:
        data: The data to read.
    """

    def __init__(
        self,
        data: BufferType,
    ) -> None:
        self._view = memoryview(data)
        self._offset = 0

    def __bool__(self) -> bool:
        return self._offset < len(self._view)

    def get_remaining_data(self) -> memoryview:
        return self._view[self._offset :]

    def peek_header(self) -> ASN1Header:
        return read_asn1_header(self._view[self._offset :])

    def skip_value(
        self,
        header: t.Optional[ASN1Header] = None,
    ) -> None:
        self._read(header=header)

    def read_tagged(
        self,
        tag: t.Optional[ASN1Tag] = None,
        header: t.Optional[ASN1Header] = None,
        hint: t.Optional[str] = None,
    ) -> ASN1Reader:
        """Reads any value and returns a reader over its contents octets."""
        return ASN1Reader(self._read(tag=tag, header=header, hint=hint))

    def read_boolean(
        self,
        tag: t.Optional[ASN1Tag] = None,
        header: t.Optional[ASN1Header] = None,
        hint: t.Optional[str] = None,
    ) -> bool:
        raw = self._read(
            tag=tag,
            header=header,
            default=ASN1Tag.universal_tag(TypeTagNumber.BOOLEAN),
            hint=hint,
        )
        if len(raw) != 1:
            raise ValueError(f"Expecting BOOLEAN{_hint_str(hint)} to have 1 octet but got {len(raw)}")

        return raw[0] != 0

    def read_enumerated(
        self,
        enum_type: t.Type[EnumType],
        tag: t.Optional[ASN1Tag] = None,
        header: t.Optional[ASN1Header] = None,
        hint: t.Optional[str] = None,
    ) -> EnumType:
        raw = self._read(
            tag=tag,
            header=header,
            default=ASN1Tag.universal_tag(TypeTagNumber.ENUMERATED),
            hint=hint,
        )
        return enum_type(unpack_asn1_integer_value(raw))

    def read_integer(
        self,
        tag: t.Optional[ASN1Tag] = None,
        header: t.Optional[ASN1Header] = None,
        hint: t.Optional[str] = None,
    ) -> int:
        raw = self._read(
            tag=tag,
            header=header,
            default=ASN1Tag.universal_tag(TypeTagNumber.INTEGER),
            hint=hint,
        )
        return unpack_asn1_integer_value(raw)

    def read_null(
        self,
        tag: t.Optional[ASN1Tag] = None,
        header: t.Optional[ASN1Header] = None,
        hint: t.Optional[str] = None,
    ) -> None:
        raw = self._read(
            tag=tag,
            header=header,
            default=ASN1Tag.universal_tag(TypeTagNumber.NULL),
            hint=hint,
        )
        if len(raw):
            raise ValueError(f"Expecting NULL{_hint_str(hint)} to have no contents but got {len(raw)} octets")

    def read_octet_string(
        self,
        tag: t.Optional[ASN1Tag] = None,
        header: t.Optional[ASN1Header] = None,
        hint: t.Optional[str] = None,
    ) -> bytes:
        return self._read(
            tag=tag,
            header=header,
            default=ASN1Tag.universal_tag(TypeTagNumber.OCTET_STRING),
            hint=hint,
        ).tobytes()

    def read_sequence(
        self,
        tag: t.Optional[ASN1Tag] = None,
        header: t.Optional[ASN1Header] = None,
        hint: t.Optional[str] = None,
    ) -> ASN1Reader:
        return ASN1Reader(
            self._read(
                tag=tag,
                header=header,
                default=ASN1Tag.universal_tag(TypeTagNumber.SEQUENCE, True),
                hint=hint,
            )
        )

    def read_sequence_of(
        self,
        tag: t.Optional[ASN1Tag] = None,
        header: t.Optional[ASN1Header] = None,
        hint: t.Optional[str] = None,
    ) -> ASN1Reader:
        return self.read_sequence(tag=tag, header=header, hint=hint)

    def read_set(
        self,
        tag: t.Optional[ASN1Tag] = None,
        header: t.Optional[ASN1Header] = None,
        hint: t.Optional[str] = None,
    ) -> ASN1Reader:
        return ASN1Reader(
            self._read(
                tag=tag,
                header=header,
                default=ASN1Tag.universal_tag(TypeTagNumber.SET, True),
                hint=hint,
            )
        )

    def read_set_of(
        self,
        tag: t.Optional[ASN1Tag] = None,
        header: t.Optional[ASN1Header] = None,
        hint: t.Optional[str] = None,
    ) -> ASN1Reader:
        return self.read_set(tag=tag, header=header, hint=hint)

    def _read(
        self,
        tag: t.Optional[ASN1Tag] = None,
        header: t.Optional[ASN1Header] = None,
        hint: t.Optional[str] = None,
        default: t.Optional[ASN1Tag] = None,
    ) -> memoryview:
        # A header supplied by the caller was already matched against the
        # expected choice so only an explicit tag is checked.
        if header is None:
            header = self.peek_header()
            tag = tag or default

        if tag is not None and header.tag != tag:
            raise ValueError(f"Expected tag {tag}{_hint_str(hint)} but got {header.tag}")

        start = self._offset + header.tag_length
        end = start + header.length
        if end > len(self._view):
            raise NotEnoughData(
                f"Not enough data{_hint_str(hint)}: expecting {header.length} but got {len(self._view) - start}"
            )

        self._offset = end
        return self._view[start:end]


def _hint_str(hint: t.Optional[str]) -> str:
    return f" for {hint}" if hint else ""
