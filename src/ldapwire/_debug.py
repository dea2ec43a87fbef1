# Copyright: (c) 2023, Jordan Borean (@jborean93) <jborean93@gmail.com>
# MIT License (see LICENSE or https://opensource.org/licenses/MIT)

import logging
import os
import typing as t

from ._result import LDAPError, LDAPResultCode
from .asn1 import (
    ASN1Header,
    ASN1Reader,
    BufferType,
    NotEnoughData,
    TagClass,
    TypeTagNumber,
    unpack_asn1_integer_value,
)

log = logging.getLogger(__name__)


def dump_asn1(
    data: BufferType,
) -> str:
    """Formats the ASN.1 BER data as an indented tree.

    Each TLV is rendered on its own line with its tag class, tag number, form,
    and length. The contents of constructed values are rendered below it with
    a further 2 spaces of indentation. Primitive universal values are decoded
    to their Python value, other primitive values are shown as bytes.

    Args:
        data: The BER encoded data to format.

    Returns:
        str: The formatted tree.

    Raises:
        NotEnoughData: The data is truncated.
        ValueError: The data is not valid BER.
    """
    lines: t.List[str] = []
    _dump_values(ASN1Reader(data), 0, lines)
    return "\n".join(lines)


def debug_binary_file(
    path: t.Union[str, os.PathLike],
) -> str:
    """Dumps the LDAP packet stored in a file.

    The formatted packet is written to the module logger at the debug level
    and returned.

    Args:
        path: The path to the file containing the raw packet bytes.

    Returns:
        str: The formatted packet from :func:`dump_asn1`.

    Raises:
        LDAPError: The file could not be read or does not contain valid BER
            data, the result code is ``ERROR_DEBUGGING``.
    """
    try:
        with open(path, mode="rb") as fd:
            data = fd.read()

        dump = dump_asn1(data)

    except (OSError, NotEnoughData, ValueError) as e:
        raise LDAPError(f"Failed to debug {os.fspath(path)}: {e}", result_code=LDAPResultCode.ERROR_DEBUGGING) from e

    log.debug("Packet from %s\n%s", os.fspath(path), dump)
    return dump


def _dump_values(
    reader: ASN1Reader,
    indent: int,
    lines: t.List[str],
) -> None:
    # Nesting depth is bounded by the input size, not the recursion limit.
    stack: t.List[t.Tuple[ASN1Reader, int]] = [(reader, indent)]
    while stack:
        current, current_indent = stack[-1]
        if not current:
            stack.pop()
            continue

        header = current.peek_header()
        value_reader = current.read_tagged(header=header)

        line = f"{' ' * current_indent}{_tag_str(header)} Len={header.length}"
        if header.tag.is_constructed:
            lines.append(line)
            stack.append((value_reader, current_indent + 2))

        else:
            value = _value_str(header, value_reader.get_remaining_data())
            lines.append(f"{line}: {value}" if value else line)


def _tag_str(
    header: ASN1Header,
) -> str:
    tag = header.tag
    form = "Constructed" if tag.is_constructed else "Primitive"
    if tag.tag_class == TagClass.UNIVERSAL:
        name = TypeTagNumber(tag.tag_number).name
        return f"Universal {name} ({int(tag.tag_number)}) {form}"

    class_name = {
        TagClass.APPLICATION: "Application",
        TagClass.CONTEXT_SPECIFIC: "Context",
        TagClass.PRIVATE: "Private",
    }[tag.tag_class]
    return f"{class_name} {int(tag.tag_number)} {form}"


def _value_str(
    header: ASN1Header,
    raw: memoryview,
) -> str:
    tag = header.tag
    if tag.tag_class == TagClass.UNIVERSAL:
        if tag.tag_number == TypeTagNumber.BOOLEAN and len(raw) == 1:
            return str(raw[0] != 0)

        elif tag.tag_number in [TypeTagNumber.INTEGER, TypeTagNumber.ENUMERATED] and len(raw):
            return str(unpack_asn1_integer_value(raw))

        elif tag.tag_number == TypeTagNumber.NULL:
            return ""

    return repr(raw.tobytes())
