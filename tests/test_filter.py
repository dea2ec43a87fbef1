# Copyright: (c) 2023, Jordan Borean (@jborean93) <jborean93@gmail.com>
# MIT License (see LICENSE or https://opensource.org/licenses/MIT)

from __future__ import annotations

import dataclasses
import re

import pytest

import ldapwire._filter as f
from ldapwire import LDAPError, LDAPResultCode
from ldapwire.asn1 import ASN1Reader, ASN1Tag, ASN1Writer, TagClass


@dataclasses.dataclass(frozen=True)
class CustomFilter(f.LDAPFilter):
    filter_id: int = dataclasses.field(init=False, repr=False, default=1024)

    value: str

    def __str__(self) -> str:
        return f"(custom={self.value})"

    def pack(
        self,
        writer: ASN1Writer,
        options: f.FilterOptions,
    ) -> None:
        writer.write_octet_string(
            self.value.encode(options.string_encoding),
            tag=ASN1Tag(TagClass.CONTEXT_SPECIFIC, self.filter_id, False),
        )

    @classmethod
    def unpack(
        cls,
        reader: ASN1Reader,
        options: f.FilterOptions,
        depth: int = 0,
    ) -> CustomFilter:
        value = reader.read_octet_string(
            tag=ASN1Tag(TagClass.CONTEXT_SPECIFIC, cls.filter_id, False),
        ).decode(options.string_encoding)
        return CustomFilter(value=value)


def pack_filter(filter: f.LDAPFilter) -> bytes:
    writer = ASN1Writer()
    filter.pack(writer, f.FilterOptions())
    return writer.get_data()


def unpack_filter(data: bytes) -> f.LDAPFilter:
    reader = ASN1Reader(data)
    return f.LDAPFilter.unpack(reader, f.FilterOptions())


class TestFilterFromStringGeneric:
    def test_fail_extra_data(self) -> None:
        ldap_filter = "(objectClass=*)foo=bar"
        expected = "Extra data found at filter end"

        with pytest.raises(f.FilterCompileError, match=re.escape(expected)) as exc:
            f.LDAPFilter.from_string(ldap_filter)

        assert exc.value.filter == ldap_filter
        assert exc.value.offset == 15
        assert exc.value.length == 7

    def test_fail_unbalanced_closing_paren(self) -> None:
        ldap_filter = ")"
        expected = "Unbalanced closing ')' without a starting '('"

        with pytest.raises(f.FilterCompileError, match=re.escape(expected)) as exc:
            f.LDAPFilter.from_string(ldap_filter)

        assert exc.value.offset == 0
        assert exc.value.length == 1

    def test_fail_filter_nested_complex_without_conditional(self) -> None:
        ldap_filter = "((objectClass=*))"
        expected = "Nested '(' without filter conditional"

        with pytest.raises(f.FilterCompileError, match=re.escape(expected)) as exc:
            f.LDAPFilter.from_string(ldap_filter)

        assert exc.value.offset == 1
        assert exc.value.length == 1

    def test_fail_unbalance_no_closing_simple(self) -> None:
        ldap_filter = "(objectClass=*"
        expected = "Unbalanced starting '(' without a closing ')'"

        with pytest.raises(f.FilterCompileError, match=re.escape(expected)) as exc:
            f.LDAPFilter.from_string(ldap_filter)

        assert exc.value.offset == 0
        assert exc.value.length == 14

    def test_fail_unbalanced_complex(self) -> None:
        ldap_filter = "(&(a=b)"
        expected = "Unbalanced starting '(' without a closing ')'"

        with pytest.raises(f.FilterCompileError, match=re.escape(expected)) as exc:
            f.LDAPFilter.from_string(ldap_filter)

        assert exc.value.offset == 0
        assert exc.value.length == 7

    @pytest.mark.parametrize("ldap_filter", ["", "   "])
    def test_fail_empty(self, ldap_filter: str) -> None:
        with pytest.raises(f.FilterCompileError, match="No filter found"):
            f.LDAPFilter.from_string(ldap_filter)

    def test_fail_no_filter(self) -> None:
        ldap_filter = "()"
        expected = "No filter found"

        with pytest.raises(f.FilterCompileError, match=re.escape(expected)) as exc:
            f.LDAPFilter.from_string(ldap_filter)

        assert exc.value.offset == 0
        assert exc.value.length == 2

    def test_fail_complex_no_value(self) -> None:
        ldap_filter = "(&)"
        expected = "No filter value found after conditional"

        with pytest.raises(f.FilterCompileError, match=re.escape(expected)) as exc:
            f.LDAPFilter.from_string(ldap_filter)

        assert exc.value.offset == 0
        assert exc.value.length == 3

    def test_fail_complex_without_nested_paren(self) -> None:
        ldap_filter = "(&(foo=bar)hello=world)"
        expected = "Expecting '(' to start after qualifier in complex filter expression"

        with pytest.raises(f.FilterCompileError, match=re.escape(expected)) as exc:
            f.LDAPFilter.from_string(ldap_filter)

        assert exc.value.offset == 11
        assert exc.value.length == 1

    def test_error_is_ldap_error(self) -> None:
        with pytest.raises(LDAPError) as exc:
            f.compile_filter("(cn=a")

        assert exc.value.result_code == LDAPResultCode.ERROR_FILTER_COMPILE
        assert isinstance(exc.value, ValueError)
        assert str(exc.value).startswith('LDAP Result Code 201 "Filter Compile Error": ')

    @pytest.mark.parametrize(
        "attribute",
        [
            "objectClass",
            "sAMAccountName",
            "sAMAccountName;option",
            "objectClass;option1;option2;-option3",
            "Test-attr",
            "test-",
            "test0",
            "0",
            "0;option1;-xoption2",
            "1.0.1",
            "3.2.454.23436.1",
        ],
    )
    def test_attribute_parsing(self, attribute: str) -> None:
        ldap_filter = f"{attribute}=*"
        actual = f.LDAPFilter.from_string(ldap_filter)

        assert isinstance(actual, f.FilterPresent)
        assert actual.attribute == attribute

    @pytest.mark.parametrize(
        "attribute",
        [
            "1attribute",
            "attribute_test",
            "1.02.2320",
            "attribute;option;",
        ],
    )
    def test_fail_invalid_attribute(self, attribute: str) -> None:
        ldap_filter = f"{attribute}=*"
        expected = "Filter attribute is invalid"

        with pytest.raises(f.FilterCompileError, match=re.escape(expected)) as exc:
            f.LDAPFilter.from_string(ldap_filter)

        assert exc.value.filter == ldap_filter
        assert exc.value.offset == 0
        assert exc.value.length == len(attribute)

    def test_fail_simple_filter_no_attribute(self) -> None:
        ldap_filter = "=foo"
        expected = "Simple filter value must not start with '='"

        with pytest.raises(f.FilterCompileError, match=re.escape(expected)) as exc:
            f.LDAPFilter.from_string(ldap_filter)

        assert exc.value.offset == 0
        assert exc.value.length == 1

    def test_fail_simple_filter_no_equals(self) -> None:
        ldap_filter = "foo"
        expected = "Simple filter missing '=' character"

        with pytest.raises(f.FilterCompileError, match=re.escape(expected)) as exc:
            f.LDAPFilter.from_string(ldap_filter)

        assert exc.value.offset == 0
        assert exc.value.length == 3

    def test_fail_operator_without_attribute(self) -> None:
        ldap_filter = "(>=1)"
        expected = "Filter must define an attribute name before the equal symbol"

        with pytest.raises(f.FilterCompileError, match=re.escape(expected)):
            f.LDAPFilter.from_string(ldap_filter)

    def test_empty_value(self) -> None:
        actual = f.LDAPFilter.from_string("foo=")
        assert actual == f.FilterEquality("foo", b"")
        assert str(actual) == "(foo=)"

    @pytest.mark.parametrize(
        "value_str, value, filter_str",
        [
            ("simple_123", b"simple_123", "simple_123"),
            ("café", b"caf\xC3\xA9", r"caf\c3\a9"),
            ("test with space", b"test with space", "test with space"),
            (r"null \00", b"null \x00", r"null \00"),
            (r"open paren \28", b"open paren (", r"open paren \28"),
            (r"close paren \29", b"close paren )", r"close paren \29"),
            (r"asterisk \2a", b"asterisk *", r"asterisk \2a"),
            (r"backslash \5C", b"backslash \\", r"backslash \5c"),
            (r"any escaped \20", b"any escaped  ", "any escaped  "),
            ("happy face ☺", b"happy face \xE2\x98\xBA", r"happy face \e2\98\ba"),
            ("embedded bytes \uDCFFtest\uDCF1", b"embedded bytes \xFFtest\xF1", r"embedded bytes \fftest\f1"),
            ("control char\n\v\ttest", b"control char\n\x0B\ttest", r"control char\0a\0b\09test"),
        ],
    )
    def test_parse_value(
        self,
        value_str: str,
        value: bytes,
        filter_str: str,
    ) -> None:
        actual = f.LDAPFilter.from_string(f"foo={value_str}")
        assert isinstance(actual, f.FilterEquality)
        assert actual.attribute == "foo"
        assert actual.value == value

        expected_filter_str = f"(foo={filter_str})"
        assert str(actual) == expected_filter_str

    @pytest.mark.parametrize(
        "value, err_msg",
        [
            ("abc\\", ""),
            ("abc\\0", "0"),
            ("abc\\az", "az"),
            ("abc\\9g", "9g"),
        ],
    )
    def test_fail_invalid_escaped_value(self, value: str, err_msg: str) -> None:
        ldap_filter = f"foo={value}"
        expected = f"Invalid hex characters following \\ '{err_msg}', requires 2 [0-9a-fA-F]"

        with pytest.raises(f.FilterCompileError, match=re.escape(expected)) as exc:
            f.LDAPFilter.from_string(ldap_filter)

        assert exc.value.filter == ldap_filter
        assert exc.value.offset == 7
        assert exc.value.length == len(value) - 3

    def test_fail_unescaped_star_in_value(self) -> None:
        ldap_filter = "(cn>=a*b)"
        expected = "Unescaped '*' found in filter value"

        with pytest.raises(f.FilterCompileError, match=re.escape(expected)) as exc:
            f.LDAPFilter.from_string(ldap_filter)

        assert exc.value.offset == 6
        assert exc.value.length == 1

    def test_parse_with_whitespace(self) -> None:
        actual = f.LDAPFilter.from_string("   (   foo=bar )   ")
        assert isinstance(actual, f.FilterEquality)
        assert actual.attribute == "foo"
        assert actual.value == b"bar "

    def test_parse_complex_with_whitespace(self) -> None:
        actual = f.LDAPFilter.from_string("   (! (  foo=bar ) )  ")
        assert isinstance(actual, f.FilterNot)
        assert isinstance(actual.filter, f.FilterEquality)
        assert actual.filter.attribute == "foo"
        assert actual.filter.value == b"bar "

    def test_max_depth(self) -> None:
        options = f.FilterOptions(max_depth=1)
        actual = f.compile_filter("(!(a=b))", options)
        assert actual == f.FilterNot(f.FilterEquality("a", b"b"))

        expected = "Filter nesting exceeds the maximum depth of 1"
        with pytest.raises(f.FilterCompileError, match=re.escape(expected)) as exc:
            f.compile_filter("(!(!(a=b)))", options)

        assert exc.value.offset == 4
        assert exc.value.length == 1

    def test_default_max_depth(self) -> None:
        allowed = "(!" * 100 + "(a=b)" + ")" * 100
        actual = f.compile_filter(allowed)
        assert isinstance(actual, f.FilterNot)

        too_deep = "(!" * 101 + "(a=b)" + ")" * 101
        with pytest.raises(f.FilterCompileError, match="maximum depth of 100"):
            f.compile_filter(too_deep)


class TestFilterAnd:
    def test_simple(self) -> None:
        ldap_filter = "(&(foo=bar)(attr=*))"
        actual = f.LDAPFilter.from_string(ldap_filter)

        assert isinstance(actual, f.FilterAnd)
        assert str(actual) == ldap_filter
        assert len(actual.filters) == 2

        assert isinstance(actual.filters[0], f.FilterEquality)
        assert actual.filters[0].attribute == "foo"
        assert actual.filters[0].value == b"bar"

        assert isinstance(actual.filters[1], f.FilterPresent)
        assert actual.filters[1].attribute == "attr"

    def test_pack(self) -> None:
        actual = pack_filter(f.compile_filter("(&(cn=bob)(cn=*))"))
        assert actual == b"\xA0\x0F\xA3\x09\x04\x02cn\x04\x03bob\x87\x02cn"

    def test_unpack(self) -> None:
        actual = unpack_filter(b"\xA0\x0F\xA3\x09\x04\x02cn\x04\x03bob\x87\x02cn")
        assert actual == f.FilterAnd([f.FilterEquality("cn", b"bob"), f.FilterPresent("cn")])

    def test_fail_no_filters(self) -> None:
        with pytest.raises(ValueError, match="FilterAnd requires at least 1 filter"):
            f.FilterAnd(filters=[])

    def test_fail_unpack_empty(self) -> None:
        with pytest.raises(f.FilterDecompileError, match="Received empty Filter.and set"):
            unpack_filter(b"\xA0\x00")

    def test_nested_or(self) -> None:
        ldap_filter = "(&(|(objectClass=organizationalPerson)(objectClass=user))(uid=bob))"
        actual = f.compile_filter(ldap_filter)

        assert isinstance(actual, f.FilterAnd)
        assert isinstance(actual.filters[0], f.FilterOr)
        assert actual.filters[1] == f.FilterEquality("uid", b"bob")
        assert str(actual) == ldap_filter

    def test_decompile(self) -> None:
        ldap_filter = "(&(objectClass=organizationalPerson)(uid=bob))"
        data = pack_filter(f.compile_filter(ldap_filter))

        assert data[0] == 0xA0
        assert f.decompile_filter(data) == ldap_filter


class TestFilterOr:
    def test_compound(self) -> None:
        ldap_filter = "(|(foo=bar)(&(attr=abc*test*end)(attr:rule:=test)))"
        actual = f.LDAPFilter.from_string(ldap_filter)

        assert isinstance(actual, f.FilterOr)
        assert str(actual) == ldap_filter
        assert len(actual.filters) == 2
        assert isinstance(actual.filters[1], f.FilterAnd)
        assert isinstance(actual.filters[1].filters[0], f.FilterSubstrings)
        assert isinstance(actual.filters[1].filters[1], f.FilterExtensibleMatch)

    def test_fail_no_filters(self) -> None:
        with pytest.raises(ValueError, match="FilterOr requires at least 1 filter"):
            f.FilterOr(filters=[])


class TestFilterNot:
    def test_simple(self) -> None:
        actual = f.LDAPFilter.from_string("(!(foo=bar))")
        assert actual == f.FilterNot(f.FilterEquality("foo", b"bar"))
        assert str(actual) == "(!(foo=bar))"

    def test_pack(self) -> None:
        actual = pack_filter(f.FilterNot(f.FilterPresent("cn")))
        assert actual == b"\xA2\x04\x87\x02cn"

    def test_fail_multiple_values(self) -> None:
        ldap_filter = "(!(a=b)(c=d))"
        expected = "Multiple filters found for not '!' expression"

        with pytest.raises(f.FilterCompileError, match=re.escape(expected)) as exc:
            f.LDAPFilter.from_string(ldap_filter)

        assert exc.value.offset == 0
        assert exc.value.length == 8

    def test_fail_unpack_multiple_values(self) -> None:
        with pytest.raises(f.FilterDecompileError, match="multiple inner filters"):
            unpack_filter(b"\xA2\x08\x87\x02cn\x87\x02sn")


class TestFilterSimple:
    def test_equality(self) -> None:
        actual = f.LDAPFilter.from_string("(cn=bob)")
        assert actual == f.FilterEquality("cn", b"bob")
        assert pack_filter(actual) == b"\xA3\x09\x04\x02cn\x04\x03bob"

    def test_present(self) -> None:
        actual = f.LDAPFilter.from_string("(cn=*)")
        assert actual == f.FilterPresent("cn")
        assert pack_filter(actual) == b"\x87\x02cn"

    def test_greater_or_equal(self) -> None:
        actual = f.LDAPFilter.from_string("(uidNumber>=1000)")
        assert actual == f.FilterGreaterOrEqual("uidNumber", b"1000")
        assert str(actual) == "(uidNumber>=1000)"
        assert pack_filter(actual)[:1] == b"\xA5"

    def test_less_or_equal(self) -> None:
        actual = f.LDAPFilter.from_string("(uidNumber<=1000)")
        assert actual == f.FilterLessOrEqual("uidNumber", b"1000")
        assert str(actual) == "(uidNumber<=1000)"
        assert pack_filter(actual)[:1] == b"\xA6"

    def test_approx_match(self) -> None:
        actual = f.LDAPFilter.from_string("(cn~=bob)")
        assert actual == f.FilterApproxMatch("cn", b"bob")
        assert str(actual) == "(cn~=bob)"
        assert pack_filter(actual)[:1] == b"\xA8"


class TestFilterSubstrings:
    @pytest.mark.parametrize(
        "ldap_filter, initial, any, final, expected",
        [
            ("(cn=a*b*c)", b"a", [b"b"], b"c", "(cn=a*b*c)"),
            ("(cn=a*)", b"a", [], None, "(cn=a*)"),
            ("(cn=*c)", None, [], b"c", "(cn=*c)"),
            ("(cn=*b*)", None, [b"b"], None, "(cn=*b*)"),
            ("(cn=*b*c*d*)", None, [b"b", b"c", b"d"], None, "(cn=*b*c*d*)"),
            ("(cn=a**b)", b"a", [], b"b", "(cn=a*b)"),
            (r"(cn=\2a*\28)", b"*", [], b"(", r"(cn=\2a*\28)"),
        ],
    )
    def test_parse(
        self,
        ldap_filter: str,
        initial: bytes,
        any: list,
        final: bytes,
        expected: str,
    ) -> None:
        actual = f.LDAPFilter.from_string(ldap_filter)
        assert isinstance(actual, f.FilterSubstrings)
        assert actual.attribute == "cn"
        assert actual.initial == initial
        assert actual.any == any
        assert actual.final == final
        assert str(actual) == expected

    def test_pack(self) -> None:
        actual = pack_filter(f.compile_filter("(cn=a*b*c)"))
        assert actual == b"\xA4\x0F\x04\x02cn\x30\x09\x80\x01a\x81\x01b\x82\x01c"

    def test_unpack(self) -> None:
        actual = unpack_filter(b"\xA4\x0F\x04\x02cn\x30\x09\x80\x01a\x81\x01b\x82\x01c")
        assert actual == f.FilterSubstrings("cn", b"a", [b"b"], b"c")
        assert str(actual) == "(cn=a*b*c)"

    def test_fail_no_values(self) -> None:
        ldap_filter = "(cn=**)"
        expected = "Substrings filter must contain at least one non-empty value"

        with pytest.raises(f.FilterCompileError, match=re.escape(expected)) as exc:
            f.LDAPFilter.from_string(ldap_filter)

        assert exc.value.offset == 4
        assert exc.value.length == 2

    def test_fail_construct_without_values(self) -> None:
        with pytest.raises(ValueError, match="FilterSubstrings requires at least 1 of initial, any, or final"):
            f.FilterSubstrings("cn", None, [], None)

    def test_fail_unpack_unknown_choice(self) -> None:
        with pytest.raises(f.FilterDecompileError, match="Unknown Filter.substrings choice"):
            unpack_filter(b"\xA4\x09\x04\x02cn\x30\x03\x83\x01a")

    def test_fail_unpack_multiple_initial(self) -> None:
        with pytest.raises(f.FilterDecompileError, match="multiple initial values"):
            unpack_filter(b"\xA4\x0C\x04\x02cn\x30\x06\x80\x01a\x80\x01b")


class TestFilterExtensibleMatch:
    @pytest.mark.parametrize(
        "ldap_filter, rule, attribute, dn_attributes, expected",
        [
            ("(cn:=Dino)", None, "cn", False, "(cn:=Dino)"),
            ("(cn:dn:=Dino)", None, "cn", True, "(cn:dn:=Dino)"),
            ("(cn:DN:=Dino)", None, "cn", True, "(cn:dn:=Dino)"),
            ("(cn:dn:2.4.6.8.10:=Dino)", "2.4.6.8.10", "cn", True, "(cn:dn:2.4.6.8.10:=Dino)"),
            ("(cn:caseExactMatch:=Dino)", "caseExactMatch", "cn", False, "(cn:caseExactMatch:=Dino)"),
            ("(:1.2.3:=Dino)", "1.2.3", None, False, "(:1.2.3:=Dino)"),
            ("(:dn:1.2.3:=Dino)", "1.2.3", None, True, "(:dn:1.2.3:=Dino)"),
        ],
    )
    def test_parse(
        self,
        ldap_filter: str,
        rule: str,
        attribute: str,
        dn_attributes: bool,
        expected: str,
    ) -> None:
        actual = f.LDAPFilter.from_string(ldap_filter)
        assert isinstance(actual, f.FilterExtensibleMatch)
        assert actual.rule == rule
        assert actual.attribute == attribute
        assert actual.value == b"Dino"
        assert actual.dn_attributes == dn_attributes
        assert str(actual) == expected

    def test_pack(self) -> None:
        actual = pack_filter(f.compile_filter("(cn:dn:1.2:=x)"))
        assert actual == b"\xA9\x0F\x81\x031.2\x82\x02cn\x83\x01x\x84\x01\xFF"

    @pytest.mark.parametrize("ldap_filter", ["(:=x)", "(:dn:=x)"])
    def test_fail_no_rule_or_attribute(self, ldap_filter: str) -> None:
        expected = "Extensible filter must define a matching rule when no attribute is set"
        with pytest.raises(f.FilterCompileError, match=re.escape(expected)):
            f.LDAPFilter.from_string(ldap_filter)

    def test_fail_extra_header(self) -> None:
        expected = "Extra data found in extensible filter header"
        with pytest.raises(f.FilterCompileError, match=re.escape(expected)):
            f.LDAPFilter.from_string("(cn:dn:rule:other:=x)")

    def test_fail_construct_without_rule_or_attribute(self) -> None:
        with pytest.raises(ValueError, match="requires a rule when no attribute is set"):
            f.FilterExtensibleMatch(rule=None, attribute=None, value=b"x")


class TestDecompile:
    @pytest.mark.parametrize(
        "data, expected",
        [
            (b"\xA3\x09\x04\x02cn\x04\x03bob", "(cn=bob)"),
            (b"\x87\x02cn", "(cn=*)"),
            (b"\xA0\x0F\xA3\x09\x04\x02cn\x04\x03bob\x87\x02cn", "(&(cn=bob)(cn=*))"),
            (b"\xA3\x08\x04\x02cn\x04\x02(*", r"(cn=\28\2a)"),
        ],
    )
    def test_decompile(self, data: bytes, expected: str) -> None:
        assert f.decompile_filter(data) == expected

    @pytest.mark.parametrize(
        "data, expected",
        [
            (b"\xAA\x00", "Unknown filter object"),
            (b"\x04\x02cn", "Unknown filter object"),
            (b"\xA3\x09\x04\x02cn", "Failed to unpack filter"),
            (b"\x87\x02cn\x05\x00", "Extra data found after filter"),
            (b"\xA3\x04\x04\x02cn", "Failed to unpack filter"),
        ],
    )
    def test_fail_decompile(self, data: bytes, expected: str) -> None:
        with pytest.raises(f.FilterDecompileError, match=re.escape(expected)) as exc:
            f.decompile_filter(data)

        assert exc.value.result_code == LDAPResultCode.ERROR_FILTER_DECOMPILE

    def test_fail_decompile_too_deep(self) -> None:
        ldap_filter: f.LDAPFilter = f.FilterPresent("cn")
        for _ in range(101):
            ldap_filter = f.FilterNot(ldap_filter)

        data = pack_filter(ldap_filter)
        with pytest.raises(f.FilterDecompileError, match="maximum depth of 100"):
            f.decompile_filter(data)

    @pytest.mark.parametrize(
        "ldap_filter",
        [
            "(&(objectClass=person)(cn=bob))",
            "(|(sn=a*)(!(uid=b)))",
            "(cn:dn:2.4.6.8.10:=Dino)",
            r"(cn=\00\28\29\2a\5c)",
            "(&(uidNumber>=10)(uidNumber<=20)(cn~=x)(cn=*mid*))",
        ],
    )
    def test_roundtrip(self, ldap_filter: str) -> None:
        compiled = f.compile_filter(ldap_filter)
        assert f.decompile_filter(pack_filter(compiled)) == ldap_filter
        assert f.compile_filter(str(compiled)) == compiled


class TestCustomFilter:
    def test_pack_unpack(self) -> None:
        options = f.FilterOptions()
        options.choices.append(CustomFilter)

        writer = ASN1Writer()
        f.FilterAnd([CustomFilter("value")]).pack(writer, options)
        data = writer.get_data()

        actual = f.LDAPFilter.unpack(ASN1Reader(data), options)
        assert actual == f.FilterAnd([CustomFilter("value")])

    def test_unpack_not_registered(self) -> None:
        data = b"\x9F\x88\x00\x05value"
        with pytest.raises(f.FilterDecompileError, match="Unknown filter object"):
            unpack_filter(data)


@pytest.mark.parametrize(
    "value, expected",
    [
        ("simple", "simple"),
        ("a*(b)\\", r"a\2a\28b\29\5c"),
        ("café", r"caf\c3\a9"),
        ("tab\t", r"tab\09"),
    ],
)
def test_escape_filter(value: str, expected: str) -> None:
    assert f.escape_filter(value) == expected
