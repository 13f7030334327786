import pathlib

import pytest

from serveline.tags import Tag, TagKind, TagValue, tag


def test_string_value_is_quoted():
    assert str(TagValue.from_value("abc")) == '"abc"'
    assert TagValue.from_value("abc").kind is TagKind.STRING


def test_string_escapes():
    text = str(TagValue.from_value('a"b\\c\n'))
    assert text == '"a\\"b\\\\c\\n"'


def test_bool_and_null():
    assert str(TagValue.from_value(True)) == "true"
    assert str(TagValue.from_value(False)) == "false"
    null = TagValue.from_value(None)
    assert null.kind is TagKind.NULL
    assert str(null) == "null"


@pytest.mark.parametrize(
    "value,kind",
    [(5, TagKind.I64), (-5, TagKind.I64), (2**64 - 1, TagKind.U64), (-(2**100), TagKind.I128), (2**127, TagKind.U128)],
)
def test_int_kinds(value, kind):
    tag_value = TagValue.from_value(value)
    assert tag_value.kind is kind
    assert str(tag_value) == str(value)


def test_int_too_large():
    with pytest.raises(ValueError):
        TagValue.from_value(2**128)


def test_float_formatting():
    assert str(TagValue.from_value(1.5)) == "1.5"
    assert str(TagValue.from_value(2.0)) == "2"
    assert float(str(TagValue.from_value(1e-7))) == 1e-7
    assert "e" not in str(TagValue.from_value(1e-7))
    assert TagValue.from_value(float("nan")).value == "NaN"


def test_path_becomes_string():
    value = TagValue.from_value(pathlib.PurePosixPath("/var/log/x.log"))
    assert value.kind is TagKind.STRING
    assert value.value == "/var/log/x.log"


def test_unsupported_type():
    with pytest.raises(TypeError):
        TagValue.from_value(object())


def test_ordinal_matches_kind_order():
    values = [TagValue.from_value(v) for v in ["s", True, 1, 2**64 - 1, 1.5, None]]
    ordinals = [value.ordinal() for value in values]
    assert ordinals == sorted(ordinals)
    assert TagValue.from_value(None).ordinal() == int(TagKind.NULL)


def test_from_value_passes_tag_value_through():
    original = TagValue(TagKind.U8, 7)
    assert TagValue.from_value(original) is original
    assert str(original) == "7"


def test_tag_display():
    assert str(tag("msg", "hi")) == 'msg: "hi"'
    assert str(Tag("code", 200)) == "code: 200"


def test_tag_repr():
    assert repr(tag("code", None)) == 'Tag{"code":Null}'
    assert repr(tag("msg", "hi")) == 'Tag{"msg":String("hi")}'


def test_tag_equality_and_hash():
    assert tag("a", 1) == Tag("a", TagValue.from_value(1))
    assert len({tag("a", 1), tag("a", 1), tag("a", 2)}) == 2


def test_tag_ordering_by_name_then_value():
    ordered = sorted([tag("b", 0), tag("a", 2), tag("a", 1)])
    assert [(t.name, t.value.value) for t in ordered] == [("a", 1), ("a", 2), ("b", 0)]


def test_value_ordering_by_kind_first():
    assert TagValue.from_value("z") < TagValue.from_value(True)
    assert TagValue.from_value(1) < TagValue.from_value(None)