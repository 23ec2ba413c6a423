import pytest

from schema_errors import SmlParseError
from wsv_parser import needs_quotes, parse_wsv_line, serialize_wsv_line, serialize_wsv_value


def test_values_split_on_whitespace():
    assert parse_wsv_line("Value   X\tRequired Number") == ["Value", "X", "Required", "Number"]


def test_empty_and_comment_lines_have_no_values():
    assert parse_wsv_line("") == []
    assert parse_wsv_line("   \t ") == []
    assert parse_wsv_line("# only a comment") == []


def test_trailing_comment_is_ignored():
    assert parse_wsv_line("Name Person # the root") == ["Name", "Person"]


def test_quoted_strings():
    assert parse_wsv_line('Name "John Doe"') == ["Name", "John Doe"]
    assert parse_wsv_line('Text "a # b"') == ["Text", "a # b"]
    assert parse_wsv_line('Quote "He said ""hi"""') == ["Quote", 'He said "hi"']
    assert parse_wsv_line('Lines "one"/"two"') == ["Lines", "one\ntwo"]
    assert parse_wsv_line('Empty ""') == ["Empty", ""]


def test_dash_is_null_unless_quoted():
    assert parse_wsv_line("Color -") == ["Color", None]
    assert parse_wsv_line('Color "-"') == ["Color", "-"]


def test_unterminated_string_reports_line():
    with pytest.raises(SmlParseError, match=r"line 3"):
        parse_wsv_line('Name "open', 3)


def test_needs_quotes():
    assert needs_quotes("")
    assert needs_quotes("-")
    assert needs_quotes("a b")
    assert needs_quotes('a"b')
    assert needs_quotes("a#b")
    assert not needs_quotes("Point[1..N]?")


def test_serialize_values():
    assert serialize_wsv_value(None) == "-"
    assert serialize_wsv_value("-") == '"-"'
    assert serialize_wsv_value("plain") == "plain"
    assert serialize_wsv_value('say "x"') == '"say ""x"""'
    assert serialize_wsv_value("one\ntwo") == '"one"/"two"'
    assert serialize_wsv_line(["Values", "Red", None, "Dark Blue"]) == 'Values Red - "Dark Blue"'


def test_serialized_line_parses_back():
    values = ["Text", 'He said "hi"', "one\ntwo", None, "-", "", "#tag"]
    assert parse_wsv_line(serialize_wsv_line(values)) == values


def test_unicode_whitespace_separates_values():
    assert parse_wsv_line("\tA\xa0x y") == ["A", "x", "y"]
    assert parse_wsv_line("Size　1 2") == ["Size", "1", "2"]
    assert parse_wsv_line('Name\xa0"John Doe"\xa0# note') == ["Name", "John Doe"]


@pytest.mark.parametrize("line", ['Text "a"b', 'Text a"b"', 'Text "a""b" "c""d"x', 'Text "a"-'])
def test_values_must_be_separated(line):
    with pytest.raises(SmlParseError, match="missing whitespace"):
        parse_wsv_line(line, 2)


def test_string_may_touch_comment():
    assert parse_wsv_line('Text "a"# note') == ["Text", "a"]
