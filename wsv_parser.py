# wsv_parser.py
# Line tokenizer for the whitespace-separated-values (WSV) layer underneath SML documents.
from typing import List, Optional

from lark import Lark, Transformer, Token
from lark.exceptions import LarkError

from schema_errors import SmlParseError


# One WSV line: values separated by whitespace, optional trailing '#' comment.
# Strings are double-quoted; "" is a quote and "/" is a line break inside a string.
# Any Unicode whitespace separates values.
grammar = r"""
    start: value*

    value: STRING
         | WORD

    STRING: /"(?:[^"\n]|""|"\/")*"/
    WORD: /[^\s"#]+/
    COMMENT: /#[^\n]*/
    SEPARATOR: /[^\S\n]+/

    %ignore SEPARATOR
    %ignore COMMENT
"""

parser = Lark(
    grammar,
    start='start',
    parser='lalr',
)

NULL_VALUE = "-"


def _unescape_string(token: str) -> str:
    inner = token[1:-1]
    chars = []
    i = 0
    while i < len(inner):
        c = inner[i]
        if c == '"':
            if inner.startswith('""', i):
                chars.append('"')
                i += 2
                continue
            if inner.startswith('"/"', i):
                chars.append('\n')
                i += 3
                continue
        chars.append(c)
        i += 1
    return "".join(chars)


class LineValues(Transformer):
    def start(self, items):
        return list(items)

    def value(self, items):
        token: Token = items[0]
        if token.type == 'STRING':
            return _unescape_string(str(token))
        if str(token) == NULL_VALUE:
            return None
        return str(token)


def parse_wsv_line(text: str, line_number: Optional[int] = None) -> List[Optional[str]]:
    """Split one line into its values. Null values ('-') come back as None."""
    try:
        tree = parser.parse(text)
    except LarkError as e:
        raise SmlParseError(f"Invalid WSV line {text!r}: {e}", line_number) from e
    _check_separated(tree.children, text, line_number)
    return LineValues().transform(tree)


def _check_separated(values, text: str, line_number: Optional[int]) -> None:
    # A string touching another value (e.g. "a"b or a"b") lexes as two tokens.
    previous: Optional[Token] = None
    for value in values:
        token: Token = value.children[0]
        if previous is not None and previous.end_pos == token.start_pos:
            raise SmlParseError(
                f"Invalid WSV line {text!r}: missing whitespace before {str(token)!r} "
                f"at column {token.start_pos + 1}", line_number)
        previous = token


def needs_quotes(value: str) -> bool:
    if value == "" or value == NULL_VALUE:
        return True
    for c in value:
        if c.isspace() or c in '"#':
            return True
    return False


def serialize_wsv_value(value: Optional[str]) -> str:
    if value is None:
        return NULL_VALUE
    if not needs_quotes(value):
        return value
    escaped = value.replace('"', '""').replace('\n', '"/"')
    return f'"{escaped}"'


def serialize_wsv_line(values: List[Optional[str]]) -> str:
    return " ".join(serialize_wsv_value(v) for v in values)
