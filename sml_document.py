"""
sml_document.py
The SML document format: a tree of named elements holding named, multi-valued attributes,
written as lines of whitespace-separated values and closed with an end keyword.

This module is both what the schema loader reads schema files with and the runtime that
generated loaders import. Element and attribute names are matched case-insensitively.
"""
import base64
import binascii
import datetime
import re
from typing import Callable, Iterable, List, Optional, Union

from schema_errors import GrammarViolationError, SmlParseError
from wsv_parser import parse_wsv_line, serialize_wsv_line, serialize_wsv_value

DEFAULT_END_KEYWORD = "End"

_INT_PATTERN = re.compile(r'[+-]?[0-9]+')
_UINT_PATTERN = re.compile(r'\+?[0-9]+')
_NUMBER_PATTERN = re.compile(r'[+-]?([0-9]+(\.[0-9]*)?|\.[0-9]+)([eE][+-]?[0-9]+)?')


def _to_bool(text: str) -> bool:
    lowered = text.lower()
    if lowered == "true":
        return True
    if lowered == "false":
        return False
    raise ValueError("expected true or false")


def _to_int(text: str) -> int:
    if not _INT_PATTERN.fullmatch(text):
        raise ValueError("expected an integer")
    return int(text)


def _to_uint(text: str) -> int:
    if not _UINT_PATTERN.fullmatch(text):
        raise ValueError("expected an unsigned integer")
    return int(text)


def _to_number(text: str) -> float:
    if not _NUMBER_PATTERN.fullmatch(text):
        raise ValueError("expected a number")
    return float(text)


def _to_base64(text: str) -> bytes:
    try:
        return base64.b64decode(text, validate=True)
    except binascii.Error as e:
        raise ValueError(str(e)) from e


# Keyed by the lower-cased predefined type name.
VALUE_CONVERTERS = {
    'bool': _to_bool,
    'int': _to_int,
    'uint': _to_uint,
    'number': _to_number,
    'string': str,
    'date': datetime.date.fromisoformat,
    'time': datetime.time.fromisoformat,
    'datetime': datetime.datetime.fromisoformat,
    'base64': _to_base64,
}


def _same_name(a: Optional[str], b: Optional[str]) -> bool:
    if a is None or b is None:
        return a is b
    return a.lower() == b.lower()


def _contains_name(names: Iterable[str], name: str) -> bool:
    return any(_same_name(n, name) for n in names)


class SmlAttribute:
    """A named attribute line. Values are strings, or None for the null value '-'."""

    def __init__(self, name: str, values: List[Optional[str]]):
        if not values:
            raise GrammarViolationError(f'Attribute "{name}" must have at least one value')
        self.name = name
        self.values = list(values)

    def __repr__(self):
        return f"SmlAttribute(name={self.name!r}, values={self.values!r})"

    @property
    def value_count(self) -> int:
        return len(self.values)

    def assure_value_count(self, count: int) -> 'SmlAttribute':
        if len(self.values) != count:
            raise GrammarViolationError(
                f'Attribute "{self.name}" must have {count} value(s) but has {len(self.values)}')
        return self

    def assure_value_count_min_max(self, min_count: int, max_count: Optional[int] = None) -> 'SmlAttribute':
        count = len(self.values)
        if count < min_count or (max_count is not None and count > max_count):
            upper = "N" if max_count is None else max_count
            raise GrammarViolationError(
                f'Attribute "{self.name}" must have {min_count}..{upper} values but has {count}')
        return self

    def _check_index(self, index: int):
        if index < 0 or index >= len(self.values):
            raise GrammarViolationError(f'Attribute "{self.name}" has no value at index {index}')

    def is_null(self, index: int = 0) -> bool:
        self._check_index(index)
        return self.values[index] is None

    def get_nullable_string(self, index: int = 0) -> Optional[str]:
        self._check_index(index)
        return self.values[index]

    def get_string(self, index: int = 0) -> str:
        value = self.get_nullable_string(index)
        if value is None:
            raise GrammarViolationError(f'Attribute "{self.name}" value {index} must not be null')
        return value

    def get_string_list(self) -> List[str]:
        return [self.get_string(i) for i in range(len(self.values))]

    def as_string(self) -> str:
        return self.assure_value_count(1).get_string(0)

    def get_enum(self, labels: List[str], index: int = 0, nullable: bool = False) -> Optional[int]:
        """Position of the value in labels (exact match). None for an allowed null."""
        if nullable and self.is_null(index):
            return None
        value = self.get_string(index)
        try:
            return labels.index(value)
        except ValueError:
            allowed = ", ".join(labels)
            raise GrammarViolationError(
                f'Attribute "{self.name}" value "{value}" is not one of: {allowed}') from None

    def get_value(self, kind: str, index: int = 0, nullable: bool = False):
        """Convert the value at index to the predefined kind (Bool, Int, ..., Base64)."""
        converter = VALUE_CONVERTERS.get(kind.lower())
        if converter is None:
            raise GrammarViolationError(f'Unknown value kind "{kind}"')
        if nullable and self.is_null(index):
            return None
        text = self.get_string(index)
        try:
            return converter(text)
        except ValueError as e:
            raise GrammarViolationError(
                f'Attribute "{self.name}" value "{text}" is not a valid {kind}: {e}') from e

    @staticmethod
    def reader(kind: str) -> Callable[['SmlAttribute', int, bool], object]:
        """A reader for as_single/as_array that converts one value of a predefined kind."""
        def read(attribute: 'SmlAttribute', index: int, nullable: bool):
            return attribute.get_value(kind, index, nullable)
        return read

    def as_single(self, reader, nullable: bool = False, min_arity: int = 1, max_arity: int = 1):
        """
        Read one item that spans min_arity..max_arity values (structs span several).
        A nullable item may also be written as a single null value.
        """
        if nullable and len(self.values) == 1 and self.values[0] is None:
            return None
        self.assure_value_count_min_max(min_arity, max_arity)
        return reader(self, 0, nullable)

    def as_array(self, reader, min_count: int = 0, max_count: Optional[int] = None,
                 nullable: bool = False, array_nullable: bool = False, arity: int = 1) -> Optional[list]:
        """
        Read all values as an array of items, each occupying `arity` values.
        A nullable array may be written as a single null value.
        """
        if array_nullable and len(self.values) == 1 and self.values[0] is None:
            return None
        if len(self.values) % arity != 0:
            raise GrammarViolationError(
                f'Attribute "{self.name}" value count {len(self.values)} is not a multiple of {arity}')
        count = len(self.values) // arity
        if count < min_count or (max_count is not None and count > max_count):
            upper = "N" if max_count is None else max_count
            raise GrammarViolationError(
                f'Attribute "{self.name}" must have {min_count}..{upper} items but has {count}')
        return [reader(self, i * arity, nullable) for i in range(count)]


class SmlElement:
    def __init__(self, name: str):
        self.name = name
        self.nodes: List[Union['SmlElement', SmlAttribute]] = []

    def __repr__(self):
        return f"SmlElement(name={self.name!r}, nodes={len(self.nodes)})"

    # --- Building ---
    def add_element(self, name: str) -> 'SmlElement':
        element = SmlElement(name)
        self.nodes.append(element)
        return element

    def add_attribute(self, name: str, values: List[Optional[str]]) -> SmlAttribute:
        attribute = SmlAttribute(name, values)
        self.nodes.append(attribute)
        return attribute

    # --- Queries ---
    def elements(self, name: Optional[str] = None) -> List['SmlElement']:
        return [n for n in self.nodes
                if isinstance(n, SmlElement) and (name is None or _same_name(n.name, name))]

    def attributes(self, name: Optional[str] = None) -> List[SmlAttribute]:
        return [n for n in self.nodes
                if isinstance(n, SmlAttribute) and (name is None or _same_name(n.name, name))]

    def has_element(self, name: str) -> bool:
        return len(self.elements(name)) > 0

    def has_attribute(self, name: str) -> bool:
        return len(self.attributes(name)) > 0

    def required_element(self, name: str) -> 'SmlElement':
        found = self.elements(name)
        if len(found) != 1:
            raise GrammarViolationError(
                f'Element "{self.name}" must contain exactly one element "{name}" but contains {len(found)}')
        return found[0]

    def optional_element(self, name: str) -> Optional['SmlElement']:
        found = self.elements(name)
        if len(found) > 1:
            raise GrammarViolationError(
                f'Element "{self.name}" must contain at most one element "{name}" but contains {len(found)}')
        return found[0] if found else None

    def one_or_more_elements(self, name: str) -> List['SmlElement']:
        found = self.elements(name)
        if not found:
            raise GrammarViolationError(f'Element "{self.name}" must contain at least one element "{name}"')
        return found

    def required_attribute(self, name: str) -> SmlAttribute:
        found = self.attributes(name)
        if len(found) != 1:
            raise GrammarViolationError(
                f'Element "{self.name}" must contain exactly one attribute "{name}" but contains {len(found)}')
        return found[0]

    def optional_attribute(self, name: str) -> Optional[SmlAttribute]:
        found = self.attributes(name)
        if len(found) > 1:
            raise GrammarViolationError(
                f'Element "{self.name}" must contain at most one attribute "{name}" but contains {len(found)}')
        return found[0] if found else None

    def one_or_more_attributes(self, name: str) -> List[SmlAttribute]:
        found = self.attributes(name)
        if not found:
            raise GrammarViolationError(f'Element "{self.name}" must contain at least one attribute "{name}"')
        return found

    # --- Assertions ---
    def assure_name(self, name: str) -> 'SmlElement':
        if not _same_name(self.name, name):
            raise GrammarViolationError(f'Element with name "{name}" expected but found "{self.name}"')
        return self

    def assure_element_names(self, names: List[str]) -> 'SmlElement':
        for element in self.elements():
            if not _contains_name(names, element.name):
                raise GrammarViolationError(
                    f'Element "{self.name}" contains unexpected element "{element.name}"')
        return self

    def assure_no_elements(self) -> 'SmlElement':
        if self.elements():
            raise GrammarViolationError(f'Element "{self.name}" must not contain elements')
        return self

    def assure_attribute_names(self, names: List[str]) -> 'SmlElement':
        for attribute in self.attributes():
            if not _contains_name(names, attribute.name):
                raise GrammarViolationError(
                    f'Element "{self.name}" contains unexpected attribute "{attribute.name}"')
        return self

    def assure_no_attributes(self) -> 'SmlElement':
        if self.attributes():
            raise GrammarViolationError(f'Element "{self.name}" must not contain attributes')
        return self

    def assure_element_choice(self, names: List[str], can_be_none: bool = False) -> 'SmlElement':
        """At most one element (exactly one unless can_be_none) out of names."""
        found = [e for e in self.elements() if _contains_name(names, e.name)]
        choices = ", ".join(names)
        if len(found) > 1:
            raise GrammarViolationError(f'Element "{self.name}" must contain only one of: {choices}')
        if not found and not can_be_none:
            raise GrammarViolationError(f'Element "{self.name}" must contain one of: {choices}')
        return self


class SmlDocument:
    def __init__(self, root: SmlElement, end_keyword: Optional[str] = DEFAULT_END_KEYWORD):
        self.root = root
        self.end_keyword = end_keyword

    @staticmethod
    def parse(content: str) -> 'SmlDocument':
        lines = []
        for number, text in enumerate(content.splitlines(), start=1):
            values = parse_wsv_line(text, number)
            if values:
                lines.append((number, values))
        if not lines:
            raise SmlParseError("Document is empty")

        last_number, last_values = lines[-1]
        if len(last_values) != 1:
            raise SmlParseError("Document must end with an end keyword line", last_number)
        end_keyword = last_values[0]

        root = None
        stack: List[SmlElement] = []
        for number, values in lines:
            if root is not None and not stack:
                raise SmlParseError("Only one root element allowed", number)
            if len(values) == 1:
                value = values[0]
                if _same_name(value, end_keyword):
                    if not stack:
                        raise SmlParseError("Unexpected end keyword", number)
                    stack.pop()
                    continue
                if value is None:
                    raise SmlParseError("Null value as element name is not allowed", number)
                if root is None:
                    root = SmlElement(value)
                    element = root
                else:
                    element = stack[-1].add_element(value)
                stack.append(element)
            else:
                name = values[0]
                if name is None:
                    raise SmlParseError("Null value as attribute name is not allowed", number)
                if not stack:
                    raise SmlParseError(f'Attribute "{name}" outside of the root element', number)
                stack[-1].add_attribute(name, values[1:])
        if stack:
            raise SmlParseError(f'Element "{stack[-1].name}" not closed')
        return SmlDocument(root, end_keyword)

    def to_string(self, indentation: str = "\t") -> str:
        lines: List[str] = []
        self._serialize_element(self.root, 0, indentation, lines)
        return "\n".join(lines)

    def _serialize_element(self, element: SmlElement, level: int, indentation: str, lines: List[str]):
        prefix = indentation * level
        lines.append(prefix + serialize_wsv_value(element.name))
        for node in element.nodes:
            if isinstance(node, SmlElement):
                self._serialize_element(node, level + 1, indentation, lines)
            else:
                lines.append(prefix + indentation + serialize_wsv_line([node.name] + node.values))
        lines.append(prefix + serialize_wsv_value(self.end_keyword))

    def __str__(self):
        return self.to_string()
