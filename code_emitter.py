"""
code_emitter.py
The contract between the schema code generator and a target-language printer.

The generator describes what to emit with the small vocabulary below (type descriptions,
default values, expressions, statements and block headers) and never writes target
syntax itself. A CodeEmitter subclass owns identifier rules and renders the collected
declarations as source text.
"""
from typing import Any, List, Optional, Tuple

from schema_model import PredefinedType

# Roles of the document runtime types that generated code works with.
RUNTIME_DOCUMENT = "document"
RUNTIME_ELEMENT = "element"
RUNTIME_ATTRIBUTE = "attribute"

# Operations of the document runtime, named as the runtime defines them.
ASSURE_NAME = "assure_name"
ASSURE_ELEMENT_NAMES = "assure_element_names"
ASSURE_NO_ELEMENTS = "assure_no_elements"
ASSURE_ATTRIBUTE_NAMES = "assure_attribute_names"
ASSURE_NO_ATTRIBUTES = "assure_no_attributes"
REQUIRED_ELEMENT = "required_element"
OPTIONAL_ELEMENT = "optional_element"
ELEMENTS = "elements"
ONE_OR_MORE_ELEMENTS = "one_or_more_elements"
REQUIRED_ATTRIBUTE = "required_attribute"
OPTIONAL_ATTRIBUTE = "optional_attribute"
ATTRIBUTES = "attributes"
ONE_OR_MORE_ATTRIBUTES = "one_or_more_attributes"
VALUE_COUNT = "value_count"
IS_NULL = "is_null"
GET_ENUM = "get_enum"
GET_VALUE = "get_value"
AS_SINGLE = "as_single"
AS_ARRAY = "as_array"
READER = "reader"
PARSE_DOCUMENT = "parse"
DOCUMENT_ROOT = "root"


# --- Type descriptions ---

class ScalarType:
    def __init__(self, kind: PredefinedType):
        self.kind = kind


class NamedType:
    """A type declared in the same artifact."""
    def __init__(self, name: str):
        self.name = name


class NullableType:
    def __init__(self, inner):
        self.inner = inner


class ListType:
    def __init__(self, inner):
        self.inner = inner


class RuntimeType:
    """A document runtime type; usable both as a type description and as an expression."""
    def __init__(self, role: str):
        self.role = role


# --- Default values ---

class ZeroValue:
    def __init__(self, kind: PredefinedType):
        self.kind = kind


class NoValue:
    pass


class EmptyList:
    pass


class NewInstance:
    def __init__(self, type_name: str):
        self.type_name = type_name


class EnumMember:
    def __init__(self, type_name: str, member: str):
        self.type_name = type_name
        self.member = member


# --- Expressions ---

class Name:
    """A parameter or local variable."""
    def __init__(self, identifier: str):
        self.identifier = identifier


class SelfType:
    """The type whose method is being emitted."""
    pass


class TypeRef:
    def __init__(self, type_name: str):
        self.type_name = type_name


class Attr:
    def __init__(self, target, name: str):
        self.target = target
        self.name = name


class Call:
    def __init__(self, function, args: Optional[List[Any]] = None):
        self.function = function
        self.args = args or []


class Literal:
    """str, int, float, bool, None or a list of str."""
    def __init__(self, value):
        self.value = value


class Add:
    def __init__(self, left, right):
        self.left = left
        self.right = right


class EnumMemberAt:
    """The member of an enumerated type at a declaration position."""
    def __init__(self, enum_type, index):
        self.enum_type = enum_type
        self.index = index


class IsPresent:
    def __init__(self, operand):
        self.operand = operand


class IsAbsent:
    def __init__(self, operand):
        self.operand = operand


class GreaterThan:
    def __init__(self, left, right):
        self.left = left
        self.right = right


class And:
    def __init__(self, left, right):
        self.left = left
        self.right = right


# --- Statements and block headers ---

class Assign:
    def __init__(self, target, value):
        self.target = target
        self.value = value


class Append:
    def __init__(self, target, value):
        self.target = target
        self.value = value


class Return:
    def __init__(self, value):
        self.value = value


class Evaluate:
    def __init__(self, expression):
        self.expression = expression


class If:
    def __init__(self, condition):
        self.condition = condition


class ForEach:
    def __init__(self, variable: str, iterable):
        self.variable = variable
        self.iterable = iterable


# --- Declarations ---

class Parameter:
    def __init__(self, name: str, type_description, default: Optional[Literal] = None):
        self.name = name
        self.type_description = type_description
        self.default = default


class MethodSignature:
    """A type-level operation (it receives the declaring type, never an instance)."""
    def __init__(self, name: str, parameters: List[Parameter], returns):
        self.name = name
        self.parameters = parameters
        self.returns = returns


class MethodBody:
    LINE = "line"
    OPEN = "open"
    CLOSE = "close"

    def __init__(self):
        self.entries: List[Tuple[str, Any]] = []
        self._depth = 0

    def append_line(self, statement) -> 'MethodBody':
        self.entries.append((self.LINE, statement))
        return self

    def open_block(self, header) -> 'MethodBody':
        self.entries.append((self.OPEN, header))
        self._depth += 1
        return self

    def close_block(self) -> 'MethodBody':
        if self._depth == 0:
            raise ValueError("Invalid close: no open block")
        self._depth -= 1
        self.entries.append((self.CLOSE, None))
        return self

    @property
    def is_closed(self) -> bool:
        return self._depth == 0


class Field:
    def __init__(self, name: str, type_description, default):
        self.name = name
        self.type_description = type_description
        self.default = default


class DeclaredType:
    ENUM = "enum"
    RECORD = "record"

    def __init__(self, name: str, kind: str, doc: Optional[str] = None):
        self.name = name
        self.kind = kind
        self.doc = doc
        self.variants: List[Tuple[str, str]] = []
        self.fields: List[Field] = []
        self.methods: List[Tuple[MethodSignature, MethodBody]] = []

    def __repr__(self):
        return f"DeclaredType(name={self.name!r}, kind={self.kind!r})"

    def add_variant(self, identifier: str, literal: str):
        if self.kind != self.ENUM:
            raise ValueError(f"{self.name} is not an enumerated type")
        self.variants.append((identifier, literal))

    def add_field(self, name: str, type_description, default) -> Field:
        if self.kind != self.RECORD:
            raise ValueError(f"{self.name} is not a record type")
        f = Field(name, type_description, default)
        self.fields.append(f)
        return f

    def add_method(self, signature: MethodSignature) -> MethodBody:
        body = MethodBody()
        self.methods.append((signature, body))
        return body


class CodeEmitter:
    """
    Base class for target-language printers. Subclasses implement identifier() and
    render(); declarations are collected here in the order they are made.
    """

    def __init__(self):
        self.types: List[DeclaredType] = []

    def identifier(self, name: str, start_upper_case: bool) -> str:
        raise NotImplementedError("Subclasses must implement identifier()")

    def declare_enum(self, name: str, doc: Optional[str] = None) -> DeclaredType:
        declared = DeclaredType(name, DeclaredType.ENUM, doc)
        self.types.append(declared)
        return declared

    def declare_record(self, name: str, doc: Optional[str] = None) -> DeclaredType:
        declared = DeclaredType(name, DeclaredType.RECORD, doc)
        self.types.append(declared)
        return declared

    def render(self) -> str:
        raise NotImplementedError("Subclasses must implement render()")
