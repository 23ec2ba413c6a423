"""
schema_model.py
In-memory model of an SML schema: predefined types, value types (enums), structs,
attribute data types, attribute and element definitions, and the Schema root.
Definitions scopes live in schema_definitions.py.
"""
from enum import Enum
from typing import List, Optional, Union

from schema_errors import (
    DuplicateDefinitionError,
    InvalidRangeError,
    InvalidTypeCombinationError,
    RootAmbiguousError,
    RootUndefinedError,
    UnsupportedFeatureError,
    WriteOnceError,
)


class OccurrenceRange:
    """
    Cardinality bounds. max=None means unbounded. An unset min is stored as 0, so
    zero-or-more has a single encoding.
    """
    def __init__(self, min: Optional[int], max: Optional[int]):
        if min is None:
            min = 0
        if min < 0 or (max is not None and max < 0):
            raise InvalidRangeError(f"Invalid bounds {min}..{max}: bounds must not be negative")
        if max is not None and max < min:
            raise InvalidRangeError(f"Invalid bounds {min}..{max}: max is smaller than min")
        self.min = min
        self.max = max

    def __repr__(self):
        return f"OccurrenceRange(min={self.min!r}, max={self.max!r})"

    def __eq__(self, other):
        if not isinstance(other, OccurrenceRange):
            return NotImplemented
        return self.min == other.min and self.max == other.max

    def __hash__(self):
        return hash((self.min, self.max))

    @property
    def is_required(self) -> bool:
        return self.min == 1 and self.max == 1

    @property
    def is_optional(self) -> bool:
        return self.min == 0 and self.max == 1

    @property
    def is_repeated_plus(self) -> bool:
        return self.min == 1 and self.max is None

    @property
    def is_repeated_star(self) -> bool:
        return self.min == 0 and self.max is None

    @property
    def is_repeated(self) -> bool:
        return self.is_repeated_plus or self.is_repeated_star

    @property
    def is_fixed(self) -> bool:
        return self.max is not None and self.min == self.max

    @staticmethod
    def required() -> 'OccurrenceRange':
        return OccurrenceRange(1, 1)

    @staticmethod
    def optional() -> 'OccurrenceRange':
        return OccurrenceRange(0, 1)

    @staticmethod
    def repeated_plus() -> 'OccurrenceRange':
        return OccurrenceRange(1, None)

    @staticmethod
    def repeated_star() -> 'OccurrenceRange':
        return OccurrenceRange(0, None)

    @staticmethod
    def fixed(size: int) -> 'OccurrenceRange':
        return OccurrenceRange(size, size)


class PredefinedType(Enum):
    BOOL = "Bool"
    INT = "Int"
    UINT = "UInt"
    NUMBER = "Number"
    STRING = "String"
    DATE = "Date"
    TIME = "Time"
    BASE64 = "Base64"
    DATETIME = "DateTime"

    @classmethod
    def from_name(cls, name: str) -> Optional['PredefinedType']:
        """Case-insensitive lookup; None if name is not a predefined type."""
        lowered = name.lower()
        for predefined in cls:
            if predefined.value.lower() == lowered:
                return predefined
        return None


class ValueTypeKind(Enum):
    ENUM = "enum"
    # Reserved, not implemented.
    STRING = "string"
    NUMBER = "number"


class ValueTypeDef:
    kind: ValueTypeKind = None

    def __init__(self, name: str):
        self.name = name


class EnumTypeDef(ValueTypeDef):
    kind = ValueTypeKind.ENUM

    def __init__(self, name: str, values: List[str]):
        super().__init__(name)
        if not values:
            raise InvalidTypeCombinationError(f'EnumType "{name}" must declare at least one value')
        seen = set()
        for value in values:
            if value in seen:
                raise DuplicateDefinitionError(f'EnumType "{name}" declares value "{value}" more than once')
            seen.add(value)
        self._values = list(values)

    def __repr__(self):
        return f"EnumTypeDef(name={self.name!r}, values={self._values!r})"

    @property
    def values(self) -> List[str]:
        return list(self._values)


StructValueBase = Union[PredefinedType, ValueTypeDef]


class StructValue:
    def __init__(self, name: str, optional: bool, base: StructValueBase, nullable: bool):
        if not isinstance(base, (PredefinedType, ValueTypeDef)):
            raise InvalidTypeCombinationError(
                f'Struct value "{name}" must be a predefined type or a value type')
        self.name = name
        self.optional = optional
        self.base = base
        self.nullable = nullable

    def __repr__(self):
        return f"StructValue(name={self.name!r}, type={self.get_type_string()!r}, optional={self.optional!r})"

    @property
    def is_predefined_type(self) -> bool:
        return isinstance(self.base, PredefinedType)

    @property
    def predefined_type(self) -> Optional[PredefinedType]:
        return self.base if isinstance(self.base, PredefinedType) else None

    @property
    def value_type_def(self) -> Optional[ValueTypeDef]:
        return self.base if isinstance(self.base, ValueTypeDef) else None

    def get_type_string(self) -> str:
        type_name = self.base.value if self.is_predefined_type else self.base.name
        if self.nullable:
            type_name += "?"
        return type_name


class StructDef:
    def __init__(self, name: str, definitions=None):
        self.name = name
        self.definitions = definitions
        self._values: List[StructValue] = []

    def __repr__(self):
        return f"StructDef(name={self.name!r}, values={self._values!r})"

    @property
    def values(self) -> List[StructValue]:
        return list(self._values)

    @property
    def has_optional(self) -> bool:
        return any(v.optional for v in self._values)

    @property
    def required_count(self) -> int:
        return sum(1 for v in self._values if not v.optional)

    def add_value(self, name: str, optional: bool, base: StructValueBase, nullable: bool = False) -> StructValue:
        if any(v.name == name for v in self._values):
            raise DuplicateDefinitionError(f'Struct "{self.name}" already contains a value "{name}"')
        if self._values and self._values[-1].optional and not optional:
            raise InvalidTypeCombinationError(
                f'Value "{name}" of struct "{self.name}" is not optional but the value before was optional')
        value = StructValue(name, optional, base, nullable)
        self._values.append(value)
        return value


class DataTypeKind(Enum):
    PREDEFINED = "predefined"
    VALUE_TYPE = "value_type"
    STRUCT = "struct"


DataTypeBase = Union[PredefinedType, ValueTypeDef, StructDef]


class AttributeDataType:
    """
    Base kind (predefined type, value type or struct) combined with nullability and an
    optional array range that has its own nullability.
    """
    def __init__(self, base: DataTypeBase, nullable: bool = False,
                 array_range: Optional[OccurrenceRange] = None, array_nullable: bool = False):
        if isinstance(base, PredefinedType):
            self.kind = DataTypeKind.PREDEFINED
        elif isinstance(base, ValueTypeDef):
            self.kind = DataTypeKind.VALUE_TYPE
        elif isinstance(base, StructDef):
            self.kind = DataTypeKind.STRUCT
        else:
            raise InvalidTypeCombinationError(
                f"Data type base must be a predefined type, a value type or a struct, not {base!r}")
        if array_nullable and array_range is None:
            raise InvalidTypeCombinationError("Array nullability requires an array range")
        if array_range is not None and self.kind == DataTypeKind.STRUCT and base.has_optional:
            raise InvalidTypeCombinationError(f'Array of struct "{base.name}" with optional values not allowed')
        self.base = base
        self.nullable = nullable
        self.array_range = array_range
        self.array_nullable = array_nullable

    def __repr__(self):
        return f"AttributeDataType({str(self)!r})"

    @property
    def is_predefined_type(self) -> bool:
        return self.kind == DataTypeKind.PREDEFINED

    @property
    def is_value_type(self) -> bool:
        return self.kind == DataTypeKind.VALUE_TYPE

    @property
    def is_struct(self) -> bool:
        return self.kind == DataTypeKind.STRUCT

    @property
    def is_array(self) -> bool:
        return self.array_range is not None

    @property
    def predefined_type(self) -> Optional[PredefinedType]:
        return self.base if self.is_predefined_type else None

    @property
    def value_type_def(self) -> Optional[ValueTypeDef]:
        return self.base if self.is_value_type else None

    @property
    def struct_def(self) -> Optional[StructDef]:
        return self.base if self.is_struct else None

    def __str__(self):
        if self.kind == DataTypeKind.PREDEFINED:
            type_name = self.base.value
        else:
            type_name = self.base.name
        if self.nullable:
            type_name += "?"
        if self.array_range is not None:
            bounds = str(self.array_range.min)
            if not self.array_range.is_fixed:
                bounds += ".." + ("N" if self.array_range.max is None else str(self.array_range.max))
            type_name += f"[{bounds}]"
        if self.array_nullable:
            type_name += "?"
        return type_name


class AttributeDef:
    def __init__(self, name: str, definitions=None):
        self.name = name
        self.definitions = definitions
        self._data_type: Optional[AttributeDataType] = None

    def __repr__(self):
        return f"AttributeDef(name={self.name!r}, data_type={self._data_type!r})"

    @property
    def has_data_type(self) -> bool:
        return self._data_type is not None

    @property
    def data_type(self) -> AttributeDataType:
        if self._data_type is None:
            raise WriteOnceError(f'Data type of attribute "{self.name}" not set')
        return self._data_type

    @data_type.setter
    def data_type(self, value: AttributeDataType):
        if self._data_type is not None:
            raise WriteOnceError(f'Data type of attribute "{self.name}" already set')
        self._data_type = value


class ContentKind(Enum):
    UNORDERED = "unordered"
    # Reserved, not implemented.
    ORDERED = "ordered"
    LIST = "list"


class ElementContent:
    kind: ContentKind = None

    def __init__(self, element_def: 'ElementDef'):
        self.element_def = element_def


class UnorderedElement:
    def __init__(self, element_def: 'ElementDef', occurrence: OccurrenceRange):
        self.element_def = element_def
        self.occurrence = occurrence


class UnorderedAttribute:
    def __init__(self, attribute_def: AttributeDef, occurrence: OccurrenceRange, inline: bool):
        self.attribute_def = attribute_def
        self.occurrence = occurrence
        self.inline = inline


class UnorderedContent(ElementContent):
    kind = ContentKind.UNORDERED

    def __init__(self, element_def: 'ElementDef'):
        super().__init__(element_def)
        self._elements: List[UnorderedElement] = []
        self._attributes: List[UnorderedAttribute] = []

    @property
    def unordered_elements(self) -> List[UnorderedElement]:
        return list(self._elements)

    @property
    def unordered_attributes(self) -> List[UnorderedAttribute]:
        return list(self._attributes)

    def _check_attribute_name(self, name: str):
        if any(a.attribute_def.name == name for a in self._attributes):
            raise DuplicateDefinitionError(
                f'Element "{self.element_def.name}" already contains an unordered attribute with name "{name}"')

    def add_element(self, element_name: str, occurrence: OccurrenceRange) -> UnorderedElement:
        if any(e.element_def.name == element_name for e in self._elements):
            raise DuplicateDefinitionError(
                f'Element "{self.element_def.name}" already contains an unordered element with name "{element_name}"')
        child = self.element_def.definitions.element_defs.get(element_name)
        entry = UnorderedElement(child, occurrence)
        self._elements.append(entry)
        return entry

    def add_attribute(self, attribute_name: str, occurrence: OccurrenceRange) -> UnorderedAttribute:
        self._check_attribute_name(attribute_name)
        attribute_def = self.element_def.definitions.attribute_defs.get(attribute_name)
        entry = UnorderedAttribute(attribute_def, occurrence, False)
        self._attributes.append(entry)
        return entry

    def add_inline_attribute(self, attribute_def: AttributeDef, occurrence: OccurrenceRange) -> UnorderedAttribute:
        self._check_attribute_name(attribute_def.name)
        entry = UnorderedAttribute(attribute_def, occurrence, True)
        self._attributes.append(entry)
        return entry


class ElementDef:
    def __init__(self, name: str, parent_definitions=None):
        from schema_definitions import Definitions
        self.name = name
        self.definitions = Definitions(self, parent_definitions)
        self._content: Optional[ElementContent] = None

    def __repr__(self):
        return f"ElementDef(name={self.name!r})"

    @property
    def content(self) -> Optional[ElementContent]:
        return self._content

    @property
    def is_unordered(self) -> bool:
        return self._content is not None and self._content.kind == ContentKind.UNORDERED

    def set_content(self, kind: ContentKind) -> ElementContent:
        if self._content is not None:
            raise WriteOnceError(f'Content of element "{self.name}" already set')
        if kind == ContentKind.UNORDERED:
            self._content = UnorderedContent(self)
            return self._content
        raise UnsupportedFeatureError(f'{kind.value.capitalize()} content of element "{self.name}" is not supported')

    def set_unordered_content(self) -> UnorderedContent:
        return self.set_content(ContentKind.UNORDERED)


class Schema:
    def __init__(self):
        from schema_definitions import Definitions
        self.definitions = Definitions(None, None)
        self._root_element: Optional[ElementDef] = None

    @property
    def root_element(self) -> ElementDef:
        if self._root_element is None:
            raise RootUndefinedError("Root element not set")
        return self._root_element

    def set_root_element_by_name(self, name: str):
        self._root_element = self.definitions.element_defs.get(name)

    def set_root_element_default(self):
        element_defs = self.definitions.element_defs.values
        if len(element_defs) > 1:
            raise RootAmbiguousError(
                "Cannot set default root element because the schema contains multiple ElementDefs at root level")
        if not element_defs:
            raise RootUndefinedError("Cannot set default root element because the schema contains no ElementDef")
        self._root_element = element_defs[0]

    @staticmethod
    def parse(content: str, verbose: bool = False) -> 'Schema':
        from schema_loader import SchemaLoader
        return SchemaLoader(verbose).parse(content)

    def serialize(self):
        from schema_serializer import serialize_schema
        return serialize_schema(self)

    def to_string(self) -> str:
        return self.serialize().to_string()

    def __str__(self):
        return self.to_string()
