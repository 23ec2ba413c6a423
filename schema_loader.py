"""
schema_loader.py
Loads an SML schema document into a Schema model.

Schema grammar (element and attribute names of the SML document):

    Schema                      attributes: RootElement (optional)
      EnumType                  attributes: Name, Values
      Struct                    attributes: Name, Value <name> Required|Optional <type>[?] (repeated)
      Attribute                 attributes: Name, DataType
      Element                   attributes: Name
        Definitions             (EnumType, Struct, Attribute, Element, scoped to the element)
        UnorderedContent        attributes: Element <name> <occurrence>
                                            Attribute <name> <occurrence> [<data type>]
        ListContent             (not supported)
"""
import re
import sys

from schema_definitions import Definitions
from schema_errors import (
    GrammarViolationError,
    InvalidRangeError,
    RootUndefinedError,
    SchemaError,
    SchemaParseError,
    UndefinedReferenceError,
)
from schema_model import (
    AttributeDataType,
    AttributeDef,
    ContentKind,
    ElementDef,
    OccurrenceRange,
    PredefinedType,
    Schema,
    StructDef,
)
from sml_document import SmlAttribute, SmlDocument, SmlElement

SCHEMA = "Schema"
ROOT_ELEMENT = "RootElement"
ENUM_TYPE = "EnumType"
STRUCT = "Struct"
ATTRIBUTE = "Attribute"
ELEMENT = "Element"
DEFINITIONS = "Definitions"
UNORDERED_CONTENT = "UnorderedContent"
LIST_CONTENT = "ListContent"
NAME = "Name"
VALUES = "Values"
VALUE = "Value"
DATA_TYPE = "DataType"

DEFINITION_ELEMENT_NAMES = [ENUM_TYPE, STRUCT, ATTRIBUTE, ELEMENT]

OCCURRENCE_NAMES = ["Required", "Optional", "Repeated+", "Repeated*"]
OCCURRENCE_FACTORIES = [
    OccurrenceRange.required,
    OccurrenceRange.optional,
    OccurrenceRange.repeated_plus,
    OccurrenceRange.repeated_star,
]
STRUCT_VALUE_OCCURRENCE_NAMES = ["Required", "Optional"]

_BOUND_PATTERN = re.compile(r'[0-9]+')


def parse_occurrence(attribute: SmlAttribute, index: int) -> OccurrenceRange:
    position = attribute.get_enum(OCCURRENCE_NAMES, index)
    return OCCURRENCE_FACTORIES[position]()


def _parse_bound(text: str, data_type_str: str) -> int:
    text = text.strip()
    if not _BOUND_PATTERN.fullmatch(text):
        raise InvalidRangeError(f'Invalid array size "{text}" in data type "{data_type_str}"')
    return int(text)


def parse_data_type(data_type_str: str, definitions: Definitions) -> AttributeDataType:
    """
    Parse '<base>[?][[bounds]][?]' right to left: array nullability, array bounds
    ('n', 'a..b' or 'a..N'), base nullability, then resolve the base name against
    predefined types, value types and structs visible from definitions.
    """
    text = data_type_str
    array_nullable = False
    if text.endswith("]?"):
        array_nullable = True
        text = text[:-1]

    array_range = None
    if text.endswith("]"):
        split_index = text.find("[")
        if split_index < 0:
            raise GrammarViolationError(f'Invalid data type "{data_type_str}"')
        bounds = text[split_index + 1:-1]
        text = text[:split_index]
        if ".." in bounds:
            min_str, max_str = bounds.split("..", 1)
            min_size = _parse_bound(min_str, data_type_str)
            max_size = None
            if max_str.strip().upper() != "N":
                max_size = _parse_bound(max_str, data_type_str)
            array_range = OccurrenceRange(min_size, max_size)
        else:
            array_range = OccurrenceRange.fixed(_parse_bound(bounds, data_type_str))

    nullable = False
    if text.endswith("?"):
        nullable = True
        text = text[:-1]
    if not text:
        raise GrammarViolationError(f'Invalid data type "{data_type_str}"')

    base = PredefinedType.from_name(text)
    if base is None:
        base = definitions.value_type_defs.get_or_none(text)
    if base is None:
        base = definitions.struct_defs.get_or_none(text)
    if base is None:
        raise UndefinedReferenceError(f'Data type "{text}" not defined in {definitions.description}')
    return AttributeDataType(base, nullable, array_range, array_nullable)


class SchemaLoader:
    """
    Validates an SML node tree against the schema grammar and builds a Schema.
    Any failure aborts the whole load and surfaces as one SchemaParseError.
    """

    def __init__(self, verbose: bool = False):
        self.verbose = verbose

    def debug_print(self, message: str) -> None:
        if self.verbose:
            print(f"[DEBUG] SchemaLoader: {message}", file=sys.stderr)

    def parse(self, content: str) -> Schema:
        try:
            document = SmlDocument.parse(content)
            return self._load_document(document)
        except SchemaError as e:
            self.debug_print(f"load failed: {e}")
            raise SchemaParseError(f"Could not parse schema because {e}") from e

    def load(self, document: SmlDocument) -> Schema:
        try:
            return self._load_document(document)
        except SchemaError as e:
            self.debug_print(f"load failed: {e}")
            raise SchemaParseError(f"Could not parse schema because {e}") from e

    def _load_document(self, document: SmlDocument) -> Schema:
        schema = Schema()
        root = document.root
        root.assure_name(SCHEMA)
        root.assure_element_names(DEFINITION_ELEMENT_NAMES)
        root.assure_attribute_names([ROOT_ELEMENT])

        self._load_definitions(root, schema.definitions)

        root_element_attribute = root.optional_attribute(ROOT_ELEMENT)
        if root_element_attribute is not None:
            root_element_name = root_element_attribute.as_string()
            if not schema.definitions.element_defs.has_local(root_element_name):
                raise RootUndefinedError(f'Root element "{root_element_name}" is not a top-level ElementDef')
            schema.set_root_element_by_name(root_element_name)
        else:
            schema.set_root_element_default()
        self.debug_print(f"root element is {schema.root_element.name!r}")
        return schema

    def _load_definitions(self, node: SmlElement, definitions: Definitions):
        for enum_node in node.elements(ENUM_TYPE):
            self._load_enum_type_def(enum_node, definitions)
        for struct_node in node.elements(STRUCT):
            self._load_struct_def(struct_node, definitions)
        for attribute_node in node.elements(ATTRIBUTE):
            self._load_attribute_def(attribute_node, definitions)
        for element_node in node.elements(ELEMENT):
            name = element_node.required_attribute(NAME).as_string()
            element_def = definitions.element_defs.add(name)
            self.debug_print(f"ElementDef {name!r} in {definitions.description}")
            self._load_element_def(element_node, element_def)

    def _load_enum_type_def(self, node: SmlElement, definitions: Definitions):
        node.assure_no_elements()
        node.assure_attribute_names([NAME, VALUES])
        name = node.required_attribute(NAME).as_string()
        values = node.required_attribute(VALUES).get_string_list()
        definitions.add_enum(name, values)
        self.debug_print(f"EnumType {name!r} = {values} in {definitions.description}")

    def _load_struct_def(self, node: SmlElement, definitions: Definitions):
        node.assure_no_elements()
        node.assure_attribute_names([NAME, VALUE])
        name = node.required_attribute(NAME).as_string()
        struct_def = definitions.struct_defs.add(name)
        for value_attribute in node.attributes(VALUE):
            self._load_struct_value(value_attribute, struct_def, definitions)
        self.debug_print(f"Struct {name!r} with {len(struct_def.values)} value(s) in {definitions.description}")

    def _load_struct_value(self, attribute: SmlAttribute, struct_def: StructDef, definitions: Definitions):
        attribute.assure_value_count(3)
        value_name = attribute.get_string(0)
        optional = attribute.get_enum(STRUCT_VALUE_OCCURRENCE_NAMES, 1) == 1
        type_str = attribute.get_string(2)

        nullable = False
        if type_str.endswith("?"):
            nullable = True
            type_str = type_str[:-1]
        base = PredefinedType.from_name(type_str)
        if base is None:
            base = definitions.value_type_defs.get(type_str)
        struct_def.add_value(value_name, optional, base, nullable)

    def _load_attribute_def(self, node: SmlElement, definitions: Definitions):
        node.assure_no_elements()
        node.assure_attribute_names([NAME, DATA_TYPE])
        name = node.required_attribute(NAME).as_string()
        attribute_def = definitions.attribute_defs.add(name)
        attribute_def.data_type = parse_data_type(node.required_attribute(DATA_TYPE).as_string(), definitions)

    def _load_element_def(self, node: SmlElement, element_def: ElementDef):
        node.assure_element_names([DEFINITIONS, UNORDERED_CONTENT, LIST_CONTENT])
        node.assure_attribute_names([NAME])

        definitions_node = node.optional_element(DEFINITIONS)
        if definitions_node is not None:
            definitions_node.assure_element_names(DEFINITION_ELEMENT_NAMES)
            definitions_node.assure_no_attributes()
            self._load_definitions(definitions_node, element_def.definitions)

        node.assure_element_choice([UNORDERED_CONTENT, LIST_CONTENT])
        if node.has_element(LIST_CONTENT):
            element_def.set_content(ContentKind.LIST)

        content = element_def.set_unordered_content()
        content_node = node.required_element(UNORDERED_CONTENT)
        content_node.assure_no_elements()
        content_node.assure_attribute_names([ELEMENT, ATTRIBUTE])

        for element_attribute in content_node.attributes(ELEMENT):
            element_attribute.assure_value_count(2)
            element_name = element_attribute.get_string(0)
            occurrence = parse_occurrence(element_attribute, 1)
            content.add_element(element_name, occurrence)

        for attribute_attribute in content_node.attributes(ATTRIBUTE):
            attribute_attribute.assure_value_count_min_max(2, 3)
            attribute_name = attribute_attribute.get_string(0)
            occurrence = parse_occurrence(attribute_attribute, 1)
            if attribute_attribute.value_count == 2:
                content.add_attribute(attribute_name, occurrence)
            else:
                inline_def = AttributeDef(attribute_name, element_def.definitions)
                inline_def.data_type = parse_data_type(attribute_attribute.get_string(2), element_def.definitions)
                content.add_inline_attribute(inline_def, occurrence)


def load_schema(content: str, verbose: bool = False) -> Schema:
    return SchemaLoader(verbose).parse(content)


def load_schema_file(path: str, verbose: bool = False) -> Schema:
    with open(path, 'r', encoding='utf-8') as f:
        content = f.read()
    return load_schema(content, verbose)
