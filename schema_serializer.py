"""
schema_serializer.py
Writes a Schema back to an SML node tree in canonical order: value types, structs,
attributes, then elements, each in declaration order and recursively per element scope.
"""
from schema_definitions import Definitions
from schema_errors import InvalidRangeError, UnsupportedFeatureError
from schema_loader import (
    ATTRIBUTE,
    DATA_TYPE,
    DEFINITIONS,
    ELEMENT,
    ENUM_TYPE,
    NAME,
    ROOT_ELEMENT,
    SCHEMA,
    STRUCT,
    UNORDERED_CONTENT,
    VALUE,
    VALUES,
)
from schema_model import (
    AttributeDef,
    ContentKind,
    ElementDef,
    OccurrenceRange,
    Schema,
    StructDef,
    ValueTypeDef,
    ValueTypeKind,
)
from sml_document import SmlDocument, SmlElement


def serialize_occurrence(occurrence: OccurrenceRange) -> str:
    if occurrence.is_required:
        return "Required"
    if occurrence.is_optional:
        return "Optional"
    if occurrence.is_repeated_plus:
        return "Repeated+"
    if occurrence.is_repeated_star:
        return "Repeated*"
    raise InvalidRangeError(f"Occurrence {occurrence.min}..{occurrence.max} has no textual form")


def _serialize_value_type_def(value_type_def: ValueTypeDef, parent: SmlElement):
    if value_type_def.kind == ValueTypeKind.ENUM:
        node = parent.add_element(ENUM_TYPE)
        node.add_attribute(NAME, [value_type_def.name])
        node.add_attribute(VALUES, value_type_def.values)
    else:
        raise UnsupportedFeatureError(
            f'Serializing {value_type_def.kind.value} value type "{value_type_def.name}" is not supported')


def _serialize_struct_def(struct_def: StructDef, parent: SmlElement):
    node = parent.add_element(STRUCT)
    node.add_attribute(NAME, [struct_def.name])
    for value in struct_def.values:
        node.add_attribute(VALUE, [value.name, "Optional" if value.optional else "Required", value.get_type_string()])


def _serialize_attribute_def(attribute_def: AttributeDef, parent: SmlElement):
    node = parent.add_element(ATTRIBUTE)
    node.add_attribute(NAME, [attribute_def.name])
    node.add_attribute(DATA_TYPE, [str(attribute_def.data_type)])


def _serialize_element_def(element_def: ElementDef, parent: SmlElement):
    node = parent.add_element(ELEMENT)
    node.add_attribute(NAME, [element_def.name])
    if not element_def.definitions.is_empty:
        _serialize_definitions(element_def.definitions, node.add_element(DEFINITIONS))

    content = element_def.content
    if content is None:
        return
    if content.kind != ContentKind.UNORDERED:
        raise UnsupportedFeatureError(
            f'Serializing {content.kind.value} content of element "{element_def.name}" is not supported')
    content_node = node.add_element(UNORDERED_CONTENT)
    for unordered_attribute in content.unordered_attributes:
        values = [unordered_attribute.attribute_def.name, serialize_occurrence(unordered_attribute.occurrence)]
        if unordered_attribute.inline:
            values.append(str(unordered_attribute.attribute_def.data_type))
        content_node.add_attribute(ATTRIBUTE, values)
    for unordered_element in content.unordered_elements:
        content_node.add_attribute(
            ELEMENT, [unordered_element.element_def.name, serialize_occurrence(unordered_element.occurrence)])


def _serialize_definitions(definitions: Definitions, parent: SmlElement):
    for value_type_def in definitions.value_type_defs.values:
        _serialize_value_type_def(value_type_def, parent)
    for struct_def in definitions.struct_defs.values:
        _serialize_struct_def(struct_def, parent)
    for attribute_def in definitions.attribute_defs.values:
        _serialize_attribute_def(attribute_def, parent)
    for element_def in definitions.element_defs.values:
        _serialize_element_def(element_def, parent)


def serialize_schema(schema: Schema) -> SmlDocument:
    root = SmlElement(SCHEMA)
    _serialize_definitions(schema.definitions, root)
    # With a single top-level element the loader picks it as root by default.
    if len(schema.definitions.element_defs) > 1:
        root.add_attribute(ROOT_ELEMENT, [schema.root_element.name])
    return SmlDocument(root)
