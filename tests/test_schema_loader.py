import pytest

from schema_definitions import Definitions
from schema_errors import (
    DuplicateDefinitionError,
    GrammarViolationError,
    InvalidRangeError,
    InvalidTypeCombinationError,
    RootAmbiguousError,
    RootUndefinedError,
    SchemaParseError,
    SmlParseError,
    UndefinedReferenceError,
    UnsupportedFeatureError,
)
from schema_loader import load_schema, load_schema_file, parse_data_type
from schema_model import DataTypeKind, OccurrenceRange, PredefinedType, Schema


def schema_with(body):
    """Schema document text around the given definition lines."""
    return "Schema\n" + body + "\nEnd\n"


def load_error(content):
    with pytest.raises(SchemaParseError) as excinfo:
        load_schema(content)
    return excinfo.value


def test_load_person(def_path):
    schema = load_schema_file(def_path("person.sml"))
    person = schema.root_element
    assert person.name == "Person"
    assert person.is_unordered
    attributes = person.content.unordered_attributes
    assert [a.attribute_def.name for a in attributes] == ["Name", "Age"]
    assert attributes[0].occurrence.is_required
    assert attributes[0].inline
    assert attributes[0].attribute_def.data_type.predefined_type == PredefinedType.STRING
    assert attributes[1].occurrence.is_optional
    assert person.content.unordered_elements == []


def test_load_drawing(def_path):
    schema = load_schema_file(def_path("drawing.sml"))
    assert schema.root_element.name == "Drawing"
    definitions = schema.definitions
    assert [v.name for v in definitions.value_type_defs] == ["Color"]
    assert [s.name for s in definitions.struct_defs] == ["Point", "Size"]
    assert [e.name for e in definitions.element_defs] == ["Drawing", "Note"]

    drawing = definitions.element_defs.get("Drawing")
    shape = drawing.definitions.element_defs.get("Shape")
    entries = {a.attribute_def.name: a for a in shape.content.unordered_attributes}
    color = entries["Color"].attribute_def.data_type
    assert color.kind == DataTypeKind.VALUE_TYPE
    assert color.nullable
    assert color.value_type_def is definitions.value_type_defs.get("Color")
    layer = entries["Layer"].attribute_def.data_type
    assert layer.value_type_def is drawing.definitions.value_type_defs.get("Layer")
    points = entries["Points"].attribute_def.data_type
    assert points.struct_def is definitions.struct_defs.get("Point")
    assert points.array_range == OccurrenceRange(1, None)

    drawing_attributes = {a.attribute_def.name: a for a in drawing.content.unordered_attributes}
    title = drawing_attributes["Title"]
    assert not title.inline
    assert title.attribute_def is definitions.attribute_defs.get("Title")
    tags = drawing_attributes["Tags"].attribute_def.data_type
    assert tags.is_array and tags.array_nullable
    assert tags.array_range.is_repeated_star
    shapes = drawing.content.unordered_elements
    assert shapes[0].element_def is shape
    assert shapes[0].occurrence.is_repeated_star


def test_recursive_element(def_path):
    schema = load_schema_file(def_path("tree.sml"))
    node = schema.root_element.definitions.element_defs.get("Node")
    assert node.content.unordered_elements[0].element_def is node


def test_names_are_case_insensitive():
    schema = load_schema(
        "schema\n"
        "\telement\n"
        "\t\tname Person\n"
        "\t\tunorderedcontent\n"
        "\t\t\tattribute Name Required string\n"
        "\t\tend\n"
        "\tend\n"
        "end\n")
    data_type = schema.root_element.content.unordered_attributes[0].attribute_def.data_type
    assert data_type.predefined_type == PredefinedType.STRING


def test_verbose_load_prints_debug(def_path, capsys):
    load_schema_file(def_path("person.sml"), verbose=True)
    captured = capsys.readouterr()
    assert "[DEBUG] SchemaLoader:" in captured.err
    load_schema_file(def_path("person.sml"))
    assert "[DEBUG]" not in capsys.readouterr().err


@pytest.mark.parametrize("text, base, nullable, array_range, array_nullable", [
    ("Int", PredefinedType.INT, False, None, False),
    ("int?", PredefinedType.INT, True, None, False),
    ("String[3]", PredefinedType.STRING, False, OccurrenceRange(3, 3), False),
    ("Bool?[0..N]", PredefinedType.BOOL, True, OccurrenceRange(0, None), False),
    ("Number[1..4]?", PredefinedType.NUMBER, False, OccurrenceRange(1, 4), True),
    ("Date?[2..n]?", PredefinedType.DATE, True, OccurrenceRange(2, None), True),
])
def test_parse_data_type(text, base, nullable, array_range, array_nullable):
    data_type = parse_data_type(text, Definitions(None, None))
    assert data_type.base == base
    assert data_type.nullable == nullable
    assert data_type.array_range == array_range
    assert data_type.array_nullable == array_nullable


def test_parse_data_type_resolution_order():
    definitions = Definitions(None, None)
    color = definitions.add_enum("Color", ["Red"])
    point = definitions.struct_defs.add("Point")
    # A value type named like a predefined type never wins.
    definitions.add_enum("Int", ["One"])
    assert parse_data_type("Color", definitions).value_type_def is color
    assert parse_data_type("Point", definitions).struct_def is point
    assert parse_data_type("Int", definitions).predefined_type == PredefinedType.INT


@pytest.mark.parametrize("text, error", [
    ("Int[-1]", InvalidRangeError),
    ("Int[3..2]", InvalidRangeError),
    ("Int[x]", InvalidRangeError),
    ("Int]", GrammarViolationError),
    ("?", GrammarViolationError),
    ("Int?]?", GrammarViolationError),
    ("Missing", UndefinedReferenceError),
])
def test_parse_data_type_errors(text, error):
    with pytest.raises(error):
        parse_data_type(text, Definitions(None, None))


def test_undefined_data_type_message():
    error = load_error(schema_with(
        "\tAttribute\n\t\tName Age\n\t\tDataType Years\n\tEnd"))
    assert isinstance(error.__cause__, UndefinedReferenceError)
    assert 'Data type "Years" not defined in schema' in str(error)
    assert str(error).startswith("Could not parse schema because")


def test_document_syntax_errors_are_wrapped():
    error = load_error("Schema\n\tElement\nEnd\n")
    assert isinstance(error.__cause__, SmlParseError)


@pytest.mark.parametrize("content", [
    "Other\nEnd\n",
    "Schema\n\tFoo\n\tEnd\nEnd\n",
    "Schema\n\tBar 1\nEnd\n",
    schema_with("\tEnumType\n\t\tName Color\n\tEnd"),
    schema_with("\tEnumType\n\t\tName Color\n\t\tValues Red\n\t\tExtra 1\n\tEnd"),
    schema_with("\tStruct\n\t\tName Point\n\t\tValue X Required\n\tEnd"),
    schema_with("\tStruct\n\t\tName Point\n\t\tValue X Sometimes Int\n\tEnd"),
    schema_with("\tElement\n\t\tName A\n\tEnd"),
    schema_with("\tElement\n\t\tName A\n\t\tUnorderedContent\n\t\t\tAttribute X Maybe Int\n\t\tEnd\n\tEnd"),
    schema_with("\tElement\n\t\tName A\n\t\tUnorderedContent\n\t\t\tElement\n\t\t\tEnd\n\t\tEnd\n\tEnd"),
])
def test_grammar_violations(content):
    error = load_error(content)
    assert isinstance(error.__cause__, GrammarViolationError)


def test_list_content_is_unsupported():
    error = load_error(schema_with("\tElement\n\t\tName A\n\t\tListContent\n\t\tEnd\n\tEnd"))
    assert isinstance(error.__cause__, UnsupportedFeatureError)


def test_both_content_kinds_is_a_grammar_violation():
    error = load_error(schema_with(
        "\tElement\n\t\tName A\n\t\tUnorderedContent\n\t\tEnd\n\t\tListContent\n\t\tEnd\n\tEnd"))
    assert isinstance(error.__cause__, GrammarViolationError)


def test_duplicate_definitions():
    error = load_error(schema_with(
        "\tAttribute\n\t\tName Age\n\t\tDataType Int\n\tEnd\n"
        "\tAttribute\n\t\tName Age\n\t\tDataType UInt\n\tEnd"))
    assert isinstance(error.__cause__, DuplicateDefinitionError)


def test_struct_rules_apply_while_loading():
    error = load_error(schema_with(
        "\tStruct\n\t\tName Size\n\t\tValue W Optional Int\n\t\tValue H Required Int\n\tEnd"))
    assert isinstance(error.__cause__, InvalidTypeCombinationError)
    error = load_error(schema_with(
        "\tStruct\n\t\tName Size\n\t\tValue W Required Int\n\t\tValue H Optional Int\n\tEnd\n"
        "\tAttribute\n\t\tName Sizes\n\t\tDataType Size[0..N]\n\tEnd"))
    assert isinstance(error.__cause__, InvalidTypeCombinationError)


def test_struct_values_may_not_be_structs():
    error = load_error(schema_with(
        "\tStruct\n\t\tName Point\n\t\tValue X Required Int\n\tEnd\n"
        "\tStruct\n\t\tName Line\n\t\tValue From Required Point\n\tEnd"))
    assert isinstance(error.__cause__, UndefinedReferenceError)


def test_undefined_element_reference():
    error = load_error(schema_with(
        "\tElement\n\t\tName A\n\t\tUnorderedContent\n\t\t\tElement B Required\n\t\tEnd\n\tEnd"))
    assert isinstance(error.__cause__, UndefinedReferenceError)
    assert 'ElementDef "B" not defined in ElementDef "A"' in str(error)


def test_nested_definitions_are_not_visible_to_siblings():
    error = load_error(schema_with(
        "\tElement\n\t\tName A\n"
        "\t\tDefinitions\n\t\t\tEnumType\n\t\t\t\tName Mode\n\t\t\t\tValues On Off\n\t\t\tEnd\n\t\tEnd\n"
        "\t\tUnorderedContent\n\t\tEnd\n\tEnd\n"
        "\tElement\n\t\tName B\n\t\tUnorderedContent\n\t\t\tAttribute M Required Mode\n\t\tEnd\n\tEnd\n"
        "\tRootElement A"))
    assert isinstance(error.__cause__, UndefinedReferenceError)


def test_default_root_requires_single_element():
    error = load_error(schema_with(
        "\tElement\n\t\tName A\n\t\tUnorderedContent\n\t\tEnd\n\tEnd\n"
        "\tElement\n\t\tName B\n\t\tUnorderedContent\n\t\tEnd\n\tEnd"))
    assert isinstance(error.__cause__, RootAmbiguousError)
    error = load_error(schema_with("\tEnumType\n\t\tName Color\n\t\tValues Red\n\tEnd"))
    assert isinstance(error.__cause__, RootUndefinedError)


def test_root_element_must_be_top_level():
    error = load_error(schema_with(
        "\tRootElement Inner\n"
        "\tElement\n\t\tName Outer\n"
        "\t\tDefinitions\n\t\t\tElement\n\t\t\t\tName Inner\n\t\t\t\tUnorderedContent\n\t\t\t\tEnd\n\t\t\tEnd\n\t\tEnd\n"
        "\t\tUnorderedContent\n\t\t\tElement Inner Optional\n\t\tEnd\n\tEnd"))
    assert isinstance(error.__cause__, RootUndefinedError)


def test_explicit_root_element():
    schema = Schema.parse(schema_with(
        "\tRootElement B\n"
        "\tElement\n\t\tName A\n\t\tUnorderedContent\n\t\tEnd\n\tEnd\n"
        "\tElement\n\t\tName B\n\t\tUnorderedContent\n\t\t\tElement A Repeated+\n\t\tEnd\n\tEnd"))
    assert schema.root_element.name == "B"
    entry = schema.root_element.content.unordered_elements[0]
    assert entry.occurrence == OccurrenceRange.repeated_plus()


def test_struct_value_after_optional_value_fails():
    content = schema_with(
        "\tEnumType\n\t\tName Color\n\t\tValues Red Green Blue\n\tEnd\n"
        "\tStruct\n\t\tName Point\n"
        "\t\tValue x Required Number\n"
        "\t\tValue color Optional Color\n"
        "\t\tValue y Required Number\n"
        "\tEnd\n"
        "\tElement\n\t\tName Canvas\n\t\tUnorderedContent\n\t\tEnd\n\tEnd")
    error = load_error(content)
    assert isinstance(error.__cause__, InvalidTypeCombinationError)
    assert 'Value "y" of struct "Point"' in str(error)

    schema = load_schema(content.replace("\t\tValue y Required Number\n", ""))
    point = schema.definitions.struct_defs.get("Point")
    assert [v.name for v in point.values] == ["x", "color"]
    assert point.values[1].value_type_def is schema.definitions.value_type_defs.get("Color")
    assert point.values[1].optional
