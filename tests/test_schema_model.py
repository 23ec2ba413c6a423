import pytest

from schema_errors import (
    DuplicateDefinitionError,
    InvalidRangeError,
    InvalidTypeCombinationError,
    RootAmbiguousError,
    RootUndefinedError,
    UnsupportedFeatureError,
    WriteOnceError,
)
from schema_model import (
    AttributeDataType,
    AttributeDef,
    ContentKind,
    DataTypeKind,
    ElementDef,
    EnumTypeDef,
    OccurrenceRange,
    PredefinedType,
    Schema,
    StructDef,
)


def test_occurrence_named_ranges():
    assert OccurrenceRange.required().is_required
    assert OccurrenceRange.optional().is_optional
    assert OccurrenceRange.repeated_plus().is_repeated_plus
    assert OccurrenceRange.repeated_star().is_repeated_star
    assert OccurrenceRange.repeated_plus().is_repeated
    assert not OccurrenceRange.optional().is_repeated
    assert OccurrenceRange.fixed(3).is_fixed
    assert not OccurrenceRange(1, 3).is_fixed


def test_occurrence_unset_min_is_zero():
    occurrence = OccurrenceRange(None, None)
    assert occurrence.min == 0
    assert occurrence == OccurrenceRange.repeated_star()
    assert occurrence.is_repeated_star


@pytest.mark.parametrize("min_value, max_value", [(-1, None), (0, -1), (3, 2)])
def test_occurrence_invalid_bounds(min_value, max_value):
    with pytest.raises(InvalidRangeError):
        OccurrenceRange(min_value, max_value)


def test_predefined_type_lookup_is_case_insensitive():
    assert PredefinedType.from_name("datetime") == PredefinedType.DATETIME
    assert PredefinedType.from_name("UINT") == PredefinedType.UINT
    assert PredefinedType.from_name("Color") is None


def test_enum_type_values():
    enum_def = EnumTypeDef("Color", ["Red", "Green"])
    assert enum_def.values == ["Red", "Green"]
    with pytest.raises(InvalidTypeCombinationError):
        EnumTypeDef("Empty", [])
    with pytest.raises(DuplicateDefinitionError):
        EnumTypeDef("Twice", ["A", "A"])


def test_struct_trailing_optional_rule():
    struct_def = StructDef("Size")
    struct_def.add_value("Width", False, PredefinedType.UINT)
    struct_def.add_value("Height", True, PredefinedType.UINT)
    assert struct_def.has_optional
    assert struct_def.required_count == 1
    with pytest.raises(InvalidTypeCombinationError, match="before was optional"):
        struct_def.add_value("Depth", False, PredefinedType.UINT)
    struct_def.add_value("Depth", True, PredefinedType.UINT)
    assert [v.name for v in struct_def.values] == ["Width", "Height", "Depth"]


def test_struct_duplicate_value():
    struct_def = StructDef("Point")
    struct_def.add_value("X", False, PredefinedType.NUMBER)
    with pytest.raises(DuplicateDefinitionError):
        struct_def.add_value("X", False, PredefinedType.NUMBER)


def test_struct_value_type_string():
    color = EnumTypeDef("Color", ["Red"])
    struct_def = StructDef("Pixel")
    struct_def.add_value("Color", False, color, nullable=True)
    struct_def.add_value("Alpha", False, PredefinedType.NUMBER)
    assert [v.get_type_string() for v in struct_def.values] == ["Color?", "Number"]
    assert struct_def.values[0].value_type_def is color
    assert struct_def.values[1].predefined_type == PredefinedType.NUMBER


def test_attribute_data_type_rendering():
    color = EnumTypeDef("Color", ["Red"])
    assert str(AttributeDataType(PredefinedType.STRING)) == "String"
    assert str(AttributeDataType(color, nullable=True)) == "Color?"
    assert str(AttributeDataType(PredefinedType.INT, False, OccurrenceRange.fixed(3))) == "Int[3]"
    assert str(AttributeDataType(PredefinedType.INT, True, OccurrenceRange(2, 5), True)) == "Int?[2..5]?"
    assert str(AttributeDataType(PredefinedType.INT, False, OccurrenceRange(0, None))) == "Int[0..N]"


def test_attribute_data_type_kinds():
    point = StructDef("Point")
    point.add_value("X", False, PredefinedType.NUMBER)
    data_type = AttributeDataType(point, False, OccurrenceRange(1, None))
    assert data_type.kind == DataTypeKind.STRUCT
    assert data_type.struct_def is point
    assert data_type.is_array
    assert data_type.predefined_type is None


def test_array_nullable_requires_array():
    with pytest.raises(InvalidTypeCombinationError):
        AttributeDataType(PredefinedType.INT, False, None, True)


def test_array_of_struct_with_optional_values_is_rejected():
    size = StructDef("Size")
    size.add_value("Width", False, PredefinedType.UINT)
    size.add_value("Height", True, PredefinedType.UINT)
    AttributeDataType(size)
    with pytest.raises(InvalidTypeCombinationError, match="optional values"):
        AttributeDataType(size, False, OccurrenceRange(0, None))


def test_attribute_data_type_is_write_once():
    attribute_def = AttributeDef("Title")
    assert not attribute_def.has_data_type
    with pytest.raises(WriteOnceError):
        attribute_def.data_type
    attribute_def.data_type = AttributeDataType(PredefinedType.STRING)
    with pytest.raises(WriteOnceError):
        attribute_def.data_type = AttributeDataType(PredefinedType.INT)


def test_element_content_is_write_once():
    element_def = ElementDef("Person")
    content = element_def.set_unordered_content()
    assert element_def.is_unordered
    assert element_def.content is content
    with pytest.raises(WriteOnceError):
        element_def.set_unordered_content()


@pytest.mark.parametrize("kind", [ContentKind.ORDERED, ContentKind.LIST])
def test_reserved_content_kinds_fail(kind):
    with pytest.raises(UnsupportedFeatureError):
        ElementDef("Person").set_content(kind)


def test_unordered_content_duplicates():
    element_def = ElementDef("Person")
    element_def.definitions.element_defs.add("Child")
    content = element_def.set_unordered_content()
    content.add_element("Child", OccurrenceRange.optional())
    with pytest.raises(DuplicateDefinitionError):
        content.add_element("Child", OccurrenceRange.required())
    inline = AttributeDef("Age")
    inline.data_type = AttributeDataType(PredefinedType.INT)
    content.add_inline_attribute(inline, OccurrenceRange.optional())
    with pytest.raises(DuplicateDefinitionError):
        content.add_inline_attribute(inline, OccurrenceRange.optional())


def test_root_element_rules():
    schema = Schema()
    with pytest.raises(RootUndefinedError):
        schema.root_element
    with pytest.raises(RootUndefinedError):
        schema.set_root_element_default()
    schema.definitions.element_defs.add("A")
    schema.set_root_element_default()
    assert schema.root_element.name == "A"
    schema.definitions.element_defs.add("B")
    with pytest.raises(RootAmbiguousError):
        schema.set_root_element_default()
    schema.set_root_element_by_name("B")
    assert schema.root_element.name == "B"
