"""
schema_codegen.py
Generates data-binding code for a Schema through a CodeEmitter.

Declarations are made in dependency order: all value types (depth first through every
scope), then all structs, then all elements. Scopes only see ancestor definitions, so
every referenced entity has been named before it is used.
"""
import sys

import code_emitter as ce
from code_emitter import (
    Add,
    And,
    Append,
    Assign,
    Attr,
    Call,
    CodeEmitter,
    DeclaredType,
    EmptyList,
    EnumMember,
    EnumMemberAt,
    Evaluate,
    ForEach,
    GreaterThan,
    If,
    IsAbsent,
    IsPresent,
    ListType,
    Literal,
    MethodBody,
    MethodSignature,
    Name,
    NamedType,
    NewInstance,
    NoValue,
    NullableType,
    Parameter,
    Return,
    RuntimeType,
    ScalarType,
    SelfType,
    TypeRef,
    ZeroValue,
)
from name_allocator import NameAllocator
from schema_definitions import Definitions
from schema_errors import CodeGenerationError, SchemaError, UnsupportedFeatureError
from schema_model import (
    AttributeDataType,
    ContentKind,
    DataTypeKind,
    ElementDef,
    EnumTypeDef,
    OccurrenceRange,
    PredefinedType,
    Schema,
    StructDef,
    ValueTypeDef,
    ValueTypeKind,
)

ENUM_SUFFIX = "Enum"
STRUCT_SUFFIX = "Struct"
ELEMENT_SUFFIX = "Element"
DOCUMENT_SUFFIX = "Document"
LIST_SUFFIX = "List"

LOAD = "load"
PARSE = "parse"
READ = "read"

# Local names used inside generated operations.
ATTRIBUTE_VAR = "attribute"
ELEMENT_VAR = "element"
CHILD_VAR = "child"
RESULT_VAR = "result"
INDEX_VAR = "index"
NULLABLE_VAR = "nullable"
POSITION_VAR = "position"
CONTENT_VAR = "content"
DOCUMENT_VAR = "document"


class SchemaCodeGenerator:
    def __init__(self, schema: Schema, emitter: CodeEmitter, verbose: bool = False):
        self.schema = schema
        self.emitter = emitter
        self.verbose = verbose
        self.type_names = NameAllocator(True, emitter.identifier)

    def debug_print(self, message: str) -> None:
        if self.verbose:
            print(f"[DEBUG] SchemaCodeGenerator: {message}", file=sys.stderr)

    def generate(self) -> str:
        try:
            self._generate_value_types()
            self._generate_structs()
            self._generate_elements(self.schema.definitions)
            return self.emitter.render()
        except SchemaError as e:
            self.debug_print(f"generation failed: {e}")
            raise CodeGenerationError(f"Could not generate code because {e}") from e

    # --- Type mapping ---

    def _enum_def(self, value_type_def: ValueTypeDef) -> EnumTypeDef:
        if value_type_def.kind == ValueTypeKind.ENUM:
            return value_type_def
        raise UnsupportedFeatureError(
            f'Code generation for {value_type_def.kind.value} value type "{value_type_def.name}" is not supported')

    def _value_type_default(self, value_type_def: ValueTypeDef):
        enum_def = self._enum_def(value_type_def)
        declared: DeclaredType = self.type_names.get(enum_def)
        return EnumMember(declared.name, declared.variants[0][0])

    def _elemental_type(self, data_type: AttributeDataType):
        if data_type.kind == DataTypeKind.PREDEFINED:
            return ScalarType(data_type.base)
        if data_type.kind == DataTypeKind.VALUE_TYPE:
            return NamedType(self.type_names.get_name(self._enum_def(data_type.base)))
        return NamedType(self.type_names.get_name(data_type.base))

    def _elemental_default(self, data_type: AttributeDataType):
        if data_type.kind == DataTypeKind.PREDEFINED:
            return ZeroValue(data_type.base)
        if data_type.kind == DataTypeKind.VALUE_TYPE:
            return self._value_type_default(data_type.base)
        return NewInstance(self.type_names.get_name(data_type.base))

    def _data_type_description(self, data_type: AttributeDataType):
        type_description = self._elemental_type(data_type)
        if data_type.nullable:
            type_description = NullableType(type_description)
        if data_type.is_array:
            type_description = ListType(type_description)
            if data_type.array_nullable:
                type_description = NullableType(type_description)
        return type_description

    def _data_type_default(self, data_type: AttributeDataType):
        if data_type.is_array:
            return NoValue() if data_type.array_nullable else EmptyList()
        if data_type.nullable:
            return NoValue()
        return self._elemental_default(data_type)

    def _reader(self, data_type: AttributeDataType):
        if data_type.kind == DataTypeKind.PREDEFINED:
            return Call(Attr(RuntimeType(ce.RUNTIME_ATTRIBUTE), ce.READER), [Literal(data_type.base.value)])
        if data_type.kind == DataTypeKind.VALUE_TYPE:
            return Attr(TypeRef(self.type_names.get_name(self._enum_def(data_type.base))), PARSE)
        return Attr(TypeRef(self.type_names.get_name(data_type.base)), READ)

    def _load_expression(self, data_type: AttributeDataType):
        """Expression converting the current attribute's values to the data type."""
        min_arity = max_arity = 1
        if data_type.kind == DataTypeKind.STRUCT:
            struct_def: StructDef = data_type.base
            if not struct_def.values:
                raise UnsupportedFeatureError(f'Struct "{struct_def.name}" without values cannot be read')
            min_arity = struct_def.required_count
            max_arity = len(struct_def.values)
        attribute = Name(ATTRIBUTE_VAR)
        reader = self._reader(data_type)
        if data_type.is_array:
            return Call(Attr(attribute, ce.AS_ARRAY), [
                reader,
                Literal(data_type.array_range.min),
                Literal(data_type.array_range.max),
                Literal(data_type.nullable),
                Literal(data_type.array_nullable),
                Literal(max_arity),
            ])
        return Call(Attr(attribute, ce.AS_SINGLE), [
            reader, Literal(data_type.nullable), Literal(min_arity), Literal(max_arity)])

    # --- Value types ---

    def _generate_value_types(self):
        for definitions in self.schema.definitions.iter_scopes():
            for value_type_def in definitions.value_type_defs.values:
                self._generate_enum(self._enum_def(value_type_def))

    def _generate_enum(self, enum_def: EnumTypeDef):
        name = self.type_names.generate_name(enum_def.name + ENUM_SUFFIX)
        declared = self.emitter.declare_enum(name)
        self.type_names.add(enum_def, name, declared)
        self.debug_print(f"enum {enum_def.name!r} -> {name}")

        members = NameAllocator(True, self.emitter.identifier)
        for value in enum_def.values:
            declared.add_variant(members.reserve(value), value)

        signature = MethodSignature(PARSE, [
            Parameter(ATTRIBUTE_VAR, RuntimeType(ce.RUNTIME_ATTRIBUTE)),
            Parameter(INDEX_VAR, ScalarType(PredefinedType.INT), Literal(0)),
            Parameter(NULLABLE_VAR, ScalarType(PredefinedType.BOOL), Literal(False)),
        ], NullableType(NamedType(name)))
        body = declared.add_method(signature)
        body.append_line(Assign(Name(POSITION_VAR), Call(Attr(Name(ATTRIBUTE_VAR), ce.GET_ENUM), [
            Literal(enum_def.values), Name(INDEX_VAR), Name(NULLABLE_VAR)])))
        body.open_block(If(IsAbsent(Name(POSITION_VAR))))
        body.append_line(Return(Literal(None)))
        body.close_block()
        body.append_line(Return(EnumMemberAt(SelfType(), Name(POSITION_VAR))))

    # --- Structs ---

    def _generate_structs(self):
        for definitions in self.schema.definitions.iter_scopes():
            for struct_def in definitions.struct_defs.values:
                self._generate_struct(struct_def)

    def _generate_struct(self, struct_def: StructDef):
        name = self.type_names.generate_name(struct_def.name + STRUCT_SUFFIX)
        declared = self.emitter.declare_record(name)
        self.type_names.add(struct_def, name, declared)
        self.debug_print(f"struct {struct_def.name!r} -> {name}")

        signature = MethodSignature(READ, [
            Parameter(ATTRIBUTE_VAR, RuntimeType(ce.RUNTIME_ATTRIBUTE)),
            Parameter(INDEX_VAR, ScalarType(PredefinedType.INT), Literal(0)),
            Parameter(NULLABLE_VAR, ScalarType(PredefinedType.BOOL), Literal(False)),
        ], NullableType(NamedType(name)))
        body = declared.add_method(signature)
        body.open_block(If(And(Name(NULLABLE_VAR), Call(Attr(Name(ATTRIBUTE_VAR), ce.IS_NULL), [Name(INDEX_VAR)]))))
        body.append_line(Return(Literal(None)))
        body.close_block()
        body.append_line(Assign(Name(RESULT_VAR), Call(SelfType())))

        fields = NameAllocator(False, self.emitter.identifier)
        for position, value in enumerate(struct_def.values):
            field_name = fields.reserve(value.name)
            if value.is_predefined_type:
                type_description = ScalarType(value.base)
                default = ZeroValue(value.base)
                read = Call(Attr(Name(ATTRIBUTE_VAR), ce.GET_VALUE), [
                    Literal(value.base.value), Add(Name(INDEX_VAR), Literal(position)), Literal(value.nullable)])
            else:
                enum_name = self.type_names.get_name(self._enum_def(value.base))
                type_description = NamedType(enum_name)
                default = self._value_type_default(value.base)
                read = Call(Attr(TypeRef(enum_name), PARSE), [
                    Name(ATTRIBUTE_VAR), Add(Name(INDEX_VAR), Literal(position)), Literal(value.nullable)])
            if value.nullable or value.optional:
                type_description = NullableType(type_description)
                default = NoValue()
            declared.add_field(field_name, type_description, default)

            target = Attr(Name(RESULT_VAR), field_name)
            if value.optional:
                body.open_block(If(GreaterThan(
                    Attr(Name(ATTRIBUTE_VAR), ce.VALUE_COUNT), Add(Name(INDEX_VAR), Literal(position)))))
                body.append_line(Assign(target, read))
                body.close_block()
            else:
                body.append_line(Assign(target, read))
        body.append_line(Return(Name(RESULT_VAR)))

    # --- Elements ---

    def _generate_elements(self, definitions: Definitions):
        for element_def in definitions.element_defs.values:
            self._generate_element_def(element_def)

    def _generate_element_def(self, element_def: ElementDef):
        is_root = element_def is self.schema.root_element
        suffix = DOCUMENT_SUFFIX if is_root else ELEMENT_SUFFIX
        name = self.type_names.generate_name(element_def.name + suffix)
        declared = self.emitter.declare_record(name)
        self.type_names.add(element_def, name, declared)
        self.debug_print(f"element {element_def.name!r} -> {name}")

        # Registered first so nested elements can refer back to this one.
        self._generate_elements(element_def.definitions)

        content = element_def.content
        if content is not None and content.kind != ContentKind.UNORDERED:
            raise UnsupportedFeatureError(
                f'Code generation for {content.kind.value} content of element "{element_def.name}" is not supported')
        unordered_attributes = content.unordered_attributes if content is not None else []
        unordered_elements = content.unordered_elements if content is not None else []

        body = declared.add_method(MethodSignature(LOAD, [
            Parameter(ELEMENT_VAR, RuntimeType(ce.RUNTIME_ELEMENT)),
        ], NamedType(name)))
        element = Name(ELEMENT_VAR)
        body.append_line(Evaluate(Call(Attr(element, ce.ASSURE_NAME), [Literal(element_def.name)])))
        if unordered_elements:
            names = [e.element_def.name for e in unordered_elements]
            body.append_line(Evaluate(Call(Attr(element, ce.ASSURE_ELEMENT_NAMES), [Literal(names)])))
        else:
            body.append_line(Evaluate(Call(Attr(element, ce.ASSURE_NO_ELEMENTS))))
        if unordered_attributes:
            names = [a.attribute_def.name for a in unordered_attributes]
            body.append_line(Evaluate(Call(Attr(element, ce.ASSURE_ATTRIBUTE_NAMES), [Literal(names)])))
        else:
            body.append_line(Evaluate(Call(Attr(element, ce.ASSURE_NO_ATTRIBUTES))))
        body.append_line(Assign(Name(RESULT_VAR), Call(SelfType())))

        fields = NameAllocator(False, self.emitter.identifier)
        for unordered_attribute in unordered_attributes:
            self._generate_unordered_attribute(unordered_attribute, declared, body, fields)
        for unordered_element in unordered_elements:
            self._generate_unordered_element(unordered_element, declared, body, fields)
        body.append_line(Return(Name(RESULT_VAR)))

        if is_root:
            body = declared.add_method(MethodSignature(PARSE, [
                Parameter(CONTENT_VAR, ScalarType(PredefinedType.STRING)),
            ], NamedType(name)))
            body.append_line(Assign(Name(DOCUMENT_VAR), Call(
                Attr(RuntimeType(ce.RUNTIME_DOCUMENT), ce.PARSE_DOCUMENT), [Name(CONTENT_VAR)])))
            body.append_line(Return(Call(Attr(SelfType(), LOAD), [Attr(Name(DOCUMENT_VAR), ce.DOCUMENT_ROOT)])))

    def _check_occurrence(self, occurrence: OccurrenceRange, what: str):
        if not (occurrence.is_required or occurrence.is_optional or occurrence.is_repeated):
            raise UnsupportedFeatureError(
                f"Occurrence {occurrence.min}..{occurrence.max} of {what} is not supported")

    def _emit_extraction(self, body: MethodBody, occurrence: OccurrenceRange, variable: str,
                         required_op: str, optional_op: str, plus_op: str, star_op: str,
                         node_name: str, field_name: str, load):
        """Emit the required/optional/repeated extraction of one named node into a field."""
        element = Name(ELEMENT_VAR)
        target = Attr(Name(RESULT_VAR), field_name)
        if occurrence.is_required:
            body.append_line(Assign(Name(variable), Call(Attr(element, required_op), [Literal(node_name)])))
            body.append_line(Assign(target, load))
        elif occurrence.is_optional:
            body.append_line(Assign(Name(variable), Call(Attr(element, optional_op), [Literal(node_name)])))
            body.open_block(If(IsPresent(Name(variable))))
            body.append_line(Assign(target, load))
            body.close_block()
        else:
            op = plus_op if occurrence.is_repeated_plus else star_op
            body.open_block(ForEach(variable, Call(Attr(element, op), [Literal(node_name)])))
            body.append_line(Append(target, load))
            body.close_block()

    def _generate_unordered_attribute(self, unordered_attribute, declared: DeclaredType,
                                      body: MethodBody, fields: NameAllocator):
        attribute_def = unordered_attribute.attribute_def
        occurrence = unordered_attribute.occurrence
        self._check_occurrence(occurrence, f'attribute "{attribute_def.name}"')
        data_type = attribute_def.data_type

        type_description = self._data_type_description(data_type)
        default = self._data_type_default(data_type)
        base_name = attribute_def.name
        if occurrence.is_repeated:
            base_name += LIST_SUFFIX
            type_description = ListType(type_description)
            default = EmptyList()
        elif occurrence.is_optional:
            if not isinstance(type_description, NullableType):
                type_description = NullableType(type_description)
            default = NoValue()
        field_name = fields.reserve(base_name)
        declared.add_field(field_name, type_description, default)

        self._emit_extraction(body, occurrence, ATTRIBUTE_VAR,
                              ce.REQUIRED_ATTRIBUTE, ce.OPTIONAL_ATTRIBUTE,
                              ce.ONE_OR_MORE_ATTRIBUTES, ce.ATTRIBUTES,
                              attribute_def.name, field_name, self._load_expression(data_type))

    def _generate_unordered_element(self, unordered_element, declared: DeclaredType,
                                    body: MethodBody, fields: NameAllocator):
        child_def = unordered_element.element_def
        occurrence = unordered_element.occurrence
        self._check_occurrence(occurrence, f'element "{child_def.name}"')
        child_type = self.type_names.get_name(child_def)

        type_description = NamedType(child_type)
        default = NewInstance(child_type)
        base_name = child_def.name
        if occurrence.is_repeated:
            base_name += LIST_SUFFIX
            type_description = ListType(type_description)
            default = EmptyList()
        elif occurrence.is_optional:
            type_description = NullableType(type_description)
            default = NoValue()
        field_name = fields.reserve(base_name)
        declared.add_field(field_name, type_description, default)

        load = Call(Attr(TypeRef(child_type), LOAD), [Name(CHILD_VAR)])
        self._emit_extraction(body, occurrence, CHILD_VAR,
                              ce.REQUIRED_ELEMENT, ce.OPTIONAL_ELEMENT,
                              ce.ONE_OR_MORE_ELEMENTS, ce.ELEMENTS,
                              child_def.name, field_name, load)


def generate_code(schema: Schema, emitter: CodeEmitter, verbose: bool = False) -> str:
    return SchemaCodeGenerator(schema, emitter, verbose).generate()


def generate_python_code(schema: Schema, runtime_module: str = "sml_document", verbose: bool = False) -> str:
    from generators.python_emitter import PythonEmitter
    return generate_code(schema, PythonEmitter(runtime_module), verbose)
