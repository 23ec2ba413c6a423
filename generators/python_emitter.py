"""
Python 3 emitter for the schema code generator.
Renders enumerated types as Enum classes and records as dataclasses; type-level
operations become classmethods. Generated modules import the SML document runtime.
"""
import json
import keyword
from typing import List

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
    Return,
    RUNTIME_ATTRIBUTE,
    RUNTIME_DOCUMENT,
    RUNTIME_ELEMENT,
    RuntimeType,
    ScalarType,
    SelfType,
    TypeRef,
    ZeroValue,
)
from schema_model import PredefinedType

INDENT = "    "

PREDEFINED_TO_PY = {
    PredefinedType.BOOL: "bool",
    PredefinedType.INT: "int",
    PredefinedType.UINT: "int",
    PredefinedType.NUMBER: "float",
    PredefinedType.STRING: "str",
    PredefinedType.DATE: "datetime.date",
    PredefinedType.TIME: "datetime.time",
    PredefinedType.BASE64: "bytes",
    PredefinedType.DATETIME: "datetime.datetime",
}

PREDEFINED_ZERO_PY = {
    PredefinedType.BOOL: "False",
    PredefinedType.INT: "0",
    PredefinedType.UINT: "0",
    PredefinedType.NUMBER: "0.0",
    PredefinedType.STRING: '""',
    PredefinedType.DATE: "datetime.date(1970, 1, 1)",
    PredefinedType.TIME: "datetime.time(0, 0)",
    PredefinedType.BASE64: 'b""',
    PredefinedType.DATETIME: "datetime.datetime(1970, 1, 1)",
}

RUNTIME_CLASS_NAMES = {
    RUNTIME_DOCUMENT: "SmlDocument",
    RUNTIME_ELEMENT: "SmlElement",
    RUNTIME_ATTRIBUTE: "SmlAttribute",
}

# Names that would shadow builtins or the generated module's own imports and methods.
PYTHON_RESERVED_NAMES = {
    'dict', 'list', 'set', 'tuple', 'int', 'float', 'str', 'bool', 'bytes', 'object', 'type',
    'print', 'super', 'self', 'cls', 'property', 'staticmethod', 'classmethod', 'len', 'id',
    'min', 'max', 'range', 'iter', 'next', 'repr', 'format', 'hash',
    'field', 'dataclass', 'datetime', 'Enum', 'List', 'Optional',
    'load', 'parse', 'read',
    *RUNTIME_CLASS_NAMES.values(),
}


class PythonEmitter(CodeEmitter):
    def __init__(self, runtime_module: str = "sml_document"):
        super().__init__()
        self.runtime_module = runtime_module

    def identifier(self, name: str, start_upper_case: bool) -> str:
        chars = [c if ('_' + c).isidentifier() else '_' for c in name]
        result = "".join(chars)
        if not result:
            result = "_"
        first = result[0]
        result = (first.upper() if start_upper_case else first.lower()) + result[1:]
        if result[0].isdigit():
            result = "_" + result
        if keyword.iskeyword(result) or result in PYTHON_RESERVED_NAMES:
            result += "_"
        # Enum treats _sunder_ and __dunder__ names as non-members.
        if start_upper_case and len(result) > 1 and result.startswith("_") and result.endswith("_"):
            result = "Value" + result
        return result

    # --- Types and defaults ---
    def render_type(self, description) -> str:
        if isinstance(description, ScalarType):
            return PREDEFINED_TO_PY[description.kind]
        if isinstance(description, NamedType):
            return description.name
        if isinstance(description, RuntimeType):
            return RUNTIME_CLASS_NAMES[description.role]
        if isinstance(description, NullableType):
            return f"Optional[{self.render_type(description.inner)}]"
        if isinstance(description, ListType):
            return f"List[{self.render_type(description.inner)}]"
        raise TypeError(f"Unknown type description {description!r}")

    def render_default(self, default) -> str:
        if isinstance(default, ZeroValue):
            return PREDEFINED_ZERO_PY[default.kind]
        if isinstance(default, NoValue):
            return "None"
        if isinstance(default, EmptyList):
            return "field(default_factory=list)"
        if isinstance(default, NewInstance):
            return f"field(default_factory=lambda: {default.type_name}())"
        if isinstance(default, EnumMember):
            return f"{default.type_name}.{default.member}"
        raise TypeError(f"Unknown default {default!r}")

    # --- Expressions ---
    def render_literal(self, value) -> str:
        if value is None or isinstance(value, bool):
            return repr(value)
        if isinstance(value, (int, float)):
            return repr(value)
        if isinstance(value, str):
            return json.dumps(value)
        if isinstance(value, list):
            return "[" + ", ".join(self.render_literal(v) for v in value) + "]"
        raise TypeError(f"Unsupported literal {value!r}")

    def render_expression(self, expression) -> str:
        if isinstance(expression, Name):
            return expression.identifier
        if isinstance(expression, SelfType):
            return "cls"
        if isinstance(expression, TypeRef):
            return expression.type_name
        if isinstance(expression, RuntimeType):
            return RUNTIME_CLASS_NAMES[expression.role]
        if isinstance(expression, Attr):
            return f"{self.render_expression(expression.target)}.{expression.name}"
        if isinstance(expression, Call):
            args = ", ".join(self.render_expression(a) for a in expression.args)
            return f"{self.render_expression(expression.function)}({args})"
        if isinstance(expression, Literal):
            return self.render_literal(expression.value)
        if isinstance(expression, Add):
            if isinstance(expression.right, Literal) and expression.right.value == 0:
                return self.render_expression(expression.left)
            return f"{self.render_expression(expression.left)} + {self.render_expression(expression.right)}"
        if isinstance(expression, EnumMemberAt):
            return f"list({self.render_expression(expression.enum_type)})[{self.render_expression(expression.index)}]"
        if isinstance(expression, IsPresent):
            return f"{self.render_expression(expression.operand)} is not None"
        if isinstance(expression, IsAbsent):
            return f"{self.render_expression(expression.operand)} is None"
        if isinstance(expression, GreaterThan):
            return f"{self.render_expression(expression.left)} > {self.render_expression(expression.right)}"
        if isinstance(expression, And):
            return f"{self.render_expression(expression.left)} and {self.render_expression(expression.right)}"
        raise TypeError(f"Unknown expression {expression!r}")

    def render_statement(self, statement) -> str:
        if isinstance(statement, Assign):
            return f"{self.render_expression(statement.target)} = {self.render_expression(statement.value)}"
        if isinstance(statement, Append):
            return f"{self.render_expression(statement.target)}.append({self.render_expression(statement.value)})"
        if isinstance(statement, Return):
            return f"return {self.render_expression(statement.value)}"
        if isinstance(statement, Evaluate):
            return self.render_expression(statement.expression)
        raise TypeError(f"Unknown statement {statement!r}")

    def render_header(self, header) -> str:
        if isinstance(header, If):
            return f"if {self.render_expression(header.condition)}:"
        if isinstance(header, ForEach):
            return f"for {header.variable} in {self.render_expression(header.iterable)}:"
        raise TypeError(f"Unknown block header {header!r}")

    # --- Declarations ---
    def render_signature(self, signature: MethodSignature) -> str:
        params = ["cls"]
        for p in signature.parameters:
            text = f"{p.name}: {self.render_type(p.type_description)}"
            if p.default is not None:
                text += f" = {self.render_expression(p.default)}"
            params.append(text)
        return f"def {signature.name}({', '.join(params)}) -> {self.render_type(signature.returns)}:"

    def render_body(self, body: MethodBody, level: int) -> List[str]:
        if not body.is_closed:
            raise ValueError("Method body has an unclosed block")
        lines = []
        depth = level
        block_is_empty = []
        for kind, item in body.entries:
            if kind == MethodBody.OPEN:
                if block_is_empty:
                    block_is_empty[-1] = False
                lines.append(INDENT * depth + self.render_header(item))
                depth += 1
                block_is_empty.append(True)
            elif kind == MethodBody.CLOSE:
                if block_is_empty.pop():
                    lines.append(INDENT * depth + "pass")
                depth -= 1
            else:
                if block_is_empty:
                    block_is_empty[-1] = False
                lines.append(INDENT * depth + self.render_statement(item))
        if not lines:
            lines.append(INDENT * level + "pass")
        return lines

    def render_methods(self, declared: DeclaredType) -> List[str]:
        lines = []
        for signature, body in declared.methods:
            lines.append("")
            lines.append(INDENT + "@classmethod")
            lines.append(INDENT + self.render_signature(signature))
            lines.extend(self.render_body(body, 2))
        return lines

    def render_enum(self, declared: DeclaredType) -> List[str]:
        lines = [f"class {declared.name}(Enum):"]
        if declared.doc:
            lines.append(f'{INDENT}"""{declared.doc}"""')
        for identifier, literal in declared.variants:
            lines.append(f"{INDENT}{identifier} = {self.render_literal(literal)}")
        lines.extend(self.render_methods(declared))
        return lines

    def render_record(self, declared: DeclaredType) -> List[str]:
        lines = ["@dataclass", f"class {declared.name}:"]
        if declared.doc:
            lines.append(f'{INDENT}"""{declared.doc}"""')
        for f in declared.fields:
            lines.append(f"{INDENT}{f.name}: {self.render_type(f.type_description)} = {self.render_default(f.default)}")
        lines.extend(self.render_methods(declared))
        if len(lines) == 2:
            lines.append(f"{INDENT}pass")
        return lines

    def render(self) -> str:
        runtime_names = ", ".join(sorted(RUNTIME_CLASS_NAMES.values()))
        lines = [
            "# This module was generated. Do not modify. Changes might be overwritten.",
            "from __future__ import annotations",
            "",
            "import datetime",
            "from dataclasses import dataclass, field",
            "from enum import Enum",
            "from typing import List, Optional",
            "",
            f"from {self.runtime_module} import {runtime_names}",
        ]
        for declared in self.types:
            lines.append("")
            lines.append("")
            if declared.kind == DeclaredType.ENUM:
                lines.extend(self.render_enum(declared))
            else:
                lines.extend(self.render_record(declared))
        return "\n".join(lines) + "\n"
