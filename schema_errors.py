"""
schema_errors.py
Exception types raised while reading SML documents, loading schemas and generating code.
Every error is fatal to the operation that raised it.
"""


class SchemaError(Exception):
    pass


class SmlParseError(SchemaError):
    """Raised when SML document text is malformed (bad string literal, missing End, ...)."""

    def __init__(self, message: str, line: int = None):
        if line is not None:
            message = f"{message} (line {line})"
        super().__init__(message)
        self.line = line


class GrammarViolationError(SchemaError):
    """Unexpected or missing element/attribute name, or a wrong value count."""
    pass


class UndefinedReferenceError(SchemaError):
    pass


class DuplicateDefinitionError(SchemaError):
    pass


class InvalidRangeError(SchemaError, ValueError):
    pass


class InvalidTypeCombinationError(SchemaError):
    pass


class UnsupportedFeatureError(SchemaError):
    pass


class RootAmbiguousError(SchemaError):
    pass


class RootUndefinedError(SchemaError):
    pass


class WriteOnceError(SchemaError):
    pass


class NameAllocationError(SchemaError):
    pass


class SchemaParseError(SchemaError):
    """Wraps whatever went wrong while loading a schema, with the cause chained."""
    pass


class CodeGenerationError(SchemaError):
    pass
