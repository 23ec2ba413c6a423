"""
schema_definitions.py
Chained definition scopes. A Definitions object holds four independent namespaces
(value types, structs, attributes, elements); each namespace falls back to the same
namespace of the enclosing scope on lookup. Duplicate names are only rejected within the
local namespace, so an inner scope may shadow an outer definition.
"""
from typing import Callable, Dict, Generic, Iterator, List, Optional, TypeVar

from schema_errors import DuplicateDefinitionError, UndefinedReferenceError, UnsupportedFeatureError
from schema_model import AttributeDef, ElementDef, EnumTypeDef, StructDef, ValueTypeDef

T = TypeVar('T')


class DefinitionList(Generic[T]):
    def __init__(self, parent: Optional['DefinitionList[T]'], type_description: str,
                 self_description: str, factory: Optional[Callable[[str], T]]):
        self._items: Dict[str, T] = {}
        self.parent = parent
        self.type_description = type_description
        self.self_description = self_description
        self._factory = factory

    def __repr__(self):
        return f"DefinitionList({self.type_description} in {self.self_description}: {list(self._items)})"

    @property
    def values(self) -> List[T]:
        """Local definitions in declaration order."""
        return list(self._items.values())

    def __iter__(self) -> Iterator[T]:
        return iter(self.values)

    def __len__(self) -> int:
        return len(self._items)

    def has(self, name: str) -> bool:
        if name in self._items:
            return True
        if self.parent is None:
            return False
        return self.parent.has(name)

    def has_local(self, name: str) -> bool:
        return name in self._items

    def get_or_none(self, name: str) -> Optional[T]:
        if name in self._items:
            return self._items[name]
        if self.parent is None:
            return None
        return self.parent.get_or_none(name)

    def get(self, name: str) -> T:
        item = self.get_or_none(name)
        if item is None:
            raise UndefinedReferenceError(f'{self.type_description} "{name}" not defined in {self.self_description}')
        return item

    def _check_local(self, name: str):
        if name in self._items:
            raise DuplicateDefinitionError(
                f'{self.type_description} "{name}" already exists in {self.self_description}')

    def add(self, name: str) -> T:
        """Create an empty definition with the given name and register it."""
        self._check_local(name)
        if self._factory is None:
            raise UnsupportedFeatureError(
                f'{self.type_description} "{name}" cannot be created empty, use add_existing')
        item = self._factory(name)
        self._items[name] = item
        return item

    def add_existing(self, name: str, item: T) -> T:
        self._check_local(name)
        self._items[name] = item
        return item


class Definitions:
    def __init__(self, owner_element_def: Optional[ElementDef], parent: Optional['Definitions']):
        self.owner_element_def = owner_element_def
        self.parent = parent
        if owner_element_def is None:
            self.description = "schema"
        else:
            self.description = f'ElementDef "{owner_element_def.name}"'

        def parent_list(attr):
            return getattr(parent, attr) if parent is not None else None

        self.value_type_defs: DefinitionList[ValueTypeDef] = DefinitionList(
            parent_list('value_type_defs'), "ValueTypeDef", self.description, None)
        self.struct_defs: DefinitionList[StructDef] = DefinitionList(
            parent_list('struct_defs'), "StructDef", self.description, lambda name: StructDef(name, self))
        self.attribute_defs: DefinitionList[AttributeDef] = DefinitionList(
            parent_list('attribute_defs'), "AttributeDef", self.description, lambda name: AttributeDef(name, self))
        self.element_defs: DefinitionList[ElementDef] = DefinitionList(
            parent_list('element_defs'), "ElementDef", self.description, lambda name: ElementDef(name, self))

    def __repr__(self):
        return f"Definitions({self.description})"

    @property
    def is_empty(self) -> bool:
        return not (self.value_type_defs or self.struct_defs or self.attribute_defs or self.element_defs)

    def add_enum(self, name: str, values: List[str]) -> EnumTypeDef:
        enum_type_def = EnumTypeDef(name, values)
        self.value_type_defs.add_existing(name, enum_type_def)
        return enum_type_def

    def iter_scopes(self) -> Iterator['Definitions']:
        """This scope followed by every nested element scope, depth first."""
        yield self
        for element_def in self.element_defs.values:
            yield from element_def.definitions.iter_scopes()
