"""
name_allocator.py
Assigns collision-free identifiers within one generated artifact and remembers, per
schema entity, the identifier it got and the construct generated for it.
"""
from typing import Any, Callable, Dict, List, Optional

from schema_errors import NameAllocationError

MAX_SUFFIX = 99


def change_leading_case(name: str, start_upper_case: bool) -> str:
    first = name[:1]
    return (first.upper() if start_upper_case else first.lower()) + name[1:]


class NameAllocator:
    def __init__(self, start_upper_case: bool,
                 normalize: Optional[Callable[[str, bool], str]] = None):
        self.start_upper_case = start_upper_case
        self._normalize = normalize or change_leading_case
        self._names: List[str] = []
        # Keyed by id() so that entities are matched by identity.
        self._name_lookup: Dict[int, str] = {}
        self._construct_lookup: Dict[int, Any] = {}
        self._entities: Dict[int, Any] = {}

    @property
    def names(self) -> List[str]:
        return list(self._names)

    def is_used(self, name: str) -> bool:
        return name in self._names

    def generate_name(self, name: str) -> str:
        """First unused candidate of: the normalized name, then name2 .. name99."""
        if not name:
            raise NameAllocationError("Invalid name: empty")
        name = self._normalize(name, self.start_upper_case)
        if name not in self._names:
            return name
        for i in range(2, MAX_SUFFIX + 1):
            candidate = f"{name}{i}"
            if candidate not in self._names:
                return candidate
        raise NameAllocationError(f'Too many identical names for "{name}"')

    def reserve(self, name: str) -> str:
        """Generate a name and mark it used without binding it to an entity."""
        name = self.generate_name(name)
        self._names.append(name)
        return name

    def add(self, entity: Any, name: str, construct: Any = None):
        if name in self._names:
            raise NameAllocationError(f'Name "{name}" already allocated')
        key = id(entity)
        if key in self._name_lookup:
            raise NameAllocationError(f"Entity {entity!r} already has the name \"{self._name_lookup[key]}\"")
        self._entities[key] = entity
        self._name_lookup[key] = name
        self._construct_lookup[key] = construct
        self._names.append(name)

    def allocate(self, entity: Any, name: str, construct: Any = None) -> str:
        name = self.generate_name(name)
        self.add(entity, name, construct)
        return name

    def contains(self, entity: Any) -> bool:
        return id(entity) in self._name_lookup

    def get_name(self, entity: Any) -> str:
        key = id(entity)
        if key not in self._name_lookup:
            raise NameAllocationError(f"No name allocated for {entity!r}")
        return self._name_lookup[key]

    def get(self, entity: Any) -> Any:
        key = id(entity)
        if key not in self._construct_lookup:
            raise NameAllocationError(f"No construct registered for {entity!r}")
        return self._construct_lookup[key]
