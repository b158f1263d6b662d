"""
Function Registry
-----------------
The ordered list of local functions the server may trigger.
Loaded once from configuration and never modified afterwards.

Only name and description ever leave the machine. The command path
stays local.
"""

from dataclasses import dataclass
from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple


MAX_FUNCTION_ID = 255

LOOKUP_BY_INDEX = "index"
LOOKUP_BY_ID = "id"
LOOKUP_POLICIES = (LOOKUP_BY_INDEX, LOOKUP_BY_ID)


@dataclass(frozen=True)
class FunctionDefinition:
    """A named, described mapping from a small id to a local executable."""
    id: int
    name: str
    command: str
    description: str = ""

    def disclose(self, include_id: bool = False) -> Dict[str, Any]:
        """Public view sent to the server. Never includes ``command``."""
        public: Dict[str, Any] = {"name": self.name, "description": self.description}
        if include_id:
            public = {"id": self.id, **public}
        return public

    def __repr__(self) -> str:
        return f"FunctionDefinition(id={self.id}, name={self.name})"


class FunctionRegistry:
    """
    Registry of configured functions.

    Resolution depends on the lookup policy:
    - ``index``: position in the configured list
    - ``id``: first function whose ``id`` field matches; later duplicates
      are shadowed
    """

    def __init__(
        self,
        functions: Iterable[FunctionDefinition] = (),
        lookup: str = LOOKUP_BY_INDEX
    ):
        if lookup not in LOOKUP_POLICIES:
            raise ValueError(f"Unknown lookup policy: {lookup!r}")
        self._functions: Tuple[FunctionDefinition, ...] = tuple(functions)
        self._lookup = lookup

    @property
    def lookup(self) -> str:
        return self._lookup

    def resolve(self, key: int) -> Optional[FunctionDefinition]:
        """Resolve an exec id to a function under the active policy."""
        if self._lookup == LOOKUP_BY_ID:
            return self.get_by_id(key)
        return self.get_by_index(key)

    def get_by_index(self, index: int) -> Optional[FunctionDefinition]:
        if 0 <= index < len(self._functions):
            return self._functions[index]
        return None

    def get_by_id(self, function_id: int) -> Optional[FunctionDefinition]:
        for func in self._functions:
            if func.id == function_id:
                return func
        return None

    def list_functions(self) -> List[FunctionDefinition]:
        return list(self._functions)

    def disclose(self) -> List[Dict[str, Any]]:
        """
        Public view of the whole registry, in configured order.

        Under index lookup the id is implied by position, so only name and
        description go out. Under id lookup the server needs the id too.
        """
        include_id = self._lookup == LOOKUP_BY_ID
        return [func.disclose(include_id=include_id) for func in self._functions]

    def __len__(self) -> int:
        return len(self._functions)

    def __iter__(self) -> Iterator[FunctionDefinition]:
        return iter(self._functions)

    def __contains__(self, key: int) -> bool:
        return self.resolve(key) is not None
