from typing import Any, Dict, Iterator, List, Mapping, Optional


class ParameterBag:
    """
    Request parameters merged from several sources.

    Features:
        - Initialization from a dict: ParameterBag({"a": "1"})
        - get/set/has/remove for single parameters
        - merge() where incoming values overwrite existing keys

    The bag belongs to whoever created it; WebRequest only merges into it.
    """

    def __init__(self, initial: Optional[Mapping[str, Any]] = None) -> None:
        self._data: Dict[str, Any] = dict(initial or {})

    def get(self, name: str, default: Any = None) -> Any:
        return self._data.get(name, default)

    def has(self, name: str) -> bool:
        return name in self._data

    def set(self, name: str, value: Any) -> None:
        self._data[name] = value

    def merge(self, mapping: Mapping[str, Any]) -> None:
        """Copy every item of mapping into the bag, replacing existing keys."""
        self._data.update(mapping)

    def remove(self, name: str) -> Any:
        return self._data.pop(name, None)

    def names(self) -> List[str]:
        return list(self._data)

    def to_dict(self) -> Dict[str, Any]:
        return dict(self._data)

    def clear(self) -> None:
        self._data.clear()

    def __contains__(self, name: object) -> bool:
        return name in self._data

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        return f"ParameterBag({self._data!r})"
