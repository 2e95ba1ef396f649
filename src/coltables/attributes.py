"""Table-level metadata kept apart from column storage."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from types import MappingProxyType
from typing import Any

from coltables.ownership import Owned

# Keys served by dedicated fields rather than extras
RESERVED_KEYS = frozenset({"names", "groups"})

_UNSET: Any = object()


class AttributeSet(Owned):
    """Column names, grouping keys and extra key/value attributes of a table.

    Attribute sets are small and never modified: any change to names,
    grouping or extras produces a new attribute set with a new identity,
    leaving column storage untouched.
    """

    def __init__(
        self,
        names: Iterable[str],
        groups: Iterable[str] = (),
        extras: Mapping[str, Any] | None = None,
    ) -> None:
        super().__init__()
        self._names = tuple(names)
        self._groups = tuple(groups)
        extras = dict(extras or {})
        clash = RESERVED_KEYS.intersection(extras)
        if clash:
            raise ValueError(f"Reserved attribute key(s) cannot be extras: {sorted(clash)}")
        self._extras = MappingProxyType(extras)

    @property
    def names(self) -> tuple[str, ...]:
        return self._names

    @property
    def groups(self) -> tuple[str, ...]:
        return self._groups

    @property
    def extras(self) -> Mapping[str, Any]:
        return self._extras

    @property
    def token(self) -> int:
        """Return the identity token of this attribute set."""
        return id(self)

    def get(self, key: str) -> Any:
        """Look up an attribute by key.

        Raises:
            KeyError: If the key is neither reserved nor an extra.
        """
        if key == "names":
            return self._names
        if key == "groups":
            return self._groups
        try:
            return self._extras[key]
        except KeyError:
            raise KeyError(f"Unknown attribute '{key}'") from None

    def replace(
        self,
        names: Iterable[str] = _UNSET,
        groups: Iterable[str] = _UNSET,
        extras: Mapping[str, Any] = _UNSET,
    ) -> AttributeSet:
        """Return a new attribute set with the given fields changed."""
        return AttributeSet(
            names=self._names if names is _UNSET else names,
            groups=self._groups if groups is _UNSET else groups,
            extras=self._extras if extras is _UNSET else extras,
        )

    def _release_storage(self) -> None:
        self._extras = MappingProxyType({})

    def __repr__(self) -> str:
        parts = [f"names={list(self._names)!r}"]
        if self._groups:
            parts.append(f"groups={list(self._groups)!r}")
        if self._extras:
            parts.append(f"extras={dict(self._extras)!r}")
        return f"AttributeSet({', '.join(parts)})"
