"""
Alipay Canonical Parameter Set

An ordered, string-keyed collection used both as the outgoing request body
and as the input to signing. Empty values are never stored and a key may
only be set once per request.
"""

from datetime import datetime
from typing import Any, Dict, Iterator, Mapping, Optional
from urllib.parse import quote_plus

from .constants import DATE_TIME_FORMAT, DEFAULT_CHARSET
from .exceptions import DuplicateParameterError


def _to_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, datetime):
        return value.strftime(DATE_TIME_FORMAT)
    return str(value)


class ParameterSet:
    """
    Request parameters in insertion order.

    set() silently drops None and empty values; setting a key that already
    holds a value raises DuplicateParameterError.
    """

    def __init__(self, initial: Optional[Mapping[str, Any]] = None):
        self._items: Dict[str, str] = {}
        if initial:
            for key, value in initial.items():
                self.set(key, value)

    def set(self, key: str, value: Any) -> None:
        text = _to_text(value)
        if not key or not text:
            return
        if key in self._items:
            raise DuplicateParameterError(key)
        self._items[key] = text

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        return self._items.get(key, default)

    def remove(self, key: str) -> Optional[str]:
        return self._items.pop(key, None)

    def sorted_view(self) -> "ParameterSet":
        """Return an independent copy ordered by key, byte-wise ascending."""
        view = ParameterSet()
        for key in sorted(self._items, key=lambda k: k.encode("utf-8")):
            view._items[key] = self._items[key]
        return view

    def to_query_string(self, sort: bool = False, charset: str = DEFAULT_CHARSET) -> str:
        """URL-encode values and join as key=value pairs separated by '&'."""
        source = self.sorted_view() if sort else self
        return "&".join(
            f"{key}={quote_plus(value, encoding=charset)}"
            for key, value in source.items()
        )

    def items(self):
        return self._items.items()

    def to_dict(self) -> Dict[str, str]:
        return dict(self._items)

    def __contains__(self, key: object) -> bool:
        return key in self._items

    def __getitem__(self, key: str) -> str:
        return self._items[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __repr__(self) -> str:
        return f"ParameterSet({list(self._items)})"
