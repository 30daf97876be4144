"""Ordered multi-valued form container used as a request body.

A :class:`FormData` body is handed to the transport untouched: the
transport decides the encoding (``multipart/form-data`` when at least one
field carries a file, ``application/x-www-form-urlencoded`` otherwise) and
sets the matching ``Content-Type`` itself.
"""

from __future__ import annotations

from typing import IO, Any, Iterator, Optional, Union

FileField = tuple[str, Union[bytes, IO[bytes]], Optional[str]]
"""A file value: ``(filename, content, content_type)``."""

FormValue = Union[str, FileField]


class FormData:
    """Form fields in insertion order, allowing several values per name.

    Example::

        form = FormData()
        form.append("title", "report")
        form.append("file", "report.csv", b"a,b\\n1,2\\n", "text/csv")
    """

    def __init__(self, fields: Optional[dict[str, Any]] = None) -> None:
        self._items: list[tuple[str, FormValue]] = []
        for name, value in (fields or {}).items():
            self.append(name, value)

    def append(
        self,
        name: str,
        value: Any,
        content: Union[bytes, IO[bytes], None] = None,
        content_type: Optional[str] = None,
    ) -> FormData:
        """Add a field. With *content*, *value* is the filename of a file field."""
        if content is not None:
            self._items.append((name, (str(value), content, content_type)))
        else:
            self._items.append((name, str(value)))
        return self

    def set(self, name: str, value: Any) -> FormData:
        """Replace every value of *name* with *value*, keeping the first position."""
        index = next((i for i, (key, _) in enumerate(self._items) if key == name), None)
        self.delete(name)
        if index is None:
            self._items.append((name, str(value)))
        else:
            self._items.insert(index, (name, str(value)))
        return self

    def delete(self, name: str) -> FormData:
        self._items = [(key, value) for key, value in self._items if key != name]
        return self

    def get(self, name: str) -> Optional[FormValue]:
        for key, value in self._items:
            if key == name:
                return value
        return None

    def get_all(self, name: str) -> list[FormValue]:
        return [value for key, value in self._items if key == name]

    def entries(self) -> Iterator[tuple[str, FormValue]]:
        """Iterate ``(name, value)`` pairs in insertion order."""
        return iter(list(self._items))

    def has_files(self) -> bool:
        return any(isinstance(value, tuple) for _, value in self._items)

    def to_httpx(self) -> dict[str, Any]:
        """Return the ``data`` / ``files`` keyword arguments for :mod:`httpx`."""
        fields: dict[str, list[str]] = {}
        files: list[tuple[str, FileField]] = []
        for name, value in self._items:
            if isinstance(value, tuple):
                files.append((name, value))
            else:
                fields.setdefault(name, []).append(value)

        kwargs: dict[str, Any] = {}
        if fields:
            kwargs["data"] = fields
        if files:
            kwargs["files"] = files
        return kwargs

    def __iter__(self) -> Iterator[tuple[str, FormValue]]:
        return self.entries()

    def __len__(self) -> int:
        return len(self._items)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, FormData):
            return NotImplemented
        return self._items == other._items

    def __repr__(self) -> str:
        return f"FormData({self._items!r})"

