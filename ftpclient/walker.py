"""Depth-first traversal of a remote directory tree."""

import posixpath
from dataclasses import dataclass
from typing import Any, Iterator, Protocol

from ftpclient.entry import Entry, EntryType


class _Lister(Protocol):
    def list(self, path: str) -> list[Entry]: ...


@dataclass
class _Item:
    path: str
    entry: Entry
    err: Exception | None = None


def _join(base: str, name: str) -> str:
    if not base and not name:
        return ""
    joined = posixpath.normpath(posixpath.join(base, name))
    if joined.startswith("//"):
        joined = "/" + joined.lstrip("/")
    return joined


class Walker:
    """Walks the tree below ``root`` on the server behind ``server_conn``."""

    def __init__(self, server_conn: _Lister, root: str) -> None:
        if not root.endswith("/"):
            root += "/"
        self.server_conn = server_conn
        self.root = root
        self._cur: _Item | None = None
        self._stack: list[_Item] = []
        self._descend = True

    def next(self) -> bool:
        """Advance to the next file or directory; return False at the end.

        If listing a directory fails the walk stops and :meth:`err` reports it.
        """
        if self._cur is None:
            self._cur = _Item(self.root, Entry(type=EntryType.FOLDER))

        if self._descend and self._cur.entry.type == EntryType.FOLDER:
            try:
                entries = self.server_conn.list(self._cur.path)
            except Exception as exc:
                self._cur.err = exc
                return False
            for entry in entries or ():
                if entry.name in (".", ".."):
                    continue
                self._stack.append(_Item(_join(self._cur.path, entry.name), entry))

        if not self._stack:
            return False

        self._cur = self._stack.pop()
        self._descend = True
        return True

    def skip_dir(self) -> None:
        """Do not descend into the directory currently visited."""
        self._descend = False

    def err(self) -> Exception | None:
        """Return the error from the most recent visit, if any."""
        return None if self._cur is None else self._cur.err

    def stat(self) -> Entry | None:
        """Return the entry most recently visited."""
        return None if self._cur is None else self._cur.entry

    def path(self) -> str:
        """Return the path most recently visited, prefixed by the root."""
        return self.root if self._cur is None else self._cur.path

    def __iter__(self) -> Iterator[tuple[str, Entry]]:
        """Yield ``(path, entry)`` pairs, raising a listing error at the end."""
        while self.next():
            yield self.path(), self.stat()
        error = self.err()
        if error is not None:
            raise error

    def __repr__(self) -> str:
        return f"Walker(root={self.root!r})"

    def __eq__(self, other: Any) -> bool:
        return NotImplemented