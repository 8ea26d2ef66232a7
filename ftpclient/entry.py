"""Directory entries and transfer types."""

from dataclasses import dataclass
from datetime import datetime
from enum import IntEnum, StrEnum


class EntryType(IntEnum):
    """Kind of a directory entry."""

    FILE = 0
    FOLDER = 1
    LINK = 2

    def __str__(self) -> str:
        return self.name.lower()


class TransferType(StrEnum):
    """Representation type used for data transfers."""

    BINARY = "I"
    ASCII = "A"


@dataclass
class Entry:
    """A file, folder or link as reported by a directory listing."""

    name: str = ""
    target: str = ""
    type: EntryType = EntryType.FILE
    size: int = 0
    time: datetime | None = None