"""Protocol definitions for pluggable file backends."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime


@dataclass
class FileInfo:
    """File information structure."""

    path: str
    name: str
    size: int
    modified_at: datetime
    created_at: datetime | None = None

    @property
    def stem(self) -> str:
        return self.name.rsplit(".", 1)[0] if "." in self.name else self.name


class BackendProtocol(ABC):
    """Whole-file storage rooted at one directory (one namespace)."""

    @abstractmethod
    def list_files(self, suffix: str | None = None) -> list[FileInfo]:
        """List regular files directly under the root, optionally filtered by suffix."""

    @abstractmethod
    def stat(self, name: str) -> FileInfo | None:
        """Return file info, or ``None`` when the file does not exist."""

    @abstractmethod
    def read_text(self, name: str) -> str | None:
        """Read a whole file, or ``None`` when it does not exist."""

    @abstractmethod
    def write_text(self, name: str, content: str) -> None:
        """Replace a whole file. Readers never observe a partial write."""
