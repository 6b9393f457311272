"""File backends for plans and review files."""

from __future__ import annotations

from planreview.backends.filesystem import FilesystemBackend
from planreview.backends.protocol import BackendProtocol, FileInfo

__all__ = ["BackendProtocol", "FileInfo", "FilesystemBackend"]
