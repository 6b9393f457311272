"""FilesystemBackend: Read and write files directly from the filesystem."""

from __future__ import annotations

import os
import tempfile
from datetime import UTC, datetime
from pathlib import Path

from planreview.backends.protocol import BackendProtocol, FileInfo
from planreview.errors import StorageIOError
from planreview.logging import get_logger

logger = get_logger(__name__)

TEMP_SUFFIX = ".tmp"


class FilesystemBackend(BackendProtocol):
    """Backend that reads and writes files in a single directory."""

    def __init__(self, root_dir: str | Path, *, create: bool = False) -> None:
        """Initialize filesystem backend.

        Args:
            root_dir: Directory holding the files.
            create: Create ``root_dir`` if it does not exist yet.
        """
        self.root = Path(root_dir).expanduser()
        if create:
            self.root.mkdir(parents=True, exist_ok=True)

    def _resolve_path(self, name: str) -> Path:
        """Resolve a file name inside the root, rejecting anything that escapes it."""
        if not name or name.startswith(".") or "/" in name or "\\" in name or "\x00" in name:
            raise ValueError(f"Invalid file name: {name!r}")
        return self.root / name

    @staticmethod
    def _info(path: Path, st: os.stat_result) -> FileInfo:
        birth = getattr(st, "st_birthtime", None)
        return FileInfo(
            path=str(path),
            name=path.name,
            size=int(st.st_size),
            modified_at=datetime.fromtimestamp(st.st_mtime, UTC),
            created_at=datetime.fromtimestamp(birth, UTC) if birth is not None else None,
        )

    def list_files(self, suffix: str | None = None) -> list[FileInfo]:
        """List files, skipping anything that vanishes while listing."""
        if not self.root.is_dir():
            return []

        results: list[FileInfo] = []
        try:
            entries = list(os.scandir(self.root))
        except OSError as e:
            raise StorageIOError(f"Error listing '{self.root}': {e}", path=self.root) from e

        for entry in entries:
            if entry.name.startswith("."):
                continue
            if suffix and not entry.name.endswith(suffix):
                continue
            try:
                if not entry.is_file():
                    continue
                results.append(self._info(Path(entry.path), entry.stat()))
            except FileNotFoundError:
                continue
            except OSError as e:
                logger.warning("Skipping unreadable entry %s: %s", entry.path, e)

        results.sort(key=lambda x: x.name)
        return results

    def stat(self, name: str) -> FileInfo | None:
        path = self._resolve_path(name)
        try:
            return self._info(path, path.stat())
        except FileNotFoundError:
            return None
        except OSError as e:
            raise StorageIOError(f"Error reading '{path}': {e}", path=path) from e

    def read_text(self, name: str) -> str | None:
        path = self._resolve_path(name)
        try:
            with open(path, encoding="utf-8", newline="") as f:
                return f.read()
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as e:
            raise StorageIOError(f"Error reading '{path}': {e}", path=path) from e

    def write_text(self, name: str, content: str) -> None:
        """Write to a temporary sibling file, then rename it over the target."""
        path = self._resolve_path(name)
        tmp_name: str | None = None
        try:
            self.root.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self.root, prefix=f".{name}.", suffix=TEMP_SUFFIX)
            with os.fdopen(fd, "w", encoding="utf-8", newline="") as f:
                f.write(content)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, path)
            tmp_name = None
        except (OSError, UnicodeEncodeError) as e:
            raise StorageIOError(f"Error writing '{path}': {e}", path=path) from e
        finally:
            if tmp_name is not None:
                try:
                    os.unlink(tmp_name)
                except OSError:
                    logger.debug("Could not remove temporary file %s", tmp_name)
