"""Filesystem persistence of raw bytes, one file per blob under a base directory."""

import logging
import os
import re
import uuid
from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path

from app.services.errors import BlobMissingError, InvalidInputError, StorageIOError

logger = logging.getLogger(__name__)

# Extensions kept on stored names; anything else is stored under the bare id.
_EXTENSION_RE = re.compile(r"^[A-Za-z0-9]{1,16}$")


@dataclass(frozen=True)
class Blob:
    """A blob just written to disk."""

    id: str
    stored_name: str
    size: int


def stored_name_for(blob_id: str, original_name: str) -> str:
    """id plus the original extension when it is a plain alphanumeric suffix."""
    suffix = Path(original_name or "").suffix
    extension = suffix[1:] if suffix.startswith(".") else ""
    if extension and _EXTENSION_RE.match(extension):
        return f"{blob_id}.{extension}"
    return blob_id


class BlobStore:
    """
    Content-addressed-by-random-id blob storage.

    Each write targets a freshly generated name opened with O_EXCL, so
    concurrent writes never share a path and no lock is needed.
    """

    def __init__(self, base_path: str | Path) -> None:
        self.base_path = Path(base_path).resolve()
        self.base_path.mkdir(parents=True, exist_ok=True)

    def _path_for(self, stored_name: str) -> Path:
        if (
            not stored_name
            or stored_name in (".", "..")
            or "/" in stored_name
            or "\\" in stored_name
            or "\x00" in stored_name
        ):
            raise InvalidInputError(f"Invalid stored name: {stored_name!r}")
        return self.base_path / stored_name

    def write(self, data: bytes, original_name: str) -> Blob:
        """
        Write data under a new random name and fsync it.

        On failure any partial file is removed and StorageIOError is raised.
        """
        blob_id = str(uuid.uuid4())
        stored_name = stored_name_for(blob_id, original_name)
        path = self._path_for(stored_name)
        try:
            with open(path, "xb") as f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
            self._fsync_dir()
        except OSError as e:
            self._discard_partial(path)
            raise StorageIOError(f"Failed to write blob {stored_name}.", cause=e) from e
        return Blob(id=blob_id, stored_name=stored_name, size=len(data))

    def _fsync_dir(self) -> None:
        """Persist the directory entry of a newly created blob."""
        fd = os.open(self.base_path, os.O_RDONLY)
        try:
            os.fsync(fd)
        finally:
            os.close(fd)

    def _discard_partial(self, path: Path) -> None:
        try:
            path.unlink(missing_ok=True)
        except OSError:
            logger.error("Failed to remove partial blob", extra={"path": str(path)})

    def read(self, stored_name: str) -> bytes:
        path = self._path_for(stored_name)
        try:
            return path.read_bytes()
        except FileNotFoundError as e:
            raise BlobMissingError(f"Blob {stored_name} not found.", cause=e) from e
        except OSError as e:
            raise StorageIOError(f"Failed to read blob {stored_name}.", cause=e) from e

    def delete(self, stored_name: str, *, missing_ok: bool = False) -> bool:
        """Remove a blob. Returns False when it was already gone and missing_ok is set."""
        path = self._path_for(stored_name)
        try:
            path.unlink()
        except FileNotFoundError as e:
            if missing_ok:
                return False
            raise BlobMissingError(f"Blob {stored_name} not found.", cause=e) from e
        except OSError as e:
            raise StorageIOError(f"Failed to delete blob {stored_name}.", cause=e) from e
        return True

    def exists(self, stored_name: str) -> bool:
        return self._path_for(stored_name).is_file()

    def iter_blobs(self) -> Iterator[tuple[str, float]]:
        """Yield (stored_name, mtime) for every regular file in the base directory."""
        try:
            entries = list(os.scandir(self.base_path))
        except OSError as e:
            raise StorageIOError("Failed to list blob directory.", cause=e) from e
        for entry in entries:
            try:
                if not entry.is_file(follow_symlinks=False):
                    continue
                mtime = entry.stat(follow_symlinks=False).st_mtime
            except FileNotFoundError:
                # Deleted since the directory was listed.
                continue
            yield entry.name, mtime

    def is_writable(self) -> bool:
        return self.base_path.is_dir() and os.access(self.base_path, os.W_OK)
