"""
Write-once local file storage.

Every path can be created exactly once. Deciding whether a path is free and
creating it happen under one store-wide lock, so two uploads racing for the
same name can never both win. Copying the body happens after the lock is
released, which keeps slow uploads from blocking everyone else.
"""
import os
import posixpath
import threading
from pathlib import Path
from typing import AsyncIterable, BinaryIO, Tuple

from starlette.concurrency import run_in_threadpool


class UploadError(Exception):
    """Base class for errors that end an upload, carries the HTTP status."""
    status_code = 500

    def __init__(self, message: str, path: str = ""):
        super().__init__(message)
        self.path = path


class ForbiddenPathError(UploadError):
    """The path cannot be written, e.g. it resolves to the storage root."""
    status_code = 403


class PathConflictError(UploadError):
    """Something was already stored at the path."""
    status_code = 409


class StorageError(UploadError):
    """Filesystem failure while creating the target."""
    status_code = 500


class StorageWriteError(StorageError):
    """Copying the body failed after the target was created."""


class WriteOnceStore:
    """
    Stores uploads below a root directory, refusing to overwrite anything.

    Partially written files (failed copy, client gone) are left on disk as
    they are.
    """

    def __init__(self, root: Path):
        self.root = Path(root)
        self._lock = threading.Lock()

    def resolve(self, path: str) -> Path:
        """
        Map a request path to a location under the storage root.

        `.` and `..` are resolved lexically with the path anchored at `/`, so
        no sequence of segments can climb above the root.

        Raises:
            ForbiddenPathError: If the path resolves to the root itself or
                contains a NUL byte
        """
        if "\0" in path:
            raise ForbiddenPathError("path contains a NUL byte", path)

        relative = posixpath.normpath("/" + path).lstrip("/")
        if relative in ("", "."):
            raise ForbiddenPathError("cannot write to storage root", path)

        return self.root.joinpath(*relative.split("/"))

    def open_new(self, path: str) -> Tuple[Path, BinaryIO]:
        """
        Atomically check that nothing exists at `path` and create it.

        Returns:
            Tuple of (full path, binary handle open for writing)

        Raises:
            ForbiddenPathError: If the path is not writable at all
            PathConflictError: If the path already exists
            StorageError: On any other filesystem error
        """
        fullpath = self.resolve(path)

        with self._lock:
            try:
                os.makedirs(fullpath.parent, mode=0o755, exist_ok=True)
            except OSError as e:
                raise StorageError(f"could not create dir for {fullpath}: {e}", path) from e

            try:
                os.stat(fullpath)
            except FileNotFoundError:
                pass
            except OSError as e:
                raise StorageError(f"could not stat {fullpath}: {e}", path) from e
            else:
                raise PathConflictError(f"{fullpath} already exists", path)

            try:
                # Exclusive create also guards against writers outside this process
                handle = open(fullpath, "xb")
            except FileExistsError as e:
                raise PathConflictError(f"{fullpath} already exists", path) from e
            except OSError as e:
                raise StorageError(f"could not create {fullpath}: {e}", path) from e

        return fullpath, handle

    async def create_if_absent(self, path: str, chunks: AsyncIterable[bytes]) -> int:
        """
        Create `path` and copy an async byte stream into it.

        Args:
            path: Request path, sanitized by resolve()
            chunks: Body of the upload

        Returns:
            Number of bytes written

        Raises:
            ForbiddenPathError, PathConflictError, StorageError: As open_new
            StorageWriteError: If writing the body fails after creation
        """
        fullpath, handle = await run_in_threadpool(self.open_new, path)

        written = 0
        try:
            async for chunk in chunks:
                if not chunk:
                    continue
                await run_in_threadpool(handle.write, chunk)
                written += len(chunk)
        except OSError as e:
            raise StorageWriteError(f"error writing {fullpath}: {e}", path) from e
        finally:
            try:
                await run_in_threadpool(handle.close)
            except OSError as e:
                # Close flushes, so a full disk can surface here too
                raise StorageWriteError(f"error closing {fullpath}: {e}", path) from e

        return written
