"""Blob store collaborator used to resolve and stream served files."""

import logging
import stat
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

import aiofiles
import aiofiles.os

from rserve.exceptions import BlobStoreError

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024

Writer = Callable[[bytes], Awaitable[None]]


class ResolutionKind(str, Enum):
    """What a remote path refers to."""

    NOT_FOUND = "not_found"
    SINGLE = "single"
    MULTIPLE = "multiple"


@dataclass(frozen=True)
class Resolution:
    """Result of resolving a remote path."""

    kind: ResolutionKind
    size: int = 0


NOT_FOUND = Resolution(ResolutionKind.NOT_FOUND)
MULTIPLE = Resolution(ResolutionKind.MULTIPLE)


class BlobStore(ABC):
    """Interface for the storage backend that holds served files.

    Every call names the remote and path explicitly. Implementations must not
    keep selection state between calls, since requests are served
    concurrently.
    """

    @abstractmethod
    async def resolve(self, remote: str, path: str) -> Resolution:
        """Resolve a path within a remote to zero, one or many objects."""
        pass

    @abstractmethod
    async def stream(self, remote: str, path: str, write: Writer) -> None:
        """Stream the bytes of a single object to ``write``."""
        pass


class LocalBlobStore(BlobStore):
    """Local filesystem implementation of the blob store.

    Each remote name maps to a root directory. Example: remote ``docs`` with
    root ``/srv/docs`` serves ``/report.pdf`` from ``/srv/docs/report.pdf``.
    """

    def __init__(self, roots: Mapping[str, str | Path]) -> None:
        """Create a local blob store from remote name to root directory."""
        self._roots = {name: Path(root).resolve() for name, root in roots.items()}

    def _get_path(self, remote: str, path: str) -> Path | None:
        """Get the physical path, or None if it cannot name a file under the root."""
        if (root := self._roots.get(remote)) is None:
            raise BlobStoreError(f"Unknown remote '{remote}'")
        try:
            candidate = (root / path.lstrip("/")).resolve()
        except ValueError:
            logger.warning("Rejecting unrepresentable path: %r", path)
            return None
        if not candidate.is_relative_to(root):
            logger.warning("Rejecting path outside of remote root: %s", path)
            return None
        return candidate

    async def resolve(self, remote: str, path: str) -> Resolution:
        """Resolve a path within a remote to zero, one or many objects."""
        blob_path = self._get_path(remote, path)
        if blob_path is None:
            return NOT_FOUND
        try:
            result = await aiofiles.os.stat(blob_path)
        except (FileNotFoundError, NotADirectoryError, ValueError):
            return NOT_FOUND
        except OSError as err:
            raise BlobStoreError(f"Failed to stat {path}: {err}") from err
        if stat.S_ISDIR(result.st_mode):
            return MULTIPLE
        return Resolution(ResolutionKind.SINGLE, size=result.st_size)

    async def stream(self, remote: str, path: str, write: Writer) -> None:
        """Stream the bytes of a single object to ``write``."""
        blob_path = self._get_path(remote, path)
        if blob_path is None:
            raise FileNotFoundError(path)
        async with aiofiles.open(blob_path, "rb") as f:
            while chunk := await f.read(CHUNK_SIZE):
                await write(chunk)
