import asyncio
import os
import tempfile
from pathlib import Path
from typing import Protocol, TypeVar

from pydantic import BaseModel, TypeAdapter, ValidationError

from light_bookmarks.models.bookmark import Bookmark
from light_bookmarks.models.collection import Collection

M = TypeVar("M", bound=BaseModel)

BOOKMARKS_FILE = "bookmarks.json"
COLLECTIONS_FILE = "collections.json"


class StorageError(Exception):
    """Exception raised when persisted state cannot be read or written."""

    pass


class Storage(Protocol):
    """Persistence contract used by the bookmark session."""

    async def load_bookmarks(self) -> list[Bookmark]: ...

    async def load_collections(self) -> list[Collection]: ...

    async def save_bookmarks(self, bookmarks: list[Bookmark]) -> None: ...

    async def save_collections(self, collections: list[Collection]) -> None: ...


class JsonFileStorage:
    """Storage backend keeping bookmarks and collections in JSON files.

    Writes go through a temporary file that replaces the target, and writes
    to the same file are serialized so a slower, older save can never land
    after a newer one.

    Attributes:
        directory: Folder holding the JSON files
    """

    def __init__(self, directory: str | Path) -> None:
        """Initialize the storage backend.

        Args:
            directory: Folder holding the JSON files, created on first save
        """
        self.directory = Path(directory)
        self._locks: dict[str, asyncio.Lock] = {}

    async def load_bookmarks(self) -> list[Bookmark]:
        """Load persisted bookmarks.

        Returns:
            The stored bookmarks, or an empty list if nothing was saved yet

        Raises:
            StorageError: If the file cannot be read or parsed
        """
        return await self._load(BOOKMARKS_FILE, TypeAdapter(list[Bookmark]))

    async def load_collections(self) -> list[Collection]:
        """Load persisted collections.

        Returns:
            The stored collections, or an empty list if nothing was saved yet

        Raises:
            StorageError: If the file cannot be read or parsed
        """
        return await self._load(COLLECTIONS_FILE, TypeAdapter(list[Collection]))

    async def save_bookmarks(self, bookmarks: list[Bookmark]) -> None:
        """Persist bookmarks.

        Raises:
            StorageError: If the file cannot be written
        """
        await self._save(BOOKMARKS_FILE, TypeAdapter(list[Bookmark]), bookmarks)

    async def save_collections(self, collections: list[Collection]) -> None:
        """Persist collections.

        Raises:
            StorageError: If the file cannot be written
        """
        await self._save(COLLECTIONS_FILE, TypeAdapter(list[Collection]), collections)

    async def _load(self, name: str, adapter: TypeAdapter[list[M]]) -> list[M]:
        path = self.directory / name
        async with self._lock(name):
            try:
                raw = await asyncio.to_thread(path.read_bytes)
            except FileNotFoundError:
                return []
            except OSError as e:
                raise StorageError(f"Failed to read {path}: {str(e)}")
        try:
            return adapter.validate_json(raw)
        except ValidationError as e:
            raise StorageError(f"Failed to parse {path}: {str(e)}")

    async def _save(
        self, name: str, adapter: TypeAdapter[list[M]], items: list[M]
    ) -> None:
        # Snapshot before yielding so later mutations don't leak into this save.
        payload = adapter.dump_json(list(items), by_alias=True, indent=2)
        async with self._lock(name):
            try:
                await asyncio.to_thread(self._write_atomic, name, payload)
            except OSError as e:
                raise StorageError(f"Failed to write {name}: {str(e)}")

    def _write_atomic(self, name: str, payload: bytes) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=self.directory, prefix=f".{name}.")
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(payload)
            os.replace(tmp_path, self.directory / name)
        except OSError:
            Path(tmp_path).unlink(missing_ok=True)
            raise

    def _lock(self, name: str) -> asyncio.Lock:
        if name not in self._locks:
            self._locks[name] = asyncio.Lock()
        return self._locks[name]
