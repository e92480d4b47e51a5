import asyncio
import logging

from light_bookmarks.config import Settings
from light_bookmarks.services.bookmark import BookmarkManager
from light_bookmarks.services.collection import CollectionManager
from light_bookmarks.services.localization import Localizer
from light_bookmarks.utils.storage import Storage

logger = logging.getLogger(__name__)


class BookmarkSession:
    """Wires the bookmark and collection managers to a storage backend.

    The session restores persisted state on ``load`` and writes both lists
    back on ``save``. Saves are serialized: a save issued later always
    completes after the ones issued before it.

    Attributes:
        collections: Collection registry of the session
        bookmarks: Bookmark registry of the session
    """

    def __init__(
        self,
        storage: Storage,
        settings: Settings | None = None,
        workspace_id: str | None = None,
        localizer: Localizer | None = None,
    ) -> None:
        """Initialize the session.

        Args:
            storage: Backend holding the persisted state
            settings: Capacity settings, defaults when omitted
            workspace_id: Scope of the current workspace
            localizer: Message formatter, English when omitted
        """
        self.storage = storage
        self.localizer = localizer or Localizer()
        self.workspace_id = workspace_id
        self.collections = CollectionManager(
            ungrouped_label=self.localizer.localize("label.ungrouped"),
            workspace_id=workspace_id,
        )
        self.bookmarks = BookmarkManager(
            self.collections, settings=settings, workspace_id=workspace_id
        )
        self._save_lock = asyncio.Lock()

    async def load(self) -> None:
        """Restore the persisted bookmarks and collections.

        Collections are restored first so bookmarks can find their owners.
        Duplicate ungrouped collections are collapsed and the current scope
        is guaranteed an ungrouped collection.

        Raises:
            StorageError: If the persisted state cannot be read
        """
        bookmarks, collections = await asyncio.gather(
            self.storage.load_bookmarks(), self.storage.load_collections()
        )

        self.collections.clear()
        self.bookmarks.clear()
        restored_collections = sum(1 for c in collections if self.collections.add(c))
        self.collections.cleanup_duplicate_ungrouped()
        self.collections.ensure_ungrouped(self.workspace_id)

        restored_bookmarks = sum(1 for b in bookmarks if self.bookmarks.restore(b))
        logger.info(
            "Loaded %d of %d bookmarks and %d of %d collections",
            restored_bookmarks,
            len(bookmarks),
            restored_collections,
            len(collections),
        )

    async def save(self) -> None:
        """Persist the current bookmarks and collections.

        Raises:
            StorageError: If the state cannot be written
        """
        bookmarks = self.bookmarks.get_all()
        collections = self.collections.get_all()
        async with self._save_lock:
            await asyncio.gather(
                self.storage.save_bookmarks(bookmarks),
                self.storage.save_collections(collections),
            )
