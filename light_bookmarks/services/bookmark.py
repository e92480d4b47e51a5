import logging
from collections.abc import Callable, Iterable

from light_bookmarks.config import Settings
from light_bookmarks.models.bookmark import MAX_DESCRIPTION_LENGTH, Bookmark
from light_bookmarks.models.collection import UNGROUPED_COLLECTION_ID
from light_bookmarks.models.document_change import TextChange
from light_bookmarks.schemas.records import NavigationTarget, ReconcileResult
from light_bookmarks.services.collection import CollectionManager
from light_bookmarks.utils.ordering import move_within, sorted_by_order

logger = logging.getLogger(__name__)

ChangeListener = Callable[[], None]


class BookmarkManager:
    """In-memory registry of bookmarks.

    This service enforces (uri, line) uniqueness and the per-file capacity,
    keeps order values dense within each collection, and moves bookmarks
    along when the text of their file is edited.

    Listeners registered with ``add_listener`` are called once after every
    mutation that changed state.
    """

    def __init__(
        self,
        collection_manager: CollectionManager,
        settings: Settings | None = None,
        workspace_id: str | None = None,
    ) -> None:
        """Initialize the bookmark manager.

        Args:
            collection_manager: Registry used to resolve collections
            settings: Capacity settings, defaults when omitted
            workspace_id: Scope used to resolve the ungrouped collection
        """
        self.collection_manager = collection_manager
        self.settings = settings or Settings()
        self.workspace_id = workspace_id
        self._bookmarks: list[Bookmark] = []
        self._listeners: list[ChangeListener] = []

    def add_listener(self, listener: ChangeListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: ChangeListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def add(
        self,
        uri: str,
        line: int,
        collection_id: str | None = None,
        description: str = "",
    ) -> Bookmark | None:
        """Add a bookmark at the end of its collection.

        Args:
            uri: File identifier
            line: 1-based line number
            collection_id: Target collection, the ungrouped one when omitted
            description: Free text attached to the bookmark

        Returns:
            The created bookmark, or None if the line is already bookmarked,
            the file is full or the description is too long
        """
        if len(description) > MAX_DESCRIPTION_LENGTH:
            return None
        if self.has(uri, line) or not self._has_capacity(uri):
            return None

        target_id = self._resolve_collection(collection_id)
        bookmark = Bookmark(
            uri=uri,
            line=line,
            collection_id=target_id,
            description=description,
            order=len(self.get_by_collection(target_id)),
        )
        self._bookmarks.append(bookmark)
        logger.debug("Added bookmark %s:%d to %s", uri, line, target_id)
        self._notify()
        return bookmark

    def restore(self, bookmark: Bookmark) -> bool:
        """Insert a fully-formed bookmark, as loaded from storage or import.

        The id, timestamps and order of the bookmark are kept. A bookmark
        whose collection no longer exists is moved to the ungrouped one.

        Returns:
            True if inserted, False on a duplicate line or a full file
        """
        if self.has(bookmark.uri, bookmark.line) or not self._has_capacity(
            bookmark.uri
        ):
            return False

        target_id = self._resolve_collection(bookmark.collection_id)
        if target_id != bookmark.collection_id:
            bookmark = Bookmark.model_validate(
                {**bookmark.model_dump(), "collection_id": target_id}
            )
        self._bookmarks.append(bookmark)
        self._notify()
        return True

    def remove(self, uri: str, line: int) -> bool:
        """Remove the bookmark at a line.

        Returns:
            True if a bookmark was removed
        """
        if not self._discard(uri, line):
            return False
        self._notify()
        return True

    def toggle(
        self, uri: str, line: int, collection_id: str | None = None
    ) -> Bookmark | None:
        """Remove the bookmark at a line, or add one if there is none.

        Returns:
            The added bookmark, or None if a bookmark was removed or could
            not be added
        """
        if self.remove(uri, line):
            return None
        return self.add(uri, line, collection_id)

    def update_description(self, uri: str, line: int, description: str) -> bool:
        bookmark = self.get(uri, line)
        if not bookmark or len(description) > MAX_DESCRIPTION_LENGTH:
            return False
        bookmark.description = description
        self._notify()
        return True

    def remove_collection_bookmarks(self, collection_id: str) -> int:
        """Remove every bookmark owned by a collection.

        Returns:
            Number of bookmarks removed
        """
        return self.remove_where(lambda b: b.collection_id == collection_id)

    def remove_where(self, predicate: Callable[[Bookmark], bool]) -> int:
        before = len(self._bookmarks)
        self._bookmarks = [b for b in self._bookmarks if not predicate(b)]
        removed = before - len(self._bookmarks)
        if removed:
            self._notify()
        return removed

    def clear(self) -> None:
        self._bookmarks = []
        self._notify()

    def get(self, uri: str, line: int) -> Bookmark | None:
        return next(
            (b for b in self._bookmarks if b.uri == uri and b.line == line), None
        )

    def has(self, uri: str, line: int) -> bool:
        return self.get(uri, line) is not None

    def get_all(self) -> list[Bookmark]:
        return list(self._bookmarks)

    def get_by_uri(self, uri: str) -> list[Bookmark]:
        return sorted(
            (b for b in self._bookmarks if b.uri == uri), key=lambda b: b.line
        )

    def get_by_collection(self, collection_id: str) -> list[Bookmark]:
        """Get the bookmarks of a collection in display order.

        Bookmarks are sorted by order, then by creation time.
        """
        return sorted_by_order(
            [b for b in self._bookmarks if b.collection_id == collection_id]
        )

    def move_up(self, uri: str, line: int) -> bool:
        return self._move(uri, line, -1)

    def move_down(self, uri: str, line: int) -> bool:
        return self._move(uri, line, 1)

    def reconcile(self, uri: str, changes: Iterable[TextChange]) -> ReconcileResult:
        """Bring the bookmarks of a file in line with a batch of edits.

        Every change is evaluated against the line numbers from before the
        batch. A bookmark inside a replaced range is dropped; a bookmark after
        a range moves by the net number of lines that change added. Shifts of
        several changes add up. Edits within one batch must not overlap.

        Args:
            uri: File the edits were made in
            changes: Range replacements in pre-edit coordinates

        Returns:
            Counts of removed and moved bookmarks
        """
        changes = list(changes)
        if not changes:
            return ReconcileResult()

        doomed: list[Bookmark] = []
        shifted: list[tuple[Bookmark, int]] = []
        for bookmark in self.get_by_uri(uri):
            delta = 0
            replaced = False
            for change in changes:
                if bookmark.line < change.start_line:
                    continue
                if bookmark.line <= change.end_line:
                    replaced = True
                    break
                delta += change.line_delta

            if replaced or bookmark.line + delta < 1:
                doomed.append(bookmark)
            elif delta:
                shifted.append((bookmark, bookmark.line + delta))

        for bookmark in doomed:
            self._discard(bookmark.uri, bookmark.line)
        for bookmark, _ in shifted:
            self._discard(bookmark.uri, bookmark.line)

        updated = 0
        for bookmark, new_line in shifted:
            # Only reachable with overlapping edits.
            if self.has(uri, new_line):
                doomed.append(bookmark)
                continue
            self._bookmarks.append(bookmark.at_line(new_line))
            updated += 1

        result = ReconcileResult(removed=len(doomed), updated=updated)
        if result.changed:
            logger.debug(
                "Reconciled %s: %d removed, %d moved",
                uri,
                result.removed,
                result.updated,
            )
            self._notify()
        return result

    def next_bookmark(
        self, uri: str | None = None, line: int = 0
    ) -> NavigationTarget | None:
        """Find the bookmark after a cursor position, across all files.

        Bookmarks are ordered by file, then line. The search wraps around to
        the first bookmark when nothing follows the cursor.

        Args:
            uri: File of the cursor, None when no file is open
            line: 1-based line of the cursor

        Returns:
            The target bookmark, or None if there are no bookmarks
        """
        ordered = sorted(self._bookmarks, key=lambda b: b.key)
        if not ordered:
            return None
        if uri is None:
            return NavigationTarget(bookmark=ordered[0])

        for bookmark in ordered:
            if bookmark.key > (uri, line):
                return NavigationTarget(bookmark=bookmark)
        return NavigationTarget(bookmark=ordered[0], wrapped=True)

    def previous_bookmark(
        self, uri: str | None = None, line: int = 0
    ) -> NavigationTarget | None:
        """Find the bookmark before a cursor position, across all files.

        Mirrors ``next_bookmark``, wrapping around to the last bookmark.
        """
        ordered = sorted(self._bookmarks, key=lambda b: b.key, reverse=True)
        if not ordered:
            return None
        if uri is None:
            return NavigationTarget(bookmark=ordered[0])

        for bookmark in ordered:
            if bookmark.key < (uri, line):
                return NavigationTarget(bookmark=bookmark)
        return NavigationTarget(bookmark=ordered[0], wrapped=True)

    def _move(self, uri: str, line: int, offset: int) -> bool:
        bookmark = self.get(uri, line)
        if not bookmark or not bookmark.collection_id:
            return False
        siblings = [
            b for b in self._bookmarks if b.collection_id == bookmark.collection_id
        ]
        if not move_within(siblings, bookmark, offset):
            return False
        self._notify()
        return True

    def _discard(self, uri: str, line: int) -> bool:
        for index, bookmark in enumerate(self._bookmarks):
            if bookmark.uri == uri and bookmark.line == line:
                del self._bookmarks[index]
                return True
        return False

    def _has_capacity(self, uri: str) -> bool:
        count = sum(1 for b in self._bookmarks if b.uri == uri)
        if count >= self.settings.max_bookmarks_per_file:
            logger.warning(
                "Cannot bookmark %s: limit of %d bookmarks per file reached",
                uri,
                self.settings.max_bookmarks_per_file,
            )
            return False
        return True

    def _resolve_collection(self, collection_id: str | None) -> str:
        if collection_id and collection_id != UNGROUPED_COLLECTION_ID:
            if self.collection_manager.has(collection_id):
                return collection_id
            logger.warning(
                "Collection %s not found, using the ungrouped collection",
                collection_id,
            )
        return self.collection_manager.ensure_ungrouped(self.workspace_id).id

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener()
