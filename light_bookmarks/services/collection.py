import logging
from urllib.parse import unquote, urlsplit

from light_bookmarks.models.collection import UNGROUPED_COLLECTION_ID, Collection
from light_bookmarks.utils.ordering import move_to, move_within, sorted_by_order

logger = logging.getLogger(__name__)

DEFAULT_UNGROUPED_LABEL = "Ungrouped"


def normalize_scope(workspace_id: str | None) -> str | None:
    """Reduce a workspace identifier to a comparable scope key.

    A workspace may be identified either by a raw key (``/home/me/ws``) or by
    a location reference (``file:///home/me/ws``). Both reduce to the same
    unquoted path without a trailing slash.
    """
    if workspace_id is None:
        return None
    parts = urlsplit(workspace_id)
    if parts.scheme and "://" in workspace_id:
        path = unquote(parts.path)
        if parts.netloc and parts.scheme != "file":
            path = f"{parts.netloc}{path}"
    else:
        path = workspace_id
    return path.rstrip("/") or "/"


def same_scope(left: str | None, right: str | None) -> bool:
    return normalize_scope(left) == normalize_scope(right)


class CollectionManager:
    """In-memory registry of bookmark collections.

    Collections are grouped by workspace scope. Within a scope, names are
    unique, order values stay dense after every move, and at most one
    collection carries the reserved ungrouped id.
    """

    def __init__(
        self,
        ungrouped_label: str = DEFAULT_UNGROUPED_LABEL,
        workspace_id: str | None = None,
    ) -> None:
        """Initialize the collection manager.

        Args:
            ungrouped_label: Display name given to auto-created ungrouped
                collections
            workspace_id: Current scope, used to pick the ungrouped collection
                when looking it up by id
        """
        self.ungrouped_label = ungrouped_label
        self.workspace_id = workspace_id
        self._collections: list[Collection] = []

    def create(self, name: str, workspace_id: str | None = None) -> Collection | None:
        """Create a new collection at the end of its workspace scope.

        Args:
            name: Name of the collection
            workspace_id: Scope the collection belongs to

        Returns:
            The created collection, or None if the name is empty or taken in
            the scope
        """
        if not name:
            return None
        if self.get_by_name(name, workspace_id):
            logger.debug("Collection %r already exists in %s", name, workspace_id)
            return None

        collection = Collection(
            name=name,
            workspace_id=workspace_id,
            order=self._next_order(workspace_id),
        )
        self._collections.append(collection)
        logger.debug("Created collection %s (%r)", collection.id, name)
        return collection

    def add(self, collection: Collection) -> bool:
        """Insert a fully-formed collection, as restored from storage or import.

        Args:
            collection: The collection to insert

        Returns:
            True if inserted, False if it would break a scope invariant
        """
        scope = collection.workspace_id
        if collection.is_ungrouped:
            if self.get_for_workspace(collection.id, scope):
                return False
        elif self.get(collection.id):
            return False

        if self._is_ungrouped_like(collection) and self._ungrouped_candidates(scope):
            return False
        if self.get_by_name(collection.name, scope):
            return False

        self._collections.append(collection)
        return True

    def delete(self, collection_id: str) -> bool:
        """Delete a collection by ID.

        Bookmarks owned by the collection are left untouched; callers decide
        whether to cascade.

        Returns:
            True if a collection was removed
        """
        collection = self.get(collection_id)
        if not collection:
            return False
        self._collections = [c for c in self._collections if c is not collection]
        logger.debug("Deleted collection %s", collection_id)
        return True

    def clear(self) -> None:
        self._collections = []

    def clear_workspace(self, workspace_id: str | None) -> list[Collection]:
        """Remove every collection of a scope.

        Returns:
            The removed collections
        """
        removed = self._siblings(workspace_id)
        self._collections = [
            c for c in self._collections if not same_scope(c.workspace_id, workspace_id)
        ]
        return removed

    def get(self, collection_id: str) -> Collection | None:
        """Get a collection by ID.

        The ungrouped id is shared by every scope; it resolves to the current
        scope's collection when there is one.
        """
        if collection_id == UNGROUPED_COLLECTION_ID:
            if scoped := self.get_for_workspace(collection_id, self.workspace_id):
                return scoped
        return next((c for c in self._collections if c.id == collection_id), None)

    def get_for_workspace(
        self, collection_id: str, workspace_id: str | None
    ) -> Collection | None:
        return next(
            (
                c
                for c in self._collections
                if c.id == collection_id and same_scope(c.workspace_id, workspace_id)
            ),
            None,
        )

    def get_by_name(
        self, name: str, workspace_id: str | None = None
    ) -> Collection | None:
        return next(
            (
                c
                for c in self._collections
                if c.name == name and same_scope(c.workspace_id, workspace_id)
            ),
            None,
        )

    def get_all(self) -> list[Collection]:
        return list(self._collections)

    def get_for_workspace_sorted(self, workspace_id: str | None) -> list[Collection]:
        """Get the collections of a scope in display order."""
        return sorted_by_order(self._siblings(workspace_id))

    def has(self, collection_id: str) -> bool:
        return self.get(collection_id) is not None

    def move_up(self, collection_id: str) -> bool:
        """Move a collection one step towards the start of its scope.

        Returns:
            False if the collection is unknown or already first
        """
        return self._move(collection_id, -1)

    def move_down(self, collection_id: str) -> bool:
        """Move a collection one step towards the end of its scope.

        Returns:
            False if the collection is unknown or already last
        """
        return self._move(collection_id, 1)

    def move_to_position(self, collection_id: str, position: int) -> bool:
        """Move a collection to a 0-based position within its scope.

        Returns:
            False if the collection is unknown or the position is out of range
        """
        collection = self.get(collection_id)
        if not collection:
            return False
        return move_to(self._siblings(collection.workspace_id), collection, position)

    def ensure_ungrouped(self, workspace_id: str | None = None) -> Collection:
        """Get the ungrouped collection of a scope, creating it if missing.

        Args:
            workspace_id: Scope to look in

        Returns:
            The single ungrouped collection of the scope
        """
        if existing := self.get_for_workspace(UNGROUPED_COLLECTION_ID, workspace_id):
            return existing

        ungrouped = Collection(
            id=UNGROUPED_COLLECTION_ID,
            name=self.ungrouped_label,
            workspace_id=workspace_id,
            order=0,
        )
        self._collections.append(ungrouped)
        logger.debug("Created ungrouped collection for %s", workspace_id)
        return ungrouped

    def cleanup_duplicate_ungrouped(self) -> int:
        """Collapse duplicate ungrouped collections left by migration or import.

        For each scope holding more than one ungrouped collection (matched by
        reserved id or by label), the one with the reserved id is kept, or
        else the first one found. The survivor always ends up with the
        reserved id.

        Returns:
            Number of collections removed
        """
        scopes: dict[str | None, list[Collection]] = {}
        for collection in self._collections:
            if self._is_ungrouped_like(collection):
                scope = normalize_scope(collection.workspace_id)
                scopes.setdefault(scope, []).append(collection)

        removed = 0
        for candidates in scopes.values():
            if len(candidates) < 2:
                continue
            keep = next((c for c in candidates if c.is_ungrouped), candidates[0])
            drop = [c for c in candidates if c is not keep]
            self._collections = [
                c for c in self._collections if not any(c is d for d in drop)
            ]
            removed += len(drop)
            if not keep.is_ungrouped:
                index = next(i for i, c in enumerate(self._collections) if c is keep)
                self._collections[index] = keep.with_id(UNGROUPED_COLLECTION_ID)

        if removed:
            logger.info("Removed %d duplicate ungrouped collections", removed)
        return removed

    def _move(self, collection_id: str, offset: int) -> bool:
        collection = self.get(collection_id)
        if not collection:
            return False
        return move_within(self._siblings(collection.workspace_id), collection, offset)

    def _siblings(self, workspace_id: str | None) -> list[Collection]:
        return [c for c in self._collections if same_scope(c.workspace_id, workspace_id)]

    def _next_order(self, workspace_id: str | None) -> int:
        siblings = self._siblings(workspace_id)
        if not siblings:
            return 0
        return max(c.order for c in siblings) + 1

    def _is_ungrouped_like(self, collection: Collection) -> bool:
        return collection.is_ungrouped or collection.name == self.ungrouped_label

    def _ungrouped_candidates(self, workspace_id: str | None) -> list[Collection]:
        return [
            c
            for c in self._siblings(workspace_id)
            if self._is_ungrouped_like(c)
        ]
