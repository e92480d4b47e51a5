import json
import logging
from collections.abc import Iterable, Mapping
from datetime import UTC, datetime
from typing import Any
from urllib.parse import quote, unquote, urlsplit

from pydantic import ValidationError

from light_bookmarks.models.bookmark import Bookmark
from light_bookmarks.models.collection import UNGROUPED_COLLECTION_ID, Collection
from light_bookmarks.schemas.records import ImportMode, ImportResult
from light_bookmarks.schemas.transfer import (
    EXPORT_FORMAT_VERSION,
    ExportData,
    ExportedBookmark,
    ExportedCollection,
)
from light_bookmarks.services.bookmark import BookmarkManager
from light_bookmarks.services.collection import CollectionManager

logger = logging.getLogger(__name__)


def _split_location(location: str) -> tuple[str, str, str]:
    if "://" in location:
        parts = urlsplit(location)
        return parts.scheme, parts.netloc, unquote(parts.path)
    return "file", "", location


def make_relative(uri: str, workspace_root: str | None) -> str:
    """Express a file location relative to the workspace root.

    Locations outside the workspace, or any location when there is no
    workspace, are returned unchanged.
    """
    if not workspace_root:
        return uri

    scheme, netloc, path = _split_location(uri)
    root_scheme, root_netloc, root_path = _split_location(workspace_root)
    prefix = root_path.rstrip("/") + "/"
    if (scheme, netloc) != (root_scheme, root_netloc) or not path.startswith(prefix):
        return uri
    return path[len(prefix) :]


def make_absolute(location: str, workspace_root: str | None) -> str:
    """Anchor a relative location to the workspace root.

    Absolute paths and full location references are returned unchanged, as
    are relative ones when there is no workspace. A plain path root is read
    as a ``file`` location, the same way ``make_relative`` reads it.
    """
    if not workspace_root or "://" in location or location.startswith("/"):
        return location

    root = workspace_root.rstrip("/")
    if "://" not in root:
        root = f"file://{quote(root)}"
    return f"{root}/{quote(location)}"


def is_inside_workspace(uri: str, workspace_root: str | None) -> bool:
    if not workspace_root:
        return True
    return make_relative(uri, workspace_root) != uri


def export_bookmarks(
    bookmarks: Iterable[Bookmark],
    collections: Iterable[Collection],
    workspace_root: str | None = None,
    exported_at: datetime | None = None,
) -> ExportData:
    """Build an export document from the current state.

    Args:
        bookmarks: Bookmarks to export
        collections: Collections to export
        workspace_root: Root used to shorten file locations
        exported_at: Export timestamp, now when omitted

    Returns:
        The export document
    """
    exported_at = exported_at or datetime.now(UTC)
    return ExportData(
        version=EXPORT_FORMAT_VERSION,
        export_date=exported_at.isoformat(),
        bookmarks=[
            ExportedBookmark(
                id=bookmark.id,
                uri=make_relative(bookmark.uri, workspace_root),
                line=bookmark.line,
                description=bookmark.description,
                collection_id=bookmark.collection_id,
                order=bookmark.order,
                created_at=bookmark.created_at.isoformat(),
            )
            for bookmark in bookmarks
        ],
        collections=[
            ExportedCollection(
                id=collection.id,
                name=collection.name,
                workspace_id=collection.workspace_id,
                order=collection.order,
                created_at=collection.created_at.isoformat(),
            )
            for collection in collections
        ],
    )


def dump_export(data: ExportData) -> str:
    return data.model_dump_json(by_alias=True, indent=2)


def parse_export(payload: str | bytes | Mapping[str, Any]) -> ExportData | None:
    """Validate the structure of an export document.

    Args:
        payload: JSON text or an already decoded document

    Returns:
        The parsed document, or None if it is not valid JSON or does not
        have the expected shape
    """
    if isinstance(payload, (str, bytes)):
        try:
            payload = json.loads(payload)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            logger.warning("Rejected import: invalid JSON (%s)", e)
            return None

    try:
        return ExportData.model_validate(payload)
    except ValidationError as e:
        logger.warning(
            "Rejected import: invalid export format (%d errors)", e.error_count()
        )
        return None


def import_bookmarks(
    payload: str | bytes | Mapping[str, Any] | ExportData,
    bookmark_manager: BookmarkManager,
    collection_manager: CollectionManager,
    mode: ImportMode = ImportMode.MERGE,
    workspace_root: str | None = None,
) -> ImportResult | None:
    """Load an export document into the managers.

    The whole document is validated before anything changes. After that,
    records are applied one by one: a record that cannot be applied is
    skipped with a warning. Imported collections join the bookmark manager's
    workspace scope. Ids, creation times and order values are kept.

    Args:
        payload: Export document to import
        bookmark_manager: Receives the bookmarks
        collection_manager: Receives the collections
        mode: REPLACE clears the current workspace first, MERGE keeps it and
            skips entries that already exist
        workspace_root: Root used to anchor relative file locations

    Returns:
        Import counts, or None if the document was rejected
    """
    data = payload if isinstance(payload, ExportData) else parse_export(payload)
    if data is None:
        return None

    mode = ImportMode(mode)
    workspace_id = bookmark_manager.workspace_id
    if mode is ImportMode.REPLACE:
        _clear_workspace(bookmark_manager, collection_manager, workspace_root)

    imported_collections = skipped_collections = 0
    for record in data.collections:
        if mode is ImportMode.MERGE and _collection_exists(
            collection_manager, record.id, workspace_id
        ):
            skipped_collections += 1
            continue
        try:
            collection = Collection(
                id=record.id,
                name=record.name,
                workspace_id=workspace_id,
                order=record.order or 0,
                created_at=record.created_at,
            )
        except ValidationError as e:
            logger.warning("Skipped collection %s: %s", record.id, e)
            skipped_collections += 1
            continue
        if collection_manager.add(collection):
            imported_collections += 1
        else:
            skipped_collections += 1

    imported_bookmarks = skipped_bookmarks = 0
    for record in data.bookmarks:
        uri = make_absolute(record.uri, workspace_root)
        if mode is ImportMode.MERGE and bookmark_manager.has(uri, record.line):
            skipped_bookmarks += 1
            continue
        collection_id = record.collection_id or UNGROUPED_COLLECTION_ID
        fields: dict[str, Any] = {
            "uri": uri,
            "line": record.line,
            "collection_id": collection_id,
            "description": record.description or "",
            "created_at": record.created_at,
            "order": (
                record.order
                if record.order is not None
                else len(bookmark_manager.get_by_collection(collection_id))
            ),
        }
        if record.id:
            fields["id"] = record.id
        try:
            bookmark = Bookmark(**fields)
        except ValidationError as e:
            logger.warning("Skipped bookmark %s:%s: %s", record.uri, record.line, e)
            skipped_bookmarks += 1
            continue
        if bookmark_manager.restore(bookmark):
            imported_bookmarks += 1
        else:
            skipped_bookmarks += 1

    result = ImportResult(
        imported_bookmarks=imported_bookmarks,
        imported_collections=imported_collections,
        skipped_bookmarks=skipped_bookmarks,
        skipped_collections=skipped_collections,
    )
    logger.info(
        "Imported %d bookmarks and %d collections (%s mode, %d/%d skipped)",
        result.imported_bookmarks,
        result.imported_collections,
        mode.value,
        result.skipped_bookmarks,
        result.skipped_collections,
    )
    return result


def _collection_exists(
    collection_manager: CollectionManager, collection_id: str, workspace_id: str | None
) -> bool:
    if collection_id == UNGROUPED_COLLECTION_ID:
        return collection_manager.get_for_workspace(collection_id, workspace_id) is not None
    return collection_manager.has(collection_id)


def _clear_workspace(
    bookmark_manager: BookmarkManager,
    collection_manager: CollectionManager,
    workspace_root: str | None,
) -> None:
    removed = collection_manager.clear_workspace(bookmark_manager.workspace_id)
    owned = {c.id for c in removed if not c.is_ungrouped}
    bookmark_manager.remove_where(
        lambda b: b.collection_id in owned
        or (
            b.collection_id == UNGROUPED_COLLECTION_ID
            and is_inside_workspace(b.uri, workspace_root)
        )
    )
