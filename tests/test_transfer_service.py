import json
from datetime import UTC, datetime

import pytest

from light_bookmarks.config import Settings
from light_bookmarks.models.bookmark import Bookmark
from light_bookmarks.models.collection import UNGROUPED_COLLECTION_ID
from light_bookmarks.schemas.records import ImportMode
from light_bookmarks.services.bookmark import BookmarkManager
from light_bookmarks.services.collection import CollectionManager
from light_bookmarks.services.transfer import (
    dump_export,
    export_bookmarks,
    import_bookmarks,
    make_absolute,
    make_relative,
    parse_export,
)

WORKSPACE = "file:///home/dev/project"
MAIN_URI = "file:///home/dev/project/src/main.py"
OUTSIDE_URI = "file:///etc/hosts"


def _fresh_managers() -> tuple[BookmarkManager, CollectionManager]:
    collections = CollectionManager()
    return BookmarkManager(collections, workspace_id=WORKSPACE), collections


def _export_document(**overrides) -> dict:
    document = {
        "version": "1.0",
        "exportDate": "2024-05-01T12:00:00+00:00",
        "bookmarks": [
            {
                "id": "b-1",
                "uri": "src/main.py",
                "line": 12,
                "description": "entry point",
                "collectionId": "c-1",
                "order": 4,
                "createdAt": "2024-04-01T08:00:00+00:00",
            },
            {
                "uri": "/etc/hosts",
                "line": 1,
                "createdAt": "2024-04-02T08:00:00Z",
            },
        ],
        "collections": [
            {
                "id": "c-1",
                "name": "Work",
                "workspaceId": "file:///somewhere/else",
                "order": 2,
                "createdAt": "2024-03-01T08:00:00+00:00",
            }
        ],
    }
    document.update(overrides)
    return document


@pytest.mark.unit
class TestPathTranslation:
    def test_make_relative_inside_workspace(self):
        assert make_relative(MAIN_URI, WORKSPACE) == "src/main.py"

    def test_make_relative_outside_workspace(self):
        assert make_relative(OUTSIDE_URI, WORKSPACE) == OUTSIDE_URI

    def test_make_relative_requires_path_boundary(self):
        uri = "file:///home/dev/project-old/main.py"

        assert make_relative(uri, WORKSPACE) == uri

    def test_make_relative_without_workspace(self):
        assert make_relative(MAIN_URI, None) == MAIN_URI

    def test_make_relative_decodes_escapes(self):
        uri = "file:///home/dev/project/my%20notes.md"

        assert make_relative(uri, WORKSPACE) == "my notes.md"

    def test_make_absolute_relative_path(self):
        assert make_absolute("src/main.py", WORKSPACE) == MAIN_URI

    def test_make_absolute_keeps_absolute_locations(self):
        assert make_absolute(OUTSIDE_URI, WORKSPACE) == OUTSIDE_URI
        assert make_absolute("/etc/hosts", WORKSPACE) == "/etc/hosts"

    def test_make_absolute_without_workspace(self):
        assert make_absolute("src/main.py", None) == "src/main.py"

    def test_paths_round_trip(self):
        uri = "file:///home/dev/project/my%20notes.md"

        assert make_absolute(make_relative(uri, WORKSPACE), WORKSPACE) == uri

    def test_make_absolute_with_plain_path_root(self):
        assert make_absolute("src/main.py", "/home/dev/project") == MAIN_URI

    def test_paths_round_trip_with_plain_path_root(self):
        # Arrange
        root = "/home/dev/project"

        # Act
        relative = make_relative(MAIN_URI, root)

        # Assert
        assert relative == "src/main.py"
        assert make_absolute(relative, root) == MAIN_URI

    def test_merge_with_plain_path_root_recognises_existing(self):
        # Arrange
        bookmarks, collections = _fresh_managers()
        bookmarks.add(MAIN_URI, 12)
        root = "/home/dev/project"
        document = export_bookmarks(bookmarks.get_all(), [], workspace_root=root)

        # Act
        result = import_bookmarks(document, bookmarks, collections, workspace_root=root)

        # Assert
        assert result.skipped_bookmarks == 1
        assert result.imported_bookmarks == 0
        assert len(bookmarks.get_all()) == 1


@pytest.mark.unit
class TestExport:
    def test_export_document(
        self,
        bookmark_manager: BookmarkManager,
        collection_manager: CollectionManager,
    ):
        # Arrange
        collection = collection_manager.create("Work", WORKSPACE)
        bookmark_manager.add(MAIN_URI, 12, collection.id, "entry point")
        bookmark_manager.add(OUTSIDE_URI, 1)
        exported_at = datetime(2024, 5, 1, 12, tzinfo=UTC)

        # Act
        data = export_bookmarks(
            bookmark_manager.get_all(),
            collection_manager.get_all(),
            WORKSPACE,
            exported_at,
        )
        document = json.loads(dump_export(data))

        # Assert
        assert document["version"] == "1.0"
        assert document["exportDate"] == "2024-05-01T12:00:00+00:00"
        assert [b["uri"] for b in document["bookmarks"]] == ["src/main.py", OUTSIDE_URI]
        first = document["bookmarks"][0]
        assert first["collectionId"] == collection.id
        assert first["description"] == "entry point"
        assert first["order"] == 0
        assert "createdAt" in first
        assert {c["workspaceId"] for c in document["collections"]} == {WORKSPACE}


@pytest.mark.unit
class TestParseExport:
    def test_parse_valid_text(self):
        data = parse_export(json.dumps(_export_document()))

        assert data is not None
        assert len(data.bookmarks) == 2
        assert data.bookmarks[0].collection_id == "c-1"

    def test_parse_invalid_json(self):
        assert parse_export("{not json") is None

    @pytest.mark.parametrize(
        "overrides",
        [
            {"version": 1},
            {"exportDate": None},
            {"bookmarks": {}},
            {"collections": "none"},
            {"bookmarks": [{"uri": "a.py", "createdAt": "2024-01-01T00:00:00Z"}]},
            {"bookmarks": [{"uri": "a.py", "line": "3", "createdAt": "x"}]},
            {"collections": [{"id": "c", "createdAt": "2024-01-01T00:00:00Z"}]},
        ],
    )
    def test_parse_rejects_malformed_structure(self, overrides: dict):
        assert parse_export(_export_document(**overrides)) is None

    def test_parse_rejects_missing_version(self):
        document = _export_document()
        del document["version"]

        assert parse_export(document) is None


@pytest.mark.unit
class TestImport:
    def test_merge_into_empty_state(self):
        # Arrange
        bookmarks, collections = _fresh_managers()

        # Act
        result = import_bookmarks(
            _export_document(),
            bookmarks,
            collections,
            ImportMode.MERGE,
            workspace_root=WORKSPACE,
        )

        # Assert
        assert result.imported_collections == 1
        assert result.imported_bookmarks == 2
        imported = bookmarks.get(MAIN_URI, 12)
        assert imported.id == "b-1"
        assert imported.order == 4
        assert imported.collection_id == "c-1"
        assert imported.created_at == datetime(2024, 4, 1, 8, tzinfo=UTC)
        assert bookmarks.has("/etc/hosts", 1)
        work = collections.get("c-1")
        assert work.workspace_id == WORKSPACE
        assert work.order == 2

    def test_bookmark_without_collection_joins_ungrouped(self):
        bookmarks, collections = _fresh_managers()

        import_bookmarks(_export_document(), bookmarks, collections)

        assert bookmarks.get("/etc/hosts", 1).collection_id == UNGROUPED_COLLECTION_ID
        assert collections.get_for_workspace(UNGROUPED_COLLECTION_ID, WORKSPACE)

    def test_merge_skips_existing_entries(self):
        # Arrange
        bookmarks, collections = _fresh_managers()
        import_bookmarks(
            _export_document(), bookmarks, collections, workspace_root=WORKSPACE
        )

        # Act
        result = import_bookmarks(
            _export_document(), bookmarks, collections, workspace_root=WORKSPACE
        )

        # Assert
        assert result.imported_bookmarks == 0
        assert result.imported_collections == 0
        assert result.skipped_bookmarks == 2
        assert result.skipped_collections == 1
        assert len(bookmarks.get_all()) == 2

    def test_merge_keeps_existing_state(self):
        # Arrange
        bookmarks, collections = _fresh_managers()
        existing = bookmarks.add(MAIN_URI, 12, description="mine")

        # Act
        result = import_bookmarks(
            _export_document(), bookmarks, collections, workspace_root=WORKSPACE
        )

        # Assert
        assert bookmarks.get(MAIN_URI, 12) is existing
        assert result.skipped_bookmarks == 1
        assert result.imported_bookmarks == 1

    def test_timestamp_without_offset_sorts_with_existing(self):
        # Arrange
        bookmarks, collections = _fresh_managers()
        existing = bookmarks.add(MAIN_URI, 1)
        document = _export_document(
            bookmarks=[
                {"uri": "b.py", "line": 3, "order": 0, "createdAt": "2024-01-01T00:00:00"}
            ],
            collections=[],
        )

        # Act
        result = import_bookmarks(
            document, bookmarks, collections, workspace_root=WORKSPACE
        )

        # Assert
        assert result.imported_bookmarks == 1
        imported = bookmarks.get(f"{WORKSPACE}/b.py", 3)
        assert imported.created_at == datetime(2024, 1, 1, tzinfo=UTC)
        assert bookmarks.get_by_collection(UNGROUPED_COLLECTION_ID) == [
            imported,
            existing,
        ]
        assert bookmarks.move_down(f"{WORKSPACE}/b.py", 3)

    def test_collection_timestamp_without_offset_is_utc(self):
        bookmarks, collections = _fresh_managers()
        document = _export_document(
            bookmarks=[],
            collections=[
                {"id": "c-9", "name": "Old", "createdAt": "2023-06-01T10:00:00"}
            ],
        )

        import_bookmarks(document, bookmarks, collections)

        assert collections.get("c-9").created_at == datetime(2023, 6, 1, 10, tzinfo=UTC)

    def test_replace_clears_current_workspace(self):
        # Arrange
        bookmarks, collections = _fresh_managers()
        old = collections.create("Old", WORKSPACE)
        bookmarks.add(MAIN_URI, 40, old.id)
        bookmarks.add(MAIN_URI, 41)
        other = collections.create("Other", "file:///home/dev/other")
        bookmarks.add("file:///home/dev/other/a.py", 1, other.id)

        # Act
        result = import_bookmarks(
            _export_document(),
            bookmarks,
            collections,
            ImportMode.REPLACE,
            workspace_root=WORKSPACE,
        )

        # Assert
        assert result.imported_bookmarks == 2
        assert collections.get(old.id) is None
        assert not bookmarks.has(MAIN_URI, 40)
        assert not bookmarks.has(MAIN_URI, 41)
        assert collections.get(other.id) is other
        assert bookmarks.has("file:///home/dev/other/a.py", 1)

    def test_replace_accepts_mode_value(self):
        bookmarks, collections = _fresh_managers()
        bookmarks.add(MAIN_URI, 40)

        import_bookmarks(_export_document(), bookmarks, collections, "replace")

        assert not bookmarks.has(MAIN_URI, 40)

    def test_malformed_input_does_not_mutate(self):
        # Arrange
        bookmarks, collections = _fresh_managers()
        bookmarks.add(MAIN_URI, 40)
        before_bookmarks = bookmarks.get_all()
        before_collections = collections.get_all()
        document = _export_document(bookmarks=[{"uri": "a.py"}])

        # Act
        result = import_bookmarks(document, bookmarks, collections, ImportMode.REPLACE)

        # Assert
        assert result is None
        assert bookmarks.get_all() == before_bookmarks
        assert collections.get_all() == before_collections

    def test_invalid_record_is_skipped(self):
        # Arrange
        bookmarks, collections = _fresh_managers()
        document = _export_document()
        document["bookmarks"].append(
            {"uri": "src/bad.py", "line": 0, "createdAt": "2024-01-01T00:00:00Z"}
        )
        document["bookmarks"].append(
            {"uri": "src/late.py", "line": 3, "createdAt": "not a date"}
        )

        # Act
        result = import_bookmarks(document, bookmarks, collections)

        # Assert
        assert result.imported_bookmarks == 2
        assert result.skipped_bookmarks == 2

    def test_import_respects_file_capacity(self):
        # Arrange
        collections = CollectionManager()
        bookmarks = BookmarkManager(
            collections, settings=Settings(max_bookmarks_per_file=1)
        )
        document = _export_document(
            bookmarks=[
                {"uri": "a.py", "line": line, "createdAt": "2024-01-01T00:00:00Z"}
                for line in (1, 2)
            ]
        )

        # Act
        result = import_bookmarks(document, bookmarks, collections)

        # Assert
        assert result.imported_bookmarks == 1
        assert result.skipped_bookmarks == 1

    def test_export_then_import_round_trip(
        self,
        bookmark_manager: BookmarkManager,
        collection_manager: CollectionManager,
    ):
        # Arrange
        work = collection_manager.create("Work", WORKSPACE)
        collection_manager.create("Later", WORKSPACE)
        for line in (3, 9, 27):
            bookmark_manager.add(MAIN_URI, line, work.id)
        bookmark_manager.add(MAIN_URI, 50)
        bookmark_manager.add(OUTSIDE_URI, 2)
        bookmark_manager.move_up(MAIN_URI, 27)
        text = dump_export(
            export_bookmarks(
                bookmark_manager.get_all(), collection_manager.get_all(), WORKSPACE
            )
        )
        bookmarks, collections = _fresh_managers()

        # Act
        result = import_bookmarks(
            text, bookmarks, collections, ImportMode.MERGE, workspace_root=WORKSPACE
        )

        # Assert
        assert result.skipped_bookmarks == 0
        assert result.skipped_collections == 0
        assert _snapshot(bookmarks.get_all()) == _snapshot(bookmark_manager.get_all())
        assert {(c.id, c.name, c.order) for c in collections.get_all()} == {
            (c.id, c.name, c.order) for c in collection_manager.get_all()
        }


def _snapshot(bookmarks: list[Bookmark]) -> set[tuple]:
    return {
        (b.id, b.uri, b.line, b.collection_id, b.order, b.description, b.created_at)
        for b in bookmarks
    }
