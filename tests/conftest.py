from pathlib import Path

import pytest

from light_bookmarks.config import Settings
from light_bookmarks.services.bookmark import BookmarkManager
from light_bookmarks.services.collection import CollectionManager
from light_bookmarks.utils.storage import JsonFileStorage

# Test configuration
TEST_WORKSPACE_ID = "file:///home/dev/project"


# Service fixtures
@pytest.fixture
def settings() -> Settings:
    return Settings()


@pytest.fixture
def collection_manager() -> CollectionManager:
    return CollectionManager()


@pytest.fixture
def bookmark_manager(
    collection_manager: CollectionManager, settings: Settings
) -> BookmarkManager:
    return BookmarkManager(
        collection_manager, settings=settings, workspace_id=TEST_WORKSPACE_ID
    )


# Storage fixtures
@pytest.fixture
def storage_dir(tmp_path: Path) -> Path:
    return tmp_path / "state"


@pytest.fixture
def json_storage(storage_dir: Path) -> JsonFileStorage:
    return JsonFileStorage(storage_dir)
