from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from light_bookmarks.models.bookmark import Bookmark


class ImportMode(str, Enum):
    REPLACE = "replace"
    MERGE = "merge"


class ReconcileResult(BaseModel):
    """Outcome of applying a batch of text changes to a file's bookmarks.

    Attributes:
        removed: Bookmarks dropped because their line was replaced
        updated: Bookmarks moved to a new line
    """

    model_config = ConfigDict(frozen=True)

    removed: int = Field(default=0, ge=0, description="Bookmarks dropped")
    updated: int = Field(default=0, ge=0, description="Bookmarks moved")

    @property
    def changed(self) -> bool:
        return bool(self.removed or self.updated)


class ImportResult(BaseModel):
    """Counts produced by an import run.

    Attributes:
        imported_bookmarks: Bookmarks inserted
        imported_collections: Collections inserted
        skipped_bookmarks: Bookmarks skipped as duplicates or invalid records
        skipped_collections: Collections skipped as duplicates or invalid records
    """

    model_config = ConfigDict(frozen=True)

    imported_bookmarks: int = Field(default=0, ge=0)
    imported_collections: int = Field(default=0, ge=0)
    skipped_bookmarks: int = Field(default=0, ge=0)
    skipped_collections: int = Field(default=0, ge=0)


class NavigationTarget(BaseModel):
    """Bookmark picked by next/previous navigation.

    Attributes:
        bookmark: The bookmark to jump to
        wrapped: Whether the search wrapped around the end of the list
    """

    model_config = ConfigDict(frozen=True)

    bookmark: Bookmark
    wrapped: bool = False
