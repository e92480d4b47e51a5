from datetime import UTC, datetime
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from light_bookmarks.models.collection import UNGROUPED_COLLECTION_ID

MAX_DESCRIPTION_LENGTH = 500


class Bookmark(BaseModel):
    """Model representing a bookmarked line in a file.

    Identity fields are frozen; only the description and the display order
    may change after construction. A persisted bookmark is restored by passing
    its full field set to the constructor.

    Attributes:
        id: Unique identifier for the bookmark
        uri: Identifier of the file the bookmark lives in
        line: 1-based line number
        collection_id: ID of the owning collection
        description: Free text attached to the bookmark
        created_at: When the bookmark was created
        order: Position of the bookmark within its collection
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        validate_assignment=True,
    )

    id: str = Field(default_factory=lambda: str(uuid4()), frozen=True)
    uri: str = Field(frozen=True)
    line: int = Field(ge=1, frozen=True)
    collection_id: str = Field(default=UNGROUPED_COLLECTION_ID, frozen=True)
    description: str = Field(default="", max_length=MAX_DESCRIPTION_LENGTH)
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC), frozen=True
    )
    order: int = 0

    @field_validator("collection_id", mode="before")
    @classmethod
    def default_to_ungrouped(cls, value: str | None) -> str:
        # Older files stored no collection for ungrouped bookmarks.
        return value or UNGROUPED_COLLECTION_ID

    @field_validator("created_at")
    @classmethod
    def assume_utc(cls, value: datetime) -> datetime:
        # Timestamps without an offset are read as UTC.
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value

    @property
    def key(self) -> tuple[str, int]:
        return self.uri, self.line

    def at_line(self, line: int) -> "Bookmark":
        """Return a copy of this bookmark placed on another line."""
        return Bookmark.model_validate({**self.model_dump(), "line": line})
