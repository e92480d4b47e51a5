from datetime import UTC, datetime
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

UNGROUPED_COLLECTION_ID = "ungrouped-bookmarks"


class Collection(BaseModel):
    """Model representing a named group of bookmarks.

    Collections are scoped to a workspace. Names are unique within a scope and
    each scope holds at most one collection with the reserved ungrouped id.

    Attributes:
        id: Unique identifier for the collection
        name: Display name of the collection
        workspace_id: Scope key of the owning workspace, if any
        created_at: When the collection was created
        order: Position of the collection within its workspace scope
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        validate_assignment=True,
    )

    id: str = Field(default_factory=lambda: str(uuid4()), frozen=True)
    name: str = Field(min_length=1, frozen=True)
    workspace_id: str | None = Field(default=None, frozen=True)
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC), frozen=True
    )
    order: int = 0

    @field_validator("created_at")
    @classmethod
    def assume_utc(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value

    @property
    def is_ungrouped(self) -> bool:
        return self.id == UNGROUPED_COLLECTION_ID

    def with_id(self, collection_id: str) -> "Collection":
        """Return a copy of this collection carrying another id."""
        return Collection.model_validate({**self.model_dump(), "id": collection_id})
