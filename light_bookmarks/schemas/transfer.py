from pydantic import BaseModel, ConfigDict, StrictInt, StrictStr
from pydantic.alias_generators import to_camel

EXPORT_FORMAT_VERSION = "1.0"


class TransferRecord(BaseModel):
    """Base class for records of the export file format.

    Field names are camelCase on the wire. Unknown keys are ignored so files
    written by newer versions still load.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="ignore",
    )


class ExportedBookmark(TransferRecord):
    """Bookmark entry of an export file.

    Attributes:
        id: Bookmark ID, absent in files written by older versions
        uri: Relative path inside the workspace, or an absolute location
        line: 1-based line number
        description: Free text attached to the bookmark
        collection_id: ID of the owning collection
        order: Position within the collection
        created_at: ISO 8601 creation timestamp
    """

    id: StrictStr | None = None
    uri: StrictStr
    line: StrictInt
    description: StrictStr | None = None
    collection_id: StrictStr | None = None
    order: StrictInt | None = None
    created_at: StrictStr


class ExportedCollection(TransferRecord):
    """Collection entry of an export file.

    Attributes:
        id: Collection ID
        name: Display name
        workspace_id: Scope key the collection was exported from
        order: Position within the workspace scope
        created_at: ISO 8601 creation timestamp
    """

    id: StrictStr
    name: StrictStr
    workspace_id: StrictStr | None = None
    order: StrictInt | None = None
    created_at: StrictStr


class ExportData(TransferRecord):
    """Top-level document of an export file.

    Attributes:
        version: Format version
        export_date: ISO 8601 timestamp of the export
        bookmarks: Exported bookmarks
        collections: Exported collections
    """

    version: StrictStr
    export_date: StrictStr
    bookmarks: list[ExportedBookmark]
    collections: list[ExportedCollection]
