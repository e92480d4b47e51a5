from os import environ

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_MAX_BOOKMARKS_PER_FILE = 100


class Settings(BaseModel):
    """User-facing settings consumed by the bookmark services.

    Attributes:
        max_bookmarks_per_file: Upper bound on bookmarks held by one file
        show_line_numbers: Whether views display line numbers (display only)
    """

    model_config = ConfigDict(frozen=True)

    max_bookmarks_per_file: int = Field(
        default=DEFAULT_MAX_BOOKMARKS_PER_FILE,
        ge=1,
        le=1000,
        description="Upper bound on bookmarks held by one file",
    )
    show_line_numbers: bool = Field(
        default=True, description="Whether views display line numbers"
    )

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from environment variables.

        Unset variables fall back to the defaults.

        Returns:
            The resolved settings

        Raises:
            pydantic.ValidationError: If a variable holds an invalid value
        """
        values: dict[str, str] = {}
        if max_per_file := environ.get("LIGHT_BOOKMARKS_MAX_PER_FILE"):
            values["max_bookmarks_per_file"] = max_per_file
        if show_line_numbers := environ.get("LIGHT_BOOKMARKS_SHOW_LINE_NUMBERS"):
            values["show_line_numbers"] = show_line_numbers
        return cls.model_validate(values)
