from pydantic import BaseModel, ConfigDict, Field, model_validator


class TextChange(BaseModel):
    """A single range replacement reported by an editor.

    Line numbers are 1-based and refer to the document before the edit.

    Attributes:
        start_line: First line of the replaced range
        end_line: Last line of the replaced range (inclusive)
        lines_added: Number of line breaks in the inserted text
    """

    model_config = ConfigDict(frozen=True)

    start_line: int = Field(ge=1)
    end_line: int = Field(ge=1)
    lines_added: int = Field(default=0, ge=0)

    @model_validator(mode="after")
    def check_range(self) -> "TextChange":
        if self.end_line < self.start_line:
            raise ValueError("end_line must be >= start_line")
        return self

    @property
    def line_delta(self) -> int:
        """Net number of lines this change adds to the document."""
        return self.lines_added - (self.end_line - self.start_line)
