from pydantic import BaseModel, Field


class WorkingHours(BaseModel):
    """Permitted working window for a group, times as HH:MM strings."""

    start: str = "08:00"
    end: str = "17:00"
    days: list[str] = Field(
        default_factory=lambda: ["Sunday", "Monday", "Tuesday", "Wednesday", "Thursday"],
        description="Full weekday names on which work is permitted",
    )


class OperatorContext(BaseModel):
    """Directory metadata for an NMS operator."""

    username: str
    operator_id: str | None = None
    full_name: str | None = None
    email: str | None = None

    @property
    def display_name(self) -> str:
        return self.full_name or self.username


class GroupContext(BaseModel):
    """An operator group and the access policy its members work under."""

    name: str
    job_description: str | None = None
    rules: str | None = None
    allowed_operations: list[str] = Field(default_factory=list)
    restricted_operations: list[str] = Field(default_factory=list)
    working_hours: WorkingHours | None = None
