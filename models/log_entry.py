from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class Result(str, Enum):
    SUCCESSFUL = "Successful"
    FAILED = "Failed"
    UNKNOWN = "Unknown"

    @classmethod
    def from_text(cls, text: str | None) -> "Result":
        value = (text or "").strip().lower()
        if value in ("successful", "success", "succeeded"):
            return cls.SUCCESSFUL
        if value in ("failed", "failure", "fail"):
            return cls.FAILED
        return cls.UNKNOWN


class Level(str, Enum):
    """Vendor-reported or derived severity level, ordered by rank."""

    MINOR = "Minor"
    WARNING = "Warning"
    MAJOR = "Major"
    CRITICAL = "Critical"

    @property
    def rank(self) -> int:
        return _LEVEL_RANK[self]

    @classmethod
    def from_text(cls, text: str | None) -> "Level":
        value = (text or "").strip().lower()
        for level in cls:
            if level.value.lower() == value:
                return level
        return cls.MINOR


_LEVEL_RANK = {Level.MINOR: 0, Level.WARNING: 1, Level.MAJOR: 2, Level.CRITICAL: 3}


class ParsedDetails(BaseModel):
    """Auxiliary fields extracted from the vendor details text. Absent fields stay None."""

    model_config = ConfigDict(frozen=True)

    error_code: str | None = None
    error_description: str | None = None
    error_severity: Level | None = None
    device: str | None = None
    call_chain_id: str | None = None
    process_id: str | None = None
    frame_number: int | None = None
    slot_number: int | None = None
    port_number: int | None = None
    ont_id: int | None = None
    vlan_id: int | None = None
    gemport_id: int | None = None
    block_count: int | None = None
    block_total: int | None = None


class LogEntry(BaseModel):
    """A normalized operator action from an NMS console log."""

    model_config = ConfigDict(frozen=True)

    operator: str = Field(default="Unknown", description="Operator username")
    timestamp: datetime = Field(description="Local wall-clock time of the operation")
    operation: str = Field(description="Operation name (e.g., ADD-ONT, LST-PORT)")
    result: Result = Field(default=Result.UNKNOWN)
    level: Level = Field(default=Level.MINOR, description="Reported or upgraded severity")
    source: str = Field(default="", description="Source label (NM application, syslog facility)")
    terminal_ip: str | None = Field(default=None, description="Originating terminal IP")
    operation_object: str | None = Field(default=None, description="Target device or object")
    details: str | None = Field(default=None, description="Free-text diagnostic details")

    device_type: str | None = None
    device_category: str | None = None
    command_type: str | None = None
    parsed: ParsedDetails = Field(default_factory=ParsedDetails)

    classified: bool = Field(default=False, description="Whether the classifier has run")
    is_violation: bool = False
    violation_type: str | None = None

    @property
    def is_success(self) -> bool:
        return self.result == Result.SUCCESSFUL

    @property
    def is_failure(self) -> bool:
        return self.result == Result.FAILED

    @property
    def violation_types(self) -> list[str]:
        if not self.violation_type:
            return []
        return [t.strip() for t in self.violation_type.split(",") if t.strip()]
