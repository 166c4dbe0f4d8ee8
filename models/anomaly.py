from datetime import datetime
from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field


class AnomalyType(str, Enum):
    HIGH_FAILURE_RATE = "HIGH_FAILURE_RATE"
    UNUSUAL_HOURS = "UNUSUAL_HOURS"
    RAPID_OPERATIONS = "RAPID_OPERATIONS"
    REPEATED_FAILURES = "REPEATED_FAILURES"


class AnomalySeverity(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]


_SEVERITY_RANK = {
    AnomalySeverity.LOW: 0,
    AnomalySeverity.MEDIUM: 1,
    AnomalySeverity.HIGH: 2,
    AnomalySeverity.CRITICAL: 3,
}


class HighFailureRateDetails(BaseModel):
    kind: Literal["high_failure_rate"] = "high_failure_rate"
    failure_rate: float
    total_operations: int
    failed_operations: int


class UnusualHoursDetails(BaseModel):
    kind: Literal["unusual_hours"] = "unusual_hours"
    count: int


class RapidOperationsDetails(BaseModel):
    kind: Literal["rapid_operations"] = "rapid_operations"
    operations_per_minute: int
    window_seconds: float


class RepeatedFailuresDetails(BaseModel):
    kind: Literal["repeated_failures"] = "repeated_failures"
    operation: str
    failure_count: int


AnomalyDetails = Annotated[
    Union[
        HighFailureRateDetails,
        UnusualHoursDetails,
        RapidOperationsDetails,
        RepeatedFailuresDetails,
    ],
    Field(discriminator="kind"),
]


class Anomaly(BaseModel):
    """A behavioral outlier detected across one operator's entries."""

    type: AnomalyType
    severity: AnomalySeverity
    description: str = Field(description="Human-readable description")
    operator: str = Field(description="Operator the anomaly is attributed to")
    timestamp: datetime = Field(description="Representative time of the anomaly")
    details: AnomalyDetails
