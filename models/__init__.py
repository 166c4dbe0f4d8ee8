from models.log_entry import Level, LogEntry, ParsedDetails, Result
from models.anomaly import Anomaly, AnomalySeverity, AnomalyType
from models.analysis import Aggregates, ComprehensiveAnalysis, OperatorStats, OperationStats
from models.context import GroupContext, OperatorContext, WorkingHours

__all__ = [
    "Level",
    "LogEntry",
    "ParsedDetails",
    "Result",
    "Anomaly",
    "AnomalySeverity",
    "AnomalyType",
    "Aggregates",
    "ComprehensiveAnalysis",
    "OperatorStats",
    "OperationStats",
    "GroupContext",
    "OperatorContext",
    "WorkingHours",
]
