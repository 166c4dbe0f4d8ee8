"""Static lookup tables for the Huawei NMS log vocabulary.

Kept as ordered data so the classifier and parsers never hardcode a branch per
operation, error code or device model.
"""

import re
from typing import Literal, NamedTuple

from models.log_entry import Level

Risk = Literal["low", "medium", "high", "critical"]


class OperationInfo(NamedTuple):
    category: str
    risk: Risk
    description: str


class ErrorInfo(NamedTuple):
    description: str
    severity: Level


class ViolationPattern(NamedTuple):
    pattern: re.Pattern
    type: str
    severity: Level


class DevicePattern(NamedTuple):
    pattern: re.Pattern
    type: str
    category: str


OPERATIONS: dict[str, OperationInfo] = {
    "LST-GPONONTAUTOFIND": OperationInfo("Query", "low", "List GPON ONT Auto Find"),
    "ACT-SERVICEPORT": OperationInfo("Activation", "medium", "Activate Service Port"),
    "DEL-SERVICEPORT": OperationInfo("Deletion", "high", "Delete Service Port"),
    "MOD-SERVICEPORT": OperationInfo("Modification", "medium", "Modify Service Port"),
    "ADD-ONTPORT": OperationInfo("Addition", "medium", "Add ONT Port"),
    "DEL-ONTPORT": OperationInfo("Deletion", "high", "Delete ONT Port"),
    "MOD-ONTPORT": OperationInfo("Modification", "medium", "Modify ONT Port"),
    "LST-ONTINFO": OperationInfo("Query", "low", "List ONT Information"),
    "LST-ONTVERSION": OperationInfo("Query", "low", "List ONT Version"),
    "ADD-ONT": OperationInfo("Addition", "medium", "Add ONT"),
    "DEL-ONT": OperationInfo("Deletion", "high", "Delete ONT"),
    "MOD-ONT": OperationInfo("Modification", "medium", "Modify ONT"),
    "RST-ONT": OperationInfo("Reset", "high", "Reset ONT"),
    "DEACT-ONT": OperationInfo("Deactivation", "high", "Deactivate ONT"),
    "ACT-ONT": OperationInfo("Activation", "medium", "Activate ONT"),
    "LST-PORT": OperationInfo("Query", "low", "List Port"),
    "MOD-PORT": OperationInfo("Modification", "medium", "Modify Port"),
    "LST-BOARD": OperationInfo("Query", "low", "List Board"),
    "ADD-BOARD": OperationInfo("Addition", "medium", "Add Board"),
    "DEL-BOARD": OperationInfo("Deletion", "high", "Delete Board"),
    "RST-BOARD": OperationInfo("Reset", "high", "Reset Board"),
    "LST-VLAN": OperationInfo("Query", "low", "List VLAN"),
    "ADD-VLAN": OperationInfo("Addition", "medium", "Add VLAN"),
    "DEL-VLAN": OperationInfo("Deletion", "high", "Delete VLAN"),
    "MOD-VLAN": OperationInfo("Modification", "medium", "Modify VLAN"),
    "LST-TRAFFIC": OperationInfo("Query", "low", "List Traffic"),
    "LST-ALARM": OperationInfo("Query", "low", "List Alarm"),
    "ACK-ALARM": OperationInfo("Acknowledgement", "low", "Acknowledge Alarm"),
    "CLR-ALARM": OperationInfo("Clear", "medium", "Clear Alarm"),
    "LST-USER": OperationInfo("Query", "low", "List User"),
    "ADD-USER": OperationInfo("Addition", "high", "Add User"),
    "DEL-USER": OperationInfo("Deletion", "critical", "Delete User"),
    "MOD-USER": OperationInfo("Modification", "high", "Modify User"),
    "CHG-PASSWORD": OperationInfo("Security", "high", "Change Password"),
    "LOGIN": OperationInfo("Authentication", "medium", "User Login"),
    "LOGOUT": OperationInfo("Authentication", "low", "User Logout"),
    "LST-ONTUSERWLAN": OperationInfo("Query", "low", "List ONT User WLAN"),
    "MOD-ONTUSERWLAN": OperationInfo("Modification", "medium", "Modify ONT User WLAN"),
    "CFG-BACKUP": OperationInfo("Backup", "medium", "Configuration Backup"),
    "CFG-RESTORE": OperationInfo("Restore", "critical", "Configuration Restore"),
    "SYS-REBOOT": OperationInfo("System", "critical", "System Reboot"),
    "SYS-UPGRADE": OperationInfo("System", "critical", "System Upgrade"),
}

ERROR_CODES: dict[str, ErrorInfo] = {
    "2686058552": ErrorInfo("Resource does not exist", Level.WARNING),
    "2686058531": ErrorInfo("The device does not exist", Level.WARNING),
    "2686058576": ErrorInfo("Service Port does not exist", Level.WARNING),
    "2686058500": ErrorInfo("Parameter error", Level.MAJOR),
    "2686058501": ErrorInfo("Command execution failed", Level.MAJOR),
    "2686058502": ErrorInfo("Operation timeout", Level.MAJOR),
    "2686058503": ErrorInfo("Connection failed", Level.CRITICAL),
    "2686058504": ErrorInfo("Authentication failed", Level.CRITICAL),
    "2686058505": ErrorInfo("Permission denied", Level.CRITICAL),
}

# Evaluated in order, first match wins.
VIOLATION_PATTERNS: list[ViolationPattern] = [
    ViolationPattern(re.compile(r"DEL-|DELETE|REMOVE", re.I), "Deletion Operation", Level.MAJOR),
    ViolationPattern(re.compile(r"RST-|RESET|REBOOT", re.I), "Reset Operation", Level.MAJOR),
    ViolationPattern(re.compile(r"CFG-RESTORE|RESTORE", re.I), "Configuration Restore", Level.CRITICAL),
    ViolationPattern(re.compile(r"SYS-REBOOT|SYS-UPGRADE", re.I), "System Critical Operation", Level.CRITICAL),
    ViolationPattern(
        re.compile(
            r"\b(?:add|delete|modify|create|remove)\s+user\b|\b(?:adduser|deluser|moduser)\b|user management",
            re.I,
        ),
        "User Management",
        Level.MAJOR,
    ),
    ViolationPattern(re.compile(r"CHG-PASSWORD|change password|password change", re.I), "Password Change", Level.MAJOR),
    ViolationPattern(re.compile(r"unauthorized|denied|forbidden", re.I), "Access Denied", Level.CRITICAL),
    ViolationPattern(re.compile(r"failed.*login|login.*failed", re.I), "Failed Login", Level.MAJOR),
    ViolationPattern(re.compile(r"Resource does not exist", re.I), "Resource Error", Level.WARNING),
    ViolationPattern(re.compile(r"device does not exist", re.I), "Device Error", Level.WARNING),
    ViolationPattern(re.compile(r"Service Port does not exist", re.I), "Service Port Error", Level.WARNING),
]

# Most specific model first.
DEVICE_PATTERNS: list[DevicePattern] = [
    DevicePattern(re.compile(r"MA5800-X17", re.I), "Huawei MA5800-X17", "OLT"),
    DevicePattern(re.compile(r"MA5800-X7", re.I), "Huawei MA5800-X7", "OLT"),
    DevicePattern(re.compile(r"MA5800", re.I), "Huawei MA5800", "OLT"),
    DevicePattern(re.compile(r"MA5600T", re.I), "Huawei MA5600T", "OLT"),
    DevicePattern(re.compile(r"MA5608T", re.I), "Huawei MA5608T", "OLT"),
    DevicePattern(re.compile(r"MA5683T", re.I), "Huawei MA5683T", "OLT"),
    DevicePattern(re.compile(r"MA5616", re.I), "Huawei MA5616", "DSLAM"),
    DevicePattern(re.compile(r"ATN\d+", re.I), "Huawei ATN Router", "Router"),
    DevicePattern(re.compile(r"NE\d+", re.I), "Huawei NE Router", "Router"),
    DevicePattern(re.compile(r"S\d{4}", re.I), "Huawei Switch", "Switch"),
]

RISK_SEVERITY: dict[Risk, Level] = {
    "low": Level.MINOR,
    "medium": Level.MINOR,
    "high": Level.MAJOR,
    "critical": Level.CRITICAL,
}


def detect_device(operation_object: str | None) -> DevicePattern | None:
    """Return the first device pattern matching the operation object."""
    if not operation_object:
        return None
    for device in DEVICE_PATTERNS:
        if device.pattern.search(operation_object):
            return device
    return None
