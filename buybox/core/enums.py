"""
Shared enums and constants used across the application.
"""

from enum import Enum

class EventKind(str, Enum):
    OWNERSHIP_CHANGE = "ownership_change"
    SALE_ESTIMATE = "sale_estimate"


class ItemOutcome(str, Enum):
    """Result of one Diff Engine pass over a single item"""
    PROCESSED = "processed"
    SKIPPED = "skipped"
    FAILED = "failed"


class AlertLevel(str, Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    SUCCESS = "success"

    @property
    def colour(self) -> int:
        return {
            AlertLevel.INFO: 0x0099FF,
            AlertLevel.WARNING: 0xFFA500,
            AlertLevel.ERROR: 0xFF0000,
            AlertLevel.SUCCESS: 0x00FF00,
        }[self]
