"""Immutable domain records handed to the aggregation engine and reports."""
from dataclasses import dataclass
from datetime import datetime

from dataset_analytics.models.user import UserRole


@dataclass(frozen=True)
class Record:
    """One validated row of the analysis corpus."""
    id: int
    category: str
    value: float
    timestamp: datetime
    label: str


@dataclass(frozen=True)
class UserProfile:
    """A validated user, as joined into activity reports."""
    id: int
    name: str
    role: UserRole


@dataclass(frozen=True)
class AnalysisLogEntry:
    """A validated audit-trail entry."""
    id: int
    user_id: int
    operation: str
    log_time: datetime
