"""Activity reports joining users with their analysis log entries."""
import logging
from collections import Counter
from dataclasses import dataclass
from datetime import date, datetime
from typing import Dict, Iterable, List, Optional, Tuple

from dataset_analytics.models.user import UserRole
from dataset_analytics.services.records import AnalysisLogEntry, UserProfile
from dataset_analytics.utils.invariants import check_log_references_user

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LogDetail:
    """A log entry joined with the user who wrote it."""
    log_id: int
    user_name: str
    role: UserRole
    operation: str
    log_time: datetime


@dataclass(frozen=True)
class DailyActivity:
    """Number of operations one user ran on one day."""
    name: str
    log_date: date
    activity_count: int


class ActivityReportService:
    """
    Join-based reports over users and the analysis audit trail.

    Every report is an inner join of log entries onto users. A log entry
    whose user does not exist is an integrity violation, not a row to drop.
    """

    def _join(
        self,
        users: Iterable[UserProfile],
        logs: Iterable[AnalysisLogEntry],
    ) -> List[Tuple[AnalysisLogEntry, UserProfile]]:
        by_id: Dict[int, UserProfile] = {user.id: user for user in users}
        known = set(by_id)
        joined = []
        for entry in logs:
            check_log_references_user(entry.id, entry.user_id, known)
            joined.append((entry, by_id[entry.user_id]))
        return joined

    def log_details(
        self,
        users: Iterable[UserProfile],
        logs: Iterable[AnalysisLogEntry],
    ) -> List[LogDetail]:
        """
        Each log entry with its user's name and role, in log input order.

        Raises:
            ReferentialIntegrityError: If an entry references a missing user
        """
        return [
            LogDetail(
                log_id=entry.id,
                user_name=user.name,
                role=user.role,
                operation=entry.operation,
                log_time=entry.log_time,
            )
            for entry, user in self._join(users, logs)
        ]

    def recent_logs(
        self,
        users: Iterable[UserProfile],
        logs: Iterable[AnalysisLogEntry],
        limit: Optional[int] = None,
    ) -> List[LogDetail]:
        """
        Log details ordered by log_time, most recent first.

        Entries sharing a log_time keep their input order.

        Args:
            users: Known users
            logs: Log entries
            limit: Optional maximum number of entries

        Returns:
            List of LogDetail objects
        """
        details = sorted(
            self.log_details(users, logs),
            key=lambda d: d.log_time,
            reverse=True,
        )
        if limit is not None:
            details = details[:max(limit, 0)]
        return details

    def daily_activity(
        self,
        users: Iterable[UserProfile],
        logs: Iterable[AnalysisLogEntry],
        role: Optional[UserRole] = UserRole.ANALYST,
    ) -> List[DailyActivity]:
        """
        Count operations per (user name, calendar day).

        Args:
            users: Known users
            logs: Log entries
            role: Only count users with this role; None counts everyone

        Returns:
            DailyActivity rows ordered by date, then name
        """
        counts = Counter(
            (entry.log_time.date(), user.name)
            for entry, user in self._join(users, logs)
            if role is None or user.role == role
        )
        activity = [
            DailyActivity(name=name, log_date=day, activity_count=count)
            for (day, name), count in sorted(counts.items())
        ]
        logger.debug("daily_activity: %d rows for role=%s", len(activity), role)
        return activity
