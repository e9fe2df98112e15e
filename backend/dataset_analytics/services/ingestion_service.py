"""Ingestion service: validates raw rows into immutable domain records."""
import logging
import math
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Iterable, List, Mapping, Optional

from sqlalchemy.orm import Session

from dataset_analytics.models.analysis_log import AnalysisLog
from dataset_analytics.models.dataset_record import DatasetRecord
from dataset_analytics.models.user import User, UserRole
from dataset_analytics.services.records import AnalysisLogEntry, Record, UserProfile
from dataset_analytics.utils.invariants import ValidationError, check_unique_ids

logger = logging.getLogger(__name__)


def _field(raw: Any, *names: str) -> Any:
    """Read the first present field from a mapping or an ORM row."""
    for name in names:
        if isinstance(raw, Mapping):
            if name in raw:
                return raw[name]
        elif hasattr(raw, name):
            return getattr(raw, name)
    return None


def _reject(entity: str, field: str, value: Any, reason: str) -> ValidationError:
    logger.warning("Rejected %s: %s=%r (%s)", entity, field, value, reason)
    return ValidationError(
        f"Invalid {entity}: field '{field}' {reason}",
        details={"entity": entity, "field": field, "value": repr(value)}
    )


def _parse_id(entity: str, field: str, value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise _reject(entity, field, value, "must be an integer")
    return value


def _parse_text(entity: str, field: str, value: Any) -> str:
    if not isinstance(value, str) or not value.strip():
        raise _reject(entity, field, value, "must be a non-empty string")
    return value


def _parse_value(entity: str, field: str, value: Any) -> float:
    if isinstance(value, bool):
        raise _reject(entity, field, value, "must be numeric")
    if isinstance(value, (int, float, Decimal)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            raise _reject(entity, field, value, "must be numeric")
    else:
        raise _reject(entity, field, value, "must be numeric")
    if not math.isfinite(number):
        raise _reject(entity, field, value, "must be finite")
    return number


def _parse_timestamp(entity: str, field: str, value: Any) -> datetime:
    if isinstance(value, str):
        text = value.strip()
        # fromisoformat() only accepts a trailing "Z" from Python 3.11
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            value = datetime.fromisoformat(text)
        except ValueError:
            raise _reject(entity, field, value, "must be an ISO-8601 date-time")
    if not isinstance(value, datetime):
        raise _reject(entity, field, value, "must be a date-time")
    if value.tzinfo is not None and value.utcoffset() is not None:
        # stored as naive UTC, like the DateTime columns
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def _parse_role(entity: str, field: str, value: Any) -> UserRole:
    if isinstance(value, UserRole):
        return value
    try:
        return UserRole(value)
    except ValueError:
        allowed = ", ".join(r.value for r in UserRole)
        raise _reject(entity, field, value, f"must be one of: {allowed}")


def validate_record(raw: Any) -> Record:
    """
    Validate one dataset row.

    Args:
        raw: Mapping or DatasetRecord row with id/record_id, category,
            value, timestamp and label

    Returns:
        Immutable Record

    Raises:
        ValidationError: If any field is missing or malformed
    """
    return Record(
        id=_parse_id("Record", "id", _field(raw, "id", "record_id")),
        category=_parse_text("Record", "category", _field(raw, "category")),
        value=_parse_value("Record", "value", _field(raw, "value")),
        timestamp=_parse_timestamp("Record", "timestamp", _field(raw, "timestamp")),
        label=_parse_text("Record", "label", _field(raw, "label")),
    )


def validate_user(raw: Any) -> UserProfile:
    """
    Validate one user row.

    Raises:
        ValidationError: If any field is missing or the role is unknown
    """
    return UserProfile(
        id=_parse_id("User", "id", _field(raw, "id", "user_id")),
        name=_parse_text("User", "name", _field(raw, "name")),
        role=_parse_role("User", "role", _field(raw, "role")),
    )


def validate_log_entry(raw: Any) -> AnalysisLogEntry:
    """
    Validate one analysis log row.

    Referential integrity is checked separately, against the full user set.

    Raises:
        ValidationError: If any field is missing or malformed
    """
    return AnalysisLogEntry(
        id=_parse_id("AnalysisLogEntry", "id", _field(raw, "id", "log_id")),
        user_id=_parse_id("AnalysisLogEntry", "user_id", _field(raw, "user_id")),
        operation=_parse_text("AnalysisLogEntry", "operation", _field(raw, "operation")),
        log_time=_parse_timestamp("AnalysisLogEntry", "log_time", _field(raw, "log_time")),
    )


def ingest_records(rows: Iterable[Any]) -> List[Record]:
    """
    Validate a batch of dataset rows.

    Raises:
        ValidationError: On the first malformed row
        DuplicateIdentifierError: If two rows share an id
    """
    records = [validate_record(row) for row in rows]
    check_unique_ids((r.id for r in records), "Record")
    return records


def ingest_users(rows: Iterable[Any]) -> List[UserProfile]:
    """Validate a batch of user rows (see ingest_records)."""
    users = [validate_user(row) for row in rows]
    check_unique_ids((u.id for u in users), "User")
    return users


def ingest_log_entries(rows: Iterable[Any]) -> List[AnalysisLogEntry]:
    """Validate a batch of analysis log rows (see ingest_records)."""
    entries = [validate_log_entry(row) for row in rows]
    check_unique_ids((e.id for e in entries), "AnalysisLogEntry")
    return entries


class IngestionService:
    """
    Loads and validates the three tables from the relational store.

    Services should:
        - Accept database session as parameter
        - Only read; the store is owned externally
        - Return validated domain records or raise
    """

    def __init__(self, db: Session):
        """
        Initialize ingestion service.

        Args:
            db: Database session
        """
        self.db = db

    def load_records(self, category: Optional[str] = None) -> List[Record]:
        """
        Load dataset rows ordered by record_id.

        Args:
            category: Optional category filter

        Returns:
            Validated records
        """
        query = self.db.query(DatasetRecord)
        if category is not None:
            query = query.filter(DatasetRecord.category == category)
        rows = query.order_by(DatasetRecord.record_id.asc()).all()
        logger.debug("Loaded %d dataset rows", len(rows))
        return ingest_records(rows)

    def load_users(self) -> List[UserProfile]:
        """Load users ordered by user_id."""
        rows = self.db.query(User).order_by(User.user_id.asc()).all()
        return ingest_users(rows)

    def load_log_entries(self) -> List[AnalysisLogEntry]:
        """Load analysis log entries ordered by log_id."""
        rows = self.db.query(AnalysisLog).order_by(AnalysisLog.log_id.asc()).all()
        return ingest_log_entries(rows)
