"""
Tests for record, user and log ingestion.

Verifies:
- Well-formed mappings and ORM rows become immutable domain records
- Malformed rows fail fast with ValidationError
- Duplicate ids are rejected
- IngestionService loads from the store in id order
"""
import os

# Set environment variables before importing app modules
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from dataset_analytics.database import Base
from dataset_analytics.models import AnalysisLog, DatasetRecord, User, UserRole
from dataset_analytics.services.ingestion_service import (
    IngestionService,
    ingest_log_entries,
    ingest_records,
    ingest_users,
    validate_log_entry,
    validate_record,
    validate_user,
)
from dataset_analytics.services.records import AnalysisLogEntry, Record, UserProfile
from dataset_analytics.utils.invariants import (
    DuplicateIdentifierError,
    InvariantViolationError,
    ValidationError,
)

# Setup test database
TEST_DATABASE_URL = "sqlite:///:memory:"
engine = create_engine(TEST_DATABASE_URL)
TestSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db():
    """Create test database session."""
    Base.metadata.create_all(bind=engine)
    session = TestSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


def raw_record(**overrides):
    row = {
        "record_id": 1,
        "category": "Sales",
        "value": 1200.5,
        "timestamp": "2025-03-15 10:00:00",
        "label": "High",
    }
    row.update(overrides)
    return row


# ---------------------------------------------------------------------------
# validate_record
# ---------------------------------------------------------------------------


def test_validate_record_from_mapping():
    record = validate_record(raw_record())

    assert record == Record(
        id=1,
        category="Sales",
        value=1200.5,
        timestamp=datetime(2025, 3, 15, 10, 0, 0),
        label="High",
    )


def test_validate_record_accepts_id_key_and_numeric_string():
    record = validate_record({
        "id": 7,
        "category": "Sales",
        "value": " 300 ",
        "timestamp": datetime(2025, 3, 15, 10, 5),
        "label": "Low",
    })

    assert record.id == 7
    assert record.value == 300.0
    assert isinstance(record.value, float)


@pytest.mark.parametrize("value", ["abc", None, True, float("nan"), float("inf"), [1.0]])
def test_validate_record_rejects_bad_value(value):
    with pytest.raises(ValidationError) as exc_info:
        validate_record(raw_record(value=value))

    assert exc_info.value.details["field"] == "value"


@pytest.mark.parametrize("timestamp", ["15/03/2025", "", None, 1742032800])
def test_validate_record_rejects_bad_timestamp(timestamp):
    with pytest.raises(ValidationError) as exc_info:
        validate_record(raw_record(timestamp=timestamp))

    assert exc_info.value.details["field"] == "timestamp"


@pytest.mark.parametrize("field", ["category", "label"])
@pytest.mark.parametrize("bad", [None, "", "   ", 5])
def test_validate_record_rejects_missing_text(field, bad):
    with pytest.raises(ValidationError):
        validate_record(raw_record(**{field: bad}))


def test_validate_record_rejects_missing_id():
    row = raw_record()
    del row["record_id"]

    with pytest.raises(ValidationError):
        validate_record(row)


def test_validation_error_message_names_invariant():
    with pytest.raises(InvariantViolationError) as exc_info:
        validate_record(raw_record(value="n/a"))

    assert "[INVARIANT VIOLATION: malformed_input]" in str(exc_info.value)
    assert exc_info.value.invariant_name == "malformed_input"


# ---------------------------------------------------------------------------
# users and logs
# ---------------------------------------------------------------------------


def test_validate_user_roles():
    assert validate_user({"user_id": 1, "name": "Asha", "role": "Analyst"}) == UserProfile(
        id=1, name="Asha", role=UserRole.ANALYST
    )
    assert validate_user({"id": 2, "name": "Vikram", "role": UserRole.ADMIN}).role == UserRole.ADMIN


def test_validate_user_rejects_unknown_role():
    with pytest.raises(ValidationError) as exc_info:
        validate_user({"user_id": 3, "name": "Eve", "role": "Superuser"})

    assert "Analyst, Admin" in str(exc_info.value)


def test_validate_log_entry():
    entry = validate_log_entry({
        "log_id": 1,
        "user_id": 1,
        "operation": "Average Value Computation",
        "log_time": "2025-04-01T08:30:00",
    })

    assert entry == AnalysisLogEntry(
        id=1,
        user_id=1,
        operation="Average Value Computation",
        log_time=datetime(2025, 4, 1, 8, 30),
    )


def test_validate_log_entry_rejects_bad_time():
    with pytest.raises(ValidationError):
        validate_log_entry({"log_id": 1, "user_id": 1, "operation": "x", "log_time": "yesterday"})


# ---------------------------------------------------------------------------
# batch ingestion
# ---------------------------------------------------------------------------


def test_ingest_records_preserves_order():
    records = ingest_records([raw_record(record_id=2), raw_record(record_id=1)])

    assert [r.id for r in records] == [2, 1]


def test_ingest_records_rejects_duplicate_ids():
    with pytest.raises(DuplicateIdentifierError) as exc_info:
        ingest_records([raw_record(record_id=1), raw_record(record_id=1)])

    assert exc_info.value.details == {"entity": "Record", "id": 1, "position": 1}


def test_ingest_records_fails_on_first_malformed_row():
    with pytest.raises(ValidationError):
        ingest_records([raw_record(record_id=1), raw_record(record_id=2, value="oops")])


def test_ingest_users_and_logs_reject_duplicates():
    with pytest.raises(DuplicateIdentifierError):
        ingest_users([
            {"user_id": 1, "name": "Asha", "role": "Analyst"},
            {"user_id": 1, "name": "Vikram", "role": "Admin"},
        ])
    with pytest.raises(DuplicateIdentifierError):
        ingest_log_entries([
            {"log_id": 1, "user_id": 1, "operation": "a", "log_time": "2025-04-01T08:30:00"},
            {"log_id": 1, "user_id": 1, "operation": "b", "log_time": "2025-04-01T09:30:00"},
        ])


def test_ingest_empty():
    assert ingest_records([]) == []


# ---------------------------------------------------------------------------
# IngestionService
# ---------------------------------------------------------------------------


def test_ingestion_service_loads_from_store(db):
    db.add_all([
        DatasetRecord(record_id=2, category="Sales", value=300.0,
                      timestamp=datetime(2025, 3, 15, 10, 5), label="Low"),
        DatasetRecord(record_id=1, category="Sales", value=1200.5,
                      timestamp=datetime(2025, 3, 15, 10, 0), label="High"),
        DatasetRecord(record_id=3, category="Support", value=90.0,
                      timestamp=datetime(2025, 3, 16, 12, 0), label="Low"),
        User(user_id=1, name="Asha", role=UserRole.ANALYST),
        User(user_id=2, name="Vikram", role=UserRole.ADMIN),
    ])
    db.flush()
    db.add(AnalysisLog(log_id=1, user_id=1, operation="Average Value Computation",
                       log_time=datetime(2025, 4, 1, 8, 30)))
    db.commit()

    service = IngestionService(db)

    records = service.load_records()
    assert [r.id for r in records] == [1, 2, 3]
    assert records[0].value == 1200.5

    assert [r.id for r in service.load_records(category="Support")] == [3]

    users = service.load_users()
    assert [(u.name, u.role) for u in users] == [("Asha", UserRole.ANALYST), ("Vikram", UserRole.ADMIN)]

    logs = service.load_log_entries()
    assert logs == [AnalysisLogEntry(
        id=1, user_id=1, operation="Average Value Computation",
        log_time=datetime(2025, 4, 1, 8, 30),
    )]


def test_ingestion_service_empty_store(db):
    service = IngestionService(db)

    assert service.load_records() == []
    assert service.load_users() == []
    assert service.load_log_entries() == []


# ---------------------------------------------------------------------------
# timezone handling
# ---------------------------------------------------------------------------


def test_offset_timestamps_are_normalized_to_naive_utc():
    record = validate_record(raw_record(timestamp="2025-03-15T23:30:00-02:00"))

    assert record.timestamp == datetime(2025, 3, 16, 1, 30)
    assert record.timestamp.tzinfo is None


def test_z_suffix_is_accepted_as_utc():
    record = validate_record(raw_record(timestamp="2025-03-15T10:00:00Z"))

    assert record.timestamp == datetime(2025, 3, 15, 10, 0)


def test_aware_datetime_objects_are_normalized():
    aware = datetime(2025, 3, 15, 15, 30, tzinfo=timezone(timedelta(hours=5, minutes=30)))

    record = validate_record(raw_record(timestamp=aware))

    assert record.timestamp == datetime(2025, 3, 15, 10, 0)
    assert record.timestamp.tzinfo is None


def test_mixed_naive_and_aware_batch_is_comparable():
    entries = ingest_log_entries([
        {"log_id": 1, "user_id": 1, "operation": "a", "log_time": "2025-04-01 08:30:00"},
        {"log_id": 2, "user_id": 1, "operation": "b", "log_time": "2025-04-01T09:30:00+00:00"},
        {"log_id": 3, "user_id": 1, "operation": "c", "log_time": "2025-04-01T10:00:00+05:30"},
    ])

    assert all(e.log_time.tzinfo is None for e in entries)
    assert [e.id for e in sorted(entries, key=lambda e: e.log_time)] == [3, 1, 2]
