"""
Services package.

Services contain the analytics logic and the data access layer.

Services should:
    - Accept validated domain records (or a database session for loaders)
    - Never mutate their inputs
    - Return plain values or raise invariant errors
"""

from dataset_analytics.services.records import (
    Record,
    UserProfile,
    AnalysisLogEntry,
)
from dataset_analytics.services.aggregation_engine import (
    AggregationEngine,
    CategorySummary,
    TrendPoint,
    LabelFrequency,
)
from dataset_analytics.services.ingestion_service import (
    IngestionService,
    validate_record,
    validate_user,
    validate_log_entry,
    ingest_records,
    ingest_users,
    ingest_log_entries,
)
from dataset_analytics.services.activity_report_service import (
    ActivityReportService,
    LogDetail,
    DailyActivity,
)

__all__ = [
    "Record",
    "UserProfile",
    "AnalysisLogEntry",
    "AggregationEngine",
    "CategorySummary",
    "TrendPoint",
    "LabelFrequency",
    "IngestionService",
    "validate_record",
    "validate_user",
    "validate_log_entry",
    "ingest_records",
    "ingest_users",
    "ingest_log_entries",
    "ActivityReportService",
    "LogDetail",
    "DailyActivity",
]
