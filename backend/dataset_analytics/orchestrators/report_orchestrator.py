"""Report orchestrator for generating dashboard-ready analytics reports."""
import enum
import logging
from dataclasses import asdict, is_dataclass
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from dataset_analytics.config import settings
from dataset_analytics.models.analysis_log import AnalysisLog
from dataset_analytics.models.dataset_record import DatasetRecord
from dataset_analytics.models.user import User, UserRole
from dataset_analytics.orchestrators.base import BaseOrchestrator, OrchestrationError
from dataset_analytics.services.activity_report_service import ActivityReportService
from dataset_analytics.services.aggregation_engine import AggregationEngine, ordered_band
from dataset_analytics.services.ingestion_service import (
    ingest_log_entries,
    ingest_records,
    ingest_users,
)
from dataset_analytics.utils.invariants import (
    ReadOnlyContractViolationError,
    check_referential_integrity,
)

logger = logging.getLogger(__name__)


class ReportOrchestratorError(OrchestrationError):
    """Base exception for report orchestrator errors."""
    pass


def _jsonable(value: Any) -> Any:
    """Convert dataclasses, dates and enums into JSON-ready values."""
    if is_dataclass(value):
        return _jsonable(asdict(value))
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    if isinstance(value, enum.Enum):
        return value.value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return value


class ReportOrchestrator(BaseOrchestrator[Dict[str, Any]]):
    """
    Orchestrator for generating analytics reports.

    Steps:
    1. Load dataset, users and analysis logs
    2. Validate rows and referential integrity
    3. Call AggregationEngine and ActivityReportService
    4. Return dashboard-ready JSON

    READ-ONLY CONTRACT:
    - Only READS from: DatasetRecord, User, AnalysisLog
    - Never WRITES
    - Enforced via _tracked_read()
    """

    # Allowed models for READ operations
    _ALLOWED_READ_MODELS = {
        'DatasetRecord',
        'User',
        'AnalysisLog',
    }

    error_class = ReportOrchestratorError

    @property
    def orchestrator_name(self) -> str:
        """Return orchestrator name."""
        return "report_orchestrator"

    def __init__(
        self,
        db: Session,
        engine: Optional[AggregationEngine] = None,
        activity_service: Optional[ActivityReportService] = None,
    ):
        """
        Initialize report orchestrator.

        Args:
            db: Database session
            engine: Optional aggregation engine (default: new instance)
            activity_service: Optional activity report service
        """
        super().__init__(db)
        self.engine = engine or AggregationEngine()
        self.activity_service = activity_service or ActivityReportService()
        self._read_operations: List[str] = []

    def run(
        self,
        low_threshold: Optional[float] = None,
        high_threshold: Optional[float] = None,
        top_n: Optional[int] = None,
        category: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Build the full analytics report.

        Args:
            low_threshold: Outlier lower bound (default: settings)
            high_threshold: Outlier upper bound (default: settings)
            top_n: Records kept per category in the ranking (default: settings)
            category: Optional category to restrict the dataset to

        Returns:
            Dashboard-ready JSON with analytics data

        Raises:
            ValidationError: If a stored row is malformed
            ReferentialIntegrityError: If a log references a missing user
            ReportOrchestratorError: If generation fails otherwise
        """
        return self.execute(
            input_data={
                "low_threshold": settings.outlier_low_threshold if low_threshold is None else low_threshold,
                "high_threshold": settings.outlier_high_threshold if high_threshold is None else high_threshold,
                "top_n": settings.top_n_per_category if top_n is None else top_n,
                "category": category,
            }
        )

    def _execute_pipeline(self, context: Dict[str, Any]) -> Dict[str, Any]:
        """
        Execute the report pipeline.

        Args:
            context: Execution context with thresholds, top_n and category

        Returns:
            Dashboard-ready JSON response
        """
        self._read_operations = []
        low, high = ordered_band(context["low_threshold"], context["high_threshold"])
        top_n = context["top_n"]
        category = context.get("category")

        # Step 1: Load data (read-only)
        with self._trace_step("load_data") as step:
            filters = [DatasetRecord.category == category] if category is not None else []
            record_rows = self._tracked_read(DatasetRecord, *filters).order_by(
                DatasetRecord.record_id.asc()
            ).all()
            user_rows = self._tracked_read(User).order_by(User.user_id.asc()).all()
            log_rows = self._tracked_read(AnalysisLog).order_by(AnalysisLog.log_id.asc()).all()
            step.details = {
                "records": len(record_rows),
                "users": len(user_rows),
                "logs": len(log_rows),
            }

        # Step 2: Validate
        with self._trace_step("validate"):
            records = ingest_records(record_rows)
            users = ingest_users(user_rows)
            logs = ingest_log_entries(log_rows)
            check_referential_integrity(users, logs)

        # Step 3: Aggregate
        with self._trace_step("aggregate"):
            summaries = self.engine.summarize(records)
            medians = self.engine.category_medians(records)
            outliers = self.engine.detect_outliers(records, low, high)
            top_records = self.engine.top_n_per_category(records, top_n)
            trend = self.engine.daily_trend(records)
            labels = self.engine.rank_labels(self.engine.frequent_labels(records))

        # Step 4: Activity reports
        with self._trace_step("activity_reports"):
            recent = self.activity_service.recent_logs(users, logs)
            analyst_activity = self.activity_service.daily_activity(
                users, logs, role=UserRole.ANALYST
            )

        logger.info(
            "Report built: %d records, %d categories, %d outliers",
            len(records), len(summaries), len(outliers)
        )

        return self._build_dashboard_json(
            record_count=len(records),
            category=category,
            low=low,
            high=high,
            top_n=top_n,
            summaries=summaries,
            medians=medians,
            outliers=outliers,
            top_records=top_records,
            trend=trend,
            labels=labels,
            recent=recent,
            analyst_activity=analyst_activity,
        )

    def _build_dashboard_json(
        self,
        record_count: int,
        category: Optional[str],
        low: float,
        high: float,
        top_n: int,
        summaries,
        medians,
        outliers,
        top_records,
        trend,
        labels,
        recent,
        analyst_activity,
    ) -> Dict[str, Any]:
        """
        Build dashboard-ready JSON from the aggregated values.

        Returns:
            Dashboard-ready JSON dictionary
        """
        return {
            "record_count": record_count,
            "category_filter": category,
            "category_summary": [
                dict(_jsonable(summary), median=medians[name])
                for name, summary in summaries.items()
            ],
            "outliers": {
                "low_threshold": low,
                "high_threshold": high,
                "records": _jsonable(outliers),
            },
            "top_records": {
                "per_category": top_n,
                "records": _jsonable(top_records),
            },
            "trendline": _jsonable(trend),
            "label_distribution": [
                _jsonable(item)
                for ranking in labels.values()
                for item in ranking
            ],
            "recent_logs": _jsonable(recent),
            "analyst_activity": _jsonable(analyst_activity),
        }

    def _tracked_read(self, model, *filters):
        """
        Perform a tracked database read operation.

        Logs the model being read from and validates it's an allowed read model.

        Args:
            model: SQLAlchemy model class
            *filters: Query filters

        Returns:
            SQLAlchemy query object
        """
        model_name = model.__name__
        if model_name not in self._ALLOWED_READ_MODELS:
            raise ReadOnlyContractViolationError(
                f"ReportOrchestrator attempted to read from non-allowed model: {model_name}. "
                f"Allowed read models: {', '.join(sorted(self._ALLOWED_READ_MODELS))}",
                details={"model": model_name}
            )
        self._read_operations.append(model_name)
        return self.db.query(model).filter(*filters)
