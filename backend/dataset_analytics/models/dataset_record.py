"""DatasetRecord model."""
from sqlalchemy import Column, Integer, String, Float, DateTime

from dataset_analytics.database import Base


class DatasetRecord(Base):
    """
    One row of the dataset under analysis.

    Rows are immutable once written; to correct a value, insert a new row.

    Attributes:
        record_id: Primary key
        category: Grouping key for summaries (e.g. "Sales")
        value: Numeric measurement
        timestamp: When the measurement was taken
        label: Free-form tag (e.g. "High", "Low")
    """

    __tablename__ = "dataset"

    record_id = Column(Integer, primary_key=True)
    category = Column(String(50), nullable=False, index=True)
    value = Column(Float, nullable=False)
    timestamp = Column(DateTime, nullable=False, index=True)
    label = Column(String(50), nullable=False)

    def __repr__(self):
        return f"<DatasetRecord(record_id={self.record_id}, category='{self.category}', value={self.value})>"
