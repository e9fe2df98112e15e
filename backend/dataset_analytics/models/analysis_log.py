"""AnalysisLog model."""
from sqlalchemy import Column, Integer, Text, DateTime, ForeignKey
from sqlalchemy.orm import relationship

from dataset_analytics.database import Base


class AnalysisLog(Base):
    """
    Append-only audit trail of analysis operations.

    Rows are written by external callers; the analytics layer only reads
    them. Every row must reference an existing user.

    Attributes:
        log_id: Primary key
        user_id: Reference to the user who ran the operation
        operation: Free-text description of the operation
        log_time: When the operation ran
    """

    __tablename__ = "analysis_logs"

    log_id = Column(Integer, primary_key=True)
    user_id = Column(
        Integer,
        ForeignKey("users.user_id"),
        nullable=False,
        index=True
    )
    operation = Column(Text, nullable=False)
    log_time = Column(DateTime, nullable=False, index=True)

    # Relationships
    user = relationship("User", back_populates="analysis_logs")

    def __repr__(self):
        return f"<AnalysisLog(log_id={self.log_id}, user_id={self.user_id})>"
