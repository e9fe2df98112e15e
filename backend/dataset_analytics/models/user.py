"""User model."""
import enum

from sqlalchemy import Column, Integer, String
from sqlalchemy import Enum as SQLEnum
from sqlalchemy.orm import relationship

from dataset_analytics.database import Base


class UserRole(str, enum.Enum):
    """Role of a platform user"""
    ANALYST = "Analyst"
    ADMIN = "Admin"


class User(Base):
    """
    User model representing the people who run analyses.

    Users are reference data: the analytics layer joins them into reports
    but never mutates them.

    Attributes:
        user_id: Primary key
        name: Display name
        role: Analyst or Admin
    """

    __tablename__ = "users"

    user_id = Column(Integer, primary_key=True)
    name = Column(String(50), nullable=False)
    role = Column(
        SQLEnum(
            UserRole,
            name="user_role",
            values_callable=lambda roles: [r.value for r in roles],
        ),
        nullable=False,
        default=UserRole.ANALYST,
    )

    # Relationships
    analysis_logs = relationship(
        "AnalysisLog",
        back_populates="user",
        cascade="all, delete-orphan"
    )

    def __repr__(self):
        return f"<User(user_id={self.user_id}, name='{self.name}', role='{self.role}')>"
