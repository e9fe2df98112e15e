"""
Models Package

Imports all SQLAlchemy models for application use.
"""

from dataset_analytics.models.user import User, UserRole
from dataset_analytics.models.analysis_log import AnalysisLog
from dataset_analytics.models.dataset_record import DatasetRecord

__all__ = [
    'User',
    'UserRole',
    'AnalysisLog',
    'DatasetRecord',
]
