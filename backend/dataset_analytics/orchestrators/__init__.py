"""
Orchestrators package.

Orchestrators coordinate loading, validation and aggregation into a single
traced pipeline. They read from the store but never write to it.
"""

from dataset_analytics.orchestrators.base import (
    BaseOrchestrator,
    ExecutionStep,
    OrchestrationError,
)
from dataset_analytics.orchestrators.report_orchestrator import (
    ReportOrchestrator,
    ReportOrchestratorError,
)

__all__ = [
    "BaseOrchestrator",
    "ExecutionStep",
    "OrchestrationError",
    "ReportOrchestrator",
    "ReportOrchestratorError",
]
