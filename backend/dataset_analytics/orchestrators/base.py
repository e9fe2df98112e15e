"""
Base Orchestrator

Abstract base class for orchestrators with built-in support for:
- Step tracing (timed audit of each pipeline step)
- Deterministic pipeline execution
- Uniform error wrapping

All feature orchestrators should extend this class.
"""

import logging
import time
from abc import ABC, abstractmethod
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Dict, Generic, List, Optional, TypeVar

from sqlalchemy.orm import Session

from dataset_analytics.utils.invariants import InvariantViolationError

logger = logging.getLogger(__name__)

# Type variable for orchestrator result
T = TypeVar('T')


def _utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class OrchestrationError(Exception):
    """Raised when a pipeline fails for a reason other than an invariant violation."""
    pass


class ExecutionStep:
    """Represents a single execution step in the trace"""
    def __init__(self, action: str, step_number: int):
        self.step = step_number
        self.action = action
        self.status = "in_progress"
        self.started_at = _utcnow_iso()
        self.completed_at = None
        self.duration_ms = None
        self.details = {}
        self.error = None
        self._start_time = time.perf_counter()

    def _finish(self, status: str) -> None:
        self.status = status
        self.completed_at = _utcnow_iso()
        self.duration_ms = int((time.perf_counter() - self._start_time) * 1000)

    def complete(self, details: Optional[Dict[str, Any]] = None):
        """Mark step as completed"""
        self._finish("success")
        if details:
            self.details = details

    def fail(self, error: str):
        """Mark step as failed"""
        self._finish("failed")
        self.error = error

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization"""
        result = {
            "step": self.step,
            "action": self.action,
            "status": self.status,
            "started_at": self.started_at,
            "completed_at": self.completed_at,
            "duration_ms": self.duration_ms,
        }
        if self.details:
            result["details"] = self.details
        if self.error:
            result["error"] = self.error
        return result


class BaseOrchestrator(ABC, Generic[T]):
    """
    Base class for orchestrators.

    Subclasses implement _execute_pipeline() and call execute(). Each call
    starts a fresh step trace, available afterwards via execution_steps.
    Invariant violations propagate unchanged; anything else is wrapped in
    the subclass's error_class.
    """

    error_class = OrchestrationError

    def __init__(self, db: Session):
        """
        Initialize orchestrator.

        Args:
            db: Database session owned by the caller
        """
        self.db = db
        self._execution_steps: List[ExecutionStep] = []
        self._step_counter = 0

    @property
    @abstractmethod
    def orchestrator_name(self) -> str:
        """Return orchestrator name."""
        pass

    @property
    def execution_steps(self) -> List[Dict[str, Any]]:
        """Trace of the most recent execute() call."""
        return [step.to_dict() for step in self._execution_steps]

    @abstractmethod
    def _execute_pipeline(self, context: Dict[str, Any]) -> T:
        """Run the orchestrator-specific pipeline."""
        pass

    def execute(self, input_data: Dict[str, Any]) -> T:
        """
        Execute the pipeline with tracing.

        Args:
            input_data: Pipeline parameters

        Returns:
            Pipeline result

        Raises:
            InvariantViolationError: If a data invariant is violated
            OrchestrationError: (or subclass error_class) on any other failure
        """
        self._execution_steps = []
        self._step_counter = 0
        logger.info("%s: starting", self.orchestrator_name)

        try:
            result = self._execute_pipeline(dict(input_data))
        except InvariantViolationError:
            logger.warning("%s: invariant violated", self.orchestrator_name, exc_info=True)
            raise
        except self.error_class:
            raise
        except Exception as e:
            logger.error("%s: pipeline failed", self.orchestrator_name, exc_info=True)
            raise self.error_class(f"{self.orchestrator_name} failed: {e}") from e

        logger.info(
            "%s: completed in %d steps",
            self.orchestrator_name, len(self._execution_steps)
        )
        return result

    @contextmanager
    def _trace_step(self, action: str):
        """
        Context manager for automatic step tracing.

        Usage:
            with self._trace_step("validate_input"):
                # do validation
                pass
        """
        self._step_counter += 1
        step = ExecutionStep(action, self._step_counter)
        self._execution_steps.append(step)

        try:
            yield step
            step.complete()
        except Exception as e:
            step.fail(str(e))
            raise
