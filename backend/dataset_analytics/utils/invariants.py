"""
System invariants and validation utilities.

Enforces critical data constraints:
1. No malformed record, user or log entry past ingestion
2. No duplicate identifiers within a set
3. No analysis log entry without an existing user
4. No writes or foreign reads from the report orchestrator

Fail fast with explicit errors.
"""

from typing import Any, Hashable, Iterable, Set


class InvariantViolationError(Exception):
    """Base exception for invariant violations."""

    def __init__(self, invariant_name: str, message: str, details: dict = None):
        self.invariant_name = invariant_name
        self.details = details or {}
        super().__init__(f"[INVARIANT VIOLATION: {invariant_name}] {message}")


class ValidationError(InvariantViolationError):
    """Raised when an input row is malformed (bad value, timestamp, category or label)."""

    def __init__(self, message: str, details: dict = None):
        super().__init__("malformed_input", message, details)


class DuplicateIdentifierError(InvariantViolationError):
    """Raised when the same id appears twice within one set of entities."""

    def __init__(self, message: str, details: dict = None):
        super().__init__("duplicate_identifier", message, details)


class ReferentialIntegrityError(InvariantViolationError):
    """Raised when an AnalysisLogEntry references a nonexistent user."""

    def __init__(self, message: str, details: dict = None):
        super().__init__("log_without_user", message, details)


class ReadOnlyContractViolationError(InvariantViolationError):
    """Raised when the report orchestrator touches a model it may not read."""

    def __init__(self, message: str, details: dict = None):
        super().__init__("read_only_contract", message, details)


def check_unique_ids(ids: Iterable[Hashable], entity: str) -> None:
    """
    Invariant: identifiers are unique within their own set.

    Args:
        ids: Identifiers in input order
        entity: Entity name used in the error (e.g. "Record")

    Raises:
        DuplicateIdentifierError: On the first repeated id
    """
    seen: Set[Hashable] = set()
    for position, identifier in enumerate(ids):
        if identifier in seen:
            raise DuplicateIdentifierError(
                f"{entity} id {identifier!r} appears more than once",
                details={
                    "entity": entity,
                    "id": identifier,
                    "position": position,
                }
            )
        seen.add(identifier)


def check_log_references_user(log_id: Any, user_id: Any, known_user_ids: Set[Any]) -> None:
    """
    Invariant: no analysis log entry without an existing user.

    Args:
        log_id: ID of the log entry being checked
        user_id: User ID the entry references
        known_user_ids: IDs of all existing users

    Raises:
        ReferentialIntegrityError: If user_id is not in known_user_ids
    """
    if user_id not in known_user_ids:
        raise ReferentialIntegrityError(
            f"AnalysisLogEntry {log_id} references nonexistent user {user_id}",
            details={
                "log_id": log_id,
                "user_id": user_id,
                "exists": False,
            }
        )


def check_referential_integrity(users: Iterable[Any], logs: Iterable[Any]) -> None:
    """
    Validate every log entry against the given users.

    Both arguments hold objects exposing ``id`` (users) and ``id`` /
    ``user_id`` (log entries), i.e. the domain records from
    ``dataset_analytics.services.records``.

    Raises:
        ReferentialIntegrityError: On the first dangling reference
    """
    known_user_ids = {user.id for user in users}
    for entry in logs:
        check_log_references_user(entry.id, entry.user_id, known_user_ids)
