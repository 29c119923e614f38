from __future__ import annotations

from typing import Any, Optional


class DomainError(Exception):
    """Base for every error the task/time layer reports to callers."""


class NotFoundError(DomainError):
    def __init__(self, entity: str, identifier: Any, message: Optional[str] = None) -> None:
        self.entity = entity
        self.identifier = identifier
        super().__init__(message or f"{entity} not found: {identifier}")


class ConflictError(DomainError):
    """Invalid state transition, e.g. starting an already running entry."""

    def __init__(self, message: str, entity: Optional[str] = None, identifier: Any = None) -> None:
        self.entity = entity
        self.identifier = identifier
        super().__init__(message)


class ValidationError(DomainError):
    pass


class DependencyCycleError(ValidationError):
    def __init__(self, task_uuid: str, depends_on_uuid: str, message: str) -> None:
        self.task_uuid = task_uuid
        self.depends_on_uuid = depends_on_uuid
        super().__init__(message)


class ConstraintError(DomainError):
    """A storage constraint rejected the write (duplicate uuid, unknown foreign key)."""

    def __init__(self, message: str, entity: Optional[str] = None, identifier: Any = None) -> None:
        self.entity = entity
        self.identifier = identifier
        super().__init__(message)


class SerializationError(DomainError):
    def __init__(self, field: str, message: str) -> None:
        self.field = field
        super().__init__(f"failed to serialize {field}: {message}")


class DeadlineExceededError(DomainError):
    def __init__(self, timeout: float) -> None:
        self.timeout = timeout
        super().__init__(f"store operation exceeded deadline of {timeout:g}s")
