from __future__ import annotations

from enum import Enum

from taskledger.domain.common.errors import DependencyCycleError, ValidationError


class DependencyValidation(str, Enum):
    """How strictly new dependency edges are checked before they are written."""

    OFF = "off"
    NO_SELF_LOOPS = "no_self_loops"
    ACYCLIC = "acyclic"


def validate_description(description: str) -> None:
    if not description or not description.strip():
        raise ValidationError("Description is required.")


def validate_uuid(uuid: str) -> None:
    if not uuid or not uuid.strip():
        raise ValidationError("Task uuid is required.")


def check_self_loop(task_uuid: str, depends_on_uuid: str) -> None:
    if task_uuid == depends_on_uuid:
        raise DependencyCycleError(
            task_uuid,
            depends_on_uuid,
            f"task {task_uuid} cannot depend on itself",
        )


def reject_cycle(task_uuid: str, depends_on_uuid: str) -> None:
    raise DependencyCycleError(
        task_uuid,
        depends_on_uuid,
        f"dependency {task_uuid} -> {depends_on_uuid} would create a cycle",
    )
