"""Exception types raised by the orchestration core."""

from __future__ import annotations


class PerspectiveError(Exception):
    """Base class for workflow errors."""


class StepFailure(PerspectiveError):
    """A step's underlying operation raised."""

    def __init__(self, step_name: str, message: str) -> None:
        super().__init__(f"Step '{step_name}' failed: {message}")
        self.step_name = step_name


class DuplicateStepError(PerspectiveError):
    """A result was already recorded for this (instance, step) pair."""

    def __init__(self, instance_id: str, step_name: str) -> None:
        super().__init__(
            f"Step '{step_name}' already has a result for instance {instance_id}"
        )
        self.instance_id = instance_id
        self.step_name = step_name


class NotFoundError(PerspectiveError, KeyError):
    """No workflow instance exists with the requested id."""

    def __init__(self, instance_id: str) -> None:
        super().__init__(f"Workflow instance {instance_id} not found")
        self.instance_id = instance_id

    def __str__(self) -> str:
        return self.args[0]


class InvalidTransitionError(PerspectiveError):
    """Terminal instances cannot change state."""
