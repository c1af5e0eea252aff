"""Domain errors raised while creating activities and recurring series.

Services raise these; routes translate them into HTTP responses.
"""

from typing import Optional


class ActivityError(Exception):
    """Base class for activity and series failures."""


class ActivityValidationError(ActivityError):
    """An activity field failed validation. Raised before any write."""

    def __init__(self, field: str, message: str):
        super().__init__(f"{field}: {message}")
        self.field = field
        self.message = message

    def to_dict(self) -> dict:
        return {"field": self.field, "message": self.message}


class RecurrenceValidationError(ActivityValidationError):
    """The recurrence rule is malformed."""


class ParentWriteError(ActivityError):
    """Persisting the parent (or standalone) activity failed. Nothing was stored."""


class InstanceWriteError(ActivityError):
    """The bulk instance write failed after the parent was stored.

    The parent is left in place with zero instances.
    """

    def __init__(self, parent_id: int, message: Optional[str] = None):
        super().__init__(message or f"Failed to generate instances for parent {parent_id}")
        self.parent_id = parent_id


class MediaPropagationError(ActivityError):
    """Copying the parent's images onto one instance failed."""

    def __init__(self, instance_id: int, message: Optional[str] = None):
        super().__init__(message or f"Failed to copy images to activity {instance_id}")
        self.instance_id = instance_id
