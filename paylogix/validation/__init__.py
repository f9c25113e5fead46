"""Input validation package."""

from paylogix.validation.validator import RecordValidator, to_amount

__all__ = ["RecordValidator", "to_amount"]
