"""Exception taxonomy for assignment, tracking and analysis."""

from typing import Optional


class ABTestError(Exception):
    """Base class for engine errors."""

    code = "ABTEST_ERROR"

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        if code:
            self.code = code


class ConfigurationError(ABTestError):
    """Variation list is empty or its weights cannot partition traffic."""

    code = "CONFIGURATION_ERROR"


class InsufficientDataError(ABTestError):
    """An arm has no visitors, so a rate cannot be estimated."""

    code = "INSUFFICIENT_DATA"


class ValidationError(ABTestError):
    """Caller supplied missing or malformed input."""

    code = "VALIDATION_ERROR"


class ExperimentNotFoundError(ABTestError):
    code = "NOT_FOUND"

    def __init__(self, experiment_id: str):
        super().__init__(f"Experiment with id '{experiment_id}' not found")
        self.experiment_id = experiment_id


class VisitorNotAssignedError(ABTestError):
    """Success reported for a visitor that was never bucketed."""

    code = "NOT_ASSIGNED"

    def __init__(self, experiment_id: str, user_id: str):
        super().__init__(
            f"User '{user_id}' not found in experiment '{experiment_id}'. "
            "User must be assigned to a variation first."
        )
        self.experiment_id = experiment_id
        self.user_id = user_id
