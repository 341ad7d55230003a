"""Exceptions raised by the plan generation and session layers."""


class GenerationError(Exception):
    """Base class for failures of the generation service boundary."""


class MalformedPlanData(GenerationError):
    """The service returned data that cannot be hydrated into plan state."""


class GenerationUnavailable(GenerationError):
    """The service could not be reached or failed to answer."""


class EmptyGenerationResult(GenerationUnavailable):
    """The service answered but produced no usable content."""


class PlanRequestInProgress(Exception):
    """A generation or adjustment is already outstanding for the plan."""
