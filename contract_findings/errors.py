"""Error taxonomy for the review pipeline."""


class ReviewPipelineError(RuntimeError):
    pass


class AgentNotRegistered(ReviewPipelineError):
    """Raised when an agent name is outside the known set or has no executor."""

    def __init__(self, name):
        self.name = name
        super().__init__(f"AGENT_NOT_REGISTERED:{name}")


class SchemaValidationError(ReviewPipelineError):
    """Base for boundary validation failures. ``errors`` holds one message per problem."""

    label = "SCHEMA_VALIDATION_FAILED"

    def __init__(self, errors: list[str]):
        self.errors = list(errors)
        detail = "; ".join(self.errors[:5])
        if len(self.errors) > 5:
            detail += f" (+{len(self.errors) - 5} more)"
        super().__init__(f"{self.label}: {detail}")


class InputValidationError(SchemaValidationError):
    label = "INPUT_VALIDATION_FAILED"


class OutputValidationError(SchemaValidationError):
    label = "OUTPUT_VALIDATION_FAILED"


class InvariantViolation(ReviewPipelineError):
    """A precondition of a pure pipeline stage did not hold. Not recovered."""
