"""Domain error hierarchy for the loan and pickup services.

Every error carries a short snake_case ``code`` that the HTTP layer returns
as ``detail``, matching the rest of the API's error payloads.
"""


class PromisePointError(Exception):
    """Base exception for all domain errors."""

    code = "error"
    status_code = 400

    def __init__(self, message: str | None = None, code: str | None = None):
        if code is not None:
            self.code = code
        super().__init__(message or self.code)

    @property
    def message(self) -> str:
        return str(self)


class ValidationError(PromisePointError):
    """Raised when input is malformed or out of range."""

    code = "validation_error"
    status_code = 400


class NotFound(PromisePointError):
    """Raised when a referenced loan, loan type or pickup does not exist."""

    code = "not_found"
    status_code = 404


class InvalidStateTransition(PromisePointError):
    """Raised when the current status does not allow the operation."""

    code = "invalid_state_transition"
    status_code = 409


class PreconditionFailed(PromisePointError):
    """Raised when the status is right but an auxiliary business rule is not met."""

    code = "precondition_failed"
    status_code = 422


class AlreadyDelivered(PromisePointError):
    """Raised when a loan delivery is recorded twice."""

    code = "already_delivered"
    status_code = 409


class AlreadyProcessed(PromisePointError):
    """Raised when a pickup request is processed twice."""

    code = "already_processed"
    status_code = 409
