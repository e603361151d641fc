import pytest

from promisepoint.core.errors import (
    AlreadyDelivered,
    AlreadyProcessed,
    InvalidStateTransition,
    NotFound,
    PreconditionFailed,
    PromisePointError,
    ValidationError,
)


@pytest.mark.parametrize(
    "cls,status,code",
    [
        (ValidationError, 400, "validation_error"),
        (NotFound, 404, "not_found"),
        (InvalidStateTransition, 409, "invalid_state_transition"),
        (PreconditionFailed, 422, "precondition_failed"),
        (AlreadyDelivered, 409, "already_delivered"),
        (AlreadyProcessed, 409, "already_processed"),
    ],
)
def test_error_defaults(cls, status, code):
    e = cls()
    assert isinstance(e, PromisePointError)
    assert e.status_code == status
    assert e.code == code
    assert e.message == code


def test_code_override_is_per_instance():
    e = ValidationError("bad weight", code="weight_required")
    assert e.code == "weight_required"
    assert e.message == "bad weight"
    assert ValidationError().code == "validation_error"
