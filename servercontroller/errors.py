"""Errors raised by the controller's domain logic."""

PROJECT_ID_REQUIRED = "project_id is required"
APPLICATION_ID_REQUIRED = "application_id is required"
ENTRYPOINT_ID_REQUIRED = "entrypoint_id is required"
ENTRYPOINT_NOT_FOUND = "entrypoint not found"


class ControllerError(Exception):
    """Base class for every error the controller reports to its callers."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message


class ValidationError(ControllerError):
    """A request is missing a required value or carries an invalid one."""


class NotFoundError(ControllerError):
    """A requested record does not exist."""