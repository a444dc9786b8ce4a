"""Domain errors raised by the commission services."""


class CommissionError(Exception):
    """Base class for errors surfaced to the caller."""

    status_code = 400

    def __init__(self, message):
        super().__init__(message)
        self.message = message


class CommissionValidationError(CommissionError):
    """Input rejected before any state change."""

    status_code = 400


class NotAuthorized(CommissionError):
    status_code = 403


class CommissionNotFound(CommissionError):
    status_code = 404


class InvalidStateTransition(CommissionError):
    """The commission is not in the state the action requires."""

    status_code = 409

    def __init__(self, message, current_status=None):
        super().__init__(message)
        self.current_status = current_status
