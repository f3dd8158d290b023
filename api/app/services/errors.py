class ConnectionFlowError(Exception):
    """Base for failures surfaced to callers as typed, non-mutating errors."""

    status_code = 400
    code = "error"

    def __init__(self, detail: str):
        self.detail = detail
        super().__init__(detail)


class Forbidden(ConnectionFlowError):
    status_code = 403
    code = "forbidden"


class NotFound(ConnectionFlowError):
    status_code = 404
    code = "not_found"


class InvalidState(ConnectionFlowError):
    status_code = 409
    code = "invalid_state"


class Conflict(ConnectionFlowError):
    status_code = 409
    code = "conflict"


class ValidationError(ConnectionFlowError):
    status_code = 400
    code = "validation_error"
