class ServiceError(Exception):
    """Base class for failures that map to a structured HTTP response."""

    status_code = 400
    default_message = "Request failed"

    def __init__(self, message=None, status_code=None, **payload):
        self.message = message or self.default_message
        super().__init__(self.message)
        if status_code is not None:
            self.status_code = status_code
        self.payload = payload

    def to_dict(self):
        return {"error": self.message, **self.payload}


class UnauthenticatedError(ServiceError):
    status_code = 401
    default_message = "Authentication required"


class UnauthorizedError(ServiceError):
    status_code = 403
    default_message = "You are not allowed to perform this action"


class NotFoundError(ServiceError):
    status_code = 404
    default_message = "Not found"


class InvalidStateError(ServiceError):
    status_code = 400
    default_message = "Operation not allowed in the current state"


class ConflictError(ServiceError):
    status_code = 409
    default_message = "Resource already exists"


class ValidationError(ServiceError):
    status_code = 400
    default_message = "Invalid input data"


class GoneError(ServiceError):
    status_code = 410
    default_message = "No longer available"


class TooManyRequestsError(ServiceError):
    status_code = 429
    default_message = "Too many requests"


class MissingFieldsError(ValidationError):
    def __init__(self, fields):
        super().__init__("Missing required fields", missing_fields=list(fields))
        self.fields = fields
