"""Custom exceptions for the roster application."""


class RosterError(Exception):
    """Base exception for all application errors."""
    def __init__(self, message="An internal error occurred", status_code=500, payload=None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.payload = payload

    def to_dict(self):
        rv = dict(self.payload or ())
        rv['success'] = False
        rv['error'] = self.message
        return rv


class ValidationError(RosterError):
    """Malformed input: missing fields, bad dates, unknown shift codes, bad CSV rows."""
    def __init__(self, message, payload=None):
        super().__init__(message, 400, payload)


class NotFoundError(RosterError):
    """Exception raised when a resource (tenant, employee, request) is not found."""
    def __init__(self, message="Resource not found", payload=None):
        super().__init__(message, 404, payload)


class UnauthorizedError(RosterError):
    """Raised when a session is missing, invalid or scoped to another role or tenant."""
    def __init__(self, message="Unauthorized"):
        super().__init__(message, 401)


class ForbiddenError(RosterError):
    """Raised when an authenticated actor hits a plan or tenant limit."""
    def __init__(self, message="Forbidden"):
        super().__init__(message, 403)


class ConflictError(RosterError):
    """Raised on duplicates, already-resolved requests and concurrent roster writes."""
    def __init__(self, message, payload=None):
        super().__init__(message, 409, payload)
