# porteria/exceptions.py
"""
Station error taxonomy. Every error carries the HTTP status it maps to;
main.py renders them all as {"error": message}.
"""


class PorteriaError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(PorteriaError):
    """Missing or malformed plate, category, color or payment data."""
    status_code = 400


class AuthenticationError(PorteriaError):
    status_code = 401


class NotFoundError(PorteriaError):
    """Record, reservation, shift, category or user absent."""
    status_code = 404


class ConflictError(PorteriaError):
    """Duplicate active plate, no free stall, record or shift in the wrong state."""
    status_code = 409


class RemoteUnavailableError(PorteriaError):
    """Reservation store or aggregator unreachable. Never fatal to lot operations."""
    status_code = 503


class PersistenceError(PorteriaError):
    """Local store failure. Fatal to the request."""
    status_code = 500
