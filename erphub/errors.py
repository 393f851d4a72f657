"""
Domain errors raised by services and mapped to HTTP responses in main.create_app.
"""


class InvalidInputError(ValueError):
    """Missing, malformed or out-of-range input. Surfaces as HTTP 400."""


class NotFoundError(LookupError):
    """Requested record does not exist. Surfaces as HTTP 404."""


class ConflictError(RuntimeError):
    """A unique value could not be allocated after retries. Surfaces as HTTP 409."""
