"""
Validation Exceptions

All exceptions related to client request validation.
"""

from sse_relay.core.exceptions.base import SSEBaseError


class ValidationError(SSEBaseError):
    """
    Raised when request validation fails.

    This is the base class for all validation-related errors and maps to an
    HTTP 400 response.
    """
    pass


class InvalidInputError(ValidationError):
    """
    Raised when a prepare body is structurally invalid.

    Common causes:
    - Body is not a JSON object
    - ``messages`` is not an array
    - A message is missing ``role`` or ``content``
    """
    pass
