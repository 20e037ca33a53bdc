"""
Error taxonomy for the users API.

Each error carries the HTTP status it maps to and a message that is safe to
show to clients. Handlers in `main` render them as `{"error": message}`.
"""

from typing import Optional

from fastapi import status


class APIError(Exception):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Server error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ClientInputError(APIError):
    """Missing or malformed request fields."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid request"


class ConflictError(APIError):
    """A unique key (the email) is already taken."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Email already exists"


class AuthenticationError(APIError):
    """Unknown email, wrong password, or an unusable token."""

    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Invalid credentials"


class NotFoundError(APIError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class StoreError(APIError):
    """Any database fault not classified above. Detail stays in the logs."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Server error"
