"""
Errors raised by the service layer.

Each failure kind has its own class and a stable ``code``. The API maps them
to responses in ``api.main``; nothing here knows about HTTP.
"""


class RecommendationsError(Exception):
    """Base class for service-layer errors."""

    code = "ERROR"

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class UnauthenticatedError(RecommendationsError):
    """No verified identity was presented where one is required."""

    code = "UNAUTHENTICATED"

    def __init__(self, message: str = "Not authenticated") -> None:
        super().__init__(message)


class UserNotFoundError(RecommendationsError):
    """The identity is valid but has never been provisioned as a user."""

    code = "USER_NOT_FOUND"

    def __init__(
        self,
        message: str = "User record not found. Sign up first by creating a recommendation.",
    ) -> None:
        super().__init__(message)


class UnauthorizedError(RecommendationsError):
    """The user exists but fails the ownership or role check."""

    code = "UNAUTHORIZED"


class NotFoundError(RecommendationsError):
    """The referenced resource does not exist."""

    code = "NOT_FOUND"

    def __init__(self, resource: str, resource_id: int | str) -> None:
        self.resource = resource
        self.resource_id = resource_id
        super().__init__(f"{resource} not found")


class InvalidArgumentError(RecommendationsError):
    """A required field is missing or empty."""

    code = "INVALID_ARGUMENT"
