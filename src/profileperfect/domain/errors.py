"""Domain errors raised by ProfilePerfect services."""


class ProfilePerfectError(Exception):
    """Base class for application errors."""


class InvalidRequestError(ProfilePerfectError):
    """Raised when a request is malformed or out of range."""


class InsufficientCreditsError(ProfilePerfectError):
    """Raised when a user cannot pay for a job."""

    def __init__(self, required: int, available: int) -> None:
        super().__init__(
            f"Insufficient credits. Required: {required}, Available: {available}"
        )
        self.required = required
        self.available = available


class NotFoundError(ProfilePerfectError):
    """Raised when a resource is missing or not owned by the caller."""


class InvalidTransitionError(ProfilePerfectError):
    """Raised when a job status change is not allowed."""


class AdapterError(ProfilePerfectError):
    """Raised when the image generation backend fails or misbehaves."""


class PersistenceError(ProfilePerfectError):
    """Raised when a repository write or read fails."""
