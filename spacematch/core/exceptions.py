class SpaceMatchError(Exception):
    """Base class for errors surfaced to callers."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(SpaceMatchError):
    """Request is missing something required (e.g. an unauthenticated reporter). Never retried."""


class NotFoundError(SpaceMatchError):
    """A mandatory entity does not exist."""


class ExternalServiceError(SpaceMatchError):
    """A store or text-generation collaborator is unavailable."""
