"""Exceptions raised by the client-side study core."""


class StudyBrainError(Exception):
    """Base class for every error raised by the client core."""


class StudyValidationError(StudyBrainError, ValueError):
    """Raised when input is rejected before any request is issued."""


class ClipValidationError(StudyValidationError):
    pass


class QuizValidationError(StudyValidationError):
    pass


class EntityNotFoundError(StudyBrainError, LookupError):
    def __init__(self, kind: str, entity_id: str):
        super().__init__(f"{kind} not found: {entity_id}")
        self.kind = kind
        self.entity_id = entity_id


class NotAuthenticatedError(StudyBrainError):
    pass


class ChatRequestError(StudyBrainError):
    """Non-2xx response or transport failure from the AI chat endpoint."""

    default_message = "AI request failed"

    def __init__(self, message: str | None = None, status_code: int | None = None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message
        self.status_code = status_code


class RateLimitError(ChatRequestError):
    default_message = "Rate limit exceeded. Please try again in a moment."


class QuotaExhaustedError(ChatRequestError):
    default_message = "AI credits exhausted. Please add credits in Settings."


class PlaylistFetchError(StudyBrainError):
    pass


class TranslationError(StudyBrainError):
    pass


class TranslationCancelledError(TranslationError):
    """The request was superseded by navigation or closed."""
