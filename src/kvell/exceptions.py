"""Kvell exceptions."""


class KvellError(Exception):
    """Base exception for kvell."""

    pass


class ValidationError(KvellError):
    """Invalid input, rejected before any backend call."""

    pass


class ConfigError(ValidationError):
    """Configuration error."""

    pass


class SerializationError(KvellError):
    """Value could not be encoded."""

    pass


class DeserializationError(KvellError):
    """Stored bytes could not be decoded."""

    pass


class BackendError(KvellError):
    """Failure surfaced by the backend SDK or server.

    The original SDK exception is kept on ``cause`` and chained as
    ``__cause__`` when raised with ``from``.
    """

    def __init__(self, message: str, cause: BaseException | None = None) -> None:
        super().__init__(message)
        self.cause = cause


class NotFoundError(KvellError):
    """Resource not found."""

    pass


class TableNotFoundError(NotFoundError):
    """Backing table or namespace does not exist."""

    pass
