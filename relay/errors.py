"""Domain exceptions shared by services and routers."""

from typing import Optional


class RelayError(Exception):
    """Base class for errors raised by this application."""


class MissingFieldError(RelayError):
    """A required request field or setting is absent. Rendered as HTTP 400."""


class TranslationError(RelayError):
    """A translation back-end failed."""

    def __init__(self, message: str, provider: Optional[str] = None):
        super().__init__(message)
        self.provider = provider


class TranslationConfigError(TranslationError):
    """A translation back-end is missing a required credential."""


class SubscriberClosedError(RelayError):
    """Write attempted on a push channel that is already closed."""
