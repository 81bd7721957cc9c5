"""Error taxonomy for the translate → parse → search pipeline."""

from typing import Optional


class TelescopeError(Exception):
    """Base class for every error raised by the search pipeline."""


class TranslationError(TelescopeError):
    """The translation service could not produce a response."""


class InvalidEndpoint(TranslationError):
    """The configured translation endpoint is empty or malformed."""

    def __init__(self, endpoint: str):
        super().__init__(f"Invalid translation endpoint: {endpoint!r}")
        self.endpoint = endpoint


class NoConnectivity(TranslationError):
    """The translation endpoint could not be reached."""


class Timeout(TranslationError):
    """The translation request timed out."""


class ServerError(TranslationError):
    """The translation endpoint answered with a non-2xx status."""

    def __init__(self, status_code: int):
        super().__init__(f"Translation server returned HTTP {status_code}")
        self.status_code = status_code


class DecodingError(TranslationError):
    """The response body is not a JSON object of string → string|null."""


class UnknownTransport(TranslationError):
    """Any other transport failure; the original exception is kept."""

    def __init__(self, cause: Optional[BaseException]):
        super().__init__(f"Unknown transport error: {cause}")
        self.cause = cause


class MissingCommand(TelescopeError):
    """The translation response carried no search command."""


class UserCancelled(TelescopeError):
    """The directory picker was dismissed without a selection."""


class IndexUnavailable(TelescopeError):
    """The filesystem index query could not be started."""


class IndexQueryError(TelescopeError):
    """The filesystem index failed after the query started."""
