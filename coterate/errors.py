class CoterateError(Exception):
    """Base error rendered by the gateway as ``{"error": message}``."""

    status_code = 500

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ConfigurationError(CoterateError):
    """A required API key or credential is not configured."""


class ValidationError(CoterateError):
    status_code = 400


class MissingParameterError(ValidationError):
    def __init__(self, name: str) -> None:
        super().__init__(f"Missing required parameter: {name}")
        self.parameter = name


class UpstreamError(CoterateError):
    """An external API failed; status and message are passed through."""


class ParseError(CoterateError):
    """Provider output was malformed where it is a required input."""


class StoreError(CoterateError):
    """The backing store rejected an operation."""
