from typing import Optional


class GenerationError(Exception):
    """Base class for everything that can stop a mockup generation."""

    retryable = False

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(GenerationError):
    pass


class ConfigurationError(GenerationError):
    pass


class RequestInFlightError(GenerationError):
    pass


class RateLimitError(GenerationError):
    retryable = True

    def __init__(self, message: str, status_code: int = 429):
        super().__init__(message)
        self.status_code = status_code


class TransportError(GenerationError):
    retryable = True


class UpstreamError(GenerationError):
    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class ResponseFormatError(GenerationError):
    pass
