from typing import Optional


class ConfigGeneratorError(Exception):
    """Base class for every error raised by the generator core."""


class ConfigurationError(ConfigGeneratorError):
    pass


class ParseError(ConfigGeneratorError, ValueError):
    def __init__(self, message: str, segment: Optional[str] = None) -> None:
        super().__init__(message)
        self.segment = segment


class NetworkError(ConfigGeneratorError):
    pass


class CancellationError(NetworkError):
    pass


class UnexpectedStatusError(ConfigGeneratorError):
    def __init__(self, status_code: int, what: str = "") -> None:
        prefix = f"{what}: " if what else ""
        super().__init__(f"{prefix}unexpected status code {status_code}")
        self.status_code = status_code


class DecodeError(ConfigGeneratorError):
    pass


class ValidationError(ConfigGeneratorError):
    pass


class InvalidKeyError(ConfigGeneratorError, ValueError):
    pass


class GenerationError(ConfigGeneratorError):
    pass
