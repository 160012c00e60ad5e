"""Exception types raised across the engine and the service layer."""


class SharplineError(Exception):
    """Base class for errors the engine surfaces to callers."""


class ConfigError(SharplineError, ValueError):
    """Raised when a pipeline configuration value cannot be interpreted."""


class FeedError(SharplineError):
    """Raised when the upstream odds feed cannot be fetched or decoded.

    This is the only failure that reaches a consumer; per-quote and per-market
    problems are absorbed inside the pipeline.
    """

    def __init__(self, message: str, status_code: int = None):
        super().__init__(message)
        self.status_code = status_code
