"""Errors raised by the upstream model services."""


class ConfigurationError(RuntimeError):
    """Raised when the upstream credential is missing."""


class RateLimitExhausted(RuntimeError):
    """Raised once every retry of a rate-limited call has failed."""
