"""Custom exceptions for the ratecache package."""


class RateCacheError(Exception):
    """Base class for ratecache exceptions.

    Cache misses and rate-limit rejections are ordinary return values;
    these exceptions are reserved for misconfiguration and contract
    violations by the caller.
    """

    def __init__(self, message: str = "ratecache error"):
        self.message = message
        super().__init__(message)


class ConfigurationError(RateCacheError, ValueError):
    """Raised when a primitive is constructed with invalid parameters.

    Covers non-positive capacities and refill rates. Values are never
    clamped into range.
    """

    def __init__(self, parameter: str, value: object, detail: str | None = None):
        self.parameter = parameter
        self.value = value
        message = detail or f"Invalid {parameter}: {value!r}"
        super().__init__(message)


class InvalidCostError(RateCacheError, ValueError):
    """Raised when a token bucket is asked to admit a negative cost."""

    def __init__(self, cost: object):
        self.cost = cost
        super().__init__(f"cost must be a non-negative number, got {cost!r}")
