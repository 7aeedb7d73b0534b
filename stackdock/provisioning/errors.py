"""Exception types raised by the machine driver.

Each class also derives from the closest builtin so callers that only know
about ValueError / TimeoutError / LookupError keep working.
"""


class StackdockError(Exception):
    """Base class for all driver errors."""


class ConfigError(StackdockError, ValueError):
    """The machine configuration is invalid. Raised before any remote call."""

    def __init__(self, message, fields=()):
        super().__init__(message)
        self.fields = tuple(fields)


class ResourceNotFoundError(StackdockError, LookupError):
    """A resource referenced by name does not exist on the cloud."""

    def __init__(self, resource_type, name):
        super().__init__(f"Unable to find {resource_type} named {name}")
        self.resource_type = resource_type
        self.name = name


class CloudError(StackdockError):
    """A call to the cloud API failed (transport or HTTP error)."""

    def __init__(self, message, status_code=None):
        super().__init__(message)
        self.status_code = status_code


class AuthError(CloudError):
    """Authentication against the identity service failed."""


class WaitTimeoutError(StackdockError, TimeoutError):
    """A convergence wait exhausted its retry budget."""

    def __init__(self, description, attempts, interval, message=None):
        bound = attempts * interval
        super().__init__(message or f"Timed out waiting for {description} after {attempts} attempts ({bound:g}s)")
        self.description = description
        self.attempts = attempts
        self.interval = interval


class NoIpFoundError(WaitTimeoutError):
    """No address of the wanted type showed up within the retry budget."""

    def __init__(self, attempts, interval):
        super().__init__("an IP address", attempts, interval, message="No IP found for the machine")


class UnsupportedOperationError(StackdockError, NotImplementedError):
    """The driver does not implement this operation."""
