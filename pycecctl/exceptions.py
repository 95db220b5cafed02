"""
Exceptions for the CEC control service.

Only startup and programming errors are raised. Failures of individual bus
operations are reported through ``CecResult`` instead.
"""


class CecError(Exception):
    """Base exception for all pycecctl errors."""
    pass


class ConfigurationError(CecError):
    """Exception raised when a configuration value is out of range."""
    pass


class TransceiverNotFoundError(CecError):
    """Exception raised when the cec-ctl executable cannot be located or started."""
    pass


class InitializationError(CecError):
    """Exception raised when the adapter cannot be registered on the bus."""
    pass


class LifecycleViolationError(CecError):
    """Exception raised when a controller session is entered more than once."""
    pass
