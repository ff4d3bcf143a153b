"""Exceptions raised by the path tracer."""


class ConfigurationError(ValueError):
    """Raised when scene, material or camera parameters are malformed.

    Subclasses ValueError so callers validating input generically keep working.
    """
