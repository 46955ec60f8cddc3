"""
Exceptions raised by the rarity engine.

Recoverable conditions (zero total weight, negative weights, runtime clamps)
are logged by the module that hits them and never raised.
"""


class RarityEngineError(Exception):
    """Base class for every error raised by this package."""


class ConfigurationError(RarityEngineError, ValueError):
    """A tier or engine configuration value is out of range or unknown."""


class InvalidArgumentError(RarityEngineError, ValueError):
    """An operation was called with an argument it cannot satisfy."""
