# errors.py
"""
Exception types raised by the simulation framework.
"""


class ConfigurationError(ValueError):
    """
    Raised when simulation parameters are invalid.

    Always raised at construction time, before any tick runs.
    """
