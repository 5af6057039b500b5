"""Configuration-time errors. Raised before any log line is read."""


class ConfigError(Exception):
    """Raised when run options cannot be compiled."""


class UnknownFieldError(ConfigError):
    """Raised when a filter or format references a field that does not exist."""

    def __init__(self, name: str):
        super().__init__(f"Unknown field: {name!r}")
        self.name = name


class FilterSyntaxError(ConfigError):
    """Raised for a filter expression that is not ``field op value``."""


class PatternError(ConfigError):
    """Raised for an invalid regular expression."""
