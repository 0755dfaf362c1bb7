"""Exceptions raised by the study engine."""


class MedcardsError(Exception):
    """Base class for recoverable errors; callers re-query state and carry on."""


class SessionStateError(MedcardsError):
    """An operation was called in a state that does not allow it."""


class ImportFormatError(MedcardsError):
    """A deck file could not be read or held no usable cards."""


class ConfigError(MedcardsError):
    """The scheduler configuration is invalid."""
