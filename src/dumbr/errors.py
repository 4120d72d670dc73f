"""
Exception types raised while loading templates, route configuration and
logging configuration.
"""


class DumbrError(Exception):
    """Base class for all dumbr errors."""


class TemplateDirectoryError(DumbrError):
    """The template root directory could not be walked."""


class TemplateNotFoundError(DumbrError):
    """A route referenced a template name that is not in the store."""

    def __init__(self, name: str):
        super().__init__(f"no template named {name!r}")
        self.name = name


class ConfigurationError(DumbrError):
    """The JSON route configuration could not be read or decoded."""


class LogConfigError(DumbrError):
    """The logging configuration document is unreadable or malformed."""
