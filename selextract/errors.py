"""
Exceptions raised by selextract.

Most extraction problems are not errors: missing matches and malformed
numbers fall back to zero values. These cover misuse of the API.
"""


class SelextractError(Exception):
    """Base class for all selextract errors."""


class MissingFactoryError(SelextractError):
    """A Parser was created without a callable instance factory."""


class EmptySelectorError(SelextractError):
    """An empty CSS selector was registered on a strict parser."""


class ConfigurationError(SelextractError):
    """A selector map or command line option could not be used."""
