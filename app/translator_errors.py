#!/usr/bin/env python3
"""Exception types shared by the catalog, provider and reconciliation modules."""


class TranslatorError(Exception):
    """Base class for all errors raised by the translator."""


class ConfigError(TranslatorError):
    """Missing or invalid configuration (e.g. no API key)."""


class ProviderError(TranslatorError):
    """An upstream LLM call failed or returned an unusable payload."""


class UnknownProviderError(TranslatorError):
    """No provider is registered under the requested name."""

    def __init__(self, name: str):
        super().__init__(f"provider {name} not registered")
        self.name = name


class DuplicateProviderError(TranslatorError):
    """A provider with the same name is already registered."""

    def __init__(self, name: str):
        super().__init__(f"provider {name} already registered")
        self.name = name


class CatalogError(TranslatorError):
    """A catalog file could not be read, parsed or written."""


class CatalogParseError(CatalogError):
    """Malformed catalog JSON."""


class DuplicateMessageError(CatalogParseError):
    """A source catalog holds the same message id more than once."""

    def __init__(self, ids):
        self.ids = list(ids)
        super().__init__(f"duplicate message ids in source catalog: {', '.join(self.ids)}")


class CatalogIOError(CatalogError):
    """Reading or writing a catalog file failed."""

    def __init__(self, message: str, path=None):
        super().__init__(message)
        self.path = path


class TranslationCancelled(TranslatorError):
    """The run was cancelled before a file's catalog could be written."""
