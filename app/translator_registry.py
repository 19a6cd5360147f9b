#!/usr/bin/env python3
"""
Translator Registry

Name-keyed registry of provider builders. A builder takes the flat provider
configuration mapping and returns a ready TranslationProvider; the registry
resolves a provider name to its builder once at startup.

The registry is guarded by a read/write lock so it can be shared by
concurrent hosts: lookups run in parallel, registrations are exclusive.
"""

import logging
import threading
from contextlib import contextmanager
from typing import Callable, Dict, Mapping, Set

from llm_provider import DEFAULT_PROVIDER_BUILDERS, TranslationProvider
from translator_errors import DuplicateProviderError, UnknownProviderError

logger = logging.getLogger(__name__)

ProviderBuilder = Callable[[Mapping[str, str]], TranslationProvider]


class ReadWriteLock:
    """A lock allowing many concurrent readers or a single writer."""

    def __init__(self):
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._waiting_writers = 0

    @contextmanager
    def read_locked(self):
        with self._cond:
            # Waiting writers take priority so registrations are not starved
            while self._writer or self._waiting_writers:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @contextmanager
    def write_locked(self):
        with self._cond:
            self._waiting_writers += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._waiting_writers -= 1
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()


class ProviderRegistry:
    """Registry and factory for translation providers."""

    def __init__(self):
        self._builders: Dict[str, ProviderBuilder] = {}
        self._lock = ReadWriteLock()

    def register_provider(self, name: str, builder: ProviderBuilder) -> None:
        """
        Register a provider builder under name.

        Raises:
            DuplicateProviderError: If name is already registered
        """
        with self._lock.write_locked():
            if name in self._builders:
                raise DuplicateProviderError(name)
            self._builders[name] = builder

    def list_providers(self) -> Set[str]:
        with self._lock.read_locked():
            return set(self._builders)

    def create_translator(
        self, name: str, config: Mapping[str, str]
    ) -> TranslationProvider:
        """
        Build a translator for the named provider.

        Args:
            name: Registered provider name (e.g. "openai")
            config: Flat configuration mapping with at least api_key and model

        Raises:
            UnknownProviderError: If name is not registered
            ConfigError: If the builder rejects the configuration
        """
        with self._lock.read_locked():
            builder = self._builders.get(name)
        if builder is None:
            raise UnknownProviderError(name)
        return builder(config)


def register_default_providers(registry: ProviderRegistry) -> ProviderRegistry:
    """Register every built-in provider; a failed registration is logged and skipped."""
    for name, builder in DEFAULT_PROVIDER_BUILDERS.items():
        try:
            registry.register_provider(name, builder)
        except DuplicateProviderError as e:
            logger.error(f"Failed to register provider '{name}': {e}")
        else:
            logger.debug(f"Registered provider '{name}'")
    return registry


def default_registry() -> ProviderRegistry:
    """Return a new registry with the built-in providers."""
    return register_default_providers(ProviderRegistry())
