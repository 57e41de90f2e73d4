"""Matcher registry.

Each sub-package of :mod:`romshelf.matchers` ships a ``matcher`` module
with one or more :class:`FolderMatcher` subclasses.  Scans consult the
registered matchers by priority, then name, so results do not depend
on import order.
"""

from __future__ import annotations

import importlib
import inspect
import pkgutil

from loguru import logger

import romshelf.matchers as matchers_pkg
from romshelf.matchers.base import FolderMatcher


def _matcher_classes(module) -> list[type[FolderMatcher]]:  # noqa: ANN001
    return [
        cls for _, cls in inspect.getmembers(module, inspect.isclass)
        if issubclass(cls, FolderMatcher)
        and cls is not FolderMatcher
        and not inspect.isabstract(cls)
        and cls.__module__ == module.__name__
    ]


class MatcherManager:
    """Holds the folder-format matchers a scan should consult."""

    def __init__(self) -> None:
        self._matchers: dict[str, FolderMatcher] = {}

    def discover(self) -> int:
        """Import every ``romshelf.matchers.<name>.matcher`` and register its classes.

        A matcher package that fails to import is logged and skipped.
        Returns the number of matchers registered.
        """
        found = 0
        for info in pkgutil.iter_modules(matchers_pkg.__path__):
            if not info.ispkg:
                continue
            module_name = f"{matchers_pkg.__name__}.{info.name}.matcher"
            try:
                module = importlib.import_module(module_name)
            except ImportError as e:
                logger.warning("Skipping matcher package {}: {}", info.name, e)
                continue
            for cls in _matcher_classes(module):
                self.register(cls())
                found += 1
        logger.debug("Matchers available: {}", ", ".join(self.get_matcher_names()) or "none")
        return found

    def register(self, matcher: FolderMatcher) -> None:
        if matcher.name in self._matchers:
            logger.debug("Replacing matcher {}", matcher.name)
        self._matchers[matcher.name] = matcher

    def unregister(self, name: str) -> None:
        self._matchers.pop(name, None)

    def get_matcher(self, name: str) -> FolderMatcher | None:
        return self._matchers.get(name)

    def get_all_matchers(self) -> list[FolderMatcher]:
        return sorted(self._matchers.values(), key=lambda m: (m.priority, m.name))

    def get_matcher_names(self) -> list[str]:
        return sorted(self._matchers)
