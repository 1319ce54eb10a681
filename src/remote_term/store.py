"""Where cached terms live, and the application-wide term registry."""

import logging
import threading
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Dict, Hashable, List, MutableMapping, Optional

from .models import CachedTerm

if TYPE_CHECKING:
    from .term import RemoteTerm

logger = logging.getLogger(__name__)


class TermStore(ABC):
    """Holds the current :class:`CachedTerm` for one remote term.

    ``get`` must never block and must return either None or a complete term.
    """

    @abstractmethod
    def get(self) -> Optional[CachedTerm]:
        """Return the stored term, or None if nothing was stored yet."""

    @abstractmethod
    def put(self, term: CachedTerm) -> None:
        """Replace the stored term."""


class LocalSlot(TermStore):
    """Process-local slot. Replacement is a single reference assignment."""

    def __init__(self) -> None:
        self._term: Optional[CachedTerm] = None

    def get(self) -> Optional[CachedTerm]:
        return self._term

    def put(self, term: CachedTerm) -> None:
        self._term = term


class KeyedStore(TermStore):
    """Store the term under *key* in any mutable mapping."""

    def __init__(self, mapping: MutableMapping[Hashable, CachedTerm], key: Hashable):
        self.mapping = mapping
        self.key = key

    def get(self) -> Optional[CachedTerm]:
        return self.mapping.get(self.key)

    def put(self, term: CachedTerm) -> None:
        self.mapping[self.key] = term


class TermRegistry:
    """Name -> RemoteTerm lookup for application-wide access.

    Use the module-level :data:`registry` instance rather than module globals
    of your own.
    """

    def __init__(self) -> None:
        self._terms: Dict[str, "RemoteTerm"] = {}
        self._lock = threading.Lock()

    def register(self, term: "RemoteTerm") -> None:
        """Register *term* under its name.

        Raises:
            ValueError: If another term already uses the name
        """
        with self._lock:
            existing = self._terms.get(term.name)
            if existing is not None and existing is not term:
                raise ValueError(f"A remote term named '{term.name}' is already registered")
            self._terms[term.name] = term
        logger.debug(f"Registered remote term {term.name}")

    def unregister(self, name: str) -> None:
        with self._lock:
            self._terms.pop(name, None)

    def get(self, name: str) -> "RemoteTerm":
        """Return the term registered under *name*.

        Raises:
            KeyError: If no such term is registered
        """
        try:
            return self._terms[name]
        except KeyError:
            raise KeyError(f"No remote term named '{name}'") from None

    def names(self) -> List[str]:
        return sorted(self._terms)

    def __contains__(self, name: object) -> bool:
        return name in self._terms


registry = TermRegistry()
