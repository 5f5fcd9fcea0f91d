"""In-memory cache of gesture templates with atomic snapshot refresh."""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Executor, Future
from types import MappingProxyType
from typing import Iterator, Mapping, Optional

from fingerspelling.errors import CatalogLoadError
from fingerspelling.templates import GestureTemplate, TemplateStore

logger = logging.getLogger("fingerspelling.catalog")


class CatalogSnapshot:
    """Immutable, fully loaded view of the known gestures.

    Iteration follows load order, which is also the classifier's
    tie-break order.
    """

    __slots__ = ("_templates", "_by_name")

    def __init__(self, templates: Optional[list[GestureTemplate]] = None):
        by_name: dict[str, GestureTemplate] = {}
        for template in templates or ():
            if template.name in by_name:
                logger.warning("Duplicate template %r in load, keeping the last one", template.name)
            by_name[template.name] = template
        self._by_name: Mapping[str, GestureTemplate] = MappingProxyType(by_name)
        self._templates = tuple(by_name.values())

    @property
    def templates(self) -> tuple[GestureTemplate, ...]:
        return self._templates

    @property
    def names(self) -> list[str]:
        return list(self._by_name)

    def get(self, name: str) -> Optional[GestureTemplate]:
        return self._by_name.get(name)

    def with_finger_count(self, finger_count: int) -> list[GestureTemplate]:
        return [t for t in self._templates if t.finger_count == finger_count]

    def __len__(self) -> int:
        return len(self._templates)

    def __iter__(self) -> Iterator[GestureTemplate]:
        return iter(self._templates)

    def __contains__(self, name: object) -> bool:
        return name in self._by_name

    def __repr__(self) -> str:
        return f"CatalogSnapshot({self.names!r})"


class TemplateCatalog:
    """Holds the current CatalogSnapshot and refreshes it from a TemplateStore.

    Readers call `current()` and keep the snapshot they got; a refresh
    builds a complete new snapshot before swapping it in, so a reader never
    sees a partial load.

    Usage:
        catalog = TemplateCatalog(JsonTemplateStore("gestures/"))
        future = catalog.refresh_async(executor)
        ...
        snapshot = catalog.current()
    """

    def __init__(self, store: TemplateStore):
        self._store = store
        self._snapshot: Optional[CatalogSnapshot] = None
        self._lock = threading.Lock()
        self._refresh_lock = threading.Lock()

    @property
    def store(self) -> TemplateStore:
        return self._store

    def current(self) -> Optional[CatalogSnapshot]:
        """Most recently installed snapshot, or None before the first load."""
        with self._lock:
            return self._snapshot

    @property
    def is_loaded(self) -> bool:
        return self.current() is not None

    def refresh(self) -> CatalogSnapshot:
        """Fetch all templates and install them as the current snapshot.

        Raises:
            CatalogLoadError: if the store fails. The previous snapshot
                stays installed.
        """
        # Writers serialize; readers only ever take self._lock briefly
        with self._refresh_lock:
            try:
                templates = self._store.fetch_all()
            except Exception as e:
                logger.error("Template catalog load failed: %s", e)
                raise CatalogLoadError(str(e)) from e

            snapshot = CatalogSnapshot(list(templates))
            self.install(snapshot)

        logger.info("Template catalog loaded: %d gestures", len(snapshot))
        return snapshot

    def refresh_async(self, executor: Executor) -> Future:
        """Run `refresh()` on `executor`. The future yields the new snapshot."""
        return executor.submit(self.refresh)

    def install(self, snapshot: CatalogSnapshot):
        """Atomically replace the current snapshot."""
        with self._lock:
            self._snapshot = snapshot
