"""JSON file store for gesture templates.

One file per template, ``<name>.json``, inside a directory. Names are
lower-cased so ``"A"`` and ``"a"`` are the same gesture.
"""

from __future__ import annotations

import json
import logging
import os
import re
import threading
from pathlib import Path

from fingerspelling.errors import TemplateLoadError, TemplateNotFoundError, TemplateSaveError
from fingerspelling.templates import GestureTemplate

logger = logging.getLogger("fingerspelling.store")

_SAFE_NAME = re.compile(r"^[\w\-. ]+$")


def normalize_name(name: str) -> str:
    """Canonical template identity: stripped and lower-cased."""
    key = name.strip().lower()
    if not key or not _SAFE_NAME.match(key) or key.startswith("."):
        raise ValueError(f"invalid template name: {name!r}")
    return key


class JsonTemplateStore:
    """Directory-backed TemplateStore."""

    FORMAT_VERSION = 1

    def __init__(self, directory: str | Path):
        self.directory = Path(directory)
        self._write_lock = threading.Lock()

    def _path_for(self, name: str) -> Path:
        return self.directory / f"{normalize_name(name)}.json"

    def fetch_all(self) -> list[GestureTemplate]:
        """Load every template in the directory, ordered by file name."""
        if not self.directory.exists():
            logger.debug("Template directory %s does not exist", self.directory)
            return []

        templates = []
        try:
            for path in sorted(self.directory.glob("*.json")):
                templates.append(self._read(path))
        except (OSError, ValueError, KeyError, TypeError) as e:
            raise TemplateLoadError(f"failed to load templates from {self.directory}: {e}") from e

        logger.info("Loaded %d templates from %s", len(templates), self.directory)
        return templates

    def save(self, template: GestureTemplate) -> str:
        """Persist a template, overwriting any previous one with the same name.

        Returns:
            The stored identity (normalized name).
        """
        try:
            key = normalize_name(template.name)
        except ValueError as e:
            raise TemplateSaveError(str(e)) from e

        data = {"version": self.FORMAT_VERSION, **template.to_dict(), "name": key}
        path = self.directory / f"{key}.json"
        tmp = path.with_suffix(".json.tmp")

        with self._write_lock:
            try:
                self.directory.mkdir(parents=True, exist_ok=True)
                with open(tmp, "w") as f:
                    json.dump(data, f)
                os.replace(tmp, path)
            except OSError as e:
                raise TemplateSaveError(f"failed to save template {key!r}: {e}") from e

        logger.info("Saved template %r (%d points)", key, len(template.contour_points))
        return key

    def read_by_name(self, name: str) -> GestureTemplate:
        try:
            path = self._path_for(name)
        except ValueError as e:
            raise TemplateNotFoundError(name) from e

        if not path.exists():
            raise TemplateNotFoundError(name)
        try:
            return self._read(path)
        except (OSError, ValueError, KeyError, TypeError) as e:
            raise TemplateLoadError(f"failed to read template {name!r}: {e}") from e

    def delete(self, name: str) -> bool:
        """Remove a stored template. Returns False if it did not exist."""
        path = self._path_for(name)
        with self._write_lock:
            if not path.exists():
                return False
            path.unlink()
        return True

    @staticmethod
    def _read(path: Path) -> GestureTemplate:
        with open(path) as f:
            data = json.load(f)
        return GestureTemplate.from_dict(data)
