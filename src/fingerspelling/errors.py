"""Exceptions raised by the FingerSpelling engine."""


class FingerSpellingError(Exception):
    """Base class for all engine errors."""


class ConfigError(FingerSpellingError):
    """Invalid detector configuration."""


class InvalidPointSetError(FingerSpellingError, ValueError):
    """A point set cannot be measured."""


class EmptyPointSetError(InvalidPointSetError):
    """A distance was requested on an empty point set."""


class CatalogLoadError(FingerSpellingError):
    """The template catalog could not be loaded (or the load was cancelled)."""


class TemplateLoadError(FingerSpellingError):
    """The template store failed to fetch its templates."""


class TemplateSaveError(FingerSpellingError):
    """The template store failed to persist a template."""


class TemplateNotFoundError(FingerSpellingError, KeyError):
    """No template is stored under the requested name."""


class NoObservationError(FingerSpellingError):
    """A gesture was recorded while no hand was being observed."""


class InvalidStateError(FingerSpellingError):
    """Operation not allowed in the detector's current state."""
