"""FingerSpelling - contour-based hand gesture detection against recorded templates."""

__version__ = "0.4.0"

from fingerspelling.geometry import Point, euclidean, hausdorff_distance, translate_to_origin
from fingerspelling.observation import HandObservation, Volume, HandSource, PushHandSource
from fingerspelling.templates import GestureTemplate, TemplateStore
from fingerspelling.store import JsonTemplateStore
from fingerspelling.catalog import CatalogSnapshot, TemplateCatalog
from fingerspelling.classifier import ContourClassifier, MatchResult, classify
from fingerspelling.events import EventBus, GestureFound, HandFound, HandTooClose, NoHandFound
from fingerspelling.config import DetectorConfig
from fingerspelling.detection import DetectionLoop, DetectionState
from fingerspelling.recorder import ObservationRecorder, ObservationPlayer, ReplayHandSource
from fingerspelling.profiler import DetectionProfiler
from fingerspelling.metrics import MetricsCollector
from fingerspelling.errors import (
    FingerSpellingError,
    CatalogLoadError,
    EmptyPointSetError,
    InvalidPointSetError,
    TemplateLoadError,
    TemplateNotFoundError,
    TemplateSaveError,
)
