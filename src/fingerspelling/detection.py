"""Detection loop: samples the latest hand observation and classifies it.

Lifecycle:

    IDLE --start()--> LOADING_CATALOG --load ok--> ACTIVE --stop()--> STOPPED
                             |                                          ^
                             +-------------load failed------------------+

A STOPPED loop can be started again, which retries the catalog load.

Three execution contexts meet here: the sensor's callback thread, the
catalog refresh worker, and the tick thread. State transitions are guarded
by one reentrant lock. Classification and event handlers run outside it, so
a slow handler never blocks the sensor path or `stop()`.
"""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from dataclasses import replace
from enum import Enum
from typing import Optional

from fingerspelling.catalog import CatalogSnapshot, TemplateCatalog
from fingerspelling.classifier import ContourClassifier
from fingerspelling.config import DetectorConfig, validate_interval
from fingerspelling.errors import (
    CatalogLoadError,
    InvalidStateError,
    NoObservationError,
    TemplateSaveError,
)
from fingerspelling.events import (
    DetectionEvent,
    EventBus,
    GestureFound,
    HandFound,
    HandTooClose,
    NoHandFound,
)
from fingerspelling.metrics import MetricsCollector
from fingerspelling.observation import HandObservation, HandSource, LatestObservation
from fingerspelling.profiler import DetectionProfiler
from fingerspelling.scheduler import RepeatingTask
from fingerspelling.templates import GestureTemplate, TemplateStore

logger = logging.getLogger("fingerspelling.detection")


class DetectionState(Enum):
    IDLE = "idle"
    LOADING_CATALOG = "loading_catalog"
    ACTIVE = "active"
    STOPPED = "stopped"


_RUNNING = (DetectionState.LOADING_CATALOG, DetectionState.ACTIVE)


class DetectionLoop:
    """Periodic nearest-template gesture detection.

    Usage:
        catalog = TemplateCatalog(JsonTemplateStore("gestures/"))
        loop = DetectionLoop(catalog)

        @loop.events.on(GestureFound)
        def speak(event):
            print(event.template.name)

        loop.start(sensor, DetectorConfig(interval_ms=50)).result()  # raises CatalogLoadError
        ...
        loop.stop()
    """

    def __init__(
        self,
        catalog: TemplateCatalog,
        events: Optional[EventBus] = None,
        executor: Optional[Executor] = None,
        profiler: Optional[DetectionProfiler] = None,
        metrics: Optional[MetricsCollector] = None,
    ):
        self.catalog = catalog
        self.events = events or EventBus()
        self.profiler = profiler
        self.metrics = metrics

        self._owns_executor = executor is None
        self._executor = executor
        self._latest = LatestObservation()
        self._lock = threading.RLock()
        self._state = DetectionState.IDLE
        self._generation = 0
        self._config = DetectorConfig()
        self._classifier = ContourClassifier(self._config.acceptance_threshold, profiler)
        self._source: Optional[HandSource] = None
        self._task: Optional[RepeatingTask] = None
        self._load_future: Optional[Future] = None

        if metrics is not None:
            metrics.attach(self.events)

    # -- properties -------------------------------------------------------

    @property
    def state(self) -> DetectionState:
        with self._lock:
            return self._state

    @property
    def config(self) -> DetectorConfig:
        with self._lock:
            return self._config

    @property
    def latest_observation(self) -> Optional[HandObservation]:
        return self._latest.get()

    @property
    def ticks(self) -> int:
        task = self._task
        return task.runs if task is not None else 0

    # -- lifecycle --------------------------------------------------------

    def start(self, source: HandSource, config: Optional[DetectorConfig] = None) -> Future:
        """Subscribe to `source` and begin loading the template catalog.

        Ticks start once the catalog is loaded.

        Returns:
            A future resolving to the loaded CatalogSnapshot, or failing
            with CatalogLoadError, in which case the loop ends up STOPPED.

        Raises:
            InvalidStateError: if the loop is already running.
        """
        config = config or DetectorConfig()
        config.validate()

        with self._lock:
            if self._state in _RUNNING:
                raise InvalidStateError(f"detection already {self._state.value}")
            self._generation += 1
            generation = self._generation
            self._config = config
            self._classifier = ContourClassifier(config.acceptance_threshold, self.profiler)
            self._source = source
            self._latest.clear()
            self._state = DetectionState.LOADING_CATALOG

        logger.info(
            "Starting detection (interval=%dms, threshold=%.1f)",
            config.interval_ms, config.acceptance_threshold,
        )
        source.subscribe(self._on_observation)

        ready: Future = Future()
        ready.set_running_or_notify_cancel()

        load = self.catalog.refresh_async(self._get_executor())
        with self._lock:
            if generation == self._generation:
                self._load_future = load
        load.add_done_callback(lambda f: self._on_catalog_loaded(f, generation, ready))
        return ready

    def _get_executor(self) -> Executor:
        with self._lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(
                    max_workers=1, thread_name_prefix="catalog-refresh"
                )
            return self._executor

    def _on_catalog_loaded(self, load: Future, generation: int, ready: Future):
        error: Optional[CatalogLoadError] = None
        snapshot: Optional[CatalogSnapshot] = None

        if load.cancelled():
            error = CatalogLoadError("catalog load cancelled")
        elif load.exception() is not None:
            exc = load.exception()
            error = exc if isinstance(exc, CatalogLoadError) else CatalogLoadError(str(exc))
        else:
            snapshot = load.result()

        source = None
        with self._lock:
            if generation != self._generation or self._state is not DetectionState.LOADING_CATALOG:
                logger.debug("Discarding catalog load from a stopped session")
                if error is None:
                    error = CatalogLoadError("detection stopped before the catalog was loaded")
            elif error is not None:
                self._state = DetectionState.STOPPED
                self._generation += 1
                self._load_future = None
                source, self._source = self._source, None
            else:
                self._load_future = None
                self._state = DetectionState.ACTIVE
                self._task = RepeatingTask(
                    lambda: self._tick(generation),
                    self._config.interval_seconds,
                    name="detection-tick",
                )
                self._task.start()

        if source is not None:
            source.unsubscribe(self._on_observation)
            logger.error("Catalog unavailable, detection stopped: %s", error)

        if error is not None:
            ready.set_exception(error)
            return

        if self.metrics is not None:
            self.metrics.set_catalog_size(len(snapshot))
        logger.info("Detection active with %d templates", len(snapshot))
        ready.set_result(snapshot)

    def stop(self):
        """Stop detecting. Safe to call from any thread, including event handlers.

        After this returns no further tick runs and no further event is
        published. Handlers already running on another thread are not
        waited for. A catalog load that already started may still finish;
        its result is discarded.
        """
        with self._lock:
            if self._state not in _RUNNING:
                return
            self._state = DetectionState.STOPPED
            self._generation += 1
            task, self._task = self._task, None
            load, self._load_future = self._load_future, None
            source, self._source = self._source, None
            self._latest.clear()

        if task is not None:
            task.cancel()
        if load is not None:
            load.cancel()
        if source is not None:
            source.unsubscribe(self._on_observation)
        logger.info("Detection stopped")

    def close(self):
        """Stop and release the catalog worker if this loop created it."""
        self.stop()
        with self._lock:
            executor, owned = self._executor, self._owns_executor
            if owned:
                self._executor = None
        if owned and executor is not None:
            executor.shutdown(wait=False, cancel_futures=True)

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()

    def set_rate(self, interval_ms: int):
        """Change the tick interval. Takes effect from the next re-arm."""
        validate_interval(interval_ms)
        with self._lock:
            self._config = replace(self._config, interval_ms=interval_ms)
            if self._task is not None:
                self._task.interval = interval_ms / 1000.0
        logger.debug("Detection interval set to %dms", interval_ms)

    # -- catalog ----------------------------------------------------------

    def refresh_catalog(self) -> Future:
        """Reload templates in the background while detection keeps running.

        Ticks keep matching against the previous snapshot until the new one
        is installed. A failed reload is logged and leaves the loop running.
        """
        future = self.catalog.refresh_async(self._get_executor())
        future.add_done_callback(self._on_catalog_refreshed)
        return future

    def _on_catalog_refreshed(self, future: Future):
        if future.cancelled():
            return
        exc = future.exception()
        if exc is not None:
            logger.warning("Catalog refresh failed, keeping previous templates: %s", exc)
        elif self.metrics is not None:
            self.metrics.set_catalog_size(len(future.result()))

    def record_gesture(self, name: str, store: Optional[TemplateStore] = None, refresh: bool = True) -> str:
        """Save the current hand shape as a template named `name`.

        Args:
            name: Gesture name. Recording an existing name overwrites it.
            store: Where to save; defaults to the catalog's store.
            refresh: Reload the catalog afterwards so the new template
                becomes matchable.

        Returns:
            The identity the store assigned.

        Raises:
            NoObservationError: if no hand is currently observed.
            TemplateSaveError: if the store rejects the template.
        """
        observation = self._latest.get()
        if observation is None:
            raise NoObservationError(f"no hand observed, cannot record {name!r}")

        template = GestureTemplate.from_observation(name, observation)
        store = store or self.catalog.store
        try:
            key = store.save(template)
        except TemplateSaveError:
            raise
        except Exception as e:
            raise TemplateSaveError(f"failed to save {name!r}: {e}") from e

        logger.info("Recorded gesture %r (%d fingers)", key, template.finger_count)
        if refresh and self.state is DetectionState.ACTIVE:
            self.refresh_catalog()
        return key

    # -- event paths ------------------------------------------------------

    def _emit(self, event: DetectionEvent, generation: int) -> bool:
        with self._lock:
            if generation != self._generation or self._state not in _RUNNING:
                return False
        # Handlers may block or call back into the loop
        self.events.publish(event)
        return True

    def _on_observation(self, observation: Optional[HandObservation]):
        """Sensor callback: store the reading and publish hand presence events."""
        with self._lock:
            if self._state not in _RUNNING:
                return
            generation = self._generation
            closeness = self._config.closeness_threshold
            self._latest.put(observation)

        if observation is None:
            self._emit(NoHandFound(), generation)
            return

        self._emit(HandFound(observation=observation), generation)
        if observation.volume.depth >= closeness:
            self._emit(HandTooClose(depth=observation.volume.depth), generation)

    def _tick(self, generation: int):
        t0 = time.perf_counter()
        with self._lock:
            if generation != self._generation or self._state is not DetectionState.ACTIVE:
                return
            classifier = self._classifier

        if self.profiler is not None:
            with self.profiler.stage("tick"):
                self._detect(classifier, generation)
        else:
            self._detect(classifier, generation)

        if self.metrics is not None:
            self.metrics.record_tick(time.perf_counter() - t0)

    def _detect(self, classifier: ContourClassifier, generation: int):
        observation = self._latest.get()
        if observation is None:
            self._emit(NoHandFound(), generation)
            return

        match = classifier.classify(observation, self.catalog.current())
        if match is None:
            logger.debug("No gesture matched (%d fingers)", observation.finger_count)
            return

        logger.info("Gesture detected: %s (h=%.2f)", match.name, match.distance)
        self._emit(GestureFound(template=match.template, distance=match.distance), generation)
