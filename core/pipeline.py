"""
Report Pipeline

Per-session owner of the reporting state:
1. Fetch the property collection from the repository
2. Narrow it with the FilterEngine
3. Recompute PropertyMetrics through a debouncer

Failures never escape: a failed fetch keeps the last good data and records
an error string, a failed recompute keeps the previous metrics. Both post
an error notice.
"""

from __future__ import annotations

import logging
import threading
from typing import Iterable, List, Optional

from .backend.client import BackendError
from .backend.realtime import Channel, ChangeEvent, RealtimeHub
from .backend.repository import PROPERTIES_TABLE, PropertyRepository
from .filters import FilterEngine
from .metrics import DEFAULT_OPERATOR_AGENCY, PredictFn, compute_metrics, predict_future_avg_price
from .models import Filters, PropertyDetails, PropertyMetrics
from .notifications import Notifier
from .scheduler import DEFAULT_DELAY_SECONDS, Debouncer, TimerFactory


logger = logging.getLogger(__name__)


class ReportPipeline:
    """
    Fetch -> filter -> metrics, for one report screen.

    Each refresh() takes a fetch generation number; a response that
    arrives after a newer fetch was issued is discarded.
    """

    def __init__(
        self,
        repository: PropertyRepository,
        notifier: Optional[Notifier] = None,
        debounce_seconds: float = DEFAULT_DELAY_SECONDS,
        our_agency: str = DEFAULT_OPERATOR_AGENCY,
        predict_fn: PredictFn = predict_future_avg_price,
        timer_factory: Optional[TimerFactory] = None,
    ):
        self.repository = repository
        self.notifier = notifier or Notifier()
        self.our_agency = our_agency
        self.predict_fn = predict_fn
        self.engine = FilterEngine()

        debouncer_kwargs = {"timer_factory": timer_factory} if timer_factory else {}
        self.debouncer = Debouncer(debounce_seconds, self._recompute, **debouncer_kwargs)

        self._lock = threading.RLock()
        self._fetch_generation = 0
        self._channel: Optional[Channel] = None

        self.metrics: Optional[PropertyMetrics] = None
        self.error: Optional[str] = None
        self.loading = False
        self.loaded = False

    # -------------------------------------------------------------------------
    # Fetch
    # -------------------------------------------------------------------------

    def refresh(self) -> bool:
        """
        Fetch the property collection and schedule a recompute.

        Returns:
            True if the fetched data was applied, False on failure or when
            a newer fetch superseded this one.
        """
        with self._lock:
            self._fetch_generation += 1
            generation = self._fetch_generation
            self.loading = True

        try:
            properties = self.repository.fetch_properties()
        except BackendError as e:
            message = e.message or "Failed to fetch data"
            logger.error("Fetch error: %s", message)
            with self._lock:
                if generation == self._fetch_generation:
                    self.error = message
                    self.loading = False
            self.notifier.error(message)
            return False

        with self._lock:
            if generation != self._fetch_generation:
                logger.debug("Discarding stale fetch %d (latest %d)", generation, self._fetch_generation)
                return False
            self.engine.load(properties)
            displayed = self.engine.apply()
            self.error = None
            self.loading = False
            self.loaded = True

        self.debouncer.schedule(list(displayed))
        return True

    def ensure_loaded(self) -> None:
        if not self.loaded:
            self.refresh()

    # -------------------------------------------------------------------------
    # Filters
    # -------------------------------------------------------------------------

    def stage_filters(self, filters: Filters) -> int:
        """Preview how many properties `filters` would keep."""
        with self._lock:
            return self.engine.stage(filters)

    def apply_filters(self, filters: Optional[Filters] = None) -> List[PropertyDetails]:
        with self._lock:
            displayed = list(self.engine.apply(filters))
        self.debouncer.schedule(displayed)
        return displayed

    def reset_filters(self) -> List[PropertyDetails]:
        with self._lock:
            displayed = list(self.engine.reset())
        self.debouncer.schedule(displayed)
        return displayed

    @property
    def filters(self) -> Filters:
        return self.engine.filters

    @property
    def properties(self) -> List[PropertyDetails]:
        return list(self.engine.displayed)

    @property
    def preview_count(self) -> int:
        return self.engine.preview_count

    # -------------------------------------------------------------------------
    # Metrics
    # -------------------------------------------------------------------------

    def _recompute(self, properties: Iterable[PropertyDetails]) -> None:
        try:
            metrics = compute_metrics(properties, predict_fn=self.predict_fn, our_agency=self.our_agency)
        except Exception as e:
            logger.exception("Error generating metrics")
            self.notifier.error(f"Failed to generate metrics: {e}")
            return
        with self._lock:
            self.metrics = metrics

    def current_metrics(self) -> Optional[PropertyMetrics]:
        """Run any pending recompute now and return the latest metrics."""
        self.debouncer.flush()
        return self.metrics

    # -------------------------------------------------------------------------
    # Realtime
    # -------------------------------------------------------------------------

    def attach(self, hub: RealtimeHub) -> Channel:
        """Refetch everything whenever the properties table changes."""
        self.detach()
        self._channel = hub.channel(PROPERTIES_TABLE).on_change(self._on_change)
        return self._channel

    def detach(self) -> None:
        if self._channel is not None:
            self._channel.unsubscribe()
            self._channel = None
        self.debouncer.cancel()

    def _on_change(self, event: ChangeEvent) -> None:
        logger.info("Properties changed (%s), refetching", event.event)
        self.refresh()
