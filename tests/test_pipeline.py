"""
Tests for the report pipeline.

Verifies:
- Fetch -> filter -> debounced metrics
- Fetch failures keep stale data and post an error notice
- Metrics failures keep the previous metrics
- Realtime changes trigger a refetch
- A response from a superseded fetch is discarded
"""

from pathlib import Path
import sys

import pytest

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from core.backend.client import BackendError
from core.backend.realtime import EVENT_UPDATE
from core.metrics import predict_future_avg_price
from core.models import Filters
from core.notifications import NoticeLevel, Notifier
from core.pipeline import ReportPipeline

from fakes import ManualTimerFactory


@pytest.fixture
def timers():
    return ManualTimerFactory()


@pytest.fixture
def pipeline(repository, timers):
    return ReportPipeline(repository, notifier=Notifier(), timer_factory=timers)


class TestRefresh:

    def test_loads_and_schedules_metrics(self, pipeline, timers):
        assert pipeline.refresh() is True
        assert len(pipeline.properties) == 10
        assert pipeline.loaded
        assert pipeline.metrics is None

        timers.latest.fire()
        assert pipeline.metrics.total_listings == 3
        assert pipeline.metrics.avg_sale_price_by_suburb["Kenmore 4069"] == pytest.approx(600000)

    def test_suburbs_normalised_on_fetch(self, pipeline):
        pipeline.refresh()
        assert {p.suburb for p in pipeline.properties} >= {"Moggill QLD (4070)", "Kenmore 4069", "Unknown"}

    def test_current_metrics_flushes(self, pipeline):
        pipeline.refresh()
        assert pipeline.current_metrics().total_sales == 6

    def test_fetch_failure_keeps_stale_data(self, pipeline, backend):
        pipeline.refresh()
        pipeline.current_metrics()

        backend.failing.add("properties")
        assert pipeline.refresh() is False
        assert pipeline.error == "Failed to fetch properties"
        assert len(pipeline.properties) == 10
        assert pipeline.metrics is not None
        notices = pipeline.notifier.drain()
        assert notices[-1].level == NoticeLevel.ERROR

        backend.failing.clear()
        assert pipeline.refresh() is True
        assert pipeline.error is None

    def test_ensure_loaded_fetches_once(self, pipeline, backend):
        pipeline.ensure_loaded()
        pipeline.ensure_loaded()
        assert len(backend.requests_to("/rest/v1/properties")) > 0
        fetches = [r for r in backend.requests if ("order", "created_at.desc") in r[2]]
        assert len(fetches) == 1

    def test_superseded_fetch_is_discarded(self, repository, timers):
        newer_results = []

        class OverlappingRepository:
            """The first fetch is still in flight when a second refresh starts."""

            def __init__(self):
                self.calls = 0

            def fetch_properties(self):
                self.calls += 1
                if self.calls == 1:
                    newer_results.append(pipeline.refresh())
                    return repository.fetch_properties()[:2]
                return repository.fetch_properties()

        pipeline = ReportPipeline(OverlappingRepository(), timer_factory=timers)
        assert pipeline.refresh() is False
        assert newer_results == [True]
        assert len(pipeline.properties) == 10
        assert pipeline.loaded
        assert pipeline.error is None

    def test_superseded_failure_leaves_no_error(self, repository, timers):
        class FailingFirstRepository:
            def __init__(self):
                self.calls = 0

            def fetch_properties(self):
                self.calls += 1
                if self.calls == 1:
                    pipeline.refresh()
                    raise BackendError("Connection reset")
                return repository.fetch_properties()

        pipeline = ReportPipeline(FailingFirstRepository(), timer_factory=timers)
        assert pipeline.refresh() is False
        assert pipeline.error is None
        assert not pipeline.loading
        assert len(pipeline.properties) == 10

    def test_refresh_keeps_applied_filters(self, pipeline):
        pipeline.refresh()
        pipeline.apply_filters(Filters(suburbs=("Moggill QLD (4070)",)))
        pipeline.refresh()
        assert len(pipeline.properties) == 3


class TestFilters:

    def test_stage_then_apply(self, pipeline):
        pipeline.refresh()
        assert pipeline.stage_filters(Filters(suburbs=("Moggill QLD (4070)",))) == 3
        assert len(pipeline.properties) == 10
        displayed = pipeline.apply_filters()
        assert len(displayed) == 3
        assert pipeline.preview_count == 3

    def test_metrics_follow_filters(self, pipeline):
        pipeline.refresh()
        pipeline.apply_filters(Filters(suburbs=("Moggill QLD (4070)",)))
        metrics = pipeline.current_metrics()
        assert len(metrics.property_details) == 3
        assert list(metrics.listings_by_suburb) == ["Moggill QLD (4070)"]

    def test_burst_recomputes_once(self, repository, timers):
        runs = []

        def predict(series):
            runs.append(series)
            return predict_future_avg_price(series)

        pipeline = ReportPipeline(repository, predict_fn=predict, timer_factory=timers)
        pipeline.refresh()
        pipeline.stage_filters(Filters(suburbs=("Kenmore 4069",)))
        pipeline.apply_filters()
        pipeline.apply_filters(Filters(suburbs=("Kenmore 4069", "Moggill QLD (4070)")))
        timers.latest.fire()
        # One prediction per suburb in the last applied filter, one recompute only
        assert len(runs) == 2

    def test_reset(self, pipeline):
        pipeline.refresh()
        pipeline.apply_filters(Filters(agents=("Bob Jones",)))
        assert len(pipeline.reset_filters()) == 10


class TestRecomputeFailure:

    def test_previous_metrics_kept(self, repository, timers):
        def broken(series):
            raise RuntimeError("model offline")

        notifier = Notifier()
        pipeline = ReportPipeline(repository, notifier=notifier, timer_factory=timers)
        pipeline.refresh()
        good = pipeline.current_metrics()

        pipeline.predict_fn = broken
        pipeline.apply_filters(Filters(suburbs=("Kenmore 4069",)))
        assert pipeline.current_metrics() is good
        assert notifier.drain()[-1].message == "Failed to generate metrics: model offline"


class TestRealtime:

    def test_change_triggers_refetch(self, pipeline, hub, backend):
        pipeline.refresh()
        pipeline.attach(hub)
        backend.rows("properties").append({"id": "11", "category": "Listing", "suburb": "Anstead"})
        hub.publish("properties", EVENT_UPDATE, {"id": "11"})
        assert len(pipeline.properties) == 11

    def test_repository_write_publishes(self, pipeline, hub, repository):
        pipeline.refresh()
        pipeline.attach(hub)
        repository.delete_property("9")
        assert len(pipeline.properties) == 9

    def test_detach(self, pipeline, hub):
        pipeline.attach(hub)
        assert hub.channel_count == 1
        pipeline.detach()
        assert hub.channel_count == 0

    def test_other_tables_ignored(self, pipeline, hub, backend):
        pipeline.refresh()
        pipeline.attach(hub)
        before = len(backend.requests)
        hub.publish("agent_activities", EVENT_UPDATE, {"id": "1"})
        assert len(backend.requests) == before

    def test_batch_write_refetches_once(self, pipeline, hub, repository, backend):
        pipeline.refresh()
        pipeline.attach(hub)

        def fetches():
            return [r for r in backend.requests if ("order", "created_at.desc") in r[2]]

        before = len(fetches())
        repository.set_commission_rate(["3", "4", "5"], 3.0)
        assert len(fetches()) == before + 1
