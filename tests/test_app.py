"""Tests for the EXP tracker service."""

import pytest
import time

from exp_tracker.app import ExpTrackerService
from exp_tracker.database.repository import Repository, SpotNotFoundError
from exp_tracker.sources.value_source import TextValueSource
from exp_tracker.utils.helpers import now_ms


@pytest.fixture
def service(settings):
    """Create an initialized service over a temp database."""
    service = ExpTrackerService(settings)
    service.initialize()
    yield service
    service.shutdown()


class TestSpots:
    """Tests for spot management."""

    def test_upsert_is_idempotent(self, service):
        first = service.upsert_spot("Forest")
        second = service.upsert_spot("Forest")

        assert first.id == second.id
        assert len(service.list_spots()) == 1

    def test_upsert_strips_name(self, service):
        assert service.upsert_spot("  Forest ").name == "Forest"

    def test_upsert_empty_name(self, service):
        with pytest.raises(ValueError):
            service.upsert_spot("   ")

    def test_set_and_get_active_spot(self, service):
        spot = service.upsert_spot("Forest")
        service.set_active_spot(spot.id)

        active = service.get_active_spot()
        assert active is not None
        assert active.id == spot.id
        assert service.state.active_spot_id == spot.id

    def test_no_active_spot(self, service):
        assert service.get_active_spot() is None

    def test_set_unknown_active_spot_keeps_previous(self, service):
        spot = service.upsert_spot("Forest")
        service.set_active_spot(spot.id)

        with pytest.raises(SpotNotFoundError):
            service.set_active_spot("does-not-exist")

        assert service.get_active_spot().id == spot.id
        assert service.repository.get_active_spot_id() == spot.id

    def test_clear_active_spot(self, service):
        spot = service.upsert_spot("Forest")
        service.set_active_spot(spot.id)
        service.clear_active_spot()

        assert service.get_active_spot() is None
        assert service.repository.get_active_spot_id() is None


class TestSamplingInterval:
    """Tests for the sampling interval."""

    def test_default(self, service):
        assert service.get_sampling_interval_sec() == 10

    def test_default_from_config(self, settings):
        settings.set("sampling.default_interval_sec", 3)
        service = ExpTrackerService(settings)
        service.initialize()
        try:
            assert service.get_sampling_interval_sec() == 3
        finally:
            service.shutdown()

    def test_clamped_to_one(self, service):
        service.set_sampling_interval_sec(0)

        assert service.get_sampling_interval_sec() == 1
        assert service.repository.get_sampling_interval_sec() == 1

    def test_set_interval(self, service):
        service.set_sampling_interval_sec(25)
        assert service.get_sampling_interval_sec() == 25


class TestHydration:
    """Tests for restoring runtime state from the settings table."""

    def test_restores_interval_and_active_spot(self, settings):
        first = ExpTrackerService(settings)
        first.initialize()
        spot = first.upsert_spot("Forest")
        first.set_active_spot(spot.id)
        first.set_sampling_interval_sec(42)
        first.shutdown()

        second = ExpTrackerService(settings)
        second.initialize()
        try:
            assert second.get_sampling_interval_sec() == 42
            assert second.get_active_spot().id == spot.id
        finally:
            second.shutdown()

    def test_malformed_interval_falls_back(self, settings):
        repo = Repository(str(settings.database_path))
        settings.data_dir.mkdir(parents=True, exist_ok=True)
        repo.initialize()
        repo.set_setting("sampling_interval_sec", "soon")
        repo.close()

        service = ExpTrackerService(settings)
        service.initialize()
        try:
            assert service.get_sampling_interval_sec() == 10
        finally:
            service.shutdown()

    def test_missing_active_spot_cleared(self, settings):
        settings.data_dir.mkdir(parents=True, exist_ok=True)
        repo = Repository(str(settings.database_path))
        repo.initialize()
        repo.set_setting("active_spot_id", "gone")
        repo.close()

        service = ExpTrackerService(settings)
        service.initialize()
        try:
            assert service.get_active_spot() is None
            assert service.repository.get_active_spot_id() is None
        finally:
            service.shutdown()

    def test_autostart(self, settings):
        first = ExpTrackerService(settings)
        first.initialize()
        first.set_active_spot(first.upsert_spot("Forest").id)
        first.shutdown()

        settings.set("sampling.autostart", True)
        service = ExpTrackerService(settings)
        service.initialize()
        try:
            assert service.is_sampler_running()
        finally:
            service.shutdown()
        assert not service.is_sampler_running()


class TestSamplesAndRates:
    """Tests for sample recording and rate queries."""

    def test_record_and_list_samples(self, service):
        spot = service.upsert_spot("Forest")
        for i in range(4):
            service.record_exp_sample(spot.id, 5, 10.0 + i, ts=1000 * i)

        samples = service.list_exp_samples(spot.id, limit=2)
        assert [s.ts for s in samples] == [3000, 2000]

    def test_record_defaults_to_now(self, service):
        spot = service.upsert_spot("Forest")
        before = now_ms()
        sample = service.record_exp_sample(spot.id, 5, 10.0)
        assert sample.ts >= before

    def test_compute_spot_rate(self, service):
        spot = service.upsert_spot("Forest")
        now = now_ms()
        service.record_exp_sample(spot.id, 5, 10.0, ts=now - 1_800_000)
        service.record_exp_sample(spot.id, 5, 40.0, ts=now - 900_000)
        service.record_exp_sample(spot.id, 6, 5.0, ts=now - 1000)

        rate = service.compute_spot_rate(spot.id, window_minutes=60)
        assert rate.exp_per_hour == pytest.approx(120.0)
        assert rate.sample_count == 2

    def test_compute_spot_rate_insufficient(self, service):
        spot = service.upsert_spot("Forest")
        service.record_exp_sample(spot.id, 5, 10.0)
        assert service.compute_spot_rate(spot.id, window_minutes=30) is None

    def test_list_spot_rates(self, service):
        now = now_ms()
        slow = service.upsert_spot("Slow")
        fast = service.upsert_spot("Fast")
        service.upsert_spot("Idle")

        for spot, gain in ((slow, 1.0), (fast, 5.0)):
            service.record_exp_sample(spot.id, 9, 10.0, ts=now - 600_000)
            service.record_exp_sample(spot.id, 9, 10.0 + gain, ts=now - 1000)

        rates = service.list_spot_rates(window_minutes=30)
        assert [r.spot_name for r in rates] == ["Fast", "Slow"]


class TestSampler:
    """Tests for sampler control through the service."""

    def test_start_stop_idempotent(self, service):
        service.start_sampler()
        service.start_sampler()
        assert service.is_sampler_running()

        service.stop_sampler()
        service.stop_sampler()
        assert not service.is_sampler_running()

    def test_manual_values_sampled_for_active_spot(self, service):
        spot = service.upsert_spot("Forest")
        service.set_active_spot(spot.id)
        service.set_sampling_interval_sec(1)
        service.set_manual_values(8, 55.5)

        service.start_sampler()
        deadline = time.monotonic() + 3.0
        while time.monotonic() < deadline and not service.list_exp_samples(spot.id):
            time.sleep(0.02)
        service.stop_sampler()

        samples = service.list_exp_samples(spot.id)
        assert samples
        assert samples[0].level == 8
        assert samples[0].exp_percent == 55.5

    def test_custom_source(self, settings):
        service = ExpTrackerService(settings, source=TextValueSource(lambda: "Lv. 3 12%"))
        service.initialize()
        try:
            spot = service.upsert_spot("Forest")
            service.set_active_spot(spot.id)
            service.set_manual_values(99, 99.0)  # ignored by the text source

            sample = service.sampler._tick()
            assert sample.level == 3
            assert sample.exp_percent == 12.0
        finally:
            service.shutdown()


class TestExport:
    """Tests for export through the service."""

    def test_export_samples_csv(self, service, tmp_path):
        spot = service.upsert_spot("Forest")
        service.record_exp_sample(spot.id, 5, 10.0, ts=0)
        service.record_exp_sample(spot.id, 5, 12.0, ts=60_000)

        result = service.export_samples(spot.id, tmp_path / "out" / "forest.csv")

        assert result.success
        assert result.rows_exported == 2
        assert result.file_path.exists()


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
