"""Unit tests for the ingestion coordinator."""

from pathlib import Path
from unittest.mock import Mock, patch

import pytest

from govcon.config.models import AppConfig
from govcon.domain.models import RawOpportunity
from govcon.ingestion import IngestionCoordinator, IngestionResult, PartitionFetchResult
from govcon.normalization import OpportunityNormalizer
from govcon.persistence import (
    DatabaseConnectionError,
    OpportunityRepository,
    get_session,
)
from tests.helpers import FixtureFetcher

FIXTURE_PATH = Path(__file__).parent / "fixtures" / "opportunities.yaml"
NAICS = ["541512", "541519"]


@pytest.fixture
def fetcher():
    return FixtureFetcher(FIXTURE_PATH)


@pytest.fixture
def coordinator(db, fetcher):
    return IngestionCoordinator(fetcher, partition_keys=NAICS, max_workers=4)


def stored_count() -> int:
    with get_session() as session:
        return OpportunityRepository(session).count()


def stored(solicitation_number):
    with get_session() as session:
        return OpportunityRepository(session).find_by_solicitation_number(solicitation_number)


class TestRunIngestion:
    """Tests for the standard fetch/merge/upsert run."""

    def test_first_run_creates_records(self, coordinator):
        result = coordinator.run_ingestion()

        assert result.new_count == 3
        assert result.updated_count == 0
        assert result.skipped_count == 1
        assert result.failed_count == 0
        assert result.fetched_count == 4
        assert result.failed_partitions == []
        assert result.duration_ms >= 0
        assert stored_count() == 3

    def test_second_run_is_idempotent(self, coordinator):
        coordinator.run_ingestion()
        first = stored("SOL-CLOUD-001")

        result = coordinator.run_ingestion()

        assert result.new_count == 0
        assert result.updated_count == 3
        assert stored_count() == 3
        second = stored("SOL-CLOUD-001")
        assert second.id == first.id
        assert second.created_at == first.created_at
        assert second.last_fetched_at >= first.last_fetched_at

    def test_record_fields_normalized(self, coordinator):
        coordinator.run_ingestion()

        cloud = stored("SOL-CLOUD-001")
        assert cloud.id == "n-541512-1"
        assert cloud.place_of_performance_state == "VA"
        assert cloud.set_aside_type == "SBA"
        assert cloud.response_deadline.isoformat() == "2025-12-01"

        # Unparseable deadline is stored as absent, the record is kept
        assert stored("SOL-ITAM-003").response_deadline is None

    def test_uses_configured_keys_by_default(self, coordinator, fetcher):
        coordinator.run_ingestion()
        assert sorted(fetcher.calls) == [("partitions", "541512"), ("partitions", "541519")]

    def test_explicit_keys_are_deduplicated(self, coordinator, fetcher):
        coordinator.run_ingestion(["541512", " 541512 ", ""])
        assert fetcher.calls == [("partitions", "541512")]

    def test_empty_key_list_is_a_no_op(self, coordinator, fetcher):
        result = coordinator.run_ingestion([])

        assert result.saved_count == 0
        assert fetcher.calls == []

    def test_unknown_key_yields_no_records(self, coordinator):
        result = coordinator.run_ingestion(["999999"])

        assert result.new_count == 0
        stat = result.partition_stats[0]
        assert stat.succeeded is True
        assert stat.record_count == 0


class TestPartitionIsolation:
    """A failing or slow partition never affects the others."""

    def test_failed_partition_contributes_nothing(self, db):
        fetcher = FixtureFetcher(FIXTURE_PATH, failing_keys={"541519"})
        coordinator = IngestionCoordinator(fetcher, partition_keys=NAICS)

        result = coordinator.run_ingestion()

        assert result.new_count == 2
        assert result.failed_partitions == ["541519"]
        failed = [p for p in result.partition_stats if not p.succeeded][0]
        assert "FetcherHTTPError" in failed.error
        assert stored("SOL-ITAM-003") is None

    def test_all_partitions_failing_returns_zero_counts(self, db):
        fetcher = FixtureFetcher(FIXTURE_PATH, failing_keys=set(NAICS))
        result = IngestionCoordinator(fetcher, partition_keys=NAICS).run_ingestion()

        assert result.saved_count == 0
        assert sorted(result.failed_partitions) == NAICS

    def test_partition_past_deadline_counts_as_failed(self, db):
        fetcher = FixtureFetcher(FIXTURE_PATH, slow_keys={"541519": 1.0})
        coordinator = IngestionCoordinator(
            fetcher, partition_keys=NAICS, fetch_deadline_seconds=0.2
        )

        result = coordinator.run_ingestion()

        assert result.new_count == 2
        assert result.failed_partitions == ["541519"]
        late = [p for p in result.partition_stats if not p.succeeded][0]
        assert late.error == "deadline exceeded"

    def test_unexpected_exception_from_fetcher_is_contained(self, db):
        def fetch(key):
            if key == "541519":
                raise KeyError(key)
            return [RawOpportunity(notice_id="n1", solicitation_number="S1", title="Ok")]

        fetcher = Mock()
        fetcher.fetch.side_effect = fetch

        result = IngestionCoordinator(fetcher, partition_keys=NAICS).run_ingestion()

        assert result.new_count == 1
        assert result.failed_partitions == ["541519"]


class TestRecordErrors:
    """Per-record failures are skipped; store failures propagate."""

    def test_bad_record_is_skipped_and_run_continues(self, coordinator):
        original = OpportunityNormalizer.normalize

        def flaky(self, raw):
            if raw.solicitation_number == "SOL-NET-002":
                raise ValueError("malformed record")
            return original(self, raw)

        with patch.object(OpportunityNormalizer, "normalize", flaky):
            result = coordinator.run_ingestion()

        assert result.failed_count == 1
        assert result.new_count == 2
        assert stored("SOL-NET-002") is None
        assert stored("SOL-CLOUD-001") is not None

    def test_store_failure_propagates_and_releases_lock(self, coordinator):
        with patch.object(
            OpportunityRepository, "save", side_effect=DatabaseConnectionError("database is locked")
        ):
            with pytest.raises(DatabaseConnectionError):
                coordinator.run_ingestion()

        # Nothing committed, and the next run is not blocked
        assert stored_count() == 0
        assert coordinator.run_ingestion().new_count == 3

    def test_duplicate_solicitation_within_one_batch_updates(self, db):
        fetcher = Mock()
        fetcher.fetch.return_value = [
            RawOpportunity(notice_id="n1", solicitation_number="DUP-1", title="First"),
            RawOpportunity(notice_id="n2", solicitation_number="DUP-1", title="Second"),
        ]

        result = IngestionCoordinator(fetcher, partition_keys=["541512"]).run_ingestion()

        assert result.new_count == 1
        assert result.updated_count == 1
        assert stored("DUP-1").title == "Second"


class TestOverlappingRuns:
    """Only one run executes at a time."""

    def test_run_skipped_while_lock_held(self, coordinator, fetcher):
        coordinator._lock.acquire()
        try:
            result = coordinator.run_ingestion()
        finally:
            coordinator._lock.release()

        assert result.skipped_run is True
        assert result.saved_count == 0
        assert fetcher.calls == []


class TestAlternateModes:
    """Sources Sought and SBIR/STTR ingestion."""

    def test_sources_sought_returns_saved_count(self, coordinator, fetcher):
        saved = coordinator.ingest_sources_sought()

        assert saved == 1
        assert ("sources_sought", "541512") in fetcher.calls
        assert stored("RFI-ZT-100").type == "Sources Sought"

    def test_sbir_disabled_is_a_no_op(self, coordinator, fetcher):
        result = coordinator.ingest_sbir_sttr()

        assert result.saved_count == 0
        assert result.mode == "sbir_sttr"
        assert fetcher.calls == []

    def test_sbir_enabled_searches_titles(self, db, fetcher):
        coordinator = IngestionCoordinator(
            fetcher, partition_keys=NAICS, sbir_enabled=True, sbir_keywords=["SBIR", "STTR"]
        )

        result = coordinator.ingest_sbir_sttr()

        assert result.new_count == 2
        sbir = stored("SBIR-QN-001")
        assert sbir.is_sbir is True
        assert sbir.sbir_phase == "I"
        sttr = stored("STTR-AM-002")
        assert sttr.is_sttr is True
        assert sttr.sbir_phase == "II"

    def test_full_ingestion_sums_counts(self, db, fetcher):
        coordinator = IngestionCoordinator(
            fetcher, partition_keys=NAICS, sbir_enabled=True, sbir_keywords=["SBIR", "STTR"]
        )

        result = coordinator.run_full_ingestion()

        assert result.mode == "full"
        assert result.new_count == 5
        assert result.skipped_count == 1
        assert len(result.partition_stats) == 4
        assert stored_count() == 5


class TestFromConfig:
    def test_from_config(self, fetcher):
        app_config = AppConfig(
            ingestion={
                "naics_codes": ["541512", "541330"],
                "sbir_enabled": True,
                "fetch_deadline_seconds": 30,
            },
            advanced={"max_fetch_workers": 3},
        )

        coordinator = IngestionCoordinator.from_config(app_config, fetcher)

        assert coordinator.partition_keys == ["541512", "541330"]
        assert coordinator.max_workers == 3
        assert coordinator.fetch_deadline_seconds == 30
        assert coordinator.sbir_enabled is True
        assert coordinator.sbir_keywords == ["SBIR", "STTR"]


class TestIngestionResult:
    def test_combine(self):
        a = IngestionResult(new_count=1, updated_count=2, partition_stats=[PartitionFetchResult("a")])
        b = IngestionResult(new_count=3, failed_count=1, partition_stats=[PartitionFetchResult("b", succeeded=False)])

        combined = a.combine(b, mode="full")

        assert combined.mode == "full"
        assert combined.saved_count == 6
        assert combined.failed_count == 1
        assert combined.failed_partitions == ["b"]
