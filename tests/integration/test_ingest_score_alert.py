"""Integration test: ingest from a fixture source, score a tenant, evaluate alerts."""

from decimal import Decimal
from pathlib import Path

import pytest

from govcon.alerts import AlertCreateRequest, AlertEvaluator, AlertService
from govcon.domain.models import OpportunityStatus
from govcon.ingestion import IngestionCoordinator
from govcon.persistence import (
    CompanyProfileRepository,
    OpportunityRepository,
    close_database,
    get_session,
    init_database,
)
from govcon.scoring import MatchScorer
from tests.helpers import FixtureFetcher, make_profile

FIXTURE_PATH = Path(__file__).parent.parent / "fixtures" / "opportunities.yaml"


@pytest.fixture
def test_database(tmp_path):
    """Setup test database with file storage."""
    db_file = tmp_path / "test_integration.db"
    db_url = f"sqlite:///{db_file}"
    init_database(db_url)
    yield db_url
    close_database()


@pytest.fixture
def coordinator(test_database):
    fetcher = FixtureFetcher(FIXTURE_PATH)
    coordinator = IngestionCoordinator(
        fetcher,
        partition_keys=["541512", "541519"],
        sbir_enabled=True,
        sbir_keywords=["SBIR", "STTR"],
    )
    yield coordinator
    fetcher.close()


def active_opportunities():
    with get_session() as session:
        return OpportunityRepository(session).find_by_status(OpportunityStatus.ACTIVE, 0, 100).items


class TestIngestScoreAlert:
    def test_end_to_end(self, coordinator):
        # Ingest: NAICS partitions plus SBIR/STTR titles, then Sources Sought
        result = coordinator.run_full_ingestion()
        assert result.new_count == 5
        assert result.skipped_count == 1
        assert result.failed_partitions == []
        assert coordinator.ingest_sources_sought() == 1

        opportunities = active_opportunities()
        assert len(opportunities) == 6
        sbir = next(o for o in opportunities if o.solicitation_number == "SBIR-QN-001")
        assert sbir.is_sbir is True
        assert sbir.sbir_phase == "I"

        # Re-running changes nothing but counts updates
        again = coordinator.run_full_ingestion()
        assert again.new_count == 0
        assert again.updated_count == 5
        assert len(active_opportunities()) == 6

        # Score the tenant against every active opportunity
        with get_session() as session:
            CompanyProfileRepository(session).save(make_profile())

        scorer = MatchScorer(page_size=4)
        batch = scorer.calculate_all_matches("tenant-1")
        assert batch.processed == 6
        assert batch.failed == 0

        top = scorer.get_top_matches("tenant-1", limit=1)
        assert top[0].opportunity_id == "n-541512-1"
        assert top[0].overall_score == Decimal("91.00")
        assert top[0].pwin_score == Decimal("72.80")
        assert scorer.get_match_stats("tenant-1").total == 6

        # Alerts: evaluation is read-only, record_check stamps the result
        alerts = AlertService()
        zero_trust = alerts.create_alert(
            "user-1", AlertCreateRequest(name="Zero trust", naics_codes=["5415"], keywords=["zero trust"])
        )
        alerts.create_alert("user-2", AlertCreateRequest(name="R&D", naics_codes=["541715"]))

        evaluator = AlertEvaluator()
        hits = {}
        for opportunity in opportunities:
            for match in evaluator.evaluate_opportunity(opportunity):
                hits.setdefault(match.alert_name, []).append(opportunity.solicitation_number)

        assert hits["Zero trust"] == ["RFI-ZT-100"]
        assert sorted(hits["R&D"]) == ["SBIR-QN-001", "STTR-AM-002"]

        checked = alerts.record_check("user-1", zero_trust.id, len(hits["Zero trust"]))
        assert checked.last_match_count == 1
