"""Unit tests for persistence layer."""

from datetime import date, datetime, timezone
from decimal import Decimal

import pytest
from sqlalchemy import inspect, text

from govcon.domain.models import (
    MatchStatus,
    OpportunityMatch,
    OpportunityStatus,
)
from govcon.persistence import (
    AlertRepository,
    CompanyProfileRepository,
    DatabaseConnectionError,
    DataIntegrityError,
    MatchRepository,
    OpportunityRepository,
    RecordNotFoundError,
    close_database,
    get_engine,
    get_session,
    init_database,
)
from govcon.persistence.database import _redact_url
from tests.helpers import make_alert, make_opportunity, make_profile


class TestDatabaseInitialization:
    """Tests for database initialization."""

    def test_init_database_creates_file_and_parents(self, tmp_path):
        db_file = tmp_path / "subdir" / "nested" / "test.db"

        init_database(f"sqlite:///{db_file}")
        try:
            assert db_file.exists()
            with get_session() as session:
                assert session is not None
        finally:
            close_database()

    def test_schema_tables_created(self, db):
        tables = set(inspect(get_engine()).get_table_names())
        assert {
            "opportunities",
            "company_profiles",
            "opportunity_matches",
            "opportunity_alerts",
        } <= tables

    def test_init_database_is_idempotent(self, tmp_path):
        db_url = f"sqlite:///{tmp_path / 'test.db'}"
        init_database(db_url)
        init_database(db_url)
        try:
            with get_session() as session:
                count = session.execute(text("SELECT COUNT(*) FROM opportunities")).scalar()
            assert count == 0
        finally:
            close_database()

    def test_init_database_invalid_url_raises_error(self):
        with pytest.raises(DatabaseConnectionError):
            init_database("")

        with pytest.raises(DatabaseConnectionError):
            init_database(None)

    def test_get_session_before_init_raises(self):
        close_database()
        with pytest.raises(DatabaseConnectionError):
            with get_session():
                pass

    def test_close_database_is_safe_twice(self):
        close_database()
        close_database()

    def test_redact_url_hides_password(self):
        assert _redact_url("postgresql://app:hunter2@db:5432/govcon") == "postgresql://app:***@db:5432/govcon"
        assert _redact_url("sqlite:///./data/govcon.db") == "sqlite:///./data/govcon.db"


class TestSessionManagement:
    """Tests for get_session commit/rollback."""

    def test_commit_on_success(self, db):
        with get_session() as session:
            OpportunityRepository(session).save(make_opportunity())

        with get_session() as session:
            assert OpportunityRepository(session).count() == 1

    def test_rollback_on_error(self, db):
        with pytest.raises(RuntimeError):
            with get_session() as session:
                OpportunityRepository(session).save(make_opportunity())
                raise RuntimeError("boom")

        with get_session() as session:
            assert OpportunityRepository(session).count() == 0

    def test_savepoint_rolls_back_alone(self, db):
        with get_session() as session:
            repo = OpportunityRepository(session)
            repo.save(make_opportunity(id="o1", solicitation_number="S1"))
            with pytest.raises(DataIntegrityError):
                with session.begin_nested():
                    repo.save(make_opportunity(id="o2", solicitation_number="S1"))
            repo.save(make_opportunity(id="o3", solicitation_number="S3"))

        with get_session() as session:
            repo = OpportunityRepository(session)
            assert repo.count() == 2
            assert repo.get_by_id("o2") is None


class TestOpportunityRepository:
    """Tests for OpportunityRepository."""

    def test_round_trip_preserves_fields(self, db):
        fetched_at = datetime(2025, 11, 5, 8, 30, tzinfo=timezone.utc)
        opportunity = make_opportunity(
            posted_date=date(2025, 11, 1),
            response_deadline=date(2025, 12, 1),
            award_amount=Decimal("1250000.00"),
            estimated_value_high=Decimal("2000000.00"),
            is_sbir=True,
            sbir_phase="II",
            last_fetched_at=fetched_at,
        )
        with get_session() as session:
            OpportunityRepository(session).save(opportunity)

        with get_session() as session:
            stored = OpportunityRepository(session).get_by_id("opp-1")

        assert stored.solicitation_number == "SOL-001"
        assert stored.posted_date == date(2025, 11, 1)
        assert stored.response_deadline == date(2025, 12, 1)
        assert stored.award_amount == Decimal("1250000.00")
        assert stored.estimated_value_high == Decimal("2000000.00")
        assert stored.is_sbir is True
        assert stored.sbir_phase == "II"
        assert stored.last_fetched_at == fetched_at
        assert stored.status == OpportunityStatus.ACTIVE

    def test_find_by_solicitation_number(self, db):
        with get_session() as session:
            repo = OpportunityRepository(session)
            repo.save(make_opportunity())
            assert repo.find_by_solicitation_number("SOL-001").id == "opp-1"
            assert repo.find_by_solicitation_number("missing") is None

    def test_save_overwrites_existing_row(self, db):
        with get_session() as session:
            OpportunityRepository(session).save(make_opportunity(title="Old"))
        with get_session() as session:
            OpportunityRepository(session).save(make_opportunity(title="New"))

        with get_session() as session:
            repo = OpportunityRepository(session)
            assert repo.count() == 1
            assert repo.get_by_id("opp-1").title == "New"

    def test_duplicate_solicitation_number_raises(self, db):
        with pytest.raises(DataIntegrityError):
            with get_session() as session:
                repo = OpportunityRepository(session)
                repo.save(make_opportunity(id="o1", solicitation_number="S1"))
                repo.save(make_opportunity(id="o2", solicitation_number="S1"))

    def test_find_by_status_pages(self, db):
        with get_session() as session:
            repo = OpportunityRepository(session)
            for i in range(5):
                repo.save(make_opportunity(id=f"o{i}", solicitation_number=f"S{i}"))
            repo.save(
                make_opportunity(id="closed", solicitation_number="SC", status=OpportunityStatus.CLOSED)
            )

        with get_session() as session:
            repo = OpportunityRepository(session)
            first = repo.find_by_status(OpportunityStatus.ACTIVE, page=0, page_size=2)
            last = repo.find_by_status(OpportunityStatus.ACTIVE, page=2, page_size=2)

        assert [o.id for o in first.items] == ["o0", "o1"]
        assert first.total == 5
        assert first.has_next
        assert [o.id for o in last.items] == ["o4"]
        assert not last.has_next

    def test_find_by_status_rejects_bad_paging(self, db):
        with get_session() as session:
            with pytest.raises(ValueError):
                OpportunityRepository(session).find_by_status(OpportunityStatus.ACTIVE, page_size=0)


class TestCompanyProfileRepository:
    """Tests for CompanyProfileRepository."""

    def test_save_and_find(self, db):
        with get_session() as session:
            CompanyProfileRepository(session).save(make_profile())

        with get_session() as session:
            profile = CompanyProfileRepository(session).find_by_tenant("tenant-1")

        assert profile.primary_naics == ["541512"]
        assert profile.service_regions == ["MD", "DC"]
        assert profile.is_small_business is True
        assert profile.annual_revenue == Decimal("10000000")

    def test_missing_profile_is_none(self, db):
        with get_session() as session:
            assert CompanyProfileRepository(session).find_by_tenant("nobody") is None


class TestMatchRepository:
    """Tests for MatchRepository."""

    @staticmethod
    def _match(match_id, opportunity_id, overall, tenant_id="tenant-1"):
        return OpportunityMatch(
            id=match_id,
            tenant_id=tenant_id,
            opportunity_id=opportunity_id,
            overall_score=Decimal(overall),
            match_status=MatchStatus.NEW,
        )

    def test_save_keeps_one_row_per_pair(self, db):
        with get_session() as session:
            repo = MatchRepository(session)
            repo.save(self._match("m1", "o1", "50"))
            repo.save(self._match("m2", "o1", "75"))

        with get_session() as session:
            matches = MatchRepository(session).find_by_tenant("tenant-1")

        assert len(matches) == 1
        assert matches[0].id == "m1"
        assert matches[0].overall_score == Decimal("75")

    def test_find_top_orders_and_filters(self, db):
        with get_session() as session:
            repo = MatchRepository(session)
            repo.save(self._match("m1", "o1", "65"))
            repo.save(self._match("m2", "o2", "90"))
            repo.save(self._match("m3", "o3", "80"))
            repo.save(self._match("m4", "o4", "99", tenant_id="tenant-2"))

        with get_session() as session:
            top = MatchRepository(session).find_top("tenant-1", limit=10, min_score=Decimal("70"))

        assert [m.id for m in top] == ["m2", "m3"]


class TestAlertRepository:
    """Tests for AlertRepository."""

    def test_save_and_list_by_user(self, db):
        with get_session() as session:
            repo = AlertRepository(session)
            repo.save(make_alert(id="a2", name="Zeta", naics_codes=["5415"], keywords=["cloud"]))
            repo.save(make_alert(id="a1", name="Alpha", min_value=Decimal("1000")))
            repo.save(make_alert(id="a3", user_id="user-2", name="Other"))

        with get_session() as session:
            alerts = AlertRepository(session).find_by_user("user-1")

        assert [a.name for a in alerts] == ["Alpha", "Zeta"]
        assert alerts[1].naics_codes == ["5415"]
        assert alerts[1].keywords == ["cloud"]
        assert alerts[0].min_value == Decimal("1000")

    def test_unique_name_per_user(self, db):
        with pytest.raises(DataIntegrityError):
            with get_session() as session:
                repo = AlertRepository(session)
                repo.save(make_alert(id="a1", name="Same"))
                repo.save(make_alert(id="a2", name="Same"))

    def test_exists_by_user_and_name(self, db):
        with get_session() as session:
            repo = AlertRepository(session)
            repo.save(make_alert(id="a1", name="Cyber"))

            assert repo.exists_by_user_and_name("user-1", "Cyber")
            assert not repo.exists_by_user_and_name("user-1", "Cyber", exclude_id="a1")
            assert not repo.exists_by_user_and_name("user-2", "Cyber")

    def test_enabled_queries(self, db):
        with get_session() as session:
            repo = AlertRepository(session)
            repo.save(make_alert(id="a1", name="On"))
            repo.save(make_alert(id="a2", name="Off", enabled=False))
            repo.save(make_alert(id="a3", user_id="user-2", name="Theirs"))

            assert {a.id for a in repo.find_enabled()} == {"a1", "a3"}
            assert [a.id for a in repo.find_enabled_by_user("user-1")] == ["a1"]

    def test_delete(self, db):
        with get_session() as session:
            repo = AlertRepository(session)
            repo.save(make_alert())
            repo.delete("alert-1")
            assert repo.get_by_id("alert-1") is None

            with pytest.raises(RecordNotFoundError):
                repo.delete("alert-1")
