"""Unit tests for match scoring."""

from decimal import Decimal
from unittest.mock import patch

import pytest

from govcon.domain.models import MatchStatus, OpportunityStatus
from govcon.persistence import (
    CompanyProfileRepository,
    DatabaseConnectionError,
    DataIntegrityError,
    MatchRepository,
    OpportunityRepository,
    PersistenceError,
    get_session,
)
from govcon.scoring import (
    WEIGHTS,
    MatchNotFoundError,
    MatchScorer,
    OpportunityNotFoundError,
    ProfileNotFoundError,
    ScoringError,
)
from govcon.scoring import factors
from govcon.scoring.models import ReasonTag, join_tags
from tests.helpers import make_opportunity, make_profile

D = Decimal


# ============================================================================
# Weights and overall score
# ============================================================================


class TestWeights:
    def test_weights_sum_to_one(self):
        assert sum(WEIGHTS.values()) == D("1.00")

    def test_seven_factors(self):
        assert set(WEIGHTS) == {
            "naics",
            "capability",
            "past_performance",
            "geographic",
            "certification",
            "clearance",
            "contract_size",
        }


class TestOverallAndPwin:
    def test_all_hundred_scores_hundred(self):
        assert factors.overall_score({name: D("100") for name in WEIGHTS}) == D("100.00")

    def test_all_zero_scores_zero(self):
        assert factors.overall_score({name: D("0") for name in WEIGHTS}) == D("0.00")

    def test_weighted_sum(self):
        scores = {name: D("100") for name in WEIGHTS}
        scores["past_performance"] = D("70")
        scores["contract_size"] = D("70")
        assert factors.overall_score(scores) == D("92.50")

    def test_missing_factor_raises(self):
        with pytest.raises(KeyError):
            factors.overall_score({"naics": D("100")})

    def test_pwin_without_incumbent(self):
        assert factors.pwin_score(D("92.50"), has_incumbent=False) == D("74.00")

    def test_pwin_with_incumbent(self):
        assert factors.pwin_score(D("92.50"), has_incumbent=True) == D("51.80")

    def test_quantize_rounds_half_up(self):
        assert factors.quantize(D("66.665")) == D("66.67")
        assert factors.quantize(D("66.664")) == D("66.66")


# ============================================================================
# Sub-scores
# ============================================================================


class TestNaicsScore:
    @pytest.mark.parametrize(
        "code,expected",
        [("541512", "100.00"), ("541511", "80.00"), ("541519", "50.00"), ("611310", "0.00"), (None, "0.00")],
    )
    def test_examples(self, code, expected):
        assert factors.naics_score(code, ["541512"], ["541511"]) == D(expected)

    def test_profile_without_codes_scores_zero(self):
        assert factors.naics_score("541512", [], []) == D("0.00")

    def test_short_codes_never_prefix_match(self):
        assert factors.naics_score("54", ["541512"], []) == D("0.00")


class TestCapabilityScore:
    def test_full_overlap_capped_at_hundred(self):
        assert factors.capability_score("cloud migration", "Cloud migration") == D("100.00")

    def test_partial_overlap(self):
        # 1 shared word of 4 description words: 200 * 1 / 4
        assert factors.capability_score("cloud", "cloud data center services") == D("50.00")

    def test_fraction_rounded(self):
        # 200 * 1 / 3 = 66.666...
        assert factors.capability_score("cloud", "cloud data services") == D("66.67")

    def test_no_overlap_scores_zero(self):
        assert factors.capability_score("janitorial", "cloud data services") == D("0.00")

    @pytest.mark.parametrize("capabilities,description", [(None, "cloud"), ("cloud", None), ("  ", "cloud"), ("cloud", "!!!")])
    def test_missing_text_is_neutral(self, capabilities, description):
        assert factors.capability_score(capabilities, description) == D("50.00")


class TestPastPerformanceScore:
    def test_present(self):
        assert factors.past_performance_score("Army task orders") == D("70.00")

    @pytest.mark.parametrize("summary", [None, "", "   "])
    def test_absent(self, summary):
        assert factors.past_performance_score(summary) == D("30.00")


class TestGeographicScore:
    @pytest.mark.parametrize(
        "state,expected",
        [(None, "100.00"), ("va", "100.00"), ("MD", "80.00"), ("TX", "40.00")],
    )
    def test_examples(self, state, expected):
        assert factors.geographic_score(state, "VA", ["MD", "DC"]) == D(expected)


class TestCertificationScore:
    @pytest.mark.parametrize(
        "set_aside,flags,expected",
        [
            (None, {}, "100.00"),
            ("8(a) Set-Aside (FAR 19.8)", {"is_8a": True}, "100.00"),
            ("8AN", {}, "0.00"),
            ("HZC", {"is_hubzone": True}, "100.00"),
            ("SDVOSBC", {"is_veteran_owned": True}, "100.00"),
            ("EDWOSB", {"is_woman_owned": True}, "100.00"),
            ("SBA", {"is_small_business": True}, "90.00"),
            ("Total Small Business Set-Aside", {"is_small_business": False}, "0.00"),
            # Falls through to small business when the woman-owned flag is absent
            ("Women-Owned Small Business", {"is_small_business": True}, "90.00"),
            ("Service-Disabled Veteran-Owned Small Business (SDVOSB) Set-Aside", {"is_small_business": True}, "90.00"),
            ("Service-Disabled Veteran-Owned Small Business (SDVOSB) Set-Aside", {"is_veteran_owned": True}, "100.00"),
            ("SDVOSBC", {"is_small_business": True}, "0.00"),
            ("Local Area Set-Aside", {"is_small_business": True}, "0.00"),
        ],
    )
    def test_examples(self, set_aside, flags, expected):
        profile = make_profile(**{"is_small_business": False, **flags})
        assert factors.certification_score(set_aside, profile) == D(expected)

    def test_categories_in_checking_order(self):
        assert factors.set_aside_categories("EDWOSB") == ["woman"]
        assert factors.set_aside_categories("Service-Disabled Veteran-Owned Small Business") == [
            "veteran",
            "small",
        ]
        assert factors.set_aside_categories("Local Area Set-Aside") == []
        assert factors.set_aside_categories("  ") == []

    def test_small_business_fall_through_is_not_a_risk(self):
        opportunity = make_opportunity(set_aside_type="Women-Owned Small Business")

        breakdown = MatchScorer().score(opportunity, make_profile())

        assert breakdown.scores["certification"] == D("90.00")
        assert "certification.met" in [t.code for t in breakdown.reasons]
        assert "certification.unmet" not in [t.code for t in breakdown.risks]


class TestClearanceScore:
    def test_no_requirements(self):
        assert factors.clearance_score(make_opportunity(), make_profile()) == D("100.00")

    def test_missing_clearance(self):
        opportunity = make_opportunity(clearance_required="Secret")
        assert factors.clearance_score(opportunity, make_profile()) == D("0.00")

    def test_mixed_requirements_averaged(self):
        opportunity = make_opportunity(clearance_required="Top Secret", itar_controlled=True)
        profile = make_profile(has_facility_clearance=False, is_itar_registered=True)
        assert factors.clearance_score(opportunity, profile) == D("50.00")


class TestContractSizeScore:
    REVENUE = D("10000000")

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("1000000", "100.00"),
            ("500000", "100.00"),
            ("499999", "100.00"),  # ratio rounds to 0.0500
            ("5000000", "100.00"),
            ("100000", "70.00"),
            ("8000000", "70.00"),
            ("10000000", "70.00"),
            ("20000000", "30.00"),
        ],
    )
    def test_ratio_bands(self, value, expected):
        assert factors.contract_size_score(D(value), self.REVENUE) == D(expected)

    @pytest.mark.parametrize("value,revenue", [(None, D("1")), (D("1"), None), (D("1"), D("0")), (D("1"), D("-5"))])
    def test_missing_inputs_neutral(self, value, revenue):
        assert factors.contract_size_score(value, revenue) == D("70.00")


# ============================================================================
# Reasons and breakdown
# ============================================================================


class TestScoreBreakdown:
    def test_strong_match(self):
        breakdown = MatchScorer().score(make_opportunity(), make_profile())

        assert breakdown.scores["naics"] == D("100.00")
        assert breakdown.scores["capability"] == D("100.00")
        assert breakdown.overall == D("92.50")
        assert breakdown.pwin == D("74.00")
        assert [t.code for t in breakdown.reasons] == [
            "naics.strong",
            "certification.met",
            "geographic.near",
            "clearance.met",
        ]
        assert breakdown.risks == []
        assert join_tags(breakdown.pwin_factors) == "Overall match score: 92.50%"

    def test_scores_within_bounds(self):
        opportunity = make_opportunity(
            naics_code="611310",
            description="Custodial services",
            set_aside_type="8A",
            place_of_performance_state="AK",
            clearance_required="Secret",
            itar_controlled=True,
            estimated_value_high=D("900000000"),
        )
        profile = make_profile(past_performance_summary=None)

        breakdown = MatchScorer().score(opportunity, profile)

        for value in list(breakdown.scores.values()) + [breakdown.overall, breakdown.pwin]:
            assert D("0") <= value <= D("100")

        assert [t.text for t in breakdown.risks] == [
            "Does not meet set-aside requirements",
            "Missing required security clearances",
            "Contract size may be too large for company capacity",
        ]

    def test_incumbent_risk_and_pwin_factor(self):
        breakdown = MatchScorer().score(
            make_opportunity(incumbent_contractor="Legacy Corp"), make_profile()
        )

        assert breakdown.pwin == D("51.80")
        assert "Has incumbent contractor" in [t.text for t in breakdown.risks]
        assert join_tags(breakdown.pwin_factors) == (
            "Overall match score: 92.50%; Incumbent advantage: Legacy Corp"
        )

    def test_join_tags(self):
        tags = [ReasonTag("a", "positive", "One"), ReasonTag("b", "positive", "Two")]
        assert join_tags(tags) == "One; Two"
        assert join_tags([]) == ""


# ============================================================================
# MatchScorer against the store
# ============================================================================


@pytest.fixture
def seeded(db):
    """A tenant profile plus three ACTIVE and one CLOSED opportunity."""
    with get_session() as session:
        CompanyProfileRepository(session).save(make_profile())
        repo = OpportunityRepository(session)
        repo.save(make_opportunity(id="o1", solicitation_number="S1"))
        repo.save(make_opportunity(id="o2", solicitation_number="S2", naics_code="541519"))
        repo.save(
            make_opportunity(
                id="o3", solicitation_number="S3", naics_code="611310", description="Custodial services"
            )
        )
        repo.save(make_opportunity(id="o4", solicitation_number="S4", status=OpportunityStatus.CLOSED))


class TestCalculateMatch:
    def test_missing_profile_raises(self, seeded):
        with pytest.raises(ProfileNotFoundError) as exc_info:
            MatchScorer().calculate_match("tenant-x", "o1")
        assert isinstance(exc_info.value, ScoringError)

    def test_missing_opportunity_raises(self, seeded):
        with pytest.raises(OpportunityNotFoundError):
            MatchScorer().calculate_match("tenant-1", "nope")

    def test_match_persisted(self, seeded):
        match = MatchScorer().calculate_match("tenant-1", "o1")

        assert match.overall_score == D("92.50")
        assert match.pwin_score == D("74.00")
        assert match.match_status == MatchStatus.NEW
        assert match.match_reasons == (
            "Strong NAICS code alignment; Meets set-aside requirements; "
            "Located in or near place of performance; Has required security clearances"
        )
        assert match.risk_factors == ""
        assert match.last_calculated_at is not None

        with get_session() as session:
            stored = MatchRepository(session).find_by_tenant_and_opportunity("tenant-1", "o1")
        assert stored.id == match.id

    def test_recalculation_keeps_status_and_feedback(self, seeded):
        scorer = MatchScorer()
        first = scorer.calculate_match("tenant-1", "o1")
        scorer.update_match_status("tenant-1", first.id, MatchStatus.PURSUING)
        scorer.add_user_feedback("tenant-1", first.id, 5, "Great fit")

        again = scorer.calculate_match("tenant-1", "o1")

        assert again.id == first.id
        assert again.match_status == MatchStatus.PURSUING
        assert again.user_rating == 5
        assert again.user_feedback == "Great fit"

        with get_session() as session:
            assert len(MatchRepository(session).find_by_tenant("tenant-1")) == 1


class TestCalculateAllMatches:
    def test_scores_every_active_opportunity(self, seeded):
        result = MatchScorer(page_size=2).calculate_all_matches("tenant-1")

        assert result.processed == 3
        assert result.failed == 0
        assert result.profile_missing is False

        with get_session() as session:
            scored = {m.opportunity_id for m in MatchRepository(session).find_by_tenant("tenant-1")}
        assert scored == {"o1", "o2", "o3"}

    def test_missing_profile_ends_batch(self, seeded):
        result = MatchScorer().calculate_all_matches("tenant-x")

        assert result.profile_missing is True
        assert result.processed == 0

    def test_failing_opportunity_is_isolated(self, seeded):
        original = MatchScorer.score

        def flaky(self, opportunity, profile):
            if opportunity.id == "o2":
                raise ArithmeticError("bad value")
            return original(self, opportunity, profile)

        with patch.object(MatchScorer, "score", flaky):
            result = MatchScorer(page_size=2).calculate_all_matches("tenant-1")

        assert result.processed == 2
        assert result.failed == 1

    @pytest.mark.parametrize(
        "error", [DatabaseConnectionError("gone"), PersistenceError("store down")]
    )
    def test_store_failure_propagates(self, seeded, error):
        with patch.object(MatchRepository, "save", side_effect=error):
            with pytest.raises(type(error)):
                MatchScorer().calculate_all_matches("tenant-1")

    def test_integrity_failure_is_counted(self, seeded):
        original = MatchRepository.save

        def conflicting(self, match):
            if match.opportunity_id == "o2":
                raise DataIntegrityError("duplicate match")
            return original(self, match)

        with patch.object(MatchRepository, "save", conflicting):
            result = MatchScorer(page_size=2).calculate_all_matches("tenant-1")

        assert result.processed == 2
        assert result.failed == 1


class TestMatchManagement:
    def test_update_status_of_other_tenants_match(self, seeded):
        scorer = MatchScorer()
        match = scorer.calculate_match("tenant-1", "o1")

        with pytest.raises(MatchNotFoundError):
            scorer.update_match_status("tenant-2", match.id, MatchStatus.WON)

    @pytest.mark.parametrize("rating", [0, 6])
    def test_feedback_rating_bounds(self, seeded, rating):
        scorer = MatchScorer()
        match = scorer.calculate_match("tenant-1", "o1")

        with pytest.raises(ValueError):
            scorer.add_user_feedback("tenant-1", match.id, rating)

    def test_top_matches_and_stats(self, seeded):
        scorer = MatchScorer()
        scorer.calculate_all_matches("tenant-1")

        top = scorer.get_top_matches("tenant-1", limit=5, min_score=D("70"))
        assert [m.opportunity_id for m in top] == ["o1", "o2"]

        stats = scorer.get_match_stats("tenant-1")
        assert stats.total == 3
        assert stats.high_scoring == 2
        assert stats.by_status == {"NEW": 3}

    def test_stats_for_tenant_without_matches(self, db):
        stats = MatchScorer().get_match_stats("tenant-1")
        assert stats.total == 0
        assert stats.average_score == D("0.00")

    def test_page_size_must_be_positive(self):
        with pytest.raises(ValueError):
            MatchScorer(page_size=0)
