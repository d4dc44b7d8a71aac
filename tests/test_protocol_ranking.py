"""Unit tests for the protocol ranking rules."""
import sys
from pathlib import Path

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent.parent / "backend"))

import pytest
from models.protocol import FormData
from services.protocol_catalog import get_all_protocols, get_protocol_by_id
from services.protocol_ranking import (
    BASE_SCORE,
    Rule,
    confidence,
    has_any_answers,
    rank,
    recommend,
)

CATALOG_ORDER = ["tabata", "norwegian4x4", "10-20-30", "billat30-30", "lactateThreshold", "zone2"]


def scores(rankings):
    return {ranking.id: ranking.score for ranking in rankings}


class TestCatalog:

    def test_declared_order(self):
        """The catalog keeps its declared order."""
        assert [protocol.id for protocol in get_all_protocols()] == CATALOG_ORDER

    def test_lookup(self):
        """Protocols are looked up by id."""
        assert get_protocol_by_id("zone2").name == "Zone 2 Training"
        assert get_protocol_by_id("unknown") is None


class TestRank:
    """Test suite for rank()."""

    def test_empty_form(self):
        """An empty form leaves every protocol at the base score."""
        form = FormData()
        rankings = rank(form)

        assert has_any_answers(form) is False
        assert [r.id for r in rankings] == CATALOG_ORDER
        assert all(r.score == BASE_SCORE for r in rankings)

    def test_young_athlete_favours_tabata(self):
        """A young athlete gets the high-intensity protocols on top."""
        form = FormData(ageGroup="Under 30", activityLevel="athlete")
        result = scores(rank(form))

        assert result["tabata"] == 130
        assert result["norwegian4x4"] == 130
        # Tabata scores at least as high as every protocol no rule matched
        assert result["tabata"] >= BASE_SCORE
        assert result["tabata"] >= max(result.values())

    def test_deterministic(self):
        """The same form always ranks the same way."""
        form = FormData(
            ageGroup="30-45",
            currentVO2Max=42,
            activityLevel="moderately_active",
            primaryGoal="endurance_improvement",
            timeAvailability="moderate",
            equipmentAccess=["bike"],
        )

        assert rank(form) == rank(form)

    def test_ties_keep_catalog_order(self):
        """Equal scores keep catalog order."""
        rankings = rank(FormData(equipmentAccess=["bike"]))

        assert [r.id for r in rankings] == CATALOG_ORDER
        assert all(r.score == BASE_SCORE + 5 for r in rankings)

    def test_sorted_by_descending_score(self):
        """Rankings are sorted by descending score."""
        rankings = rank(FormData(activityLevel="sedentary", primaryGoal="weight_loss"))
        values = [r.score for r in rankings]

        assert values == sorted(values, reverse=True)
        assert rankings[0].id == "zone2"

    def test_health_penalties(self):
        """Heart conditions and beta blockers penalise high intensity."""
        form = FormData(healthConditions=["heart_condition"], medications=["beta_blockers"])
        result = scores(rank(form))

        assert result["tabata"] == BASE_SCORE - 90
        assert result["norwegian4x4"] == BASE_SCORE - 90
        assert result["zone2"] == BASE_SCORE + 20
        assert result["10-20-30"] == BASE_SCORE

    def test_joint_problems(self):
        """Joint problems penalise high intensity and favour Zone 2."""
        result = scores(rank(FormData(healthConditions=["joint_problems"])))

        assert result["tabata"] == BASE_SCORE - 30
        assert result["zone2"] == BASE_SCORE + 20

    def test_score_floored_at_zero(self):
        """Scores never go below zero."""
        form = FormData(
            healthConditions=["heart_condition", "joint_problems"],
            medications=["beta_blockers"],
            activityLevel="sedentary",
        )

        assert scores(rank(form))["tabata"] == 0

    def test_fitness_rules_need_age_group(self):
        """VO2max rules apply only together with an age group."""
        without_age = scores(rank(FormData(currentVO2Max=25)))
        with_age = scores(rank(FormData(currentVO2Max=25, ageGroup="Over 65")))

        assert without_age["zone2"] == BASE_SCORE
        assert with_age["zone2"] == BASE_SCORE + 25 + 20
        assert with_age["tabata"] == BASE_SCORE - 20 - 15
        assert with_age["10-20-30"] == BASE_SCORE + 15

    def test_high_vo2max(self):
        """A high VO2max favours high intensity over Zone 2."""
        result = scores(rank(FormData(currentVO2Max=55, ageGroup="Under 30")))

        assert result["tabata"] == BASE_SCORE + 20
        assert result["zone2"] == BASE_SCORE - 10

    def test_time_availability(self):
        """Time availability adjusts protocols by time commitment."""
        minimal = scores(rank(FormData(timeAvailability="minimal")))
        flexible = scores(rank(FormData(timeAvailability="flexible")))
        moderate = scores(rank(FormData(timeAvailability="moderate")))

        assert minimal["tabata"] == BASE_SCORE + 25
        assert minimal["zone2"] == BASE_SCORE - 20
        assert flexible["zone2"] == BASE_SCORE + 20
        assert moderate["norwegian4x4"] == BASE_SCORE + 15
        assert moderate["tabata"] == BASE_SCORE

    def test_no_equipment(self):
        """Having no equipment favours 10-20-30."""
        result = scores(rank(FormData(equipmentAccess=["none"])))

        assert result["10-20-30"] == BASE_SCORE + 20
        assert result["zone2"] == BASE_SCORE - 10

    def test_reasons(self):
        """Matching rules contribute their reasons in order."""
        form = FormData(activityLevel="sedentary", primaryGoal="weight_loss", timeAvailability="flexible")
        reasons = {r.id: r.reasons for r in rank(form)}

        assert reasons["zone2"] == ["Ideal for beginners", "Excellent for fat burning", "Flexible session length"]
        assert reasons["10-20-30"] == ["Ideal for beginners"]
        assert reasons["tabata"] == []

    def test_reasons_capped_at_three(self):
        """At most three reasons are kept."""
        rules = [
            Rule(frozenset({"zone2"}), lambda form: True, 1, f"reason {i}")
            for i in range(5)
        ]

        ranking = next(r for r in rank(FormData(), rules=rules) if r.id == "zone2")

        assert ranking.reasons == ["reason 0", "reason 1", "reason 2"]
        assert ranking.score == BASE_SCORE + 5

    def test_rankings_carry_confidence(self):
        """Every ranking carries the form's confidence."""
        rankings = rank(FormData(sex="female", weight=60))

        assert all(r.confidence == 17 for r in rankings)


class TestConfidence:

    def test_empty_form_is_low(self):
        """An empty form has low confidence with a prompt."""
        level = confidence(FormData())

        assert level.level == "Low"
        assert level.percentage == 0
        assert level.message == "Answer the required questions for better recommendations"

    def test_medium(self):
        """Half the questions answered gives medium confidence."""
        form = FormData(
            ageGroup="30-45", sex="male", height=180, weight=75, currentVO2Max=45, vo2maxKnown=True
        )
        level = confidence(form)

        assert level.level == "Medium"
        assert level.percentage == 50
        assert level.message is None

    def test_high(self):
        """Most questions answered gives high confidence."""
        form = FormData(
            ageGroup="30-45",
            sex="male",
            height=180,
            weight=75,
            currentVO2Max=45,
            vo2maxKnown=False,
            activityLevel="athlete",
            healthConditions=["none"],
            medications=["none"],
            primaryGoal="athletic_performance",
        )
        level = confidence(form)

        assert level.level == "High"
        assert level.percentage == 83

    def test_vo2max_known_false_counts_as_answered(self):
        """Answering no to knowing VO2max still counts."""
        assert confidence(FormData(vo2maxKnown=False)).percentage == 8


class TestRecommend:

    def test_empty_form_has_no_rankings(self):
        """An empty form is reported without rankings."""
        report = recommend(FormData())

        assert report["hasAnswers"] is False
        assert report["rankings"] == []
        assert report["confidence"]["level"] == "Low"

    def test_answered_form(self):
        """An answered form gets all six rankings."""
        report = recommend(FormData(primaryGoal="athletic_performance"))

        assert report["hasAnswers"] is True
        assert len(report["rankings"]) == 6
        top = report["rankings"][0]
        assert top["id"] == "tabata"
        assert top["name"] == "Tabata Protocol"
        assert top["reasons"] == ["Proven for elite athletes"]

    @pytest.mark.parametrize("field,value", [
        ("restingHeartRate", 58),
        ("timeAvailability", "minimal"),
        ("medications", ["beta_blockers"]),
    ])
    def test_any_single_answer_counts(self, field, value):
        """Any single answer marks the form as answered."""
        assert has_any_answers(FormData(**{field: value}))

    def test_empty_equipment_list_counts(self):
        """An equipment answer counts even when no equipment is selected."""
        report = recommend(FormData(equipmentAccess=[]))

        assert report["hasAnswers"] is True
        assert len(report["rankings"]) == 6

    def test_empty_health_lists_do_not_count(self):
        """Empty health and medication lists leave the form unanswered."""
        assert has_any_answers(FormData(healthConditions=[], medications=[])) is False
