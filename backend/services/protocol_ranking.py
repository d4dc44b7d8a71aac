"""
Rule-based ranking of training protocols against questionnaire answers.

Every protocol starts from BASE_SCORE. Each rule whose condition holds for
the form adds its weight to the protocols it targets and, optionally, a
human-readable reason. Evaluation is pure: the same form always produces
the same ranking.
"""
import logging
from dataclasses import dataclass
from typing import Callable, Dict, FrozenSet, List, Optional

from models.protocol import ConfidenceLevel, FormData, ProtocolRanking
from services.protocol_catalog import get_all_protocols

logger = logging.getLogger(__name__)

BASE_SCORE = 100
MAX_REASONS = 3
TOTAL_QUESTIONS = 12

HIGH_INTENSITY = frozenset({"tabata", "norwegian4x4"})

# Intensity tier used for activity-level matching
INTENSITY_TIERS: Dict[str, str] = {
    "10-20-30": "beginner",
    "zone2": "beginner",
    "lactateThreshold": "intermediate",
    "billat30-30": "intermediate",
    "norwegian4x4": "advanced",
    "tabata": "advanced",
}

ACTIVITY_TIER_WEIGHTS: Dict[str, Dict[str, int]] = {
    "sedentary": {"beginner": 30, "intermediate": -10, "advanced": -30},
    "lightly_active": {"beginner": 20, "intermediate": 10, "advanced": -20},
    "moderately_active": {"beginner": 10, "intermediate": 20, "advanced": 0},
    "very_active": {"beginner": 0, "intermediate": 15, "advanced": 20},
    "athlete": {"beginner": -10, "intermediate": 10, "advanced": 30},
}

GOAL_WEIGHTS: Dict[str, Dict[str, int]] = {
    "weight_loss": {"zone2": 25, "10-20-30": 15, "lactateThreshold": 10, "tabata": 20},
    "athletic_performance": {
        "tabata": 30,
        "norwegian4x4": 25,
        "billat30-30": 20,
        "lactateThreshold": 15,
    },
    "general_fitness": {"10-20-30": 25, "zone2": 20, "lactateThreshold": 15},
    "endurance_improvement": {
        "norwegian4x4": 30,
        "lactateThreshold": 25,
        "zone2": 20,
        "billat30-30": 15,
    },
}

REASONS: Dict[tuple, str] = {
    ("activity", "sedentary", "beginner"): "Ideal for beginners",
    ("goal", "weight_loss", "zone2"): "Excellent for fat burning",
    ("goal", "athletic_performance", "tabata"): "Proven for elite athletes",
    ("goal", "athletic_performance", "norwegian4x4"): "Proven for elite athletes",
}


@dataclass(frozen=True)
class Rule:
    """A weighted adjustment applied to a set of protocols when ``condition`` holds."""
    protocols: FrozenSet[str]
    condition: Callable[[FormData], bool]
    weight: int
    reason: Optional[str] = None


def _conditions(form: FormData) -> List[str]:
    return form.health_conditions or []


def _medications(form: FormData) -> List[str]:
    return form.medications or []


def _has_fitness_profile(form: FormData) -> bool:
    return bool(form.current_vo2max) and bool(form.age_group)


def _health_rules() -> List[Rule]:
    return [
        Rule(HIGH_INTENSITY, lambda f: "heart_condition" in _conditions(f), -50),
        Rule(HIGH_INTENSITY, lambda f: "joint_problems" in _conditions(f), -30),
        Rule(HIGH_INTENSITY, lambda f: "beta_blockers" in _medications(f), -40),
        Rule(frozenset({"zone2"}), lambda f: len(_conditions(f)) > 0, 20),
    ]


def _activity_rules() -> List[Rule]:
    rules = []
    for level, tier_weights in ACTIVITY_TIER_WEIGHTS.items():
        for tier, weight in tier_weights.items():
            if weight == 0:
                continue
            protocols = frozenset(pid for pid, t in INTENSITY_TIERS.items() if t == tier)
            rules.append(
                Rule(
                    protocols,
                    lambda f, level=level: f.activity_level == level,
                    weight,
                    REASONS.get(("activity", level, tier)),
                )
            )
    return rules


def _fitness_rules() -> List[Rule]:
    def low_vo2max(form: FormData) -> bool:
        return _has_fitness_profile(form) and form.current_vo2max < 30

    def high_vo2max(form: FormData) -> bool:
        return _has_fitness_profile(form) and form.current_vo2max > 50

    def over_65(form: FormData) -> bool:
        return _has_fitness_profile(form) and form.age_group == "Over 65"

    return [
        Rule(frozenset({"zone2"}), low_vo2max, 25),
        Rule(frozenset({"10-20-30"}), low_vo2max, 15),
        Rule(HIGH_INTENSITY, low_vo2max, -20),
        Rule(HIGH_INTENSITY, high_vo2max, 20),
        Rule(frozenset({"zone2"}), high_vo2max, -10),
        Rule(frozenset({"zone2"}), over_65, 20),
        Rule(HIGH_INTENSITY, over_65, -15),
    ]


def _goal_rules() -> List[Rule]:
    rules = []
    for goal, weights in GOAL_WEIGHTS.items():
        for protocol_id, weight in weights.items():
            rules.append(
                Rule(
                    frozenset({protocol_id}),
                    lambda f, goal=goal: f.primary_goal == goal,
                    weight,
                    REASONS.get(("goal", goal, protocol_id)),
                )
            )
    return rules


def _time_rules() -> List[Rule]:
    def committing(level: str) -> FrozenSet[str]:
        return frozenset(p.id for p in get_all_protocols() if p.time_commitment == level)

    return [
        Rule(committing("low"), lambda f: f.time_availability == "minimal", 25, "Quick 4-minute sessions"),
        Rule(committing("medium"), lambda f: f.time_availability == "moderate", 15),
        Rule(committing("high"), lambda f: f.time_availability == "flexible", 20, "Flexible session length"),
        Rule(committing("high"), lambda f: f.time_availability == "minimal", -20),
    ]


def _equipment_rules() -> List[Rule]:
    all_ids = frozenset(p.id for p in get_all_protocols())

    def no_equipment(form: FormData) -> bool:
        return bool(form.equipment_access) and "none" in form.equipment_access

    def has_equipment(form: FormData) -> bool:
        return bool(form.equipment_access) and "none" not in form.equipment_access

    return [
        Rule(frozenset({"10-20-30"}), no_equipment, 20),
        Rule(all_ids - {"10-20-30"}, no_equipment, -10),
        Rule(all_ids, has_equipment, 5),
    ]


RULES: List[Rule] = (
    _health_rules()
    + _activity_rules()
    + _fitness_rules()
    + _goal_rules()
    + _time_rules()
    + _equipment_rules()
)


def count_answered(form: FormData) -> int:
    """Count how many of the twelve scored questionnaire fields are answered."""
    answered = [
        bool(form.age_group),
        bool(form.sex),
        bool(form.height),
        bool(form.weight),
        bool(form.current_vo2max),
        form.vo2max_known is not None,
        bool(form.activity_level),
        bool(form.health_conditions),
        bool(form.medications),
        bool(form.primary_goal),
        bool(form.time_availability),
        bool(form.equipment_access),
    ]
    return sum(answered)


def confidence(form: FormData) -> ConfidenceLevel:
    """
    Rate how complete the questionnaire is.

    Returns:
        High at 80% or more, Medium at 50% or more, otherwise Low with a
        prompt to answer more questions
    """
    percentage = round(count_answered(form) / TOTAL_QUESTIONS * 100)
    if percentage >= 80:
        return ConfidenceLevel(level="High", percentage=percentage)
    if percentage >= 50:
        return ConfidenceLevel(level="Medium", percentage=percentage)
    return ConfidenceLevel(
        level="Low",
        percentage=percentage,
        message="Answer the required questions for better recommendations",
    )


def has_any_answers(form: FormData) -> bool:
    """
    True once any question has been touched.

    Empty health and medication lists count as unanswered, but an equipment
    list counts as soon as it is present, even when empty.
    """
    return any(
        [
            form.age_group,
            form.sex,
            form.height,
            form.weight,
            form.current_vo2max,
            form.vo2max_known,
            form.activity_level,
            form.health_conditions,
            form.medications,
            form.time_availability,
            form.equipment_access is not None,
            form.primary_goal,
            form.resting_heart_rate,
        ]
    )


def rank(form: FormData, rules: Optional[List[Rule]] = None) -> List[ProtocolRanking]:
    """
    Score every catalog protocol against ``form``.

    Args:
        form: Questionnaire answers (may be partial or empty)
        rules: Rule table to evaluate, defaults to RULES

    Returns:
        Rankings sorted by descending score; ties keep catalog order
    """
    rules = RULES if rules is None else rules
    matching = [rule for rule in rules if rule.condition(form)]
    percentage = confidence(form).percentage

    rankings = []
    for protocol in get_all_protocols():
        score = BASE_SCORE
        reasons: List[str] = []
        for rule in matching:
            if protocol.id not in rule.protocols:
                continue
            score += rule.weight
            if rule.reason and rule.reason not in reasons:
                reasons.append(rule.reason)
        rankings.append(
            ProtocolRanking(
                id=protocol.id,
                name=protocol.name,
                score=max(0, score),
                reasons=reasons[:MAX_REASONS],
                confidence=percentage,
            )
        )

    # sorted() is stable, so equal scores stay in catalog order
    return sorted(rankings, key=lambda ranking: ranking.score, reverse=True)


def recommend(form: FormData) -> Dict[str, object]:
    """
    Build the recommendation report for the questionnaire endpoint.

    An unanswered form yields no rankings rather than six tied entries.
    """
    answered = has_any_answers(form)
    level = confidence(form)
    rankings = rank(form) if answered else []
    logger.debug(f"Ranked {len(rankings)} protocols at {level.percentage}% confidence")
    return {
        "hasAnswers": answered,
        "confidence": {
            "level": level.level,
            "percentage": level.percentage,
            "message": level.message,
        },
        "rankings": [
            {
                "id": ranking.id,
                "name": ranking.name,
                "score": ranking.score,
                "reasons": list(ranking.reasons),
                "confidence": ranking.confidence,
            }
            for ranking in rankings
        ],
    }
