"""Evidence-based VO2max improvement plans."""
import logging
from typing import List

from models.api import ImprovementPlan, VO2MaxData

logger = logging.getLogger(__name__)

BEGINNER_CEILING = 35
ADVANCED_FLOOR = 50


def _number(value: float) -> str:
    """Render a measurement without a trailing ``.0`` for whole numbers."""
    return f"{value:g}"


def _progress(vo2max: float, low: float, high: float, label: str) -> str:
    return f"{label} improvement ({vo2max * low:.1f}-{vo2max * high:.1f} ml/kg/min)"


def generate_plans(data: VO2MaxData) -> List[ImprovementPlan]:
    """
    Build the Beginner, Intermediate and Advanced plans for a user.

    Plan content is fixed; only the VO2max figures in the reasoning and
    projected progress are personalised. Exactly one plan is recommended:
    Beginner below 35, Intermediate from 35 to 50 inclusive, Advanced above 50.

    Args:
        data: Validated user measurements

    Returns:
        Three plans ordered Beginner, Intermediate, Advanced
    """
    vo2max = data.current_vo2max
    logger.info(
        "Generating evidence-based plans",
        extra={"age": data.age, "sex": data.sex, "current_vo2max": vo2max},
    )

    plans = [
        ImprovementPlan(
            level="Beginner",
            training_protocol=(
                "Week 1-4: 3×30min moderate intensity (65-75% HRmax) + 2×strength\n"
                "Week 5-8: Add 1×HIIT session (4×3min at 85-90% HRmax, 3min recovery)"
            ),
            reason=(
                "Perfect for building aerobic base. Your current VO₂max of "
                f"{_number(vo2max)} ml/kg/min suggests you'll respond well to "
                "moderate intensity training first."
            ),
            time_commitment="4-5 hours per week (5 sessions)",
            results_timeframe="6-8 weeks for noticeable improvements",
            realistic_progress=_progress(vo2max, 1.08, 1.15, "8-15%"),
            research_population="Sedentary and recreationally active adults",
            research_results=(
                "Helgerud et al. (2007): 12% VO₂max improvement in 8 weeks with moderate training"
            ),
            recommended=vo2max < BEGINNER_CEILING,
        ),
        ImprovementPlan(
            level="Intermediate",
            training_protocol=(
                "2×4×4 HIIT (4min at 90-95% HRmax, 3min active recovery) "
                "+ 2×moderate + 1×strength + 1×long easy session"
            ),
            reason=(
                "Optimal for your fitness level. The 4×4 protocol is proven most "
                "effective for VO₂max gains in individuals with "
                f"{'moderate' if vo2max > BEGINNER_CEILING else 'developing'} fitness."
            ),
            time_commitment="6-7 hours per week (6 sessions)",
            results_timeframe="4-6 weeks for significant improvements",
            realistic_progress=_progress(vo2max, 1.1, 1.2, "10-20%"),
            research_population="Recreationally trained adults and athletes",
            research_results=(
                "Helgerud et al. (2007): 13% improvement vs 6% with moderate training. "
                "Gold standard protocol."
            ),
            recommended=BEGINNER_CEILING <= vo2max <= ADVANCED_FLOOR,
        ),
        ImprovementPlan(
            level="Advanced",
            training_protocol=(
                "Polarized: 80% easy training + 20% high-intensity "
                "(VO₂max intervals, threshold work) with periodization cycles"
            ),
            reason=(
                "Advanced approach for high performers. Your "
                f"{'excellent' if vo2max > ADVANCED_FLOOR else 'good'} base fitness "
                "requires sophisticated stimulus for further gains."
            ),
            time_commitment="8-12 hours per week (7-8 sessions)",
            results_timeframe="8-12 weeks with periodized progression",
            realistic_progress=_progress(vo2max, 1.05, 1.12, "5-12%"),
            research_population="Competitive endurance athletes",
            research_results=(
                "Seiler (2010): Polarized training superior to threshold-based "
                "programs in trained athletes"
            ),
            recommended=vo2max > ADVANCED_FLOOR,
        ),
    ]

    logger.info("Successfully generated evidence-based plans")
    return plans
