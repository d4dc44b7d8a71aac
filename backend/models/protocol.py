"""Training protocol and questionnaire data models."""
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field


@dataclass(frozen=True)
class ProtocolData:
    """Static description of a VO2max training protocol and its research basis."""
    id: str
    name: str
    vo2max_gain: str
    time_to_results: str
    fitness_level: str
    protocol_duration: str
    sport_modality: str
    research_population: str
    researchers: str
    institution: str
    location: str
    year: str
    doi: str
    category: str  # interval | threshold | endurance
    difficulty: str  # beginner | intermediate | advanced
    time_commitment: str  # low | medium | high
    equipment_required: Tuple[str, ...] = ()


class FormData(BaseModel):
    """
    Questionnaire answers, built up incrementally by the client.

    Every field is optional. The JSON API uses the client's camelCase names;
    Python code uses the snake_case attributes.
    """
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    # Demographics
    age_group: Optional[str] = Field(None, alias="ageGroup")
    sex: Optional[str] = None
    height: Optional[float] = None
    weight: Optional[float] = None

    # Fitness
    current_vo2max: Optional[float] = Field(None, alias="currentVO2Max")
    vo2max_known: Optional[bool] = Field(None, alias="vo2maxKnown")
    activity_level: Optional[str] = Field(None, alias="activityLevel")
    resting_heart_rate: Optional[float] = Field(None, alias="restingHeartRate")

    # Health
    health_conditions: Optional[List[str]] = Field(None, alias="healthConditions")
    medications: Optional[List[str]] = None

    # Goals & preferences
    primary_goal: Optional[str] = Field(None, alias="primaryGoal")
    time_availability: Optional[str] = Field(None, alias="timeAvailability")
    equipment_access: Optional[List[str]] = Field(None, alias="equipmentAccess")


@dataclass(frozen=True)
class ConfidenceLevel:
    level: str  # High | Medium | Low
    percentage: int
    message: Optional[str] = None


@dataclass(frozen=True)
class ProtocolRanking:
    """Score and justification for one protocol against a questionnaire."""
    id: str
    name: str
    score: int
    reasons: List[str] = field(default_factory=list)
    confidence: int = 0
