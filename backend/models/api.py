"""Request and response schemas for the HTTP API."""
import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class RagQueryRequest(BaseModel):
    """Body of /api/rag-chat and /api/rag-retrieve."""
    query: str = Field(min_length=1)


class RetrievedChunk(BaseModel):
    filename: str
    chunk_index: int
    chunk_text: str
    similarity: Optional[float] = None


class RetrieveResponse(BaseModel):
    chunks: List[RetrievedChunk]


class ChatMessage(BaseModel):
    role: Literal["system", "user", "assistant"]
    content: str


class AssistantChatRequest(BaseModel):
    messages: List[ChatMessage] = Field(min_length=1)


class VO2MaxData(BaseModel):
    """User measurements for /api/generate-plans."""
    model_config = ConfigDict(populate_by_name=True)

    age: float = Field(gt=0)
    sex: Literal["male", "female"]
    weight: float = Field(gt=0)
    height: float = Field(gt=0)
    current_vo2max: float = Field(gt=0, alias="currentVO2Max")
    resting_heart_rate: float = Field(gt=0, alias="restingHeartRate")
    selected_protocol: Optional[str] = Field(None, alias="selectedProtocol")


class ImprovementPlan(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    level: Literal["Beginner", "Intermediate", "Advanced"]
    training_protocol: str = Field(alias="trainingProtocol")
    reason: str
    time_commitment: str = Field(alias="timeCommitment")
    results_timeframe: str = Field(alias="resultsTimeframe")
    realistic_progress: str = Field(alias="realisticProgress")
    research_population: str = Field(alias="researchPopulation")
    research_results: str = Field(alias="researchResults")
    recommended: bool = False


class GeneratePlansResponse(BaseModel):
    plans: List[ImprovementPlan]


class VerificationCodeRequest(BaseModel):
    email: str = Field(min_length=3, pattern=r"^[^@\s]+@[^@\s]+$")


class VerifyCodeRequest(BaseModel):
    email: str = Field(min_length=3, pattern=r"^[^@\s]+@[^@\s]+$")
    code: str = Field(min_length=1)


class MetricInput(BaseModel):
    """Fields shared by every dashboard metric body."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    user_id: str = Field(min_length=1, alias="userId")
    date: datetime.date


class WeeklyMetricCreate(MetricInput):
    resting_heart_rate: Optional[float] = Field(None, ge=0, alias="restingHeartRate")
    vo2max: Optional[float] = Field(None, ge=0)
    notes: Optional[str] = None


class SessionMetricCreate(MetricInput):
    max_hr: Optional[float] = Field(None, ge=0, alias="maxHR")
    avg_hr: Optional[float] = Field(None, ge=0, alias="avgHR")
    session_type: Optional[str] = Field(None, alias="sessionType")
    notes: Optional[str] = None


class BiomarkerCreate(MetricInput):
    hemoglobin: Optional[float] = Field(None, ge=0)
    ferritin: Optional[float] = Field(None, ge=0)
    crp: Optional[float] = Field(None, ge=0)
    glucose: Optional[float] = Field(None, ge=0)


# Updates send only the fields that change; the date may be left out
class WeeklyMetricUpdate(WeeklyMetricCreate):
    date: Optional[datetime.date] = None


class SessionMetricUpdate(SessionMetricCreate):
    date: Optional[datetime.date] = None


class BiomarkerUpdate(BiomarkerCreate):
    date: Optional[datetime.date] = None
