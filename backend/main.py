"""Main entry point for the VO2Max Assistant API."""
import logging
import threading
from typing import Any, Dict, Iterable, List, Optional, Tuple, Type

import pydantic
from fastapi import Body, FastAPI, HTTPException, Query, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, StreamingResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from config import CORS_ORIGINS, LOG_FORMAT, LOG_LEVEL, PORT, VECTOR_STORE_BACKEND, VERIFICATION_CODE_TTL_SECONDS
from logger import setup_logging
from models.api import (
    AssistantChatRequest,
    BiomarkerCreate,
    BiomarkerUpdate,
    GeneratePlansResponse,
    MetricInput,
    RagQueryRequest,
    RetrievedChunk,
    RetrieveResponse,
    SessionMetricCreate,
    SessionMetricUpdate,
    VerificationCodeRequest,
    VerifyCodeRequest,
    VO2MaxData,
    WeeklyMetricCreate,
    WeeklyMetricUpdate,
)
from models.protocol import FormData
from models.records import scored_chunk_to_payload
from services.assistant_chat import AssistantChat
from services.documentation import get_documentation
from services.embedding_client import EmbeddingClient
from services.errors import AppError, ValidationError
from services.llm_client import CompletionStreamer
from services.metrics_store import MetricKind, MetricsStore, create_metrics_stores
from services.plan_generator import generate_plans
from services.prompt_builder import SettingsStore, StaticSettingsStore
from services.protocol_catalog import get_all_protocols, get_protocol_by_id, protocol_to_payload
from services.protocol_ranking import recommend
from services.rag_pipeline import RagPipeline
from services.retrieval_engine import RetrievalEngine
from services.vector_store import create_vector_store
from services.verification_codes import VerificationCodeService, create_verification_store

# Initialize logging
setup_logging(LOG_LEVEL, LOG_FORMAT)
logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title="VO2Max Assistant",
    description="Research-backed VO2Max training assistant: RAG chat, protocol ranking and plans",
    version="1.0.0"
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

STREAM_HEADERS = {
    "Cache-Control": "no-cache",
    "X-Accel-Buffering": "no"  # Disable buffering in nginx
}

# Services are built on first use so a missing credential only breaks the
# endpoints that need it
rag_pipeline: Optional[RagPipeline] = None
assistant_chat: Optional[AssistantChat] = None
verification_service: Optional[VerificationCodeService] = None
metrics_stores: Optional[Dict[MetricKind, MetricsStore]] = None
_services_lock = threading.Lock()


def get_rag_pipeline() -> RagPipeline:
    """
    Return the RAG pipeline, building it on first use.

    Raises:
        ConfigurationError: If OpenAI or Supabase credentials are missing
    """
    global rag_pipeline
    with _services_lock:
        if rag_pipeline is None:
            embedding_client = EmbeddingClient()
            vector_store = create_vector_store()
            if VECTOR_STORE_BACKEND == "memory":
                settings_store = StaticSettingsStore()
            else:
                settings_store = SettingsStore(client=vector_store.client)
            rag_pipeline = RagPipeline(
                RetrievalEngine(vector_store, embedding_client),
                settings_store,
                CompletionStreamer(),
            )
            logger.info("Initialized RAG pipeline")
        return rag_pipeline


def get_assistant_chat() -> AssistantChat:
    global assistant_chat
    with _services_lock:
        if assistant_chat is None:
            assistant_chat = AssistantChat(CompletionStreamer())
        return assistant_chat


def get_verification_service() -> VerificationCodeService:
    global verification_service
    with _services_lock:
        if verification_service is None:
            verification_service = VerificationCodeService(create_verification_store())
        return verification_service


def get_metrics_store(kind: MetricKind) -> MetricsStore:
    global metrics_stores
    with _services_lock:
        if metrics_stores is None:
            metrics_stores = create_metrics_stores()
        return metrics_stores[kind]


# --- Error handling ---------------------------------------------------------

def invalid_fields_message(errors: Iterable[Dict[str, Any]]) -> str:
    """Collapse pydantic error locations into one "Missing or invalid field" message."""
    fields = []
    for error in errors:
        location = [str(part) for part in error.get("loc", ()) if part != "body"]
        fields.append(".".join(location) or "body")
    return f"Missing or invalid field: {', '.join(dict.fromkeys(fields))}"

@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    if exc.status_code >= 500:
        logger.error(f"{exc.code} on {request.url.path}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    message = invalid_fields_message(exc.errors())
    logger.warning(f"Rejected request to {request.url.path}: {message}")
    return JSONResponse(status_code=400, content={"error": message})


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    logger.error(f"Unexpected error on {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(status_code=500, content={"error": "Internal Server Error"})


# --- Health -----------------------------------------------------------------

@app.get("/")
async def root():
    """Health check endpoint."""
    return {"status": "ok", "message": "VO2Max Assistant API"}


@app.get("/health")
async def health():
    """Detailed health check."""
    return {
        "status": "healthy",
        "service": "vo2max-assistant",
        "version": "1.0.0"
    }


# --- RAG --------------------------------------------------------------------

def require_query(request: RagQueryRequest) -> str:
    query = request.query.strip()
    if not query:
        raise ValidationError("Missing or invalid field: query")
    return query


@app.post("/api/rag-chat")
def rag_chat_endpoint(request: RagQueryRequest):
    """
    Answer a question from the research PDFs, streamed as plain text.

    Retrieval and opening the completion happen before the response starts,
    so their failures are returned as JSON errors. Failures after the first
    byte end the body early.
    """
    query = require_query(request)
    logger.info(f"Processing RAG query: {query[:100]}...")
    session = get_rag_pipeline().start_chat(query)
    return StreamingResponse(
        session.deltas(),
        media_type="text/plain; charset=utf-8",
        headers=STREAM_HEADERS,
    )


@app.post("/api/rag-retrieve", response_model=RetrieveResponse)
def rag_retrieve_endpoint(request: RagQueryRequest) -> RetrieveResponse:
    """Return the chunks most relevant to a query."""
    scored_chunks = get_rag_pipeline().retrieve(require_query(request))
    return RetrieveResponse(
        chunks=[RetrievedChunk(**scored_chunk_to_payload(scored)) for scored in scored_chunks]
    )


@app.post("/api/assistant-chat")
def assistant_chat_endpoint(request: AssistantChatRequest):
    """Stream a general fitness-assistant reply to a conversation."""
    messages = [message.model_dump() for message in request.messages]
    deltas = get_assistant_chat().start(messages)
    return StreamingResponse(
        deltas,
        media_type="text/plain; charset=utf-8",
        headers=STREAM_HEADERS,
    )


@app.get("/api/documentation")
async def documentation_endpoint():
    return get_documentation()


# --- Training ---------------------------------------------------------------

@app.post("/api/generate-plans", response_model=GeneratePlansResponse)
async def generate_plans_endpoint(data: VO2MaxData) -> GeneratePlansResponse:
    """Generate the three evidence-based improvement plans for a user."""
    return GeneratePlansResponse(plans=generate_plans(data))


@app.get("/api/protocols")
async def protocols_endpoint(category: Optional[str] = None, difficulty: Optional[str] = None):
    """List the protocol catalog, optionally filtered by category and difficulty."""
    protocols = [
        protocol for protocol in get_all_protocols()
        if (category is None or protocol.category == category)
        and (difficulty is None or protocol.difficulty == difficulty)
    ]
    return {"protocols": [protocol_to_payload(protocol) for protocol in protocols]}


@app.get("/api/protocols/{protocol_id}")
async def protocol_endpoint(protocol_id: str):
    protocol = get_protocol_by_id(protocol_id)
    if protocol is None:
        raise HTTPException(status_code=404, detail=f"Unknown protocol: {protocol_id}")
    return protocol_to_payload(protocol)


@app.post("/api/protocol-ranking")
async def protocol_ranking_endpoint(form: FormData):
    """Rank the training protocols against (possibly partial) questionnaire answers."""
    return recommend(form)


# --- Verification codes -----------------------------------------------------

@app.post("/api/auth/verification-code")
def verification_code_endpoint(request: VerificationCodeRequest):
    """Issue a fresh 4-digit sign-in code for an email address."""
    service = get_verification_service()
    service.create_code(request.email)
    return {
        "message": "Verification code sent",
        "expiresIn": service.remaining_seconds(request.email) or VERIFICATION_CODE_TTL_SECONDS,
    }


@app.post("/api/auth/verify-code")
def verify_code_endpoint(request: VerifyCodeRequest):
    result = get_verification_service().verify_code(request.email, request.code)
    return {"valid": result.valid, "message": result.message}


# --- Dashboard metrics ------------------------------------------------------

METRIC_BODIES: Dict[MetricKind, Tuple[Type[MetricInput], Type[MetricInput]]] = {
    MetricKind.WEEKLY: (WeeklyMetricCreate, WeeklyMetricUpdate),
    MetricKind.SESSION: (SessionMetricCreate, SessionMetricUpdate),
    MetricKind.BIOMARKERS: (BiomarkerCreate, BiomarkerUpdate),
}


def parse_body(model: Type[MetricInput], body: Dict[str, Any]) -> MetricInput:
    """Validate a raw body against the model for its metric kind."""
    try:
        return model.model_validate(body)
    except pydantic.ValidationError as e:
        raise ValidationError(invalid_fields_message(e.errors()))


@app.get("/api/metrics/{kind}/{user_id}")
def list_metrics_endpoint(kind: MetricKind, user_id: str) -> List[Dict[str, Any]]:
    """List a user's entries of one metric kind, newest first."""
    return [record.to_payload() for record in get_metrics_store(kind).list_for_user(user_id)]


@app.post("/api/metrics/{kind}", status_code=201)
def create_metric_endpoint(kind: MetricKind, body: Dict[str, Any] = Body(...)) -> Dict[str, Any]:
    request = parse_body(METRIC_BODIES[kind][0], body)
    values = request.model_dump(exclude={"user_id"})
    record = get_metrics_store(kind).create(request.user_id, values)
    return record.to_payload()


@app.put("/api/metrics/{kind}/{metric_id}")
def update_metric_endpoint(kind: MetricKind, metric_id: str, body: Dict[str, Any] = Body(...)) -> Dict[str, Any]:
    """
    Change some fields of an entry owned by ``userId``.

    Fields missing from the body keep their stored values.
    """
    request = parse_body(METRIC_BODIES[kind][1], body)
    changes = request.model_dump(exclude_unset=True, exclude={"user_id"})
    record = get_metrics_store(kind).update(request.user_id, metric_id, changes)
    return record.to_payload()


@app.delete("/api/metrics/{kind}/{metric_id}", status_code=204)
def delete_metric_endpoint(
    kind: MetricKind, metric_id: str, user_id: str = Query(..., alias="userId", min_length=1)
) -> Response:
    get_metrics_store(kind).delete(user_id, metric_id)
    return Response(status_code=204)


if __name__ == "__main__":
    import uvicorn
    logger.info(f"Starting VO2Max Assistant API on port {PORT}")
    uvicorn.run(app, host="0.0.0.0", port=PORT)
