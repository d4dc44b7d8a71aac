"""Prompt assembly and prompt-template resolution for the RAG pipeline."""
import logging
from dataclasses import dataclass
from typing import List, Optional

from supabase import Client

from config import SETTINGS_TABLE
from models.chunk import ScoredChunk
from models.records import settings_from_rows
from services.supabase_client import create_supabase_client

logger = logging.getLogger(__name__)

SYSTEM_PROMPT_KEY = "system_prompt"
USER_INSTRUCTION_KEY = "user_instruction"


@dataclass(frozen=True)
class PromptTemplate:
    system_prompt: str
    user_instruction: str


DEFAULT_TEMPLATE = PromptTemplate(
    system_prompt="You are a helpful research assistant. Only answer using the provided context.",
    user_instruction=(
        "Answer the following question using only the provided context. "
        "If the answer is not in the context, say you don't know."
    ),
)


@dataclass(frozen=True)
class TemplateLookup:
    """Outcome of a settings fetch: a template, or the reason there is none."""
    template: Optional[PromptTemplate] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.template is not None and self.error is None


@dataclass(frozen=True)
class ResolvedTemplate:
    template: PromptTemplate
    source: str  # configured | default


def build_context(chunks: List[ScoredChunk]) -> str:
    """Render retrieved chunks as numbered, attributed context blocks."""
    return "\n\n".join(
        f"Chunk {i + 1} ({scored.chunk.filename}):\n{scored.chunk.chunk_text}"
        for i, scored in enumerate(chunks)
    )


def build_prompt(chunks: List[ScoredChunk], query: str, instruction: str) -> str:
    """
    Build the user prompt for a RAG completion.

    The prompt contains, in this order, the instruction, a ``Context:``
    block with every chunk labelled by its source file, and the question.

    Args:
        chunks: Retrieved chunks in relevance order
        query: User question, included verbatim
        instruction: Answering instruction from the resolved template

    Returns:
        Prompt string
    """
    return f"{instruction}\n\nContext:\n{build_context(chunks)}\n\nQuestion: {query}"


def select_template(lookup: TemplateLookup) -> ResolvedTemplate:
    """Pick the configured template, or fall back to the defaults."""
    if lookup.ok:
        return ResolvedTemplate(template=lookup.template, source="configured")
    logger.warning(f"Using default prompt template: {lookup.error or 'no template configured'}")
    return ResolvedTemplate(template=DEFAULT_TEMPLATE, source="default")


class SettingsStore:
    """Reads the prompt template from the ``rag_settings`` key/value table."""

    def __init__(self, client: Optional[Client] = None, table_name: str = SETTINGS_TABLE):
        self._client = client
        self.table_name = table_name

    def fetch_template(self) -> TemplateLookup:
        """
        Fetch the configured prompt template.

        Keys that are absent or blank are filled from DEFAULT_TEMPLATE. Any
        failure (missing credentials, query error, empty table) is returned
        as a lookup error rather than raised.
        """
        try:
            client = self._client or create_supabase_client()
            self._client = client
            response = (
                client.table(self.table_name)
                .select("key,value")
                .in_("key", [SYSTEM_PROMPT_KEY, USER_INSTRUCTION_KEY])
                .execute()
            )
            settings = settings_from_rows(response.data or [])
        except Exception as e:
            message = getattr(e, "message", None) or str(e)
            logger.warning(f"Failed to fetch prompt template from {self.table_name}: {message}")
            return TemplateLookup(error=message)

        if not settings:
            return TemplateLookup(error=f"No prompt settings found in {self.table_name}")

        template = PromptTemplate(
            system_prompt=settings.get(SYSTEM_PROMPT_KEY, DEFAULT_TEMPLATE.system_prompt),
            user_instruction=settings.get(USER_INSTRUCTION_KEY, DEFAULT_TEMPLATE.user_instruction),
        )
        return TemplateLookup(template=template)


class StaticSettingsStore:
    """Settings source that always yields a fixed lookup, for deployments without a settings table."""

    def __init__(self, template: PromptTemplate = DEFAULT_TEMPLATE):
        self.template = template

    def fetch_template(self) -> TemplateLookup:
        return TemplateLookup(template=self.template)
