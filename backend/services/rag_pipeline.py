"""RAG chat orchestration: retrieve, build the prompt, stream the completion."""
import logging
from enum import Enum
from typing import Dict, Iterator, List, Optional, Tuple

from models.chunk import ScoredChunk
from services.llm_client import CompletionStream, CompletionStreamer
from services.prompt_builder import SettingsStore, build_prompt, select_template
from services.retrieval_engine import RetrievalEngine

logger = logging.getLogger(__name__)


class RequestState(str, Enum):
    IDLE = "idle"
    RETRIEVING = "retrieving"
    PROMPTING = "prompting"
    STREAMING = "streaming"
    DONE = "done"
    FAILED = "failed"


_TRANSITIONS = {
    RequestState.IDLE: {RequestState.RETRIEVING},
    RequestState.RETRIEVING: {RequestState.PROMPTING, RequestState.FAILED},
    RequestState.PROMPTING: {RequestState.STREAMING, RequestState.FAILED},
    RequestState.STREAMING: {RequestState.DONE, RequestState.FAILED},
    RequestState.DONE: set(),
    RequestState.FAILED: set(),
}


class RagChatSession:
    """
    Lifecycle of a single /api/rag-chat request.

    States only move forward: IDLE -> RETRIEVING -> PROMPTING -> STREAMING
    -> DONE, with FAILED reachable from every non-terminal state after IDLE.
    """

    def __init__(self, query: str):
        self.query = query
        self.state = RequestState.IDLE
        self.chunks: List[ScoredChunk] = []
        self.template_source: Optional[str] = None
        self.error: Optional[str] = None
        self._stream: Optional[CompletionStream] = None

    def transition(self, new_state: RequestState) -> None:
        if new_state not in _TRANSITIONS[self.state]:
            raise RuntimeError(f"Invalid transition {self.state.value} -> {new_state.value}")
        logger.debug(f"RAG session {self.state.value} -> {new_state.value}")
        self.state = new_state

    def attach(self, stream: CompletionStream) -> None:
        self._stream = stream

    def fail(self, error: Exception) -> None:
        self.error = str(error)
        self.transition(RequestState.FAILED)

    def deltas(self) -> Iterator[str]:
        """
        Yield completion deltas until the stream ends.

        Errors once streaming has begun cannot change the HTTP status, so
        they are logged, the session moves to FAILED and the body just ends.
        """
        if self.state is not RequestState.STREAMING or self._stream is None:
            raise RuntimeError("Session is not streaming")
        try:
            for delta in self._stream:
                yield delta
        except Exception as e:
            logger.error(f"RAG stream interrupted: {e}")
            self.fail(e)
            return
        finally:
            self._stream.close()
        self.transition(RequestState.DONE)
        logger.info("RAG stream completed")


class RagPipeline:
    """Wires retrieval, prompt templating and completion streaming together."""

    def __init__(
        self,
        retrieval_engine: RetrievalEngine,
        settings_store: SettingsStore,
        streamer: CompletionStreamer,
    ):
        self.retrieval_engine = retrieval_engine
        self.settings_store = settings_store
        self.streamer = streamer

    def retrieve(self, query: str) -> List[ScoredChunk]:
        """Return the top-k chunks for ``query`` without generating an answer."""
        return self.retrieval_engine.retrieve(query)

    def build_messages(
        self, chunks: List[ScoredChunk], query: str
    ) -> Tuple[List[Dict[str, str]], str]:
        """Resolve the prompt template and return the chat messages plus the template source."""
        resolved = select_template(self.settings_store.fetch_template())
        prompt = build_prompt(chunks, query, resolved.template.user_instruction)
        return [
            {"role": "system", "content": resolved.template.system_prompt},
            {"role": "user", "content": prompt},
        ], resolved.source

    def start_chat(self, query: str) -> RagChatSession:
        """
        Run a RAG request up to the first streamed byte.

        Retrieval, template resolution and opening the completion happen
        here so their failures can still be reported as HTTP errors.

        Args:
            query: User question

        Returns:
            Session in the STREAMING state; iterate ``session.deltas()``

        Raises:
            AppError: If retrieval or opening the completion fails
        """
        session = RagChatSession(query)

        session.transition(RequestState.RETRIEVING)
        try:
            session.chunks = self.retrieval_engine.retrieve(query)
        except Exception as e:
            logger.error(f"RAG retrieval failed: {e}")
            session.fail(e)
            raise

        session.transition(RequestState.PROMPTING)
        try:
            messages, session.template_source = self.build_messages(session.chunks, query)
            session.attach(self.streamer.open(messages))
        except Exception as e:
            logger.error(f"RAG completion setup failed: {e}")
            session.fail(e)
            raise

        session.transition(RequestState.STREAMING)
        logger.info(
            f"Streaming RAG answer from {len(session.chunks)} chunks",
            extra={"template_source": session.template_source},
        )
        return session
