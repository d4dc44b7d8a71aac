"""Unit tests for RagPipeline and the per-request session state machine."""
import sys
from pathlib import Path

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent.parent / "backend"))

import pytest
from unittest.mock import Mock
from models.chunk import Chunk, ScoredChunk
from services.errors import CompletionError, RetrievalError
from services.prompt_builder import DEFAULT_TEMPLATE, PromptTemplate, StaticSettingsStore, TemplateLookup
from services.rag_pipeline import RagChatSession, RagPipeline, RequestState


class FakeStream:
    """Iterable of deltas that can fail part-way through."""

    def __init__(self, deltas, error=None):
        self.deltas = deltas
        self.error = error
        self.closed = False

    def __iter__(self):
        for delta in self.deltas:
            yield delta
        if self.error:
            raise self.error

    def close(self):
        self.closed = True


@pytest.fixture
def chunks():
    return [ScoredChunk(chunk=Chunk("paper1.pdf", 0, "Norwegian 4x4 raised VO2max 7.2%."), similarity=0.88)]


@pytest.fixture
def retrieval_engine(chunks):
    engine = Mock()
    engine.retrieve.return_value = chunks
    return engine


@pytest.fixture
def streamer():
    streamer = Mock()
    streamer.open.return_value = FakeStream(["The ", "4x4 ", "protocol."])
    return streamer


@pytest.fixture
def pipeline(retrieval_engine, streamer):
    return RagPipeline(retrieval_engine, StaticSettingsStore(), streamer)


class TestRagChatSession:

    def test_starts_idle(self):
        """A new session is idle."""
        assert RagChatSession("q").state is RequestState.IDLE

    def test_invalid_transition(self):
        """Skipping a state raises."""
        session = RagChatSession("q")

        with pytest.raises(RuntimeError, match="Invalid transition"):
            session.transition(RequestState.STREAMING)

    def test_terminal_states_are_final(self):
        """A failed session cannot move on."""
        session = RagChatSession("q")
        session.transition(RequestState.RETRIEVING)
        session.fail(RetrievalError())

        with pytest.raises(RuntimeError):
            session.transition(RequestState.PROMPTING)

    def test_deltas_require_streaming_state(self):
        """Deltas are only available while streaming."""
        with pytest.raises(RuntimeError, match="not streaming"):
            list(RagChatSession("q").deltas())


class TestRagPipeline:

    def test_retrieve_delegates(self, pipeline, retrieval_engine, chunks):
        """Retrieval goes to the retrieval engine."""
        assert pipeline.retrieve("query") == chunks
        retrieval_engine.retrieve.assert_called_once_with("query")

    def test_start_chat_streams_answer(self, pipeline, streamer):
        """Starting a chat streams the answer and ends in DONE."""
        session = pipeline.start_chat("Which interval protocol works?")

        assert session.state is RequestState.STREAMING
        assert session.template_source == "configured"
        assert "".join(session.deltas()) == "The 4x4 protocol."
        assert session.state is RequestState.DONE
        assert streamer.open.return_value.closed

    def test_messages_carry_template_and_context(self, pipeline, streamer):
        """Messages carry the system prompt and the context prompt."""
        pipeline.start_chat("Which interval protocol works?")

        messages = streamer.open.call_args[0][0]
        assert messages[0] == {"role": "system", "content": DEFAULT_TEMPLATE.system_prompt}
        assert messages[1]["role"] == "user"
        assert "Chunk 1 (paper1.pdf):" in messages[1]["content"]
        assert messages[1]["content"].endswith("Question: Which interval protocol works?")

    def test_configured_template_used(self, retrieval_engine, streamer):
        """A configured template shapes the messages."""
        settings = Mock()
        settings.fetch_template.return_value = TemplateLookup(
            template=PromptTemplate("You are a physiologist.", "Quote the study.")
        )
        pipeline = RagPipeline(retrieval_engine, settings, streamer)

        pipeline.start_chat("query")

        messages = streamer.open.call_args[0][0]
        assert messages[0]["content"] == "You are a physiologist."
        assert messages[1]["content"].startswith("Quote the study.")

    def test_failed_template_lookup_falls_back(self, retrieval_engine, streamer):
        """A failed template lookup falls back to the default."""
        settings = Mock()
        settings.fetch_template.return_value = TemplateLookup(error="no table")
        pipeline = RagPipeline(retrieval_engine, settings, streamer)

        session = pipeline.start_chat("query")

        assert session.template_source == "default"
        assert streamer.open.call_args[0][0][0]["content"] == DEFAULT_TEMPLATE.system_prompt

    def test_retrieval_failure_raises(self, pipeline, retrieval_engine, streamer):
        """A retrieval failure raises before streaming."""
        retrieval_engine.retrieve.side_effect = RetrievalError("Supabase match error")

        with pytest.raises(RetrievalError):
            pipeline.start_chat("query")
        streamer.open.assert_not_called()

    def test_completion_open_failure_raises(self, pipeline, streamer):
        """A failure opening the completion raises."""
        streamer.open.side_effect = CompletionError("invalid model")

        with pytest.raises(CompletionError, match="invalid model"):
            pipeline.start_chat("query")

    def test_mid_stream_failure_ends_body(self, pipeline, streamer):
        """A failure mid-stream ends the body and marks the session failed."""
        stream = FakeStream(["Partial "], error=CompletionError("connection reset"))
        streamer.open.return_value = stream

        session = pipeline.start_chat("query")

        assert list(session.deltas()) == ["Partial "]
        assert session.state is RequestState.FAILED
        assert session.error == "connection reset"
        assert stream.closed
