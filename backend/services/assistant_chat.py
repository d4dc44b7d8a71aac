"""General fitness assistant chat, streamed straight from the completion API."""
import logging
from typing import Dict, Iterator, List

from services.llm_client import CompletionStream, CompletionStreamer

logger = logging.getLogger(__name__)

ASSISTANT_SYSTEM_PROMPT = (
    "You are a helpful fitness and health assistant specializing in VO2Max training "
    "and cardiovascular fitness. You are part of a VO2Max improvement app that helps "
    "users create personalized training plans. Provide helpful, accurate, and "
    "encouraging advice about fitness, training, nutrition, recovery, and health. "
    "Keep responses concise but informative. When users ask about training plans, "
    "you can mention that they can use the main app feature to get detailed "
    "personalized plans."
)


def with_system_prompt(messages: List[Dict[str, str]]) -> List[Dict[str, str]]:
    """Prepend the assistant persona unless the caller supplied its own system message."""
    if any(message["role"] == "system" for message in messages):
        return list(messages)
    return [{"role": "system", "content": ASSISTANT_SYSTEM_PROMPT}] + list(messages)


def drain(stream: CompletionStream) -> Iterator[str]:
    """Yield deltas, ending the body quietly if the upstream stream breaks."""
    try:
        yield from stream
    except Exception as e:
        logger.error(f"Assistant stream interrupted: {e}")
    finally:
        stream.close()


class AssistantChat:
    def __init__(self, streamer: CompletionStreamer):
        self.streamer = streamer

    def start(self, messages: List[Dict[str, str]]) -> Iterator[str]:
        """
        Open the completion for a conversation.

        Raises:
            CompletionError: If the completion cannot be opened
        """
        messages = with_system_prompt(messages)
        logger.info(f"Starting assistant chat with {len(messages)} messages")
        return drain(self.streamer.open(messages))
