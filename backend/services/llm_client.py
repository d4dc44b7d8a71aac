"""Streaming chat-completion client for the OpenAI API."""
import json
import logging
from typing import Dict, Iterable, Iterator, List, Optional

import httpx

from config import CHAT_MODEL, HTTP_TIMEOUT, OPENAI_API_KEY, OPENAI_BASE_URL
from services.errors import CompletionError, ConfigurationError, upstream_message

logger = logging.getLogger(__name__)

DATA_PREFIX = "data:"
DONE_SENTINEL = "[DONE]"


def iter_stream_deltas(lines: Iterable[str]) -> Iterator[str]:
    """
    Parse server-sent completion frames into text deltas.

    Each frame is a line of the form ``data: <json>``. The ``[DONE]``
    sentinel ends the stream and is not forwarded. Lines without the
    ``data:`` prefix are ignored and frames whose JSON does not parse
    are skipped.

    Args:
        lines: Decoded lines of the response body

    Yields:
        Non-empty ``choices[0].delta.content`` strings in arrival order

    Raises:
        CompletionError: If a frame carries an ``error`` object
    """
    for raw_line in lines:
        line = raw_line.strip()
        if not line.startswith(DATA_PREFIX):
            continue

        data = line[len(DATA_PREFIX):].strip()
        if data == DONE_SENTINEL:
            return

        try:
            frame = json.loads(data)
        except ValueError:
            logger.debug(f"Skipping malformed stream frame: {data[:100]}")
            continue

        if not isinstance(frame, dict):
            continue
        if frame.get("error"):
            raise CompletionError(upstream_message(frame))

        try:
            content = frame["choices"][0]["delta"].get("content")
        except (KeyError, IndexError, TypeError, AttributeError):
            continue
        if content:
            yield content


class CompletionStream:
    """
    Iterable of text deltas backed by an open streaming HTTP response.

    The response (and its client) are closed once iteration finishes, fails,
    or the consumer abandons the generator.
    """

    def __init__(self, client: httpx.Client, response: httpx.Response):
        self._client = client
        self._response = response
        self._closed = False

    def __iter__(self) -> Iterator[str]:
        try:
            yield from iter_stream_deltas(self._response.iter_lines())
        finally:
            self.close()

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._response.close()
        self._client.close()


class CompletionStreamer:
    """Opens streaming chat completions against the OpenAI API."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = CHAT_MODEL,
        base_url: str = OPENAI_BASE_URL,
        timeout: float = HTTP_TIMEOUT,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        """
        Initialize the completion streamer.

        Args:
            api_key: OpenAI API key (defaults to OPENAI_API_KEY from environment)
            model: Chat model identifier
            base_url: API base URL
            timeout: Request timeout in seconds
            transport: Optional httpx transport, used by tests

        Raises:
            ConfigurationError: If no API key is available
        """
        self.api_key = api_key or OPENAI_API_KEY
        if not self.api_key:
            raise ConfigurationError("OPENAI_API_KEY environment variable is required")

        self.model = model
        self.timeout = timeout
        self.transport = transport
        self.api_url = f"{base_url.rstrip('/')}/chat/completions"

        logger.info(f"Initialized CompletionStreamer with model: {model}")

    def open(self, messages: List[Dict[str, str]]) -> CompletionStream:
        """
        Start a streaming completion.

        The request is sent and its status checked before returning, so
        upstream rejections surface here rather than mid-stream.

        Args:
            messages: Chat messages as ``{"role", "content"}`` dicts

        Returns:
            CompletionStream yielding text deltas

        Raises:
            CompletionError: If the request fails or the API rejects it
        """
        client = httpx.Client(timeout=self.timeout, transport=self.transport)
        request = client.build_request(
            "POST",
            self.api_url,
            headers={
                "Authorization": f"Bearer {self.api_key}",
                "Content-Type": "application/json",
            },
            json={"model": self.model, "messages": messages, "stream": True},
        )

        try:
            response = client.send(request, stream=True)
        except httpx.HTTPError as e:
            client.close()
            logger.error(f"Completion request failed: {e}")
            raise CompletionError(f"Completion request failed: {e}") from e

        if not response.is_success:
            try:
                response.read()
                try:
                    payload = response.json()
                except ValueError:
                    payload = None
            finally:
                response.close()
                client.close()
            message = upstream_message(payload)
            logger.error(
                f"Completion API returned {response.status_code}: {message or 'no message'}"
            )
            raise CompletionError(message, status=response.status_code)

        logger.debug(f"Opened completion stream with {len(messages)} messages")
        return CompletionStream(client, response)
