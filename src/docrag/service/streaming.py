"""Streaming of generated answers to chat clients.

A chat turn moves through ``STARTED -> STREAMING -> DONE``, or ends in
``ERROR``. The model client produces content fragments; CompletionStreamer
relays each one as a ``chunk`` event the moment it arrives and finishes with
a ``done`` event carrying source citations. A failed turn still ends with
``done``: the error text is relayed as one last chunk. Events are written to the wire as
server-sent-event lines by ``encode_event``.
"""

import json
import logging
import uuid
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from docrag.constants import CONTEXT_WINDOW
from docrag.llm.base import ChatService
from docrag.service.vector_store import QueryResult

logger = logging.getLogger(__name__)

CONVERSATION_ROLES = ("user", "assistant")


class TurnState(str, Enum):
    STARTED = "started"
    STREAMING = "streaming"
    DONE = "done"
    ERROR = "error"


@dataclass
class Source:
    """A citation shown under an answer."""

    name: str
    url: str

    def to_dict(self) -> dict[str, str]:
        return {"name": self.name, "url": self.url}


@dataclass
class StreamEvent:
    """One event of the chat wire protocol.

    Attributes:
        type: "chunk" or "done"
        content: Content fragment (chunk events)
        sources: Citations (done events)
    """

    type: str
    content: str | None = None
    sources: list[Source] | None = None

    @classmethod
    def chunk(cls, content: str) -> "StreamEvent":
        return cls(type="chunk", content=content)

    @classmethod
    def done(cls, sources: list[Source]) -> "StreamEvent":
        return cls(type="done", sources=list(sources))

    def to_dict(self) -> dict[str, Any]:
        if self.type == "chunk":
            return {"type": "chunk", "content": self.content}
        return {"type": "done", "sources": [s.to_dict() for s in self.sources or []]}


def encode_event(event: StreamEvent) -> str:
    """Encode an event as a server-sent event: one ``data:`` line and a blank line."""
    return f"data: {json.dumps(event.to_dict())}\n\n"


@dataclass
class ChatMessage:
    """A message in a conversation.

    User messages never change after creation. The assistant message of a
    turn starts empty and grows as chunk events arrive.
    """

    role: str
    content: str = ""
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    sources: list[Source] | None = None


@dataclass
class ChatTurn:
    """Server-side record of one question and its streamed answer."""

    assistant: ChatMessage = field(default_factory=lambda: ChatMessage(role="assistant"))
    user: ChatMessage | None = None
    state: TurnState = TurnState.STARTED

    def apply(self, event: StreamEvent) -> None:
        """Update the assistant message from a stream event."""
        if event.type == "chunk":
            self.state = TurnState.STREAMING
            self.assistant.content += event.content or ""
        elif event.type == "done":
            if self.state is not TurnState.ERROR:
                self.state = TurnState.DONE
            self.assistant.sources = list(event.sources or [])

    def fail(self, error: str) -> StreamEvent:
        """Append an error message to the answer and mark the turn failed.

        Returns:
            StreamEvent: The chunk event carrying the error text
        """
        separator = "\n\n" if self.assistant.content else ""
        event = StreamEvent.chunk(f"{separator}error: {error}")
        self.apply(event)
        self.state = TurnState.ERROR
        return event


def sources_from_results(results: Iterable[QueryResult]) -> list[Source]:
    """Build a de-duplicated citation list from retrieved chunks.

    Args:
        results: Retrieved chunks, best first

    Returns:
        list[Source]: One source per distinct URL (or label), in result order
    """
    sources: list[Source] = []
    seen: set[str] = set()
    for result in results:
        key = result.url or result.source
        if not key or key in seen:
            continue
        seen.add(key)
        sources.append(Source(name=result.source or result.url or "", url=result.url or ""))
    return sources


def truncate_history(messages: list[dict], window: int) -> list[dict]:
    """Keep the most recent user/assistant messages of a conversation.

    Args:
        messages: Conversation history, oldest first
        window: Maximum number of messages to keep

    Returns:
        list[dict]: The last ``window`` messages as {"role", "content"} dicts
    """
    conversation = [
        {"role": msg["role"], "content": msg["content"]}
        for msg in messages
        if msg.get("role") in CONVERSATION_ROLES and msg.get("content")
    ]
    if window <= 0:
        return []
    return conversation[-window:]


class CompletionStreamer:
    """Relays model output for one chat turn as wire protocol events."""

    def __init__(self, chat_client: ChatService, context_window: int = CONTEXT_WINDOW) -> None:
        self.chat_client = chat_client
        self.context_window = context_window

    def build_messages(self, history: list[dict], preamble: Iterable[dict] = ()) -> list[dict]:
        """Prepend prompt messages to the truncated conversation history."""
        return list(preamble) + truncate_history(history, self.context_window)

    def stream(
        self,
        history: list[dict],
        sources: list[Source],
        preamble: Iterable[dict] = (),
        turn: ChatTurn | None = None,
    ) -> Iterator[StreamEvent]:
        """Stream one chat turn.

        Every fragment from the model is yielded as a chunk event in arrival
        order, then a done event with ``sources``. If the model call fails the
        error text is yielded as a final chunk, followed by a done event with
        no sources. Closing this iterator closes the upstream stream.

        Args:
            history: Conversation so far, oldest first, ending with the question
            sources: Citations to attach to the done event
            preamble: System/context messages placed before the history
            turn: Optional turn record updated with every event

        Yields:
            StreamEvent: chunk events, then exactly one done event
        """
        turn = turn or ChatTurn()
        messages = self.build_messages(history, preamble)

        fragments = None
        try:
            fragments = iter(self.chat_client.stream_chat(messages))
            for fragment in fragments:
                if not fragment:
                    continue
                event = StreamEvent.chunk(fragment)
                turn.apply(event)
                yield event
        except Exception as e:
            logger.error(f"❌ Completion stream failed: {e}", exc_info=True)
            yield turn.fail(str(e))
            event = StreamEvent.done([])
            turn.apply(event)
            yield event
            return
        finally:
            close = getattr(fragments, "close", None)
            if close is not None:
                close()

        event = StreamEvent.done(sources)
        turn.apply(event)
        logger.info(f"✅ Turn complete: {len(turn.assistant.content)} characters")
        yield event
