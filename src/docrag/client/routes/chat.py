"""Question answering route using the RAG pipeline."""

import logging
from contextlib import closing

from flask import Blueprint, Response, jsonify, request, stream_with_context

from docrag.client.routes.config import get_config
from docrag.service.streaming import ChatMessage, ChatTurn, encode_event, sources_from_results
from docrag.service.vector_store import QueryResult

logger = logging.getLogger(__name__)

chat_bp = Blueprint("chat", __name__)

SYSTEM_PROMPT = (
    "You are a documentation assistant. Answer the user's question using the "
    "documentation excerpts provided below. If the excerpts do not contain the "
    "answer, say so instead of guessing. Mention the source page for the "
    "information you use."
)


def format_context(results: list[QueryResult]) -> str:
    """Format retrieved chunks into context string for the model.

    Args:
        results: Retrieved chunks, best first

    Returns:
        Formatted context string
    """
    if not results:
        return "No relevant documentation found."

    context_str = ""
    for result in results:
        source = result.source or "Unknown"
        context_str += f"Source: {source}\n"
        if result.url:
            context_str += f"URL: {result.url}\n"
        context_str += f"Content: {result.text}\n\n"
    return context_str.strip()


def build_prompt(results: list[QueryResult]) -> list[dict]:
    """Build the system message placed before the conversation.

    Args:
        results: Retrieved chunks, best first

    Returns:
        list[dict]: Messages to prepend to the conversation history
    """
    context = format_context(results)
    return [
        {
            "role": "system",
            "content": f"{SYSTEM_PROMPT}\n\nDocumentation:\n---\n{context}\n---",
        }
    ]


def validate_messages(messages) -> str | None:
    """Check a conversation payload.

    Returns:
        An error message, or None if the conversation is usable
    """
    if not isinstance(messages, list) or not messages:
        return "Missing or empty 'messages' field in request"
    if not all(isinstance(msg, dict) for msg in messages):
        return "Each message must be an object with 'role' and 'content'"
    last = messages[-1]
    if last.get("role") != "user" or not isinstance(last.get("content"), str):
        return "The last message must be a user message"
    if not last["content"].strip():
        return "The last message must not be empty"
    return None


@chat_bp.route("/api/ask", methods=["POST"])
def ask():
    """Answer the latest question of a conversation.

    Request:
        {
            "messages": [
                {"role": "user", "content": "How do I enable caching?"}
            ],
            "stream": true,  # Optional, default false
            "top_k": 8  # Optional
        }

    Response (stream=false):
        {
            "answer": "Caching is enabled by...",
            "sources": [{"name": "nextjs-docs - /docs/caching", "url": "https://..."}]
        }

    Response (stream=true): ``text/event-stream`` of ``data: {...}`` events,
    ``chunk`` events in order followed by one ``done`` event. A failed model
    call shows up as a last chunk carrying ``error: <message>``.

    Returns:
        JSON answer or event stream
    """
    config = get_config()
    logger.info("📨 Received question")

    data = request.get_json(silent=True) or {}
    messages = data.get("messages")
    error = validate_messages(messages)
    if error:
        logger.warning(f"❌ {error}")
        return jsonify({"error": error}), 400

    top_k = data.get("top_k", config.top_k)
    if not isinstance(top_k, int) or isinstance(top_k, bool) or top_k < 1:
        return jsonify({"error": "'top_k' must be a positive integer"}), 400

    question = messages[-1]["content"]
    logger.info(f"🔍 Question: '{question[:100]}' ({len(messages)} messages)")

    results = config.retrieval_service.retrieve(question, top_k=top_k)
    sources = sources_from_results(results)
    preamble = build_prompt(results)

    if data.get("stream"):
        turn = ChatTurn(user=ChatMessage(role="user", content=question))

        def generate():
            events = config.streamer.stream(messages, sources, preamble=preamble, turn=turn)
            with closing(events):
                for event in events:
                    yield encode_event(event)
            logger.info(
                f"💬 Turn {turn.state.value}: {len(turn.assistant.content)} characters, "
                f"{len(sources)} sources"
            )

        return Response(
            stream_with_context(generate()),
            mimetype="text/event-stream",
            headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
        )

    try:
        prompt = config.streamer.build_messages(messages, preamble)
        logger.info(f"🤖 Generating answer with {len(prompt)} messages...")
        answer = config.chat_client.chat(prompt)
        logger.info("✅ Answer generated")
        return jsonify({"answer": answer, "sources": [s.to_dict() for s in sources]})
    except Exception as e:
        logger.error(f"❌ Error answering question: {e}", exc_info=True)
        return jsonify({"error": f"Internal server error: {str(e)}"}), 500
