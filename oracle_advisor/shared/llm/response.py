"""
Response text extraction.

Provider and caller-sampling responses come in several shapes (Responses
API objects, chat-completion payloads, sampling message results, plain
strings). Each known shape is matched explicitly; a depth-bounded generic
scan is kept only as the last resort for anything unrecognized.
"""

import json
import logging
from typing import Any, Dict, List, Literal

from oracle_advisor.shared.errors import EmptyModelOutputError


logger = logging.getLogger(__name__)

ResponseShape = Literal["text", "responses", "chat", "message", "unknown"]

MAX_SCAN_DEPTH = 8

# Substructures that never carry answer text
SKIPPED_KEYS = frozenset(
    {"logprobs", "top_logprobs", "tool", "tool_calls", "annotations", "reasoning", "summary"}
)

# Output items that carry model reasoning, never the answer
SKIPPED_ITEM_TYPES = frozenset({"reasoning"})

TEXT_PART_TYPES = frozenset({"output_text", "text"})
ASSISTANT_ROLES = frozenset({"assistant", "model"})


def to_plain(response: Any) -> Any:
    """Convert SDK model objects into plain dicts/lists for inspection."""
    dump = getattr(response, "model_dump", None)
    if callable(dump):
        return dump()
    return response


def classify_response(payload: Any) -> ResponseShape:
    """Tag a plain payload with the shape adapter that handles it."""
    if isinstance(payload, str):
        return "text"
    if isinstance(payload, dict):
        if isinstance(payload.get("output"), list):
            return "responses"
        if isinstance(payload.get("choices"), list):
            return "chat"
        if "content" in payload or isinstance(payload.get("message"), dict):
            return "message"
        if "output" in payload:
            return "message"
    return "unknown"


# =============================================================================
# Shape adapters
# =============================================================================


def _text_from_parts(content: Any) -> List[str]:
    """Text from a message `content`: a string, one part, or a list of parts."""
    if isinstance(content, str):
        return [content]
    if isinstance(content, dict):
        content = [content]
    if not isinstance(content, list):
        return []

    texts = []
    for part in content:
        if isinstance(part, str):
            texts.append(part)
        elif isinstance(part, dict) and part.get("type", "text") in TEXT_PART_TYPES:
            text = part.get("text")
            if isinstance(text, str):
                texts.append(text)
    return texts


def _extract_responses(payload: Dict[str, Any]) -> List[str]:
    texts = []
    for item in payload.get("output") or []:
        if not isinstance(item, dict):
            continue
        item_type = item.get("type")
        if item_type in (None, "message") and item.get("role", "assistant") in ASSISTANT_ROLES:
            texts.extend(_text_from_parts(item.get("content")))
        elif item_type in TEXT_PART_TYPES and isinstance(item.get("text"), str):
            texts.append(item["text"])
    return texts


def _extract_chat(payload: Dict[str, Any]) -> List[str]:
    texts = []
    for choice in payload.get("choices") or []:
        message = choice.get("message") if isinstance(choice, dict) else None
        if isinstance(message, dict):
            texts.extend(_text_from_parts(message.get("content")))
    return texts


def _extract_message(payload: Dict[str, Any]) -> List[str]:
    role = payload.get("role")
    if role is not None and role not in ASSISTANT_ROLES:
        return []
    if "content" in payload:
        return _text_from_parts(payload["content"])
    message = payload.get("message")
    if isinstance(message, dict):
        return _extract_message(message)
    return _text_from_parts(payload.get("output"))


def _scan(node: Any, depth: int, texts: List[str]) -> None:
    """Generic fallback: bounded structural scan for text fields."""
    if depth > MAX_SCAN_DEPTH or node is None:
        return

    if isinstance(node, list):
        for item in node:
            _scan(item, depth + 1, texts)
        return

    if not isinstance(node, dict):
        return

    if node.get("type") in SKIPPED_ITEM_TYPES:
        return

    role = node.get("role")
    if role is not None and role not in ASSISTANT_ROLES:
        return

    text = node.get("text")
    if isinstance(text, str):
        texts.append(text)

    if role in ASSISTANT_ROLES and isinstance(node.get("content"), str):
        texts.append(node["content"])

    for key, value in node.items():
        if key in SKIPPED_KEYS or key == "text":
            continue
        if isinstance(value, (dict, list)):
            _scan(value, depth + 1, texts)


_ADAPTERS = {
    "responses": _extract_responses,
    "chat": _extract_chat,
    "message": _extract_message,
}


def collect_text(response: Any) -> str:
    """
    Extract and join all answer text from a response.

    Returns:
        Trimmed text, possibly empty.
    """
    # SDK Response objects expose output_text as a property, not a dumped field
    if isinstance(response, dict):
        flat = response.get("output_text")
    else:
        flat = getattr(response, "output_text", None)
    if isinstance(flat, str) and flat.strip():
        return flat.strip()

    payload = to_plain(response)
    shape = classify_response(payload)
    if shape == "text":
        return payload.strip()

    texts: List[str] = []
    adapter = _ADAPTERS.get(shape)
    if adapter is not None:
        texts = adapter(payload)

    if not "".join(texts).strip():
        texts = []
        _scan(payload, 0, texts)

    return "\n".join(t for t in texts if t).strip()


def extract_text(response: Any) -> str:
    """
    Extract answer text from a provider response.

    Raises:
        EmptyModelOutputError: If no text could be extracted.
    """
    text = collect_text(response)
    if not text:
        logger.warning(f"Empty text from model response; shape={describe_shape(response)}")
        raise EmptyModelOutputError("Model returned no text content")
    return text


def describe_shape(response: Any) -> str:
    """Compact diagnostic of a response's structure, safe for logs."""
    payload = to_plain(response)
    if not isinstance(payload, dict):
        return json.dumps({"type": type(payload).__name__})

    output = payload.get("output")
    if isinstance(output, list):
        output_types = [
            (item.get("type") or item.get("role") or "dict") if isinstance(item, dict)
            else type(item).__name__
            for item in output
        ]
    else:
        output_types = type(output).__name__

    return json.dumps(
        {
            "shape": classify_response(payload),
            "hasOutputText": bool(payload.get("output_text")),
            "outputTypes": output_types,
        }
    )
