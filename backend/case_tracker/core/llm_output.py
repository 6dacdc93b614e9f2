"""
Helpers for reading chat-model replies.
"""

import json
import re

from case_tracker.core.exceptions import ParseError

_FENCE = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL)


def message_text(content) -> str:
    """Flatten a LangChain message content (str or list of parts) to text."""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = []
        for item in content:
            if isinstance(item, dict):
                # Gemini "thinking" parts carry type=thinking, skip them
                if item.get("type", "text") == "text" and "text" in item:
                    parts.append(item["text"])
            elif isinstance(item, str):
                parts.append(item)
        return "\n".join(parts)
    return str(content)


def parse_json_reply(raw: str) -> dict:
    """Parse a model reply that should be a JSON object.

    Tolerates a surrounding markdown code fence.

    Raises:
        ParseError: With the raw reply attached, if it is not a JSON object.
    """
    text = raw.strip()
    fenced = _FENCE.match(text)
    if fenced:
        text = fenced.group(1)
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        raise ParseError(raw_response=raw)
    if not isinstance(data, dict):
        raise ParseError(raw_response=raw, message="Model response was not a JSON object")
    return data
