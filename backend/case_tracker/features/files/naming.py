"""
Files feature: AI-suggested professional file names.
"""

import asyncio
import json
import logging

from langchain_core.language_models import BaseChatModel
from langchain_core.messages import HumanMessage

from case_tracker.core.exceptions import ParseError, ProviderError
from case_tracker.core.llm_output import message_text, parse_json_reply

logger = logging.getLogger(__name__)

SUGGESTION_COUNT = 3
MAX_NAME_LENGTH = 60

SUGGEST_PROMPT = """I'm a legal professional organizing evidence files for a case.
Based on the following information about a document, suggest 3 clear, concise, and professional
file names that would be appropriate in a legal context.

Original filename: {name}
File type: {file_type}
Additional metadata: {metadata}

The names should:
- Be descriptive but concise (under 60 characters)
- Follow standard naming conventions for legal documents
- Be easily searchable
- Not include special characters (except underscores or hyphens)

Reply with a JSON object only, like this:
{{"suggestedNames": ["Name 1", "Name 2", "Name 3"]}}"""


def fallback_names(file: dict, exhibit_id: str) -> list[str]:
    file_type = file.get("file_type") or "file"
    return [
        f"{file_type}_document_{exhibit_id}",
        file.get("name") or f"{file_type}_{exhibit_id}",
        f"Evidence_{exhibit_id}",
    ]


async def suggest_filenames(
    llm: BaseChatModel,
    file: dict,
    exhibit_id: str,
    timeout_seconds: float = 60.0,
) -> list[str]:
    """Three suggested names for a file.

    An unparseable reply falls back to deterministic names; a failed model
    call still raises ProviderError.
    """
    prompt = SUGGEST_PROMPT.format(
        name=file.get("name"),
        file_type=file.get("file_type"),
        metadata=json.dumps(file.get("metadata") or {}),
    )
    try:
        reply = await asyncio.wait_for(
            llm.ainvoke([HumanMessage(content=prompt)]), timeout=timeout_seconds
        )
    except asyncio.TimeoutError:
        raise ProviderError("LLM", f"filename suggestion timed out after {timeout_seconds}s")
    except Exception as e:
        raise ProviderError("LLM", str(e)) from e

    try:
        data = parse_json_reply(message_text(reply.content))
    except ParseError:
        logger.warning(f"⚠️ Unparseable filename suggestions for file {file.get('id')}, using fallback")
        return fallback_names(file, exhibit_id)

    names = [
        str(name).strip()[:MAX_NAME_LENGTH]
        for name in data.get("suggestedNames") or []
        if str(name).strip()
    ]
    return names[:SUGGESTION_COUNT] or fallback_names(file, exhibit_id)
