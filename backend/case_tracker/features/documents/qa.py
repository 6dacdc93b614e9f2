"""
Documents feature: retrieval-augmented question answering over a case.

Flow: embed question -> similarity search -> dedupe by file -> bounded
context -> chat model (JSON reply) -> answer with the chunk ids it used.
"""

import asyncio
import logging

from langchain_core.language_models import BaseChatModel
from langchain_core.messages import HumanMessage, SystemMessage

from case_tracker.config import Settings
from case_tracker.core.exceptions import ParseError, ProviderError, ValidationError
from case_tracker.core.llm_output import message_text, parse_json_reply
from case_tracker.features.documents.embedding import EmbeddingGenerator
from case_tracker.features.documents.schemas import Citation, QAResult, SourceChunk
from case_tracker.features.documents.store import ChunkMatch, ChunkStore

logger = logging.getLogger(__name__)

INSUFFICIENT_EVIDENCE_ANSWER = (
    "I don't have enough information in this case's documents to answer that question."
)
PREVIEW_CHARS = 200
CONTEXT_SEPARATOR = "\n\n"

SYSTEM_PROMPT = (
    "You are an AI legal assistant helping with a legal case analysis. "
    "Answer ONLY from the provided context taken from case documents. "
    "If the context does not contain the answer, say you don't have enough information. "
    "If the question asks for legal advice or strategy, state that the answer must be "
    "reviewed by a qualified legal professional."
)

ANSWER_FORMAT = """Reply with a JSON object only:
{
  "answer": "your answer",
  "confidence": 0.0 to 1.0,
  "citations": [{"text": "quoted text", "source": "source label from the context"}],
  "needs_attorney_review": true or false
}"""


def dedupe_by_file(matches: list[ChunkMatch], max_per_file: int = 1) -> list[ChunkMatch]:
    """Keep at most ``max_per_file`` of the highest-ranked chunks per file, rank order preserved."""
    seen: dict[str, int] = {}
    kept = []
    for match in matches:
        count = seen.get(match.file_id, 0)
        if count >= max_per_file:
            continue
        seen[match.file_id] = count + 1
        kept.append(match)
    return kept


def source_label(index: int, match: ChunkMatch) -> str:
    label = f"[Source {index}: {match.file_name or match.file_id}"
    if match.page_number:
        label += f", page {match.page_number}"
    return label + "]"


def build_context(matches: list[ChunkMatch], max_chars: int) -> tuple[str, list[ChunkMatch]]:
    """Concatenate ranked chunks up to ``max_chars``.

    Lowest-ranked chunks are dropped first; if even the top chunk is too long
    it is truncated so the context is never empty.

    Returns:
        The context string and the chunks that made it in.
    """
    parts: list[str] = []
    used: list[ChunkMatch] = []
    total = 0
    for index, match in enumerate(matches, 1):
        block = f"{source_label(index, match)}\n{match.content}"
        cost = len(block) + (len(CONTEXT_SEPARATOR) if parts else 0)
        if total + cost > max_chars:
            if not parts:
                parts.append(block[:max_chars])
                used.append(match)
            break
        parts.append(block)
        used.append(match)
        total += cost
    return CONTEXT_SEPARATOR.join(parts), used


def build_prompt(question: str, context: str) -> str:
    return f'CONTEXT:\n"""\n{context}\n"""\n\nQUESTION: {question}\n\n{ANSWER_FORMAT}'


def _confidence(value, used: list[ChunkMatch]) -> float:
    """Model-reported confidence clamped to [0, 1]; mean similarity when absent."""
    try:
        return min(1.0, max(0.0, float(value)))
    except (TypeError, ValueError):
        return round(sum(m.similarity for m in used) / len(used), 4)


class RetrievalQA:
    """Answers questions about a project from its stored chunks."""

    def __init__(
        self,
        embedder: EmbeddingGenerator,
        store: ChunkStore,
        llm: BaseChatModel,
        settings: Settings,
    ):
        self.embedder = embedder
        self.store = store
        self.llm = llm
        self.settings = settings

    async def answer(
        self,
        project_id: str,
        question: str,
        file_id: str | None = None,
        limit: int | None = None,
    ) -> QAResult:
        """Answer a question with citations, or report insufficient evidence.

        Raises:
            ValidationError: Empty question.
            ProviderError: Embedding or generation call failed.
            ParseError: The model reply was not the expected JSON.
        """
        question = (question or "").strip()
        if not question:
            raise ValidationError("Question is required")

        limit = limit or self.settings.QA_MATCH_COUNT
        query_vector = await self.embedder.embed(question)
        matches = self.store.similarity_search(
            query_vector,
            project_id,
            threshold=self.settings.QA_MATCH_THRESHOLD,
            limit=limit,
            file_id=file_id,
        )

        # No evidence above threshold: never ask the model with an empty context
        if not matches:
            logger.info(f"No chunks above threshold for project {project_id}, skipping generation")
            return QAResult(
                answer=INSUFFICIENT_EVIDENCE_ANSWER,
                confidence=0.0,
                insufficient_evidence=True,
            )

        # A single-file question keeps every retrieved chunk of that file
        selected = matches if file_id else dedupe_by_file(matches, self.settings.QA_MAX_CHUNKS_PER_FILE)
        context, used = build_context(selected, self.settings.QA_MAX_CONTEXT_CHARS)

        raw = await self._generate(build_prompt(question, context))
        data = parse_json_reply(raw)

        answer = data.get("answer")
        if not isinstance(answer, str) or not answer.strip():
            raise ParseError(raw_response=raw, message="Model response had no answer")

        citations = [
            Citation(text=str(c.get("text", "")), source=c.get("source"))
            for c in data.get("citations") or []
            if isinstance(c, dict)
        ]

        return QAResult(
            answer=answer.strip(),
            source_chunk_ids=[m.chunk_id for m in used],
            confidence=_confidence(data.get("confidence"), used),
            needs_attorney_review=bool(data.get("needs_attorney_review", True)),
            citations=citations,
            sources=[
                SourceChunk(
                    chunk_id=m.chunk_id,
                    file_id=m.file_id,
                    file_name=m.file_name,
                    page_number=m.page_number,
                    similarity=m.similarity,
                    preview=m.content[:PREVIEW_CHARS],
                )
                for m in used
            ],
        )

    async def _generate(self, prompt: str) -> str:
        timeout = self.settings.LLM_TIMEOUT_SECONDS
        try:
            reply = await asyncio.wait_for(
                self.llm.ainvoke([SystemMessage(content=SYSTEM_PROMPT), HumanMessage(content=prompt)]),
                timeout=timeout,
            )
        except asyncio.TimeoutError:
            raise ProviderError("LLM", f"generation timed out after {timeout}s")
        except Exception as e:
            raise ProviderError("LLM", str(e)) from e
        return message_text(reply.content)
