"""
Documents feature: named-entity extraction for case files.

Long texts are split into large overlapping windows; each window is sent to the
chat model for NER and the results are merged case-insensitively.
"""

import asyncio
import logging

from langchain_core.language_models import BaseChatModel
from langchain_core.messages import HumanMessage, SystemMessage
from pydantic import BaseModel
from supabase import Client

from case_tracker.core.database import SupabaseService
from case_tracker.core.exceptions import AppBaseError
from case_tracker.core.llm_output import message_text, parse_json_reply
from case_tracker.core.session import SessionRefresher
from case_tracker.features.documents.chunker import chunk_text

logger = logging.getLogger(__name__)

ENTITIES_TABLE = "entities"
ENTITY_TYPES = ("PERSON", "ORG", "DATE", "LOCATION", "LEGAL_TERM")
NER_WINDOW_SIZE = 12000
NER_WINDOW_OVERLAP = 1000

NER_SYSTEM_PROMPT = """You are a legal document analyzer. Extract named entities from legal text.
Focus on these entity types:
- PERSON: Individual names (e.g., John Smith, Jane Doe)
- ORG: Organizations, companies, institutions (e.g., Acme Corp, Supreme Court)
- DATE: Calendar dates, time periods (e.g., January 1, 2023, Q2 2022)
- LOCATION: Physical locations, addresses, geographical areas
- LEGAL_TERM: Important legal terms, statutes, case names, document types"""

NER_PROMPT = (
    'Extract all named entities from the following text and return them as JSON like '
    '{{"entities": [{{"text": "entity text", "type": "ENTITY_TYPE"}}]}}. '
    "Only include clearly identifiable entities:\n\n{text}"
)


class Entity(BaseModel):
    text: str
    type: str


def dedupe_entities(entities: list[Entity]) -> list[Entity]:
    """One entity per (lowercased text, type); first spelling wins."""
    unique: dict[tuple[str, str], Entity] = {}
    for entity in entities:
        unique.setdefault((entity.text.lower(), entity.type), entity)
    return list(unique.values())


class EntityExtractor:
    """Best-effort NER: failing windows are logged and skipped."""

    def __init__(self, llm: BaseChatModel, timeout_seconds: float = 60.0):
        self.llm = llm
        self.timeout_seconds = timeout_seconds

    async def extract(self, text: str) -> list[Entity]:
        windows = chunk_text(text, NER_WINDOW_SIZE, NER_WINDOW_OVERLAP)
        found: list[Entity] = []
        for window in windows:
            try:
                found.extend(await self._extract_window(window.content))
            except (AppBaseError, asyncio.TimeoutError) as e:
                logger.warning(f"⚠️ NER failed for window {window.chunk_index}: {e}")
        return dedupe_entities(found)

    async def _extract_window(self, text: str) -> list[Entity]:
        try:
            reply = await asyncio.wait_for(
                self.llm.ainvoke([
                    SystemMessage(content=NER_SYSTEM_PROMPT),
                    HumanMessage(content=NER_PROMPT.format(text=text)),
                ]),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError:
            raise
        except Exception as e:
            logger.warning(f"⚠️ NER model call failed: {e}")
            return []

        data = parse_json_reply(message_text(reply.content))
        entities = []
        for item in data.get("entities") or []:
            if not isinstance(item, dict):
                continue
            entity_text = str(item.get("text") or "").strip()
            entity_type = str(item.get("type") or "").upper()
            if entity_text and entity_type in ENTITY_TYPES:
                entities.append(Entity(text=entity_text, type=entity_type))
        return entities


class EntityStore(SupabaseService):
    def __init__(self, db: Client, refresher: SessionRefresher | None = None):
        super().__init__(db, refresher)

    def replace_for_file(self, file: dict, entities: list[Entity]) -> int:
        """Swap a file's stored entities for a freshly extracted set."""
        self._execute(self.db.table(ENTITIES_TABLE).delete().eq("source_file_id", file["id"]))
        if not entities:
            return 0

        rows = [
            {
                "project_id": file["project_id"],
                "owner_id": file.get("owner_id"),
                "source_file_id": file["id"],
                "entity_text": entity.text,
                "entity_type": entity.type,
            }
            for entity in entities
        ]
        self._execute(self.db.table(ENTITIES_TABLE).insert(rows))
        return len(rows)

    def file_ids_matching(self, project_id: str, filters: list[tuple[str, str]]) -> list[str]:
        """Ids of project files containing any of the given (type, text) entities."""
        matched: set[str] = set()
        for entity_type, entity_text in filters:
            res = self._execute(
                self.db.table(ENTITIES_TABLE)
                .select("source_file_id")
                .eq("project_id", project_id)
                .eq("entity_type", entity_type)
                .ilike("entity_text", entity_text)
            )
            matched.update(row["source_file_id"] for row in res.data or [] if row.get("source_file_id"))
        return sorted(matched)
