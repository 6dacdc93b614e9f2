"""Unit tests for named-entity extraction and storage."""

import asyncio
import json
from unittest.mock import AsyncMock, Mock

from langchain_core.messages import AIMessage

from case_tracker.features.documents.entities import (
    Entity,
    EntityExtractor,
    EntityStore,
    dedupe_entities,
)


def reply(*entities):
    return AIMessage(content=json.dumps({"entities": [{"text": t, "type": k} for t, k in entities]}))


class TestDedupe:
    def test_case_insensitive_by_text_and_type(self):
        entities = [
            Entity(text="Acme Corp", type="ORG"),
            Entity(text="ACME CORP", type="ORG"),
            Entity(text="Acme Corp", type="LEGAL_TERM"),
        ]
        assert dedupe_entities(entities) == [
            Entity(text="Acme Corp", type="ORG"),
            Entity(text="Acme Corp", type="LEGAL_TERM"),
        ]


class TestEntityExtractor:
    def test_merges_windows_and_filters_unknown_types(self):
        llm = Mock(ainvoke=AsyncMock(side_effect=[
            reply(("Jane Doe", "PERSON"), ("Acme Corp", "ORG"), ("blue", "COLOR")),
            reply(("jane doe", "PERSON"), ("Boston", "LOCATION")),
        ]))
        text = ("The parties met. " * 800) + "\n\n" + ("Jane Doe signed. " * 100)

        entities = asyncio.run(EntityExtractor(llm).extract(text))

        assert llm.ainvoke.await_count == 2
        assert {(e.text, e.type) for e in entities} == {
            ("Jane Doe", "PERSON"),
            ("Acme Corp", "ORG"),
            ("Boston", "LOCATION"),
        }

    def test_unparseable_window_is_skipped(self):
        llm = Mock(ainvoke=AsyncMock(return_value=AIMessage(content="no entities here")))
        assert asyncio.run(EntityExtractor(llm).extract("Short text.")) == []

    def test_model_error_is_skipped(self):
        llm = Mock(ainvoke=AsyncMock(side_effect=RuntimeError("quota")))
        assert asyncio.run(EntityExtractor(llm).extract("Short text.")) == []


class TestEntityStore:
    def test_replace_deletes_then_inserts(self, fake_db):
        store = EntityStore(fake_db)
        file = {"id": "f1", "project_id": "p1", "owner_id": "u1"}

        count = store.replace_for_file(file, [Entity(text="Jane Doe", type="PERSON")])

        delete_query, insert_query = fake_db.queries_for("entities")
        assert delete_query.called("eq") == [("source_file_id", "f1")]
        rows = insert_query.called("insert")[0][0]
        assert rows == [{
            "project_id": "p1",
            "owner_id": "u1",
            "source_file_id": "f1",
            "entity_text": "Jane Doe",
            "entity_type": "PERSON",
        }]
        assert count == 1

    def test_file_ids_matching(self, fake_db):
        fake_db.queue("entities", data=[{"source_file_id": "f2"}, {"source_file_id": "f1"}])
        fake_db.queue("entities", data=[{"source_file_id": "f2"}])

        ids = EntityStore(fake_db).file_ids_matching("p1", [("PERSON", "jane doe"), ("ORG", "acme")])

        assert ids == ["f1", "f2"]
