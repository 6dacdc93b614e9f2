"""Shared fixtures: test settings and an in-memory stand-in for the Supabase client."""

import os

os.environ.setdefault("SUPABASE_URL", "http://localhost:54321")
os.environ.setdefault("SUPABASE_KEY", "test-anon-key")

import pytest

from case_tracker.config import Settings


class FakeResponse:
    def __init__(self, data=None, count=None):
        self.data = data if data is not None else []
        self.count = count


class FakeQuery:
    """Records every chained builder call; ``execute`` returns the canned response."""

    def __init__(self, target: str, response: FakeResponse):
        self.target = target
        self.response = response
        self.calls: list[tuple[str, tuple, dict]] = []

    def __getattr__(self, name):
        def method(*args, **kwargs):
            self.calls.append((name, args, kwargs))
            return self
        return method

    @property
    def not_(self):
        self.calls.append(("not_", (), {}))
        return self

    def called(self, name: str) -> list[tuple]:
        return [args for call, args, _ in self.calls if call == name]

    def execute(self):
        if isinstance(self.response, Exception):
            raise self.response
        return self.response


class FakeDB:
    """Queue responses per table/rpc name; every query built is kept in ``queries``."""

    def __init__(self):
        self._responses: dict[str, list] = {}
        self.queries: list[FakeQuery] = []
        self.rpc_calls: list[tuple[str, dict]] = []

    def queue(self, target: str, data=None, count=None, error: Exception | None = None):
        response = error if error is not None else FakeResponse(data, count)
        self._responses.setdefault(target, []).append(response)
        return self

    def _next(self, target: str) -> FakeQuery:
        pending = self._responses.get(target)
        response = pending.pop(0) if pending else FakeResponse()
        query = FakeQuery(target, response)
        self.queries.append(query)
        return query

    def table(self, name: str) -> FakeQuery:
        return self._next(name)

    def rpc(self, name: str, params: dict) -> FakeQuery:
        self.rpc_calls.append((name, params))
        return self._next(name)

    def queries_for(self, target: str) -> list[FakeQuery]:
        return [q for q in self.queries if q.target == target]


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        SUPABASE_URL="http://localhost:54321",
        SUPABASE_KEY="test-anon-key",
        EMBEDDING_DIMENSIONS=4,
    )


@pytest.fixture
def fake_db():
    return FakeDB()
