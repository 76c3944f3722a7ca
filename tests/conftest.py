"""
Shared pytest fixtures.

Services are exercised against an in-memory DocumentStore that mirrors the
operator semantics of the OpenSearch scripted upsert, a fixed clock, and a
synchronous executor so fire-and-forget work completes inside the test.
"""

from __future__ import annotations

import copy
from concurrent.futures import Executor, Future
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

import pytest

from convo_memory.models.core import ConversationTurn
from convo_memory.utils.config import MemoryConfig
from convo_memory.utils.document_store import DocumentStore, DocumentStoreError

BASE_TIME = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
NOW = BASE_TIME + timedelta(days=30)


class InMemoryDocumentStore(DocumentStore):
    """DocumentStore fake with failure switches."""

    def __init__(self):
        self.collections: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self.fail_reads = False
        self.fail_writes = False
        self.upserts: List[Dict[str, Any]] = []

    def find_one(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        if self.fail_reads:
            raise DocumentStoreError('store unavailable')
        doc = self.collections.get(collection, {}).get(doc_id)
        return copy.deepcopy(doc) if doc is not None else None

    def upsert(self, collection, doc_id, set_fields=None, push=None, add_to_set=None, push_slice=None):
        if self.fail_writes:
            raise DocumentStoreError('store unavailable')
        self.upserts.append({'collection': collection, 'doc_id': doc_id, 'set_fields': set_fields, 'push': push})

        doc = self.collections.setdefault(collection, {}).setdefault(doc_id, {})
        for key, value in (set_fields or {}).items():
            doc[key] = copy.deepcopy(value)
        for key, values in (push or {}).items():
            items = doc.setdefault(key, [])
            items.extend(copy.deepcopy(values))
            limit = (push_slice or {}).get(key)
            if limit is not None and len(items) > limit:
                doc[key] = items[-limit:]
        for key, values in (add_to_set or {}).items():
            items = doc.setdefault(key, [])
            for value in values:
                if value not in items:
                    items.append(value)
        return copy.deepcopy(doc)

    def put(self, collection: str, doc_id: str, doc: Dict[str, Any]) -> None:
        self.collections.setdefault(collection, {})[doc_id] = copy.deepcopy(doc)


class ImmediateExecutor(Executor):
    """Runs submitted work inline."""

    def __init__(self):
        self.submitted = 0

    def submit(self, fn, /, *args, **kwargs):
        self.submitted += 1
        future = Future()
        try:
            future.set_result(fn(*args, **kwargs))
        except Exception as e:
            future.set_exception(e)
        return future


class FixedRandom:
    """Stand-in for random.Random that always draws the same value."""

    def __init__(self, value: float):
        self.value = value

    def random(self) -> float:
        return self.value


def make_turn(i: int, message: Optional[str] = None, response: Optional[str] = None) -> ConversationTurn:
    return ConversationTurn(message=message if message is not None else f'status update number {i}',
                            response=response if response is not None else 'okay noted',
                            timestamp=BASE_TIME + timedelta(minutes=i))


def make_history(n: int) -> List[ConversationTurn]:
    return [make_turn(i) for i in range(n)]


@pytest.fixture
def memory_config():
    return MemoryConfig(recent_history_size=5,
                        relevant_history_size=8,
                        max_context_turns=10,
                        max_history=50,
                        keep_first_turns=5,
                        keep_last_turns=45,
                        global_sample_rate=0.15,
                        global_topic_window=25,
                        global_topics_in_context=5,
                        default_personality='friendly and helpful')


@pytest.fixture
def store():
    return InMemoryDocumentStore()


@pytest.fixture
def clock():
    return lambda: NOW


@pytest.fixture
def executor():
    return ImmediateExecutor()
