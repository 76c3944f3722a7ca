"""Tests for the sampled global topic window."""

import pytest
from conftest import NOW, FixedRandom

from convo_memory.services.global_aggregation import TOPICS_FIELD, GlobalAggregationService, merge_topics
from convo_memory.utils.document_store import GLOBAL_COLLECTION, GLOBAL_DOCUMENT_ID
from convo_memory.utils.timestamp_utils import to_iso


def make_service(store, memory_config, executor, clock, draw):
    return GlobalAggregationService(store,
                                    memory_config=memory_config,
                                    rng=FixedRandom(draw),
                                    executor=executor,
                                    clock=clock)


def global_doc(store):
    return store.collections[GLOBAL_COLLECTION][GLOBAL_DOCUMENT_ID]


def test_sampled_turn_updates_window(store, memory_config, executor, clock):
    service = make_service(store, memory_config, executor, clock, draw=0.0)

    assert service.maybe_record_global_topics('I love my job', "let's grab dinner") is True

    assert executor.submitted == 1
    doc = global_doc(store)
    assert doc[TOPICS_FIELD] == ['relationships', 'work', 'food']
    assert doc['lastUpdate'] == to_iso(NOW)


def test_unsampled_turn_is_skipped(store, memory_config, executor, clock):
    service = make_service(store, memory_config, executor, clock, draw=0.99)

    assert service.maybe_record_global_topics('I love my job', 'great') is False

    assert executor.submitted == 0
    assert store.upserts == []


@pytest.mark.parametrize('draw, expected', [(0.0, True), (0.149, True), (0.15, False), (0.5, False)])
def test_sampling_threshold(store, memory_config, executor, clock, draw, expected):
    assert make_service(store, memory_config, executor, clock, draw).should_sample() is expected


def test_window_keeps_most_recent_topics(store, memory_config, executor, clock):
    seeded = [f't{i}' for i in range(25)]
    store.put(GLOBAL_COLLECTION, GLOBAL_DOCUMENT_ID, {TOPICS_FIELD: seeded, 'botPersonality': 'witty'})
    service = make_service(store, memory_config, executor, clock, draw=0.0)

    service.record_global_topics('I love my job', "let's grab dinner")

    topics = global_doc(store)[TOPICS_FIELD]
    assert len(topics) == 25
    assert topics == seeded[3:] + ['relationships', 'work', 'food']
    assert global_doc(store)['botPersonality'] == 'witty'


def test_turn_without_topics_only_touches_timestamp(store, memory_config, executor, clock):
    service = make_service(store, memory_config, executor, clock, draw=0.0)

    assert service.record_global_topics('hmm', 'ok') == []
    assert global_doc(store)[TOPICS_FIELD] == []


def test_store_failure_is_swallowed(store, memory_config, executor, clock):
    store.fail_writes = True
    service = make_service(store, memory_config, executor, clock, draw=0.0)

    assert service.record_global_topics('I love my job', 'nice') is None
    assert service.maybe_record_global_topics('I love my job', 'nice') is True


def test_merge_topics_keeps_first_seen_order():
    assert merge_topics(['work', 'food'], ['food', 'travel'], []) == ['work', 'food', 'travel']
