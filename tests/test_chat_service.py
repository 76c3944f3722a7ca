"""Tests for prompt assembly and the chat request cycle."""

from unittest.mock import MagicMock

import pytest
from conftest import FixedRandom, make_history, make_turn

from convo_memory.models.core import RetrievalResult, UserInfo
from convo_memory.services.chat_service import (ChatService, ChatServiceError, build_prompt, history_username,
                                                 resolve_username)
from convo_memory.services.global_aggregation import TOPICS_FIELD, GlobalAggregationService
from convo_memory.services.profile_management import ProfileManagementService
from convo_memory.utils.bedrock_llm import BedrockLLMError
from convo_memory.utils.document_store import GLOBAL_COLLECTION, GLOBAL_DOCUMENT_ID, USER_COLLECTION


@pytest.mark.parametrize('message, provided, expected', [
    ('hello Jordan', 'Sam', 'Sam'),
    ('ping @alex please', None, 'alex'),
    ('hey Jordan, how are you', None, 'Jordan'),
    ('hey there', None, None),
    ('hi Al', None, None),
    ('what is new', None, None),
])
def test_resolve_username(message, provided, expected):
    assert resolve_username(message, provided) == expected


def test_history_username_scans_past_messages():
    turns = [make_turn(0), make_turn(1, message='hey there'), make_turn(2, message='ping @riley'),
             make_turn(3, message='hello Jordan')]
    assert history_username(turns) == 'riley'
    assert history_username(turns[:2]) is None
    assert history_username([]) is None


class TestBuildPrompt:

    def test_minimal_context(self):
        context = RetrievalResult.default('u1', 'friendly and helpful')
        prompt = build_prompt(context, 'Sam', 'hello')

        assert prompt.startswith('You are a friendly and helpful companion.')
        assert '- You are talking to Sam (user ID: u1)' in prompt
        assert '- Last active: first time' in prompt
        assert 'RECENT CONVERSATION HISTORY' not in prompt
        assert 'TRENDING TOPICS' not in prompt
        assert prompt.endswith('Sam: hello\nYou:')

    def test_full_context(self):
        history = make_history(12)
        context = RetrievalResult(user_info=UserInfo(user_id='u1',
                                                     username='Sam',
                                                     mood='happy',
                                                     preferences={'likes': ['tea']},
                                                     context_tokens=['Paris']),
                                  bot_personality='witty',
                                  recent_history=history[-5:],
                                  relevant_history=history[:2] + history[-5:],
                                  previous_bot_message='see you',
                                  global_topics=['work', 'food'])

        prompt = build_prompt(context, 'Sam', 'hello again')

        assert '- Current mood: happy' in prompt
        assert '- User preferences: {"likes": ["tea"]}' in prompt
        assert '- Important entities mentioned by user: Paris' in prompt
        assert 'YOUR MOST RECENT REPLY TO USER:\nsee you' in prompt

        recent_section = prompt.split('RECENT CONVERSATION HISTORY:\n')[1].split('OTHER RELEVANT')[0]
        assert 'status update number 11' in recent_section
        assert 'status update number 8' not in recent_section

        older_section = prompt.split('OTHER RELEVANT PAST CONVERSATIONS:\n')[1].split('TRENDING')[0]
        assert 'status update number 0' in older_section
        assert 'status update number 7' in older_section
        assert 'status update number 11' not in older_section

        assert 'TRENDING TOPICS AMONG USERS:\n- work\n- food\n' in prompt


@pytest.fixture
def llm():
    return MagicMock()


@pytest.fixture
def chat_service(store, memory_config, executor, clock, llm):
    profiles = ProfileManagementService(store, memory_config=memory_config, clock=clock)
    aggregator = GlobalAggregationService(store,
                                          memory_config=memory_config,
                                          rng=FixedRandom(0.0),
                                          executor=executor,
                                          clock=clock)
    return ChatService(profiles, aggregator, llm)


def test_chat_records_turn_and_topics(chat_service, store, llm, executor):
    llm.complete.return_value = 'Sure thing 😊 :)'

    reply = chat_service.chat('u1', 'hello Jordan, I love my job')

    assert reply == 'Sure thing'
    prompt = llm.complete.call_args.args[0]
    assert prompt.endswith('Jordan: hello Jordan, I love my job\nYou:')

    doc = store.collections[USER_COLLECTION]['u1']
    assert doc['username'] == 'Jordan'
    assert doc['lastBotResponse'] == 'Sure thing'
    assert doc['conversationHistory'][0]['response'] == 'Sure thing'

    assert executor.submitted == 1
    assert store.collections[GLOBAL_COLLECTION][GLOBAL_DOCUMENT_ID][TOPICS_FIELD] == ['relationships', 'work']


def test_chat_uses_stored_username(chat_service, store, llm):
    store.put(USER_COLLECTION, 'u1', {'userId': 'u1', 'username': 'Sam',
                                      'conversationHistory': [make_turn(0).to_document()]})
    llm.complete.return_value = 'Welcome back'

    chat_service.chat('u1', 'what did I say before?')

    assert store.collections[USER_COLLECTION]['u1']['username'] == 'Sam'
    assert 'YOUR MOST RECENT REPLY TO USER:\nokay noted' in llm.complete.call_args.args[0]


def test_generation_failure_records_nothing(chat_service, store, llm, executor):
    llm.complete.side_effect = BedrockLLMError('throttled')

    with pytest.raises(ChatServiceError):
        chat_service.chat('u1', 'hello')

    assert USER_COLLECTION not in store.collections
    assert executor.submitted == 0


def test_chat_falls_back_to_name_in_history(chat_service, store, llm):
    store.put(USER_COLLECTION, 'u1', {'userId': 'u1',
                                      'conversationHistory': [make_turn(0, message='hey Jordan, long day').to_document()]})
    llm.complete.return_value = 'Rest up'

    chat_service.chat('u1', 'how are things')

    assert '- You are talking to Jordan (user ID: u1)' in llm.complete.call_args.args[0]
    assert store.collections[USER_COLLECTION]['u1']['username'] == 'Jordan'


def test_chat_defaults_to_generic_name(chat_service, store, llm):
    llm.complete.return_value = 'Not much'

    chat_service.chat('u1', 'what is new')

    assert '- You are talking to User (user ID: u1)' in llm.complete.call_args.args[0]
