"""Tests for the Bedrock generator client with a stubbed runtime."""

from unittest.mock import MagicMock, patch

import pytest
from botocore.exceptions import ClientError

from convo_memory.utils.bedrock_llm import BedrockLLM, BedrockLLMError
from convo_memory.utils.config import BedrockLLMConfig

THROTTLED = ClientError({'Error': {'Code': 'ThrottlingException', 'Message': 'slow down'}}, 'Converse')


def converse_response(*texts):
    return {
        'output': {'message': {'role': 'assistant', 'content': [{'text': t} for t in texts]}},
        'usage': {'inputTokens': 12, 'outputTokens': 3}
    }


@pytest.fixture
def runtime():
    return MagicMock()


@pytest.fixture
def llm(runtime):
    config = BedrockLLMConfig(region='us-east-1',
                              model_id='test-model',
                              max_tokens=256,
                              temperature=0.7,
                              retry_attempts=3,
                              retry_delay=0.1)
    return BedrockLLM(config, client=runtime)


def test_complete_sends_single_user_message(llm, runtime):
    runtime.converse.return_value = converse_response('Hello', 'there')

    assert llm.complete('prompt text', 'system text') == 'Hello there'

    kwargs = runtime.converse.call_args.kwargs
    assert kwargs['modelId'] == 'test-model'
    assert kwargs['messages'] == [{'role': 'user', 'content': [{'text': 'prompt text'}]}]
    assert kwargs['system'] == [{'text': 'system text'}]
    assert kwargs['inferenceConfig'] == {'maxTokens': 256, 'temperature': 0.7, 'stopSequences': []}


def test_usage_is_returned(llm, runtime):
    runtime.converse.return_value = converse_response('ok')
    text, usage = llm.generate_response([], 'sys', temperature=0.0)
    assert text == 'ok'
    assert usage == {'inputTokens': 12, 'outputTokens': 3}
    assert runtime.converse.call_args.kwargs['inferenceConfig']['temperature'] == 0.0


@patch('convo_memory.utils.bedrock_llm.time.sleep')
def test_retries_throttling_then_succeeds(sleep, llm, runtime):
    runtime.converse.side_effect = [THROTTLED, converse_response('recovered')]

    assert llm.complete('prompt', 'sys') == 'recovered'
    assert runtime.converse.call_count == 2
    sleep.assert_called_once()


@patch('convo_memory.utils.bedrock_llm.time.sleep')
def test_gives_up_after_retry_attempts(sleep, llm, runtime):
    runtime.converse.side_effect = THROTTLED

    with pytest.raises(BedrockLLMError):
        llm.complete('prompt', 'sys')
    assert runtime.converse.call_count == 3
    assert sleep.call_count == 2


def test_unexpected_errors_are_not_retried(llm, runtime):
    runtime.converse.side_effect = ValueError('bad payload')
    with pytest.raises(BedrockLLMError):
        llm.complete('prompt', 'sys')
    assert runtime.converse.call_count == 1


def test_health_check_reports_failure(llm, runtime):
    runtime.converse.side_effect = ValueError('down')
    assert llm.health_check() is False
