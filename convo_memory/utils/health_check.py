"""
Health check utilities for the application.
"""

from typing import Any, Dict

from .bedrock_llm import BedrockLLM
from .config import config
from .logging_config import get_logger
from .opensearch_client import OpenSearchClient

logger = get_logger(__name__)


def get_health_status() -> Dict[str, Any]:
    """Get health status of the profile store and the generator.

    Returns:
        Dictionary with health status of each component
    """
    health_status = {}

    try:
        opensearch = OpenSearchClient(config.opensearch)
        health_status['profile_store'] = {
            'healthy': opensearch.health_check(),
            'service': 'OpenSearch',
            'endpoint': config.opensearch.endpoint,
            'index_prefix': config.opensearch.index_name
        }
    except Exception as e:
        logger.warning(f'OpenSearch health probe failed: {e}')
        health_status['profile_store'] = {'healthy': False, 'service': 'OpenSearch', 'error': str(e)}

    try:
        llm = BedrockLLM(config.bedrock_llm)
        health_status['generator'] = {
            'healthy': llm.health_check(),
            'service': 'Amazon Bedrock LLM',
            'model': config.bedrock_llm.model_id
        }
    except Exception as e:
        logger.warning(f'Bedrock LLM health probe failed: {e}')
        health_status['generator'] = {'healthy': False, 'service': 'Amazon Bedrock LLM', 'error': str(e)}

    return health_status


def get_system_info() -> Dict[str, Any]:
    """Get system information and effective memory settings."""
    memory = config.memory
    return {
        'service_name': 'convo-memory',
        'version': '0.1.0',
        'configuration': {
            'bedrock_llm_model': config.bedrock_llm.model_id,
            'recent_history_size': memory.recent_history_size,
            'relevant_history_size': memory.relevant_history_size,
            'max_context_turns': memory.max_context_turns,
            'max_history': memory.max_history,
            'global_sample_rate': memory.global_sample_rate
        },
        'health_status': get_health_status()
    }
