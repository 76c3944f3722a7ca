"""
MCP Interface Layer using fastmcp for chat platforms and agents.
"""
from typing import Any, Dict, Optional

from fastmcp import FastMCP

from .models.core import ConversationTurn, RetrievalResult
from .services.chat_service import ChatService, ChatServiceError
from .services.global_aggregation import GlobalAggregationService
from .services.profile_management import ProfileManagementError, ProfileManagementService
from .utils.bedrock_llm import BedrockLLM
from .utils.config import config
from .utils.document_store import GLOBAL_COLLECTION, USER_COLLECTION
from .utils.health_check import get_system_info
from .utils.logging_config import get_logger
from .utils.opensearch_client import OpenSearchClient, OpenSearchError
from .utils.timestamp_utils import to_iso

logger = get_logger(__name__)

# Initialize FastMCP application
mcp = FastMCP('Conversation Memory')

store = OpenSearchClient(config.opensearch)
try:
    store.create_index_if_not_exists(USER_COLLECTION)
    store.create_index_if_not_exists(GLOBAL_COLLECTION)
except OpenSearchError as e:
    logger.warning(f'Failed to create OpenSearch indexes: {e}')

profile_service = ProfileManagementService(store)
global_service = GlobalAggregationService(store)
chat_service = ChatService(profile_service, global_service, BedrockLLM(config.bedrock_llm))


def _require_user_id(user_id: str) -> None:
    if not user_id or not user_id.strip():
        raise ValueError('User ID is required')


def _turn_to_dict(turn: ConversationTurn) -> Dict[str, Any]:
    return turn.to_document()


def _result_to_dict(result: RetrievalResult) -> Dict[str, Any]:
    info = result.user_info
    return {
        'user_info': {
            'user_id': info.user_id,
            'username': info.username,
            'mood': info.mood,
            'preferences': info.preferences,
            'last_active': to_iso(info.last_active),
            'context_tokens': info.context_tokens
        },
        'recent_history': [_turn_to_dict(t) for t in result.recent_history],
        'relevant_history': [_turn_to_dict(t) for t in result.relevant_history],
        'previous_bot_message': result.previous_bot_message,
        'global_topics': result.global_topics,
        'bot_personality': result.bot_personality
    }


@mcp.tool()
def chat(user_id: str, message: str, username: Optional[str] = None) -> str:
    """Reply to a user's message using their conversation memory.

    Args:
        user_id: User ID
        message: Incoming message
        username: Display name, if known

    Returns:
        Generated reply
    """
    try:
        _require_user_id(user_id)
        return chat_service.chat(user_id, message, username)
    except (ChatServiceError, ProfileManagementError) as e:
        logger.error(f'Chat error in MCP chat: {e}')
        raise Exception(f'Chat failed: {e}')


@mcp.tool()
def retrieve_context(user_id: str, query: str) -> Dict[str, Any]:
    """Retrieve the recent and relevant conversation context for a message.

    Args:
        user_id: User ID
        query: Incoming message

    Returns:
        Context with user info, recent and relevant history and global topics
    """
    _require_user_id(user_id)
    result = profile_service.retrieve_context(user_id, query)
    logger.debug(f'MCP retrieve returned {len(result.relevant_history)} turns for user {user_id}')
    return _result_to_dict(result)


@mcp.tool()
def record_turn(user_id: str, message: str, response: str, username: Optional[str] = None) -> Dict[str, Any]:
    """Record a completed exchange generated outside this server.

    Args:
        user_id: User ID
        message: User message
        response: Reply that was sent
        username: Display name, if known

    Returns:
        Summary of the updated profile
    """
    try:
        _require_user_id(user_id)
        profile = profile_service.record_turn(user_id, username, message, response)
        global_service.maybe_record_global_topics(message, response)
        return {
            'user_id': profile.user_id,
            'mood': profile.mood,
            'history_length': len(profile.conversation_history),
            'context_tokens': profile.context_tokens
        }
    except ProfileManagementError as e:
        logger.error(f'Profile error in MCP record_turn: {e}')
        raise Exception(f'Recording turn failed: {e}')


@mcp.tool()
def health() -> Dict[str, Any]:
    """Report configuration and component health."""
    return get_system_info()


if __name__ == '__main__':
    mcp.run(transport=config.mcp.transport, host=config.mcp.host, port=config.mcp.port)
