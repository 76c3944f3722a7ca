"""
Chat Service: one request/response cycle around the memory engine.

Resolves the user's display name, retrieves context, asks the generator for a reply,
records the turn and schedules the sampled global topic update.
"""

import json
from typing import List, Optional

from ..models.core import ConversationTurn, RetrievalResult
from ..utils.bedrock_llm import BedrockLLM, BedrockLLMError
from ..utils.logging_config import get_logger
from ..utils.text_utils import greeting_name, strip_emojis
from ..utils.timestamp_utils import format_timestamp, time_since
from .global_aggregation import GlobalAggregationService
from .profile_management import ProfileManagementService, mention_username

logger = get_logger(__name__)

DEFAULT_USERNAME = 'User'
PROMPT_RECENT_TURNS = 3
PROMPT_CONTEXT_TOKENS = 10

SYSTEM_PROMPT = """You are a conversational companion with memory of past conversations with this user.
Keep replies short (1-3 sentences), stay consistent with what you said before and refer back to
earlier topics when it helps. Do not use emojis."""


class ChatServiceError(Exception):
    """Custom exception for chat request failures."""
    pass


def resolve_username(message: Optional[str], provided: Optional[str] = None) -> Optional[str]:
    """Explicit name, else an @mention, else a name after a greeting."""
    return provided or mention_username(message) or greeting_name(message)


def history_username(turns: List[ConversationTurn]) -> Optional[str]:
    """First name a user gave in past messages, by greeting or @mention."""
    for turn in turns:
        name = greeting_name(turn.message) or mention_username(turn.message)
        if name:
            return name
    return None


def _format_turns(turns: List[ConversationTurn], username: str) -> str:
    return ''.join(f'[{format_timestamp(turn.timestamp)}]\n{username}: {turn.message}\nYou: {turn.response}\n'
                   for turn in turns)


def build_prompt(context: RetrievalResult, username: str, message: str) -> str:
    """Render the retrieved context and the new message into a generator prompt.

    Args:
        context: Result of ProfileManagementService.retrieve_context
        username: Resolved display name
        message: The incoming message

    Returns:
        Prompt text
    """
    info = context.user_info
    last_active = time_since(info.last_active) + ' ago' if info.last_active else 'first time'

    lines = [
        f'You are a {context.bot_personality} companion.',
        '',
        'USER INFORMATION:',
        f'- You are talking to {username} (user ID: {info.user_id})',
        f'- Last active: {last_active}',
        f'- Current mood: {info.mood}',
    ]
    if info.preferences:
        lines.append(f'- User preferences: {json.dumps(info.preferences)}')
    if info.context_tokens:
        lines.append(f"- Important entities mentioned by user: {', '.join(info.context_tokens[-PROMPT_CONTEXT_TOKENS:])}")
    prompt = '\n'.join(lines) + '\n\n'

    if context.previous_bot_message:
        prompt += f'YOUR MOST RECENT REPLY TO USER:\n{context.previous_bot_message}\n\n'

    recent = context.recent_history[-PROMPT_RECENT_TURNS:]
    if recent:
        prompt += 'RECENT CONVERSATION HISTORY:\n' + _format_turns(recent, username) + '\n'

    shown = {turn.identity for turn in recent}
    older = [turn for turn in context.relevant_history if turn.identity not in shown]
    if older:
        prompt += 'OTHER RELEVANT PAST CONVERSATIONS:\n' + _format_turns(older, username) + '\n'

    if context.global_topics:
        prompt += 'TRENDING TOPICS AMONG USERS:\n' + ''.join(f'- {topic}\n' for topic in context.global_topics) + '\n'

    prompt += f'{username}: {message}\nYou:'
    return prompt


class ChatService:
    """Orchestrates retrieval, generation and memory updates for one message."""

    def __init__(self, profiles: ProfileManagementService, aggregator: GlobalAggregationService, llm: BedrockLLM):
        self.profiles = profiles
        self.aggregator = aggregator
        self.llm = llm

        logger.info('Initialized ChatService')

    def chat(self, user_id: str, message: str, username: Optional[str] = None) -> str:
        """Answer a message using the user's memory, then update that memory.

        Args:
            user_id: External user identity
            message: The incoming message
            username: Display name supplied by the platform, if any

        Returns:
            The generated reply with emojis removed

        Raises:
            ChatServiceError: If generation fails
            ProfileManagementError: If the turn cannot be recorded
        """
        effective_username = resolve_username(message, username)
        context = self.profiles.retrieve_context(user_id, message)
        effective_username = (effective_username or context.user_info.username
                              or history_username(context.relevant_history) or DEFAULT_USERNAME)

        prompt = build_prompt(context, effective_username, message)
        try:
            reply = strip_emojis(self.llm.complete(prompt, SYSTEM_PROMPT))
        except BedrockLLMError as e:
            logger.error(f'Generation failed for user {user_id}: {e}')
            raise ChatServiceError(f'Chat failed: {e}')

        self.profiles.record_turn(user_id, effective_username, message, reply)
        self.aggregator.maybe_record_global_topics(message, reply)

        logger.debug(f'Answered user {user_id} with {len(reply)} characters')
        return reply
