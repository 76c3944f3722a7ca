"""
Configuration management for AWS services and memory engine settings.
"""

import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ('1', 'true', 'yes', 'on')


@dataclass
class BedrockLLMConfig:
    """Configuration for Amazon Bedrock LLM service."""
    region: str
    model_id: str
    max_tokens: int
    temperature: float
    retry_attempts: int
    retry_delay: float


@dataclass
class OpenSearchConfig:
    """Configuration for the OpenSearch profile document store."""
    endpoint: str
    port: int
    region: str
    index_name: str
    use_ssl: bool
    use_aws_auth: bool
    aws_service: str
    retry_on_conflict: int


@dataclass
class MemoryConfig:
    """Configuration for context retrieval, retention and global aggregation."""
    recent_history_size: int
    relevant_history_size: int
    max_context_turns: int
    max_history: int
    keep_first_turns: int
    keep_last_turns: int
    global_sample_rate: float
    global_topic_window: int
    global_topics_in_context: int
    default_personality: str


@dataclass
class MCPConfig:
    """Configuration for MCP interface."""
    transport: str
    host: str
    port: int


@dataclass
class AppConfig:
    """Main application configuration."""
    environment: str
    log_level: str
    bedrock_llm: BedrockLLMConfig
    opensearch: OpenSearchConfig
    memory: MemoryConfig
    mcp: MCPConfig


def load_config() -> AppConfig:
    """Load configuration from environment variables with defaults."""
    environment = os.getenv('ENVIRONMENT', 'development')

    # Bedrock configuration
    bedrock_llm_config = BedrockLLMConfig(region=os.getenv('BEDROCK_LLM_AWS_REGION', 'us-east-1'),
                                          model_id=os.getenv('BEDROCK_LLM_MODEL_ID', 'anthropic.claude-3-haiku-20240307-v1:0'),
                                          max_tokens=int(os.getenv('BEDROCK_LLM_MAX_TOKENS', '512')),
                                          temperature=float(os.getenv('BEDROCK_LLM_TEMPERATURE', '0.8')),
                                          retry_attempts=int(os.getenv('BEDROCK_LLM_RETRY_ATTEMPTS', '3')),
                                          retry_delay=float(os.getenv('BEDROCK_LLM_RETRY_DELAY', '1.0')))

    # Profile store configuration
    opensearch_config = OpenSearchConfig(endpoint=os.getenv('OPENSEARCH_ENDPOINT', 'localhost'),
                                         port=int(os.getenv('OPENSEARCH_PORT', '443')),
                                         region=os.getenv('OPENSEARCH_AWS_REGION', 'us-east-1'),
                                         index_name=os.getenv('OPENSEARCH_INDEX', 'convo_memory'),
                                         use_ssl=_env_bool('OPENSEARCH_USE_SSL', 'true'),
                                         use_aws_auth=_env_bool('OPENSEARCH_USE_AWS_AUTH', 'true'),
                                         aws_service=os.getenv('OPENSEARCH_AWS_SERVICE', 'es'),
                                         retry_on_conflict=int(os.getenv('OPENSEARCH_RETRY_ON_CONFLICT', '3')))

    # Memory configuration
    memory_config = MemoryConfig(recent_history_size=int(os.getenv('MEMORY_RECENT_HISTORY_SIZE', '5')),
                                 relevant_history_size=int(os.getenv('MEMORY_RELEVANT_HISTORY_SIZE', '8')),
                                 max_context_turns=int(os.getenv('MEMORY_MAX_CONTEXT_TURNS', '10')),
                                 max_history=int(os.getenv('MEMORY_MAX_HISTORY', '50')),
                                 keep_first_turns=int(os.getenv('MEMORY_KEEP_FIRST_TURNS', '5')),
                                 keep_last_turns=int(os.getenv('MEMORY_KEEP_LAST_TURNS', '45')),
                                 global_sample_rate=float(os.getenv('MEMORY_GLOBAL_SAMPLE_RATE', '0.15')),
                                 global_topic_window=int(os.getenv('MEMORY_GLOBAL_TOPIC_WINDOW', '25')),
                                 global_topics_in_context=int(os.getenv('MEMORY_GLOBAL_TOPICS_IN_CONTEXT', '5')),
                                 default_personality=os.getenv('MEMORY_DEFAULT_PERSONALITY', 'friendly and helpful'))

    # MCP configuration
    mcp_config = MCPConfig(transport=os.getenv('MCP_TRANSPORT', 'sse'),
                           host=os.getenv('MCP_HOST', '127.0.0.1'),
                           port=int(os.getenv('MCP_PORT', '8000')))

    return AppConfig(environment=environment,
                     log_level=os.getenv('LOG_LEVEL', 'INFO'),
                     bedrock_llm=bedrock_llm_config,
                     opensearch=opensearch_config,
                     memory=memory_config,
                     mcp=mcp_config)


# Global configuration instance
config = load_config()
