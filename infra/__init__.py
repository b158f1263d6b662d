# Infrastructure module - Logging and configuration
# Configuration is resolved once at startup and passed around explicitly

from .logging import (
    get_logger, configure_logging, MessageContext,
    get_message_id, generate_message_id, parse_level,
)
from .config import (
    AgentConfig, AgentOptions, ServerConfig,
    load_config, parse_config, resolve_config_path,
    CONFIG_ENV_VAR,
)

__all__ = [
    # Logging
    "get_logger",
    "configure_logging",
    "MessageContext",
    "get_message_id",
    "generate_message_id",
    "parse_level",
    # Config
    "AgentConfig",
    "AgentOptions",
    "ServerConfig",
    "load_config",
    "parse_config",
    "resolve_config_path",
    "CONFIG_ENV_VAR",
]
