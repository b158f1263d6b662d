"""
Configuration
-------------
Resolves and loads the agent configuration once, at startup.

Resolution order for the file path:
    1. explicit path (``--config``)
    2. $MACRON_CONFIG
    3. ~/.config/macron/config.toml

The format follows the file extension: .toml, .yaml/.yml or .json.
The result is a frozen AgentConfig handed explicitly to every component;
nothing else reads the environment.

Example (TOML):

    [server]
    url = "macron.example.com"
    email = "me@example.com"
    password = "hunter2"

    [[functions]]
    id = 1
    name = "lock"
    description = "Lock the screen"
    command = "/usr/local/bin/lock-screen"
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple
import json
import logging
import os
import tomllib

import yaml

from commands.registry import (
    FunctionDefinition, FunctionRegistry, LOOKUP_BY_INDEX, LOOKUP_POLICIES, MAX_FUNCTION_ID,
)
from core.errors import ConfigInvalid, ConfigMissing


CONFIG_ENV_VAR = "MACRON_CONFIG"
DEFAULT_CONFIG_RELATIVE = Path(".config") / "macron" / "config.toml"
DEFAULT_RECEIVER_NAME = "python"

_logger = logging.getLogger("macron.config")


@dataclass(frozen=True)
class ServerConfig:
    """Where the server lives and how to prove who we are."""
    url: str
    password: str = field(repr=False)
    email: Optional[str] = None
    tls: bool = True

    @property
    def uses_token_login(self) -> bool:
        return self.email is not None

    @property
    def http_base_url(self) -> str:
        scheme = "https" if self.tls else "http"
        return f"{scheme}://{self.url}"

    @property
    def receiver_url(self) -> str:
        scheme = "wss" if self.tls else "ws"
        return f"{scheme}://{self.url}/v2/receiver"


@dataclass(frozen=True)
class AgentOptions:
    """Behavior switches for the dispatch loop."""
    lookup: str = LOOKUP_BY_INDEX
    strict: bool = False
    receiver_name: str = DEFAULT_RECEIVER_NAME
    disclose_password: Optional[bool] = None


@dataclass(frozen=True)
class AgentConfig:
    """Everything the agent needs, materialized once."""
    server: ServerConfig
    functions: Tuple[FunctionDefinition, ...] = ()
    agent: AgentOptions = field(default_factory=AgentOptions)
    source: Optional[Path] = None

    def build_registry(self) -> FunctionRegistry:
        return FunctionRegistry(self.functions, lookup=self.agent.lookup)


def resolve_config_path(
    explicit: Optional[str] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Path:
    """Work out which file to load. Does not check that it exists."""
    if explicit:
        return Path(explicit).expanduser()

    env = os.environ if environ is None else environ
    from_env = env.get(CONFIG_ENV_VAR)
    if from_env:
        return Path(from_env).expanduser()

    home = env.get("HOME")
    if not home:
        raise ConfigMissing(
            f"No ${CONFIG_ENV_VAR} set and cannot find the HOME directory"
        )
    return Path(home) / DEFAULT_CONFIG_RELATIVE


def _read_file(path: Path) -> Dict[str, Any]:
    suffix = path.suffix.lower()
    try:
        if suffix in (".yaml", ".yml"):
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        elif suffix == ".json":
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        else:
            with open(path, "rb") as f:
                data = tomllib.load(f)
    except (yaml.YAMLError, json.JSONDecodeError, tomllib.TOMLDecodeError, UnicodeDecodeError) as e:
        raise ConfigInvalid(f"Could not parse {path}: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigInvalid(f"Top level of {path} must be a mapping")
    return data


def _require_str(section: Mapping[str, Any], key: str, where: str) -> str:
    value = section.get(key)
    if not isinstance(value, str) or not value:
        raise ConfigInvalid(f"{where}.{key} must be a non-empty string")
    return value


def _parse_server(data: Any) -> ServerConfig:
    if not isinstance(data, dict):
        raise ConfigInvalid("Missing [server] section")

    email = data.get("email")
    if email is not None and (not isinstance(email, str) or not email):
        raise ConfigInvalid("server.email must be a non-empty string")

    tls = data.get("tls", True)
    if not isinstance(tls, bool):
        raise ConfigInvalid("server.tls must be true or false")

    url = _require_str(data, "url", "server")
    if "://" in url:
        raise ConfigInvalid("server.url is a host name, not a URL (drop the scheme)")

    return ServerConfig(
        url=url.rstrip("/"),
        password=_require_str(data, "password", "server"),
        email=email,
        tls=tls,
    )


def _parse_function(data: Any, position: int) -> FunctionDefinition:
    where = f"functions[{position}]"
    if not isinstance(data, dict):
        raise ConfigInvalid(f"{where} must be a mapping")

    func_id = data.get("id")
    if isinstance(func_id, bool) or not isinstance(func_id, int) or not 0 <= func_id <= MAX_FUNCTION_ID:
        raise ConfigInvalid(f"{where}.id must be an integer between 0 and {MAX_FUNCTION_ID}")

    description = data.get("description", "")
    if not isinstance(description, str):
        raise ConfigInvalid(f"{where}.description must be a string")

    command = _require_str(data, "command", where)
    if "\x00" in command:
        raise ConfigInvalid(f"{where}.command must not contain NUL bytes")

    return FunctionDefinition(
        id=func_id,
        name=_require_str(data, "name", where),
        description=description,
        command=command,
    )


def _parse_options(data: Any) -> AgentOptions:
    if data is None:
        return AgentOptions()
    if not isinstance(data, dict):
        raise ConfigInvalid("[agent] must be a mapping")

    lookup = data.get("lookup", LOOKUP_BY_INDEX)
    if lookup not in LOOKUP_POLICIES:
        raise ConfigInvalid(f"agent.lookup must be one of {', '.join(LOOKUP_POLICIES)}")

    strict = data.get("strict", False)
    if not isinstance(strict, bool):
        raise ConfigInvalid("agent.strict must be true or false")

    receiver_name = data.get("receiver_name", DEFAULT_RECEIVER_NAME)
    if not isinstance(receiver_name, str) or not receiver_name:
        raise ConfigInvalid("agent.receiver_name must be a non-empty string")

    disclose_password = data.get("disclose_password")
    if disclose_password is not None and not isinstance(disclose_password, bool):
        raise ConfigInvalid("agent.disclose_password must be true or false")

    return AgentOptions(
        lookup=lookup,
        strict=strict,
        receiver_name=receiver_name,
        disclose_password=disclose_password,
    )


def parse_config(data: Mapping[str, Any], source: Optional[Path] = None) -> AgentConfig:
    """Validate a raw mapping into an AgentConfig."""
    functions = data.get("functions", [])
    if not isinstance(functions, list):
        raise ConfigInvalid("functions must be a list")

    parsed = tuple(_parse_function(f, i) for i, f in enumerate(functions))

    seen = set()
    for func in parsed:
        if func.id in seen:
            _logger.warning(f"Duplicate function id {func.id}; the first one in the list wins")
        seen.add(func.id)

    return AgentConfig(
        server=_parse_server(data.get("server")),
        functions=parsed,
        agent=_parse_options(data.get("agent")),
        source=source,
    )


def load_config(path: Path) -> AgentConfig:
    """Load and validate the configuration file at ``path``."""
    path = Path(path)
    if not path.is_file():
        raise ConfigMissing(f"Config file not found: {path}", details={"path": str(path)})

    config = parse_config(_read_file(path), source=path)
    _logger.info(f"Loaded config from {path} ({len(config.functions)} functions)")
    return config
