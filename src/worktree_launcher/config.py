"""User configuration for worktree-launcher.

Stored at ~/.config/worktree-launcher/config.json, or wherever the
WT_CONFIG_PATH environment variable points. Every key is optional:

    {
      "default_tool": "claude",
      "default_branch": "develop",
      "remote": "origin",
      "tools": {
        "aider": {"command": "aider --no-auto-commits", "label": "Aider"}
      }
    }
"""

import copy
import json
import os
from pathlib import Path
from typing import Any

from .constants import CONFIG_PATH_ENV_VAR, DEFAULT_AI_TOOL, DEFAULT_AI_TOOLS, DEFAULT_REMOTE
from .exceptions import ConfigError
from .logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_CONFIG: dict[str, Any] = {
    "default_tool": DEFAULT_AI_TOOL,
    "default_branch": None,
    "remote": DEFAULT_REMOTE,
    "tools": {},
}


def get_config_path() -> Path:
    """Get the path to the config file."""
    override = os.environ.get(CONFIG_PATH_ENV_VAR)
    if override:
        return Path(override).expanduser()
    return Path.home() / ".config" / "worktree-launcher" / "config.json"


def _validate(config: dict[str, Any]) -> None:
    for key in ("default_tool", "remote"):
        if not isinstance(config.get(key), str) or not config[key]:
            raise ConfigError(f"'{key}' must be a non-empty string")

    default_branch = config.get("default_branch")
    if default_branch is not None and not isinstance(default_branch, str):
        raise ConfigError("'default_branch' must be a string")

    tools = config.get("tools")
    if not isinstance(tools, dict):
        raise ConfigError("'tools' must be an object mapping tool names to settings")
    for name, settings in tools.items():
        if not isinstance(settings, dict) or not isinstance(settings.get("command"), str):
            raise ConfigError(f"Tool '{name}' needs a 'command' string")


def load_config() -> dict[str, Any]:
    """
    Load the configuration, filling in defaults for missing keys.

    A missing or unreadable file yields the defaults. Unknown keys are kept.

    Raises:
        ConfigError: If a known key holds a value of the wrong type
    """
    config = copy.deepcopy(DEFAULT_CONFIG)
    config_path = get_config_path()

    if not config_path.exists():
        return config

    try:
        with open(config_path) as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        logger.warning("Ignoring unreadable config file %s: %s", config_path, e)
        return config

    if not isinstance(data, dict):
        logger.warning("Ignoring config file %s: top level is not an object", config_path)
        return config

    config.update(data)
    _validate(config)
    return config


def save_config(config: dict[str, Any]) -> None:
    """
    Write the configuration to disk.

    Raises:
        ConfigError: If the configuration is invalid
    """
    _validate(config)
    config_path = get_config_path()
    config_path.parent.mkdir(parents=True, exist_ok=True)

    with open(config_path, "w") as f:
        json.dump(config, f, indent=2)


def get_ai_tools(config: dict[str, Any] | None = None) -> dict[str, dict[str, str]]:
    """
    Get the available AI tools: built-in presets overlaid with user tools.

    Returns:
        Mapping of tool name to its command, label and description, in
        menu order
    """
    if config is None:
        config = load_config()

    tools = copy.deepcopy(DEFAULT_AI_TOOLS)
    for name, settings in config["tools"].items():
        merged = dict(tools.get(name, {}))
        merged.update(settings)
        merged.setdefault("label", name)
        merged.setdefault("description", "")
        tools[name] = merged
    return tools
