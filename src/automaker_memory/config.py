"""Configuration loader.

Loads settings from ~/.automaker/config.json; a few environment variables
override the file (they may come from a .env file loaded by the CLI).
"""

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path.home() / ".automaker" / "config.json"
DEFAULT_MAX_MEMORY_FILES = 5

ENV_CONFIG_PATH = "AUTOMAKER_CONFIG"
ENV_MAX_MEMORY_FILES = "AUTOMAKER_MEMORY_MAX_FILES"
ENV_LOG_DIR = "AUTOMAKER_MEMORY_LOG_DIR"


@dataclass
class MemoryConfig:
    """Settings for context and memory loading.

    Attributes:
        max_memory_files: Maximum memory files injected per task (0 disables).
        include_memory: Whether memory files are loaded at all.
        initialize_memory: Whether a missing memory folder is created.
        log_dir: Directory for JSONL event logs; None disables them.
    """

    max_memory_files: int = DEFAULT_MAX_MEMORY_FILES
    include_memory: bool = True
    initialize_memory: bool = True
    log_dir: Path | None = None

    def __post_init__(self) -> None:
        if self.max_memory_files < 0:
            raise ValueError("max_memory_files cannot be negative")
        if self.log_dir is not None:
            self.log_dir = Path(self.log_dir).expanduser()


def _config_path(config_path: Path | None) -> Path:
    if config_path is not None:
        return config_path
    env_path = os.environ.get(ENV_CONFIG_PATH)
    if env_path:
        return Path(env_path).expanduser()
    return DEFAULT_CONFIG_PATH


def load_config(config_path: Path | None = None) -> MemoryConfig:
    """Load MemoryConfig from a JSON file plus environment overrides.

    The config file should have this structure:
    ```json
    {
      "memory": {
        "max_files": 5,
        "include": true,
        "initialize": true,
        "log_dir": "~/.automaker/logs"
      }
    }
    ```

    Args:
        config_path: Path to config file. Uses $AUTOMAKER_CONFIG or
            DEFAULT_CONFIG_PATH if None.

    Returns:
        MemoryConfig instance with loaded values.
    """
    path = _config_path(config_path)
    data: dict[str, Any] = {}

    if not path.exists():
        logger.debug("No config file at %s, using defaults", path)
    else:
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            logger.warning("Invalid JSON in %s: %s. Using defaults.", path, e)
        except OSError as e:
            logger.warning("Cannot read %s: %s. Using defaults.", path, e)

    if not isinstance(data, dict):
        logger.warning("Config in %s is not an object. Using defaults.", path)
        data = {}

    return _apply_env(_parse_config(data))


def _parse_config(data: dict[str, Any]) -> MemoryConfig:
    """Parse config dictionary into MemoryConfig.

    Invalid individual values fall back to their defaults.
    """
    memory_data = data.get("memory", {})
    if not isinstance(memory_data, dict):
        memory_data = {}

    max_files = memory_data.get("max_files", DEFAULT_MAX_MEMORY_FILES)
    if isinstance(max_files, bool) or not isinstance(max_files, int) or max_files < 0:
        max_files = DEFAULT_MAX_MEMORY_FILES

    include = memory_data.get("include", True)
    if not isinstance(include, bool):
        include = True

    initialize = memory_data.get("initialize", True)
    if not isinstance(initialize, bool):
        initialize = True

    log_dir = memory_data.get("log_dir")
    if not isinstance(log_dir, str) or not log_dir.strip():
        log_dir = None

    return MemoryConfig(
        max_memory_files=max_files,
        include_memory=include,
        initialize_memory=initialize,
        log_dir=Path(log_dir) if log_dir else None,
    )


def _apply_env(config: MemoryConfig) -> MemoryConfig:
    """Apply environment variable overrides."""
    raw_max = os.environ.get(ENV_MAX_MEMORY_FILES)
    if raw_max:
        try:
            value = int(raw_max)
        except ValueError:
            value = -1
        if value >= 0:
            config.max_memory_files = value
        else:
            logger.warning("Ignoring invalid %s=%r", ENV_MAX_MEMORY_FILES, raw_max)

    raw_log_dir = os.environ.get(ENV_LOG_DIR)
    if raw_log_dir:
        config.log_dir = Path(raw_log_dir).expanduser()

    return config


def save_config(config: MemoryConfig, config_path: Path | None = None) -> None:
    """Save MemoryConfig to a JSON file.

    Only non-default values are written.

    Args:
        config: The config to save.
        config_path: Path to write to. Uses $AUTOMAKER_CONFIG or
            DEFAULT_CONFIG_PATH if None.
    """
    path = _config_path(config_path)

    # Ensure parent directory exists
    path.parent.mkdir(parents=True, exist_ok=True)

    memory_data: dict[str, Any] = {}

    if config.max_memory_files != DEFAULT_MAX_MEMORY_FILES:
        memory_data["max_files"] = config.max_memory_files

    if not config.include_memory:
        memory_data["include"] = False

    if not config.initialize_memory:
        memory_data["initialize"] = False

    if config.log_dir is not None:
        memory_data["log_dir"] = str(config.log_dir)

    data: dict[str, Any] = {"memory": memory_data} if memory_data else {}

    try:
        with open(path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
    except OSError as e:
        logger.error("Failed to save config to %s: %s", path, e)
        raise
