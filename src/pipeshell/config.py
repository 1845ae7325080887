"""Configuration management using TOML + environment variables."""

from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path

import tomli_w

CONFIG_DIR = Path.home() / ".pipeshell"
CONFIG_FILE = CONFIG_DIR / "config.toml"
LOG_FILE = CONFIG_DIR / "pipeshell.log"


@dataclass
class ShellConfig:
    prompt: str = "$"
    history_max_items: int = 100
    arg_max_count: int = 1024


@dataclass
class LoggingConfig:
    level: str = "WARNING"
    file: str = str(LOG_FILE)


@dataclass
class AppConfig:
    shell: ShellConfig = field(default_factory=ShellConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def ensure_config_dir() -> None:
    """Create config directory with secure permissions."""
    CONFIG_DIR.mkdir(parents=True, exist_ok=True)
    os.chmod(CONFIG_DIR, 0o700)


def load_config() -> AppConfig:
    """Load configuration from TOML file with env var overrides."""
    config = AppConfig()

    if CONFIG_FILE.exists():
        with open(CONFIG_FILE, "rb") as f:
            data = tomllib.load(f)

        shell = data.get("shell", {})
        config.shell.prompt = shell.get("prompt", config.shell.prompt)
        config.shell.history_max_items = shell.get("history_max_items", config.shell.history_max_items)
        config.shell.arg_max_count = shell.get("arg_max_count", config.shell.arg_max_count)

        logging_cfg = data.get("logging", {})
        config.logging.level = logging_cfg.get("level", config.logging.level)
        config.logging.file = logging_cfg.get("file", config.logging.file)

    # Environment variable overrides
    if env_prompt := os.environ.get("PIPESHELL_PROMPT"):
        config.shell.prompt = env_prompt
    if env_history := os.environ.get("PIPESHELL_HISTORY_MAX_ITEMS"):
        config.shell.history_max_items = int(env_history)
    if env_arg_max := os.environ.get("PIPESHELL_ARG_MAX_COUNT"):
        config.shell.arg_max_count = int(env_arg_max)
    if env_log_level := os.environ.get("PIPESHELL_LOG_LEVEL"):
        config.logging.level = env_log_level
    if env_log_file := os.environ.get("PIPESHELL_LOG_FILE"):
        config.logging.file = env_log_file

    return config


def save_config(config: AppConfig) -> None:
    """Save configuration to TOML file."""
    ensure_config_dir()

    data = {
        "shell": {
            "prompt": config.shell.prompt,
            "history_max_items": config.shell.history_max_items,
            "arg_max_count": config.shell.arg_max_count,
        },
        "logging": {
            "level": config.logging.level,
            "file": config.logging.file,
        },
    }

    with open(CONFIG_FILE, "wb") as f:
        tomli_w.dump(data, f)

    os.chmod(CONFIG_FILE, 0o600)


# Global singleton
_config: AppConfig | None = None


def get_config() -> AppConfig:
    """Get or load the global config singleton."""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def reset_config() -> None:
    """Reset the global config (for testing)."""
    global _config
    _config = None
