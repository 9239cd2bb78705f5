"""Configuration management using TOML + environment variables."""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field
from pathlib import Path

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

import tomli_w

from smallshell.errors import ConfigurationError

CONFIG_DIR = Path.home() / ".smallshell"
CONFIG_FILE = CONFIG_DIR / "config.toml"

DETECTION_STRATEGIES: dict[str, str] = {
    "signal": "Reap children from a SIGCHLD handler as they terminate",
    "poll": "Drain terminated children after every spawn",
}


@dataclass
class ShellConfig:
    detection: str = "signal"
    max_line_length: int = 70
    max_args: int = 5
    prompt: str = "> "
    report_status: bool = False


@dataclass
class LoggingConfig:
    level: str = "WARNING"
    file: str = "~/.smallshell/shell.log"


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
        config.shell.detection = shell.get("detection", config.shell.detection)
        config.shell.max_line_length = shell.get("max_line_length", config.shell.max_line_length)
        config.shell.max_args = shell.get("max_args", config.shell.max_args)
        config.shell.prompt = shell.get("prompt", config.shell.prompt)
        config.shell.report_status = shell.get("report_status", config.shell.report_status)

        logging_cfg = data.get("logging", {})
        config.logging.level = logging_cfg.get("level", config.logging.level)
        config.logging.file = logging_cfg.get("file", config.logging.file)

    # Environment variable overrides
    if env_detection := os.environ.get("SMALLSHELL_DETECTION"):
        config.shell.detection = env_detection
    if env_max_line := os.environ.get("SMALLSHELL_MAX_LINE"):
        config.shell.max_line_length = int(env_max_line)
    if env_max_args := os.environ.get("SMALLSHELL_MAX_ARGS"):
        config.shell.max_args = int(env_max_args)
    if (env_prompt := os.environ.get("SMALLSHELL_PROMPT")) is not None:
        config.shell.prompt = env_prompt
    if env_report := os.environ.get("SMALLSHELL_REPORT_STATUS"):
        config.shell.report_status = env_report.lower() in ("true", "1", "yes")
    if env_log_level := os.environ.get("SMALLSHELL_LOG_LEVEL"):
        config.logging.level = env_log_level
    if env_log_file := os.environ.get("SMALLSHELL_LOG_FILE"):
        config.logging.file = env_log_file

    return config


def validate_config(config: AppConfig) -> None:
    """Reject values the interpreter cannot run with."""
    if config.shell.detection not in DETECTION_STRATEGIES:
        available = ", ".join(DETECTION_STRATEGIES)
        raise ConfigurationError(f"Unknown detection strategy '{config.shell.detection}' (expected one of: {available})")
    if config.shell.max_line_length < 1:
        raise ConfigurationError("shell.max_line_length must be positive")
    if config.shell.max_args < 0:
        raise ConfigurationError("shell.max_args must not be negative")


def save_config(config: AppConfig) -> None:
    """Save configuration to TOML file."""
    ensure_config_dir()

    data = {
        "shell": {
            "detection": config.shell.detection,
            "max_line_length": config.shell.max_line_length,
            "max_args": config.shell.max_args,
            "prompt": config.shell.prompt,
            "report_status": config.shell.report_status,
        },
        "logging": {
            "level": config.logging.level,
            "file": config.logging.file,
        },
    }

    with open(CONFIG_FILE, "wb") as f:
        tomli_w.dump(data, f)

    os.chmod(CONFIG_FILE, 0o600)
