"""Configuration loading for rcsvlog."""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .sync.ledger import LEDGER_FILENAME


@dataclass
class LoggerConfig:
    """What to log and how each line looks."""

    filename: str = "log.csv"
    header: list[str] = field(default_factory=list)
    log_time: bool = True
    log_millis: bool = True
    precision: int = 2
    to_console: bool = False


@dataclass
class StorageConfig:
    """Where log files and the ledger live."""

    data_dir: str = ""  # Empty: user's documents directory
    ledger_path: str = LEDGER_FILENAME  # Relative paths go under data_dir


@dataclass
class SyncConfig:
    """Configuration for remote push of logged rows."""

    enabled: bool = True
    server_url: str = ""
    max_retries: int = 3
    timeout_seconds: float = 30.0
    push_timeout_seconds: float | None = None
    batch_size: int = 0  # 0: whole backlog in one push
    retry_interval_seconds: int = 0  # 0: retry only on the next log call


@dataclass
class Config:
    logger: LoggerConfig = field(default_factory=LoggerConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    sync: SyncConfig = field(default_factory=SyncConfig)


def _get_env(key: str, default: Any = None) -> Any:
    """Get environment variable with RCSVLOG_ prefix."""
    return os.environ.get(f"RCSVLOG_{key}", default)


def _parse_bool(value: str) -> bool:
    return value.lower() in ("true", "1", "yes")


def _apply_env_overrides(config: Config) -> Config:
    """Apply environment variable overrides to config."""
    # Logger overrides
    if filename := _get_env("FILENAME"):
        config.logger.filename = filename
    if header := _get_env("HEADER"):
        config.logger.header = [h.strip() for h in header.split(",")]
    if log_time := _get_env("LOG_TIME"):
        config.logger.log_time = _parse_bool(log_time)
    if log_millis := _get_env("LOG_MILLIS"):
        config.logger.log_millis = _parse_bool(log_millis)
    if precision := _get_env("PRECISION"):
        config.logger.precision = int(precision)
    if to_console := _get_env("TO_CONSOLE"):
        config.logger.to_console = _parse_bool(to_console)

    # Storage overrides
    if data_dir := _get_env("DATA_DIR"):
        config.storage.data_dir = data_dir
    if ledger_path := _get_env("LEDGER_PATH"):
        config.storage.ledger_path = ledger_path

    # Sync overrides
    if sync_enabled := _get_env("SYNC_ENABLED"):
        config.sync.enabled = _parse_bool(sync_enabled)
    if server_url := _get_env("SERVER_URL"):
        config.sync.server_url = server_url
    if retry_interval := _get_env("RETRY_INTERVAL"):
        config.sync.retry_interval_seconds = int(retry_interval)

    return config


def load_config(config_path: str | Path | None = None) -> Config:
    """Load configuration from YAML file with environment variable overrides.

    Args:
        config_path: Path to YAML config file. If None, uses default config.

    Returns:
        Loaded Config object.
    """
    config = Config()

    if config_path:
        path = Path(config_path)
        if path.exists():
            with open(path) as f:
                data = yaml.safe_load(f) or {}

            # Parse logger config
            if "logger" in data:
                log_data = data["logger"]
                config.logger = LoggerConfig(
                    filename=log_data.get("filename", config.logger.filename),
                    header=[str(h) for h in log_data.get("header", [])],
                    log_time=log_data.get("log_time", config.logger.log_time),
                    log_millis=log_data.get("log_millis", config.logger.log_millis),
                    precision=log_data.get("precision", config.logger.precision),
                    to_console=log_data.get("to_console", config.logger.to_console),
                )

            # Parse storage config
            if "storage" in data:
                storage_data = data["storage"]
                config.storage = StorageConfig(
                    data_dir=storage_data.get("data_dir", config.storage.data_dir),
                    ledger_path=storage_data.get(
                        "ledger_path", config.storage.ledger_path
                    ),
                )

            # Parse sync config
            if "sync" in data:
                sync_data = data["sync"]
                config.sync = SyncConfig(
                    enabled=sync_data.get("enabled", config.sync.enabled),
                    server_url=sync_data.get("server_url", config.sync.server_url),
                    max_retries=sync_data.get("max_retries", config.sync.max_retries),
                    timeout_seconds=sync_data.get(
                        "timeout_seconds", config.sync.timeout_seconds
                    ),
                    push_timeout_seconds=sync_data.get(
                        "push_timeout_seconds", config.sync.push_timeout_seconds
                    ),
                    batch_size=sync_data.get("batch_size", config.sync.batch_size),
                    retry_interval_seconds=sync_data.get(
                        "retry_interval_seconds", config.sync.retry_interval_seconds
                    ),
                )

    # Apply environment variable overrides
    config = _apply_env_overrides(config)

    return config
