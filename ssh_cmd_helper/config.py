"""
Configuration

Timeouts, retry budget and buffer sizing for the SSH command helper.
Values can come from defaults, environment variables or a JSON file.
"""

import os
import json
from dataclasses import dataclass, asdict, fields
from typing import Optional
import logging

logger = logging.getLogger(__name__)

ENV_PREFIX = "SSH_CMD_HELPER_"


@dataclass
class HelperConfig:
    """SSH command helper configuration"""

    connect_timeout: float = 60
    kex_timeout: float = 60
    command_timeout: float = 120
    retries: int = 3
    # pause around command execution; some SSH servers drop output when
    # exec follows channel open too closely
    settle_delay: float = 1.0
    buffer_size: int = 8192
    poll_interval: float = 0.1
    log_level: str = "INFO"

    def __post_init__(self):
        for name in (
            "connect_timeout",
            "kex_timeout",
            "command_timeout",
            "settle_delay",
            "poll_interval",
        ):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must not be negative")
        if self.buffer_size <= 0:
            raise ValueError("buffer_size must be positive")
        if self.retries < 0:
            raise ValueError("retries must not be negative")

    @classmethod
    def from_env(cls) -> "HelperConfig":
        """Build configuration from environment variables"""
        return cls(
            connect_timeout=float(os.getenv(f"{ENV_PREFIX}CONNECT_TIMEOUT", "60")),
            kex_timeout=float(os.getenv(f"{ENV_PREFIX}KEX_TIMEOUT", "60")),
            command_timeout=float(os.getenv(f"{ENV_PREFIX}COMMAND_TIMEOUT", "120")),
            retries=int(os.getenv(f"{ENV_PREFIX}RETRIES", "3")),
            settle_delay=float(os.getenv(f"{ENV_PREFIX}SETTLE_DELAY", "1.0")),
            buffer_size=int(os.getenv(f"{ENV_PREFIX}BUFFER_SIZE", "8192")),
            poll_interval=float(os.getenv(f"{ENV_PREFIX}POLL_INTERVAL", "0.1")),
            log_level=os.getenv(f"{ENV_PREFIX}LOG_LEVEL", "INFO"),
        )

    @classmethod
    def from_file(cls, config_path: str) -> Optional["HelperConfig"]:
        """Build configuration from a JSON file, on top of the environment"""
        try:
            with open(config_path, "r", encoding="utf-8") as f:
                data = json.load(f)

            if not isinstance(data, dict):
                raise ValueError("top-level JSON value must be an object")

            values = asdict(cls.from_env())
            known = {f.name for f in fields(cls)}
            for key, value in data.items():
                if key in known:
                    values[key] = value
                else:
                    logger.warning(f"Ignoring unknown config key: {key}")

            return cls(**values)

        except (OSError, ValueError, TypeError) as e:
            logger.error(f"Failed to read config file {config_path}: {e}")
            return None

    def to_file(self, config_path: str) -> bool:
        """Save configuration to a JSON file"""
        try:
            with open(config_path, "w", encoding="utf-8") as f:
                json.dump(asdict(self), f, indent=2, ensure_ascii=False)
            return True

        except OSError as e:
            logger.error(f"Failed to save config file {config_path}: {e}")
            return False
