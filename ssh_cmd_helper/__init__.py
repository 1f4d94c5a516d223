"""
SSH command helper

Thin wrapper around paramiko: open a password-authenticated connection,
run a shell command, and report success or the exit code, retrying a
fixed number of times.
"""

from .config import HelperConfig
from .log_utils import setup_logging
from .models import ChannelCondition, CommandResult, ConnectionRequest
from .ssh_helper import (
    ExecutionError,
    SSHCmdHelper,
    connect,
    disconnect,
    run_command,
    run_command_once,
    run_command_with_exit_code,
    wait_for_condition,
)

__version__ = "0.1.0"
__all__ = [
    "HelperConfig",
    "setup_logging",
    "ChannelCondition",
    "CommandResult",
    "ConnectionRequest",
    "ExecutionError",
    "SSHCmdHelper",
    "connect",
    "disconnect",
    "run_command",
    "run_command_once",
    "run_command_with_exit_code",
    "wait_for_condition",
]
