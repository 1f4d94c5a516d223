from .connection import ConnectionRequest
from .command import ChannelCondition, CommandResult, DATA_AVAILABLE

__all__ = [
    "ConnectionRequest",
    "ChannelCondition",
    "CommandResult",
    "DATA_AVAILABLE",
]
