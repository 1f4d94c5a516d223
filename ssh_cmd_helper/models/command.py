from datetime import datetime
from enum import Flag, auto
from typing import Optional
from pydantic import BaseModel, Field


class ChannelCondition(Flag):
    """Events a channel wait can report"""

    STDOUT_DATA = auto()
    STDERR_DATA = auto()
    EOF = auto()
    TIMEOUT = auto()


DATA_AVAILABLE = ChannelCondition.STDOUT_DATA | ChannelCondition.STDERR_DATA


class CommandResult(BaseModel):
    """Outcome of a single remote command attempt.

    Either ``exit_code`` is set (the command ran to completion) or
    ``error`` is set (the attempt failed before an exit status was known).
    Output is drained from the channel but not kept; only byte counts are
    recorded.
    """

    command: str = Field(..., description="Executed command")
    exit_code: Optional[int] = Field(default=None, description="Command exit code")
    error: Optional[str] = Field(
        default=None, description="Failure reason if the attempt did not complete"
    )
    stdout_bytes: int = Field(default=0, description="Bytes drained from stdout")
    stderr_bytes: int = Field(default=0, description="Bytes drained from stderr")
    timed_out: bool = Field(
        default=False, description="Whether the output wait hit its timeout"
    )
    execution_time: float = Field(default=0.0, description="Execution time in seconds")
    timestamp: datetime = Field(default_factory=datetime.now)

    @classmethod
    def failed(cls, command: str, error: str, execution_time: float = 0.0):
        return cls(command=command, error=error, execution_time=execution_time)

    @property
    def ok(self) -> bool:
        return self.error is None and self.exit_code is not None

    @property
    def succeeded(self) -> bool:
        return self.ok and self.exit_code == 0
