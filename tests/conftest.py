import os
import sys
import pytest
from unittest.mock import Mock

# Add project root to Python path
project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if project_root not in sys.path:
    sys.path.insert(0, project_root)

from ssh_cmd_helper.config import HelperConfig


class FakeChannel:
    """Scripted stand-in for paramiko.Channel"""

    def __init__(
        self,
        stdout=(),
        stderr=(),
        exit_status=0,
        eof=True,
        closed=False,
        exit_ready=True,
        recv_error=None,
    ):
        self._stdout = list(stdout)
        self._stderr = list(stderr)
        self.exit_status = exit_status
        self.eof_received = eof
        self.closed = closed
        self._exit_ready = exit_ready
        self._recv_error = recv_error
        self.executed = []
        self.close_calls = 0
        self.recv_sizes = []

    def exec_command(self, command):
        self.executed.append(command)

    def recv_ready(self):
        return bool(self._stdout)

    def recv_stderr_ready(self):
        return bool(self._stderr)

    def recv(self, nbytes):
        if self._recv_error is not None:
            raise self._recv_error
        self.recv_sizes.append(nbytes)
        return self._stdout.pop(0)

    def recv_stderr(self, nbytes):
        self.recv_sizes.append(nbytes)
        return self._stderr.pop(0)

    def exit_status_ready(self):
        return self._exit_ready

    def recv_exit_status(self):
        # paramiko blocks here until a status or close arrives
        if not self._exit_ready:
            raise AssertionError("recv_exit_status would block forever")
        return self.exit_status

    def close(self):
        self.close_calls += 1
        self.closed = True


class FakeTransport:
    """Stand-in for an authenticated paramiko.Transport"""

    def __init__(self, channels=()):
        self.channels = list(channels)
        self.active = True
        self.open_calls = 0
        self.close_calls = 0

    def is_active(self):
        return self.active

    def open_session(self, timeout=None):
        self.open_calls += 1
        channel = self.channels.pop(0)
        if isinstance(channel, Exception):
            raise channel
        return channel

    def close(self):
        self.close_calls += 1
        self.active = False


@pytest.fixture
def fast_config():
    """Configuration without settle delays or long waits"""
    return HelperConfig(
        settle_delay=0, command_timeout=0.05, poll_interval=0.001, retries=3
    )


@pytest.fixture
def mock_logger():
    return Mock()
