import pytest
from pydantic import ValidationError

from ssh_cmd_helper.models import ChannelCondition, CommandResult, ConnectionRequest
from ssh_cmd_helper.models.command import DATA_AVAILABLE


class TestConnectionRequest:
    """Test connection parameter validation"""

    def test_defaults(self):
        request = ConnectionRequest(host="example.com", username="admin")

        assert request.port == 22
        assert request.password is None
        assert request.timeout == 60
        assert request.target == "admin@example.com:22"

    @pytest.mark.parametrize("port", [0, -1, 65536])
    def test_port_out_of_range(self, port):
        with pytest.raises(ValidationError):
            ConnectionRequest(host="example.com", port=port, username="admin")

    def test_empty_host(self):
        with pytest.raises(ValidationError):
            ConnectionRequest(host="", username="admin")

    def test_empty_username(self):
        with pytest.raises(ValidationError):
            ConnectionRequest(host="example.com", username="")


class TestCommandResult:
    """Test the tagged command result"""

    def test_completed(self):
        result = CommandResult(command="true", exit_code=0)

        assert result.ok
        assert result.succeeded
        assert result.error is None

    def test_completed_nonzero(self):
        result = CommandResult(command="false", exit_code=1)

        assert result.ok
        assert not result.succeeded

    def test_failed(self):
        result = CommandResult.failed("true", "Cannot open SSH session", 0.5)

        assert not result.ok
        assert not result.succeeded
        assert result.exit_code is None
        assert result.execution_time == 0.5


def test_data_available_flags():
    assert ChannelCondition.STDOUT_DATA in DATA_AVAILABLE
    assert ChannelCondition.STDERR_DATA in DATA_AVAILABLE
    assert not (ChannelCondition.EOF & DATA_AVAILABLE)
