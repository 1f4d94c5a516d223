"""
SSH command helper

Opens password-authenticated SSH connections and runs one-off commands on
them, retrying a fixed number of times when an attempt fails.
"""

import logging
import socket
import time
from contextlib import contextmanager
from typing import Iterator, List, Optional, Tuple

import paramiko
from pydantic import ValidationError

from .config import HelperConfig
from .models.command import ChannelCondition, CommandResult, DATA_AVAILABLE
from .models.connection import ConnectionRequest


class ExecutionError(Exception):
    """A command attempt failed before an exit status was obtained"""


def wait_for_condition(
    channel: paramiko.Channel, timeout: float, poll_interval: float = 0.1
) -> ChannelCondition:
    """Block until the channel has data, reaches EOF or ``timeout`` expires.

    Returns the set of conditions that held when the wait ended, or
    ``ChannelCondition.TIMEOUT`` alone if none did in time.
    """
    deadline = time.monotonic() + timeout
    while True:
        conditions = ChannelCondition(0)
        if channel.recv_ready():
            conditions |= ChannelCondition.STDOUT_DATA
        if channel.recv_stderr_ready():
            conditions |= ChannelCondition.STDERR_DATA
        if channel.eof_received:
            conditions |= ChannelCondition.EOF
        if conditions:
            return conditions

        if time.monotonic() >= deadline:
            return ChannelCondition.TIMEOUT
        time.sleep(poll_interval)


class SSHCmdHelper:
    """Runs commands over paramiko transports"""

    def __init__(
        self,
        config: Optional[HelperConfig] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.config = config or HelperConfig()
        self.logger = logger or logging.getLogger(__name__)

    def connect(
        self,
        host: str,
        port: int = 22,
        username: str = "",
        password: str = "",
    ) -> Optional[paramiko.Transport]:
        """Open and authenticate an SSH connection, or return None"""
        try:
            request = ConnectionRequest(
                host=host,
                port=port,
                username=username,
                password=password,
                timeout=self.config.connect_timeout,
            )
        except ValidationError as e:
            self.logger.warning(f"Invalid SSH connection parameters: {e}")
            return None

        sock = None
        transport = None
        try:
            sock = socket.create_connection(
                (request.host, request.port), timeout=request.timeout
            )
            transport = paramiko.Transport(sock)
            transport.banner_timeout = self.config.kex_timeout
            transport.start_client(timeout=self.config.kex_timeout)
            remaining = transport.auth_password(
                request.username, request.password or "", fallback=False
            )

        except paramiko.AuthenticationException as e:
            methods = self._remaining_auth_methods(transport, request.username, e)
            self.logger.warning(
                f"SSH authentication failed for {request.target}, "
                f"server accepts: {', '.join(methods) or 'none'}"
            )
            self._abort(sock, transport)
            return None

        except (OSError, EOFError, paramiko.SSHException) as e:
            self.logger.warning(f"Failed to open SSH connection to {request.target}: {e}")
            self._abort(sock, transport)
            return None

        if not transport.is_authenticated():
            # password accepted but the server wants a further method
            self.logger.warning(
                f"SSH authentication incomplete for {request.target}, "
                f"server accepts: {', '.join(remaining or []) or 'none'}"
            )
            self._abort(sock, transport)
            return None

        self.logger.info(f"SSH connection established: {request.target}")
        return transport

    def _remaining_auth_methods(
        self,
        transport: Optional[paramiko.Transport],
        username: str,
        error: paramiko.AuthenticationException,
    ) -> List[str]:
        if isinstance(error, paramiko.BadAuthenticationType):
            return list(error.allowed_types)
        if transport is None or not transport.is_active():
            return []

        # "none" auth is always rejected with the list of methods still allowed
        try:
            transport.auth_none(username)
        except paramiko.BadAuthenticationType as e:
            return list(e.allowed_types)
        except (OSError, EOFError, paramiko.SSHException) as e:
            self.logger.debug(f"Could not query remaining auth methods: {e}")
        return []

    @staticmethod
    def _abort(sock: Optional[socket.socket], transport: Optional[paramiko.Transport]):
        if transport is not None:
            transport.close()
        elif sock is not None:
            sock.close()

    def disconnect(self, connection: Optional[paramiko.Transport]):
        """Close an SSH connection; no-op if it is absent or already closed"""
        if connection is None:
            return
        if not connection.is_active():
            self.logger.debug("SSH connection already closed")
            return

        connection.close()
        self.logger.info("SSH connection closed")

    @contextmanager
    def connection(
        self,
        host: str,
        port: int = 22,
        username: str = "",
        password: str = "",
    ) -> Iterator[Optional[paramiko.Transport]]:
        """Connect for the duration of a ``with`` block"""
        conn = self.connect(host, port, username, password)
        try:
            yield conn
        finally:
            self.disconnect(conn)

    def run_command_once(
        self, connection: Optional[paramiko.Transport], command: str
    ) -> CommandResult:
        """Run ``command`` once and report its exit status or failure.

        stdout and stderr are drained so the remote process can finish, but
        their content is discarded; the result only carries byte counts.
        """
        start = time.monotonic()
        try:
            return self._execute(connection, command, start)
        except ExecutionError as e:
            self.logger.debug(f"SSH execution of '{command}' failed: {e}")
            return CommandResult.failed(command, str(e), time.monotonic() - start)

    def _execute(
        self, connection: Optional[paramiko.Transport], command: str, start: float
    ) -> CommandResult:
        self.logger.debug(f"Executing command: {command}")
        if connection is None or not connection.is_active():
            raise ExecutionError("SSH connection is not active")

        channel = None
        try:
            channel = connection.open_session(timeout=self.config.kex_timeout)
            if channel is None:
                raise ExecutionError("Cannot open SSH session")

            time.sleep(self.config.settle_delay)
            if channel.closed:
                raise ExecutionError("stdout or stderr of SSH session is unavailable")

            channel.exec_command(command)
            stdout_bytes, stderr_bytes, last_chunk, timed_out = self._drain(channel)

            if last_chunk:
                text = last_chunk.decode("utf-8", errors="replace")
                self.logger.debug(f"{command} output: {text}")

            time.sleep(self.config.settle_delay)
            # a timed-out drain gets no further grace for the exit status
            wait = 0 if timed_out else self.config.command_timeout
            if not self._wait_for_exit_status(channel, wait):
                raise ExecutionError("No exit status received")
            exit_code = channel.recv_exit_status()
            if exit_code < 0:
                # channel closed without exit-status, e.g. killed by a signal
                raise ExecutionError("Command ended without an exit status")

        except (OSError, EOFError, paramiko.SSHException) as e:
            raise ExecutionError(f"SSH execution failed: {e}") from e

        finally:
            if channel is not None:
                channel.close()

        return CommandResult(
            command=command,
            exit_code=exit_code,
            stdout_bytes=stdout_bytes,
            stderr_bytes=stderr_bytes,
            timed_out=timed_out,
            execution_time=time.monotonic() - start,
        )

    def _wait_for_exit_status(self, channel: paramiko.Channel, timeout: float) -> bool:
        deadline = time.monotonic() + timeout
        while not channel.exit_status_ready():
            if time.monotonic() >= deadline:
                return False
            time.sleep(self.config.poll_interval)
        return True

    def _drain(self, channel: paramiko.Channel) -> Tuple[int, int, bytes, bool]:
        """Read and discard channel output until EOF or timeout"""
        size = self.config.buffer_size
        stdout_bytes = stderr_bytes = 0
        last_chunk = b""
        timed_out = False

        while True:
            if not channel.recv_ready() and not channel.recv_stderr_ready():
                conditions = wait_for_condition(
                    channel, self.config.command_timeout, self.config.poll_interval
                )
                if ChannelCondition.TIMEOUT in conditions:
                    self.logger.info("Timeout while waiting for data from peer.")
                    timed_out = True
                    break
                if ChannelCondition.EOF in conditions and not conditions & DATA_AVAILABLE:
                    break

            while channel.recv_ready():
                chunk = channel.recv(size)
                stdout_bytes += len(chunk)
                if chunk:
                    last_chunk = chunk

            while channel.recv_stderr_ready():
                chunk = channel.recv_stderr(size)
                stderr_bytes += len(chunk)
                if chunk:
                    last_chunk = chunk

        return stdout_bytes, stderr_bytes, last_chunk, timed_out

    def _attempts(self, retries: Optional[int]) -> int:
        return self.config.retries if retries is None else retries

    def run_command(
        self,
        connection: Optional[paramiko.Transport],
        command: str,
        retries: Optional[int] = None,
    ) -> bool:
        """Run ``command`` until it exits 0, at most ``retries`` times"""
        attempts = self._attempts(retries)
        for attempt in range(1, attempts + 1):
            result = self.run_command_once(connection, command)
            if result.succeeded:
                return True
            if result.ok:
                self.logger.debug(
                    f"Attempt {attempt}/{attempts}: '{command}' exited {result.exit_code}"
                )
            else:
                self.logger.debug(f"Attempt {attempt}/{attempts}: {result.error}")
        return False

    def run_command_with_exit_code(
        self,
        connection: Optional[paramiko.Transport],
        command: str,
        retries: Optional[int] = None,
    ) -> int:
        """Return the exit code of the first attempt that completes, else -1"""
        attempts = self._attempts(retries)
        for attempt in range(1, attempts + 1):
            result = self.run_command_once(connection, command)
            if result.ok:
                return result.exit_code
            self.logger.debug(f"Attempt {attempt}/{attempts}: {result.error}")
        return -1


def connect(
    host: str,
    port: int = 22,
    username: str = "",
    password: str = "",
    *,
    config: Optional[HelperConfig] = None,
    logger: Optional[logging.Logger] = None,
) -> Optional[paramiko.Transport]:
    """Open and authenticate an SSH connection, or return None"""
    return SSHCmdHelper(config, logger).connect(host, port, username, password)


def disconnect(
    connection: Optional[paramiko.Transport],
    *,
    logger: Optional[logging.Logger] = None,
):
    """Close an SSH connection if it is open"""
    SSHCmdHelper(logger=logger).disconnect(connection)


def run_command(
    connection: Optional[paramiko.Transport],
    command: str,
    retries: int = 3,
    *,
    config: Optional[HelperConfig] = None,
    logger: Optional[logging.Logger] = None,
) -> bool:
    """Run a command until it exits 0, at most ``retries`` times"""
    return SSHCmdHelper(config, logger).run_command(connection, command, retries)


def run_command_with_exit_code(
    connection: Optional[paramiko.Transport],
    command: str,
    retries: int = 3,
    *,
    config: Optional[HelperConfig] = None,
    logger: Optional[logging.Logger] = None,
) -> int:
    """Return the exit code of the first completed attempt, else -1"""
    return SSHCmdHelper(config, logger).run_command_with_exit_code(
        connection, command, retries
    )


def run_command_once(
    connection: Optional[paramiko.Transport],
    command: str,
    *,
    config: Optional[HelperConfig] = None,
    logger: Optional[logging.Logger] = None,
) -> CommandResult:
    """Run a command once and return its result"""
    return SSHCmdHelper(config, logger).run_command_once(connection, command)
