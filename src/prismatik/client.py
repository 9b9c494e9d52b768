"""
Prismatik API Client

This module implements the session client for the Prismatik (Lightpack API)
control server. One client owns one TCP connection and serializes every
exchange on it behind a single lock.
"""

import logging
import socket
import threading
from typing import Callable, List, Optional
from .protocol import (
    DEFAULT_HOST, DEFAULT_PORT, DEFAULT_TIMEOUT, LINE_TERMINATOR,
    MIN_BRIGHTNESS, MAX_BRIGHTNESS,
    CommandResult, ErrorKind, ProtocolHandler, ProtocolLine
)
from .session import SessionRecorder
from .exceptions import (
    PrismatikError, ConnectionError, AuthenticationError, HandshakeError,
    LockError, ServerDisconnectionError, TimeoutError
)
from ..utils.logging import endpoint_logger, setup_logger


RECV_SIZE = 4096


class PrismatikClient:
    """
    Session client for the Prismatik API.

    Public operations never raise on device or transport failure; they return
    their failure value ([], "" or False) and record why in last_result.
    """

    def __init__(self, host: str = DEFAULT_HOST, port: int = DEFAULT_PORT,
                 timeout: Optional[float] = DEFAULT_TIMEOUT, record_session: bool = False):
        self.host = host
        self.port = port
        self.timeout = timeout
        self.socket: Optional[socket.socket] = None
        self.protocol_handler = ProtocolHandler()
        self.session_recorder = SessionRecorder() if record_session else None
        self.logger = self._setup_logging()
        self.last_result: Optional[CommandResult] = None
        self._lock = threading.RLock()
        self._buffer = b""

    def _setup_logging(self) -> logging.LoggerAdapter:
        """Set up logging configuration."""
        return endpoint_logger(setup_logger(__name__), self.host, self.port)

    def __enter__(self) -> "PrismatikClient":
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.disconnect()

    @property
    def is_connected(self) -> bool:
        return self.socket is not None

    @property
    def last_error(self) -> Optional[ErrorKind]:
        if self.last_result is None:
            return None
        return self.last_result.error

    def setup_connection(self, api_key: str) -> None:
        """
        Connect to the server, check the welcome banner and authenticate.

        Does nothing when a connection is already held. On any failure the
        connection is cleared and last_error tells which step failed.

        Args:
            api_key: API key configured in Prismatik
        """
        with self._lock:
            if self.is_connected:
                self.logger.debug("Already connected, skipping setup")
                self.last_result = CommandResult(None)
                return

            try:
                self._connect()

                welcome = self._receive_line()
                if not self.protocol_handler.is_welcome(welcome.text):
                    raise HandshakeError(f"Unexpected welcome message: {welcome.text!r}")

                self._authenticate(api_key)

            except PrismatikError as e:
                self._invalidate(f"Setup failed: {e}")
                self._fail(None, self._error_kind(e, during_setup=True), f"Connection setup failed: {e}")
                return

            self.logger.info("Authentication successful")
            self.last_result = CommandResult(None)

    def disconnect(self) -> None:
        """Close the connection to the server."""
        with self._lock:
            if self.socket:
                self._invalidate("Client disconnected")

    def _connect(self) -> None:
        """
        Establish the TCP connection.

        Raises:
            ConnectionError: If connection fails
        """
        self.logger.info(f"Connecting to {self.host}:{self.port}")
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        sock.settimeout(self.timeout)
        try:
            sock.connect((self.host, self.port))
        except socket.error as e:
            sock.close()
            raise ConnectionError(f"Failed to connect to {self.host}:{self.port}: {e}")

        self.socket = sock
        self._buffer = b""

        if self.session_recorder:
            self.session_recorder.record_event(
                "connection",
                f"Connected to {self.host}:{self.port}",
                {"host": self.host, "port": self.port, "timeout": self.timeout}
            )
        self.logger.info("Connection established")

    def _invalidate(self, reason: str) -> None:
        """Drop the current connection; the socket is closed best-effort."""
        sock, self.socket = self.socket, None
        self._buffer = b""
        if sock is None:
            return
        try:
            sock.close()
        except socket.error as e:
            self.logger.warning(f"Error during disconnect: {e}")
        self.logger.info(f"Disconnected from server: {reason}")
        if self.session_recorder:
            self.session_recorder.record_event("disconnection", reason)

    def _send_line(self, line: ProtocolLine) -> None:
        """
        Send one command line.

        Raises:
            ConnectionError: If sending fails
        """
        if not self.socket:
            raise ConnectionError("Not connected to server")

        try:
            self.socket.sendall(line.encode())
        except socket.timeout:
            raise TimeoutError("Timeout while sending line")
        except socket.error as e:
            raise ConnectionError(f"Failed to send line: {e}")

        self.logger.info(f"Sent {line.masked_text()}")
        if self.session_recorder:
            self.session_recorder.record_request(line, f"Sent {self.protocol_handler.get_command_name(line)}")

    def _receive_line(self) -> ProtocolLine:
        """
        Receive one response line.

        Returns:
            ProtocolLine: The received line without its terminator

        Raises:
            ConnectionError: If receiving fails
            ServerDisconnectionError: If server disconnects
            TimeoutError: If no full line arrives in time
        """
        if not self.socket:
            raise ConnectionError("Not connected to server")

        try:
            while LINE_TERMINATOR not in self._buffer:
                chunk = self.socket.recv(RECV_SIZE)
                if not chunk:
                    raise ServerDisconnectionError("Server disconnected while reading a line")
                self._buffer += chunk
        except socket.timeout:
            raise TimeoutError("Timeout while receiving line")
        except socket.error as e:
            raise ConnectionError(f"Failed to receive line: {e}")

        data, _, self._buffer = self._buffer.partition(LINE_TERMINATOR)
        line = ProtocolLine.decode(data)

        self.logger.info(f"Received {line.text}")
        if self.session_recorder:
            self.session_recorder.record_response(line, f"Received {self.protocol_handler.get_command_name(line)}")

        return line

    def _exchange(self, line: ProtocolLine) -> str:
        """Send a line and return the text of the single response line."""
        self._send_line(line)
        return self._receive_line().text

    def _authenticate(self, api_key: str) -> None:
        """
        Send the API key.

        Raises:
            AuthenticationError: If the key is rejected
        """
        response = self._exchange(self.protocol_handler.create_apikey_line(api_key))
        if not self.protocol_handler.is_ok(response):
            raise AuthenticationError(f"API key rejected: {response!r}")

    def _lock_device(self) -> None:
        """
        Take the device-side lock.

        Raises:
            LockError: If the server refuses the lock
        """
        response = self._exchange(self.protocol_handler.create_lock_line())
        if not self.protocol_handler.is_lock_success(response):
            raise LockError(f"Lock refused: {response!r}")

    def _unlock_device(self) -> bool:
        """Release the device-side lock. The outcome is only logged."""
        try:
            response = self._exchange(self.protocol_handler.create_unlock_line())
        except PrismatikError as e:
            self.logger.error(f"Unlock failed: {e}")
            self._invalidate(f"Unlock failed: {e}")
            return False

        unlocked = self.protocol_handler.is_unlock_success(response)
        if not unlocked:
            self.logger.warning(f"Unexpected unlock response: {response!r}")
        return unlocked

    def _error_kind(self, error: PrismatikError, during_setup: bool = False) -> ErrorKind:
        if isinstance(error, HandshakeError):
            return ErrorKind.HANDSHAKE_MISMATCH
        if isinstance(error, AuthenticationError):
            return ErrorKind.AUTHENTICATION_FAILED
        if isinstance(error, LockError):
            return ErrorKind.LOCK_FAILED
        if isinstance(error, TimeoutError):
            return ErrorKind.TIMEOUT
        if isinstance(error, ConnectionError):
            return ErrorKind.CONNECTION_FAILED if during_setup else ErrorKind.CONNECTION_LOST
        return ErrorKind.PARSE_MISMATCH

    def _fail(self, value, error: ErrorKind, message: str):
        with self._lock:
            self.logger.warning(message)
            if self.session_recorder:
                self.session_recorder.record_event("error", message, {"error_type": error.value})
            self.last_result = CommandResult(value, error)
            return value

    def _run_locked(self, line: ProtocolLine, failure_value,
                    interpret: Callable[[str], CommandResult]):
        """
        Run one device command inside a lock/unlock bracket.

        Returns the interpreted value, or failure_value when not connected,
        when the lock is refused or when the transport fails.
        """
        with self._lock:
            if not self.is_connected:
                return self._fail(failure_value, ErrorKind.NOT_CONNECTED,
                                  f"Cannot send {line.command}: not connected")

            try:
                self._lock_device()
                response = self._exchange(line)
            except LockError as e:
                return self._fail(failure_value, ErrorKind.LOCK_FAILED, str(e))
            except PrismatikError as e:
                self._invalidate(f"Transport failure: {e}")
                return self._fail(failure_value, self._error_kind(e), f"{line.command} failed: {e}")

            self._unlock_device()

            result = interpret(response)
            if not result.ok:
                self.logger.warning(f"{line.command} returned {result.error.value}: {response!r}")
                if self.session_recorder:
                    self.session_recorder.record_event(
                        "error", f"{line.command} returned {result.error.value}",
                        {"error_type": result.error.value, "response": response}
                    )
            self.last_result = result
            return result.value

    def _accepted(self, response: str) -> CommandResult:
        if self.protocol_handler.is_ok(response):
            return CommandResult(True)
        return CommandResult(False, ErrorKind.COMMAND_REJECTED)

    def get_profiles(self) -> List[str]:
        """
        Return the names of all profiles known to Prismatik.

        Returns:
            List[str]: profile names, empty on failure
        """
        return self._run_locked(
            self.protocol_handler.create_get_profiles_line(), [],
            self.protocol_handler.parse_profiles
        )

    def get_profile(self) -> str:
        """
        Return the name of the active profile.

        Sends getprofiles and strips a "profile:" prefix. A server that
        answers with the full profile list leaves the text unchanged and
        last_error reports a parse mismatch.
        """
        return self._run_locked(
            self.protocol_handler.create_get_profiles_line(), "",
            self.protocol_handler.parse_profile
        )

    def get_status(self) -> str:
        """
        Return the device status: "on", "off", "device error" or "unknown".

        "unknown" is reported by the server itself when its GUI does not
        answer within about a second. Empty on failure.
        """
        return self._run_locked(
            self.protocol_handler.create_get_status_line(), "",
            self.protocol_handler.parse_status
        )

    def get_status_api(self) -> bool:
        """Return True if no client currently holds the device lock."""
        with self._lock:
            if not self.is_connected:
                return self._fail(False, ErrorKind.NOT_CONNECTED, "Cannot query API status: not connected")

            try:
                response = self._exchange(self.protocol_handler.create_get_status_api_line())
            except PrismatikError as e:
                self._invalidate(f"Transport failure: {e}")
                return self._fail(False, self._error_kind(e), f"getstatusapi failed: {e}")

            self.last_result = CommandResult(self.protocol_handler.is_api_idle(response))
            return self.last_result.value

    def set_brightness(self, level: int) -> bool:
        """
        Set the brightness of all LEDs at once.

        Args:
            level: 0 (lighting disabled) to 100

        Returns:
            bool: True if the server acknowledged the change
        """
        if (isinstance(level, bool) or not isinstance(level, int)
                or not MIN_BRIGHTNESS <= level <= MAX_BRIGHTNESS):
            return self._fail(False, ErrorKind.INVALID_ARGUMENT,
                              f"Brightness must be {MIN_BRIGHTNESS}-{MAX_BRIGHTNESS}, got {level!r}")

        return self._run_locked(
            self.protocol_handler.create_set_brightness_line(level), False, self._accepted
        )

    def set_profile(self, name: str) -> bool:
        """
        Activate a profile by name (see get_profiles).

        Returns:
            bool: True if the server acknowledged the change
        """
        if "\n" in name or "\r" in name:
            return self._fail(False, ErrorKind.INVALID_ARGUMENT, f"Profile name contains a line break: {name!r}")

        return self._run_locked(
            self.protocol_handler.create_set_profile_line(name), False, self._accepted
        )

    def set_status(self, on: bool) -> bool:
        """
        Turn the lighting on or off.

        Returns:
            bool: True if the server acknowledged the change
        """
        return self._run_locked(
            self.protocol_handler.create_set_status_line(on), False, self._accepted
        )
