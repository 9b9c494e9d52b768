"""
Prismatik (Lightpack API) text protocol implementation.

This module handles the encoding and decoding of protocol lines and the
interpretation of server responses. Every exchange is one command line from
the client followed by one response line from the server.
"""

from enum import Enum
from typing import Any, List, Optional


DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 3636
DEFAULT_TIMEOUT = 2.0

WELCOME_BANNER = "Lightpack API"
LINE_TERMINATOR = b"\n"
ENCODING = "utf-8"


# Protocol Commands
class Commands:
    APIKEY = "apikey"
    LOCK = "lock"
    UNLOCK = "unlock"
    GET_PROFILES = "getprofiles"
    GET_STATUS = "getstatus"
    GET_STATUS_API = "getstatusapi"
    SET_BRIGHTNESS = "setbrightness"
    SET_PROFILE = "setprofile"


# Response markers and prefixes
class Responses:
    OK = "ok"
    LOCK_SUCCESS = "lock:success"
    UNLOCK_SUCCESS = "unlock:success"
    UNLOCK_NOT_LOCKED = "unlock:not"
    STATUS_API_IDLE = "statusapi:idle"

    PROFILES_PREFIX = "profiles:"
    PROFILE_PREFIX = "profile:"
    STATUS_PREFIX = "status:"


class Status:
    """Device status values reported by getstatus."""
    ON = "on"
    OFF = "off"
    DEVICE_ERROR = "device error"
    UNKNOWN = "unknown"


MIN_BRIGHTNESS = 0
MAX_BRIGHTNESS = 100


class ErrorKind(Enum):
    """Why a client operation produced its failure value."""
    NOT_CONNECTED = "not_connected"
    CONNECTION_FAILED = "connection_failed"
    HANDSHAKE_MISMATCH = "handshake_mismatch"
    AUTHENTICATION_FAILED = "authentication_failed"
    LOCK_FAILED = "lock_failed"
    COMMAND_REJECTED = "command_rejected"
    PARSE_MISMATCH = "parse_mismatch"
    CONNECTION_LOST = "connection_lost"
    TIMEOUT = "timeout"
    INVALID_ARGUMENT = "invalid_argument"


class CommandResult:
    """
    Outcome of a client operation.

    The value is always what the public method returns (including its
    failure value); error is None on success.
    """

    def __init__(self, value: Any, error: Optional[ErrorKind] = None):
        self.value = value
        self.error = error

    @property
    def ok(self) -> bool:
        return self.error is None

    def __repr__(self) -> str:
        return f"CommandResult(value={self.value!r}, error={self.error})"


class ProtocolLine:
    """
    Represents a single protocol line.

    Line Format:
    COMMAND [':' ARGUMENT] '\\n'

    Both directions use the same shape: "setbrightness:50" from the client,
    "profiles:movie;game" or "lock:success" from the server.
    """

    def __init__(self, command: str, argument: Optional[str] = None):
        self.command = command
        self.argument = argument

    @property
    def text(self) -> str:
        if self.argument is None:
            return self.command
        return f"{self.command}:{self.argument}"

    def masked_text(self) -> str:
        """Text safe to log; the API key is never written out."""
        if self.command == Commands.APIKEY and self.argument is not None:
            return f"{Commands.APIKEY}:***"
        return self.text

    def encode(self) -> bytes:
        """
        Encode the line for transmission.

        Returns:
            bytes: UTF-8 text terminated by a newline
        """
        return self.text.encode(ENCODING) + LINE_TERMINATOR

    @classmethod
    def decode(cls, data: bytes) -> "ProtocolLine":
        """
        Decode a line from wire format.

        Args:
            data: Raw bytes of one line, with or without its terminator

        Returns:
            ProtocolLine: Decoded line
        """
        text = data.decode(ENCODING, errors="replace").rstrip("\r\n")
        return cls.parse(text)

    @classmethod
    def parse(cls, text: str) -> "ProtocolLine":
        command, sep, argument = text.partition(":")
        return cls(command, argument if sep else None)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ProtocolLine):
            return NotImplemented
        return self.text == other.text

    def __repr__(self) -> str:
        return f"ProtocolLine({self.masked_text()!r})"


class ProtocolHandler:
    """
    Builds command lines and interprets responses.
    """

    def create_apikey_line(self, api_key: str) -> ProtocolLine:
        return ProtocolLine(Commands.APIKEY, api_key)

    def create_lock_line(self) -> ProtocolLine:
        return ProtocolLine(Commands.LOCK)

    def create_unlock_line(self) -> ProtocolLine:
        return ProtocolLine(Commands.UNLOCK)

    def create_get_profiles_line(self) -> ProtocolLine:
        return ProtocolLine(Commands.GET_PROFILES)

    def create_get_status_line(self) -> ProtocolLine:
        return ProtocolLine(Commands.GET_STATUS)

    def create_get_status_api_line(self) -> ProtocolLine:
        return ProtocolLine(Commands.GET_STATUS_API)

    def create_set_brightness_line(self, level: int) -> ProtocolLine:
        return ProtocolLine(Commands.SET_BRIGHTNESS, str(level))

    def create_set_profile_line(self, name: str) -> ProtocolLine:
        return ProtocolLine(Commands.SET_PROFILE, name)

    def create_set_status_line(self, on: bool) -> ProtocolLine:
        # The device is toggled through setprofile, not a dedicated command.
        return ProtocolLine(Commands.SET_PROFILE, Status.ON if on else Status.OFF)

    def is_welcome(self, response: str) -> bool:
        return WELCOME_BANNER in response

    def is_ok(self, response: str) -> bool:
        return Responses.OK in response

    def is_lock_success(self, response: str) -> bool:
        return Responses.LOCK_SUCCESS in response

    def is_unlock_success(self, response: str) -> bool:
        """An unlock with nothing locked ("unlock:not locked") also counts."""
        return (Responses.UNLOCK_SUCCESS in response
                or Responses.UNLOCK_NOT_LOCKED in response)

    def is_api_idle(self, response: str) -> bool:
        return Responses.STATUS_API_IDLE in response

    def strip_prefix(self, response: str, prefix: str) -> CommandResult:
        """
        Remove a response prefix the way the device client always has:
        every occurrence is replaced, and a missing prefix still yields the
        text, flagged as a parse mismatch.
        """
        error = None if response.startswith(prefix) else ErrorKind.PARSE_MISMATCH
        return CommandResult(response.replace(prefix, ""), error)

    def parse_profiles(self, response: str) -> CommandResult:
        """
        Parse "profiles:<name>;<name>;..." into a list of names.

        Names containing ';' cannot be represented and are mis-split.
        """
        result = self.strip_prefix(response, Responses.PROFILES_PREFIX)
        profiles: List[str] = [name for name in result.value.split(";") if name]
        return CommandResult(profiles, result.error)

    def parse_profile(self, response: str) -> CommandResult:
        return self.strip_prefix(response, Responses.PROFILE_PREFIX)

    def parse_status(self, response: str) -> CommandResult:
        return self.strip_prefix(response, Responses.STATUS_PREFIX)

    def get_command_name(self, line: ProtocolLine) -> str:
        """Get the command (or response kind) a line carries."""
        return line.command or "EMPTY"
