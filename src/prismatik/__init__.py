"""Prismatik (Lightpack API) protocol client."""

from .client import PrismatikClient
from .protocol import CommandResult, ErrorKind, Status
from .session import SessionRecorder

__all__ = ["PrismatikClient", "CommandResult", "ErrorKind", "Status", "SessionRecorder"]
