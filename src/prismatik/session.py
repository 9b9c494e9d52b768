"""
Session recording functionality for the Prismatik API client.

This module provides an in-memory trace of every client-server interaction
so that the exact order of lines on the wire can be inspected afterwards.
"""

import time
from datetime import datetime
from typing import Dict, List, Any, Optional
from .protocol import Commands, ProtocolLine, ProtocolHandler


class SessionRecorder:
    """
    Records all client-server interactions during a Prismatik session.
    """

    def __init__(self, session_id: Optional[str] = None):
        self.session_id = session_id or self._generate_session_id()
        self.interactions: List[Dict[str, Any]] = []
        self.start_time = time.time()
        self.protocol_handler = ProtocolHandler()

    def _generate_session_id(self) -> str:
        """Generate a unique session ID based on timestamp."""
        return f"session_{datetime.now().strftime('%Y%m%d_%H%M%S')}"

    def _record_line(self, kind: str, direction: str, line: ProtocolLine, description: str) -> None:
        now = time.time()
        self.interactions.append({
            "timestamp": now,
            "relative_time": now - self.start_time,
            "type": kind,
            "direction": direction,
            "command": self.protocol_handler.get_command_name(line),
            "argument": line.argument if line.argument is not None else "",
            "text": line.masked_text(),
            "description": description,
        })

    def record_request(self, line: ProtocolLine, description: str = "") -> None:
        """
        Record a client request.

        Args:
            line: The protocol line being sent
            description: Optional description of the request
        """
        if line.command == Commands.APIKEY:
            line = ProtocolLine.parse(line.masked_text())
        self._record_line("request", "client -> server", line, description)

    def record_response(self, line: ProtocolLine, description: str = "") -> None:
        """
        Record a server response.

        Args:
            line: The protocol line received
            description: Optional description of the response
        """
        self._record_line("response", "server -> client", line, description)

    def record_event(self, event_type: str, description: str, details: Dict[str, Any] = None) -> None:
        """
        Record a general event (connection, disconnection, error, etc.).

        Args:
            event_type: Type of event (connection, disconnection, error, etc.)
            description: Description of the event
            details: Additional event details
        """
        now = time.time()
        self.interactions.append({
            "timestamp": now,
            "relative_time": now - self.start_time,
            "type": "event",
            "event_type": event_type,
            "description": description,
            "details": details or {}
        })

    def get_wire_trace(self) -> List[str]:
        """Ordered text of every line sent or received."""
        return [i["text"] for i in self.interactions if i.get("type") in ("request", "response")]

    def get_session_summary(self) -> Dict[str, Any]:
        """
        Get a summary of the current session.

        Returns:
            Dict containing session statistics
        """
        requests = [i for i in self.interactions if i.get("type") == "request"]
        responses = [i for i in self.interactions if i.get("type") == "response"]
        events = [i for i in self.interactions if i.get("type") == "event"]

        return {
            "session_id": self.session_id,
            "duration": time.time() - self.start_time,
            "total_interactions": len(self.interactions),
            "requests": len(requests),
            "responses": len(responses),
            "events": len(events),
            "commands_sent": [r.get("command") for r in requests],
            "responses_received": [r.get("command") for r in responses]
        }

    def clear(self) -> None:
        """Drop all recorded interactions and restart the clock."""
        self.interactions = []
        self.start_time = time.time()
