"""
Shared fixtures: an in-process fake Prismatik server.
"""

import socket
import threading
import time

import pytest


WELCOME = 'Lightpack API v1.4 - Prismatik API v2.2 (type "help" for more info)'


class FakePrismatikServer:
    """
    Minimal threaded Prismatik API server on an ephemeral loopback port.

    The device lock is shared between all connections, like the real one.
    setprofile:on / setprofile:off toggle the status, matching what the
    client sends for set_status. Every received line is appended to
    received as (connection number, line).
    """

    def __init__(self, api_key="secret", profiles=None, status="on",
                 welcome=WELCOME, response_delay=0.0):
        self.api_key = api_key
        self.profiles = list(profiles if profiles is not None else ["movie", "game", "general"])
        self.current_profile = self.profiles[0] if self.profiles else ""
        self.status = status
        self.brightness = 100
        self.welcome = welcome
        self.response_delay = response_delay
        self.received = []
        self.connections = 0
        self.host = "127.0.0.1"
        self.port = None

        self._lock_owner = None
        self._state_lock = threading.Lock()
        self._stop = threading.Event()
        self._listener = None
        self._thread = None
        self._handlers = []

    def start(self):
        self._listener = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self._listener.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        self._listener.bind((self.host, 0))
        self._listener.listen()
        self._listener.settimeout(0.1)
        self.port = self._listener.getsockname()[1]
        self._thread = threading.Thread(target=self._serve, daemon=True)
        self._thread.start()
        return self

    def stop(self):
        self._stop.set()
        if self._thread:
            self._thread.join(timeout=2.0)
        for handler in self._handlers:
            handler.join(timeout=2.0)
        if self._listener:
            self._listener.close()

    def _serve(self):
        while not self._stop.is_set():
            try:
                conn, _ = self._listener.accept()
            except socket.timeout:
                continue
            except OSError:
                break
            with self._state_lock:
                self.connections += 1
                conn_id = self.connections
            handler = threading.Thread(target=self._handle, args=(conn, conn_id), daemon=True)
            self._handlers.append(handler)
            handler.start()

    def _handle(self, conn, conn_id):
        conn.settimeout(0.1)
        try:
            with conn:
                self._converse(conn, conn_id)
        finally:
            with self._state_lock:
                if self._lock_owner == conn_id:
                    self._lock_owner = None

    def _converse(self, conn, conn_id):
        authorized = self.api_key is None
        buffer = b""
        conn.sendall((self.welcome + "\r\n").encode("utf-8"))
        while not self._stop.is_set():
            try:
                data = conn.recv(1024)
            except socket.timeout:
                continue
            except OSError:
                return
            if not data:
                return
            buffer += data
            while b"\n" in buffer:
                raw, buffer = buffer.split(b"\n", 1)
                line = raw.decode("utf-8").rstrip("\r")
                with self._state_lock:
                    self.received.append((conn_id, line))
                    response, authorized = self._respond(conn_id, line, authorized)
                if self.response_delay:
                    time.sleep(self.response_delay)
                try:
                    conn.sendall((response + "\r\n").encode("utf-8"))
                except OSError:
                    return

    def _respond(self, conn_id, line, authorized):
        command, _, argument = line.partition(":")

        if command == "apikey":
            if argument == self.api_key:
                return "ok", True
            return "fail", False
        if not authorized:
            return "authorization required", authorized

        if command == "lock":
            if self._lock_owner in (None, conn_id):
                self._lock_owner = conn_id
                return "lock:success", authorized
            return "lock:busy", authorized
        if command == "unlock":
            if self._lock_owner == conn_id:
                self._lock_owner = None
                return "unlock:success", authorized
            return "unlock:not locked", authorized
        if command == "getprofiles":
            return "profiles:" + "".join(f"{name};" for name in self.profiles), authorized
        if command == "getprofile":
            return f"profile:{self.current_profile}", authorized
        if command == "getstatus":
            return f"status:{self.status}", authorized
        if command == "getstatusapi":
            return ("statusapi:idle" if self._lock_owner is None else "statusapi:busy"), authorized

        if self._lock_owner != conn_id:
            return "not locked", authorized
        if command == "setbrightness":
            if argument.isdigit() and 0 <= int(argument) <= 100:
                self.brightness = int(argument)
                return "ok", authorized
            return "error", authorized
        if command == "setprofile":
            if argument in ("on", "off"):
                self.status = argument
                return "ok", authorized
            if argument in self.profiles:
                self.current_profile = argument
                return "ok", authorized
            return "error", authorized
        return "unknown command", authorized

    def lines(self):
        """Received lines without connection numbers."""
        with self._state_lock:
            return [line for _, line in self.received]


@pytest.fixture
def server_factory():
    """Start fake servers with custom settings; all are stopped afterwards."""
    servers = []

    def start(**kwargs):
        server = FakePrismatikServer(**kwargs).start()
        servers.append(server)
        return server

    yield start
    for server in servers:
        server.stop()


@pytest.fixture
def fake_server(server_factory):
    return server_factory()
