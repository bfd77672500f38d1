# =============================================================================
# Pytest Configuration and Fixtures
# =============================================================================
# Shared fixtures for the mailcourier test suite.
#
# The SMTP library is replaced by FakeSMTP, an in-memory stand-in that records
# every call in order and lets a test script the server's behaviour:
# advertised extensions, AUTH replies and per-command failures.
# =============================================================================

import pytest
import tempfile
from pathlib import Path

import aiosmtplib

from mailcourier.core import Account, Message


class FakeServer:
    """Scripted server state shared by every FakeSMTP a test creates."""

    def __init__(self) -> None:
        self.extensions = {"starttls", "auth"}
        self.auth_methods = ["LOGIN"]
        self.auth_replies: list[aiosmtplib.SMTPResponse] = []
        self.errors: dict[str, Exception] = {}
        self.commands: list[tuple] = []
        self.clients: list["FakeSMTP"] = []

    def names(self) -> list[str]:
        """Just the command names, in order."""
        return [command[0] for command in self.commands]


class FakeSMTP:
    """Stands in for aiosmtplib.SMTP."""

    def __init__(self, server: FakeServer, **kwargs) -> None:
        self.server = server
        self.kwargs = kwargs
        self.is_connected = False
        self.server_auth_methods: list[str] = []
        self._extensions: set[str] = set()
        server.clients.append(self)

    def _record(self, name: str, *args) -> None:
        self.server.commands.append((name, *args))
        error = self.server.errors.get(name)
        if error is not None:
            raise error

    async def connect(self) -> None:
        self._record("connect")
        self.is_connected = True

    async def ehlo(self) -> None:
        self._record("ehlo")
        self._extensions = set(self.server.extensions)
        self.server_auth_methods = [method.lower() for method in self.server.auth_methods]

    async def helo(self) -> None:
        self._record("helo")

    def supports_extension(self, name: str) -> bool:
        return name.lower() in self._extensions

    async def starttls(self, server_hostname=None, validate_certs=None) -> None:
        self._record("starttls", server_hostname, validate_certs)
        self._extensions = set()

    async def execute_command(self, *args: bytes) -> aiosmtplib.SMTPResponse:
        self._record("command", *args)
        if args == (b"*",):
            return aiosmtplib.SMTPResponse(501, "5.7.0 Authentication cancelled")
        return self.server.auth_replies.pop(0)

    async def mail(self, sender: str) -> None:
        self._record("mail", sender)

    async def rcpt(self, recipient: str) -> None:
        self._record("rcpt", recipient)

    async def data(self, message: bytes) -> None:
        self._record("data", message)

    async def quit(self) -> None:
        self._record("quit")
        self.is_connected = False

    def close(self) -> None:
        self.server.commands.append(("close",))
        self.is_connected = False


@pytest.fixture
def fake_server(monkeypatch):
    """Replace aiosmtplib.SMTP with FakeSMTP and return the scripted server."""
    server = FakeServer()
    monkeypatch.setattr(aiosmtplib, "SMTP", lambda **kwargs: FakeSMTP(server, **kwargs))
    return server


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def sample_account():
    """Create a sample Account for testing."""
    return Account(
        name="test",
        email="test@example.com",
        display_name="Test User",
        smtp_host="smtp.example.com",
        smtp_port=587,
        smtp_security="starttls",
    )


@pytest.fixture
def sample_message():
    """Create a sample plain text Message for testing."""
    return Message(
        sender="Test User <test@example.com>",
        to=["alice@example.com"],
        cc=["carol@example.com"],
        bcc=["bob@example.com"],
        subject="Test Subject",
        body="This is a test email body.",
    )
