# =============================================================================
# SMTP Authentication Mechanisms
# =============================================================================
# SASL mechanisms used by the sender to answer the server during AUTH.
#
# A mechanism is a tiny state machine driven by the client:
#
#   1. start(server) picks the mechanism name and an optional initial
#      response, or refuses to run (e.g. credentials over plaintext).
#   2. next(challenge, more) is called for every 334 reply with the decoded
#      challenge, and once more with more=False when the server accepts.
#
# The client handles base64 on the wire; mechanisms only see raw bytes.
# =============================================================================

from dataclasses import dataclass, field

LOCAL_HOSTS = ("localhost", "127.0.0.1", "::1")


@dataclass
class ServerInfo:
    """
    What the client knows about the server when authentication starts.

    Attributes:
        name: Host name the client connected to (and verified TLS against).
        tls: Whether the connection is encrypted.
        auth: AUTH mechanisms advertised in the EHLO reply, upper-case.
    """
    name: str
    tls: bool = False
    auth: list[str] = field(default_factory=list)


class Auth:
    """Base class for SASL mechanisms."""

    def start(self, server: ServerInfo) -> tuple[str, bytes | None]:
        """
        Begin authentication.

        Returns:
            The mechanism name and the initial response (None for none).

        Raises:
            AuthError: If the mechanism refuses to run against this server.
        """
        raise NotImplementedError

    def next(self, from_server: bytes, more: bool) -> bytes | None:
        """
        Answer a server challenge.

        Args:
            from_server: Decoded challenge (or final message when more=False).
            more: True while the server expects another response.

        Returns:
            The response to send, or None when there is nothing to send.

        Raises:
            AuthError: If the challenge is unexpected.
        """
        raise NotImplementedError


class LoginAuth(Auth):
    """
    The LOGIN mechanism.

    For servers that advertise LOGIN but not PLAIN. The server prompts for
    "Username:" and "Password:" in turn.

    Usage:
        >>> auth = LoginAuth("jane@example.com", "secret", "smtp.example.com")
    """

    def __init__(self, username: str, password: str, host: str) -> None:
        self.username = username
        self.password = password
        self.host = host

    def start(self, server: ServerInfo) -> tuple[str, bytes | None]:
        # Plaintext is only acceptable when the server asked for LOGIN itself
        if not server.tls and "LOGIN" not in server.auth:
            raise AuthError("LoginAuth: unencrypted connection")
        if server.name != self.host:
            raise AuthError("LoginAuth: wrong host name")
        return "LOGIN", None

    def next(self, from_server: bytes, more: bool) -> bytes | None:
        if not more:
            return None

        command = from_server.decode("utf-8", "replace")
        command = command.removesuffix(":").lower()
        if command == "username":
            return self.username.encode("utf-8")
        if command == "password":
            return self.password.encode("utf-8")
        raise AuthError(f"LoginAuth: unexpected server challenge: {command}")

    def __repr__(self) -> str:
        return f"LoginAuth(username={self.username!r}, host={self.host!r})"


class PlainAuth(Auth):
    """
    The PLAIN mechanism (RFC 4616).

    Refuses to send credentials over an unencrypted connection unless the
    server is on the local machine.
    """

    def __init__(self, identity: str, username: str, password: str, host: str) -> None:
        self.identity = identity
        self.username = username
        self.password = password
        self.host = host

    def start(self, server: ServerInfo) -> tuple[str, bytes | None]:
        if not server.tls and server.name not in LOCAL_HOSTS:
            raise AuthError("PlainAuth: unencrypted connection")
        if server.name != self.host:
            raise AuthError("PlainAuth: wrong host name")
        response = f"{self.identity}\0{self.username}\0{self.password}"
        return "PLAIN", response.encode("utf-8")

    def next(self, from_server: bytes, more: bool) -> bytes | None:
        if more:
            # PLAIN is a single round trip
            raise AuthError("PlainAuth: unexpected server challenge")
        return None

    def __repr__(self) -> str:
        return f"PlainAuth(username={self.username!r}, host={self.host!r})"


class AuthError(Exception):
    """Raised by a mechanism to abort the authentication exchange."""
    pass
