# =============================================================================
# SMTP Client
# =============================================================================
# Sends a single message to a mail relay.
#
# Sequence:
#   connect -> EHLO -> STARTTLS (if offered) -> EHLO -> AUTH (if offered and
#   credentials given) -> MAIL FROM -> RCPT TO (each) -> DATA -> QUIT
#
# The first failure aborts the sequence and is raised to the caller. The
# connection is always closed on the way out. No retries.
#
# Uses aiosmtplib for the protocol; SASL mechanisms come from smtp.auth.
# =============================================================================

import base64
import binascii
import logging

import aiosmtplib

from mailcourier.core.message import Message, envelope_address
from mailcourier.smtp.auth import Auth, AuthError, ServerInfo

logger = logging.getLogger(__name__)

# Timeout for SMTP operations (seconds)
TIMEOUT = 30

# SMTP reply codes used during AUTH
AUTH_SUCCESSFUL = 235
AUTH_CONTINUE = 334


async def send(
    addr: str,
    auth: Auth | None,
    message: Message,
    skip_verify: bool = False,
    *,
    use_tls: bool = False,
    start_tls: bool = True,
    timeout: float = TIMEOUT,
    local_hostname: str | None = None,
) -> str:
    """
    Send a message through the relay at addr.

    Args:
        addr: Relay address as "host:port" ("[::1]:25" for IPv6).
        auth: SASL mechanism, or None to skip authentication. Ignored when
              the server doesn't advertise AUTH.
        message: The message to send.
        skip_verify: Don't verify the server's TLS certificate (insecure).
        use_tls: Connect with TLS from the start instead of STARTTLS.
        start_tls: Upgrade with STARTTLS when the server offers it.
        timeout: Timeout for each network operation, in seconds.
        local_hostname: Name announced in EHLO. Defaults to the relay host.

    Returns:
        Message-ID of the sent message.

    Raises:
        SMTPConnectionError: If the address is invalid, or connecting,
                             greeting or STARTTLS fails.
        SMTPAuthenticationError: If authentication fails.
        SendError: If the server rejects the message or a recipient.
    """
    try:
        host, port = split_host_port(addr)
    except ValueError as e:
        logger.error(f"Invalid SMTP address {addr!r}: {e}")
        raise SMTPConnectionError(f"Invalid SMTP address {addr!r}: {e}") from e

    if not message.recipients():
        raise SendError("No recipients specified")

    # Serialized before connecting
    mime = message.as_mime()
    message_id = str(mime["Message-ID"])
    data = mime.as_bytes()

    client = aiosmtplib.SMTP(
        hostname=host,
        port=port,
        use_tls=use_tls,
        start_tls=False,
        validate_certs=not skip_verify,
        local_hostname=local_hostname or host,
        timeout=timeout,
    )

    try:
        tls = await _handshake(client, host, port, use_tls, start_tls, skip_verify)

        if auth is not None and client.supports_extension("auth"):
            server = ServerInfo(
                name=host,
                tls=tls,
                auth=[method.upper() for method in client.server_auth_methods],
            )
            try:
                await _authenticate(client, auth, server)
            except SMTPAuthenticationError as e:
                logger.error(f"SMTP authentication failed for {host}: {e}")
                raise

        await _transmit(client, message, data)
    finally:
        if client.is_connected:
            client.close()

    logger.info(f"Email sent successfully: {message_id}")
    return message_id


def split_host_port(addr: str) -> tuple[str, int]:
    """
    Split "host:port" into its parts.

    Raises:
        ValueError: If the port is missing or not a valid port number.
    """
    if addr.startswith("["):
        host, bracket, rest = addr[1:].partition("]")
        if not bracket or not rest.startswith(":"):
            raise ValueError("missing port in address")
        port_str = rest[1:]
    else:
        host, colon, port_str = addr.rpartition(":")
        if not colon:
            raise ValueError("missing port in address")
        if ":" in host:
            raise ValueError("too many colons in address")

    if not host:
        raise ValueError("missing host in address")

    # Digits only; int() also takes "+25", " 25" and "2_5"
    if not port_str.isascii() or not port_str.isdigit():
        raise ValueError(f"invalid port {port_str!r}")
    port = int(port_str)
    if not 0 < port < 65536:
        raise ValueError(f"port out of range: {port}")
    return host, port


async def _handshake(
    client: aiosmtplib.SMTP,
    host: str,
    port: int,
    use_tls: bool,
    start_tls: bool,
    skip_verify: bool,
) -> bool:
    """
    Connect, greet the server and upgrade to TLS when offered.

    Returns:
        True if the connection ended up encrypted.
    """
    logger.info(f"Connecting to SMTP {host}:{port}")

    try:
        await client.connect()
        await _hello(client)

        if use_tls:
            return True

        if start_tls and client.supports_extension("starttls"):
            logger.debug("Server offers STARTTLS, upgrading connection")
            await client.starttls(server_hostname=host, validate_certs=not skip_verify)
            # Capabilities may change once encrypted
            await _hello(client)
            return True

        logger.debug("Not using STARTTLS, staying on plaintext")
        return False

    except (aiosmtplib.SMTPException, OSError) as e:
        logger.error(f"Failed to connect to SMTP {host}:{port}: {e}")
        raise SMTPConnectionError(
            f"Failed to connect to SMTP {host}:{port}: {e}"
        ) from e


async def _hello(client: aiosmtplib.SMTP) -> None:
    try:
        await client.ehlo()
    except aiosmtplib.SMTPHeloError:
        logger.debug("EHLO rejected, falling back to HELO")
        await client.helo()


async def _authenticate(client: aiosmtplib.SMTP, auth: Auth, server: ServerInfo) -> None:
    """
    Run the AUTH exchange for a mechanism.

    Raises:
        SMTPAuthenticationError: If the mechanism refuses to run, answers a
                                 challenge with an error, or the server
                                 rejects the credentials.
    """
    try:
        mechanism, initial = auth.start(server)
    except AuthError as e:
        raise SMTPAuthenticationError(str(e)) from e

    logger.debug(f"Authenticating with {mechanism}")

    command = [b"AUTH", mechanism.encode("ascii")]
    if initial is not None:
        # "=" stands for an empty initial response (RFC 4954)
        command.append(base64.b64encode(initial) if initial else b"=")

    try:
        response = await client.execute_command(*command)

        while True:
            if response.code == AUTH_CONTINUE:
                more = True
                try:
                    challenge = base64.b64decode(response.message, validate=True)
                except binascii.Error as e:
                    await client.execute_command(b"*")
                    raise SMTPAuthenticationError(
                        f"Malformed {mechanism} challenge: {response.message!r}"
                    ) from e
            elif response.code == AUTH_SUCCESSFUL:
                more = False
                challenge = response.message.encode("utf-8")
            else:
                raise SMTPAuthenticationError(
                    f"{mechanism} authentication failed: {response.code} {response.message}"
                )

            try:
                reply = auth.next(challenge, more)
            except AuthError as e:
                # Tell the server we're giving up
                await client.execute_command(b"*")
                raise SMTPAuthenticationError(str(e)) from e

            if reply is None:
                if not more:
                    break
                reply = b""

            response = await client.execute_command(base64.b64encode(reply))

    except aiosmtplib.SMTPException as e:
        raise SMTPAuthenticationError(f"{mechanism} authentication failed: {e}") from e

    logger.debug("SMTP authentication successful")


async def _transmit(client: aiosmtplib.SMTP, message: Message, data: bytes) -> None:
    """Run the MAIL / RCPT / DATA / QUIT part of the session."""
    recipients = message.recipients()

    try:
        logger.debug(f"MAIL FROM {message.sender_address}")
        await client.mail(message.sender_address)

        for recipient in recipients:
            logger.debug(f"RCPT TO {recipient}")
            await client.rcpt(envelope_address(recipient))

        logger.info(f"Sending email to {', '.join(recipients)}")
        await client.data(data)
        await client.quit()

    except (aiosmtplib.SMTPException, OSError) as e:
        logger.error(f"Failed to send email: {e}")
        raise SendError(f"Failed to send email: {e}") from e


class SMTPError(Exception):
    """Base exception for SMTP operations."""
    pass


class SMTPConnectionError(SMTPError):
    """Raised when unable to connect to SMTP server."""
    pass


class SMTPAuthenticationError(SMTPError):
    """Raised when SMTP authentication fails."""
    pass


class SendError(SMTPError):
    """Raised when email sending fails."""
    pass
