# =============================================================================
# SMTP Module
# =============================================================================
# Handles sending emails via SMTP (Simple Mail Transfer Protocol).
#
# Features:
#   - Plaintext, STARTTLS and implicit TLS connections
#   - SASL LOGIN and PLAIN authentication
#   - Single-shot delivery: MAIL / RCPT / DATA / QUIT
# =============================================================================

from mailcourier.smtp.auth import (
    Auth,
    AuthError,
    LoginAuth,
    PlainAuth,
    ServerInfo,
)
from mailcourier.smtp.client import (
    send,
    split_host_port,
    SMTPError,
    SMTPConnectionError,
    SMTPAuthenticationError,
    SendError,
)

__all__ = [
    "Auth",
    "AuthError",
    "LoginAuth",
    "PlainAuth",
    "ServerInfo",
    "send",
    "split_host_port",
    "SMTPError",
    "SMTPConnectionError",
    "SMTPAuthenticationError",
    "SendError",
]
