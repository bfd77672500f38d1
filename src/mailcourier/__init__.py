# =============================================================================
# mailcourier: Compose and Send Email over SMTP
# =============================================================================
#
# mailcourier builds MIME messages (plain text or HTML, with base64 or
# inline attachments) and hands them to an SMTP relay.
#
# Features:
#   - multipart/mixed messages with a fixed boundary
#   - STARTTLS and implicit TLS
#   - SASL LOGIN (for servers without PLAIN) and PLAIN authentication
#   - Passwords kept in the system keyring
#
# =============================================================================

__version__ = "0.1.0"
__app_name__ = "mailcourier"

from mailcourier.core import Attachment, Message, new_html_message, new_message
from mailcourier.smtp import LoginAuth, PlainAuth, send

# Main entry point - this is what gets called by the 'mailcourier' command
from mailcourier.app import main

__all__ = [
    "Attachment",
    "Message",
    "LoginAuth",
    "PlainAuth",
    "main",
    "new_html_message",
    "new_message",
    "send",
    "__version__",
    "__app_name__",
]
