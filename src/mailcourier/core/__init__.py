# =============================================================================
# mailcourier Core Module
# =============================================================================
# Plain dataclasses describing what gets sent and who sends it:
#   - Message: an outgoing email and its MIME serialization
#   - Attachment: a file attached to a message
#   - Account: a sending account and its SMTP relay
# =============================================================================

from mailcourier.core.account import Account
from mailcourier.core.message import (
    Attachment,
    Message,
    envelope_address,
    new_html_message,
    new_message,
)

__all__ = [
    "Account",
    "Attachment",
    "Message",
    "envelope_address",
    "new_html_message",
    "new_message",
]
