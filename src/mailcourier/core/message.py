# =============================================================================
# Message Model
# =============================================================================
# Represents an outgoing email message and knows how to serialize itself to
# RFC 2822 / MIME bytes ready for the SMTP DATA command.
#
# Message layout:
#   - No attachments:   a single text/plain or text/html part (utf-8)
#   - With attachments: multipart/mixed with a fixed boundary
#       1. the body part
#       2. one part per attachment, in the order they were added
#
# Attachments come in two flavours:
#   - Regular: application/octet-stream, base64 encoded (76 chars per line)
#   - Inline:  message/rfc822, embedded as-is with an inline disposition
# =============================================================================

import email
from dataclasses import dataclass, field
from email.mime.application import MIMEApplication
from email.mime.base import MIMEBase
from email.mime.message import MIMEMessage
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.policy import SMTP
from email.utils import formatdate, make_msgid, parseaddr
from pathlib import Path

from mailcourier import __app_name__

# Boundary used for every multipart/mixed message we build
BOUNDARY = "f46d043c813270fc6b04c2d223da"

PLAIN = "text/plain"
HTML = "text/html"


@dataclass
class Attachment:
    """
    A file attached to an outgoing message.

    Attributes:
        filename: Base name of the file, used in Content-Disposition.
        data: Raw file contents.
        inline: Embed the file as message/rfc822 instead of a base64
                encoded application/octet-stream part.
    """
    filename: str
    data: bytes
    inline: bool = False


@dataclass
class Message:
    """
    An email being composed.

    Attributes:
        sender: Value of the From header. May include a display name
                ("Jane Doe <jane@example.com>"); only the address is used
                for the SMTP envelope.
        to: List of recipient addresses.
        cc: List of CC recipients.
        bcc: List of BCC recipients. Never written to the headers.
        reply_to: Optional Reply-To address.
        subject: Subject line.
        body: Message body, plain text or HTML depending on body_content_type.
        body_content_type: "text/plain" or "text/html".
        attachments: Attachments keyed by file name, in insertion order.

    Example:
        >>> msg = new_message("Report", "See attached.")
        >>> msg.sender = "reports@example.com"
        >>> msg.to = ["boss@example.com"]
        >>> msg.attach("report.pdf")
        >>> data = msg.as_bytes()
    """
    sender: str = ""
    to: list[str] = field(default_factory=list)
    cc: list[str] = field(default_factory=list)
    bcc: list[str] = field(default_factory=list)
    reply_to: str = ""
    subject: str = ""
    body: str = ""
    body_content_type: str = PLAIN
    attachments: dict[str, Attachment] = field(default_factory=dict)

    # -------------------------------------------------------------------------
    # Attachments
    # -------------------------------------------------------------------------

    def attach(self, path: str | Path) -> None:
        """
        Attach a file as a base64 encoded part.

        Raises:
            OSError: If the file can't be read.
        """
        self._attach(path, inline=False)

    def inline(self, path: str | Path) -> None:
        """
        Attach a file as an inline message/rfc822 part.

        The file is parsed as a message and written back out when the
        message is serialized, so line endings become CRLF and long headers
        may be refolded. The bytes on disk are not copied verbatim.

        Raises:
            OSError: If the file can't be read.
        """
        self._attach(path, inline=True)

    def _attach(self, path: str | Path, inline: bool) -> None:
        path = Path(path)
        data = path.read_bytes()

        # Same file name replaces the earlier attachment
        self.attachments[path.name] = Attachment(
            filename=path.name,
            data=data,
            inline=inline,
        )

    # -------------------------------------------------------------------------
    # Envelope
    # -------------------------------------------------------------------------

    def recipients(self) -> list[str]:
        """Return every envelope recipient: To, then Cc, then Bcc."""
        return [*self.to, *self.cc, *self.bcc]

    @property
    def sender_address(self) -> str:
        """Bare address of the sender, without any display name."""
        return envelope_address(self.sender)

    # -------------------------------------------------------------------------
    # Serialization
    # -------------------------------------------------------------------------

    def as_mime(self) -> MIMEBase:
        """
        Build the MIME tree for this message.

        Returns:
            A single text part when there are no attachments, otherwise a
            multipart/mixed container.
        """
        body = self._body_part()

        if self.attachments:
            msg = MIMEMultipart("mixed", boundary=BOUNDARY, policy=SMTP)
            msg.attach(body)
            for attachment in self.attachments.values():
                msg.attach(_attachment_part(attachment))
        else:
            msg = body

        msg["From"] = self.sender
        msg["Date"] = formatdate(localtime=True)
        msg["To"] = ", ".join(self.to)
        if self.cc:
            msg["Cc"] = ", ".join(self.cc)
        # Bcc stays in the envelope only
        msg["Subject"] = self.subject
        if self.reply_to:
            msg["Reply-To"] = self.reply_to
        msg["Message-ID"] = make_msgid(domain=_domain_of(self.sender_address))
        msg["X-Mailer"] = __app_name__

        return msg

    def as_bytes(self) -> bytes:
        """Serialize the message with CRLF line endings."""
        return self.as_mime().as_bytes()

    def _body_part(self) -> MIMEText:
        maintype, _, subtype = self.body_content_type.partition("/")
        if maintype != "text" or not subtype:
            raise ValueError(f"Unsupported body content type: {self.body_content_type!r}")
        return MIMEText(self.body, subtype, "utf-8", policy=SMTP)


def new_message(subject: str, body: str) -> Message:
    """Create a plain text message."""
    return Message(subject=subject, body=body, body_content_type=PLAIN)


def new_html_message(subject: str, body: str) -> Message:
    """Create an HTML message."""
    return Message(subject=subject, body=body, body_content_type=HTML)


def envelope_address(value: str) -> str:
    """
    Extract the bare address from a header value.

    "Jane Doe <jane@example.com>" -> "jane@example.com". Values that don't
    parse are returned unchanged.
    """
    _, address = parseaddr(value)
    return address or value


def _domain_of(address: str) -> str | None:
    _, at, domain = address.rpartition("@")
    return domain if at and domain else None


def _attachment_part(attachment: Attachment) -> MIMEBase:
    """Build the MIME part for a single attachment."""
    if attachment.inline:
        # Embedded message, regenerated by the parser without transfer encoding
        inner = email.message_from_bytes(attachment.data, policy=SMTP)
        part = MIMEMessage(inner, policy=SMTP)
        disposition = "inline"
    else:
        # application/octet-stream, base64 wrapped at 76 characters
        part = MIMEApplication(attachment.data, policy=SMTP)
        disposition = "attachment"

    part.add_header("Content-Disposition", disposition, filename=attachment.filename)
    return part
