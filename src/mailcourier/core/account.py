# =============================================================================
# Account Model
# =============================================================================
# Represents a sending account: who the mail is from and which SMTP relay it
# goes through.
#
# IMPORTANT: Passwords are NOT stored here. They are retrieved from the system
# keyring at runtime using the 'keyring' library. This keeps credentials secure
# and out of config files.
# =============================================================================

from dataclasses import dataclass
from email.utils import formataddr

# Allowed values, checked when loading configuration
SECURITY_MODES = ("starttls", "ssl", "none")
AUTH_MECHANISMS = ("login", "plain", "none")


@dataclass
class Account:
    """
    Represents an email account with SMTP configuration.

    Attributes:
        name: A unique identifier for this account (e.g., "personal", "work").
              Used as the key in config files and for keyring lookups.
        email: The email address mail is sent from.
        display_name: The name shown in the "From" field.
                      Defaults to the email address if not specified.

        smtp_host: Hostname of the SMTP relay (e.g., "smtp.example.com").
        smtp_port: Port for the SMTP connection. Standard ports:
                   - 587 for submission with STARTTLS (recommended)
                   - 465 for SMTP over SSL
                   - 25 for relay between servers
        smtp_security: "starttls" upgrades the connection when the server
                       offers it, "ssl" connects with TLS from the start,
                       "none" never encrypts.
        username: Login name for SMTP AUTH. Defaults to the email address.
        auth: SASL mechanism to use: "login", "plain" or "none".
        skip_verify: Don't verify the server's TLS certificate (insecure).

    Example:
        >>> account = Account(
        ...     name="work",
        ...     email="jane@example.com",
        ...     display_name="Jane Doe",
        ...     smtp_host="smtp.example.com",
        ... )
        >>> account.address
        'smtp.example.com:587'
    """

    # Account identification
    name: str
    email: str
    display_name: str = ""

    # SMTP configuration
    smtp_host: str = ""
    smtp_port: int = 587                # Default to submission port
    smtp_security: str = "starttls"     # "starttls", "ssl" or "none"

    # Authentication
    username: str = ""
    auth: str = "login"                 # "login", "plain" or "none"
    skip_verify: bool = False

    def __post_init__(self) -> None:
        if not self.display_name:
            self.display_name = self.email
        if not self.username:
            self.username = self.email

    @property
    def address(self) -> str:
        """The relay address in host:port form."""
        host = self.smtp_host
        if ":" in host and not host.startswith("["):
            host = f"[{host}]"
        return f"{host}:{self.smtp_port}"

    @property
    def from_header(self) -> str:
        """The From header value, e.g. 'Jane Doe <jane@example.com>'."""
        if self.display_name == self.email:
            return self.email
        return formataddr((self.display_name, self.email))

    @property
    def keyring_service(self) -> str:
        """
        Returns the service name used for keyring password storage.

        The password can be managed with the keyring CLI:
            keyring set mailcourier:work jane@example.com
        """
        return f"mailcourier:{self.name}"

    def __str__(self) -> str:
        return f"{self.name} <{self.email}>"
