# =============================================================================
# mailcourier Command Line
# =============================================================================
# Entry point for the 'mailcourier' command.
#
# Commands:
#   send         Compose a message from arguments and send it
#   account add  Store an account in the config file (password in keyring)
#   paths        Print configuration paths
#
# Passwords are read from the system keyring under the account's
# keyring service ("mailcourier:<name>") and login name.
# =============================================================================

import argparse
import asyncio
import getpass
import logging
import sys
from pathlib import Path

import keyring

from mailcourier import __version__, __app_name__
from mailcourier.config import Config, ConfigError, print_paths, validate_account
from mailcourier.core import Account, Message, new_html_message, new_message
from mailcourier.core.account import AUTH_MECHANISMS, SECURITY_MODES
from mailcourier.smtp import Auth, LoginAuth, PlainAuth, SMTPAuthenticationError, SMTPError, send

logger = logging.getLogger(__name__)


# =============================================================================
# Argument Parsing
# =============================================================================

def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser with all subcommands."""
    parser = argparse.ArgumentParser(
        prog=__app_name__,
        description="mailcourier: compose and send email through an SMTP relay",
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    parser.add_argument(
        "--config",
        type=Path,
        help="Path to config file (default: XDG config location)",
    )

    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug mode (verbose logging)",
    )

    commands = parser.add_subparsers(dest="command", required=True)

    # send ----------------------------------------------------------------
    send_parser = commands.add_parser("send", help="Compose and send a message")
    send_parser.add_argument("--account", help="Account to send from (default: default_account)")
    send_parser.add_argument("--to", action="append", required=True, help="Recipient (repeatable)")
    send_parser.add_argument("--cc", action="append", default=[], help="CC recipient (repeatable)")
    send_parser.add_argument("--bcc", action="append", default=[], help="BCC recipient (repeatable)")
    send_parser.add_argument("--reply-to", default="", help="Reply-To address")
    send_parser.add_argument("--subject", default="", help="Subject line")

    body = send_parser.add_mutually_exclusive_group()
    body.add_argument("--body", default="", help="Message body")
    body.add_argument("--body-file", help="Read the body from a file ('-' for stdin)")

    send_parser.add_argument("--html", action="store_true", help="Send the body as text/html")
    send_parser.add_argument("--attach", action="append", default=[], type=Path,
                             help="Attach a file, base64 encoded (repeatable)")
    send_parser.add_argument("--inline", action="append", default=[], type=Path,
                             help="Embed a file as an inline message/rfc822 part (repeatable)")
    send_parser.add_argument("--skip-verify", action="store_true",
                             help="Don't verify the server's TLS certificate (insecure)")
    send_parser.add_argument("--dry-run", action="store_true",
                             help="Print the message instead of sending it")

    # account add -----------------------------------------------------------
    account_parser = commands.add_parser("account", help="Manage accounts")
    account_commands = account_parser.add_subparsers(dest="account_command", required=True)

    add_parser = account_commands.add_parser("add", help="Add or replace an account")
    add_parser.add_argument("name", help="Account name (e.g. 'work')")
    add_parser.add_argument("--email", required=True, help="Sender address")
    add_parser.add_argument("--display-name", default="", help="Name shown in the From header")
    add_parser.add_argument("--smtp-host", required=True, help="SMTP relay host")
    add_parser.add_argument("--smtp-port", type=int, default=587, help="SMTP relay port")
    add_parser.add_argument("--security", choices=SECURITY_MODES, default="starttls",
                            help="Connection security")
    add_parser.add_argument("--username", default="", help="Login name (default: email)")
    add_parser.add_argument("--auth", choices=AUTH_MECHANISMS, default="login",
                            help="Authentication mechanism")
    add_parser.add_argument("--skip-verify", action="store_true",
                            help="Don't verify the server's TLS certificate (insecure)")
    add_parser.add_argument("--default", action="store_true",
                            help="Make this the default account")
    add_parser.add_argument("--password", action="store_true",
                            help="Prompt for the password and store it in the keyring")

    # paths ---------------------------------------------------------------
    commands.add_parser("paths", help="Print configuration paths and exit")

    return parser


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """
    Parse command-line arguments.

    Returns:
        Parsed arguments namespace.
    """
    return build_parser().parse_args(argv)


# =============================================================================
# Helpers
# =============================================================================

def build_message(account: Account, args: argparse.Namespace) -> Message:
    """
    Compose a message from the send arguments.

    Raises:
        OSError: If the body file or an attachment can't be read.
        ValueError: If the body isn't UTF-8 or a header value contains
                    a line break.
    """
    _check_header_values(args)

    try:
        if args.body_file == "-":
            body = sys.stdin.read()
        elif args.body_file:
            body = Path(args.body_file).read_text(encoding="utf-8")
        else:
            body = args.body
    except UnicodeDecodeError as e:
        source = "stdin" if args.body_file == "-" else args.body_file
        raise ValueError(f"Body from {source} is not valid UTF-8: {e}") from e

    if args.html:
        message = new_html_message(args.subject, body)
    else:
        message = new_message(args.subject, body)

    message.sender = account.from_header
    message.to = list(args.to)
    message.cc = list(args.cc)
    message.bcc = list(args.bcc)
    message.reply_to = args.reply_to

    for path in args.attach:
        message.attach(path)
    for path in args.inline:
        message.inline(path)

    return message


def _check_header_values(args: argparse.Namespace) -> None:
    """Reject line breaks in values that end up in headers or SMTP commands."""
    fields = {
        "--subject": [args.subject],
        "--reply-to": [args.reply_to],
        "--to": args.to,
        "--cc": args.cc,
        "--bcc": args.bcc,
    }
    for option, values in fields.items():
        for value in values:
            if "\r" in value or "\n" in value:
                raise ValueError(f"{option} may not contain line breaks: {value!r}")


def make_auth(account: Account) -> Auth | None:
    """
    Build the SASL mechanism for an account.

    Raises:
        SMTPAuthenticationError: If no password is stored in the keyring.
    """
    if account.auth == "none":
        return None

    password = keyring.get_password(account.keyring_service, account.username)
    if not password:
        raise SMTPAuthenticationError(
            f"No password found in keyring for {account.username}. "
            f"Set it with: keyring set {account.keyring_service} {account.username}"
        )

    if account.auth == "plain":
        return PlainAuth("", account.username, password, account.smtp_host)
    return LoginAuth(account.username, password, account.smtp_host)


def configure_logging(debug: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


# =============================================================================
# Commands
# =============================================================================

def cmd_send(args: argparse.Namespace, config: Config) -> int:
    """Compose a message and send it (or print it with --dry-run)."""
    account = config.get_account(args.account)
    message = build_message(account, args)

    if args.dry_run:
        sys.stdout.buffer.write(message.as_bytes())
        sys.stdout.flush()
        return 0

    auth = make_auth(account)
    message_id = asyncio.run(
        send(
            account.address,
            auth,
            message,
            skip_verify=account.skip_verify or args.skip_verify,
            use_tls=account.smtp_security == "ssl",
            start_tls=account.smtp_security == "starttls",
            timeout=config.timeout,
        )
    )

    print(f"Sent {message_id}")
    return 0


def cmd_account_add(args: argparse.Namespace, config: Config) -> int:
    """Store an account in the config file."""
    account = Account(
        name=args.name,
        email=args.email,
        display_name=args.display_name,
        smtp_host=args.smtp_host,
        smtp_port=args.smtp_port,
        smtp_security=args.security,
        username=args.username,
        auth=args.auth,
        skip_verify=args.skip_verify,
    )
    validate_account(account)

    config.accounts[account.name] = account
    if args.default or not config.default_account:
        config.default_account = account.name
    config.save(args.config)
    logger.info(f"Saved account {account}")

    if args.password:
        password = getpass.getpass(f"Password for {account.username}: ")
        keyring.set_password(account.keyring_service, account.username, password)

    print(f"Saved account {account}")
    return 0


def main(argv: list[str] | None = None) -> int:
    """
    Main entry point for mailcourier.

    Returns:
        Exit code (0 for success, 1 for errors).
    """
    args = parse_args(argv)
    configure_logging(args.debug)

    if args.command == "paths":
        print_paths()
        return 0

    try:
        config = Config.load(args.config)

        if args.command == "send":
            return cmd_send(args, config)
        return cmd_account_add(args, config)

    except (ConfigError, SMTPError, OSError, ValueError) as e:
        print(f"{__app_name__}: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
