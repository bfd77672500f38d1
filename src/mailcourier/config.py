# =============================================================================
# Configuration Management
# =============================================================================
# Handles loading, saving, and validating mailcourier configuration.
#
# XDG Base Directory Compliance (https://specifications.freedesktop.org/basedir-spec/):
#   - Config:  $XDG_CONFIG_HOME/mailcourier/  (default: ~/.config/mailcourier/)
#
# Files:
#   - config.toml: User configuration (accounts, defaults)
#
# Example config.toml:
#
#   [general]
#   default_account = "work"
#
#   [defaults]
#   timeout = 30
#
#   [accounts.work]
#   email = "jane@example.com"
#   display_name = "Jane Doe"
#   smtp_host = "smtp.example.com"
#   smtp_port = 587
#   smtp_security = "starttls"
#   auth = "login"
# =============================================================================

import os
import tomllib  # Built into Python 3.11+
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import tomli_w  # For writing TOML (tomllib is read-only)

from mailcourier.core import Account
from mailcourier.core.account import AUTH_MECHANISMS, SECURITY_MODES


# Application identifier used in all XDG paths
APP_NAME = "mailcourier"


def get_xdg_config_home() -> Path:
    """
    Returns the XDG config directory for mailcourier.

    Respects $XDG_CONFIG_HOME if set, otherwise uses ~/.config/mailcourier/
    """
    xdg_config = os.environ.get("XDG_CONFIG_HOME")
    if xdg_config:
        base = Path(xdg_config)
    else:
        base = Path.home() / ".config"
    return base / APP_NAME


# =============================================================================
# Configuration Data Structures
# =============================================================================

@dataclass
class Config:
    """
    Main configuration container for mailcourier.

    Attributes:
        default_account: Name of the account used when none is given.
        timeout: Timeout for SMTP operations, in seconds.
        accounts: Dictionary of configured accounts, keyed by name.

    Usage:
        >>> config = Config.load()
        >>> config.get_account("work").smtp_host
        'smtp.example.com'
    """
    default_account: str = ""
    timeout: float = 30
    accounts: dict[str, Account] = field(default_factory=dict)

    @staticmethod
    def config_file_path() -> Path:
        """Returns the path to the main config file."""
        return get_xdg_config_home() / "config.toml"

    # -------------------------------------------------------------------------
    # Loading and Saving
    # -------------------------------------------------------------------------

    @classmethod
    def load(cls, path: Path | None = None) -> "Config":
        """
        Load configuration from a config file.

        If the file doesn't exist, returns default configuration.

        Args:
            path: Config file to read. Defaults to the XDG location.

        Raises:
            ConfigError: If the config file exists but is invalid.
        """
        config_path = path or cls.config_file_path()

        if not config_path.exists():
            return cls()

        try:
            with open(config_path, "rb") as f:
                data = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise ConfigError(f"Invalid config file {config_path}: {e}") from e

        return cls._from_dict(data)

    def save(self, path: Path | None = None) -> None:
        """
        Save configuration to a config file.

        Creates the parent directory if it doesn't exist.
        """
        config_path = path or self.config_file_path()
        config_path.parent.mkdir(parents=True, exist_ok=True)

        with open(config_path, "wb") as f:
            tomli_w.dump(self._to_dict(), f)

    def get_account(self, name: str | None = None) -> Account:
        """
        Look up an account by name, or the default account.

        Raises:
            ConfigError: If no matching account is configured.
        """
        name = name or self.default_account
        if not name:
            if len(self.accounts) == 1:
                return next(iter(self.accounts.values()))
            raise ConfigError("No account given and no default_account configured")

        try:
            return self.accounts[name]
        except KeyError:
            raise ConfigError(f"Unknown account: {name}") from None

    @classmethod
    def _from_dict(cls, data: dict[str, Any]) -> "Config":
        """
        Create a Config object from a dictionary (parsed TOML).

        Raises:
            ConfigError: If a table or value has the wrong type or an
                         invalid setting.
        """
        config = cls()

        general = _table(data, "general")
        config.default_account = _string(general, "default_account", "", "general")

        defaults = _table(data, "defaults")
        config.timeout = defaults.get("timeout", 30)
        if (
            isinstance(config.timeout, bool)
            or not isinstance(config.timeout, (int, float))
            or config.timeout <= 0
        ):
            raise ConfigError(f"defaults.timeout must be a positive number, got {config.timeout!r}")

        # Each key under [accounts] is an account name
        accounts_data = _table(data, "accounts")
        for name in accounts_data:
            where = f"accounts.{name}"
            acct_data = _table(accounts_data, name, where)

            skip_verify = acct_data.get("skip_verify", False)
            if not isinstance(skip_verify, bool):
                raise ConfigError(f"{where}.skip_verify must be true or false, got {skip_verify!r}")

            account = Account(
                name=name,
                email=_string(acct_data, "email", "", where),
                display_name=_string(acct_data, "display_name", "", where),
                smtp_host=_string(acct_data, "smtp_host", "", where),
                smtp_port=acct_data.get("smtp_port", 587),
                smtp_security=_string(acct_data, "smtp_security", "starttls", where),
                username=_string(acct_data, "username", "", where),
                auth=_string(acct_data, "auth", "login", where),
                skip_verify=skip_verify,
            )
            validate_account(account)
            config.accounts[name] = account

        if config.default_account and config.default_account not in config.accounts:
            raise ConfigError(f"default_account {config.default_account!r} is not configured")

        return config

    def _to_dict(self) -> dict[str, Any]:
        """
        Convert Config to a dictionary for TOML serialization.
        """
        data: dict[str, Any] = {}

        data["general"] = {
            "default_account": self.default_account,
        }

        data["defaults"] = {
            "timeout": self.timeout,
        }

        data["accounts"] = {}
        for name, account in self.accounts.items():
            data["accounts"][name] = {
                "email": account.email,
                "display_name": account.display_name,
                "smtp_host": account.smtp_host,
                "smtp_port": account.smtp_port,
                "smtp_security": account.smtp_security,
                "username": account.username,
                "auth": account.auth,
                "skip_verify": account.skip_verify,
            }

        return data


def _table(data: dict[str, Any], key: str, where: str | None = None) -> dict[str, Any]:
    """Return data[key] as a table, or an empty one when it's missing."""
    value = data.get(key, {})
    if not isinstance(value, dict):
        raise ConfigError(f"[{where or key}] must be a table, got {value!r}")
    return value


def _string(data: dict[str, Any], key: str, default: str, where: str) -> str:
    value = data.get(key, default)
    if not isinstance(value, str):
        raise ConfigError(f"{where}.{key} must be a string, got {value!r}")
    return value


def validate_account(account: Account) -> None:
    """Raise ConfigError if an account can't be used for sending."""
    if not account.email:
        raise ConfigError(f"Account {account.name!r} has no email")
    if not account.smtp_host:
        raise ConfigError(f"Account {account.name!r} has no smtp_host")
    port = account.smtp_port
    if isinstance(port, bool) or not isinstance(port, int) or not 0 < port < 65536:
        raise ConfigError(f"Account {account.name!r} has invalid smtp_port {account.smtp_port!r}")
    if account.smtp_security not in SECURITY_MODES:
        raise ConfigError(
            f"Account {account.name!r}: smtp_security must be one of "
            f"{', '.join(SECURITY_MODES)}, got {account.smtp_security!r}"
        )
    if account.auth not in AUTH_MECHANISMS:
        raise ConfigError(
            f"Account {account.name!r}: auth must be one of "
            f"{', '.join(AUTH_MECHANISMS)}, got {account.auth!r}"
        )


# =============================================================================
# Exceptions
# =============================================================================

class ConfigError(Exception):
    """Raised when there's an error loading or parsing configuration."""
    pass


# =============================================================================
# Utility Functions
# =============================================================================

def print_paths() -> None:
    """
    Print config paths for debugging.
    Useful for users wondering where their config is stored.
    """
    print(f"Config:       {get_xdg_config_home()}")
    print(f"Config file:  {Config.config_file_path()}")
