# =============================================================================
# Configuration Tests
# =============================================================================

import pytest

from mailcourier import app
from mailcourier.config import Config, ConfigError, get_xdg_config_home
from mailcourier.core import Account


def write(path, text):
    path.write_text(text, encoding="utf-8")
    return path


def test_xdg_config_home_respects_env(monkeypatch, temp_dir):
    monkeypatch.setenv("XDG_CONFIG_HOME", str(temp_dir))

    assert get_xdg_config_home() == temp_dir / "mailcourier"
    assert Config.config_file_path() == temp_dir / "mailcourier" / "config.toml"


def test_missing_file_gives_defaults(temp_dir):
    config = Config.load(temp_dir / "nope.toml")

    assert config.default_account == ""
    assert config.timeout == 30
    assert config.accounts == {}


def test_load_accounts(temp_dir):
    path = write(temp_dir / "config.toml", """
[general]
default_account = "work"

[defaults]
timeout = 10

[accounts.work]
email = "jane@example.com"
display_name = "Jane Doe"
smtp_host = "smtp.example.com"
smtp_port = 465
smtp_security = "ssl"
auth = "plain"

[accounts.relay]
email = "noreply@example.com"
smtp_host = "localhost"
smtp_port = 25
smtp_security = "none"
auth = "none"
""")

    config = Config.load(path)

    assert config.timeout == 10
    work = config.get_account()
    assert work.email == "jane@example.com"
    assert work.username == "jane@example.com"
    assert work.smtp_security == "ssl"
    assert work.auth == "plain"
    assert work.address == "smtp.example.com:465"

    relay = config.get_account("relay")
    assert relay.display_name == "noreply@example.com"
    assert relay.auth == "none"


def test_round_trip(temp_dir):
    path = temp_dir / "sub" / "config.toml"
    config = Config(default_account="work", timeout=15)
    config.accounts["work"] = Account(
        name="work",
        email="jane@example.com",
        display_name="Jane Doe",
        smtp_host="smtp.example.com",
        username="jane",
        skip_verify=True,
    )

    config.save(path)
    loaded = Config.load(path)

    assert loaded == config


def test_invalid_toml(temp_dir):
    path = write(temp_dir / "config.toml", "[general\n")

    with pytest.raises(ConfigError, match="Invalid config file"):
        Config.load(path)


@pytest.mark.parametrize(
    "account_toml, message",
    [
        ('smtp_host = "h"', "no email"),
        ('email = "a@b.c"', "no smtp_host"),
        ('email = "a@b.c"\nsmtp_host = "h"\nsmtp_port = 0', "invalid smtp_port"),
        ('email = "a@b.c"\nsmtp_host = "h"\nsmtp_security = "tls"', "smtp_security"),
        ('email = "a@b.c"\nsmtp_host = "h"\nauth = "cram-md5"', "auth must be"),
    ],
)
def test_invalid_account(temp_dir, account_toml, message):
    path = write(temp_dir / "config.toml", f"[accounts.bad]\n{account_toml}\n")

    with pytest.raises(ConfigError, match=message):
        Config.load(path)


@pytest.mark.parametrize(
    "text, message",
    [
        ('general = "x"\n', "general. must be a table"),
        ('defaults = 5\n', "defaults. must be a table"),
        ('accounts = "work"\n', "accounts. must be a table"),
        ("[accounts]\nwork = 3\n", "accounts.work. must be a table"),
    ],
)
def test_non_table_sections(temp_dir, text, message):
    path = write(temp_dir / "config.toml", text)

    with pytest.raises(ConfigError, match=message):
        Config.load(path)


@pytest.mark.parametrize(
    "account_toml, message",
    [
        ('email = 42\nsmtp_host = "h"', "accounts.bad.email must be a string"),
        ('email = "a@b.c"\nsmtp_host = ["h"]', "accounts.bad.smtp_host must be a string"),
        ('email = "a@b.c"\nsmtp_host = "h"\nauth = true', "accounts.bad.auth must be a string"),
        ('email = "a@b.c"\nsmtp_host = "h"\nsmtp_port = "587"', "invalid smtp_port"),
        ('email = "a@b.c"\nsmtp_host = "h"\nsmtp_port = true', "invalid smtp_port"),
        ('email = "a@b.c"\nsmtp_host = "h"\nskip_verify = "yes"', "skip_verify must be true or false"),
    ],
)
def test_wrongly_typed_account_values(temp_dir, account_toml, message):
    path = write(temp_dir / "config.toml", f"[accounts.bad]\n{account_toml}\n")

    with pytest.raises(ConfigError, match=message):
        Config.load(path)


def test_wrongly_typed_default_account(temp_dir):
    path = write(temp_dir / "config.toml", "[general]\ndefault_account = 1\n")

    with pytest.raises(ConfigError, match="general.default_account must be a string"):
        Config.load(path)


def test_cli_reports_bad_config_section(temp_dir, capsys):
    path = write(temp_dir / "config.toml", "[accounts]\nwork = 3\n")

    code = app.main(["--config", str(path), "send", "--to", "a@example.com", "--dry-run"])

    assert code == 1
    assert "must be a table" in capsys.readouterr().err


def test_invalid_timeout(temp_dir):
    path = write(temp_dir / "config.toml", "[defaults]\ntimeout = -1\n")

    with pytest.raises(ConfigError, match="timeout"):
        Config.load(path)


def test_unknown_default_account(temp_dir):
    path = write(temp_dir / "config.toml", '[general]\ndefault_account = "ghost"\n')

    with pytest.raises(ConfigError, match="ghost"):
        Config.load(path)


def test_get_account_single_account_without_default(sample_account):
    config = Config(accounts={"test": sample_account})

    assert config.get_account() is sample_account


def test_get_account_errors(sample_account):
    config = Config(accounts={"test": sample_account, "other": sample_account})

    with pytest.raises(ConfigError, match="no default_account"):
        config.get_account()
    with pytest.raises(ConfigError, match="Unknown account: missing"):
        config.get_account("missing")


def test_account_properties(sample_account):
    assert sample_account.address == "smtp.example.com:587"
    assert sample_account.from_header == "Test User <test@example.com>"
    assert sample_account.keyring_service == "mailcourier:test"
    assert sample_account.username == "test@example.com"


def test_account_ipv6_address():
    account = Account(name="v6", email="a@example.com", smtp_host="::1", smtp_port=25)

    assert account.address == "[::1]:25"
    assert account.from_header == "a@example.com"
