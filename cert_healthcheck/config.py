"""Run configuration, assembled once from the process environment.

Nothing outside this module reads ``os.environ``; the CLI calls
:func:`load_settings` and passes the result down.
"""
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional, Tuple

from .errors import ConfigError


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int
    interval: float
    deadline: Optional[float] = None

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ConfigError("RetryPolicy.max_attempts must be at least 1")
        if self.interval < 0:
            raise ConfigError("RetryPolicy.interval must not be negative")


@dataclass(frozen=True)
class Timeouts:
    # seconds
    navigation: float = 180
    default: float = 60
    step: float = 180
    visible: float = 30
    dropdown: float = 60
    hidden: float = 30
    test: float = 300


@dataclass(frozen=True)
class MailSettings:
    host: Optional[str] = None
    port: int = 587
    user: Optional[str] = None
    password: Optional[str] = None
    sender: Optional[str] = None
    recipients: Tuple[str, ...] = ()

    @property
    def use_ssl(self):
        return self.port == 465

    def missing(self):
        names = {
            "SMTP_HOST": self.host,
            "SMTP_USER": self.user,
            "SMTP_PASS": self.password,
            "MAIL_FROM": self.sender,
            "MAIL_TO": self.recipients,
        }
        return [name for name, value in names.items() if not value]

    def validate(self):
        missing = self.missing()
        if missing:
            raise ConfigError(f"Missing SMTP or mail env vars: {', '.join(missing)}")
        return self


# Wait up to 3 minutes for the first certification, checking every 2 seconds
LOAD_POLICY = RetryPolicy(max_attempts=90, interval=2, deadline=180)
COLLECT_POLICY = RetryPolicy(max_attempts=5, interval=2)
ITEM_POLICY = RetryPolicy(max_attempts=5, interval=2)


@dataclass(frozen=True)
class Settings:
    report_dir: Path = Path("report")
    urls: Dict[str, str] = field(default_factory=dict)
    headless: bool = True
    test_retries: int = 0
    timeouts: Timeouts = Timeouts()
    load_policy: RetryPolicy = LOAD_POLICY
    collect_policy: RetryPolicy = COLLECT_POLICY
    item_policy: RetryPolicy = ITEM_POLICY
    mail: MailSettings = MailSettings()

    def url_for(self, env):
        return self.urls.get(env.slug) or env.default_url


def _bool(environ, name, default):
    raw = environ.get(name)
    if raw is None or not raw.strip():
        return default
    value = raw.strip().lower()
    if value in ("1", "true", "yes", "y", "on"):
        return True
    if value in ("0", "false", "no", "n", "off"):
        return False
    raise ConfigError(f"{name} must be a boolean, got {raw!r}")


def _int(environ, name, default):
    raw = environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from None


def _recipients(raw):
    if not raw:
        return ()
    return tuple(addr.strip() for addr in raw.split(",") if addr.strip())


def load_settings(environ):
    from .environments import ENVIRONMENTS

    urls = {}
    for env in ENVIRONMENTS:
        override = (environ.get(env.url_var) or "").strip()
        if override:
            urls[env.slug] = override.rstrip("/")

    test_retries = _int(environ, "TEST_RETRIES", 0)
    if test_retries < 0:
        raise ConfigError("TEST_RETRIES must not be negative")

    mail = MailSettings(
        host=environ.get("SMTP_HOST") or None,
        port=_int(environ, "SMTP_PORT", 587),
        user=environ.get("SMTP_USER") or None,
        password=environ.get("SMTP_PASS") or None,
        sender=environ.get("MAIL_FROM") or None,
        recipients=_recipients(environ.get("MAIL_TO")),
    )

    return Settings(
        report_dir=Path(environ.get("REPORT_DIR") or "report"),
        urls=urls,
        headless=_bool(environ, "HEADLESS", True),
        test_retries=test_retries,
        mail=mail,
    )
