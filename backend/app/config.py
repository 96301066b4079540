"""
Environment configuration for the form relay.

Values are read from the process environment (optionally seeded from a .env
file) each time a helper is called, so recipient overrides and the brand name
can change between requests without a restart.
"""

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

load_dotenv()

DEFAULT_BRAND_NAME = "Energy Planner"
DEFAULT_SMTP_HOST = "smtp.gmail.com"
DEFAULT_SMTP_PORT = 465
DEFAULT_SMTP_TIMEOUT = 30.0
DEFAULT_PORT = 3001


@dataclass(frozen=True)
class MailSettings:
    """SMTP account settings shared by every request."""

    host: str
    port: int
    username: Optional[str]
    password: Optional[str]
    timeout: float = DEFAULT_SMTP_TIMEOUT

    @property
    def use_tls(self) -> bool:
        # 465 is implicit TLS; every other port upgrades with STARTTLS.
        return self.port == 465

    @property
    def sender_address(self) -> Optional[str]:
        return self.username


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}")


def get_mail_settings() -> MailSettings:
    """
    Build MailSettings from the environment.

    EMAIL_USER / EMAIL_PASS are not required here: a relay without
    credentials still starts, and every send fails with a clear error.
    """
    timeout_raw = os.getenv("SMTP_TIMEOUT", "").strip()
    return MailSettings(
        host=os.getenv("SMTP_HOST", "").strip() or DEFAULT_SMTP_HOST,
        port=_int_env("SMTP_PORT", DEFAULT_SMTP_PORT),
        username=os.getenv("EMAIL_USER") or None,
        password=os.getenv("EMAIL_PASS") or None,
        timeout=float(timeout_raw) if timeout_raw else DEFAULT_SMTP_TIMEOUT,
    )


def get_brand_name() -> str:
    """Default display name used in the From header."""
    return os.getenv("MAIL_FROM_NAME", "").strip() or DEFAULT_BRAND_NAME


def get_listen_port() -> int:
    return _int_env("PORT", DEFAULT_PORT)
