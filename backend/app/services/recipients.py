"""
Internal recipient resolution.

Resolution order for a module with a config key:
  1. <CONFIG_KEY>_RECIPIENTS   module-specific override
  2. INTERNAL_RECIPIENTS       generic internal override
  3. EMAIL_TO                  legacy generic override
  4. module.default_recipients

Override values are comma-separated address lists. Entries are trimmed and
blanks dropped; an override that ends up empty falls through to the next
source. Values are read at call time, so overrides apply without a restart.
"""

import logging
import os
from typing import Mapping, Optional

from app.modules import FormModule

logger = logging.getLogger(__name__)

GENERIC_OVERRIDE_VARS = ("INTERNAL_RECIPIENTS", "EMAIL_TO")


class RecipientConfigurationError(RuntimeError):
    """No internal recipients could be resolved for a module."""


def parse_recipient_list(value: Optional[str]) -> list[str]:
    if not value:
        return []
    return [address.strip() for address in value.split(",") if address.strip()]


def module_override_var(module: FormModule) -> Optional[str]:
    if not module.config_key:
        return None
    return f"{module.config_key.upper()}_RECIPIENTS"


def resolve_recipients(
    module: FormModule,
    env: Optional[Mapping[str, str]] = None,
) -> list[str]:
    """
    Return the non-empty internal recipient list for ``module``.

    Args:
        module: Form module being handled.
        env: Environment mapping (defaults to os.environ; tests pass a dict).

    Raises:
        RecipientConfigurationError: every source resolved to an empty list.
    """
    env = os.environ if env is None else env

    if module.config_key:
        for var in (module_override_var(module),) + GENERIC_OVERRIDE_VARS:
            recipients = parse_recipient_list(env.get(var))
            if recipients:
                logger.debug(f"Recipients for {module.key!r} taken from {var}")
                return recipients

    recipients = [a.strip() for a in module.default_recipients if a and a.strip()]
    if not recipients:
        raise RecipientConfigurationError(
            f"No internal recipients configured for module {module.key!r}"
            + (f" (set {module_override_var(module)})" if module.config_key else "")
        )
    return recipients
