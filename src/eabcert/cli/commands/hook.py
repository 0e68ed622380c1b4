"""``eabcert hook``: certbot manual DNS-01 hooks.

certbot passes the identifier and token through the environment::

    CERTBOT_DOMAIN=example.com CERTBOT_VALIDATION=<token> eabcert -c cfg hook auth
"""

from __future__ import annotations

import logging
import os
import sys

log = logging.getLogger(__name__)


def _require_env(name: str) -> str:
    value = os.environ.get(name)
    if not value:
        from eabcert.core.errors import IssuanceError

        msg = f"{name} is not set; 'eabcert hook' must be run by certbot"
        raise IssuanceError(msg)
    return value


def run_hook(args, config=None) -> None:
    """Handle hook subcommands."""
    from eabcert.acme.challenge import DnsChallengeHook
    from eabcert.core.runner import CommandRunner

    if config is None:
        from eabcert.config import get_config

        config = get_config()

    hook = DnsChallengeHook(CommandRunner(), config.settings.challenge)
    sub = getattr(args, "hook_command", None)

    if sub == "auth":
        hook.auth(_require_env("CERTBOT_DOMAIN"), _require_env("CERTBOT_VALIDATION"))
    elif sub == "cleanup":
        hook.cleanup(_require_env("CERTBOT_DOMAIN"))
    else:
        log.error("Unknown hook command: %s", sub)
        sys.exit(1)
