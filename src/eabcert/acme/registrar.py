"""ACME account registration with External Account Binding.

Ensures exactly one certbot account exists for the configured ACME
server, bound to a freshly minted EAB key:

- :attr:`AccountState.NO_ACCOUNT` -- register directly;
- :attr:`AccountState.HAS_ACCOUNT` -- unregister the old account, then
  register again.

An EAB key can bind only one registration, so a stale account is always
replaced.  Unregistering is irreversible: the old account can no longer
renew anything it issued.  It runs without an interactive confirmation.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from eabcert.core import console
from eabcert.core.types import AccountState

if TYPE_CHECKING:
    from eabcert.acme.certbot import Certbot
    from eabcert.core.types import EabCredential

log = logging.getLogger(__name__)

# certbot prints this (to stderr) from ``show_account`` when it holds no
# account for the server
_NOT_FOUND_MARKER = "Could not find an existing account for server {server}."


def account_state_from_output(output: str, server: str) -> AccountState:
    """Classify ``certbot show_account`` output for *server*."""
    if _NOT_FOUND_MARKER.format(server=server) in output:
        return AccountState.NO_ACCOUNT
    return AccountState.HAS_ACCOUNT


class AccountRegistrar:
    """Drive certbot through the account registration state machine.

    Parameters
    ----------
    certbot:
        Certbot command builder.
    sudo_unregister:
        Run ``certbot unregister`` under ``sudo``.

    """

    def __init__(self, certbot: Certbot, *, sudo_unregister: bool = True) -> None:
        self.certbot = certbot
        self.sudo_unregister = sudo_unregister

    def query_account_state(self, server: str) -> AccountState:
        """Return whether certbot already holds an account for *server*."""
        result = self.certbot.run("show_account", "--server", server, check=False)
        state = account_state_from_output(result.output, server)
        log.info("Account state for %s: %s", server, state.value)
        return state

    def register(self, credential: EabCredential, email: str, server: str) -> None:
        self.certbot.run(
            "register",
            "--email",
            email,
            "--no-eff-email",
            "--server",
            server,
            "--eab-kid",
            credential.key_id,
            "--eab-hmac-key",
            credential.mac_key,
            "--agree-tos",
            "--non-interactive",
        )
        console.status(f"ACME account registered for {email} with EAB key {credential.key_id}.")

    def unregister(self, server: str) -> None:
        """Deactivate the existing account for *server* (irreversible)."""
        log.warning("Deactivating existing ACME account for %s", server)
        self.certbot.run(
            "unregister",
            "--server",
            server,
            "--non-interactive",
            sudo=self.sudo_unregister,
            input_text="D\n",
        )
        console.status("Existing ACME account unregistered.")

    def ensure_registered(
        self,
        credential: EabCredential,
        email: str,
        server: str,
    ) -> AccountState:
        """Register *email* on *server*, replacing any existing account.

        Returns the state found before registration.
        """
        state = self.query_account_state(server)
        if state is AccountState.HAS_ACCOUNT:
            self.unregister(server)
        self.register(credential, email, server)
        return state
