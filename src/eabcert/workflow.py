"""Issuance and renewal workflows.

:class:`IssuanceWorkflow` runs the first-issuance steps strictly in
order and stops at the first fatal error; nothing is rolled back.

1. ensure certbot and openssl are installed;
2. set the gcloud project, grant the EAB key creator role, enable the
   Public CA API and mint an EAB key;
3. generate a fresh key and CSR;
4. (re)register the ACME account with the EAB key;
5. request the certificate over DNS-01 and file the chain.

:class:`RenewalWorkflow` is invoked on its own: it reads the issued
certificate's expiry and renews only when it is due.

The working directory has a single writer and no lock: two runs against
the same ``<env>`` directory at once can clobber each other's key/CSR.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import TYPE_CHECKING

from eabcert.acme.certbot import Certbot
from eabcert.acme.issuer import CertificateIssuer
from eabcert.acme.registrar import AccountRegistrar
from eabcert.core import console
from eabcert.core.errors import RenewalError
from eabcert.core.types import ChallengeMode, RenewalStrategy
from eabcert.prereqs.installer import PrerequisiteInstaller, required_tools
from eabcert.provision.gcloud import CredentialProvisioner
from eabcert.tls.expiry import ExpiryReader, needs_renewal
from eabcert.tls.keygen import KeyGenerator

if TYPE_CHECKING:
    from eabcert.config.settings import EabcertSettings
    from eabcert.core.runner import CommandRunner
    from eabcert.core.types import CertificateBundle

log = logging.getLogger(__name__)


def hook_command(config_path: str | Path) -> list[str]:
    """Command prefix certbot uses to call back into ``eabcert hook``."""
    return [
        sys.executable,
        "-m",
        "eabcert",
        "-c",
        str(Path(config_path).resolve()),
        "hook",
    ]


class IssuanceWorkflow:
    """First issuance: prerequisites through filed certificate bundle.

    Parameters
    ----------
    settings:
        Validated settings tree.
    runner:
        Command boundary shared by every step.
    config_path:
        Path of the loaded config file; required in ``hook`` challenge
        mode so certbot can call back into eabcert.
    installer:
        Pre-built installer (tests); built from *settings* otherwise.

    """

    def __init__(
        self,
        settings: EabcertSettings,
        runner: CommandRunner,
        *,
        config_path: str | Path | None = None,
        installer: PrerequisiteInstaller | None = None,
    ) -> None:
        self.settings = settings
        self.installer = installer or PrerequisiteInstaller(
            runner,
            settings.installer,
            settings.tools,
        )
        self.provisioner = CredentialProvisioner(runner, settings.tools.gcloud, settings.gcloud)
        self.keygen = KeyGenerator(runner, settings.tools.openssl)
        certbot = Certbot(runner, settings.tools, settings.certbot)
        self.registrar = AccountRegistrar(
            certbot,
            sudo_unregister=settings.certbot.sudo_unregister,
        )
        hooks = None
        if settings.challenge.mode is ChallengeMode.HOOK and config_path is not None:
            hooks = hook_command(config_path)
        self.issuer = CertificateIssuer(certbot, settings.challenge, hook_command=hooks)

    def run(self) -> CertificateBundle:
        s = self.settings
        log.info("Starting issuance for %s (env %s)", s.subject.common_name, s.env)

        self.installer.ensure_all(required_tools(s.tools))

        self.provisioner.set_project(s.project_id)
        self.provisioner.grant_eab_permission(
            s.project_id,
            self.provisioner.member(s.user_email),
        )
        self.provisioner.enable_service(s.gcloud.service)
        credential = self.provisioner.request_eab_key()

        material = self.keygen.generate_keypair(
            s.subject,
            s.key.size,
            s.layout.directory,
            s.env,
        )

        self.registrar.ensure_registered(credential, s.user_email, s.acme_server)

        bundle = self.issuer.issue(material, s.layout, s.acme_server, s.key.size)

        console.status("Script Complete.")
        log.info("Issued %s", bundle.leaf)
        return bundle


class RenewalWorkflow:
    """Renew the environment's certificate once it is due.

    Parameters
    ----------
    settings:
        Validated settings tree.
    runner:
        Command boundary.
    reissue:
        Callable running a full issuance, used by the ``reissue``
        strategy.
    now:
        Clock returning an aware UTC datetime (tests).

    """

    def __init__(
        self,
        settings: EabcertSettings,
        runner: CommandRunner,
        *,
        reissue: Callable[[], object] | None = None,
        now: Callable[[], datetime] | None = None,
    ) -> None:
        self.settings = settings
        self.expiry = ExpiryReader(runner, settings.tools.openssl)
        self.certbot = Certbot(runner, settings.tools, settings.certbot)
        self._reissue = reissue
        self._now = now or (lambda: datetime.now(UTC))
        self.not_after: datetime | None = None

    def check(self) -> bool:
        """Return whether the certificate needs renewal now."""
        cert_path = self.settings.layout.certificate
        not_after = self.not_after = self.expiry.read_expiry(cert_path)
        margin = timedelta(days=self.settings.renewal.margin_days)
        due = needs_renewal(not_after, self._now(), margin)
        log.info(
            "%s expires %s; renewal %s",
            cert_path,
            not_after.isoformat(),
            "due" if due else "not due",
        )
        return due

    def run(self) -> bool:
        """Renew if due; return whether a renewal was performed."""
        if not self.check():
            console.status("Certificate is still valid. No renewal needed.")
            return False

        if self.not_after is not None and self.not_after < self._now():
            console.status("Certificate has expired. Renewing...")
        else:
            console.status("Certificate is within the renewal margin. Renewing...")
        strategy = self.settings.renewal.strategy
        if strategy is RenewalStrategy.CERTBOT_RENEW:
            self.certbot.run("renew", "--force-renewal", capture=False)
        elif self._reissue is not None:
            self._reissue()
        else:
            msg = f"renewal.strategy '{strategy}' needs an issuance workflow"
            raise RenewalError(msg)
        log.info("Renewal finished using strategy %s", strategy.value)
        return True
