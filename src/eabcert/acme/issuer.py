"""Certificate issuance through certbot's manual DNS-01 flow.

certbot is handed the CSR produced by :mod:`eabcert.tls.keygen` and
writes the leaf certificate straight to ``<env>/certificate_<env>.pem``.
The two chain files it emits alongside get generic sequential names
(``0000_chain.pem``, ``0001_chain.pem``, ...) in the working directory;
they are moved to environment-tagged names as soon as certbot exits.

Completing the DNS-01 challenge needs a TXT record published out of
band.  Two strategies (``challenge.mode``):

- ``manual`` -- certbot prints the record and waits for the operator
  on the terminal;
- ``hook``   -- certbot calls ``eabcert hook auth``/``cleanup``, which
  publish the record through operator scripts and wait until it is
  visible in DNS.
"""

from __future__ import annotations

import logging
import shlex
from pathlib import Path
from typing import TYPE_CHECKING

from eabcert.core import console
from eabcert.core.errors import CommandTimeoutError, IssuanceBlockedError, IssuanceError
from eabcert.core.types import ChallengeMode

if TYPE_CHECKING:
    from collections.abc import Sequence

    from eabcert.acme.certbot import Certbot
    from eabcert.config.settings import ChallengeSettings
    from eabcert.core.types import CertificateBundle, EnvLayout, KeyMaterial

log = logging.getLogger(__name__)

CHALLENGE_TYPE = "dns-01"

# Sequentially numbered chain files certbot writes into its cwd
_CHAIN_GLOB = "[0-9][0-9][0-9][0-9]_*chain.pem"


def find_chain_files(directory: Path) -> list[Path]:
    """Return certbot's sequential chain files in *directory*, sorted."""
    return sorted(Path(directory).glob(_CHAIN_GLOB))


def _pick_chain_pair(created: list[Path]) -> tuple[Path, Path]:
    """Split new chain files into (intermediate, full chain).

    A ``*_fullchain.pem`` name marks the full chain whatever its number;
    when both files are plain ``*_chain.pem`` the lower number is the
    intermediate.
    """
    full = [p for p in created if p.name.endswith("_fullchain.pem")]
    plain = [p for p in created if p not in full]
    if full and plain:
        return plain[0], full[0]
    return created[0], created[1]


class CertificateIssuer:
    """Request a certificate for a CSR and file the results per environment.

    Parameters
    ----------
    certbot:
        Certbot command builder.
    challenge:
        The ``challenge`` configuration section.
    hook_command:
        Command prefix certbot runs as its manual hooks in ``hook`` mode;
        ``auth`` or ``cleanup`` is appended.

    """

    def __init__(
        self,
        certbot: Certbot,
        challenge: ChallengeSettings,
        *,
        hook_command: Sequence[str] | None = None,
    ) -> None:
        self.certbot = certbot
        self.challenge = challenge
        self.hook_command = list(hook_command) if hook_command else None
        if challenge.mode is ChallengeMode.HOOK and not self.hook_command:
            msg = "challenge.mode 'hook' requires a hook command"
            raise IssuanceError(msg)

    def certonly_args(
        self,
        material: KeyMaterial,
        layout: EnvLayout,
        server: str,
        key_size: int,
    ) -> list[str]:
        args = [
            "--manual",
            "--preferred-challenges",
            CHALLENGE_TYPE,
            "--server",
            server,
            "--csr",
            str(Path(material.csr_path).resolve()),
            "--cert-path",
            str(layout.certificate.resolve()),
            "--key-path",
            str(Path(material.private_key_path).resolve()),
            "--force-renewal",
            "--rsa-key-size",
            str(key_size),
        ]
        if self.challenge.mode is ChallengeMode.HOOK:
            args += [
                "--manual-auth-hook",
                shlex.join([*self.hook_command, "auth"]),
                "--manual-cleanup-hook",
                shlex.join([*self.hook_command, "cleanup"]),
                "--non-interactive",
            ]
        return args

    def issue(
        self,
        material: KeyMaterial,
        layout: EnvLayout,
        server: str,
        key_size: int,
    ) -> CertificateBundle:
        """Run ``certbot certonly`` and return the environment-tagged bundle.

        Raises
        ------
        IssuanceBlockedError
            The challenge was not completed within ``challenge.timeout_seconds``.
        IssuanceError
            certbot succeeded but the chain files did not appear.

        """
        work_dir = layout.work_dir.resolve()
        layout.directory.mkdir(parents=True, exist_ok=True)
        existing = set(find_chain_files(work_dir))

        if self.challenge.mode is ChallengeMode.MANUAL:
            console.status(
                "Requesting certificate. certbot will show the _acme-challenge "
                "TXT record to publish; press Enter in certbot once it is live.",
            )
        else:
            console.status("Requesting certificate. DNS-01 records are handled by hooks.")

        try:
            self.certbot.run(
                "certonly",
                *self.certonly_args(material, layout, server, key_size),
                capture=False,
                timeout=self.challenge.timeout_seconds,
                cwd=work_dir,
            )
        except CommandTimeoutError as exc:
            msg = (
                f"DNS-01 challenge for {server} was not completed within "
                f"{self.challenge.timeout_seconds}s"
            )
            raise IssuanceBlockedError(msg) from exc

        return self._file_chain(work_dir, existing, layout)

    def _file_chain(
        self,
        work_dir: Path,
        existing: set[Path],
        layout: EnvLayout,
    ) -> CertificateBundle:
        """Move the chain files created by this run into *layout*."""
        created = [p for p in find_chain_files(work_dir) if p not in existing]
        if len(created) < 2:  # noqa: PLR2004
            msg = (
                f"certbot did not produce the intermediate and full chain files in "
                f"{work_dir} (found {[p.name for p in created]})"
            )
            raise IssuanceError(msg)
        if len(created) > 2:  # noqa: PLR2004
            log.warning("Unexpected extra chain files from certbot: %s", created[2:])

        intermediate, full_chain = _pick_chain_pair(created)
        bundle = layout.bundle()
        console.status(f"Renaming and moving the file to {layout.env} folder.")
        intermediate.replace(bundle.intermediate)
        full_chain.replace(bundle.full_chain)
        log.info(
            "Moved %s -> %s and %s -> %s",
            intermediate.name,
            bundle.intermediate,
            full_chain.name,
            bundle.full_chain,
        )
        if not bundle.leaf.is_file():
            msg = f"certbot did not write the certificate to {bundle.leaf}"
            raise IssuanceError(msg)
        return bundle
