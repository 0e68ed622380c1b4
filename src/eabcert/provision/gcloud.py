"""Google Cloud credential provisioning for Public CA.

Wraps the three ``gcloud`` calls the issuance workflow needs before it
can talk to the ACME server:

1. bind ``roles/publicca.externalAccountKeyCreator`` to the operator;
2. enable ``publicca.googleapis.com``;
3. create a fresh External Account Binding key.

The EAB key is returned as an :class:`EabCredential` and never written
to disk.
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING

from eabcert.core import console
from eabcert.core.errors import CommandError, CredentialParseError, PermissionDeniedError
from eabcert.core.types import EabCredential
from eabcert.logging.sanitize import REDACTED, sanitize_for_logs

if TYPE_CHECKING:
    from eabcert.config.settings import GcloudSettings
    from eabcert.core.runner import CommandRunner

log = logging.getLogger(__name__)


def parse_eab_response(text: str) -> EabCredential:
    """Extract ``keyId`` and ``b64MacKey`` from the key creation response.

    Raises
    ------
    CredentialParseError
        If *text* is not a JSON object or either field is missing,
        empty, or not a string.

    """
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as exc:
        msg = f"EAB key response is not valid JSON: {exc}"
        raise CredentialParseError(msg) from exc

    if not isinstance(payload, dict):
        msg = f"EAB key response must be a JSON object, got {type(payload).__name__}"
        raise CredentialParseError(msg)

    missing = [
        field
        for field in ("keyId", "b64MacKey")
        if not isinstance(payload.get(field), str) or not payload[field]
    ]
    if missing:
        msg = f"EAB key response is missing required field(s): {', '.join(missing)}"
        raise CredentialParseError(msg)

    return EabCredential(key_id=payload["keyId"], mac_key=payload["b64MacKey"])


class CredentialProvisioner:
    """Grant permission, enable the API and mint EAB keys via ``gcloud``.

    Parameters
    ----------
    runner:
        Command boundary.
    gcloud_bin:
        ``gcloud`` executable.
    settings:
        The ``gcloud`` configuration section.

    """

    def __init__(
        self,
        runner: CommandRunner,
        gcloud_bin: str,
        settings: GcloudSettings,
    ) -> None:
        self.runner = runner
        self.gcloud = gcloud_bin
        self.settings = settings

    def set_project(self, project: str) -> None:
        self.runner.run([self.gcloud, "config", "set", "project", project])
        log.info("Active gcloud project set to %s", project)

    def member(self, email: str) -> str:
        """IAM member string for *email*, e.g. ``user:ops@example.com``."""
        return f"{self.settings.member_type}:{email}"

    def grant_eab_permission(self, project: str, member: str) -> None:
        """Bind the EAB key creator role to *member* on *project*.

        The binding is idempotent on the remote side.

        Raises
        ------
        PermissionDeniedError
            If ``gcloud`` rejects the binding.

        """
        argv = [
            self.gcloud,
            "projects",
            "add-iam-policy-binding",
            project,
            f"--member={member}",
            f"--role={self.settings.role}",
        ]
        try:
            self.runner.run(argv)
        except CommandError as exc:
            console.status("IAM policy binding failed.")
            msg = f"Could not bind {self.settings.role} to {member} on {project}: {exc.detail}"
            raise PermissionDeniedError(msg) from exc
        console.status("IAM policy binding successful.")

    def enable_service(self, service_name: str) -> None:
        """Enable *service_name*; failures surface as ``CommandError``."""
        self.runner.run([self.gcloud, "services", "enable", service_name])
        log.info("Service %s enabled", service_name)

    def request_eab_key(self) -> EabCredential:
        """Create a new EAB key pair on Google Public CA."""
        argv = [self.gcloud]
        if self.settings.release_track != "ga":
            argv.append(self.settings.release_track)
        argv += ["publicca", "external-account-keys", "create", "--format=json"]

        result = self.runner.run(argv)
        log.debug("EAB key response: %s", sanitize_for_logs(result.stdout.strip()))
        credential = parse_eab_response(result.stdout)

        console.detail(f"b64MacKey: {REDACTED}")
        console.detail(f"keyId: {credential.key_id}")
        log.info("EAB key %s created", credential.key_id)
        return credential
