"""Error taxonomy for eabcert.

Every fatal condition in the issuance and renewal workflows is raised as
a subclass of :class:`EabcertError`.  The CLI catches the base class,
prints :attr:`EabcertError.detail` and exits with status 1.

An existing ACME account is *not* an error: the registrar handles it by
unregistering and registering again.
"""

from __future__ import annotations

from collections.abc import Sequence


class EabcertError(Exception):
    """Base class for every fatal eabcert failure.

    Parameters
    ----------
    detail:
        Human-readable description of the failure.

    """

    def __init__(self, detail: str) -> None:
        self.detail = detail
        super().__init__(detail)


class UnsupportedPlatformError(EabcertError):
    """The host OS family has no installer strategy."""

    def __init__(self, platform: str) -> None:
        self.platform = platform
        super().__init__(f"Unsupported operating system: {platform}")


class PermissionDeniedError(EabcertError):
    """The IAM policy binding for EAB key creation could not be applied."""


class CredentialParseError(EabcertError):
    """The EAB key response was not a JSON object with ``keyId`` and ``b64MacKey``."""


class CertificateReadError(EabcertError):
    """A certificate file is missing or its expiry could not be read."""


class IssuanceError(EabcertError):
    """Certificate issuance finished without producing the expected files."""


class IssuanceBlockedError(EabcertError):
    """The DNS-01 challenge was not completed before the configured timeout."""


class RenewalError(EabcertError):
    """The configured renewal strategy could not be carried out."""


class CommandError(EabcertError):
    """An external command exited non-zero or could not be started.

    Parameters
    ----------
    argv:
        The (sanitised) command line that failed.
    returncode:
        Exit status, or ``None`` when the command never ran.
    stdout, stderr:
        Captured output, empty when output was not captured.

    """

    def __init__(
        self,
        argv: Sequence[str],
        returncode: int | None,
        stdout: str = "",
        stderr: str = "",
    ) -> None:
        self.argv = list(argv)
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        program = self.argv[0] if self.argv else "?"
        if returncode is None:
            detail = f"Could not run '{program}'"
        else:
            detail = f"'{program}' exited with status {returncode}"
        tail = (stderr or stdout).strip()
        if tail:
            detail = f"{detail}: {tail.splitlines()[-1]}"
        super().__init__(detail)


class CommandTimeoutError(EabcertError):
    """An external command ran longer than its allowed timeout."""

    def __init__(self, argv: Sequence[str], timeout: float) -> None:
        self.argv = list(argv)
        self.timeout = timeout
        program = self.argv[0] if self.argv else "?"
        super().__init__(f"'{program}' did not finish within {timeout:g}s")
