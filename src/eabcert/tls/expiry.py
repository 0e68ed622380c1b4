"""Certificate expiry lookup and the renewal decision.

The "not after" timestamp is read with ``openssl x509 -enddate``.  The
renewal rule is deliberately strict: a certificate is renewed only once
``not_after`` lies *before* now (plus an optional, default-zero margin).
An expiry exactly equal to now is not yet due.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import TYPE_CHECKING

from eabcert.core.errors import CertificateReadError, CommandError

if TYPE_CHECKING:
    from eabcert.core.runner import CommandRunner

log = logging.getLogger(__name__)

_ENDDATE_PREFIX = "notAfter="
_ENDDATE_FORMAT = "%b %d %H:%M:%S %Y %Z"


def parse_enddate(output: str) -> datetime:
    """Parse ``notAfter=Jan  1 00:00:00 2030 GMT`` into an aware UTC datetime.

    Raises
    ------
    CertificateReadError
        If no ``notAfter=`` line is present or the date is malformed.

    """
    for line in output.splitlines():
        line = line.strip()  # noqa: PLW2901
        if line.startswith(_ENDDATE_PREFIX):
            value = line[len(_ENDDATE_PREFIX) :].strip()
            break
    else:
        msg = f"No notAfter field in openssl output: {output.strip()!r}"
        raise CertificateReadError(msg)

    try:
        parsed = datetime.strptime(value, _ENDDATE_FORMAT)  # noqa: DTZ007
    except ValueError as exc:
        msg = f"Unrecognised certificate end date {value!r}"
        raise CertificateReadError(msg) from exc
    return parsed.replace(tzinfo=UTC)


def needs_renewal(
    not_after: datetime,
    now: datetime | None = None,
    margin: timedelta = timedelta(0),
) -> bool:
    """Return whether a certificate expiring at *not_after* must be renewed.

    ``not_after < now + margin``; with the default zero margin an expiry
    equal to *now* is still considered valid.
    """
    current = now if now is not None else datetime.now(UTC)
    return not_after < current + margin


class ExpiryReader:
    """Read a certificate's expiry through ``openssl x509``."""

    def __init__(self, runner: CommandRunner, openssl_bin: str) -> None:
        self.runner = runner
        self.openssl = openssl_bin

    def read_expiry(self, cert_path: Path) -> datetime:
        cert_path = Path(cert_path)
        if not cert_path.is_file():
            msg = f"Certificate not found: {cert_path}"
            raise CertificateReadError(msg)
        try:
            result = self.runner.run(
                [self.openssl, "x509", "-in", str(cert_path), "-noout", "-enddate"],
            )
        except CommandError as exc:
            msg = f"Could not read {cert_path}: {exc.detail}"
            raise CertificateReadError(msg) from exc
        not_after = parse_enddate(result.stdout)
        log.debug("%s expires %s", cert_path, not_after.isoformat())
        return not_after
