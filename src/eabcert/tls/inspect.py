"""Read-only summary of an issued certificate bundle."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING

from cryptography import x509
from cryptography.hazmat.primitives import hashes

from eabcert.core.errors import CertificateReadError

if TYPE_CHECKING:
    from eabcert.core.types import CertificateBundle


@dataclass(frozen=True)
class CertificateSummary:
    """Identity and validity of a leaf certificate."""

    subject: str
    issuer: str
    serial_number: str
    not_before: datetime
    not_after: datetime
    fingerprint: str
    dns_names: tuple[str, ...]


def load_certificate(path: Path) -> x509.Certificate:
    """Load the first PEM certificate in *path*."""
    try:
        data = Path(path).read_bytes()
    except OSError as exc:
        msg = f"Could not read certificate {path}: {exc}"
        raise CertificateReadError(msg) from exc
    try:
        return x509.load_pem_x509_certificate(data)
    except ValueError as exc:
        msg = f"{path} does not contain a PEM certificate: {exc}"
        raise CertificateReadError(msg) from exc


def summarize(cert: x509.Certificate) -> CertificateSummary:
    try:
        san = cert.extensions.get_extension_for_class(x509.SubjectAlternativeName)
        dns_names = tuple(san.value.get_values_for_type(x509.DNSName))
    except x509.ExtensionNotFound:
        dns_names = ()
    return CertificateSummary(
        subject=cert.subject.rfc4514_string(),
        issuer=cert.issuer.rfc4514_string(),
        serial_number=format(cert.serial_number, "x"),
        not_before=cert.not_valid_before_utc,
        not_after=cert.not_valid_after_utc,
        fingerprint=cert.fingerprint(hashes.SHA256()).hex(),
        dns_names=dns_names,
    )


def describe_bundle(bundle: CertificateBundle) -> dict:
    """Return a printable description of *bundle*.

    The leaf must exist; the chain files are reported as present or not.
    """
    summary = summarize(load_certificate(bundle.leaf))
    return {
        "certificate": str(bundle.leaf),
        "subject": summary.subject,
        "issuer": summary.issuer,
        "serial": summary.serial_number,
        "not_before": summary.not_before.isoformat(),
        "not_after": summary.not_after.isoformat(),
        "sha256": summary.fingerprint,
        "dns_names": list(summary.dns_names),
        "intermediate_present": bundle.intermediate.is_file(),
        "full_chain_present": bundle.full_chain.is_file(),
    }
