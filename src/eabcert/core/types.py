"""Enumerated types and value objects shared across the workflow.

All enums inherit from ``StrEnum`` so their ``.value`` is the plain
string used in configuration files.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path

# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class OsFamily(StrEnum):
    DARWIN = "darwin"
    LINUX = "linux"


class AccountState(StrEnum):
    NO_ACCOUNT = "no_account"
    HAS_ACCOUNT = "has_account"


class ChallengeMode(StrEnum):
    MANUAL = "manual"
    HOOK = "hook"


class RenewalStrategy(StrEnum):
    CERTBOT_RENEW = "certbot_renew"
    REISSUE = "reissue"


# ---------------------------------------------------------------------------
# Value objects
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class EabCredential:
    """External Account Binding key pair, used once for registration."""

    key_id: str
    mac_key: str

    def __repr__(self) -> str:
        return f"EabCredential(key_id={self.key_id!r}, mac_key='[REDACTED]')"


@dataclass(frozen=True)
class KeyMaterial:
    """Private key and CSR written for one environment."""

    private_key_path: Path
    csr_path: Path


@dataclass(frozen=True)
class CertificateBundle:
    """Leaf, intermediate chain and full chain PEM files."""

    leaf: Path
    intermediate: Path
    full_chain: Path


# ---------------------------------------------------------------------------
# Filesystem layout
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class EnvLayout:
    """Environment-tagged file names under ``<work_dir>/<env>/``."""

    work_dir: Path
    env: str

    @property
    def directory(self) -> Path:
        return self.work_dir / self.env

    @property
    def private_key(self) -> Path:
        return self.directory / f"private_{self.env}.key"

    @property
    def csr(self) -> Path:
        return self.directory / f"csr_{self.env}.pem"

    @property
    def certificate(self) -> Path:
        return self.directory / f"certificate_{self.env}.pem"

    @property
    def intermediate(self) -> Path:
        return self.directory / f"intermediate_cert_{self.env}.pem"

    @property
    def full_chain(self) -> Path:
        return self.directory / f"full_cert_{self.env}.pem"

    def bundle(self) -> CertificateBundle:
        return CertificateBundle(
            leaf=self.certificate,
            intermediate=self.intermediate,
            full_chain=self.full_chain,
        )
