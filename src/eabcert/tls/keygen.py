"""Private key and CSR generation through ``openssl req``.

Every issuance generates a brand new RSA key: an existing key or CSR at
the target path is overwritten, never reused.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import TYPE_CHECKING

from eabcert.core.types import KeyMaterial

if TYPE_CHECKING:
    from eabcert.config.settings import SubjectSettings
    from eabcert.core.runner import CommandRunner

log = logging.getLogger(__name__)

# DN attribute order for ``-subj``
_SUBJECT_FIELDS = (
    ("C", "country"),
    ("ST", "state"),
    ("L", "locality"),
    ("O", "organization"),
    ("OU", "org_unit"),
    ("CN", "common_name"),
    ("emailAddress", "email"),
)

_KEY_FILE_MODE = 0o600


def _escape(value: str) -> str:
    """Backslash-escape characters ``openssl -subj`` treats as separators."""
    return value.replace("\\", "\\\\").replace("/", "\\/").replace("+", "\\+")


def build_subject(subject: SubjectSettings) -> str:
    """Return the ``openssl -subj`` string for *subject*.

    Field order is fixed: C, ST, L, O, OU, CN, emailAddress.
    """
    return "".join(
        f"/{attr}={_escape(getattr(subject, field))}" for attr, field in _SUBJECT_FIELDS
    )


class KeyGenerator:
    """Generate an RSA key and matching CSR with ``openssl``."""

    def __init__(self, runner: CommandRunner, openssl_bin: str) -> None:
        self.runner = runner
        self.openssl = openssl_bin

    def generate_keypair(
        self,
        subject: SubjectSettings,
        key_size: int,
        out_dir: Path,
        env_tag: str,
    ) -> KeyMaterial:
        """Write ``private_<env>.key`` and ``csr_<env>.pem`` into *out_dir*.

        Creates *out_dir* if needed.  The private key is left readable by
        the owner only.
        """
        out_dir = Path(out_dir)
        out_dir.mkdir(parents=True, exist_ok=True)
        material = KeyMaterial(
            private_key_path=out_dir / f"private_{env_tag}.key",
            csr_path=out_dir / f"csr_{env_tag}.pem",
        )

        if material.private_key_path.exists():
            log.warning(
                "Overwriting existing private key %s with a freshly generated one",
                material.private_key_path,
            )

        self.runner.run(
            [
                self.openssl,
                "req",
                "-newkey",
                f"rsa:{key_size}",
                "-nodes",
                "-keyout",
                str(material.private_key_path),
                "-out",
                str(material.csr_path),
                "-subj",
                build_subject(subject),
            ],
        )

        if material.private_key_path.exists():
            os.chmod(material.private_key_path, _KEY_FILE_MODE)  # noqa: PTH101
        log.info(
            "Generated rsa:%d key and CSR for %s in %s",
            key_size,
            subject.common_name,
            out_dir,
        )
        return material
